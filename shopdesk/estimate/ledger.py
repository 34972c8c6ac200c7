"""Lignes du devis en cours : ajout, modification, suppression.

Les modifications reçues du formulaire (quantité vide, prix négatif pendant la
frappe...) sont ignorées sans erreur : les méthodes ``update_*`` renvoient
``False`` et ne touchent à rien. Seul ``add_item`` lève une erreur.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, Iterator, List, Optional, Protocol, Tuple

from shopdesk.errors import NotFoundError, ValidationError
from shopdesk.models.common import gen_id, to_decimal
from shopdesk.models.estimate import EstimateLine, LineItem
from shopdesk.models.product import Product

logger = logging.getLogger(__name__)


class CatalogProvider(Protocol):
    def get_product(self, product_ref: str) -> Product: ...


def is_valid_quantity(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def parse_unit_price(value: Any) -> Optional[Decimal]:
    """Prix exploitable (>= 0) ou None."""
    d = to_decimal(value)
    if d is None or d < 0:
        return None
    return d


class LineItemLedger:
    def __init__(self, catalog: CatalogProvider) -> None:
        self._catalog = catalog
        self._items: List[LineItem] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[LineItem]:
        return iter(self.items())

    def _find(self, item_id: str) -> Optional[LineItem]:
        for it in self._items:
            if it.id == item_id:
                return it
        return None

    def _fresh_id(self) -> str:
        new_id = gen_id()
        while self._find(new_id) is not None:
            new_id = gen_id()
        return new_id

    def items(self) -> Tuple[LineItem, ...]:
        return tuple(it.model_copy() for it in self._items)

    def get(self, item_id: str) -> Optional[LineItem]:
        it = self._find(item_id)
        return it.model_copy() if it is not None else None

    def add_item(
        self,
        product_ref: str,
        quantity: int,
        unit_price_override: Any = None,
        description_override: Optional[str] = None,
    ) -> LineItem:
        if not is_valid_quantity(quantity):
            raise ValidationError(f"quantity must be a positive integer, got {quantity!r}")
        try:
            product = self._catalog.get_product(product_ref)
        except NotFoundError as e:
            raise ValidationError(f"unknown product {product_ref!r}") from e

        unit_price = parse_unit_price(unit_price_override)
        if unit_price is None:
            unit_price = product.price

        item = LineItem(
            id=self._fresh_id(),
            product_ref=product.id,
            label=product.name,
            description=(description_override or "").strip() or product.name,
            quantity=quantity,
            unit_price=unit_price,
        )
        self._items.append(item)
        return item.model_copy()

    def update_quantity(self, item_id: str, new_quantity: Any) -> bool:
        it = self._find(item_id)
        if it is None or not is_valid_quantity(new_quantity):
            logger.debug("Ignored quantity %r for line %s", new_quantity, item_id)
            return False
        it.quantity = new_quantity
        return True

    def update_unit_price(self, item_id: str, new_price: Any) -> bool:
        it = self._find(item_id)
        price = parse_unit_price(new_price)
        if it is None or price is None:
            logger.debug("Ignored unit price %r for line %s", new_price, item_id)
            return False
        it.unit_price = price
        return True

    def remove_item(self, item_id: str) -> bool:
        it = self._find(item_id)
        if it is None:
            return False
        self._items.remove(it)
        return True

    def restore(self, lines: Iterable[EstimateLine]) -> None:
        """Recharge les lignes d'un devis existant (ids conservés, doublons ignorés)."""
        items: List[LineItem] = []
        seen: set[str] = set()
        for ln in lines:
            if ln.id in seen:
                logger.warning("Duplicate line id %s skipped on restore", ln.id)
                continue
            seen.add(ln.id)
            items.append(
                LineItem(
                    id=ln.id,
                    product_ref=ln.product_ref,
                    label=ln.label,
                    description=ln.description,
                    quantity=ln.quantity,
                    unit_price=ln.unit_price,
                    line_discount=ln.line_discount,
                )
            )
        self._items = items

    def clear(self) -> None:
        self._items = []
