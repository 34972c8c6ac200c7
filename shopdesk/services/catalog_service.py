from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as ModelValidationError

from shopdesk.config import data_dir
from shopdesk.errors import NotFoundError
from shopdesk.models.product import Product
from shopdesk.storage.json_repo import JsonRepository

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Catalogue produits, en lecture seule pour le moteur de devis.
    - get_product : par id, puis par référence
    - search_products : nom ou référence, insensible à la casse
    """

    def __init__(
        self,
        products_repo: Optional[JsonRepository] = None,
        data_dir_path: Optional[str | Path] = None,
    ) -> None:
        base = Path(data_dir_path) if data_dir_path else data_dir()
        self.products_repo = products_repo or JsonRepository(
            base / "products.json", entity_name="product", key="id"
        )

    # ---------- Hydratation ---------- #

    @staticmethod
    def _hydrate(d: Dict[str, Any]) -> Optional[Product]:
        try:
            return Product.model_validate(d)
        except ModelValidationError as e:
            logger.warning("Skipping invalid product row %r: %s", d.get("id"), e)
            return None

    def list_products(self, active_only: bool = True) -> List[Product]:
        out: List[Product] = []
        for row in self.products_repo.list_all():
            p = self._hydrate(row)
            if p is None or (active_only and not p.active):
                continue
            out.append(p)
        return out

    def get_product(self, product_ref: str) -> Product:
        ref = (product_ref or "").strip()
        if ref:
            row = self.products_repo.get_by_id(ref)
            if row is None:
                row = self.products_repo.find_one(lambda r: (r.get("ref") or "").strip() == ref)
            p = self._hydrate(row) if row is not None else None
            if p is not None:
                return p
        raise NotFoundError(f"product {product_ref!r} not found")

    def search_products(self, query: str = "") -> List[Product]:
        q = (query or "").strip().casefold()
        products = self.list_products()
        if not q:
            return products
        return [p for p in products if q in p.name.casefold() or q in (p.ref or "").casefold()]
