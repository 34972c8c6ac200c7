from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable

from shopdesk.models.common import HUNDRED, ZERO, to_decimal
from shopdesk.models.estimate import DiscountMode, EstimateHeader, EstimateTotals


def _as_decimal(v: Any) -> Decimal:
    d = to_decimal(v)
    if d is None:
        raise ValueError(f"not a number: {v!r}")
    return d


def compute_totals(
    items: Iterable[Any],
    discount_value: Decimal,
    discount_mode: DiscountMode | str,
    tax_percentage: Decimal,
    *,
    clamp_discount: bool = False,
) -> EstimateTotals:
    """
    Totaux recalculés à chaque appel à partir des lignes.

    subtotal = somme des line_total
    remise   = subtotal * valeur / 100 (pourcentage) ou valeur (montant fixe)
    taxe     = (subtotal - remise) * taux / 100

    Sans clamp_discount, une remise supérieure au sous-total donne une base
    négative (et donc taxe et total négatifs). Avec clamp_discount, la remise
    est bornée à [0, subtotal].
    """
    subtotal = sum((_as_decimal(it.line_total) for it in items), ZERO)
    value = _as_decimal(discount_value)

    if DiscountMode(discount_mode) is DiscountMode.PERCENTAGE:
        discount_amount = subtotal * value / HUNDRED
    else:
        discount_amount = value
    if clamp_discount:
        discount_amount = max(ZERO, min(discount_amount, subtotal))

    after_discount = subtotal - discount_amount
    tax_amount = after_discount * _as_decimal(tax_percentage) / HUNDRED
    return EstimateTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        after_discount=after_discount,
        tax_amount=tax_amount,
        total=after_discount + tax_amount,
    )


def totals_for(items: Iterable[Any], header: EstimateHeader, *, clamp_discount: bool = False) -> EstimateTotals:
    return compute_totals(
        items,
        header.discount_value,
        header.discount_mode,
        header.tax_percentage,
        clamp_discount=clamp_discount,
    )
