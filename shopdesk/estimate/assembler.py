from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from shopdesk.errors import PreconditionError
from shopdesk.models.common import utcnow
from shopdesk.models.customer import Customer
from shopdesk.models.estimate import (
    CustomerSnapshot,
    EstimateDocument,
    EstimateHeader,
    EstimateLine,
    LineItem,
)

from .totals import totals_for


class DocumentNumbering(Protocol):
    def next_id(self) -> str: ...

    def next_number(self, issue_date: Optional[date] = None) -> str: ...


def assemble_estimate(
    header: EstimateHeader,
    items: Sequence[LineItem],
    customer: Optional[Customer],
    numbering: Optional[DocumentNumbering] = None,
    *,
    previous: Optional[EstimateDocument] = None,
    clamp_discount: bool = False,
    now: Optional[datetime] = None,
) -> EstimateDocument:
    """
    Construit le devis figé à partir de l'en-tête, des lignes et du client.
    Vérifie à nouveau client + lignes (ne pas se fier au seul assistant).
    L'id et le numéro viennent de `numbering`, ou de `previous` quand on
    réédite un devis existant. Ne persiste rien.
    """
    if customer is None:
        raise PreconditionError("cannot commit an estimate without a customer")
    if not items:
        raise PreconditionError("cannot commit an estimate without line items")
    if numbering is None and previous is None:
        raise PreconditionError("no numbering available for a new estimate")

    lines = tuple(EstimateLine.from_item(it) for it in items)
    totals = totals_for(lines, header, clamp_discount=clamp_discount)
    stamp = now or utcnow()
    if previous is not None:
        estimate_id, number, created_at, updated_at = previous.id, previous.number, previous.created_at, stamp
    else:
        estimate_id, number, created_at, updated_at = numbering.next_id(), numbering.next_number(header.issue_date), stamp, None  # type: ignore[union-attr]

    return EstimateDocument(
        id=estimate_id,
        number=number,
        customer=CustomerSnapshot(
            customer_id=customer.id,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            address=customer.address,
        ),
        issue_date=header.issue_date,
        expiry_date=header.expiry_date,
        items=lines,
        subtotal=totals.subtotal,
        discount_value=header.discount_value,
        discount_mode=header.discount_mode,
        discount_amount=totals.discount_amount,
        tax_percentage=header.tax_percentage,
        tax_amount=totals.tax_amount,
        total=totals.total,
        status="draft",
        notes=header.notes,
        terms=header.terms,
        created_at=created_at,
        updated_at=updated_at,
    )
