from __future__ import annotations
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .common import ZERO, TimeStamped, gen_id

EstimateStatus = Literal["draft", "sent", "accepted", "rejected", "expired"]
ESTIMATE_STATUSES: Tuple[str, ...] = ("draft", "sent", "accepted", "rejected", "expired")


class DiscountMode(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class LineItem(BaseModel):
    """Ligne vivante du devis en cours de saisie (modifiée sur place par le ledger)."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=gen_id)
    product_ref: str
    label: str
    description: str = ""
    quantity: int = Field(default=1, ge=1)
    unit_price: Decimal = Field(default=ZERO, ge=0)
    # réservé : remise par ligne, toujours 0 pour l'instant
    line_discount: Decimal = ZERO

    @computed_field  # type: ignore[prop-decorator]
    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price


class EstimateLine(BaseModel):
    """Ligne figée dans un devis validé."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    product_ref: str
    label: str
    description: str = ""
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    line_discount: Decimal = ZERO
    line_total: Decimal

    @classmethod
    def from_item(cls, item: LineItem) -> "EstimateLine":
        return cls(
            id=item.id,
            product_ref=item.product_ref,
            label=item.label,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_discount=item.line_discount,
            line_total=item.line_total,
        )


class EstimateHeader(BaseModel):
    party_ref: Optional[str] = None
    issue_date: date = Field(default_factory=date.today)
    expiry_date: date = Field(default_factory=lambda: date.today() + timedelta(days=30))
    discount_value: Decimal = Field(default=ZERO, ge=0)
    discount_mode: DiscountMode = DiscountMode.PERCENTAGE
    tax_percentage: Decimal = Field(default=ZERO, ge=0)
    notes: str = ""
    terms: str = ""

    @model_validator(mode="after")
    def _check_dates(self) -> "EstimateHeader":
        if self.expiry_date < self.issue_date:
            raise ValueError("expiry_date must not be before issue_date")
        return self

    @classmethod
    def fresh(cls, settings=None, today: Optional[date] = None) -> "EstimateHeader":
        """En-tête par défaut : émis aujourd'hui, valable `validity_days` jours."""
        from shopdesk.config import EstimateSettings

        s = settings or EstimateSettings()
        issue = today or date.today()
        return cls(
            issue_date=issue,
            expiry_date=issue + timedelta(days=s.validity_days),
            tax_percentage=s.default_tax_pct,
            terms=s.default_terms,
        )


class EstimateTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    discount_amount: Decimal
    after_discount: Decimal
    tax_amount: Decimal
    total: Decimal


class CustomerSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    customer_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class EstimateDocument(TimeStamped):
    """Devis validé. Jamais modifié par le moteur après création."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    number: str
    customer: CustomerSnapshot
    issue_date: date
    expiry_date: date
    items: Tuple[EstimateLine, ...]

    subtotal: Decimal
    discount_value: Decimal = ZERO
    discount_mode: DiscountMode = DiscountMode.PERCENTAGE
    discount_amount: Decimal = ZERO
    tax_percentage: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total: Decimal

    status: EstimateStatus = "draft"
    notes: str = ""
    terms: str = ""
