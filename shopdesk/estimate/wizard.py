"""Assistant de création de devis en trois étapes.

client -> lignes -> finalisation. Un seul devis en cours par assistant ; chaque
méthode publique s'exécute sous verrou, sans état intermédiaire visible.
``commit`` renvoie le devis figé puis remet l'assistant à zéro : la
persistance reste à la charge de l'appelant (voir EstimateService.save).
"""
from __future__ import annotations

import logging
import threading
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional, Protocol, Tuple

from shopdesk.config import EstimateSettings
from shopdesk.errors import PreconditionError
from shopdesk.models.customer import Customer
from shopdesk.models.estimate import (
    DiscountMode,
    EstimateDocument,
    EstimateHeader,
    EstimateTotals,
    LineItem,
)

from . import workflow
from .assembler import DocumentNumbering, assemble_estimate
from .ledger import CatalogProvider, LineItemLedger, parse_unit_price
from .totals import totals_for
from .workflow import Transition, WizardStep

logger = logging.getLogger(__name__)


class PartyProvider(Protocol):
    def get_by_id(self, customer_id: str) -> Optional[Customer]: ...


def _non_negative(value: Any) -> Optional[Decimal]:
    # même règle que pour un prix : nombre >= 0
    return parse_unit_price(value)


class EstimateWizard:
    def __init__(
        self,
        catalog: CatalogProvider,
        parties: PartyProvider,
        settings: Optional[EstimateSettings] = None,
    ) -> None:
        self._parties = parties
        self.settings = settings or EstimateSettings()
        self._lock = threading.RLock()
        self._ledger = LineItemLedger(catalog)
        self._header = EstimateHeader.fresh(self.settings)
        self._step = WizardStep.SELECT_PARTY
        self._editing: Optional[EstimateDocument] = None

    # ----- état ----- #

    @property
    def step(self) -> WizardStep:
        with self._lock:
            return self._step

    @property
    def header(self) -> EstimateHeader:
        with self._lock:
            return self._header.model_copy()

    @property
    def party_ref(self) -> Optional[str]:
        with self._lock:
            return self._header.party_ref

    @property
    def editing(self) -> Optional[EstimateDocument]:
        with self._lock:
            return self._editing

    def _reset(self) -> None:
        self._ledger.clear()
        self._header = EstimateHeader.fresh(self.settings)
        self._step = WizardStep.SELECT_PARTY
        self._editing = None

    # ----- étape 1 : client ----- #

    def select_party(self, party_ref: str) -> bool:
        with self._lock:
            if not party_ref or self._parties.get_by_id(party_ref) is None:
                logger.debug("Unknown customer %r, selection ignored", party_ref)
                return False
            self._header = self._header.model_copy(update={"party_ref": party_ref})
            return True

    def clear_party(self) -> None:
        with self._lock:
            self._header = self._header.model_copy(update={"party_ref": None})

    # ----- étape 2 : lignes ----- #

    def add_item(
        self,
        product_ref: str,
        quantity: int = 1,
        unit_price_override: Any = None,
        description_override: Optional[str] = None,
    ) -> LineItem:
        with self._lock:
            return self._ledger.add_item(product_ref, quantity, unit_price_override, description_override)

    def update_quantity(self, item_id: str, new_quantity: Any) -> bool:
        with self._lock:
            return self._ledger.update_quantity(item_id, new_quantity)

    def update_unit_price(self, item_id: str, new_price: Any) -> bool:
        with self._lock:
            return self._ledger.update_unit_price(item_id, new_price)

    def remove_item(self, item_id: str) -> bool:
        with self._lock:
            return self._ledger.remove_item(item_id)

    def items(self) -> Tuple[LineItem, ...]:
        with self._lock:
            return self._ledger.items()

    # ----- étape 3 : en-tête ----- #

    def set_discount(self, value: Any, mode: DiscountMode | str | None = None) -> bool:
        with self._lock:
            amount = _non_negative(value)
            try:
                new_mode = DiscountMode(mode) if mode is not None else self._header.discount_mode
            except ValueError:
                new_mode = None
            if amount is None or new_mode is None:
                logger.debug("Ignored discount %r (%r)", value, mode)
                return False
            self._header = self._header.model_copy(update={"discount_value": amount, "discount_mode": new_mode})
            return True

    def set_tax_percentage(self, value: Any) -> bool:
        with self._lock:
            pct = _non_negative(value)
            if pct is None:
                logger.debug("Ignored tax percentage %r", value)
                return False
            self._header = self._header.model_copy(update={"tax_percentage": pct})
            return True

    def set_dates(self, issue_date: date, expiry_date: Optional[date] = None) -> bool:
        """Sans date d'échéance : émission + validity_days."""
        with self._lock:
            expiry = expiry_date or issue_date + timedelta(days=self.settings.validity_days)
            if expiry < issue_date:
                logger.debug("Ignored dates %s -> %s", issue_date, expiry)
                return False
            self._header = self._header.model_copy(update={"issue_date": issue_date, "expiry_date": expiry})
            return True

    def set_notes(self, notes: Optional[str]) -> None:
        with self._lock:
            self._header = self._header.model_copy(update={"notes": notes or ""})

    def set_terms(self, terms: Optional[str]) -> None:
        with self._lock:
            self._header = self._header.model_copy(update={"terms": terms or ""})

    def totals(self) -> EstimateTotals:
        with self._lock:
            return totals_for(self._ledger.items(), self._header, clamp_discount=self.settings.clamp_discount)

    # ----- navigation ----- #

    def can_advance(self) -> bool:
        with self._lock:
            return workflow.can_advance(self._step, party_ref=self._header.party_ref, item_count=len(self._ledger))

    def advance(self) -> Transition:
        with self._lock:
            t = workflow.advance(self._step, party_ref=self._header.party_ref, item_count=len(self._ledger))
            if t:
                self._step = t.step
            else:
                logger.debug("Cannot leave step %s: %s", self._step.name, t.reason)
            return t

    def back(self) -> Transition:
        with self._lock:
            t = workflow.back(self._step)
            if t:
                self._step = t.step
            return t

    def cancel(self) -> None:
        with self._lock:
            self._reset()

    # ----- réédition / validation ----- #

    def load(self, document: EstimateDocument) -> None:
        """Rouvre un devis enregistré ; le prochain commit garde son id et son numéro."""
        with self._lock:
            self._ledger.restore(document.items)
            self._header = EstimateHeader(
                party_ref=document.customer.customer_id,
                issue_date=document.issue_date,
                expiry_date=document.expiry_date,
                discount_value=document.discount_value,
                discount_mode=document.discount_mode,
                tax_percentage=document.tax_percentage,
                notes=document.notes,
                terms=document.terms,
            )
            self._step = WizardStep.SELECT_PARTY
            self._editing = document

    def commit(self, numbering: Optional[DocumentNumbering] = None) -> EstimateDocument:
        with self._lock:
            if self._step is not WizardStep.FINALIZE:
                raise PreconditionError(f"commit is only allowed at the last step (current: {self._step.name})")
            party_ref = self._header.party_ref
            customer = self._parties.get_by_id(party_ref) if party_ref else None
            doc = assemble_estimate(
                self._header,
                self._ledger.items(),
                customer,
                numbering,
                previous=self._editing,
                clamp_discount=self.settings.clamp_discount,
            )
            self._reset()
            logger.info("Estimate %s assembled (%d lines, total %s)", doc.number, len(doc.items), doc.total)
            return doc
