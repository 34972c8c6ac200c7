from __future__ import annotations

import threading
from datetime import date, timedelta
from decimal import Decimal

import pytest

from shopdesk.config import EstimateSettings
from shopdesk.errors import PreconditionError, ValidationError
from shopdesk.estimate.wizard import EstimateWizard
from shopdesk.estimate.workflow import WizardStep
from shopdesk.models.estimate import DiscountMode
from shopdesk.services.catalog_service import CatalogService
from shopdesk.services.customer_service import CustomerService
from shopdesk.services.estimate_service import EstimateService


def _to_finalize(wizard: EstimateWizard) -> None:
    assert wizard.select_party("C1")
    assert wizard.advance()
    wizard.add_item("P1", 2)
    assert wizard.advance()
    assert wizard.step is WizardStep.FINALIZE


def test_initial_state(wizard: EstimateWizard) -> None:
    assert wizard.step is WizardStep.SELECT_PARTY
    assert wizard.items() == ()
    assert wizard.party_ref is None
    header = wizard.header
    assert header.expiry_date - header.issue_date == timedelta(days=30)
    assert header.terms == "Valid for 30 days from the date of issue"


def test_cannot_advance_without_party(wizard: EstimateWizard) -> None:
    assert wizard.can_advance() is False
    t = wizard.advance()
    assert not t
    assert wizard.step is WizardStep.SELECT_PARTY


def test_select_unknown_party_is_ignored(wizard: EstimateWizard) -> None:
    assert wizard.select_party("C404") is False
    assert wizard.party_ref is None


def test_cannot_reach_finalize_with_empty_ledger(wizard: EstimateWizard) -> None:
    wizard.select_party("C1")
    assert wizard.advance()
    assert wizard.can_advance() is False
    assert not wizard.advance()
    assert wizard.step is WizardStep.BUILD_ITEMS


def test_scenario_add_item_and_subtotal(wizard: EstimateWizard) -> None:
    item = wizard.add_item("P1", 2, unit_price_override="500")
    items = wizard.items()
    assert len(items) == 1
    assert items[0].id == item.id
    assert items[0].line_total == 1000
    assert wizard.totals().subtotal == 1000


def test_currency_prefixed_override_keeps_full_price(wizard: EstimateWizard) -> None:
    item = wizard.add_item("P1", 2, unit_price_override="Rs.200")
    assert item.unit_price == Decimal("200")
    assert item.line_total == Decimal("400")
    fallback = wizard.add_item("P1", 1, unit_price_override="200abc")
    assert fallback.unit_price == Decimal("500")


def test_scenario_percentage_discount_and_tax(wizard: EstimateWizard) -> None:
    wizard.add_item("P1", 2)
    assert wizard.set_discount(10, DiscountMode.PERCENTAGE)
    assert wizard.set_tax_percentage(5)
    t = wizard.totals()
    assert (t.discount_amount, t.after_discount, t.tax_amount, t.total) == (100, 900, 45, 945)


def test_scenario_fixed_discount(wizard: EstimateWizard) -> None:
    wizard.add_item("P1", 2)
    assert wizard.set_discount("150", "fixed")
    assert wizard.set_tax_percentage(0)
    assert wizard.totals().total == 850


def test_scenario_negative_quantity_is_silently_rejected(wizard: EstimateWizard) -> None:
    item = wizard.add_item("P1", 2)
    assert wizard.update_quantity(item.id, -1) is False
    kept = wizard.items()[0]
    assert kept.quantity == 2
    assert kept.line_total == 1000


def test_totals_follow_every_ledger_change(wizard: EstimateWizard) -> None:
    a = wizard.add_item("P1", 2)
    b = wizard.add_item("P2", 1)
    assert wizard.totals().subtotal == Decimal("2250.50")
    wizard.update_quantity(a.id, 1)
    wizard.update_unit_price(b.id, "100")
    assert wizard.totals().subtotal == 600
    wizard.remove_item(a.id)
    assert wizard.totals().subtotal == 100


def test_add_item_validation_error_leaves_ledger_alone(wizard: EstimateWizard) -> None:
    wizard.add_item("P1", 1)
    with pytest.raises(ValidationError):
        wizard.add_item("P1", 0)
    with pytest.raises(ValidationError):
        wizard.add_item("ZZZ", 1)
    assert len(wizard.items()) == 1


def test_header_setters_reject_invalid_values(wizard: EstimateWizard) -> None:
    before = wizard.header
    assert wizard.set_discount(-5) is False
    assert wizard.set_discount(5, "weird") is False
    assert wizard.set_tax_percentage("abc") is False
    assert wizard.set_dates(date(2026, 5, 10), date(2026, 5, 1)) is False
    assert wizard.header == before


def test_set_dates_defaults_expiry_from_validity(wizard: EstimateWizard) -> None:
    assert wizard.set_dates(date(2026, 1, 15))
    assert wizard.header.expiry_date == date(2026, 2, 14)
    assert wizard.set_dates(date(2026, 1, 15), date(2026, 1, 15))
    assert wizard.header.expiry_date == date(2026, 1, 15)


def test_back_navigation_is_unconditional(wizard: EstimateWizard) -> None:
    _to_finalize(wizard)
    wizard.clear_party()
    assert wizard.back()
    assert wizard.step is WizardStep.BUILD_ITEMS
    assert wizard.back()
    assert wizard.step is WizardStep.SELECT_PARTY
    assert not wizard.back()
    assert wizard.step is WizardStep.SELECT_PARTY


def test_cancel_discards_everything(wizard: EstimateWizard) -> None:
    _to_finalize(wizard)
    wizard.set_notes("call first")
    wizard.cancel()
    assert wizard.step is WizardStep.SELECT_PARTY
    assert wizard.items() == ()
    assert wizard.party_ref is None
    assert wizard.header.notes == ""


def test_commit_produces_draft_and_resets(wizard: EstimateWizard, estimates: EstimateService) -> None:
    _to_finalize(wizard)
    wizard.set_discount(10)
    wizard.set_tax_percentage(5)
    wizard.set_notes("Delivery included")
    doc = wizard.commit(estimates)

    assert doc.status == "draft"
    assert doc.customer.customer_id == "C1"
    assert doc.customer.address == "No. 45, Galle Road, Colombo 03"
    assert doc.total == 945
    assert doc.notes == "Delivery included"
    assert doc.number.startswith(f"EST-{date.today().year}-")

    assert wizard.step is WizardStep.SELECT_PARTY
    assert wizard.items() == ()
    assert wizard.party_ref is None
    assert wizard.header.discount_value == 0
    assert wizard.header.notes == ""


def test_commit_snapshot_is_isolated_from_later_edits(wizard: EstimateWizard, estimates: EstimateService) -> None:
    _to_finalize(wizard)
    doc = wizard.commit(estimates)
    wizard.select_party("C2")
    wizard.advance()
    wizard.add_item("P2", 9)
    assert len(doc.items) == 1
    assert doc.items[0].quantity == 2
    assert doc.subtotal == 1000


def test_commit_before_last_step_is_refused(wizard: EstimateWizard, estimates: EstimateService) -> None:
    wizard.select_party("C1")
    wizard.add_item("P1", 1)
    with pytest.raises(PreconditionError, match="last step"):
        wizard.commit(estimates)
    assert len(wizard.items()) == 1


def test_commit_with_empty_ledger_raises_even_at_last_step(wizard: EstimateWizard, estimates: EstimateService) -> None:
    _to_finalize(wizard)
    for it in wizard.items():
        wizard.remove_item(it.id)
    with pytest.raises(PreconditionError, match="line items"):
        wizard.commit(estimates)
    assert wizard.step is WizardStep.FINALIZE
    assert wizard.party_ref == "C1"


def test_commit_without_party_raises(wizard: EstimateWizard, estimates: EstimateService) -> None:
    _to_finalize(wizard)
    wizard.clear_party()
    with pytest.raises(PreconditionError, match="customer"):
        wizard.commit(estimates)


def test_commit_uses_clamp_setting(catalog: CatalogService, customers: CustomerService, estimates: EstimateService) -> None:
    wizard = EstimateWizard(catalog, customers, EstimateSettings(clamp_discount=True))
    _to_finalize(wizard)
    wizard.set_discount(5000, "fixed")
    assert wizard.totals().total == 0
    assert wizard.commit(estimates).total == 0


def test_settings_seed_default_tax_and_terms(catalog: CatalogService, customers: CustomerService) -> None:
    settings = EstimateSettings(default_tax_pct=Decimal("18"), default_terms="Net 15", validity_days=15)
    wizard = EstimateWizard(catalog, customers, settings)
    h = wizard.header
    assert h.tax_percentage == 18
    assert h.terms == "Net 15"
    assert h.expiry_date - h.issue_date == timedelta(days=15)


def test_load_then_commit_keeps_identity(wizard: EstimateWizard, estimates: EstimateService) -> None:
    _to_finalize(wizard)
    original = estimates.save(wizard.commit(estimates))

    wizard.load(original)
    assert wizard.party_ref == "C1"
    assert [it.id for it in wizard.items()] == [ln.id for ln in original.items]
    line_id = wizard.items()[0].id
    wizard.update_quantity(line_id, 4)
    assert wizard.advance()
    assert wizard.advance()
    edited = wizard.commit(estimates)

    assert edited.id == original.id
    assert edited.number == original.number
    assert edited.subtotal == 2000
    assert wizard.editing is None


@pytest.mark.parametrize("attr", ["step", "party_ref", "editing", "header"])
def test_state_reads_wait_for_the_session_lock(wizard: EstimateWizard, attr: str) -> None:
    held, release = threading.Event(), threading.Event()
    seen = []

    def holder() -> None:
        with wizard._lock:
            held.set()
            release.wait(5)

    t_hold = threading.Thread(target=holder)
    t_hold.start()
    held.wait(5)
    t_read = threading.Thread(target=lambda: seen.append(getattr(wizard, attr)))
    t_read.start()
    t_read.join(0.2)
    assert t_read.is_alive()
    release.set()
    t_read.join(5)
    t_hold.join(5)
    assert len(seen) == 1
