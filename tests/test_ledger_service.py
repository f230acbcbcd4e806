"""Mini README: End-to-end tests for the ledger service on the demo tender.

Structure:
    * person and vendor ledgers built from the in-memory demo data.
    * promotion of implied charges, single and batched, including partial
      batch failures reported by the storage backend.
    * bookkeeping actions and their validation.
    * settings-driven construction.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence

import pytest

from tenderbooks.configuration import TenderbooksSettings
from tenderbooks.finance import (
    InvalidAmount,
    MfsTariff,
    PartialBatchFailure,
    PersistenceFailure,
    PersonScope,
    UserScope,
)
from tenderbooks.finance.service import LedgerService
from tenderbooks.storage import DEMO_TENDER_ID, InMemoryLedgerRepository

RAHIM = UserScope("usr_rahim")
KARIM = PersonScope("per_karim")


class FlakyRepository(InMemoryLedgerRepository):
    """Stores only the first row of any multi-row charge batch."""

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[dict]:
        if table != "activity_expenses" or len(rows) < 2:
            return super().insert_rows(table, rows)
        stored = super().insert_rows(table, rows[:1])
        raise PartialBatchFailure(
            "insert_rows",
            saved=stored,
            failed_positions=list(range(1, len(rows))),
            detail="connection reset",
        )


class BrokenRepository(InMemoryLedgerRepository):
    """Fails every read or write of one table."""

    def __init__(self, table: str) -> None:
        super().__init__()
        self.broken_table = table

    def select_rows(self, table: str, *, tender_id: Optional[str] = None) -> List[dict]:
        if table == self.broken_table:
            raise PersistenceFailure("select_rows", f"{table} unavailable")
        return super().select_rows(table, tender_id=tender_id)

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[dict]:
        if table == self.broken_table:
            raise PersistenceFailure("insert_rows", f"{table} unavailable")
        return super().insert_rows(table, rows)


@pytest.fixture()
def service() -> LedgerService:
    return LedgerService(InMemoryLedgerRepository())


def test_person_ledger_for_demo_engineer(service: LedgerService) -> None:
    view = service.load_person_ledger(DEMO_TENDER_ID, RAHIM)

    assert view.identity.name == "Rahim Uddin"
    assert [charge.record_id for charge in view.implied_charges] == ["implied-adv_0003"]
    assert view.implied_charges[0].amount == Decimal("102.50")
    assert [line.transaction_id for line in view.ledger.transactions] == [
        "exp_0003",
        "implied-adv_0003",
        "adv_0003",
        "exp_0001",
        "adv_0001",
    ]
    assert [line.running_balance_minor for line in view.ledger.transactions] == [
        1430000,
        1850000,
        1850000,
        1350000,
        2000000,
    ]
    stats = view.ledger.stats
    assert stats.balance == Decimal("14300.00")
    assert stats.actual_cost == Decimal("25102.50")
    assert stats.implied_charge_count == 1


def test_recorded_legacy_charge_is_matched_by_reference(service: LedgerService) -> None:
    view = service.load_person_ledger(DEMO_TENDER_ID, KARIM)

    assert view.implied_charges == []
    assert view.ledger.stats.mfs_charge_count == 1
    assert view.ledger.stats.balance == Decimal("250.00")
    assert view.ledger.stats.actual_cost == Decimal("3065.50")


def test_vendor_ledger_excludes_folded_fees(service: LedgerService) -> None:
    view = service.load_vendor_ledger(DEMO_TENDER_ID, "ven_meghna")

    assert view.ledger.stats.balance == Decimal("35000.00")
    assert [charge.record_id for charge in view.implied_charges] == ["implied-vpay_0002"]
    assert view.implied_charges[0].description == "[MFS CHARGE] Payment to Meghna Bricks ৳25000.00"
    assert "vpay_0001" not in [line.transaction_id for line in view.ledger.transactions]


def test_payment_with_fee_included_gets_no_implied_charge() -> None:
    repository = InMemoryLedgerRepository()
    repository.insert_rows(
        "vendor_payments",
        [
            {
                "tender_id": DEMO_TENDER_ID,
                "vendor_id": "ven_meghna",
                "payment_date": "2024-05-14",
                "amount": "5102.50",
                "payment_method": "mfs",
                "reference": None,
                "notes": "MFS payment with charge included",
            }
        ],
    )

    view = LedgerService(repository).load_vendor_ledger(DEMO_TENDER_ID, "ven_meghna")

    assert [charge.source_record_id for charge in view.implied_charges] == ["vpay_0002"]


def test_tender_balances_roll_up_every_scope(service: LedgerService) -> None:
    balances = service.tender_balances(DEMO_TENDER_ID)

    assert [(row.name, row.as_dict()["balance"], row.status.value) for row in balances] == [
        ("Karim Mia", "250.00", "outstanding"),
        ("Rahim Uddin", "14300.00", "outstanding"),
    ]


def test_promoting_a_charge_makes_it_recorded(service: LedgerService) -> None:
    view = service.load_person_ledger(DEMO_TENDER_ID, RAHIM)
    charge = view.implied_charges[0]

    record = service.promote_implied_charge(charge)
    reloaded = service.load_person_ledger(DEMO_TENDER_ID, RAHIM)

    assert record.record_id == "act_0003"
    assert record.amount == Decimal("102.50")
    assert charge.is_implied is False
    assert reloaded.implied_charges == []
    assert reloaded.ledger.stats.total_mfs_charges == Decimal("102.50")
    assert reloaded.ledger.stats.balance == view.ledger.stats.balance
    with pytest.raises(ValueError):
        service.promote_implied_charge(charge)


def test_promote_all_reports_partial_failure() -> None:
    service = LedgerService(FlakyRepository())
    service.give_advance(DEMO_TENDER_ID, RAHIM, advance_date="2024-05-13", amount="1000", payment_method="mfs")
    charges = service.load_person_ledger(DEMO_TENDER_ID, RAHIM).implied_charges
    assert [charge.record_id for charge in charges] == ["implied-adv_0003", "implied-adv_0004"]

    result = service.promote_all_implied(charges)

    assert not result.all_succeeded
    assert [record.amount for record in result.succeeded] == [Decimal("102.50")]
    assert [charge.record_id for charge in result.failed] == ["implied-adv_0004"]
    assert [charge.is_implied for charge in charges] == [False, True]
    remaining = service.load_person_ledger(DEMO_TENDER_ID, RAHIM).implied_charges
    assert [charge.record_id for charge in remaining] == ["implied-adv_0004"]


def test_promote_all_skips_already_recorded(service: LedgerService) -> None:
    charges = service.load_person_ledger(DEMO_TENDER_ID, RAHIM).implied_charges

    first = service.promote_all_implied(charges)
    second = service.promote_all_implied(charges)

    assert first.as_dict() == {"succeeded": ["act_0003"], "failed": []}
    assert second.as_dict() == {"succeeded": [], "failed": []}


def test_total_write_failure_propagates() -> None:
    service = LedgerService(BrokenRepository("activity_expenses"))
    charges = LedgerService(InMemoryLedgerRepository()).load_person_ledger(DEMO_TENDER_ID, RAHIM).implied_charges

    with pytest.raises(PersistenceFailure):
        service.promote_all_implied(charges)
    assert all(charge.is_implied for charge in charges)


def test_fetch_failure_propagates_without_partial_ledger() -> None:
    service = LedgerService(BrokenRepository("person_expenses"))

    with pytest.raises(PersistenceFailure) as excinfo:
        service.load_person_ledger(DEMO_TENDER_ID, RAHIM)
    assert excinfo.value.operation == "select_rows"


def test_give_advance_validates_and_stores(service: LedgerService) -> None:
    record = service.give_advance(
        DEMO_TENDER_ID,
        KARIM,
        advance_date="2024-05-20",
        amount="1500.555",
        payment_method="Bank",
        payment_reference="  ",
        purpose="Rod binding",
    )

    assert record.record_id == "adv_0004"
    assert record.amount == Decimal("1500.56")
    assert record.payment_reference is None
    assert record.scope == KARIM
    with pytest.raises(InvalidAmount):
        service.give_advance(DEMO_TENDER_ID, KARIM, advance_date="2024-05-20", amount="0")
    with pytest.raises(ValueError):
        service.give_advance(DEMO_TENDER_ID, KARIM, advance_date="2024-05-20", amount="10", payment_method="cheque")


def test_bulk_expenses_are_all_or_nothing(service: LedgerService) -> None:
    before = len(service.repository.list_expenses(DEMO_TENDER_ID))

    with pytest.raises(ValueError):
        service.record_expenses_bulk(
            DEMO_TENDER_ID,
            RAHIM,
            [
                {"expense_date": "2024-05-20", "amount": "100", "description": "Nails"},
                {"expense_date": "2024-05-20", "amount": "50", "description": "  "},
            ],
        )
    assert len(service.repository.list_expenses(DEMO_TENDER_ID)) == before

    records = service.record_expenses_bulk(
        DEMO_TENDER_ID,
        RAHIM,
        [
            {"expense_date": "2024-05-20", "amount": "100", "description": "Nails"},
            {"date": "2024-05-21", "amount": "50", "description": "Binding wire"},
        ],
    )
    assert [record.record_id for record in records] == ["exp_0004", "exp_0005"]


def test_record_expense_rejects_negative_amount(service: LedgerService) -> None:
    with pytest.raises(InvalidAmount):
        service.record_expense(DEMO_TENDER_ID, RAHIM, expense_date="2024-05-20", amount="-5", description="Refund")


def test_service_from_settings_applies_tariff(tmp_path) -> None:
    settings = TenderbooksSettings(
        storage_backend="json",
        data_directory=tmp_path,
        mfs_fixed_fee=Decimal("5"),
        mfs_match_tolerance=Decimal("2"),
    )

    service = LedgerService.from_settings(settings)

    assert service.repository.backend_name == "json"
    assert service.tariff == MfsTariff(percentage_rate=Decimal("0.0185"), fixed_fee=Decimal("5"))
    assert service.tolerance_minor == 200
    assert service.charge_breakdown("1000", "mfs").charge == Decimal("23.50")


def test_settings_read_prefixed_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TENDERBOOKS_MFS_PERCENTAGE_RATE", "0.02")
    monkeypatch.setenv("TENDERBOOKS_DATA_DIRECTORY", str(tmp_path / "books"))

    settings = TenderbooksSettings()

    assert settings.mfs_percentage_rate == Decimal("0.02")
    assert settings.data_directory == (tmp_path / "books").resolve()
    assert (tmp_path / "books").is_dir()
    assert not settings.is_production


def test_earlier_view_is_stale_until_reloaded(service: LedgerService) -> None:
    """Promotion updates the charge itself; ledger lines change on the next load."""

    view = service.load_person_ledger(DEMO_TENDER_ID, RAHIM)
    record = service.promote_implied_charge(view.implied_charges[0])

    assert view.ledger.stats.implied_charge_count == 1
    reloaded = service.load_person_ledger(DEMO_TENDER_ID, RAHIM)
    lines = {line.transaction_id: line for line in reloaded.ledger.transactions}
    assert reloaded.ledger.stats.implied_charge_count == 0
    assert lines[record.record_id].is_implied is False
    assert "implied-adv_0003" not in lines
