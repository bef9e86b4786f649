"""
Tests for the Usage Ledger
Running balance maintenance across record, update and delete
"""

import pytest
from decimal import Decimal
from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import Session

from stockledger.core.exceptions import (
    ExceedsStockError, InvalidAmountError, InvalidArgumentError, NotFoundError
)
from stockledger.models.stock import StockItem, UsageEvent
from stockledger.services.stock import UsageLedgerService, LifecycleService
from stockledger.services.stock.overuse_policy import OVERUSE_WARNING
from tests.conftest import OWNER_ID, OTHER_OWNER_ID, TestingSessionLocal

USED_AT = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def usage(item, amount, **extra):
    data = {"item_id": item.id, "amount": Decimal(str(amount)), "occurred_at": USED_AT}
    data.update(extra)
    return data


class TestRecordUsage:
    """Test suite for UsageLedgerService.record_usage"""

    def test_record_usage_decrements_balance(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)

        outcome = ledger.record_usage(OWNER_ID, usage(consumable_item, 300, project_name="Benchy"))

        assert outcome.warning is None
        assert outcome.item.remaining_quantity == Decimal("700")
        assert outcome.event.amount == Decimal("300")
        assert outcome.event.project_name == "Benchy"
        assert outcome.item.status == "unopened"

    def test_spool_walkthrough(self, db_session: Session, consumable_item):
        """Test 1000 -> 700 -> 0 (900 used, clamped) -> 900 -> 1000"""
        ledger = UsageLedgerService(db_session)

        first = ledger.record_usage(OWNER_ID, usage(consumable_item, 300))
        assert first.item.remaining_quantity == Decimal("700")

        second = ledger.record_usage(OWNER_ID, usage(consumable_item, 900))
        assert second.warning == OVERUSE_WARNING
        assert second.item.remaining_quantity == Decimal("0")
        assert second.item.status == "depleted"
        assert second.item.depleted_at is not None

        item = ledger.delete_usage(OWNER_ID, second.event.id)
        assert item.remaining_quantity == Decimal("900")

        item = ledger.delete_usage(OWNER_ID, first.event.id)
        assert item.remaining_quantity == Decimal("1000")
        # Deleting usage never changes lifecycle status
        assert item.status == "depleted"

    def test_exact_use_depletes_without_warning(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)

        outcome = ledger.record_usage(OWNER_ID, usage(consumable_item, 1000))

        assert outcome.warning is None
        assert outcome.item.remaining_quantity == Decimal("0")
        assert outcome.item.status == "depleted"

    def test_durable_overuse_rejected(self, db_session: Session, durable_item):
        """Test durable over-use fails and leaves no trace"""
        ledger = UsageLedgerService(db_session)

        with pytest.raises(ExceedsStockError):
            ledger.record_usage(OWNER_ID, usage(durable_item, 6))

        db_session.refresh(durable_item)
        assert durable_item.remaining_quantity == Decimal("5")
        assert db_session.query(UsageEvent).count() == 0

    def test_durable_never_auto_depletes(self, db_session: Session, durable_item):
        ledger = UsageLedgerService(db_session)

        outcome = ledger.record_usage(OWNER_ID, usage(durable_item, 5))

        assert outcome.item.remaining_quantity == Decimal("0")
        assert outcome.item.status == "available"

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", "NaN", None])
    def test_invalid_amount(self, db_session: Session, consumable_item, amount):
        ledger = UsageLedgerService(db_session)

        with pytest.raises(InvalidAmountError):
            ledger.record_usage(OWNER_ID, {
                "item_id": consumable_item.id, "amount": amount, "occurred_at": USED_AT
            })

        assert db_session.query(UsageEvent).count() == 0

    def test_missing_timestamp(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)

        with pytest.raises(InvalidArgumentError):
            ledger.record_usage(OWNER_ID, {"item_id": consumable_item.id, "amount": Decimal("1")})

    def test_iso_timestamp_accepted(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)

        outcome = ledger.record_usage(OWNER_ID, usage(consumable_item, 10, occurred_at="2026-06-01T08:15:00+02:00"))

        assert outcome.event.occurred_at.replace(tzinfo=timezone.utc) == datetime(2026, 6, 1, 6, 15, tzinfo=timezone.utc)

    def test_other_owner_item(self, db_session: Session, consumable_item):
        """Test recording against another owner's item reads as not found"""
        ledger = UsageLedgerService(db_session)

        with pytest.raises(NotFoundError):
            ledger.record_usage(OTHER_OWNER_ID, usage(consumable_item, 10))

        db_session.refresh(consumable_item)
        assert consumable_item.remaining_quantity == Decimal("1000")


class TestUpdateUsage:
    """Test suite for UsageLedgerService.update_usage"""

    def test_update_increase_applies_delta(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)
        recorded = ledger.record_usage(OWNER_ID, usage(consumable_item, 300))

        outcome = ledger.update_usage(OWNER_ID, recorded.event.id, {"amount": Decimal("450")})

        assert outcome.item.remaining_quantity == Decimal("550")
        assert outcome.event.amount == Decimal("450")
        assert outcome.warning is None

    def test_update_decrease_gives_back(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)
        recorded = ledger.record_usage(OWNER_ID, usage(consumable_item, 300))

        outcome = ledger.update_usage(OWNER_ID, recorded.event.id, {"amount": Decimal("100")})

        assert outcome.item.remaining_quantity == Decimal("900")

    def test_update_overuse_consumable_warns(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)
        ledger.record_usage(OWNER_ID, usage(consumable_item, 900))
        recorded = ledger.record_usage(OWNER_ID, usage(consumable_item, 50))

        outcome = ledger.update_usage(OWNER_ID, recorded.event.id, {"amount": Decimal("200")})

        assert outcome.warning == OVERUSE_WARNING
        assert outcome.item.remaining_quantity == Decimal("0")
        assert outcome.item.status == "depleted"

    def test_update_overuse_durable_rejected(self, db_session: Session, durable_item):
        """Test a rejected edit leaves both the event and the balance unchanged"""
        ledger = UsageLedgerService(db_session)
        recorded = ledger.record_usage(OWNER_ID, usage(durable_item, 2))

        with pytest.raises(ExceedsStockError):
            ledger.update_usage(OWNER_ID, recorded.event.id, {"amount": Decimal("9")})

        event = ledger.get_usage(OWNER_ID, recorded.event.id)
        assert event.amount == Decimal("2")
        assert event.item.remaining_quantity == Decimal("3")

    def test_update_metadata_only(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)
        recorded = ledger.record_usage(OWNER_ID, usage(consumable_item, 300))

        outcome = ledger.update_usage(OWNER_ID, recorded.event.id, {"note": "failed print", "project_name": None})

        assert outcome.event.note == "failed print"
        assert outcome.event.project_name is None
        assert outcome.item.remaining_quantity == Decimal("700")

    def test_update_rejects_foreign_fields(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)
        recorded = ledger.record_usage(OWNER_ID, usage(consumable_item, 300))

        with pytest.raises(InvalidArgumentError):
            ledger.update_usage(OWNER_ID, recorded.event.id, {"item_id": "other"})

    def test_update_other_owner(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)
        recorded = ledger.record_usage(OWNER_ID, usage(consumable_item, 300))

        with pytest.raises(NotFoundError):
            ledger.update_usage(OTHER_OWNER_ID, recorded.event.id, {"amount": Decimal("1")})


class TestDeleteUsage:
    """Test suite for UsageLedgerService.delete_usage"""

    def test_delete_never_exceeds_total(self, db_session: Session, consumable_item):
        """Test giving back a clamped over-use stops at the total"""
        ledger = UsageLedgerService(db_session)
        recorded = ledger.record_usage(OWNER_ID, usage(consumable_item, 1500))
        assert recorded.item.remaining_quantity == Decimal("0")

        item = ledger.delete_usage(OWNER_ID, recorded.event.id)

        assert item.remaining_quantity == Decimal("1000")

    def test_delete_missing_event(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)

        with pytest.raises(NotFoundError):
            ledger.delete_usage(OWNER_ID, "missing")

    def test_delete_other_owner(self, db_session: Session, consumable_item):
        ledger = UsageLedgerService(db_session)
        recorded = ledger.record_usage(OWNER_ID, usage(consumable_item, 100))

        with pytest.raises(NotFoundError):
            ledger.delete_usage(OTHER_OWNER_ID, recorded.event.id)

        assert ledger.get_usage(OWNER_ID, recorded.event.id) is not None


class TestConcurrentEdits:
    """Writers in separate sessions must not lose each other's changes"""

    def test_update_starts_from_committed_amount(self, db_session: Session, consumable_item):
        """Test an edit applies its delta to the amount another session committed"""
        ledger = UsageLedgerService(db_session)
        recorded = ledger.record_usage(OWNER_ID, usage(consumable_item, 100))

        other = TestingSessionLocal()
        try:
            held = other.get(UsageEvent, recorded.event.id)
            assert held.amount == Decimal("100")

            ledger.update_usage(OWNER_ID, recorded.event.id, {"amount": Decimal("200")})
            UsageLedgerService(other).update_usage(OWNER_ID, recorded.event.id, {"amount": Decimal("300")})
        finally:
            other.close()

        db_session.expire_all()
        item = db_session.get(StockItem, consumable_item.id)
        assert item.remaining_quantity == Decimal("700")
        assert item.remaining_quantity == item.total_quantity - ledger.total_usage(OWNER_ID, item.id)

    def test_delete_after_concurrent_delete(self, db_session: Session, consumable_item):
        """Test deleting an event another session already removed is a not-found"""
        ledger = UsageLedgerService(db_session)
        recorded = ledger.record_usage(OWNER_ID, usage(consumable_item, 100))

        other = TestingSessionLocal()
        try:
            other.get(UsageEvent, recorded.event.id)
            ledger.delete_usage(OWNER_ID, recorded.event.id)

            with pytest.raises(NotFoundError):
                UsageLedgerService(other).delete_usage(OWNER_ID, recorded.event.id)
        finally:
            other.close()

        db_session.expire_all()
        assert db_session.get(StockItem, consumable_item.id).remaining_quantity == Decimal("1000")


class TestBalanceConservation:
    """Remaining quantity equals total minus live usage when nothing was clamped"""

    @pytest.mark.parametrize("operations", [
        [("record", 100), ("record", 250), ("record", 50)],
        [("record", 100), ("update", 0, 300), ("record", 25), ("delete", 1)],
        [("record", 400), ("record", 400), ("delete", 0), ("update", 0, 10), ("record", 590)],
        [("record", 0.5), ("record", 1.25), ("update", 1, 0.75), ("delete", 0)],
    ])
    def test_balance_matches_live_events(self, db_session: Session, consumable_item, operations):
        ledger = UsageLedgerService(db_session)
        events = []

        for operation in operations:
            if operation[0] == "record":
                events.append(ledger.record_usage(OWNER_ID, usage(consumable_item, operation[1])).event.id)
            elif operation[0] == "update":
                ledger.update_usage(OWNER_ID, events[operation[1]], {"amount": Decimal(str(operation[2]))})
            else:
                ledger.delete_usage(OWNER_ID, events.pop(operation[1]))

        db_session.refresh(consumable_item)
        live_total = ledger.total_usage(OWNER_ID, consumable_item.id)
        assert consumable_item.remaining_quantity == consumable_item.total_quantity - live_total


class TestUsageQueries:
    """Test suite for usage listing"""

    def test_list_usage_newest_first(self, db_session: Session, make_item):
        ledger = UsageLedgerService(db_session)
        spool = make_item()
        other = make_item(name="PETG")
        for days, item in ((0, spool), (2, spool), (1, other)):
            ledger.record_usage(OWNER_ID, usage(item, 10, occurred_at=USED_AT + timedelta(days=days)))

        all_events = ledger.list_usage(OWNER_ID)
        spool_events = ledger.list_usage(OWNER_ID, item_id=spool.id)
        windowed = ledger.list_usage(OWNER_ID, start=USED_AT + timedelta(hours=1), end=USED_AT + timedelta(days=1, hours=1))

        assert len(all_events) == 3
        assert [event.occurred_at for event in all_events] == sorted(
            (event.occurred_at for event in all_events), reverse=True
        )
        assert len(spool_events) == 2
        assert [event.item_id for event in windowed] == [other.id]
        assert ledger.list_usage(OTHER_OWNER_ID) == []

    def test_stop_use_session_listed(self, db_session: Session, durable_item):
        """Test a finished use session shows up as a zero-amount event"""
        lifecycle = LifecycleService(db_session)
        lifecycle.transition(OWNER_ID, durable_item.id, "start_use")
        lifecycle.transition(OWNER_ID, durable_item.id, "stop_use")

        events = UsageLedgerService(db_session).list_usage(OWNER_ID, item_id=durable_item.id)

        assert len(events) == 1
        assert events[0].amount == Decimal("0")
        assert UsageLedgerService(db_session).total_usage(OWNER_ID, durable_item.id) == Decimal("0")
