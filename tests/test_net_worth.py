from datetime import date
from decimal import Decimal

import pytest

from pocket_ledger.db.core import AccountType, NotFoundError
from pocket_ledger.crud import crud_account, crud_net_worth
from pocket_ledger.models.net_worth import NetWorthSnapshotCreate, NetWorthSnapshotUpdate

from conftest import TODAY


@pytest.fixture
def credit_card(make_account):
    return make_account("Rewards Card", AccountType.CREDIT, "-300.00")


def manual(db, user, on, assets, liabilities="0.00"):
    return crud_net_worth.create_db_snapshot(db, user.db_id, NetWorthSnapshotCreate(
        snapshot_date=on, total_assets=Decimal(assets), total_liabilities=Decimal(liabilities),
    ))


class TestCurrentNetWorth:

    def test_credit_balances_are_liabilities(self, db, user, checking, savings, credit_card):
        result = crud_net_worth.calculate_current_net_worth(db, user.db_id)

        assert result.total_assets == Decimal("1500.00")
        assert result.total_liabilities == Decimal("300.00")
        assert result.net_worth == Decimal("1200.00")

    def test_inactive_accounts_ignored(self, db, user, checking, savings):
        crud_account.delete_db_account(db, savings.id, user.db_id)

        assert crud_net_worth.calculate_current_net_worth(db, user.db_id).net_worth == Decimal("500.00")

    def test_no_accounts(self, db, user):
        assert crud_net_worth.calculate_current_net_worth(db, user.db_id).net_worth == Decimal("0.00")


class TestSnapshots:

    def test_take_snapshot_records_current_figures(self, db, user, checking, credit_card):
        snapshot = crud_net_worth.take_snapshot(db, user.db_id, TODAY)

        assert snapshot.snapshot_date == TODAY
        assert snapshot.total_assets == Decimal("500.00")
        assert snapshot.total_liabilities == Decimal("300.00")
        assert snapshot.net_worth == Decimal("200.00")

    def test_several_snapshots_per_day_allowed(self, db, user, checking):
        crud_net_worth.take_snapshot(db, user.db_id, TODAY)
        crud_net_worth.take_snapshot(db, user.db_id, TODAY)

        assert len(crud_net_worth.read_db_snapshots(db, user.db_id)) == 2

    def test_manual_snapshot_derives_net_worth(self, db, user):
        snapshot = manual(db, user, date(2024, 1, 31), "10000.00", "2500.00")
        assert snapshot.net_worth == Decimal("7500.00")

    def test_update_recomputes_net_worth(self, db, user):
        snapshot = manual(db, user, date(2024, 1, 31), "10000.00", "2500.00")

        updated = crud_net_worth.update_db_snapshot(
            db, snapshot.id, user.db_id, NetWorthSnapshotUpdate(total_liabilities=Decimal("500.00"))
        )

        assert updated.net_worth == Decimal("9500.00")

    def test_update_cannot_null_totals(self, db, user):
        snapshot = manual(db, user, date(2024, 1, 31), "10.00")
        with pytest.raises(ValueError, match="cannot be null"):
            crud_net_worth.update_db_snapshot(
                db, snapshot.id, user.db_id, NetWorthSnapshotUpdate(total_assets=None)
            )

    def test_delete_unknown_snapshot(self, db, user):
        with pytest.raises(NotFoundError):
            crud_net_worth.delete_db_snapshot(db, 42, user.db_id)

    def test_date_range_listing_is_oldest_first(self, db, user):
        manual(db, user, date(2024, 3, 31), "300.00")
        manual(db, user, date(2024, 1, 31), "100.00")
        manual(db, user, date(2024, 2, 29), "200.00")

        listed = crud_net_worth.read_db_snapshots(db, user.db_id, date_from=date(2024, 2, 1))

        assert [s.snapshot_date for s in listed] == [date(2024, 2, 29), date(2024, 3, 31)]


class TestHistory:

    def test_net_worth_for_date_uses_latest_earlier_snapshot(self, db, user):
        manual(db, user, date(2024, 1, 31), "100.00")
        manual(db, user, date(2024, 2, 29), "200.00")

        assert crud_net_worth.get_net_worth_for_date(db, user.db_id, date(2024, 2, 15)).net_worth == Decimal("100.00")
        assert crud_net_worth.get_net_worth_for_date(db, user.db_id, date(2024, 2, 29)).net_worth == Decimal("200.00")
        assert crud_net_worth.get_net_worth_for_date(db, user.db_id, date(2023, 12, 31)) is None

    def test_change_between_first_and_last(self, db, user):
        manual(db, user, date(2024, 1, 31), "1000.00")
        manual(db, user, date(2024, 2, 29), "900.00")
        manual(db, user, date(2024, 3, 31), "1250.00")

        change = crud_net_worth.calculate_net_worth_change(crud_net_worth.read_db_snapshots(db, user.db_id))

        assert change.amount == Decimal("250.00")
        assert change.percentage == 25.0

    def test_change_from_negative_start(self, db, user):
        manual(db, user, date(2024, 1, 31), "0.00", "400.00")
        manual(db, user, date(2024, 2, 29), "0.00", "200.00")

        change = crud_net_worth.calculate_net_worth_change(crud_net_worth.read_db_snapshots(db, user.db_id))

        assert change.amount == Decimal("200.00")
        assert change.percentage == 50.0

    def test_change_needs_two_snapshots(self, db, user):
        manual(db, user, date(2024, 1, 31), "1000.00")

        change = crud_net_worth.calculate_net_worth_change(crud_net_worth.read_db_snapshots(db, user.db_id))

        assert change.amount == Decimal("0.00")
        assert change.percentage == 0.0
