from datetime import date
from decimal import Decimal

import pytest

from pocket_ledger.db.core import RecurringFrequency
from pocket_ledger.crud import crud_recurring, crud_transaction
from pocket_ledger.models.recurring import RecurringTransactionCreate

from conftest import TODAY


def template(account_id, next_date=TODAY, frequency=RecurringFrequency.MONTHLY, **kwargs):
    fields = dict(
        account_id=account_id, amount=Decimal("-1200.00"), payee="Landlord", category="Rent/Mortgage",
        frequency=frequency, next_date=next_date,
    )
    fields.update(kwargs)
    return RecurringTransactionCreate(**fields)


class TestCalculateNextDate:

    @pytest.mark.parametrize("frequency, start, expected", [
        (RecurringFrequency.WEEKLY, date(2024, 6, 15), date(2024, 6, 22)),
        (RecurringFrequency.BI_WEEKLY, date(2024, 6, 15), date(2024, 6, 29)),
        (RecurringFrequency.MONTHLY, date(2024, 6, 15), date(2024, 7, 15)),
        (RecurringFrequency.MONTHLY, date(2024, 1, 31), date(2024, 2, 29)),
        (RecurringFrequency.QUARTERLY, date(2024, 11, 30), date(2025, 2, 28)),
        (RecurringFrequency.YEARLY, date(2024, 2, 29), date(2025, 2, 28)),
    ])
    def test_advances_one_period(self, frequency, start, expected):
        assert crud_recurring.calculate_next_date(start, frequency) == expected

    def test_accepts_string_frequency(self):
        assert crud_recurring.calculate_next_date(date(2024, 6, 15), "bi-weekly") == date(2024, 6, 29)

    def test_unknown_frequency_falls_back_to_monthly(self):
        assert crud_recurring.calculate_next_date(date(2024, 6, 15), "fortnightly") == date(2024, 7, 15)


class TestProcessRecurring:

    def test_due_template_creates_one_transaction(self, db, user, checking):
        rec = crud_recurring.create_db_recurring(db, user.db_id, template(checking.id))

        created, deactivated = crud_recurring.process_recurring_transactions(db, user.db_id, TODAY)

        assert deactivated == []
        assert len(created) == 1
        tx = created[0]
        assert tx.transaction_date == TODAY
        assert tx.amount == Decimal("-1200.00")
        assert tx.recurring_transaction_id == rec.id
        assert tx.memo == "Auto-generated from recurring transaction"
        db.refresh(rec)
        db.refresh(checking)
        assert rec.next_date == date(2024, 7, 15)
        assert rec.last_created_date == TODAY
        assert checking.balance == Decimal("-700.00")

    def test_second_run_same_day_creates_nothing(self, db, user, checking):
        crud_recurring.create_db_recurring(db, user.db_id, template(checking.id))

        crud_recurring.process_recurring_transactions(db, user.db_id, TODAY)
        created, _ = crud_recurring.process_recurring_transactions(db, user.db_id, TODAY)

        assert created == []
        assert len(crud_transaction.read_db_transactions(db, user.db_id)) == 1

    def test_missed_periods_are_not_caught_up_in_one_pass(self, db, user, checking):
        rec = crud_recurring.create_db_recurring(db, user.db_id, template(checking.id, next_date=date(2024, 4, 15)))

        created, _ = crud_recurring.process_recurring_transactions(db, user.db_id, TODAY)

        db.refresh(rec)
        assert [t.transaction_date for t in created] == [date(2024, 4, 15)]
        assert rec.next_date == date(2024, 5, 15)

    def test_future_template_waits(self, db, user, checking):
        crud_recurring.create_db_recurring(db, user.db_id, template(checking.id, next_date=date(2024, 6, 16)))

        created, _ = crud_recurring.process_recurring_transactions(db, user.db_id, TODAY)

        assert created == []

    def test_expired_template_is_deactivated(self, db, user, checking):
        rec = crud_recurring.create_db_recurring(db, user.db_id, template(
            checking.id, next_date=date(2024, 6, 1), end_date=date(2024, 6, 10)
        ))

        created, deactivated = crud_recurring.process_recurring_transactions(db, user.db_id, TODAY)

        db.refresh(rec)
        assert created == []
        assert deactivated == [rec.id]
        assert rec.is_active is False

    def test_memo_is_tagged(self, db, user, checking):
        crud_recurring.create_db_recurring(db, user.db_id, template(checking.id, memo="June rent"))

        created, _ = crud_recurring.process_recurring_transactions(db, user.db_id, TODAY)

        assert created[0].memo == "June rent (Auto-generated)"

    def test_inactive_template_skipped(self, db, user, checking):
        rec = crud_recurring.create_db_recurring(db, user.db_id, template(checking.id))
        crud_recurring.toggle_recurring_active(db, rec.id, user.db_id)

        created, _ = crud_recurring.process_recurring_transactions(db, user.db_id, TODAY)

        assert created == []


class TestDeleteRecurring:

    def test_generated_transactions_survive(self, db, user, checking):
        rec = crud_recurring.create_db_recurring(db, user.db_id, template(checking.id))
        created, _ = crud_recurring.process_recurring_transactions(db, user.db_id, TODAY)
        tx_id = created[0].id

        crud_recurring.delete_db_recurring(db, rec.id, user.db_id)

        survivor = crud_transaction.read_db_transaction(db, tx_id, user.db_id)
        assert survivor is not None
        assert survivor.recurring_transaction_id is None
