from datetime import date
from decimal import Decimal

import pytest

from pocket_ledger.db.core import BalanceMismatchError, NotFoundError, ReconciliationHistoryDB
from pocket_ledger.crud import crud_reconciliation, crud_transaction
from pocket_ledger.models.reconciliation import ReconciliationCreate
from pocket_ledger.models.transaction import TransactionCreate


@pytest.fixture
def account(make_account):
    return make_account("Statement Checking", opening_balance="0.00")


@pytest.fixture
def paycheck(db, user, account):
    return crud_transaction.create_db_transaction(db, user.db_id, TransactionCreate(
        account_id=account.id, transaction_date=date(2024, 5, 1), amount=Decimal("1000.00"), payee="Employer",
    ))


@pytest.fixture
def utility_bill(db, user, account):
    return crud_transaction.create_db_transaction(db, user.db_id, TransactionCreate(
        account_id=account.id, transaction_date=date(2024, 5, 10), amount=Decimal("-250.00"), payee="Power Co",
    ))


def statement(account_id, ids, ending, beginning="0.00", on=date(2024, 5, 31)):
    return ReconciliationCreate(
        account_id=account_id,
        transaction_ids=ids,
        statement_date=on,
        statement_beginning_balance=Decimal(beginning),
        statement_ending_balance=Decimal(ending),
    )


class TestReconcileTransactions:

    def test_reconciled_balance_arithmetic(self, utility_bill):
        assert crud_reconciliation.calculate_reconciled_balance([utility_bill], Decimal("1000.00")) == Decimal("750.00")
        assert crud_reconciliation.calculate_reconciled_balance([], Decimal("1000.00")) == Decimal("1000.00")

    def test_balanced_statement(self, db, user, account, paycheck, utility_bill):
        result = crud_reconciliation.reconcile_transactions(
            db, user.db_id, statement(account.id, [paycheck.id, utility_bill.id], "750.00")
        )

        assert result.reconciled_balance == Decimal("750.00")
        assert result.difference == Decimal("0.00")
        assert result.is_balanced is True
        assert result.history.transaction_count == 2
        db.refresh(paycheck)
        db.refresh(utility_bill)
        assert paycheck.reconciled and utility_bill.reconciled

    def test_unbalanced_statement_is_still_recorded(self, db, user, account, paycheck, utility_bill):
        result = crud_reconciliation.reconcile_transactions(
            db, user.db_id, statement(account.id, [paycheck.id, utility_bill.id], "760.00")
        )

        assert result.difference == Decimal("-10.00")
        assert result.is_balanced is False
        history = crud_reconciliation.read_db_reconciliation_history(db, user.db_id, account.id)
        assert len(history) == 1
        assert history[0].difference == Decimal("-10.00")

    def test_already_reconciled_rejected(self, db, user, account, paycheck):
        crud_reconciliation.reconcile_transactions(db, user.db_id, statement(account.id, [paycheck.id], "1000.00"))

        with pytest.raises(ValueError, match="already reconciled"):
            crud_reconciliation.reconcile_transactions(db, user.db_id, statement(account.id, [paycheck.id], "1000.00"))

    def test_transaction_after_statement_date_rejected(self, db, user, account, utility_bill):
        with pytest.raises(ValueError, match="after the statement date"):
            crud_reconciliation.reconcile_transactions(
                db, user.db_id, statement(account.id, [utility_bill.id], "-250.00", on=date(2024, 5, 5))
            )

    def test_transaction_from_other_account_rejected(self, db, user, account, checking):
        elsewhere = crud_transaction.create_db_transaction(db, user.db_id, TransactionCreate(
            account_id=checking.id, transaction_date=date(2024, 5, 2), amount=Decimal("-1.00"), payee="X",
        ))
        with pytest.raises(ValueError, match="not found on account"):
            crud_reconciliation.reconcile_transactions(db, user.db_id, statement(account.id, [elsewhere.id], "-1.00"))

    def test_unreconciled_listing_is_oldest_first(self, db, user, account, utility_bill, paycheck):
        pending = crud_reconciliation.get_unreconciled_transactions(db, user.db_id, account.id)
        assert [t.payee for t in pending] == ["Employer", "Power Co"]

        through_may_5 = crud_reconciliation.get_unreconciled_transactions(db, user.db_id, account.id, date(2024, 5, 5))
        assert [t.payee for t in through_may_5] == ["Employer"]

    def test_unknown_account(self, db, user):
        with pytest.raises(NotFoundError):
            crud_reconciliation.get_unreconciled_transactions(db, user.db_id, 777)


class TestUndoReconciliation:

    def test_undo_restores_exact_session(self, db, user, account, paycheck, utility_bill):
        first = crud_reconciliation.reconcile_transactions(
            db, user.db_id, statement(account.id, [paycheck.id], "1000.00", on=date(2024, 5, 5))
        )
        second = crud_reconciliation.reconcile_transactions(
            db, user.db_id, statement(account.id, [utility_bill.id], "750.00", beginning="1000.00")
        )

        count = crud_reconciliation.undo_reconciliation(db, user.db_id, second.history.id)

        db.refresh(paycheck)
        db.refresh(utility_bill)
        assert count == 1
        assert paycheck.reconciled is True
        assert utility_bill.reconciled is False
        assert crud_reconciliation.read_db_reconciliation(db, second.history.id, user.db_id) is None
        assert crud_reconciliation.read_db_reconciliation(db, first.history.id, user.db_id) is not None

    def test_undo_without_links_falls_back_to_date_range(self, db, user, account, paycheck, utility_bill):
        crud_transaction.toggle_reconciled(db, paycheck.id, user.db_id)
        crud_transaction.toggle_reconciled(db, utility_bill.id, user.db_id)
        legacy = ReconciliationHistoryDB(
            user_id=user.db_id, account_id=account.id, statement_date=date(2024, 5, 5),
            statement_beginning_balance=Decimal("0"), statement_ending_balance=Decimal("1000"),
            reconciled_balance=Decimal("1000"), difference=Decimal("0"), transaction_count=1,
        )
        db.add(legacy)
        db.commit()

        count = crud_reconciliation.undo_reconciliation(db, user.db_id, legacy.id)

        db.refresh(paycheck)
        db.refresh(utility_bill)
        assert count == 1
        assert paycheck.reconciled is False
        assert utility_bill.reconciled is True

    def test_undo_unknown_session(self, db, user):
        with pytest.raises(NotFoundError):
            crud_reconciliation.undo_reconciliation(db, user.db_id, 31337)


class TestReconcileAccount:

    def test_matching_balance_marks_everything_through_date(self, db, user, account, paycheck, utility_bill):
        result = crud_reconciliation.reconcile_account(db, user.db_id, account.id, date(2024, 5, 31), Decimal("750.00"))

        assert result.reconciled_count == 2
        assert result.balance == Decimal("750.00")
        assert crud_reconciliation.get_unreconciled_transactions(db, user.db_id, account.id) == []

    def test_mismatch_changes_nothing(self, db, user, account, paycheck, utility_bill):
        with pytest.raises(BalanceMismatchError) as exc_info:
            crud_reconciliation.reconcile_account(db, user.db_id, account.id, date(2024, 5, 31), Decimal("700.00"))

        assert exc_info.value.difference == Decimal("50.00")
        assert "Expected 700.00, calculated 750.00" in str(exc_info.value)
        assert len(crud_reconciliation.get_unreconciled_transactions(db, user.db_id, account.id)) == 2
