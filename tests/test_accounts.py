from datetime import date
from decimal import Decimal

import pytest

from pocket_ledger.db.core import AccountType, NotFoundError
from pocket_ledger.crud import crud_account, crud_transaction, crud_user
from pocket_ledger.models.account import AccountCreate, AccountUpdate
from pocket_ledger.models.transaction import TransactionCreate
from pocket_ledger.models.user import UserCreate


class TestAccountCrud:

    def test_new_account_balance_starts_at_opening_balance(self, checking):
        assert checking.balance == Decimal("500.00")
        assert checking.opening_balance == Decimal("500.00")
        assert checking.is_active is True

    def test_duplicate_name_rejected(self, db, user, checking):
        with pytest.raises(ValueError, match="already exists"):
            crud_account.create_db_account(db, user.db_id, AccountCreate(
                name="Checking", account_type=AccountType.CHECKING,
            ))

    def test_unknown_user_rejected(self, db):
        with pytest.raises(NotFoundError):
            crud_account.create_db_account(db, 999, AccountCreate(name="X", account_type=AccountType.CASH))

    def test_update_leaves_balance_alone(self, db, user, checking):
        updated = crud_account.update_db_account(
            db, checking.id, user.db_id, AccountUpdate(name="Everyday", institution_name="First Bank")
        )
        assert updated.name == "Everyday"
        assert updated.institution_name == "First Bank"
        assert updated.balance == Decimal("500.00")

    def test_soft_delete_hides_account_from_default_listing(self, db, user, checking, savings):
        crud_account.delete_db_account(db, checking.id, user.db_id)

        active = crud_account.read_db_accounts(db, user.db_id)
        everything = crud_account.read_db_accounts(db, user.db_id, include_inactive=True)
        assert [a.name for a in active] == ["Savings"]
        assert {a.name for a in everything} == {"Checking", "Savings"}

    def test_hard_delete_blocked_by_transactions(self, db, user, checking):
        crud_transaction.create_db_transaction(db, user.db_id, TransactionCreate(
            account_id=checking.id, transaction_date=date(2024, 6, 1), amount=Decimal("-5"), payee="Cafe",
        ))
        with pytest.raises(ValueError, match="existing transactions"):
            crud_account.delete_db_account(db, checking.id, user.db_id, hard=True)

    def test_hard_delete_removes_unused_account(self, db, user, checking):
        assert crud_account.delete_db_account(db, checking.id, user.db_id, hard=True)
        assert crud_account.read_db_account(db, checking.id) is None

    def test_other_users_cannot_read_account(self, db, checking):
        other = crud_user.create_db_user(db, UserCreate(
            email="sam@example.com", username="sam", password="another-pass",
        ))
        assert crud_account.read_db_account(db, checking.id, other.db_id) is None
        assert crud_account.read_db_accounts(db, other.db_id) == []


class TestBalanceSummary:

    def test_credit_balances_count_as_liabilities(self, db, user, make_account):
        make_account("Checking", AccountType.CHECKING, "1200.00")
        make_account("Brokerage", AccountType.INVESTMENT, "3000.00")
        make_account("Card", AccountType.CREDIT, "-450.00")

        summary = crud_account.get_account_balance_summary(db, user.db_id)

        assert summary.total_assets == Decimal("4200.00")
        assert summary.total_liabilities == Decimal("450.00")
        assert summary.net_worth == Decimal("3750.00")
        assert summary.accounts_by_type["credit"] == Decimal("-450.00")

    def test_recalculate_repairs_drifted_balance(self, db, user, checking):
        crud_transaction.create_db_transaction(db, user.db_id, TransactionCreate(
            account_id=checking.id, transaction_date=date(2024, 6, 1), amount=Decimal("-75.25"), payee="Grocer",
        ))
        checking.balance = Decimal("1.00")
        db.commit()

        repaired = crud_account.recalculate_account_balance(db, checking.id, user.db_id)

        assert repaired.balance == Decimal("424.75")
        assert crud_account.calculate_expected_balance(db, checking.id) == Decimal("424.75")
