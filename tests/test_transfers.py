from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from pocket_ledger.db.core import TransactionType, TRANSFER_CATEGORY, NotFoundError
from pocket_ledger.crud import crud_transaction, crud_transfer, crud_account
from pocket_ledger.models.transaction import TransactionCreate
from pocket_ledger.models.transfer import TransferCreate


def transfer(from_id, to_id, amount="200.00"):
    return TransferCreate(
        from_account_id=from_id, to_account_id=to_id, amount=Decimal(amount), transfer_date=date(2024, 6, 10),
    )


class TestCreateTransfer:

    def test_legs_mirror_each_other(self, db, user, checking, savings):
        withdrawal, deposit = crud_transfer.create_transfer(db, user.db_id, transfer(checking.id, savings.id))

        assert withdrawal.amount == Decimal("-200.00")
        assert deposit.amount == Decimal("200.00")
        assert withdrawal.linked_transaction_id == deposit.id
        assert deposit.linked_transaction_id == withdrawal.id
        assert withdrawal.transaction_type == deposit.transaction_type == TransactionType.TRANSFER
        assert withdrawal.category == deposit.category == TRANSFER_CATEGORY
        assert withdrawal.payee == "Transfer to Savings"
        assert deposit.payee == "Transfer from Checking"

    def test_balances_move_and_total_is_conserved(self, db, user, checking, savings):
        crud_transfer.create_transfer(db, user.db_id, transfer(checking.id, savings.id))

        db.refresh(checking)
        db.refresh(savings)
        assert checking.balance == Decimal("300.00")
        assert savings.balance == Decimal("1200.00")
        assert checking.balance + savings.balance == Decimal("1500.00")

    def test_overdraft_allowed(self, db, user, checking, savings):
        crud_transfer.create_transfer(db, user.db_id, transfer(checking.id, savings.id, "750.00"))

        db.refresh(checking)
        assert checking.balance == Decimal("-250.00")

    def test_same_account_rejected(self, checking):
        with pytest.raises(ValidationError):
            transfer(checking.id, checking.id)

    def test_non_positive_amount_rejected(self, checking, savings):
        with pytest.raises(ValidationError):
            transfer(checking.id, savings.id, "0")

    def test_unknown_destination_rejected(self, db, user, checking):
        with pytest.raises(ValueError, match="not found"):
            crud_transfer.create_transfer(db, user.db_id, transfer(checking.id, 9999))


class TestDeleteTransfer:

    def test_deleting_one_leg_removes_both(self, db, user, checking, savings):
        withdrawal, deposit = crud_transfer.create_transfer(db, user.db_id, transfer(checking.id, savings.id))
        withdrawal_id, deposit_id = withdrawal.id, deposit.id

        crud_transfer.delete_transfer(db, user.db_id, deposit_id)

        db.refresh(checking)
        db.refresh(savings)
        assert crud_transaction.read_db_transaction(db, withdrawal_id) is None
        assert crud_transaction.read_db_transaction(db, deposit_id) is None
        assert checking.balance == Decimal("500.00")
        assert savings.balance == Decimal("1000.00")
        assert checking.balance == crud_account.calculate_expected_balance(db, checking.id)

    def test_regular_transaction_is_not_a_transfer(self, db, user, checking):
        tx = crud_transaction.create_db_transaction(db, user.db_id, TransactionCreate(
            account_id=checking.id, transaction_date=date(2024, 6, 1), amount=Decimal("-5"), payee="Cafe",
        ))
        with pytest.raises(ValueError, match="not a transfer"):
            crud_transfer.delete_transfer(db, user.db_id, tx.id)

    def test_unknown_transaction(self, db, user):
        with pytest.raises(NotFoundError):
            crud_transfer.delete_transfer(db, user.db_id, 4242)
