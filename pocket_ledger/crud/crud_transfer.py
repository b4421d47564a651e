from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Tuple
from datetime import datetime
from decimal import Decimal

from pocket_ledger.db.core import TransactionDB, NotFoundError, TransactionType, TRANSFER_CATEGORY
from pocket_ledger.models.transfer import TransferCreate
from pocket_ledger.crud.crud_account import apply_balance_delta
from pocket_ledger.crud.crud_transaction import get_owned_account, read_db_transaction, clear_transaction_references
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)


def create_transfer(db: Session, user_id: int, transfer_data: TransferCreate) -> Tuple[TransactionDB, TransactionDB]:
    """
    Move money between two of the user's accounts.

    Creates a withdrawal on the source account and a deposit on the
    destination, links them to each other once both have ids, and moves both
    balances, all in one commit. Overdrafts are allowed.
    """
    if transfer_data.from_account_id == transfer_data.to_account_id:
        raise ValueError("Cannot transfer to the same account")
    if transfer_data.amount <= 0:
        raise ValueError("Transfer amount must be positive")

    from_account = get_owned_account(db, user_id, transfer_data.from_account_id)
    to_account = get_owned_account(db, user_id, transfer_data.to_account_id)
    amount = round(Decimal(transfer_data.amount), 2)

    withdrawal = TransactionDB(
        user_id=user_id,
        account_id=from_account.id,
        transaction_date=transfer_data.transfer_date,
        amount=-amount,
        payee=f"Transfer to {to_account.name}",
        category=TRANSFER_CATEGORY,
        memo=transfer_data.memo,
        transaction_type=TransactionType.TRANSFER,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )
    deposit = TransactionDB(
        user_id=user_id,
        account_id=to_account.id,
        transaction_date=transfer_data.transfer_date,
        amount=amount,
        payee=f"Transfer from {from_account.name}",
        category=TRANSFER_CATEGORY,
        memo=transfer_data.memo,
        transaction_type=TransactionType.TRANSFER,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add_all([withdrawal, deposit])
        db.flush()

        withdrawal.linked_transaction_id = deposit.id
        deposit.linked_transaction_id = withdrawal.id

        apply_balance_delta(db, from_account.id, -amount)
        apply_balance_delta(db, to_account.id, amount)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("Transfer creation failed due to database constraint")
    except Exception:
        db.rollback()
        logger.error("Transfer creation failed", exc_info=True)
        raise

    db.refresh(withdrawal)
    db.refresh(deposit)
    logger.info(f"Transferred {amount} from account {from_account.id} to account {to_account.id}")
    return withdrawal, deposit


def delete_transfer(db: Session, user_id: int, transaction_id: int) -> bool:
    """Delete both legs of a transfer and reverse both balance effects"""

    db_transaction = read_db_transaction(db, transaction_id, user_id)
    if not db_transaction:
        raise NotFoundError(f"Transaction with id {transaction_id} not found")

    if db_transaction.transaction_type != TransactionType.TRANSFER:
        raise ValueError("Transaction is not a transfer")

    legs = [db_transaction]
    if db_transaction.linked_transaction_id:
        linked = read_db_transaction(db, db_transaction.linked_transaction_id, user_id)
        if linked:
            legs.append(linked)
        else:
            logger.warning(f"Transfer {transaction_id} points at missing transaction {db_transaction.linked_transaction_id}")

    try:
        for leg in legs:
            apply_balance_delta(db, leg.account_id, -leg.amount)
            leg.linked_transaction_id = None
        db.flush()

        for leg in legs:
            clear_transaction_references(db, leg)
            db.delete(leg)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Failed to delete transfer {transaction_id}", exc_info=True)
        raise

    logger.info(f"Deleted transfer {transaction_id} ({len(legs)} leg(s))")
    return True
