from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_, desc
from typing import Optional, List, Dict
from datetime import datetime
from decimal import Decimal

from pocket_ledger.db.core import (
    TransactionDB, AccountDB, ReminderDB, ReconciledTransactionDB, NotFoundError, TransactionType,
)
from pocket_ledger.models.transaction import TransactionCreate, TransactionUpdate, TransactionFilter
from pocket_ledger.crud.crud_account import apply_balance_delta
from pocket_ledger.services.csv_import import generate_import_id
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)

# Columns that may be omitted from a patch but never explicitly cleared
REQUIRED_FIELDS = ('account_id', 'transaction_date', 'amount', 'payee')


# ===== UTILITY FUNCTIONS =====

def get_owned_account(db: Session, user_id: int, account_id: Optional[int]) -> AccountDB:
    if account_id is None:
        raise ValueError("Account is required")

    account = db.query(AccountDB).filter(
        AccountDB.id == account_id,
        AccountDB.user_id == user_id
    ).first()
    if not account:
        raise ValueError(f"Account with id {account_id} not found")
    return account


def stage_transaction(db: Session, user_id: int, transaction_data: TransactionCreate) -> TransactionDB:
    """Add a transaction and its balance effect to the session without committing.

    Used by every path that writes transactions as part of a larger unit
    (recurring materialization, bill payment, single create).
    """
    account = get_owned_account(db, user_id, transaction_data.account_id)

    db_transaction = TransactionDB(
        user_id=user_id,
        account_id=account.id,
        transaction_date=transaction_data.transaction_date,
        amount=transaction_data.amount,
        payee=transaction_data.payee,
        category=transaction_data.category,
        subcategory=transaction_data.subcategory,
        memo=transaction_data.memo,
        reconciled=transaction_data.reconciled,
        transaction_type=TransactionType(transaction_data.transaction_type.value) if transaction_data.transaction_type else None,
        recurring_transaction_id=transaction_data.recurring_transaction_id,
        import_id=transaction_data.import_id,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    db.add(db_transaction)
    apply_balance_delta(db, account.id, db_transaction.amount)
    db.flush()
    return db_transaction


def clear_transaction_references(db: Session, db_transaction: TransactionDB) -> None:
    """Detach rows that point at a transaction about to be deleted"""

    db.query(TransactionDB).filter(
        TransactionDB.linked_transaction_id == db_transaction.id
    ).update({TransactionDB.linked_transaction_id: None}, synchronize_session="fetch")

    db.query(ReminderDB).filter(
        ReminderDB.linked_transaction_id == db_transaction.id
    ).update({ReminderDB.linked_transaction_id: None}, synchronize_session="fetch")

    db.query(ReconciledTransactionDB).filter(
        ReconciledTransactionDB.transaction_id == db_transaction.id
    ).delete(synchronize_session="fetch")


# ===== DATABASE OPERATIONS =====

def create_db_transaction(db: Session, user_id: int, transaction_data: TransactionCreate) -> TransactionDB:
    """Create a transaction and move its account balance in the same commit"""

    try:
        db_transaction = stage_transaction(db, user_id, transaction_data)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("Transaction creation failed due to database constraint")
    except Exception:
        db.rollback()
        raise

    db.refresh(db_transaction)
    logger.info(f"Created transaction {db_transaction.id} ({db_transaction.amount}) on account {db_transaction.account_id}")
    return db_transaction


def read_db_transaction(db: Session, transaction_id: int, user_id: Optional[int] = None) -> Optional[TransactionDB]:
    """Read a transaction by ID"""

    query = db.query(TransactionDB).filter(TransactionDB.id == transaction_id)

    if user_id:
        query = query.filter(TransactionDB.user_id == user_id)

    return query.first()


def read_db_transactions(db: Session, user_id: int, filters: Optional[TransactionFilter] = None,
                         skip: int = 0, limit: Optional[int] = 100) -> List[TransactionDB]:
    """Read transactions with filtering and pagination, newest first"""

    query = db.query(TransactionDB).filter(TransactionDB.user_id == user_id)

    if filters:
        if filters.account_ids:
            query = query.filter(TransactionDB.account_id.in_(filters.account_ids))

        if filters.categories:
            query = query.filter(TransactionDB.category.in_(filters.categories))

        if filters.date_from:
            query = query.filter(TransactionDB.transaction_date >= filters.date_from)

        if filters.date_to:
            query = query.filter(TransactionDB.transaction_date <= filters.date_to)

        if filters.search:
            query = query.filter(
                or_(
                    TransactionDB.payee.ilike(f"%{filters.search}%"),
                    TransactionDB.memo.ilike(f"%{filters.search}%")
                )
            )

        if filters.amount_min is not None:
            query = query.filter(TransactionDB.amount >= filters.amount_min)

        if filters.amount_max is not None:
            query = query.filter(TransactionDB.amount <= filters.amount_max)

        if filters.reconciled is not None:
            query = query.filter(TransactionDB.reconciled == filters.reconciled)

    query = query.order_by(desc(TransactionDB.transaction_date), desc(TransactionDB.id))
    return query.offset(skip).limit(limit).all()


def update_db_transaction(db: Session, transaction_id: int, user_id: int,
                          transaction_updates: TransactionUpdate) -> TransactionDB:
    """Patch a transaction.

    When the amount or account changes the old amount is reversed on the old
    account and the new amount applied on the new one: two balance writes,
    never an in-place diff, so a cross-account move stays correct.
    """
    db_transaction = read_db_transaction(db, transaction_id, user_id)
    if not db_transaction:
        raise NotFoundError(f"Transaction with id {transaction_id} not found")

    update_data = transaction_updates.model_dump(exclude_unset=True)

    for field in REQUIRED_FIELDS:
        if field in update_data and update_data[field] is None:
            raise ValueError(f"Field '{field}' cannot be null")

    if 'account_id' in update_data:
        get_owned_account(db, user_id, update_data['account_id'])

    moves_balance = 'amount' in update_data or 'account_id' in update_data
    old_account_id = db_transaction.account_id
    old_amount = db_transaction.amount

    try:
        if moves_balance:
            apply_balance_delta(db, old_account_id, -old_amount)

        for field, value in update_data.items():
            if field == 'transaction_type' and value:
                setattr(db_transaction, field, TransactionType(value.value))
            elif field == 'category' and value is None:
                setattr(db_transaction, field, "")
            else:
                setattr(db_transaction, field, value)

        if moves_balance:
            apply_balance_delta(db, db_transaction.account_id, db_transaction.amount)

        db_transaction.updated_at = datetime.utcnow()
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("Transaction update failed due to database constraint")
    except Exception:
        db.rollback()
        raise

    db.refresh(db_transaction)
    logger.debug(f"Updated transaction {transaction_id}: {sorted(update_data)}")
    return db_transaction


def delete_db_transaction(db: Session, transaction_id: int, user_id: int) -> bool:
    """Delete a transaction, reversing its balance effect in the same commit"""

    db_transaction = read_db_transaction(db, transaction_id, user_id)
    if not db_transaction:
        raise NotFoundError(f"Transaction with id {transaction_id} not found")

    try:
        apply_balance_delta(db, db_transaction.account_id, -db_transaction.amount)
        clear_transaction_references(db, db_transaction)
        db.delete(db_transaction)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Failed to delete transaction {transaction_id}", exc_info=True)
        raise

    logger.info(f"Deleted transaction {transaction_id}")
    return True


def bulk_create_transactions(db: Session, user_id: int, transactions: List[TransactionCreate]) -> List[TransactionDB]:
    """Insert many transactions at once.

    Balances move by one aggregated delta per account. Each row carries an
    import_id derived from its date, amount and payee unless one was given.
    """
    account_ids = {t.account_id for t in transactions}
    for account_id in account_ids:
        get_owned_account(db, user_id, account_id)

    deltas: Dict[int, Decimal] = {}
    created_transactions = []

    try:
        for transaction_data in transactions:
            db_transaction = TransactionDB(
                user_id=user_id,
                account_id=transaction_data.account_id,
                transaction_date=transaction_data.transaction_date,
                amount=transaction_data.amount,
                payee=transaction_data.payee,
                category=transaction_data.category,
                subcategory=transaction_data.subcategory,
                memo=transaction_data.memo,
                reconciled=transaction_data.reconciled,
                transaction_type=TransactionType(transaction_data.transaction_type.value) if transaction_data.transaction_type else None,
                recurring_transaction_id=transaction_data.recurring_transaction_id,
                import_id=transaction_data.import_id or generate_import_id(
                    transaction_data.transaction_date, transaction_data.amount, transaction_data.payee
                ),
                created_at=datetime.utcnow(),
                updated_at=datetime.utcnow()
            )
            db.add(db_transaction)
            created_transactions.append(db_transaction)
            deltas[transaction_data.account_id] = deltas.get(transaction_data.account_id, Decimal("0.00")) + transaction_data.amount

        for account_id, delta in deltas.items():
            apply_balance_delta(db, account_id, delta)

        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("Bulk transaction import failed due to database constraint")
    except Exception:
        db.rollback()
        logger.error("Bulk transaction import failed", exc_info=True)
        raise

    for transaction in created_transactions:
        db.refresh(transaction)

    logger.info(f"Bulk created {len(created_transactions)} transactions across {len(deltas)} account(s)")
    return created_transactions


def toggle_reconciled(db: Session, transaction_id: int, user_id: int) -> TransactionDB:
    """Flip the reconciled flag. Balances are unaffected."""

    db_transaction = read_db_transaction(db, transaction_id, user_id)
    if not db_transaction:
        raise NotFoundError(f"Transaction with id {transaction_id} not found")

    db_transaction.reconciled = not db_transaction.reconciled
    db_transaction.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(db_transaction)
    return db_transaction
