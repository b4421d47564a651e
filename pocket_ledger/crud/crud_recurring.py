from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List, Union
from datetime import datetime, date, timedelta

from dateutil.relativedelta import relativedelta

from pocket_ledger.db.core import RecurringTransactionDB, TransactionDB, NotFoundError, RecurringFrequency
from pocket_ledger.models.recurring import RecurringTransactionCreate, RecurringTransactionUpdate
from pocket_ledger.models.transaction import TransactionCreate
from pocket_ledger.crud.crud_transaction import get_owned_account, stage_transaction
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)

FREQUENCY_STEPS = {
    RecurringFrequency.WEEKLY: timedelta(weeks=1),
    RecurringFrequency.BI_WEEKLY: timedelta(weeks=2),
    RecurringFrequency.MONTHLY: relativedelta(months=1),
    RecurringFrequency.QUARTERLY: relativedelta(months=3),
    RecurringFrequency.YEARLY: relativedelta(years=1),
}


# ===== DATABASE OPERATIONS =====

def create_db_recurring(db: Session, user_id: int, recurring_data: RecurringTransactionCreate) -> RecurringTransactionDB:
    get_owned_account(db, user_id, recurring_data.account_id)

    db_recurring = RecurringTransactionDB(
        user_id=user_id,
        account_id=recurring_data.account_id,
        amount=recurring_data.amount,
        payee=recurring_data.payee,
        category=recurring_data.category,
        subcategory=recurring_data.subcategory,
        memo=recurring_data.memo,
        frequency=RecurringFrequency(recurring_data.frequency.value),
        next_date=recurring_data.next_date,
        end_date=recurring_data.end_date,
        is_active=recurring_data.is_active,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_recurring)
        db.commit()
        db.refresh(db_recurring)
        return db_recurring
    except IntegrityError:
        db.rollback()
        raise ValueError("Recurring transaction creation failed due to database constraint")


def read_db_recurring(db: Session, recurring_id: int, user_id: int) -> Optional[RecurringTransactionDB]:
    return db.query(RecurringTransactionDB).filter(
        RecurringTransactionDB.id == recurring_id,
        RecurringTransactionDB.user_id == user_id
    ).first()


def read_db_recurrings(db: Session, user_id: int, active_only: bool = False) -> List[RecurringTransactionDB]:
    """Recurring templates ordered by their next occurrence"""

    query = db.query(RecurringTransactionDB).filter(RecurringTransactionDB.user_id == user_id)
    if active_only:
        query = query.filter(RecurringTransactionDB.is_active == True)
    return query.order_by(RecurringTransactionDB.next_date, RecurringTransactionDB.id).all()


def update_db_recurring(db: Session, recurring_id: int, user_id: int,
                        recurring_updates: RecurringTransactionUpdate) -> RecurringTransactionDB:
    db_recurring = read_db_recurring(db, recurring_id, user_id)
    if not db_recurring:
        raise NotFoundError(f"Recurring transaction with id {recurring_id} not found")

    update_data = recurring_updates.model_dump(exclude_unset=True)
    for field in ('account_id', 'amount', 'payee', 'frequency', 'next_date', 'is_active'):
        if field in update_data and update_data[field] is None:
            raise ValueError(f"Field '{field}' cannot be null")

    if 'account_id' in update_data:
        get_owned_account(db, user_id, update_data['account_id'])

    for field, value in update_data.items():
        if field == 'frequency':
            setattr(db_recurring, field, RecurringFrequency(value.value))
        elif field == 'category' and value is None:
            setattr(db_recurring, field, "")
        else:
            setattr(db_recurring, field, value)

    db_recurring.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_recurring)
        return db_recurring
    except IntegrityError:
        db.rollback()
        raise ValueError("Recurring transaction update failed due to database constraint")


def delete_db_recurring(db: Session, recurring_id: int, user_id: int) -> bool:
    """Delete a template. Transactions it generated stay, without the back-reference."""

    db_recurring = read_db_recurring(db, recurring_id, user_id)
    if not db_recurring:
        raise NotFoundError(f"Recurring transaction with id {recurring_id} not found")

    try:
        db.query(TransactionDB).filter(
            TransactionDB.recurring_transaction_id == recurring_id
        ).update({TransactionDB.recurring_transaction_id: None}, synchronize_session="fetch")
        db.delete(db_recurring)
        db.commit()
        return True
    except Exception as e:
        db.rollback()
        raise ValueError(f"Failed to delete recurring transaction: {str(e)}")


def toggle_recurring_active(db: Session, recurring_id: int, user_id: int) -> RecurringTransactionDB:
    db_recurring = read_db_recurring(db, recurring_id, user_id)
    if not db_recurring:
        raise NotFoundError(f"Recurring transaction with id {recurring_id} not found")

    db_recurring.is_active = not db_recurring.is_active
    db_recurring.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(db_recurring)
    return db_recurring


# ===== SCHEDULER =====

def calculate_next_date(current_date: date, frequency: Union[RecurringFrequency, str]) -> date:
    """Advance one period. Month arithmetic clamps to the end of shorter months."""
    try:
        frequency = RecurringFrequency(frequency)
    except ValueError:
        logger.warning(f"Unknown recurring frequency '{frequency}', advancing one month")
        return current_date + relativedelta(months=1)
    return current_date + FREQUENCY_STEPS[frequency]


def _auto_memo(memo: Optional[str]) -> str:
    return f"{memo} (Auto-generated)" if memo else "Auto-generated from recurring transaction"


def process_recurring_transactions(db: Session, user_id: int, today: date):
    """
    Run one scheduler pass for a user.

    Expired templates are deactivated, templates already run today are
    skipped, and every due template produces exactly one transaction dated
    at its occurrence before next_date moves forward one period. Missed
    periods are not caught up in a single pass.

    Returns (created transactions, ids of templates deactivated).
    """
    created: List[TransactionDB] = []
    deactivated: List[int] = []

    for rec in read_db_recurrings(db, user_id, active_only=True):
        if rec.end_date and today > rec.end_date:
            rec.is_active = False
            rec.updated_at = datetime.utcnow()
            db.commit()
            deactivated.append(rec.id)
            logger.info(f"Deactivated expired recurring transaction {rec.id}")
            continue

        if rec.last_created_date == today:
            continue

        if rec.next_date > today:
            continue

        try:
            transaction = stage_transaction(db, user_id, TransactionCreate(
                account_id=rec.account_id,
                transaction_date=rec.next_date,
                amount=rec.amount,
                payee=rec.payee,
                category=rec.category or "",
                subcategory=rec.subcategory,
                memo=_auto_memo(rec.memo),
                reconciled=False,
                recurring_transaction_id=rec.id,
            ))
            rec.next_date = calculate_next_date(rec.next_date, rec.frequency)
            rec.last_created_date = today
            rec.updated_at = datetime.utcnow()
            db.commit()
        except Exception:
            db.rollback()
            logger.error(f"Failed to materialize recurring transaction {rec.id}", exc_info=True)
            raise

        db.refresh(transaction)
        created.append(transaction)
        logger.info(f"Recurring {rec.id} created transaction {transaction.id}; next on {rec.next_date}")

    return created, deactivated
