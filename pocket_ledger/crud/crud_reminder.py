from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List, Tuple
from datetime import datetime, date, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from pocket_ledger.db.core import ReminderDB, TransactionDB, NotFoundError, ReminderFrequency, UNCATEGORIZED
from pocket_ledger.models.reminder import ReminderCreate, ReminderUpdate, ReminderPayment
from pocket_ledger.models.transaction import TransactionCreate
from pocket_ledger.crud.crud_transaction import stage_transaction
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)

REMINDER_STEPS = {
    ReminderFrequency.MONTHLY: relativedelta(months=1),
    ReminderFrequency.YEARLY: relativedelta(years=1),
}


# ===== DATABASE OPERATIONS =====

def create_db_reminder(db: Session, user_id: int, reminder_data: ReminderCreate) -> ReminderDB:
    db_reminder = ReminderDB(
        user_id=user_id,
        title=reminder_data.title,
        amount=reminder_data.amount,
        due_date=reminder_data.due_date,
        frequency=ReminderFrequency(reminder_data.frequency.value),
        is_paid=reminder_data.is_paid,
        category=reminder_data.category,
        notes=reminder_data.notes,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_reminder)
        db.commit()
        db.refresh(db_reminder)
        return db_reminder
    except IntegrityError:
        db.rollback()
        raise ValueError("Reminder creation failed due to database constraint")


def read_db_reminder(db: Session, reminder_id: int, user_id: int) -> Optional[ReminderDB]:
    return db.query(ReminderDB).filter(ReminderDB.id == reminder_id, ReminderDB.user_id == user_id).first()


def read_db_reminders(db: Session, user_id: int, include_paid: bool = False) -> List[ReminderDB]:
    """Reminders by due date; unpaid only unless include_paid"""
    query = db.query(ReminderDB).filter(ReminderDB.user_id == user_id)
    if not include_paid:
        query = query.filter(ReminderDB.is_paid == False)
    return query.order_by(ReminderDB.due_date, ReminderDB.id).all()


def read_upcoming_reminders(db: Session, user_id: int, today: date, days: int = 7) -> List[ReminderDB]:
    return db.query(ReminderDB).filter(
        ReminderDB.user_id == user_id,
        ReminderDB.is_paid == False,
        ReminderDB.due_date >= today,
        ReminderDB.due_date <= today + timedelta(days=days)
    ).order_by(ReminderDB.due_date, ReminderDB.id).all()


def read_overdue_reminders(db: Session, user_id: int, today: date) -> List[ReminderDB]:
    return db.query(ReminderDB).filter(
        ReminderDB.user_id == user_id,
        ReminderDB.is_paid == False,
        ReminderDB.due_date < today
    ).order_by(ReminderDB.due_date, ReminderDB.id).all()


def update_db_reminder(db: Session, reminder_id: int, user_id: int, reminder_updates: ReminderUpdate) -> ReminderDB:
    db_reminder = read_db_reminder(db, reminder_id, user_id)
    if not db_reminder:
        raise NotFoundError(f"Reminder with id {reminder_id} not found")

    update_data = reminder_updates.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field in ('title', 'due_date', 'frequency', 'is_paid'):
            raise ValueError(f"Field '{field}' cannot be null")
        if field == 'frequency':
            setattr(db_reminder, field, ReminderFrequency(value.value))
        elif field == 'amount' and value is not None:
            setattr(db_reminder, field, round(value, 2))
        else:
            setattr(db_reminder, field, value)

    db_reminder.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_reminder)
        return db_reminder
    except IntegrityError:
        db.rollback()
        raise ValueError("Reminder update failed due to database constraint")


def delete_db_reminder(db: Session, reminder_id: int, user_id: int) -> bool:
    db_reminder = read_db_reminder(db, reminder_id, user_id)
    if not db_reminder:
        raise NotFoundError(f"Reminder with id {reminder_id} not found")

    db.delete(db_reminder)
    db.commit()
    return True


def toggle_reminder_paid(db: Session, reminder_id: int, user_id: int) -> ReminderDB:
    db_reminder = read_db_reminder(db, reminder_id, user_id)
    if not db_reminder:
        raise NotFoundError(f"Reminder with id {reminder_id} not found")

    db_reminder.is_paid = not db_reminder.is_paid
    db_reminder.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(db_reminder)
    return db_reminder


def mark_reminder_as_paid(db: Session, reminder_id: int, user_id: int,
                          payment: ReminderPayment) -> Tuple[ReminderDB, TransactionDB, Optional[ReminderDB]]:
    """
    Pay a bill: record the payment transaction on the given account, link it
    to the reminder, and queue the next reminder for monthly or yearly bills.
    Everything lands in one commit.
    """
    db_reminder = read_db_reminder(db, reminder_id, user_id)
    if not db_reminder:
        raise NotFoundError(f"Reminder with id {reminder_id} not found")

    if db_reminder.is_paid:
        raise ValueError("Reminder is already paid")

    if payment.actual_amount is not None:
        amount = Decimal(payment.actual_amount)
    else:
        amount = Decimal(db_reminder.amount or 0)

    next_reminder = None
    try:
        # Bills are outflows regardless of how the amount was entered
        transaction = stage_transaction(db, user_id, TransactionCreate(
            account_id=payment.account_id,
            transaction_date=payment.actual_date or db_reminder.due_date,
            amount=-abs(amount),
            payee=db_reminder.title,
            category=db_reminder.category or UNCATEGORIZED,
            memo=f"Bill payment: {db_reminder.title}",
            reconciled=False,
        ))

        db_reminder.is_paid = True
        db_reminder.linked_transaction_id = transaction.id
        db_reminder.updated_at = datetime.utcnow()

        step = REMINDER_STEPS.get(db_reminder.frequency)
        if step is not None:
            next_reminder = ReminderDB(
                user_id=user_id,
                title=db_reminder.title,
                amount=db_reminder.amount,
                due_date=db_reminder.due_date + step,
                frequency=db_reminder.frequency,
                is_paid=False,
                category=db_reminder.category,
                notes=db_reminder.notes,
                created_at=datetime.utcnow(),
                updated_at=datetime.utcnow()
            )
            db.add(next_reminder)

        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Failed to mark reminder {reminder_id} as paid", exc_info=True)
        raise

    db.refresh(db_reminder)
    db.refresh(transaction)
    if next_reminder is not None:
        db.refresh(next_reminder)
        logger.info(f"Reminder {reminder_id} paid; next due {next_reminder.due_date}")

    return db_reminder, transaction, next_reminder
