from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from pocket_ledger.crud import crud_reminder
from pocket_ledger.models import reminder as reminder_models
from pocket_ledger.models.transaction import TransactionResponse
from pocket_ledger.db.core import get_db, NotFoundError
from pocket_ledger.dependencies import get_current_user_id, get_today

router = APIRouter(
    prefix="/reminders",
    tags=["reminders"],
)


@router.post("/", response_model=reminder_models.ReminderResponse, status_code=status.HTTP_201_CREATED)
def create_reminder(
    reminder: reminder_models.ReminderCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_reminder.create_db_reminder(db=db, user_id=user_id, reminder_data=reminder)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[reminder_models.ReminderResponse])
def read_reminders(
    include_paid: bool = False,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    return crud_reminder.read_db_reminders(db=db, user_id=user_id, include_paid=include_paid)


@router.get("/upcoming", response_model=List[reminder_models.ReminderResponse])
def read_upcoming(
    days: int = 7,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    today: date = Depends(get_today)
):
    """Unpaid reminders due within the next `days` days, today included"""
    return crud_reminder.read_upcoming_reminders(db=db, user_id=user_id, today=today, days=days)


@router.get("/overdue", response_model=List[reminder_models.ReminderResponse])
def read_overdue(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    today: date = Depends(get_today)
):
    return crud_reminder.read_overdue_reminders(db=db, user_id=user_id, today=today)


@router.get("/{reminder_id}", response_model=reminder_models.ReminderResponse)
def read_reminder(
    reminder_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    db_reminder = crud_reminder.read_db_reminder(db=db, reminder_id=reminder_id, user_id=user_id)
    if db_reminder is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reminder not found")
    return db_reminder


@router.put("/{reminder_id}", response_model=reminder_models.ReminderResponse)
def update_reminder(
    reminder_id: int,
    reminder: reminder_models.ReminderUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_reminder.update_db_reminder(
            db=db, reminder_id=reminder_id, user_id=user_id, reminder_updates=reminder
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reminder(
    reminder_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        crud_reminder.delete_db_reminder(db=db, reminder_id=reminder_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{reminder_id}/toggle-paid", response_model=reminder_models.ReminderResponse)
def toggle_paid(
    reminder_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Flip the paid flag without recording a payment"""
    try:
        return crud_reminder.toggle_reminder_paid(db=db, reminder_id=reminder_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{reminder_id}/pay", response_model=reminder_models.ReminderPaymentResult)
def pay_reminder(
    reminder_id: int,
    payment: reminder_models.ReminderPayment,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Record a bill payment from an account. Monthly and yearly bills get their
    next reminder queued.
    """
    try:
        db_reminder, transaction, next_reminder = crud_reminder.mark_reminder_as_paid(
            db=db, reminder_id=reminder_id, user_id=user_id, payment=payment
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return reminder_models.ReminderPaymentResult(
        reminder=reminder_models.ReminderResponse.model_validate(db_reminder),
        transaction=TransactionResponse.model_validate(transaction),
        next_reminder=reminder_models.ReminderResponse.model_validate(next_reminder) if next_reminder else None,
    )
