from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from pocket_ledger.crud import crud_recurring
from pocket_ledger.models import recurring as recurring_models
from pocket_ledger.models.transaction import TransactionResponse
from pocket_ledger.db.core import get_db, NotFoundError
from pocket_ledger.dependencies import get_current_user_id, get_today

router = APIRouter(
    prefix="/recurring",
    tags=["recurring"],
)


@router.post("/", response_model=recurring_models.RecurringTransactionResponse, status_code=status.HTTP_201_CREATED)
def create_recurring(
    recurring: recurring_models.RecurringTransactionCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_recurring.create_db_recurring(db=db, user_id=user_id, recurring_data=recurring)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[recurring_models.RecurringTransactionResponse])
def read_recurrings(
    active_only: bool = False,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    return crud_recurring.read_db_recurrings(db=db, user_id=user_id, active_only=active_only)


@router.post("/process", response_model=recurring_models.RecurringProcessResult)
def process_recurring(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    today: date = Depends(get_today)
):
    """
    Materialize every due template once. Calling this twice on the same day
    creates nothing the second time.
    """
    created, deactivated_ids = crud_recurring.process_recurring_transactions(db=db, user_id=user_id, today=today)
    return recurring_models.RecurringProcessResult(
        created=[TransactionResponse.model_validate(t) for t in created],
        deactivated_ids=deactivated_ids,
    )


@router.get("/{recurring_id}", response_model=recurring_models.RecurringTransactionResponse)
def read_recurring(
    recurring_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    db_recurring = crud_recurring.read_db_recurring(db=db, recurring_id=recurring_id, user_id=user_id)
    if db_recurring is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recurring transaction not found")
    return db_recurring


@router.put("/{recurring_id}", response_model=recurring_models.RecurringTransactionResponse)
def update_recurring(
    recurring_id: int,
    recurring: recurring_models.RecurringTransactionUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_recurring.update_db_recurring(
            db=db, recurring_id=recurring_id, user_id=user_id, recurring_updates=recurring
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{recurring_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recurring(
    recurring_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Delete a template. Transactions it already produced are kept."""
    try:
        crud_recurring.delete_db_recurring(db=db, recurring_id=recurring_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{recurring_id}/toggle", response_model=recurring_models.RecurringTransactionResponse)
def toggle_recurring(
    recurring_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_recurring.toggle_recurring_active(db=db, recurring_id=recurring_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
