from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from pocket_ledger.crud import crud_budget
from pocket_ledger.models import budget as budget_models
from pocket_ledger.db.core import get_db, NotFoundError
from pocket_ledger.dependencies import get_current_user_id, get_today

router = APIRouter(
    prefix="/budgets",
    tags=["budgets"],
)


@router.post("/", response_model=budget_models.BudgetResponse, status_code=status.HTTP_201_CREATED)
def create_budget(
    budget: budget_models.BudgetCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_budget.create_db_budget(db=db, user_id=user_id, budget_data=budget)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[budget_models.BudgetResponse])
def read_budgets(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    return crud_budget.read_db_budgets(db=db, user_id=user_id)


@router.get("/spending", response_model=List[budget_models.BudgetWithSpending])
def read_budgets_with_spending(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    today: date = Depends(get_today)
):
    """
    Every budget with what has been spent in its current period.

    Status is `warning` from 80% and `over` from 100%.
    """
    return crud_budget.get_budgets_with_spending(db=db, user_id=user_id, today=today)


@router.get("/{budget_id}", response_model=budget_models.BudgetResponse)
def read_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    db_budget = crud_budget.read_db_budget(db=db, budget_id=budget_id, user_id=user_id)
    if db_budget is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Budget not found")
    return db_budget


@router.get("/{budget_id}/spending", response_model=budget_models.BudgetWithSpending)
def read_budget_spending(
    budget_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    today: date = Depends(get_today)
):
    db_budget = crud_budget.read_db_budget(db=db, budget_id=budget_id, user_id=user_id)
    if db_budget is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Budget not found")
    spent = crud_budget.calculate_budget_spending(db, user_id, db_budget.category, db_budget.period, today)
    return crud_budget.build_budget_with_spending(db_budget, spent)


@router.put("/{budget_id}", response_model=budget_models.BudgetResponse)
def update_budget(
    budget_id: int,
    budget: budget_models.BudgetUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_budget.update_db_budget(db=db, budget_id=budget_id, user_id=user_id, budget_updates=budget)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        crud_budget.delete_db_budget(db=db, budget_id=budget_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
