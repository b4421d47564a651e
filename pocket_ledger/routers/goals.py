from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from pocket_ledger.crud import crud_goal
from pocket_ledger.models import goal as goal_models
from pocket_ledger.db.core import get_db, NotFoundError
from pocket_ledger.dependencies import get_current_user_id, get_today

router = APIRouter(
    prefix="/goals",
    tags=["goals"],
)


@router.post("/", response_model=goal_models.SavingsGoalResponse, status_code=status.HTTP_201_CREATED)
def create_goal(
    goal: goal_models.SavingsGoalCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_goal.create_db_goal(db=db, user_id=user_id, goal_data=goal)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[goal_models.SavingsGoalProgress])
def read_goals(
    include_completed: bool = True,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    today: date = Depends(get_today)
):
    """Goals with progress, monthly savings needed and days remaining"""
    goals = crud_goal.read_db_goals(db=db, user_id=user_id, include_completed=include_completed)
    return [crud_goal.build_goal_progress(goal, today) for goal in goals]


@router.get("/{goal_id}", response_model=goal_models.SavingsGoalProgress)
def read_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    today: date = Depends(get_today)
):
    db_goal = crud_goal.read_db_goal(db=db, goal_id=goal_id, user_id=user_id)
    if db_goal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    return crud_goal.build_goal_progress(db_goal, today)


@router.put("/{goal_id}", response_model=goal_models.SavingsGoalResponse)
def update_goal(
    goal_id: int,
    goal: goal_models.SavingsGoalUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_goal.update_db_goal(db=db, goal_id=goal_id, user_id=user_id, goal_updates=goal)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        crud_goal.delete_db_goal(db=db, goal_id=goal_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{goal_id}/contribute", response_model=goal_models.SavingsGoalResponse)
def contribute_to_goal(
    goal_id: int,
    contribution: goal_models.SavingsGoalContribution,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Add to (or with a negative amount, take from) the saved amount"""
    try:
        return crud_goal.add_to_goal(db=db, goal_id=goal_id, user_id=user_id, amount=contribution.amount)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{goal_id}/sync", response_model=goal_models.SavingsGoalResponse)
def sync_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Set the saved amount to the linked account's balance"""
    try:
        return crud_goal.sync_goal_with_account(db=db, goal_id=goal_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
