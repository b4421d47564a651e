from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal, ROUND_HALF_UP

from dateutil.relativedelta import relativedelta

from pocket_ledger.db.core import SavingsGoalDB, NotFoundError
from pocket_ledger.models.goal import SavingsGoalCreate, SavingsGoalUpdate, SavingsGoalProgress, SavingsGoalResponse
from pocket_ledger.crud.crud_account import read_db_account
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)


def _check_linked_account(db: Session, user_id: int, account_id: Optional[int]) -> None:
    if account_id is not None and not read_db_account(db, account_id, user_id):
        raise ValueError(f"Account with id {account_id} not found")


# ===== DATABASE OPERATIONS =====

def create_db_goal(db: Session, user_id: int, goal_data: SavingsGoalCreate) -> SavingsGoalDB:
    _check_linked_account(db, user_id, goal_data.linked_account_id)

    db_goal = SavingsGoalDB(
        user_id=user_id,
        name=goal_data.name,
        target_amount=goal_data.target_amount,
        current_amount=goal_data.current_amount,
        target_date=goal_data.target_date,
        linked_account_id=goal_data.linked_account_id,
        color=goal_data.color,
        is_completed=goal_data.current_amount >= goal_data.target_amount,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_goal)
        db.commit()
        db.refresh(db_goal)
        return db_goal
    except IntegrityError:
        db.rollback()
        raise ValueError("Savings goal creation failed due to database constraint")


def read_db_goal(db: Session, goal_id: int, user_id: int) -> Optional[SavingsGoalDB]:
    return db.query(SavingsGoalDB).filter(SavingsGoalDB.id == goal_id, SavingsGoalDB.user_id == user_id).first()


def read_db_goals(db: Session, user_id: int, include_completed: bool = True) -> List[SavingsGoalDB]:
    query = db.query(SavingsGoalDB).filter(SavingsGoalDB.user_id == user_id)
    if not include_completed:
        query = query.filter(SavingsGoalDB.is_completed == False)
    return query.order_by(SavingsGoalDB.target_date, SavingsGoalDB.id).all()


def update_db_goal(db: Session, goal_id: int, user_id: int, goal_updates: SavingsGoalUpdate) -> SavingsGoalDB:
    """Patch a goal. Reaching the target flips is_completed through one follow-up update."""

    db_goal = read_db_goal(db, goal_id, user_id)
    if not db_goal:
        raise NotFoundError(f"Savings goal with id {goal_id} not found")

    update_data = goal_updates.model_dump(exclude_unset=True)
    for field in ('name', 'target_amount', 'current_amount', 'color', 'is_completed'):
        if field in update_data and update_data[field] is None:
            raise ValueError(f"Field '{field}' cannot be null")

    if 'linked_account_id' in update_data:
        _check_linked_account(db, user_id, update_data['linked_account_id'])

    for field, value in update_data.items():
        setattr(db_goal, field, value)
    db_goal.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_goal)
    except IntegrityError:
        db.rollback()
        raise ValueError("Savings goal update failed due to database constraint")

    if db_goal.current_amount >= db_goal.target_amount and not db_goal.is_completed:
        logger.info(f"Savings goal {goal_id} reached its target")
        return update_db_goal(db, goal_id, user_id, SavingsGoalUpdate(is_completed=True))

    return db_goal


def delete_db_goal(db: Session, goal_id: int, user_id: int) -> bool:
    db_goal = read_db_goal(db, goal_id, user_id)
    if not db_goal:
        raise NotFoundError(f"Savings goal with id {goal_id} not found")

    db.delete(db_goal)
    db.commit()
    return True


def add_to_goal(db: Session, goal_id: int, user_id: int, amount: Decimal) -> SavingsGoalDB:
    db_goal = read_db_goal(db, goal_id, user_id)
    if not db_goal:
        raise NotFoundError(f"Savings goal with id {goal_id} not found")

    new_amount = round(Decimal(db_goal.current_amount) + Decimal(amount), 2)
    return update_db_goal(db, goal_id, user_id, SavingsGoalUpdate(current_amount=new_amount))


def sync_goal_with_account(db: Session, goal_id: int, user_id: int) -> SavingsGoalDB:
    """Set current_amount to the linked account's balance"""

    db_goal = read_db_goal(db, goal_id, user_id)
    if not db_goal:
        raise NotFoundError(f"Savings goal with id {goal_id} not found")

    if not db_goal.linked_account_id:
        raise ValueError("Goal is not linked to an account")

    account = read_db_account(db, db_goal.linked_account_id, user_id)
    if not account:
        raise NotFoundError("Linked account not found")

    return update_db_goal(db, goal_id, user_id, SavingsGoalUpdate(current_amount=account.balance))


# ===== PROGRESS =====

def calculate_goal_progress(goal) -> int:
    """Whole percent towards the target, capped at 100"""
    target = Decimal(goal.target_amount)
    if target <= 0:
        return 0
    progress = (Decimal(goal.current_amount) / target * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return min(int(progress), 100)


def calculate_monthly_savings_needed(goal, today: date) -> Decimal:
    if not goal.target_date:
        return Decimal("0.00")

    remaining = Decimal(goal.target_amount) - Decimal(goal.current_amount)
    if remaining <= 0:
        return Decimal("0.00")

    delta = relativedelta(goal.target_date, today)
    months_remaining = delta.years * 12 + delta.months
    if months_remaining <= 0:
        # Past due: the whole remainder is needed now
        return round(remaining, 2)

    return round(remaining / months_remaining, 2)


def calculate_days_remaining(goal, today: date) -> int:
    if not goal.target_date:
        return 0
    return (goal.target_date - today).days


def build_goal_progress(goal: SavingsGoalDB, today: date) -> SavingsGoalProgress:
    return SavingsGoalProgress(
        **SavingsGoalResponse.model_validate(goal).model_dump(),
        progress=calculate_goal_progress(goal),
        monthly_savings_needed=calculate_monthly_savings_needed(goal, today),
        days_remaining=calculate_days_remaining(goal, today)
    )
