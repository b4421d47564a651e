from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List, Tuple
from datetime import datetime, date
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from pocket_ledger.db.core import BudgetDB, TransactionDB, NotFoundError, BudgetPeriod
from pocket_ledger.models.budget import BudgetCreate, BudgetUpdate, BudgetWithSpending, BudgetResponse, BudgetStatus
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)

WARNING_THRESHOLD = 80
OVER_THRESHOLD = 100


# ===== DATABASE OPERATIONS =====

def create_db_budget(db: Session, user_id: int, budget_data: BudgetCreate) -> BudgetDB:
    db_budget = BudgetDB(
        user_id=user_id,
        category=budget_data.category,
        amount=budget_data.amount,
        period=BudgetPeriod(budget_data.period.value),
        start_date=budget_data.start_date,
        rollover=budget_data.rollover,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_budget)
        db.commit()
        db.refresh(db_budget)
        logger.info(f"Created {db_budget.period.value} budget for '{db_budget.category}'")
        return db_budget
    except IntegrityError:
        db.rollback()
        raise ValueError("Budget creation failed due to database constraint")


def read_db_budget(db: Session, budget_id: int, user_id: int) -> Optional[BudgetDB]:
    return db.query(BudgetDB).filter(BudgetDB.id == budget_id, BudgetDB.user_id == user_id).first()


def read_db_budgets(db: Session, user_id: int) -> List[BudgetDB]:
    return db.query(BudgetDB).filter(BudgetDB.user_id == user_id).order_by(BudgetDB.category).all()


def update_db_budget(db: Session, budget_id: int, user_id: int, budget_updates: BudgetUpdate) -> BudgetDB:
    db_budget = read_db_budget(db, budget_id, user_id)
    if not db_budget:
        raise NotFoundError(f"Budget with id {budget_id} not found")

    update_data = budget_updates.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field != 'rollover':
            raise ValueError(f"Field '{field}' cannot be null")
        if field == 'period':
            setattr(db_budget, field, BudgetPeriod(value.value))
        else:
            setattr(db_budget, field, value)

    db_budget.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_budget)
        return db_budget
    except IntegrityError:
        db.rollback()
        raise ValueError("Budget update failed due to database constraint")


def delete_db_budget(db: Session, budget_id: int, user_id: int) -> bool:
    db_budget = read_db_budget(db, budget_id, user_id)
    if not db_budget:
        raise NotFoundError(f"Budget with id {budget_id} not found")

    db.delete(db_budget)
    db.commit()
    return True


# ===== SPENDING =====

def get_budget_period_window(period: BudgetPeriod, today: date) -> Tuple[date, date]:
    """Calendar month or calendar year containing today, both ends inclusive"""
    if BudgetPeriod(period) == BudgetPeriod.MONTHLY:
        start = today.replace(day=1)
        return start, start + relativedelta(months=1) - relativedelta(days=1)
    return date(today.year, 1, 1), date(today.year, 12, 31)


def category_matches(transaction_category: Optional[str], budget_category: str) -> bool:
    """
    Lenient name match so "Rent/Mortgage" budgets still see "Mortgage"
    transactions: equal, contains, or contained in, ignoring case.
    An uncategorized transaction is contained in every budget name and
    counts toward all of them; a budget without a category matches nothing.
    """
    if not budget_category:
        return False
    transaction_category = (transaction_category or "").lower()
    budget_category = budget_category.lower()
    return (transaction_category == budget_category
            or budget_category in transaction_category
            or transaction_category in budget_category)


def calculate_budget_spending(db: Session, user_id: int, category: str, period: BudgetPeriod, today: date) -> Decimal:
    """Total outflow in the current period for transactions matching the category"""

    start, end = get_budget_period_window(period, today)
    transactions = db.query(TransactionDB).filter(
        TransactionDB.user_id == user_id,
        TransactionDB.transaction_date >= start,
        TransactionDB.transaction_date <= end,
        TransactionDB.amount < 0
    ).all()

    spent = Decimal("0.00")
    for transaction in transactions:
        if category_matches(transaction.category, category):
            spent += abs(transaction.amount)
    return spent


def _spending_status(percentage: float) -> BudgetStatus:
    if percentage >= OVER_THRESHOLD:
        return BudgetStatus.OVER
    if percentage >= WARNING_THRESHOLD:
        return BudgetStatus.WARNING
    return BudgetStatus.GOOD


def build_budget_with_spending(db_budget: BudgetDB, spent: Decimal) -> BudgetWithSpending:
    amount = Decimal(db_budget.amount)
    if amount > 0:
        percentage = float(spent / amount * 100)
    else:
        percentage = 0.0 if spent == 0 else 100.0

    return BudgetWithSpending(
        **BudgetResponse.model_validate(db_budget).model_dump(),
        spent=spent,
        remaining=amount - spent,
        percentage=round(min(percentage, 100.0), 2),
        status=_spending_status(percentage)
    )


def get_budgets_with_spending(db: Session, user_id: int, today: date) -> List[BudgetWithSpending]:
    """Every budget of the user with spent/remaining/percentage/status for the current period.

    The rollover flag is stored on the budget but does not carry unused
    amounts into the next period.
    """
    return [
        build_budget_with_spending(
            budget, calculate_budget_spending(db, user_id, budget.category, budget.period, today)
        )
        for budget in read_db_budgets(db, user_id)
    ]
