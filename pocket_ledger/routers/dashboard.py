from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import date

from pocket_ledger.db.core import get_db
from pocket_ledger.dependencies import get_current_user_id, get_today
from pocket_ledger.models.dashboard import DashboardSummary
from pocket_ledger.services.dashboard import build_dashboard

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
)


@router.get("/", response_model=DashboardSummary)
def read_dashboard(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    today: date = Depends(get_today)
):
    """Accounts, recent activity, budgets, bills due this week and net worth"""
    return build_dashboard(db, user_id, today)
