from sqlalchemy.orm import Session
from datetime import date

from pocket_ledger.crud import crud_account, crud_transaction, crud_budget, crud_reminder, crud_net_worth
from pocket_ledger.models.account import AccountResponse
from pocket_ledger.models.transaction import TransactionResponse
from pocket_ledger.models.reminder import ReminderResponse
from pocket_ledger.models.dashboard import DashboardSummary
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)

RECENT_TRANSACTION_LIMIT = 10
UPCOMING_REMINDER_DAYS = 7


def _load_section(db: Session, name: str, loader, default):
    """Run one loader; on failure log it, reset the session and fall back to default."""
    try:
        return loader()
    except Exception:
        logger.warning(f"Dashboard section '{name}' failed to load", exc_info=True)
        db.rollback()
        return default


def build_dashboard(db: Session, user_id: int, today: date) -> DashboardSummary:
    """Collect the overview sections independently so one failure does not blank the page"""

    accounts = _load_section(db, "accounts", lambda: [
        AccountResponse.model_validate(a) for a in crud_account.read_db_accounts(db, user_id)
    ], [])

    recent_transactions = _load_section(db, "recent_transactions", lambda: [
        TransactionResponse.model_validate(t)
        for t in crud_transaction.read_db_transactions(db, user_id, limit=RECENT_TRANSACTION_LIMIT)
    ], [])

    budgets = _load_section(db, "budgets", lambda: crud_budget.get_budgets_with_spending(db, user_id, today), [])

    upcoming_reminders = _load_section(db, "upcoming_reminders", lambda: [
        ReminderResponse.model_validate(r)
        for r in crud_reminder.read_upcoming_reminders(db, user_id, today, UPCOMING_REMINDER_DAYS)
    ], [])

    net_worth = _load_section(db, "net_worth", lambda: crud_net_worth.calculate_current_net_worth(db, user_id), None)

    return DashboardSummary(
        accounts=accounts,
        recent_transactions=recent_transactions,
        budgets=budgets,
        upcoming_reminders=upcoming_reminders,
        net_worth=net_worth,
    )
