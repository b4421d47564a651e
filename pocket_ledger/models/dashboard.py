from pydantic import BaseModel
from typing import List, Optional

from pocket_ledger.models.account import AccountResponse
from pocket_ledger.models.transaction import TransactionResponse
from pocket_ledger.models.budget import BudgetWithSpending
from pocket_ledger.models.reminder import ReminderResponse
from pocket_ledger.models.net_worth import NetWorthCalculation


class DashboardSummary(BaseModel):
    """Best-effort overview; a section that failed to load is empty"""
    accounts: List[AccountResponse] = []
    recent_transactions: List[TransactionResponse] = []
    budgets: List[BudgetWithSpending] = []
    upcoming_reminders: List[ReminderResponse] = []
    net_worth: Optional[NetWorthCalculation] = None
