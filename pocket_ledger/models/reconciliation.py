from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal

from pocket_ledger.models.money import round_money


class ReconciliationCreate(BaseModel):
    account_id: int
    transaction_ids: List[int] = Field(default_factory=list, description="Unreconciled transactions cleared on the statement")
    statement_date: date
    statement_beginning_balance: Decimal
    statement_ending_balance: Decimal
    notes: Optional[str] = None

    @field_validator('statement_beginning_balance', 'statement_ending_balance')
    @classmethod
    def validate_balances(cls, v: Decimal) -> Decimal:
        return round_money(v)


class ReconciliationHistoryResponse(BaseModel):
    id: int
    account_id: int
    statement_date: date
    statement_beginning_balance: Decimal
    statement_ending_balance: Decimal
    reconciled_balance: Decimal
    difference: Decimal
    transaction_count: int
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ReconciliationResult(BaseModel):
    history: ReconciliationHistoryResponse
    reconciled_balance: Decimal
    difference: Decimal
    is_balanced: bool


class AccountReconcileRequest(BaseModel):
    """Single-account check: mark everything through a date once balances agree"""
    reconcile_date: date
    expected_balance: Decimal

    @field_validator('expected_balance')
    @classmethod
    def validate_expected_balance(cls, v: Decimal) -> Decimal:
        return round_money(v)


class AccountReconcileResult(BaseModel):
    reconciled_count: int
    balance: Decimal
