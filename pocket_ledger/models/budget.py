from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime, date
from decimal import Decimal

from pocket_ledger.models.money import round_money
from enum import Enum

from pocket_ledger.db.core import BudgetPeriod

# ===== BUDGET PYDANTIC MODELS =====

class BudgetStatus(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    OVER = "over"


class BudgetCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=100, description="Category name the budget tracks")
    amount: Decimal = Field(..., ge=0, description="Budgeted amount per period")
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: date
    rollover: bool = False

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: str) -> str:
        return v.strip()

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round_money(v)


class BudgetUpdate(BaseModel):
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(None, ge=0)
    period: Optional[BudgetPeriod] = None
    start_date: Optional[date] = None
    rollover: Optional[bool] = None

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round_money(v)


class BudgetResponse(BaseModel):
    id: int
    category: str
    amount: Decimal
    period: BudgetPeriod
    start_date: date
    rollover: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BudgetWithSpending(BudgetResponse):
    spent: Decimal
    remaining: Decimal
    percentage: float
    status: BudgetStatus
