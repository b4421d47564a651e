from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime, date
from decimal import Decimal

from pocket_ledger.models.money import round_money


class SavingsGoalCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    target_date: Optional[date] = None
    linked_account_id: Optional[int] = None
    color: str = Field(default="#10b981", max_length=7)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()

    @field_validator('target_amount', 'current_amount')
    @classmethod
    def validate_amounts(cls, v: Decimal) -> Decimal:
        return round_money(v)


class SavingsGoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    target_amount: Optional[Decimal] = Field(None, gt=0)
    current_amount: Optional[Decimal] = None
    target_date: Optional[date] = None
    linked_account_id: Optional[int] = None
    color: Optional[str] = Field(None, max_length=7)
    is_completed: Optional[bool] = None

    @field_validator('target_amount', 'current_amount')
    @classmethod
    def validate_amounts(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round_money(v)


class SavingsGoalContribution(BaseModel):
    amount: Decimal

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round_money(v)


class SavingsGoalResponse(BaseModel):
    id: int
    name: str
    target_amount: Decimal
    current_amount: Decimal
    target_date: Optional[date]
    linked_account_id: Optional[int]
    color: str
    is_completed: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SavingsGoalProgress(SavingsGoalResponse):
    progress: int
    monthly_savings_needed: Decimal
    days_remaining: int
