from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime, date
from decimal import Decimal

from pocket_ledger.models.money import round_money
from pocket_ledger.db.core import ReminderFrequency
from pocket_ledger.models.transaction import TransactionResponse


class ReminderCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    amount: Optional[Decimal] = None
    due_date: date
    frequency: ReminderFrequency = ReminderFrequency.ONE_TIME
    is_paid: bool = False
    category: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        return v.strip()

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round_money(v)


class ReminderUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    frequency: Optional[ReminderFrequency] = None
    is_paid: Optional[bool] = None
    category: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class ReminderResponse(BaseModel):
    id: int
    title: str
    amount: Optional[Decimal]
    due_date: date
    frequency: ReminderFrequency
    is_paid: bool
    linked_transaction_id: Optional[int]
    category: Optional[str]
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ReminderPayment(BaseModel):
    account_id: int
    actual_amount: Optional[Decimal] = None
    actual_date: Optional[date] = None


class ReminderPaymentResult(BaseModel):
    reminder: ReminderResponse
    transaction: TransactionResponse
    next_reminder: Optional[ReminderResponse] = None
