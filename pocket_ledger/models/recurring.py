from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal

from pocket_ledger.models.money import round_money
from pocket_ledger.db.core import RecurringFrequency
from pocket_ledger.models.transaction import TransactionResponse


class RecurringTransactionCreate(BaseModel):
    account_id: int
    amount: Decimal
    payee: str = Field(..., max_length=255)
    category: str = Field(default="", max_length=100)
    subcategory: Optional[str] = Field(None, max_length=100)
    memo: Optional[str] = None
    frequency: RecurringFrequency
    next_date: date
    end_date: Optional[date] = None
    is_active: bool = True

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round_money(v)

    @field_validator('payee')
    @classmethod
    def validate_payee(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Payee is required')
        return v


class RecurringTransactionUpdate(BaseModel):
    account_id: Optional[int] = None
    amount: Optional[Decimal] = None
    payee: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    subcategory: Optional[str] = Field(None, max_length=100)
    memo: Optional[str] = None
    frequency: Optional[RecurringFrequency] = None
    next_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round_money(v)


class RecurringTransactionResponse(BaseModel):
    id: int
    account_id: int
    amount: Decimal
    payee: str
    category: str
    subcategory: Optional[str]
    memo: Optional[str]
    frequency: RecurringFrequency
    next_date: date
    end_date: Optional[date]
    is_active: bool
    last_created_date: Optional[date]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RecurringProcessResult(BaseModel):
    created: List[TransactionResponse]
    deactivated_ids: List[int]
