from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal

from pocket_ledger.models.money import round_money
from pocket_ledger.db.core import TransactionType


# ===== TRANSACTION PYDANTIC MODELS =====

class TransactionCreate(BaseModel):
    account_id: int = Field(..., description="Account ID for this transaction")
    transaction_date: date = Field(..., description="Calendar date of the transaction")
    amount: Decimal = Field(..., description="Signed amount: positive = inflow, negative = outflow")
    payee: str = Field(..., max_length=255, description="Who was paid or who paid")
    category: str = Field(default="", max_length=100, description="Category name")
    subcategory: Optional[str] = Field(None, max_length=100)
    memo: Optional[str] = Field(None, description="User memo")
    reconciled: bool = False
    transaction_type: Optional[TransactionType] = None
    recurring_transaction_id: Optional[int] = None
    import_id: Optional[str] = Field(None, max_length=64, description="Dedup key for imported rows")

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

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: str) -> str:
        return v.strip()


class TransactionUpdate(BaseModel):
    """Update transaction - all fields optional"""
    account_id: Optional[int] = None
    transaction_date: Optional[date] = None
    amount: Optional[Decimal] = None
    payee: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    subcategory: Optional[str] = Field(None, max_length=100)
    memo: Optional[str] = None
    reconciled: Optional[bool] = None
    transaction_type: Optional[TransactionType] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round_money(v)

    @field_validator('payee')
    @classmethod
    def validate_payee(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('Payee cannot be empty')
        return v

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class TransactionResponse(BaseModel):
    """Transaction data returned to client"""
    id: int
    account_id: int
    transaction_date: date
    amount: Decimal
    payee: str
    category: str
    subcategory: Optional[str]
    memo: Optional[str]
    reconciled: bool
    transaction_type: Optional[TransactionType]
    linked_transaction_id: Optional[int]
    recurring_transaction_id: Optional[int]
    import_id: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TransactionBulkCreate(BaseModel):
    """Bulk transaction import"""
    transactions: List[TransactionCreate] = Field(..., min_length=1)


class TransactionFilter(BaseModel):
    """Filter parameters for transaction queries"""
    account_ids: Optional[List[int]] = None
    categories: Optional[List[str]] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = Field(None, description="Case-insensitive match on payee or memo")
    amount_min: Optional[Decimal] = None
    amount_max: Optional[Decimal] = None
    reconciled: Optional[bool] = None
