from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict
from datetime import datetime
from decimal import Decimal

from pocket_ledger.models.money import round_money
from pocket_ledger.db.core import AccountType


# ===== ACCOUNT PYDANTIC MODELS =====

class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Account display name")
    account_type: AccountType = Field(..., description="Type of account")
    opening_balance: Decimal = Field(default=Decimal('0.00'), description="Balance when tracking started")
    currency: str = Field(default="USD", min_length=3, max_length=3, description="ISO currency code")
    institution_name: Optional[str] = Field(None, max_length=255, description="Financial institution name")
    account_number_last4: Optional[str] = Field(None, min_length=4, max_length=4, description="Last 4 digits of account number")
    is_active: bool = True

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Account name cannot be empty')
        return v

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator('account_number_last4')
    @classmethod
    def validate_account_number_last4(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not v.isdigit():
            raise ValueError('Account number last 4 digits must be numeric')
        return v

    @field_validator('opening_balance')
    @classmethod
    def validate_opening_balance(cls, v: Decimal) -> Decimal:
        return round_money(v)


class AccountUpdate(BaseModel):
    """Update account - all fields optional. Balances are owned by the ledger."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    account_type: Optional[AccountType] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    institution_name: Optional[str] = Field(None, max_length=255)
    account_number_last4: Optional[str] = Field(None, min_length=4, max_length=4)
    is_active: Optional[bool] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class AccountResponse(BaseModel):
    id: int
    name: str
    account_type: AccountType
    balance: Decimal
    opening_balance: Decimal
    currency: str
    institution_name: Optional[str]
    account_number_last4: Optional[str]
    is_active: bool
    balance_last_updated: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AccountBalanceSummary(BaseModel):
    """Totals across the user's active accounts"""
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    accounts_by_type: Dict[str, Decimal]
