from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import date
from decimal import Decimal

from pocket_ledger.models.money import round_money
from pocket_ledger.models.transaction import TransactionResponse


class TransferCreate(BaseModel):
    from_account_id: int
    to_account_id: int
    amount: Decimal = Field(..., description="Amount moved; must be positive")
    transfer_date: date
    memo: Optional[str] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        v = round_money(v)
        if v <= 0:
            raise ValueError('Transfer amount must be positive')
        return v

    @model_validator(mode='after')
    def validate_accounts(self):
        if self.from_account_id == self.to_account_id:
            raise ValueError('Cannot transfer to the same account')
        return self


class TransferResponse(BaseModel):
    withdrawal: TransactionResponse
    deposit: TransactionResponse
