from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import date
from decimal import Decimal

from pocket_ledger.models.money import round_money


class CSVColumnMapping(BaseModel):
    """Header name for each field. Amount comes from one column or from a debit/credit pair."""
    date: Optional[str] = None
    amount: Optional[str] = None
    debit: Optional[str] = None
    credit: Optional[str] = None
    payee: Optional[str] = None
    memo: Optional[str] = None
    category: Optional[str] = None

    @model_validator(mode='after')
    def validate_amount_source(self):
        if self.amount and (self.debit or self.credit):
            raise ValueError('Map either an amount column or debit/credit columns, not both')
        return self


class ParsedCSV(BaseModel):
    headers: List[str]
    rows: List[Dict[str, str]]


class CSVImportRow(BaseModel):
    transaction_date: date
    amount: Decimal
    payee: str
    memo: Optional[str] = None
    category: Optional[str] = None
    is_duplicate: bool = False
    error: Optional[str] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round_money(v)


class ImportPreview(BaseModel):
    headers: List[str]
    rows: List[CSVImportRow]
    duplicate_count: int
    error_count: int


class ImportCommit(BaseModel):
    account_id: int
    rows: List[CSVImportRow] = Field(..., min_length=1)
    skip_duplicates: bool = True


class ImportResult(BaseModel):
    created: int
    skipped_duplicates: int
    skipped_errors: int
