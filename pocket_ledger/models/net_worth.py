from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime, date
from decimal import Decimal

from pocket_ledger.models.money import round_money


class NetWorthCalculation(BaseModel):
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal


class NetWorthSnapshotCreate(BaseModel):
    """Manual snapshot entry; net worth is derived from the two totals"""
    snapshot_date: date
    total_assets: Decimal = Field(..., ge=0)
    total_liabilities: Decimal = Field(..., ge=0)
    notes: Optional[str] = None

    @field_validator('total_assets', 'total_liabilities')
    @classmethod
    def validate_totals(cls, v: Decimal) -> Decimal:
        return round_money(v)


class NetWorthSnapshotUpdate(BaseModel):
    snapshot_date: Optional[date] = None
    total_assets: Optional[Decimal] = Field(None, ge=0)
    total_liabilities: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class NetWorthSnapshotResponse(BaseModel):
    id: int
    snapshot_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class TakeSnapshotRequest(BaseModel):
    snapshot_date: Optional[date] = None


class NetWorthChange(BaseModel):
    amount: Decimal
    percentage: float
