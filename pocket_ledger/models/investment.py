from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from pocket_ledger.models.money import MAX_PRICE, MAX_SHARES, round_money
from pocket_ledger.db.core import AssetType


# ===== INVESTMENT PYDANTIC MODELS =====

class InvestmentHoldingCreate(BaseModel):
    account_id: int
    symbol: str = Field(..., min_length=1, max_length=20)
    name: Optional[str] = Field(None, max_length=255)
    shares: Decimal = Field(..., ge=0, lt=MAX_SHARES)
    cost_basis: Decimal = Field(..., ge=0, description="Total amount paid for all shares")
    current_price: Optional[Decimal] = Field(None, ge=0, lt=MAX_PRICE)
    asset_type: AssetType = AssetType.STOCK

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator('cost_basis')
    @classmethod
    def validate_cost_basis(cls, v: Decimal) -> Decimal:
        return round_money(v)


class InvestmentHoldingUpdate(BaseModel):
    symbol: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, max_length=255)
    shares: Optional[Decimal] = Field(None, ge=0, lt=MAX_SHARES)
    cost_basis: Optional[Decimal] = Field(None, ge=0)
    current_price: Optional[Decimal] = Field(None, ge=0, lt=MAX_PRICE)
    asset_type: Optional[AssetType] = None

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class InvestmentHoldingResponse(BaseModel):
    id: int
    account_id: int
    symbol: str
    name: Optional[str]
    shares: Decimal
    cost_basis: Decimal
    current_price: Optional[Decimal]
    asset_type: AssetType
    last_updated: Optional[datetime]

    class Config:
        from_attributes = True


class BuySharesRequest(BaseModel):
    account_id: int
    symbol: str = Field(..., min_length=1, max_length=20)
    shares: Decimal = Field(..., gt=0, lt=MAX_SHARES)
    price_per_share: Decimal = Field(..., ge=0, lt=MAX_PRICE)
    name: Optional[str] = None
    asset_type: AssetType = AssetType.STOCK

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        return v.strip().upper()


class SellSharesRequest(BaseModel):
    shares: Decimal = Field(..., gt=0, lt=MAX_SHARES)
    price_per_share: Decimal = Field(..., ge=0, lt=MAX_PRICE)


class PriceUpdate(BaseModel):
    current_price: Decimal = Field(..., ge=0, lt=MAX_PRICE)


class HoldingGainLoss(BaseModel):
    amount: Decimal
    percentage: float


class PortfolioSummary(BaseModel):
    holdings: List[InvestmentHoldingResponse]
    total_value: Decimal
    total_cost_basis: Decimal
    total_gain_loss: Decimal
    total_gain_loss_percentage: float
