from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from pocket_ledger.models.transaction import TransactionFilter


class SavedFilterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    filters: TransactionFilter = Field(default_factory=TransactionFilter)
    is_favorite: bool = False

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Filter name is required')
        return v


class SavedFilterUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    filters: Optional[TransactionFilter] = None
    is_favorite: Optional[bool] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('Filter name cannot be empty')
        return v


class SavedFilterResponse(BaseModel):
    id: int
    name: str
    filters: TransactionFilter
    is_favorite: bool
    created_at: datetime
    updated_at: datetime
