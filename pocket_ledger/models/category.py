from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from pocket_ledger.db.core import CategoryType


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category_type: CategoryType
    color: str = Field(default="#64748b", pattern=r"^#[0-9a-fA-F]{6}$")
    icon: Optional[str] = Field(None, max_length=50)
    sort_order: int = 0

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Category name cannot be empty')
        return v


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category_type: Optional[CategoryType] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    icon: Optional[str] = Field(None, max_length=50)
    sort_order: Optional[int] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class CategoryResponse(BaseModel):
    id: int
    name: str
    category_type: CategoryType
    color: str
    icon: Optional[str]
    sort_order: int
    created_at: datetime

    class Config:
        from_attributes = True
