"""
Product inventory models
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from enum import Enum
from .base import BaseEntity, TimestampMixin


class ProductStatus(str, Enum):
    """Product status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class ProductBase(BaseModel):
    """Product fields"""
    name: str = Field(..., min_length=1, max_length=200, description="Product name")
    category: Optional[str] = Field(None, max_length=100, description="Product category")
    unit: str = Field(..., min_length=1, max_length=20, description="Stock unit, e.g. g, kg, l, pcs")
    stock_quantity: float = Field(0, ge=0, description="Available stock in unit")
    min_stock_level: float = Field(0, ge=0, description="Low-stock alert threshold")
    status: ProductStatus = Field(ProductStatus.ACTIVE, description="Product status")

    @field_validator("name", "unit")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    """Partial product update; stock changes go through increase/decrease"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    unit: Optional[str] = Field(None, min_length=1, max_length=20)
    min_stock_level: Optional[float] = Field(None, ge=0)
    status: Optional[ProductStatus] = None


class Product(ProductBase, BaseEntity, TimestampMixin):
    """Stored product"""
    product_id: int = Field(..., description="Product ID")

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity < self.min_stock_level
