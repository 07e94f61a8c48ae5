# catalog/schemas.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from .sanitize import clean_string, normalize_currency, normalize_sku

class ProductBase(BaseModel):
    name: str = Field(..., max_length=200)
    sku: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=200)
    brand: Optional[str] = Field(None, max_length=200)
    model: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, max_length=200)
    currency: Optional[str] = Field(None, max_length=50)
    price: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(protected_namespaces=())

    @field_validator("name", "category", "brand", "model", "color", mode="before")
    @classmethod
    def _clean(cls, v):
        return clean_string(v) if isinstance(v, str) else v

    @field_validator("sku", mode="before")
    @classmethod
    def _sku(cls, v):
        return normalize_sku(v) if isinstance(v, str) else v

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v):
        return normalize_currency(v) if isinstance(v, str) else v

class ProductCreate(ProductBase):
    contentful_id: str = Field(..., max_length=200)
    source_created_at: Optional[datetime] = None
    source_updated_at: Optional[datetime] = None

    @field_validator("contentful_id", mode="before")
    @classmethod
    def _clean_id(cls, v):
        return clean_string(v) if isinstance(v, str) else v

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    sku: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    color: Optional[str] = None
    currency: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(protected_namespaces=())

    @field_validator("name", "sku", "category", "brand", "model", "color", mode="before")
    @classmethod
    def _clean(cls, v):
        return clean_string(v) if isinstance(v, str) else v

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v):
        s = clean_string(v) if isinstance(v, str) else v
        return s.upper() if s else s

class ProductOut(BaseModel):
    id: UUID
    contentful_id: str
    sku: Optional[str] = None
    name: str
    category: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    color: Optional[str] = None
    currency: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[int] = None
    source_updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

# listing rows may be a column projection, so every field is optional and
# the route drops the ones that were not selected
class ProductRow(BaseModel):
    id: Optional[UUID] = None
    contentful_id: Optional[str] = None
    sku: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    color: Optional[str] = None
    currency: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[int] = None
    source_created_at: Optional[datetime] = None
    source_updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

class ProductPage(BaseModel):
    offset: int
    limit: int
    total: int
    data: List[ProductRow]

class ProductDeleted(BaseModel):
    id: UUID
    deleted: bool

class LoginRequest(BaseModel):
    email: Optional[str] = None

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class OverviewReport(BaseModel):
    total: int
    deleted_count: int
    deleted_pct: float
    priced_count: int
    priced_pct: float
    no_price_count: int
    no_price_pct: float
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    price_avg: Optional[float] = None

class CategoryCount(BaseModel):
    category: Optional[str] = None
    total: int

class SyncRunOut(BaseModel):
    source: str
    processed: int
    pages: int
    cursor: Optional[datetime] = None
    elapsed_ms: int

class SyncStatusOut(BaseModel):
    source: str
    phase: str
    running: bool
    cursor: Optional[datetime] = None
    last_result: Optional[SyncRunOut] = None
    last_error: Optional[str] = None
