"""Inventory schemas: products, variants and their bin placements."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.product import ProductStatus


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    base_price: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    status: ProductStatus = ProductStatus.ACTIVE
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    barcode: Optional[str] = Field(None, pattern=r"^\d{8,14}$")


class ProductUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    base_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    status: Optional[ProductStatus] = None


class VariantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    attributes: Dict[str, Any] = Field(default_factory=dict)
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    barcode: Optional[str] = Field(None, pattern=r"^\d{8,14}$")


class VariantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    attributes: Optional[Dict[str, Any]] = None


class LocationAssign(BaseModel):
    """Exactly one of ``product_id`` / ``product_variant_id`` must be given."""

    product_id: Optional[int] = Field(None, gt=0)
    product_variant_id: Optional[int] = Field(None, gt=0)
    bin_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=2000)


class LocationQuantityUpdate(BaseModel):
    quantity: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=2000)


class ProductLocationResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_variant_id: Optional[int] = None
    bin_id: int
    quantity: int
    notes: Optional[str] = None
    location_code: Optional[str] = None


class VariantResponse(BaseModel):
    id: int
    product_id: int
    name: str
    sku: str
    barcode: str
    price: float
    attributes: Dict[str, Any] = {}
    locations: List[ProductLocationResponse] = []


class ProductResponse(BaseModel):
    id: int
    product_code: str
    name: str
    description: Optional[str] = None
    sku: str
    barcode: str
    base_price: float
    status: ProductStatus
    variant_count: int = 0
    created_at: Optional[datetime] = None


class ProductDetailResponse(ProductResponse):
    variants: List[VariantResponse] = []
    locations: List[ProductLocationResponse] = []
