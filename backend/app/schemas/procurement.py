"""Procurement schemas: proforma invoices, purchase orders, invoices."""

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.procurement import (
    CreditTerms,
    InvoiceStatus,
    PaymentMethod,
    PIStatus,
    POStatus,
)


# --- Proforma invoices ---

class PIItemInput(BaseModel):
    product_id: int = Field(..., gt=0)
    variant_id: Optional[int] = Field(None, gt=0)
    description: str = Field(..., min_length=1, max_length=500)
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class PICreate(BaseModel):
    valid_until: Optional[datetime] = None
    credit_terms: CreditTerms = CreditTerms.NET_30
    delivery_terms: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = Field(None, max_length=5000)
    tax_rate: Decimal = Field(Decimal("18"), ge=0, le=100)
    discount: Decimal = Field(Decimal("0"), ge=0)
    items: List[PIItemInput] = Field(..., min_length=1)


class PIUpdate(BaseModel):
    """Partial update. Absent fields are left alone; ``items`` replaces the whole set."""

    valid_until: Optional[datetime] = None
    credit_terms: Optional[CreditTerms] = None
    delivery_terms: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = Field(None, max_length=5000)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    discount: Optional[Decimal] = Field(None, ge=0)
    items: Optional[List[PIItemInput]] = Field(None, min_length=1)


class PIItemResponse(BaseModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    description: str
    quantity: int
    unit_price: float
    total_price: float


class PIResponse(BaseModel):
    id: int
    pi_number: str
    status: PIStatus
    effective_status: PIStatus
    valid_until: datetime
    credit_terms: CreditTerms
    delivery_terms: Optional[str] = None
    notes: Optional[str] = None
    tax_rate: float
    discount: float
    subtotal: float
    tax_amount: float
    total: float
    items: List[PIItemResponse] = []
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BuyerResponseRequest(BaseModel):
    status: Literal["UNDER_REVIEW", "APPROVED", "REJECTED", "REVISION_REQUESTED"]
    notes: Optional[str] = None


# --- Purchase orders ---

class POAcknowledgeRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=5000)


class POStatusUpdateRequest(BaseModel):
    status: Literal["IN_PROGRESS", "SHIPPED", "DELIVERED"]
    tracking_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=5000)


class POItemQuantityUpdate(BaseModel):
    item_id: int = Field(..., gt=0)
    quantity_shipped: int = Field(..., ge=0)
    quantity_received: Optional[int] = Field(None, ge=0)


class POItemQuantitiesRequest(BaseModel):
    items: List[POItemQuantityUpdate] = Field(..., min_length=1)


class POCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class POItemResponse(BaseModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    description: str
    quantity: int
    unit_price: float
    total_price: float
    quantity_shipped: int
    quantity_received: int


class POResponse(BaseModel):
    id: int
    po_number: str
    pi_id: Optional[int] = None
    status: POStatus
    subtotal: float
    tax_amount: float
    discount: float
    total: float
    expected_delivery: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    tracking_number: Optional[str] = None
    internal_notes: Optional[str] = None
    client_notes: Optional[str] = None
    items: List[POItemResponse] = []
    created_at: Optional[datetime] = None


# --- Invoices ---

class InvoiceGenerateRequest(BaseModel):
    po_id: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=5000)
    payment_terms: Optional[str] = Field(None, max_length=255)


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    payment_date: Optional[datetime] = None
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)


class InvoiceItemResponse(BaseModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    description: str
    quantity: int
    unit_price: float
    total_price: float


class PaymentResponse(BaseModel):
    id: int
    amount: float
    payment_date: datetime
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    po_id: Optional[int] = None
    pi_id: Optional[int] = None
    status: InvoiceStatus
    effective_status: InvoiceStatus
    due_date: datetime
    tax_rate: float
    subtotal: float
    tax_amount: float
    discount: float
    total_amount: float
    paid_amount: float
    balance_amount: float
    payment_terms: Optional[str] = None
    notes: Optional[str] = None
    items: List[InvoiceItemResponse] = []
    payments: List[PaymentResponse] = []
    created_at: Optional[datetime] = None
