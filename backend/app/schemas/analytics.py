"""Procurement analytics schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

Period = Literal["7d", "30d", "90d", "12m", "all"]


class PISummary(BaseModel):
    total: int
    draft: int
    sent: int
    approved: int
    total_value: float


class POSummary(BaseModel):
    total: int
    pending: int
    in_progress: int
    delivered: int
    total_value: float


class InvoiceSummary(BaseModel):
    total: int
    unpaid: int
    paid: int
    overdue: int
    total_billed: float
    total_paid: float


class PaymentSummary(BaseModel):
    pending: float
    overdue: float
    collected: float


class DashboardSummary(BaseModel):
    period: Period
    start_date: datetime
    end_date: datetime
    proforma_invoices: PISummary
    purchase_orders: POSummary
    invoices: InvoiceSummary
    payments: PaymentSummary


class PipelineStage(BaseModel):
    status: str
    count: int
    value: float


class PaymentAging(BaseModel):
    current: float
    days1to30: float
    days31to60: float
    days61to90: float
    over90: float


class RevenueMonth(BaseModel):
    month: str
    start_date: datetime
    invoiced: float
    collected: float


class TopProduct(BaseModel):
    product_id: int
    description: str
    quantity: int
    value: float


class RecentDocument(BaseModel):
    id: int
    number: str
    status: str
    total: float
    item_count: int
    created_at: Optional[datetime] = None
