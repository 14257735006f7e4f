"""Read-only procurement analytics for one seller.

Aggregation happens in Python over the seller's live documents so that
derived statuses (an unsettled invoice past its due date counts as
OVERDUE) are applied the same way as everywhere else.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.db.base import as_utc, utcnow
from app.models.procurement import (
    Invoice,
    InvoiceStatus,
    PaymentRecord,
    PIItem,
    PIStatus,
    POStatus,
    ProformaInvoice,
    PurchaseOrder,
)
from app.services.procurement_state_machine import effective_invoice_status

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

PIPELINE_STATUSES = (
    PIStatus.DRAFT,
    PIStatus.SENT,
    PIStatus.UNDER_REVIEW,
    PIStatus.APPROVED,
    PIStatus.FULFILLED,
    PIStatus.BILLED,
    PIStatus.PAID,
)

PI_VALUE_STATUSES = (
    PIStatus.SENT,
    PIStatus.APPROVED,
    PIStatus.FULFILLED,
    PIStatus.BILLED,
    PIStatus.PAID,
)

AGING_STATUSES = (
    InvoiceStatus.SENT,
    InvoiceStatus.UNPAID,
    InvoiceStatus.PARTIALLY_PAID,
    InvoiceStatus.OVERDUE,
)

AGING_BUCKETS = ("current", "days1to30", "days31to60", "days61to90", "over90")


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    """Start of the reporting window; ``all`` starts at the epoch."""
    now = now or utcnow()
    if period == "7d":
        return now - timedelta(days=7)
    if period == "30d":
        return now - timedelta(days=30)
    if period == "90d":
        return now - timedelta(days=90)
    if period == "12m":
        try:
            return now.replace(year=now.year - 1)
        except ValueError:  # 29 February
            return now.replace(year=now.year - 1, day=28)
    return EPOCH


def aging_bucket(due_date: datetime, now: datetime) -> str:
    """Bucket by whole days past due (floor); not yet due is ``current``."""
    days_overdue = (now - as_utc(due_date)) // timedelta(days=1)
    if days_overdue <= 0:
        return "current"
    if days_overdue <= 30:
        return "days1to30"
    if days_overdue <= 60:
        return "days31to60"
    if days_overdue <= 90:
        return "days61to90"
    return "over90"


def month_starts(months: int, now: Optional[datetime] = None) -> List[datetime]:
    """First instant of each of the trailing ``months`` calendar months, oldest first."""
    now = now or utcnow()
    year, month = now.year, now.month
    starts = []
    for _ in range(months):
        starts.append(datetime(year, month, 1, tzinfo=timezone.utc))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


def _next_month(start: datetime) -> datetime:
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def _in_window(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    value = as_utc(value)
    return value is not None and start <= value <= end


def _money(values: Iterable[Decimal]) -> float:
    return float(sum(values, Decimal("0")))


class ProcurementAnalyticsService:

    @staticmethod
    def _pis(db: Session, seller_id: int) -> List[ProformaInvoice]:
        return list(db.execute(
            select(ProformaInvoice).where(ProformaInvoice.seller_id == seller_id)
        ).scalars().all())

    @staticmethod
    def _pos(db: Session, seller_id: int) -> List[PurchaseOrder]:
        return list(db.execute(
            select(PurchaseOrder).where(PurchaseOrder.seller_id == seller_id)
        ).scalars().all())

    @staticmethod
    def _invoices(db: Session, seller_id: int) -> List[Invoice]:
        return list(db.execute(
            select(Invoice).where(Invoice.seller_id == seller_id)
        ).scalars().all())

    @staticmethod
    def dashboard_summary(db: Session, seller_id: int, period: str = "30d",
                          now: Optional[datetime] = None) -> dict:
        """Counts and sums per document type.

        ``total`` counts (and the delivered/paid counts) are limited to
        documents created inside the window; the per-status counts and the
        value sums cover everything the seller has.
        """
        end = now or utcnow()
        start = period_start(period, end)

        pis = ProcurementAnalyticsService._pis(db, seller_id)
        pos = ProcurementAnalyticsService._pos(db, seller_id)
        invoices = ProcurementAnalyticsService._invoices(db, seller_id)
        effective = {inv.id: effective_invoice_status(inv.status, inv.due_date, end) for inv in invoices}

        paid_invoices = [inv for inv in invoices if inv.status == InvoiceStatus.PAID]
        collected = _money(inv.paid_amount for inv in paid_invoices)

        summary = {
            "period": period,
            "start_date": start,
            "end_date": end,
            "proforma_invoices": {
                "total": sum(1 for pi in pis if _in_window(pi.created_at, start, end)),
                "draft": sum(1 for pi in pis if pi.status == PIStatus.DRAFT),
                "sent": sum(1 for pi in pis if pi.status == PIStatus.SENT),
                "approved": sum(1 for pi in pis if pi.status == PIStatus.APPROVED),
                "total_value": _money(pi.total for pi in pis if pi.status in PI_VALUE_STATUSES),
            },
            "purchase_orders": {
                "total": sum(1 for po in pos if _in_window(po.created_at, start, end)),
                "pending": sum(1 for po in pos if po.status == POStatus.PENDING),
                "in_progress": sum(
                    1 for po in pos
                    if po.status in (POStatus.ACKNOWLEDGED, POStatus.IN_PROGRESS, POStatus.SHIPPED)
                ),
                "delivered": sum(
                    1 for po in pos
                    if po.status == POStatus.DELIVERED and _in_window(po.created_at, start, end)
                ),
                "total_value": _money(po.total for po in pos if po.status != POStatus.CANCELLED),
            },
            "invoices": {
                "total": sum(1 for inv in invoices if _in_window(inv.created_at, start, end)),
                "unpaid": sum(
                    1 for inv in invoices
                    if effective[inv.id] in (InvoiceStatus.UNPAID, InvoiceStatus.SENT)
                ),
                "paid": sum(1 for inv in paid_invoices if _in_window(inv.created_at, start, end)),
                "overdue": sum(1 for inv in invoices if effective[inv.id] == InvoiceStatus.OVERDUE),
                "total_billed": _money(
                    inv.total_amount for inv in invoices if inv.status != InvoiceStatus.CANCELLED
                ),
                "total_paid": collected,
            },
            "payments": {
                "pending": _money(
                    inv.balance_amount for inv in invoices
                    if effective[inv.id] in (
                        InvoiceStatus.UNPAID, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.SENT
                    )
                ),
                "overdue": _money(
                    inv.balance_amount for inv in invoices
                    if effective[inv.id] == InvoiceStatus.OVERDUE
                ),
                "collected": collected,
            },
        }
        return summary

    @staticmethod
    def pi_pipeline(db: Session, seller_id: int) -> List[dict]:
        stages: Dict[PIStatus, Tuple[int, Decimal]] = {status: (0, Decimal("0")) for status in PIPELINE_STATUSES}
        for pi in ProcurementAnalyticsService._pis(db, seller_id):
            if pi.status in stages:
                count, value = stages[pi.status]
                stages[pi.status] = (count + 1, value + pi.total)
        return [
            {"status": status.value, "count": count, "value": float(value)}
            for status, (count, value) in stages.items()
        ]

    @staticmethod
    def payment_aging(db: Session, seller_id: int, now: Optional[datetime] = None) -> dict:
        """Outstanding balances by days past due; each invoice lands in exactly one bucket."""
        now = now or utcnow()
        buckets = {name: Decimal("0") for name in AGING_BUCKETS}
        for invoice in ProcurementAnalyticsService._invoices(db, seller_id):
            if invoice.status not in AGING_STATUSES:
                continue
            buckets[aging_bucket(invoice.due_date, now)] += invoice.balance_amount
        return {name: float(amount) for name, amount in buckets.items()}

    @staticmethod
    def revenue_trend(db: Session, seller_id: int, months: int = 6,
                      now: Optional[datetime] = None) -> List[dict]:
        """Invoiced (by invoice creation) and collected (by payment date) per calendar month."""
        starts = month_starts(months, now)
        windows = OrderedDict((start, {"invoiced": Decimal("0"), "collected": Decimal("0")}) for start in starts)

        def window_for(value: Optional[datetime]) -> Optional[datetime]:
            value = as_utc(value)
            if value is None:
                return None
            for start in starts:
                if start <= value < _next_month(start):
                    return start
            return None

        for invoice in ProcurementAnalyticsService._invoices(db, seller_id):
            start = window_for(invoice.created_at)
            if start is not None:
                windows[start]["invoiced"] += invoice.total_amount

        payments = db.execute(
            select(PaymentRecord)
            .join(Invoice, PaymentRecord.invoice_id == Invoice.id)
            .where(Invoice.seller_id == seller_id)
        ).scalars().all()
        for payment in payments:
            start = window_for(payment.payment_date)
            if start is not None:
                windows[start]["collected"] += payment.amount

        return [
            {
                "month": start.strftime("%b %Y"),
                "start_date": start,
                "invoiced": float(values["invoiced"]),
                "collected": float(values["collected"]),
            }
            for start, values in windows.items()
        ]

    @staticmethod
    def top_products(db: Session, seller_id: int, limit: int = 5) -> List[dict]:
        """Products ranked by quoted value across non-cancelled proforma invoices."""
        items = db.execute(
            select(PIItem)
            .join(ProformaInvoice, PIItem.pi_id == ProformaInvoice.id)
            .where(
                ProformaInvoice.seller_id == seller_id,
                ProformaInvoice.status != PIStatus.CANCELLED,
                ProformaInvoice.deleted_at.is_(None),
            )
            .order_by(PIItem.id)
        ).scalars().all()

        products: Dict[int, dict] = {}
        for item in items:
            entry = products.setdefault(item.product_id, {
                "product_id": item.product_id,
                "description": item.description,
                "quantity": 0,
                "value": Decimal("0"),
            })
            entry["quantity"] += item.quantity
            entry["value"] += item.total_price

        ranked = sorted(products.values(), key=lambda p: p["value"], reverse=True)[:limit]
        return [{**p, "value": float(p["value"])} for p in ranked]

    @staticmethod
    def recent_pis(db: Session, seller_id: int, limit: int = 5) -> List[dict]:
        pis = db.execute(
            select(ProformaInvoice)
            .options(selectinload(ProformaInvoice.items))
            .where(ProformaInvoice.seller_id == seller_id)
            .order_by(ProformaInvoice.created_at.desc(), ProformaInvoice.id.desc())
            .limit(limit)
        ).scalars().all()
        return [
            {
                "id": pi.id,
                "number": pi.pi_number,
                "status": pi.status.value,
                "total": float(pi.total),
                "item_count": len(pi.items),
                "created_at": as_utc(pi.created_at),
            }
            for pi in pis
        ]

    @staticmethod
    def recent_pos(db: Session, seller_id: int, limit: int = 5) -> List[dict]:
        pos = db.execute(
            select(PurchaseOrder)
            .options(selectinload(PurchaseOrder.items))
            .where(PurchaseOrder.seller_id == seller_id)
            .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
            .limit(limit)
        ).scalars().all()
        return [
            {
                "id": po.id,
                "number": po.po_number,
                "status": po.status.value,
                "total": float(po.total),
                "item_count": len(po.items),
                "created_at": as_utc(po.created_at),
            }
            for po in pos
        ]
