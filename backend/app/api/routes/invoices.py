"""Invoice API routes (seller side): billing delivered POs and recording payments."""

from typing import Literal, Optional

from fastapi import APIRouter, Query, Request

from app.core.rate_limit import limiter
from app.core.rbac import CurrentSeller
from app.core.validators import PositiveIntId
from app.db.base import as_utc
from app.db.session import DbSession
from app.models.procurement import Invoice, InvoiceStatus
from app.schemas.pagination import PaginatedResponse
from app.schemas.procurement import InvoiceGenerateRequest, InvoiceResponse, PaymentCreate
from app.services.procurement_service import InvoiceService
from app.services.procurement_state_machine import effective_invoice_status

router = APIRouter()


def _invoice_to_response(invoice: Invoice) -> dict:
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "po_id": invoice.po_id,
        "pi_id": invoice.pi_id,
        "status": invoice.status,
        "effective_status": effective_invoice_status(invoice.status, invoice.due_date),
        "due_date": as_utc(invoice.due_date),
        "tax_rate": float(invoice.tax_rate),
        "subtotal": float(invoice.subtotal),
        "tax_amount": float(invoice.tax_amount),
        "discount": float(invoice.discount),
        "total_amount": float(invoice.total_amount),
        "paid_amount": float(invoice.paid_amount),
        "balance_amount": float(invoice.balance_amount),
        "payment_terms": invoice.payment_terms,
        "notes": invoice.notes,
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "variant_id": item.variant_id,
                "description": item.description,
                "quantity": item.quantity,
                "unit_price": float(item.unit_price),
                "total_price": float(item.total_price),
            }
            for item in invoice.items
        ],
        "payments": [
            {
                "id": payment.id,
                "amount": float(payment.amount),
                "payment_date": as_utc(payment.payment_date),
                "method": payment.method,
                "reference": payment.reference,
                "notes": payment.notes,
            }
            for payment in invoice.payments
        ],
        "created_at": as_utc(invoice.created_at),
    }


@router.get("/", response_model=PaginatedResponse[InvoiceResponse])
@limiter.limit("60/minute")
def list_invoices(
    request: Request,
    db: DbSession,
    seller: CurrentSeller,
    status: Optional[InvoiceStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: Literal["created_at", "total_amount", "invoice_number", "due_date"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
):
    invoices, total = InvoiceService.list(
        db, seller.id, status=status, search=search,
        sort_by=sort_by, sort_order=sort_order, skip=skip, limit=limit,
    )
    return PaginatedResponse.create([_invoice_to_response(inv) for inv in invoices], total, skip, limit)


@router.post("/generate-from-po", response_model=InvoiceResponse, status_code=201)
@limiter.limit("30/minute")
def generate_invoice_from_po(
    request: Request, db: DbSession, seller: CurrentSeller, body: InvoiceGenerateRequest
):
    """Create a DRAFT invoice for a delivered purchase order (at most one per PO)."""
    invoice = InvoiceService.generate_from_po(
        db, seller.id, body.po_id, notes=body.notes, payment_terms=body.payment_terms
    )
    return _invoice_to_response(invoice)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
@limiter.limit("60/minute")
def get_invoice(request: Request, db: DbSession, seller: CurrentSeller, invoice_id: PositiveIntId):
    return _invoice_to_response(InvoiceService.get(db, seller.id, invoice_id))


@router.post("/{invoice_id}/send", response_model=InvoiceResponse)
@limiter.limit("30/minute")
def send_invoice(request: Request, db: DbSession, seller: CurrentSeller, invoice_id: PositiveIntId):
    return _invoice_to_response(InvoiceService.send(db, seller.id, invoice_id))


@router.post("/{invoice_id}/mark-unpaid", response_model=InvoiceResponse)
@limiter.limit("30/minute")
def mark_invoice_unpaid(request: Request, db: DbSession, seller: CurrentSeller, invoice_id: PositiveIntId):
    return _invoice_to_response(InvoiceService.mark_unpaid(db, seller.id, invoice_id))


@router.post("/{invoice_id}/payments", response_model=InvoiceResponse, status_code=201)
@limiter.limit("30/minute")
def record_invoice_payment(
    request: Request, db: DbSession, seller: CurrentSeller, invoice_id: PositiveIntId, body: PaymentCreate
):
    """Record a payment against the outstanding balance."""
    invoice = InvoiceService.record_payment(db, seller.id, invoice_id, body)
    return _invoice_to_response(invoice)


@router.post("/{invoice_id}/cancel", response_model=InvoiceResponse)
@limiter.limit("30/minute")
def cancel_invoice(request: Request, db: DbSession, seller: CurrentSeller, invoice_id: PositiveIntId):
    return _invoice_to_response(InvoiceService.cancel(db, seller.id, invoice_id))
