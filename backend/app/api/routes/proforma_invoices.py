"""Proforma invoice API routes (seller side)."""

from typing import Literal, Optional

from fastapi import APIRouter, Query, Request

from app.core.rate_limit import limiter
from app.core.rbac import CurrentSeller
from app.core.validators import PositiveIntId
from app.db.base import as_utc
from app.db.session import DbSession
from app.models.procurement import PIStatus, ProformaInvoice
from app.schemas.pagination import PaginatedResponse
from app.schemas.procurement import PICreate, PIResponse, PIUpdate
from app.services.procurement_service import ProformaInvoiceService
from app.services.procurement_state_machine import effective_pi_status

router = APIRouter()


def _pi_to_response(pi: ProformaInvoice) -> dict:
    return {
        "id": pi.id,
        "pi_number": pi.pi_number,
        "status": pi.status,
        "effective_status": effective_pi_status(pi.status, pi.valid_until),
        "valid_until": as_utc(pi.valid_until),
        "credit_terms": pi.credit_terms,
        "delivery_terms": pi.delivery_terms,
        "notes": pi.notes,
        "tax_rate": float(pi.tax_rate),
        "discount": float(pi.discount),
        "subtotal": float(pi.subtotal),
        "tax_amount": float(pi.tax_amount),
        "total": float(pi.total),
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
            for item in pi.items
        ],
        "sent_at": as_utc(pi.sent_at),
        "created_at": as_utc(pi.created_at),
        "updated_at": as_utc(pi.updated_at),
    }


@router.get("/", response_model=PaginatedResponse[PIResponse])
@limiter.limit("60/minute")
def list_proforma_invoices(
    request: Request,
    db: DbSession,
    seller: CurrentSeller,
    status: Optional[PIStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: Literal["created_at", "total", "pi_number", "valid_until"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
):
    """List the seller's proforma invoices."""
    pis, total = ProformaInvoiceService.list(
        db, seller.id, status=status, search=search,
        sort_by=sort_by, sort_order=sort_order, skip=skip, limit=limit,
    )
    return PaginatedResponse.create([_pi_to_response(pi) for pi in pis], total, skip, limit)


@router.post("/", response_model=PIResponse, status_code=201)
@limiter.limit("30/minute")
def create_proforma_invoice(request: Request, db: DbSession, seller: CurrentSeller, body: PICreate):
    """Create a DRAFT proforma invoice; totals are computed server side."""
    pi = ProformaInvoiceService.create(db, seller.id, body)
    return _pi_to_response(pi)


@router.get("/{pi_id}", response_model=PIResponse)
@limiter.limit("60/minute")
def get_proforma_invoice(request: Request, db: DbSession, seller: CurrentSeller, pi_id: PositiveIntId):
    return _pi_to_response(ProformaInvoiceService.get(db, seller.id, pi_id))


@router.put("/{pi_id}", response_model=PIResponse)
@limiter.limit("30/minute")
def update_proforma_invoice(
    request: Request, db: DbSession, seller: CurrentSeller, pi_id: PositiveIntId, body: PIUpdate
):
    """Edit a DRAFT proforma invoice. Sending ``items`` replaces all lines."""
    pi = ProformaInvoiceService.update(db, seller.id, pi_id, body)
    return _pi_to_response(pi)


@router.post("/{pi_id}/send", response_model=PIResponse)
@limiter.limit("30/minute")
def send_proforma_invoice(request: Request, db: DbSession, seller: CurrentSeller, pi_id: PositiveIntId):
    return _pi_to_response(ProformaInvoiceService.send(db, seller.id, pi_id))


@router.post("/{pi_id}/cancel", response_model=PIResponse)
@limiter.limit("30/minute")
def cancel_proforma_invoice(request: Request, db: DbSession, seller: CurrentSeller, pi_id: PositiveIntId):
    return _pi_to_response(ProformaInvoiceService.cancel(db, seller.id, pi_id))


@router.post("/{pi_id}/reopen", response_model=PIResponse)
@limiter.limit("30/minute")
def reopen_proforma_invoice(request: Request, db: DbSession, seller: CurrentSeller, pi_id: PositiveIntId):
    """Move a PI the buyer sent back for revision into DRAFT."""
    return _pi_to_response(ProformaInvoiceService.reopen(db, seller.id, pi_id))


@router.delete("/{pi_id}", status_code=204)
@limiter.limit("30/minute")
def delete_proforma_invoice(request: Request, db: DbSession, seller: CurrentSeller, pi_id: PositiveIntId):
    ProformaInvoiceService.delete(db, seller.id, pi_id)
