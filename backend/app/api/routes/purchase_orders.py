"""Purchase order API routes (seller side).

Purchase orders are raised by buyers against approved proforma invoices;
the seller acknowledges, fulfils and ships them here.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Query, Request

from app.core.rate_limit import limiter
from app.core.rbac import CurrentSeller
from app.core.validators import PositiveIntId
from app.db.base import as_utc
from app.db.session import DbSession
from app.models.procurement import POStatus, PurchaseOrder
from app.schemas.pagination import PaginatedResponse
from app.schemas.procurement import (
    POAcknowledgeRequest,
    POCancelRequest,
    POItemQuantitiesRequest,
    POResponse,
    POStatusUpdateRequest,
)
from app.services.procurement_service import PurchaseOrderService

router = APIRouter()


def _po_to_response(po: PurchaseOrder) -> dict:
    """Convert a PurchaseOrder model to a response dict."""
    return {
        "id": po.id,
        "po_number": po.po_number,
        "pi_id": po.pi_id,
        "status": po.status,
        "subtotal": float(po.subtotal),
        "tax_amount": float(po.tax_amount),
        "discount": float(po.discount),
        "total": float(po.total),
        "expected_delivery": as_utc(po.expected_delivery),
        "acknowledged_at": as_utc(po.acknowledged_at),
        "shipped_at": as_utc(po.shipped_at),
        "delivered_at": as_utc(po.delivered_at),
        "tracking_number": po.tracking_number,
        "internal_notes": po.internal_notes,
        "client_notes": po.client_notes,
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "variant_id": item.variant_id,
                "description": item.description,
                "quantity": item.quantity,
                "unit_price": float(item.unit_price),
                "total_price": float(item.total_price),
                "quantity_shipped": item.quantity_shipped,
                "quantity_received": item.quantity_received,
            }
            for item in po.items
        ],
        "created_at": as_utc(po.created_at),
    }


@router.get("/", response_model=PaginatedResponse[POResponse])
@limiter.limit("60/minute")
def list_purchase_orders(
    request: Request,
    db: DbSession,
    seller: CurrentSeller,
    status: Optional[POStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: Literal["created_at", "total", "po_number", "expected_delivery"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
):
    """Get the seller's purchase orders."""
    pos, total = PurchaseOrderService.list(
        db, seller.id, status=status, search=search,
        sort_by=sort_by, sort_order=sort_order, skip=skip, limit=limit,
    )
    return PaginatedResponse.create([_po_to_response(po) for po in pos], total, skip, limit)


@router.get("/{po_id}", response_model=POResponse)
@limiter.limit("60/minute")
def get_purchase_order(request: Request, db: DbSession, seller: CurrentSeller, po_id: PositiveIntId):
    return _po_to_response(PurchaseOrderService.get(db, seller.id, po_id))


@router.post("/{po_id}/acknowledge", response_model=POResponse)
@limiter.limit("30/minute")
def acknowledge_purchase_order(
    request: Request,
    db: DbSession,
    seller: CurrentSeller,
    po_id: PositiveIntId,
    body: Optional[POAcknowledgeRequest] = None,
):
    notes = body.notes if body else None
    return _po_to_response(PurchaseOrderService.acknowledge(db, seller.id, po_id, notes))


@router.patch("/{po_id}/status", response_model=POResponse)
@limiter.limit("30/minute")
def update_purchase_order_status(
    request: Request, db: DbSession, seller: CurrentSeller, po_id: PositiveIntId, body: POStatusUpdateRequest
):
    """Advance a PO to IN_PROGRESS, SHIPPED or DELIVERED."""
    po = PurchaseOrderService.update_status(
        db, seller.id, po_id, POStatus(body.status),
        tracking_number=body.tracking_number, notes=body.notes,
    )
    return _po_to_response(po)


@router.patch("/{po_id}/items", response_model=POResponse)
@limiter.limit("30/minute")
def update_purchase_order_items(
    request: Request, db: DbSession, seller: CurrentSeller, po_id: PositiveIntId, body: POItemQuantitiesRequest
):
    """Record shipped and received quantities per line."""
    po = PurchaseOrderService.update_item_quantities(db, seller.id, po_id, body.items)
    return _po_to_response(po)


@router.post("/{po_id}/cancel", response_model=POResponse)
@limiter.limit("30/minute")
def cancel_purchase_order(
    request: Request,
    db: DbSession,
    seller: CurrentSeller,
    po_id: PositiveIntId,
    body: Optional[POCancelRequest] = None,
):
    reason = body.reason if body else None
    return _po_to_response(PurchaseOrderService.cancel(db, seller.id, po_id, reason))
