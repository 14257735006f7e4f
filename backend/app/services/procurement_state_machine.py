"""Procurement state machines.

Single source of truth for proforma invoice, purchase order and invoice
status transitions. Services consult these tables before every status
change; anything not listed here is rejected with BAD_REQUEST and the
document is left untouched.

EXPIRED (proforma invoices) and OVERDUE (invoices) are derived from dates at
read time by ``effective_pi_status`` / ``effective_invoice_status`` instead
of being written by a background job.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from app.core.exceptions import BadRequestError
from app.db.base import as_utc, utcnow
from app.models.procurement import InvoiceStatus, PIStatus, POStatus

logger = logging.getLogger(__name__)


# =============================================================================
# TRANSITION RULES
# =============================================================================

PI_TRANSITIONS: Dict[PIStatus, List[PIStatus]] = {
    PIStatus.DRAFT: [PIStatus.SENT, PIStatus.CANCELLED],
    PIStatus.SENT: [
        PIStatus.UNDER_REVIEW,
        PIStatus.APPROVED,
        PIStatus.REJECTED,
        PIStatus.REVISION_REQUESTED,
        PIStatus.CANCELLED,
    ],
    PIStatus.UNDER_REVIEW: [
        PIStatus.APPROVED,
        PIStatus.REJECTED,
        PIStatus.REVISION_REQUESTED,
    ],
    PIStatus.REVISION_REQUESTED: [PIStatus.DRAFT],  # Seller reopens to revise
    PIStatus.APPROVED: [PIStatus.PO_GENERATED],
    PIStatus.PO_GENERATED: [PIStatus.FULFILLED, PIStatus.BILLED],
    PIStatus.FULFILLED: [PIStatus.BILLED],
    PIStatus.BILLED: [PIStatus.PAID],
    PIStatus.PAID: [],
    PIStatus.REJECTED: [],
    PIStatus.CANCELLED: [],
    PIStatus.EXPIRED: [],
}

PO_TRANSITIONS: Dict[POStatus, List[POStatus]] = {
    POStatus.PENDING: [POStatus.ACKNOWLEDGED, POStatus.CANCELLED],
    POStatus.ACKNOWLEDGED: [POStatus.IN_PROGRESS, POStatus.SHIPPED, POStatus.CANCELLED],
    POStatus.IN_PROGRESS: [POStatus.SHIPPED, POStatus.CANCELLED],
    POStatus.SHIPPED: [POStatus.DELIVERED, POStatus.CANCELLED],
    POStatus.DELIVERED: [],
    POStatus.CANCELLED: [],
}

INVOICE_TRANSITIONS: Dict[InvoiceStatus, List[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: [InvoiceStatus.SENT, InvoiceStatus.CANCELLED],
    InvoiceStatus.SENT: [
        InvoiceStatus.VIEWED,
        InvoiceStatus.UNPAID,
        InvoiceStatus.PARTIALLY_PAID,
        InvoiceStatus.PAID,
        InvoiceStatus.OVERDUE,
        InvoiceStatus.CANCELLED,
    ],
    InvoiceStatus.VIEWED: [
        InvoiceStatus.UNPAID,
        InvoiceStatus.PARTIALLY_PAID,
        InvoiceStatus.PAID,
        InvoiceStatus.OVERDUE,
        InvoiceStatus.CANCELLED,
    ],
    InvoiceStatus.UNPAID: [
        InvoiceStatus.PARTIALLY_PAID,
        InvoiceStatus.PAID,
        InvoiceStatus.OVERDUE,
        InvoiceStatus.CANCELLED,
    ],
    InvoiceStatus.PARTIALLY_PAID: [
        InvoiceStatus.PARTIALLY_PAID,
        InvoiceStatus.PAID,
        InvoiceStatus.OVERDUE,
    ],
    InvoiceStatus.OVERDUE: [InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID],
    InvoiceStatus.PAID: [],
    InvoiceStatus.CANCELLED: [],
}

# Subset of PO transitions reachable through the status update endpoint
PO_STATUS_UPDATE_TARGETS = (POStatus.IN_PROGRESS, POStatus.SHIPPED, POStatus.DELIVERED)

PI_CANCELLABLE = (PIStatus.DRAFT, PIStatus.SENT)
PI_DELETABLE = (PIStatus.DRAFT, PIStatus.CANCELLED)
PI_BUYER_RESPONSES = (
    PIStatus.UNDER_REVIEW,
    PIStatus.APPROVED,
    PIStatus.REJECTED,
    PIStatus.REVISION_REQUESTED,
)
PI_EXPIRABLE = (PIStatus.SENT, PIStatus.UNDER_REVIEW, PIStatus.REVISION_REQUESTED)

INVOICE_PAYABLE = (
    InvoiceStatus.SENT,
    InvoiceStatus.VIEWED,
    InvoiceStatus.UNPAID,
    InvoiceStatus.PARTIALLY_PAID,
    InvoiceStatus.OVERDUE,
)
INVOICE_OVERDUE_CANDIDATES = (
    InvoiceStatus.SENT,
    InvoiceStatus.VIEWED,
    InvoiceStatus.UNPAID,
    InvoiceStatus.PARTIALLY_PAID,
)


_TABLES = {
    PIStatus: PI_TRANSITIONS,
    POStatus: PO_TRANSITIONS,
    InvoiceStatus: INVOICE_TRANSITIONS,
}


def can_transition(current, new) -> bool:
    """Check if a transition is allowed."""
    table = _TABLES[type(current)]
    return new in table.get(current, [])


def get_allowed_transitions(current) -> list:
    return list(_TABLES[type(current)].get(current, []))


def validate_transition(current, new, message: Optional[str] = None) -> None:
    """Raise BadRequestError unless ``current -> new`` is in the table."""
    if not can_transition(current, new):
        detail = message or f"Cannot transition from {current.value} to {new.value}"
        logger.warning(f"Rejected status transition {current.value} -> {new.value}")
        raise BadRequestError(detail)


# =============================================================================
# DERIVED STATES
# =============================================================================

def effective_pi_status(status: PIStatus, valid_until: Optional[datetime],
                        now: Optional[datetime] = None) -> PIStatus:
    """EXPIRED for an outstanding proforma invoice whose validity has passed."""
    now = now or utcnow()
    if status in PI_EXPIRABLE and valid_until is not None and as_utc(valid_until) < now:
        return PIStatus.EXPIRED
    return status


def effective_invoice_status(status: InvoiceStatus, due_date: Optional[datetime],
                             now: Optional[datetime] = None) -> InvoiceStatus:
    """OVERDUE for an unsettled invoice past its due date."""
    now = now or utcnow()
    if status in INVOICE_OVERDUE_CANDIDATES and due_date is not None and as_utc(due_date) < now:
        return InvoiceStatus.OVERDUE
    return status
