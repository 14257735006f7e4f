"""Every document action against every stored status.

Actions outside their allowed statuses must fail with BAD_REQUEST and leave
the stored status as it was; actions inside them must go through.
"""

from decimal import Decimal

import pytest

from app.core.exceptions import BadRequestError
from app.models.procurement import InvoiceStatus, PIStatus, POStatus
from app.schemas.procurement import PaymentCreate, PIUpdate
from app.services.procurement_service import (
    InvoiceService,
    ProformaInvoiceService,
    PurchaseOrderService,
)

PI_ACTIONS = {
    "send": lambda db, seller_id, pi_id: ProformaInvoiceService.send(db, seller_id, pi_id),
    "cancel": lambda db, seller_id, pi_id: ProformaInvoiceService.cancel(db, seller_id, pi_id),
    "delete": lambda db, seller_id, pi_id: ProformaInvoiceService.delete(db, seller_id, pi_id),
    "update": lambda db, seller_id, pi_id: ProformaInvoiceService.update(
        db, seller_id, pi_id, PIUpdate(notes="edited")
    ),
    "reopen": lambda db, seller_id, pi_id: ProformaInvoiceService.reopen(db, seller_id, pi_id),
}

PI_ALLOWED = {
    "send": {PIStatus.DRAFT},
    "cancel": {PIStatus.DRAFT, PIStatus.SENT},
    "delete": {PIStatus.DRAFT, PIStatus.CANCELLED},
    "update": {PIStatus.DRAFT},
    "reopen": {PIStatus.REVISION_REQUESTED},
}


def _status_update(target: POStatus):
    return lambda db, seller_id, po_id: PurchaseOrderService.update_status(db, seller_id, po_id, target)


PO_ACTIONS = {
    "acknowledge": lambda db, seller_id, po_id: PurchaseOrderService.acknowledge(db, seller_id, po_id),
    "cancel": lambda db, seller_id, po_id: PurchaseOrderService.cancel(db, seller_id, po_id),
    **{f"status-{target.value}": _status_update(target) for target in POStatus},
}

PO_ALLOWED = {
    "acknowledge": {POStatus.PENDING},
    "cancel": {POStatus.PENDING, POStatus.ACKNOWLEDGED, POStatus.IN_PROGRESS, POStatus.SHIPPED},
    "status-IN_PROGRESS": {POStatus.ACKNOWLEDGED},
    "status-SHIPPED": {POStatus.ACKNOWLEDGED, POStatus.IN_PROGRESS},
    "status-DELIVERED": {POStatus.SHIPPED},
}

INVOICE_ACTIONS = {
    "send": lambda db, seller_id, invoice_id: InvoiceService.send(db, seller_id, invoice_id),
    "record_payment": lambda db, seller_id, invoice_id: InvoiceService.record_payment(
        db, seller_id, invoice_id, PaymentCreate(amount=Decimal("1"))
    ),
    "cancel": lambda db, seller_id, invoice_id: InvoiceService.cancel(db, seller_id, invoice_id),
}

INVOICE_ALLOWED = {
    "send": {InvoiceStatus.DRAFT},
    "record_payment": {
        InvoiceStatus.SENT,
        InvoiceStatus.VIEWED,
        InvoiceStatus.UNPAID,
        InvoiceStatus.PARTIALLY_PAID,
        InvoiceStatus.OVERDUE,
    },
    "cancel": {InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.UNPAID},
}


def _pairs(actions: dict, allowed: dict, statuses, refused: bool) -> list:
    return [
        pytest.param(status, action, id=f"{status.value}-{action}")
        for action in actions
        for status in statuses
        if (status not in allowed.get(action, set())) == refused
    ]


def _force_status(db, document, status) -> None:
    document.status = status
    db.commit()


def _assert_refused(db, document, action, seller_id: int, status) -> None:
    with pytest.raises(BadRequestError) as exc:
        action(db, seller_id, document.id)
    assert exc.value.code == "BAD_REQUEST"
    db.rollback()
    db.refresh(document)
    assert document.status == status


@pytest.fixture
def draft_invoice(db_session, seller, delivered_po):
    return InvoiceService.generate_from_po(db_session, seller.id, delivered_po.id)


class TestProformaInvoiceGuards:

    @pytest.mark.parametrize("status, action", _pairs(PI_ACTIONS, PI_ALLOWED, PIStatus, refused=True))
    def test_refused(self, db_session, seller, draft_pi, status, action):
        _force_status(db_session, draft_pi, status)
        _assert_refused(db_session, draft_pi, PI_ACTIONS[action], seller.id, status)
        assert draft_pi.deleted_at is None

    @pytest.mark.parametrize("status, action", _pairs(PI_ACTIONS, PI_ALLOWED, PIStatus, refused=False))
    def test_allowed(self, db_session, seller, draft_pi, status, action):
        _force_status(db_session, draft_pi, status)
        PI_ACTIONS[action](db_session, seller.id, draft_pi.id)


class TestPurchaseOrderGuards:

    @pytest.mark.parametrize("status, action", _pairs(PO_ACTIONS, PO_ALLOWED, POStatus, refused=True))
    def test_refused(self, db_session, seller, pending_po, status, action):
        _force_status(db_session, pending_po, status)
        _assert_refused(db_session, pending_po, PO_ACTIONS[action], seller.id, status)

    @pytest.mark.parametrize("status, action", _pairs(PO_ACTIONS, PO_ALLOWED, POStatus, refused=False))
    def test_allowed(self, db_session, seller, pending_po, status, action):
        _force_status(db_session, pending_po, status)
        po = PO_ACTIONS[action](db_session, seller.id, pending_po.id)
        assert po.status != status


class TestInvoiceGuards:

    @pytest.mark.parametrize(
        "status, action", _pairs(INVOICE_ACTIONS, INVOICE_ALLOWED, InvoiceStatus, refused=True)
    )
    def test_refused(self, db_session, seller, draft_invoice, status, action):
        _force_status(db_session, draft_invoice, status)
        _assert_refused(db_session, draft_invoice, INVOICE_ACTIONS[action], seller.id, status)
        assert draft_invoice.paid_amount == Decimal("0.00")

    @pytest.mark.parametrize(
        "status, action", _pairs(INVOICE_ACTIONS, INVOICE_ALLOWED, InvoiceStatus, refused=False)
    )
    def test_allowed(self, db_session, seller, draft_invoice, status, action):
        _force_status(db_session, draft_invoice, status)
        INVOICE_ACTIONS[action](db_session, seller.id, draft_invoice.id)
