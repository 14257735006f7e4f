"""Procurement workflow service tests: PI -> PO -> Invoice -> Payment."""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import BadRequestError, NotFoundError
from app.db.base import utcnow
from app.models.procurement import (
    CreditTerms,
    Invoice,
    InvoiceStatus,
    PIStatus,
    POStatus,
    ProformaInvoice,
)
from app.schemas.procurement import (
    PaymentCreate,
    PICreate,
    PIItemInput,
    PIUpdate,
    POItemQuantityUpdate,
)
from app.services.procurement_service import (
    InvoiceService,
    ProformaInvoiceService,
    PurchaseOrderService,
)


def _item(product, quantity, price):
    return PIItemInput(
        product_id=product.id, description=product.name, quantity=quantity, unit_price=Decimal(price)
    )


class TestProformaInvoices:

    def test_create_computes_totals(self, db_session, seller, product, second_product):
        pi = ProformaInvoiceService.create(db_session, seller.id, PICreate(
            items=[_item(product, 2, "100"), _item(second_product, 1, "50")],
            tax_rate=Decimal("18"),
        ))
        assert pi.status == PIStatus.DRAFT
        assert pi.subtotal == Decimal("250.00")
        assert pi.tax_amount == Decimal("45.00")
        assert pi.total == Decimal("295.00")
        assert pi.pi_number == f"PI-{utcnow().year}-00001"
        assert len(pi.items) == 2

    def test_create_rejects_foreign_product(self, db_session, seller, other_product):
        with pytest.raises(NotFoundError, match="Product not found"):
            ProformaInvoiceService.create(db_session, seller.id, PICreate(items=[_item(other_product, 1, "1")]))

    def test_send_without_items_fails_and_stays_draft(self, db_session, seller):
        pi = ProformaInvoice(
            pi_number="PI-2000-00001",
            seller_id=seller.id,
            valid_until=utcnow() + timedelta(days=30),
        )
        db_session.add(pi)
        db_session.commit()

        with pytest.raises(BadRequestError, match="at least one item"):
            ProformaInvoiceService.send(db_session, seller.id, pi.id)
        db_session.refresh(pi)
        assert pi.status == PIStatus.DRAFT

    def test_send_refuses_lapsed_validity(self, db_session, seller, draft_pi):
        draft_pi.valid_until = utcnow() - timedelta(minutes=5)
        db_session.commit()

        with pytest.raises(BadRequestError, match="PI validity date has passed"):
            ProformaInvoiceService.send(db_session, seller.id, draft_pi.id)
        db_session.refresh(draft_pi)
        assert draft_pi.status == PIStatus.DRAFT
        assert draft_pi.sent_at is None

    def test_update_replaces_items_and_recomputes(self, db_session, seller, draft_pi, second_product):
        pi = ProformaInvoiceService.update(db_session, seller.id, draft_pi.id, PIUpdate(
            items=[_item(second_product, 4, "2.50")], discount=Decimal("1"),
        ))
        assert [item.product_id for item in pi.items] == [second_product.id]
        assert pi.subtotal == Decimal("10.00")
        assert pi.tax_amount == Decimal("1.62")
        assert pi.total == Decimal("10.62")

    def test_update_leaves_absent_fields_alone(self, db_session, seller, draft_pi):
        pi = ProformaInvoiceService.update(db_session, seller.id, draft_pi.id, PIUpdate(notes="rush"))
        assert pi.notes == "rush"
        assert pi.total == Decimal("236.00")

    def test_update_rejects_null_for_required_field(self, db_session, seller, draft_pi):
        with pytest.raises(BadRequestError, match="tax_rate cannot be null"):
            ProformaInvoiceService.update(db_session, seller.id, draft_pi.id, PIUpdate(tax_rate=None))

    def test_only_draft_is_editable(self, db_session, seller, draft_pi):
        ProformaInvoiceService.send(db_session, seller.id, draft_pi.id)
        with pytest.raises(BadRequestError, match="DRAFT"):
            ProformaInvoiceService.update(db_session, seller.id, draft_pi.id, PIUpdate(notes="x"))

    def test_cancel_then_delete(self, db_session, seller, draft_pi):
        ProformaInvoiceService.send(db_session, seller.id, draft_pi.id)
        ProformaInvoiceService.cancel(db_session, seller.id, draft_pi.id)
        ProformaInvoiceService.delete(db_session, seller.id, draft_pi.id)
        with pytest.raises(NotFoundError):
            ProformaInvoiceService.get(db_session, seller.id, draft_pi.id)

    def test_cannot_delete_sent(self, db_session, seller, draft_pi):
        ProformaInvoiceService.send(db_session, seller.id, draft_pi.id)
        with pytest.raises(BadRequestError, match="Can only delete PI"):
            ProformaInvoiceService.delete(db_session, seller.id, draft_pi.id)

    def test_revision_request_and_reopen(self, db_session, seller, draft_pi):
        ProformaInvoiceService.send(db_session, seller.id, draft_pi.id)
        ProformaInvoiceService.record_buyer_response(
            db_session, draft_pi.id, PIStatus.REVISION_REQUESTED, "lower the price"
        )
        pi = ProformaInvoiceService.reopen(db_session, seller.id, draft_pi.id)
        assert pi.status == PIStatus.DRAFT
        assert pi.buyer_notes == "lower the price"

    def test_expired_pi_refuses_buyer_response(self, db_session, seller, draft_pi):
        ProformaInvoiceService.send(db_session, seller.id, draft_pi.id)
        draft_pi.valid_until = utcnow() - timedelta(days=1)
        db_session.commit()
        with pytest.raises(BadRequestError, match="expired"):
            ProformaInvoiceService.record_buyer_response(db_session, draft_pi.id, PIStatus.APPROVED)

    def test_list_filters_and_counts(self, db_session, seller, draft_pi, product):
        ProformaInvoiceService.create(db_session, seller.id, PICreate(items=[_item(product, 1, "5")]))
        ProformaInvoiceService.send(db_session, seller.id, draft_pi.id)

        items, total = ProformaInvoiceService.list(db_session, seller.id, status=PIStatus.SENT)
        assert total == 1
        assert items[0].id == draft_pi.id

        items, total = ProformaInvoiceService.list(db_session, seller.id, skip=0, limit=1)
        assert total == 2
        assert len(items) == 1


class TestPurchaseOrders:

    def test_po_copies_pi(self, pending_po, approved_pi, db_session):
        db_session.refresh(approved_pi)
        assert approved_pi.status == PIStatus.PO_GENERATED
        assert pending_po.status == POStatus.PENDING
        assert pending_po.total == Decimal("236.00")
        assert pending_po.items[0].quantity == 2

    def test_cannot_jump_to_delivered(self, db_session, seller, pending_po):
        with pytest.raises(BadRequestError) as exc:
            PurchaseOrderService.update_status(db_session, seller.id, pending_po.id, POStatus.DELIVERED)
        assert exc.value.message == "Cannot transition from PENDING to DELIVERED"
        db_session.refresh(pending_po)
        assert pending_po.status == POStatus.PENDING

    @pytest.mark.parametrize("target", [POStatus.ACKNOWLEDGED, POStatus.PENDING, POStatus.CANCELLED])
    def test_status_update_names_accepted_targets(self, db_session, seller, pending_po, target):
        with pytest.raises(BadRequestError) as exc:
            PurchaseOrderService.update_status(db_session, seller.id, pending_po.id, target)
        assert exc.value.message == (
            f"Status update only accepts IN_PROGRESS, SHIPPED or DELIVERED, not {target.value}"
        )

    def test_delivery_fulfils_pi(self, delivered_po, approved_pi, db_session):
        db_session.refresh(approved_pi)
        assert delivered_po.delivered_at is not None
        assert delivered_po.shipped_at is not None
        assert approved_pi.status == PIStatus.FULFILLED

    def test_item_quantities_are_validated_together(self, db_session, seller, pending_po):
        item = pending_po.items[0]
        with pytest.raises(BadRequestError, match="Received quantity cannot exceed shipped"):
            PurchaseOrderService.update_item_quantities(db_session, seller.id, pending_po.id, [
                POItemQuantityUpdate(item_id=item.id, quantity_shipped=1, quantity_received=2),
            ])
        with pytest.raises(BadRequestError, match="Shipped quantity cannot exceed ordered"):
            PurchaseOrderService.update_item_quantities(db_session, seller.id, pending_po.id, [
                POItemQuantityUpdate(item_id=item.id, quantity_shipped=3),
            ])
        po = PurchaseOrderService.update_item_quantities(db_session, seller.id, pending_po.id, [
            POItemQuantityUpdate(item_id=item.id, quantity_shipped=2, quantity_received=1),
        ])
        assert po.items[0].quantity_shipped == 2
        assert po.items[0].quantity_received == 1

    def test_unknown_item(self, db_session, seller, pending_po):
        with pytest.raises(NotFoundError, match="Purchase Order item not found"):
            PurchaseOrderService.update_item_quantities(db_session, seller.id, pending_po.id, [
                POItemQuantityUpdate(item_id=9999, quantity_shipped=1),
            ])

    def test_cancel_records_reason(self, db_session, seller, pending_po):
        po = PurchaseOrderService.cancel(db_session, seller.id, pending_po.id, "buyer withdrew")
        assert po.status == POStatus.CANCELLED
        assert po.cancelled_at is not None
        assert po.internal_notes == "buyer withdrew"
        with pytest.raises(BadRequestError):
            PurchaseOrderService.acknowledge(db_session, seller.id, pending_po.id)

    def test_delivered_po_cannot_be_cancelled(self, db_session, seller, delivered_po):
        with pytest.raises(BadRequestError, match="Cannot cancel PO in DELIVERED status"):
            PurchaseOrderService.cancel(db_session, seller.id, delivered_po.id)


class TestInvoices:

    def test_generate_from_delivered_po(self, db_session, seller, delivered_po, approved_pi):
        invoice = InvoiceService.generate_from_po(db_session, seller.id, delivered_po.id, notes="thanks")
        db_session.refresh(approved_pi)
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.total_amount == Decimal("236.00")
        assert invoice.balance_amount == Decimal("236.00")
        assert invoice.paid_amount == Decimal("0.00")
        assert invoice.tax_rate == Decimal("18.00")
        assert invoice.pi_id == approved_pi.id
        assert approved_pi.status == PIStatus.BILLED
        # NET_30 credit terms
        delta = invoice.due_date.replace(tzinfo=None) - utcnow().replace(tzinfo=None)
        assert timedelta(days=29) < delta <= timedelta(days=30)

    def test_second_invoice_for_same_po_is_refused(self, db_session, seller, delivered_po):
        InvoiceService.generate_from_po(db_session, seller.id, delivered_po.id)
        with pytest.raises(BadRequestError, match="Invoice already exists for this PO"):
            InvoiceService.generate_from_po(db_session, seller.id, delivered_po.id)
        assert db_session.query(Invoice).count() == 1

    def test_cancelled_invoice_does_not_block_rebilling(self, db_session, seller, delivered_po, approved_pi):
        first = InvoiceService.generate_from_po(db_session, seller.id, delivered_po.id)
        InvoiceService.cancel(db_session, seller.id, first.id)

        second = InvoiceService.generate_from_po(db_session, seller.id, delivered_po.id)
        db_session.refresh(approved_pi)
        assert second.id != first.id
        assert second.invoice_number != first.invoice_number
        assert second.status == InvoiceStatus.DRAFT
        assert approved_pi.status == PIStatus.BILLED
        assert db_session.query(Invoice).count() == 2

    @pytest.mark.parametrize("terms, days", [(CreditTerms.IMMEDIATE, 0), (CreditTerms.NET_90, 90)])
    def test_due_date_follows_credit_terms(self, db_session, seller, product, terms, days):
        pi = ProformaInvoiceService.create(db_session, seller.id, PICreate(
            items=[_item(product, 1, "10")], credit_terms=terms,
        ))
        ProformaInvoiceService.send(db_session, seller.id, pi.id)
        ProformaInvoiceService.record_buyer_response(db_session, pi.id, PIStatus.APPROVED)
        po = ProformaInvoiceService.create_purchase_order_from_pi(db_session, pi.id)
        PurchaseOrderService.acknowledge(db_session, seller.id, po.id)
        PurchaseOrderService.update_status(db_session, seller.id, po.id, POStatus.SHIPPED)
        PurchaseOrderService.update_status(db_session, seller.id, po.id, POStatus.DELIVERED)

        expected = utcnow().replace(tzinfo=None) + timedelta(days=days)
        invoice = InvoiceService.generate_from_po(db_session, seller.id, po.id)
        due = invoice.due_date.replace(tzinfo=None)
        assert expected <= due < expected + timedelta(minutes=1)

    def test_undelivered_po_cannot_be_billed(self, db_session, seller, pending_po):
        with pytest.raises(BadRequestError, match="DELIVERED"):
            InvoiceService.generate_from_po(db_session, seller.id, pending_po.id)

    def test_received_quantity_is_billed(self, db_session, seller, pending_po):
        item = pending_po.items[0]
        PurchaseOrderService.acknowledge(db_session, seller.id, pending_po.id)
        PurchaseOrderService.update_status(db_session, seller.id, pending_po.id, POStatus.SHIPPED)
        PurchaseOrderService.update_item_quantities(db_session, seller.id, pending_po.id, [
            POItemQuantityUpdate(item_id=item.id, quantity_shipped=2, quantity_received=1),
        ])
        PurchaseOrderService.update_status(db_session, seller.id, pending_po.id, POStatus.DELIVERED)
        invoice = InvoiceService.generate_from_po(db_session, seller.id, pending_po.id)
        assert invoice.items[0].quantity == 1
        assert invoice.items[0].total_price == Decimal("100.00")

    def test_partial_then_full_payment(self, db_session, seller, sent_invoice, approved_pi):
        invoice = InvoiceService.record_payment(
            db_session, seller.id, sent_invoice.id, PaymentCreate(amount=Decimal("100"))
        )
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID
        assert invoice.balance_amount == Decimal("136.00")

        invoice = InvoiceService.record_payment(
            db_session, seller.id, sent_invoice.id, PaymentCreate(amount=Decimal("136"))
        )
        db_session.refresh(approved_pi)
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.balance_amount == Decimal("0.00")
        assert invoice.paid_at is not None
        assert len(invoice.payments) == 2
        assert approved_pi.status == PIStatus.PAID

    def test_overpayment_is_refused(self, db_session, seller, sent_invoice):
        with pytest.raises(BadRequestError, match="exceeds outstanding balance"):
            InvoiceService.record_payment(
                db_session, seller.id, sent_invoice.id, PaymentCreate(amount=Decimal("236.01"))
            )
        db_session.refresh(sent_invoice)
        assert sent_invoice.paid_amount == Decimal("0.00")
        assert sent_invoice.payments == []

    def test_draft_invoice_cannot_take_payment(self, db_session, seller, delivered_po):
        invoice = InvoiceService.generate_from_po(db_session, seller.id, delivered_po.id)
        with pytest.raises(BadRequestError, match="DRAFT"):
            InvoiceService.record_payment(db_session, seller.id, invoice.id, PaymentCreate(amount=Decimal("1")))

    def test_mark_unpaid_is_unconditional(self, db_session, seller, sent_invoice):
        invoice = InvoiceService.mark_unpaid(db_session, seller.id, sent_invoice.id)
        assert invoice.status == InvoiceStatus.UNPAID

    def test_cancel_refused_after_payment(self, db_session, seller, sent_invoice):
        InvoiceService.record_payment(db_session, seller.id, sent_invoice.id, PaymentCreate(amount=Decimal("10")))
        with pytest.raises(BadRequestError, match="recorded payments"):
            InvoiceService.cancel(db_session, seller.id, sent_invoice.id)

    def test_cancel_unpaid_invoice(self, db_session, seller, sent_invoice):
        invoice = InvoiceService.cancel(db_session, seller.id, sent_invoice.id)
        assert invoice.status == InvoiceStatus.CANCELLED


class TestTenantIsolation:

    def test_other_seller_sees_nothing(self, db_session, other_seller, draft_pi, pending_po):
        with pytest.raises(NotFoundError):
            ProformaInvoiceService.get(db_session, other_seller.id, draft_pi.id)
        with pytest.raises(NotFoundError):
            ProformaInvoiceService.send(db_session, other_seller.id, draft_pi.id)
        with pytest.raises(NotFoundError):
            PurchaseOrderService.acknowledge(db_session, other_seller.id, pending_po.id)
        items, total = PurchaseOrderService.list(db_session, other_seller.id)
        assert (items, total) == ([], 0)
