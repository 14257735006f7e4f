"""Procurement workflow: Proforma Invoice -> Purchase Order -> Invoice -> Payment.

Every public method is one unit of work: it validates, mutates and commits
once at the end. If anything raises before the commit, the caller's session
is rolled back and nothing is persisted. Status changes go through
``procurement_state_machine``.

Seller-facing methods take the acting seller and only ever see that
seller's documents; a document owned by somebody else is reported as not
found. Buyer-facing hooks (``record_buyer_response``,
``create_purchase_order_from_pi``) are called by the buyer-side process and
are not exposed on seller routes.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import asc, desc, or_, select
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.exceptions import BadRequestError, NotFoundError
from app.db.base import as_utc, utcnow
from app.db.session import commit_or_conflict
from app.models.procurement import (
    CreditTerms,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    PaymentRecord,
    PIItem,
    PIStatus,
    POItem,
    POStatus,
    ProformaInvoice,
    PurchaseOrder,
)
from app.models.product import Product, ProductVariant
from app.schemas.pagination import paginate_query
from app.schemas.procurement import (
    PaymentCreate,
    PICreate,
    PIItemInput,
    PIUpdate,
    POItemQuantityUpdate,
)
from app.services import procurement_state_machine as sm
from app.services.numbering_service import NumberingService
from app.services.totals import calculate_totals, line_total, to_money

logger = logging.getLogger(__name__)

CREDIT_TERM_DAYS = {
    CreditTerms.IMMEDIATE: 0,
    CreditTerms.NET_30: 30,
    CreditTerms.NET_60: 60,
    CreditTerms.NET_90: 90,
}


def _ordering(column, sort_order: str):
    return asc(column) if sort_order == "asc" else desc(column)


def _validate_item_refs(db: Session, seller_id: int, items: Iterable[PIItemInput]) -> None:
    """Items may only reference the seller's own products and variants."""
    for item in items:
        product = db.execute(
            select(Product).where(Product.id == item.product_id, Product.seller_id == seller_id)
        ).scalar_one_or_none()
        if product is None:
            raise NotFoundError("Product not found")
        if item.variant_id is not None:
            variant = db.execute(
                select(ProductVariant).where(
                    ProductVariant.id == item.variant_id,
                    ProductVariant.product_id == product.id,
                )
            ).scalar_one_or_none()
            if variant is None:
                raise NotFoundError("Product variant not found")


def _build_pi_items(items: Iterable[PIItemInput]) -> List[PIItem]:
    return [
        PIItem(
            product_id=item.product_id,
            variant_id=item.variant_id,
            description=item.description,
            quantity=item.quantity,
            unit_price=to_money(item.unit_price),
            total_price=line_total(item.quantity, item.unit_price),
        )
        for item in items
    ]


def _apply_pi_totals(pi: ProformaInvoice) -> None:
    totals = calculate_totals(
        [(item.quantity, item.unit_price) for item in pi.items],
        tax_rate=pi.tax_rate,
        discount=pi.discount,
    )
    pi.subtotal = totals.subtotal
    pi.discount = totals.discount
    pi.tax_amount = totals.tax_amount
    pi.total = totals.total


# =============================================================================
# PROFORMA INVOICES
# =============================================================================

class ProformaInvoiceService:

    @staticmethod
    def get(db: Session, seller_id: int, pi_id: int) -> ProformaInvoice:
        pi = db.execute(
            select(ProformaInvoice)
            .options(selectinload(ProformaInvoice.items))
            .where(ProformaInvoice.id == pi_id, ProformaInvoice.seller_id == seller_id)
        ).scalar_one_or_none()
        if pi is None:
            raise NotFoundError("Proforma Invoice not found")
        return pi

    @staticmethod
    def list(
        db: Session,
        seller_id: int,
        status: Optional[PIStatus] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[ProformaInvoice], int]:
        conditions = [ProformaInvoice.seller_id == seller_id]
        if status is not None:
            conditions.append(ProformaInvoice.status == status)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                ProformaInvoice.pi_number.ilike(pattern),
                ProformaInvoice.notes.ilike(pattern),
            ))
        sort_column = {
            "created_at": ProformaInvoice.created_at,
            "total": ProformaInvoice.total,
            "pi_number": ProformaInvoice.pi_number,
            "valid_until": ProformaInvoice.valid_until,
        }.get(sort_by, ProformaInvoice.created_at)

        query = (
            db.query(ProformaInvoice)
            .options(selectinload(ProformaInvoice.items))
            .filter(*conditions)
            .order_by(_ordering(sort_column, sort_order), _ordering(ProformaInvoice.id, sort_order))
        )
        return paginate_query(query, skip=skip, limit=limit)

    @staticmethod
    def create(db: Session, seller_id: int, data: PICreate) -> ProformaInvoice:
        _validate_item_refs(db, seller_id, data.items)

        pi = ProformaInvoice(
            pi_number=NumberingService.next_number(db, "PI"),
            seller_id=seller_id,
            valid_until=data.valid_until or utcnow() + timedelta(days=settings.pi_validity_days),
            credit_terms=data.credit_terms,
            delivery_terms=data.delivery_terms,
            notes=data.notes,
            tax_rate=data.tax_rate,
            discount=to_money(data.discount),
            status=PIStatus.DRAFT,
            items=_build_pi_items(data.items),
        )
        _apply_pi_totals(pi)
        db.add(pi)
        commit_or_conflict(db, "proforma invoice")
        db.refresh(pi)
        logger.info(f"Created proforma invoice {pi.pi_number} for seller {seller_id} (total {pi.total})")
        return pi

    @staticmethod
    def update(db: Session, seller_id: int, pi_id: int, data: PIUpdate) -> ProformaInvoice:
        pi = ProformaInvoiceService.get(db, seller_id, pi_id)
        if pi.status != PIStatus.DRAFT:
            raise BadRequestError("Can only edit PI in DRAFT status")

        fields = data.model_fields_set
        for name in ("valid_until", "credit_terms", "tax_rate", "discount", "items"):
            if name in fields and getattr(data, name) is None:
                raise BadRequestError(f"{name} cannot be null")

        if "valid_until" in fields:
            pi.valid_until = data.valid_until
        if "credit_terms" in fields:
            pi.credit_terms = data.credit_terms
        if "delivery_terms" in fields:
            pi.delivery_terms = data.delivery_terms
        if "notes" in fields:
            pi.notes = data.notes
        if "tax_rate" in fields:
            pi.tax_rate = data.tax_rate
        if "discount" in fields:
            pi.discount = to_money(data.discount)
        if "items" in fields:
            _validate_item_refs(db, seller_id, data.items)
            pi.items.clear()
            db.flush()
            pi.items.extend(_build_pi_items(data.items))

        if fields & {"items", "tax_rate", "discount"}:
            _apply_pi_totals(pi)

        commit_or_conflict(db, "proforma invoice")
        db.refresh(pi)
        logger.info(f"Updated proforma invoice {pi.pi_number} ({', '.join(sorted(fields)) or 'no fields'})")
        return pi

    @staticmethod
    def send(db: Session, seller_id: int, pi_id: int) -> ProformaInvoice:
        pi = ProformaInvoiceService.get(db, seller_id, pi_id)
        if pi.status != PIStatus.DRAFT:
            raise BadRequestError("PI must be in DRAFT status to send")
        if not pi.items:
            raise BadRequestError("PI must have at least one item")
        if pi.valid_until is not None and as_utc(pi.valid_until) < utcnow():
            raise BadRequestError("PI validity date has passed")
        pi.status = PIStatus.SENT
        pi.sent_at = utcnow()
        db.commit()
        db.refresh(pi)
        logger.info(f"Proforma invoice {pi.pi_number}: DRAFT -> SENT")
        return pi

    @staticmethod
    def cancel(db: Session, seller_id: int, pi_id: int) -> ProformaInvoice:
        pi = ProformaInvoiceService.get(db, seller_id, pi_id)
        if pi.status not in sm.PI_CANCELLABLE:
            raise BadRequestError("Can only cancel PI in DRAFT or SENT status")
        previous = pi.status
        pi.status = PIStatus.CANCELLED
        db.commit()
        db.refresh(pi)
        logger.info(f"Proforma invoice {pi.pi_number}: {previous.value} -> CANCELLED")
        return pi

    @staticmethod
    def reopen(db: Session, seller_id: int, pi_id: int) -> ProformaInvoice:
        """Take a PI the buyer sent back for revision into DRAFT again."""
        pi = ProformaInvoiceService.get(db, seller_id, pi_id)
        sm.validate_transition(
            pi.status, PIStatus.DRAFT, "Can only reopen PI in REVISION_REQUESTED status"
        )
        pi.status = PIStatus.DRAFT
        db.commit()
        db.refresh(pi)
        logger.info(f"Proforma invoice {pi.pi_number}: REVISION_REQUESTED -> DRAFT")
        return pi

    @staticmethod
    def delete(db: Session, seller_id: int, pi_id: int) -> None:
        pi = ProformaInvoiceService.get(db, seller_id, pi_id)
        if pi.status not in sm.PI_DELETABLE:
            raise BadRequestError("Can only delete PI in DRAFT or CANCELLED status")
        pi.soft_delete()
        db.commit()
        logger.info(f"Soft-deleted proforma invoice {pi.pi_number}")

    # --- buyer-side hooks ---

    @staticmethod
    def record_buyer_response(
        db: Session, pi_id: int, status: PIStatus, notes: Optional[str] = None
    ) -> ProformaInvoice:
        pi = db.execute(
            select(ProformaInvoice).where(ProformaInvoice.id == pi_id)
        ).scalar_one_or_none()
        if pi is None:
            raise NotFoundError("Proforma Invoice not found")
        if status not in sm.PI_BUYER_RESPONSES:
            raise BadRequestError(f"Invalid buyer response: {status.value}")
        if sm.effective_pi_status(pi.status, pi.valid_until) == PIStatus.EXPIRED:
            raise BadRequestError("Proforma Invoice has expired")
        previous = pi.status
        sm.validate_transition(pi.status, status)
        pi.status = status
        pi.responded_at = utcnow()
        if notes is not None:
            pi.buyer_notes = notes
        db.commit()
        db.refresh(pi)
        logger.info(f"Proforma invoice {pi.pi_number}: {previous.value} -> {status.value} (buyer)")
        return pi

    @staticmethod
    def create_purchase_order_from_pi(
        db: Session,
        pi_id: int,
        expected_delivery: Optional[datetime] = None,
        client_notes: Optional[str] = None,
    ) -> PurchaseOrder:
        """Raise a PO against an approved PI; the PI moves to PO_GENERATED."""
        pi = db.execute(
            select(ProformaInvoice)
            .options(selectinload(ProformaInvoice.items))
            .where(ProformaInvoice.id == pi_id)
        ).scalar_one_or_none()
        if pi is None:
            raise NotFoundError("Proforma Invoice not found")
        sm.validate_transition(
            pi.status, PIStatus.PO_GENERATED, "PI must be APPROVED to generate a purchase order"
        )

        po = PurchaseOrder(
            po_number=NumberingService.next_number(db, "PO"),
            pi_id=pi.id,
            seller_id=pi.seller_id,
            subtotal=pi.subtotal,
            tax_amount=pi.tax_amount,
            discount=pi.discount,
            total=pi.total,
            status=POStatus.PENDING,
            expected_delivery=expected_delivery,
            client_notes=client_notes,
            items=[
                POItem(
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                )
                for item in pi.items
            ],
        )
        pi.status = PIStatus.PO_GENERATED
        db.add(po)
        commit_or_conflict(db, "purchase order")
        db.refresh(po)
        logger.info(f"Created purchase order {po.po_number} from {pi.pi_number}")
        return po


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

class PurchaseOrderService:

    @staticmethod
    def get(db: Session, seller_id: int, po_id: int) -> PurchaseOrder:
        po = db.execute(
            select(PurchaseOrder)
            .options(selectinload(PurchaseOrder.items))
            .where(PurchaseOrder.id == po_id, PurchaseOrder.seller_id == seller_id)
        ).scalar_one_or_none()
        if po is None:
            raise NotFoundError("Purchase Order not found")
        return po

    @staticmethod
    def list(
        db: Session,
        seller_id: int,
        status: Optional[POStatus] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[PurchaseOrder], int]:
        conditions = [PurchaseOrder.seller_id == seller_id]
        if status is not None:
            conditions.append(PurchaseOrder.status == status)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                PurchaseOrder.po_number.ilike(pattern),
                PurchaseOrder.client_notes.ilike(pattern),
            ))
        sort_column = {
            "created_at": PurchaseOrder.created_at,
            "total": PurchaseOrder.total,
            "po_number": PurchaseOrder.po_number,
            "expected_delivery": PurchaseOrder.expected_delivery,
        }.get(sort_by, PurchaseOrder.created_at)

        query = (
            db.query(PurchaseOrder)
            .options(selectinload(PurchaseOrder.items))
            .filter(*conditions)
            .order_by(_ordering(sort_column, sort_order), _ordering(PurchaseOrder.id, sort_order))
        )
        return paginate_query(query, skip=skip, limit=limit)

    @staticmethod
    def acknowledge(db: Session, seller_id: int, po_id: int, notes: Optional[str] = None) -> PurchaseOrder:
        po = PurchaseOrderService.get(db, seller_id, po_id)
        if po.status != POStatus.PENDING:
            raise BadRequestError("PO must be in PENDING status to acknowledge")
        po.status = POStatus.ACKNOWLEDGED
        po.acknowledged_at = utcnow()
        if notes is not None:
            po.internal_notes = notes
        db.commit()
        db.refresh(po)
        logger.info(f"Purchase order {po.po_number}: PENDING -> ACKNOWLEDGED")
        return po

    @staticmethod
    def update_status(
        db: Session,
        seller_id: int,
        po_id: int,
        status: POStatus,
        tracking_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> PurchaseOrder:
        po = PurchaseOrderService.get(db, seller_id, po_id)
        if status not in sm.PO_STATUS_UPDATE_TARGETS:
            raise BadRequestError(
                f"Status update only accepts IN_PROGRESS, SHIPPED or DELIVERED, not {status.value}"
            )
        sm.validate_transition(po.status, status)

        previous = po.status
        now = utcnow()
        po.status = status
        if status == POStatus.SHIPPED:
            if po.shipped_at is None:
                po.shipped_at = now
            if tracking_number:
                po.tracking_number = tracking_number
        elif status == POStatus.DELIVERED:
            if po.delivered_at is None:
                po.delivered_at = now
            pi = po.proforma_invoice
            if pi is not None and pi.status == PIStatus.PO_GENERATED:
                pi.status = PIStatus.FULFILLED
                logger.info(f"Proforma invoice {pi.pi_number}: PO_GENERATED -> FULFILLED")
        if notes is not None:
            po.internal_notes = notes

        db.commit()
        db.refresh(po)
        logger.info(f"Purchase order {po.po_number}: {previous.value} -> {status.value}")
        return po

    @staticmethod
    def update_item_quantities(
        db: Session, seller_id: int, po_id: int, updates: List[POItemQuantityUpdate]
    ) -> PurchaseOrder:
        """Record shipped/received quantities; all lines are validated before any is written."""
        po = PurchaseOrderService.get(db, seller_id, po_id)
        if po.status == POStatus.CANCELLED:
            raise BadRequestError("Cannot update quantities on a cancelled PO")

        items_by_id = {item.id: item for item in po.items}
        planned = []
        for update in updates:
            item = items_by_id.get(update.item_id)
            if item is None:
                raise NotFoundError("Purchase Order item not found")
            received = (
                update.quantity_received
                if update.quantity_received is not None
                else item.quantity_received
            )
            if update.quantity_shipped > item.quantity:
                raise BadRequestError("Shipped quantity cannot exceed ordered quantity")
            if received > update.quantity_shipped:
                raise BadRequestError("Received quantity cannot exceed shipped quantity")
            planned.append((item, update.quantity_shipped, received))

        for item, shipped, received in planned:
            item.quantity_shipped = shipped
            item.quantity_received = received

        db.commit()
        db.refresh(po)
        logger.info(f"Purchase order {po.po_number}: updated quantities on {len(planned)} item(s)")
        return po

    @staticmethod
    def cancel(db: Session, seller_id: int, po_id: int, reason: Optional[str] = None) -> PurchaseOrder:
        po = PurchaseOrderService.get(db, seller_id, po_id)
        sm.validate_transition(
            po.status, POStatus.CANCELLED, f"Cannot cancel PO in {po.status.value} status"
        )
        previous = po.status
        po.status = POStatus.CANCELLED
        po.cancelled_at = utcnow()
        if reason:
            po.internal_notes = reason
        db.commit()
        db.refresh(po)
        logger.info(f"Purchase order {po.po_number}: {previous.value} -> CANCELLED")
        return po


# =============================================================================
# INVOICES
# =============================================================================

class InvoiceService:

    @staticmethod
    def get(db: Session, seller_id: int, invoice_id: int) -> Invoice:
        invoice = db.execute(
            select(Invoice)
            .options(selectinload(Invoice.items), selectinload(Invoice.payments))
            .where(Invoice.id == invoice_id, Invoice.seller_id == seller_id)
        ).scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Invoice not found")
        return invoice

    @staticmethod
    def list(
        db: Session,
        seller_id: int,
        status: Optional[InvoiceStatus] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Invoice], int]:
        conditions = [Invoice.seller_id == seller_id]
        if status is not None:
            conditions.append(Invoice.status == status)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                Invoice.invoice_number.ilike(pattern),
                Invoice.notes.ilike(pattern),
            ))
        sort_column = {
            "created_at": Invoice.created_at,
            "total_amount": Invoice.total_amount,
            "invoice_number": Invoice.invoice_number,
            "due_date": Invoice.due_date,
        }.get(sort_by, Invoice.created_at)

        query = (
            db.query(Invoice)
            .options(selectinload(Invoice.items), selectinload(Invoice.payments))
            .filter(*conditions)
            .order_by(_ordering(sort_column, sort_order), _ordering(Invoice.id, sort_order))
        )
        return paginate_query(query, skip=skip, limit=limit)

    @staticmethod
    def generate_from_po(
        db: Session,
        seller_id: int,
        po_id: int,
        notes: Optional[str] = None,
        payment_terms: Optional[str] = None,
    ) -> Invoice:
        """Bill a delivered PO.

        Totals are copied from the PO rather than recomputed. Lines bill the
        received quantity when one was recorded, the ordered quantity
        otherwise. The linked PI moves to BILLED in the same commit. A cancelled
        invoice does not count against the PO, so it can be billed again.
        """
        po = PurchaseOrderService.get(db, seller_id, po_id)
        if po.status != POStatus.DELIVERED:
            raise BadRequestError("Can only generate invoice for DELIVERED POs")

        existing = (
            db.query(Invoice)
            .filter(Invoice.po_id == po.id, Invoice.status != InvoiceStatus.CANCELLED)
            .first()
        )
        if existing is not None:
            raise BadRequestError("Invoice already exists for this PO")

        pi = po.proforma_invoice
        credit_terms = pi.credit_terms if pi is not None else CreditTerms(settings.default_credit_terms)
        tax_rate = pi.tax_rate if pi is not None else Decimal(str(settings.default_tax_rate))
        due_date = utcnow() + timedelta(days=CREDIT_TERM_DAYS[credit_terms])

        items = []
        for item in po.items:
            quantity = item.quantity_received or item.quantity
            items.append(InvoiceItem(
                product_id=item.product_id,
                variant_id=item.variant_id,
                description=item.description,
                quantity=quantity,
                unit_price=item.unit_price,
                total_price=line_total(quantity, item.unit_price),
            ))

        invoice = Invoice(
            invoice_number=NumberingService.next_number(db, "INV"),
            po_id=po.id,
            pi_id=po.pi_id,
            seller_id=seller_id,
            due_date=due_date,
            tax_rate=tax_rate,
            subtotal=po.subtotal,
            tax_amount=po.tax_amount,
            discount=po.discount,
            total_amount=po.total,
            paid_amount=Decimal("0"),
            balance_amount=po.total,
            notes=notes,
            payment_terms=payment_terms,
            status=InvoiceStatus.DRAFT,
            items=items,
        )
        db.add(invoice)
        if pi is not None and sm.can_transition(pi.status, PIStatus.BILLED):
            previous = pi.status
            pi.status = PIStatus.BILLED
            logger.info(f"Proforma invoice {pi.pi_number}: {previous.value} -> BILLED")

        commit_or_conflict(db, "invoice")
        db.refresh(invoice)
        logger.info(f"Generated invoice {invoice.invoice_number} from {po.po_number} (due {due_date.date()})")
        return invoice

    @staticmethod
    def send(db: Session, seller_id: int, invoice_id: int) -> Invoice:
        invoice = InvoiceService.get(db, seller_id, invoice_id)
        if invoice.status != InvoiceStatus.DRAFT:
            raise BadRequestError("Invoice must be in DRAFT status to send")
        invoice.status = InvoiceStatus.SENT
        invoice.sent_at = utcnow()
        db.commit()
        db.refresh(invoice)
        logger.info(f"Invoice {invoice.invoice_number}: DRAFT -> SENT")
        return invoice

    @staticmethod
    def mark_unpaid(db: Session, seller_id: int, invoice_id: int) -> Invoice:
        """Set UNPAID from any status (no transition check)."""
        invoice = InvoiceService.get(db, seller_id, invoice_id)
        previous = invoice.status
        invoice.status = InvoiceStatus.UNPAID
        db.commit()
        db.refresh(invoice)
        logger.info(f"Invoice {invoice.invoice_number}: {previous.value} -> UNPAID")
        return invoice

    @staticmethod
    def record_payment(db: Session, seller_id: int, invoice_id: int, data: PaymentCreate) -> Invoice:
        invoice = InvoiceService.get(db, seller_id, invoice_id)
        if invoice.status not in sm.INVOICE_PAYABLE:
            raise BadRequestError(
                f"Cannot record payment for invoice in {invoice.status.value} status"
            )
        amount = to_money(data.amount)
        if amount > invoice.balance_amount:
            raise BadRequestError("Payment amount exceeds outstanding balance")

        invoice.payments.append(PaymentRecord(
            seller_id=seller_id,
            amount=amount,
            payment_date=data.payment_date or utcnow(),
            method=data.method,
            reference=data.reference,
            notes=data.notes,
        ))
        invoice.paid_amount = to_money(invoice.paid_amount + amount)
        invoice.balance_amount = to_money(invoice.total_amount - invoice.paid_amount)

        previous = invoice.status
        new_status = (
            InvoiceStatus.PAID if invoice.balance_amount <= 0 else InvoiceStatus.PARTIALLY_PAID
        )
        sm.validate_transition(invoice.status, new_status)
        invoice.status = new_status
        if new_status == InvoiceStatus.PAID:
            invoice.paid_at = utcnow()
            if invoice.pi_id is not None:
                pi = db.execute(
                    select(ProformaInvoice).where(ProformaInvoice.id == invoice.pi_id)
                ).scalar_one_or_none()
                if pi is not None and sm.can_transition(pi.status, PIStatus.PAID):
                    pi.status = PIStatus.PAID
                    logger.info(f"Proforma invoice {pi.pi_number}: BILLED -> PAID")

        db.commit()
        db.refresh(invoice)
        logger.info(
            f"Invoice {invoice.invoice_number}: payment {amount} recorded, "
            f"{previous.value} -> {new_status.value}, balance {invoice.balance_amount}"
        )
        return invoice

    @staticmethod
    def cancel(db: Session, seller_id: int, invoice_id: int) -> Invoice:
        invoice = InvoiceService.get(db, seller_id, invoice_id)
        if invoice.paid_amount > 0:
            raise BadRequestError("Cannot cancel an invoice with recorded payments")
        sm.validate_transition(
            invoice.status,
            InvoiceStatus.CANCELLED,
            f"Cannot cancel invoice in {invoice.status.value} status",
        )
        previous = invoice.status
        invoice.status = InvoiceStatus.CANCELLED
        db.commit()
        db.refresh(invoice)
        logger.info(f"Invoice {invoice.invoice_number}: {previous.value} -> CANCELLED")
        return invoice
