"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-01-05 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LIVE = sa.text("deleted_at IS NULL")

PI_STATUS = sa.Enum(
    "DRAFT", "SENT", "UNDER_REVIEW", "APPROVED", "REJECTED", "REVISION_REQUESTED",
    "PO_GENERATED", "FULFILLED", "BILLED", "PAID", "CANCELLED", "EXPIRED",
    name="pistatus",
)
PO_STATUS = sa.Enum(
    "PENDING", "ACKNOWLEDGED", "IN_PROGRESS", "SHIPPED", "DELIVERED", "CANCELLED",
    name="postatus",
)
INVOICE_STATUS = sa.Enum(
    "DRAFT", "SENT", "VIEWED", "UNPAID", "PARTIALLY_PAID", "PAID", "OVERDUE", "CANCELLED",
    name="invoicestatus",
)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _deleted_at():
    return sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True, index=True)


def _seller_fk():
    return sa.Column(
        "seller_id", sa.Integer(), sa.ForeignKey("seller_profiles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )


def _money(name, default=True):
    if default:
        return sa.Column(name, sa.Numeric(12, 2), server_default="0", nullable=False)
    return sa.Column(name, sa.Numeric(12, 2), nullable=False)


def _line_item_columns():
    return [
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("variant_id", sa.Integer(), sa.ForeignKey("product_variants.id"), nullable=True),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        _money("unit_price", default=False),
        _money("total_price", default=False),
    ]


def upgrade() -> None:
    # Tenants
    op.create_table(
        "seller_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(100), unique=True, nullable=False, index=True),
        sa.Column("business_name", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum("SELLER", "BUYER", "ADMIN", name="userrole"), nullable=False),
        sa.Column(
            "verification_status",
            sa.Enum("PENDING", "VERIFIED", "REJECTED", name="verificationstatus"),
            nullable=False,
        ),
        *_timestamps(),
    )

    # Document number counters
    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_type", sa.String(10), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("current_number", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("document_type", "year", name="uq_document_sequences_type_year"),
    )

    # Catalogue
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        _seller_fk(),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("product_code", sa.String(20), unique=True, nullable=False),
        sa.Column("sku", sa.String(50), nullable=False, index=True),
        sa.Column("barcode", sa.String(20), nullable=False, index=True),
        _money("base_price"),
        sa.Column("status", sa.Enum("DRAFT", "ACTIVE", "INACTIVE", name="productstatus"), nullable=False),
        *_timestamps(),
        _deleted_at(),
    )

    op.create_table(
        "product_variants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        _seller_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(50), nullable=False, index=True),
        sa.Column("barcode", sa.String(20), nullable=False, index=True),
        _money("price"),
        sa.Column("attributes", sa.JSON(), nullable=False),
        *_timestamps(),
        _deleted_at(),
    )

    # Warehouse hierarchy: warehouse > floor plan > area > rack > shelf > bin
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer(), primary_key=True),
        _seller_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        *_timestamps(),
        _deleted_at(),
    )
    op.create_index(
        "uq_warehouses_seller_code_live", "warehouses", ["seller_id", "code"], unique=True,
        sqlite_where=LIVE, postgresql_where=LIVE,
    )

    op.create_table(
        "warehouse_floor_plans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        _seller_fk(),
        sa.Column("floor", sa.String(20), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        *_timestamps(),
        _deleted_at(),
    )
    op.create_index(
        "uq_floor_plans_warehouse_floor_live", "warehouse_floor_plans", ["warehouse_id", "floor"],
        unique=True, sqlite_where=LIVE, postgresql_where=LIVE,
    )

    ancestors = [
        ("floor_plan_id", "warehouse_floor_plans"),
        ("warehouse_id", "warehouses"),
    ]

    def ancestor_columns(chain):
        return [
            sa.Column(column, sa.Integer(), sa.ForeignKey(f"{table}.id", ondelete="CASCADE"),
                      nullable=False, index=True)
            for column, table in chain
        ]

    op.create_table(
        "warehouse_areas",
        sa.Column("id", sa.Integer(), primary_key=True),
        *ancestor_columns(ancestors),
        _seller_fk(),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("floor_plan_id", "code", name="uq_warehouse_areas_floor_code"),
    )

    ancestors.insert(0, ("area_id", "warehouse_areas"))
    op.create_table(
        "warehouse_racks",
        sa.Column("id", sa.Integer(), primary_key=True),
        *ancestor_columns(ancestors),
        _seller_fk(),
        sa.Column("number", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("area_id", "number", name="uq_warehouse_racks_area_number"),
        sa.CheckConstraint("number >= 1", name="ck_warehouse_racks_number_positive"),
    )

    ancestors.insert(0, ("rack_id", "warehouse_racks"))
    op.create_table(
        "warehouse_shelves",
        sa.Column("id", sa.Integer(), primary_key=True),
        *ancestor_columns(ancestors),
        _seller_fk(),
        sa.Column("level", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("rack_id", "level", name="uq_warehouse_shelves_rack_level"),
        sa.CheckConstraint("level >= 1", name="ck_warehouse_shelves_level_positive"),
    )

    ancestors.insert(0, ("shelf_id", "warehouse_shelves"))
    op.create_table(
        "warehouse_bins",
        sa.Column("id", sa.Integer(), primary_key=True),
        *ancestor_columns(ancestors),
        _seller_fk(),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("shelf_id", "code", name="uq_warehouse_bins_shelf_code"),
    )

    op.create_table(
        "product_locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        _seller_fk(),
        sa.Column(
            "product_id", sa.Integer(), sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=True, index=True,
        ),
        sa.Column(
            "product_variant_id", sa.Integer(), sa.ForeignKey("product_variants.id", ondelete="CASCADE"),
            nullable=True, index=True,
        ),
        sa.Column("bin_id", sa.Integer(), sa.ForeignKey("warehouse_bins.id"), nullable=False, index=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(product_id IS NULL) <> (product_variant_id IS NULL)",
            name="ck_product_locations_one_item",
        ),
        sa.CheckConstraint("quantity > 0", name="ck_product_locations_quantity_positive"),
        sa.UniqueConstraint("product_id", "bin_id", name="uq_product_locations_product_bin"),
        sa.UniqueConstraint("product_variant_id", "bin_id", name="uq_product_locations_variant_bin"),
    )

    # Procurement: PI -> PO -> Invoice -> Payment
    op.create_table(
        "proforma_invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pi_number", sa.String(20), unique=True, nullable=False),
        _seller_fk(),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "credit_terms",
            sa.Enum("IMMEDIATE", "NET_30", "NET_60", "NET_90", name="creditterms"),
            nullable=False,
        ),
        sa.Column("delivery_terms", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("tax_rate", sa.Numeric(5, 2), server_default="18", nullable=False),
        _money("discount"),
        _money("subtotal"),
        _money("tax_amount"),
        _money("total"),
        sa.Column("status", PI_STATUS, nullable=False, index=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("buyer_notes", sa.Text(), nullable=True),
        *_timestamps(),
        _deleted_at(),
    )

    op.create_table(
        "pi_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "pi_id", sa.Integer(), sa.ForeignKey("proforma_invoices.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        *_line_item_columns(),
    )
    op.create_index("ix_pi_items_product_id", "pi_items", ["product_id"])

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("po_number", sa.String(20), unique=True, nullable=False),
        sa.Column(
            "pi_id", sa.Integer(), sa.ForeignKey("proforma_invoices.id", ondelete="SET NULL"),
            nullable=True, index=True,
        ),
        _seller_fk(),
        _money("subtotal"),
        _money("tax_amount"),
        _money("discount"),
        _money("total"),
        sa.Column("status", PO_STATUS, nullable=False, index=True),
        sa.Column("expected_delivery", sa.DateTime(timezone=True), nullable=True),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tracking_number", sa.String(100), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("client_notes", sa.Text(), nullable=True),
        *_timestamps(),
        _deleted_at(),
    )

    op.create_table(
        "po_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "po_id", sa.Integer(), sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        *_line_item_columns(),
        sa.Column("quantity_shipped", sa.Integer(), server_default="0", nullable=False),
        sa.Column("quantity_received", sa.Integer(), server_default="0", nullable=False),
    )
    op.create_index("ix_po_items_product_id", "po_items", ["product_id"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("invoice_number", sa.String(20), unique=True, nullable=False),
        sa.Column(
            "po_id", sa.Integer(), sa.ForeignKey("purchase_orders.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column(
            "pi_id", sa.Integer(), sa.ForeignKey("proforma_invoices.id", ondelete="SET NULL"),
            nullable=True, index=True,
        ),
        _seller_fk(),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("tax_rate", sa.Numeric(5, 2), server_default="18", nullable=False),
        _money("subtotal"),
        _money("tax_amount"),
        _money("discount"),
        _money("total_amount"),
        _money("paid_amount"),
        _money("balance_amount"),
        sa.Column("payment_terms", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", INVOICE_STATUS, nullable=False, index=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        _deleted_at(),
    )
    # One live invoice per purchase order
    op.create_index(
        "uq_invoices_po_live", "invoices", ["po_id"], unique=True,
        sqlite_where=sa.text("deleted_at IS NULL AND po_id IS NOT NULL AND status != 'CANCELLED'"),
        postgresql_where=sa.text("deleted_at IS NULL AND po_id IS NOT NULL AND status != 'CANCELLED'"),
    )

    op.create_table(
        "invoice_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "invoice_id", sa.Integer(), sa.ForeignKey("invoices.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        *_line_item_columns(),
    )

    op.create_table(
        "payment_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "invoice_id", sa.Integer(), sa.ForeignKey("invoices.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        _seller_fk(),
        _money("amount", default=False),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "method",
            sa.Enum("BANK_TRANSFER", "UPI", "CHEQUE", "CASH", "CARD", "OTHER", name="paymentmethod"),
            nullable=False,
        ),
        sa.Column("reference", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    for table in (
        "payment_records",
        "invoice_items",
        "invoices",
        "po_items",
        "purchase_orders",
        "pi_items",
        "proforma_invoices",
        "product_locations",
        "warehouse_bins",
        "warehouse_shelves",
        "warehouse_racks",
        "warehouse_areas",
        "warehouse_floor_plans",
        "warehouses",
        "product_variants",
        "products",
        "document_sequences",
        "seller_profiles",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in (
        "paymentmethod", "invoicestatus", "postatus", "pistatus", "creditterms",
        "productstatus", "verificationstatus", "userrole",
    ):
        sa.Enum(name=name).drop(bind, checkfirst=True)
