"""Warehouse hierarchy models.

Warehouse -> floor plan -> area -> rack -> shelf -> bin. Every level carries
the owning ``seller_id`` and bins carry their whole ancestor chain, so an
ownership check on any node is a single-row lookup.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, SoftDeleteMixin, TimestampMixin


class Warehouse(Base, TimestampMixin, SoftDeleteMixin):
    """A physical warehouse operated by a seller."""

    __tablename__ = "warehouses"
    __table_args__ = (
        Index(
            "uq_warehouses_seller_code_live",
            "seller_id",
            "code",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("seller_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    floor_plans: Mapped[list["WarehouseFloorPlan"]] = relationship(
        "WarehouseFloorPlan", back_populates="warehouse", order_by="WarehouseFloorPlan.floor"
    )


class WarehouseFloorPlan(Base, TimestampMixin, SoftDeleteMixin):
    """One floor of a warehouse."""

    __tablename__ = "warehouse_floor_plans"
    __table_args__ = (
        Index(
            "uq_floor_plans_warehouse_floor_live",
            "warehouse_id",
            "floor",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("seller_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    floor: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    warehouse: Mapped["Warehouse"] = relationship("Warehouse", back_populates="floor_plans")
    areas: Mapped[list["WarehouseArea"]] = relationship(
        "WarehouseArea",
        back_populates="floor_plan",
        cascade="all, delete-orphan",
        order_by="WarehouseArea.code",
    )


class WarehouseArea(Base, TimestampMixin):
    __tablename__ = "warehouse_areas"
    __table_args__ = (
        UniqueConstraint("floor_plan_id", "code", name="uq_warehouse_areas_floor_code"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    floor_plan_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_floor_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("seller_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    floor_plan: Mapped["WarehouseFloorPlan"] = relationship(
        "WarehouseFloorPlan", back_populates="areas"
    )
    racks: Mapped[list["WarehouseRack"]] = relationship(
        "WarehouseRack",
        back_populates="area",
        cascade="all, delete-orphan",
        order_by="WarehouseRack.number",
    )


class WarehouseRack(Base, TimestampMixin):
    __tablename__ = "warehouse_racks"
    __table_args__ = (
        UniqueConstraint("area_id", "number", name="uq_warehouse_racks_area_number"),
        CheckConstraint("number >= 1", name="ck_warehouse_racks_number_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    area_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_areas.id", ondelete="CASCADE"), nullable=False, index=True
    )
    floor_plan_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_floor_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("seller_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)

    area: Mapped["WarehouseArea"] = relationship("WarehouseArea", back_populates="racks")
    shelves: Mapped[list["WarehouseShelf"]] = relationship(
        "WarehouseShelf",
        back_populates="rack",
        cascade="all, delete-orphan",
        order_by="WarehouseShelf.level",
    )


class WarehouseShelf(Base, TimestampMixin):
    __tablename__ = "warehouse_shelves"
    __table_args__ = (
        UniqueConstraint("rack_id", "level", name="uq_warehouse_shelves_rack_level"),
        CheckConstraint("level >= 1", name="ck_warehouse_shelves_level_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    rack_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_racks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    area_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_areas.id", ondelete="CASCADE"), nullable=False, index=True
    )
    floor_plan_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_floor_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("seller_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    rack: Mapped["WarehouseRack"] = relationship("WarehouseRack", back_populates="shelves")
    bins: Mapped[list["WarehouseBin"]] = relationship(
        "WarehouseBin",
        back_populates="shelf",
        cascade="all, delete-orphan",
        order_by="WarehouseBin.code",
    )


class WarehouseBin(Base, TimestampMixin):
    """The addressable leaf of the hierarchy."""

    __tablename__ = "warehouse_bins"
    __table_args__ = (
        UniqueConstraint("shelf_id", "code", name="uq_warehouse_bins_shelf_code"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    shelf_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_shelves.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rack_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_racks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    area_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_areas.id", ondelete="CASCADE"), nullable=False, index=True
    )
    floor_plan_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_floor_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("seller_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    shelf: Mapped["WarehouseShelf"] = relationship("WarehouseShelf", back_populates="bins")
    product_locations: Mapped[list["ProductLocation"]] = relationship(
        "ProductLocation", back_populates="bin"
    )


class ProductLocation(Base, TimestampMixin):
    """Placement of a product or a variant (never both) in a bin."""

    __tablename__ = "product_locations"
    __table_args__ = (
        CheckConstraint(
            "(product_id IS NULL) <> (product_variant_id IS NULL)",
            name="ck_product_locations_one_item",
        ),
        CheckConstraint("quantity > 0", name="ck_product_locations_quantity_positive"),
        UniqueConstraint("product_id", "bin_id", name="uq_product_locations_product_bin"),
        UniqueConstraint(
            "product_variant_id", "bin_id", name="uq_product_locations_variant_bin"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("seller_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=True, index=True
    )
    product_variant_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=True, index=True
    )
    bin_id: Mapped[int] = mapped_column(
        ForeignKey("warehouse_bins.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    bin: Mapped["WarehouseBin"] = relationship("WarehouseBin", back_populates="product_locations")
