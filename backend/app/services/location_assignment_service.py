"""Placing products and variants into warehouse bins.

A placement links exactly one product or one variant to a bin with a
positive quantity. Assigning the same item to the same bin twice is a
conflict; quantities are never merged, callers update the existing
placement instead.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.core.exceptions import BadRequestError, ConflictError, NotFoundError
from app.db.session import commit_or_conflict
from app.models.warehouse import (
    ProductLocation,
    WarehouseArea,
    WarehouseBin,
    WarehouseFloorPlan,
    WarehouseRack,
    WarehouseShelf,
)
from app.schemas.inventory import LocationAssign
from app.services.location_code import encode_location, full_path
from app.services.product_service import ProductService
from app.services.warehouse_service import WarehouseService, bin_rows_query

logger = logging.getLogger(__name__)


class LocationAssignmentService:

    @staticmethod
    def get(db: Session, seller_id: int, location_id: int) -> ProductLocation:
        location = db.execute(
            select(ProductLocation).where(
                ProductLocation.id == location_id,
                ProductLocation.seller_id == seller_id,
            )
        ).scalar_one_or_none()
        if location is None:
            raise NotFoundError("Product location not found")
        return location

    @staticmethod
    def assign(db: Session, seller_id: int, data: LocationAssign) -> ProductLocation:
        if (data.product_id is None) == (data.product_variant_id is None):
            raise BadRequestError("Provide exactly one of product_id or product_variant_id")

        if data.product_variant_id is not None:
            variant = ProductService.get_variant(db, seller_id, data.product_variant_id)
            item_filter = ProductLocation.product_variant_id == variant.id
            duplicate_message = "Product variant is already assigned to this location"
        else:
            product = ProductService.get(db, seller_id, data.product_id)
            item_filter = ProductLocation.product_id == product.id
            duplicate_message = "Product is already assigned to this location"

        bin_ = WarehouseService.get_bin(db, seller_id, data.bin_id, "Warehouse bin not found")

        existing = db.execute(
            select(ProductLocation.id).where(item_filter, ProductLocation.bin_id == bin_.id)
        ).first()
        if existing is not None:
            raise ConflictError(duplicate_message)

        location = ProductLocation(
            seller_id=seller_id,
            product_id=data.product_id if data.product_variant_id is None else None,
            product_variant_id=data.product_variant_id,
            bin_id=bin_.id,
            quantity=data.quantity,
            notes=data.notes,
        )
        db.add(location)
        commit_or_conflict(db, "product location")
        db.refresh(location)
        logger.info(
            f"Assigned {'variant' if location.product_variant_id else 'product'} "
            f"{location.product_variant_id or location.product_id} to bin {bin_.id} "
            f"(qty {location.quantity})"
        )
        return location

    @staticmethod
    def update(
        db: Session, seller_id: int, location_id: int, quantity: int, notes: Optional[str] = None
    ) -> ProductLocation:
        """Replace the quantity at a placement (not an increment)."""
        if quantity < 1:
            raise BadRequestError("Quantity must be a positive integer")
        location = LocationAssignmentService.get(db, seller_id, location_id)
        location.quantity = quantity
        if notes is not None:
            location.notes = notes
        db.commit()
        db.refresh(location)
        logger.info(f"Set quantity of product location {location.id} to {quantity}")
        return location

    @staticmethod
    def remove(db: Session, seller_id: int, location_id: int) -> None:
        location = LocationAssignmentService.get(db, seller_id, location_id)
        db.delete(location)
        db.commit()
        logger.info(f"Removed product location {location_id}")

    @staticmethod
    def list_for_product(
        db: Session, seller_id: int, product_id: int, variant_ids: List[int]
    ) -> List[ProductLocation]:
        """Placements of a product itself and of any of the given variants."""
        item_filter = ProductLocation.product_id == product_id
        if variant_ids:
            item_filter = or_(item_filter, ProductLocation.product_variant_id.in_(variant_ids))
        return list(db.execute(
            select(ProductLocation)
            .where(ProductLocation.seller_id == seller_id, item_filter)
            .order_by(ProductLocation.id)
        ).scalars().all())

    @staticmethod
    def location_codes(db: Session, bin_ids: List[int]) -> Dict[int, str]:
        """Location code per bin id, for rendering placements."""
        if not bin_ids:
            return {}
        rows = db.execute(bin_rows_query().where(WarehouseBin.id.in_(bin_ids))).all()
        return {
            bin_.id: encode_location(floor, area_code, rack_number, shelf_level, bin_.code)
            for bin_, floor, area_code, _, rack_number, shelf_level in rows
        }

    @staticmethod
    def get_available_bins(db: Session, seller_id: int, warehouse_id: int) -> List[dict]:
        """Every live bin of the warehouse in physical order, with its placement count."""
        warehouse = WarehouseService.get_warehouse(db, seller_id, warehouse_id)

        placement_counts = (
            select(ProductLocation.bin_id, func.count(ProductLocation.id).label("placements"))
            .group_by(ProductLocation.bin_id)
            .subquery()
        )
        rows = db.execute(
            bin_rows_query()
            .add_columns(func.coalesce(placement_counts.c.placements, 0))
            .outerjoin(placement_counts, placement_counts.c.bin_id == WarehouseBin.id)
            .where(WarehouseBin.warehouse_id == warehouse.id, WarehouseBin.seller_id == seller_id)
            .order_by(
                WarehouseFloorPlan.floor,
                WarehouseArea.code,
                WarehouseRack.number,
                WarehouseShelf.level,
                WarehouseBin.code,
            )
        ).all()

        bins = []
        for bin_, floor, area_code, area_name, rack_number, shelf_level, placements in rows:
            bins.append({
                "id": bin_.id,
                "code": bin_.code,
                "capacity": bin_.capacity,
                "floor": floor,
                "area_code": area_code,
                "area_name": area_name,
                "rack_number": rack_number,
                "shelf_level": shelf_level,
                "location_code": encode_location(floor, area_code, rack_number, shelf_level, bin_.code),
                "full_path": full_path(floor, area_name, rack_number, shelf_level, bin_.code),
                "product_location_count": placements,
            })
        return bins
