"""Warehouse hierarchy management.

Creates and removes warehouses, floor plans, areas, racks, shelves and bins
for one seller. Each child copies ``seller_id`` (and, for bins, the whole
ancestor chain) from its parent when it is created.

Warehouses and floor plans are soft-deleted; areas, racks, shelves and bins
are deleted outright together with their children. Removing any node that
still holds product placements is refused.
"""

import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import BadRequestError, ConflictError, NotFoundError
from app.db.session import commit_or_conflict
from app.models.warehouse import (
    ProductLocation,
    Warehouse,
    WarehouseArea,
    WarehouseBin,
    WarehouseFloorPlan,
    WarehouseRack,
    WarehouseShelf,
)
from app.schemas.warehouse import (
    AreaCreate,
    BinCreate,
    FloorPlanCreate,
    RackCreate,
    ShelfCreate,
    WarehouseCreate,
    WarehouseUpdate,
)
from app.services.location_code import (
    LocationParts,
    decode_location,
    encode_location,
    validate_position,
    validate_segment,
)

logger = logging.getLogger(__name__)


def bin_rows_query():
    """Bins with the hierarchy values their location code is built from.

    Rows are ``(bin, floor, area_code, area_name, rack_number, shelf_level)``.
    Bins below a deleted warehouse or floor plan are excluded.
    """
    return (
        select(
            WarehouseBin,
            WarehouseFloorPlan.floor,
            WarehouseArea.code,
            WarehouseArea.name,
            WarehouseRack.number,
            WarehouseShelf.level,
        )
        .join(WarehouseShelf, WarehouseBin.shelf_id == WarehouseShelf.id)
        .join(WarehouseRack, WarehouseBin.rack_id == WarehouseRack.id)
        .join(WarehouseArea, WarehouseBin.area_id == WarehouseArea.id)
        .join(WarehouseFloorPlan, WarehouseBin.floor_plan_id == WarehouseFloorPlan.id)
        .join(Warehouse, WarehouseBin.warehouse_id == Warehouse.id)
        .where(WarehouseFloorPlan.deleted_at.is_(None), Warehouse.deleted_at.is_(None))
    )


def _placements_under(db: Session, column, value: int) -> int:
    """Number of product placements in bins whose ``column`` equals ``value``."""
    return db.execute(
        select(func.count(ProductLocation.id))
        .join(WarehouseBin, ProductLocation.bin_id == WarehouseBin.id)
        .where(column == value)
    ).scalar_one()


def _ensure_empty(db: Session, column, value: int, label: str) -> None:
    count = _placements_under(db, column, value)
    if count:
        logger.warning(f"Refused to delete {label} {value}: {count} product placement(s)")
        raise ConflictError(f"Cannot delete {label} with assigned products")


class WarehouseService:

    # --- loaders (ownership + liveness) ---

    @staticmethod
    def get_warehouse(db: Session, seller_id: int, warehouse_id: int) -> Warehouse:
        warehouse = db.execute(
            select(Warehouse).where(Warehouse.id == warehouse_id, Warehouse.seller_id == seller_id)
        ).scalar_one_or_none()
        if warehouse is None:
            raise NotFoundError("Warehouse not found")
        return warehouse

    @staticmethod
    def get_warehouse_tree(db: Session, seller_id: int, warehouse_id: int) -> Warehouse:
        warehouse = db.execute(
            select(Warehouse)
            .options(
                selectinload(Warehouse.floor_plans)
                .selectinload(WarehouseFloorPlan.areas)
                .selectinload(WarehouseArea.racks)
                .selectinload(WarehouseRack.shelves)
                .selectinload(WarehouseShelf.bins)
            )
            .where(Warehouse.id == warehouse_id, Warehouse.seller_id == seller_id)
        ).scalar_one_or_none()
        if warehouse is None:
            raise NotFoundError("Warehouse not found")
        return warehouse

    @staticmethod
    def get_floor_plan(db: Session, seller_id: int, floor_plan_id: int) -> WarehouseFloorPlan:
        floor_plan = db.execute(
            select(WarehouseFloorPlan)
            .join(Warehouse, WarehouseFloorPlan.warehouse_id == Warehouse.id)
            .where(
                WarehouseFloorPlan.id == floor_plan_id,
                WarehouseFloorPlan.seller_id == seller_id,
                Warehouse.deleted_at.is_(None),
            )
        ).scalar_one_or_none()
        if floor_plan is None:
            raise NotFoundError("Floor plan not found")
        return floor_plan

    @staticmethod
    def _get_live_child(db: Session, model, node_id: int, seller_id: int, message: str):
        node = db.execute(
            select(model)
            .join(WarehouseFloorPlan, model.floor_plan_id == WarehouseFloorPlan.id)
            .join(Warehouse, model.warehouse_id == Warehouse.id)
            .where(
                model.id == node_id,
                model.seller_id == seller_id,
                WarehouseFloorPlan.deleted_at.is_(None),
                Warehouse.deleted_at.is_(None),
            )
        ).scalar_one_or_none()
        if node is None:
            raise NotFoundError(message)
        return node

    @staticmethod
    def get_area(db: Session, seller_id: int, area_id: int) -> WarehouseArea:
        return WarehouseService._get_live_child(db, WarehouseArea, area_id, seller_id, "Area not found")

    @staticmethod
    def get_rack(db: Session, seller_id: int, rack_id: int) -> WarehouseRack:
        return WarehouseService._get_live_child(db, WarehouseRack, rack_id, seller_id, "Rack not found")

    @staticmethod
    def get_shelf(db: Session, seller_id: int, shelf_id: int) -> WarehouseShelf:
        return WarehouseService._get_live_child(db, WarehouseShelf, shelf_id, seller_id, "Shelf not found")

    @staticmethod
    def get_bin(db: Session, seller_id: int, bin_id: int, message: str = "Bin not found") -> WarehouseBin:
        return WarehouseService._get_live_child(db, WarehouseBin, bin_id, seller_id, message)

    # --- warehouses ---

    @staticmethod
    def list_warehouses(db: Session, seller_id: int) -> List[Warehouse]:
        return list(db.execute(
            select(Warehouse).where(Warehouse.seller_id == seller_id).order_by(Warehouse.code)
        ).scalars().all())

    @staticmethod
    def create_warehouse(db: Session, seller_id: int, data: WarehouseCreate) -> Warehouse:
        clash = db.execute(
            select(Warehouse).where(Warehouse.seller_id == seller_id, Warehouse.code == data.code)
        ).first()
        if clash is not None:
            raise ConflictError("Warehouse code already exists")

        warehouse = Warehouse(seller_id=seller_id, name=data.name, code=data.code, address=data.address)
        db.add(warehouse)
        commit_or_conflict(db, "warehouse")
        db.refresh(warehouse)
        logger.info(f"Created warehouse {warehouse.code} for seller {seller_id}")
        return warehouse

    @staticmethod
    def update_warehouse(db: Session, seller_id: int, warehouse_id: int, data: WarehouseUpdate) -> Warehouse:
        warehouse = WarehouseService.get_warehouse(db, seller_id, warehouse_id)
        fields = data.model_fields_set
        for name in ("name", "code"):
            if name in fields and getattr(data, name) is None:
                raise BadRequestError(f"{name} cannot be null")

        if "code" in fields and data.code != warehouse.code:
            clash = db.execute(
                select(Warehouse).where(
                    Warehouse.seller_id == seller_id,
                    Warehouse.code == data.code,
                    Warehouse.id != warehouse.id,
                )
            ).first()
            if clash is not None:
                raise ConflictError("Warehouse code already exists")
            warehouse.code = data.code
        if "name" in fields:
            warehouse.name = data.name
        if "address" in fields:
            warehouse.address = data.address

        commit_or_conflict(db, "warehouse")
        db.refresh(warehouse)
        logger.info(f"Updated warehouse {warehouse.code} ({', '.join(sorted(fields)) or 'no fields'})")
        return warehouse

    @staticmethod
    def delete_warehouse(db: Session, seller_id: int, warehouse_id: int) -> None:
        warehouse = WarehouseService.get_warehouse(db, seller_id, warehouse_id)
        _ensure_empty(db, WarehouseBin.warehouse_id, warehouse.id, "warehouse")
        warehouse.soft_delete()
        db.commit()
        logger.info(f"Soft-deleted warehouse {warehouse.code}")

    # --- floor plans ---

    @staticmethod
    def create_floor_plan(
        db: Session, seller_id: int, warehouse_id: int, data: FloorPlanCreate
    ) -> WarehouseFloorPlan:
        warehouse = WarehouseService.get_warehouse(db, seller_id, warehouse_id)
        validate_segment(data.floor, "Floor")
        clash = db.execute(
            select(WarehouseFloorPlan).where(
                WarehouseFloorPlan.warehouse_id == warehouse.id,
                WarehouseFloorPlan.floor == data.floor,
            )
        ).first()
        if clash is not None:
            raise ConflictError("Floor already exists")

        floor_plan = WarehouseFloorPlan(
            warehouse_id=warehouse.id,
            seller_id=warehouse.seller_id,
            floor=data.floor,
            name=data.name,
        )
        db.add(floor_plan)
        commit_or_conflict(db, "floor plan")
        db.refresh(floor_plan)
        logger.info(f"Created floor {floor_plan.floor} in warehouse {warehouse.code}")
        return floor_plan

    @staticmethod
    def delete_floor_plan(db: Session, seller_id: int, floor_plan_id: int) -> None:
        floor_plan = WarehouseService.get_floor_plan(db, seller_id, floor_plan_id)
        _ensure_empty(db, WarehouseBin.floor_plan_id, floor_plan.id, "floor plan")
        floor_plan.soft_delete()
        db.commit()
        logger.info(f"Soft-deleted floor plan {floor_plan.id}")

    # --- areas ---

    @staticmethod
    def create_area(db: Session, seller_id: int, floor_plan_id: int, data: AreaCreate) -> WarehouseArea:
        floor_plan = WarehouseService.get_floor_plan(db, seller_id, floor_plan_id)
        validate_segment(data.code, "Area code")
        clash = db.execute(
            select(WarehouseArea).where(
                WarehouseArea.floor_plan_id == floor_plan.id,
                WarehouseArea.code == data.code,
            )
        ).first()
        if clash is not None:
            raise ConflictError("Area code already exists on this floor")

        area = WarehouseArea(
            floor_plan_id=floor_plan.id,
            warehouse_id=floor_plan.warehouse_id,
            seller_id=floor_plan.seller_id,
            code=data.code,
            name=data.name,
        )
        db.add(area)
        commit_or_conflict(db, "area")
        db.refresh(area)
        return area

    @staticmethod
    def delete_area(db: Session, seller_id: int, area_id: int) -> None:
        area = WarehouseService.get_area(db, seller_id, area_id)
        _ensure_empty(db, WarehouseBin.area_id, area.id, "area")
        db.delete(area)
        db.commit()
        logger.info(f"Deleted area {area_id} and its racks")

    # --- racks ---

    @staticmethod
    def create_rack(db: Session, seller_id: int, area_id: int, data: RackCreate) -> WarehouseRack:
        area = WarehouseService.get_area(db, seller_id, area_id)
        validate_position(data.number, "Rack number")
        clash = db.execute(
            select(WarehouseRack).where(
                WarehouseRack.area_id == area.id,
                WarehouseRack.number == data.number,
            )
        ).first()
        if clash is not None:
            raise ConflictError("Rack number already exists in this area")

        rack = WarehouseRack(
            area_id=area.id,
            floor_plan_id=area.floor_plan_id,
            warehouse_id=area.warehouse_id,
            seller_id=area.seller_id,
            number=data.number,
        )
        db.add(rack)
        commit_or_conflict(db, "rack")
        db.refresh(rack)
        return rack

    @staticmethod
    def delete_rack(db: Session, seller_id: int, rack_id: int) -> None:
        rack = WarehouseService.get_rack(db, seller_id, rack_id)
        _ensure_empty(db, WarehouseBin.rack_id, rack.id, "rack")
        db.delete(rack)
        db.commit()
        logger.info(f"Deleted rack {rack_id} and its shelves")

    # --- shelves ---

    @staticmethod
    def create_shelf(db: Session, seller_id: int, rack_id: int, data: ShelfCreate) -> WarehouseShelf:
        rack = WarehouseService.get_rack(db, seller_id, rack_id)
        validate_position(data.level, "Shelf level")
        clash = db.execute(
            select(WarehouseShelf).where(
                WarehouseShelf.rack_id == rack.id,
                WarehouseShelf.level == data.level,
            )
        ).first()
        if clash is not None:
            raise ConflictError("Shelf level already exists on this rack")

        shelf = WarehouseShelf(
            rack_id=rack.id,
            area_id=rack.area_id,
            floor_plan_id=rack.floor_plan_id,
            warehouse_id=rack.warehouse_id,
            seller_id=rack.seller_id,
            level=data.level,
        )
        db.add(shelf)
        commit_or_conflict(db, "shelf")
        db.refresh(shelf)
        return shelf

    @staticmethod
    def delete_shelf(db: Session, seller_id: int, shelf_id: int) -> None:
        shelf = WarehouseService.get_shelf(db, seller_id, shelf_id)
        _ensure_empty(db, WarehouseBin.shelf_id, shelf.id, "shelf")
        db.delete(shelf)
        db.commit()
        logger.info(f"Deleted shelf {shelf_id} and its bins")

    # --- bins ---

    @staticmethod
    def create_bin(db: Session, seller_id: int, shelf_id: int, data: BinCreate) -> WarehouseBin:
        shelf = WarehouseService.get_shelf(db, seller_id, shelf_id)
        validate_segment(data.code, "Bin code")
        clash = db.execute(
            select(WarehouseBin).where(
                WarehouseBin.shelf_id == shelf.id,
                WarehouseBin.code == data.code,
            )
        ).first()
        if clash is not None:
            raise ConflictError("Bin code already exists on this shelf")

        bin_ = WarehouseBin(
            shelf_id=shelf.id,
            rack_id=shelf.rack_id,
            area_id=shelf.area_id,
            floor_plan_id=shelf.floor_plan_id,
            warehouse_id=shelf.warehouse_id,
            seller_id=shelf.seller_id,
            code=data.code,
            capacity=data.capacity,
        )
        db.add(bin_)
        commit_or_conflict(db, "bin")
        db.refresh(bin_)
        logger.info(f"Created bin {WarehouseService.location_code(db, seller_id, bin_.id)}")
        return bin_

    @staticmethod
    def delete_bin(db: Session, seller_id: int, bin_id: int) -> None:
        bin_ = WarehouseService.get_bin(db, seller_id, bin_id)
        _ensure_empty(db, WarehouseBin.id, bin_.id, "bin")
        db.delete(bin_)
        db.commit()
        logger.info(f"Deleted bin {bin_id}")

    # --- location codes ---

    @staticmethod
    def location_code(db: Session, seller_id: int, bin_id: int) -> str:
        row = db.execute(
            bin_rows_query().where(WarehouseBin.id == bin_id, WarehouseBin.seller_id == seller_id)
        ).first()
        if row is None:
            raise NotFoundError("Bin not found")
        bin_, floor, area_code, _, rack_number, shelf_level = row
        return encode_location(floor, area_code, rack_number, shelf_level, bin_.code)

    @staticmethod
    def lookup_bin(db: Session, seller_id: int, warehouse_id: int, code: str) -> WarehouseBin:
        """Resolve a scanned location code to the bin it addresses."""
        WarehouseService.get_warehouse(db, seller_id, warehouse_id)
        parts: LocationParts = decode_location(code)
        row = db.execute(
            bin_rows_query().where(
                WarehouseBin.warehouse_id == warehouse_id,
                WarehouseBin.seller_id == seller_id,
                WarehouseFloorPlan.floor == parts.floor,
                WarehouseArea.code == parts.area_code,
                WarehouseRack.number == parts.rack_number,
                WarehouseShelf.level == parts.shelf_level,
                WarehouseBin.code == parts.bin_code,
            )
        ).first()
        if row is None:
            raise NotFoundError("Bin not found")
        return row[0]


def tree_location_code(floor_plan: WarehouseFloorPlan, area: WarehouseArea,
                       rack: WarehouseRack, shelf: WarehouseShelf, bin_: WarehouseBin) -> str:
    return encode_location(floor_plan.floor, area.code, rack.number, shelf.level, bin_.code)
