"""Warehouse hierarchy routes.

Warehouse -> floor plan -> area -> rack -> shelf -> bin. Every bin is
addressable by a location code such as ``G-A-001-01-B1``.
"""

from typing import List

from fastapi import APIRouter, Query, Request

from app.core.rate_limit import limiter
from app.core.rbac import CurrentSeller
from app.core.validators import PositiveIntId
from app.db.base import as_utc
from app.db.session import DbSession
from app.models.warehouse import Warehouse, WarehouseBin
from app.schemas.warehouse import (
    AreaCreate,
    AreaResponse,
    BinCreate,
    BinResponse,
    FloorPlanCreate,
    FloorPlanResponse,
    LocationCodeResponse,
    RackCreate,
    RackResponse,
    ShelfCreate,
    ShelfResponse,
    WarehouseCreate,
    WarehouseDetailResponse,
    WarehouseResponse,
    WarehouseUpdate,
)
from app.services.warehouse_service import WarehouseService, tree_location_code

router = APIRouter()


def _warehouse_to_response(warehouse: Warehouse) -> dict:
    return {
        "id": warehouse.id,
        "name": warehouse.name,
        "code": warehouse.code,
        "address": warehouse.address,
        "created_at": as_utc(warehouse.created_at),
    }


def _warehouse_tree(warehouse: Warehouse) -> dict:
    """Nested floor plans down to bins, each bin carrying its location code."""
    floor_plans = []
    for fp in warehouse.floor_plans:
        areas = []
        for area in fp.areas:
            racks = []
            for rack in area.racks:
                shelves = []
                for shelf in rack.shelves:
                    bins = [
                        {
                            "id": bin_.id,
                            "code": bin_.code,
                            "capacity": bin_.capacity,
                            "location_code": tree_location_code(fp, area, rack, shelf, bin_),
                        }
                        for bin_ in shelf.bins
                    ]
                    shelves.append({"id": shelf.id, "level": shelf.level, "bins": bins})
                racks.append({"id": rack.id, "number": rack.number, "shelves": shelves})
            areas.append({"id": area.id, "code": area.code, "name": area.name, "racks": racks})
        floor_plans.append({
            "id": fp.id,
            "warehouse_id": fp.warehouse_id,
            "floor": fp.floor,
            "name": fp.name,
            "areas": areas,
        })
    return {**_warehouse_to_response(warehouse), "floor_plans": floor_plans}


def _bin_to_response(db, seller_id: int, bin_: WarehouseBin) -> dict:
    return {
        "id": bin_.id,
        "code": bin_.code,
        "capacity": bin_.capacity,
        "location_code": WarehouseService.location_code(db, seller_id, bin_.id),
    }


# --- Warehouses ---

@router.get("/", response_model=List[WarehouseResponse])
@limiter.limit("60/minute")
def list_warehouses(request: Request, db: DbSession, seller: CurrentSeller):
    return [_warehouse_to_response(w) for w in WarehouseService.list_warehouses(db, seller.id)]


@router.post("/", response_model=WarehouseResponse, status_code=201)
@limiter.limit("30/minute")
def create_warehouse(request: Request, db: DbSession, seller: CurrentSeller, body: WarehouseCreate):
    return _warehouse_to_response(WarehouseService.create_warehouse(db, seller.id, body))


# --- Bins (literal prefixes first) ---

@router.get("/bins/{bin_id}/location-code", response_model=LocationCodeResponse)
@limiter.limit("60/minute")
def get_bin_location_code(request: Request, db: DbSession, seller: CurrentSeller, bin_id: PositiveIntId):
    return {"bin_id": bin_id, "location_code": WarehouseService.location_code(db, seller.id, bin_id)}


@router.delete("/bins/{bin_id}", status_code=204)
@limiter.limit("30/minute")
def delete_bin(request: Request, db: DbSession, seller: CurrentSeller, bin_id: PositiveIntId):
    WarehouseService.delete_bin(db, seller.id, bin_id)


# --- Floor plans, areas, racks, shelves ---

@router.delete("/floor-plans/{floor_plan_id}", status_code=204)
@limiter.limit("30/minute")
def delete_floor_plan(request: Request, db: DbSession, seller: CurrentSeller, floor_plan_id: PositiveIntId):
    WarehouseService.delete_floor_plan(db, seller.id, floor_plan_id)


@router.post("/floor-plans/{floor_plan_id}/areas", response_model=AreaResponse, status_code=201)
@limiter.limit("30/minute")
def create_area(
    request: Request, db: DbSession, seller: CurrentSeller, floor_plan_id: PositiveIntId, body: AreaCreate
):
    area = WarehouseService.create_area(db, seller.id, floor_plan_id, body)
    return {"id": area.id, "code": area.code, "name": area.name, "racks": []}


@router.delete("/areas/{area_id}", status_code=204)
@limiter.limit("30/minute")
def delete_area(request: Request, db: DbSession, seller: CurrentSeller, area_id: PositiveIntId):
    WarehouseService.delete_area(db, seller.id, area_id)


@router.post("/areas/{area_id}/racks", response_model=RackResponse, status_code=201)
@limiter.limit("30/minute")
def create_rack(request: Request, db: DbSession, seller: CurrentSeller, area_id: PositiveIntId, body: RackCreate):
    rack = WarehouseService.create_rack(db, seller.id, area_id, body)
    return {"id": rack.id, "number": rack.number, "shelves": []}


@router.delete("/racks/{rack_id}", status_code=204)
@limiter.limit("30/minute")
def delete_rack(request: Request, db: DbSession, seller: CurrentSeller, rack_id: PositiveIntId):
    WarehouseService.delete_rack(db, seller.id, rack_id)


@router.post("/racks/{rack_id}/shelves", response_model=ShelfResponse, status_code=201)
@limiter.limit("30/minute")
def create_shelf(request: Request, db: DbSession, seller: CurrentSeller, rack_id: PositiveIntId, body: ShelfCreate):
    shelf = WarehouseService.create_shelf(db, seller.id, rack_id, body)
    return {"id": shelf.id, "level": shelf.level, "bins": []}


@router.delete("/shelves/{shelf_id}", status_code=204)
@limiter.limit("30/minute")
def delete_shelf(request: Request, db: DbSession, seller: CurrentSeller, shelf_id: PositiveIntId):
    WarehouseService.delete_shelf(db, seller.id, shelf_id)


@router.post("/shelves/{shelf_id}/bins", response_model=BinResponse, status_code=201)
@limiter.limit("30/minute")
def create_bin(request: Request, db: DbSession, seller: CurrentSeller, shelf_id: PositiveIntId, body: BinCreate):
    bin_ = WarehouseService.create_bin(db, seller.id, shelf_id, body)
    return _bin_to_response(db, seller.id, bin_)


# --- Single warehouse ---

@router.get("/{warehouse_id}", response_model=WarehouseDetailResponse)
@limiter.limit("60/minute")
def get_warehouse(request: Request, db: DbSession, seller: CurrentSeller, warehouse_id: PositiveIntId):
    """Full hierarchy of one warehouse with a location code on every bin."""
    return _warehouse_tree(WarehouseService.get_warehouse_tree(db, seller.id, warehouse_id))


@router.put("/{warehouse_id}", response_model=WarehouseResponse)
@limiter.limit("30/minute")
def update_warehouse(
    request: Request, db: DbSession, seller: CurrentSeller, warehouse_id: PositiveIntId, body: WarehouseUpdate
):
    return _warehouse_to_response(WarehouseService.update_warehouse(db, seller.id, warehouse_id, body))


@router.delete("/{warehouse_id}", status_code=204)
@limiter.limit("30/minute")
def delete_warehouse(request: Request, db: DbSession, seller: CurrentSeller, warehouse_id: PositiveIntId):
    WarehouseService.delete_warehouse(db, seller.id, warehouse_id)


@router.post("/{warehouse_id}/floor-plans", response_model=FloorPlanResponse, status_code=201)
@limiter.limit("30/minute")
def create_floor_plan(
    request: Request, db: DbSession, seller: CurrentSeller, warehouse_id: PositiveIntId, body: FloorPlanCreate
):
    fp = WarehouseService.create_floor_plan(db, seller.id, warehouse_id, body)
    return {"id": fp.id, "warehouse_id": fp.warehouse_id, "floor": fp.floor, "name": fp.name, "areas": []}


@router.get("/{warehouse_id}/bins/lookup", response_model=BinResponse)
@limiter.limit("60/minute")
def lookup_bin_by_code(
    request: Request,
    db: DbSession,
    seller: CurrentSeller,
    warehouse_id: PositiveIntId,
    code: str = Query(..., min_length=1, max_length=100),
):
    """Resolve a location code back to its bin."""
    bin_ = WarehouseService.lookup_bin(db, seller.id, warehouse_id, code)
    return _bin_to_response(db, seller.id, bin_)
