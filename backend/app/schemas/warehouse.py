"""Warehouse hierarchy schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class WarehouseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=50)
    address: Optional[str] = Field(None, max_length=2000)


class WarehouseUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    address: Optional[str] = Field(None, max_length=2000)


class FloorPlanCreate(BaseModel):
    floor: str = Field(..., min_length=1, max_length=20)
    name: Optional[str] = Field(None, max_length=255)


class AreaCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=255)


class RackCreate(BaseModel):
    number: int = Field(..., ge=1)


class ShelfCreate(BaseModel):
    level: int = Field(..., ge=1)


class BinCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    capacity: Optional[int] = Field(None, ge=0)


class BinResponse(BaseModel):
    id: int
    code: str
    capacity: Optional[int] = None
    location_code: str


class ShelfResponse(BaseModel):
    id: int
    level: int
    bins: List[BinResponse] = []


class RackResponse(BaseModel):
    id: int
    number: int
    shelves: List[ShelfResponse] = []


class AreaResponse(BaseModel):
    id: int
    code: str
    name: str
    racks: List[RackResponse] = []


class FloorPlanResponse(BaseModel):
    id: int
    warehouse_id: int
    floor: str
    name: Optional[str] = None
    areas: List[AreaResponse] = []


class WarehouseResponse(BaseModel):
    id: int
    name: str
    code: str
    address: Optional[str] = None
    created_at: Optional[datetime] = None


class WarehouseDetailResponse(WarehouseResponse):
    floor_plans: List[FloorPlanResponse] = []


class LocationCodeResponse(BaseModel):
    bin_id: int
    location_code: str


class AvailableBinResponse(BaseModel):
    id: int
    code: str
    capacity: Optional[int] = None
    floor: str
    area_code: str
    area_name: str
    rack_number: int
    shelf_level: int
    location_code: str
    full_path: str
    product_location_count: int
