"""Inventory product routes: catalogue entries, variants and bin placements."""

from typing import List

from fastapi import APIRouter, Request

from app.core.rate_limit import limiter
from app.core.rbac import CurrentSeller
from app.core.validators import PositiveIntId
from app.db.base import as_utc
from app.db.session import DbSession
from app.models.product import Product, ProductVariant
from app.models.warehouse import ProductLocation
from app.schemas.inventory import (
    LocationAssign,
    LocationQuantityUpdate,
    ProductCreate,
    ProductDetailResponse,
    ProductLocationResponse,
    ProductResponse,
    ProductUpdate,
    VariantCreate,
    VariantResponse,
    VariantUpdate,
)
from app.schemas.warehouse import AvailableBinResponse
from app.services.location_assignment_service import LocationAssignmentService
from app.services.product_service import ProductService

router = APIRouter()


def _location_to_response(location: ProductLocation, codes: dict) -> dict:
    return {
        "id": location.id,
        "product_id": location.product_id,
        "product_variant_id": location.product_variant_id,
        "bin_id": location.bin_id,
        "quantity": location.quantity,
        "notes": location.notes,
        "location_code": codes.get(location.bin_id),
    }


def _variant_to_response(variant: ProductVariant, locations: List[dict] = ()) -> dict:
    return {
        "id": variant.id,
        "product_id": variant.product_id,
        "name": variant.name,
        "sku": variant.sku,
        "barcode": variant.barcode,
        "price": float(variant.price),
        "attributes": variant.attributes or {},
        "locations": list(locations),
    }


def _product_to_response(product: Product) -> dict:
    return {
        "id": product.id,
        "product_code": product.product_code,
        "name": product.name,
        "description": product.description,
        "sku": product.sku,
        "barcode": product.barcode,
        "base_price": float(product.base_price),
        "status": product.status,
        "variant_count": len(product.variants),
        "created_at": as_utc(product.created_at),
    }


def _single_location(db, location: ProductLocation) -> dict:
    return _location_to_response(location, LocationAssignmentService.location_codes(db, [location.bin_id]))


# --- Placements ---

@router.post("/locations", response_model=ProductLocationResponse, status_code=201)
@limiter.limit("30/minute")
def assign_location(request: Request, db: DbSession, seller: CurrentSeller, body: LocationAssign):
    """Place a product or one of its variants into a bin."""
    location = LocationAssignmentService.assign(db, seller.id, body)
    return _single_location(db, location)


@router.put("/locations/{location_id}", response_model=ProductLocationResponse)
@limiter.limit("30/minute")
def update_location(
    request: Request, db: DbSession, seller: CurrentSeller, location_id: PositiveIntId, body: LocationQuantityUpdate
):
    location = LocationAssignmentService.update(db, seller.id, location_id, body.quantity, body.notes)
    return _single_location(db, location)


@router.delete("/locations/{location_id}", status_code=204)
@limiter.limit("30/minute")
def remove_location(request: Request, db: DbSession, seller: CurrentSeller, location_id: PositiveIntId):
    LocationAssignmentService.remove(db, seller.id, location_id)


@router.get("/warehouses/{warehouse_id}/available-bins", response_model=List[AvailableBinResponse])
@limiter.limit("60/minute")
def get_available_bins(request: Request, db: DbSession, seller: CurrentSeller, warehouse_id: PositiveIntId):
    """Bins of a warehouse in physical order, for a placement picker."""
    return LocationAssignmentService.get_available_bins(db, seller.id, warehouse_id)


# --- Variants ---

@router.put("/variants/{variant_id}", response_model=VariantResponse)
@limiter.limit("30/minute")
def update_variant(
    request: Request, db: DbSession, seller: CurrentSeller, variant_id: PositiveIntId, body: VariantUpdate
):
    return _variant_to_response(ProductService.update_variant(db, seller.id, variant_id, body))


@router.delete("/variants/{variant_id}", status_code=204)
@limiter.limit("30/minute")
def delete_variant(request: Request, db: DbSession, seller: CurrentSeller, variant_id: PositiveIntId):
    ProductService.delete_variant(db, seller.id, variant_id)


# --- Products ---

@router.get("/", response_model=List[ProductResponse])
@limiter.limit("60/minute")
def list_products(request: Request, db: DbSession, seller: CurrentSeller):
    return [_product_to_response(p) for p in ProductService.list(db, seller.id)]


@router.post("/", response_model=ProductResponse, status_code=201)
@limiter.limit("30/minute")
def create_product(request: Request, db: DbSession, seller: CurrentSeller, body: ProductCreate):
    """Create a product; product code, SKU and barcode are generated when absent."""
    return _product_to_response(ProductService.create(db, seller, body))


@router.get("/{product_id}", response_model=ProductDetailResponse)
@limiter.limit("60/minute")
def get_product(request: Request, db: DbSession, seller: CurrentSeller, product_id: PositiveIntId):
    product = ProductService.get(db, seller.id, product_id)
    locations = LocationAssignmentService.list_for_product(
        db, seller.id, product.id, [v.id for v in product.variants]
    )
    codes = LocationAssignmentService.location_codes(db, [loc.bin_id for loc in locations])

    by_variant = {}
    own = []
    for location in locations:
        rendered = _location_to_response(location, codes)
        if location.product_variant_id is not None:
            by_variant.setdefault(location.product_variant_id, []).append(rendered)
        else:
            own.append(rendered)

    return {
        **_product_to_response(product),
        "variants": [_variant_to_response(v, by_variant.get(v.id, [])) for v in product.variants],
        "locations": own,
    }


@router.put("/{product_id}", response_model=ProductResponse)
@limiter.limit("30/minute")
def update_product(
    request: Request, db: DbSession, seller: CurrentSeller, product_id: PositiveIntId, body: ProductUpdate
):
    return _product_to_response(ProductService.update(db, seller.id, product_id, body))


@router.delete("/{product_id}", status_code=204)
@limiter.limit("30/minute")
def delete_product(request: Request, db: DbSession, seller: CurrentSeller, product_id: PositiveIntId):
    ProductService.delete(db, seller.id, product_id)


@router.post("/{product_id}/variants", response_model=VariantResponse, status_code=201)
@limiter.limit("30/minute")
def create_variant(
    request: Request, db: DbSession, seller: CurrentSeller, product_id: PositiveIntId, body: VariantCreate
):
    return _variant_to_response(ProductService.create_variant(db, seller, product_id, body))
