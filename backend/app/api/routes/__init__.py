"""API routes."""

from fastapi import APIRouter

from app.api.routes import (
    inventory_products,
    invoices,
    procurement_analytics,
    proforma_invoices,
    purchase_orders,
    warehouses,
)

api_router = APIRouter()

# Procurement lifecycle: PI -> PO -> Invoice -> Payment
api_router.include_router(proforma_invoices.router, prefix="/proforma-invoices", tags=["procurement", "proforma-invoices"])
api_router.include_router(purchase_orders.router, prefix="/purchase-orders", tags=["procurement", "purchase-orders"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["procurement", "invoices"])
api_router.include_router(procurement_analytics.router, prefix="/procurement-analytics", tags=["procurement", "analytics"])

# Warehouse addressing and stock placement
api_router.include_router(warehouses.router, prefix="/warehouses", tags=["warehouses"])
api_router.include_router(inventory_products.router, prefix="/inventory-products", tags=["inventory", "products"])
