# Services module

from app.services.procurement_service import (
    ProformaInvoiceService,
    PurchaseOrderService,
    InvoiceService,
)
from app.services.procurement_analytics_service import ProcurementAnalyticsService
from app.services.numbering_service import NumberingService

# Warehouse addressing and stock placement
from app.services.warehouse_service import WarehouseService
from app.services.location_assignment_service import LocationAssignmentService
from app.services.product_service import ProductService

__all__ = [
    "ProformaInvoiceService",
    "PurchaseOrderService",
    "InvoiceService",
    "ProcurementAnalyticsService",
    "NumberingService",
    "WarehouseService",
    "LocationAssignmentService",
    "ProductService",
]
