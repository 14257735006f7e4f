"""SQLAlchemy models."""

from app.models.seller import SellerProfile, UserRole, VerificationStatus
from app.models.document_sequence import DocumentSequence
from app.models.product import Product, ProductVariant, ProductStatus
from app.models.warehouse import (
    Warehouse,
    WarehouseFloorPlan,
    WarehouseArea,
    WarehouseRack,
    WarehouseShelf,
    WarehouseBin,
    ProductLocation,
)
from app.models.procurement import (
    ProformaInvoice,
    PIItem,
    PurchaseOrder,
    POItem,
    Invoice,
    InvoiceItem,
    PaymentRecord,
    PIStatus,
    POStatus,
    InvoiceStatus,
    CreditTerms,
    PaymentMethod,
)

__all__ = [
    "SellerProfile",
    "UserRole",
    "VerificationStatus",
    "DocumentSequence",
    "Product",
    "ProductVariant",
    "ProductStatus",
    "Warehouse",
    "WarehouseFloorPlan",
    "WarehouseArea",
    "WarehouseRack",
    "WarehouseShelf",
    "WarehouseBin",
    "ProductLocation",
    "ProformaInvoice",
    "PIItem",
    "PurchaseOrder",
    "POItem",
    "Invoice",
    "InvoiceItem",
    "PaymentRecord",
    "PIStatus",
    "POStatus",
    "InvoiceStatus",
    "CreditTerms",
    "PaymentMethod",
]
