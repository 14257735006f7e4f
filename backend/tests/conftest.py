"""Pytest configuration and fixtures."""

import os

# Point the application engine at an in-memory database before app modules load
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DEBUG", "true")

import pytest
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app
# Import all models to ensure they're registered with Base.metadata
from app.models import *
from app.models.procurement import PIStatus, POStatus
from app.models.product import Product, ProductStatus
from app.models.seller import SellerProfile, UserRole, VerificationStatus
from app.schemas.procurement import PICreate, PIItemInput
from app.schemas.warehouse import (
    AreaCreate,
    BinCreate,
    FloorPlanCreate,
    RackCreate,
    ShelfCreate,
    WarehouseCreate,
)
from app.services.procurement_service import (
    InvoiceService,
    ProformaInvoiceService,
    PurchaseOrderService,
)
from app.services.warehouse_service import WarehouseService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            db_session.rollback()

    app.dependency_overrides[get_db] = override_get_db
    # Disable the rate limiter during tests to avoid flaky failures
    from app.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


# --- Tenants ---

def _make_seller(db: Session, user_id: str, name: str,
                 role: UserRole = UserRole.SELLER,
                 verification: VerificationStatus = VerificationStatus.VERIFIED) -> SellerProfile:
    seller = SellerProfile(
        user_id=user_id,
        business_name=name,
        role=role,
        verification_status=verification,
    )
    db.add(seller)
    db.commit()
    db.refresh(seller)
    return seller


def _headers_for(user_id: str) -> dict:
    token = create_access_token(data={"sub": user_id, "email": f"{user_id}@example.com"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seller(db_session: Session) -> SellerProfile:
    """A verified seller."""
    return _make_seller(db_session, "user-1", "Acme Supplies")


@pytest.fixture
def other_seller(db_session: Session) -> SellerProfile:
    """A second, unrelated tenant."""
    return _make_seller(db_session, "user-2", "Globex Trading")


@pytest.fixture
def unverified_seller(db_session: Session) -> SellerProfile:
    return _make_seller(
        db_session, "user-3", "Initech", verification=VerificationStatus.PENDING
    )


@pytest.fixture
def buyer_profile(db_session: Session) -> SellerProfile:
    return _make_seller(db_session, "user-4", "Buyer Co", role=UserRole.BUYER)


@pytest.fixture
def make_headers():
    """Build bearer headers for an arbitrary user id."""
    return _headers_for


@pytest.fixture
def auth_headers(seller: SellerProfile) -> dict:
    """Get authentication headers for the verified seller."""
    return _headers_for(seller.user_id)


@pytest.fixture
def other_auth_headers(other_seller: SellerProfile) -> dict:
    return _headers_for(other_seller.user_id)


# --- Catalogue ---

def _make_product(db: Session, seller: SellerProfile, code: str, name: str, price: str) -> Product:
    product = Product(
        seller_id=seller.id,
        name=name,
        product_code=code,
        sku=f"{code}-SKU",
        barcode="036000291452",
        base_price=Decimal(price),
        status=ProductStatus.ACTIVE,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def product(db_session: Session, seller: SellerProfile) -> Product:
    return _make_product(db_session, seller, "PRD-2000-00001", "Steel Bolt M8", "100.00")


@pytest.fixture
def second_product(db_session: Session, seller: SellerProfile) -> Product:
    return _make_product(db_session, seller, "PRD-2000-00002", "Hex Nut M8", "2.50")


@pytest.fixture
def other_product(db_session: Session, other_seller: SellerProfile) -> Product:
    return _make_product(db_session, other_seller, "PRD-2000-00003", "Foreign Widget", "9.99")


# --- Procurement documents ---

@pytest.fixture
def draft_pi(db_session: Session, seller: SellerProfile, product: Product):
    """DRAFT PI: 2 x 100.00 at 18% tax, total 236.00."""
    return ProformaInvoiceService.create(db_session, seller.id, PICreate(
        items=[PIItemInput(
            product_id=product.id, description=product.name, quantity=2, unit_price=Decimal("100.00")
        )],
    ))


@pytest.fixture
def approved_pi(db_session: Session, seller: SellerProfile, draft_pi):
    ProformaInvoiceService.send(db_session, seller.id, draft_pi.id)
    return ProformaInvoiceService.record_buyer_response(db_session, draft_pi.id, PIStatus.APPROVED)


@pytest.fixture
def pending_po(db_session: Session, approved_pi):
    return ProformaInvoiceService.create_purchase_order_from_pi(db_session, approved_pi.id)


@pytest.fixture
def delivered_po(db_session: Session, seller: SellerProfile, pending_po):
    PurchaseOrderService.acknowledge(db_session, seller.id, pending_po.id)
    PurchaseOrderService.update_status(db_session, seller.id, pending_po.id, POStatus.IN_PROGRESS)
    PurchaseOrderService.update_status(db_session, seller.id, pending_po.id, POStatus.SHIPPED)
    return PurchaseOrderService.update_status(db_session, seller.id, pending_po.id, POStatus.DELIVERED)


@pytest.fixture
def sent_invoice(db_session: Session, seller: SellerProfile, delivered_po):
    invoice = InvoiceService.generate_from_po(db_session, seller.id, delivered_po.id)
    return InvoiceService.send(db_session, seller.id, invoice.id)


# --- Warehouse ---

@pytest.fixture
def warehouse_tree(db_session: Session, seller: SellerProfile) -> dict:
    """WH1 / floor G / area A / rack 1 / shelf 1 / bins B1, B2."""
    warehouse = WarehouseService.create_warehouse(
        db_session, seller.id, WarehouseCreate(name="Main Warehouse", code="WH1")
    )
    floor = WarehouseService.create_floor_plan(
        db_session, seller.id, warehouse.id, FloorPlanCreate(floor="G", name="Ground")
    )
    area = WarehouseService.create_area(
        db_session, seller.id, floor.id, AreaCreate(code="A", name="Aisle A")
    )
    rack = WarehouseService.create_rack(db_session, seller.id, area.id, RackCreate(number=1))
    shelf = WarehouseService.create_shelf(db_session, seller.id, rack.id, ShelfCreate(level=1))
    bin_1 = WarehouseService.create_bin(db_session, seller.id, shelf.id, BinCreate(code="B1", capacity=50))
    bin_2 = WarehouseService.create_bin(db_session, seller.id, shelf.id, BinCreate(code="B2"))
    return {
        "warehouse": warehouse,
        "floor": floor,
        "area": area,
        "rack": rack,
        "shelf": shelf,
        "bin": bin_1,
        "bin_2": bin_2,
    }
