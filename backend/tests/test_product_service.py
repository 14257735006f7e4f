"""Product and variant catalogue edits."""

from decimal import Decimal

import pytest

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.product import ProductStatus
from app.schemas.inventory import ProductUpdate, VariantCreate, VariantUpdate
from app.services.product_service import ProductService


@pytest.fixture
def variant(db_session, seller, product):
    return ProductService.create_variant(
        db_session, seller, product.id, VariantCreate(name="Zinc", price=Decimal("1.10"), attributes={"finish": "zinc"})
    )


class TestProductUpdate:

    def test_only_given_fields_change(self, db_session, seller, product):
        updated = ProductService.update(
            db_session, seller.id, product.id, ProductUpdate(base_price=Decimal("120.5"))
        )
        assert updated.base_price == Decimal("120.50")
        assert updated.name == "Steel Bolt M8"
        assert updated.status == ProductStatus.ACTIVE
        assert updated.product_code == "PRD-2000-00001"

    def test_description_can_be_cleared(self, db_session, seller, product):
        ProductService.update(db_session, seller.id, product.id, ProductUpdate(description="Zinc plated"))
        updated = ProductService.update(db_session, seller.id, product.id, ProductUpdate(description=None))
        assert updated.description is None

    def test_status_change(self, db_session, seller, product):
        updated = ProductService.update(
            db_session, seller.id, product.id, ProductUpdate(status=ProductStatus.INACTIVE, name="Bolt M8")
        )
        assert updated.status == ProductStatus.INACTIVE
        assert updated.name == "Bolt M8"

    @pytest.mark.parametrize("field", ["name", "base_price", "status"])
    def test_required_fields_cannot_be_nulled(self, db_session, seller, product, field):
        with pytest.raises(BadRequestError, match=f"{field} cannot be null"):
            ProductService.update(db_session, seller.id, product.id, ProductUpdate(**{field: None}))

    def test_foreign_product(self, db_session, other_seller, product):
        with pytest.raises(NotFoundError, match="Product not found"):
            ProductService.update(db_session, other_seller.id, product.id, ProductUpdate(name="Mine"))

    def test_deleted_product(self, db_session, seller, product):
        ProductService.delete(db_session, seller.id, product.id)
        with pytest.raises(NotFoundError):
            ProductService.update(db_session, seller.id, product.id, ProductUpdate(name="Back"))


class TestVariantUpdate:

    def test_only_given_fields_change(self, db_session, seller, variant):
        updated = ProductService.update_variant(
            db_session, seller.id, variant.id, VariantUpdate(price=Decimal("1.25"))
        )
        assert updated.price == Decimal("1.25")
        assert updated.name == "Zinc"
        assert updated.attributes == {"finish": "zinc"}

    def test_attributes_are_replaced(self, db_session, seller, variant):
        updated = ProductService.update_variant(
            db_session, seller.id, variant.id, VariantUpdate(attributes={"finish": "black oxide"})
        )
        assert updated.attributes == {"finish": "black oxide"}

    def test_null_name_is_rejected(self, db_session, seller, variant):
        with pytest.raises(BadRequestError, match="name cannot be null"):
            ProductService.update_variant(db_session, seller.id, variant.id, VariantUpdate(name=None))

    def test_foreign_variant(self, db_session, other_seller, variant):
        with pytest.raises(NotFoundError, match="Product variant not found"):
            ProductService.update_variant(db_session, other_seller.id, variant.id, VariantUpdate(name="Mine"))

    def test_variant_of_deleted_product(self, db_session, seller, product, variant):
        ProductService.delete(db_session, seller.id, product.id)
        with pytest.raises(NotFoundError):
            ProductService.update_variant(db_session, seller.id, variant.id, VariantUpdate(name="Back"))
