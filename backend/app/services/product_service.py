"""Product catalogue service."""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import BadRequestError, NotFoundError
from app.db.session import commit_or_conflict
from app.models.product import Product, ProductVariant
from app.models.seller import SellerProfile
from app.schemas.inventory import ProductCreate, ProductUpdate, VariantCreate, VariantUpdate
from app.services.numbering_service import NumberingService, generate_barcode, generate_sku
from app.services.totals import to_money

logger = logging.getLogger(__name__)


class ProductService:

    @staticmethod
    def get(db: Session, seller_id: int, product_id: int) -> Product:
        product = db.execute(
            select(Product)
            .options(selectinload(Product.variants))
            .where(Product.id == product_id, Product.seller_id == seller_id)
        ).scalar_one_or_none()
        if product is None:
            raise NotFoundError("Product not found")
        return product

    @staticmethod
    def list(db: Session, seller_id: int) -> List[Product]:
        return list(db.execute(
            select(Product)
            .options(selectinload(Product.variants))
            .where(Product.seller_id == seller_id)
            .order_by(Product.created_at.desc(), Product.id.desc())
        ).scalars().all())

    @staticmethod
    def create(db: Session, seller: SellerProfile, data: ProductCreate) -> Product:
        product = Product(
            seller_id=seller.id,
            name=data.name,
            description=data.description,
            product_code=NumberingService.next_number(db, "PRD"),
            sku=data.sku or generate_sku(seller.business_name, data.name),
            barcode=data.barcode or generate_barcode(),
            base_price=to_money(data.base_price),
            status=data.status,
        )
        db.add(product)
        commit_or_conflict(db, "product")
        db.refresh(product)
        logger.info(f"Created product {product.product_code} ({product.sku}) for seller {seller.id}")
        return product

    @staticmethod
    def update(db: Session, seller_id: int, product_id: int, data: ProductUpdate) -> Product:
        product = ProductService.get(db, seller_id, product_id)
        fields = data.model_fields_set
        for name in ("name", "base_price", "status"):
            if name in fields and getattr(data, name) is None:
                raise BadRequestError(f"{name} cannot be null")

        if "name" in fields:
            product.name = data.name
        if "description" in fields:
            product.description = data.description
        if "base_price" in fields:
            product.base_price = to_money(data.base_price)
        if "status" in fields:
            product.status = data.status

        commit_or_conflict(db, "product")
        db.refresh(product)
        logger.info(f"Updated product {product.product_code} ({', '.join(sorted(fields)) or 'no fields'})")
        return product

    @staticmethod
    def delete(db: Session, seller_id: int, product_id: int) -> None:
        product = ProductService.get(db, seller_id, product_id)
        product.soft_delete()
        for variant in product.variants:
            variant.soft_delete()
        db.commit()
        logger.info(f"Soft-deleted product {product.product_code}")

    @staticmethod
    def get_variant(db: Session, seller_id: int, variant_id: int) -> ProductVariant:
        variant = db.execute(
            select(ProductVariant)
            .join(Product, ProductVariant.product_id == Product.id)
            .where(
                ProductVariant.id == variant_id,
                ProductVariant.seller_id == seller_id,
                Product.deleted_at.is_(None),
            )
        ).scalar_one_or_none()
        if variant is None:
            raise NotFoundError("Product variant not found")
        return variant

    @staticmethod
    def create_variant(
        db: Session, seller: SellerProfile, product_id: int, data: VariantCreate
    ) -> ProductVariant:
        product = ProductService.get(db, seller.id, product_id)
        variant = ProductVariant(
            product_id=product.id,
            seller_id=seller.id,
            name=data.name,
            sku=data.sku or generate_sku(seller.business_name, product.name),
            barcode=data.barcode or generate_barcode(),
            price=to_money(data.price),
            attributes=data.attributes,
        )
        db.add(variant)
        commit_or_conflict(db, "product variant")
        db.refresh(variant)
        logger.info(f"Created variant {variant.sku} of {product.product_code}")
        return variant

    @staticmethod
    def update_variant(db: Session, seller_id: int, variant_id: int, data: VariantUpdate) -> ProductVariant:
        variant = ProductService.get_variant(db, seller_id, variant_id)
        fields = data.model_fields_set
        for name in ("name", "price", "attributes"):
            if name in fields and getattr(data, name) is None:
                raise BadRequestError(f"{name} cannot be null")

        if "name" in fields:
            variant.name = data.name
        if "price" in fields:
            variant.price = to_money(data.price)
        if "attributes" in fields:
            variant.attributes = data.attributes

        commit_or_conflict(db, "product variant")
        db.refresh(variant)
        logger.info(f"Updated variant {variant.sku} ({', '.join(sorted(fields)) or 'no fields'})")
        return variant

    @staticmethod
    def delete_variant(db: Session, seller_id: int, variant_id: int) -> None:
        variant = ProductService.get_variant(db, seller_id, variant_id)
        variant.soft_delete()
        db.commit()
        logger.info(f"Soft-deleted variant {variant.sku}")
