"""Document numbering.

Numbers look like ``PI-2026-00001``: a type prefix, the calendar year and a
five-digit counter that restarts every year. The counter lives in one
``document_sequences`` row per (type, year) and is advanced with a single
``UPDATE ... SET current_number = current_number + 1`` inside the caller's
transaction, so two concurrent callers can never read the same value. On
PostgreSQL the update takes a row lock; on SQLite it takes the database
write lock. Either way the lock is held until the caller commits.

Product identifiers (SKU, UPC-A barcode) are generated here as well.
"""

import logging
import re
import secrets
import time
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.db.base import utcnow
from app.models.document_sequence import DocumentSequence
from app.models.procurement import Invoice, ProformaInvoice, PurchaseOrder
from app.models.product import Product

logger = logging.getLogger(__name__)

# Document type -> the column that stores numbers of that type
DOCUMENT_COLUMNS = {
    "PI": ProformaInvoice.pi_number,
    "PO": PurchaseOrder.po_number,
    "INV": Invoice.invoice_number,
    "PRD": Product.product_code,
}

SEQUENCE_PADDING = 5


def format_document_number(document_type: str, year: int, number: int) -> str:
    return f"{document_type}-{year}-{number:0{SEQUENCE_PADDING}d}"


class NumberingService:
    """Atomic, year-scoped document numbers."""

    @staticmethod
    def _highest_existing(db: Session, document_type: str, year: int) -> int:
        """Largest number already issued for (type, year), used to seed a new counter.

        Covers rows written before the counter existed, including soft-deleted
        ones since their numbers stay reserved.
        """
        column = DOCUMENT_COLUMNS[document_type]
        prefix = f"{document_type}-{year}-"
        # Longest suffix first so "-100000" outranks "-99999"
        highest = db.execute(
            select(column)
            .where(column.like(f"{prefix}%"))
            .order_by(func.length(column).desc(), column.desc())
            .limit(1)
            .execution_options(include_deleted=True)
        ).scalar()
        if not highest:
            return 0
        suffix = highest[len(prefix):]
        return int(suffix) if suffix.isdigit() else 0

    @staticmethod
    def _ensure_sequence(db: Session, document_type: str, year: int) -> None:
        dialect = db.get_bind().dialect.name
        seed = NumberingService._highest_existing(db, document_type, year)
        values = {"document_type": document_type, "year": year, "current_number": seed}

        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            exists = db.execute(
                select(DocumentSequence.id).where(
                    DocumentSequence.document_type == document_type,
                    DocumentSequence.year == year,
                )
            ).first()
            if exists is None:
                db.add(DocumentSequence(**values))
                db.flush()
            return

        db.execute(
            insert(DocumentSequence)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["document_type", "year"])
        )

    @staticmethod
    def next_number(db: Session, document_type: str, year: Optional[int] = None) -> str:
        """Reserve and return the next number for ``document_type``.

        The reservation becomes permanent when the caller commits; a rollback
        releases it.
        """
        document_type = document_type.upper()
        if document_type not in DOCUMENT_COLUMNS:
            raise ValueError(
                f"Invalid document type '{document_type}'. "
                f"Valid types: {', '.join(DOCUMENT_COLUMNS)}"
            )
        year = year or utcnow().year

        NumberingService._ensure_sequence(db, document_type, year)
        db.execute(
            update(DocumentSequence)
            .where(
                DocumentSequence.document_type == document_type,
                DocumentSequence.year == year,
            )
            .values(current_number=DocumentSequence.current_number + 1)
            .execution_options(synchronize_session=False)
        )
        current = db.execute(
            select(DocumentSequence.current_number).where(
                DocumentSequence.document_type == document_type,
                DocumentSequence.year == year,
            )
        ).scalar_one()

        number = format_document_number(document_type, year, current)
        logger.debug(f"Reserved document number {number}")
        return number


def _alnum_upper(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", value or "").upper()


def generate_sku(seller_code: str, name: str) -> str:
    """``{SELLER}-{NAME}-{NNNNNN}``: 4 chars of the seller, 3 of the name,
    the last six digits of the current millisecond clock."""
    seller_part = _alnum_upper(seller_code)[:4] or "SELL"
    name_part = _alnum_upper(name)[:3] or "ITM"
    stamp = str(int(time.time() * 1000))[-6:]
    return f"{seller_part}-{name_part}-{stamp}"


def upc_check_digit(digits: str) -> int:
    """Check digit for an 11-digit UPC-A body."""
    odd = sum(int(d) for d in digits[0::2])
    even = sum(int(d) for d in digits[1::2])
    return (10 - (odd * 3 + even) % 10) % 10


def generate_barcode() -> str:
    """Random 12-digit UPC-A code with a valid check digit."""
    body = "".join(str(secrets.randbelow(10)) for _ in range(11))
    return f"{body}{upc_check_digit(body)}"
