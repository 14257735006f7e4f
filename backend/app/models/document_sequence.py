"""Per-year counters backing document numbers (PI, PO, INV, PRD)."""

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin


class DocumentSequence(Base, TimestampMixin):
    __tablename__ = "document_sequences"
    __table_args__ = (
        UniqueConstraint("document_type", "year", name="uq_document_sequences_type_year"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    document_type: Mapped[str] = mapped_column(String(10), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    current_number: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
