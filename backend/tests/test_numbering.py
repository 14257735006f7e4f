"""Document numbering and product identifiers."""

import threading

import pytest
from sqlalchemy.orm import sessionmaker

from app.db.base import Base, utcnow
from app.db.session import build_engine
from app.models.product import Product
from app.services.numbering_service import (
    NumberingService,
    format_document_number,
    generate_barcode,
    generate_sku,
    upc_check_digit,
)


class TestFormat:

    def test_zero_padded(self):
        assert format_document_number("PI", 2026, 1) == "PI-2026-00001"
        assert format_document_number("INV", 2026, 12345) == "INV-2026-12345"

    def test_overflow_widens(self):
        assert format_document_number("PO", 2026, 100000) == "PO-2026-100000"


class TestNextNumber:

    def test_sequential_per_type(self, db_session):
        year = utcnow().year
        assert NumberingService.next_number(db_session, "PI") == f"PI-{year}-00001"
        assert NumberingService.next_number(db_session, "PI") == f"PI-{year}-00002"
        assert NumberingService.next_number(db_session, "PO") == f"PO-{year}-00001"
        assert NumberingService.next_number(db_session, "inv") == f"INV-{year}-00001"

    def test_counter_restarts_each_year(self, db_session):
        NumberingService.next_number(db_session, "PI", year=2025)
        assert NumberingService.next_number(db_session, "PI", year=2026) == "PI-2026-00001"
        assert NumberingService.next_number(db_session, "PI", year=2025) == "PI-2025-00002"

    def test_seeded_from_existing_numbers(self, db_session, product, second_product):
        # fixtures hold PRD-2000-00001 and PRD-2000-00002
        assert NumberingService.next_number(db_session, "PRD", year=2000) == "PRD-2000-00003"

    def test_seed_compares_numbers_not_text(self, db_session, seller):
        # "PRD-2001-99999" sorts after "PRD-2001-100000" as text
        for code in ("PRD-2001-99999", "PRD-2001-100000"):
            db_session.add(Product(
                seller_id=seller.id, name=code, product_code=code, sku=code, barcode="036000291452",
            ))
        db_session.commit()
        assert NumberingService.next_number(db_session, "PRD", year=2001) == "PRD-2001-100001"

    def test_soft_deleted_numbers_stay_reserved(self, db_session, second_product):
        second_product.soft_delete()
        db_session.commit()
        assert NumberingService.next_number(db_session, "PRD", year=2000) == "PRD-2000-00003"

    def test_rollback_releases_number(self, db_session):
        first = NumberingService.next_number(db_session, "PO", year=2026)
        db_session.rollback()
        assert NumberingService.next_number(db_session, "PO", year=2026) == first

    def test_unknown_type(self, db_session):
        with pytest.raises(ValueError, match="Invalid document type"):
            NumberingService.next_number(db_session, "XYZ")


def test_concurrent_callers_never_share_a_number(tmp_path):
    """Threads on separate connections to one file database get distinct numbers."""
    engine = build_engine(f"sqlite:///{tmp_path / 'numbers.db'}", connect_args={"timeout": 30})
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)

    results = []
    errors = []
    lock = threading.Lock()

    def worker():
        for _ in range(5):
            session = Session()
            try:
                number = NumberingService.next_number(session, "PI", year=2026)
                session.commit()
                with lock:
                    results.append(number)
            except Exception as e:  # collected and asserted below
                session.rollback()
                with lock:
                    errors.append(e)
            finally:
                session.close()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    engine.dispose()

    assert errors == []
    assert len(results) == 40
    assert len(set(results)) == 40
    assert sorted(results) == [f"PI-2026-{n:05d}" for n in range(1, 41)]


class TestProductIdentifiers:

    def test_sku_shape(self):
        sku = generate_sku("Acme Supplies", "steel bolt")
        seller_part, name_part, stamp = sku.split("-")
        assert seller_part == "ACME"
        assert name_part == "STE"
        assert len(stamp) == 6 and stamp.isdigit()

    def test_sku_falls_back_when_empty(self):
        assert generate_sku("", "!!").startswith("SELL-ITM-")

    def test_upc_check_digit(self):
        # 036000291452 is a published UPC-A example
        assert upc_check_digit("03600029145") == 2

    def test_generated_barcode_is_valid_upc(self):
        barcode = generate_barcode()
        assert len(barcode) == 12 and barcode.isdigit()
        assert upc_check_digit(barcode[:11]) == int(barcode[11])
