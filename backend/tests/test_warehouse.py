"""Warehouse hierarchy service tests."""

import pytest

from app.core.exceptions import BadRequestError, ConflictError, NotFoundError
from app.schemas.inventory import LocationAssign
from app.schemas.warehouse import (
    AreaCreate,
    BinCreate,
    FloorPlanCreate,
    RackCreate,
    ShelfCreate,
    WarehouseCreate,
    WarehouseUpdate,
)
from app.services.location_assignment_service import LocationAssignmentService
from app.services.warehouse_service import WarehouseService


def _place(db, seller, product, bin_, quantity=5):
    return LocationAssignmentService.assign(db, seller.id, LocationAssign(
        product_id=product.id, bin_id=bin_.id, quantity=quantity,
    ))


class TestHierarchy:

    def test_children_inherit_ancestor_chain(self, warehouse_tree, seller):
        bin_ = warehouse_tree["bin"]
        assert bin_.seller_id == seller.id
        assert bin_.warehouse_id == warehouse_tree["warehouse"].id
        assert bin_.floor_plan_id == warehouse_tree["floor"].id
        assert bin_.area_id == warehouse_tree["area"].id
        assert bin_.rack_id == warehouse_tree["rack"].id
        assert bin_.shelf_id == warehouse_tree["shelf"].id

    def test_location_code(self, db_session, seller, warehouse_tree):
        code = WarehouseService.location_code(db_session, seller.id, warehouse_tree["bin"].id)
        assert code == "G-A-001-01-B1"

    def test_tree_is_loaded_in_order(self, db_session, seller, warehouse_tree):
        tree = WarehouseService.get_warehouse_tree(db_session, seller.id, warehouse_tree["warehouse"].id)
        shelf = tree.floor_plans[0].areas[0].racks[0].shelves[0]
        assert [b.code for b in shelf.bins] == ["B1", "B2"]

    def test_duplicate_warehouse_code(self, db_session, seller, warehouse_tree):
        with pytest.raises(ConflictError, match="Warehouse code already exists"):
            WarehouseService.create_warehouse(
                db_session, seller.id, WarehouseCreate(name="Copy", code="WH1")
            )

    def test_warehouse_code_is_scoped_per_seller(self, db_session, other_seller, warehouse_tree):
        warehouse = WarehouseService.create_warehouse(
            db_session, other_seller.id, WarehouseCreate(name="Theirs", code="WH1")
        )
        assert warehouse.seller_id == other_seller.id

    @pytest.mark.parametrize("create", [
        lambda db, s, t: WarehouseService.create_floor_plan(
            db, s.id, t["warehouse"].id, FloorPlanCreate(floor="G")),
        lambda db, s, t: WarehouseService.create_area(
            db, s.id, t["floor"].id, AreaCreate(code="A", name="Again")),
        lambda db, s, t: WarehouseService.create_rack(
            db, s.id, t["area"].id, RackCreate(number=1)),
        lambda db, s, t: WarehouseService.create_shelf(
            db, s.id, t["rack"].id, ShelfCreate(level=1)),
        lambda db, s, t: WarehouseService.create_bin(
            db, s.id, t["shelf"].id, BinCreate(code="B1")),
    ])
    def test_duplicate_children_conflict(self, db_session, seller, warehouse_tree, create):
        with pytest.raises(ConflictError):
            create(db_session, seller, warehouse_tree)

    def test_same_bin_code_on_another_shelf(self, db_session, seller, warehouse_tree):
        shelf = WarehouseService.create_shelf(db_session, seller.id, warehouse_tree["rack"].id, ShelfCreate(level=2))
        bin_ = WarehouseService.create_bin(db_session, seller.id, shelf.id, BinCreate(code="B1"))
        assert WarehouseService.location_code(db_session, seller.id, bin_.id) == "G-A-001-02-B1"

    @pytest.mark.parametrize("floor", ["G-1", "G 1", "G/1"])
    def test_floor_must_be_a_code_segment(self, db_session, seller, warehouse_tree, floor):
        with pytest.raises(BadRequestError):
            WarehouseService.create_floor_plan(
                db_session, seller.id, warehouse_tree["warehouse"].id, FloorPlanCreate(floor=floor)
            )


class TestUpdate:

    def test_partial_update_leaves_other_fields(self, db_session, seller, warehouse_tree):
        warehouse = warehouse_tree["warehouse"]
        WarehouseService.update_warehouse(
            db_session, seller.id, warehouse.id, WarehouseUpdate(address="1 Dock Road")
        )
        updated = WarehouseService.update_warehouse(
            db_session, seller.id, warehouse.id, WarehouseUpdate(name="North Depot")
        )
        assert updated.name == "North Depot"
        assert updated.code == "WH1"
        assert updated.address == "1 Dock Road"

    def test_code_change_keeps_location_codes(self, db_session, seller, warehouse_tree):
        warehouse = WarehouseService.update_warehouse(
            db_session, seller.id, warehouse_tree["warehouse"].id, WarehouseUpdate(code="WH9")
        )
        assert warehouse.code == "WH9"
        assert WarehouseService.location_code(db_session, seller.id, warehouse_tree["bin"].id) == "G-A-001-01-B1"

    def test_code_clash_conflicts(self, db_session, seller, warehouse_tree):
        second = WarehouseService.create_warehouse(
            db_session, seller.id, WarehouseCreate(name="Overflow", code="WH2")
        )
        with pytest.raises(ConflictError, match="Warehouse code already exists"):
            WarehouseService.update_warehouse(db_session, seller.id, second.id, WarehouseUpdate(code="WH1"))
        db_session.refresh(second)
        assert second.code == "WH2"

    def test_keeping_own_code_is_not_a_clash(self, db_session, seller, warehouse_tree):
        warehouse = WarehouseService.update_warehouse(
            db_session, seller.id, warehouse_tree["warehouse"].id, WarehouseUpdate(code="WH1", name="Main")
        )
        assert warehouse.code == "WH1"

    def test_null_name_is_rejected(self, db_session, seller, warehouse_tree):
        with pytest.raises(BadRequestError, match="name cannot be null"):
            WarehouseService.update_warehouse(
                db_session, seller.id, warehouse_tree["warehouse"].id, WarehouseUpdate(name=None)
            )

    def test_foreign_warehouse(self, db_session, other_seller, warehouse_tree):
        with pytest.raises(NotFoundError, match="Warehouse not found"):
            WarehouseService.update_warehouse(
                db_session, other_seller.id, warehouse_tree["warehouse"].id, WarehouseUpdate(name="Mine")
            )


class TestLookup:

    def test_resolves_code_to_bin(self, db_session, seller, warehouse_tree):
        found = WarehouseService.lookup_bin(
            db_session, seller.id, warehouse_tree["warehouse"].id, "G-A-001-01-B2"
        )
        assert found.id == warehouse_tree["bin_2"].id

    def test_unknown_code(self, db_session, seller, warehouse_tree):
        with pytest.raises(NotFoundError):
            WarehouseService.lookup_bin(db_session, seller.id, warehouse_tree["warehouse"].id, "G-A-002-01-B1")

    def test_malformed_code(self, db_session, seller, warehouse_tree):
        with pytest.raises(BadRequestError):
            WarehouseService.lookup_bin(db_session, seller.id, warehouse_tree["warehouse"].id, "G-A-1-1-B1")


class TestDeletion:

    def test_delete_rack_removes_descendants(self, db_session, seller, warehouse_tree):
        WarehouseService.delete_rack(db_session, seller.id, warehouse_tree["rack"].id)
        with pytest.raises(NotFoundError):
            WarehouseService.get_shelf(db_session, seller.id, warehouse_tree["shelf"].id)
        with pytest.raises(NotFoundError):
            WarehouseService.get_bin(db_session, seller.id, warehouse_tree["bin"].id)

    def test_soft_deleted_warehouse_hides_its_bins(self, db_session, seller, warehouse_tree):
        WarehouseService.delete_warehouse(db_session, seller.id, warehouse_tree["warehouse"].id)
        assert WarehouseService.list_warehouses(db_session, seller.id) == []
        with pytest.raises(NotFoundError):
            WarehouseService.get_bin(db_session, seller.id, warehouse_tree["bin"].id)

    def test_code_reusable_after_soft_delete(self, db_session, seller, warehouse_tree):
        WarehouseService.delete_warehouse(db_session, seller.id, warehouse_tree["warehouse"].id)
        again = WarehouseService.create_warehouse(
            db_session, seller.id, WarehouseCreate(name="Rebuilt", code="WH1")
        )
        assert again.id != warehouse_tree["warehouse"].id

    @pytest.mark.parametrize("level,delete", [
        ("warehouse", WarehouseService.delete_warehouse),
        ("floor", WarehouseService.delete_floor_plan),
        ("area", WarehouseService.delete_area),
        ("rack", WarehouseService.delete_rack),
        ("shelf", WarehouseService.delete_shelf),
        ("bin", WarehouseService.delete_bin),
    ])
    def test_refused_while_products_are_placed(self, db_session, seller, product, warehouse_tree, level, delete):
        _place(db_session, seller, product, warehouse_tree["bin"])
        with pytest.raises(ConflictError, match="assigned products"):
            delete(db_session, seller.id, warehouse_tree[level].id)

    def test_empty_sibling_bin_can_go(self, db_session, seller, product, warehouse_tree):
        _place(db_session, seller, product, warehouse_tree["bin"])
        WarehouseService.delete_bin(db_session, seller.id, warehouse_tree["bin_2"].id)
        with pytest.raises(NotFoundError):
            WarehouseService.get_bin(db_session, seller.id, warehouse_tree["bin_2"].id)


class TestTenantIsolation:

    def test_foreign_nodes_are_not_found(self, db_session, other_seller, warehouse_tree):
        with pytest.raises(NotFoundError):
            WarehouseService.get_warehouse(db_session, other_seller.id, warehouse_tree["warehouse"].id)
        with pytest.raises(NotFoundError):
            WarehouseService.create_area(
                db_session, other_seller.id, warehouse_tree["floor"].id, AreaCreate(code="X", name="X")
            )
        with pytest.raises(NotFoundError):
            WarehouseService.location_code(db_session, other_seller.id, warehouse_tree["bin"].id)
        with pytest.raises(NotFoundError):
            WarehouseService.delete_bin(db_session, other_seller.id, warehouse_tree["bin"].id)

    def test_listing_is_per_seller(self, db_session, seller, other_seller, warehouse_tree):
        assert [w.code for w in WarehouseService.list_warehouses(db_session, seller.id)] == ["WH1"]
        assert WarehouseService.list_warehouses(db_session, other_seller.id) == []
