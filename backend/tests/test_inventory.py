"""
Inventory ledger tests.

Verifies:
- adjust_stock adds and removes stock and clamps at zero
- Material updates cannot write quantity
- Materials referenced by orders cannot be deleted
"""

from decimal import Decimal

import pytest

from backoffice.models import Material, RejectedItem
from backoffice.services import inventory_service, order_service
from backoffice.services.inventory_service import InventoryError
from backoffice.validation import ConflictError, NotFoundError, ValidationError


class TestAdjustStock:

    def test_increment(self, db_session, rice):
        adj = inventory_service.adjust_stock(rice.id, 5)
        assert adj.quantity == 15
        assert adj.applied_delta == 5
        assert not adj.clamped

    def test_decrement_clamps_at_zero(self, db_session, rice):
        adj = inventory_service.adjust_stock(rice.id, -25)
        assert adj.quantity == 0
        assert adj.requested_delta == -25
        assert adj.applied_delta == -10
        assert adj.clamped

        db_session.refresh(rice)
        assert rice.quantity == 0

    def test_commit_false_leaves_transaction_open(self, db_session, rice):
        inventory_service.adjust_stock(rice.id, 4, commit=False)
        db_session.rollback()
        db_session.refresh(rice)
        assert rice.quantity == 10

    def test_unknown_material(self, db_session):
        with pytest.raises(InventoryError):
            inventory_service.adjust_stock("missing", 1)

    @pytest.mark.parametrize("delta", [1.5, "3", True, None])
    def test_delta_must_be_int(self, db_session, rice, delta):
        with pytest.raises(InventoryError):
            inventory_service.adjust_stock(rice.id, delta)

    @pytest.mark.parametrize("raw,expected", [(5, 5), ("-3", -3), (2.0, 2)])
    def test_parse_delta(self, raw, expected):
        assert inventory_service.parse_delta(raw) == expected

    @pytest.mark.parametrize("raw", [None, 0, "abc", "1.5"])
    def test_parse_delta_rejects(self, raw):
        with pytest.raises(ValidationError):
            inventory_service.parse_delta(raw)


class TestMaterials:

    def test_create_material(self, db_session, admin):
        material = inventory_service.create_material(
            {"name": "Cooking Oil", "category": "Oil", "price": "25000", "quantity": 4},
            acting_user=admin,
        )
        assert material.price == Decimal("25000.00")
        assert material.quantity == 4
        assert material.user_id == admin.id

    def test_create_defaults_quantity_to_zero(self, db_session, admin):
        material = inventory_service.create_material(
            {"name": "Salt", "category": "Spice", "price": "5000"}, acting_user=admin
        )
        assert material.quantity == 0

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Salt", "category": "Spice"},
            {"name": "Salt", "category": "Spice", "price": "0"},
            {"name": "Salt", "category": "Spice", "price": "1000000"},
            {"name": "Salt", "category": "Spice", "price": "10", "quantity": -1},
            {"name": "", "category": "Spice", "price": "10"},
            {"name": "Salt", "category": "Spice", "price": "10", "owner": "x"},
        ],
    )
    def test_create_rejects_bad_payload(self, db_session, admin, payload):
        with pytest.raises(ValidationError):
            inventory_service.create_material(payload, acting_user=admin)
        assert db_session.query(Material).count() == 0

    def test_update_cannot_write_quantity(self, db_session, rice):
        with pytest.raises(ValidationError):
            inventory_service.update_material(rice.id, {"quantity": 999})

    def test_update_price(self, db_session, rice):
        material = inventory_service.update_material(rice.id, {"price": "13000"})
        assert material.price == Decimal("13000.00")

    def test_delete_referenced_material_refused(self, db_session, staff, rice):
        order_service.create_order(
            staff, {"supplier_name": "PT Beras Jaya"}, [{"product_id": rice.id, "quantity": 1}]
        )
        with pytest.raises(ConflictError):
            inventory_service.delete_material(rice.id)

    def test_delete_unlinks_rejections(self, db_session, admin, sugar):
        from backoffice.services import rejection_service

        rejection_service.reject_material(sugar.id, 1, "Wet sacks", admin)
        inventory_service.delete_material(sugar.id)

        item = db_session.query(RejectedItem).one()
        assert item.product_id is None
        assert item.product_name == "Sugar"

        with pytest.raises(NotFoundError):
            inventory_service.get_material(sugar.id)

    def test_valuation(self, db_session, rice, sugar):
        summary = inventory_service.stock_valuation(inventory_service.list_materials())
        assert summary["material_count"] == 2
        assert summary["total_quantity"] == 15
        assert summary["total_value"] == "195000.00"
        assert summary["out_of_stock"] == 0

    def test_search(self, db_session, rice, sugar):
        assert [m.name for m in inventory_service.list_materials(search="ric")] == ["Rice"]
