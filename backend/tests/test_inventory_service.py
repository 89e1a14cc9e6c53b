"""
Per-variant stock tests.

Verifies:
- Missing cells read as zero and are created by the first adjustment
- Quantities never go negative; a rejected decrement writes nothing
- Variants are independent of each other
- The cached product total is a projection refreshed on demand
"""

import uuid

import pytest

from garment_ledger.extensions import db
from garment_ledger.models import Product, InventoryCell
from garment_ledger.services import inventory_service
from garment_ledger.services.inventory_service import InsufficientStock
from garment_ledger.validation import ValidationError


class TestAdjustQuantity:

    def test_missing_cell_reads_zero(self, db_session, shirt, sizes, colors):
        assert inventory_service.get_quantity(shirt.id, sizes["M"].id, colors["Red"].id) == 0
        assert db.session.query(InventoryCell).count() == 0

    def test_first_adjustment_creates_cell(self, db_session, shirt, sizes, colors):
        cell = inventory_service.adjust_quantity(shirt.id, sizes["M"].id, colors["Red"].id, 5)
        assert cell.quantity == 5

        cell = inventory_service.adjust_quantity(shirt.id, sizes["M"].id, colors["Red"].id, -2)
        assert cell.quantity == 3
        assert db.session.query(InventoryCell).count() == 1

    def test_decrement_below_zero_rejected_with_details(self, db_session, shirt, sizes, colors, stock):
        m, red = sizes["M"], colors["Red"]
        stock(shirt, m, red, 1)

        with pytest.raises(InsufficientStock) as exc_info:
            inventory_service.adjust_quantity(shirt.id, m.id, red.id, -2)

        details = exc_info.value.details
        assert details["requested"] == 2
        assert details["available"] == 1
        assert details["shortfall"] == 1
        assert details["size_id"] == str(m.id)
        assert inventory_service.get_quantity(shirt.id, m.id, red.id) == 1

    def test_decrement_on_missing_cell_rejected(self, db_session, scarf):
        with pytest.raises(InsufficientStock):
            inventory_service.adjust_quantity(scarf.id, None, None, -1)
        assert inventory_service.get_quantity(scarf.id, None, None) == 0

    def test_variants_are_independent(self, db_session, shirt, sizes, colors, stock):
        m = sizes["M"]
        stock(shirt, m, colors["Red"], 4)
        stock(shirt, m, colors["Blue"], 7)

        inventory_service.adjust_quantity(shirt.id, m.id, colors["Red"].id, -4)

        assert inventory_service.get_quantity(shirt.id, m.id, colors["Red"].id) == 0
        assert inventory_service.get_quantity(shirt.id, m.id, colors["Blue"].id) == 7

    def test_variant_not_offered_rejected(self, db_session, shirt, sizes):
        # The shirt is offered in colors, so a colorless variant does not exist
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(shirt.id, sizes["M"].id, None, 1)

    def test_unknown_product_rejected(self, db_session):
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(uuid.uuid4(), None, None, 1)

    def test_non_integer_delta_rejected(self, db_session, scarf):
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(scarf.id, None, None, "1.5")


class TestSetQuantity:

    def test_overwrites_count(self, db_session, scarf, stock):
        stock(scarf, quantity=9)
        cell = inventory_service.set_quantity(scarf.id, None, None, 4)
        assert cell.quantity == 4

    def test_negative_rejected(self, db_session, scarf):
        with pytest.raises(ValidationError):
            inventory_service.set_quantity(scarf.id, None, None, -1)


class TestSummaryAndProjection:

    def test_summary_lists_cells_in_size_order(self, db_session, shirt, sizes, colors, stock):
        stock(shirt, sizes["L"], colors["Red"], 1)
        stock(shirt, sizes["S"], colors["Blue"], 2)
        stock(shirt, sizes["S"], colors["Red"], 3)

        summary = inventory_service.get_inventory_summary(shirt.id)
        assert [(c["size_name"], c["color_name"]) for c in summary["cells"]] == [
            ("S", "Red"), ("S", "Blue"), ("L", "Red"),
        ]
        assert summary["total_stock"] == 6
        # Projection is not maintained by adjustments
        assert summary["cached_quantity_in_stock"] == 0

    def test_refresh_projection(self, db_session, shirt, scarf, sizes, colors, stock):
        stock(shirt, sizes["S"], colors["Red"], 3)
        stock(shirt, sizes["M"], colors["Blue"], 4)
        scarf.quantity_in_stock = 99
        db.session.commit()

        totals = inventory_service.refresh_stock_projection()

        assert totals == {str(shirt.id): 7, str(scarf.id): 0}
        assert db.session.get(Product, shirt.id).quantity_in_stock == 7
        assert db.session.get(Product, scarf.id).quantity_in_stock == 0

    def test_refresh_single_product(self, db_session, shirt, scarf, stock):
        stock(scarf, quantity=2)
        totals = inventory_service.refresh_stock_projection(scarf.id)
        assert totals == {str(scarf.id): 2}
