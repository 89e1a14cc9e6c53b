"""
Catalog service tests.

Verifies:
- Name / SKU uniqueness
- Variant set derivation from declared sizes and colors
- Deletion rules for categories, sizes and products
- Size price override upserts
"""

import uuid

import pytest

from garment_ledger.extensions import db
from garment_ledger.models import Product, PriceOverride, InventoryCell, InvoiceLineItem
from garment_ledger.services import catalog_service, invoice_service
from garment_ledger.validation import ValidationError, NotFoundError, DuplicateName, DuplicateSKU, InvalidState


# =============================================================================
# REFERENCE DATA
# =============================================================================


class TestNamedReferenceData:

    def test_duplicate_category_name_rejected(self, db_session, category):
        with pytest.raises(DuplicateName):
            catalog_service.create_category(patch={"name": "Shirts"})

    def test_duplicate_size_name_rejected_on_rename(self, db_session, sizes):
        with pytest.raises(DuplicateName):
            catalog_service.update_size(sizes["S"].id, patch={"name": "M"})

    def test_update_missing_color_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.update_color(uuid.uuid4(), patch={"name": "Green"})

    def test_seed_default_sizes_is_idempotent(self, db_session, sizes):
        created = catalog_service.seed_default_sizes()
        # S, M and L already exist
        assert [s.name for s in created] == ["XS", "XL", "XXL", "XXXL"]
        assert catalog_service.seed_default_sizes() == []
        assert [s.name for s in catalog_service.list_sizes()] == ["XS", "S", "M", "L", "XL", "XXL", "XXXL"]

    def test_delete_category_keeps_products(self, db_session, shirt, category):
        catalog_service.delete_category(category.id)
        product = db.session.get(Product, shirt.id)
        assert product is not None
        assert product.category_id is None


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProducts:

    def test_create_with_unknown_size_rejected(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_product(
                patch={"name": "Tee", "price_cents": 1000},
                size_ids=[uuid.uuid4()],
            )

    def test_duplicate_sku_rejected(self, db_session, shirt):
        with pytest.raises(DuplicateSKU):
            catalog_service.create_product(patch={"name": "Other", "price_cents": 100, "sku": "SHIRT-001"})

    def test_blank_sku_is_not_a_duplicate(self, db_session):
        catalog_service.create_product(patch={"name": "A", "price_cents": 100, "sku": None})
        catalog_service.create_product(patch={"name": "B", "price_cents": 100, "sku": None})
        assert catalog_service.list_products()["count"] == 2

    def test_update_replaces_size_set(self, db_session, shirt, sizes):
        product = catalog_service.update_product(shirt.id, patch={}, size_ids=[sizes["M"].id])
        assert [s.name for s in product.sizes] == ["M"]
        assert len(product.colors) == 2

    def test_update_with_unknown_size_or_color_rejected(self, db_session, shirt):
        with pytest.raises(ValidationError):
            catalog_service.update_product(shirt.id, patch={}, size_ids=[uuid.uuid4()])
        with pytest.raises(ValidationError):
            catalog_service.update_product(shirt.id, patch={}, color_ids=[uuid.uuid4()])

        product = catalog_service.get_product(shirt.id)
        assert len(product.sizes) == 3
        assert len(product.colors) == 2

    def test_list_products_paginates_and_searches(self, db_session):
        for i in range(5):
            catalog_service.create_product(patch={"name": f"Kurta {i}", "price_cents": 100})
        catalog_service.create_product(patch={"name": "Saree", "price_cents": 100})

        page = catalog_service.list_products(search="kurta", page=2, per_page=2)
        assert page["pagination"]["total"] == 5
        assert page["pagination"]["total_pages"] == 3
        assert [p["name"] for p in page["items"]] == ["Kurta 2", "Kurta 3"]


class TestEffectiveVariants:

    def test_cross_product_of_sizes_and_colors(self, db_session, shirt, sizes, colors):
        variants = catalog_service.effective_variants(shirt.id)
        assert len(variants) == 6
        assert (sizes["M"].id, colors["Red"].id) in variants
        assert (sizes["M"].id, None) not in variants

    def test_product_without_dimensions_has_one_variant(self, db_session, scarf):
        assert catalog_service.effective_variants(scarf.id) == {(None, None)}

    def test_sizes_only(self, db_session, sizes):
        product = catalog_service.create_product(
            patch={"name": "Belt", "price_cents": 900},
            size_ids=[sizes["S"].id, sizes["L"].id],
        )
        assert catalog_service.effective_variants(product.id) == {
            (sizes["S"].id, None),
            (sizes["L"].id, None),
        }


class TestDeletion:

    def test_delete_size_cascades_overrides_and_cells_but_keeps_history(
        self, db_session, shirt, sizes, colors, stock
    ):
        m, red = sizes["M"], colors["Red"]
        m_id = m.id
        catalog_service.set_price_override(shirt.id, m_id, 60000)
        stock(shirt, m, red, 3)
        invoice = invoice_service.create_invoice(lines=[{
            "product_id": shirt.id, "size_id": m_id, "color_id": red.id, "quantity": 1,
        }])

        catalog_service.delete_size(m_id)

        assert db.session.query(PriceOverride).filter_by(size_id=m_id).count() == 0
        assert db.session.query(InventoryCell).filter_by(size_id=m_id).count() == 0
        line = db.session.query(InvoiceLineItem).filter_by(invoice_id=invoice.id).one()
        assert line.size_id is None
        assert line.size_name == "M"
        assert line.unit_price_cents == 60000

    def test_delete_product_keeps_invoice_snapshots(self, db_session, scarf, stock):
        stock(scarf, quantity=2)
        invoice = invoice_service.create_invoice(lines=[{"product_id": scarf.id, "quantity": 1}])
        scarf_id = scarf.id

        catalog_service.delete_product(scarf_id)

        assert db.session.get(Product, scarf_id) is None
        assert db.session.query(InventoryCell).filter_by(product_id=scarf_id).count() == 0
        line = db.session.query(InvoiceLineItem).filter_by(invoice_id=invoice.id).one()
        assert line.product_id is None
        assert line.product_name == "Silk Scarf"
        assert line.total_price_cents == 12000


# =============================================================================
# SIZE PRICE OVERRIDES
# =============================================================================


class TestPriceOverrides:

    def test_set_is_an_upsert(self, db_session, shirt, sizes):
        catalog_service.set_price_override(shirt.id, sizes["L"].id, 55000)
        catalog_service.set_price_override(shirt.id, sizes["L"].id, 57500)

        overrides = catalog_service.list_price_overrides(shirt.id)
        assert len(overrides) == 1
        assert overrides[0].price_cents == 57500

    def test_size_not_offered_rejected(self, db_session, scarf, sizes):
        with pytest.raises(ValidationError):
            catalog_service.set_price_override(scarf.id, sizes["M"].id, 100)

    def test_deleted_size_is_invalid_state(self, db_session, shirt, sizes):
        size_id = sizes["L"].id
        catalog_service.delete_size(size_id)

        with pytest.raises(InvalidState):
            catalog_service.set_price_override(shirt.id, size_id, 55000)

    def test_negative_price_rejected(self, db_session, shirt, sizes):
        with pytest.raises(ValidationError):
            catalog_service.set_price_override(shirt.id, sizes["M"].id, -1)

    def test_delete_reports_whether_anything_was_removed(self, db_session, shirt, sizes):
        catalog_service.set_price_override(shirt.id, sizes["S"].id, 45000)
        assert catalog_service.delete_price_override(shirt.id, sizes["S"].id) is True
        assert catalog_service.delete_price_override(shirt.id, sizes["S"].id) is False
