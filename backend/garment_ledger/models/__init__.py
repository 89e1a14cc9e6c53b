from .catalog import Category, Size, Color, Product, PriceOverride, product_sizes, product_colors
from .inventory import InventoryCell, make_variant_key
from .invoices import (
    Invoice,
    InvoiceLineItem,
    InvoiceSequence,
    PAYMENT_DONE,
    PAYMENT_PENDING,
    PAYMENT_STATUSES,
    DISCOUNT_PERCENTAGE,
    DISCOUNT_FIXED,
    DISCOUNT_TYPES,
)
from .settings import StoreSettings

__all__ = [
    'Category', 'Size', 'Color', 'Product', 'PriceOverride', 'product_sizes', 'product_colors',
    'InventoryCell', 'make_variant_key',
    'Invoice', 'InvoiceLineItem', 'InvoiceSequence',
    'PAYMENT_DONE', 'PAYMENT_PENDING', 'PAYMENT_STATUSES',
    'DISCOUNT_PERCENTAGE', 'DISCOUNT_FIXED', 'DISCOUNT_TYPES',
    'StoreSettings',
]
