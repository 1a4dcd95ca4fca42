from .auth import Admin
from .audit import AuditLogEntry
from .catalog import Category, Product, Variant, InventoryAdjustment, PRODUCT_STATUSES

__all__ = [
    'Admin',
    'AuditLogEntry',
    'Category', 'Product', 'Variant', 'InventoryAdjustment',
    'PRODUCT_STATUSES',
]
