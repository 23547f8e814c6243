from .catalog import Product
from .inventory import InventoryItem, StockMovement, StockStatus, MovementType
from .sales import Sale, SaleItem, SaleStatus, PAYMENT_METHODS
from .auth import User, SessionToken
from .settings import SystemSetting, DocumentSequence

__all__ = [
    'Product',
    'InventoryItem', 'StockMovement', 'StockStatus', 'MovementType',
    'Sale', 'SaleItem', 'SaleStatus', 'PAYMENT_METHODS',
    'User', 'SessionToken',
    'SystemSetting', 'DocumentSequence',
]
