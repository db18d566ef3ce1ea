from .tenancy import Business, Store
from .auth import User
from .inventory import InventoryItem
from .lending import LentShoe
from .sales import Sale, SalePayment, SaleReturn
from .requests import ShoeRequest
from .activity import ActivityEvent

__all__ = [
    'Business', 'Store',
    'User',
    'InventoryItem',
    'LentShoe',
    'Sale', 'SalePayment', 'SaleReturn',
    'ShoeRequest',
    'ActivityEvent',
]
