from .tenancy import Organization
from .auth import User, Member, SessionToken
from .catalog import Category, Product
from .customers import Customer
from .inventory import Supplier, Stock, StockTransaction
from .orders import Order, OrderItem, Delivery, DocumentSequence
from .ledger import LedgerEvent

__all__ = [
    'Organization',
    'User', 'Member', 'SessionToken',
    'Category', 'Product',
    'Customer',
    'Supplier', 'Stock', 'StockTransaction',
    'Order', 'OrderItem', 'Delivery', 'DocumentSequence',
    'LedgerEvent',
]
