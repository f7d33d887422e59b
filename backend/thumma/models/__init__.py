from .catalog import Category, Product, ProductVariant, StockMovement
from .customers import Customer
from .sales import Transaction, TransactionLine, TransactionPayment, ReturnedItem, StoreCredit
from .payables import Supplier, Bill, BillPayment
from .orders import Order, OrderLine
from .shifts import ShiftReport
from .auth import User, SessionToken
from .settings import StoreSettings
from .activity import ActivityLog, ToDoItem

__all__ = [
    'Category', 'Product', 'ProductVariant', 'StockMovement',
    'Customer',
    'Transaction', 'TransactionLine', 'TransactionPayment', 'ReturnedItem', 'StoreCredit',
    'Supplier', 'Bill', 'BillPayment',
    'Order', 'OrderLine',
    'ShiftReport',
    'User', 'SessionToken',
    'StoreSettings',
    'ActivityLog', 'ToDoItem',
]
