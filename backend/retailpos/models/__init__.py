from .tenancy import Tenant
from .auth import User, USER_ROLES
from .inventory import Product, PRODUCT_CATEGORIES
from .sales import Transaction, TransactionItem, PAYMENT_METHODS
from .documents import Return, ReturnItem, RETURN_REASONS
from .registers import CashHandover

__all__ = [
    'Tenant',
    'User', 'USER_ROLES',
    'Product', 'PRODUCT_CATEGORIES',
    'Transaction', 'TransactionItem', 'PAYMENT_METHODS',
    'Return', 'ReturnItem', 'RETURN_REASONS',
    'CashHandover',
]
