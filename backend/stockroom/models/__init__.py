from .auth import User, ROLE_ADMIN, ROLE_STAFF, ROLES
from .inventory import Category, StockItem
from .audit import ActivityLog

__all__ = [
    'User', 'ROLE_ADMIN', 'ROLE_STAFF', 'ROLES',
    'Category', 'StockItem',
    'ActivityLog',
]
