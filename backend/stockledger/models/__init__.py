from .catalog import Category, Product
from .stock import StockMovement
from .auth import User, SessionToken, ROLE_ADMIN, ROLE_STAFF, ROLES

__all__ = [
    'Category', 'Product',
    'StockMovement',
    'User', 'SessionToken',
    'ROLE_ADMIN', 'ROLE_STAFF', 'ROLES',
]
