"""Local order database.

Modules:
- schema: table definitions and idempotent initialization
- db: the store object (lazy open, query/update/transaction, close)
- retry: bounded retry helper used when opening the store
- validation: input rules shared by the services
- identity: random 4-digit key generation
- entities, users, products, customers: per-table services
- orders: draft order composition, commit and order history
- session: login/logout flag handling
"""

from .customers import CustomerService
from .db import OrderDatabase, Statement, UpdateResult
from .models import DraftLine, DraftState, OrderDraft, User
from .orders import OrderComposer, OrderService
from .products import ProductService
from .session import SessionManager
from .users import UserService

__all__ = [
    "CustomerService",
    "DraftLine",
    "DraftState",
    "OrderComposer",
    "OrderDatabase",
    "OrderDraft",
    "OrderService",
    "ProductService",
    "SessionManager",
    "Statement",
    "UpdateResult",
    "User",
    "UserService",
]
