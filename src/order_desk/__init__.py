"""
Order Desk – local order management for a single small business.

The package keeps all state in one SQLite file: users, a product catalog,
customers and orders with their line items. The `orderdb` subpackage holds
the schema, the store access layer and the services the UI calls into.
"""

__version__ = "0.3.0"

__all__ = [
    "config",
    "errors",
    "logging",
    "paths",
]
