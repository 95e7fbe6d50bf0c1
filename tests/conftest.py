from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from order_desk.orderdb import (
    CustomerService,
    OrderComposer,
    OrderDatabase,
    OrderService,
    ProductService,
    SessionManager,
    UserService,
)

# Keeps password hashing fast in tests; production uses the configured default.
TEST_ITERATIONS = 1_000


@pytest.fixture
def db(tmp_path: Path) -> Iterator[OrderDatabase]:
    store = OrderDatabase(str(tmp_path / "orders.sqlite3"))
    yield store
    store.close()


@pytest.fixture
def products(db: OrderDatabase) -> ProductService:
    return ProductService(db)


@pytest.fixture
def customers(db: OrderDatabase) -> CustomerService:
    return CustomerService(db)


@pytest.fixture
def users(db: OrderDatabase) -> UserService:
    return UserService(db, iterations=TEST_ITERATIONS)


@pytest.fixture
def session(db: OrderDatabase, users: UserService) -> SessionManager:
    return SessionManager(db, users)


@pytest.fixture
def orders(db: OrderDatabase) -> OrderService:
    return OrderService(db)


@pytest.fixture
def composer(db: OrderDatabase, products: ProductService, customers: CustomerService) -> OrderComposer:
    return OrderComposer(db, products, customers)
