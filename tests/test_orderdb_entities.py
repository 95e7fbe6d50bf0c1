from __future__ import annotations

import pytest

from order_desk.errors import DuplicateKey, RecordNotFound, ValidationFailed
from order_desk.orderdb import CustomerService, OrderDatabase, ProductService


CUPCAKE = {"product_number": "2001", "name": "Cupcake", "price": "3.50"}
JANE = {"customer_id": "1001", "name": "Jane Doe", "phone": "(246) 123-4567"}


def test_product_create_then_list_contains_it_once(products: ProductService) -> None:
    created = products.create(CUPCAKE)
    assert created == {"product_number": "2001", "name": "Cupcake", "price": 3.5}

    rows = products.list()
    assert [r["product_number"] for r in rows].count("2001") == 1

    assert products.delete("2001") is True
    assert all(r["product_number"] != "2001" for r in products.list())
    assert products.delete("2001") is False


def test_product_fields_are_trimmed_and_price_rounded(products: ProductService) -> None:
    row = products.create({"product_number": " 2002 ", "name": "  Muffin ", "price": " 2.499 "})
    assert row == {"product_number": "2002", "name": "Muffin", "price": 2.5}


def test_duplicate_product_number_is_rejected_without_writing(products: ProductService) -> None:
    products.create(CUPCAKE)
    with pytest.raises(DuplicateKey, match="Product number already exists."):
        products.create({"product_number": "2001", "name": "Other", "price": "1"})
    assert products.count() == 1


@pytest.mark.parametrize(
    "fields",
    [
        {"product_number": "", "name": "Cupcake", "price": "1"},
        {"product_number": "2001", "name": "   ", "price": "1"},
        {"product_number": "2001", "name": "Cupcake", "price": "-1"},
        {"product_number": "2001", "name": "Cupcake", "price": "cheap"},
    ],
)
def test_invalid_products_are_not_written(products: ProductService, fields) -> None:
    with pytest.raises(ValidationFailed):
        products.create(fields)
    assert products.count() == 0


def test_product_update_may_keep_or_change_its_key(products: ProductService) -> None:
    products.create(CUPCAKE)
    products.create({"product_number": "2002", "name": "Muffin", "price": "2"})

    same_key = products.update("2001", {"product_number": "2001", "name": "Cupcake XL", "price": "4"})
    assert same_key["name"] == "Cupcake XL"

    with pytest.raises(DuplicateKey):
        products.update("2001", {"product_number": "2002", "name": "Cupcake XL", "price": "4"})

    moved = products.update("2001", {"product_number": "2010", "name": "Cupcake XL", "price": "4"})
    assert moved["product_number"] == "2010"
    assert products.get("2001") is None
    assert products.count() == 2


def test_update_of_missing_product_raises(products: ProductService) -> None:
    with pytest.raises(RecordNotFound):
        products.update("9999", CUPCAKE)


def test_list_orders_by_whitelisted_columns_only(products: ProductService) -> None:
    products.create({"product_number": "2001", "name": "B", "price": "2"})
    products.create({"product_number": "2002", "name": "A", "price": "3"})
    products.create({"product_number": "2003", "name": "C", "price": "1"})

    assert [r["product_number"] for r in products.list()] == ["2003", "2002", "2001"]
    assert [r["name"] for r in products.list(order_by="name")] == ["A", "B", "C"]
    assert [r["price"] for r in products.list(order_by="price", direction="desc")] == [3.0, 2.0, 1.0]
    # Unknown columns fall back to the default ordering instead of reaching SQL.
    assert [r["product_number"] for r in products.list(order_by="price; DROP TABLE products")] == [
        "2003",
        "2002",
        "2001",
    ]


def test_customer_crud_and_phone_rule(customers: CustomerService) -> None:
    created = customers.create(JANE)
    assert created == JANE

    with pytest.raises(DuplicateKey, match="Customer ID already exists."):
        customers.create({**JANE, "name": "Someone else"})
    with pytest.raises(ValidationFailed, match="phone"):
        customers.create({"customer_id": "1002", "name": "Bob", "phone": "12-34"})
    assert customers.count() == 1

    updated = customers.update("1001", {**JANE, "phone": "246 555 0000"})
    assert updated["phone"] == "246 555 0000"
    assert customers.delete("1001") is True
    assert customers.list() == []


def test_raw_unique_violation_maps_to_duplicate_key(db: OrderDatabase, products: ProductService) -> None:
    products.create(CUPCAKE)
    # Bypass the pre-check to exercise the constraint itself.
    with pytest.raises(DuplicateKey):
        products._run(
            lambda: db.update(
                "INSERT INTO products (product_number, name, price) VALUES ('2001', 'x', 1);"
            ),
            "insert into products",
        )
