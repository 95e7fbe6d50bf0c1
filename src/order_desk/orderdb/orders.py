from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from ..errors import EmptyOrder, RecordNotFound, ValidationFailed
from ..logging import get_logger
from .customers import CustomerService
from .db import OrderDatabase, Statement
from .entities import store_call
from .models import DraftLine, DraftState, OrderDraft
from .products import ProductService
from .validation import money, parse_order_date, parse_qty


LOG = get_logger("orderdb-orders")

# confirm(title, message) -> True to proceed
Confirm = Callable[[str, str], bool]


def _always(_title: str, _message: str) -> bool:
    return True


class OrderComposer:
    """Builds one draft order and commits it with its line items atomically.

    Draft states: EMPTY -> HEADER_SET -> HAS_LINE_ITEMS -> (commit | cancel) -> EMPTY.
    """

    def __init__(
        self,
        db: OrderDatabase,
        products: Optional[ProductService] = None,
        customers: Optional[CustomerService] = None,
        *,
        confirm: Optional[Confirm] = None,
        init_attempts: int = 3,
        init_delay: float = 1.0,
    ) -> None:
        self.db = db
        self.products = products or ProductService(db)
        self.customers = customers or CustomerService(db)
        self.confirm = confirm or _always
        self.init_attempts = init_attempts
        self.init_delay = init_delay
        self.draft = OrderDraft()

    @property
    def state(self) -> DraftState:
        return self.draft.state

    def load_choices(self) -> Dict[str, List[Dict[str, Any]]]:
        """Customers and products for the order form, retrying a cold store."""
        self.db.wait_until_ready(attempts=self.init_attempts, delay=self.init_delay)
        customers = self.customers.list(order_by="name")
        products = self.products.list(order_by="name")
        LOG.info("Loaded %d customers and %d products", len(customers), len(products))
        return {"customers": customers, "products": products}

    # --------------- Draft editing ---------------
    def set_header(self, date: Any, customer_id: Any) -> None:
        date = str(date or "").strip()
        customer_id = str(customer_id or "").strip()
        if not date or not customer_id:
            raise ValidationFailed("Date and Customer are required.")
        self.draft.date = date
        self.draft.customer_id = customer_id

    def add_line_item(self, product_number: str, qty: Any) -> DraftLine:
        """Append a line priced at the product's current price.

        Adding a product that is already in the draft appends another line;
        quantities are never merged.
        """
        if not self.draft.has_header:
            raise ValidationFailed("Date and Customer are required.")
        if not str(product_number or "").strip():
            raise ValidationFailed("All fields are required and quantity must be valid.")
        quantity = parse_qty(qty)
        product = self.products.get(str(product_number).strip())
        if product is None:
            raise ValidationFailed("Product not found.")
        unit_price = money(product["price"])
        line = DraftLine(
            product_number=product["product_number"],
            name=product["name"],
            unit_price=unit_price,
            qty=quantity,
            subtotal=money(unit_price * quantity),
        )
        self.draft.lines.append(line)
        LOG.debug("Added line %s x%d (subtotal %s)", line.product_number, line.qty, line.subtotal)
        return line

    def remove_line_item(self, product_number: str) -> bool:
        """Remove the first line for `product_number` once the user confirms."""
        index = next(
            (i for i, line in enumerate(self.draft.lines) if line.product_number == product_number),
            None,
        )
        if index is None:
            return False
        if not self.confirm("Remove Product", "Are you sure you want to remove this product from the order?"):
            return False
        del self.draft.lines[index]
        return True

    def cancel(self) -> bool:
        """Discard the draft; asks first if anything has been entered."""
        if self.draft.is_dirty and not self.confirm(
            "Cancel Order", "Are you sure you want to cancel this order? All entered data will be lost."
        ):
            return False
        self.draft = OrderDraft()
        return True

    # --------------- Commit ---------------
    def _validate_for_commit(self, date: Any, customer_id: Any) -> None:
        date = str(date or "").strip()
        customer_id = str(customer_id or "").strip()
        if not date or not customer_id:
            raise ValidationFailed("Date and Customer are required.")
        parse_order_date(date)
        if not self.customers.exists(customer_id):
            raise ValidationFailed("Selected customer is not valid.")
        for line in self.draft.lines:
            if not self.products.exists(line.product_number):
                raise ValidationFailed("One or more products are not valid.")
        if not self.draft.lines:
            raise EmptyOrder()

    def commit(self, date: Any = None, customer_id: Any = None) -> int:
        """Persist the draft as one order plus its line items; returns order_number."""
        date = date if date is not None else self.draft.date
        customer_id = customer_id if customer_id is not None else self.draft.customer_id
        self._validate_for_commit(date, customer_id)
        date = str(date).strip()
        customer_id = str(customer_id).strip()

        lines = list(self.draft.lines)
        total = money(sum((line.subtotal for line in lines), Decimal("0")))

        def _write() -> int:
            with self.db.atomic() as cur:
                cur.execute(
                    "INSERT INTO orders (date, customer_id, total_price) VALUES (?, ?, ?);",
                    (date, customer_id, float(total)),
                )
                order_number = int(cur.lastrowid)
                cur.executemany(
                    """
                    INSERT INTO order_line_items (order_number, product_number, qty, subtotal)
                    VALUES (?, ?, ?, ?);
                    """,
                    [(order_number, line.product_number, line.qty, float(line.subtotal)) for line in lines],
                )
            return order_number

        order_number = store_call(_write, "commit order")
        LOG.info("Committed order %s with %d line(s), total %s", order_number, len(lines), total)
        self.draft = OrderDraft()
        return order_number


class OrderService:
    """Order history: listing, detail, deletion and dashboard counts."""

    def __init__(self, db: OrderDatabase, *, confirm: Optional[Confirm] = None) -> None:
        self.db = db
        self.confirm = confirm or _always

    def list_orders(self) -> List[Dict[str, Any]]:
        # LEFT JOIN: orders of deleted customers stay listed with a NULL name.
        return store_call(
            lambda: self.db.query(
                """
                SELECT
                    o.order_number,
                    o.date,
                    o.customer_id,
                    o.total_price,
                    c.name AS customer_name
                FROM orders o
                LEFT JOIN customers c ON c.customer_id = o.customer_id
                ORDER BY o.order_number DESC;
                """
            ),
            "list orders",
        )

    def get_order(self, order_number: int) -> Optional[Dict[str, Any]]:
        """Return the order header with its line items, or None."""

        def _load() -> Optional[Dict[str, Any]]:
            order = self.db.query_one(
                """
                SELECT
                    o.order_number,
                    o.date,
                    o.customer_id,
                    o.total_price,
                    c.name AS customer_name
                FROM orders o
                LEFT JOIN customers c ON c.customer_id = o.customer_id
                WHERE o.order_number = ?;
                """,
                (int(order_number),),
            )
            if order is None:
                return None
            order["items"] = self.db.query(
                """
                SELECT
                    li.line_id,
                    li.product_number,
                    li.qty,
                    li.subtotal,
                    p.name,
                    p.price
                FROM order_line_items li
                LEFT JOIN products p ON p.product_number = li.product_number
                WHERE li.order_number = ?
                ORDER BY li.line_id ASC;
                """,
                (int(order_number),),
            )
            return order

        return store_call(_load, "fetch order")

    def delete_order(self, order_number: int) -> bool:
        """Delete an order and its line items in one transaction after confirmation."""
        if not self.confirm("Delete Order", "Are you sure you want to delete this order?"):
            return False
        affected = store_call(
            lambda: self.db.transaction(
                [
                    Statement("DELETE FROM order_line_items WHERE order_number = ?;", (int(order_number),)),
                    Statement("DELETE FROM orders WHERE order_number = ?;", (int(order_number),)),
                ]
            ),
            "delete order",
        )
        if affected == 0:
            return False
        LOG.info("Deleted order %s", order_number)
        return True

    def require_order(self, order_number: int) -> Dict[str, Any]:
        order = self.get_order(order_number)
        if order is None:
            raise RecordNotFound("Order not found.")
        return order

    def summary(self) -> Dict[str, Any]:
        """Return row counts and revenue for dashboard views."""

        def _load() -> Dict[str, Any]:
            counts = {table: self.db.count(table) for table in ("products", "customers", "orders", "order_line_items")}
            row = self.db.query_one("SELECT COALESCE(SUM(total_price), 0) AS revenue FROM orders;")
            return {
                "counts": counts,
                "revenue": float(money(row["revenue"] if row else 0)),
            }

        return store_call(_load, "summary")
