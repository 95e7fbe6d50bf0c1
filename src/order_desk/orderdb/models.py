from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass
class User:
    user_id: int
    full_name: Optional[str]
    email: Optional[str]
    username: str
    is_logged_in: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "User":
        return cls(
            user_id=int(row["user_id"]),
            full_name=row.get("full_name"),
            email=row.get("email"),
            username=row["username"],
            is_logged_in=bool(row.get("is_logged_in")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "email": self.email,
            "username": self.username,
            "is_logged_in": self.is_logged_in,
        }


class DraftState(str, Enum):
    EMPTY = "EMPTY"
    HEADER_SET = "HEADER_SET"
    HAS_LINE_ITEMS = "HAS_LINE_ITEMS"


@dataclass
class DraftLine:
    product_number: str
    name: str
    unit_price: Decimal  # snapshot of products.price when the line was added
    qty: int
    subtotal: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_number": self.product_number,
            "name": self.name,
            "price": float(self.unit_price),
            "qty": self.qty,
            "subtotal": float(self.subtotal),
        }


@dataclass
class OrderDraft:
    date: Optional[str] = None
    customer_id: Optional[str] = None
    lines: List[DraftLine] = field(default_factory=list)

    @property
    def has_header(self) -> bool:
        return bool(self.date and self.customer_id)

    @property
    def state(self) -> DraftState:
        if self.lines:
            return DraftState.HAS_LINE_ITEMS
        if self.has_header:
            return DraftState.HEADER_SET
        return DraftState.EMPTY

    @property
    def total(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal("0.00"))

    @property
    def is_dirty(self) -> bool:
        return bool(self.lines or self.date or self.customer_id)
