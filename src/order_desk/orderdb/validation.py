from __future__ import annotations

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable

from ..errors import ValidationFailed


CENTS = Decimal("0.01")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15
PASSWORD_MIN_LENGTH = 6
# Keeps price * qty within Decimal precision and qty within SQLite INTEGER.
MAX_PRICE = Decimal("1000000000")
MAX_QTY = 2**31 - 1


def _norm_s(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def require_fields(fields: Dict[str, Any], names: Iterable[str], message: str = "All fields are required.") -> Dict[str, str]:
    """Return the named fields trimmed; raise if any is missing or blank."""
    cleaned: Dict[str, str] = {}
    for name in names:
        value = _norm_s(fields.get(name))
        if not value:
            raise ValidationFailed(message)
        cleaned[name] = value
    return cleaned


def money(value: Any) -> Decimal:
    """Round to cents, half-up."""
    try:
        return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationFailed("Amount is out of range.") from None


def parse_price(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationFailed("Price must be a non-negative number.")
    try:
        price = Decimal(_norm_s(value))
    except InvalidOperation:
        raise ValidationFailed("Price must be a non-negative number.") from None
    if not price.is_finite() or price < 0:
        raise ValidationFailed("Price must be a non-negative number.")
    if price > MAX_PRICE:
        raise ValidationFailed(f"Price must not exceed {MAX_PRICE}.")
    return money(price)


def phone_digits(value: Any) -> str:
    return re.sub(r"[^0-9]", "", _norm_s(value))


def validate_phone(value: Any) -> str:
    digits = phone_digits(value)
    if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        raise ValidationFailed(
            f"Please enter a valid phone number (at least {PHONE_MIN_DIGITS} digits, max {PHONE_MAX_DIGITS})."
        )
    return _norm_s(value)


def validate_email(value: Any) -> str:
    email = _norm_s(value)
    if not EMAIL_RE.match(email):
        raise ValidationFailed("Please enter a valid email address.")
    return email


def validate_password(value: Any) -> str:
    # Passwords are taken as typed; surrounding spaces are rejected, not trimmed.
    password = "" if value is None else str(value)
    if " " in password:
        raise ValidationFailed("Password cannot contain spaces.")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationFailed(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.")
    return password


def parse_order_date(value: Any) -> str:
    """Accept a real calendar date in YYYY-MM-DD form and return it unchanged."""
    raw = _norm_s(value)
    if not DATE_RE.match(raw):
        raise ValidationFailed("Date must be in YYYY-MM-DD format.")
    try:
        date.fromisoformat(raw)
    except ValueError:
        raise ValidationFailed("Date must be a valid calendar date.") from None
    return raw


def parse_qty(value: Any) -> int:
    """Return a positive integer quantity."""
    message = "Quantity must be a positive whole number."
    if isinstance(value, bool) or value is None:
        raise ValidationFailed(message)
    if isinstance(value, int):
        qty = value
    else:
        try:
            dec = Decimal(_norm_s(value))
        except InvalidOperation:
            raise ValidationFailed(message) from None
        if not dec.is_finite() or dec != dec.to_integral_value():
            raise ValidationFailed(message)
        qty = int(dec)
    if qty <= 0:
        raise ValidationFailed(message)
    if qty > MAX_QTY:
        raise ValidationFailed(f"Quantity must not exceed {MAX_QTY}.")
    return qty
