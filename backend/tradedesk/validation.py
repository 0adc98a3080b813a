from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from .constants import (
    DELIVERY_TYPES,
    ORDER_STATUSES,
    PAYMENT_METHODS,
    PRODUCT_TYPES,
    STOCK_ADJUSTMENT_REASONS,
    STOCK_TRANSACTION_TYPES,
)
from .errors import ValidationError
from .time_utils import parse_iso_datetime


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999
MAX_QUANTITY = Decimal("99999999999.999")
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 25

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_URL_RE = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


class _Invalid(ValueError):
    """Single-field problem; collected into FieldErrors."""


class FieldErrors:
    """
    Collects field-addressable messages so a form can show every problem
    at once instead of failing on the first one.
    """

    def __init__(self):
        self.errors: dict[str, list[str]] = {}

    def add(self, path: str, message: str) -> None:
        self.errors.setdefault(path, []).append(message)

    def __bool__(self) -> bool:
        return bool(self.errors)

    def raise_if_any(self, message: str = "Invalid input.") -> None:
        if self.errors:
            raise ValidationError(message, details={"fields": self.errors})


# =============================================================================
# Field parsers
# =============================================================================


def parse_id(value: Any) -> int:
    """Primary keys: positive integers, strict (no floats, no '1e3')."""
    number = parse_int(value)
    if number <= 0:
        raise _Invalid("Required ID is missing or invalid")
    return number


def parse_int(value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise _Invalid("Must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise _Invalid("Must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise _Invalid("Must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise _Invalid("Must be an integer")
    if isinstance(value, float):
        raise _Invalid("Must be an integer, not a decimal")
    raise _Invalid("Must be an integer")


def parse_positive_cents(value: Any) -> int:
    cents = parse_int(value)
    if cents <= 0:
        raise _Invalid("Must be a positive number")
    if cents > MAX_PRICE_CENTS:
        raise _Invalid(f"Cannot exceed {MAX_PRICE_CENTS} cents")
    return cents


def parse_non_negative_cents(value: Any) -> int:
    cents = parse_int(value)
    if cents < 0:
        raise _Invalid("Cannot be negative")
    if cents > MAX_PRICE_CENTS:
        raise _Invalid(f"Cannot exceed {MAX_PRICE_CENTS} cents")
    return cents


def _parse_decimal(value: Any, message: str) -> Decimal:
    """Finite number with at most 3 decimal places and |value| <= MAX_QUANTITY."""
    if isinstance(value, bool):
        raise _Invalid(message)
    try:
        if isinstance(value, float):
            number = Decimal(str(value))
        elif isinstance(value, (int, Decimal)):
            number = Decimal(value)
        elif isinstance(value, str) and value.strip():
            number = Decimal(value.strip())
        else:
            raise _Invalid(message)
    except InvalidOperation:
        raise _Invalid(message)

    if not number.is_finite():
        raise _Invalid(message)
    if abs(number) > MAX_QUANTITY:
        raise _Invalid("Quantity is too large")
    if number.normalize().as_tuple().exponent < -3:
        raise _Invalid("At most 3 decimal places")
    return number


def parse_positive_decimal(value: Any) -> Decimal:
    """Order and purchase quantities."""
    number = _parse_decimal(value, "Must be a positive number")
    if number <= 0:
        raise _Invalid("Must be a positive number")
    return number


def parse_non_negative_decimal(value: Any) -> Decimal:
    number = _parse_decimal(value, "Must be a number")
    if number < 0:
        raise _Invalid("Cannot be negative")
    return number


def parse_signed_decimal(value: Any) -> Decimal:
    """Stock adjustments: either sign, never zero."""
    number = _parse_decimal(value, "Must be a number")
    if number == 0:
        raise _Invalid("Cannot be zero")
    return number


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "1", "yes"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "0", "no"}:
        return False
    raise _Invalid("Must be true or false")


def parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise _Invalid("Must be an ISO-8601 datetime")
        if dt is not None:
            return dt
    raise _Invalid("Must be an ISO-8601 datetime")


def text(*, min_len: int = 0, max_len: int | None = None, message: str | None = None) -> Callable[[Any], str]:
    def _parse(value: Any) -> str:
        if not isinstance(value, str):
            raise _Invalid("Must be a string")
        stripped = value.strip()
        if len(stripped) < min_len:
            raise _Invalid(message or f"Must be at least {min_len} characters")
        if max_len is not None and len(stripped) > max_len:
            raise _Invalid(f"Must be at most {max_len} characters")
        return stripped
    return _parse


def choice(options: tuple[str, ...]) -> Callable[[Any], str]:
    def _parse(value: Any) -> str:
        if not isinstance(value, str) or value.strip().upper() not in options:
            raise _Invalid(f"Must be one of: {', '.join(options)}")
        return value.strip().upper()
    return _parse


def email(value: Any) -> str:
    address = text(max_len=255)(value)
    if not _EMAIL_RE.match(address):
        raise _Invalid("Invalid email address")
    return address.lower()


def url(value: Any) -> str:
    link = text(max_len=500)(value)
    if not _URL_RE.match(link):
        raise _Invalid("Invalid URL format")
    return link


# =============================================================================
# Payload helpers
# =============================================================================


def _require_mapping(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _reject_unknown(errors: FieldErrors, payload: dict, allowed: set[str]) -> None:
    for key in payload:
        if key not in allowed:
            errors.add(key, "Field not allowed")


def _field(
    errors: FieldErrors,
    payload: dict,
    key: str,
    parser: Callable[[Any], Any],
    *,
    required: bool = False,
    default: Any = None,
    path: str | None = None,
) -> Any:
    path = path or key
    raw = payload.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip() and not required):
        if required:
            errors.add(path, "Required")
        return default
    try:
        return parser(raw)
    except _Invalid as exc:
        errors.add(path, str(exc))
        return default


def _clean(
    payload: Any,
    schema: dict[str, tuple[Callable[[Any], Any], bool]],
    *,
    partial: bool,
) -> dict:
    """
    Validate a flat payload against {field: (parser, required_on_create)}.

    partial=False: create semantics (enforce required fields)
    partial=True: patch semantics (validate only provided keys; explicit
    null clears an optional field)
    """
    payload = _require_mapping(payload)
    errors = FieldErrors()
    _reject_unknown(errors, payload, set(schema))

    cleaned: dict = {}
    for key, (parser, required) in schema.items():
        if partial and key not in payload:
            continue
        if partial and payload.get(key) is None:
            if required:
                errors.add(key, "Cannot be null")
            else:
                cleaned[key] = None
            continue
        value = _field(errors, payload, key, parser, required=required and not partial)
        if key in payload or value is not None:
            cleaned[key] = value

    errors.raise_if_any()
    return cleaned


# =============================================================================
# Orders
# =============================================================================


@dataclass(frozen=True)
class OrderItemInput:
    product_id: int
    quantity: Decimal


@dataclass(frozen=True)
class DeliveryInput:
    type: str = "DELIVERY"
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None


@dataclass(frozen=True)
class CreateOrderCommand:
    """User intent for placing an order. Prices are never client-supplied."""

    customer_id: int
    items: tuple[OrderItemInput, ...]
    status: str = "PENDING"
    discount_cents: int = 0
    notes: Optional[str] = None
    delivery: Optional[DeliveryInput] = None


@dataclass(frozen=True)
class UpdateOrderStatusCommand:
    order_id: int
    status: str
    tracking_number: Optional[str] = None
    payment_reference: Optional[str] = None


_ORDER_FIELDS = {
    "customer_id", "items", "status", "discount_cents", "notes",
    "delivery_type", "address_line1", "address_line2", "city",
    "postal_code", "country", "payment_method", "payment_reference",
}


def validate_create_order(payload: Any) -> CreateOrderCommand:
    payload = _require_mapping(payload)
    errors = FieldErrors()
    _reject_unknown(errors, payload, _ORDER_FIELDS)

    customer_id = _field(errors, payload, "customer_id", parse_id, required=True)
    status = _field(errors, payload, "status", choice(ORDER_STATUSES), default="PENDING")
    discount = _field(errors, payload, "discount_cents", parse_non_negative_cents, default=0)
    notes = _field(errors, payload, "notes", text(max_len=1000))

    raw_items = payload.get("items")
    items: list[OrderItemInput] = []
    if not isinstance(raw_items, list) or not raw_items:
        errors.add("items", "Order must have at least one item")
    else:
        for i, raw in enumerate(raw_items):
            if not isinstance(raw, dict):
                errors.add(f"items.{i}", "Must be an object")
                continue
            for key in raw:
                if key not in ("product_id", "quantity"):
                    errors.add(f"items.{i}.{key}", "Field not allowed")
            product_id = _field(errors, raw, "product_id", parse_id, required=True, path=f"items.{i}.product_id")
            quantity = _field(errors, raw, "quantity", parse_positive_decimal, required=True, path=f"items.{i}.quantity")
            if product_id is not None and quantity is not None:
                items.append(OrderItemInput(product_id=product_id, quantity=quantity))

    delivery_type = _field(errors, payload, "delivery_type", choice(DELIVERY_TYPES))
    payment_method = _field(errors, payload, "payment_method", choice(PAYMENT_METHODS))
    address = {
        key: _field(errors, payload, key, text(max_len=max_len))
        for key, max_len in (
            ("address_line1", 100),
            ("address_line2", 100),
            ("city", 50),
            ("postal_code", 20),
            ("country", 50),
        )
    }
    payment_reference = _field(errors, payload, "payment_reference", text(max_len=100))

    errors.raise_if_any()

    delivery = None
    if delivery_type or payment_method:
        delivery = DeliveryInput(
            type=delivery_type or "DELIVERY",
            payment_method=payment_method,
            payment_reference=payment_reference,
            **address,
        )

    return CreateOrderCommand(
        customer_id=customer_id,
        items=tuple(items),
        status=status,
        discount_cents=discount,
        notes=notes,
        delivery=delivery,
    )


def validate_update_order_status(order_id: Any, payload: Any) -> UpdateOrderStatusCommand:
    payload = _require_mapping(payload)
    errors = FieldErrors()
    _reject_unknown(errors, payload, {"status", "tracking_number", "payment_reference"})

    parsed_id = None
    try:
        parsed_id = parse_id(order_id)
    except _Invalid as exc:
        errors.add("order_id", str(exc))

    status = _field(errors, payload, "status", choice(ORDER_STATUSES), required=True)
    tracking = _field(errors, payload, "tracking_number", text(max_len=100))
    reference = _field(errors, payload, "payment_reference", text(max_len=100))
    errors.raise_if_any()

    return UpdateOrderStatusCommand(
        order_id=parsed_id,
        status=status,
        tracking_number=tracking,
        payment_reference=reference,
    )


# =============================================================================
# Catalog / customers / suppliers / stock
# =============================================================================

CATEGORY_FIELDS = {
    "name": (text(min_len=2, max_len=120, message="Category name must be at least 2 characters"), True),
    "description": (text(max_len=500), False),
}

PRODUCT_FIELDS = {
    "name": (text(min_len=2, max_len=255), True),
    "description": (text(max_len=1000), False),
    "sku": (text(max_len=50), False),
    "type": (choice(PRODUCT_TYPES), True),
    "unit": (text(min_len=1, max_len=32, message="Unit is required (e.g., pcs, kg, hour)"), True),
    "price_cents": (parse_positive_cents, True),
    "category_id": (parse_id, False),
    "is_active": (parse_bool, False),
    "reorder_point": (parse_non_negative_decimal, False),
}

CUSTOMER_FIELDS = {
    "customer_code": (text(min_len=1, max_len=50), True),
    "name": (text(min_len=1, max_len=255), True),
    "phone": (text(max_len=20), False),
    "email": (email, False),
    "address_line1": (text(max_len=100), False),
    "address_line2": (text(max_len=100), False),
    "city": (text(max_len=50), False),
    "postal_code": (text(max_len=20), False),
    "country": (text(max_len=50), False),
}

SUPPLIER_FIELDS = {
    "name": (text(min_len=2, max_len=255), True),
    "contact_name": (text(max_len=255), False),
    "email": (email, False),
    "phone": (text(max_len=20), False),
    "notes": (text(max_len=500), False),
}

STOCK_PURCHASE_FIELDS = {
    "product_id": (parse_id, True),
    "quantity": (parse_positive_decimal, True),
    "unit": (text(min_len=1, max_len=32), True),
    "unit_cost_cents": (parse_non_negative_cents, True),
    "supplier_id": (parse_id, False),
    "batch_number": (text(max_len=50), False),
    "purchase_date": (parse_datetime, False),
    "expiry_date": (parse_datetime, False),
    "notes": (text(max_len=500), False),
    "attachment_url": (url, False),
}

STOCK_ADJUSTMENT_FIELDS = {
    "stock_id": (parse_id, True),
    "product_id": (parse_id, False),
    "quantity": (parse_signed_decimal, True),
    "reason": (choice(STOCK_ADJUSTMENT_REASONS), True),
    "notes": (text(max_len=500), False),
    "attachment_url": (url, False),
}

STOCK_TRANSACTION_FILTERS = {
    "product_id": (parse_id, False),
    "type": (choice(STOCK_TRANSACTION_TYPES), False),
    "date_from": (parse_datetime, False),
    "date_to": (parse_datetime, False),
    "skip": (parse_int, False),
    "take": (parse_int, False),
}

ORDER_LIST_FILTERS = {
    "customer_id": (parse_id, False),
    "status": (choice(ORDER_STATUSES), False),
}

PRODUCT_LIST_FILTERS = {
    "category_id": (parse_id, False),
    "active_only": (parse_bool, False),
}


def validate_category(payload: Any, *, partial: bool = False) -> dict:
    return _clean(payload, CATEGORY_FIELDS, partial=partial)


def validate_product(payload: Any, *, partial: bool = False) -> dict:
    return _clean(payload, PRODUCT_FIELDS, partial=partial)


def validate_customer(payload: Any, *, partial: bool = False) -> dict:
    return _clean(payload, CUSTOMER_FIELDS, partial=partial)


def validate_supplier(payload: Any) -> dict:
    return _clean(payload, SUPPLIER_FIELDS, partial=False)


def validate_stock_purchase(payload: Any) -> dict:
    return _clean(payload, STOCK_PURCHASE_FIELDS, partial=False)


def validate_stock_adjustment(payload: Any) -> dict:
    return _clean(payload, STOCK_ADJUSTMENT_FIELDS, partial=False)


def validate_order_filters(params: Any) -> dict:
    """Query string of the order list: customer_id, status (both optional)."""
    return _clean(params, ORDER_LIST_FILTERS, partial=False)


def validate_product_filters(params: Any) -> dict:
    return _clean(params, PRODUCT_LIST_FILTERS, partial=False)


def validate_stock_transaction_filters(params: Any) -> dict:
    cleaned = _clean(params, STOCK_TRANSACTION_FILTERS, partial=False)

    errors = FieldErrors()
    skip = cleaned.get("skip")
    take = cleaned.get("take")
    if skip is not None and skip < 0:
        errors.add("skip", "Must be a non-negative whole number")
    if take is not None and not 0 < take <= MAX_PAGE_SIZE:
        errors.add("take", f"Must be between 1 and {MAX_PAGE_SIZE}")
    errors.raise_if_any()

    cleaned["skip"] = skip or 0
    cleaned["take"] = take or DEFAULT_PAGE_SIZE
    return cleaned


def validate_id(value: Any, name: str = "id") -> int:
    """Path/query identifiers, reported under `name` when invalid."""
    errors = FieldErrors()
    parsed = None
    try:
        parsed = parse_id(value)
    except _Invalid as exc:
        errors.add(name, str(exc))
    errors.raise_if_any()
    return parsed
