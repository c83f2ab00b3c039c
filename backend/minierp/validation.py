from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .models import ORDER_STATUSES, PAYMENT_STATUSES, PRODUCT_STATUSES


CENT = Decimal("0.01")

# Maximum unit price / monetary input: 9,999,999,999.99 fits NUMERIC(12, 2)
MAX_MONEY = Decimal("9999999999.99")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Largest value a 32-bit INTEGER column holds
MAX_QUANTITY = 2_147_483_647


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


class NotFoundError(LookupError):
    """404-level missing entity."""


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - field_aliases: wire name -> column key (camelCase JSON onto snake_case columns)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    field_aliases: dict[str, str] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_money(key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError(f"{key} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    # Bound before quantizing; huge exponents overflow the decimal context
    if abs(amount) > MAX_MONEY:
        raise ValidationError(f"{key} cannot exceed {MAX_MONEY}")
    return quantize_money(amount)


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, key: str, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(key, value)

    if isinstance(coltype, Numeric):
        return _coerce_money(key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{key} must be true or false")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{key} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields, expressed as column keys)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    reverse_aliases = {col: wire for wire, col in policy.field_aliases.items()}
    normalized = {policy.field_aliases.get(k, k): (k, v) for k, v in payload.items()}

    if not partial:
        missing = sorted(
            reverse_aliases.get(f, f)
            for f in policy.required_on_create
            if normalized.get(f, (None, None))[1] in (None, "")
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for key, (wire_key, _raw) in normalized.items():
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {wire_key}")
        if key not in cols:
            raise ValidationError(f"Unknown field: {wire_key}")

    patch: dict = {}

    for key, (wire_key, raw) in normalized.items():
        col = cols[key]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{wire_key} cannot be null")
            patch[key] = None
            continue

        val = _coerce_value(col, wire_key, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{wire_key} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{wire_key} exceeds max length {col.type.length}")

        patch[key] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if patch.get("sku"):
        patch["sku"] = patch["sku"].upper()

    if "current_stock" in patch and patch["current_stock"] < 0:
        raise ValidationError("currentStock must be >= 0")

    if "reorder_level" in patch and patch["reorder_level"] < 0:
        raise ValidationError("reorderLevel must be >= 0")

    if "reorder_quantity" in patch and patch["reorder_quantity"] < 1:
        raise ValidationError("reorderQuantity must be >= 1")

    if "unit_price" in patch:
        price = patch["unit_price"]
        if price < 0:
            raise ValidationError("unitPrice must be >= 0")
        if price > MAX_MONEY:
            raise ValidationError(f"unitPrice cannot exceed {MAX_MONEY}")

    if "status" in patch and patch["status"] not in PRODUCT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PRODUCT_STATUSES)}")


# ---------------------------------------------------------------------------
# Orders: nested payloads, parsed into typed requests before any DB work
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CustomerInfo:
    name: str
    email: str
    phone: str
    address: str


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int
    # Client-side label, only used to name a missing product
    label: str | None = None


@dataclass(frozen=True)
class OrderRequest:
    customer: CustomerInfo
    items: tuple[LineRequest, ...]
    payment_method: str
    shipping_method: str
    tax: Decimal = Decimal("0.00")
    shipping_cost: Decimal = Decimal("0.00")
    status: str = "pending"
    payment_status: str = "pending"
    tracking_number: str | None = None
    notes: str | None = None


def _required_text(data: dict, key: str, label: str | None = None) -> str:
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label or key} is required")
    if not isinstance(value, str):
        raise ValidationError(f"{label or key} must be a string")
    return value.strip()


def _optional_text(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


def _non_negative_money(data: dict, key: str) -> Decimal:
    if data.get(key) is None:
        return Decimal("0.00")
    amount = _coerce_money(key, data[key])
    if amount < 0:
        raise ValidationError(f"{key} must be >= 0")
    if amount > MAX_MONEY:
        raise ValidationError(f"{key} cannot exceed {MAX_MONEY}")
    return amount


def _choice(data: dict, key: str, choices: tuple[str, ...], default: str) -> str:
    value = data.get(key)
    if value is None:
        return default
    if value not in choices:
        raise ValidationError(f"{key} must be one of: {', '.join(choices)}")
    return value


def parse_order_payload(payload: dict | None) -> OrderRequest:
    """
    Turn a POST /orders body into an OrderRequest.

    Prices and names sent by the client are ignored; the workflow snapshots
    them from the catalog.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    customer_raw = payload.get("customer")
    if not isinstance(customer_raw, dict):
        raise ValidationError("customer is required")
    customer = CustomerInfo(
        name=_required_text(customer_raw, "name", "customer.name"),
        email=_required_text(customer_raw, "email", "customer.email").lower(),
        phone=_required_text(customer_raw, "phone", "customer.phone"),
        address=_required_text(customer_raw, "address", "customer.address"),
    )

    items_raw = payload.get("items")
    if not isinstance(items_raw, list) or not items_raw:
        raise ValidationError("items must be a non-empty list")

    items = []
    for i, raw in enumerate(items_raw, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{i}] must be an object")
        if raw.get("product") is None:
            raise ValidationError(f"items[{i}].product is required")
        if raw.get("quantity") is None:
            raise ValidationError(f"items[{i}].quantity is required")
        product_id = _coerce_int(f"items[{i}].product", raw["product"])
        quantity = _coerce_int(f"items[{i}].quantity", raw["quantity"])
        if quantity < 1:
            raise ValidationError(f"items[{i}].quantity must be >= 1")
        if quantity > MAX_QUANTITY:
            raise ValidationError(f"items[{i}].quantity cannot exceed {MAX_QUANTITY}")
        label = raw.get("productName")
        items.append(LineRequest(
            product_id=product_id,
            quantity=quantity,
            label=label if isinstance(label, str) else None,
        ))

    return OrderRequest(
        customer=customer,
        items=tuple(items),
        payment_method=_required_text(payload, "paymentMethod"),
        shipping_method=_required_text(payload, "shippingMethod"),
        tax=_non_negative_money(payload, "tax"),
        shipping_cost=_non_negative_money(payload, "shippingCost"),
        status=_choice(payload, "status", ORDER_STATUSES, "pending"),
        payment_status=_choice(payload, "paymentStatus", PAYMENT_STATUSES, "pending"),
        tracking_number=_optional_text(payload, "trackingNumber"),
        notes=_optional_text(payload, "notes"),
    )


ORDER_UPDATE_FIELDS = {
    "status": "status",
    "paymentStatus": "payment_status",
    "trackingNumber": "tracking_number",
    "notes": "notes",
}


def parse_order_update(payload: dict | None) -> dict:
    """Validate a PATCH /orders/<id> body; only progress fields are editable."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = sorted(k for k in payload if k not in ORDER_UPDATE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")
    if not payload:
        raise ValidationError("No fields to update")

    for key in ("status", "paymentStatus"):
        if key in payload and payload[key] is None:
            raise ValidationError(f"{key} cannot be null")

    patch: dict = {}
    if "status" in payload:
        patch["status"] = _choice(payload, "status", ORDER_STATUSES, "pending")
    if "paymentStatus" in payload:
        patch["payment_status"] = _choice(payload, "paymentStatus", PAYMENT_STATUSES, "pending")
    if "trackingNumber" in payload:
        patch["tracking_number"] = _optional_text(payload, "trackingNumber")
    if "notes" in payload:
        patch["notes"] = _optional_text(payload, "notes")
    return patch


def parse_choice_arg(key: str, raw: str | None, choices: tuple[str, ...]) -> str | None:
    """Optional enum query filter: blank means no filter, unknown values are rejected."""
    if raw in (None, ""):
        return None
    if raw not in choices:
        raise ValidationError(f"{key} must be one of: {', '.join(choices)}")
    return raw


def parse_page_args(page_raw: str | None, limit_raw: str | None) -> tuple[int, int]:
    """Offset pagination arguments: page >= 1, 1 <= limit <= MAX_PAGE_SIZE."""
    page = _coerce_int("page", page_raw) if page_raw not in (None, "") else 1
    limit = _coerce_int("limit", limit_raw) if limit_raw not in (None, "") else DEFAULT_PAGE_SIZE
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    return page, min(limit, MAX_PAGE_SIZE)
