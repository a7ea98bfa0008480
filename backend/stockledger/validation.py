from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .models import ROLES


# Maximum unit price: 9,999,999,999.99 fits Numeric(12, 2)
MAX_UNIT_PRICE = Decimal("9999999999.99")

# Largest value an INTEGER column holds on every supported backend (32-bit signed)
MAX_INTEGER = 2**31 - 1


def is_storable_id(value) -> bool:
    """True for ints that can address a row of an INTEGER primary key."""
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= MAX_INTEGER


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            number = value
        elif isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                number = int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        elif isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        else:
            raise ValidationError(f"{col.key} must be an integer")

        if abs(number) > MAX_INTEGER:
            raise ValidationError(f"{col.key} is out of range")
        return number

    # Decimals (prices): accept int, float or numeric string, keep 2 places
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            dec = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{col.key} must be a number")
        if not dec.is_finite():
            raise ValidationError(f"{col.key} must be a number")

        # Numeric(p, s) holds fewer than 10**(p - s) in magnitude
        if coltype.precision is not None:
            if abs(dec) >= Decimal(10) ** (coltype.precision - (coltype.scale or 0)):
                raise ValidationError(f"{col.key} is out of range")
        try:
            return dec.quantize(Decimal("0.01"))
        except InvalidOperation:
            raise ValidationError(f"{col.key} is out of range")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

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
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Mutates patch in place (SKU normalization).
    """
    if patch.get("sku") is not None:
        patch["sku"] = patch["sku"].upper()

    if patch.get("quantity") is not None and patch["quantity"] < 0:
        raise ValidationError("quantity cannot be negative")

    if patch.get("low_stock_threshold") is not None and patch["low_stock_threshold"] < 1:
        raise ValidationError("low_stock_threshold must be at least 1")

    if "unit_price" in patch and patch["unit_price"] is not None:
        price = patch["unit_price"]
        if price < 0:
            raise ValidationError("unit_price cannot be negative")
        if price > MAX_UNIT_PRICE:
            raise ValidationError(f"unit_price cannot exceed {MAX_UNIT_PRICE}")


def enforce_rules_user(patch: dict) -> None:
    if patch.get("email") is not None:
        email = patch["email"].lower()
        if not EMAIL_RE.match(email):
            raise ValidationError("email is not a valid address")
        patch["email"] = email

    if patch.get("role") is not None and patch["role"] not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
