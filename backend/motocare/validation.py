from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .time_utils import parse_iso_date


# Upper bound for a single VND amount (100 billion dong)
MAX_AMOUNT_VND = 100_000_000_000

FIELD_INT = "int"
FIELD_AMOUNT = "amount"
FIELD_STR = "str"
FIELD_BOOL = "bool"
FIELD_DATE = "date"
FIELD_DICT = "dict"
FIELD_LIST = "list"


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate login phone)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - field_types: how each writable field is coerced (FIELD_* tags)
    - nullable_fields: fields that may be explicitly set to null
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    field_types: dict[str, str] = field(default_factory=dict)
    nullable_fields: set[str] = field(default_factory=set)


def coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_amount(key: str, value: Any) -> int:
    amount = coerce_int(key, value)
    if amount < 0:
        raise ValidationError(f"{key} must be >= 0")
    if amount > MAX_AMOUNT_VND:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT_VND}")
    return amount


def coerce_date(key: str, value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 date")
        if parsed is None:
            raise ValidationError(f"{key} must be an ISO-8601 date")
        return parsed.isoformat()
    raise ValidationError(f"{key} must be a date")


def _coerce_value(key: str, kind: str, value: Any):
    if kind == FIELD_INT:
        return coerce_int(key, value)
    if kind == FIELD_AMOUNT:
        return coerce_amount(key, value)
    if kind == FIELD_BOOL:
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{key} must be a boolean")
    if kind == FIELD_DATE:
        return coerce_date(key, value)
    if kind == FIELD_DICT:
        if isinstance(value, dict):
            return value
        raise ValidationError(f"{key} must be an object")
    if kind == FIELD_LIST:
        if isinstance(value, list):
            return value
        raise ValidationError(f"{key} must be a list")

    # Strings
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{key} must be a string")
    return str(value).strip()


def validate_payload(*, payload: Any, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Validates + normalizes incoming JSON against the policy.
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}
    for k, raw in payload.items():
        if raw is None:
            if k not in policy.nullable_fields:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        kind = policy.field_types.get(k, FIELD_STR)
        val = _coerce_value(k, kind, raw)

        # Required text fields cannot be blank
        if kind == FIELD_STR and val == "" and k in policy.required_on_create:
            raise ValidationError(f"{k} cannot be blank")

        patch[k] = val

    return patch
