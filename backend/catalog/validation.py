from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level uniqueness conflict (slug, SKU, email)."""


class NotFoundError(LookupError):
    """404-level: the targeted record does not exist."""


class AuthorizationError(Exception):
    """401-level: missing or invalid admin session."""


# Unique index -> message shown to the caller
UNIQUE_MESSAGES = {
    "categories.slug": "Category slug already exists.",
    "categories.name": "Category name already exists.",
    "variants.sku": "SKU already exists.",
    "admins.email": "An admin with this email already exists.",
}

_FALSE_STRINGS = {"false", "0", "no", "off", ""}


def slugify(value: Any) -> str:
    """
    Derive a URL-safe slug.

    trim -> lowercase -> drop [^a-z0-9\\s-] -> whitespace runs to '-' -> collapse '-+'.
    Idempotent: slugify(slugify(x)) == slugify(x).
    """
    text = str(value if value is not None else "").strip().lower()
    text = re.sub(r"[^a-z0-9\s-]", "", text)
    text = re.sub(r"\s+", "-", text)
    return re.sub(r"-+", "-", text)


def conflict_from_integrity(exc: IntegrityError) -> ValueError:
    """Translate a storage constraint failure into a reportable error."""
    message = str(getattr(exc, "orig", exc))
    if "UNIQUE constraint failed" in message:
        for key, text in UNIQUE_MESSAGES.items():
            if key in message:
                return ConflictError(text)
        return ConflictError("Record already exists.")
    if "FOREIGN KEY constraint failed" in message:
        return ValidationError("Referenced record does not exist.")
    if "NOT NULL constraint failed" in message:
        column = message.rsplit(".", 1)[-1].strip()
        return ValidationError(f"{column} is required")
    return ValidationError(message)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for create (missing or blank -> error)
    - json_fields: non-column fields carrying structured JSON (list or dict),
      accepted either decoded or as a JSON string (multipart forms)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    json_fields: dict[str, type] = field(default_factory=dict)


def coerce_int(value: Any, key: str) -> int:
    """Strict integer coercion: rejects floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    # fallback: truthiness
    return bool(value)


def parse_json_field(value: Any, key: str, expected: type) -> Any:
    if isinstance(value, str):
        if not value.strip():
            return expected()
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationError(f"{key} must be valid JSON")
    if not isinstance(value, expected):
        raise ValidationError(f"{key} must be a JSON {'object' if expected is dict else 'array'}")
    return value


def _coerce_value(col: sa.Column, value: Any):
    coltype = col.type

    if isinstance(coltype, sa.Boolean):
        return coerce_bool(value)

    # Blank input for nullable numeric columns is an explicit "clear"
    if isinstance(coltype, (sa.Integer, sa.Float)) and isinstance(value, str) and not value.strip():
        if col.nullable:
            return None
        raise ValidationError(f"{col.key} cannot be blank")

    if isinstance(coltype, sa.Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, sa.Float):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return float(str(value).strip())
        except ValueError:
            raise ValidationError(f"{col.key} must be a number")

    if isinstance(coltype, (sa.String, sa.Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_payload(
    *,
    table: sa.Table,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming data against:
    - table column metadata (nullable, type)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only the keys present in payload.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys; absent keys
    mean "leave unchanged")
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if _is_blank(payload.get(f)))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = {c.key: c for c in table.columns}

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols and k not in policy.json_fields:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in policy.json_fields:
            patch[k] = parse_json_field(raw, k, policy.json_fields[k]) if raw is not None else None
            continue

        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (sa.String, sa.Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        patch[k] = val

    return patch
