# backend/almacen/validation.py
"""
Request payload validation.

Strict on types (an integer field never accepts floats, "12.5" or "1e3"),
lenient on stock: a negative target quantity is clamped to zero instead of
rejected, so an off-by-one correction never blocks a save.
"""
from __future__ import annotations

from typing import Any

from .services.reasons import STOCK_REASONS

# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict."""


def coerce_int(value: Any, key: str, *, minimum: int | None = None) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{key} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    return result


def coerce_optional_int(value: Any, key: str, *, minimum: int | None = None) -> int | None:
    if value is None:
        return None
    return coerce_int(value, key, minimum=minimum)


def parse_stock_map(value: Any, key: str) -> dict[int, int]:
    """
    {business_id: quantity} from JSON (object keys arrive as strings).

    Negative quantities are clamped to 0.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be an object of business_id -> quantity")
    result = {}
    for raw_id, raw_qty in value.items():
        business_id = coerce_int(raw_id, f"{key} business id", minimum=1)
        result[business_id] = max(0, coerce_int(raw_qty, f"{key}[{raw_id}]"))
    return result


def parse_reason(value: Any, key: str = "reason") -> str:
    reason = str(value or "").strip().upper()
    if reason not in STOCK_REASONS:
        allowed = ", ".join(sorted(STOCK_REASONS))
        raise ValidationError(f"{key} must be one of {allowed}")
    return reason


def parse_loss_reasons(value: Any) -> dict[int, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError("loss_reasons must be an object of business_id -> reason")
    return {
        coerce_int(raw_id, "loss_reasons business id", minimum=1): parse_reason(raw, f"loss_reasons[{raw_id}]")
        for raw_id, raw in value.items()
    }


def _price(payload: dict, key: str, default: int | None) -> int | None:
    if payload.get(key) is None:
        return default
    cents = coerce_int(payload[key], key, minimum=0)
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} exceeds maximum allowed value ({MAX_PRICE_CENTS})")
    return cents


def parse_product_draft(payload: Any):
    """Build a ProductDraft from the editor's JSON draft object."""
    from .services.categories import UNCATEGORIZED
    from .services.records import ProductDraft

    if not isinstance(payload, dict):
        raise ValidationError("draft must be an object")

    codes = payload.get("codes_asociados") or []
    if not isinstance(codes, list):
        raise ValidationError("codes_asociados must be a list")

    return ProductDraft(
        id=coerce_optional_int(payload.get("id"), "id", minimum=1),
        code=str(payload.get("code") or "").strip(),
        category=str(payload.get("category") or UNCATEGORIZED).strip().upper(),
        base_name=str(payload.get("base_name") or ""),
        purchase_cost_cents=_price(payload, "purchase_cost_cents", 0),
        margin_bps=coerce_int(payload.get("margin_bps", 0), "margin_bps", minimum=0),
        selling_price_cents=_price(payload, "selling_price_cents", None),
        codes_asociados=tuple(str(c).strip() for c in codes if str(c).strip()),
        entry_manual=bool(payload.get("entry_manual", False)),
    )


def parse_adjustment(payload: dict) -> dict:
    """Quick +/- stock action: business_id, delta, reason, optional expected."""
    delta = coerce_int(payload.get("delta"), "delta")
    if delta == 0:
        raise ValidationError("delta cannot be zero")
    return {
        "business_id": coerce_int(payload.get("business_id"), "business_id", minimum=1),
        "delta": delta,
        "reason": parse_reason(payload.get("reason") or "CORRECTION"),
        "expected": coerce_optional_int(payload.get("expected"), "expected", minimum=0),
        "actor": (payload.get("actor") or None),
    }
