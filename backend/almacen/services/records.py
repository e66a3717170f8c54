# Overview: Typed records for rows crossing the data-access boundary.

# backend/almacen/services/records.py
"""
Rows come back from TableClient as plain dicts. They are turned into these
records at the boundary so the services never pass untyped rows around; a
row missing a required column or carrying the wrong type raises
DataAccessError instead of failing later with a KeyError.

Timestamps are normalized to naive UTC here, whatever the driver returns
(timestamptz columns come back timezone-aware on Postgres).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..time_utils import to_naive_utc
from ..validation import ValidationError
from .categories import UNCATEGORIZED, compose_name, is_valid_category
from .data_access import DataAccessError
from .pricing import suggest_selling_price_cents


def _field(row: dict, key: str, kind: type | tuple, entity: str, *, nullable: bool = False) -> Any:
    if key not in row:
        raise DataAccessError(f"malformed {entity} row: missing {key}")
    value = row[key]
    if value is None and nullable:
        return None
    if isinstance(value, bool) and kind is int:
        raise DataAccessError(f"malformed {entity} row: {key} must be int")
    if not isinstance(value, kind):
        raise DataAccessError(f"malformed {entity} row: {key}={value!r}")
    return value


@dataclass(frozen=True)
class BusinessRecord:
    id: int
    name: str

    @classmethod
    def from_row(cls, row: dict) -> "BusinessRecord":
        return cls(
            id=_field(row, "id", int, "business"),
            name=_field(row, "name", str, "business"),
        )


@dataclass(frozen=True)
class ProductRecord:
    id: int
    code: str
    name: str
    default_purchase_cents: int
    margin_bps: int
    default_selling_cents: int
    codes_asociados: tuple[str, ...] = ()
    entry_manual: bool = False
    deleted_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> "ProductRecord":
        codes = row.get("codes_asociados") or []
        if not isinstance(codes, (list, tuple)):
            raise DataAccessError(f"malformed product row: codes_asociados={codes!r}")
        return cls(
            id=_field(row, "id", int, "product"),
            code=_field(row, "code", str, "product"),
            name=_field(row, "name", str, "product"),
            default_purchase_cents=_field(row, "default_purchase_cents", int, "product"),
            margin_bps=_field(row, "margin_bps", int, "product"),
            default_selling_cents=_field(row, "default_selling_cents", int, "product"),
            codes_asociados=tuple(str(c) for c in codes),
            entry_manual=bool(row.get("entry_manual", False)),
            deleted_at=to_naive_utc(_field(row, "deleted_at", datetime, "product", nullable=True)) if "deleted_at" in row else None,
        )


@dataclass(frozen=True)
class StockRow:
    product_id: int
    business_id: int
    stock: int

    @classmethod
    def from_row(cls, row: dict) -> "StockRow":
        stock = _field(row, "stock", int, "inventory")
        if stock < 0:
            raise DataAccessError(f"malformed inventory row: negative stock {stock}")
        return cls(
            product_id=_field(row, "product_id", int, "inventory"),
            business_id=_field(row, "business_id", int, "inventory"),
            stock=stock,
        )


@dataclass(frozen=True)
class ActivityRecord:
    id: int
    business_id: int | None
    product_id: int | None
    details: str
    reason: str
    lost_cash_cents: int | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: dict) -> "ActivityRecord":
        return cls(
            id=_field(row, "id", int, "activity"),
            business_id=_field(row, "business_id", int, "activity", nullable=True),
            product_id=_field(row, "product_id", int, "activity", nullable=True),
            details=_field(row, "details", str, "activity"),
            reason=_field(row, "reason", str, "activity"),
            lost_cash_cents=_field(row, "lost_cash_cents", int, "activity", nullable=True),
            created_at=to_naive_utc(_field(row, "created_at", datetime, "activity")),
        )


@dataclass(frozen=True)
class ProductDraft:
    """
    Editor output for one product: master fields before they are persisted.

    id is None for a product that does not exist yet. When selling_price_cents
    is None it is derived from cost and margin.
    """
    base_name: str
    category: str = UNCATEGORIZED
    id: int | None = None
    code: str = ""
    purchase_cost_cents: int = 0
    margin_bps: int = 0
    selling_price_cents: int | None = None
    codes_asociados: tuple[str, ...] = field(default_factory=tuple)
    entry_manual: bool = False

    def __post_init__(self):
        if not is_valid_category(self.category):
            raise ValidationError(f"unknown category {self.category!r}")
        if not self.base_name.strip():
            raise ValidationError("name is required")
        for key in ("purchase_cost_cents", "margin_bps"):
            if getattr(self, key) < 0:
                raise ValidationError(f"{key} cannot be negative")
        if self.selling_price_cents is not None and self.selling_price_cents < 0:
            raise ValidationError("selling_price_cents cannot be negative")

    @property
    def final_name(self) -> str:
        return compose_name(self.category, self.base_name.strip())

    @property
    def effective_selling_cents(self) -> int:
        if self.selling_price_cents is not None:
            return self.selling_price_cents
        return suggest_selling_price_cents(self.purchase_cost_cents, self.margin_bps)

    def master_fields(self) -> dict:
        return {
            "code": self.code,
            "codes_asociados": list(self.codes_asociados),
            "name": self.final_name,
            "default_purchase_cents": self.purchase_cost_cents,
            "margin_bps": self.margin_bps,
            "default_selling_cents": self.effective_selling_cents,
            "entry_manual": self.entry_manual,
        }
