# Overview: Service-layer operations for the activity (audit) log.

# backend/almacen/services/activity_service.py
"""
Activity Log Invariants (authoritative)

- Append-only: entries are inserted, never updated or deleted.
- One entry per product creation / edit, and one per APPLIED stock change.
  A stock write that lost its optimistic-concurrency guard logs nothing.
- Entries are written through the caller's TableClient, inside the same
  transaction as the change they describe; this module never commits.
- lost_cash_cents is set only for LOSS / EXPIRY decrements.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from almacen.time_utils import to_utc_z, utcnow
from .data_access import TableClient
from .reasons import LOSS_REASONS, REASON_CREATION, REASON_CORRECTION
from .records import ActivityRecord

ACTIVITIES_TABLE = "activities"


def format_stock_details(
    actor: str | None,
    product_name: str,
    location_name: str,
    old: int,
    new: int,
) -> str:
    if actor:
        return f"{actor} changed stock of {product_name} at {location_name}: {old} → {new}"
    return f"Stock change of {product_name} at {location_name}: {old} → {new}"


def format_master_details(actor: str | None, product_name: str, *, created: bool) -> str:
    verb = "created" if created else "edited"
    who = actor or "Someone"
    return f"{who} {verb} product {product_name}"


def log_activity(
    client: TableClient,
    *,
    reason: str,
    details: str,
    business_id: int | None = None,
    product_id: int | None = None,
    lost_cash_cents: int | None = None,
) -> ActivityRecord:
    row = client.insert(ACTIVITIES_TABLE, {
        "business_id": business_id,
        "product_id": product_id,
        "details": details,
        "reason": reason,
        "lost_cash_cents": lost_cash_cents if reason in LOSS_REASONS else None,
        "created_at": utcnow(),
    })
    return ActivityRecord.from_row(row)


def log_master_change(client: TableClient, *, product_id: int, product_name: str, actor: str | None, created: bool) -> ActivityRecord:
    return log_activity(
        client,
        reason=REASON_CREATION if created else REASON_CORRECTION,
        details=format_master_details(actor, product_name, created=created),
        product_id=product_id,
    )


def log_stock_change(
    client: TableClient,
    *,
    product_id: int,
    product_name: str,
    business_id: int,
    location_name: str,
    old: int,
    new: int,
    reason: str,
    actor: str | None,
    lost_cash_cents: int | None = None,
) -> ActivityRecord:
    return log_activity(
        client,
        reason=reason,
        details=format_stock_details(actor, product_name, location_name, old, new),
        business_id=business_id,
        product_id=product_id,
        lost_cash_cents=lost_cash_cents,
    )


def list_activities(*, business_id: int | None = None, limit: int = 50, client: TableClient | None = None) -> list[ActivityRecord]:
    """Most recent entries first."""
    client = client or TableClient()
    filters = {"business_id": business_id} if business_id is not None else None
    records = [ActivityRecord.from_row(r) for r in client.read_all(ACTIVITIES_TABLE, filters=filters)]
    records.sort(key=lambda a: (a.created_at, a.id), reverse=True)
    return records[:limit]


def activity_to_dict(record: ActivityRecord) -> dict:
    return {
        "id": record.id,
        "business_id": record.business_id,
        "product_id": record.product_id,
        "details": record.details,
        "reason": record.reason,
        "lost_cash_cents": record.lost_cash_cents,
        "created_at": to_utc_z(record.created_at),
    }


def loss_report(
    *,
    business_id: int,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    reasons: set[str] | None = None,
    search: str | None = None,
    client: TableClient | None = None,
) -> dict:
    """
    Shrinkage report for one business.

    - reasons defaults to every loss-type reason (LOSS and EXPIRY)
    - date bounds are inclusive
    - search matches product name, details, product id or reason (case-insensitive)

    Returns rows newest first plus totals overall, per month (YYYY-MM) and
    per product name.
    """
    client = client or TableClient()
    wanted = set(reasons) if reasons else set(LOSS_REASONS)

    rows: list[ActivityRecord] = []
    for reason in sorted(wanted):
        rows.extend(
            ActivityRecord.from_row(r)
            for r in client.read_all(ACTIVITIES_TABLE, filters={"business_id": business_id, "reason": reason})
        )
    if date_from is not None:
        rows = [r for r in rows if r.created_at >= date_from]
    if date_to is not None:
        rows = [r for r in rows if r.created_at <= date_to]

    product_ids = {r.product_id for r in rows if r.product_id is not None}
    names = _product_names(client, product_ids)

    q = (search or "").strip().lower()
    if q:
        rows = [
            r for r in rows
            if q in names.get(r.product_id, "").lower()
            or q in r.details.lower()
            or q in str(r.product_id or "")
            or q in r.reason.lower()
        ]

    rows.sort(key=lambda r: (r.created_at, r.id), reverse=True)

    by_month: dict[str, int] = defaultdict(int)
    by_product: dict[str, int] = defaultdict(int)
    for r in rows:
        lost = r.lost_cash_cents or 0
        by_month[r.created_at.strftime("%Y-%m")] += lost
        by_product[names.get(r.product_id, "Unknown product")] += lost

    return {
        "items": [dict(activity_to_dict(r), product_name=names.get(r.product_id)) for r in rows],
        "count": len(rows),
        "total_lost_cents": sum(r.lost_cash_cents or 0 for r in rows),
        "by_month": dict(sorted(by_month.items())),
        "by_product": dict(sorted(by_product.items(), key=lambda kv: kv[1], reverse=True)),
    }


def _product_names(client: TableClient, product_ids: set[int]) -> dict[int, str]:
    names = {}
    for product_id in product_ids:
        row = client.read_one("products_master", {"id": product_id})
        if row is not None:
            names[product_id] = row["name"]
    return names
