# Overview: Stock reconciliation engine; persists product drafts and applies stock deltas.

# backend/almacen/services/reconcile_service.py
"""
Stock Reconciliation Invariants (authoritative)

Inputs are explicit: the caller passes the draft, the desired stock per
business and the stock it observed when the editor was opened (the
snapshot). Nothing is re-read to decide WHAT changed; storage is only read
to decide HOW to write (insert vs. conditional update).

Ordering:
- Every changed business id must exist; unknown ids raise
  BusinessNotFoundError before anything is written.
- The master row (and its CREATION / CORRECTION entry) is committed next.
  A failure there aborts before any ledger write.
- Businesses are then processed one at a time, in id order. Each business is
  its own unit: ledger write + audit entry commit together.

Optimistic concurrency:
- A ledger write is UPDATE ... SET stock = new WHERE stock = snapshot_old.
- Zero affected rows means another session changed the stock in between:
  the business is reported as conflicted, nothing is written, nothing is
  logged, and the write is NOT retried.
- A missing row counts as stock 0. It is inserted when the snapshot also says 0;
  if the insert collides with a row created concurrently, it is retried once
  as the guarded update above. A missing row against a non-zero snapshot is a
  conflict.

Partial application:
- A hard storage error on business N aborts the loop. Businesses before N
  stay applied (no rollback across businesses); ReconcileError carries them.

Stock is never negative: requested targets below zero are clamped to 0.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from .activity_service import log_master_change, log_stock_change
from .business_service import business_names
from .catalog_service import (
    INVENTORY_TABLE,
    PRODUCTS_TABLE,
    ProductNotFoundError,
    get_product,
)
from .data_access import DataAccessError, DuplicateRowError, TableClient
from .pricing import loss_value_cents
from .reasons import LOSS_REASONS, classify_stock_change
from .records import ProductDraft, ProductRecord

STATUS_APPLIED = "applied"
STATUS_CONFLICTED = "conflicted"
STATUS_UNCHANGED = "unchanged"


@dataclass
class StockChange:
    business_id: int
    business_name: str
    old: int
    new: int
    reason: str | None = None
    lost_cash_cents: int | None = None

    def to_dict(self) -> dict:
        return {
            "business_id": self.business_id,
            "business_name": self.business_name,
            "old": self.old,
            "new": self.new,
            "reason": self.reason,
            "lost_cash_cents": self.lost_cash_cents,
        }


@dataclass
class ReconcileResult:
    product_id: int
    product_name: str
    created: bool = False
    applied: list[StockChange] = field(default_factory=list)
    conflicted: list[StockChange] = field(default_factory=list)

    @property
    def warning(self) -> str | None:
        if not self.conflicted:
            return None
        names = ", ".join(c.business_name for c in self.conflicted)
        return (
            f"Stock at {names} changed while you were editing. "
            "Those locations were not saved to avoid overwriting the other change; "
            "reopen the product and try again."
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "created": self.created,
            "applied": [c.to_dict() for c in self.applied],
            "conflicted": [c.to_dict() for c in self.conflicted],
            "warning": self.warning,
        }


class ReconcileError(Exception):
    """
    Hard failure while reconciling.

    result holds whatever was applied before the failure (None if the master
    write itself failed).
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        product_id: int | None = None,
        business_id: int | None = None,
        result: ReconcileResult | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.product_id = product_id
        self.business_id = business_id
        self.result = result


def normalize_stock_map(stock: dict | None) -> dict[int, int]:
    return {int(k): max(0, int(v)) for k, v in (stock or {}).items()}


def changed_businesses(desired: dict[int, int], prior: dict[int, int]) -> list[int]:
    """Businesses whose desired stock differs from the snapshot (absent = 0)."""
    return sorted(b for b, qty in desired.items() if qty != prior.get(b, 0))


def _write_stock(client: TableClient, product_id: int, business_id: int, old: int, new: int) -> bool:
    """
    One guarded ledger write. True if applied, False on conflict.

    A missing row stands for stock 0: it is inserted only when the guard is 0.
    Any other guard goes through the conditional update, which then matches
    nothing and reports the conflict.

    DataAccessError (other than an insert race) propagates.
    """
    key = {"product_id": product_id, "business_id": business_id}
    existing = client.read_one(INVENTORY_TABLE, key)
    if existing is None and old == 0:
        try:
            client.insert(INVENTORY_TABLE, dict(key, stock=new))
            return True
        except DuplicateRowError:
            current_app.logger.info(
                "Ledger row for product %s at business %s created concurrently; retrying as guarded update",
                product_id, business_id,
            )

    rows = client.conditional_update(INVENTORY_TABLE, {"stock": new}, dict(key, stock=old))
    return bool(rows)


def _save_master(client: TableClient, draft: ProductDraft, actor: str | None) -> tuple[ProductRecord, bool]:
    fields = draft.master_fields()
    with client.unit_of_work():
        if draft.id is None:
            row = client.insert(PRODUCTS_TABLE, fields)
            created = True
        else:
            rows = client.conditional_update(PRODUCTS_TABLE, fields, {"id": draft.id, "deleted_at": None})
            if not rows:
                raise ProductNotFoundError(f"product {draft.id} not found")
            row = rows[0]
            created = False
        product = ProductRecord.from_row(row)
        log_master_change(client, product_id=product.id, product_name=product.name, actor=actor, created=created)
    return product, created


def reconcile(
    draft: ProductDraft,
    desired_stock: dict[int, int] | None,
    prior_stock: dict[int, int] | None,
    actor: str | None = None,
    *,
    loss_reasons: dict[int, str] | None = None,
    client: TableClient | None = None,
) -> ReconcileResult:
    """
    Persist the draft's master fields, then apply the stock deltas.

    Args:
        draft: master fields; draft.id None creates the product
        desired_stock: {business_id: target}; businesses left out are not touched
        prior_stock: {business_id: stock seen when the draft was opened}
        actor: display name for the audit trail
        loss_reasons: {business_id: LOSS | EXPIRY} for decrements that are shrinkage

    Returns:
        ReconcileResult with applied and conflicted businesses

    Raises:
        ProductNotFoundError: draft.id does not resolve to a live product
        BusinessNotFoundError: a changed business id has no businesses row
        ReconcileError: storage failure (see .result for partial application)
    """
    client = client or TableClient()
    loss_reasons = loss_reasons or {}

    desired = normalize_stock_map(desired_stock)
    prior = normalize_stock_map(prior_stock)
    changed = changed_businesses(desired, prior)

    # Unknown locations are rejected before anything is written
    try:
        names = business_names(client, changed)
    except DataAccessError as exc:
        current_app.logger.error("reconcile: loading business names failed for product_id=%s: %s", draft.id, exc)
        raise ReconcileError(
            "could not load businesses", operation="read_businesses", product_id=draft.id
        ) from exc

    try:
        product, created = _save_master(client, draft, actor)
    except DataAccessError as exc:
        current_app.logger.error(
            "reconcile: save_master failed for product_id=%s: %s", draft.id, exc
        )
        raise ReconcileError(
            "could not save product", operation="save_master", product_id=draft.id
        ) from exc

    result = ReconcileResult(product_id=product.id, product_name=product.name, created=created)
    if not changed:
        return result

    for business_id in changed:
        old, new = prior.get(business_id, 0), desired[business_id]
        reason = classify_stock_change(old, new, loss_reasons.get(business_id))
        lost = loss_value_cents(old - new, product.default_selling_cents) if reason in LOSS_REASONS else None
        change = StockChange(
            business_id=business_id,
            business_name=names[business_id],
            old=old,
            new=new,
            reason=reason,
            lost_cash_cents=lost,
        )

        try:
            with client.unit_of_work():
                applied = _write_stock(client, product.id, business_id, old, new)
                if applied:
                    log_stock_change(
                        client,
                        product_id=product.id,
                        product_name=product.name,
                        business_id=business_id,
                        location_name=change.business_name,
                        old=old,
                        new=new,
                        reason=reason,
                        actor=actor,
                        lost_cash_cents=lost,
                    )
        except DataAccessError as exc:
            current_app.logger.error(
                "reconcile: write_stock failed for product_id=%s business_id=%s: %s",
                product.id, business_id, exc,
            )
            raise ReconcileError(
                "could not save stock",
                operation="write_stock",
                product_id=product.id,
                business_id=business_id,
                result=result,
            ) from exc

        if applied:
            result.applied.append(change)
        else:
            current_app.logger.warning(
                "reconcile: stock conflict for product_id=%s business_id=%s (expected %s)",
                product.id, business_id, old,
            )
            change.reason = None
            change.lost_cash_cents = None
            result.conflicted.append(change)

    return result


@dataclass
class AdjustResult:
    product_id: int
    business_id: int
    business_name: str
    old: int
    new: int
    status: str
    reason: str | None = None
    lost_cash_cents: int | None = None

    @property
    def warning(self) -> str | None:
        if self.status != STATUS_CONFLICTED:
            return None
        return (
            f"Stock at {self.business_name} changed while you were editing. "
            "The adjustment was not saved; reload and try again."
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "business_id": self.business_id,
            "business_name": self.business_name,
            "old": self.old,
            "new": self.new,
            "status": self.status,
            "reason": self.reason,
            "lost_cash_cents": self.lost_cash_cents,
            "warning": self.warning,
        }


def quick_adjust(
    product_id: int,
    business_id: int,
    delta: int,
    reason: str,
    actor: str | None = None,
    *,
    expected: int | None = None,
    client: TableClient | None = None,
) -> AdjustResult:
    """
    Single-business "+stock / -stock" shortcut.

    The guard is `expected` when the caller knows the stock it was looking
    at, otherwise the stock read just before the write. Decrements clamp at 0.
    LOSS / EXPIRY decrements record lost_cash = quantity removed x selling
    price, and the entry is written in the same commit as the stock change.
    """
    client = client or TableClient()
    product = get_product(product_id, client)

    try:
        name = business_names(client, [business_id])[business_id]
        if expected is None:
            row = client.read_one(INVENTORY_TABLE, {"product_id": product_id, "business_id": business_id})
            current = row["stock"] if row else 0
        else:
            current = max(0, expected)
    except DataAccessError as exc:
        current_app.logger.error(
            "quick_adjust: read failed for product_id=%s business_id=%s: %s", product_id, business_id, exc
        )
        raise ReconcileError(
            "could not read stock", operation="read_stock", product_id=product_id, business_id=business_id
        ) from exc

    new = max(0, current + delta)
    result = AdjustResult(
        product_id=product_id,
        business_id=business_id,
        business_name=name,
        old=current,
        new=new,
        status=STATUS_UNCHANGED,
    )
    if new == current:
        return result

    final_reason = classify_stock_change(current, new, reason)
    lost = loss_value_cents(current - new, product.default_selling_cents) if final_reason in LOSS_REASONS else None

    try:
        with client.unit_of_work():
            applied = _write_stock(client, product_id, business_id, current, new)
            if applied:
                log_stock_change(
                    client,
                    product_id=product_id,
                    product_name=product.name,
                    business_id=business_id,
                    location_name=name,
                    old=current,
                    new=new,
                    reason=final_reason,
                    actor=actor,
                    lost_cash_cents=lost,
                )
    except DataAccessError as exc:
        current_app.logger.error(
            "quick_adjust: write_stock failed for product_id=%s business_id=%s: %s", product_id, business_id, exc
        )
        raise ReconcileError(
            "could not save stock", operation="write_stock", product_id=product_id, business_id=business_id
        ) from exc

    if not applied:
        current_app.logger.warning(
            "quick_adjust: stock conflict for product_id=%s business_id=%s (expected %s)",
            product_id, business_id, current,
        )
        result.status = STATUS_CONFLICTED
        return result

    result.status = STATUS_APPLIED
    result.reason = final_reason
    result.lost_cash_cents = lost
    return result
