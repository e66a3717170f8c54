# backend/almacen/routes/inventory.py
"""
Branch inventory routes.

Stock is only ever written through the reconciliation engine:
- POST /products              full editor save (master fields + stock per business)
- POST /products/<id>/adjust  quick +/- on one business

Conflicts (someone else changed the stock first) are NOT errors: the
response is 200 with the conflicted businesses and a "warning" message.
Storage failures return 500 with a generic message; the cause is logged.
"""
from flask import Blueprint, current_app, request

from ..services.business_service import BusinessNotFoundError
from ..services.catalog_service import (
    ProductNotFoundError,
    delete_product,
    list_branch_inventory,
    stock_snapshot,
)
from ..services.data_access import DataAccessError
from ..services.reconcile_service import ReconcileError, quick_adjust, reconcile
from ..validation import (
    ValidationError,
    parse_adjustment,
    parse_loss_reasons,
    parse_product_draft,
    parse_stock_map,
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

SAVE_FAILED = "Could not save, try again"


@inventory_bp.get("")
def list_inventory():
    """
    Query params:
    - business_id: int (required)
    - q: search over name / code / secondary codes
    - category: category filter
    - sort: "asc" | "desc" by selling price (default: branch stock, highest first)
    - page: int (1-indexed)
    """
    business_id = request.args.get("business_id", type=int)
    if business_id is None:
        return {"error": "business_id is required"}, 400

    try:
        return list_branch_inventory(
            business_id,
            search=request.args.get("q"),
            category=request.args.get("category"),
            sort=request.args.get("sort"),
            page=request.args.get("page", default=1, type=int),
        )
    except DataAccessError:
        current_app.logger.exception("Failed to list inventory for business %s", business_id)
        return {"error": "Could not load inventory, try again"}, 500


@inventory_bp.get("/products/<int:product_id>/snapshot")
def product_snapshot(product_id: int):
    try:
        stocks = stock_snapshot(product_id)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    except DataAccessError:
        current_app.logger.exception("Failed to load stock snapshot for product %s", product_id)
        return {"error": "Could not load stock, try again"}, 500
    return {"product_id": product_id, "stocks": {str(k): v for k, v in stocks.items()}}


@inventory_bp.post("/products")
def save_product():
    """
    Editor save.

    Body:
    - draft: {id?, code, category, base_name, purchase_cost_cents, margin_bps,
              selling_price_cents?, codes_asociados?, entry_manual?}
    - desired_stock: {business_id: qty}
    - prior_stock: {business_id: qty seen when the editor opened}
    - loss_reasons: {business_id: LOSS | EXPIRY} (optional)
    - actor: display name (optional)
    """
    payload = request.get_json(silent=True) or {}

    try:
        draft = parse_product_draft(payload.get("draft"))
        desired = parse_stock_map(payload.get("desired_stock"), "desired_stock")
        prior = parse_stock_map(payload.get("prior_stock"), "prior_stock")
        loss_reasons = parse_loss_reasons(payload.get("loss_reasons"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        result = reconcile(
            draft,
            desired,
            prior,
            payload.get("actor") or None,
            loss_reasons=loss_reasons,
        )
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    except BusinessNotFoundError as e:
        return {"error": str(e)}, 404
    except ReconcileError as e:
        current_app.logger.exception(
            "Failed to save product (operation=%s product_id=%s business_id=%s)",
            e.operation, e.product_id, e.business_id,
        )
        body = {"error": SAVE_FAILED}
        if e.result is not None:
            body["partial"] = e.result.to_dict()
        return body, 500

    return result.to_dict(), 201 if result.created else 200


@inventory_bp.post("/products/<int:product_id>/adjust")
def adjust_product_stock(product_id: int):
    """
    Quick stock action on one business.

    Body: business_id, delta (+/-), reason (CORRECTION | LOSS | EXPIRY),
    actor (optional), expected (optional: stock the caller was looking at).
    """
    payload = request.get_json(silent=True) or {}

    try:
        adj = parse_adjustment(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        result = quick_adjust(
            product_id,
            adj["business_id"],
            adj["delta"],
            adj["reason"],
            adj["actor"],
            expected=adj["expected"],
        )
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    except BusinessNotFoundError as e:
        return {"error": str(e)}, 404
    except ReconcileError as e:
        current_app.logger.exception(
            "Failed to adjust stock (operation=%s product_id=%s business_id=%s)",
            e.operation, e.product_id, e.business_id,
        )
        return {"error": SAVE_FAILED}, 500

    return result.to_dict(), 200


@inventory_bp.delete("/products/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        removed = delete_product(product_id)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    except DataAccessError:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return {"error": "Could not delete, try again"}, 500
    return {"ok": True, "ledger_rows_removed": removed}, 200
