# Overview: Flask API routes for the activity log and the loss report.

from flask import Blueprint, current_app, request

from ..services.activity_service import activity_to_dict, list_activities, loss_report
from ..services.data_access import DataAccessError
from ..services.reasons import LOSS_REASONS
from ..validation import ValidationError, parse_reason
from almacen.time_utils import parse_date_bound

activities_bp = Blueprint("activities", __name__, url_prefix="/api/activities")


@activities_bp.get("")
def list_activities_route():
    """
    Query params:
    - business_id: int (optional)
    - limit: int (optional, default 50, clamped to 1..500)
    """
    business_id = request.args.get("business_id", type=int)
    limit = max(1, min(request.args.get("limit", default=50, type=int), 500))
    try:
        records = list_activities(business_id=business_id, limit=limit)
    except DataAccessError:
        current_app.logger.exception("Failed to list activities")
        return {"error": "Could not load activities, try again"}, 500
    items = [activity_to_dict(r) for r in records]
    return {"items": items, "count": len(items)}


@activities_bp.get("/losses")
def loss_report_route():
    """
    Shrinkage report for one business.

    Query params:
    - business_id: int (required)
    - from / to: ISO date or datetime (inclusive; a bare "to" date covers the whole day)
    - reason: LOSS and/or EXPIRY, repeatable (default both)
    - q: free-text search
    """
    business_id = request.args.get("business_id", type=int)
    if business_id is None:
        return {"error": "business_id is required"}, 400

    try:
        date_from = parse_date_bound(request.args.get("from"))
        date_to = parse_date_bound(request.args.get("to"), end_of_day=True)
        reasons = {parse_reason(r) for r in request.args.getlist("reason")}
        if not reasons <= LOSS_REASONS:
            raise ValidationError("reason must be LOSS or EXPIRY")
    except (ValidationError, ValueError) as e:
        return {"error": str(e)}, 400

    try:
        report = loss_report(
            business_id=business_id,
            date_from=date_from,
            date_to=date_to,
            reasons=reasons or None,
            search=request.args.get("q"),
        )
    except DataAccessError:
        current_app.logger.exception("Failed to build loss report")
        return {"error": "Could not load losses, try again"}, 500
    return report
