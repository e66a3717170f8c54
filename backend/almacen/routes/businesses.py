# Overview: Flask API routes for businesses (selling locations).

from flask import Blueprint, current_app, request

from ..services.business_service import create_business, list_businesses
from ..services.data_access import DataAccessError
from ..validation import ConflictError, ValidationError

businesses_bp = Blueprint("businesses", __name__, url_prefix="/api/businesses")


@businesses_bp.get("")
def list_businesses_route():
    try:
        businesses = list_businesses()
    except DataAccessError:
        current_app.logger.exception("Failed to list businesses")
        return {"error": "Could not load businesses, try again"}, 500
    items = [{"id": b.id, "name": b.name} for b in businesses]
    return {"items": items, "count": len(items)}


@businesses_bp.post("")
def create_business_route():
    payload = request.get_json(silent=True) or {}
    try:
        business = create_business(payload.get("name"), payload.get("address"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except DataAccessError:
        current_app.logger.exception("Failed to create business")
        return {"error": "Could not save, try again"}, 500
    return {"id": business.id, "name": business.name}, 201
