# Overview: Service-layer operations for businesses (selling locations).

from __future__ import annotations

from ..validation import ValidationError, ConflictError
from .data_access import DuplicateRowError, TableClient
from .records import BusinessRecord

BUSINESSES_TABLE = "businesses"


class BusinessNotFoundError(LookupError):
    """Raised when one or more business ids do not resolve to a business."""

    def __init__(self, business_ids):
        self.business_ids = sorted(business_ids)
        super().__init__("business not found: " + ", ".join(str(b) for b in self.business_ids))


def list_businesses(client: TableClient | None = None) -> list[BusinessRecord]:
    client = client or TableClient()
    records = [BusinessRecord.from_row(r) for r in client.read_all(BUSINESSES_TABLE)]
    return sorted(records, key=lambda b: b.name.lower())


def create_business(name: str, address: str | None = None, client: TableClient | None = None) -> BusinessRecord:
    client = client or TableClient()
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    try:
        with client.unit_of_work():
            row = client.insert(BUSINESSES_TABLE, {"name": name, "address": address})
    except DuplicateRowError:
        raise ConflictError(f"business {name!r} already exists")
    return BusinessRecord.from_row(row)


def business_names(client: TableClient, business_ids) -> dict[int, str]:
    """
    Display names for the given ids.

    Raises BusinessNotFoundError (listing every missing id) if any id has no
    businesses row, so no stock is ever written for a location that does not exist.
    """
    names = {}
    missing = []
    for business_id in business_ids:
        row = client.read_one(BUSINESSES_TABLE, {"id": business_id})
        if row is None:
            missing.append(business_id)
        else:
            names[business_id] = BusinessRecord.from_row(row).name
    if missing:
        raise BusinessNotFoundError(missing)
    return names
