# Overview: Service-layer operations for the product catalog and branch stock views.

# backend/almacen/services/catalog_service.py
"""
Catalog reads and deletes.

Bulk reads always walk products_master and business_inventory in pages of
INVENTORY_PAGE_SIZE (see TableClient.read_all) and are merged in memory into
CatalogItem views carrying {business_id: stock}.

Soft-deleted products (deleted_at set) are invisible to every read here.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from almacen.time_utils import utcnow
from .categories import split_name
from .data_access import TableClient
from .records import ProductRecord, StockRow

PRODUCTS_TABLE = "products_master"
INVENTORY_TABLE = "business_inventory"

SORT_PRICE_ASC = "asc"
SORT_PRICE_DESC = "desc"


class ProductNotFoundError(LookupError):
    """Raised when a product id does not resolve to a live product."""
    pass


@dataclass
class CatalogItem:
    product: ProductRecord
    stocks: dict[int, int] = field(default_factory=dict)

    @property
    def category(self) -> str:
        return split_name(self.product.name)[0]

    def stock_at(self, business_id: int) -> int:
        return self.stocks.get(business_id, 0)

    def matches(self, query: str) -> bool:
        q = query.lower()
        return (
            q in self.product.name.lower()
            or q in self.product.code.lower()
            or any(q in code.lower() for code in self.product.codes_asociados)
        )

    def to_dict(self) -> dict:
        category, base = split_name(self.product.name)
        p = self.product
        return {
            "id": p.id,
            "code": p.code,
            "codes_asociados": list(p.codes_asociados),
            "name": p.name,
            "category": category,
            "base_name": base,
            "default_purchase_cents": p.default_purchase_cents,
            "margin_bps": p.margin_bps,
            "default_selling_cents": p.default_selling_cents,
            "entry_manual": p.entry_manual,
            "stocks": {str(k): v for k, v in self.stocks.items()},
        }


def get_product(product_id: int, client: TableClient | None = None) -> ProductRecord:
    client = client or TableClient()
    row = client.read_one(PRODUCTS_TABLE, {"id": product_id, "deleted_at": None})
    if row is None:
        raise ProductNotFoundError(f"product {product_id} not found")
    return ProductRecord.from_row(row)


def fetch_all_masters(client: TableClient | None = None) -> list[ProductRecord]:
    client = client or TableClient()
    rows = client.read_all(PRODUCTS_TABLE, filters={"deleted_at": None})
    return [ProductRecord.from_row(r) for r in rows]


def fetch_inventory_for_business(business_id: int, client: TableClient | None = None) -> list[StockRow]:
    client = client or TableClient()
    rows = client.read_all(INVENTORY_TABLE, filters={"business_id": business_id})
    return [StockRow.from_row(r) for r in rows]


def fetch_all_inventory(client: TableClient | None = None) -> list[StockRow]:
    client = client or TableClient()
    return [StockRow.from_row(r) for r in client.read_all(INVENTORY_TABLE)]


def load_catalog(business_id: int | None = None, client: TableClient | None = None) -> list[CatalogItem]:
    """
    Merge masters with ledger rows.

    With business_id only that branch's stock is loaded; otherwise every branch.
    Ledger rows of soft-deleted products are dropped.
    """
    client = client or TableClient()
    masters = fetch_all_masters(client)
    if business_id is None:
        ledger = fetch_all_inventory(client)
    else:
        ledger = fetch_inventory_for_business(business_id, client)

    stocks: dict[int, dict[int, int]] = {}
    for row in ledger:
        stocks.setdefault(row.product_id, {})[row.business_id] = row.stock

    return [CatalogItem(product=m, stocks=stocks.get(m.id, {})) for m in masters]


def stock_level(quantity: int) -> str:
    if quantity <= 0:
        return "out"
    if quantity < current_app.config.get("LOW_STOCK_THRESHOLD", 6):
        return "low"
    return "ok"


def list_branch_inventory(
    business_id: int,
    *,
    search: str | None = None,
    category: str | None = None,
    sort: str | None = None,
    page: int = 1,
    per_page: int | None = None,
    client: TableClient | None = None,
) -> dict:
    """
    Branch inventory listing.

    - Without a search term only products in stock at the branch are listed.
    - With one, every product matching name / code / secondary code is listed,
      out-of-stock ones included.
    - sort "asc"/"desc" orders by selling price; otherwise by branch stock,
      highest first.
    """
    items = load_catalog(business_id, client)

    q = (search or "").strip()
    if q:
        items = [it for it in items if it.matches(q)]
    else:
        items = [it for it in items if it.stock_at(business_id) > 0]

    if category:
        wanted = category.strip().upper()
        items = [it for it in items if it.category == wanted]

    if sort == SORT_PRICE_ASC:
        items.sort(key=lambda it: (it.product.default_selling_cents, it.product.id))
    elif sort == SORT_PRICE_DESC:
        items.sort(key=lambda it: (-it.product.default_selling_cents, it.product.id))
    else:
        items.sort(key=lambda it: (-it.stock_at(business_id), it.product.id))

    per_page = per_page or current_app.config.get("CATALOG_PAGE_SIZE", 10)
    total = len(items)
    total_pages = max(1, (total + per_page - 1) // per_page)
    page = min(max(page, 1), total_pages)
    window = items[(page - 1) * per_page: page * per_page]

    out = []
    for it in window:
        qty = it.stock_at(business_id)
        out.append(dict(it.to_dict(), branch_stock=qty, stock_level=stock_level(qty)))

    return {
        "items": out,
        "count": len(out),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def stock_snapshot(product_id: int, client: TableClient | None = None) -> dict[int, int]:
    """{business_id: stock} for every ledger row of a product."""
    client = client or TableClient()
    get_product(product_id, client)
    rows = client.read_all(INVENTORY_TABLE, filters={"product_id": product_id})
    return {r.business_id: r.stock for r in (StockRow.from_row(row) for row in rows)}


def delete_product(product_id: int, client: TableClient | None = None) -> int:
    """
    Soft-delete a product and drop its ledger rows.

    Returns the number of ledger rows removed.
    """
    client = client or TableClient()
    with client.unit_of_work():
        updated = client.conditional_update(
            PRODUCTS_TABLE,
            {"deleted_at": utcnow()},
            {"id": product_id, "deleted_at": None},
        )
        if not updated:
            raise ProductNotFoundError(f"product {product_id} not found")
        removed = client.delete(INVENTORY_TABLE, {"product_id": product_id})
    current_app.logger.info("Deleted product %s (%d ledger rows)", product_id, removed)
    return removed
