import pytest

from almacen.models import Activity, BusinessInventory, ProductMaster
from almacen.services.catalog_service import (
    ProductNotFoundError,
    delete_product,
    fetch_all_masters,
    list_branch_inventory,
    load_catalog,
    stock_snapshot,
)
from almacen.services.data_access import TableClient


@pytest.fixture
def shelf(db_session, store_a, store_b, coca):
    """A few more products at Store A, with mixed stock and prices."""
    rows = [
        ("GOLOSINAS Alfajor Jorgito", "111", 600, 20, ["ALF-J"]),
        ("CIGARRILLOS Marlboro Box 20", "222", 4200, 2, []),
        ("Yerba Mate Playadito 1kg", "333", 3900, 0, []),
    ]
    products = []
    for name, code, price, stock, codes in rows:
        p = ProductMaster(code=code, name=name, default_selling_cents=price, codes_asociados=codes)
        db_session.add(p)
        db_session.flush()
        if stock:
            db_session.add(BusinessInventory(product_id=p.id, business_id=store_a.id, stock=stock))
        products.append(p)
    db_session.commit()
    return products


def names(listing):
    return [it["name"] for it in listing["items"]]


def test_load_catalog_merges_every_business(coca, store_a, store_b):
    items = load_catalog(client=TableClient(page_size=1))
    assert len(items) == 1
    assert items[0].stocks == {store_a.id: 10, store_b.id: 3}
    assert items[0].category == "BEBIDA"


def test_load_catalog_for_one_business(coca, store_a, store_b):
    items = load_catalog(store_b.id)
    assert items[0].stocks == {store_b.id: 3}


def test_listing_without_search_hides_out_of_stock(shelf, store_a):
    listing = list_branch_inventory(store_a.id)
    assert "Yerba Mate Playadito 1kg" not in names(listing)
    # Highest branch stock first
    assert names(listing) == [
        "GOLOSINAS Alfajor Jorgito",
        "BEBIDA Coca Cola 500ml",
        "CIGARRILLOS Marlboro Box 20",
    ]


def test_search_includes_out_of_stock_and_secondary_codes(shelf, store_a):
    assert names(list_branch_inventory(store_a.id, search="yerba")) == ["Yerba Mate Playadito 1kg"]
    assert names(list_branch_inventory(store_a.id, search="alf-j")) == ["GOLOSINAS Alfajor Jorgito"]
    assert names(list_branch_inventory(store_a.id, search="333")) == ["Yerba Mate Playadito 1kg"]

    item = list_branch_inventory(store_a.id, search="yerba")["items"][0]
    assert item["branch_stock"] == 0
    assert item["stock_level"] == "out"
    assert item["category"] == "SIN CATEGORIA"


def test_category_filter(shelf, store_a):
    assert names(list_branch_inventory(store_a.id, category="cigarrillos")) == ["CIGARRILLOS Marlboro Box 20"]


def test_sort_by_price(shelf, store_a):
    asc = names(list_branch_inventory(store_a.id, sort="asc"))
    desc = names(list_branch_inventory(store_a.id, sort="desc"))
    assert asc == ["GOLOSINAS Alfajor Jorgito", "BEBIDA Coca Cola 500ml", "CIGARRILLOS Marlboro Box 20"]
    assert desc == list(reversed(asc))


def test_stock_levels(shelf, store_a):
    levels = {it["name"]: it["stock_level"] for it in list_branch_inventory(store_a.id)["items"]}
    assert levels["CIGARRILLOS Marlboro Box 20"] == "low"
    assert levels["GOLOSINAS Alfajor Jorgito"] == "ok"


def test_pagination_is_clamped(shelf, store_a):
    first = list_branch_inventory(store_a.id, per_page=2)
    assert first["count"] == 2
    assert first["pagination"]["total_pages"] == 2
    assert first["pagination"]["has_next"]

    past_end = list_branch_inventory(store_a.id, per_page=2, page=9)
    assert past_end["pagination"]["page"] == 2
    assert past_end["count"] == 1


def test_stock_snapshot(coca, store_a, store_b):
    assert stock_snapshot(coca.id) == {store_a.id: 10, store_b.id: 3}


def test_delete_soft_deletes_and_drops_ledger(coca, store_a, db_session):
    assert delete_product(coca.id) == 2

    db_session.expire_all()
    product = db_session.get(ProductMaster, coca.id)
    assert product.deleted_at is not None
    assert db_session.query(BusinessInventory).filter_by(product_id=coca.id).count() == 0
    assert fetch_all_masters() == []
    assert list_branch_inventory(store_a.id, search="coca")["items"] == []

    with pytest.raises(ProductNotFoundError):
        stock_snapshot(coca.id)


def test_delete_twice_is_not_found(coca):
    delete_product(coca.id)
    with pytest.raises(ProductNotFoundError):
        delete_product(coca.id)


def test_delete_keeps_activity_history(coca, store_a, db_session):
    db_session.add(Activity(business_id=store_a.id, product_id=coca.id, details="x", reason="LOSS", lost_cash_cents=1500))
    db_session.commit()

    delete_product(coca.id)
    assert db_session.query(Activity).filter_by(product_id=coca.id).count() == 1
