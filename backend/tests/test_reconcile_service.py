import pytest

from almacen.extensions import db
from almacen.models import Activity, BusinessInventory, ProductMaster
from almacen.services.business_service import BusinessNotFoundError
from almacen.services.catalog_service import ProductNotFoundError
from almacen.services.data_access import DataAccessError, TableClient
from almacen.services.reasons import REASON_CORRECTION, REASON_CREATION, REASON_EXPIRY, REASON_LOSS
from almacen.services.reconcile_service import ReconcileError, changed_businesses, reconcile
from almacen.services.records import ProductDraft
from almacen.validation import ValidationError
from tests.conftest import stock_activities, stock_of


def coca_draft(product_id, **overrides):
    fields = dict(
        id=product_id,
        code="7790895000997",
        category="BEBIDA",
        base_name="Coca Cola 500ml",
        purchase_cost_cents=1000,
        margin_bps=5000,
        selling_price_cents=1500,
    )
    fields.update(overrides)
    return ProductDraft(**fields)


class RacingClient(TableClient):
    """Never sees ledger rows on read, as if they appeared right after the read."""

    def read_one(self, table, filters):
        if table == "business_inventory":
            return None
        return super().read_one(table, filters)


class FailingClient(TableClient):
    """Storage outage on writes to one table (optionally one business)."""

    def __init__(self, table, business_id=None):
        super().__init__()
        self.fail_table = table
        self.fail_business = business_id

    def _should_fail(self, table, row_or_filters):
        if table != self.fail_table:
            return False
        return self.fail_business is None or row_or_filters.get("business_id") == self.fail_business

    def insert(self, table, row):
        if self._should_fail(table, row):
            self.session.rollback()
            raise DataAccessError("simulated outage")
        return super().insert(table, row)

    def conditional_update(self, table, values, filters):
        if self._should_fail(table, filters):
            self.session.rollback()
            raise DataAccessError("simulated outage")
        return super().conditional_update(table, values, filters)


def test_changed_businesses_treats_missing_snapshot_as_zero():
    assert changed_businesses({1: 5, 2: 0, 3: 4}, {1: 5, 3: 2}) == [3]


def test_only_changed_business_is_written(coca, store_a, store_b):
    result = reconcile(
        coca_draft(coca.id),
        {store_a.id: 15, store_b.id: 3},
        {store_a.id: 10, store_b.id: 3},
        "Ana",
    )

    assert [c.business_id for c in result.applied] == [store_a.id]
    assert result.conflicted == []
    assert stock_of(coca.id, store_a.id) == 15
    assert stock_of(coca.id, store_b.id) == 3

    entries = stock_activities(coca.id)
    assert len(entries) == 1
    assert entries[0].business_id == store_a.id
    assert entries[0].reason == REASON_CORRECTION
    assert entries[0].lost_cash_cents is None
    assert entries[0].details == "Ana changed stock of BEBIDA Coca Cola 500ml at Store A: 10 → 15"


def test_concurrent_change_is_reported_and_not_overwritten(coca, store_a, store_b, db_session):
    # Another session moves Store A from 10 to 12 after our snapshot
    row = db_session.query(BusinessInventory).filter_by(product_id=coca.id, business_id=store_a.id).one()
    row.stock = 12
    db_session.commit()

    result = reconcile(
        coca_draft(coca.id),
        {store_a.id: 15, store_b.id: 3},
        {store_a.id: 10, store_b.id: 3},
        "Ana",
    )

    assert result.applied == []
    assert [c.business_id for c in result.conflicted] == [store_a.id]
    assert "Store A" in result.warning
    assert stock_of(coca.id, store_a.id) == 12
    assert stock_activities(coca.id) == []


def test_conflict_on_one_business_does_not_block_others(coca, store_a, store_b, db_session):
    row = db_session.query(BusinessInventory).filter_by(product_id=coca.id, business_id=store_b.id).one()
    row.stock = 7
    db_session.commit()

    result = reconcile(
        coca_draft(coca.id),
        {store_a.id: 8, store_b.id: 1},
        {store_a.id: 10, store_b.id: 3},
    )

    assert [c.business_id for c in result.applied] == [store_a.id]
    assert [c.business_id for c in result.conflicted] == [store_b.id]
    assert stock_of(coca.id, store_a.id) == 8
    assert stock_of(coca.id, store_b.id) == 7
    assert [e.business_id for e in stock_activities(coca.id)] == [store_a.id]


def test_no_stock_change_still_updates_master(coca, store_a, store_b):
    result = reconcile(
        coca_draft(coca.id, base_name="Coca Cola Zero 500ml", selling_price_cents=1700),
        {store_a.id: 10, store_b.id: 3},
        {store_a.id: 10, store_b.id: 3},
        "Ana",
    )

    assert result.applied == [] and result.conflicted == []
    assert result.warning is None
    db.session.expire_all()
    product = db.session.get(ProductMaster, coca.id)
    assert product.name == "BEBIDA Coca Cola Zero 500ml"
    assert product.default_selling_cents == 1700
    assert stock_activities(coca.id) == []

    edits = db.session.query(Activity).filter_by(product_id=coca.id, business_id=None).all()
    assert len(edits) == 1
    assert edits[0].reason == REASON_CORRECTION


def test_businesses_left_out_are_untouched(coca, store_a, store_b):
    result = reconcile(coca_draft(coca.id), {store_a.id: 11}, {store_a.id: 10, store_b.id: 3})

    assert [c.business_id for c in result.applied] == [store_a.id]
    assert stock_of(coca.id, store_b.id) == 3


def test_new_product_is_created_with_stock(store_a, store_b):
    draft = ProductDraft(
        category="GOLOSINAS",
        base_name="Alfajor Jorgito",
        code="779123",
        purchase_cost_cents=400,
        margin_bps=5000,
    )
    result = reconcile(draft, {store_a.id: 24, store_b.id: 0}, {}, "Luis")

    assert result.created
    assert result.product_name == "GOLOSINAS Alfajor Jorgito"
    assert [c.business_id for c in result.applied] == [store_a.id]
    assert stock_of(result.product_id, store_a.id) == 24
    assert stock_of(result.product_id, store_b.id) is None

    product = db.session.get(ProductMaster, result.product_id)
    assert product.default_selling_cents == 600

    creation = db.session.query(Activity).filter_by(product_id=result.product_id, business_id=None).one()
    assert creation.reason == REASON_CREATION
    assert "Luis created product GOLOSINAS Alfajor Jorgito" == creation.details


def test_negative_target_is_clamped_to_zero(coca, store_a, store_b):
    result = reconcile(coca_draft(coca.id), {store_a.id: -4}, {store_a.id: 10, store_b.id: 3})

    assert result.applied[0].new == 0
    assert stock_of(coca.id, store_a.id) == 0


def test_loss_tagged_decrement_records_lost_cash(coca, store_a, store_b):
    result = reconcile(
        coca_draft(coca.id),
        {store_a.id: 6, store_b.id: 1},
        {store_a.id: 10, store_b.id: 3},
        "Ana",
        loss_reasons={store_a.id: REASON_LOSS, store_b.id: REASON_EXPIRY},
    )

    by_business = {e.business_id: e for e in stock_activities(coca.id)}
    assert by_business[store_a.id].reason == REASON_LOSS
    assert by_business[store_a.id].lost_cash_cents == 4 * 1500
    assert by_business[store_b.id].reason == REASON_EXPIRY
    assert by_business[store_b.id].lost_cash_cents == 2 * 1500
    assert {c.lost_cash_cents for c in result.applied} == {6000, 3000}


def test_loss_is_valued_at_the_saved_selling_price(coca, store_a, store_b):
    reconcile(
        coca_draft(coca.id, selling_price_cents=2000),
        {store_a.id: 9},
        {store_a.id: 10, store_b.id: 3},
        loss_reasons={store_a.id: REASON_LOSS},
    )

    assert stock_activities(coca.id)[0].lost_cash_cents == 2000


def test_loss_tag_on_increment_is_a_correction(coca, store_a, store_b):
    reconcile(
        coca_draft(coca.id),
        {store_a.id: 12},
        {store_a.id: 10, store_b.id: 3},
        loss_reasons={store_a.id: REASON_LOSS},
    )

    entry = stock_activities(coca.id)[0]
    assert entry.reason == REASON_CORRECTION
    assert entry.lost_cash_cents is None


def test_untagged_decrement_is_a_correction_without_lost_cash(coca, store_a, store_b):
    reconcile(coca_draft(coca.id), {store_a.id: 2}, {store_a.id: 10, store_b.id: 3}, None)

    entry = stock_activities(coca.id)[0]
    assert entry.reason == REASON_CORRECTION
    assert entry.lost_cash_cents is None
    assert entry.details == "Stock change of BEBIDA Coca Cola 500ml at Store A: 10 → 2"


def test_insert_race_falls_back_to_guarded_update(coca, store_a, store_b):
    # The row exists with the snapshot value, so the retried update applies
    result = reconcile(
        coca_draft(coca.id),
        {store_a.id: 14},
        {store_a.id: 10, store_b.id: 3},
        client=RacingClient(),
    )

    assert [c.business_id for c in result.applied] == [store_a.id]
    assert stock_of(coca.id, store_a.id) == 14
    assert len(stock_activities(coca.id)) == 1


def test_insert_race_against_a_different_value_is_a_conflict(store_a, db_session):
    product = ProductMaster(code="1", name="HUEVOS Maple x30", default_selling_cents=5000)
    db_session.add(product)
    db_session.commit()
    # Snapshot said "no row", but another session created one with 5 units
    db_session.add(BusinessInventory(product_id=product.id, business_id=store_a.id, stock=5))
    db_session.commit()

    result = reconcile(
        ProductDraft(id=product.id, category="HUEVOS", base_name="Maple x30", selling_price_cents=5000),
        {store_a.id: 12},
        {},
        client=RacingClient(),
    )

    assert result.applied == []
    assert [c.business_id for c in result.conflicted] == [store_a.id]
    assert stock_of(product.id, store_a.id) == 5


def test_master_write_failure_aborts_before_stock(coca, store_a, store_b):
    with pytest.raises(ReconcileError) as exc:
        reconcile(
            coca_draft(coca.id),
            {store_a.id: 20},
            {store_a.id: 10, store_b.id: 3},
            client=FailingClient("products_master"),
        )

    assert exc.value.operation == "save_master"
    assert exc.value.result is None
    assert stock_of(coca.id, store_a.id) == 10
    assert db.session.query(Activity).count() == 0


def test_hard_failure_keeps_earlier_businesses_applied(coca, store_a, store_b):
    with pytest.raises(ReconcileError) as exc:
        reconcile(
            coca_draft(coca.id),
            {store_a.id: 20, store_b.id: 9},
            {store_a.id: 10, store_b.id: 3},
            client=FailingClient("business_inventory", business_id=store_b.id),
        )

    err = exc.value
    assert err.operation == "write_stock"
    assert err.business_id == store_b.id
    assert [c.business_id for c in err.result.applied] == [store_a.id]
    # Store A stays applied, Store B untouched
    assert stock_of(coca.id, store_a.id) == 20
    assert stock_of(coca.id, store_b.id) == 3
    assert [e.business_id for e in stock_activities(coca.id)] == [store_a.id]


def test_updating_missing_product_raises_not_found(store_a):
    with pytest.raises(ProductNotFoundError):
        reconcile(ProductDraft(id=999, base_name="Ghost"), {store_a.id: 1}, {})
    assert stock_of(999, store_a.id) is None


def test_soft_deleted_product_cannot_be_reconciled(coca, store_a, store_b, db_session):
    coca.deleted_at = coca.created_at
    db_session.commit()

    with pytest.raises(ProductNotFoundError):
        reconcile(coca_draft(coca.id), {store_a.id: 1}, {store_a.id: 10})


def test_unknown_category_is_rejected():
    with pytest.raises(ValidationError):
        ProductDraft(category="LACTEOS", base_name="Leche")


def test_negative_price_is_rejected():
    with pytest.raises(ValidationError):
        ProductDraft(base_name="Leche", purchase_cost_cents=-1)


def test_unknown_business_is_rejected_before_any_write(coca, store_a, store_b):
    with pytest.raises(BusinessNotFoundError) as exc:
        reconcile(
            coca_draft(coca.id, selling_price_cents=1900),
            {store_a.id: 12, 999: 7},
            {store_a.id: 10, store_b.id: 3},
        )

    assert exc.value.business_ids == [999]
    assert stock_of(coca.id, 999) is None
    assert stock_of(coca.id, store_a.id) == 10
    assert db.session.query(Activity).count() == 0
    db.session.expire_all()
    assert db.session.get(ProductMaster, coca.id).default_selling_cents == 1500


def test_missing_row_against_non_zero_snapshot_is_a_conflict(coca, store_a, store_b, db_session):
    # Another session removed Store A's row after the snapshot saw 10
    db_session.query(BusinessInventory).filter_by(product_id=coca.id, business_id=store_a.id).delete()
    db_session.commit()

    result = reconcile(
        coca_draft(coca.id),
        {store_a.id: 4},
        {store_a.id: 10, store_b.id: 3},
        loss_reasons={store_a.id: REASON_LOSS},
    )

    assert result.applied == []
    assert [c.business_id for c in result.conflicted] == [store_a.id]
    assert stock_of(coca.id, store_a.id) is None
    assert stock_activities(coca.id) == []
