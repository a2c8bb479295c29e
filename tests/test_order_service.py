"""Tests for order creation, payment, cancellation and read paths."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from storefront.data.models import OrderModel, ProductModel
from storefront.domain.errors import (
    AlreadyPaidError,
    InsufficientStockError,
    NoItemsError,
    NotAuthorizedError,
    OrderNotFoundError,
    OrderStateError,
    ProductNotFoundError,
    ValidationError,
)
from storefront.domain.order import Caller
from storefront.services.order_service import OrderService


def _count_orders(session_factory) -> int:
    db = session_factory()
    try:
        return db.query(OrderModel).count()
    finally:
        db.close()


# =====================================================
# create_order
# =====================================================
def test_empty_items_fail_without_storage_calls(notifier):
    db = MagicMock()
    svc = OrderService(db, notification_service=notifier)

    with pytest.raises(NoItemsError):
        svc.create_order(1, [])

    assert db.method_calls == []


def test_only_malformed_items_is_validation_error(make_service):
    svc = make_service()

    with pytest.raises(ValidationError):
        svc.create_order(1, [{"product_id": 1, "quantity": 0}, {"quantity": 2}])


def test_reject_policy_per_call(make_service):
    svc = make_service(invalid_item_policy="drop")

    with pytest.raises(ValidationError):
        svc.create_order(
            1,
            [{"product_id": 1, "quantity": 1}, {"product_id": 2, "quantity": -1}],
            invalid_item_policy="reject",
        )


@pytest.mark.parametrize("flow", ["pay_later", "reserve_at_creation"])
def test_oversized_quantity_is_validation_error(make_service, stock_of, session_factory, flow):
    svc = make_service(flow=flow)

    with pytest.raises(NoItemsError):
        svc.create_order(1, [{"productId": 1, "quantity": 2**63}])

    with pytest.raises(ValidationError):
        svc.create_order(1, [{"productId": 1, "quantity": 2**63}], invalid_item_policy="reject")

    assert _count_orders(session_factory) == 0
    assert stock_of(1) == 5


@pytest.mark.parametrize("flow", ["pay_later", "reserve_at_creation"])
def test_duplicates_summing_past_column_range_are_rejected(make_service, stock_of, session_factory, flow):
    svc = make_service(flow=flow)
    quantity = 2**31 - 1

    with pytest.raises(ValidationError):
        svc.create_order(1, [{"product_id": 1, "quantity": quantity}, {"product_id": 1, "quantity": quantity}])

    assert _count_orders(session_factory) == 0
    assert stock_of(1) == 5


def test_unknown_product_rejected_before_any_reservation(make_service, stock_of, session_factory):
    svc = make_service(flow="reserve_at_creation")

    with pytest.raises(ProductNotFoundError) as exc:
        svc.create_order(1, [{"product_id": 1, "quantity": 2}, {"product_id": 404, "quantity": 1}])

    assert exc.value.product_id == 404
    assert stock_of(1) == 5
    assert _count_orders(session_factory) == 0


def test_pay_later_creates_pending_without_touching_stock(make_service, stock_of, notifier):
    svc = make_service()

    order = svc.create_order(1, [{"product_id": 1, "quantity": 2}, {"product_id": 2, "quantity": 1}])

    assert order["status"] == "PENDING"
    assert order["user_id"] == 1
    assert [(i["product_id"], i["quantity"], i["price"]) for i in order["items"]] == [
        (1, 2, Decimal("10.00")),
        (2, 1, Decimal("20.00")),
    ]
    assert order["total"] == Decimal("40.00")
    assert stock_of(1) == 5
    assert stock_of(2) == 10
    assert notifier.sent == []


def test_pay_later_allows_order_beyond_stock_without_precheck(make_service):
    order = make_service().create_order(1, [{"product_id": 3, "quantity": 1}])

    assert order["status"] == "PENDING"


def test_advisory_precheck_rejects_early(make_service, session_factory):
    svc = make_service(advisory_stock_check=True)

    with pytest.raises(InsufficientStockError) as exc:
        svc.create_order(1, [{"product_id": 3, "quantity": 1}])

    assert exc.value.product_name == "Monitor"
    assert _count_orders(session_factory) == 0


def test_reserve_at_creation_purchases_and_decrements(make_service, stock_of, notifier):
    svc = make_service(flow="reserve_at_creation")

    order = svc.create_order(7, [{"product_id": 1, "quantity": 2}])

    assert order["status"] == "PURCHASED"
    assert stock_of(1) == 3
    assert notifier.sent == [(7, order["id"], "PURCHASED")]


def test_merge_reserves_summed_quantity(make_service, stock_of):
    svc = make_service(flow="reserve_at_creation")

    order = svc.create_order(1, [{"product_id": 1, "quantity": 2}, {"product_id": 1, "quantity": 3}])

    assert len(order["items"]) == 1
    assert order["items"][0]["quantity"] == 5
    assert stock_of(1) == 0


def test_merged_duplicates_cannot_oversell(make_service, stock_of):
    svc = make_service(flow="reserve_at_creation")

    # 3 + 3 > 5, each line alone would fit
    with pytest.raises(InsufficientStockError) as exc:
        svc.create_order(1, [{"product_id": 1, "quantity": 3}, {"product_id": 1, "quantity": 3}])

    assert exc.value.product_id == 1
    assert stock_of(1) == 5


def test_reserve_at_creation_is_all_or_nothing(make_service, stock_of, session_factory, notifier):
    svc = make_service(flow="reserve_at_creation")

    with pytest.raises(InsufficientStockError) as exc:
        svc.create_order(1, [{"product_id": 1, "quantity": 2}, {"product_id": 3, "quantity": 1}])

    assert exc.value.product_id == 3
    assert stock_of(1) == 5
    assert stock_of(3) == 0
    assert _count_orders(session_factory) == 0
    assert notifier.sent == []


# =====================================================
# pay_order
# =====================================================
def test_pay_order_reserves_and_purchases(make_service, stock_of, notifier):
    svc = make_service()
    order = svc.create_order(1, [{"product_id": 1, "quantity": 2}, {"product_id": 2, "quantity": 4}])

    paid = svc.pay_order(order["id"], 1)

    assert paid["status"] == "PURCHASED"
    assert stock_of(1) == 3
    assert stock_of(2) == 6
    assert notifier.sent == [(1, order["id"], "PURCHASED")]


def test_pay_order_twice_is_already_paid_and_keeps_stock(make_service, stock_of):
    svc = make_service()
    order = svc.create_order(1, [{"product_id": 1, "quantity": 2}])
    svc.pay_order(order["id"], 1)

    with pytest.raises(AlreadyPaidError):
        svc.pay_order(order["id"], 1)
    with pytest.raises(AlreadyPaidError):
        svc.pay_order(order["id"], 1)

    assert stock_of(1) == 3


def test_pay_order_insufficient_stock_rolls_back_everything(make_service, stock_of, db):
    svc = make_service()
    order = svc.create_order(1, [{"product_id": 1, "quantity": 2}, {"product_id": 3, "quantity": 1}])

    with pytest.raises(InsufficientStockError) as exc:
        svc.pay_order(order["id"], 1)

    assert exc.value.product_name == "Monitor"
    assert stock_of(1) == 5
    assert stock_of(3) == 0
    assert svc.get_order(order["id"], Caller(1))["status"] == "PENDING"


def test_pay_order_can_succeed_after_restock(make_service, stock_of, db):
    svc = make_service()
    order = svc.create_order(1, [{"product_id": 3, "quantity": 1}])

    with pytest.raises(InsufficientStockError):
        svc.pay_order(order["id"], 1)

    db.get(ProductModel, 3).stock = 1
    db.commit()

    assert svc.pay_order(order["id"], 1)["status"] == "PURCHASED"
    assert stock_of(3) == 0


def test_pay_order_not_found(make_service):
    with pytest.raises(OrderNotFoundError):
        make_service().pay_order(12345, 1)


def test_pay_order_by_other_user(make_service, stock_of):
    svc = make_service()
    order = svc.create_order(1, [{"product_id": 1, "quantity": 1}])

    with pytest.raises(NotAuthorizedError):
        svc.pay_order(order["id"], 2)

    assert stock_of(1) == 5


def test_pay_order_in_reserve_at_creation_flow(make_service, stock_of):
    svc = make_service(flow="reserve_at_creation")
    order = svc.create_order(1, [{"product_id": 1, "quantity": 1}])

    with pytest.raises(AlreadyPaidError):
        svc.pay_order(order["id"], 1)

    assert stock_of(1) == 4


def test_price_snapshot_survives_catalog_change(make_service, db):
    svc = make_service()
    order = svc.create_order(1, [{"product_id": 1, "quantity": 2}])

    db.get(ProductModel, 1).price = Decimal("20.00")
    db.commit()

    paid = svc.pay_order(order["id"], 1)
    assert paid["items"][0]["price"] == Decimal("10.00")
    assert paid["total"] == Decimal("20.00")


# =====================================================
# cancel / expire
# =====================================================
def test_cancel_pending_order(make_service, stock_of):
    svc = make_service()
    order = svc.create_order(1, [{"product_id": 1, "quantity": 1}])

    assert svc.cancel_order(order["id"], Caller(1))["status"] == "CANCELLED"

    with pytest.raises(OrderStateError):
        svc.pay_order(order["id"], 1)
    with pytest.raises(OrderStateError):
        svc.cancel_order(order["id"], Caller(1))
    assert stock_of(1) == 5


def test_cancel_purchased_order_is_refused(make_service, stock_of):
    svc = make_service()
    order = svc.create_order(1, [{"product_id": 1, "quantity": 1}])
    svc.pay_order(order["id"], 1)

    with pytest.raises(AlreadyPaidError):
        svc.cancel_order(order["id"], Caller(99, is_admin=True))

    assert stock_of(1) == 4


def test_cancel_by_stranger(make_service):
    svc = make_service()
    order = svc.create_order(1, [{"product_id": 1, "quantity": 1}])

    with pytest.raises(NotAuthorizedError):
        svc.cancel_order(order["id"], Caller(2))

    assert svc.cancel_order(order["id"], Caller(99, is_admin=True))["status"] == "CANCELLED"


def test_expire_pending_orders(make_service, db):
    svc = make_service()
    old = svc.create_order(1, [{"product_id": 1, "quantity": 1}])
    fresh = svc.create_order(1, [{"product_id": 2, "quantity": 1}])
    old_paid = svc.create_order(1, [{"product_id": 2, "quantity": 1}])
    svc.pay_order(old_paid["id"], 1)

    two_hours_ago = datetime.now(timezone.utc) - timedelta(hours=2)
    for order_id in (old["id"], old_paid["id"]):
        db.get(OrderModel, order_id).created_at = two_hours_ago
    db.commit()

    assert svc.expire_pending_orders(ttl_seconds=3600) == 1

    caller = Caller(1)
    assert svc.get_order(old["id"], caller)["status"] == "CANCELLED"
    assert svc.get_order(fresh["id"], caller)["status"] == "PENDING"
    assert svc.get_order(old_paid["id"], caller)["status"] == "PURCHASED"


# =====================================================
# read paths
# =====================================================
def test_get_order_scoping(make_service):
    svc = make_service()
    order = svc.create_order(1, [{"product_id": 1, "quantity": 1}])

    assert svc.get_order(order["id"], Caller(1))["id"] == order["id"]
    assert svc.get_order(order["id"], Caller(99, is_admin=True))["id"] == order["id"]
    with pytest.raises(NotAuthorizedError):
        svc.get_order(order["id"], Caller(2))
    with pytest.raises(OrderNotFoundError):
        svc.get_order(999, Caller(1))


def test_get_all_orders_scoped_and_newest_first(make_service):
    svc = make_service()
    first = svc.create_order(1, [{"product_id": 1, "quantity": 1}])
    second = svc.create_order(1, [{"product_id": 2, "quantity": 1}])
    other = svc.create_order(2, [{"product_id": 2, "quantity": 1}])

    mine = svc.get_all_orders(Caller(1))
    assert [o["id"] for o in mine] == [second["id"], first["id"]]

    everything = svc.get_all_orders(Caller(99, is_admin=True))
    assert [o["id"] for o in everything] == [other["id"], second["id"], first["id"]]

    filtered = svc.get_all_orders(Caller(99, is_admin=True), user_id=2)
    assert [o["id"] for o in filtered] == [other["id"]]

    with pytest.raises(NotAuthorizedError):
        svc.get_all_orders(Caller(1), user_id=2)


def test_get_all_orders_status_filter_and_pagination(make_service):
    svc = make_service()
    ids = [svc.create_order(1, [{"product_id": 2, "quantity": 1}])["id"] for _ in range(3)]
    svc.pay_order(ids[0], 1)

    pending = svc.get_all_orders(Caller(1), status="PENDING")
    assert [o["id"] for o in pending] == [ids[2], ids[1]]

    purchased = svc.get_all_orders(Caller(1), status="PURCHASED")
    assert [o["id"] for o in purchased] == [ids[0]]

    page = svc.get_all_orders(Caller(1), limit=1, offset=1)
    assert [o["id"] for o in page] == [ids[1]]

    with pytest.raises(ValidationError):
        svc.get_all_orders(Caller(1), status="SHIPPED")
    with pytest.raises(ValidationError):
        svc.get_all_orders(Caller(1), limit=0)
    with pytest.raises(ValidationError):
        svc.get_all_orders(Caller(1), offset=-1)


def test_get_user_orders(make_service):
    svc = make_service()
    order = svc.create_order(2, [{"product_id": 1, "quantity": 1}])

    assert [o["id"] for o in svc.get_user_orders(Caller(2), 2)] == [order["id"]]
    assert [o["id"] for o in svc.get_user_orders(Caller(99, is_admin=True), 2)] == [order["id"]]
    assert svc.get_user_orders(Caller(1), 1) == []

    with pytest.raises(NotAuthorizedError):
        svc.get_user_orders(Caller(1), 2)
