"""Order listings and eligibility are not truncated by the default query limit."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.eligibility import is_eligible
from ordering.order.housekeeping import find_stale_orders
from ordering.order.order import Order, OrderStatus
from ordering.order.transitions import transition_order
from ordering.payment.session import PaymentSession
from protean import current_domain

ADMIN_ID = "admin-001"
MANY = 105
GIFT_CARD = [{"product_id": "prod-001", "quantity": 1, "unit_price": 500.0}]
GAME_PASS = [{"product_id": "prod-002", "quantity": 1, "unit_price": 299.0}]


def _settle(order_number):
    for status in ("pending_payment", "verifying", "paid"):
        transition_order(order_number, status, ADMIN_ID)


@pytest.fixture()
def many_drafts(place_order):
    return [place_order(items=GIFT_CARD).order_number for _ in range(MANY)]


class TestUnboundedListings:
    def test_with_status_returns_every_order(self, many_drafts):
        drafts = current_domain.repository_for(Order).with_status(OrderStatus.DRAFT)
        assert len(drafts) == MANY

    def test_unfiltered_listing_returns_every_order(self, many_drafts):
        assert len(current_domain.repository_for(Order).with_status()) == MANY

    def test_customer_listing_returns_every_order(self, many_drafts):
        orders = current_domain.repository_for(Order).for_customer("cust-001")
        assert sorted(order.order_number for order in orders) == sorted(many_drafts)

    def test_stale_order_sweep_sees_every_order(self, many_drafts):
        later = datetime.now(UTC) + timedelta(hours=72)
        stale = find_stale_orders(timedelta(hours=48), now=later)
        assert len(stale) == MANY


class TestEligibilityAcrossManyOrders:
    def test_matching_order_beyond_the_first_hundred(self, place_order):
        for _ in range(MANY):
            _settle(place_order(payment_method="bank_transfer", items=GIFT_CARD).order_number)
        last = place_order(payment_method="bank_transfer", items=GAME_PASS)
        _settle(last.order_number)

        settled = current_domain.repository_for(Order).settled_for_customer("cust-001")
        assert len(settled) == MANY + 1
        assert is_eligible("cust-001", "prod-002") is True

    def test_no_match_among_many_settled_orders(self, place_order):
        for _ in range(MANY):
            _settle(place_order(payment_method="bank_transfer", items=GIFT_CARD).order_number)

        assert is_eligible("cust-001", "prod-002") is False
        assert is_eligible("cust-001", "prod-001") is True


class TestPaymentSessionListing:
    def test_every_session_of_an_order_is_listed(self, place_order):
        order = place_order()
        repo = current_domain.repository_for(PaymentSession)
        start = datetime.now(UTC) - timedelta(hours=1)
        for index in range(MANY):
            session = PaymentSession.open(
                str(order.id), order.order_number, "fake", f"cs_{index:03d}", f"https://pay.test/cs_{index:03d}"
            )
            session.created_at = start + timedelta(seconds=index)
            repo.add(session)

        sessions = repo.for_order(order.order_number)

        assert len(sessions) == MANY
        assert sessions[0].gateway_session_id == f"cs_{MANY - 1:03d}"
        assert repo.latest_for_order(order.order_number).gateway_session_id == f"cs_{MANY - 1:03d}"
