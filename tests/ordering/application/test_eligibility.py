"""Purchase eligibility is derived from settled orders on every call."""

from ordering.eligibility import is_eligible
from ordering.order.transitions import transition_order

ADMIN_ID = "admin-001"


def _settle(order_number, through="paid"):
    path = ["pending_payment", "verifying", "paid", "delivered"]
    for status in path[: path.index(through) + 1]:
        transition_order(order_number, status, ADMIN_ID)


class TestEligibility:
    def test_customer_without_orders(self):
        assert is_eligible("cust-001") is False
        assert is_eligible("cust-001", "prod-001") is False

    def test_unpaid_order_does_not_count(self, place_order):
        place_order(payment_method="bank_transfer")
        assert is_eligible("cust-001") is False
        assert is_eligible("cust-001", "prod-001") is False

    def test_paid_order_grants_eligibility(self, place_order):
        order = place_order(payment_method="bank_transfer")
        _settle(order.order_number)

        assert is_eligible("cust-001") is True
        assert is_eligible("cust-001", "prod-001") is True

    def test_product_must_be_in_a_settled_order(self, place_order):
        order = place_order(payment_method="bank_transfer")
        _settle(order.order_number)

        assert is_eligible("cust-001", "prod-002") is False

    def test_bundle_lines_do_not_make_products_eligible(self, place_order):
        order = place_order(
            payment_method="bank_transfer",
            items=[{"bundle_id": "bundle-001", "quantity": 1, "unit_price": 650.0}],
        )
        _settle(order.order_number)

        assert is_eligible("cust-001") is True
        assert is_eligible("cust-001", "prod-001") is False

    def test_delivered_order_counts(self, place_order):
        order = place_order(payment_method="bank_transfer")
        _settle(order.order_number, through="delivered")

        assert is_eligible("cust-001", "prod-001") is True

    def test_cancelling_a_paid_order_revokes_eligibility(self, place_order):
        order = place_order(payment_method="bank_transfer")
        _settle(order.order_number)
        assert is_eligible("cust-001") is True

        transition_order(order.order_number, "cancelled", ADMIN_ID, reason="Chargeback")

        assert is_eligible("cust-001") is False

    def test_other_customers_orders_do_not_count(self, place_order):
        order = place_order(payment_method="bank_transfer", user_id="cust-002")
        _settle(order.order_number)

        assert is_eligible("cust-001") is False
        assert is_eligible("cust-002") is True

    def test_anonymous_user_is_never_eligible(self, place_order):
        order = place_order(payment_method="bank_transfer")
        _settle(order.order_number)

        assert is_eligible(None) is False
        assert is_eligible("", "prod-001") is False
