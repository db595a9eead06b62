"""Application tests for payment method routing (bank transfer and hosted gateway)."""

import threading
from urllib.parse import parse_qs, urlparse

import pytest
from ordering.domain import ordering
from ordering.errors import GatewayUnavailableError, IllegalTransitionError, InvalidOrderError
from ordering.gateway.port import GatewayStatus
from ordering.order.order import Order, OrderStatus, PaymentStatus
from ordering.order.transitions import transition_order
from ordering.payment.routing import gateway_order, route_payment
from ordering.payment.session import PaymentSession
from protean import current_domain

ADMIN_ID = "admin-001"


def _sessions(order_number):
    return current_domain.repository_for(PaymentSession).for_order(order_number)


def _order(order_number):
    return current_domain.repository_for(Order).get_by_number(order_number)


class TestBankTransferRoute:
    def test_builds_link_and_moves_to_pending_payment(self, place_order, settings, channel):
        order = place_order(payment_method="bank_transfer")

        result = route_payment(order.order_number, "bank_transfer", settings)

        assert result.created is True
        assert result.payment_method == "bank_transfer"
        assert result.redirect_url.startswith("https://wa.me/5215512345678?text=")
        text = parse_qs(urlparse(result.redirect_url).query)["text"][0]
        assert order.order_number in text
        assert "Total: $1,800.00 MXN" in text

        stored = _order(order.order_number)
        assert stored.status == OrderStatus.PENDING_PAYMENT.value
        assert stored.bank_transfer_link == result.redirect_url
        assert channel.links_for(order.order_number) == [result.redirect_url]

    def test_repeated_routing_sends_the_message_once(self, place_order, settings, channel):
        order = place_order(payment_method="bank_transfer")

        first = route_payment(order.order_number, "bank_transfer", settings)
        second = route_payment(order.order_number, "bank_transfer", settings)

        assert second.created is False
        assert second.redirect_url == first.redirect_url
        assert len(channel.links_for(order.order_number)) == 1

    def test_concurrent_routing_sends_the_message_once(self, place_order, settings, channel):
        order = place_order(payment_method="bank_transfer")
        barrier = threading.Barrier(4)
        results = []

        def route():
            with ordering.domain_context():
                barrier.wait()
                results.append(route_payment(order.order_number, "bank_transfer", settings))

        threads = [threading.Thread(target=route) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(result.created for result in results) == 1
        assert len({result.redirect_url for result in results}) == 1
        assert len(channel.links_for(order.order_number)) == 1

    def test_link_is_returned_even_after_payment(self, place_order, settings):
        order = place_order(payment_method="bank_transfer")
        first = route_payment(order.order_number, "bank_transfer", settings)
        for status in ("verifying", "paid"):
            transition_order(order.order_number, status, ADMIN_ID)

        again = route_payment(order.order_number, "bank_transfer", settings)

        assert again.created is False
        assert again.redirect_url == first.redirect_url

    def test_cancelled_order_without_link_cannot_be_routed(self, place_order, settings, channel):
        order = place_order(payment_method="bank_transfer")
        transition_order(order.order_number, "cancelled", ADMIN_ID, reason="Duplicate")

        with pytest.raises(IllegalTransitionError):
            route_payment(order.order_number, "bank_transfer", settings)
        assert channel.opened_links == []


class TestGatewayRoute:
    def test_opens_session_and_moves_to_pending_payment(self, place_order, settings, gateway):
        order = place_order(payment_method="gateway")

        result = route_payment(order.order_number, "gateway", settings)

        assert result.created is True
        assert result.redirect_url.startswith("https://checkout.fake-gateway.test/pay/fake_cs_")
        sessions = _sessions(order.order_number)
        assert len(sessions) == 1
        assert sessions[0].gateway_name == "fake"
        assert sessions[0].redirect_url == result.redirect_url
        assert _order(order.order_number).status == OrderStatus.PENDING_PAYMENT.value

    def test_reuses_open_session(self, place_order, settings, gateway):
        order = place_order(payment_method="gateway")

        first = route_payment(order.order_number, "gateway", settings)
        second = route_payment(order.order_number, "gateway", settings)

        assert second.created is False
        assert second.redirect_url == first.redirect_url
        assert [call["method"] for call in gateway.calls].count("create_session") == 1
        assert len(_sessions(order.order_number)) == 1

    def test_failed_session_is_replaced(self, place_order, settings, gateway):
        order = place_order(payment_method="gateway")
        route_payment(order.order_number, "gateway", settings)
        session = _sessions(order.order_number)[0]
        session.observe(GatewayStatus.FAILED)
        current_domain.repository_for(PaymentSession).add(session)

        retry = route_payment(order.order_number, "gateway", settings)

        assert retry.created is True
        assert len(_sessions(order.order_number)) == 2
        assert _order(order.order_number).payment_status == PaymentStatus.PENDING.value

    def test_gateway_outage_changes_nothing(self, place_order, settings, gateway):
        order = place_order(payment_method="gateway")
        gateway.configure(available=False)

        with pytest.raises(GatewayUnavailableError):
            route_payment(order.order_number, "gateway", settings)

        assert _sessions(order.order_number) == []
        assert _order(order.order_number).status == OrderStatus.DRAFT.value

    def test_method_mismatch(self, place_order, settings):
        order = place_order(payment_method="gateway")
        with pytest.raises(InvalidOrderError):
            route_payment(order.order_number, "bank_transfer", settings)

    def test_unknown_method(self, place_order, settings):
        order = place_order(payment_method="gateway")
        with pytest.raises(InvalidOrderError):
            route_payment(order.order_number, "crypto", settings)

    def test_cancelled_order_gets_no_new_session(self, place_order, settings, gateway):
        order = place_order(payment_method="gateway")
        transition_order(order.order_number, "cancelled", ADMIN_ID, reason="Fraud check")

        with pytest.raises(IllegalTransitionError):
            route_payment(order.order_number, "gateway", settings)
        assert gateway.calls == []


class TestGatewayOrderSnapshot:
    def test_carries_totals_urls_and_lines(self, place_order, settings):
        order = place_order(payment_method="gateway", discount_amount=100.0)

        snapshot = gateway_order(order, settings)

        assert snapshot.order_number == order.order_number
        assert snapshot.customer_email == "ana@example.com"
        assert snapshot.total == 1700.0
        assert snapshot.discount_amount == 100.0
        assert snapshot.currency == "mxn"
        assert snapshot.success_url == (
            f"https://vgstore.test/order-confirmation/{order.order_number}?session_id={{CHECKOUT_SESSION_ID}}"
        )
        assert snapshot.cancel_url == "https://vgstore.test/checkout"
        assert sorted((line.name, line.quantity) for line in snapshot.lines) == [
            ("Gift Card $500", 1),
            ("Starter Bundle", 2),
        ]
