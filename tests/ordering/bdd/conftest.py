"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.checkout.checkout import checkout
from ordering.errors import ForbiddenTransitionError, IllegalTransitionError
from ordering.gateway.port import GatewayStatus
from ordering.order.order import Order
from ordering.order.transitions import transition_order
from protean import current_domain
from pytest_bdd import given, parsers, then, when

ADMIN_ID = "admin-001"
CUSTOMER_ID = "cust-001"


def _stored(order_number):
    return current_domain.repository_for(Order).get_by_number(order_number)


@pytest.fixture()
def outcome():
    """Container for the error raised by the last When step, if any."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a customer checked out by "{method}"'), target_fixture="checkout_result")
def _(method, items, billing_info, settings):
    return checkout(CUSTOMER_ID, items, billing_info, method, settings)


@given(parsers.cfparse('the gateway reports the payment "{status}"'))
@when(parsers.cfparse('the gateway reports the payment "{status}"'))
def _(checkout_result, gateway, status):
    gateway.set_status(gateway.latest_session_for(checkout_result.order_number), GatewayStatus(status))


@given("the gateway is offline")
def _(gateway):
    gateway.configure(available=False)


@given(parsers.cfparse('the administrator cancelled the order because "{reason}"'))
def _(checkout_result, reason):
    transition_order(checkout_result.order_number, "cancelled", ADMIN_ID, reason=reason)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the administrator moves the order to "{status}"'))
def _(checkout_result, status):
    transition_order(checkout_result.order_number, status, ADMIN_ID)


@when(parsers.cfparse('the {who} tries to move the order to "{status}"'))
def _(checkout_result, outcome, who, status):
    actor_id = ADMIN_ID if who == "administrator" else CUSTOMER_ID
    try:
        transition_order(checkout_result.order_number, status, actor_id)
    except (ForbiddenTransitionError, IllegalTransitionError) as exc:
        outcome["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(checkout_result, status):
    assert _stored(checkout_result.order_number).status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def _(checkout_result, status):
    assert _stored(checkout_result.order_number).payment_status == status


@then("every item has an activation code")
def _(checkout_result):
    assert all(item.is_unlocked for item in _stored(checkout_result.order_number).items)


@then(parsers.cfparse('the order history reads "{statuses}"'))
def _(checkout_result, statuses):
    history = [change.to_status for change in _stored(checkout_result.order_number).history]
    assert history == [status.strip() for status in statuses.split(",")]


@then(parsers.cfparse('the order entered "{status}" exactly once'))
def _(checkout_result, status):
    history = [change.to_status for change in _stored(checkout_result.order_number).history]
    assert history.count(status) == 1


@then("the change is forbidden")
def _(outcome):
    assert isinstance(outcome["exc"], ForbiddenTransitionError)


@then("the change is illegal")
def _(outcome):
    assert isinstance(outcome["exc"], IllegalTransitionError)
