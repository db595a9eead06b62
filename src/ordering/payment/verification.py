"""Payment verification handshake.

Reconciles an order with the gateway's authoritative view of its latest
PaymentSession. Callable any number of times, in any state, from the
customer's confirmation page, the gateway's return redirect or its webhook.

The gateway is queried outside the order lock; the answer is then applied
under the lock as a pure function of (order state, reported status):

    succeeded -> paid (via verifying when needed), content unlocked once
    pending   -> verifying (from pending_payment), otherwise unchanged
    failed    -> payment_status=failed, session terminal, status unchanged

Settled and cancelled orders short-circuit without calling the gateway.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import PaymentFailedError
from ordering.gateway import get_gateway
from ordering.gateway.port import GatewayStatus, WebhookReference
from ordering.order.locks import order_locks
from ordering.order.order import ActorRole, Order, OrderStatus, PaymentStatus
from ordering.payment.session import PaymentSession

logger = structlog.get_logger(__name__)

_NO_VERIFICATION_NEEDED = {OrderStatus.PAID, OrderStatus.DELIVERED, OrderStatus.CANCELLED}


@dataclass(frozen=True)
class VerificationResult:
    order_number: str
    status: str
    payment_status: str
    gateway_status: str | None = None
    applied: bool = False

    @property
    def paid(self) -> bool:
        return self.status in (OrderStatus.PAID.value, OrderStatus.DELIVERED.value)


def _result(order: Order, gateway_status: str | None = None, applied: bool = False) -> VerificationResult:
    return VerificationResult(
        order_number=order.order_number,
        status=order.status,
        payment_status=order.payment_status,
        gateway_status=gateway_status,
        applied=applied,
    )


@ordering.command(part_of="Order")
class ApplyGatewayStatus:
    order_number = String(required=True, max_length=40)
    gateway_session_id = String(required=True, max_length=255)
    gateway_status = String(required=True, max_length=20)


@ordering.command_handler(part_of=Order)
class VerificationHandler:
    @handle(ApplyGatewayStatus)
    def apply_gateway_status(self, command):
        orders = current_domain.repository_for(Order)
        sessions = current_domain.repository_for(PaymentSession)
        order = orders.get_by_number(command.order_number)
        session = sessions.find_by_gateway_session_id(command.gateway_session_id)
        reported = GatewayStatus(command.gateway_status)

        if order.current_status in _NO_VERIFICATION_NEEDED:
            if order.current_status == OrderStatus.CANCELLED and reported == GatewayStatus.SUCCEEDED:
                logger.error(
                    "payment_succeeded_for_cancelled_order",
                    order_number=order.order_number,
                    gateway_session_id=command.gateway_session_id,
                )
            return _result(order, reported.value)

        session_changed = session.observe(reported) if session is not None else False
        applied = False

        if reported == GatewayStatus.SUCCEEDED:
            order.advance_to(OrderStatus.PAID, ActorRole.SYSTEM)
            applied = True
        elif reported == GatewayStatus.PENDING:
            if order.current_status in (OrderStatus.DRAFT, OrderStatus.PENDING_PAYMENT):
                order.advance_to(OrderStatus.VERIFYING, ActorRole.SYSTEM)
                applied = True
        elif order.payment_status != PaymentStatus.FAILED.value or session_changed:
            order.record_payment_failure(command.gateway_session_id)
            applied = True

        if applied:
            orders.add(order)
        if session_changed:
            sessions.add(session)

        logger.info(
            "gateway_status_applied",
            order_number=order.order_number,
            gateway_status=reported.value,
            status=order.status,
            payment_status=order.payment_status,
            applied=applied,
        )
        return _result(order, reported.value, applied)


def verify_payment(order_number: str) -> VerificationResult:
    """Reconcile the order with the gateway.

    Raises GatewayUnavailableError when the gateway cannot be reached (no
    state change, safe to retry) and PaymentFailedError after recording a
    failed payment (the customer may open a new session).
    """
    order = current_domain.repository_for(Order).get_by_number(order_number)
    if order.current_status in _NO_VERIFICATION_NEEDED:
        return _result(order)

    session = current_domain.repository_for(PaymentSession).latest_for_order(order_number)
    if session is None:
        return _result(order)

    if session.is_failed:
        raise PaymentFailedError(order_number, session.gateway_session_id)

    reported = get_gateway().get_status(session.gateway_session_id)

    with order_locks.hold(order_number):
        result = current_domain.process(
            ApplyGatewayStatus(
                order_number=order_number,
                gateway_session_id=session.gateway_session_id,
                gateway_status=reported.value,
            ),
            asynchronous=False,
        )

    if reported == GatewayStatus.FAILED and not result.paid:
        raise PaymentFailedError(order_number, session.gateway_session_id)
    return result


def verify_by_reference(reference: WebhookReference) -> VerificationResult | None:
    """Resolve the order behind a webhook or return redirect and verify it.

    The gateway session id wins over the order number when both are present.
    Unknown references are logged and ignored.
    """
    order_number = reference.order_number
    if reference.session_id:
        session = current_domain.repository_for(PaymentSession).find_by_gateway_session_id(reference.session_id)
        if session is not None:
            order_number = session.order_number

    if not order_number or current_domain.repository_for(Order).find_by_number(order_number) is None:
        logger.warning(
            "unknown_payment_reference",
            gateway_session_id=reference.session_id,
            order_number=reference.order_number,
        )
        return None
    return verify_payment(order_number)
