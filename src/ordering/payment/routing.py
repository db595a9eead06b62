"""Payment method routing.

Sends an order down one of two payment paths:

- bank_transfer: the customer gets a WhatsApp deep link carrying a
  structured payment request; an administrator confirms the transfer by hand.
- gateway: a hosted checkout session is opened and the customer is
  redirected to it; the verification handshake settles the order later.

Both paths are one-shot. The bank-transfer route marker and the open
PaymentSession are checked before anything is created, so repeated calls
return the same link without opening a second session or sending a second
message.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import String, Text
from protean.utils.globals import current_domain

from ordering.config import StoreSettings
from ordering.domain import ordering
from ordering.errors import IllegalTransitionError, InvalidOrderError
from ordering.gateway import get_gateway
from ordering.gateway.port import GatewayLine, GatewayOrder
from ordering.messaging import get_channel
from ordering.messaging.deep_link import bank_transfer_message, whatsapp_link
from ordering.order.creation import parse_payment_method
from ordering.order.locks import order_locks
from ordering.order.order import ActorRole, Order, OrderStatus, PaymentMethod
from ordering.payment.session import PaymentSession

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RouteResult:
    order_number: str
    payment_method: str
    redirect_url: str
    created: bool


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@ordering.command(part_of="Order")
class RequestBankTransfer:
    order_number = String(required=True, max_length=40)
    store_name = String(required=True, max_length=100)
    whatsapp_number = String(required=True, max_length=30)
    currency = String(required=True, max_length=3)


@ordering.command(part_of="Order")
class OpenPaymentSession:
    order_number = String(required=True, max_length=40)
    gateway_name = String(required=True, max_length=30)
    gateway_session_id = String(required=True, max_length=255)
    redirect_url = Text(required=True)


def _ensure_method(order: Order, method: PaymentMethod) -> None:
    if order.payment_method != method.value:
        raise InvalidOrderError(
            {"payment_method": [f"Order {order.order_number} is paid by {order.payment_method}, not {method.value}"]}
        )


def _ensure_pending_payment(order: Order) -> None:
    """Orders leave draft the first time they are routed."""
    if order.current_status == OrderStatus.DRAFT:
        order.transition_to(OrderStatus.PENDING_PAYMENT, ActorRole.SYSTEM)


@ordering.command_handler(part_of=Order)
class PaymentRoutingHandler:
    @handle(RequestBankTransfer)
    def request_bank_transfer(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_by_number(command.order_number)
        _ensure_method(order, PaymentMethod.BANK_TRANSFER)

        if order.bank_transfer_requested_at is not None:
            return {"link": order.bank_transfer_link, "created": False}
        if not order.is_awaiting_payment:
            raise IllegalTransitionError({"status": [f"Order {order.order_number} is {order.status}, not awaiting payment"]})

        _ensure_pending_payment(order)
        message = bank_transfer_message(order, command.store_name, command.currency)
        link = whatsapp_link(command.whatsapp_number, message)
        order.request_bank_transfer(link)
        repo.add(order)
        return {"link": link, "created": True}

    @handle(OpenPaymentSession)
    def open_payment_session(self, command):
        repo = current_domain.repository_for(Order)
        sessions = current_domain.repository_for(PaymentSession)
        order = repo.get_by_number(command.order_number)
        _ensure_method(order, PaymentMethod.GATEWAY)

        existing = sessions.latest_for_order(command.order_number)
        if existing is not None and existing.is_reusable:
            # Another request opened a session while this one was at the gateway
            logger.warning(
                "gateway_session_discarded",
                order_number=command.order_number,
                discarded_session_id=command.gateway_session_id,
                kept_session_id=existing.gateway_session_id,
            )
            return {"redirect_url": existing.redirect_url, "created": False}
        if not order.is_awaiting_payment:
            raise IllegalTransitionError({"status": [f"Order {order.order_number} is {order.status}, not awaiting payment"]})

        _ensure_pending_payment(order)
        order.reopen_payment()
        session = PaymentSession.open(
            order_id=str(order.id),
            order_number=order.order_number,
            gateway_name=command.gateway_name,
            gateway_session_id=command.gateway_session_id,
            redirect_url=command.redirect_url,
        )
        repo.add(order)
        sessions.add(session)
        return {"redirect_url": session.redirect_url, "created": True}


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
def gateway_order(order: Order, settings: StoreSettings) -> GatewayOrder:
    return GatewayOrder(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_email=order.billing_info.email,
        total=order.total,
        currency=settings.currency,
        success_url=settings.success_url(order.order_number),
        cancel_url=settings.cancel_url(),
        discount_amount=order.discount_amount or 0.0,
        lines=tuple(
            GatewayLine(name=item.product_name, unit_price=item.unit_price, quantity=item.quantity)
            for item in order.items
        ),
    )


def _route_bank_transfer(order_number: str, settings: StoreSettings) -> RouteResult:
    with order_locks.hold(order_number):
        outcome = current_domain.process(
            RequestBankTransfer(
                order_number=order_number,
                store_name=settings.store_name,
                whatsapp_number=settings.whatsapp_number,
                currency=settings.currency,
            ),
            asynchronous=False,
        )

    # The route marker is committed before the message goes out, so a
    # concurrent or repeated call can never send it twice.
    if outcome["created"]:
        get_channel().open(outcome["link"], order_number)
        logger.info("bank_transfer_link_sent", order_number=order_number)

    return RouteResult(
        order_number=order_number,
        payment_method=PaymentMethod.BANK_TRANSFER.value,
        redirect_url=outcome["link"],
        created=outcome["created"],
    )


def _route_gateway(order_number: str, settings: StoreSettings) -> RouteResult:
    order = current_domain.repository_for(Order).get_by_number(order_number)
    _ensure_method(order, PaymentMethod.GATEWAY)

    existing = current_domain.repository_for(PaymentSession).latest_for_order(order_number)
    if existing is not None and existing.is_reusable:
        return RouteResult(
            order_number=order_number,
            payment_method=PaymentMethod.GATEWAY.value,
            redirect_url=existing.redirect_url,
            created=False,
        )
    if not order.is_awaiting_payment:
        raise IllegalTransitionError({"status": [f"Order {order_number} is {order.status}, not awaiting payment"]})

    # Network call happens outside the lock; the command re-checks for a
    # concurrent winner before persisting.
    gateway = get_gateway()
    gateway_session = gateway.create_session(gateway_order(order, settings))
    logger.info("gateway_session_created", order_number=order_number, gateway=gateway.name)

    with order_locks.hold(order_number):
        outcome = current_domain.process(
            OpenPaymentSession(
                order_number=order_number,
                gateway_name=gateway.name,
                gateway_session_id=gateway_session.session_id,
                redirect_url=gateway_session.redirect_url,
            ),
            asynchronous=False,
        )

    return RouteResult(
        order_number=order_number,
        payment_method=PaymentMethod.GATEWAY.value,
        redirect_url=outcome["redirect_url"],
        created=outcome["created"],
    )


def route_payment(order_number: str, method: PaymentMethod | str, settings: StoreSettings) -> RouteResult:
    """Route an order to its payment path. Idempotent per order."""
    method = method if isinstance(method, PaymentMethod) else parse_payment_method(method)
    if method == PaymentMethod.BANK_TRANSFER:
        return _route_bank_transfer(order_number, settings)
    return _route_gateway(order_number, settings)
