"""Checkout: place an order and send it down its payment path in one call."""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from ordering.config import StoreSettings
from ordering.errors import GatewayUnavailableError
from ordering.order.creation import create_order
from ordering.order.order import Order
from ordering.payment.routing import route_payment

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order_number: str
    status: str
    total: float
    payment_method: str
    redirect_url: str | None


def checkout(
    user_id: str,
    items,
    billing_info,
    payment_method: str,
    settings: StoreSettings,
    customer_notes: str | None = None,
    discount_amount: float = 0.0,
) -> CheckoutResult:
    """Create the order, then route it.

    When the gateway is unreachable the order is kept and returned without a
    redirect; the customer retries through ``route_payment``.
    """
    order = create_order(
        user_id,
        items,
        billing_info,
        payment_method,
        customer_notes=customer_notes,
        discount_amount=discount_amount,
        order_number_prefix=settings.order_number_prefix,
    )

    redirect_url = None
    try:
        redirect_url = route_payment(order.order_number, order.payment_method, settings).redirect_url
    except GatewayUnavailableError as exc:
        logger.warning(
            "checkout_routing_deferred",
            order_number=order.order_number,
            gateway=exc.gateway,
            error=exc.message,
        )

    order = current_domain.repository_for(Order).get_by_number(order.order_number)
    return CheckoutResult(
        order_number=order.order_number,
        status=order.status,
        total=order.total,
        payment_method=order.payment_method,
        redirect_url=redirect_url,
    )
