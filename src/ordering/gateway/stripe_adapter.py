"""Stripe Checkout gateway adapter.

Opens Stripe Checkout Sessions and reads them back for the verification
handshake. Stripe's view of a session maps onto the engine's three outcomes:

    payment_status "paid" / "no_payment_required"  -> SUCCEEDED
    status "expired"                                -> FAILED
    anything else                                   -> PENDING
"""

import structlog
import stripe

from ordering.errors import GatewayUnavailableError
from ordering.gateway.port import (
    GatewayOrder,
    GatewaySession,
    GatewayStatus,
    PaymentGateway,
    WebhookReference,
)

logger = structlog.get_logger(__name__)

_PAID_STATUSES = {"paid", "no_payment_required"}


def _to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


class StripeGateway(PaymentGateway):
    """Production gateway backed by the stripe SDK."""

    name = "stripe"

    def __init__(self, api_key: str, webhook_secret: str | None = None) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def _line_items(self, order: GatewayOrder) -> list[dict]:
        # Stripe has no order-level discount on ad-hoc prices, so discounted
        # orders are charged as a single line for the final total.
        if order.discount_amount:
            return [
                {
                    "price_data": {
                        "currency": order.currency,
                        "product_data": {"name": f"Order {order.order_number}"},
                        "unit_amount": _to_minor_units(order.total),
                    },
                    "quantity": 1,
                }
            ]
        return [
            {
                "price_data": {
                    "currency": order.currency,
                    "product_data": {"name": line.name},
                    "unit_amount": _to_minor_units(line.unit_price),
                },
                "quantity": line.quantity,
            }
            for line in order.lines
        ]

    def create_session(self, order: GatewayOrder) -> GatewaySession:
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                customer_email=order.customer_email,
                line_items=self._line_items(order),
                success_url=order.success_url,
                cancel_url=order.cancel_url,
                client_reference_id=order.order_number,
                metadata={
                    "order_id": order.order_id,
                    "order_number": order.order_number,
                },
            )
        except stripe.StripeError as exc:
            logger.error("stripe_session_create_failed", order_number=order.order_number, error=str(exc))
            raise GatewayUnavailableError(f"Stripe session creation failed: {exc}", gateway=self.name) from exc

        logger.info("stripe_session_created", order_number=order.order_number, session_id=session.id)
        return GatewaySession(session_id=session.id, redirect_url=session.url)

    def get_status(self, session_id: str) -> GatewayStatus:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.StripeError as exc:
            logger.error("stripe_session_retrieve_failed", session_id=session_id, error=str(exc))
            raise GatewayUnavailableError(f"Stripe session lookup failed: {exc}", gateway=self.name) from exc

        if session.payment_status in _PAID_STATUSES:
            return GatewayStatus.SUCCEEDED
        if session.status == "expired":
            return GatewayStatus.FAILED
        return GatewayStatus.PENDING

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        if not self.webhook_secret:
            logger.warning("stripe_webhook_secret_missing")
            return False
        try:
            stripe.Webhook.construct_event(payload=payload, sig_header=signature, secret=self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            logger.warning("stripe_webhook_rejected", error=str(exc))
            return False
        return True

    def parse_webhook(self, payload: dict) -> WebhookReference:
        session = (payload.get("data") or {}).get("object") or {}
        metadata = session.get("metadata") or {}
        return WebhookReference(
            session_id=session.get("id"),
            order_number=metadata.get("order_number") or session.get("client_reference_id"),
        )
