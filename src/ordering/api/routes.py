"""FastAPI routes for the Ordering domain.

Three routers:

- ``order_router`` (``/orders``): the calling customer's own orders.
- ``admin_router`` (``/admin/orders``): administrators only.
- ``payment_router`` (``/payments``): unauthenticated entry points of the
  payment gateway, scoped to triggering verification.
"""

import json
import os
from datetime import timedelta

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from protean.utils.globals import current_domain

from ordering.api.dependencies import current_admin, current_user, get_settings
from ordering.api.schemas import (
    AdminNotesRequest,
    AdminOrderResponse,
    CancellationReasonRequest,
    CheckoutRequest,
    CheckoutResponse,
    ConfigureGatewayRequest,
    ContactLinkResponse,
    EligibilityResponse,
    ExpireStaleRequest,
    ExpireStaleResponse,
    GatewayConfigResponse,
    OrderResponse,
    RoutePaymentRequest,
    RouteResponse,
    StatusResponse,
    TransitionRequest,
    VerificationResponse,
)
from ordering.checkout.checkout import checkout
from ordering.config import StoreSettings
from ordering.eligibility import is_eligible
from ordering.errors import PaymentFailedError
from ordering.gateway import get_gateway
from ordering.gateway.fake_adapter import FakeGateway
from ordering.gateway.port import GatewayStatus, WebhookReference
from ordering.order.contact import customer_contact_link
from ordering.order.housekeeping import expire_stale_orders
from ordering.order.notes import amend_cancellation_reason, update_admin_notes
from ordering.order.order import Order
from ordering.order.transitions import parse_status, transition_order
from ordering.payment.routing import route_payment
from ordering.payment.verification import VerificationResult, verify_by_reference, verify_payment

logger = structlog.get_logger(__name__)


def _verification_response(result: VerificationResult) -> VerificationResponse:
    return VerificationResponse(
        order_number=result.order_number,
        status=result.status,
        payment_status=result.payment_status,
        paid=result.paid,
        applied=result.applied,
    )


def _own_order(order_number: str, user_id: str) -> Order:
    """Load an order belonging to the caller. Other customers' orders look missing."""
    order = current_domain.repository_for(Order).find_by_number(order_number)
    if order is None or str(order.customer_id) != user_id:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


# ---------------------------------------------------------------------------
# Customer Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/checkout", status_code=201, response_model=CheckoutResponse)
async def checkout_order(
    body: CheckoutRequest,
    user_id: str = Depends(current_user),
    settings: StoreSettings = Depends(get_settings),
) -> CheckoutResponse:
    result = checkout(
        user_id,
        body.items,
        body.billing_info,
        body.payment_method,
        settings,
        customer_notes=body.customer_notes,
        discount_amount=body.discount_amount,
    )
    return CheckoutResponse(
        order_number=result.order_number,
        status=result.status,
        total=result.total,
        payment_method=result.payment_method,
        redirect_url=result.redirect_url,
    )


@order_router.get("", response_model=list[OrderResponse])
async def list_my_orders(user_id: str = Depends(current_user)) -> list[OrderResponse]:
    orders = current_domain.repository_for(Order).for_customer(user_id)
    return [OrderResponse.from_order(order) for order in orders]


@order_router.get("/eligibility", response_model=EligibilityResponse)
async def review_eligibility(
    product_id: str | None = None,
    user_id: str = Depends(current_user),
) -> EligibilityResponse:
    return EligibilityResponse(eligible=is_eligible(user_id, product_id))


@order_router.get("/{order_number}", response_model=OrderResponse)
async def get_my_order(order_number: str, user_id: str = Depends(current_user)) -> OrderResponse:
    return OrderResponse.from_order(_own_order(order_number, user_id))


@order_router.post("/{order_number}/payment", response_model=RouteResponse)
async def pay_order(
    order_number: str,
    body: RoutePaymentRequest | None = None,
    user_id: str = Depends(current_user),
    settings: StoreSettings = Depends(get_settings),
) -> RouteResponse:
    """Start (or resume) payment for an order. Repeated calls return the same link."""
    order = _own_order(order_number, user_id)
    method = body.payment_method if body and body.payment_method else order.payment_method
    result = route_payment(order_number, method, settings)
    return RouteResponse(
        order_number=result.order_number,
        payment_method=result.payment_method,
        redirect_url=result.redirect_url,
        created=result.created,
    )


@order_router.post("/{order_number}/verify", response_model=VerificationResponse)
async def verify_my_payment(order_number: str, user_id: str = Depends(current_user)) -> VerificationResponse:
    """Re-check payment status with the gateway (order confirmation page)."""
    _own_order(order_number, user_id)
    return _verification_response(verify_payment(order_number))


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@admin_router.get("", response_model=list[AdminOrderResponse])
async def list_orders(
    status: str | None = None,
    admin_id: str = Depends(current_admin),  # noqa: ARG001
) -> list[AdminOrderResponse]:
    repo = current_domain.repository_for(Order)
    orders = repo.with_status(parse_status(status)) if status else repo.with_status()
    return [AdminOrderResponse.from_order(order) for order in orders]


@admin_router.post("/expire-stale", response_model=ExpireStaleResponse)
async def expire_stale(
    body: ExpireStaleRequest | None = None,
    admin_id: str = Depends(current_admin),  # noqa: ARG001
    settings: StoreSettings = Depends(get_settings),
) -> ExpireStaleResponse:
    hours = body.older_than_hours if body and body.older_than_hours else settings.stale_order_hours
    return ExpireStaleResponse(expired=expire_stale_orders(timedelta(hours=hours)))


@admin_router.get("/{order_number}", response_model=AdminOrderResponse)
async def get_order(order_number: str, admin_id: str = Depends(current_admin)) -> AdminOrderResponse:  # noqa: ARG001
    order = current_domain.repository_for(Order).get_by_number(order_number)
    return AdminOrderResponse.from_order(order)


@admin_router.put("/{order_number}/status", response_model=AdminOrderResponse)
async def change_status(
    order_number: str,
    body: TransitionRequest,
    admin_id: str = Depends(current_admin),
) -> AdminOrderResponse:
    order = transition_order(order_number, body.status, admin_id, reason=body.reason)
    return AdminOrderResponse.from_order(order)


@admin_router.put("/{order_number}/notes", response_model=AdminOrderResponse)
async def edit_admin_notes(
    order_number: str,
    body: AdminNotesRequest,
    admin_id: str = Depends(current_admin),
) -> AdminOrderResponse:
    return AdminOrderResponse.from_order(update_admin_notes(order_number, body.notes, admin_id))


@admin_router.put("/{order_number}/cancellation-reason", response_model=AdminOrderResponse)
async def edit_cancellation_reason(
    order_number: str,
    body: CancellationReasonRequest,
    admin_id: str = Depends(current_admin),
) -> AdminOrderResponse:
    return AdminOrderResponse.from_order(amend_cancellation_reason(order_number, body.reason, admin_id))


@admin_router.get("/{order_number}/contact", response_model=ContactLinkResponse)
async def contact_customer(
    order_number: str,
    admin_id: str = Depends(current_admin),
    settings: StoreSettings = Depends(get_settings),
) -> ContactLinkResponse:
    return ContactLinkResponse(
        order_number=order_number,
        link=customer_contact_link(order_number, admin_id, settings),
    )


# ---------------------------------------------------------------------------
# Gateway Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.get("/return", response_model=VerificationResponse)
async def payment_return(session_id: str | None = None, order_number: str | None = None) -> VerificationResponse:
    """Landing point of the gateway's success redirect."""
    if not session_id and not order_number:
        raise HTTPException(status_code=400, detail="session_id or order_number is required")

    result = verify_by_reference(WebhookReference(session_id=session_id, order_number=order_number))
    if result is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return _verification_response(result)


@payment_router.post("/webhook", response_model=StatusResponse)
async def payment_webhook(
    request: Request,
    x_gateway_signature: str = Header(default=""),
    stripe_signature: str = Header(default=""),
) -> StatusResponse:
    """Gateway notification. The payload only says *which* payment changed;
    the outcome is always re-read from the gateway."""
    payload = await request.body()
    gateway = get_gateway()
    if not gateway.verify_webhook_signature(payload, x_gateway_signature or stripe_signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        body = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail="Webhook payload is not JSON") from exc

    reference = gateway.parse_webhook(body)
    try:
        result = verify_by_reference(reference)
    except PaymentFailedError as exc:
        logger.info("webhook_payment_failed", order_number=exc.order_number)
        return StatusResponse(status="payment_failed")

    if result is None:
        return StatusResponse(status="ignored")
    return StatusResponse(status="paid" if result.paid else result.status)


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    Toggles availability, sets the status new sessions start in and, with
    ``session_id`` and ``status``, moves an existing session.
    """
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    try:
        gateway.configure(available=body.available, default_status=GatewayStatus(body.default_status))
        if body.session_id and body.status:
            gateway.set_status(body.session_id, GatewayStatus(body.status))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Unknown gateway status") from exc
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown session {body.session_id}") from exc

    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        available=gateway.available,
        default_status=gateway.default_status.value,
    )
