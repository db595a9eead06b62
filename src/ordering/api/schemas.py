"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Checkout items and billing info are passed
through as plain JSON objects: the domain parses them strictly and reports
problems as 400s with a field -> messages payload.
"""

import json
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    items: list[dict[str, Any]]
    billing_info: dict[str, Any]
    payment_method: str
    customer_notes: str | None = None
    discount_amount: float = 0.0

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {"product_id": "prod-001", "quantity": 1, "unit_price": 500.0},
                        {"bundle_id": "bundle-001", "quantity": 2, "unit_price": 650.0},
                    ],
                    "billing_info": {
                        "version": "v1",
                        "email": "ana@example.com",
                        "first_name": "Ana",
                        "last_name": "García",
                        "phone": "+52 55 1234 5678",
                    },
                    "payment_method": "gateway",
                    "customer_notes": "Please send the codes by email too",
                }
            ]
        }
    }


class RoutePaymentRequest(BaseModel):
    payment_method: str | None = None


class TransitionRequest(BaseModel):
    status: str
    reason: str | None = None


class AdminNotesRequest(BaseModel):
    notes: str | None = None


class CancellationReasonRequest(BaseModel):
    reason: str


class ExpireStaleRequest(BaseModel):
    older_than_hours: int | None = Field(default=None, gt=0)


class ConfigureGatewayRequest(BaseModel):
    available: bool = True
    default_status: str = "pending"
    session_id: str | None = None
    status: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class CheckoutResponse(BaseModel):
    order_number: str
    status: str
    total: float
    payment_method: str
    redirect_url: str | None = None


class RouteResponse(BaseModel):
    order_number: str
    payment_method: str
    redirect_url: str
    created: bool


class VerificationResponse(BaseModel):
    order_number: str
    status: str
    payment_status: str
    paid: bool
    applied: bool


class EligibilityResponse(BaseModel):
    eligible: bool


class BillingInfoResponse(BaseModel):
    version: str
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None


class OrderItemResponse(BaseModel):
    product_id: str | None = None
    bundle_id: str | None = None
    product_name: str
    quantity: int
    unit_price: float
    line_total: float
    digital_content: dict[str, Any] | None = None


class StatusChangeResponse(BaseModel):
    from_status: str | None = None
    to_status: str
    actor_role: str
    actor_id: str | None = None
    reason: str | None = None
    changed_at: str


class OrderResponse(BaseModel):
    order_number: str
    status: str
    payment_method: str
    payment_status: str
    items: list[OrderItemResponse]
    billing_info: BillingInfoResponse
    subtotal: float
    discount_amount: float
    total: float
    customer_notes: str | None = None
    cancellation_reason: str | None = None
    created_at: str | None = None
    paid_at: str | None = None
    delivered_at: str | None = None
    cancelled_at: str | None = None

    @classmethod
    def from_order(cls, order, **extra) -> "OrderResponse":
        return cls(
            order_number=order.order_number,
            status=order.status,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            items=[
                OrderItemResponse(
                    product_id=str(item.product_id) if item.product_id else None,
                    bundle_id=str(item.bundle_id) if item.bundle_id else None,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                    digital_content=json.loads(item.digital_content) if item.digital_content else None,
                )
                for item in order.items
            ],
            billing_info=BillingInfoResponse(
                version=order.billing_info.version,
                email=order.billing_info.email,
                first_name=order.billing_info.first_name,
                last_name=order.billing_info.last_name,
                phone=order.billing_info.phone,
                address=order.billing_info.address,
                city=order.billing_info.city,
                postal_code=order.billing_info.postal_code,
            ),
            subtotal=order.subtotal,
            discount_amount=order.discount_amount or 0.0,
            total=order.total,
            customer_notes=order.customer_notes,
            cancellation_reason=order.cancellation_reason,
            created_at=_iso(order.created_at),
            paid_at=_iso(order.paid_at),
            delivered_at=_iso(order.delivered_at),
            cancelled_at=_iso(order.cancelled_at),
            **extra,
        )


class AdminOrderResponse(OrderResponse):
    customer_id: str
    admin_notes: str | None = None
    cancelled_by: str | None = None
    bank_transfer_link: str | None = None
    history: list[StatusChangeResponse] = []

    @classmethod
    def from_order(cls, order, **extra) -> "AdminOrderResponse":
        return super().from_order(
            order,
            customer_id=str(order.customer_id),
            admin_notes=order.admin_notes,
            cancelled_by=order.cancelled_by,
            bank_transfer_link=order.bank_transfer_link,
            history=[
                StatusChangeResponse(
                    from_status=change.from_status,
                    to_status=change.to_status,
                    actor_role=change.actor_role,
                    actor_id=change.actor_id,
                    reason=change.reason,
                    changed_at=_iso(change.changed_at),
                )
                for change in sorted(order.history, key=lambda change: change.changed_at)
            ],
            **extra,
        )


class ContactLinkResponse(BaseModel):
    order_number: str
    link: str


class ExpireStaleResponse(BaseModel):
    expired: list[str]


class GatewayConfigResponse(BaseModel):
    gateway: str
    available: bool
    default_status: str


def _iso(moment) -> str | None:
    return moment.isoformat() if moment is not None else None
