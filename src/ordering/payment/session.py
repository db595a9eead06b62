"""PaymentSession aggregate (CQRS): one hosted-checkout attempt for an order.

Sessions are opened only by the payment router and refreshed only by the
verification handshake. A session the gateway reported as failed is
terminal: it is never reused, and the customer's retry opens a new one.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text

from ordering.domain import ordering
from ordering.gateway.port import GatewayStatus
from ordering.payment.events import PaymentSessionObserved, PaymentSessionOpened


class SessionStatus(Enum):
    OPEN = "open"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@ordering.aggregate
class PaymentSession:
    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=40)
    gateway_name = String(max_length=30)
    gateway_session_id = String(required=True, max_length=255, unique=True)
    redirect_url = Text(required=True)
    observed_gateway_status = String(
        max_length=20,
        choices=SessionStatus,
        default=SessionStatus.OPEN.value,
    )
    observed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, order_id: str, order_number: str, gateway_name: str, gateway_session_id: str, redirect_url: str):
        now = datetime.now(UTC)
        session = cls(
            order_id=order_id,
            order_number=order_number,
            gateway_name=gateway_name,
            gateway_session_id=gateway_session_id,
            redirect_url=redirect_url,
            observed_gateway_status=SessionStatus.OPEN.value,
            created_at=now,
            updated_at=now,
        )
        session.raise_(
            PaymentSessionOpened(
                session_id=str(session.id),
                order_id=order_id,
                order_number=order_number,
                gateway_name=gateway_name,
                gateway_session_id=gateway_session_id,
                opened_at=now,
            )
        )
        return session

    @property
    def is_failed(self) -> bool:
        return self.observed_gateway_status == SessionStatus.FAILED.value

    @property
    def is_reusable(self) -> bool:
        return not self.is_failed

    def observe(self, status: GatewayStatus) -> bool:
        """Record what the gateway reported. Returns False when nothing changed."""
        if self.is_failed or self.observed_gateway_status == status.value:
            return False

        now = datetime.now(UTC)
        previous = self.observed_gateway_status
        self.observed_gateway_status = status.value
        self.observed_at = now
        self.updated_at = now
        self.raise_(
            PaymentSessionObserved(
                session_id=str(self.id),
                order_number=self.order_number,
                gateway_session_id=self.gateway_session_id,
                previous_status=previous,
                observed_status=status.value,
                observed_at=now,
            )
        )
        return True
