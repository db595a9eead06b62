"""Payment gateway port (abstract interface).

Defines the contract every hosted-checkout gateway adapter implements, so
FakeGateway (dev/test) and StripeGateway (production) can be swapped without
touching the router or the verification handshake.

Adapters raise ``GatewayUnavailableError`` for transport failures and never
mutate orders; they only report what the gateway says.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class GatewayStatus(Enum):
    SUCCEEDED = "succeeded"
    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True)
class GatewayLine:
    name: str
    unit_price: float
    quantity: int


@dataclass(frozen=True)
class GatewayOrder:
    """Snapshot of the order handed to the gateway when opening a session."""

    order_id: str
    order_number: str
    customer_email: str
    total: float
    currency: str
    success_url: str
    cancel_url: str
    discount_amount: float = 0.0
    lines: tuple[GatewayLine, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class GatewaySession:
    """Result of opening a hosted checkout session."""

    session_id: str
    redirect_url: str


@dataclass(frozen=True)
class WebhookReference:
    """What a webhook tells us about which payment it concerns."""

    session_id: str | None = None
    order_number: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str = "gateway"

    @abstractmethod
    def create_session(self, order: GatewayOrder) -> GatewaySession:
        """Open a hosted checkout session for the order."""
        ...

    @abstractmethod
    def get_status(self, session_id: str) -> GatewayStatus:
        """Report the gateway's current view of a session."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Verify that a webhook payload is authentically from the gateway."""
        ...

    @abstractmethod
    def parse_webhook(self, payload: dict) -> WebhookReference:
        """Extract the session/order reference from a verified webhook body."""
        ...
