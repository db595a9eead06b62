"""Configurable fake payment gateway for development and testing.

Simulates a hosted checkout without external calls. Each session keeps its
own status, which tests (or the non-production configure endpoint) move
along with ``set_status``. The whole gateway can be taken offline with
``configure(available=False)`` to exercise retry paths.
"""

from uuid import uuid4

from ordering.errors import GatewayUnavailableError
from ordering.gateway.port import (
    GatewayOrder,
    GatewaySession,
    GatewayStatus,
    PaymentGateway,
    WebhookReference,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "fake"

    def __init__(self) -> None:
        self.available: bool = True
        self.default_status: GatewayStatus = GatewayStatus.PENDING
        self.sessions: dict[str, GatewayStatus] = {}
        self.orders: dict[str, str] = {}
        self.calls: list[dict] = []

    def configure(self, available: bool = True, default_status: GatewayStatus = GatewayStatus.PENDING) -> None:
        """Configure gateway behavior at runtime."""
        self.available = available
        self.default_status = default_status

    def set_status(self, session_id: str, status: GatewayStatus) -> None:
        if session_id not in self.sessions:
            raise KeyError(f"Unknown fake session {session_id}")
        self.sessions[session_id] = status

    def latest_session_for(self, order_number: str) -> str | None:
        matches = [sid for sid, number in self.orders.items() if number == order_number]
        return matches[-1] if matches else None

    def _ensure_available(self) -> None:
        if not self.available:
            raise GatewayUnavailableError("Fake gateway is offline", gateway=self.name)

    def create_session(self, order: GatewayOrder) -> GatewaySession:
        self.calls.append({"method": "create_session", "order_number": order.order_number, "total": order.total})
        self._ensure_available()

        session_id = f"fake_cs_{uuid4().hex[:16]}"
        self.sessions[session_id] = self.default_status
        self.orders[session_id] = order.order_number
        return GatewaySession(
            session_id=session_id,
            redirect_url=f"https://checkout.fake-gateway.test/pay/{session_id}",
        )

    def get_status(self, session_id: str) -> GatewayStatus:
        self.calls.append({"method": "get_status", "session_id": session_id})
        self._ensure_available()

        if session_id not in self.sessions:
            raise GatewayUnavailableError(f"Unknown session {session_id}", gateway=self.name)
        return self.sessions[session_id]

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"

    def parse_webhook(self, payload: dict) -> WebhookReference:
        return WebhookReference(
            session_id=payload.get("session_id"),
            order_number=payload.get("order_number"),
        )

    def reset(self) -> None:
        self.available = True
        self.default_status = GatewayStatus.PENDING
        self.sessions.clear()
        self.orders.clear()
        self.calls.clear()
