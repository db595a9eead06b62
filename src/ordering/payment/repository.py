"""Repository for PaymentSession lookups by order and by gateway session id."""

from ordering.domain import ordering
from ordering.payment.session import PaymentSession


@ordering.repository(part_of=PaymentSession)
class PaymentSessionRepository:
    def for_order(self, order_number: str) -> list[PaymentSession]:
        """All sessions of an order, newest first."""
        # limit() last: chaining re-applies the default limit of 100.
        return self._dao.query.filter(order_number=order_number).order_by("-created_at").limit(None).all().items

    def latest_for_order(self, order_number: str) -> PaymentSession | None:
        sessions = self._dao.query.filter(order_number=order_number).order_by("-created_at").limit(1).all().items
        return sessions[0] if sessions else None

    def find_by_gateway_session_id(self, gateway_session_id: str) -> PaymentSession | None:
        results = self._dao.query.filter(gateway_session_id=gateway_session_id).all().items
        return results[0] if results else None
