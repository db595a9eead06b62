"""Domain events for the PaymentSession aggregate."""

from protean.fields import DateTime, Identifier, String

from ordering.domain import ordering


@ordering.event(part_of="PaymentSession")
class PaymentSessionOpened:
    """A hosted checkout session was created at the gateway for an order."""

    session_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_number = String(required=True)
    gateway_name = String(required=True)
    gateway_session_id = String(required=True)
    opened_at = DateTime(required=True)


@ordering.event(part_of="PaymentSession")
class PaymentSessionObserved:
    """The verification handshake recorded a new gateway status for the session."""

    session_id = Identifier(required=True)
    order_number = String(required=True)
    gateway_session_id = String(required=True)
    previous_status = String(required=True)
    observed_status = String(required=True)
    observed_at = DateTime(required=True)
