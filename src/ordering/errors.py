"""Error taxonomy for the ordering engine.

Validation-style failures extend Protean's ``ValidationError`` so they carry a
field -> messages mapping and flow through the same handlers as aggregate
validation. Authorization failures extend ``InvalidOperationError``. Gateway
failures are plain exceptions raised by adapters and the handshake.

Every error carries a ``category``: the only thing a customer ever sees.
Administrators get the full ``messages`` payload.
"""

from enum import Enum

from protean.exceptions import InvalidOperationError, ValidationError


class ErrorCategory(Enum):
    FIX_REQUEST = "fix_request"
    RETRY_LATER = "retry_later"
    RETRY_PAYMENT = "retry_payment"
    CONTACT_SUPPORT = "contact_support"


CUSTOMER_MESSAGES = {
    ErrorCategory.FIX_REQUEST: "Please review your order details and try again.",
    ErrorCategory.RETRY_LATER: "The payment provider is temporarily unavailable. Please try again shortly.",
    ErrorCategory.RETRY_PAYMENT: "Your payment did not go through. You can start a new payment for this order.",
    ErrorCategory.CONTACT_SUPPORT: "This order cannot be changed right now. Please contact support.",
}


class InvalidOrderError(ValidationError):
    """Malformed input: empty items, bad quantities, unparseable billing info."""

    category = ErrorCategory.FIX_REQUEST


class ProductUnavailableError(ValidationError):
    """A referenced product or bundle is missing or inactive in the catalog."""

    category = ErrorCategory.FIX_REQUEST


class IllegalTransitionError(ValidationError):
    """The requested status change is not an edge of the state graph."""

    category = ErrorCategory.CONTACT_SUPPORT


class ForbiddenTransitionError(InvalidOperationError):
    """The edge exists but the actor's role may not traverse it."""

    category = ErrorCategory.CONTACT_SUPPORT


class GatewayUnavailableError(Exception):
    """Transient gateway failure; nothing was changed and the call may be retried."""

    category = ErrorCategory.RETRY_LATER
    retryable = True

    def __init__(self, message: str, gateway: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.gateway = gateway

    @property
    def messages(self) -> dict:
        return {"gateway": [self.message]}


class PaymentFailedError(Exception):
    """The gateway reported a failed payment for the current session.

    Terminal for that PaymentSession only. The order stays open and a new
    session can be requested.
    """

    category = ErrorCategory.RETRY_PAYMENT
    retryable = False

    def __init__(self, order_number: str, gateway_session_id: str | None = None) -> None:
        self.order_number = order_number
        self.gateway_session_id = gateway_session_id
        super().__init__(f"Payment failed for order {order_number}")

    @property
    def messages(self) -> dict:
        return {"payment": [f"Gateway session {self.gateway_session_id} reported a failed payment"]}


def customer_message(category: ErrorCategory) -> str:
    return CUSTOMER_MESSAGES[category]
