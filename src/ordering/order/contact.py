"""Administrator-initiated contact with a customer about an order."""

import structlog
from protean.utils.globals import current_domain

from ordering.config import StoreSettings
from ordering.errors import ForbiddenTransitionError
from ordering.identity import get_identity
from ordering.messaging.deep_link import customer_contact_message, whatsapp_link
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


def customer_contact_link(order_number: str, actor_id: str | None, settings: StoreSettings) -> str:
    """Messaging deep link to the phone number the customer billed with.

    Raises ForbiddenTransitionError for non-administrators and
    InvalidOrderError when the order carries no usable phone number.
    """
    if not get_identity().is_administrator(actor_id):
        raise ForbiddenTransitionError({"actor": ["Only administrators can contact customers"]})

    order = current_domain.repository_for(Order).get_by_number(order_number)
    link = whatsapp_link(order.billing_info.phone, customer_contact_message(order, settings.store_name))
    logger.info("customer_contact_link_built", order_number=order_number, actor_id=actor_id)
    return link
