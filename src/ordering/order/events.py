"""Domain events for the Order aggregate.

Events are immutable facts raised alongside each state change.
They are written to the event store when the unit of work commits and can
feed downstream consumers (receipts, review prompts, analytics).
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A customer placed a new order; it starts in draft."""

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    payment_method = String(required=True)
    items = Text(required=True)  # JSON: list of line dicts
    subtotal = Float(required=True)
    discount_amount = Float()
    total = Float(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order traversed one edge of the state machine."""

    order_id = Identifier(required=True)
    order_number = String(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    actor_role = String(required=True)
    actor_id = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaid:
    """Payment for the order was confirmed, by the gateway or an administrator."""

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    payment_method = String(required=True)
    total = Float(required=True)
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class DigitalContentUnlocked:
    """Activation codes were issued for the order's items."""

    order_id = Identifier(required=True)
    order_number = String(required=True)
    item_count = Integer(required=True)
    unlocked_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    """An administrator confirmed the digital goods reached the customer."""

    order_id = Identifier(required=True)
    order_number = String(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled by an administrator or by stale-order housekeeping."""

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    reason = String(required=True)
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentFailed:
    """The gateway reported a failed payment; the order stays open for a retry."""

    order_id = Identifier(required=True)
    order_number = String(required=True)
    gateway_session_id = String(required=True)
    failed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class BankTransferRequested:
    """The customer was handed a messaging link to arrange a bank transfer."""

    order_id = Identifier(required=True)
    order_number = String(required=True)
    link = Text(required=True)
    requested_at = DateTime(required=True)


@ordering.event(part_of="Order")
class CancellationReasonAmended:
    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String(required=True)
    amended_at = DateTime(required=True)


@ordering.event(part_of="Order")
class AdminNotesUpdated:
    order_id = Identifier(required=True)
    order_number = String(required=True)
    updated_at = DateTime(required=True)
