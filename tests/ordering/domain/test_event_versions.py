"""Event classes take the schema version Protean assigns by default."""

import pytest
from ordering.order import events as order_events
from ordering.payment import events as payment_events

EVENT_CLASSES = [
    order_events.OrderPlaced,
    order_events.OrderStatusChanged,
    order_events.OrderPaid,
    order_events.DigitalContentUnlocked,
    order_events.OrderDelivered,
    order_events.OrderCancelled,
    order_events.PaymentFailed,
    order_events.BankTransferRequested,
    order_events.CancellationReasonAmended,
    order_events.AdminNotesUpdated,
    payment_events.PaymentSessionOpened,
    payment_events.PaymentSessionObserved,
]


@pytest.mark.parametrize("event_cls", EVENT_CLASSES, ids=lambda cls: cls.__name__)
def test_event_does_not_pin_a_version_string(event_cls):
    assert "__version__" not in vars(event_cls)
