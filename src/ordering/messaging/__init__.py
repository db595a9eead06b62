"""Messaging channel factory (get_channel / set_channel / reset_channel)."""

from ordering.messaging.fake_channel import FakeMessagingChannel
from ordering.messaging.port import MessagingChannel

_current_channel: MessagingChannel | None = None


def get_channel() -> MessagingChannel:
    """Return the configured messaging channel. Defaults to FakeMessagingChannel."""
    global _current_channel
    if _current_channel is None:
        _current_channel = FakeMessagingChannel()
    return _current_channel


def set_channel(channel: MessagingChannel) -> None:
    global _current_channel
    _current_channel = channel


def reset_channel() -> None:
    global _current_channel
    _current_channel = None
