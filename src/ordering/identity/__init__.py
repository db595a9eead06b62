"""Identity adapter factory (get_identity / set_identity / reset_identity)."""

from ordering.identity.port import IdentityPort
from ordering.identity.static_adapter import StaticIdentity

_current_identity: IdentityPort | None = None


def get_identity() -> IdentityPort:
    """Return the current identity adapter. Defaults to a StaticIdentity with no administrators."""
    global _current_identity
    if _current_identity is None:
        _current_identity = StaticIdentity()
    return _current_identity


def set_identity(identity: IdentityPort) -> None:
    global _current_identity
    _current_identity = identity


def reset_identity() -> None:
    global _current_identity
    _current_identity = None
