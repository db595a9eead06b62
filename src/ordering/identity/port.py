"""Identity port: the single authorization predicate the engine relies on."""

from abc import ABC, abstractmethod


class IdentityPort(ABC):
    @abstractmethod
    def is_administrator(self, user_id: str | None) -> bool:
        """Return True when the user may perform administrative transitions."""
        ...
