"""Identity adapter backed by a fixed set of administrator ids."""

from collections.abc import Iterable

from ordering.identity.port import IdentityPort


class StaticIdentity(IdentityPort):
    def __init__(self, admin_user_ids: Iterable[str] = ()) -> None:
        self.admin_user_ids: set[str] = set(admin_user_ids)

    def grant_admin(self, user_id: str) -> None:
        self.admin_user_ids.add(user_id)

    def revoke_admin(self, user_id: str) -> None:
        self.admin_user_ids.discard(user_id)

    def is_administrator(self, user_id: str | None) -> bool:
        return bool(user_id) and user_id in self.admin_user_ids
