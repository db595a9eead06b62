"""FastAPI dependencies: store settings and the calling user.

Authentication happens upstream; the gateway in front of this service
forwards the authenticated user id in the ``X-User-Id`` header.
"""

from fastapi import Depends, Header, HTTPException

from ordering.config import StoreSettings
from ordering.identity import get_identity


def get_settings() -> StoreSettings:
    return StoreSettings.from_env()


def current_user(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def current_admin(user_id: str = Depends(current_user)) -> str:
    if not get_identity().is_administrator(user_id):
        raise HTTPException(status_code=403, detail="Administrator access required")
    return user_id
