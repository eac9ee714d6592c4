# salon/deps.py

from fastapi import Depends, HTTPException

from salon.auth import get_current_user
from salon.changes import ChangeFeed, feed
from salon.errors import BookingFailed, Forbidden, NotFound, SalonError, SlotUnavailable


def require_role(user: dict, role: str):
    if user["role"] != role:
        raise HTTPException(status_code=403, detail="Forbidden")


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    require_role(current_user, "admin")
    return current_user


def get_feed() -> ChangeFeed:
    return feed


_STATUS_CODES = {
    SlotUnavailable: 409,
    BookingFailed: 503,
    NotFound: 404,
    Forbidden: 403,
}


def to_http(exc: SalonError) -> HTTPException:
    status_code = _STATUS_CODES.get(type(exc), 500)
    return HTTPException(status_code=status_code, detail=exc.detail)
