# salon/routers/users_routes.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from salon.auth import get_current_user
from salon.changes import ChangeFeed
from salon.core.booking import cancel_client_appointments
from salon.db import get_session
from salon.deps import get_feed, require_admin
from salon.models import Appointment, AppointmentStatus, Profile, User
from salon.schemas import ProfileUpdate, UserPublic

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)


def _public(user: User, profile: Profile = None) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "name": profile.name if profile else None,
        "phone": profile.phone if profile else None,
    }


@router.get("/me", response_model=UserPublic)
def me(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    user = session.get(User, current_user["id"])
    profile = session.get(Profile, current_user["id"])
    return _public(user, profile)


@router.put("/me/profile", response_model=UserPublic)
def update_my_profile(
    payload: ProfileUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    user = session.get(User, current_user["id"])
    profile = session.get(Profile, current_user["id"])
    if profile is None:
        profile = Profile(user_id=user.id, name=payload.name or user.email)

    if payload.name is not None:
        profile.name = payload.name.strip()
    if payload.phone is not None:
        profile.phone = payload.phone.strip()

    session.add(profile)
    session.commit()
    session.refresh(profile)
    return _public(user, profile)


@router.get("/admin/clients", response_model=List[UserPublic])
def list_clients(
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
):
    rows = session.exec(
        select(User, Profile)
        .join(Profile, Profile.user_id == User.id, isouter=True)
        .where(User.role == "client")
        .order_by(User.email)
    ).all()
    return [_public(user, profile) for user, profile in rows]


def _drop_client_rows(session: Session, user_id: str) -> None:
    session.exec(
        delete(Appointment)
        .where(Appointment.client_id == user_id)
        .where(Appointment.status != AppointmentStatus.active.value)
    )
    session.exec(delete(Profile).where(Profile.user_id == user_id))
    session.exec(delete(User).where(User.id == user_id))


@router.delete("/admin/clients/{user_id}", status_code=204)
def delete_client(
    user_id: str,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
    feed: ChangeFeed = Depends(get_feed),
):
    user = session.get(User, user_id)
    if user is None or user.role != "client":
        raise HTTPException(status_code=404, detail="Client not found")
    session.expunge(user)

    try:
        # 1) Cancel active appointments so their slots are released
        removed = cancel_client_appointments(session, user_id)
        # 2) Drop leftover history, profile and credentials
        _drop_client_rows(session, user_id)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("users.client_remove_failed", extra={"user_id": user_id})
        raise HTTPException(status_code=503, detail="Could not remove client, try again")

    for appointment_id, slot_id in removed:
        feed.publish("appointment", "delete", appointment_id)
        feed.publish("timeslot", "update", slot_id)

    logger.info("users.client_removed", extra={"user_id": user_id, "cancelled": len(removed)})
    return None
