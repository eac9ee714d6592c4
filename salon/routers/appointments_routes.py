# salon/routers/appointments_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from salon.auth import get_current_user
from salon.changes import ChangeFeed
from salon.core.booking import book, cancel
from salon.core.clock import slot_start, studio_now
from salon.db import get_session
from salon.deps import get_feed, require_admin, require_role, to_http
from salon.errors import SalonError
from salon.models import Appointment, AppointmentStatus, Profile, Service, TimeSlot
from salon.schemas import AppointmentCreate, AppointmentDetail, AppointmentPublic

router = APIRouter(
    tags=["appointments"],
)


def _details(session: Session, *criteria) -> List[dict]:
    stmt = (
        select(Appointment, TimeSlot, Service, Profile)
        .join(TimeSlot, Appointment.time_slot_id == TimeSlot.id)
        .join(Service, Appointment.service_id == Service.id)
        .join(Profile, Profile.user_id == Appointment.client_id, isouter=True)
        .where(Appointment.status == AppointmentStatus.active.value)
    )
    for criterion in criteria:
        stmt = stmt.where(criterion)
    stmt = stmt.order_by(TimeSlot.date, TimeSlot.time)

    return [
        {
            **appt.model_dump(),
            "service_name": service.name,
            "date": slot.date,
            "time": slot.time,
            "client_name": profile.name if profile else None,
        }
        for appt, slot, service, profile in session.exec(stmt).all()
    ]


@router.post("/appointments", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_feed),
):
    require_role(current_user, "client")

    # Prevent booking in the past (studio wall-clock time)
    slot = session.get(TimeSlot, appt.time_slot_id)
    if slot is not None and slot_start(slot.date, slot.time) < studio_now():
        raise HTTPException(status_code=422, detail="Cannot book an appointment in the past")

    try:
        return book(
            session,
            client_id=current_user["id"],
            service_id=appt.service_id,
            slot_id=appt.time_slot_id,
            feed=feed,
        )
    except SalonError as exc:
        raise to_http(exc)


@router.delete("/appointments/{appt_id}", status_code=204)
def cancel_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        cancel(session, appt_id, actor=current_user, feed=feed)
    except SalonError as exc:
        raise to_http(exc)
    return None


@router.get("/clients/me/appointments", response_model=List[AppointmentDetail])
def list_my_appointments(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client")
    return _details(session, Appointment.client_id == current_user["id"])


@router.get("/admin/appointments", response_model=List[AppointmentDetail])
def list_all_appointments(
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
):
    return _details(session)


@router.delete("/admin/appointments/{appt_id}", status_code=204)
def remove_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        cancel(session, appt_id, actor=admin, feed=feed)
    except SalonError as exc:
        raise to_http(exc)
    return None
