# salon/core/booking.py

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from salon.changes import ChangeFeed
from salon.config import settings
from salon.core.allocator import release, reserve
from salon.errors import BookingFailed, Forbidden, NotFound, SlotUnavailable
from salon.models import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)


def _insert_appointment(session: Session, appointment: Appointment) -> None:
    session.add(appointment)
    session.commit()


def _compensate(session: Session, slot_id: int, attempts: Optional[int] = None) -> bool:
    """Undo a reservation whose appointment insert failed.

    Retried a few times. When every attempt fails the slot stays booked with
    no appointment and needs an admin repair, so that case is logged as
    critical.
    """
    attempts = max(1, attempts or settings.compensation_attempts)
    for attempt in range(1, attempts + 1):
        try:
            release(session, slot_id)
            session.commit()
            logger.info("booking.compensated", extra={"slot_id": slot_id, "attempt": attempt})
            return True
        except SQLAlchemyError:
            session.rollback()
            logger.warning(
                "booking.compensation_retry",
                extra={"slot_id": slot_id, "attempt": attempt},
                exc_info=True,
            )

    logger.critical("booking.compensation_failed", extra={"slot_id": slot_id, "attempts": attempts})
    return False


def book(
    session: Session,
    client_id: str,
    service_id: int,
    slot_id: int,
    feed: Optional[ChangeFeed] = None,
) -> Appointment:
    """Reserve ``slot_id`` and create an active appointment for ``client_id``.

    Raises SlotUnavailable when the slot is taken (or does not belong to
    ``service_id``) and BookingFailed on any other store error. Either way,
    a slot reserved by this call has been released before the error is
    raised.
    """
    # 1) Reserve the slot and make that durable before touching appointments
    try:
        reserved = reserve(session, slot_id, service_id)
        if reserved:
            session.commit()
        else:
            session.rollback()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("booking.reserve_failed", extra={"slot_id": slot_id}, exc_info=True)
        raise BookingFailed() from exc

    if not reserved:
        logger.info("booking.slot_unavailable", extra={"slot_id": slot_id, "client_id": client_id})
        raise SlotUnavailable()

    # 2) Bind an appointment to the reserved slot
    appointment = Appointment(
        client_id=client_id,
        service_id=service_id,
        time_slot_id=slot_id,
        status=AppointmentStatus.active.value,
    )
    try:
        _insert_appointment(session, appointment)
    except IntegrityError as exc:
        # another active appointment already holds this slot
        session.rollback()
        _compensate(session, slot_id)
        logger.info("booking.duplicate_active", extra={"slot_id": slot_id, "client_id": client_id})
        raise SlotUnavailable() from exc
    except SQLAlchemyError as exc:
        session.rollback()
        _compensate(session, slot_id)
        logger.error("booking.insert_failed", extra={"slot_id": slot_id, "client_id": client_id}, exc_info=True)
        raise BookingFailed() from exc

    session.refresh(appointment)
    logger.info(
        "booking.created",
        extra={"appointment_id": appointment.id, "slot_id": slot_id, "client_id": client_id},
    )

    if feed is not None:
        feed.publish("timeslot", "update", slot_id)
        feed.publish("appointment", "insert", appointment.id)
    return appointment


def _delete_active(session: Session, appointment_id: int, slot_id: int) -> bool:
    """Conditionally delete one active appointment and release its slot. Caller commits."""
    result = session.exec(
        delete(Appointment)
        .where(Appointment.id == appointment_id)
        .where(Appointment.status == AppointmentStatus.active.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return False
    release(session, slot_id)
    return True


def cancel(
    session: Session,
    appointment_id: int,
    actor: Optional[dict] = None,
    feed: Optional[ChangeFeed] = None,
) -> None:
    """Delete an active appointment and release its slot in one transaction.

    ``actor`` is the request identity; when given it must be the owning
    client or an admin. Sweeps pass no actor.
    """
    appointment = session.get(Appointment, appointment_id)
    if appointment is None or appointment.status != AppointmentStatus.active.value:
        raise NotFound("Appointment not found")

    if actor is not None and actor["role"] != "admin" and actor["id"] != appointment.client_id:
        raise Forbidden()

    slot_id = appointment.time_slot_id
    session.expunge(appointment)

    if not _delete_active(session, appointment_id, slot_id):
        # removed by someone else since we read it
        session.rollback()
        raise NotFound("Appointment not found")
    session.commit()

    logger.info("booking.cancelled", extra={"appointment_id": appointment_id, "slot_id": slot_id})

    if feed is not None:
        feed.publish("appointment", "delete", appointment_id)
        feed.publish("timeslot", "update", slot_id)


def _active_for_client(session: Session, client_id: str) -> List[Tuple[int, int]]:
    return session.exec(
        select(Appointment.id, Appointment.time_slot_id)
        .where(Appointment.client_id == client_id)
        .where(Appointment.status == AppointmentStatus.active.value)
        .order_by(Appointment.id)
    ).all()


def cancel_client_appointments(session: Session, client_id: str) -> List[Tuple[int, int]]:
    """Delete every active appointment of ``client_id`` and release the slots.

    Re-reads until none are left, so a booking that lands mid-way is removed
    too. Nothing is committed or published; returns the (appointment_id,
    slot_id) pairs removed so the caller can do both once its own work is in.
    """
    removed = []
    while True:
        rows = _active_for_client(session, client_id)
        if not rows:
            return removed
        for appointment_id, slot_id in rows:
            if _delete_active(session, appointment_id, slot_id):
                removed.append((appointment_id, slot_id))
