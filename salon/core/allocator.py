# salon/core/allocator.py

import logging
from typing import List, Optional

from sqlalchemy import and_, exists, func, update
from sqlmodel import Session, select

from salon.models import Appointment, AppointmentStatus, SlotStatus, TimeSlot

logger = logging.getLogger(__name__)

# Every write to TimeSlot.status goes through this module.


def _active_appointment_on(slot_id):
    return exists().where(
        and_(
            Appointment.time_slot_id == slot_id,
            Appointment.status == AppointmentStatus.active.value,
        )
    )


def reserve(session: Session, slot_id: int, service_id: Optional[int] = None) -> bool:
    """Flip a slot from available to booked.

    Compare-and-swap on status: of two callers racing for the same slot,
    exactly one sees True. Unknown slots and slots of another service also
    return False. The caller commits.
    """
    stmt = (
        update(TimeSlot)
        .where(TimeSlot.id == slot_id)
        .where(TimeSlot.status == SlotStatus.available.value)
    )
    if service_id is not None:
        stmt = stmt.where(TimeSlot.service_id == service_id)
    stmt = stmt.values(status=SlotStatus.booked.value).execution_options(synchronize_session=False)

    result = session.exec(stmt)
    return result.rowcount == 1


def release(session: Session, slot_id: int) -> None:
    """Put a booked slot back to available.

    No-op if the slot is already available or still has an active
    appointment. The caller commits.
    """
    stmt = (
        update(TimeSlot)
        .where(TimeSlot.id == slot_id)
        .where(TimeSlot.status == SlotStatus.booked.value)
        .where(~_active_appointment_on(slot_id))
        .values(status=SlotStatus.available.value)
        .execution_options(synchronize_session=False)
    )
    session.exec(stmt)


def active_appointment_count(session: Session, slot_id: int) -> int:
    return session.exec(
        select(func.count())
        .select_from(Appointment)
        .where(Appointment.time_slot_id == slot_id)
        .where(Appointment.status == AppointmentStatus.active.value)
    ).one()


def slot_is_consistent(session: Session, slot_id: int) -> bool:
    """booked iff exactly one active appointment, available iff none."""
    slot = session.get(TimeSlot, slot_id)
    if slot is None:
        return True
    session.refresh(slot)
    count = active_appointment_count(session, slot_id)
    if slot.status == SlotStatus.booked.value:
        return count == 1
    return count == 0


def find_inconsistent_slots(session: Session) -> List[TimeSlot]:
    active_count = (
        select(func.count())
        .select_from(Appointment)
        .where(Appointment.time_slot_id == TimeSlot.id)
        .where(Appointment.status == AppointmentStatus.active.value)
        .correlate(TimeSlot)
        .scalar_subquery()
    )
    stuck_booked = and_(TimeSlot.status == SlotStatus.booked.value, active_count != 1)
    taken_available = and_(TimeSlot.status == SlotStatus.available.value, active_count > 0)

    return list(
        session.exec(
            select(TimeSlot).where(stuck_booked | taken_available).order_by(TimeSlot.date, TimeSlot.time)
        ).all()
    )


def repair_slot(session: Session, slot_id: int) -> Optional[TimeSlot]:
    """Set a slot's status from its active appointment count and commit.

    Used by admins to free a slot left booked by a failed compensation.
    """
    slot = session.get(TimeSlot, slot_id)
    if slot is None:
        return None

    count = active_appointment_count(session, slot_id)
    wanted = SlotStatus.booked.value if count > 0 else SlotStatus.available.value
    if slot.status != wanted:
        logger.warning(
            "slot.repaired",
            extra={"slot_id": slot_id, "from": slot.status, "to": wanted, "active": count},
        )
        session.exec(
            update(TimeSlot)
            .where(TimeSlot.id == slot_id)
            .values(status=wanted)
            .execution_options(synchronize_session=False)
        )
        session.commit()
    session.refresh(slot)
    return slot
