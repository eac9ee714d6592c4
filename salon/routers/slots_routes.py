# salon/routers/slots_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from salon.changes import ChangeFeed
from salon.core.allocator import find_inconsistent_slots, repair_slot
from salon.db import get_session
from salon.deps import get_feed, require_admin
from salon.models import Service, SlotStatus, TimeSlot
from salon.schemas import SlotStatusFilter, TimeSlotCreate, TimeSlotPublic

router = APIRouter(
    tags=["slots"],
)


@router.get("/slots", response_model=List[TimeSlotPublic])
def list_slots(
    status: SlotStatusFilter = SlotStatusFilter.available,
    service_id: Optional[int] = None,
    on_date: Optional[date] = None,
    session: Session = Depends(get_session),
):
    stmt = select(TimeSlot)

    if status != SlotStatusFilter.all:
        stmt = stmt.where(TimeSlot.status == status.value)
    if service_id is not None:
        stmt = stmt.where(TimeSlot.service_id == service_id)
    if on_date is not None:
        stmt = stmt.where(TimeSlot.date == on_date)

    stmt = stmt.order_by(TimeSlot.date, TimeSlot.time)
    return session.exec(stmt).all()


@router.post("/slots", response_model=TimeSlotPublic, status_code=201)
def create_slot(
    payload: TimeSlotCreate,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
    feed: ChangeFeed = Depends(get_feed),
):
    if session.get(Service, payload.service_id) is None:
        raise HTTPException(status_code=422, detail="Service not found")

    # minutes only; seconds would make "14:00" and "14:00:30" different slots
    slot = TimeSlot(
        service_id=payload.service_id,
        date=payload.date,
        time=payload.time.replace(second=0, microsecond=0, tzinfo=None),
        status=SlotStatus.available.value,
    )
    session.add(slot)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Slot already exists for that service, date and time")

    session.refresh(slot)
    feed.publish("timeslot", "insert", slot.id)
    return slot


@router.delete("/slots/{slot_id}", status_code=204)
def delete_slot(
    slot_id: int,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
    feed: ChangeFeed = Depends(get_feed),
):
    slot = session.get(TimeSlot, slot_id)
    if slot is None:
        raise HTTPException(status_code=404, detail="Slot not found")
    if slot.status == SlotStatus.booked.value:
        raise HTTPException(status_code=409, detail="Slot is booked, remove its appointment first")

    # conditional, a client may be reserving it right now
    session.expunge(slot)
    result = session.exec(
        delete(TimeSlot)
        .where(TimeSlot.id == slot_id)
        .where(TimeSlot.status == SlotStatus.available.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.rollback()
        raise HTTPException(status_code=409, detail="Slot is booked, remove its appointment first")
    session.commit()
    feed.publish("timeslot", "delete", slot_id)
    return None


@router.get("/admin/slots/inconsistent", response_model=List[TimeSlotPublic])
def inconsistent_slots(
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
):
    return find_inconsistent_slots(session)


@router.post("/admin/slots/{slot_id}/repair", response_model=TimeSlotPublic)
def repair(
    slot_id: int,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
    feed: ChangeFeed = Depends(get_feed),
):
    slot = repair_slot(session, slot_id)
    if slot is None:
        raise HTTPException(status_code=404, detail="Slot not found")
    feed.publish("timeslot", "update", slot_id)
    return slot
