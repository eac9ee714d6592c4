"""Slot reservation and release."""
from sqlalchemy import update

from salon.core.allocator import (
    find_inconsistent_slots,
    release,
    repair_slot,
    reserve,
    slot_is_consistent,
)
from salon.core.booking import book
from salon.models import SlotStatus, TimeSlot


def _status(factory, slot_id):
    with factory() as s:
        return s.get(TimeSlot, slot_id).status


def test_reserve_available_slot(session, factory, make_slot):
    slot = make_slot()

    assert reserve(session, slot.id) is True
    session.commit()

    assert _status(factory, slot.id) == SlotStatus.booked.value


def test_second_reserve_loses(factory, make_slot):
    """Two sessions racing for one slot: exactly one wins."""
    slot = make_slot()

    with factory() as first, factory() as second:
        won_first = reserve(first, slot.id)
        first.commit()
        won_second = reserve(second, slot.id)
        second.commit()

    assert (won_first, won_second) == (True, False)
    assert _status(factory, slot.id) == SlotStatus.booked.value


def test_reserve_unknown_slot(session):
    assert reserve(session, 9999) is False


def test_reserve_checks_service(session, make_slot, service):
    slot = make_slot()

    assert reserve(session, slot.id, service_id=service.id + 1) is False
    assert reserve(session, slot.id, service_id=service.id) is True


def test_release_is_idempotent(session, factory, make_slot):
    slot = make_slot()
    reserve(session, slot.id)
    session.commit()

    release(session, slot.id)
    session.commit()
    release(session, slot.id)
    session.commit()

    assert _status(factory, slot.id) == SlotStatus.available.value


def test_release_keeps_slot_held_by_active_appointment(session, factory, make_slot, make_user):
    slot = make_slot()
    client = make_user("ana@example.com")
    book(session, client.id, slot.service_id, slot.id)

    release(session, slot.id)
    session.commit()

    assert _status(factory, slot.id) == SlotStatus.booked.value
    with factory() as s:
        assert slot_is_consistent(s, slot.id)


def test_inconsistent_slots_are_reported_and_repaired(session, factory, make_slot):
    stuck = make_slot()
    fine = make_slot(at=stuck.time.replace(hour=15))
    # booked with no appointment, as a failed compensation would leave it
    session.exec(update(TimeSlot).where(TimeSlot.id == stuck.id).values(status=SlotStatus.booked.value))
    session.commit()

    with factory() as s:
        assert [slot.id for slot in find_inconsistent_slots(s)] == [stuck.id]

    with factory() as s:
        repaired = repair_slot(s, stuck.id)
        assert repaired.status == SlotStatus.available.value

    with factory() as s:
        assert find_inconsistent_slots(s) == []
        assert slot_is_consistent(s, fine.id)


def test_repair_unknown_slot(session):
    assert repair_slot(session, 424242) is None
