"""Cleanup and reminder sweeps."""
from datetime import date, datetime, time

from sqlmodel import select

from salon.core import sweeps
from salon.core.booking import book
from salon.core.sweeps import cleanup_past_appointments, send_due_reminders
from salon.models import (
    Appointment,
    NotificationLog,
    NotificationStatus,
    NotificationType,
    Profile,
    SiteSetting,
    SlotStatus,
    TimeSlot,
)

DAY = date(2025, 3, 1)


def _booked(session, make_slot, client, at, on=DAY):
    slot = make_slot(on=on, at=at)
    appt = book(session, client.id, slot.service_id, slot.id)
    return appt.id, slot.id


def _status(factory, slot_id):
    with factory() as s:
        return s.get(TimeSlot, slot_id).status


def _logs(factory):
    with factory() as s:
        return s.exec(select(NotificationLog).order_by(NotificationLog.id)).all()


# --- cleanup ---------------------------------------------------------------


def test_cleanup_removes_past_and_keeps_future(session, factory, make_slot, make_user, feed):
    ana = make_user("ana@example.com")
    past_id, past_slot = _booked(session, make_slot, ana, time(14, 0))
    yesterday_id, yesterday_slot = _booked(session, make_slot, ana, time(18, 0), on=date(2025, 2, 28))
    future_id, future_slot = _booked(session, make_slot, ana, time(16, 0))
    now_id, now_slot = _booked(session, make_slot, ana, time(15, 0))

    report = cleanup_past_appointments(factory, now=datetime(2025, 3, 1, 15, 0), feed=feed)

    assert report.deleted == 2
    assert {a["id"] for a in report.appointments} == {past_id, yesterday_id}
    assert {"id": past_id, "date": "2025-03-01", "time": "14:00"} in report.appointments
    assert report.failed == []

    assert _status(factory, past_slot) == SlotStatus.available.value
    assert _status(factory, yesterday_slot) == SlotStatus.available.value
    # strictly before now; a slot starting right now stays
    assert _status(factory, now_slot) == SlotStatus.booked.value
    assert _status(factory, future_slot) == SlotStatus.booked.value

    with factory() as s:
        remaining = {a.id for a in s.exec(select(Appointment)).all()}
    assert remaining == {future_id, now_id}


def test_cleanup_rerun_is_a_noop(session, factory, make_slot, make_user):
    ana = make_user("ana@example.com")
    _booked(session, make_slot, ana, time(9, 0))
    now = datetime(2025, 3, 1, 12, 0)

    assert cleanup_past_appointments(factory, now=now).deleted == 1
    assert cleanup_past_appointments(factory, now=now).deleted == 0


def test_cleanup_continues_after_item_failure(session, factory, make_slot, make_user, monkeypatch):
    ana = make_user("ana@example.com")
    bad_id, bad_slot = _booked(session, make_slot, ana, time(9, 0))
    good_id, good_slot = _booked(session, make_slot, ana, time(10, 0))

    real_cancel = sweeps.cancel

    def flaky_cancel(session, appointment_id, actor=None, feed=None):
        if appointment_id == bad_id:
            raise RuntimeError("database is locked")
        return real_cancel(session, appointment_id, actor=actor, feed=feed)

    monkeypatch.setattr(sweeps, "cancel", flaky_cancel)

    report = cleanup_past_appointments(factory, now=datetime(2025, 3, 1, 12, 0))

    assert report.deleted == 1
    assert report.failed == [bad_id]
    assert _status(factory, good_slot) == SlotStatus.available.value
    # untouched, picked up on the next run
    assert _status(factory, bad_slot) == SlotStatus.booked.value


# --- reminders -------------------------------------------------------------


NOON = datetime(2025, 3, 1, 12, 0)


def test_reminders_inside_window_only(session, factory, make_slot, make_user, mailer):
    ana = make_user("ana@example.com", name="Ana", phone="11 99999-0000")
    in_window, _ = _booked(session, make_slot, ana, time(13, 30))
    at_edge, _ = _booked(session, make_slot, ana, time(14, 0))
    _booked(session, make_slot, ana, time(12, 30))
    _booked(session, make_slot, ana, time(15, 0))

    report = send_due_reminders(factory, mailer, now=NOON)

    assert report.checked == 4
    assert report.due == 2
    assert sorted(report.notified) == sorted([in_window, at_edge])
    assert report.emails_sent == 4
    assert [m["to"] for m in mailer.sent].count("ana@example.com") == 2

    client_mail = next(m for m in mailer.sent if m["to"] == "ana@example.com")
    assert "Volume Russo" in client_mail["html"]
    assert "01/03/2025" in client_mail["html"]

    logs = _logs(factory)
    assert len(logs) == 4
    assert {log.status for log in logs} == {NotificationStatus.sent.value}


def test_reminders_are_sent_once(session, factory, make_slot, make_user, mailer):
    ana = make_user("ana@example.com")
    appt_id, _ = _booked(session, make_slot, ana, time(13, 0))

    send_due_reminders(factory, mailer, now=NOON)
    second = send_due_reminders(factory, mailer, now=NOON)

    assert len(mailer.sent) == 2
    assert second.emails_sent == 0
    assert second.skipped == [appt_id]
    types = sorted(log.notification_type for log in _logs(factory))
    assert types == sorted(t.value for t in NotificationType)


def test_admin_address_comes_from_site_settings(session, factory, make_slot, make_user, mailer):
    ana = make_user("ana@example.com")
    _booked(session, make_slot, ana, time(13, 0))
    setting = session.get(SiteSetting, "admin_email")
    setting.value = "owner@studio.example.com"
    session.add(setting)
    session.commit()

    send_due_reminders(factory, mailer, now=NOON)

    assert sorted(m["to"] for m in mailer.sent) == ["ana@example.com", "owner@studio.example.com"]


def test_failed_send_is_logged_and_retried(session, factory, make_slot, make_user, mailer):
    ana = make_user("ana@example.com")
    bia = make_user("bia@example.com")
    ana_appt, _ = _booked(session, make_slot, ana, time(13, 0))
    bia_appt, _ = _booked(session, make_slot, bia, time(13, 30))
    mailer.failing.add("ana@example.com")

    report = send_due_reminders(factory, mailer, now=NOON)

    assert report.failed == [ana_appt]
    assert report.notified == [bia_appt]
    assert report.emails_failed == 1
    assert report.emails_sent == 3
    failed = [log for log in _logs(factory) if log.status == NotificationStatus.failed.value]
    assert len(failed) == 1
    assert failed[0].notification_type == NotificationType.client_reminder.value
    assert "mailbox unavailable" in failed[0].error_message

    mailer.failing.clear()
    mailer.sent.clear()
    retry = send_due_reminders(factory, mailer, now=NOON)

    assert [m["to"] for m in mailer.sent] == ["ana@example.com"]
    assert retry.notified == [ana_appt]
    assert retry.skipped == [bia_appt]


def test_missing_profile_skips_appointment(session, factory, make_slot, make_user, mailer):
    ana = make_user("ana@example.com")
    bia = make_user("bia@example.com")
    ana_appt, _ = _booked(session, make_slot, ana, time(13, 0))
    bia_appt, _ = _booked(session, make_slot, bia, time(13, 15))
    session.delete(session.get(Profile, ana.id))
    session.commit()

    report = send_due_reminders(factory, mailer, now=NOON)

    assert report.skipped == [ana_appt]
    assert report.notified == [bia_appt]
    assert all(log.appointment_id == bia_appt for log in _logs(factory))
