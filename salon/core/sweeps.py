# salon/core/sweeps.py

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlmodel import Session, select

from salon.changes import ChangeFeed
from salon.config import settings
from salon.core.booking import cancel
from salon.core.clock import format_date, format_time, slot_start, studio_now
from salon.data import REMINDER_WINDOW_END_MINUTES, REMINDER_WINDOW_START_MINUTES
from salon.email_templates import admin_notification_email, client_reminder_email
from salon.errors import NotFound, NotificationDeliveryFailed
from salon.mailer import Mailer
from salon.models import (
    Appointment,
    AppointmentStatus,
    NotificationLog,
    NotificationStatus,
    NotificationType,
    Profile,
    Service,
    SiteSetting,
    TimeSlot,
    User,
)
from salon.schemas import CleanupReport, ReminderReport

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def _active_appointments_with_slots(session: Session):
    return session.exec(
        select(Appointment, TimeSlot, Service)
        .join(TimeSlot, Appointment.time_slot_id == TimeSlot.id)
        .join(Service, Appointment.service_id == Service.id)
        .where(Appointment.status == AppointmentStatus.active.value)
        .order_by(TimeSlot.date, TimeSlot.time, Appointment.id)
    ).all()


def cleanup_past_appointments(
    session_factory: SessionFactory,
    now: Optional[datetime] = None,
    feed: Optional[ChangeFeed] = None,
) -> CleanupReport:
    """Delete active appointments whose slot start is before ``now``.

    One "now" for the whole pass. Each appointment is removed in its own
    transaction through the cancellation workflow, so its slot is released
    with it; a failure on one is logged and the rest still run. Failing to
    load the work list propagates.
    """
    now = now or studio_now()
    report = CleanupReport(now=now)

    with session_factory() as session:
        rows = _active_appointments_with_slots(session)
        past = [
            (appt.id, slot.date, slot.time)
            for appt, slot, _service in rows
            if slot_start(slot.date, slot.time) < now
        ]

    logger.info("sweep.cleanup.start", extra={"active": len(rows), "past": len(past), "now": now.isoformat()})

    for appointment_id, slot_date, slot_time in past:
        try:
            with session_factory() as session:
                cancel(session, appointment_id, feed=feed)
        except NotFound:
            # already gone, e.g. an overlapping run or the client cancelled
            continue
        except Exception:
            logger.exception("sweep.cleanup.item_failed", extra={"appointment_id": appointment_id})
            report.failed.append(appointment_id)
            continue

        report.deleted += 1
        report.appointments.append(
            {"id": appointment_id, "date": slot_date.isoformat(), "time": format_time(slot_time)}
        )

    logger.info("sweep.cleanup.done", extra={"deleted": report.deleted, "failed": len(report.failed)})
    return report


def _admin_email(session: Session) -> str:
    setting = session.get(SiteSetting, "admin_email")
    if setting is not None and setting.value:
        return setting.value
    return settings.default_admin_notification_email


def _already_sent(session_factory: SessionFactory, appointment_id: int, notification_type: str) -> bool:
    with session_factory() as session:
        found = session.exec(
            select(NotificationLog.id)
            .where(NotificationLog.appointment_id == appointment_id)
            .where(NotificationLog.notification_type == notification_type)
            .where(NotificationLog.status == NotificationStatus.sent.value)
        ).first()
    return found is not None


def _record(
    session_factory: SessionFactory,
    appointment_id: int,
    notification_type: str,
    sent_to: str,
    error: Optional[str],
) -> None:
    with session_factory() as session:
        session.add(
            NotificationLog(
                appointment_id=appointment_id,
                notification_type=notification_type,
                sent_to=sent_to,
                status=NotificationStatus.failed.value if error else NotificationStatus.sent.value,
                error_message=error,
            )
        )
        session.commit()


def _contact_info(session_factory: SessionFactory, client_id: str) -> Optional[dict]:
    with session_factory() as session:
        user = session.get(User, client_id)
        profile = session.get(Profile, client_id)
        if user is None or not user.email or profile is None:
            return None
        return {"email": user.email, "name": profile.name, "phone": profile.phone}


def _remind(session_factory: SessionFactory, mailer: Mailer, item: dict, admin_email: str, report: ReminderReport) -> None:
    appointment_id = item["appointment_id"]

    pending = [
        t.value for t in NotificationType if not _already_sent(session_factory, appointment_id, t.value)
    ]
    if not pending:
        logger.info("sweep.reminders.already_sent", extra={"appointment_id": appointment_id})
        report.skipped.append(appointment_id)
        return

    client = _contact_info(session_factory, item["client_id"])
    if client is None:
        logger.warning("sweep.reminders.missing_client", extra={"appointment_id": appointment_id})
        report.skipped.append(appointment_id)
        return

    date_str = format_date(item["date"])
    time_str = format_time(item["time"])
    messages = {
        NotificationType.client_reminder.value: (
            client["email"],
            client_reminder_email(settings.studio_name, client["name"], item["service_name"], date_str, time_str),
        ),
        NotificationType.admin_notification.value: (
            admin_email,
            admin_notification_email(
                client["name"], client["email"], client["phone"], item["service_name"], date_str, time_str
            ),
        ),
    }

    any_failed = False
    for notification_type in pending:
        to, (subject, html) = messages[notification_type]
        error = None
        try:
            mailer.send(to, subject, html)
        except NotificationDeliveryFailed as exc:
            error = exc.detail
            any_failed = True

        _record(session_factory, appointment_id, notification_type, to, error)
        if error:
            report.emails_failed += 1
            logger.warning(
                "sweep.reminders.send_failed",
                extra={"appointment_id": appointment_id, "type": notification_type, "error": error},
            )
        else:
            report.emails_sent += 1

    if any_failed:
        report.failed.append(appointment_id)
    else:
        report.notified.append(appointment_id)


def send_due_reminders(
    session_factory: SessionFactory,
    mailer: Mailer,
    now: Optional[datetime] = None,
) -> ReminderReport:
    """Email the client and the admin once per appointment starting in 1-2 hours.

    The notification log is the guard: a type already logged as sent for an
    appointment is never sent again, so overlapping or repeated runs are
    safe. Failed sends are logged and retried on the next run.
    """
    now = now or studio_now()
    window_start = now + timedelta(minutes=REMINDER_WINDOW_START_MINUTES)
    window_end = now + timedelta(minutes=REMINDER_WINDOW_END_MINUTES)
    report = ReminderReport(now=now)

    with session_factory() as session:
        rows = _active_appointments_with_slots(session)
        due = [
            {
                "appointment_id": appt.id,
                "client_id": appt.client_id,
                "service_name": service.name,
                "date": slot.date,
                "time": slot.time,
            }
            for appt, slot, service in rows
            if window_start <= slot_start(slot.date, slot.time) <= window_end
        ]
        admin_email = _admin_email(session)

    report.checked = len(rows)
    report.due = len(due)
    logger.info(
        "sweep.reminders.start",
        extra={"active": len(rows), "due": len(due), "from": window_start.isoformat(), "to": window_end.isoformat()},
    )

    for item in due:
        try:
            _remind(session_factory, mailer, item, admin_email, report)
        except Exception:
            logger.exception("sweep.reminders.item_failed", extra={"appointment_id": item["appointment_id"]})
            report.failed.append(item["appointment_id"])

    logger.info(
        "sweep.reminders.done",
        extra={"sent": report.emails_sent, "failed": report.emails_failed, "skipped": len(report.skipped)},
    )
    return report
