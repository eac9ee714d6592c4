# salon/routers/jobs_routes.py

from fastapi import APIRouter, Depends

from salon.changes import ChangeFeed
from salon.core.sweeps import cleanup_past_appointments, send_due_reminders
from salon.db import session_factory
from salon.deps import get_feed, require_admin
from salon.mailer import Mailer, get_mailer
from salon.schemas import CleanupReport, ReminderReport

router = APIRouter(
    prefix="/admin/jobs",
    tags=["jobs"],
)


def get_session_factory():
    return session_factory


@router.post("/cleanup", response_model=CleanupReport)
def run_cleanup(
    admin: dict = Depends(require_admin),
    factory=Depends(get_session_factory),
    feed: ChangeFeed = Depends(get_feed),
):
    return cleanup_past_appointments(factory, feed=feed)


@router.post("/reminders", response_model=ReminderReport)
def run_reminders(
    admin: dict = Depends(require_admin),
    factory=Depends(get_session_factory),
    mailer: Mailer = Depends(get_mailer),
):
    return send_due_reminders(factory, mailer)
