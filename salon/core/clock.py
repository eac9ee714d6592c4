# salon/core/clock.py

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from salon.config import settings


def studio_now() -> datetime:
    """Current wall-clock time at the studio, as a naive datetime.

    Slot dates and times are stored without a zone, so they are only ever
    compared against this value.
    """
    return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)


def slot_start(slot_date: date, slot_time: time) -> datetime:
    return datetime.combine(slot_date, slot_time)


def format_date(value: date) -> str:
    # dd/mm/yyyy straight from the calendar fields
    return f"{value.day:02d}/{value.month:02d}/{value.year}"


def format_time(value: time) -> str:
    return value.strftime("%H:%M")
