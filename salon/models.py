# salon/models.py

from typing import Optional
from datetime import datetime, timezone, date as Date, time
from enum import Enum
from uuid import uuid4

from sqlalchemy import Index, UniqueConstraint, text
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SlotStatus(str, Enum):
    available = "available"
    booked = "booked"


class AppointmentStatus(str, Enum):
    active = "active"
    cancelled = "cancelled"


class NotificationType(str, Enum):
    client_reminder = "client_reminder"
    admin_notification = "admin_notification"


class NotificationStatus(str, Enum):
    sent = "sent"
    failed = "failed"


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: str = ""
    price: str  # display string, e.g. "R$ 180,00"


class TimeSlot(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("service_id", "date", "time", name="uq_slot_service_date_time"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    service_id: int = Field(foreign_key="service.id", index=True)
    date: Date = Field(index=True)
    time: time
    status: str = SlotStatus.available.value


class Appointment(SQLModel, table=True):
    # At most one active appointment per slot. This is what decides a race
    # when two writers get past the conditional reservation.
    __table_args__ = (
        Index(
            "uq_active_appointment_per_slot",
            "time_slot_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    client_id: str = Field(foreign_key="user.id", index=True)
    service_id: int = Field(foreign_key="service.id")
    time_slot_id: int = Field(foreign_key="timeslot.id")
    status: str = AppointmentStatus.active.value
    created_at: datetime = Field(default_factory=utcnow)


class User(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str  # admin or client


class Profile(SQLModel, table=True):
    user_id: str = Field(foreign_key="user.id", primary_key=True)
    name: str
    phone: str = ""


class NotificationLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    appointment_id: int = Field(index=True)
    notification_type: str
    sent_to: str
    status: str
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class SiteSetting(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: str = ""
