# salon/schemas.py

from pydantic import BaseModel, Field, field_serializer
from enum import Enum
from datetime import datetime, date, time
from typing import List, Optional


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    admin = "admin"
    client = "client"


class SlotStatusFilter(str, Enum):
    available = "available"
    booked = "booked"
    all = "all"


class UserRegister(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    name: str = Field(min_length=1)
    phone: str = ""


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None


class UserPublic(BaseModel):
    id: str
    email: str
    role: UserRole
    name: Optional[str] = None
    phone: Optional[str] = None


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    price: str


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[str] = None


class ServicePublic(BaseModel):
    id: int
    name: str
    description: str
    price: str


class TimeSlotCreate(BaseModel):
    service_id: int
    date: date
    time: time


class TimeSlotPublic(BaseModel):
    id: int
    service_id: int
    date: date
    time: time
    status: str

    @field_serializer("time")
    def serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class AppointmentCreate(BaseModel):
    service_id: int
    time_slot_id: int


class AppointmentPublic(BaseModel):
    id: int
    client_id: str
    service_id: int
    time_slot_id: int
    status: str
    created_at: datetime


class AppointmentDetail(AppointmentPublic):
    service_name: str
    date: date
    time: time
    client_name: Optional[str] = None

    @field_serializer("time")
    def serialize_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class SiteSettingUpdate(BaseModel):
    value: str


class ChangeEventPublic(BaseModel):
    seq: int
    table: str
    action: str
    row_id: str
    at: datetime


class ChangesResponse(BaseModel):
    cursor: int
    events: List[ChangeEventPublic]


class CleanupReport(BaseModel):
    now: datetime
    deleted: int = 0
    appointments: List[dict] = Field(default_factory=list)
    failed: List[int] = Field(default_factory=list)


class ReminderReport(BaseModel):
    now: datetime
    checked: int = 0
    due: int = 0
    emails_sent: int = 0
    emails_failed: int = 0
    skipped: List[int] = Field(default_factory=list)
    notified: List[int] = Field(default_factory=list)
    failed: List[int] = Field(default_factory=list)
