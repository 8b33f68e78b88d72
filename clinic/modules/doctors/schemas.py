# clinic/modules/doctors/schemas.py
from __future__ import annotations

import re
from datetime import datetime, time
from decimal import Decimal
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    EmailStr,
    Field,
    StringConstraints,
    field_serializer,
    field_validator,
)

from clinic.modules.doctors.models import Weekday

HHMM_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")

NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
PhoneStr = Annotated[str, StringConstraints(pattern=r"^\+?[1-9]\d{0,15}$")]


def parse_hhmm(value) -> time:
    """Accept "HH:MM" (or an existing time) and return a time."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise ValueError("time must be in HH:MM format")
    m = HHMM_RE.match(value.strip())
    if not m:
        raise ValueError("time must be in HH:MM format")
    return time(int(m.group(1)), int(m.group(2)))


class _DoctorFields(BaseModel):
    @field_validator("start_time", "end_time", mode="before", check_fields=False)
    @classmethod
    def _hhmm(cls, v):
        if v is None:
            return v
        return parse_hhmm(v)

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def _normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("available_days", check_fields=False)
    @classmethod
    def _dedupe_days(cls, v):
        if v is None:
            return v
        seen: list[Weekday] = []
        for day in v:
            if day not in seen:
                seen.append(day)
        return seen


class DoctorCreate(_DoctorFields):
    name: NameStr
    specialization: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    email: EmailStr
    phone: PhoneStr
    experience: int = Field(..., ge=0, le=50)
    license_number: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
    hospital: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
    bio: Optional[str] = None
    profile_image: Optional[str] = None
    consultation_fee: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    available_days: List[Weekday] = Field(..., examples=[["Monday", "Tuesday"]])
    start_time: time = Field(..., description="HH:MM", examples=["09:00"])
    end_time: time = Field(..., description="HH:MM", examples=["17:00"])
    appointment_duration: int = Field(default=30, ge=15, le=180)
    is_active: bool = True


class DoctorUpdate(_DoctorFields):
    name: Optional[NameStr] = None
    specialization: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[PhoneStr] = None
    experience: Optional[int] = Field(default=None, ge=0, le=50)
    license_number: Optional[str] = None
    hospital: Optional[str] = None
    bio: Optional[str] = None
    profile_image: Optional[str] = None
    consultation_fee: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    available_days: Optional[List[Weekday]] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    appointment_duration: Optional[int] = Field(default=None, ge=15, le=180)
    is_active: Optional[bool] = None

    # only bio and profile_image may be cleared
    @field_validator(
        "name",
        "specialization",
        "email",
        "phone",
        "experience",
        "license_number",
        "hospital",
        "consultation_fee",
        "available_days",
        "start_time",
        "end_time",
        "appointment_duration",
        "is_active",
    )
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("field may not be null")
        return v


class DoctorPublic(BaseModel):
    id: UUID
    name: str
    specialization: str
    email: EmailStr
    phone: str
    experience: int
    license_number: str
    hospital: str
    bio: Optional[str] = None
    profile_image: Optional[str] = None
    consultation_fee: Decimal
    available_days: List[Weekday]
    start_time: time
    end_time: time
    appointment_duration: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_serializer("start_time", "end_time")
    def _format_hhmm(self, v: time) -> str:
        return v.strftime("%H:%M")


class DoctorListParams(BaseModel):
    specialization: Optional[str] = None
    search: Optional[str] = Field(
        default=None,
        description="Case-insensitive search over name, specialization, hospital",
    )
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class DoctorPage(BaseModel):
    items: List[DoctorPublic]
    total: int
    page: int
    limit: int
    total_pages: int


class AvailableSlot(BaseModel):
    start_time: datetime
    end_time: datetime
    available: bool
