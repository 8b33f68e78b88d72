# clinic/modules/appointments/schemas.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from clinic.modules.appointments.models import AppointmentStatus
from clinic.modules.appointments.scheduling import as_utc


class AppointmentCreateRequest(BaseModel):
    """
    Payload to book an appointment.
    - patient_id is taken from the current user, never from the client.
    - Naive timestamps are read as clinic-local time.
    """
    doctor_id: UUID
    start_time: datetime = Field(..., examples=["2026-11-16T10:00:00Z"])
    end_time: datetime = Field(..., examples=["2026-11-16T10:30:00Z"])
    reason: Optional[str] = Field(default=None, max_length=2000)
    symptoms: Optional[str] = Field(default=None, max_length=2000)


class AppointmentUpdateRequest(BaseModel):
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = Field(default=None, max_length=4000)
    reason: Optional[str] = Field(default=None, max_length=2000)
    symptoms: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("status")
    @classmethod
    def _status_not_null(cls, v):
        if v is None:
            raise ValueError("status may not be null")
        return v


class AppointmentPublic(BaseModel):
    id: UUID
    doctor_id: UUID
    patient_id: UUID
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    symptoms: Optional[str] = None
    consultation_fee: Decimal
    patient_arrived: bool
    reminder_sent: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class AppointmentListPage(BaseModel):
    """
    Page of appointments (limit/offset pagination).
    """
    items: List[AppointmentPublic]
    total: int
    limit: int
    offset: int
    has_next: bool
