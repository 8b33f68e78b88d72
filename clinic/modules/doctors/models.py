# clinic/modules/doctors/models.py
from __future__ import annotations

from datetime import time
from decimal import Decimal
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column

from clinic.db.base import Base, ReprMixin, TimestampMixin, UUIDPKMixin


class Weekday(str, PyEnum):
    # Order matches datetime.weekday(): Monday == 0
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        return list(cls)[index]


class Doctor(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    A doctor in the directory. Removal is a soft delete (is_active = false).
    """

    __tablename__ = "doctors"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    specialization: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    experience: Mapped[int] = mapped_column(Integer, nullable=False)
    license_number: Mapped[str] = mapped_column(String(50), nullable=False)
    hospital: Mapped[str] = mapped_column(String(200), nullable=False)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    profile_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    consultation_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Weekday names, e.g. ["Monday", "Tuesday"]
    available_days: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    appointment_duration: Mapped[int] = mapped_column(
        Integer, nullable=False, default=30, server_default="30"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_doctors_email"),
        UniqueConstraint("license_number", name="uq_doctors_license_number"),
        CheckConstraint("start_time < end_time", name="ck_doctors_hours_order"),
        CheckConstraint(
            "appointment_duration BETWEEN 15 AND 180",
            name="ck_doctors_duration_range",
        ),
        Index("ix_doctors_active_name", "is_active", "name"),
        Index("ix_doctors_specialization", "specialization"),
    )
