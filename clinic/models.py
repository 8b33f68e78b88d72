# clinic/models.py
# Import every model module so Base.metadata knows all tables
# (used by init_db, Alembic autogenerate and the test-suite).
from clinic.modules.users.models import AuditLog, User, UserRole
from clinic.modules.doctors.models import Doctor, Weekday
from clinic.modules.appointments.models import Appointment, AppointmentStatus

__all__ = [
    "AuditLog",
    "User",
    "UserRole",
    "Doctor",
    "Weekday",
    "Appointment",
    "AppointmentStatus",
]
