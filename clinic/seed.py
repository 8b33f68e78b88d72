# clinic/seed.py
"""
Demo data loader: one admin, three patients and six doctors.

    python -m clinic.seed [--create-tables]

Existing rows (matched on email) are left untouched, so the script can be
re-run safely.
"""
import argparse
import asyncio
from datetime import date, time
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.security import hash_password
from clinic.db.sql import AsyncSessionLocal, engine, init_db
from clinic.modules.doctors import repository as doctors_repo
from clinic.modules.users import repository as users_repo
from clinic.modules.users.models import UserRole

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]

ADMIN = {
    "name": "System Administrator",
    "email": "admin@hospital.com",
    "password": "admin123",
    "role": UserRole.ADMIN,
    "phone": "+1234567890",
}

PATIENTS = [
    {
        "name": "John Doe",
        "email": "john.doe@example.com",
        "phone": "+1234567891",
        "date_of_birth": date(1990, 1, 15),
        "address": "123 Main St, City, State, 12345",
    },
    {
        "name": "Jane Smith",
        "email": "jane.smith@example.com",
        "phone": "+1234567892",
        "date_of_birth": date(1985, 6, 20),
        "address": "456 Oak Ave, City, State, 67890",
    },
    {
        "name": "Bob Johnson",
        "email": "bob.johnson@example.com",
        "phone": "+1234567893",
        "date_of_birth": date(1978, 11, 3),
        "address": "789 Pine Rd, City, State, 54321",
    },
]
PATIENT_PASSWORD = "patient123"

DOCTORS = [
    {
        "name": "Dr. Sarah Wilson",
        "specialization": "Cardiology",
        "email": "dr.sarah.wilson@hospital.com",
        "phone": "+1234567800",
        "experience": 15,
        "license_number": "MD001234",
        "hospital": "City General Hospital",
        "bio": "Interventional cardiology and heart disease prevention.",
        "consultation_fee": Decimal("200.00"),
        "available_days": WEEKDAYS,
        "start_time": time(9, 0),
        "end_time": time(17, 0),
        "appointment_duration": 30,
    },
    {
        "name": "Dr. Michael Brown",
        "specialization": "Neurology",
        "email": "dr.michael.brown@hospital.com",
        "phone": "+1234567801",
        "experience": 12,
        "license_number": "MD001235",
        "hospital": "City General Hospital",
        "bio": "Neurological disorders and brain injuries.",
        "consultation_fee": Decimal("180.00"),
        "available_days": ["Monday", "Wednesday", "Friday"],
        "start_time": time(8, 0),
        "end_time": time(16, 0),
        "appointment_duration": 45,
    },
    {
        "name": "Dr. Emily Davis",
        "specialization": "Pediatrics",
        "email": "dr.emily.davis@hospital.com",
        "phone": "+1234567802",
        "experience": 8,
        "license_number": "MD001236",
        "hospital": "Children's Medical Center",
        "bio": "Comprehensive healthcare for children and adolescents.",
        "consultation_fee": Decimal("150.00"),
        "available_days": ["Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"],
        "start_time": time(10, 0),
        "end_time": time(18, 0),
        "appointment_duration": 30,
    },
    {
        "name": "Dr. Robert Garcia",
        "specialization": "Orthopedics",
        "email": "dr.robert.garcia@hospital.com",
        "phone": "+1234567803",
        "experience": 20,
        "license_number": "MD001237",
        "hospital": "Sports Medicine Center",
        "bio": "Sports medicine and joint replacement.",
        "consultation_fee": Decimal("220.00"),
        "available_days": ["Monday", "Tuesday", "Thursday", "Friday"],
        "start_time": time(7, 0),
        "end_time": time(15, 0),
        "appointment_duration": 45,
    },
    {
        "name": "Dr. Lisa Martinez",
        "specialization": "Dermatology",
        "email": "dr.lisa.martinez@hospital.com",
        "phone": "+1234567804",
        "experience": 10,
        "license_number": "MD001238",
        "hospital": "Skin Care Clinic",
        "bio": "Medical and cosmetic dermatology.",
        "consultation_fee": Decimal("175.00"),
        "available_days": WEEKDAYS,
        "start_time": time(9, 30),
        "end_time": time(17, 30),
        "appointment_duration": 30,
    },
    {
        "name": "Dr. David Lee",
        "specialization": "Psychiatry",
        "email": "dr.david.lee@hospital.com",
        "phone": "+1234567805",
        "experience": 14,
        "license_number": "MD001239",
        "hospital": "Mental Health Center",
        "bio": "Anxiety, depression and behavioral disorders.",
        "consultation_fee": Decimal("190.00"),
        "available_days": ["Monday", "Wednesday", "Thursday", "Friday"],
        "start_time": time(11, 0),
        "end_time": time(19, 0),
        "appointment_duration": 60,
    },
]


async def seed_users(session: AsyncSession) -> int:
    created = 0
    accounts = [ADMIN] + [
        {**p, "password": PATIENT_PASSWORD, "role": UserRole.PATIENT} for p in PATIENTS
    ]
    for account in accounts:
        if await users_repo.get_by_email(session, account["email"]):
            continue
        await users_repo.create_user(
            session,
            name=account["name"],
            email=account["email"],
            password_hash=hash_password(account["password"]),
            role=account["role"],
            phone=account.get("phone"),
            date_of_birth=account.get("date_of_birth"),
            address=account.get("address"),
        )
        created += 1
    return created


async def seed_doctors(session: AsyncSession) -> int:
    created = 0
    for values in DOCTORS:
        existing = await doctors_repo.find_by_email_or_license(
            session, email=values["email"], license_number=values["license_number"]
        )
        if existing:
            continue
        await doctors_repo.create_doctor(session, dict(values))
        created += 1
    return created


async def seed(create_tables: bool = False) -> tuple[int, int]:
    if create_tables:
        await init_db()

    async with AsyncSessionLocal() as session:
        async with session.begin():
            users = await seed_users(session)
            doctors = await seed_doctors(session)
    return users, doctors


def main() -> None:
    parser = argparse.ArgumentParser(description="Load demo users and doctors")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Run metadata.create_all before seeding",
    )
    args = parser.parse_args()

    async def _run():
        try:
            return await seed(create_tables=args.create_tables)
        finally:
            await engine.dispose()

    users, doctors = asyncio.run(_run())
    print(f"[seed] Created users: {users}, doctors: {doctors}")
    print(f"[seed] Admin: {ADMIN['email']} / {ADMIN['password']}")
    print(f"[seed] Patient: {PATIENTS[0]['email']} / {PATIENT_PASSWORD}")


if __name__ == "__main__":
    main()
