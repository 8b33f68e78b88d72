# tests/routers/test_appointments_routes.py
import uuid
from datetime import datetime, timedelta, timezone

from tests.conftest import API, auth_headers, future_slot


def body_for(doctor, start: datetime, end: datetime, **extra) -> dict:
    return {
        "doctor_id": str(doctor.id),
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        **extra,
    }


async def book(client, doctor, user, start, end, **extra):
    return await client.post(
        f"{API}/appointments", json=body_for(doctor, start, end, **extra), headers=auth_headers(user)
    )


async def test_book_and_read_back(client, doctor, patient, other_patient, admin) -> None:
    start, end = future_slot()
    resp = await book(client, doctor, patient, start, end, reason="Chest pain")

    assert resp.status_code == 201
    appt = resp.json()
    assert appt["status"] == "SCHEDULED"
    assert appt["patient_id"] == str(patient.id)
    assert appt["reason"] == "Chest pain"
    assert appt["patient_arrived"] is False
    assert datetime.fromisoformat(appt["start_time"].replace("Z", "+00:00")) == start

    own = await client.get(f"{API}/appointments/{appt['id']}", headers=auth_headers(patient))
    assert own.status_code == 200

    foreign = await client.get(f"{API}/appointments/{appt['id']}", headers=auth_headers(other_patient))
    assert foreign.status_code == 403

    as_admin = await client.get(f"{API}/appointments/{appt['id']}", headers=auth_headers(admin))
    assert as_admin.status_code == 200

    missing = await client.get(f"{API}/appointments/{uuid.uuid4()}", headers=auth_headers(admin))
    assert missing.status_code == 404


async def test_double_booking_is_409(client, doctor, patient, other_patient) -> None:
    start, end = future_slot(minutes=60)
    assert (await book(client, doctor, patient, start, end)).status_code == 201

    clash = await book(client, doctor, other_patient, start + timedelta(minutes=30), end + timedelta(minutes=30))
    assert clash.status_code == 409
    assert clash.json()["detail"] == "Doctor is not available at the selected time slot"

    adjacent = await book(client, doctor, other_patient, end, end + timedelta(minutes=30))
    assert adjacent.status_code == 201


async def test_booking_validation(client, doctor, patient) -> None:
    start, end = future_slot()

    inverted = await book(client, doctor, patient, end, start)
    assert inverted.status_code == 400
    assert inverted.json()["detail"] == "Start time must be before end time"

    past_start = datetime.now(timezone.utc) - timedelta(days=1)
    past = await book(client, doctor, patient, past_start, past_start + timedelta(minutes=30))
    assert past.status_code == 400

    far_start = datetime.now(timezone.utc) + timedelta(days=200)
    far = await book(client, doctor, patient, far_start, far_start + timedelta(minutes=30))
    assert far.status_code == 400

    early_start, early_end = future_slot(hour=6)
    early = await book(client, doctor, patient, early_start, early_end)
    assert early.status_code == 400
    assert "available hours" in early.json()["detail"]

    unknown = await client.post(
        f"{API}/appointments",
        json={**body_for(doctor, start, end), "doctor_id": str(uuid.uuid4())},
        headers=auth_headers(patient),
    )
    assert unknown.status_code == 404

    malformed = await client.post(
        f"{API}/appointments",
        json={"doctor_id": "nope", "start_time": "tomorrow"},
        headers=auth_headers(patient),
    )
    assert malformed.status_code == 400


async def test_cancel_flow(client, doctor, patient, other_patient) -> None:
    start, end = future_slot()
    appt_id = (await book(client, doctor, patient, start, end)).json()["id"]

    foreign = await client.post(f"{API}/appointments/{appt_id}/cancel", headers=auth_headers(other_patient))
    assert foreign.status_code == 403

    cancelled = await client.post(f"{API}/appointments/{appt_id}/cancel", headers=auth_headers(patient))
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "CANCELLED"

    again = await client.post(f"{API}/appointments/{appt_id}/cancel", headers=auth_headers(patient))
    assert again.status_code == 400
    assert again.json()["detail"] == "Appointment is already cancelled"

    # the slot is free again
    assert (await book(client, doctor, other_patient, start, end)).status_code == 201


async def test_cancel_inside_notice_period_is_rejected(client, doctor, patient) -> None:
    start = datetime.now(timezone.utc).replace(second=0, microsecond=0) + timedelta(hours=2)
    # move into the 08:00-18:00 window while staying less than 24 hours away
    if start.hour < 8:
        start = start.replace(hour=9, minute=0)
    elif start.hour >= 17:
        start = (start + timedelta(days=1)).replace(hour=9, minute=0)
    resp = await book(client, doctor, patient, start, start + timedelta(minutes=30))
    assert resp.status_code == 201

    cancel = await client.post(f"{API}/appointments/{resp.json()['id']}/cancel", headers=auth_headers(patient))
    assert cancel.status_code == 400
    assert "24 hours" in cancel.json()["detail"]


async def test_patch_appointment(client, doctor, patient, other_patient, admin) -> None:
    start, end = future_slot()
    appt_id = (await book(client, doctor, patient, start, end)).json()["id"]

    resp = await client.patch(
        f"{API}/appointments/{appt_id}",
        json={"notes": "Fasting required", "status": "CONFIRMED"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["notes"] == "Fasting required"
    assert resp.json()["status"] == "CONFIRMED"

    foreign = await client.patch(
        f"{API}/appointments/{appt_id}", json={"notes": "x"}, headers=auth_headers(other_patient)
    )
    assert foreign.status_code == 403

    bad_status = await client.patch(
        f"{API}/appointments/{appt_id}", json={"status": "LOST"}, headers=auth_headers(patient)
    )
    assert bad_status.status_code == 400

    null_status = await client.patch(
        f"{API}/appointments/{appt_id}", json={"status": None}, headers=auth_headers(patient)
    )
    assert null_status.status_code == 400

    cleared = await client.patch(
        f"{API}/appointments/{appt_id}", json={"notes": None}, headers=auth_headers(patient)
    )
    assert cleared.status_code == 200
    assert cleared.json()["notes"] is None
    assert cleared.json()["status"] == "CONFIRMED"


async def test_patch_cannot_revive_into_a_taken_slot(client, doctor, patient, other_patient) -> None:
    start, end = future_slot()
    same_start_id = (await book(client, doctor, patient, start, end)).json()["id"]
    overlapping_id = (
        await book(client, doctor, patient, end, end + timedelta(minutes=30))
    ).json()["id"]
    for appt_id in (same_start_id, overlapping_id):
        cancel = await client.post(f"{API}/appointments/{appt_id}/cancel", headers=auth_headers(patient))
        assert cancel.status_code == 200

    assert (await book(client, doctor, other_patient, start, end)).status_code == 201
    later = await book(client, doctor, other_patient, end + timedelta(minutes=15), end + timedelta(minutes=45))
    assert later.status_code == 201

    for appt_id in (same_start_id, overlapping_id):
        revived = await client.patch(
            f"{API}/appointments/{appt_id}", json={"status": "SCHEDULED"}, headers=auth_headers(patient)
        )
        assert revived.status_code == 409
        assert revived.json()["detail"] == "Doctor is not available at the selected time slot"

    mine = await client.get(f"{API}/appointments/{same_start_id}", headers=auth_headers(patient))
    assert mine.json()["status"] == "CANCELLED"


async def test_listings(client, doctor, patient, other_patient, admin) -> None:
    first_start, first_end = future_slot(days=2)
    second_start, second_end = future_slot(days=4)
    third_start, third_end = future_slot(days=2, hour=14)
    await book(client, doctor, patient, second_start, second_end)
    await book(client, doctor, patient, first_start, first_end)
    await book(client, doctor, other_patient, third_start, third_end)

    mine = await client.get(f"{API}/appointments/my", headers=auth_headers(patient))
    assert mine.status_code == 200
    assert mine.json()["total"] == 2
    starts = [i["start_time"] for i in mine.json()["items"]]
    assert starts == sorted(starts)

    upcoming = await client.get(f"{API}/appointments/upcoming", headers=auth_headers(patient))
    assert len(upcoming.json()) == 2

    assert (await client.get(f"{API}/appointments", headers=auth_headers(patient))).status_code == 403
    everything = await client.get(f"{API}/appointments", headers=auth_headers(admin))
    assert everything.json()["total"] == 3

    for_doctor = await client.get(
        f"{API}/appointments/doctor/{doctor.id}",
        params={"start_date": first_start.isoformat(), "end_date": (first_start + timedelta(days=1)).isoformat()},
        headers=auth_headers(admin),
    )
    assert for_doctor.status_code == 200
    assert len(for_doctor.json()) == 2

    schedule = await client.get(
        f"{API}/appointments/doctor/{doctor.id}/schedule",
        params={"date": first_start.date().isoformat()},
        headers=auth_headers(admin),
    )
    assert len(schedule.json()) == 2

    denied = await client.get(f"{API}/appointments/doctor/{doctor.id}", headers=auth_headers(patient))
    assert denied.status_code == 403

    history = await client.get(f"{API}/users/appointments", headers=auth_headers(patient))
    assert len(history.json()) == 2


async def test_admin_delete(client, doctor, patient, admin) -> None:
    start, end = future_slot()
    appt_id = (await book(client, doctor, patient, start, end)).json()["id"]

    assert (await client.delete(f"{API}/appointments/{appt_id}", headers=auth_headers(patient))).status_code == 403
    assert (await client.delete(f"{API}/appointments/{appt_id}", headers=auth_headers(admin))).status_code == 204
    assert (await client.get(f"{API}/appointments/{appt_id}", headers=auth_headers(admin))).status_code == 404
