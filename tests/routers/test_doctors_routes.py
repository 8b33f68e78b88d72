# tests/routers/test_doctors_routes.py
import uuid

from tests.conftest import API, auth_headers

DOCTOR_BODY = {
    "name": "Dr. Grace Hopper",
    "specialization": "Neurology",
    "email": "grace@clinic.com",
    "phone": "+15550002",
    "experience": 12,
    "license_number": "LIC-100",
    "hospital": "City Hospital",
    "consultation_fee": 180,
    "available_days": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
    "start_time": "09:00",
    "end_time": "17:00",
    "appointment_duration": 30,
}


async def test_only_admin_creates_doctors(client, patient, admin) -> None:
    denied = await client.post(f"{API}/doctors", json=DOCTOR_BODY, headers=auth_headers(patient))
    assert denied.status_code == 403
    assert denied.json()["detail"] == "insufficient_role"

    resp = await client.post(f"{API}/doctors", json=DOCTOR_BODY, headers=auth_headers(admin))
    assert resp.status_code == 201
    body = resp.json()
    assert body["start_time"] == "09:00"
    assert body["end_time"] == "17:00"
    assert body["is_active"] is True

    dup = await client.post(f"{API}/doctors", json=DOCTOR_BODY, headers=auth_headers(admin))
    assert dup.status_code == 409


async def test_create_doctor_rejects_bad_input(client, admin) -> None:
    headers = auth_headers(admin)

    inverted = await client.post(
        f"{API}/doctors", json={**DOCTOR_BODY, "start_time": "17:00", "end_time": "09:00"}, headers=headers
    )
    assert inverted.status_code == 400
    assert inverted.json()["detail"] == "Start time must be before end time"

    for field, value in [("start_time", "9am"), ("available_days", ["Funday"]), ("appointment_duration", 10)]:
        resp = await client.post(f"{API}/doctors", json={**DOCTOR_BODY, field: value}, headers=headers)
        assert resp.status_code == 400, field


async def test_directory_requires_authentication(client, doctor) -> None:
    assert (await client.get(f"{API}/doctors")).status_code == 401


async def test_list_show_and_specializations(client, doctor, patient) -> None:
    headers = auth_headers(patient)

    listing = await client.get(f"{API}/doctors", params={"specialization": "cardio"}, headers=headers)
    assert listing.status_code == 200
    body = listing.json()
    assert body["total"] == 1
    assert body["page"] == 1
    assert body["limit"] == 10
    assert body["total_pages"] == 1
    assert body["items"][0]["id"] == str(doctor.id)

    specs = await client.get(f"{API}/doctors/specializations", headers=headers)
    assert specs.json() == ["Cardiology"]

    shown = await client.get(f"{API}/doctors/{doctor.id}", headers=headers)
    assert shown.status_code == 200
    assert shown.json()["license_number"] == "LIC-001"

    missing = await client.get(f"{API}/doctors/{uuid.uuid4()}", headers=headers)
    assert missing.status_code == 404


async def test_update_and_soft_delete(client, doctor, admin, patient) -> None:
    headers = auth_headers(admin)

    updated = await client.patch(f"{API}/doctors/{doctor.id}", json={"hospital": "New Wing"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["hospital"] == "New Wing"

    bad_window = await client.patch(f"{API}/doctors/{doctor.id}", json={"end_time": "07:00"}, headers=headers)
    assert bad_window.status_code == 400

    assert (await client.delete(f"{API}/doctors/{doctor.id}", headers=auth_headers(patient))).status_code == 403
    assert (await client.delete(f"{API}/doctors/{doctor.id}", headers=headers)).status_code == 204
    assert (await client.get(f"{API}/doctors/{doctor.id}", headers=headers)).status_code == 404
    assert (await client.delete(f"{API}/doctors/{doctor.id}", headers=headers)).status_code == 404


async def test_available_slots_endpoint(client, doctor, patient) -> None:
    headers = auth_headers(patient)

    resp = await client.get(
        f"{API}/doctors/{doctor.id}/available-slots", params={"date": "2026-10-21"}, headers=headers
    )
    assert resp.status_code == 200
    slots = resp.json()
    # 08:00-18:00 in 30 minute steps
    assert len(slots) == 20
    assert slots[0]["start_time"].startswith("2026-10-21T08:00:00")
    assert all(s["available"] for s in slots)

    bad_date = await client.get(
        f"{API}/doctors/{doctor.id}/available-slots", params={"date": "21/10/2026"}, headers=headers
    )
    assert bad_date.status_code == 400


async def test_patch_with_null_required_field_is_400(client, doctor, admin) -> None:
    headers = auth_headers(admin)

    for field in ("name", "start_time", "email"):
        resp = await client.patch(f"{API}/doctors/{doctor.id}", json={field: None}, headers=headers)
        assert resp.status_code == 400, field

    cleared = await client.patch(f"{API}/doctors/{doctor.id}", json={"bio": None}, headers=headers)
    assert cleared.status_code == 200
    assert cleared.json()["bio"] is None
    assert cleared.json()["name"] == doctor.name
