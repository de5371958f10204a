from datetime import datetime

import pytest

from app.core.exceptions import InvalidInputError, NotFoundError, PermissionDeniedError
from app.models.complaint import ComplaintCategory, ComplaintStatus
from app.schemas.profile import StudentRegister
from app.services.complaint_service import get_complaint_service
from app.services.profile_service import get_profile_service


@pytest.mark.parametrize(
    "length, expected",
    [(9, 422), (10, 201), (1000, 201), (1001, 422)],
)
def test_description_length_bounds(client, make_student, length, expected):
    student = make_student()
    r = client.post(
        "/complaints",
        json={"category": "hostel", "description": "x" * length},
        headers=student["headers"],
    )
    assert r.status_code == expected, r.text


def test_unknown_category_rejected(client, make_student):
    student = make_student()
    r = client.post(
        "/complaints",
        json={"category": "parking", "description": "Nowhere to park bikes"},
        headers=student["headers"],
    )
    assert r.status_code == 422


def test_initial_status_follows_emergency_flag(make_student, make_complaint):
    student = make_student()
    assert make_complaint(student)["status"] == "pending"
    emergency = make_complaint(student, description="Sparks from the socket", is_emergency=True)
    assert emergency["status"] == "emergency"
    assert emergency["resolved_at"] is None


def test_admin_cannot_create_complaint(client, admin):
    r = client.post(
        "/complaints",
        json={"category": "system", "description": "Lab server is down again"},
        headers=admin["headers"],
    )
    assert r.status_code == 403


def test_lifecycle_scenario(client, make_student, make_complaint, admin):
    student = make_student()
    complaint = make_complaint(student)
    assert complaint["status"] == "pending"
    assert complaint["resolved_at"] is None

    r = client.patch(
        f"/complaints/{complaint['id']}/status",
        json={"status": "in_progress", "admin_feedback": "Technician assigned"},
        headers=admin["headers"],
    )
    assert r.status_code == 200, r.text
    in_progress = r.json()
    assert in_progress["status"] == "in_progress"
    assert in_progress["admin_feedback"] == "Technician assigned"
    assert datetime.fromisoformat(in_progress["updated_at"]) > datetime.fromisoformat(complaint["updated_at"])
    assert in_progress["resolved_at"] is None

    r = client.patch(
        f"/complaints/{complaint['id']}/status",
        json={"status": "resolved"},
        headers=admin["headers"],
    )
    resolved = r.json()
    assert resolved["status"] == "resolved"
    assert resolved["resolved_at"] is not None
    # Omitted feedback is left untouched
    assert resolved["admin_feedback"] == "Technician assigned"


def test_reopening_clears_resolved_at(client, make_student, make_complaint, admin):
    complaint = make_complaint(make_student())
    url = f"/complaints/{complaint['id']}/status"
    assert client.patch(url, json={"status": "resolved"}, headers=admin["headers"]).json()["resolved_at"]

    reopened = client.patch(url, json={"status": "pending"}, headers=admin["headers"]).json()
    assert reopened["status"] == "pending"
    assert reopened["resolved_at"] is None


def test_empty_feedback_clears_it(client, make_student, make_complaint, admin):
    complaint = make_complaint(make_student())
    url = f"/complaints/{complaint['id']}/status"
    client.patch(url, json={"status": "in_progress", "admin_feedback": "On it"}, headers=admin["headers"])
    r = client.patch(url, json={"status": "in_progress", "admin_feedback": ""}, headers=admin["headers"])
    assert r.json()["admin_feedback"] is None


def test_student_cannot_change_status(client, make_student, make_complaint):
    student = make_student()
    complaint = make_complaint(student)
    r = client.patch(
        f"/complaints/{complaint['id']}/status",
        json={"status": "resolved"},
        headers=student["headers"],
    )
    assert r.status_code == 403
    assert client.get(f"/complaints/{complaint['id']}", headers=student["headers"]).json()["status"] == "pending"


def test_update_unknown_complaint(client, admin):
    r = client.patch(
        "/complaints/00000000-0000-0000-0000-000000000000/status",
        json={"status": "resolved"},
        headers=admin["headers"],
    )
    assert r.status_code == 404
    assert r.json()["detail"] == "Complaint not found"


def test_students_only_see_their_own(client, make_student, make_complaint, admin):
    alice = make_student()
    bob = make_student()
    mine = make_complaint(alice)
    make_complaint(bob, description="Hostel water heater broken")

    listing = client.get("/complaints", headers=alice["headers"]).json()
    assert listing["total"] == 1
    assert listing["items"][0]["id"] == mine["id"]

    assert client.get(f"/complaints/{mine['id']}", headers=bob["headers"]).status_code == 403

    everything = client.get("/complaints", headers=admin["headers"]).json()
    assert everything["total"] == 2
    names = {item["student"]["name"] for item in everything["items"]}
    assert names == {alice["name"], bob["name"]}


def test_list_newest_first_with_status_filter(client, make_student, make_complaint, admin):
    student = make_student()
    first = make_complaint(student, description="First complaint text")
    second = make_complaint(student, description="Second complaint text", is_emergency=True)

    items = client.get("/complaints", headers=student["headers"]).json()["items"]
    assert [item["id"] for item in items] == [second["id"], first["id"]]

    emergencies = client.get("/complaints", params={"status": "emergency"}, headers=admin["headers"]).json()
    assert [item["id"] for item in emergencies["items"]] == [second["id"]]


def test_stats(client, make_student, make_complaint, admin):
    student = make_student()
    make_complaint(student)
    make_complaint(student, description="Another pending issue")
    urgent = make_complaint(student, description="Water leaking into wiring", is_emergency=True)
    client.patch(f"/complaints/{urgent['id']}/status", json={"status": "resolved"}, headers=admin["headers"])

    stats = client.get("/complaints/stats", headers=admin["headers"]).json()
    assert stats == {"total": 3, "pending": 2, "in_progress": 0, "resolved": 1, "emergency": 0}
    assert client.get("/complaints/stats", headers=student["headers"]).status_code == 403


async def _profiles(session):
    service = get_profile_service()
    admin = await service.provision_admin("admin@example.com", "Ravi Menon", "adminpass123", session)
    student = await service.register_student(
        StudentRegister(
            name="Anu Joseph",
            student_id="BRO2024-117",
            batch="BCR54",
            phone="9876543210",
            email="anu@example.com",
            password="securePassword123",
        ),
        session,
    )
    return student, admin


async def test_service_enforces_roles(session):
    student, admin = await _profiles(session)
    service = get_complaint_service()

    with pytest.raises(PermissionDeniedError):
        await service.create_complaint(admin, ComplaintCategory.OTHER, "Admins cannot file", False, session)

    complaint = await service.create_complaint(
        student, ComplaintCategory.ACADEMIC, "Marks not updated on portal", False, session
    )
    with pytest.raises(PermissionDeniedError):
        await service.update_complaint_status(student, complaint.id, ComplaintStatus.RESOLVED, session)


async def test_service_rejects_bad_input(session):
    student, admin = await _profiles(session)
    service = get_complaint_service()

    with pytest.raises(InvalidInputError):
        await service.create_complaint(student, ComplaintCategory.OTHER, "too short", False, session)
    with pytest.raises(InvalidInputError):
        await service.create_complaint(student, "parking", "Nowhere to park bikes", False, session)

    complaint = await service.create_complaint(
        student, ComplaintCategory.OTHER, "Canteen closes too early", False, session
    )
    with pytest.raises(InvalidInputError):
        await service.update_complaint_status(admin, complaint.id, "closed", session)


async def test_service_re_resolving_restamps(session):
    student, admin = await _profiles(session)
    service = get_complaint_service()
    complaint = await service.create_complaint(
        student, ComplaintCategory.HOSTEL, "Fan in room 12 is noisy", False, session
    )

    first = (await service.update_complaint_status(admin, complaint.id, ComplaintStatus.RESOLVED, session)).resolved_at
    second = (await service.update_complaint_status(admin, complaint.id, ComplaintStatus.RESOLVED, session)).resolved_at
    assert second >= first

    with pytest.raises(NotFoundError):
        await service.get_complaint(admin, student.id, session)
