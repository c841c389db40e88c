"""Assignments, grading, attachments and to-do tasks."""
import uuid

import pytest

from tests.helpers import iso, utc


@pytest.fixture
async def assignment(client, auth_headers, student, subject):
    response = await client.post(
        "/api/v1/assignments",
        json={
            "student_id": student["id"],
            "subject_id": subject["id"],
            "title": "Long division",
            "due_date": iso(utc(2026, 2, 10, 17)),
        },
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


# --- Assignments ---


async def test_create_assignment_defaults(assignment):
    assert assignment["status"] == "not_started"
    assert assignment["attachments"] == []
    assert assignment["completed_at"] is None
    assert assignment["due_date"] == "2026-02-10T17:00:00Z"


async def test_assignment_references_must_belong_to_teacher(client, auth_headers, other_headers):
    theirs = await client.post(
        "/api/v1/students", json={"first_name": "Sam", "last_name": "Roe"}, headers=other_headers,
    )
    response = await client.post(
        "/api/v1/assignments",
        json={"student_id": theirs.json()["data"]["id"], "title": "Essay"},
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert "student_id" in response.json()["error"]["details"]

    response = await client.post(
        "/api/v1/assignments", json={"student_id": str(uuid.uuid4()), "title": "Essay"}, headers=auth_headers,
    )
    assert response.status_code == 422


async def test_list_assignments_filters(client, auth_headers, student, assignment):
    await client.post(
        "/api/v1/assignments",
        json={"student_id": student["id"], "title": "Spelling", "status": "in_progress",
              "due_date": iso(utc(2026, 3, 1, 17))},
        headers=auth_headers,
    )

    by_status = await client.get("/api/v1/assignments", params={"status": "in_progress"}, headers=auth_headers)
    assert [a["title"] for a in by_status.json()["data"]] == ["Spelling"]

    by_due = await client.get(
        "/api/v1/assignments",
        params={"due_from": iso(utc(2026, 2, 1)), "due_to": iso(utc(2026, 2, 28))},
        headers=auth_headers,
    )
    assert [a["title"] for a in by_due.json()["data"]] == ["Long division"]

    newest_first = await client.get(
        "/api/v1/assignments", params={"sort_by": "due_date", "sort_order": "desc"}, headers=auth_headers,
    )
    assert [a["title"] for a in newest_first.json()["data"]] == ["Spelling", "Long division"]

    bad_sort = await client.get("/api/v1/assignments", params={"sort_by": "score"}, headers=auth_headers)
    assert bad_sort.status_code == 422


async def test_status_change_tracks_completion(client, auth_headers, assignment):
    url = f"/api/v1/assignments/{assignment['id']}"
    submitted = await client.put(url, json={"status": "submitted"}, headers=auth_headers)
    assert submitted.json()["data"]["completed_at"] is not None

    reopened = await client.put(url, json={"status": "in_progress"}, headers=auth_headers)
    assert reopened.json()["data"]["completed_at"] is None

    cleared = await client.put(url, json={"student_id": None}, headers=auth_headers)
    assert cleared.status_code == 422


async def test_grade_assignment(client, auth_headers, assignment):
    url = f"/api/v1/assignments/{assignment['id']}/grade"
    response = await client.post(
        url, json={"score": 45, "max_score": 50, "grade": "A", "feedback": "Neat work"}, headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "graded"
    assert data["score"] == 45
    assert data["max_score"] == 50
    assert data["grade"] == "A"
    assert data["completed_at"] is not None

    too_high = await client.post(url, json={"score": 60}, headers=auth_headers)
    assert too_high.status_code == 422

    empty = await client.post(url, json={"feedback": "No grade"}, headers=auth_headers)
    assert empty.status_code == 422


async def test_assignment_attachments(client, auth_headers, assignment, upload_dir):
    url = f"/api/v1/assignments/{assignment['id']}/attachments"
    response = await client.post(
        url, files={"file": ("worksheet.pdf", b"%PDF-1.4 worksheet", "application/pdf")}, headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    attachment = response.json()["data"]
    assert attachment["file_name"] == "worksheet.pdf"
    assert attachment["file_size"] == len(b"%PDF-1.4 worksheet")
    stored = upload_dir / attachment["file_url"].removeprefix("/uploads/")
    assert stored.exists()

    fetched = await client.get(f"/api/v1/assignments/{assignment['id']}", headers=auth_headers)
    assert [a["id"] for a in fetched.json()["data"]["attachments"]] == [attachment["id"]]

    deleted = await client.delete(f"{url}/{attachment['id']}", headers=auth_headers)
    assert deleted.status_code == 204
    assert not stored.exists()
    missing = await client.delete(f"{url}/{attachment['id']}", headers=auth_headers)
    assert missing.status_code == 404


async def test_attachment_type_and_size_limits(client, auth_headers, assignment):
    url = f"/api/v1/assignments/{assignment['id']}/attachments"
    script = await client.post(
        url, files={"file": ("run.sh", b"#!/bin/sh", "application/x-sh")}, headers=auth_headers,
    )
    assert script.status_code == 422

    too_big = await client.post(
        url, files={"file": ("big.txt", b"a" * (10 * 1024 * 1024 + 1), "text/plain")}, headers=auth_headers,
    )
    assert too_big.status_code == 422

    empty = await client.post(url, files={"file": ("empty.txt", b"", "text/plain")}, headers=auth_headers)
    assert empty.status_code == 422


async def test_delete_assignment(client, auth_headers, assignment, other_headers):
    url = f"/api/v1/assignments/{assignment['id']}"
    assert (await client.delete(url, headers=other_headers)).status_code == 404
    assert (await client.delete(url, headers=auth_headers)).status_code == 204
    assert (await client.get(url, headers=auth_headers)).status_code == 404


# --- Tasks ---


async def create_task(client, headers, **fields):
    response = await client.post("/api/v1/tasks", json={"title": "Task", **fields}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_task_defaults_and_update(client, auth_headers, student):
    task = await create_task(client, auth_headers, title="Order workbooks", student_id=student["id"])
    assert task["priority"] == "medium"
    assert task["status"] == "pending"

    response = await client.put(
        f"/api/v1/tasks/{task['id']}", json={"priority": "high", "title": None}, headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["priority"] == "high"
    assert response.json()["data"]["title"] == "Order workbooks"


async def test_complete_and_reopen_task(client, auth_headers):
    task = await create_task(client, auth_headers)
    completed = await client.post(f"/api/v1/tasks/{task['id']}/complete", headers=auth_headers)
    assert completed.json()["data"]["status"] == "completed"
    completed_at = completed.json()["data"]["completed_at"]
    assert completed_at is not None

    again = await client.post(f"/api/v1/tasks/{task['id']}/complete", headers=auth_headers)
    assert again.json()["data"]["completed_at"] == completed_at

    reopened = await client.post(f"/api/v1/tasks/{task['id']}/reopen", headers=auth_headers)
    assert reopened.json()["data"]["status"] == "pending"
    assert reopened.json()["data"]["completed_at"] is None


async def test_overdue_tasks(client, auth_headers):
    await create_task(client, auth_headers, title="Late", due_date=iso(utc(2020, 1, 1)))
    done = await create_task(client, auth_headers, title="Late but done", due_date=iso(utc(2020, 1, 2)))
    await client.post(f"/api/v1/tasks/{done['id']}/complete", headers=auth_headers)
    await create_task(client, auth_headers, title="Future", due_date=iso(utc(2099, 1, 1)))
    await create_task(client, auth_headers, title="Someday")

    response = await client.get("/api/v1/tasks", params={"overdue": True}, headers=auth_headers)
    assert [t["title"] for t in response.json()["data"]] == ["Late"]


async def test_task_filters(client, auth_headers, student):
    await create_task(client, auth_headers, title="Low", priority="low")
    await create_task(client, auth_headers, title="High", priority="high", student_id=student["id"])

    by_priority = await client.get("/api/v1/tasks", params={"priority": "high"}, headers=auth_headers)
    assert [t["title"] for t in by_priority.json()["data"]] == ["High"]

    by_student = await client.get("/api/v1/tasks", params={"student_id": student["id"]}, headers=auth_headers)
    assert by_student.json()["meta"]["total"] == 1

    by_title = await client.get(
        "/api/v1/tasks", params={"sort_by": "title", "sort_order": "desc"}, headers=auth_headers,
    )
    assert [t["title"] for t in by_title.json()["data"]] == ["Low", "High"]


async def test_delete_task(client, auth_headers):
    task = await create_task(client, auth_headers)
    assert (await client.delete(f"/api/v1/tasks/{task['id']}", headers=auth_headers)).status_code == 204
    assert (await client.get(f"/api/v1/tasks/{task['id']}", headers=auth_headers)).status_code == 404
