"""Calendar API: event types, recurring series, occurrence edits, attendance and export."""
from datetime import timedelta

import pytest

from tests.helpers import iso, utc

JAN_5 = utc(2026, 1, 5, 15)  # a Monday


async def create_event(client, headers, **fields):
    payload = {
        "title": "Lesson",
        "start_time": iso(JAN_5),
        "end_time": iso(JAN_5 + timedelta(hours=1)),
        **fields,
    }
    response = await client.post("/api/v1/calendar/events", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def expand(client, headers, start, end, **params):
    response = await client.get(
        "/api/v1/calendar/events",
        params={"expand": True, "start": iso(start), "end": iso(end), **params},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
async def series(client, auth_headers):
    return await create_event(
        client, auth_headers, title="Maths", recurrence_rule="FREQ=WEEKLY;BYDAY=MO,WE,FR;COUNT=6",
    )


# --- Event types ---


async def test_default_event_types_created_on_first_list(client, auth_headers):
    response = await client.get("/api/v1/calendar/event-types", headers=auth_headers)
    types = response.json()["data"]
    assert [t["name"] for t in types] == ["Activity", "Field Trip", "Holiday", "Lesson", "Test"]
    assert all(t["is_default"] for t in types)

    again = await client.get("/api/v1/calendar/event-types", headers=auth_headers)
    assert len(again.json()["data"]) == 5


async def test_event_type_names_unique_per_teacher(client, auth_headers, other_headers):
    await client.get("/api/v1/calendar/event-types", headers=auth_headers)
    duplicate = await client.post("/api/v1/calendar/event-types", json={"name": "lesson"}, headers=auth_headers)
    assert duplicate.status_code == 409

    created = await client.post(
        "/api/v1/calendar/event-types", json={"name": "Co-op", "color": "#123456"}, headers=auth_headers,
    )
    assert created.status_code == 201
    assert created.json()["data"]["is_default"] is False

    theirs = await client.post("/api/v1/calendar/event-types", json={"name": "Co-op"}, headers=other_headers)
    assert theirs.status_code == 201


async def test_deleting_event_type_clears_it_from_events(client, auth_headers):
    created = await client.post("/api/v1/calendar/event-types", json={"name": "Co-op"}, headers=auth_headers)
    type_id = created.json()["data"]["id"]
    event = await create_event(client, auth_headers, event_type_id=type_id)
    assert event["event_type"]["name"] == "Co-op"

    response = await client.delete(f"/api/v1/calendar/event-types/{type_id}", headers=auth_headers)
    assert response.status_code == 204
    fetched = await client.get(f"/api/v1/calendar/events/{event['id']}", headers=auth_headers)
    assert fetched.json()["data"]["event_type_id"] is None


# --- Events ---


async def test_single_event_crud(client, auth_headers, student, subject):
    event = await create_event(
        client, auth_headers, student_ids=[student["id"]], subject_id=subject["id"], location="Kitchen",
    )
    assert event["is_recurring"] is False
    assert event["timezone"] == "UTC"
    assert [s["first_name"] for s in event["students"]] == ["Ada"]

    url = f"/api/v1/calendar/events/{event['id']}"
    updated = await client.put(url, json={"title": "Algebra", "student_ids": []}, headers=auth_headers)
    assert updated.status_code == 200
    assert updated.json()["data"]["title"] == "Algebra"
    assert updated.json()["data"]["students"] == []

    assert (await client.delete(url, headers=auth_headers)).status_code == 204
    assert (await client.get(url, headers=auth_headers)).status_code == 404


async def test_event_validation(client, auth_headers):
    backwards = await client.post(
        "/api/v1/calendar/events",
        json={"title": "X", "start_time": iso(JAN_5), "end_time": iso(JAN_5 - timedelta(hours=1))},
        headers=auth_headers,
    )
    assert backwards.status_code == 422

    naive = await client.post(
        "/api/v1/calendar/events",
        json={"title": "X", "start_time": "2026-01-05T15:00:00", "end_time": "2026-01-05T16:00:00"},
        headers=auth_headers,
    )
    assert naive.status_code == 422

    bad_rule = await client.post(
        "/api/v1/calendar/events",
        json={
            "title": "X", "start_time": iso(JAN_5), "end_time": iso(JAN_5),
            "recurrence_rule": "FREQ=HOURLY",
        },
        headers=auth_headers,
    )
    assert bad_rule.status_code == 422
    assert "recurrence_rule" in bad_rule.json()["error"]["details"]


async def test_unknown_student_rejected(client, auth_headers, other_headers):
    theirs = await client.post(
        "/api/v1/students", json={"first_name": "Sam", "last_name": "Roe"}, headers=other_headers,
    )
    response = await client.post(
        "/api/v1/calendar/events",
        json={
            "title": "X", "start_time": iso(JAN_5), "end_time": iso(JAN_5),
            "student_ids": [theirs.json()["data"]["id"]],
        },
        headers=auth_headers,
    )
    assert response.status_code == 422


async def test_rule_is_stored_in_canonical_form(client, auth_headers):
    event = await create_event(client, auth_headers, recurrence_rule="rrule:freq=weekly;byday=mo,we;interval=1")
    assert event["recurrence_rule"] == "FREQ=WEEKLY;BYDAY=MO,WE"
    assert event["is_recurring"] is True


async def test_list_stored_events_in_window(client, auth_headers, series):
    await create_event(client, auth_headers, title="Later", start_time=iso(utc(2026, 3, 1, 9)),
                       end_time=iso(utc(2026, 3, 1, 10)))
    response = await client.get(
        "/api/v1/calendar/events",
        params={"start": iso(utc(2026, 1, 1)), "end": iso(utc(2026, 2, 1))},
        headers=auth_headers,
    )
    assert [e["title"] for e in response.json()["data"]] == ["Maths"]

    everything = await client.get("/api/v1/calendar/events", headers=auth_headers)
    assert everything.json()["meta"]["total"] == 2


async def test_base_date_is_occurrence_zero(client, auth_headers):
    start = utc(2025, 11, 15, 10)  # a Saturday
    await create_event(
        client, auth_headers, start_time=iso(start), end_time=iso(start + timedelta(hours=1)),
        recurrence_rule="FREQ=WEEKLY;BYDAY=MO,WE,FR",
    )
    body = await expand(client, auth_headers, utc(2025, 11, 15), utc(2025, 11, 22))
    assert [o["start_time"] for o in body["data"]] == [
        "2025-11-15T10:00:00Z",
        "2025-11-17T10:00:00Z",
        "2025-11-19T10:00:00Z",
        "2025-11-21T10:00:00Z",
    ]


async def test_expand_series_and_single_events(client, auth_headers, series):
    await create_event(client, auth_headers, title="Field trip", start_time=iso(utc(2026, 1, 8, 9)),
                       end_time=iso(utc(2026, 1, 8, 17)))
    body = await expand(client, auth_headers, utc(2026, 1, 1), utc(2026, 2, 1))
    assert body["meta"]["total"] == 7
    starts = [(o["title"], o["start_time"]) for o in body["data"]]
    assert starts == [
        ("Maths", "2026-01-05T15:00:00Z"),
        ("Maths", "2026-01-07T15:00:00Z"),
        ("Field trip", "2026-01-08T09:00:00Z"),
        ("Maths", "2026-01-09T15:00:00Z"),
        ("Maths", "2026-01-12T15:00:00Z"),
        ("Maths", "2026-01-14T15:00:00Z"),
        ("Maths", "2026-01-16T15:00:00Z"),
    ]
    first = body["data"][0]
    assert first["series_id"] == series["id"]
    assert first["is_recurring"] is True
    assert body["data"][2]["series_id"] is None


async def test_window_is_half_open(client, auth_headers, series):
    body = await expand(client, auth_headers, utc(2026, 1, 7, 16), utc(2026, 1, 12, 15))
    assert [o["start_time"] for o in body["data"]] == ["2026-01-09T15:00:00Z"]


async def test_expanded_occurrences_are_paginated(client, auth_headers, series):
    body = await expand(client, auth_headers, utc(2026, 1, 1), utc(2026, 2, 1), page=2, limit=4)
    assert len(body["data"]) == 2
    assert body["meta"]["total"] == 6
    assert body["meta"]["has_prev"] is True


async def test_expand_requires_bounded_window(client, auth_headers):
    missing = await client.get("/api/v1/calendar/events", params={"expand": True}, headers=auth_headers)
    assert missing.status_code == 422

    too_wide = await client.get(
        "/api/v1/calendar/events",
        params={"expand": True, "start": iso(utc(2026, 1, 1)), "end": iso(utc(2027, 1, 3))},
        headers=auth_headers,
    )
    assert too_wide.status_code == 422

    backwards = await client.get(
        "/api/v1/calendar/events",
        params={"start": iso(utc(2026, 2, 1)), "end": iso(utc(2026, 1, 1))},
        headers=auth_headers,
    )
    assert backwards.status_code == 422


async def test_series_keeps_local_time_across_dst(client, auth_headers):
    start = utc(2026, 3, 6, 14)  # 09:00 in New York before the switch
    event = await create_event(
        client, auth_headers, start_time=iso(start), end_time=iso(start + timedelta(minutes=45)),
        timezone="America/New_York", recurrence_rule="FREQ=DAILY;COUNT=4",
    )
    response = await client.get(
        f"/api/v1/calendar/events/{event['id']}/occurrences",
        params={"start": iso(utc(2026, 3, 1)), "end": iso(utc(2026, 4, 1))},
        headers=auth_headers,
    )
    assert [o["start_time"] for o in response.json()["data"]] == [
        "2026-03-06T14:00:00Z",
        "2026-03-07T14:00:00Z",
        "2026-03-08T13:00:00Z",
        "2026-03-09T13:00:00Z",
    ]


async def test_recurrence_end_date_bounds_series(client, auth_headers):
    event = await create_event(
        client, auth_headers, recurrence_rule="FREQ=DAILY", recurrence_end_date=iso(utc(2026, 1, 7, 23)),
    )
    response = await client.get(
        f"/api/v1/calendar/events/{event['id']}/occurrences",
        params={"start": iso(utc(2026, 1, 1)), "end": iso(utc(2026, 2, 1))},
        headers=auth_headers,
    )
    assert response.json()["meta"]["total"] == 3


# --- Single occurrences ---


async def test_move_one_occurrence(client, auth_headers, series):
    moved_to = utc(2026, 1, 8, 10)
    response = await client.put(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 7, 15))}",
        json={"title": "Museum maths", "start_time": iso(moved_to)},
        headers=auth_headers,
    )
    assert response.status_code == 200, response.text
    exception = response.json()["data"]
    assert exception["parent_event_id"] == series["id"]
    assert exception["recurrence_id"] == "2026-01-07T15:00:00Z"
    assert exception["end_time"] == "2026-01-08T11:00:00Z"

    body = await expand(client, auth_headers, utc(2026, 1, 1), utc(2026, 2, 1))
    assert body["meta"]["total"] == 6
    moved = [o for o in body["data"] if o["is_exception"]]
    assert len(moved) == 1
    assert moved[0]["title"] == "Museum maths"
    assert moved[0]["start_time"] == "2026-01-08T10:00:00Z"
    assert moved[0]["occurrence_start"] == "2026-01-07T15:00:00Z"
    assert "2026-01-07T15:00:00Z" not in [o["start_time"] for o in body["data"]]

    # editing the same occurrence again updates the stored exception
    again = await client.put(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 7, 15))}",
        json={"location": "Science museum"},
        headers=auth_headers,
    )
    assert again.json()["data"]["id"] == exception["id"]
    assert again.json()["data"]["title"] == "Museum maths"


async def test_occurrence_moved_into_window(client, auth_headers, series):
    await client.put(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 16, 15))}",
        json={"start_time": iso(utc(2026, 1, 20, 15))},
        headers=auth_headers,
    )
    body = await expand(client, auth_headers, utc(2026, 1, 19), utc(2026, 1, 26))
    assert [(o["start_time"], o["occurrence_start"]) for o in body["data"]] == [
        ("2026-01-20T15:00:00Z", "2026-01-16T15:00:00Z"),
    ]

    original_week = await expand(client, auth_headers, utc(2026, 1, 12), utc(2026, 1, 19))
    assert [o["start_time"] for o in original_week["data"]] == ["2026-01-12T15:00:00Z", "2026-01-14T15:00:00Z"]


async def test_occurrence_moved_outside_series_bounds(client, auth_headers):
    event = await create_event(
        client, auth_headers, title="Piano", recurrence_rule="FREQ=WEEKLY;BYDAY=MO",
        recurrence_end_date=iso(utc(2026, 1, 20)),
    )
    base = f"/api/v1/calendar/events/{event['id']}/occurrences"
    await client.put(f"{base}/{iso(utc(2026, 1, 19, 15))}", json={"start_time": iso(utc(2026, 2, 2, 15))},
                     headers=auth_headers)
    await client.put(f"{base}/{iso(JAN_5)}", json={"start_time": iso(utc(2025, 12, 29, 15))},
                     headers=auth_headers)

    after_end = await expand(client, auth_headers, utc(2026, 2, 1), utc(2026, 3, 1))
    assert [o["start_time"] for o in after_end["data"]] == ["2026-02-02T15:00:00Z"]
    assert after_end["data"][0]["series_id"] == event["id"]

    own = await client.get(base, params={"start": iso(utc(2026, 2, 1)), "end": iso(utc(2026, 3, 1))},
                           headers=auth_headers)
    assert [o["start_time"] for o in own.json()["data"]] == ["2026-02-02T15:00:00Z"]

    before_start = await expand(client, auth_headers, utc(2025, 12, 1), utc(2026, 1, 1))
    assert [o["start_time"] for o in before_start["data"]] == ["2025-12-29T15:00:00Z"]


async def test_cancel_one_occurrence(client, auth_headers, series):
    response = await client.post(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 9, 15))}/cancel",
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["is_cancelled"] is True

    body = await expand(client, auth_headers, utc(2026, 1, 1), utc(2026, 2, 1))
    assert body["meta"]["total"] == 5
    assert "2026-01-09T15:00:00Z" not in [o["start_time"] for o in body["data"]]


async def test_occurrence_must_exist(client, auth_headers, series):
    response = await client.post(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 6, 15))}/cancel",
        headers=auth_headers,
    )
    assert response.status_code == 404

    single = await create_event(client, auth_headers)
    response = await client.post(
        f"/api/v1/calendar/events/{single['id']}/occurrences/{iso(JAN_5)}/cancel",
        headers=auth_headers,
    )
    assert response.status_code == 422


async def test_deleting_exception_restores_occurrence(client, auth_headers, series):
    cancelled = await client.post(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 9, 15))}/cancel",
        headers=auth_headers,
    )
    exception_id = cancelled.json()["data"]["id"]
    await client.delete(f"/api/v1/calendar/events/{exception_id}", headers=auth_headers)

    body = await expand(client, auth_headers, utc(2026, 1, 1), utc(2026, 2, 1))
    assert body["meta"]["total"] == 6


async def test_series_edit_drops_stale_exceptions(client, auth_headers, series):
    kept = await client.put(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 12, 15))}",
        json={"title": "Kept"},
        headers=auth_headers,
    )
    stale = await client.put(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 7, 15))}",
        json={"title": "Stale"},
        headers=auth_headers,
    )

    response = await client.put(
        f"/api/v1/calendar/events/{series['id']}",
        json={"recurrence_rule": "FREQ=WEEKLY;BYDAY=MO;COUNT=3"},
        headers=auth_headers,
    )
    assert response.status_code == 200

    gone = await client.get(f"/api/v1/calendar/events/{stale.json()['data']['id']}", headers=auth_headers)
    assert gone.status_code == 404
    still = await client.get(f"/api/v1/calendar/events/{kept.json()['data']['id']}", headers=auth_headers)
    assert still.status_code == 200

    body = await expand(client, auth_headers, utc(2026, 1, 1), utc(2026, 2, 1))
    assert [o["title"] for o in body["data"]] == ["Maths", "Kept", "Maths"]


async def test_title_edit_keeps_exceptions(client, auth_headers, series):
    exception = await client.post(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 7, 15))}/cancel",
        headers=auth_headers,
    )
    await client.put(f"/api/v1/calendar/events/{series['id']}", json={"title": "Algebra"}, headers=auth_headers)
    response = await client.get(f"/api/v1/calendar/events/{exception.json()['data']['id']}", headers=auth_headers)
    assert response.status_code == 200


async def test_deleting_series_removes_exceptions(client, auth_headers, series):
    exception = await client.post(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 7, 15))}/cancel",
        headers=auth_headers,
    )
    await client.delete(f"/api/v1/calendar/events/{series['id']}", headers=auth_headers)
    response = await client.get(f"/api/v1/calendar/events/{exception.json()['data']['id']}", headers=auth_headers)
    assert response.status_code == 404


# --- Attendance ---


async def test_attendance_per_occurrence(client, auth_headers, series, student):
    url = f"/api/v1/calendar/events/{series['id']}/attendance"
    monday = iso(utc(2026, 1, 12, 15))
    first = await client.post(
        url, json=[{"student_id": student["id"], "status": "absent", "occurrence_start": monday}],
        headers=auth_headers,
    )
    assert first.status_code == 200, first.text
    record = first.json()["data"][0]
    assert record["status"] == "absent"

    again = await client.post(
        url, json=[{"student_id": student["id"], "status": "late", "occurrence_start": monday}],
        headers=auth_headers,
    )
    assert again.json()["data"][0]["id"] == record["id"]

    await client.post(url, json=[{"student_id": student["id"]}], headers=auth_headers)

    everything = await client.get(url, headers=auth_headers)
    assert [(r["occurrence_start"], r["status"]) for r in everything.json()["data"]] == [
        ("2026-01-05T15:00:00Z", "present"),
        ("2026-01-12T15:00:00Z", "late"),
    ]
    one = await client.get(url, params={"occurrence_start": monday}, headers=auth_headers)
    assert len(one.json()["data"]) == 1


async def test_attendance_rejects_non_occurrences(client, auth_headers, series, student):
    url = f"/api/v1/calendar/events/{series['id']}/attendance"
    response = await client.post(
        url, json=[{"student_id": student["id"], "occurrence_start": iso(utc(2026, 1, 6, 15))}],
        headers=auth_headers,
    )
    assert response.status_code == 422

    await client.post(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 9, 15))}/cancel",
        headers=auth_headers,
    )
    response = await client.post(
        url, json=[{"student_id": student["id"], "occurrence_start": iso(utc(2026, 1, 9, 15))}],
        headers=auth_headers,
    )
    assert response.status_code == 422

    assert (await client.post(url, json=[], headers=auth_headers)).status_code == 422


async def test_attendance_rejects_cancelled_exception(client, auth_headers, series, student):
    cancelled = await client.post(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 9, 15))}/cancel",
        headers=auth_headers,
    )
    exception_id = cancelled.json()["data"]["id"]
    response = await client.post(
        f"/api/v1/calendar/events/{exception_id}/attendance",
        json=[{"student_id": student["id"]}],
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_attendance_on_moved_occurrence_is_keyed_to_series(client, auth_headers, series, student):
    moved = await client.put(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 7, 15))}",
        json={"start_time": iso(utc(2026, 1, 8, 15))},
        headers=auth_headers,
    )
    exception_id = moved.json()["data"]["id"]
    response = await client.post(
        f"/api/v1/calendar/events/{exception_id}/attendance",
        json=[{"student_id": student["id"], "status": "excused"}],
        headers=auth_headers,
    )
    record = response.json()["data"][0]
    assert record["event_id"] == series["id"]
    assert record["occurrence_start"] == "2026-01-07T15:00:00Z"

    listed = await client.get(f"/api/v1/calendar/events/{exception_id}/attendance", headers=auth_headers)
    assert [r["id"] for r in listed.json()["data"]] == [record["id"]]


# --- Preview and export ---


async def test_recurrence_preview(client, auth_headers):
    response = await client.post(
        "/api/v1/calendar/recurrence/preview",
        json={
            "start_time": iso(utc(2026, 1, 31, 12)),
            "recurrence_rule": "FREQ=MONTHLY;BYMONTHDAY=31",
            "count": 3,
        },
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"] == {
        "recurrence_rule": "FREQ=MONTHLY;BYMONTHDAY=31",
        "dates": ["2026-01-31", "2026-03-31", "2026-05-31"],
    }

    rejected = await client.post(
        "/api/v1/calendar/recurrence/preview",
        json={"start_time": iso(JAN_5), "recurrence_rule": "FREQ=DAILY;COUNT=3;UNTIL=20260301"},
        headers=auth_headers,
    )
    assert rejected.status_code == 422


async def test_export_ics(client, auth_headers, series):
    await client.post(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 9, 15))}/cancel",
        headers=auth_headers,
    )
    await client.put(
        f"/api/v1/calendar/events/{series['id']}/occurrences/{iso(utc(2026, 1, 12, 15))}",
        json={"title": "Moved maths", "start_time": iso(utc(2026, 1, 13, 15))},
        headers=auth_headers,
    )
    await create_event(client, auth_headers, title="Co-op day", all_day=True,
                       start_time=iso(utc(2026, 2, 2)), end_time=iso(utc(2026, 2, 2)))

    response = await client.get("/api/v1/calendar/export.ics", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/calendar")
    assert "attachment" in response.headers["content-disposition"]

    text = response.text
    assert text.startswith("BEGIN:VCALENDAR")
    assert text.count("BEGIN:VEVENT") == 3
    assert "RRULE:FREQ=WEEKLY" in text
    assert "EXDATE" in text
    assert "RECURRENCE-ID" in text
    assert "SUMMARY:Moved maths" in text
    assert "DTSTART;VALUE=DATE:20260202" in text


async def test_calendar_is_private(client, auth_headers, other_headers, series):
    response = await client.get(f"/api/v1/calendar/events/{series['id']}", headers=other_headers)
    assert response.status_code == 404
    body = await expand(client, other_headers, utc(2026, 1, 1), utc(2026, 2, 1))
    assert body["data"] == []
