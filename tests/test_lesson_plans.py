"""Lesson plans: the public library, sharing between teachers and copying."""
import pytest


async def create_plan(client, headers, **fields):
    payload = {"title": "Fractions with pizza", "grade_level": "4", "tags": ["Maths", " hands-on "], **fields}
    response = await client.post("/api/v1/lesson-plans", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
async def plan(client, auth_headers, subject):
    return await create_plan(
        client, auth_headers,
        subject_id=subject["id"],
        description="Halves and quarters",
        objectives=["Name fractions", "Name fractions", "Compare halves"],
        materials=["Paper plates"],
        duration_minutes=45,
    )


async def test_create_plan_cleans_lists(plan):
    assert plan["tags"] == ["maths", "hands-on"]
    assert plan["objectives"] == ["Name fractions", "Compare halves"]
    assert plan["subject_name"] == "Mathematics"
    assert plan["author"]["first_name"] == "Jane"
    assert plan["is_public"] is False


async def test_list_own_plans_with_filters(client, auth_headers, plan):
    await create_plan(client, auth_headers, title="Volcano", grade_level="6", tags=["science"], is_public=True)

    everything = await client.get("/api/v1/lesson-plans", headers=auth_headers)
    assert everything.json()["meta"]["total"] == 2

    by_tag = await client.get("/api/v1/lesson-plans", params={"tag": "Science"}, headers=auth_headers)
    assert [p["title"] for p in by_tag.json()["data"]] == ["Volcano"]

    by_text = await client.get("/api/v1/lesson-plans", params={"q": "quarters"}, headers=auth_headers)
    assert [p["title"] for p in by_text.json()["data"]] == ["Fractions with pizza"]

    public_only = await client.get("/api/v1/lesson-plans", params={"is_public": True}, headers=auth_headers)
    assert public_only.json()["meta"]["total"] == 1


async def test_public_library(client, auth_headers, other_headers, plan):
    await create_plan(client, auth_headers, title="Volcano", grade_level="6", tags=["science"], is_public=True)
    await create_plan(client, other_headers, title="Rock cycle", grade_level="6", tags=["science"], is_public=True)

    response = await client.get("/api/v1/lesson-plans/public", params={"tag": "science"}, headers=other_headers)
    titles = sorted(p["title"] for p in response.json()["data"])
    assert titles == ["Rock cycle", "Volcano"]

    search = await client.get("/api/v1/lesson-plans/public", params={"q": "volc"}, headers=other_headers)
    result = search.json()["data"]
    assert [p["title"] for p in result] == ["Volcano"]
    assert result[0]["author"]["first_name"] == "Jane"

    by_grade = await client.get("/api/v1/lesson-plans/public", params={"grade_level": "4"}, headers=other_headers)
    assert by_grade.json()["data"] == []


async def test_private_plan_is_hidden_and_read_only(client, auth_headers, other_headers, plan):
    url = f"/api/v1/lesson-plans/{plan['id']}"
    assert (await client.get(url, headers=other_headers)).status_code == 404

    await client.put(url, json={"is_public": True}, headers=auth_headers)
    assert (await client.get(url, headers=other_headers)).status_code == 200

    edit = await client.put(url, json={"title": "Mine now"}, headers=other_headers)
    assert edit.status_code == 403
    assert edit.json()["error"]["code"] == "FORBIDDEN"
    assert (await client.delete(url, headers=other_headers)).status_code == 403


async def test_update_plan(client, auth_headers, plan):
    url = f"/api/v1/lesson-plans/{plan['id']}"
    response = await client.put(url, json={"tags": None, "duration_minutes": 60}, headers=auth_headers)
    data = response.json()["data"]
    assert data["tags"] == []
    assert data["duration_minutes"] == 60
    assert data["title"] == "Fractions with pizza"


async def test_share_with_teacher(client, auth_headers, other_headers, plan, sent_emails):
    response = await client.post(
        f"/api/v1/lesson-plans/{plan['id']}/share",
        json={"emails": ["Other@Example.com", "friend@example.org"], "message": "Try this one"},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    shares = response.json()["data"]
    assert [s["shared_with_email"] for s in shares] == ["other@example.com", "friend@example.org"]
    assert shares[0]["shared_with_id"] is not None
    assert shares[1]["shared_with_id"] is None
    assert all(s["permission"] == "view" for s in shares)

    share_mails = [m for m in sent_emails if "lesson plan" in m["subject"]]
    assert [m["to"] for m in share_mails] == [["other@example.com"], ["friend@example.org"]]
    assert "Fractions with pizza" in share_mails[0]["body"]
    assert "Try this one" in share_mails[0]["body"]

    shared = await client.get("/api/v1/lesson-plans/shared-with-me", headers=other_headers)
    assert [p["id"] for p in shared.json()["data"]] == [plan["id"]]
    viewed = await client.get(f"/api/v1/lesson-plans/{plan['id']}", headers=other_headers)
    assert viewed.status_code == 200


async def test_share_rules(client, auth_headers, other_headers, plan):
    url = f"/api/v1/lesson-plans/{plan['id']}/share"
    to_self = await client.post(url, json={"emails": ["parent@example.com"]}, headers=auth_headers)
    assert to_self.status_code == 422

    not_owner = await client.post(url, json={"emails": ["x@example.com"]}, headers=other_headers)
    assert not_owner.status_code == 404

    await client.post(url, json={"emails": ["other@example.com"]}, headers=auth_headers)
    again = await client.post(url, json={"emails": ["other@example.com"], "permission": "copy"}, headers=auth_headers)
    assert again.json()["data"][0]["permission"] == "copy"

    listed = await client.get(f"/api/v1/lesson-plans/{plan['id']}/shares", headers=auth_headers)
    assert len(listed.json()["data"]) == 1


async def test_revoke_share(client, auth_headers, other_headers, plan):
    shared = await client.post(
        f"/api/v1/lesson-plans/{plan['id']}/share", json={"emails": ["other@example.com"]}, headers=auth_headers,
    )
    share_id = shared.json()["data"][0]["id"]
    response = await client.delete(f"/api/v1/lesson-plans/{plan['id']}/shares/{share_id}", headers=auth_headers)
    assert response.status_code == 204
    assert (await client.get(f"/api/v1/lesson-plans/{plan['id']}", headers=other_headers)).status_code == 404


async def test_copy_requires_copy_permission(client, auth_headers, other_headers, plan):
    share_url = f"/api/v1/lesson-plans/{plan['id']}/share"
    copy_url = f"/api/v1/lesson-plans/{plan['id']}/copy"

    await client.post(share_url, json={"emails": ["other@example.com"]}, headers=auth_headers)
    view_only = await client.post(copy_url, headers=other_headers)
    assert view_only.status_code == 403

    await client.post(share_url, json={"emails": ["other@example.com"], "permission": "copy"}, headers=auth_headers)
    copied = await client.post(copy_url, headers=other_headers)
    assert copied.status_code == 201
    copy = copied.json()["data"]
    assert copy["title"] == "Fractions with pizza"
    assert copy["copied_from_id"] == plan["id"]
    assert copy["subject_id"] is None
    assert copy["is_public"] is False
    assert copy["tags"] == plan["tags"]
    assert copy["author"]["first_name"] == "Sam"


async def test_copy_public_plan_with_title(client, auth_headers, other_headers, plan):
    await client.put(f"/api/v1/lesson-plans/{plan['id']}", json={"is_public": True}, headers=auth_headers)
    response = await client.post(
        f"/api/v1/lesson-plans/{plan['id']}/copy", json={"title": "Pizza maths"}, headers=other_headers,
    )
    assert response.status_code == 201
    assert response.json()["data"]["title"] == "Pizza maths"


async def test_copy_own_plan_with_attachments(client, auth_headers, plan, upload_dir):
    uploaded = await client.post(
        f"/api/v1/lesson-plans/{plan['id']}/attachments",
        files={"file": ("slides.pdf", b"%PDF-1.4 slides", "application/pdf")},
        headers=auth_headers,
    )
    assert uploaded.status_code == 201
    original = uploaded.json()["data"]

    response = await client.post(f"/api/v1/lesson-plans/{plan['id']}/copy", headers=auth_headers)
    copy = response.json()["data"]
    assert copy["title"] == "Copy of Fractions with pizza"
    assert copy["subject_id"] == plan["subject_id"]
    assert len(copy["attachments"]) == 1
    duplicate = copy["attachments"][0]
    assert duplicate["file_name"] == "slides.pdf"
    assert duplicate["file_url"] != original["file_url"]
    assert (upload_dir / duplicate["file_url"].removeprefix("/uploads/")).read_bytes() == b"%PDF-1.4 slides"

    # deleting the original leaves the copy's file in place
    await client.delete(f"/api/v1/lesson-plans/{plan['id']}", headers=auth_headers)
    assert not (upload_dir / original["file_url"].removeprefix("/uploads/")).exists()
    assert (upload_dir / duplicate["file_url"].removeprefix("/uploads/")).exists()


async def test_plan_attachment_removal(client, auth_headers, other_headers, plan):
    url = f"/api/v1/lesson-plans/{plan['id']}/attachments"
    uploaded = await client.post(
        url, files={"file": ("notes.txt", b"notes", "text/plain")}, headers=auth_headers,
    )
    attachment_id = uploaded.json()["data"]["id"]

    assert (await client.delete(f"{url}/{attachment_id}", headers=other_headers)).status_code == 404
    assert (await client.delete(f"{url}/{attachment_id}", headers=auth_headers)).status_code == 204
    fetched = await client.get(f"/api/v1/lesson-plans/{plan['id']}", headers=auth_headers)
    assert fetched.json()["data"]["attachments"] == []
