"""Report cards: entries, GPA and PDF generation."""
from types import SimpleNamespace

import pytest

from homeschool.services.report_card_service import compute_gpa, letter_for_percentage


def entry(grade=None, score=None, max_score=None, credits=None):
    return SimpleNamespace(grade=grade, score=score, max_score=max_score, credits=credits)


@pytest.mark.parametrize("percent,letter", [(100, "A+"), (93, "A"), (89.9, "B+"), (60, "D-"), (59.9, "F")])
def test_letter_for_percentage(percent, letter):
    assert letter_for_percentage(percent) == letter


def test_gpa_is_credit_weighted():
    entries = [entry("A", credits=1), entry("B", credits=2), entry("P", credits=1), entry("I")]
    assert compute_gpa(entries) == 3.33


def test_gpa_from_scores_and_defaults():
    assert compute_gpa([entry(score=45, max_score=50), entry("C")]) == 2.85
    assert compute_gpa([entry("P"), entry(score=10)]) is None
    assert compute_gpa([entry("A", credits=0), entry("F")]) == 0.0


@pytest.fixture
async def report_card(client, auth_headers, student, subject):
    response = await client.post(
        "/api/v1/report-cards",
        json={
            "student_id": student["id"],
            "title": "Fall term",
            "academic_year": "2025-2026",
            "term": "Fall",
            "start_date": "2025-09-01",
            "end_date": "2025-12-19",
            "entries": [
                {"subject_id": subject["id"], "grade": "a", "credits": 1},
                {"subject_name": "History", "grade": "B", "credits": 2, "comments": "Great essays"},
            ],
        },
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_create_report_card(report_card, student):
    assert report_card["student"]["id"] == student["id"]
    assert sorted(e["subject_name"] for e in report_card["entries"]) == ["History", "Mathematics"]
    assert {e["grade"] for e in report_card["entries"]} == {"A", "B"}
    assert report_card["gpa"] == 3.33
    assert report_card["pdf_url"] is None


async def test_report_card_validation(client, auth_headers, student):
    base = {"student_id": student["id"], "title": "Year"}
    bad_year = await client.post(
        "/api/v1/report-cards", json={**base, "academic_year": "2025-2027"}, headers=auth_headers,
    )
    assert bad_year.status_code == 422

    bad_grade = await client.post(
        "/api/v1/report-cards",
        json={**base, "academic_year": "2025-2026", "entries": [{"subject_name": "Art", "grade": "E"}]},
        headers=auth_headers,
    )
    assert bad_grade.status_code == 422

    no_subject = await client.post(
        "/api/v1/report-cards",
        json={**base, "academic_year": "2025-2026", "entries": [{"grade": "A"}]},
        headers=auth_headers,
    )
    assert no_subject.status_code == 422

    backwards = await client.post(
        "/api/v1/report-cards",
        json={**base, "academic_year": "2025-2026", "start_date": "2026-01-01", "end_date": "2025-09-01"},
        headers=auth_headers,
    )
    assert backwards.status_code == 422


async def test_entries_update_gpa(client, auth_headers, report_card):
    url = f"/api/v1/report-cards/{report_card['id']}/entries"
    added = await client.post(url, json={"subject_name": "Latin", "grade": "P"}, headers=auth_headers)
    assert added.status_code == 201
    card = added.json()["data"]
    assert len(card["entries"]) == 3
    assert card["gpa"] == 3.33

    history = next(e for e in card["entries"] if e["subject_name"] == "History")
    updated = await client.put(f"{url}/{history['id']}", json={"grade": "A"}, headers=auth_headers)
    assert updated.json()["data"]["gpa"] == 4.0

    removed = await client.delete(f"{url}/{history['id']}", headers=auth_headers)
    assert len(removed.json()["data"]["entries"]) == 2
    missing = await client.delete(f"{url}/{history['id']}", headers=auth_headers)
    assert missing.status_code == 404


async def test_list_report_cards(client, auth_headers, report_card, student):
    response = await client.get(
        "/api/v1/report-cards", params={"student_id": student["id"], "academic_year": "2025-2026"},
        headers=auth_headers,
    )
    assert [c["id"] for c in response.json()["data"]] == [report_card["id"]]

    other_year = await client.get("/api/v1/report-cards", params={"academic_year": "2024-2025"}, headers=auth_headers)
    assert other_year.json()["meta"]["total"] == 0


async def test_pdf_generation_and_download(client, auth_headers, report_card, upload_dir):
    url = f"/api/v1/report-cards/{report_card['id']}"
    before = await client.get(f"{url}/pdf", headers=auth_headers)
    assert before.status_code == 404

    generated = await client.post(f"{url}/generate-pdf", headers=auth_headers)
    assert generated.status_code == 200
    card = generated.json()["data"]
    assert card["pdf_url"].startswith("/uploads/report_cards/")
    assert card["generated_at"] is not None

    download = await client.get(f"{url}/pdf", headers=auth_headers)
    assert download.status_code == 200
    assert download.headers["content-type"] == "application/pdf"
    assert "report-card-2025-2026" in download.headers["content-disposition"]
    assert download.content.startswith(b"%PDF")

    # regenerating replaces the earlier file
    first_file = upload_dir / card["pdf_url"].removeprefix("/uploads/")
    regenerated = await client.post(f"{url}/generate-pdf", headers=auth_headers)
    assert regenerated.json()["data"]["pdf_url"] != card["pdf_url"]
    assert not first_file.exists()


async def test_delete_report_card(client, auth_headers, other_headers, report_card):
    url = f"/api/v1/report-cards/{report_card['id']}"
    assert (await client.get(url, headers=other_headers)).status_code == 404
    assert (await client.delete(url, headers=auth_headers)).status_code == 204
    assert (await client.get(url, headers=auth_headers)).status_code == 404
