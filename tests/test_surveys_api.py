"""Survey authoring endpoints and public-survey auto-assignment."""

from __future__ import annotations

from sqlalchemy import select

from surveyhub.db.models import Survey, SurveyAssignment
from tests.conftest import auth_headers, create_survey, create_user

QUESTIONS = [
    {"text": "Favourite colour", "type": "single-choice", "options": ["red", "blue"], "isRequired": True},
    {"text": "Toppings", "type": "multi_select", "options": [{"text": "cheese"}, {"text": "ham"}], "hasOther": True},
    {"text": "Anything else?", "type": "free_text"},
]


def _create(client, admin, **overrides):
    body = {
        "title": "Lunch preferences",
        "description": "Pick what we order",
        "questions": QUESTIONS,
        **overrides,
    }
    return client.post("/surveys", json=body, headers=auth_headers(admin))


def _active_assignees(db, survey_id):
    return sorted(db.scalars(
        select(SurveyAssignment.user_id).where(
            SurveyAssignment.survey_id == survey_id,
            SurveyAssignment.is_removed.is_(False),
        )
    ).all())


# ---------------------------------------------------------------------------
# POST /surveys
# ---------------------------------------------------------------------------


class TestCreateSurvey:
    def test_create_with_questions(self, client, db, admin):
        resp = _create(client, admin)
        assert resp.status_code == 201
        data = resp.json()

        assert data["title"] == "Lunch preferences"
        assert data["user_id"] == admin.id
        assert data["is_published"] is False
        types = [q["question_type"] for q in data["questions"]]
        assert types == ["single-choice", "multiple-choice", "text"]
        assert [o["text"] for o in data["questions"][1]["options"]] == ["cheese", "ham"]
        assert data["questions"][1]["has_other"] is True

    def test_choice_question_needs_two_options(self, client, admin):
        resp = _create(client, admin, questions=[{"text": "Q", "type": "single-choice", "options": ["only"]}])
        assert resp.status_code == 422

    def test_window_must_be_ordered(self, client, admin):
        resp = _create(client, admin, startDateTime="2026-05-02T00:00:00Z", endDateTime="2026-05-01T00:00:00Z")
        assert resp.status_code == 422

    def test_requires_admin(self, client, respondent):
        resp = _create(client, respondent)
        assert resp.status_code == 403

    def test_requires_token(self, client):
        resp = client.post("/surveys", json={"title": "Nope", "questions": []})
        assert resp.status_code == 401

    def test_public_published_survey_assigns_active_users(self, client, db, admin, respondent):
        bob = create_user(db, email="bob@example.com")
        create_user(db, email="gone@example.com", is_active=False)

        resp = _create(client, admin, isPublished=True, isPublic=True)
        assert resp.status_code == 201
        assert _active_assignees(db, resp.json()["id"]) == sorted([respondent.id, bob.id])

    def test_draft_survey_assigns_nobody(self, client, db, admin, respondent):
        resp = _create(client, admin, isPublic=True)
        assert _active_assignees(db, resp.json()["id"]) == []


# ---------------------------------------------------------------------------
# GET /surveys, /surveys/assigned, /surveys/{id}
# ---------------------------------------------------------------------------


class TestListSurveys:
    def test_lists_own_surveys_paginated(self, client, db, admin):
        other_admin = create_user(db, email="boss@example.com", role="admin")
        for i in range(3):
            create_survey(db, admin, title=f"Mine {i}", is_published=i % 2 == 0)
        create_survey(db, other_admin, title="Theirs")

        resp = client.get("/surveys?page=1&limit=2", headers=auth_headers(admin))
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 3
        assert len(data["surveys"]) == 2

        published = client.get("/surveys?show_published_only=true", headers=auth_headers(admin)).json()
        assert published["total"] == 2

    def test_assigned_lists_public_and_assigned(self, client, db, admin, respondent):
        public = create_survey(db, admin, title="Public", is_public=True)
        assigned = create_survey(db, admin, title="Assigned")
        create_survey(db, admin, title="Hidden")
        create_survey(db, admin, title="Archived", is_public=True, is_archived=True)
        db.add(SurveyAssignment(survey_id=assigned.id, user_id=respondent.id))
        db.commit()

        data = client.get("/surveys/assigned", headers=auth_headers(respondent)).json()
        assert data["total"] == 2
        assert sorted(s["id"] for s in data["surveys"]) == sorted([public.id, assigned.id])


class TestGetSurvey:
    def test_identified_survey_needs_caller(self, client, db, admin):
        survey = create_survey(db, admin, is_public=True)
        assert client.get(f"/surveys/{survey.id}").status_code == 401

    def test_anonymous_survey_is_open(self, client, db, admin):
        survey = create_survey(db, admin, is_anonymous=True, questions=[{"text": "Q"}])
        resp = client.get(f"/surveys/{survey.id}")
        assert resp.status_code == 200
        assert [q["text"] for q in resp.json()["questions"]] == ["Q"]

    def test_unassigned_user_is_forbidden(self, client, db, admin, respondent):
        survey = create_survey(db, admin)
        assert client.get(f"/surveys/{survey.id}", headers=auth_headers(respondent)).status_code == 403

        db.add(SurveyAssignment(survey_id=survey.id, user_id=respondent.id))
        db.commit()
        assert client.get(f"/surveys/{survey.id}", headers=auth_headers(respondent)).status_code == 200

    def test_public_survey_skips_assignment(self, client, db, admin, respondent):
        survey = create_survey(db, admin, is_public=True)
        assert client.get(f"/surveys/{survey.id}", headers=auth_headers(respondent)).status_code == 200

    def test_missing(self, client, admin):
        assert client.get("/surveys/404", headers=auth_headers(admin)).status_code == 404


# ---------------------------------------------------------------------------
# PUT / DELETE / toggle-publish
# ---------------------------------------------------------------------------


class TestUpdateSurvey:
    def test_update_fields_and_questions(self, client, db, admin):
        created = _create(client, admin).json()
        kept = created["questions"][0]

        resp = client.put(
            f"/surveys/{created['id']}",
            json={
                "title": "Dinner preferences",
                "questions": [
                    {"id": kept["id"], "text": "Colour?", "type": "single-choice", "options": ["green", "gold"]},
                    {"text": "Rate us", "type": "rating", "order": 1},
                ],
            },
            headers=auth_headers(admin),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "Dinner preferences"
        assert [q["text"] for q in data["questions"]] == ["Colour?", "Rate us"]
        assert data["questions"][0]["id"] == kept["id"]
        assert [o["text"] for o in data["questions"][0]["options"]] == ["green", "gold"]

    def test_window_against_stored_start(self, client, db, admin):
        created = _create(client, admin, startAt="2026-05-10T00:00:00Z").json()
        resp = client.put(f"/surveys/{created['id']}", json={"endAt": "2026-05-01T00:00:00"},
                          headers=auth_headers(admin))
        assert resp.status_code == 400

    def test_becoming_public_assigns_users(self, client, db, admin, respondent):
        created = _create(client, admin, isPublished=True).json()
        assert _active_assignees(db, created["id"]) == []

        client.put(f"/surveys/{created['id']}", json={"isPublic": True}, headers=auth_headers(admin))
        assert _active_assignees(db, created["id"]) == [respondent.id]

    def test_other_admin_may_edit(self, client, db, admin):
        created = _create(client, admin).json()
        boss = create_user(db, email="boss@example.com", role="admin")
        resp = client.put(f"/surveys/{created['id']}", json={"title": "Renamed"}, headers=auth_headers(boss))
        assert resp.status_code == 200


class TestDeleteSurvey:
    def test_delete(self, client, db, admin):
        survey = create_survey(db, admin, questions=[{"text": "Q"}])
        resp = client.delete(f"/surveys/{survey.id}", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert db.scalar(select(Survey).where(Survey.id == survey.id)) is None


class TestTogglePublish:
    def test_publish_public_survey_assigns_and_reactivates(self, client, db, admin, respondent):
        survey = create_survey(db, admin, is_published=False, is_public=True)
        db.add(SurveyAssignment(survey_id=survey.id, user_id=respondent.id, is_removed=True))
        db.commit()

        resp = client.post(f"/surveys/{survey.id}/toggle-publish", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert resp.json()["is_published"] is True
        assert _active_assignees(db, survey.id) == [respondent.id]
        rows = db.scalars(select(SurveyAssignment).where(SurveyAssignment.survey_id == survey.id)).all()
        assert len(rows) == 1

        resp = client.post(f"/surveys/{survey.id}/toggle-publish", headers=auth_headers(admin))
        assert resp.json() == {"message": "Survey unpublished successfully", "is_published": False}

    def test_toggle_archive_path_flips_publish_state(self, client, db, admin):
        survey = create_survey(db, admin)
        resp = client.post(f"/surveys/{survey.id}/toggle-archive", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert resp.json()["is_published"] is False
