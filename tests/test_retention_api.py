"""Archiving, retention periods, purge and the audit trail."""

from __future__ import annotations

from sqlalchemy import func, select

from surveyhub.app.services.audit import log_action
from surveyhub.db.models import Answer, AuditLog, Response, Survey
from tests.conftest import auth_headers, create_survey


class TestArchive:
    def test_archive_and_restore(self, client, db, admin):
        survey = create_survey(db, admin)

        resp = client.post(f"/retention/surveys/{survey.id}/archive", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert resp.json()["survey"]["is_archived"] is True

        archived = client.get("/retention/surveys/archived", headers=auth_headers(admin)).json()
        assert [s["id"] for s in archived["surveys"]] == [survey.id]

        resp = client.post(f"/retention/surveys/{survey.id}/restore", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert resp.json()["survey"]["is_archived"] is False

        actions = [log.action for log in db.scalars(select(AuditLog).order_by(AuditLog.id)).all()]
        assert actions == ["archive", "restore"]

    def test_restore_requires_archived(self, client, db, admin):
        survey = create_survey(db, admin)
        resp = client.post(f"/retention/surveys/{survey.id}/restore", headers=auth_headers(admin))
        assert resp.status_code == 400

    def test_archived_survey_stops_accepting_responses(self, client, db, admin, respondent):
        survey = create_survey(db, admin)
        client.post(f"/retention/surveys/{survey.id}/archive", headers=auth_headers(admin))

        resp = client.post("/responses", json={"surveyId": survey.id, "answers": []},
                           headers=auth_headers(respondent))
        assert resp.status_code == 400

    def test_users_cannot_archive(self, client, db, admin, respondent):
        survey = create_survey(db, admin)
        resp = client.post(f"/retention/surveys/{survey.id}/archive", headers=auth_headers(respondent))
        assert resp.status_code == 403


class TestRetention:
    def test_set_retention_end_date(self, client, db, admin):
        survey = create_survey(db, admin)
        resp = client.post(f"/retention/surveys/{survey.id}/retention",
                           json={"retentionEndDate": "2027-01-01T00:00:00Z"},
                           headers=auth_headers(admin))
        assert resp.status_code == 200
        assert resp.json()["survey"]["retention_end_date"].startswith("2027-01-01")

        logs = client.get(f"/retention/surveys/{survey.id}/logs", headers=auth_headers(admin)).json()
        assert logs[0]["action"] == "set_retention"
        assert logs[0]["details"]["retentionEndDate"].startswith("2027-01-01")


class TestPurge:
    def test_purge_removes_responses_and_keeps_log(self, client, db, admin, respondent):
        survey = create_survey(db, admin, questions=[{"text": "Q"}])
        q = survey.questions[0]
        client.post("/responses", json={"surveyId": survey.id, "answers": [{"questionId": q.id, "value": "x"}]},
                    headers=auth_headers(respondent))

        resp = client.delete(f"/retention/surveys/{survey.id}/purge", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert resp.json()["surveyId"] == survey.id

        assert db.scalar(select(func.count()).select_from(Survey)) == 0
        assert db.scalar(select(func.count()).select_from(Response)) == 0
        assert db.scalar(select(func.count()).select_from(Answer)) == 0

        log = db.scalar(select(AuditLog).where(AuditLog.action == "purge"))
        assert log.entity_id == survey.id
        assert log.details["responsesDeleted"] == 1


class TestAuditLogs:
    def test_all_logs_paginated(self, client, db, admin):
        survey = create_survey(db, admin)
        for _ in range(3):
            log_action(db, user_id=admin.id, action="archive", entity_type="survey", entity_id=survey.id)
        db.commit()

        data = client.get("/retention/logs?page=2&limit=2", headers=auth_headers(admin)).json()
        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert data["page"] == 2
        assert len(data["logs"]) == 1

    def test_failed_audit_write_is_swallowed(self, db, caplog):
        entry = log_action(db, user_id=None, action="archive", entity_type="survey", entity_id=1)
        assert entry is None
        assert "Failed to write audit log" in caplog.text
        db.commit()
        assert db.scalar(select(func.count()).select_from(AuditLog)) == 0
