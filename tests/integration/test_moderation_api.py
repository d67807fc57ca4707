"""Integration tests for the moderation REST endpoints."""

import pytest

from tests.factories import SubmissionFactory
from tests.factories import auth_headers as auth


def _seed(repo, owner, **kwargs):
    return repo.add(SubmissionFactory.create(owner.id, **kwargs))


class TestOwnerEndpoints:
    @pytest.mark.asyncio
    async def test_create_and_list_mine(self, http, owner, db_session):
        resp = await http.post(
            "/api/user/projects",
            json={"title": "Solar Mapper", "tags": "ai, maps", "media": [{"url": "/uploads/a.png"}]},
            headers=auth(owner),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "PENDING"
        assert body["slug"] == "solar-mapper"
        assert body["cover_image"] == "/uploads/a.png"
        db_session.commit.assert_awaited()

        mine = await http.get("/api/user/projects/me", headers=auth(owner))
        assert mine.status_code == 200
        assert [s["title"] for s in mine.json()["data"]] == ["Solar Mapper"]

    @pytest.mark.asyncio
    async def test_unauthenticated(self, http):
        resp = await http.post("/api/user/projects", json={"title": "x"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_kind(self, http, owner):
        resp = await http.get("/api/user/webinars/me", headers=auth(owner))
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_submit(self, http, submission_repo, owner):
        sub = _seed(submission_repo, owner)
        resp = await http.post(f"/api/user/projects/{sub.id}/submit", headers=auth(owner))
        assert resp.status_code == 200
        assert resp.json()["status"] == "SUBMITTED"
        assert resp.json()["submitted_at"] is not None

    @pytest.mark.asyncio
    async def test_update_content(self, http, submission_repo, owner):
        sub = _seed(submission_repo, owner, kind="startup")
        resp = await http.patch(
            f"/api/user/startups/{sub.id}", json={"website": "https://acme.example"}, headers=auth(owner)
        )
        assert resp.status_code == 200
        assert resp.json()["website"] == "https://acme.example"

    @pytest.mark.asyncio
    async def test_media_limit(self, http, submission_repo, owner):
        sub = _seed(submission_repo, owner, media_urls=[f"/uploads/{i}.png" for i in range(5)])
        resp = await http.post(
            f"/api/user/projects/{sub.id}/media", json={"url": "/uploads/6.png"}, headers=auth(owner)
        )
        assert resp.status_code == 422
        assert resp.json()["detail"]["type"] == "validation_error"
        assert resp.json()["detail"]["field"] == "media"

    @pytest.mark.asyncio
    async def test_set_cover_and_remove_media(self, http, submission_repo, owner):
        sub = _seed(submission_repo, owner, media_urls=["/uploads/a.png", "/uploads/b.png"])
        first, second = (m.id for m in sub.media)

        resp = await http.patch(
            f"/api/user/projects/{sub.id}/cover", json={"media_id": second}, headers=auth(owner)
        )
        assert resp.json()["cover_image"] == "/uploads/b.png"

        resp = await http.delete(f"/api/user/projects/{sub.id}/media/{first}", headers=auth(owner))
        assert resp.status_code == 200
        assert [m["id"] for m in resp.json()["media"]] == [second]

    @pytest.mark.asyncio
    async def test_owner_cannot_delete_featured(self, http, submission_repo, owner):
        sub = _seed(submission_repo, owner, status="FEATURED")
        resp = await http.delete(f"/api/user/projects/{sub.id}", headers=auth(owner))
        assert resp.status_code == 409
        assert resp.json()["detail"]["type"] == "state_conflict"

    @pytest.mark.asyncio
    async def test_owner_deletes_rejected(self, http, submission_repo, owner):
        sub = _seed(submission_repo, owner, status="REJECTED")
        resp = await http.delete(f"/api/user/projects/{sub.id}", headers=auth(owner))
        assert resp.status_code == 204
        assert sub.id not in submission_repo.rows


class TestModeratorEndpoints:
    @pytest.mark.asyncio
    async def test_list_with_meta(self, http, submission_repo, owner, moderator):
        _seed(submission_repo, owner, status="SUBMITTED")
        _seed(submission_repo, owner, status="PENDING")
        resp = await http.get("/api/admin/projects", params={"status": "SUBMITTED"}, headers=auth(moderator))
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["data"]) == 1
        assert body["meta"]["total"] == 1

    @pytest.mark.asyncio
    async def test_list_forbidden_for_users(self, http, owner):
        resp = await http.get("/api/admin/projects", headers=auth(owner))
        assert resp.status_code == 403
        assert resp.json()["detail"]["type"] == "authorization_error"

    @pytest.mark.asyncio
    async def test_approve_twice_conflicts(self, http, submission_repo, owner, moderator):
        sub = _seed(submission_repo, owner, status="SUBMITTED")
        first = await http.post(
            f"/api/admin/projects/{sub.id}/approve", json={"featured": False}, headers=auth(moderator)
        )
        assert first.status_code == 200
        assert first.json()["status"] == "APPROVED"

        second = await http.post(
            f"/api/admin/projects/{sub.id}/approve", json={"featured": False}, headers=auth(moderator)
        )
        assert second.status_code == 409
        problem = second.json()["detail"]
        assert problem["status"] == 409
        assert problem["current_status"] == "APPROVED"

    @pytest.mark.asyncio
    async def test_owner_cannot_approve(self, http, submission_repo, owner):
        sub = _seed(submission_repo, owner, status="SUBMITTED")
        resp = await http.post(f"/api/admin/projects/{sub.id}/approve", json={}, headers=auth(owner))
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_reject_blank_reason(self, http, submission_repo, owner, moderator):
        sub = _seed(submission_repo, owner, status="SUBMITTED")
        resp = await http.post(
            f"/api/admin/projects/{sub.id}/reject", json={"reason": "  "}, headers=auth(moderator)
        )
        assert resp.status_code == 422
        assert resp.json()["detail"]["field"] == "reason"
        assert sub.status == "SUBMITTED"

    @pytest.mark.asyncio
    async def test_request_changes(self, http, submission_repo, owner, admin):
        sub = _seed(submission_repo, owner, status="PENDING")
        resp = await http.post(
            f"/api/admin/projects/{sub.id}/request-changes",
            json={"message": "Add a demo video"},
            headers=auth(admin),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "CHANGES_REQUESTED"
        assert resp.json()["mod_notes"] == "Add a demo video"

    @pytest.mark.asyncio
    async def test_unfeature_via_approve(self, http, submission_repo, owner, moderator):
        sub = _seed(submission_repo, owner, status="SUBMITTED")
        featured = await http.post(
            f"/api/admin/projects/{sub.id}/approve", json={"featured": True}, headers=auth(moderator)
        )
        unfeatured = await http.post(
            f"/api/admin/projects/{sub.id}/approve", json={"featured": False}, headers=auth(moderator)
        )
        assert unfeatured.json()["status"] == "APPROVED"
        assert unfeatured.json()["featured_at"] == featured.json()["featured_at"]

    @pytest.mark.asyncio
    async def test_stale_feature_conflicts(self, http, submission_repo, owner, moderator):
        sub = _seed(submission_repo, owner, status="SUBMITTED")
        resp = await http.post(
            f"/api/admin/projects/{sub.id}/approve",
            json={"featured": True, "expected_status": "APPROVED"},
            headers=auth(moderator),
        )
        assert resp.status_code == 409
        problem = resp.json()["detail"]
        assert problem["current_status"] == "SUBMITTED"
        assert problem["action"] == "feature"
        assert sub.status == "SUBMITTED"

    @pytest.mark.asyncio
    async def test_unknown_expected_status(self, http, submission_repo, owner, moderator):
        sub = _seed(submission_repo, owner, status="SUBMITTED")
        resp = await http.post(
            f"/api/admin/projects/{sub.id}/approve",
            json={"featured": False, "expected_status": "ARCHIVED"},
            headers=auth(moderator),
        )
        assert resp.status_code == 422
        assert sub.status == "SUBMITTED"

    @pytest.mark.asyncio
    async def test_hard_delete_and_history(self, http, submission_repo, owner, moderator):
        sub = _seed(submission_repo, owner, status="FEATURED")
        resp = await http.delete(f"/api/admin/projects/{sub.id}", headers=auth(moderator))
        assert resp.status_code == 204

        missing = await http.get(f"/api/admin/projects/{sub.id}", headers=auth(moderator))
        assert missing.status_code == 404

        history = await http.get(f"/api/admin/projects/{sub.id}/history", headers=auth(moderator))
        assert history.status_code == 200
        assert [(e["action"], e["to_status"]) for e in history.json()] == [("delete", None)]


class TestPublicEndpoints:
    @pytest.mark.asyncio
    async def test_listing(self, http, submission_repo, owner):
        _seed(submission_repo, owner, status="APPROVED", title="Approved", country="Ghana")
        _seed(submission_repo, owner, status="FEATURED", title="Featured", country="Ghana")
        _seed(submission_repo, owner, status="SUBMITTED", title="Waiting", country="Ghana")
        _seed(submission_repo, owner, status="APPROVED", title="Elsewhere", country="Peru")

        resp = await http.get("/api/public/projects", params={"country": "ghana"})
        assert resp.status_code == 200
        assert [s["title"] for s in resp.json()["data"]] == ["Featured", "Approved"]

    @pytest.mark.asyncio
    async def test_project_by_slug(self, http, submission_repo, owner):
        _seed(submission_repo, owner, status="FEATURED", slug="solar-mapper")
        _seed(submission_repo, owner, status="PENDING", slug="draft")

        assert (await http.get("/api/public/projects/solar-mapper")).status_code == 200
        assert (await http.get("/api/public/projects/draft")).status_code == 404

    @pytest.mark.asyncio
    async def test_health(self, http):
        resp = await http.get("/health")
        assert resp.json() == {"status": "ok", "service": "portal"}
