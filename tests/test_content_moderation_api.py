import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select

from server.web.app.db import get_db
from server.web.app.dependencies import get_session_factory
from server.web.app.main import app
from server.web.app.models import Article

MODERATOR = {"X-User-Id": "mod-1"}
ADMIN = {"X-User-Id": "admin-1"}
MEMBER = {"X-User-Id": "user-1"}
REASON = "Violates the community guidelines"


@pytest.fixture
async def client(db_session, session_factory, content):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_header(self, client):
        response = await client.get("/api/admin/content")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user(self, client):
        response = await client.get("/api/admin/content", headers={"X-User-Id": "ghost"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_regular_user_is_forbidden(self, client):
        response = await client.get("/api/admin/content", headers=MEMBER)
        assert response.status_code == 403
        assert response.json()["detail"] == "You do not have permission to perform moderation actions"


class TestListing:
    @pytest.mark.asyncio
    async def test_list_content(self, client):
        response = await client.get("/api/admin/content", headers=MODERATOR)

        assert response.status_code == 200
        body = response.json()
        assert [item["id"] for item in body["items"]] == ["j1", "r1", "t1", "a1"]
        assert body["pagination"] == {"page": 1, "limit": 20, "total": 4, "total_pages": 1}
        topic = next(item for item in body["items"] if item["id"] == "t1")
        assert topic["flagged_by_system"] is True

    @pytest.mark.asyncio
    async def test_list_content_by_type(self, client):
        response = await client.get(
            "/api/admin/content", params=[("type", "topic"), ("type", "reply")], headers=MODERATOR
        )

        assert response.status_code == 200
        assert sorted(item["type"] for item in response.json()["items"]) == ["reply", "topic"]

    @pytest.mark.asyncio
    async def test_invalid_sort_field(self, client):
        response = await client.get("/api/admin/content", params={"sort_by": "title"}, headers=MODERATOR)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_reported(self, client, add_report):
        await add_report("Job", "j1")

        response = await client.get("/api/admin/content/reported", headers=MODERATOR)

        assert response.status_code == 200
        items = response.json()["items"]
        assert [(i["id"], i["report_count"]) for i in items] == [("j1", 1)]


class TestActions:
    @pytest.mark.asyncio
    async def test_approve(self, client, db_session):
        response = await client.put("/api/admin/content/article/a1/approve", headers=MODERATOR)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Content approved successfully"}
        assert await db_session.scalar(select(Article.status).where(Article.id == "a1")) == "approved"

    @pytest.mark.asyncio
    async def test_reject_requires_a_real_reason(self, client):
        response = await client.put(
            "/api/admin/content/article/a1/reject", json={"reason": "bad"}, headers=MODERATOR
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_hide(self, client):
        response = await client.put(
            "/api/admin/content/job/j1/hide", json={"reason": REASON}, headers=MODERATOR
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Content hidden successfully"

    @pytest.mark.asyncio
    async def test_unknown_content_type(self, client):
        response = await client.put("/api/admin/content/video/v1/approve", headers=MODERATOR)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_missing_content(self, client):
        response = await client.put("/api/admin/content/article/missing/approve", headers=MODERATOR)
        assert response.status_code == 404
        assert response.json()["detail"] == "Article not found"

    @pytest.mark.asyncio
    async def test_moderator_hard_delete_is_forbidden(self, client):
        response = await client.request(
            "DELETE",
            "/api/admin/content/article/a1",
            json={"reason": REASON, "hard_delete": True},
            headers=MODERATOR,
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Only administrators can permanently delete content"

    @pytest.mark.asyncio
    async def test_admin_hard_delete(self, client, db_session):
        response = await client.request(
            "DELETE",
            "/api/admin/content/article/a1",
            json={"reason": REASON, "hard_delete": True},
            headers=ADMIN,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Content permanently deleted"
        assert await db_session.scalar(select(Article.id).where(Article.id == "a1")) is None

    @pytest.mark.asyncio
    async def test_bulk(self, client):
        response = await client.post(
            "/api/admin/content/bulk",
            json={
                "action": "approve",
                "items": [{"type": "article", "id": "a1"}, {"type": "job", "id": "nope"}],
            },
            headers=MODERATOR,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "processed": 1,
            "failed": 1,
            "errors": ["job:nope - Job not found"],
        }

    @pytest.mark.asyncio
    async def test_bulk_item_limit(self, client):
        items = [{"type": "article", "id": f"a{i}"} for i in range(101)]
        response = await client.post(
            "/api/admin/content/bulk", json={"action": "approve", "items": items}, headers=MODERATOR
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_logs(self, client):
        await client.put("/api/admin/content/article/a1/approve", json={"note": "ok"}, headers=MODERATOR)

        response = await client.get("/api/admin/content/logs", params={"action": "approve_content"}, headers=ADMIN)

        assert response.status_code == 200
        entries = response.json()["items"]
        assert len(entries) == 1
        assert entries[0]["moderator_id"] == "mod-1"
        assert entries[0]["target_id"] == "a1"
        assert entries[0]["reason"] == "ok"


class TestSpamEndpoints:
    @pytest.mark.asyncio
    async def test_keyword_lifecycle(self, client):
        created = await client.post(
            "/api/admin/content/spam/keywords", json={"keyword": "Casino", "severity": 2}, headers=ADMIN
        )
        assert created.status_code == 201
        keyword = created.json()
        assert keyword["keyword"] == "casino"

        duplicate = await client.post(
            "/api/admin/content/spam/keywords", json={"keyword": "casino"}, headers=ADMIN
        )
        assert duplicate.status_code == 409

        updated = await client.patch(
            f"/api/admin/content/spam/keywords/{keyword['id']}", json={"is_active": False}, headers=ADMIN
        )
        assert updated.status_code == 200
        assert updated.json()["is_active"] is False
        assert updated.json()["severity"] == 2

        listed = await client.get(
            "/api/admin/content/spam/keywords", params={"active_only": True}, headers=MODERATOR
        )
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_update_missing_keyword(self, client):
        response = await client.patch(
            "/api/admin/content/spam/keywords/404", json={"severity": 3}, headers=ADMIN
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_analyze(self, client):
        response = await client.post(
            "/api/admin/content/spam/analyze", json={"content": "hi"}, headers=MODERATOR
        )

        assert response.status_code == 200
        assert response.json() == {
            "spam_score": 4,
            "is_spam": False,
            "flagged_keywords": [],
            "reason": "Low spam probability",
            "confidence": 0.3,
        }

    @pytest.mark.asyncio
    async def test_regular_user_cannot_manage_keywords(self, client):
        response = await client.get("/api/admin/content/spam/keywords", headers=MEMBER)
        assert response.status_code == 403
