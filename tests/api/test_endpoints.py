"""
API endpoint tests
"""

import pytest
import pytest_asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from api.main import app
from api.dependencies import get_db, get_runner, get_broker
from api.sse import format_sse_event
from core.config import settings
from models.base import NotificationType
from models.notification import Notification
from models.user import User
from monitoring.broker import NotificationBroker
from monitoring.runner import Check
from conftest import make_event, make_project, journal_entry

AUTH = {"Authorization": f"Bearer {settings.CRON_SECRET}"}


@pytest_asyncio.fixture
async def client(session_factory, runner):
    """Test client with database and runner overrides"""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    broker = NotificationBroker()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_runner] = lambda: runner
    app.dependency_overrides[get_broker] = lambda: broker

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def mock_runner():
    runner = MagicMock()
    runner.run_once = AsyncMock(return_value=MagicMock(processed_count=0, notified_count=0))
    app.dependency_overrides[get_runner] = lambda: runner
    yield runner


def notification(notification_id, user_id="user_1", read=False):
    return Notification(
        id=notification_id,
        user_id=user_id,
        type=NotificationType.PROJECT_UPDATE,
        title="New commit detected",
        description="Fix bug",
        related_entity_id="p1",
        related_entity_type="project",
        read=read
    )


@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_health_endpoint_database_connected(client, seed):
    await seed(make_project("p1"))

    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["database_connected"] is True
    assert data["status"] == "healthy"


# ============================================================================
# Cron triggers
# ============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": settings.CRON_SECRET}])
async def test_cron_rejects_bad_secret(client, mock_runner, headers):
    response = await client.get("/cron/monitor", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "Unauthorized"}
    mock_runner.run_once.assert_not_called()


@pytest.mark.asyncio
async def test_cron_monitor_runs_pass(client, fetcher, seed, owner):
    await seed(owner, make_project("p1"), journal_entry("p1", timedelta(days=1)))
    fetcher.windows["octo/app"] = [make_event("c1")]

    response = await client.get("/cron/monitor", headers=AUTH)

    assert response.status_code == 200
    assert response.json() == {"ok": True, "processed": 1, "notified": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize("path, checks", [
    ("/cron/commit-monitor", (Check.EVENTS,)),
    ("/cron/journey-reminders", (Check.STALENESS,)),
])
async def test_cron_routes_select_checks(client, mock_runner, path, checks):
    response = await client.get(path, headers=AUTH)

    assert response.status_code == 200
    mock_runner.run_once.assert_awaited_once_with(trigger="cron", checks=checks)


@pytest.mark.asyncio
async def test_cron_failure_is_generic(client, mock_runner):
    mock_runner.run_once.side_effect = RuntimeError("connection refused to postgres:5432")

    response = await client.get("/cron/monitor", headers=AUTH)

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "monitor failed"}


# ============================================================================
# On-demand checks
# ============================================================================

@pytest.mark.asyncio
async def test_commit_check(client, fetcher, seed, owner):
    await seed(owner, make_project("p1"))
    fetcher.windows["octo/app"] = [make_event("c1", "Add README")]

    response = await client.post("/projects/p1/commits/check")

    assert response.status_code == 200
    data = response.json()
    assert data["new_commits"] == 1
    assert data["commits"][0]["sha"] == "c1"
    assert data["commits"][0]["message"] == "Add README"


@pytest.mark.asyncio
async def test_commit_check_unknown_project(client):
    response = await client.post("/projects/missing/commits/check")

    assert response.status_code == 404
    assert response.json()["error"] == "SubjectNotFound"


@pytest.mark.asyncio
async def test_commit_check_without_repository(client, seed, owner):
    await seed(owner, make_project("p1", repo=None))

    response = await client.post("/projects/p1/commits/check")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_check_stale_owner_gets_reminder(client, seed, owner):
    await seed(owner, make_project("p1"), journal_entry("p1", timedelta(days=9)))

    response = await client.post("/projects/p1/journey/check-stale", json={"user_id": "user_1"})

    assert response.status_code == 200
    data = response.json()
    assert data["stale"] is True
    assert data["notified"] is True


@pytest.mark.asyncio
async def test_check_stale_anonymous_gets_verdict_only(client, session_factory, seed, owner):
    await seed(owner, make_project("p1"), journal_entry("p1", timedelta(days=9)))

    response = await client.post("/projects/p1/journey/check-stale", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["stale"] is True
    assert data["notified"] is False
    async with session_factory() as session:
        assert (await session.execute(select(Notification))).scalars().all() == []


@pytest.mark.asyncio
async def test_check_stale_disabled_project(client, seed, owner):
    await seed(owner, make_project("p1", enabled=False), journal_entry("p1", timedelta(days=9)))

    response = await client.post("/projects/p1/journey/check-stale", json={"user_id": "user_1"})

    assert response.status_code == 200
    assert response.json()["notified"] is False
    assert response.json()["message"] == "Project is not watched"


@pytest.mark.asyncio
async def test_commit_check_owner_without_token(client, fetcher, seed):
    await seed(User(id="user_1", email="ada@example.com", username="ada"), make_project("p1"))

    response = await client.post("/projects/p1/commits/check")

    assert response.status_code == 401
    assert response.json()["error"] == "NoCredential"
    assert fetcher.calls == []


# ============================================================================
# Notifications
# ============================================================================

@pytest.mark.asyncio
async def test_list_notifications(client, seed):
    await seed(notification("n1"), notification("n2", read=True), notification("n3", user_id="user_2"))

    response = await client.get("/notifications", params={"user_id": "user_1"})

    assert response.status_code == 200
    data = response.json()
    assert {item["id"] for item in data["items"]} == {"n1", "n2"}
    assert data["unread_count"] == 1


@pytest.mark.asyncio
async def test_mark_read(client, seed):
    await seed(notification("n1"))

    first = await client.post("/notifications/n1/read")
    second = await client.post("/notifications/n1/read")
    missing = await client.post("/notifications/nope/read")

    assert first.json()["updated"] == 1
    assert second.json()["updated"] == 0
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_mark_all_read(client, seed):
    await seed(notification("n1"), notification("n2"), notification("n3", user_id="user_2"))

    response = await client.post("/notifications/read-all", params={"user_id": "user_1"})

    assert response.json()["updated"] == 2
    listing = await client.get("/notifications", params={"user_id": "user_2"})
    assert listing.json()["unread_count"] == 1


def test_format_sse_event():
    event = format_sse_event(3, "notification", {"id": "n1"})

    assert event == 'id: 3\nevent: notification\ndata: {"id": "n1"}\n\n'


# ============================================================================
# Statistics
# ============================================================================

@pytest.mark.asyncio
async def test_run_stats(client, runner, seed, owner):
    await seed(owner, make_project("p1", repo=None), journal_entry("p1", timedelta(days=1)))
    await runner.run_once(trigger="manual")

    response = await client.get("/stats/runs")

    assert response.status_code == 200
    data = response.json()
    assert data["total_runs"] == 1
    assert data["recent_runs"][0]["trigger"] == "manual"
    assert data["recent_runs"][0]["status"] == "success"
    assert data["last_success"] is not None
