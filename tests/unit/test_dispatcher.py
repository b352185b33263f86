"""
Unit tests for notification dispatch
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from core.exceptions import SinkWriteFailure
from models.base import NotificationType
from models.notification import Notification
from monitoring.broker import NotificationBroker
from monitoring.dispatcher import NotificationDispatcher
from monitoring.users import UserDirectory
from schemas.events import EmailTemplate
from conftest import make_event, make_project, RecordingTransport


async def notifications(db_session):
    result = await db_session.execute(select(Notification))
    return result.scalars().all()


class TestEventNotification:

    @pytest.mark.asyncio
    async def test_creates_notification_and_email(self, db_session, seed, owner, transport):
        project = make_project("p1")
        await seed(owner, project)
        dispatcher = NotificationDispatcher(
            db_session, UserDirectory(), transport, app_url="https://devspace.test"
        )
        event = make_event("abc123", "Fix login bug\n\nDetails", login="grace")

        result = await dispatcher.dispatch_event_notification(project, event)

        assert result.email_sent is True
        [notification] = await notifications(db_session)
        assert notification.user_id == "user_1"
        assert notification.type == NotificationType.PROJECT_UPDATE
        assert notification.title == "New commit detected"
        assert notification.description == "Fix login bug"
        assert notification.related_entity_id == "p1"
        assert notification.related_entity_type == "project"
        assert notification.actor_id == "grace"
        assert notification.read is False

        [email] = transport.sent
        assert email.template == EmailTemplate.COMMIT_ALERT
        assert email.to == "ada@example.com"
        assert email.fields["repo_name"] == "app"
        query = parse_qs(urlparse(email.fields["journey_url"]).query)
        assert query["commitSha"] == ["abc123"]
        assert query["commitMessage"] == ["Fix login bug\n\nDetails"]
        assert query["repoName"] == ["app"]

    @pytest.mark.asyncio
    async def test_description_is_truncated_and_actor_defaults(self, db_session, seed, owner, transport):
        project = make_project("p1")
        await seed(owner, project)
        dispatcher = NotificationDispatcher(db_session, UserDirectory(), transport)

        await dispatcher.dispatch_event_notification(project, make_event("c1", "x" * 150, login=None))

        [notification] = await notifications(db_session)
        assert len(notification.description) == 100
        assert notification.actor_id == "GitHub"

    @pytest.mark.asyncio
    async def test_email_failure_keeps_notification(self, db_session, seed, owner):
        project = make_project("p1")
        await seed(owner, project)
        dispatcher = NotificationDispatcher(db_session, UserDirectory(), RecordingTransport(fail=True))

        result = await dispatcher.dispatch_event_notification(project, make_event("c1"))

        assert result.email_sent is False
        assert result.email_error == "SMTP down"
        assert len(await notifications(db_session)) == 1

    @pytest.mark.asyncio
    async def test_owner_without_email(self, db_session, seed, owner, transport):
        owner.email = None
        project = make_project("p1")
        await seed(owner, project)
        dispatcher = NotificationDispatcher(db_session, UserDirectory(), transport)

        result = await dispatcher.dispatch_event_notification(project, make_event("c1"))

        assert result.email_sent is False
        assert transport.sent == []
        assert len(await notifications(db_session)) == 1

    @pytest.mark.asyncio
    async def test_publishes_to_broker(self, db_session, seed, owner, transport):
        project = make_project("p1")
        await seed(owner, project)
        broker = NotificationBroker()
        subscription = broker.subscribe("user_1")
        dispatcher = NotificationDispatcher(db_session, UserDirectory(), transport, broker=broker)

        result = await dispatcher.dispatch_event_notification(project, make_event("c1"))

        payload = await subscription.get()
        assert payload["id"] == result.notification_id
        assert payload["title"] == "New commit detected"

    @pytest.mark.asyncio
    async def test_sink_failure_raises(self, transport):
        session = MagicMock()
        session.commit = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))
        session.rollback = AsyncMock()
        dispatcher = NotificationDispatcher(session, UserDirectory(), transport)

        with pytest.raises(SinkWriteFailure):
            await dispatcher.dispatch_event_notification(make_project("p1"), make_event("c1"))

        assert transport.sent == []


class TestStalenessNotification:

    @pytest.mark.asyncio
    async def test_reminder_content(self, db_session, seed, owner, transport):
        project = make_project("p1", display_name="Rocket")
        await seed(owner, project)
        dispatcher = NotificationDispatcher(
            db_session, UserDirectory(), transport, app_url="https://devspace.test/"
        )

        result = await dispatcher.dispatch_staleness_notification(project)

        assert result.email_sent is True
        [notification] = await notifications(db_session)
        assert notification.title == "Keep your users updated on Rocket"
        assert notification.description == "Any updates since your last log?"
        assert notification.actor_id is None

        [email] = transport.sent
        assert email.template == EmailTemplate.JOURNEY_REMINDER
        assert email.fields["message"] == "Hey! Got progress to log for Rocket?"
        assert email.fields["action_link"] == "https://devspace.test/projects/p1/journey"

    @pytest.mark.asyncio
    async def test_explicit_address(self, db_session, seed, owner, transport):
        project = make_project("p1")
        await seed(owner, project)
        dispatcher = NotificationDispatcher(db_session, UserDirectory(), transport)

        await dispatcher.dispatch_staleness_notification(project, owner_email="other@example.com")

        [email] = transport.sent
        assert email.to == "other@example.com"
        assert email.fields["username"] == "ada"
