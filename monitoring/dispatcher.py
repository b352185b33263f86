"""
Notification dispatcher.

Each dispatch has two independent channels:

- required: one in-app Notification row, committed before anything else.
  A failed write raises SinkWriteFailure.
- best effort: one e-mail. Lookup or transport problems are logged and
  reported in the DispatchResult, never raised, and never undo the
  notification that was already committed.
"""

from typing import NamedTuple, Optional, Tuple
from urllib.parse import quote
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from models.notification import Notification
from models.subject import Subject
from models.base import NotificationType
from schemas.events import ExternalEvent, EmailDispatchRequest, EmailTemplate, UserProfile
from monitoring.subjects import RepositoryRef, parse_repository_ref
from monitoring.users import UserDirectory
from monitoring.mailer import EmailTransport
from monitoring.broker import NotificationBroker
from core.config import settings
from core.exceptions import SinkWriteFailure, EmailDeliveryFailure, MalformedSubject
import logging

logger = logging.getLogger(__name__)

DESCRIPTION_LIMIT = 100


class DispatchResult(NamedTuple):
    notification_id: str
    email_sent: bool
    email_error: Optional[str] = None


class NotificationDispatcher:
    def __init__(
        self,
        db_session: AsyncSession,
        users: UserDirectory,
        email_transport: Optional[EmailTransport] = None,
        broker: Optional[NotificationBroker] = None,
        app_url: Optional[str] = None
    ):
        self.db = db_session
        self.users = users
        self.email_transport = email_transport
        self.broker = broker
        self.app_url = (app_url or settings.APP_URL).rstrip("/")

    # --------------------------------------------------
    # Public API
    # --------------------------------------------------

    async def dispatch_event_notification(
        self,
        subject: Subject,
        event: ExternalEvent,
        repository: Optional[RepositoryRef] = None
    ) -> DispatchResult:
        """Notify the subject's owner about one new commit"""
        notification = await self._create_notification(
            subject,
            title="New commit detected",
            description=event.summary(DESCRIPTION_LIMIT),
            actor_id=event.author_login or "GitHub"
        )

        repo_name = self._repo_name(subject, repository)
        profile, lookup_error = await self._recipient(subject.owner_id)
        if lookup_error:
            return DispatchResult(notification.id, False, lookup_error)

        journey_url = (
            f"{self.app_url}/projects/{subject.id}/journey/new"
            f"?commitSha={event.id}"
            f"&commitMessage={quote(event.message, safe='')}"
            f"&commitUrl={quote(event.url or '', safe='')}"
            f"&repoName={quote(repo_name, safe='')}"
        )
        sent, error = await self._send_email(
            profile.email,
            EmailTemplate.COMMIT_ALERT,
            {
                "username": profile.greeting_name,
                "repo_name": repo_name,
                "commit_message": event.message,
                "commit_url": event.url,
                "commit_author": event.author_name,
                "journey_url": journey_url,
            }
        )
        return DispatchResult(notification.id, sent, error)

    async def dispatch_staleness_notification(
        self,
        subject: Subject,
        owner_email: Optional[str] = None
    ) -> DispatchResult:
        """Remind the subject's owner to log progress"""
        notification = await self._create_notification(
            subject,
            title=f"Keep your users updated on {subject.title}",
            description="Any updates since your last log?",
            actor_id=None
        )

        if owner_email:
            profile, _ = await self._recipient(subject.owner_id, required=False)
            username = (profile.username or profile.display_name) if profile else None
            to = owner_email
        else:
            profile, lookup_error = await self._recipient(subject.owner_id)
            if lookup_error:
                return DispatchResult(notification.id, False, lookup_error)
            username = profile.username or profile.display_name
            to = profile.email

        sent, error = await self._send_email(
            to,
            EmailTemplate.JOURNEY_REMINDER,
            {
                "username": username or to,
                "notification_type": "Journey Reminder",
                "message": f"Hey! Got progress to log for {subject.title}?",
                "action_link": f"{self.app_url}/projects/{subject.id}/journey",
            }
        )
        return DispatchResult(notification.id, sent, error)

    # --------------------------------------------------
    # Required channel
    # --------------------------------------------------

    async def _create_notification(
        self,
        subject: Subject,
        title: str,
        description: str,
        actor_id: Optional[str]
    ) -> Notification:
        notification = Notification(
            user_id=subject.owner_id,
            type=NotificationType.PROJECT_UPDATE,
            title=title,
            description=description,
            related_entity_id=subject.id,
            related_entity_type=subject.kind.value if subject.kind else "project",
            actor_id=actor_id,
            read=False
        )

        try:
            self.db.add(notification)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SinkWriteFailure(
                "Failed to create notification",
                context={
                    "operation": "notification",
                    "subject_id": subject.id,
                    "user_id": subject.owner_id
                },
                original_exception=e
            )

        if self.broker is not None:
            self.broker.publish(notification.user_id, notification.to_dict())
        return notification

    # --------------------------------------------------
    # Best-effort channel
    # --------------------------------------------------

    async def _recipient(
        self,
        user_id: str,
        required: bool = True
    ) -> Tuple[Optional[UserProfile], Optional[str]]:
        try:
            profile = await self.users.get_profile(self.db, user_id)
        except SQLAlchemyError as e:
            logger.warning(f"Recipient lookup failed for user {user_id}: {e}")
            return None, "recipient lookup failed"

        if required and (profile is None or not profile.email):
            logger.info(f"No e-mail address for user {user_id}; skipping e-mail")
            return profile, "no e-mail address for recipient"
        return profile, None

    async def _send_email(self, to: str, template: EmailTemplate, fields) -> Tuple[bool, Optional[str]]:
        if self.email_transport is None:
            return False, "e-mail transport not configured"

        try:
            await self.email_transport.send(
                EmailDispatchRequest(to=to, template=template, fields=fields)
            )
            return True, None
        except EmailDeliveryFailure as e:
            logger.warning(
                f"E-mail delivery failed: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            return False, e.message
        except Exception as e:
            logger.exception(f"Unexpected e-mail transport error for {template.value}")
            return False, str(e) or type(e).__name__

    def _repo_name(self, subject: Subject, repository: Optional[RepositoryRef]) -> str:
        if repository is not None:
            return repository.repo
        try:
            return parse_repository_ref(subject.external_ref, subject.id).repo
        except MalformedSubject:
            return subject.title
