# ============================================================================
# File: monitoring/runner.py
# Description: Orchestrates commit watching and journal reminders per subject
# ============================================================================
"""
Monitor Runner - drives the detect → deduplicate → notify loop.

For every enabled subject, independently:

1. Events - credential → fetch → resolve against the checkpoint → dispatch
   each new commit oldest first → advance the checkpoint once
2. Staleness - evaluate the journal → remind the owner at most once per
   threshold window

Per-subject state: Idle → Fetching → Resolving → Dispatching → CheckpointWriting
→ Done, or Failed from any of them. A failed subject is logged and recorded;
the run itself keeps going and only fails if the subject list cannot be
loaded.

Overlapping runs are not locked against each other. The built-in scheduler is
single-flight; external triggers must not overlap.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError
import asyncio
import enum
import logging

from monitoring.checkpoints import CheckpointStore
from monitoring.dispatcher import NotificationDispatcher
from monitoring.fetchers.base import ChangeFetcher
from monitoring.resolver import resolve, DEFAULT_MISSING_BACKLOG
from monitoring.staleness import StalenessEvaluator
from monitoring.subjects import SubjectRepository, parse_repository_ref
from monitoring.users import UserDirectory
from monitoring.mailer import EmailTransport
from monitoring.broker import NotificationBroker
from models.monitor_run import MonitorRun
from models.subject import Subject
from models.base import RunStatus, utcnow
from schemas.events import ExternalEvent
from core.config import settings
from core.exceptions import (
    MonitorException,
    MalformedSubject,
    SubjectNotFound,
    NoCredential,
    UpstreamUnavailable,
    CheckpointError
)

logger = logging.getLogger(__name__)


class Check(str, enum.Enum):
    EVENTS = "events"
    STALENESS = "staleness"


ALL_CHECKS = (Check.EVENTS, Check.STALENESS)


class SubjectState(str, enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    RESOLVING = "resolving"
    DISPATCHING = "dispatching"
    CHECKPOINT_WRITING = "checkpoint_writing"
    DONE = "done"
    FAILED = "failed"


class CheckStatus(str, enum.Enum):
    DONE = "done"
    SKIPPED = "skipped"
    DISABLED = "disabled"
    NOT_CONFIGURED = "not_configured"
    FAILED = "failed"


@dataclass
class SubjectOutcome:
    subject_id: str
    owner_id: str
    state: SubjectState = SubjectState.IDLE
    events: Optional[CheckStatus] = None
    staleness: Optional[CheckStatus] = None
    new_events: List[ExternalEvent] = field(default_factory=list)
    event_notifications: int = 0
    stale: Optional[bool] = None
    last_entry_at: Optional[datetime] = None
    reminded: bool = False
    emails_failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def notified(self) -> int:
        return self.event_notifications + (1 if self.reminded else 0)

    @property
    def processed(self) -> bool:
        """Every requested check that applies to the subject completed"""
        statuses = [s for s in (self.events, self.staleness) if s is not None]
        applicable = [s for s in statuses if s != CheckStatus.NOT_CONFIGURED]
        return bool(applicable) and all(s == CheckStatus.DONE for s in applicable)

    @property
    def failed(self) -> bool:
        return CheckStatus.FAILED in (self.events, self.staleness)


@dataclass
class RunSummary:
    run_id: Optional[str]
    outcomes: List[SubjectOutcome] = field(default_factory=list)

    @property
    def processed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.processed)

    @property
    def notified_count(self) -> int:
        return sum(o.notified for o in self.outcomes)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def skipped_count(self) -> int:
        return len(self.outcomes) - self.processed_count - self.failed_count


class MonitorRunner:
    """
    Orchestrator for one pass over all enabled subjects.

    Responsibilities:
    - Isolate subjects: own DB session, own timeout, own error handling
    - Dispatch new commits oldest first, then advance the checkpoint once
    - Send journal reminders to owners, at most once per threshold window
    - Record the pass as a MonitorRun
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        fetcher: ChangeFetcher,
        users: Optional[UserDirectory] = None,
        email_transport: Optional[EmailTransport] = None,
        broker: Optional[NotificationBroker] = None,
        missing_backlog: Optional[int] = None,
        staleness_threshold: Optional[timedelta] = None,
        subject_timeout: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.session_factory = session_factory
        self.fetcher = fetcher
        self.users = users or UserDirectory()
        self.email_transport = email_transport
        self.broker = broker
        self.missing_backlog = missing_backlog or settings.MISSING_CHECKPOINT_BACKLOG or DEFAULT_MISSING_BACKLOG
        self.staleness_threshold = staleness_threshold or timedelta(days=settings.STALENESS_THRESHOLD_DAYS)
        self.subject_timeout = subject_timeout or settings.SUBJECT_TIMEOUT_SECONDS
        self.max_concurrency = max(1, max_concurrency or settings.MAX_CONCURRENT_SUBJECTS)
        self.clock = clock

    def _dispatcher(self, session) -> NotificationDispatcher:
        return NotificationDispatcher(
            session,
            users=self.users,
            email_transport=self.email_transport,
            broker=self.broker
        )

    # --------------------------------------------------
    # Whole run
    # --------------------------------------------------

    async def run_once(
        self,
        trigger: str = "cron",
        checks: Iterable[Check] = ALL_CHECKS,
        requested_by: Optional[str] = None
    ) -> RunSummary:
        """
        Process every enabled subject once.

        Args:
            trigger: Label stored with the run (cron, scheduler, manual)
            checks: Which halves of the pipeline to run
            requested_by: Acting user; reminders only go out when this is
                None (system run) or the subject's owner

        Returns:
            RunSummary with processed_count / notified_count

        Raises:
            SQLAlchemyError: the subject list could not be loaded
        """
        checks = tuple(Check(c) for c in checks)
        run = await self._start_run(trigger, checks)
        summary = RunSummary(run_id=run.run_id if run else None)

        try:
            async with self.session_factory() as session:
                subjects = await SubjectRepository(session).list_enabled()
        except Exception as e:
            logger.exception("Failed to load subjects")
            await self._complete_run(run, summary, error_message=str(e))
            raise

        logger.info(f"Monitor run started: {len(subjects)} subjects, checks={[c.value for c in checks]}")

        if self.max_concurrency == 1:
            for subject in subjects:
                summary.outcomes.append(await self.process_subject(subject, checks, requested_by))
        else:
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def guarded(subject):
                async with semaphore:
                    return await self.process_subject(subject, checks, requested_by)

            summary.outcomes.extend(await asyncio.gather(*(guarded(s) for s in subjects)))

        await self._complete_run(run, summary)

        logger.info(
            f"Monitor run completed: processed={summary.processed_count}, "
            f"notified={summary.notified_count}, skipped={summary.skipped_count}, "
            f"failed={summary.failed_count}"
        )
        return summary

    async def process_subject(
        self,
        subject: Subject,
        checks: Iterable[Check] = ALL_CHECKS,
        requested_by: Optional[str] = None
    ) -> SubjectOutcome:
        """Run the requested checks for one subject; never raises."""
        outcome = SubjectOutcome(subject_id=subject.id, owner_id=subject.owner_id)

        if Check.EVENTS in checks:
            outcome.events = await self._guard(
                subject, outcome, "events",
                self._check_events(subject, outcome)
            )

        if Check.STALENESS in checks:
            outcome.staleness = await self._guard(
                subject, outcome, "staleness",
                self._check_staleness(subject, outcome, requested_by)
            )

        if outcome.state != SubjectState.FAILED:
            outcome.state = SubjectState.DONE
        return outcome

    async def _guard(self, subject: Subject, outcome: SubjectOutcome, check: str, coro) -> CheckStatus:
        """Absorb every failure of one check into the outcome"""
        try:
            return await asyncio.wait_for(coro, timeout=self.subject_timeout)

        except MalformedSubject:
            logger.debug(f"Subject {subject.id} has no repository configured")
            return CheckStatus.NOT_CONFIGURED

        except (NoCredential, UpstreamUnavailable) as e:
            logger.warning(
                f"Skipping {check} for subject {subject.id}: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            outcome.errors.append({"check": check, **e.to_dict()})
            await self._record_checkpoint_failure(subject.id, e.message)
            return CheckStatus.SKIPPED

        except asyncio.TimeoutError:
            message = f"{check} check timed out after {self.subject_timeout}s"
            logger.error(f"Subject {subject.id}: {message}")
            outcome.state = SubjectState.FAILED
            outcome.errors.append({"check": check, "error_type": "Timeout", "message": message})
            await self._record_checkpoint_failure(subject.id, message)
            return CheckStatus.FAILED

        except MonitorException as e:
            logger.error(
                f"{check} check failed for subject {subject.id}: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            outcome.state = SubjectState.FAILED
            outcome.errors.append({"check": check, **e.to_dict()})
            await self._record_checkpoint_failure(subject.id, e.message)
            return CheckStatus.FAILED

        except Exception as e:
            logger.exception(f"Unexpected error in {check} check for subject {subject.id}")
            outcome.state = SubjectState.FAILED
            outcome.errors.append({
                "check": check,
                "error_type": type(e).__name__,
                "message": str(e)
            })
            await self._record_checkpoint_failure(subject.id, str(e) or type(e).__name__)
            return CheckStatus.FAILED

    # --------------------------------------------------
    # Events: fetch → resolve → dispatch → checkpoint
    # --------------------------------------------------

    async def _check_events(self, subject: Subject, outcome: SubjectOutcome) -> CheckStatus:
        if not subject.enabled:
            logger.info(f"Subject {subject.id} is disabled; not watching")
            return CheckStatus.DISABLED

        repository = parse_repository_ref(subject.external_ref, subject.id)

        async with self.session_factory() as session:
            checkpoints = CheckpointStore(session)
            checkpoint = await checkpoints.get_or_create(subject.id)

            if not checkpoint.enabled:
                logger.info(f"Watcher disabled for subject {subject.id}")
                return CheckStatus.DISABLED

            access_token = await self.users.get_access_token(session, subject.owner_id)
            if not access_token:
                raise NoCredential(
                    "No GitHub access token for subject owner",
                    context={"subject_id": subject.id, "owner_id": subject.owner_id}
                )

            outcome.state = SubjectState.FETCHING
            try:
                fetched = await self.fetcher.fetch(repository, access_token)
            except NoCredential:
                self.users.forget(subject.owner_id)
                raise

            outcome.state = SubjectState.RESOLVING
            resolution = resolve(fetched, checkpoint.last_seen_event_id, self.missing_backlog)
            if resolution.checkpoint_found is False:
                logger.warning(
                    f"Checkpoint {checkpoint.last_seen_event_id} for subject {subject.id} "
                    f"not in fetched window; replaying {len(resolution.new_events)} commits"
                )

            outcome.state = SubjectState.DISPATCHING
            dispatcher = self._dispatcher(session)
            for event in resolution.new_events:
                result = await dispatcher.dispatch_event_notification(subject, event, repository)
                outcome.new_events.append(event)
                outcome.event_notifications += 1
                if not result.email_sent:
                    outcome.emails_failed += 1

            outcome.state = SubjectState.CHECKPOINT_WRITING
            fields = {"last_checked_at": self.clock()}
            if resolution.latest_event_id:
                fields["last_seen_event_id"] = resolution.latest_event_id
            await checkpoints.record_success(subject.id, **fields)

        logger.info(
            f"Subject {subject.id} ({repository.full_name}): "
            f"{len(fetched)} fetched, {len(resolution.new_events)} new"
        )
        return CheckStatus.DONE

    # --------------------------------------------------
    # Staleness: evaluate → remind
    # --------------------------------------------------

    async def _check_staleness(
        self,
        subject: Subject,
        outcome: SubjectOutcome,
        requested_by: Optional[str],
        remind: bool = True
    ) -> CheckStatus:
        if not subject.enabled:
            return CheckStatus.DISABLED

        async with self.session_factory() as session:
            now = self.clock()
            verdict = await StalenessEvaluator(session, self.staleness_threshold).evaluate(subject.id, now)
            outcome.stale = verdict.stale
            outcome.last_entry_at = verdict.last_timestamp

            if not verdict.stale or not remind:
                return CheckStatus.DONE

            if requested_by is not None and requested_by != subject.owner_id:
                return CheckStatus.DONE

            checkpoints = CheckpointStore(session)
            checkpoint = await checkpoints.get(subject.id)
            last_reminder = checkpoint.stale_notified_at if checkpoint else None
            if last_reminder is not None and now - last_reminder <= self.staleness_threshold:
                logger.debug(f"Reminder for subject {subject.id} already sent at {last_reminder}")
                return CheckStatus.DONE

            outcome.state = SubjectState.DISPATCHING
            result = await self._dispatcher(session).dispatch_staleness_notification(subject)
            outcome.reminded = True
            if not result.email_sent:
                outcome.emails_failed += 1

            outcome.state = SubjectState.CHECKPOINT_WRITING
            await checkpoints.upsert(subject.id, stale_notified_at=now)

        logger.info(f"Journal reminder sent for subject {subject.id}")
        return CheckStatus.DONE

    # --------------------------------------------------
    # On-demand checks (errors propagate to the caller)
    # --------------------------------------------------

    async def _load_subject(self, subject_id: str) -> Subject:
        async with self.session_factory() as session:
            subject = await SubjectRepository(session).get(subject_id)
        if subject is None:
            raise SubjectNotFound("Subject not found", context={"subject_id": subject_id})
        return subject

    async def check_subject_events(self, subject_id: str) -> SubjectOutcome:
        subject = await self._load_subject(subject_id)
        outcome = SubjectOutcome(subject_id=subject.id, owner_id=subject.owner_id)
        outcome.events = await asyncio.wait_for(
            self._check_events(subject, outcome), timeout=self.subject_timeout
        )
        outcome.state = SubjectState.DONE
        return outcome

    async def check_subject_staleness(
        self,
        subject_id: str,
        requested_by: Optional[str],
        remind: bool = True
    ) -> SubjectOutcome:
        """Evaluate one subject's journal; `remind=False` only reports the verdict"""
        subject = await self._load_subject(subject_id)
        outcome = SubjectOutcome(subject_id=subject.id, owner_id=subject.owner_id)
        outcome.staleness = await asyncio.wait_for(
            self._check_staleness(subject, outcome, requested_by, remind), timeout=self.subject_timeout
        )
        outcome.state = SubjectState.DONE
        return outcome

    # --------------------------------------------------
    # Bookkeeping
    # --------------------------------------------------

    async def _record_checkpoint_failure(self, subject_id: str, message: str):
        try:
            async with self.session_factory() as session:
                await CheckpointStore(session).record_failure(subject_id, message)
        except (CheckpointError, SQLAlchemyError) as e:
            logger.warning(f"Could not record failure on checkpoint {subject_id}: {e}")

    async def _start_run(self, trigger: str, checks) -> Optional[MonitorRun]:
        run = MonitorRun(
            trigger=trigger,
            checks=",".join(c.value for c in checks),
            status=RunStatus.RUNNING,
            started_at=utcnow()
        )
        try:
            async with self.session_factory() as session:
                session.add(run)
                await session.commit()
            return run
        except SQLAlchemyError as e:
            logger.warning(f"Could not record monitor run start: {e}")
            return None

    async def _complete_run(self, run: Optional[MonitorRun], summary: RunSummary, error_message: str = None):
        if run is None:
            return

        if error_message:
            status = RunStatus.FAILED
        elif summary.failed_count:
            status = RunStatus.PARTIAL
        else:
            status = RunStatus.SUCCESS

        run.status = status
        run.completed_at = utcnow()
        run.duration_seconds = (run.completed_at - run.started_at).total_seconds()
        run.subjects_total = len(summary.outcomes)
        run.subjects_processed = summary.processed_count
        run.subjects_skipped = summary.skipped_count
        run.subjects_failed = summary.failed_count
        run.notifications_created = summary.notified_count
        run.error_message = error_message
        errors = [
            {"subject_id": o.subject_id, **error}
            for o in summary.outcomes
            for error in o.errors
        ]
        run.error_details = errors or None

        try:
            async with self.session_factory() as session:
                await session.merge(run)
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning(f"Could not record monitor run completion: {e}")
