"""
Commit watching and journal reminder pipeline.

Modules:
    subjects: Subject loading and GitHub repository reference parsing
    users: Owner profiles and access tokens (optionally cached)
    cache: TTL cache used for profile lookups
    checkpoints: Per-subject cursor persistence
    resolver: Diff of fetched commits against the checkpoint
    staleness: Journal staleness evaluation
    mailer: E-mail templates and SMTP transport
    broker: In-process fan-out of new notifications to live listeners
    dispatcher: Notification + e-mail dispatch
    runner: Orchestrator for one pass over all subjects
    scheduler: APScheduler integration for periodic passes

Subpackages:
    fetchers: Upstream change fetchers (GitHub commits)

Architecture:
    For each subject, independently:

    1. Fetch - newest-first commits from GitHub
    2. Resolve - keep only commits newer than the checkpoint
    3. Dispatch - one notification (and best-effort e-mail) per commit,
       oldest first, then advance the checkpoint
    4. Remind - nudge the owner when the journal has gone quiet

    A failure in one subject never stops the others.

Usage:
    from monitoring.runner import MonitorRunner
    from monitoring.fetchers import GitHubCommitFetcher
    from monitoring.scheduler import MonitorScheduler
"""

__all__ = [
    "MonitorRunner",
    "MonitorScheduler",
    "GitHubCommitFetcher",
    "CheckpointStore",
    "NotificationDispatcher",
    "StalenessEvaluator",
    "resolve",
]
