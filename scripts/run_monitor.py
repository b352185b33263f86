"""
Script to run one monitor pass over all subjects
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import make_engine, make_session_factory
from core.logging import setup_logging
from monitoring.cache import ExpiringCache
from monitoring.fetchers import GitHubCommitFetcher
from monitoring.mailer import SMTPEmailTransport
from monitoring.runner import MonitorRunner, Check
from monitoring.users import UserDirectory

logger = logging.getLogger(__name__)


async def run_monitor(checks):
    """Run one pass and print the trigger summary"""
    engine = make_engine()
    runner = MonitorRunner(
        session_factory=make_session_factory(engine),
        fetcher=GitHubCommitFetcher(),
        users=UserDirectory(cache=ExpiringCache(default_ttl=settings.USER_CACHE_TTL_SECONDS)),
        email_transport=SMTPEmailTransport()
    )

    try:
        summary = await runner.run_once(trigger="manual", checks=checks)
        logger.info(
            f"Monitor pass completed: processed={summary.processed_count}, "
            f"notified={summary.notified_count}, failed={summary.failed_count}"
        )
    except Exception as e:
        logger.error(f"Monitor pass error: {str(e)}")
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run one Dev Space monitor pass")
    parser.add_argument(
        "--check",
        action="append",
        choices=[c.value for c in Check],
        help="Limit the pass to one check (repeatable); default runs all"
    )
    args = parser.parse_args()

    setup_logging()
    asyncio.run(run_monitor([Check(c) for c in args.check] if args.check else list(Check)))
