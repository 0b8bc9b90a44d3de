"""High-level orchestration for the rss_watcher application."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import db
from .feeds import (
    DEFAULT_TIMEOUT,
    FeedFetchError,
    fetch_feed,
    last_fetch_time,
    select_new_entries,
)
from .models import FeedConfig
from .notify import notify_entries

logger = logging.getLogger(__name__)

PROCESSED = "processed"
NOT_MODIFIED = "not-modified"
FAILED = "failed"


@dataclass
class FeedResult:
    """Outcome of one pass over a single feed."""

    feed_id: int
    status: str
    sent: int = 0
    failed: int = 0

    @property
    def should_advance(self) -> bool:
        # Partial delivery failures still count as a processed pass.
        return self.status == PROCESSED


def process_feed(
    feed: FeedConfig,
    timeout: float = DEFAULT_TIMEOUT,
    now: Optional[datetime] = None,
) -> FeedResult:
    """Fetch ``feed`` and push a notification for every new entry."""
    cutoff = last_fetch_time(feed, now)

    try:
        document = fetch_feed(feed, cutoff, timeout)
    except FeedFetchError as exc:
        logger.error("Could not fetch feed %s (%s): %s", feed.id, feed.url, exc)
        return FeedResult(feed.id, FAILED)

    if document is None:
        return FeedResult(feed.id, NOT_MODIFIED)

    entries = select_new_entries(document.entries, cutoff)
    logger.info(
        "Feed %s has %d new entries of %d", feed.id, len(entries), len(document.entries)
    )
    dispatched = notify_entries(document, entries, feed, timeout)
    if dispatched.failed:
        logger.warning(
            "Feed %s: %d of %d notifications failed",
            feed.id,
            dispatched.failed,
            dispatched.sent + dispatched.failed,
        )
    return FeedResult(feed.id, PROCESSED, sent=dispatched.sent, failed=dispatched.failed)


def run_cycle(
    session_factory: Callable[[], Session], timeout: float = DEFAULT_TIMEOUT
) -> List[FeedResult]:
    """Process every configured feed once, sequentially and in store order."""
    results: List[FeedResult] = []
    with session_factory() as session:
        try:
            feeds = db.list_feeds(session)
        except SQLAlchemyError as exc:
            logger.error("Could not get feeds from database: %s", exc)
            return results

        for feed in feeds:
            started = datetime.now(timezone.utc)
            try:
                result = process_feed(feed, timeout=timeout)
            except Exception:
                logger.exception("Failed to process feed %s", feed.url)
                result = FeedResult(feed.id, FAILED)
            results.append(result)

            if not result.should_advance:
                continue
            try:
                db.advance_last_fetch(session, feed.id, int(started.timestamp()))
            except SQLAlchemyError as exc:
                logger.warning("Could not update last fetch time of feed %s: %s", feed.id, exc)

    logger.info("Completed cycle over %d feeds", len(results))
    return results


def run_forever(
    session_factory: Callable[[], Session],
    interval_seconds: float,
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """Run cycles forever, sleeping ``interval_seconds`` after each one."""
    logger.info("Watching feeds every %.1f seconds", interval_seconds)
    while True:
        run_cycle(session_factory, timeout=timeout)
        time.sleep(interval_seconds)
