"""Push notification delivery to a Gotify-compatible gateway."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import requests

from .feeds import DEFAULT_TIMEOUT
from .models import Entry, FeedConfig, FeedDocument
from .templating import escape, fill_template

logger = logging.getLogger(__name__)

PRIORITY = 1


@dataclass
class DispatchResult:
    sent: int = 0
    failed: int = 0


def build_payload(title: str, message: str, link: Optional[str] = None) -> str:
    """Assemble the JSON request body from already escaped strings."""
    extras = '"client::display": {"contentType": "text/markdown"}'
    if link is not None:
        extras += f', "client::notification": {{"click": {{"url": "{link}"}}}}'
    return (
        f'{{"title": "{title}", "message": "{message}", '
        f'"priority": {PRIORITY}, "extras": {{{extras}}}}}'
    )


def entry_link(entry: Entry) -> Optional[str]:
    if not entry.links:
        return None
    return escape(entry.links[0].href)


def push_notification(
    feed: FeedConfig,
    title: str,
    message: str,
    link: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> bool:
    """Send one notification; return whether the gateway accepted it."""
    payload = build_payload(title, message, link)
    url = f"{feed.push_url.rstrip('/')}/message"
    try:
        response = requests.post(
            url,
            params={"token": feed.push_token},
            data=payload.encode("utf-8"),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        logger.error("Could not send push notification to %s: %s", url, exc)
        return False

    if not response.ok:
        logger.error("payload: %s", payload)
        logger.error(
            "Could not send notification (status %s): %s",
            response.status_code,
            response.text,
        )
        return False

    logger.info('Sent notification with title "%s"', title)
    return True


def notify_entries(
    document: FeedDocument,
    entries: Iterable[Entry],
    feed: FeedConfig,
    timeout: float = DEFAULT_TIMEOUT,
) -> DispatchResult:
    """Render and push one notification per entry, in order."""
    result = DispatchResult()
    for entry in entries:
        title = fill_template(feed.title, entry, document)
        message = fill_template(feed.message, entry, document)
        if push_notification(feed, title, message, entry_link(entry), timeout):
            result.sent += 1
        else:
            result.failed += 1
    return result
