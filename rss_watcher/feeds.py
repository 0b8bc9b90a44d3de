"""Conditional feed retrieval, decoding and new-entry selection."""

from __future__ import annotations

import calendar
import logging
import time
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Iterable, List, Mapping, Optional

import feedparser
import requests

from .models import Category, Entry, FeedConfig, FeedDocument, Link, Person, Text

logger = logging.getLogger(__name__)

USER_AGENT = "rss-watcher/0.2"
DEFAULT_TIMEOUT = 10.0


class FeedFetchError(Exception):
    """Raised when a feed could not be retrieved for this cycle."""


class FeedDecodeError(FeedFetchError):
    """Raised when a retrieved body is not a feed."""


def to_datetime(value: Optional[time.struct_time]) -> Optional[datetime]:
    """Convert feedparser UTC timestamps to timezone-aware datetimes."""
    if value is None:
        return None
    return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)


def last_fetch_time(feed: FeedConfig, now: Optional[datetime] = None) -> datetime:
    """Return the feed's last fetch as a datetime, or ``now`` if never fetched."""
    if feed.last_fetch is None:
        return now or datetime.now(timezone.utc)
    return datetime.fromtimestamp(feed.last_fetch, tz=timezone.utc)


def if_modified_since(value: datetime) -> str:
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def fetch_feed(
    feed: FeedConfig, since: datetime, timeout: float = DEFAULT_TIMEOUT
) -> Optional[FeedDocument]:
    """Retrieve ``feed`` unless it is unchanged since ``since``.

    Returns ``None`` when the server answers 304 Not Modified.
    """
    header = if_modified_since(since)
    logger.info("Fetching feed %s (%s)", feed.id, feed.url)
    logger.debug('Using header "If-Modified-Since: %s"', header)
    try:
        response = requests.get(
            feed.url,
            headers={"If-Modified-Since": header, "User-Agent": USER_AGENT},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise FeedFetchError(f"request to {feed.url} failed: {exc}") from exc

    if response.status_code == 304:
        logger.info("No changes since last fetch at %s", header)
        return None
    if not 200 <= response.status_code < 300:
        raise FeedFetchError(
            f"unexpected status {response.status_code} from {feed.url}"
        )

    return parse_feed(response.content)


def parse_feed(content: bytes) -> FeedDocument:
    """Decode raw feed bytes into a :class:`FeedDocument`."""
    parsed = feedparser.parse(content)
    if parsed.get("bozo") and not parsed.get("version"):
        raise FeedDecodeError(f"could not decode feed: {parsed.get('bozo_exception')}")

    meta = parsed.get("feed", {})
    # dict.get skips feedparser's fallback from updated_parsed to published_parsed.
    document = FeedDocument(
        id=meta.get("id"),
        title=_text(meta.get("title_detail")),
        description=_text(meta.get("subtitle_detail")),
        rights=_text(meta.get("rights_detail")),
        language=meta.get("language"),
        updated=to_datetime(dict.get(meta, "updated_parsed")),
        published=to_datetime(meta.get("published_parsed")),
        authors=_persons(meta.get("authors")),
        links=_links(meta.get("links")),
        categories=_categories(meta.get("tags")),
        contributors=_persons(meta.get("contributors")),
        entries=[_entry(item) for item in parsed.get("entries", [])],
    )
    logger.debug("Decoded feed %r with %d entries", document.id, len(document.entries))
    return document


def _entry(item: Mapping[str, Any]) -> Entry:
    summary = item.get("summary_detail")
    if not summary:
        content = item.get("content")
        if content:
            try:
                summary = content[0]
            except (TypeError, IndexError):
                summary = None

    return Entry(
        id=item.get("id"),
        title=_text(item.get("title_detail")),
        summary=_text(summary),
        rights=_text(item.get("rights_detail")),
        published=to_datetime(item.get("published_parsed")),
        updated=to_datetime(dict.get(item, "updated_parsed")),
        authors=_persons(item.get("authors")),
        links=_links(item.get("links")),
        categories=_categories(item.get("tags")),
        contributors=_persons(item.get("contributors")),
        source=_source(item.get("source")),
    )


def _text(detail: Optional[Mapping[str, Any]]) -> Optional[Text]:
    if not detail or detail.get("value") is None:
        return None
    return Text(
        content=detail["value"], content_type=detail.get("type") or "text/plain"
    )


def _persons(values: Optional[Iterable[Mapping[str, Any]]]) -> List[Person]:
    people = []
    for value in values or []:
        name = value.get("name")
        uri = value.get("href")
        email = value.get("email")
        if not (name or uri or email):
            continue
        people.append(Person(name=name or "", uri=uri, email=email))
    return people


def _links(values: Optional[Iterable[Mapping[str, Any]]]) -> List[Link]:
    return [
        Link(href=value["href"], rel=value.get("rel"), title=value.get("title"))
        for value in values or []
        if value.get("href")
    ]


def _categories(values: Optional[Iterable[Mapping[str, Any]]]) -> List[Category]:
    return [
        Category(term=value["term"], label=value.get("label"))
        for value in values or []
        if value.get("term")
    ]


def _source(value: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not value:
        return None
    return value.get("href") or value.get("link")


def select_new_entries(
    entries: Iterable[Entry], cutoff: Optional[datetime]
) -> List[Entry]:
    """Return entries published after ``cutoff``, keeping document order.

    Entries without a publish date are always kept, and so is everything
    when there is no cutoff at all.
    """
    selected: List[Entry] = []
    for entry in entries:
        if cutoff is None or entry.published is None:
            selected.append(entry)
            continue
        if entry.published <= cutoff:
            logger.info("Skipping entry that was published at %s", entry.published)
            continue
        selected.append(entry)
    return selected
