"""Resolution of template placeholder paths against a feed and an entry."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup
from markdownify import ATX, MarkdownConverter

from .models import Category, Entry, FeedDocument, Link, Person, Text

MARKUP_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
PLAIN_CONTENT_TYPES = ("text/plain",)

ENTRY_PREFIX = "entry."


def not_in_feed(field: str) -> str:
    return f'Field "{field}" was not in feed'


def unknown_field(field: str) -> str:
    return f'Unknown field "{field}"'


def html_to_markdown(raw_value: str) -> str:
    """Convert an HTML fragment to markdown suitable for a notification body."""
    soup = BeautifulSoup(raw_value, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    markdown = MarkdownConverter(heading_style=ATX).convert_soup(soup)
    markdown = re.sub(r"\n{3,}", "\n\n", markdown)
    return markdown.strip()


def format_string(value: Optional[str], field: str) -> str:
    if value is None:
        return not_in_feed(field)
    return value


def format_text(value: Optional[Text], field: str) -> str:
    if value is None:
        return not_in_feed(field)
    content_type = value.content_type.split(";", 1)[0].strip().lower()
    if content_type in MARKUP_CONTENT_TYPES:
        return html_to_markdown(value.content)
    if content_type in PLAIN_CONTENT_TYPES:
        return value.content
    return f"Unknown field content type {value.content_type}"


def format_datetime_field(value: Optional[datetime], field: str) -> str:
    if value is None:
        return not_in_feed(field)
    return format_datetime(value.astimezone(timezone.utc)).replace("+0000", "UTC")


def format_persons(people: List[Person], field: str) -> str:
    rendered = []
    for person in people:
        if person.uri and person.email:
            rendered.append(f"[{person.name}]({person.email}) - [homepage]({person.uri})")
        elif person.uri:
            rendered.append(f"[{person.name}]({person.uri})")
        elif person.email:
            rendered.append(f"[{person.name}]({person.email})")
        else:
            rendered.append(person.name)
    return ", ".join(rendered)


def format_links(links: List[Link], field: str) -> str:
    rendered = []
    for link in links:
        label = link.title or link.rel or link.href
        rendered.append(f"[{label}]({link.href})")
    return ", ".join(rendered)


def format_categories(categories: List[Category], field: str) -> str:
    return ", ".join(category.label or category.term for category in categories)


Formatter = Callable[..., str]

# Placeholder name -> (attribute, formatter), one table per namespace.
FEED_FIELDS: Dict[str, Tuple[str, Formatter]] = {
    "id": ("id", format_string),
    "title": ("title", format_text),
    "updated": ("updated", format_datetime_field),
    "authors": ("authors", format_persons),
    "description": ("description", format_text),
    "links": ("links", format_links),
    "categories": ("categories", format_categories),
    "contributors": ("contributors", format_persons),
    "language": ("language", format_string),
    "published": ("published", format_datetime_field),
    "rights": ("rights", format_text),
}

ENTRY_FIELDS: Dict[str, Tuple[str, Formatter]] = {
    "entry.id": ("id", format_string),
    "entry.title": ("title", format_text),
    "entry.updated": ("updated", format_datetime_field),
    "entry.authors": ("authors", format_persons),
    "entry.links": ("links", format_links),
    "entry.summary": ("summary", format_text),
    "entry.categories": ("categories", format_categories),
    "entry.contributors": ("contributors", format_persons),
    "entry.published": ("published", format_datetime_field),
    "entry.source": ("source", format_string),
    "entry.rights": ("rights", format_text),
}


def resolve_field(field: str, entry: Entry, feed: FeedDocument) -> str:
    """Return the formatted value for a placeholder path.

    Never raises: missing values and unknown paths resolve to diagnostic
    sentinel strings.
    """
    if field.startswith(ENTRY_PREFIX):
        lookup = ENTRY_FIELDS.get(field)
        source = entry
    else:
        lookup = FEED_FIELDS.get(field)
        source = feed

    if lookup is None:
        return unknown_field(field)

    attribute, formatter = lookup
    return formatter(getattr(source, attribute), field)
