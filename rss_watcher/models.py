"""Shared data models for rss_watcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class FeedConfig:
    """A watched feed and the push destination for its entries."""

    id: int
    url: str
    last_fetch: Optional[int]
    title: str
    message: str
    push_url: str
    push_token: str


@dataclass
class Text:
    """Text content together with its MIME content type."""

    content: str
    content_type: str = "text/plain"


@dataclass
class Person:
    name: str
    uri: Optional[str] = None
    email: Optional[str] = None


@dataclass
class Link:
    href: str
    rel: Optional[str] = None
    title: Optional[str] = None


@dataclass
class Category:
    term: str
    label: Optional[str] = None


@dataclass
class Entry:
    """A single item of a decoded feed."""

    id: Optional[str] = None
    title: Optional[Text] = None
    summary: Optional[Text] = None
    rights: Optional[Text] = None
    published: Optional[datetime] = None
    updated: Optional[datetime] = None
    authors: List[Person] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    contributors: List[Person] = field(default_factory=list)
    source: Optional[str] = None


@dataclass
class FeedDocument:
    """Feed-level metadata plus the entries in document order."""

    id: Optional[str] = None
    title: Optional[Text] = None
    description: Optional[Text] = None
    rights: Optional[Text] = None
    language: Optional[str] = None
    updated: Optional[datetime] = None
    published: Optional[datetime] = None
    authors: List[Person] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    contributors: List[Person] = field(default_factory=list)
    entries: List[Entry] = field(default_factory=list)
