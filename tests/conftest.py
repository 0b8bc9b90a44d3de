from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from rss_watcher import db
from rss_watcher.models import Entry, FeedConfig, FeedDocument, Link, Text


class FakeResponse(SimpleNamespace):
    """Stand-in for ``requests.Response`` with the attributes the app reads."""

    def __init__(self, status_code=200, content=b"", text=""):
        super().__init__(status_code=status_code, content=content, text=text)

    @property
    def ok(self):
        return self.status_code < 400


@pytest.fixture
def feed_config():
    return FeedConfig(
        id=1,
        url="https://example.com/feed.xml",
        last_fetch=1_700_000_000,
        title="{{title}}: {{entry.title}}",
        message="{{entry.summary}}",
        push_url="https://push.example.com",
        push_token="secret",
    )


@pytest.fixture
def entry():
    return Entry(
        id="urn:entry:1",
        title=Text("Release 2.0"),
        summary=Text("Bug fixes"),
        published=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        links=[Link(href="https://example.com/releases/2.0", rel="alternate")],
    )


@pytest.fixture
def document(entry):
    return FeedDocument(id="urn:feed", title=Text("Changelog"), entries=[entry])


@pytest.fixture
def engine():
    return db.init_engine("sqlite:///:memory:")


@pytest.fixture
def session_factory(engine):
    return db.get_session_factory(engine)


@pytest.fixture
def session(session_factory):
    """Create an in-memory SQLite session for testing."""
    session = session_factory()
    yield session
    session.close()
