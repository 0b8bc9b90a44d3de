"""Tests for the feed store."""

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session

from rss_watcher import db


def test_add_and_list_feeds_uses_default_templates(session):
    first = db.add_feed(session, "https://a.example.com/feed", "https://push", "tok")
    second = db.add_feed(
        session,
        "https://b.example.com/feed",
        "https://push",
        "tok",
        title="{{entry.title}}",
        message="{{entry.links}}",
    )

    feeds = db.list_feeds(session)

    assert [feed.id for feed in feeds] == [first.id, second.id]
    assert feeds[0].last_fetch is None
    assert feeds[0].title == "{{title}}: {{entry.title}}"
    assert feeds[0].message == "{{entry.summary}}"
    assert feeds[1].title == "{{entry.title}}"
    assert feeds[1].push_token == "tok"


def test_advance_last_fetch_never_moves_backwards(session):
    feed = db.add_feed(session, "https://a.example.com/feed", "https://push", "tok")

    db.advance_last_fetch(session, feed.id, 200)
    assert db.get_feed(session, feed.id).last_fetch == 200

    db.advance_last_fetch(session, feed.id, 100)
    assert db.get_feed(session, feed.id).last_fetch == 200

    db.advance_last_fetch(session, feed.id, 300)
    assert db.get_feed(session, feed.id).last_fetch == 300


def test_remove_feed(session):
    feed = db.add_feed(session, "https://a.example.com/feed", "https://push", "tok")

    assert db.remove_feed(session, feed.id) is True
    assert db.remove_feed(session, feed.id) is False
    assert db.list_feeds(session) == []


def test_bootstrap_stamps_fresh_database(engine):
    with Session(engine) as session:
        assert session.get(db.SchemaVersionModel, 1).version == db.SCHEMA_VERSION

    assert db.bootstrap(engine) == db.SCHEMA_VERSION


def test_bootstrap_migrates_legacy_templates():
    engine = create_engine("sqlite:///:memory:")
    db.Base.metadata.create_all(engine)
    with Session(engine) as session:
        session.add(db.SchemaVersionModel(id=1, version=1))
        session.add(
            db.FeedModel(
                url="https://legacy.example.com/feed",
                title="{{title}}",
                message="{{summary}}",
                push_url="https://push",
                push_token="tok",
            )
        )
        session.add(
            db.FeedModel(
                url="https://custom.example.com/feed",
                title="Custom {{entry.title}}",
                message="{{entry.links}}",
                push_url="https://push",
                push_token="tok",
            )
        )
        session.commit()

    assert db.bootstrap(engine) == 2

    with Session(engine) as session:
        legacy, custom = db.list_feeds(session)
        assert legacy.title == "{{title}}: {{entry.title}}"
        assert legacy.message == "{{entry.summary}}"
        assert custom.title == "Custom {{entry.title}}"
        assert custom.message == "{{entry.links}}"
        version = session.execute(
            text("SELECT version FROM rss_watcher_schema WHERE id = 1")
        ).scalar_one()
        assert version == 2
