"""Database layer holding the watched feeds and their last fetch times."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    String,
    create_engine,
    delete,
    select,
    text,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .models import FeedConfig

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

DEFAULT_TITLE_TEMPLATE = "{{title}}: {{entry.title}}"
DEFAULT_MESSAGE_TEMPLATE = "{{entry.summary}}"

# Statements that bring a database from version N-1 up to N.
MIGRATIONS: Dict[int, List[str]] = {
    # Version 1 shipped with entry-only templates.
    2: [
        "UPDATE rss_watcher_feeds SET title = '{{title}}: {{entry.title}}' "
        "WHERE title = '{{title}}'",
        "UPDATE rss_watcher_feeds SET message = '{{entry.summary}}' "
        "WHERE message = '{{summary}}'",
    ],
}


class Base(DeclarativeBase):
    pass


class FeedModel(Base):
    """A watched feed."""

    __tablename__ = "rss_watcher_feeds"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String(255), nullable=False)
    last_fetch = Column(BigInteger, nullable=True)
    title = Column(String(255), nullable=False, default=DEFAULT_TITLE_TEMPLATE)
    message = Column(String(255), nullable=False, default=DEFAULT_MESSAGE_TEMPLATE)
    push_url = Column(String(255), nullable=False)
    push_token = Column(String(255), nullable=False)

    def to_config(self) -> FeedConfig:
        return FeedConfig(
            id=self.id,
            url=self.url,
            last_fetch=self.last_fetch,
            title=self.title,
            message=self.message,
            push_url=self.push_url,
            push_token=self.push_token,
        )


class SchemaVersionModel(Base):
    __tablename__ = "rss_watcher_schema"

    id = Column(Integer, primary_key=True)
    version = Column(Integer, nullable=False)


def init_engine(connection_string: Optional[str]) -> Optional[Engine]:
    """Initialize the database engine and bring the schema up to date."""
    if not connection_string:
        return None

    logger.info("Initializing database connection")
    engine = create_engine(connection_string)
    bootstrap(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory for the given engine."""
    return sessionmaker(bind=engine)


def bootstrap(engine: Engine) -> int:
    """Create missing tables and run pending migrations; return the version."""
    logger.info("Bootstrapping database")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        row = session.get(SchemaVersionModel, 1)
        if row is None:
            session.add(SchemaVersionModel(id=1, version=SCHEMA_VERSION))
            session.commit()
            logger.info("Created schema at version %d", SCHEMA_VERSION)
            return SCHEMA_VERSION

        if row.version >= SCHEMA_VERSION:
            logger.info("Database is up to date, no migrations to run.")
            return row.version

        try:
            for version in range(row.version + 1, SCHEMA_VERSION + 1):
                logger.warning("Running migrations to v%d", version)
                for statement in MIGRATIONS.get(version, []):
                    session.execute(text(statement))
                row.version = version
            session.commit()
        except Exception:
            session.rollback()
            raise
        return row.version


def list_feeds(session: Session) -> List[FeedConfig]:
    """Return every watched feed ordered by id."""
    stmt = select(FeedModel).order_by(FeedModel.id)
    return [row.to_config() for row in session.execute(stmt).scalars().all()]


def get_feed(session: Session, feed_id: int) -> Optional[FeedConfig]:
    row = session.get(FeedModel, feed_id)
    return row.to_config() if row else None


def add_feed(
    session: Session,
    url: str,
    push_url: str,
    push_token: str,
    title: Optional[str] = None,
    message: Optional[str] = None,
) -> FeedConfig:
    """Insert a feed that has never been fetched."""
    row = FeedModel(
        url=url,
        push_url=push_url,
        push_token=push_token,
        title=title or DEFAULT_TITLE_TEMPLATE,
        message=message or DEFAULT_MESSAGE_TEMPLATE,
    )
    session.add(row)
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Added feed %s (%s)", row.id, url)
    return row.to_config()


def remove_feed(session: Session, feed_id: int) -> bool:
    result = session.execute(delete(FeedModel).where(FeedModel.id == feed_id))
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    return result.rowcount > 0


def advance_last_fetch(session: Session, feed_id: int, timestamp: int) -> None:
    """Store ``timestamp`` as the feed's last fetch unless it would move back."""
    stmt = (
        update(FeedModel)
        .where(FeedModel.id == feed_id)
        .where((FeedModel.last_fetch.is_(None)) | (FeedModel.last_fetch < timestamp))
        .values(last_fetch=timestamp)
    )
    session.execute(stmt)
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
