"""CLI for managing the feeds stored in the rss_watcher database."""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from . import db
from .cli import load_config
from .config import resolve_connection_string

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage watched feeds.")
    parser.add_argument(
        "--config",
        default="configs/config.xml",
        help="Path to the main configuration XML file.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="Show all watched feeds.")

    add = commands.add_parser("add", help="Watch a new feed.")
    add.add_argument("url", help="Feed URL.")
    add.add_argument("--push-url", required=True, help="Base URL of the push gateway.")
    add.add_argument("--push-token", required=True, help="Application token.")
    add.add_argument(
        "--title",
        help=f"Title template (default {db.DEFAULT_TITLE_TEMPLATE!r}).",
    )
    add.add_argument(
        "--message",
        help=f"Message template (default {db.DEFAULT_MESSAGE_TEMPLATE!r}).",
    )

    show = commands.add_parser("show", help="Show one watched feed.")
    show.add_argument("id", type=int, help="Feed id as shown by 'list'.")

    remove = commands.add_parser("remove", help="Stop watching a feed.")
    remove.add_argument("id", type=int, help="Feed id as shown by 'list'.")
    return parser


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging()

    try:
        app_config = load_config(args.config)
        engine = db.init_engine(resolve_connection_string(app_config))
        session_factory = db.get_session_factory(engine)

        with session_factory() as session:
            if args.command == "list":
                for feed in db.list_feeds(session):
                    print(
                        f"{feed.id}\t{feed.url}\t{feed.last_fetch or '-'}\t"
                        f"{feed.title}\t{feed.message}\t{feed.push_url}"
                    )
            elif args.command == "show":
                feed = db.get_feed(session, args.id)
                if feed is None:
                    logger.error("No feed with id %d", args.id)
                    return 1
                print(f"url: {feed.url}")
                print(f"last fetch: {feed.last_fetch or 'never'}")
                print(f"title: {feed.title}")
                print(f"message: {feed.message}")
                print(f"push url: {feed.push_url}")
            elif args.command == "add":
                feed = db.add_feed(
                    session,
                    url=args.url,
                    push_url=args.push_url,
                    push_token=args.push_token,
                    title=args.title,
                    message=args.message,
                )
                print(f"Added feed {feed.id}")
            elif args.command == "remove":
                if not db.remove_feed(session, args.id):
                    logger.error("No feed with id %d", args.id)
                    return 1
                print(f"Removed feed {args.id}")
    except (RuntimeError, FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Failed to update feeds.")
        return 1

    return 0


if __name__ == "__main__":
    import sys

    sys.exit(main())
