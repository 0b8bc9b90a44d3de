"""Placeholder rendering for notification title and message templates."""

from __future__ import annotations

from typing import List

from .fields import resolve_field
from .models import Entry, FeedDocument

AMPERSAND_MARKER = "$amp;"


def escape_json(value: str) -> str:
    """Escape characters that would break a JSON string literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def escape(value: str) -> str:
    """Escape for a JSON string body and neutralise HTML-significant characters.

    Not idempotent: apply once, to fully rendered text.
    """
    return (
        escape_json(value)
        .replace("&", AMPERSAND_MARKER)
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


def fill_template(template: str, entry: Entry, feed: FeedDocument) -> str:
    """Replace ``{{path}}`` tags in ``template`` and return the escaped result.

    Two or more consecutive ``{`` open a tag and two consecutive ``}`` close it.
    Single braces outside a tag are copied through, field paths are not
    trimmed, and a tag still open at the end of the template is dropped.
    """
    rendered: List[str] = []
    field: List[str] = []
    open_run = 0
    close_run = 0

    for char in template:
        if open_run > 1:
            if char == "}":
                close_run += 1
                if close_run > 1:
                    rendered.append(resolve_field("".join(field), entry, feed))
                    field = []
                    open_run = 0
                    close_run = 0
                continue
            # A lone "}" inside a tag is dropped.
            close_run = 0
            if char == "{" and not field:
                open_run += 1
                continue
            field.append(char)
        elif char == "{":
            open_run += 1
            if open_run > 1:
                field = []
        else:
            if open_run:
                rendered.append("{")
                open_run = 0
            rendered.append(char)

    if open_run == 1:
        rendered.append("{")

    return escape("".join(rendered))
