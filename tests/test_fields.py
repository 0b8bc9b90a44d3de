from datetime import datetime, timedelta, timezone

import pytest

from rss_watcher import fields
from rss_watcher.fields import resolve_field
from rss_watcher.models import Category, Entry, FeedDocument, Link, Person, Text


def test_missing_fields_render_not_in_feed_sentinel():
    entry, feed = Entry(), FeedDocument()

    assert resolve_field("language", entry, feed) == 'Field "language" was not in feed'
    assert resolve_field("entry.title", entry, feed) == 'Field "entry.title" was not in feed'
    assert resolve_field("entry.published", entry, feed) == (
        'Field "entry.published" was not in feed'
    )
    assert resolve_field("id", entry, feed) == 'Field "id" was not in feed'


def test_unknown_paths_render_unknown_field_sentinel():
    entry, feed = Entry(), FeedDocument()

    assert resolve_field("summary", entry, feed) == 'Unknown field "summary"'
    assert resolve_field("entry.language", entry, feed) == 'Unknown field "entry.language"'
    assert resolve_field("", entry, feed) == 'Unknown field ""'


def test_plain_string_fields():
    entry = Entry(id="urn:1", source="https://source.example.com")
    feed = FeedDocument(id="urn:feed", language="en-us")

    assert resolve_field("id", entry, feed) == "urn:feed"
    assert resolve_field("entry.id", entry, feed) == "urn:1"
    assert resolve_field("language", entry, feed) == "en-us"
    assert resolve_field("entry.source", entry, feed) == "https://source.example.com"


def test_plain_text_passes_through_unchanged():
    feed = FeedDocument(description=Text("<not> *markup*", "text/plain"))

    assert resolve_field("description", Entry(), feed) == "<not> *markup*"


def test_html_text_is_converted_to_markdown():
    entry = Entry(summary=Text("<p>Some <strong>bold</strong> news</p>", "text/html"))

    assert resolve_field("entry.summary", entry, FeedDocument()) == "Some **bold** news"


def test_html_conversion_drops_scripts():
    entry = Entry(rights=Text("<p>Mine</p><script>alert(1)</script>", "text/html"))

    assert resolve_field("entry.rights", entry, FeedDocument()) == "Mine"


def test_unknown_content_type_renders_sentinel():
    entry = Entry(title=Text("{}", "application/json"))

    assert resolve_field("entry.title", entry, FeedDocument()) == (
        "Unknown field content type application/json"
    )


def test_datetime_fields_use_rfc2822_with_utc_suffix():
    entry = Entry(updated=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))

    assert resolve_field("entry.updated", entry, FeedDocument()) == (
        "Tue, 02 Jan 2024 03:04:05 UTC"
    )


def test_datetime_fields_are_normalised_to_utc():
    offset = timezone(timedelta(hours=2))
    feed = FeedDocument(published=datetime(2024, 1, 2, 5, 4, 5, tzinfo=offset))

    assert resolve_field("published", Entry(), feed) == "Tue, 02 Jan 2024 03:04:05 UTC"


def test_persons_render_as_markdown_links():
    people = [
        Person("Ann", uri="https://ann.example.com", email="ann@example.com"),
        Person("Bob", uri="https://bob.example.com"),
        Person("Cid", email="cid@example.com"),
        Person("Dee"),
    ]
    entry = Entry(authors=people)

    assert resolve_field("entry.authors", entry, FeedDocument()) == (
        "[Ann](ann@example.com) - [homepage](https://ann.example.com), "
        "[Bob](https://bob.example.com), "
        "[Cid](cid@example.com), "
        "Dee"
    )


def test_contributors_use_person_rendering():
    feed = FeedDocument(contributors=[Person("Eve")])

    assert resolve_field("contributors", Entry(), feed) == "Eve"


def test_links_prefer_title_then_rel_then_href():
    links = [
        Link("https://a.example.com", rel="alternate", title="Home"),
        Link("https://b.example.com", rel="self"),
        Link("https://c.example.com"),
    ]
    feed = FeedDocument(links=links)

    assert resolve_field("links", Entry(), feed) == (
        "[Home](https://a.example.com), "
        "[self](https://b.example.com), "
        "[https://c.example.com](https://c.example.com)"
    )


def test_categories_prefer_label_over_term():
    entry = Entry(categories=[Category("py", label="Python"), Category("rust")])

    assert resolve_field("entry.categories", entry, FeedDocument()) == "Python, rust"


def test_empty_lists_render_empty_string():
    assert resolve_field("authors", Entry(), FeedDocument()) == ""
    assert resolve_field("entry.links", Entry(), FeedDocument()) == ""


@pytest.mark.parametrize("path", sorted(fields.FEED_FIELDS) + sorted(fields.ENTRY_FIELDS))
def test_every_known_path_resolves_to_text(path):
    assert isinstance(resolve_field(path, Entry(), FeedDocument()), str)
    assert not resolve_field(path, Entry(), FeedDocument()).startswith("Unknown field \"")
