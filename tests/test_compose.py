import json
from datetime import timedelta

import pytest

from conftest import NOW, make_item, make_member
from firehose.compose import COPYRIGHT, compose_feed, select_items
from firehose.models import FeedItem


def test_select_items_drops_future_dated_entries():
    items = [
        make_item("past", hours_ago=2),
        make_item("future-published", hours_ago=-1),
        make_item("future-updated", hours_ago=3, updated_hours_ago=-2),
        make_item("exactly-now", hours_ago=0),
    ]

    selected = select_items(items, now=NOW)

    assert [item.link for item in selected] == ["exactly-now", "past"]


def test_select_items_orders_newest_first_with_stable_ties():
    items = [
        make_item("old", hours_ago=10),
        make_item("tie-a", hours_ago=2),
        make_item("newest", hours_ago=1),
        make_item("tie-b", hours_ago=2),
    ]

    selected = select_items(items, now=NOW)

    assert [item.link for item in selected] == ["newest", "tie-a", "tie-b", "old"]


def test_select_items_truncates_to_most_recent():
    items = [make_item(f"post-{hours}", hours_ago=hours) for hours in (5, 1, 4, 2, 3)]

    selected = select_items(items, count=2, now=NOW)

    assert [item.link for item in selected] == ["post-1", "post-2"]


def test_select_items_count_larger_than_available():
    items = [make_item("only", hours_ago=1)]

    assert len(select_items(items, count=10, now=NOW)) == 1
    assert select_items(items, count=0, now=NOW) == []


def test_select_items_rejects_negative_count():
    with pytest.raises(ValueError):
        select_items([], count=-1, now=NOW)


def test_select_items_places_undated_entries_last():
    undated = FeedItem(link="undated", title="t", published=None, updated=None)
    selected = select_items([undated, make_item("dated")], now=NOW)

    assert [item.link for item in selected] == ["dated", "undated"]


def test_compose_feed_builds_envelope_and_contributors(settings):
    members = [make_member("Ada"), make_member("Bob", language_code="nl")]
    items = [make_item("a", hours_ago=3), make_item("b", hours_ago=1)]

    feed = compose_feed(items, "mixed", members, None, settings, now=NOW)

    assert feed.title == "Planet Test"
    assert feed.description == "Posts from testers"
    assert feed.base_url == "https://planet.example.com/"
    assert feed.image_url == "https://planet.example.com/logo.png"
    assert feed.copyright == COPYRIGHT
    assert feed.language == "mixed"
    assert feed.generated_at == NOW
    assert [item.link for item in feed.items] == ["b", "a"]
    assert [(c.email, c.name, c.uri) for c in feed.contributors] == [
        ("ada@example.com", "Ada Tester", "https://ada.example.com/"),
        ("bob@example.com", "Bob Tester", "https://bob.example.com/"),
    ]


def test_combined_feed_to_dict_is_json_serialisable(settings):
    item = make_item("https://e.com/1", categories=("mobile",), author="Ada")
    feed = compose_feed([item], "en", [make_member("Ada")], 5, settings, now=NOW)

    payload = json.loads(json.dumps(feed.to_dict()))

    assert payload["language"] == "en"
    assert payload["items"][0]["link"] == "https://e.com/1"
    assert payload["items"][0]["categories"] == ["mobile"]
    assert payload["items"][0]["published"] == (NOW - timedelta(hours=1)).isoformat()
    assert payload["contributors"][0]["name"] == "Ada Tester"
