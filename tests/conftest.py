from datetime import datetime, timedelta, timezone

import pytest

from firehose.config import FeedSettings
from firehose.models import CommunityMember, FeedItem
from firehose.resilience import ResiliencePolicy, TTLCache

NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


def make_item(link, hours_ago=1, updated_hours_ago=None, title="Title", **kwargs):
    published = NOW - timedelta(hours=hours_ago)
    if updated_hours_ago is None:
        updated = published
    else:
        updated = NOW - timedelta(hours=updated_hours_ago)
    return FeedItem(
        link=link, title=title, published=published, updated=updated, **kwargs
    )


def make_member(first_name, language_code="en", feed_uris=(), item_filter=None):
    return CommunityMember(
        first_name=first_name,
        last_name="Tester",
        email_address=f"{first_name.lower()}@example.com",
        website=f"https://{first_name.lower()}.example.com/",
        language_code=language_code,
        feed_uris=list(feed_uris),
        item_filter=item_filter,
    )


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def settings():
    return FeedSettings(
        title="Planet Test",
        description="Posts from testers",
        base_url="https://planet.example.com/",
        image_url="https://planet.example.com/logo.png",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def policy(clock, sleeps):
    return ResiliencePolicy(cache=TTLCache(clock=clock), sleep=sleeps.append)


RSS_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Tester's blog</title>
    <link>https://blog.example.com/</link>
    <description>Posts</description>
    {items}
  </channel>
</rss>
"""


def rss_document(*items):
    """Build RSS bytes from (title, link, pubDate, categories) tuples."""
    rendered = []
    for title, link, pub_date, categories in items:
        tags = "".join(f"<category>{name}</category>" for name in categories)
        rendered.append(
            f"<item><title>{title}</title><link>{link}</link>"
            f"<pubDate>{pub_date}</pubDate>{tags}</item>"
        )
    return RSS_TEMPLATE.format(items="\n".join(rendered)).encode("utf-8")
