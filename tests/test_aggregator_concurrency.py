import threading
import time

from conftest import make_item, make_member
from firehose.aggregator import Aggregator, build_default
from firehose.config import AppConfig
from firehose.models import FetchResult
from firehose.resilience import ResiliencePolicy


def test_load_feed_fetches_sources_in_parallel(settings):
    """Verify that total time is well below the serial fetch time."""

    DELAY = 0.5
    NUM_FEEDS = 5

    def slow_reader(url, item_filter):
        time.sleep(DELAY)
        return FetchResult.success([make_item(f"{url}/post")])

    members = [
        make_member(f"Member{i}", feed_uris=[f"http://feed-{i}.example.com"])
        for i in range(NUM_FEEDS)
    ]
    aggregator = Aggregator(members, settings, ResiliencePolicy(), slow_reader)

    start = time.time()
    feed = aggregator.load_feed()
    duration = time.time() - start

    assert len(feed.items) == NUM_FEEDS
    # Serial would take DELAY * NUM_FEEDS.
    assert duration < (DELAY * NUM_FEEDS) / 2
    assert duration >= DELAY


def test_slow_source_does_not_block_others(settings):
    release = threading.Event()
    finished = []

    def reader(url, item_filter):
        if "slow" in url:
            release.wait(timeout=5)
        else:
            finished.append(url)
            if len(finished) == 2:
                release.set()
        return FetchResult.success([make_item(url)])

    members = [
        make_member("Slow", feed_uris=["http://slow.example.com"]),
        make_member("Fast", feed_uris=["http://fast-1.example.com", "http://fast-2.example.com"]),
    ]

    feed = Aggregator(members, settings, ResiliencePolicy(), reader).load_feed()

    assert sorted(finished) == ["http://fast-1.example.com", "http://fast-2.example.com"]
    assert len(feed.items) == 3


def test_default_wiring_starts_every_fetch_at_once(settings):
    """More feeds than any fixed pool size must still all run together."""

    NUM_FEEDS = 11
    barrier = threading.Barrier(NUM_FEEDS, timeout=5)
    members = [
        make_member(f"Member{i}", feed_uris=[f"http://feed-{i}.example.com"])
        for i in range(NUM_FEEDS)
    ]
    aggregator = build_default(members, AppConfig(members_file="m.xml", feed=settings))

    def reader(url, item_filter):
        # Raises BrokenBarrierError unless all readers are running at once.
        barrier.wait()
        return FetchResult.success([make_item(f"{url}/post")])

    aggregator.reader = reader
    feed = aggregator.load_feed()

    assert aggregator.max_workers is None
    assert len(feed.items) == NUM_FEEDS
    assert not barrier.broken
