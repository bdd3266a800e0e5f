"""High-level orchestration: fan out over every member's feeds and merge."""

from __future__ import annotations

import concurrent.futures
import functools
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .compose import compose_feed
from .config import AppConfig, FeedSettings
from .feeds import DEFAULT_USER_AGENT, FeedClient, read_feed
from .filters import ItemFilter, filter_for
from .models import CombinedFeed, CommunityMember, FeedItem, FetchResult
from .resilience import ResiliencePolicy, TTLCache

logger = logging.getLogger(__name__)

MIXED_LANGUAGE = "mixed"

FeedReader = Callable[[str, Optional[ItemFilter]], FetchResult]


class Aggregator:
    """Loads the combined feed for a fixed set of community members."""

    def __init__(
        self,
        members: Sequence[CommunityMember],
        settings: FeedSettings,
        policy: ResiliencePolicy,
        reader: FeedReader,
        max_workers: Optional[int] = None,
    ) -> None:
        self.members = list(members)
        self.settings = settings
        self.policy = policy
        self.reader = reader
        self.max_workers = max_workers

    def select_members(self, language_code: Optional[str]) -> List[CommunityMember]:
        if language_code is None or language_code == MIXED_LANGUAGE:
            return list(self.members)
        return [m for m in self.members if m.language_code == language_code]

    def load_feed(
        self, count: Optional[int] = None, language_code: Optional[str] = MIXED_LANGUAGE
    ) -> CombinedFeed:
        members = self.select_members(language_code)
        jobs: List[Tuple[CommunityMember, str]] = [
            (member, uri) for member in members for uri in member.feed_uris
        ]
        logger.info(
            "Loading %d feeds from %d members (language=%s)",
            len(jobs),
            len(members),
            language_code,
        )

        items: List[FeedItem] = []
        if jobs:
            workers = self.max_workers or len(jobs)
            with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [
                    executor.submit(self._try_read_feed, member, uri)
                    for member, uri in jobs
                ]
                # Collect in submission order so ties keep a stable order.
                for future in futures:
                    items.extend(future.result())

        return compose_feed(items, language_code, members, count, self.settings)

    def _try_read_feed(self, member: CommunityMember, uri: str) -> List[FeedItem]:
        item_filter = filter_for(member)
        try:
            result = self.policy.execute(uri, lambda: self.reader(uri, item_filter))
        except Exception:
            logger.exception(
                "%s's feed of %s failed unexpectedly.", member.full_name, uri
            )
            return []

        if not result.ok:
            logger.error(
                "%s's feed of %s failed to load: %s",
                member.full_name,
                uri,
                result.failure.describe(),
            )
            return []
        return list(result.items)


def build_client(config: AppConfig) -> FeedClient:
    return FeedClient(
        timeout=config.fetch.timeout,
        user_agent=config.fetch.user_agent or DEFAULT_USER_AGENT,
    )


def build_default(
    members: Sequence[CommunityMember],
    config: AppConfig,
    client: Optional[FeedClient] = None,
) -> Aggregator:
    """Wire an aggregator with an HTTP client, cache and retry policy.

    The caller owns ``client`` and closes it once it is done loading feeds.
    """
    client = client or build_client(config)
    policy = ResiliencePolicy(
        cache=TTLCache(),
        ttl=config.fetch.cache_ttl_seconds,
        retries=config.fetch.retries,
    )
    return Aggregator(
        members=members,
        settings=config.feed,
        policy=policy,
        reader=functools.partial(read_feed, client=client),
        max_workers=config.fetch.concurrency,
    )
