"""Merge feed items from every source into the combined feed."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from .config import FeedSettings
from .models import CombinedFeed, CommunityMember, Contributor, FeedItem

logger = logging.getLogger(__name__)

COPYRIGHT = "The copyright for each post is retained by its author."

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _published(item: FeedItem) -> datetime:
    return item.published or _EPOCH


def _is_in_past(item: FeedItem, now: datetime) -> bool:
    if item.published is not None and item.published > now:
        return False
    if item.updated is not None and item.updated > now:
        return False
    return True


def select_items(
    items: Iterable[FeedItem],
    count: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[FeedItem]:
    """Return the newest items that are not dated in the future.

    Items are ordered by publish date, newest first; items sharing a publish
    date keep the order in which they were collected.
    """
    if count is not None and count < 0:
        raise ValueError("Number of items must not be negative.")
    now = now or datetime.now(timezone.utc)

    collected = list(items)
    eligible = [item for item in collected if _is_in_past(item, now)]
    if len(eligible) != len(collected):
        logger.debug(
            "Dropped %d future-dated items", len(collected) - len(eligible)
        )

    ordered = sorted(eligible, key=_published, reverse=True)
    if count is not None:
        ordered = ordered[:count]
    return ordered


def compose_feed(
    items: Iterable[FeedItem],
    language_code: Optional[str],
    members: Sequence[CommunityMember],
    count: Optional[int],
    settings: FeedSettings,
    now: Optional[datetime] = None,
) -> CombinedFeed:
    now = now or datetime.now(timezone.utc)
    selected = select_items(items, count, now)

    contributors = [
        Contributor(
            email=member.email_address, name=member.full_name, uri=member.website
        )
        for member in members
    ]

    logger.info(
        "Composed combined feed with %d items from %d contributors (language=%s)",
        len(selected),
        len(contributors),
        language_code,
    )
    return CombinedFeed(
        title=settings.title,
        description=settings.description,
        base_url=settings.base_url,
        image_url=settings.image_url,
        copyright=COPYRIGHT,
        language=language_code,
        items=selected,
        contributors=contributors,
        generated_at=now,
    )
