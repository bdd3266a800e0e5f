"""Per-item filtering rules applied while reading a member's feeds."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .models import CommunityMember, FeedItem

logger = logging.getLogger(__name__)

ItemFilter = Callable[[FeedItem], bool]


def filter_for(member: CommunityMember) -> Optional[ItemFilter]:
    """Return the member's own item filter, if it provides one."""
    return member.item_filter


def default_filter(item: FeedItem) -> bool:
    """Keep items with a title, a link and a publish date."""
    return bool(item.title and item.link and item.published is not None)


def apply_filter(item: FeedItem, item_filter: Optional[ItemFilter]) -> bool:
    if item_filter is None:
        return default_filter(item)

    try:
        return bool(item_filter(item))
    except Exception as exc:  # noqa: BLE001 - member filters are third-party code
        logger.debug(
            "Custom filter failed for %s (%s); using default filter", item.link, exc
        )
        return default_filter(item)


def category_filter(*categories: str) -> ItemFilter:
    """Build a filter keeping items tagged with, or titled after, a category."""
    wanted = {name.strip().lower() for name in categories if name.strip()}

    def _filter(item: FeedItem) -> bool:
        if not default_filter(item):
            return False
        if any(tag.lower() in wanted for tag in item.categories):
            return True
        title = item.title.lower()
        return any(name in title for name in wanted)

    return _filter
