"""Feed download, parsing and per-item filtering."""

from __future__ import annotations

import calendar
import logging
import re
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

import feedparser
import requests
from bs4 import BeautifulSoup

from . import __version__
from .filters import apply_filter
from .models import FailureCause, FeedItem, FetchFailure, FetchResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = f"Firehose/{__version__}"


class FeedParseError(Exception):
    """Raised when downloaded content is not a readable syndication feed."""


class FeedClient:
    """HTTP transport shared by every concurrent feed download."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = user_agent

    def fetch(self, url: str) -> bytes:
        """Download ``url`` and return the raw body.

        Raises ``requests.HTTPError`` for non-success responses and the usual
        ``requests`` exceptions for connection problems and timeouts.
        """
        logger.debug("GET %s (timeout %.1fs)", url, self.timeout)
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content

    def close(self) -> None:
        self.session.close()


def to_datetime(value: Optional[time.struct_time]) -> Optional[datetime]:
    """Convert feedparser's UTC struct_time values to aware datetimes."""
    if value is None:
        return None
    return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)


def parse_feed(content: bytes, source_url: str) -> List[FeedItem]:
    """Parse RSS/Atom ``content`` into feed items."""
    parsed = feedparser.parse(content)
    entries = list(getattr(parsed, "entries", None) or [])

    is_feed = bool(getattr(parsed, "version", "")) and not getattr(parsed, "bozo", False)
    if not entries and not is_feed:
        reason = getattr(parsed, "bozo_exception", None) or "not a syndication feed"
        raise FeedParseError(str(reason))

    items: List[FeedItem] = []
    for entry in entries:
        published = _first_timestamp(
            entry, ("published_parsed", "updated_parsed", "created_parsed")
        )
        updated = _first_timestamp(entry, ("updated_parsed",)) or published

        items.append(
            FeedItem(
                link=getattr(entry, "link", None) or "",
                title=(getattr(entry, "title", None) or "").strip(),
                published=published,
                updated=updated,
                summary=_entry_summary(entry),
                author=getattr(entry, "author", None),
                categories=_entry_categories(entry),
                source_url=source_url,
            )
        )
    return items


def _first_timestamp(entry, attributes) -> Optional[datetime]:
    for attr in attributes:
        value = getattr(entry, attr, None)
        if value:
            return to_datetime(value)
    return None


def _entry_summary(entry) -> Optional[str]:
    summary = getattr(entry, "summary", None)
    if not summary:
        summary_detail = getattr(entry, "summary_detail", None)
        if summary_detail:
            summary = summary_detail.get("value")
    if not summary:
        content = getattr(entry, "content", None)
        if content:
            try:
                summary = content[0].get("value")
            except (TypeError, KeyError, IndexError, AttributeError):
                summary = None
    if summary:
        summary = _strip_html(summary)
    return summary or None


def _entry_categories(entry) -> tuple:
    terms = []
    for tag in getattr(entry, "tags", None) or []:
        term = tag.get("term") if hasattr(tag, "get") else None
        if term:
            terms.append(term)
    return tuple(terms)


def _strip_html(raw_value: str) -> str:
    """Return text content extracted from HTML fragments."""
    soup = BeautifulSoup(raw_value, "html.parser")
    text = soup.get_text(separator=" ", strip=True)
    text = re.sub(r"\s+([.,;:!?])", r"\1", text)
    text = re.sub(r"\s{2,}", " ", text)
    return text.strip()


def read_feed(
    url: str,
    item_filter: Optional[Callable[[FeedItem], bool]] = None,
    *,
    client: FeedClient,
) -> FetchResult:
    """Fetch, parse and filter a single feed.

    Every transport or parse problem comes back as a ``FetchFailure`` so the
    caller can decide whether to retry based on the failure's cause.
    """
    logger.info("Fetching feed %s", url)
    try:
        content = client.fetch(url)
    except requests.Timeout as exc:
        return _failed(url, FailureCause.TIMEOUT, exc)
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else None
        return _failed(url, FailureCause.HTTP_STATUS, exc, status_code=status)
    except requests.RequestException as exc:
        return _failed(url, FailureCause.CONNECTION, exc)

    try:
        parsed_items = parse_feed(content, url)
    except FeedParseError as exc:
        return _failed(url, FailureCause.MALFORMED, exc)

    items = [item for item in parsed_items if apply_filter(item, item_filter)]
    logger.info(
        "Kept %d of %d entries from feed %s", len(items), len(parsed_items), url
    )
    return FetchResult.success(items)


def _failed(
    url: str,
    cause: FailureCause,
    exc: Exception,
    status_code: Optional[int] = None,
) -> FetchResult:
    failure = FetchFailure(
        source_url=url, cause=cause, message=str(exc), status_code=status_code
    )
    logger.warning("Failed to read feed: %s", failure.describe())
    return FetchResult.failed(failure)
