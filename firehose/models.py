"""Shared data models for firehose."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class FeedItem:
    """A single syndicated entry taken from a publisher's feed."""

    link: str
    title: str
    published: Optional[datetime]
    updated: Optional[datetime]
    summary: Optional[str] = None
    author: Optional[str] = None
    categories: Tuple[str, ...] = ()
    source_url: Optional[str] = None


@dataclass
class CommunityMember:
    """A publisher contributing one or more feeds to the combined feed."""

    first_name: str
    last_name: str
    email_address: str
    website: str
    language_code: str
    feed_uris: List[str] = field(default_factory=list)
    item_filter: Optional[Callable[[FeedItem], bool]] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class FailureCause(enum.Enum):
    CONNECTION = "connection error"
    TIMEOUT = "timeout"
    HTTP_STATUS = "non-success status"
    MALFORMED = "malformed content"


# Every cause a reader can report is worth another attempt.
TRANSIENT_CAUSES = frozenset(FailureCause)


@dataclass(frozen=True)
class FetchFailure:
    """Why loading a single feed URL did not produce any items."""

    source_url: str
    cause: FailureCause
    message: str = ""
    status_code: Optional[int] = None

    @property
    def retryable(self) -> bool:
        return self.cause in TRANSIENT_CAUSES

    def describe(self) -> str:
        text = f"{self.cause.value} loading {self.source_url}"
        if self.status_code is not None:
            text += f" (HTTP {self.status_code})"
        if self.message:
            text += f": {self.message}"
        return text


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a fetch-and-parse: either items or a failure."""

    items: Tuple[FeedItem, ...] = ()
    failure: Optional[FetchFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, items) -> "FetchResult":
        return cls(items=tuple(items))

    @classmethod
    def failed(cls, failure: FetchFailure) -> "FetchResult":
        return cls(failure=failure)


@dataclass(frozen=True)
class Contributor:
    email: str
    name: str
    uri: str


@dataclass
class CombinedFeed:
    """Merged output of one aggregation run."""

    title: str
    description: str
    base_url: str
    image_url: str
    copyright: str
    language: Optional[str]
    items: List[FeedItem]
    contributors: List[Contributor]
    generated_at: datetime

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-ready representation of the feed."""
        return {
            "title": self.title,
            "description": self.description,
            "link": self.base_url,
            "image": self.image_url,
            "copyright": self.copyright,
            "language": self.language,
            "generated_at": self.generated_at.isoformat(),
            "contributors": [
                {"email": person.email, "name": person.name, "uri": person.uri}
                for person in self.contributors
            ],
            "items": [_item_to_dict(item) for item in self.items],
        }


def _item_to_dict(item: FeedItem) -> Dict[str, object]:
    return {
        "title": item.title,
        "link": item.link,
        "published": item.published.isoformat() if item.published else None,
        "updated": item.updated.isoformat() if item.updated else None,
        "summary": item.summary,
        "author": item.author,
        "categories": list(item.categories),
        "source": item.source_url,
    }
