"""Configuration loading for the feed aggregator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from xml.etree import ElementTree as ET

from .filters import category_filter
from .models import CommunityMember

logger = logging.getLogger(__name__)


@dataclass
class FeedSettings:
    """Metadata written into the combined feed envelope."""

    title: str
    description: str
    base_url: str
    image_url: str


@dataclass
class FetchConfig:
    timeout: float = 10.0
    user_agent: Optional[str] = None
    cache_ttl_seconds: float = 3600.0
    retries: int = 2
    # None sizes the pool to one thread per feed URL.
    concurrency: Optional[int] = None


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    members_file: str
    feed: FeedSettings
    fetch: FetchConfig = field(default_factory=FetchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def _required_text(node: ET.Element, tag: str) -> str:
    value = (node.findtext(tag) or "").strip()
    if not value:
        raise ValueError(f"Config <feed> section is missing <{tag}>")
    return value


def parse_members_config(path: str) -> List[CommunityMember]:
    """Parse the community members file and return the publishers it lists."""
    logger.info("Loading community members from %s", path)
    tree = ET.parse(path)
    root = tree.getroot()
    if root.tag != "members":
        raise ValueError("Members file must have a <members> root element.")

    members: List[CommunityMember] = []
    for node in root.findall("member"):
        attrs = node.attrib
        first_name = attrs.get("first-name", "").strip()
        last_name = attrs.get("last-name", "").strip()
        if not first_name and not last_name:
            raise ValueError("Every <member> needs a first-name or last-name.")

        feed_uris = [
            feed.attrib["url"].strip()
            for feed in node.findall("feed")
            if feed.attrib.get("url", "").strip()
        ]
        categories = [
            item.attrib["category"]
            for item in node.findall("filter")
            if item.attrib.get("category")
        ]

        member = CommunityMember(
            first_name=first_name,
            last_name=last_name,
            email_address=attrs.get("email", "").strip(),
            website=attrs.get("website", "").strip(),
            language_code=attrs.get("language", "en").strip(),
            feed_uris=feed_uris,
            item_filter=category_filter(*categories) if categories else None,
        )
        members.append(member)
        logger.debug(
            "Registered member '%s' with %d feeds (language=%s)",
            member.full_name,
            len(feed_uris),
            member.language_code,
        )

    logger.info("Loaded %d community members", len(members))
    return members


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    tree = ET.parse(config_path)
    root = tree.getroot()

    # Members
    members_node = root.find("members")
    if members_node is None or not members_node.text:
        raise ValueError("Config missing <members> path")
    members_file = _resolve_path(config_path, members_node.text.strip())

    # Feed envelope
    feed_node = root.find("feed")
    if feed_node is None:
        raise ValueError("Config missing <feed> section")
    feed = FeedSettings(
        title=_required_text(feed_node, "title"),
        description=_required_text(feed_node, "description"),
        base_url=_required_text(feed_node, "base-url"),
        image_url=_required_text(feed_node, "image-url"),
    )

    # Fetching
    fetch_node = root.find("fetch")
    fetch = FetchConfig()
    if fetch_node is not None:
        fetch.timeout = float(fetch_node.findtext("timeout", "10"))
        fetch.user_agent = fetch_node.findtext("user-agent") or None
        fetch.cache_ttl_seconds = float(
            fetch_node.findtext("cache-ttl-seconds", "3600")
        )
        fetch.retries = int(fetch_node.findtext("retries", "2"))
        concurrency = fetch_node.findtext("concurrency")
        fetch.concurrency = int(concurrency) if concurrency else None

    # Logging
    log_node = root.find("logging")
    logging_config = LoggingConfig()
    if log_node is not None:
        logging_config.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            logging_config.file = _resolve_path(config_path, log_file)

    return AppConfig(
        members_file=members_file,
        feed=feed,
        fetch=fetch,
        logging=logging_config,
    )
