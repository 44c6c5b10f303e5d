"""
HTTP MRSS feed source.

Fetches each of a channel's feed URLs and turns the Media-RSS entries into
:class:`RawFeedItem`s in publication order. Parsing is delegated to
feedparser; this module only maps its entry dictionaries.

Duration comes from ``media:content@duration`` (seconds), falling back to
``itunes:duration``. The availability window comes from ``dcterms:valid``
(``start=...;end=...``).
"""

from __future__ import annotations

import calendar
import logging
import math
from typing import Any

import feedparser
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..domain.types import Channel, RawFeedItem
from ..infra.exceptions import FeedUnavailableError

logger = logging.getLogger(__name__)


class MrssFeedSource:
    """Feed source backed by HTTP + feedparser."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 10.0,
        user_agent: str = "linearfeed/0.1",
        session: requests.Session | None = None,
    ):
        """
        Initialize the feed source.

        Args:
            timeout_seconds: Per-request timeout
            user_agent: User-Agent header sent to feed hosts
            session: Optional preconfigured requests session (tests)
        """
        self.timeout_seconds = timeout_seconds
        self.session = session or self._create_session(user_agent)

    def _create_session(self, user_agent: str) -> requests.Session:
        """Create a requests session with retry logic and feed headers."""
        session = requests.Session()

        retry_strategy = Retry(
            total=2,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update(
            {
                "User-Agent": user_agent,
                "Accept": "application/rss+xml, application/xml;q=0.9, */*;q=0.5",
            }
        )
        return session

    def fetch_items(self, channel: Channel) -> list[RawFeedItem]:
        """
        Fetch every feed of ``channel`` and concatenate their items.

        Raises:
            FeedUnavailableError: If any feed cannot be fetched or parsed
        """
        items: list[RawFeedItem] = []
        for url in channel.feed_urls:
            items.extend(self.fetch_url(url))
        return items

    def fetch_url(self, url: str) -> list[RawFeedItem]:
        try:
            response = self.session.get(url, timeout=self.timeout_seconds)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedUnavailableError(f"Failed to fetch feed {url}: {e}", feed_url=url) from e

        return parse_feed(response.content, feed_id=url)


def parse_feed(document: bytes | str, *, feed_id: str = "") -> list[RawFeedItem]:
    """
    Parse an MRSS document into raw items.

    Raises:
        FeedUnavailableError: If the document is not a usable feed
    """
    parsed = feedparser.parse(document)
    if parsed.get("bozo") and not parsed.get("entries"):
        error = parsed.get("bozo_exception")
        raise FeedUnavailableError(f"Failed to parse feed {feed_id}: {error}", feed_url=feed_id)

    items = [_entry_to_item(entry, feed_id) for entry in parsed.get("entries", [])]
    logger.debug("MRSS: parsed %d item(s) from %s", len(items), feed_id or "<document>")
    return items


def _entry_to_item(entry: Any, feed_id: str) -> RawFeedItem:
    media = _first_media_content(entry)
    return RawFeedItem(
        guid=entry.get("id") or entry.get("guid") or entry.get("link"),
        title=entry.get("title", ""),
        duration_seconds=_duration_seconds(entry, media),
        available_from_utc_ms=_struct_to_ms(entry.get("validity_start_parsed")),
        available_until_utc_ms=_struct_to_ms(entry.get("validity_end_parsed")),
        feed_id=feed_id,
        url=(media or {}).get("url") or entry.get("link"),
    )


def _first_media_content(entry: Any) -> dict[str, Any] | None:
    contents = entry.get("media_content") or []
    for content in contents:
        if content.get("duration"):
            return content
    return contents[0] if contents else None


def _duration_seconds(entry: Any, media: dict[str, Any] | None) -> float | None:
    if media and media.get("duration"):
        try:
            seconds = float(media["duration"])
        except (TypeError, ValueError):
            seconds = None
        if seconds is not None and math.isfinite(seconds):
            return seconds
    itunes = entry.get("itunes_duration")
    if itunes:
        return _parse_clock_duration(str(itunes))
    return None


def _parse_clock_duration(value: str) -> float | None:
    """Parse ``SS``, ``MM:SS`` or ``HH:MM:SS`` into seconds."""
    try:
        parts = [float(p) for p in value.strip().split(":")]
    except ValueError:
        return None
    seconds = 0.0
    for part in parts:
        seconds = seconds * 60 + part
    return seconds if math.isfinite(seconds) else None


def _struct_to_ms(value: Any) -> int | None:
    if not value:
        return None
    return calendar.timegm(value) * 1000
