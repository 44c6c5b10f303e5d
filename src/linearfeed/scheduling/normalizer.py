"""Feed Item Normalizer.

Turns the raw item list of a fetched MRSS feed into the ordered sequence of
:class:`PlayableItem` the placement engine consumes.

Rules, applied in publication order:

- items without a GUID, or without a positive duration, are dropped with a
  warning (never fatal);
- duplicate GUIDs keep their first occurrence;
- items whose availability window excludes the scheduling instant are
  deferred for this pass only. Every pass normalizes the raw feed again, so
  a deferred item becomes schedulable as soon as its window opens.
"""

from __future__ import annotations

import hashlib
import logging
import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from ..domain.types import PlayableItem, RawFeedItem

logger = logging.getLogger(__name__)


@dataclass
class NormalizedFeed:
    """Result of one normalization pass."""

    items: list[PlayableItem]
    revision: str
    warnings: list[str] = field(default_factory=list)
    deferred: list[PlayableItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items


def feed_revision(items: Sequence[PlayableItem]) -> str:
    """Stable fingerprint of the play order (sha256 over GUIDs)."""
    digest = hashlib.sha256()
    for item in items:
        digest.update(item.guid.encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()


def _duration_ms(seconds: float | None) -> int:
    """Duration in ms, 0 when missing or not a finite number."""
    if seconds is None or not math.isfinite(seconds):
        return 0
    return int(round(seconds * 1000))


def normalize_items(raw_items: Iterable[RawFeedItem], now_utc_ms: int) -> NormalizedFeed:
    """Normalize ``raw_items`` for a pass scheduled at ``now_utc_ms``."""
    seen: set[str] = set()
    items: list[PlayableItem] = []
    deferred: list[PlayableItem] = []
    warnings: list[str] = []

    for position, raw in enumerate(raw_items):
        guid = (raw.guid or "").strip()
        if not guid:
            warnings.append(f"item #{position} has no guid; dropped")
            continue
        if guid in seen:
            warnings.append(f"item {guid!r} is a duplicate; dropped")
            continue
        duration_ms = _duration_ms(raw.duration_seconds)
        if duration_ms <= 0:
            warnings.append(f"item {guid!r} has no positive duration; dropped")
            continue

        seen.add(guid)
        item = PlayableItem(
            guid=guid,
            title=raw.title or guid,
            duration_ms=duration_ms,
            feed_id=raw.feed_id,
            url=raw.url,
            available_from_utc_ms=raw.available_from_utc_ms,
            available_until_utc_ms=raw.available_until_utc_ms,
        )
        if not item.is_available_at(now_utc_ms):
            deferred.append(item)
            continue
        items.append(item)

    for message in warnings:
        logger.warning("Feed normalizer: %s", message)
    if deferred:
        logger.info(
            "Feed normalizer: %d item(s) outside their availability window, deferred",
            len(deferred),
        )

    return NormalizedFeed(
        items=items,
        revision=feed_revision(items),
        warnings=warnings,
        deferred=deferred,
    )


def cycle_items(
    items: Sequence[PlayableItem],
    start_index: int = 0,
    loop: int = 0,
) -> Iterator[tuple[PlayableItem, int]]:
    """Yield ``(item, loop)`` forever, wrapping to the start with ``loop + 1``.

    ``items`` must not be empty.
    """
    if not items:
        raise ValueError("cycle_items requires at least one item")
    index = start_index % len(items)
    if start_index >= len(items):
        loop += start_index // len(items)
    while True:
        yield items[index], loop
        index += 1
        if index == len(items):
            index = 0
            loop += 1
