"""
MRSS parsing and fetching (no network: the HTTP session is stubbed).
"""

from __future__ import annotations

import pytest
import requests

from linearfeed.domain.types import Channel
from linearfeed.feeds.mrss import MrssFeedSource, _parse_clock_duration, parse_feed
from linearfeed.infra.exceptions import FeedUnavailableError

MRSS_DOCUMENT = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Example VOD</title>
    <link>https://vod.example.com/</link>
    <description>Example feed</description>
    <item>
      <title>Episode One</title>
      <guid isPermaLink="false">ep-1</guid>
      <link>https://vod.example.com/ep-1</link>
      <media:content url="https://cdn.example.com/ep-1.m3u8" duration="1800" type="application/x-mpegURL"/>
    </item>
    <item>
      <title>Episode Two</title>
      <guid isPermaLink="false">ep-2</guid>
      <itunes:duration>00:45:00</itunes:duration>
    </item>
    <item>
      <title>No Duration</title>
      <guid isPermaLink="false">ep-3</guid>
    </item>
  </channel>
</rss>
"""


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------

class StubResponse:
    def __init__(self, content: bytes, status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class StubSession:
    """Serves canned documents by URL; unknown URLs fail like a dead host."""

    def __init__(self, documents: dict[str, StubResponse]) -> None:
        self.documents = documents
        self.requested: list[str] = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        if url not in self.documents:
            raise requests.ConnectionError(f"cannot reach {url}")
        return self.documents[url]


class TestParseFeed:
    def test_items_in_publication_order(self):
        items = parse_feed(MRSS_DOCUMENT, feed_id="https://vod.example.com/feed")
        assert [i.guid for i in items] == ["ep-1", "ep-2", "ep-3"]
        assert items[0].title == "Episode One"
        assert all(i.feed_id == "https://vod.example.com/feed" for i in items)

    def test_durations(self):
        items = parse_feed(MRSS_DOCUMENT)
        assert items[0].duration_seconds == 1800.0
        assert items[1].duration_seconds == 2700.0
        assert items[2].duration_seconds is None

    def test_media_url_preferred_over_link(self):
        items = parse_feed(MRSS_DOCUMENT)
        assert items[0].url == "https://cdn.example.com/ep-1.m3u8"

    def test_non_finite_media_duration_is_ignored(self):
        document = MRSS_DOCUMENT.replace(b'duration="1800"', b'duration="nan"')
        items = parse_feed(document)
        assert items[0].duration_seconds is None
        assert items[1].duration_seconds == 2700.0

    def test_garbage_is_unavailable(self):
        with pytest.raises(FeedUnavailableError):
            parse_feed(b"<html><body>502 Bad Gateway</body>", feed_id="https://broken")

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("90", 90.0), ("01:30", 90.0), ("1:00:00", 3600.0), ("n/a", None),
            ("nan", None), ("inf", None), ("1:inf", None),
        ],
    )
    def test_clock_durations(self, value, expected):
        assert _parse_clock_duration(value) == expected


class TestMrssFeedSource:
    def test_fetch_concatenates_all_feeds(self):
        second = MRSS_DOCUMENT.replace(b"ep-", b"other-")
        session = StubSession({
            "https://a/feed": StubResponse(MRSS_DOCUMENT),
            "https://b/feed": StubResponse(second),
        })
        source = MrssFeedSource(session=session)
        channel = Channel(id="ch1", tenant="t", title="T", feed_urls=("https://a/feed", "https://b/feed"))

        items = source.fetch_items(channel)
        assert [i.guid for i in items][:3] == ["ep-1", "ep-2", "ep-3"]
        assert [i.guid for i in items][3:] == ["other-1", "other-2", "other-3"]
        assert session.requested == ["https://a/feed", "https://b/feed"]

    def test_unreachable_feed_raises(self):
        source = MrssFeedSource(session=StubSession({}))
        channel = Channel(id="ch1", tenant="t", title="T", feed_urls=("https://down/feed",))
        with pytest.raises(FeedUnavailableError) as excinfo:
            source.fetch_items(channel)
        assert excinfo.value.feed_url == "https://down/feed"

    def test_http_error_raises(self):
        source = MrssFeedSource(session=StubSession({"https://a/feed": StubResponse(b"", 503)}))
        with pytest.raises(FeedUnavailableError):
            source.fetch_url("https://a/feed")

    def test_default_session_has_retries_and_user_agent(self):
        source = MrssFeedSource(user_agent="linearfeed-test/1.0")
        assert source.session.headers["User-Agent"] == "linearfeed-test/1.0"
        adapter = source.session.get_adapter("https://example.com/")
        assert adapter.max_retries.total == 2
