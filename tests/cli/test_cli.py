"""
Operator CLI: channel, schedule, scheduler and db command groups.

The SQL stores run against the in-memory SQLite from conftest; feeds are
served by a StaticFeedSource so nothing touches the network.
"""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from linearfeed.cli.commands import schedule as schedule_cmd
from linearfeed.cli.commands import scheduler as scheduler_cmd
from linearfeed.cli.main import app, router
from linearfeed.domain.types import RawFeedItem
from linearfeed.infra.logging import configure_logging
from linearfeed.infra.settings import settings
from linearfeed.stores.memory import StaticFeedSource
from linearfeed.usecases.scheduler_runtime import build_runtime

runner = CliRunner()

FEED = [
    RawFeedItem(guid="a", title="A", duration_seconds=30 * 60),
    RawFeedItem(guid="b", title="B", duration_seconds=45 * 60),
]


@pytest.fixture
def static_feeds(monkeypatch):
    # Route scheduler logs through stdlib logging so stdout stays pure JSON
    configure_logging()
    monkeypatch.setattr(scheduler_cmd, "configure_logging", lambda: None)
    feeds = StaticFeedSource({"news": FEED})

    def _runtime():
        return build_runtime(settings, feed_source=feeds)

    monkeypatch.setattr(scheduler_cmd, "get_runtime", _runtime)
    monkeypatch.setattr(schedule_cmd, "get_runtime", _runtime)
    return feeds


def _add_news():
    result = runner.invoke(app, [
        "channel", "add",
        "--id", "news",
        "--tenant", "one.example",
        "--title", "News",
        "--feed-url", "https://one.example/feed",
    ])
    assert result.exit_code == 0, result.output
    return result


class TestRouter:
    def test_command_groups_registered(self):
        assert router.list_registered_groups() == ["channel", "schedule", "scheduler", "db"]


class TestChannelCommands:
    def test_add_and_list(self):
        result = _add_news()
        assert "Channel created" in result.output

        listed = runner.invoke(app, ["channel", "list", "--json"])
        assert listed.exit_code == 0
        payload = json.loads(listed.output)
        assert payload["total"] == 1
        assert payload["channels"][0]["feedUrls"] == ["https://one.example/feed"]

    def test_list_by_tenant(self):
        _add_news()
        result = runner.invoke(app, ["channel", "list", "--tenant", "two.example"])
        assert result.exit_code == 0
        assert "No channels found" in result.output

    def test_duplicate_add_fails(self):
        _add_news()
        result = runner.invoke(app, [
            "channel", "add", "--id", "news", "--tenant", "t", "--title", "T",
            "--feed-url", "https://f", "--json",
        ])
        assert result.exit_code == 1
        assert json.loads(result.output)["status"] == "error"

    def test_invalid_type_fails(self):
        result = runner.invoke(app, [
            "channel", "add", "--id", "x", "--tenant", "t", "--title", "T", "--type", "radio",
        ])
        assert result.exit_code == 1


class TestSchedulerCommands:
    def test_bootstrap_then_show(self, static_feeds):
        _add_news()
        result = runner.invoke(app, ["scheduler", "bootstrap", "--json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["channels"][0]["status"] == "idle"
        assert payload["channels"][0]["written"] > 0

        shown = runner.invoke(app, ["schedule", "show", "news", "--json"])
        assert shown.exit_code == 0
        events = json.loads(shown.output)["events"]
        assert [e["itemGuid"] for e in events[:2]] == ["a", "b"]
        assert [e["sequence"] for e in events] == list(range(1, len(events) + 1))

    def test_tick_after_bootstrap_writes_nothing(self, static_feeds):
        _add_news()
        runner.invoke(app, ["scheduler", "bootstrap"])
        result = runner.invoke(app, ["scheduler", "tick", "--json"])
        assert result.exit_code == 0, result.output
        channels = json.loads(result.output)["channels"]
        assert channels[0]["written"] == 0

    def test_status_reports_persisted_cursor(self, static_feeds):
        _add_news()
        runner.invoke(app, ["scheduler", "bootstrap"])
        result = runner.invoke(app, ["scheduler", "status", "--json"])
        assert result.exit_code == 0, result.output
        row = json.loads(result.output)["channels"][0]
        assert row["channelId"] == "news"
        assert row["lastSequence"] > 0

    def test_empty_feed_is_reported_starved(self, static_feeds):
        _add_news()
        static_feeds.set_items("news", [])
        result = runner.invoke(app, ["scheduler", "bootstrap"])
        assert result.exit_code == 0
        assert "news: starved" in result.output

    def test_show_unknown_channel_fails(self, static_feeds):
        result = runner.invoke(app, ["schedule", "show", "nope"])
        assert result.exit_code == 1


class TestDbCommands:
    def test_init_is_idempotent(self):
        assert runner.invoke(app, ["db", "init"]).exit_code == 0
        assert runner.invoke(app, ["db", "init"]).exit_code == 0
