"""Tests for ccusage output parsing and the usage poller."""

import json
from datetime import date

import pytest

from hackview import usage
from hackview.models import ActiveBlock, UsageSummary
from hackview.usage import (
    UsageMonitor,
    aggregate_usage,
    parse_block_output,
    parse_usage_output,
)

TODAY = date(2025, 3, 14)


def daily(day, inp, out, cost, breakdowns=None):
    return {
        "date": day,
        "inputTokens": inp,
        "outputTokens": out,
        "cacheReadTokens": 10,
        "cacheCreationTokens": 5,
        "totalCost": cost,
        "modelBreakdowns": breakdowns or [],
    }


class TestParseUsageOutput:
    """Tests for the shapes ccusage daily output comes in."""

    def test_daily_object(self):
        """Test {"daily": [...]} output sums today's records."""
        stdout = json.dumps({"daily": [
            daily("2025-03-13", 1, 1, 1.0),
            daily("2025-03-14", 100, 200, 1.5, [{"modelName": "claude-opus-4", "inputTokens": 60, "outputTokens": 150, "cost": 1.0}]),
            daily("20250314", 50, 20, 0.5, [{"modelName": "claude-opus-4", "inputTokens": 40, "outputTokens": 20, "cost": 0.5}]),
        ]})
        summary = parse_usage_output(stdout, TODAY)

        assert summary.date == "2025-03-14"
        assert summary.total_input == 150
        assert summary.total_output == 220
        assert summary.total_cost == pytest.approx(2.0)
        assert summary.total_cache_read == 20
        assert summary.total_cache_write == 10
        opus = summary.model_breakdown["claude-opus-4"]
        assert (opus.input, opus.output) == (100, 170)

    def test_leading_noise(self):
        """Test npm chatter before the JSON is skipped."""
        stdout = "npm warn exec something\nfetching...\n" + json.dumps([daily("2025-03-14", 7, 8, 0.1)])
        summary = parse_usage_output(stdout, TODAY)
        assert summary.total_input == 7

    def test_falls_back_to_latest_record(self):
        """Test the last record is used when today has none."""
        stdout = json.dumps([daily("2025-03-01", 1, 1, 0.1), daily("2025-03-02", 9, 9, 0.9)])
        summary = parse_usage_output(stdout, TODAY)
        assert summary.total_input == 9

    def test_single_summary_object(self):
        """Test a bare summary object with a dict breakdown."""
        stdout = json.dumps({
            "inputTokens": 5,
            "outputTokens": 6,
            "cost": 0.25,
            "modelBreakdown": {"claude-sonnet-4": {"inputTokens": 5, "outputTokens": 6, "cost": 0.25}},
        })
        summary = parse_usage_output(stdout, TODAY)
        assert summary.date == "20250314"
        assert summary.total_cost == 0.25
        assert summary.model_breakdown["claude-sonnet-4"].output == 6

    @pytest.mark.parametrize("stdout", ["", "no json here", "{broken", json.dumps({"daily": []})])
    def test_unusable_output(self, stdout):
        """Test output without usable data gives nothing."""
        assert parse_usage_output(stdout, TODAY) is None

    def test_aggregate_empty(self):
        """Test no records gives nothing."""
        assert aggregate_usage([], TODAY) is None


class TestParseBlockOutput:
    """Tests for active block parsing."""

    def test_active_block(self):
        """Test the first block is converted."""
        stdout = json.dumps({"blocks": [{
            "startTime": "2025-03-14T10:00:00.000Z",
            "endTime": "2025-03-14T15:00:00.000Z",
            "costUSD": 12.5,
            "totalTokens": 4000,
            "models": ["claude-opus-4"],
            "burnRate": {"costPerHour": 3.2},
        }]})
        block = parse_block_output(stdout)
        assert block.cost_usd == 12.5
        assert block.total_tokens == 4000
        assert block.burn_rate == {"costPerHour": 3.2}
        assert block.models == ["claude-opus-4"]

    @pytest.mark.parametrize("stdout", ["", "{}", json.dumps({"blocks": []}), "[1]"])
    def test_no_block(self, stdout):
        """Test missing blocks give nothing."""
        assert parse_block_output(stdout) is None


class TestRunCcusage:
    """Tests for the npx runner."""

    def test_all_paths_fail(self, monkeypatch):
        """Test a missing npx is reported as errors, not raised."""
        def missing(*args, **kwargs):
            raise FileNotFoundError("npx")

        monkeypatch.setattr(usage.subprocess, "run", missing)
        stdout, errors = usage._run_ccusage(["daily", "--json"])
        assert stdout is None
        assert len(errors) == len(usage.NPX_PATHS)
        assert usage.fetch_usage() is None


class TestUsageMonitor:
    """Tests for polling and last-good-value retention."""

    def test_poll_notifies(self, monkeypatch):
        """Test a poll delivers usage and block to listeners."""
        summary = UsageSummary(date="2025-03-14", total_input=1)
        block = ActiveBlock(cost_usd=2.0)
        monkeypatch.setattr(usage, "fetch_usage", lambda: summary)
        monkeypatch.setattr(usage, "fetch_active_block", lambda: block)

        updates, blocks = [], []
        monitor = UsageMonitor(on_update=updates.append, on_block=blocks.append)
        monitor.poll()

        assert updates == [summary]
        assert blocks == [block]

    def test_keeps_last_good_values(self, monkeypatch):
        """Test a failed fetch does not blank out earlier data."""
        summary = UsageSummary(date="2025-03-14")
        monkeypatch.setattr(usage, "fetch_usage", lambda: summary)
        monkeypatch.setattr(usage, "fetch_active_block", lambda: None)

        updates = []
        monitor = UsageMonitor(on_update=updates.append)
        monitor.poll()
        monkeypatch.setattr(usage, "fetch_usage", lambda: None)
        monitor.poll()

        assert updates == [summary, summary]
        assert monitor.last_block is None

    def test_fetch_exception_logged(self, monkeypatch):
        """Test an unexpected fetch error leaves the monitor usable."""
        def boom():
            raise RuntimeError("boom")

        monkeypatch.setattr(usage, "fetch_usage", boom)
        monkeypatch.setattr(usage, "fetch_active_block", lambda: None)

        updates = []
        monitor = UsageMonitor(on_update=updates.append)
        monitor.poll()
        assert updates == [None]

    def test_listener_exception_swallowed(self, monkeypatch):
        """Test a raising listener does not stop the other listener."""
        monkeypatch.setattr(usage, "fetch_usage", lambda: None)
        monkeypatch.setattr(usage, "fetch_active_block", lambda: ActiveBlock())

        def broken(value):
            raise ValueError("bad")

        blocks = []
        monitor = UsageMonitor(on_update=broken, on_block=blocks.append)
        monitor.poll()
        assert len(blocks) == 1

    def test_no_callbacks_after_stop(self, monkeypatch):
        """Test a poll finishing after stop notifies nobody."""
        monkeypatch.setattr(usage, "fetch_usage", lambda: UsageSummary(date="x"))
        monkeypatch.setattr(usage, "fetch_active_block", lambda: None)

        updates = []
        monitor = UsageMonitor(on_update=updates.append)
        monitor.stop()
        monitor.poll()
        assert updates == []
        assert monitor.last_usage is not None
