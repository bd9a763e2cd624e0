"""Tests for dashboard text rendering."""

from datetime import datetime
from pathlib import Path

from hackview.models import ActiveBlock, Event, EventKind, ModelUsage, UsageSummary
from hackview.sysstats import SystemSample
from hackview.ui.widgets import build_event_text, build_header_text, build_label_text

TS = "12:00:00"
NOW = datetime(2025, 3, 14, 10, 0, 0)


def sample(**overrides):
    values = dict(cpu_percent=12, mem_percent=40, mem_total=0, mem_available=0, net_bytes=2048, net_history=[0] * 4)
    values.update(overrides)
    return SystemSample(**values)


class TestEventText:
    """Tests for event log lines."""

    def test_user(self):
        """Test user messages are flattened onto one line."""
        text = build_event_text(Event(EventKind.USER, "fix\nthis"), TS)
        assert text.plain == "12:00:00 ▷ USER: fix this"

    def test_user_preview_limit(self):
        text = build_event_text(Event(EventKind.USER, "u" * 300), TS)
        assert text.plain.endswith("u" * 120)
        assert "u" * 121 not in text.plain

    def test_session_start(self):
        assert build_event_text(Event(EventKind.SESSION_START), TS).plain == "12:00:00 ▶ SESSION STARTED"

    def test_blank_text_skipped(self):
        """Test whitespace-only text renders nothing."""
        assert build_event_text(Event(EventKind.TEXT, "  \n "), TS) is None

    def test_thinking_lines(self):
        """Test each thinking line gets its own timestamped row."""
        text = build_event_text(Event(EventKind.THINKING, "first\n\nsecond"), TS)
        assert text.plain == "12:00:00 💭 first\n12:00:00 💭 second"

    def test_tool_use(self):
        text = build_event_text(Event(EventKind.TOOL_USE, "Bash(ls)", tool_name="Bash"), TS)
        assert text.plain == "12:00:00 ⚙ Bash(ls)"

    def test_complete_with_usage(self):
        """Test completion shows compact token counts."""
        event = Event(EventKind.COMPLETE, "[end_turn]", is_complete=True,
                      usage={"input_tokens": 10, "output_tokens": 2000})
        assert build_event_text(event, TS).plain == "12:00:00 ✓ DONE in:10 out:2k"

    def test_complete_without_usage(self):
        event = Event(EventKind.COMPLETE, "[end_turn]", is_complete=True)
        assert build_event_text(event, TS).plain == "12:00:00 ✓ DONE"


class TestLabelText:
    """Tests for the session label strip."""

    def test_with_file(self):
        text = build_label_text(0, "streaming", Path("/home/u/proj/abcdef.jsonl"))
        assert text.plain == " ◉ SESSION 1  [streaming▮]  proj/abcdef"

    def test_without_file(self):
        text = build_label_text(1, "waiting", None)
        assert text.plain == " ◉ SESSION 2  [waiting]  no file"

    def test_long_directory_shortened(self):
        text = build_label_text(0, "idle", Path("/p/" + "d" * 40 + "/s.jsonl"))
        assert "…" + "d" * 29 + "/s" in text.plain


class TestHeaderText:
    """Tests for the stats header."""

    def test_without_usage(self):
        """Test the header shows host stats and a placeholder for tokens."""
        plain = build_header_text(sample(), 65, 80, now=NOW).plain
        assert plain.startswith("10:00:00")
        assert "CPU ▲12%" in plain
        assert "UPTIME 0:01:05" in plain
        assert "2.0KB/s" in plain
        assert "awaiting ccusage..." in plain
        assert "BLOCK" not in plain

    def test_with_usage_and_block(self):
        """Test usage totals, model split and block budget are shown."""
        usage = UsageSummary(
            date="2025-03-14",
            total_input=1_500_000,
            total_output=20_000,
            total_cost=3.5,
            model_breakdown={"claude-opus-4": ModelUsage(10, 10, 1.0)},
        )
        block = ActiveBlock(cost_usd=10.0, end_time="2025-03-14T12:00:00", burn_rate={"costPerHour": 2.5},
                            projection={"totalCost": 55.0, "remainingMinutes": 120})
        plain = build_header_text(sample(), 0, 100, usage=usage, block=block, budget=40.0, now=NOW).plain

        assert "TODAY 1.5M in / 20k out" in plain
        assert "$3.50" in plain
        assert "opus " in plain
        assert "$10.00 / $40" in plain
        assert "$2.50/h" in plain
        assert "2:00:00 left" in plain
        assert "→ $55.00" in plain

    def test_expired_block(self):
        """Test a block past its end time shows no remaining time."""
        block = ActiveBlock(cost_usd=1.0, end_time="2025-03-14T09:00:00")
        plain = build_header_text(sample(), 0, 80, block=block, budget=40.0, now=NOW).plain
        assert "left" not in plain

    def test_malformed_block_sections(self):
        """Test non-numeric burn rate and projection values are left out."""
        block = ActiveBlock(cost_usd=1.0, burn_rate={"costPerHour": "fast"}, projection="soon")
        plain = build_header_text(sample(), 0, 80, block=block, budget=40.0, now=NOW).plain
        assert "/h" not in plain
        assert "→" not in plain
        assert "$1.00 / $40" in plain
