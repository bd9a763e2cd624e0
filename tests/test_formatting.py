"""Tests for formatting helpers and host sampling."""

from collections import namedtuple

import pytest

from hackview import sysstats
from hackview.sysstats import SystemSampler
from hackview.ui.formatting import (
    format_bytes,
    format_num,
    format_uptime,
    make_bar,
    render_sparkline,
    short_model_name,
    truncate,
)

CpuTimes = namedtuple("scputimes", "user system idle iowait")
NetCounters = namedtuple("snetio", "bytes_sent bytes_recv")
VirtualMemory = namedtuple("svmem", "total available percent")


class TestFormatting:
    """Tests for the plain-text helpers."""

    @pytest.mark.parametrize("value,expected", [
        (None, "0"),
        (0, "0"),
        (512, "512"),
        (34_200, "34k"),
        (1_234_567, "1.2M"),
    ])
    def test_format_num(self, value, expected):
        assert format_num(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (100, "100B/s"),
        (1536, "1.5KB/s"),
        (2 * 1024 * 1024, "2.0MB/s"),
    ])
    def test_format_bytes(self, value, expected):
        assert format_bytes(value) == expected

    def test_format_uptime(self):
        assert format_uptime(3725) == "1:02:05"
        assert format_uptime(0) == "0:00:00"

    def test_make_bar(self):
        """Test bars fill proportionally and clamp out-of-range ratios."""
        assert make_bar(0.5, 8) == "████░░░░"
        assert make_bar(2.0, 2) == "████"
        assert make_bar(-1.0, 4) == "░░░░"

    def test_sparkline(self):
        """Test values scale against the peak."""
        assert render_sparkline([0, 4, 8]) == "▁▅█"
        assert render_sparkline([0, 0]) == "▁▁"

    def test_short_model_name(self):
        assert short_model_name("claude-opus-4-20250514") == "opus"
        assert short_model_name("claude-3-5-haiku") == "haiku"
        assert short_model_name("gpt-4o-mini") == "4o-mini"
        assert short_model_name("") == "unknown"

    def test_truncate(self):
        assert truncate("abcdefghij", 5) == "ab..."
        assert truncate("short", 10) == "short"


class TestSystemSampler:
    """Tests for rate computation between samples."""

    def test_cpu_percent(self, monkeypatch):
        """Test busy time is measured between calls, counting iowait as idle."""
        samples = iter([CpuTimes(10, 10, 70, 10), CpuTimes(30, 30, 120, 20)])
        monkeypatch.setattr(sysstats.psutil, "cpu_times", lambda: next(samples))

        sampler = SystemSampler()
        assert sampler.cpu_percent() == 0
        assert sampler.cpu_percent() == 40

    def test_network_skips_loopback(self, monkeypatch):
        """Test only non-loopback traffic counts and the first sample is zero."""
        samples = iter([
            {"lo": NetCounters(1000, 1000), "eth0": NetCounters(100, 100)},
            {"lo": NetCounters(9000, 9000), "eth0": NetCounters(300, 200)},
        ])
        monkeypatch.setattr(sysstats.psutil, "net_io_counters", lambda pernic: next(samples))

        sampler = SystemSampler(history_len=4)
        assert sampler.sample_network() == 0
        assert sampler.sample_network() == 300
        assert list(sampler.net_history) == [0, 0, 0, 300]

    def test_memory(self, monkeypatch):
        monkeypatch.setattr(sysstats.psutil, "virtual_memory", lambda: VirtualMemory(16, 8, 42.4))
        assert SystemSampler().memory() == (42, 16, 8)

    def test_sample(self):
        """Test a full sample against the real host."""
        sample = SystemSampler(history_len=3).sample()
        assert sample.cpu_percent == 0
        assert 0 <= sample.mem_percent <= 100
        assert len(sample.net_history) == 3
