"""Host CPU, memory and network sampling for the dashboard header."""

from collections import deque
from dataclasses import dataclass
from typing import Optional

import psutil

NET_HISTORY_LEN = 24


@dataclass
class SystemSample:
    cpu_percent: int
    mem_percent: int
    mem_total: int
    mem_available: int
    net_bytes: int
    net_history: list[int]


class SystemSampler:
    """Computes rates between successive samples.

    All previous-sample state lives on the instance; the owner decides the
    sampling cadence.
    """

    def __init__(self, history_len: int = NET_HISTORY_LEN):
        self._prev_cpu: Optional[tuple[float, float]] = None  # (idle, total)
        self._prev_net: Optional[int] = None
        self.net_history: deque[int] = deque([0] * history_len, maxlen=history_len)
        self.last_net_bytes = 0

    def cpu_percent(self) -> int:
        """Busy percentage since the previous call (0 on the first call)."""
        try:
            times = psutil.cpu_times()
        except Exception:
            return 0
        idle = times.idle + getattr(times, "iowait", 0.0)
        total = sum(times)
        prev = self._prev_cpu
        self._prev_cpu = (idle, total)
        if prev is None:
            return 0

        total_diff = total - prev[1]
        if total_diff <= 0:
            return 0
        return round((1 - (idle - prev[0]) / total_diff) * 100)

    def memory(self) -> tuple[int, int, int]:
        """(percent used, total bytes, available bytes)."""
        try:
            mem = psutil.virtual_memory()
        except Exception:
            return 0, 0, 0
        return round(mem.percent), mem.total, mem.available

    def sample_network(self) -> int:
        """Bytes moved on non-loopback interfaces since the previous call."""
        try:
            counters = psutil.net_io_counters(pernic=True)
        except Exception:
            counters = {}

        total = sum(
            c.bytes_recv + c.bytes_sent
            for name, c in counters.items()
            if not name.startswith("lo")
        )
        diff = 0
        if self._prev_net is not None and total > self._prev_net:
            diff = total - self._prev_net
        self._prev_net = total

        self.last_net_bytes = diff
        self.net_history.append(diff)
        return diff

    def sample(self) -> SystemSample:
        cpu = self.cpu_percent()
        mem_pct, mem_total, mem_available = self.memory()
        net = self.sample_network()
        return SystemSample(
            cpu_percent=cpu,
            mem_percent=mem_pct,
            mem_total=mem_total,
            mem_available=mem_available,
            net_bytes=net,
            net_history=list(self.net_history),
        )
