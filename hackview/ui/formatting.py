"""Plain-text formatting helpers for the dashboard."""

SPARK_CHARS = "▁▂▃▄▅▆▇█"


def truncate(text: str, max_len: int = 100) -> str:
    """Truncate text with ellipsis."""
    if len(text) <= max_len:
        return text
    return text[:max_len - 3] + "..."


def format_num(n) -> str:
    """Compact token count: 1.2M, 34k, 512."""
    if not n:
        return "0"
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1000:
        return f"{n / 1000:.0f}k"
    return str(n)


def format_bytes(n: float) -> str:
    """Per-second transfer rate."""
    if n >= 1024 * 1024:
        return f"{n / (1024 * 1024):.1f}MB/s"
    if n >= 1024:
        return f"{n / 1024:.1f}KB/s"
    return f"{round(n)}B/s"


def format_uptime(seconds: float) -> str:
    total = int(seconds)
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h}:{m:02d}:{s:02d}"


def make_bar(ratio: float, width: int, filled: str = "█", empty: str = "░") -> str:
    """Horizontal bar at least 4 cells wide; ratio is clamped to [0, 1]."""
    w = max(4, width)
    n = min(w, round(max(0.0, min(1.0, ratio)) * w))
    return filled * n + empty * (w - n)


def render_sparkline(history) -> str:
    values = list(history)
    peak = max(values + [1])
    last = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[min(last, int(v / peak * len(SPARK_CHARS)))] for v in values)


def short_model_name(model: str) -> str:
    """opus / sonnet / haiku, or the last two dash-separated parts."""
    if not model:
        return "unknown"
    m = model.lower()
    for family in ("opus", "sonnet", "haiku", "instant"):
        if family in m:
            return family
    return "-".join(model.split("-")[-2:])
