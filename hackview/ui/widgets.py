"""UI widgets for the hackview dashboard."""

from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import ScrollableContainer, Vertical
from textual.widgets import Static

from ..models import ActiveBlock, Event, EventKind, UsageSummary
from ..sysstats import SystemSample
from .formatting import (
    format_bytes,
    format_num,
    format_uptime,
    make_bar,
    render_sparkline,
    short_model_name,
    truncate,
)

TITLE = "◈ H A C K V I E W ◈"
USER_PREVIEW = 120
TEXT_PREVIEW = 150

STATUS_TAGS = {
    "waiting": ("[waiting]", "dark_cyan"),
    "streaming": ("[streaming▮]", "bold green"),
    "thinking": ("[thinking...]", "green4"),
    "idle": ("[idle]", "green3"),
    "complete": ("[done ✓]", "cyan"),
}

# Status a panel takes on after rendering each kind of event
EVENT_STATUS = {
    EventKind.SESSION_START: "idle",
    EventKind.USER: "streaming",
    EventKind.THINKING: "thinking",
    EventKind.TEXT: "streaming",
    EventKind.TOOL_USE: "streaming",
    EventKind.COMPLETE: "complete",
}


def build_event_text(event: Event, ts: str) -> Optional[Text]:
    """Render one event as a log line, or None if it has nothing to show."""
    text = Text()
    text.append(f"{ts} ", style="dark_cyan")

    content = event.content or ""
    if event.kind == EventKind.SESSION_START:
        text.append("▶ SESSION STARTED", style="cyan")
    elif event.kind == EventKind.USER:
        text.append("▷ USER: ", style="bright_cyan")
        text.append(content.replace("\n", " ")[:USER_PREVIEW], style="white")
    elif event.kind == EventKind.THINKING:
        lines = [line for line in content.strip().split("\n") if line.strip()] or ["thinking..."]
        for i, line in enumerate(lines):
            if i:
                text.append(f"\n{ts} ", style="dark_cyan")
            text.append(f"💭 {line}", style="spring_green3")
    elif event.kind == EventKind.TEXT:
        if not content.strip():
            return None
        text.append("◎ ", style="green")
        text.append(content.replace("\n", " ")[:TEXT_PREVIEW], style="white")
    elif event.kind == EventKind.TOOL_USE:
        text.append(f"⚙ {truncate(content, TEXT_PREVIEW)}", style="yellow")
    elif event.kind == EventKind.COMPLETE:
        text.append("✓ DONE", style="bright_cyan")
        if event.usage:
            in_tok = format_num(event.usage.get("input_tokens") or 0)
            out_tok = format_num(event.usage.get("output_tokens") or 0)
            text.append(f" in:{in_tok} out:{out_tok}", style="dark_cyan")
    else:
        return None
    return text


def build_label_text(index: int, status: str, file: Optional[Path]) -> Text:
    """Session header strip: number, status tag and dir/file."""
    tag, tag_style = STATUS_TAGS.get(status, ("[...]", "dark_cyan"))

    text = Text()
    text.append(f" ◉ SESSION {index + 1}", style="bold green")
    text.append("  ")
    text.append(tag, style=tag_style)
    text.append("  ")
    if file is None:
        text.append("no file", style="dark_cyan")
    else:
        parent = file.parent.name
        short_dir = "…" + parent[-29:] if len(parent) > 30 else parent
        text.append(f"{short_dir}/", style="dark_cyan")
        text.append(file.stem[:24], style="green3")
    return text


def _pad_row(left: Text, right: Text, width: int) -> Text:
    gap = max(1, width - left.cell_len - right.cell_len)
    row = left.copy()
    row.append(" " * gap)
    row.append_text(right)
    return row


def _level_style(pct: int, warn: int, high: int) -> str:
    if pct > high:
        return "red"
    if pct > warn:
        return "yellow"
    return "green"


def build_header_text(
    sample: SystemSample,
    uptime: float,
    width: int,
    usage: Optional[UsageSummary] = None,
    block: Optional[ActiveBlock] = None,
    budget: float = 0.0,
    now: Optional[datetime] = None,
) -> Text:
    """System stats, today's token usage and the active block, one row each."""
    now = now or datetime.now()
    width = max(20, width)

    # Row 1: clock | title | CPU
    clock = Text(now.strftime("%H:%M:%S"), style="bold green")
    title = Text(TITLE, style="bold green")
    cpu = Text(f"CPU ▲{sample.cpu_percent:>2}% ", style=_level_style(sample.cpu_percent, 50, 80))
    cpu.append(make_bar(sample.cpu_percent / 100, 8), style="dark_green")
    gap_total = max(0, width - clock.cell_len - title.cell_len - cpu.cell_len)
    row1 = clock.copy()
    row1.append(" " * (gap_total // 2))
    row1.append_text(title)
    row1.append(" " * (gap_total - gap_total // 2))
    row1.append_text(cpu)

    # Row 2: memory | uptime
    mem = Text("MEM ", style="dark_cyan")
    mem.append(make_bar(sample.mem_percent / 100, 16), style=_level_style(sample.mem_percent, 65, 85))
    mem.append(f" {sample.mem_percent}%", style="green3")
    up = Text("UPTIME ", style="dark_cyan")
    up.append(format_uptime(uptime), style="green3")
    row2 = _pad_row(mem, up, width)

    # Row 3: network sparkline | rate
    net = Text("NET ", style="dark_cyan")
    net.append(render_sparkline(sample.net_history), style="dark_green")
    row3 = _pad_row(net, Text(format_bytes(sample.net_bytes), style="green3"), width)

    rows = [row1, row2, row3, Text("─" * width, style="dark_green")]

    if usage is None:
        rows.append(_pad_row(Text("◈ TOKENS", style="dark_cyan"), Text("awaiting ccusage...", style="dark_green"), width))
    else:
        left = Text("TODAY ", style="dark_cyan")
        left.append(format_num(usage.total_input), style="bold green")
        left.append(" in / ")
        left.append(format_num(usage.total_output), style="bold green")
        left.append(" out")
        right = Text("cache: ", style="dark_cyan")
        right.append(format_num(usage.total_cache_read), style="green3")
        right.append(f"  ${usage.total_cost:.2f}", style="bold green")
        rows.append(_pad_row(left, right, width))

        models = list(usage.model_breakdown.items())
        if models:
            total_tok = sum(m.input + m.output for _, m in models) or 1
            bar_w = min(10, (width - 10) // max(1, len(models)))
            breakdown = Text()
            for i, (name, stats) in enumerate(models):
                if i:
                    breakdown.append("  ")
                breakdown.append(f"{short_model_name(name)} ", style="green3")
                breakdown.append(make_bar((stats.input + stats.output) / total_tok, bar_w), style="green")
            rows.append(breakdown)

    if block is not None:
        left = Text("BLOCK ", style="dark_cyan")
        ratio = block.cost_usd / budget if budget else 0.0
        left.append(make_bar(ratio, 16), style=_level_style(round(ratio * 100), 65, 90))
        left.append(f" ${block.cost_usd:.2f}", style="bold green")
        if budget:
            left.append(f" / ${budget:.0f}", style="dark_cyan")
        right = Text()
        burn = _block_number(block.burn_rate, "costPerHour")
        if burn is not None:
            right.append(f"${burn:.2f}/h", style="green3")
        projected = _block_number(block.projection, "totalCost")
        if projected is not None:
            over = budget and projected > budget
            right.append(f"  → ${projected:.2f}", style="red" if over else "green3")
        remaining = _block_remaining(block, now)
        if remaining:
            right.append(f"  {remaining} left", style="dark_cyan")
        rows.append(_pad_row(left, right, width))

    return Text("\n").join(rows)


def _block_number(section, key: str) -> Optional[float]:
    """A numeric field from a ccusage block sub-object (burnRate, projection)."""
    if not isinstance(section, dict):
        return None
    value = section.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _block_remaining(block: ActiveBlock, now: datetime) -> str:
    if not block.end_time:
        return ""
    try:
        end = datetime.fromisoformat(block.end_time.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return ""
    current = now.astimezone(end.tzinfo) if end.tzinfo else now
    seconds = (end - current).total_seconds()
    if seconds <= 0:
        return ""
    return format_uptime(seconds)


class HeaderPanel(Static):
    """Top panel with host stats and token usage."""


class LogLine(Static):
    """A rendered event, remembering the merge key it can be updated by."""

    def __init__(self, text: Text, merge_key: Optional[tuple] = None):
        super().__init__(text, markup=False, classes="log-line")
        self.merge_key = merge_key


class SessionLog(ScrollableContainer):
    """Scrolling event log; updated events replace their earlier line."""

    MAX_LINES = 300

    def __init__(self, id: str = None):
        super().__init__(id=id)
        self._lines: list[LogLine] = []
        self._by_key: dict[tuple, LogLine] = {}

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def add_line(self, text: Text, key: Optional[tuple] = None) -> LogLine:
        """Append a line, dropping the oldest past MAX_LINES."""
        line = LogLine(text, key)
        self._lines.append(line)
        if key is not None:
            self._by_key[key] = line
        self.mount(line)

        while len(self._lines) > self.MAX_LINES:
            old = self._lines.pop(0)
            if old.merge_key is not None and self._by_key.get(old.merge_key) is old:
                del self._by_key[old.merge_key]
            old.remove()

        self.scroll_end(animate=False)
        return line

    def update_line(self, key: tuple, text: Text) -> bool:
        """Replace the line for ``key`` in place. False if it is not shown."""
        line = self._by_key.get(key)
        if line is None:
            return False
        line.update(text)
        return True

    def clear_log(self):
        for line in self._lines:
            line.remove()
        self._lines = []
        self._by_key = {}


class SessionPanel(Vertical):
    """One session slot: a label strip above its event log."""

    FLASH_SECONDS = 1.5

    def __init__(self, index: int, id: str = None):
        super().__init__(id=id, classes="session-panel")
        self.index = index
        self.status = "waiting"
        self.file: Optional[Path] = None
        self._flash_timer = None

    def compose(self) -> ComposeResult:
        yield Static(build_label_text(self.index, self.status, self.file), classes="session-label")
        yield SessionLog()

    @property
    def log_view(self) -> SessionLog:
        return self.query_one(SessionLog)

    def _refresh_label(self):
        self.query_one(".session-label", Static).update(build_label_text(self.index, self.status, self.file))
        self.set_class(self.status in ("streaming", "thinking"), "active")

    def set_file(self, path: Path):
        self.file = path
        self.status = "idle"
        self.log_view.clear_log()
        self._refresh_label()

    def set_no_file(self):
        self.file = None
        self.status = "waiting"
        self.log_view.clear_log()
        self._refresh_label()

    def add_event(self, event: Event, ts: Optional[str] = None):
        """Render an event, replacing the earlier line for updates."""
        ts = ts or datetime.now().strftime("%H:%M:%S")
        text = build_event_text(event, ts)

        self.status = EVENT_STATUS.get(event.kind, self.status)
        if text is not None:
            key = event.merge_key if event.is_mergeable else None
            if not (event.is_update and key is not None and self.log_view.update_line(key, text)):
                self.log_view.add_line(text, key)

        if event.kind == EventKind.COMPLETE:
            self._flash_complete()
        self._refresh_label()

    def _flash_complete(self):
        if self._flash_timer is not None:
            self._flash_timer.stop()
        self.add_class("complete")
        self._flash_timer = self.set_timer(self.FLASH_SECONDS, self._end_flash)

    def _end_flash(self):
        self._flash_timer = None
        self.remove_class("complete")
        if self.status == "complete":
            self.status = "idle"
        self._refresh_label()
