"""hackview dashboard TUI application."""

import logging
import time
from pathlib import Path
from typing import Optional

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.css.query import NoMatches
from textual.message import Message
from textual.widgets import Footer

from .config import HackviewConfig
from .models import ActiveBlock, Event, UsageSummary
from .sysstats import SystemSampler
from .ui import APP_CSS, HeaderPanel, SessionLog, SessionPanel, build_header_text
from .usage import UsageMonitor
from .watcher import SessionWatcher

logger = logging.getLogger(__name__)

HEADER_REFRESH = 1.0


class SessionEventPosted(Message):
    """A watcher emitted a display event."""

    def __init__(self, event: Event):
        super().__init__()
        self.event = event


class SessionFileChanged(Message):
    """A watcher switched to a different session file."""

    def __init__(self, index: int, path: Path):
        super().__init__()
        self.index = index
        self.path = path


class SessionFileGone(Message):
    """A watcher has no session file to follow."""

    def __init__(self, index: int):
        super().__init__()
        self.index = index


class UsageUpdated(Message):
    def __init__(self, usage: Optional[UsageSummary]):
        super().__init__()
        self.usage = usage


class BlockUpdated(Message):
    def __init__(self, block: Optional[ActiveBlock]):
        super().__init__()
        self.block = block


class HackviewApp(App):
    """Live view of the most recent Claude Code sessions, one panel per slot."""

    CSS = APP_CSS
    TITLE = "HACKVIEW"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
        Binding("c", "clear_log", "Clear"),
    ]

    def __init__(self, config: HackviewConfig):
        super().__init__()
        self.config = config
        self.watchers: list[SessionWatcher] = []
        self.usage_monitor: Optional[UsageMonitor] = None
        self.sampler = SystemSampler()
        self.usage: Optional[UsageSummary] = None
        self.block: Optional[ActiveBlock] = None
        self._started = time.monotonic()

    def compose(self) -> ComposeResult:
        yield HeaderPanel(id="header-panel")
        with Vertical(id="sessions"):
            for i in range(self.config.sessions):
                yield SessionPanel(i, id=f"session-{i}")
        yield Footer()

    def on_mount(self):
        """Start one watcher per slot and the background monitors."""
        for i in range(self.config.sessions):
            watcher = SessionWatcher(
                self.config.dirs,
                i,
                on_event=lambda event: self.post_message(SessionEventPosted(event)),
                on_file_change=lambda index, path: self.post_message(SessionFileChanged(index, path)),
                on_no_file=lambda index: self.post_message(SessionFileGone(index)),
                poll_interval=self.config.poll_interval,
                replay_lines=self.config.replay_lines,
                emit_first_fragment=self.config.emit_first_fragment,
            )
            watcher.start()
            self.watchers.append(watcher)

        if self.config.usage_enabled:
            self.usage_monitor = UsageMonitor(
                self.config.usage_interval,
                on_update=lambda usage: self.post_message(UsageUpdated(usage)),
                on_block=lambda block: self.post_message(BlockUpdated(block)),
            )
            self.usage_monitor.start()

        self._refresh_header()
        self.set_interval(HEADER_REFRESH, self._refresh_header)

    def on_unmount(self):
        for watcher in self.watchers:
            watcher.stop()
        if self.usage_monitor is not None:
            self.usage_monitor.stop()

    def _panel(self, index: int) -> Optional[SessionPanel]:
        try:
            return self.query_one(f"#session-{index}", SessionPanel)
        except NoMatches:
            return None

    def _refresh_header(self):
        header = self.query_one(HeaderPanel)
        sample = self.sampler.sample()
        header.update(build_header_text(
            sample,
            uptime=time.monotonic() - self._started,
            width=header.content_size.width,
            usage=self.usage,
            block=self.block,
            budget=self.config.budget,
        ))

    @on(SessionEventPosted)
    def _on_session_event(self, message: SessionEventPosted):
        panel = self._panel(message.event.session_index)
        if panel is None:
            return
        try:
            panel.add_event(message.event)
        except Exception as e:
            self.log.error(f"Failed to render event: {e}")

    @on(SessionFileChanged)
    def _on_file_changed(self, message: SessionFileChanged):
        panel = self._panel(message.index)
        if panel is not None:
            panel.set_file(message.path)

    @on(SessionFileGone)
    def _on_file_gone(self, message: SessionFileGone):
        panel = self._panel(message.index)
        if panel is not None:
            panel.set_no_file()

    @on(UsageUpdated)
    def _on_usage(self, message: UsageUpdated):
        self.usage = message.usage

    @on(BlockUpdated)
    def _on_block(self, message: BlockUpdated):
        self.block = message.block

    def action_clear_log(self):
        """Clear the focused session's log (all sessions if none is focused)."""
        focused = self.focused
        if isinstance(focused, SessionLog):
            focused.clear_log()
            return
        for log in self.query(SessionLog):
            log.clear_log()
