"""Live tailing of the Nth most recent Claude Code session log.

Each SessionWatcher owns one slot: it picks a file with the selector,
replays its recent history, then reads newly appended bytes whenever the
file changes. Two triggers feed the slot: a fixed-interval selection poll
and watchdog notifications from the watched directories. Both only enqueue
work; a single worker thread drains the queue so file state is never
touched concurrently.
"""

import logging
import os
import threading
from enum import Enum
from pathlib import Path
from queue import Empty, Queue
from typing import Callable, Iterable, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .merge import MergeEngine
from .models import Event
from .parser import extract_events, parse_record
from .selector import SESSION_EXTENSION, find_session_file

logger = logging.getLogger(__name__)

POLL_INTERVAL = 5.0  # seconds between selection re-checks
REPLAY_LINES = 50  # history lines replayed when a file is opened
STOP_TIMEOUT = 2.0

_SELECT = "select"
_TAIL = "tail"
_STOP = "stop"


class WatcherState(Enum):
    """Lifecycle of a watched slot."""

    NO_FILE = "no-file"
    REPLAYING = "replaying"
    LIVE = "live"


class SessionEventHandler(FileSystemEventHandler):
    """Watchdog handler that turns file system events into slot work items."""

    def __init__(self, watcher: "SessionWatcher"):
        super().__init__()
        self._watcher = watcher

    def _is_session_file(self, path) -> bool:
        return os.fsdecode(path).endswith(self._watcher.extension)

    def on_created(self, event):
        if not event.is_directory and self._is_session_file(event.src_path):
            self._watcher.request_selection()

    def on_moved(self, event):
        if not event.is_directory and self._is_session_file(event.dest_path):
            self._watcher.request_selection()

    def on_modified(self, event):
        if not event.is_directory and self._is_session_file(event.src_path):
            self._watcher.notify_changed(os.fsdecode(event.src_path))


class SessionWatcher:
    """Watches one session slot (slot i follows the i-th newest file)."""

    def __init__(
        self,
        dirs: Iterable[Path],
        session_index: int,
        on_event: Optional[Callable[[Event], None]] = None,
        on_file_change: Optional[Callable[[int, Path], None]] = None,
        on_no_file: Optional[Callable[[int], None]] = None,
        poll_interval: float = POLL_INTERVAL,
        replay_lines: int = REPLAY_LINES,
        emit_first_fragment: bool = False,
        extension: str = SESSION_EXTENSION,
    ):
        self.dirs = [Path(d) for d in dirs]
        self.session_index = session_index
        self.on_event = on_event
        self.on_file_change = on_file_change
        self.on_no_file = on_no_file
        self.poll_interval = poll_interval
        self.replay_lines = replay_lines
        self.extension = extension

        self.merge = MergeEngine(emit_first_fragment=emit_first_fragment)

        # Guarded by _lock
        self._current_file: Optional[Path] = None
        self._cursor = 0
        self._pending = b""
        self._state = WatcherState.NO_FILE
        self._lock = threading.RLock()

        self._queue: Queue = Queue()
        self._stop_event = threading.Event()
        self._stopped = False
        self._worker: Optional[threading.Thread] = None
        self._timer: Optional[threading.Thread] = None
        self._observer: Optional[Observer] = None
        self._handler = SessionEventHandler(self)
        self._watched_dirs: set[Path] = set()

    # -- introspection --

    @property
    def current_file(self) -> Optional[Path]:
        return self._current_file

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    # -- lifecycle --

    def start(self):
        """Start the worker, the selection timer and the directory observer."""
        if self._worker is not None:
            return

        self._stop_event.clear()
        self._stopped = False

        self._worker = threading.Thread(
            target=self._run, daemon=True, name=f"SessionWatcher-{self.session_index}"
        )
        self._worker.start()
        self.request_selection()

        self._timer = threading.Thread(
            target=self._timer_loop, daemon=True, name=f"SessionPoll-{self.session_index}"
        )
        self._timer.start()

        self._start_observer()
        logger.info(f"Session {self.session_index}: watching {len(self.dirs)} directories")

    def stop(self):
        """Stop all triggers. Reads already in flight finish but emit nothing."""
        # Lock-free: a read in flight completes and its emissions are dropped
        if self._stopped:
            return
        self._stopped = True

        self._stop_event.set()
        self._queue.put((_STOP, None))

        if self._observer is not None:
            try:
                self._observer.stop()
                self._observer.join(timeout=STOP_TIMEOUT)
            except Exception as e:
                logger.debug(f"Session {self.session_index}: observer shutdown failed: {e}")
            self._observer = None
            self._watched_dirs.clear()

        for thread in (self._timer, self._worker):
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=STOP_TIMEOUT)
        self._timer = None
        self._worker = None
        logger.info(f"Session {self.session_index}: stopped")

    # -- triggers --

    def request_selection(self):
        """Ask the worker to re-run file selection."""
        self._queue.put((_SELECT, None))

    def notify_changed(self, path: str):
        """Ask the worker to read new bytes if ``path`` is the open file."""
        self._queue.put((_TAIL, path))

    def _timer_loop(self):
        while not self._stop_event.wait(self.poll_interval):
            self.request_selection()

    def _run(self):
        while True:
            try:
                action, payload = self._queue.get(timeout=STOP_TIMEOUT)
            except Empty:
                if self._stop_event.is_set():
                    return
                continue

            if action == _STOP:
                return
            try:
                self._dispatch(action, payload)
            except Exception as e:
                logger.exception(f"Session {self.session_index}: {action} failed: {type(e).__name__}: {e}")

    def _dispatch(self, action: str, payload):
        if action == _SELECT:
            self.check_for_new_file()
        elif action == _TAIL:
            current = self._current_file
            if current is not None and Path(payload) == current:
                self.read_new_content()

    def _start_observer(self):
        try:
            self._observer = Observer()
            self._schedule_dirs()
            self._observer.start()
        except Exception as e:
            logger.warning(f"Session {self.session_index}: file watching unavailable ({e}), polling only")
            self._observer = None

    def _schedule_dirs(self):
        """Watch every existing directory not yet scheduled (one level only)."""
        if self._observer is None:
            return
        for directory in self.dirs:
            if directory in self._watched_dirs:
                continue
            try:
                if not directory.is_dir():
                    continue
            except OSError:
                continue
            try:
                self._observer.schedule(self._handler, str(directory), recursive=False)
                self._watched_dirs.add(directory)
                logger.debug(f"Session {self.session_index}: watching {directory}")
            except Exception as e:
                logger.warning(f"Session {self.session_index}: cannot watch {directory}: {e}")

    # -- selection --

    def check_for_new_file(self) -> bool:
        """Re-run selection, switching files if the ranking changed.

        Returns True when the slot switched to a different file (or to none).
        """
        with self._lock:
            if self._stopped:
                return False

            self._schedule_dirs()
            try:
                best = find_session_file(self.dirs, self.session_index, self.extension)
            except OSError as e:
                logger.debug(f"Session {self.session_index}: selection skipped: {e}")
                return False
            if best == self._current_file:
                return False

            self._current_file = best
            self._cursor = 0
            self._pending = b""
            self.merge.clear()

            if best is None:
                logger.info(f"Session {self.session_index}: no session file")
                self._state = WatcherState.NO_FILE
                self._notify(self.on_no_file, self.session_index)
            else:
                logger.info(f"Session {self.session_index}: switched to {best}")
                self._notify(self.on_file_change, self.session_index, best)
                self._load_file(best)
            return True

    def _load_file(self, path: Path):
        self._state = WatcherState.REPLAYING
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.debug(f"Session {self.session_index}: cannot read {path}: {e}")
            data = b""

        self._cursor = len(data)
        lines = self._split_lines(data)
        if self.replay_lines > 0:
            lines = lines[-self.replay_lines:]
        else:
            lines = []
        self._process_lines(lines, is_history=True)
        self._state = WatcherState.LIVE

    # -- tailing --

    def read_new_content(self) -> int:
        """Read bytes appended since the last read. Returns the byte count read."""
        with self._lock:
            path = self._current_file
            if self._stopped or path is None:
                return 0

            try:
                size = path.stat().st_size
                if size <= self._cursor:
                    return 0
                with open(path, "rb") as f:
                    f.seek(self._cursor)
                    data = f.read(size - self._cursor)
            except OSError as e:
                logger.debug(f"Session {self.session_index}: read failed for {path}: {e}")
                return 0

            self._cursor += len(data)
            self._process_lines(self._split_lines(data), is_history=False)
            return len(data)

    def _split_lines(self, data: bytes) -> list[str]:
        """Split bytes into non-blank lines, holding back a torn final line."""
        data = self._pending + data
        self._pending = b""

        chunks = data.split(b"\n")
        tail = chunks.pop()
        lines = [chunk.decode("utf-8", errors="replace") for chunk in chunks]

        if tail.strip():
            text = tail.decode("utf-8", errors="replace")
            if parse_record(text) is None:
                self._pending = tail
            else:
                lines.append(text)

        return [line for line in lines if line.strip()]

    def _process_lines(self, lines: list[str], is_history: bool):
        for line in lines:
            record = parse_record(line)
            if record is None:
                continue
            for event in extract_events(record):
                for emitted in self.merge.process(event, is_history=is_history):
                    emitted.session_index = self.session_index
                    self._notify(self.on_event, emitted)

    def _notify(self, callback, *args):
        if callback is None or self._stopped:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.warning(f"Session {self.session_index}: listener failed: {type(e).__name__}: {e}")
