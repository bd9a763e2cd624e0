"""Token usage polling through the external ccusage tool."""

import json
import logging
import os
import subprocess
import threading
from datetime import date
from typing import Callable, Optional

from .models import ActiveBlock, ModelUsage, UsageSummary

logger = logging.getLogger(__name__)

NPX_PATHS = ["npx", "/opt/homebrew/bin/npx", "/usr/local/bin/npx"]
CCUSAGE_PACKAGE = "ccusage@latest"
FETCH_TIMEOUT = 45  # seconds per npx attempt
EXTRA_PATH = "/opt/homebrew/bin:/usr/local/bin"


def _run_ccusage(args: list[str]) -> tuple[Optional[str], list[str]]:
    """Run ccusage through the first npx that works.

    Returns (stdout, errors); stdout is None when every candidate failed.
    """
    env = dict(os.environ)
    env["PATH"] = f"{EXTRA_PATH}:{env.get('PATH', '')}"

    errors = []
    for npx in NPX_PATHS:
        try:
            result = subprocess.run(
                [npx, "--yes", CCUSAGE_PACKAGE, *args],
                capture_output=True,
                text=True,
                timeout=FETCH_TIMEOUT,
                env=env,
            )
        except (OSError, subprocess.SubprocessError) as e:
            errors.append(f"[{npx}] {str(e).splitlines()[0] if str(e) else type(e).__name__}")
            continue

        if result.returncode != 0 or not result.stdout.strip():
            detail = result.stderr.strip().splitlines()[0] if result.stderr.strip() else "empty output"
            errors.append(f"[{npx}] {detail}")
            continue
        return result.stdout, errors

    return None, errors


def _model_usage(entry: dict) -> ModelUsage:
    return ModelUsage(
        input=entry.get("inputTokens") or 0,
        output=entry.get("outputTokens") or 0,
        cost=entry.get("cost") or 0.0,
    )


def _add_breakdowns(breakdown: dict[str, ModelUsage], raw):
    if isinstance(raw, list):
        for entry in raw:
            if not isinstance(entry, dict):
                continue
            name = entry.get("modelName") or entry.get("model") or "unknown"
            stats = breakdown.setdefault(name, ModelUsage())
            usage = _model_usage(entry)
            stats.input += usage.input
            stats.output += usage.output
            stats.cost += usage.cost
    elif isinstance(raw, dict):
        for name, entry in raw.items():
            if not isinstance(entry, dict):
                continue
            stats = breakdown.setdefault(name, ModelUsage())
            usage = _model_usage(entry)
            stats.input += usage.input
            stats.output += usage.output
            stats.cost += usage.cost


def aggregate_usage(records: list[dict], today: Optional[date] = None) -> Optional[UsageSummary]:
    """Sum today's daily records (falling back to the most recent one)."""
    today = today or date.today()
    today_hyphen = today.strftime("%Y-%m-%d")
    today_compact = today.strftime("%Y%m%d")

    todays = [r for r in records if r.get("date") in (today_hyphen, today_compact)]
    if not todays and records:
        todays = [records[-1]]
    if not todays:
        return None

    summary = UsageSummary(date=today_hyphen)
    for r in todays:
        summary.total_input += r.get("inputTokens") or 0
        summary.total_output += r.get("outputTokens") or 0
        summary.total_cost += r.get("totalCost") or r.get("cost") or 0
        summary.total_cache_read += r.get("cacheReadTokens") or 0
        summary.total_cache_write += r.get("cacheCreationTokens") or 0
        _add_breakdowns(summary.model_breakdown, r.get("modelBreakdowns") or r.get("modelBreakdown") or [])
    return summary


def format_usage_record(record: dict, today: Optional[date] = None) -> UsageSummary:
    """Convert a single ccusage summary object."""
    today = today or date.today()
    summary = UsageSummary(
        date=record.get("date") or today.strftime("%Y%m%d"),
        total_input=record.get("inputTokens") or 0,
        total_output=record.get("outputTokens") or 0,
        total_cost=record.get("totalCost") or record.get("cost") or 0,
        total_cache_read=record.get("cacheReadTokens") or 0,
        total_cache_write=record.get("cacheCreationTokens") or 0,
    )
    _add_breakdowns(summary.model_breakdown, record.get("modelBreakdowns") or record.get("modelBreakdown") or [])
    return summary


def _find_json(stdout: str):
    """Parse the JSON document that starts at the first '[' or '{' line."""
    lines = stdout.strip().split("\n")
    for i, line in enumerate(lines):
        if line.strip().startswith(("[", "{")):
            return json.loads("\n".join(lines[i:]))
    return None


def parse_usage_output(stdout: str, today: Optional[date] = None) -> Optional[UsageSummary]:
    """Parse `ccusage daily --json` output, which may carry leading noise."""
    try:
        data = _find_json(stdout)
    except ValueError:
        return None

    if isinstance(data, dict) and isinstance(data.get("daily"), list):
        return aggregate_usage(data["daily"], today)
    if isinstance(data, list):
        return aggregate_usage([r for r in data if isinstance(r, dict)], today)
    if isinstance(data, dict):
        return format_usage_record(data, today)
    return None


def parse_block_output(stdout: str) -> Optional[ActiveBlock]:
    """Parse `ccusage blocks --active --json` output."""
    try:
        data = json.loads(stdout.strip())
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    blocks = data.get("blocks") or []
    if not blocks or not isinstance(blocks[0], dict):
        return None

    b = blocks[0]
    return ActiveBlock(
        start_time=b.get("startTime"),
        end_time=b.get("endTime"),
        cost_usd=b.get("costUSD") or 0.0,
        total_tokens=b.get("totalTokens") or 0,
        token_counts=b.get("tokenCounts") or {},
        models=b.get("models") or [],
        burn_rate=b.get("burnRate"),
        projection=b.get("projection"),
    )


def fetch_usage() -> Optional[UsageSummary]:
    """Fetch today's usage. Returns None if ccusage is unavailable."""
    since = date.today().strftime("%Y%m%d")
    stdout, errors = _run_ccusage(["daily", "--json", "--since", since])
    if stdout is None:
        logger.debug(f"Usage fetch failed: {' | '.join(errors) or 'all npx paths failed'}")
        return None

    summary = parse_usage_output(stdout)
    if summary is None:
        logger.debug(f"Usage output did not parse: {stdout[:100]}")
    return summary


def fetch_active_block() -> Optional[ActiveBlock]:
    """Fetch the active billing block, if any."""
    stdout, errors = _run_ccusage(["blocks", "--active", "--json"])
    if stdout is None:
        logger.debug(f"Block fetch failed: {' | '.join(errors) or 'all npx paths failed'}")
        return None
    return parse_block_output(stdout)


class UsageMonitor:
    """Polls ccusage on a fixed interval, keeping the last good values."""

    def __init__(
        self,
        interval: float = 60.0,
        on_update: Optional[Callable[[Optional[UsageSummary]], None]] = None,
        on_block: Optional[Callable[[Optional[ActiveBlock]], None]] = None,
    ):
        self.interval = interval
        self.on_update = on_update
        self.on_block = on_block
        self.last_usage: Optional[UsageSummary] = None
        self.last_block: Optional[ActiveBlock] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="UsageMonitor")
        self._thread.start()

    def stop(self):
        self._stop_event.set()
        # ccusage can take a while; the daemon thread is left to finish alone
        self._thread = None

    def _loop(self):
        self.poll()
        while not self._stop_event.wait(self.interval):
            self.poll()

    def poll(self):
        """Fetch once and notify listeners."""
        try:
            usage = fetch_usage()
            block = fetch_active_block()
        except Exception as e:
            logger.warning(f"Usage poll failed: {type(e).__name__}: {e}")
            usage = block = None

        self.last_usage = usage or self.last_usage
        self.last_block = block or self.last_block

        if self._stop_event.is_set():
            return
        for callback, value in ((self.on_update, self.last_usage), (self.on_block, self.last_block)):
            if callback is None:
                continue
            try:
                callback(value)
            except Exception as e:
                logger.warning(f"Usage listener failed: {e}")
