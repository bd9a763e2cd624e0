"""Configuration for the hackview dashboard.

Settings are resolved from CLI flags, then a JSON config file
(``--config``, ``~/.hackview.json`` or ``./.hackview.json``), then defaults.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from .selector import SESSION_EXTENSION
from .watcher import POLL_INTERVAL, REPLAY_LINES

logger = logging.getLogger(__name__)

DEFAULT_PROJECTS_DIR = Path.home() / ".claude" / "projects"
CONFIG_FILENAME = ".hackview.json"
DEFAULT_SESSIONS = 2
DEFAULT_BUDGET = 40.0
DEFAULT_USAGE_INTERVAL = 60.0


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}")
        return default


@dataclass
class HackviewConfig:
    """Ready-to-use settings handed to the dashboard."""

    dirs: list[Path] = field(default_factory=lambda: [DEFAULT_PROJECTS_DIR])
    sessions: int = DEFAULT_SESSIONS
    budget: float = DEFAULT_BUDGET
    usage_interval: float = DEFAULT_USAGE_INTERVAL
    poll_interval: float = POLL_INTERVAL
    replay_lines: int = REPLAY_LINES
    emit_first_fragment: bool = False
    usage_enabled: bool = True


def _positive_number(value, name: str, default, kind=float):
    """Return ``value`` as a positive ``kind``, or ``default`` if it is not one."""
    if value is None:
        return default
    accepted = (int,) if kind is int else (int, float)
    if isinstance(value, bool) or not isinstance(value, accepted):
        logger.warning(f"Ignoring {name}={value!r}: expected a number")
        return default
    if value <= 0:
        logger.warning(f"Ignoring {name}={value!r}: must be greater than 0")
        return default
    return kind(value)


def default_config_paths(explicit: Optional[str] = None) -> list[Path]:
    paths = []
    if explicit:
        paths.append(Path(explicit).expanduser())
    paths.append(Path.home() / CONFIG_FILENAME)
    paths.append(Path.cwd() / CONFIG_FILENAME)
    return paths


def load_config_file(paths: Iterable[Path]) -> dict:
    """Return the first config file that exists and parses, else {}."""
    for path in paths:
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            continue
        if isinstance(data, dict):
            logger.debug(f"Loaded config from {path}")
            return data
    return {}


def resolve_dirs(spec) -> list[Path]:
    """Resolve a comma-separated string (or list) of directories."""
    if not spec:
        return []
    if isinstance(spec, str):
        parts = spec.split(",")
    elif isinstance(spec, (list, tuple)):
        parts = [str(p) for p in spec]
    else:
        logger.warning(f"Ignoring dirs={spec!r}: expected a string or a list")
        return []
    return [Path(p.strip()).expanduser().resolve() for p in parts if p.strip()]


def expand_dirs(dirs: Iterable[Path], extension: str = SESSION_EXTENSION) -> list[Path]:
    """Expand top-level directories into the project directories below them.

    A directory holding session files is kept. A directory with no session
    files but with subdirectories (like ~/.claude/projects) is replaced by
    its subdirectories. Missing directories are kept so they can be picked
    up once they appear.
    """
    expanded = []
    for directory in dirs:
        directory = Path(directory)
        try:
            if not directory.is_dir():
                if not directory.exists():
                    expanded.append(directory)
                continue
            children = list(directory.iterdir())
        except OSError:
            expanded.append(directory)
            continue

        if any(c.name.endswith(extension) for c in children):
            expanded.append(directory)
            continue

        subdirs = sorted(c for c in children if c.is_dir())
        if subdirs:
            expanded.extend(subdirs)
        else:
            expanded.append(directory)
    return expanded


def load_config(
    dirs: Optional[str] = None,
    sessions: Optional[int] = None,
    budget: Optional[float] = None,
    config_path: Optional[str] = None,
    usage_interval: Optional[float] = None,
    usage_enabled: bool = True,
    emit_first_fragment: bool = False,
) -> HackviewConfig:
    """Build the dashboard configuration from CLI values and config files."""
    file_config = load_config_file(default_config_paths(config_path))

    resolved = resolve_dirs(dirs) or resolve_dirs(file_config.get("dirs")) or [DEFAULT_PROJECTS_DIR]

    file_sessions = _positive_number(file_config.get("sessions"), "sessions", DEFAULT_SESSIONS, int)
    file_budget = _positive_number(file_config.get("budget"), "budget", DEFAULT_BUDGET)
    env_usage_interval = _positive_number(
        _env_float("HACKVIEW_USAGE_INTERVAL", DEFAULT_USAGE_INTERVAL),
        "HACKVIEW_USAGE_INTERVAL",
        DEFAULT_USAGE_INTERVAL,
    )

    return HackviewConfig(
        dirs=expand_dirs(resolved),
        sessions=_positive_number(sessions, "--sessions", file_sessions, int),
        budget=_positive_number(budget, "--budget", file_budget),
        usage_interval=_positive_number(usage_interval, "--usage-interval", env_usage_interval),
        poll_interval=_positive_number(
            _env_float("HACKVIEW_POLL_INTERVAL", POLL_INTERVAL), "HACKVIEW_POLL_INTERVAL", POLL_INTERVAL
        ),
        emit_first_fragment=emit_first_fragment,
        usage_enabled=usage_enabled,
    )
