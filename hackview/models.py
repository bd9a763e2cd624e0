"""Display event model shared by the watcher, merge engine and dashboard."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EventKind(str, Enum):
    """Kinds of display events extracted from session log records."""

    SESSION_START = "session-start"
    USER = "user"
    THINKING = "thinking"
    TEXT = "text"
    TOOL_USE = "tool-use"
    COMPLETE = "complete"


# Kinds that can stream in as repeated partial snapshots of one message
MERGEABLE_KINDS = frozenset({EventKind.TEXT, EventKind.THINKING, EventKind.TOOL_USE})


@dataclass
class Event:
    """A display-ready unit derived from one session log record."""

    kind: EventKind
    content: str = ""
    message_id: Optional[str] = None
    is_complete: bool = False
    usage: Optional[dict] = None
    tool_name: Optional[str] = None  # only set for tool-use

    # Delivery flags, filled in when the watcher emits the event
    session_index: Optional[int] = None
    is_history: bool = False
    is_update: bool = False

    @property
    def merge_key(self) -> tuple[str, str, str]:
        """Correlation key for streamed fragments of the same message."""
        return (self.message_id or "", self.kind.value, self.tool_name or "")

    @property
    def is_mergeable(self) -> bool:
        return bool(self.message_id) and self.kind in MERGEABLE_KINDS


@dataclass
class ModelUsage:
    """Token and cost totals for one model."""

    input: int = 0
    output: int = 0
    cost: float = 0.0


@dataclass
class UsageSummary:
    """Aggregated daily usage as reported by ccusage."""

    date: str
    total_input: int = 0
    total_output: int = 0
    total_cost: float = 0.0
    total_cache_read: int = 0
    total_cache_write: int = 0
    model_breakdown: dict[str, ModelUsage] = field(default_factory=dict)


@dataclass
class ActiveBlock:
    """The currently active billing block."""

    start_time: Optional[str] = None
    end_time: Optional[str] = None
    cost_usd: float = 0.0
    total_tokens: int = 0
    token_counts: dict = field(default_factory=dict)
    models: list[str] = field(default_factory=list)
    burn_rate: Optional[dict] = None
    projection: Optional[dict] = None
    is_active: bool = True
