"""Reconciliation of streamed partial assistant messages.

Claude Code rewrites an in-flight assistant message as a series of growing
snapshots that share one message id. The merge engine collapses these into a
single logical event: the first snapshot is buffered, and later snapshots
are emitted as in-place updates only when they add text or mark the message
complete.
"""

from dataclasses import replace

from .models import Event, EventKind


def merge_key(event: Event) -> tuple[str, str, str]:
    return event.merge_key


class MergeEngine:
    """Per-slot merge state keyed by (message id, kind, tool name)."""

    def __init__(self, emit_first_fragment: bool = False):
        self.emit_first_fragment = emit_first_fragment
        self._states: dict[tuple[str, str, str], Event] = {}

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, key) -> bool:
        return key in self._states

    def get(self, key) -> Event | None:
        return self._states.get(key)

    def clear(self):
        """Forget every in-flight message (called on file change)."""
        self._states.clear()

    def process(self, event: Event, is_history: bool = False) -> list[Event]:
        """Feed one extracted event, returning the events to emit."""
        if not event.is_mergeable:
            return [replace(event, is_history=is_history, is_update=False)]

        key = merge_key(event)
        existing = self._states.get(key)

        if existing is None:
            self._states[key] = replace(event, is_history=False, is_update=False)
            if self.emit_first_fragment:
                return [replace(event, is_history=is_history, is_update=False)]
            return []

        changed = False
        if event.kind == EventKind.TEXT and len(event.content) > len(existing.content):
            existing.content = event.content
            existing.is_complete = existing.is_complete or event.is_complete
            if event.usage:
                existing.usage = event.usage
            changed = True
        elif event.is_complete and not existing.is_complete:
            existing.is_complete = True
            if event.usage:
                existing.usage = event.usage
            changed = True

        if changed and not is_history:
            return [replace(existing, is_history=False, is_update=True)]
        return []
