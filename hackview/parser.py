"""Parsing of Claude Code session log lines into display events."""

import json
import logging
from typing import Any, Optional

from .models import Event, EventKind

logger = logging.getLogger(__name__)

USER_TEXT_LIMIT = 200
USER_CONTENT_LIMIT = 300
TOOL_RESULT_LIMIT = 60
THINKING_PREVIEW = 80
INPUT_SUMMARY_LIMIT = 50
INPUT_FALLBACK_LIMIT = 40

# Tool input keys that best describe a call, in priority order
SUMMARY_KEYS = ("command", "path", "file_path", "url", "query", "pattern", "description")


def parse_record(line: str) -> Optional[Any]:
    """Parse one JSONL line. Returns None for blank or malformed lines."""
    if not isinstance(line, str) or not line.strip():
        return None
    try:
        return json.loads(line.strip())
    except ValueError:
        return None


def _stringify(value) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def summarize_input(tool_input) -> str:
    """Summarize tool-use input as a short argument string."""
    if not isinstance(tool_input, dict) or not tool_input:
        return ""

    for key in SUMMARY_KEYS:
        if key in tool_input:
            return _stringify(tool_input[key])[:INPUT_SUMMARY_LIMIT]

    first_key = next(iter(tool_input))
    return f"{first_key}={_stringify(tool_input[first_key])[:INPUT_FALLBACK_LIMIT]}"


def _summarize_tool_result(block: dict) -> str:
    result = block.get("content")
    if isinstance(result, str):
        return f"[result: {result[:TOOL_RESULT_LIMIT]}]"
    if isinstance(result, list):
        for item in result:
            if isinstance(item, dict) and item.get("type") == "text":
                return f"[result: {(item.get('text') or '')[:TOOL_RESULT_LIMIT]}]"
    return "[tool result]"


def extract_user_content(content) -> Optional[str]:
    """Extract display text from a user message body (string or block list)."""
    if not content:
        return None
    if isinstance(content, str):
        return content[:USER_TEXT_LIMIT]
    if isinstance(content, list):
        parts = []
        for block in content:
            if not isinstance(block, dict):
                continue
            block_type = block.get("type")
            if block_type == "text":
                parts.append((block.get("text") or "")[:USER_TEXT_LIMIT])
            elif block_type == "tool_result":
                parts.append(_summarize_tool_result(block))
            elif block_type == "image":
                parts.append("[image]")
        return " ".join(parts)[:USER_CONTENT_LIMIT] or None
    return None


def _extract_user(record: dict) -> list[Event]:
    msg = record.get("message")
    if not isinstance(msg, dict):
        return []
    content = extract_user_content(msg.get("content"))
    if not content:
        return []
    return [Event(
        kind=EventKind.USER,
        content=content,
        message_id=msg.get("id"),
        is_complete=True,
    )]


def _extract_assistant(record: dict) -> list[Event]:
    msg = record.get("message")
    if not isinstance(msg, dict):
        return []

    message_id = msg.get("id")
    stop_reason = msg.get("stop_reason")
    is_complete = stop_reason is not None
    usage = msg.get("usage") or None

    blocks = msg.get("content")
    if not isinstance(blocks, list):
        blocks = []

    events = []
    for block in blocks:
        if not isinstance(block, dict):
            continue
        block_type = block.get("type")
        if block_type == "thinking":
            thinking = block.get("thinking")
            if not isinstance(thinking, str):
                thinking = ""
            content = f"{thinking[:THINKING_PREVIEW]}..." if thinking else "thinking..."
            events.append(Event(EventKind.THINKING, content, message_id, is_complete, usage))
        elif block_type == "text":
            text = block.get("text")
            if not isinstance(text, str):
                text = ""
            events.append(Event(EventKind.TEXT, text, message_id, is_complete, usage))
        elif block_type == "tool_use":
            name = block.get("name")
            if not isinstance(name, str):
                name = ""
            events.append(Event(
                kind=EventKind.TOOL_USE,
                content=f"{name}({summarize_input(block.get('input'))})",
                message_id=message_id,
                is_complete=is_complete,
                usage=usage,
                tool_name=name,
            ))

    if not events and is_complete:
        # Completion signal with no content blocks
        events.append(Event(EventKind.COMPLETE, f"[{stop_reason}]", message_id, True, usage))

    return events


def extract_events(record) -> list[Event]:
    """Turn one parsed record into zero or more display events.

    Unknown record types produce no events. Any failure while walking an
    unexpected record shape is logged and treated as "no event".
    """
    if not isinstance(record, dict):
        return []

    try:
        record_type = record.get("type")
        if record_type == "queue-operation":
            if record.get("operation") == "dequeue":
                return [Event(EventKind.SESSION_START, "")]
            return []
        if record_type == "user":
            return _extract_user(record)
        if record_type == "assistant":
            return _extract_assistant(record)
        # file-history-snapshot and anything unrecognised
        return []
    except Exception as e:
        logger.debug(f"Skipping record that failed extraction: {type(e).__name__}: {e}")
        return []
