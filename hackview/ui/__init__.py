"""UI components for hackview."""

from .widgets import (
    HeaderPanel,
    SessionLog,
    SessionPanel,
    build_event_text,
    build_header_text,
    build_label_text,
)
from .styles import APP_CSS

__all__ = [
    "HeaderPanel",
    "SessionLog",
    "SessionPanel",
    "build_event_text",
    "build_header_text",
    "build_label_text",
    "APP_CSS",
]
