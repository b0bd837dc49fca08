"""
Meeting session layer.

Wraps the tracking core for a live session:
1. MeetingMonitor: one tracker plus session log and suggestions
2. FrameDispatcher: ordered, single-worker processing of incoming frames
3. SessionLog: bounded log of confirmed observations and audio events
4. SuggestionEngine: facilitator hints from per-person state
"""

from .session_log import LOG_HEADER, LogRecord, SessionLog
from .suggestions import SuggestionEngine, suggestions_for
from .monitor import FrameResult, MeetingMonitor
from .dispatcher import FrameDispatcher

__all__ = [
    'LOG_HEADER',
    'LogRecord',
    'SessionLog',
    'SuggestionEngine',
    'suggestions_for',
    'FrameResult',
    'MeetingMonitor',
    'FrameDispatcher',
]
