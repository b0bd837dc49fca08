"""
Meeting session facade.

Ties one TrackManager to the session log and the suggestion engine. Every
session owns its own manager, so several sessions can run at once with
independent identity counters.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from tracking.data_models import Detection, TrackSnapshot
from tracking.track_manager import TrackManager, confirmed
from .session_log import LogRecord, SessionLog
from .suggestions import SuggestionEngine

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    """
    Output of one processed frame.

    Attributes:
        frame_index: 1-based index of the frame within the session
        timestamp: Frame time in seconds
        snapshots: All live tracks after the frame
        log_records: Records logged for confirmed tracks in this frame
        suggestions: Suggestions generated in this frame
    """
    frame_index: int
    timestamp: float
    snapshots: List[TrackSnapshot]
    log_records: List[LogRecord] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict:
        return {
            'frame': self.frame_index,
            'timestamp': self.timestamp,
            'participants': [s.as_dict() for s in self.snapshots],
            'suggestions': list(self.suggestions),
        }


class MeetingMonitor:
    """
    Usage:
        monitor = MeetingMonitor(config)
        result = monitor.process_frame(detections, timestamp)
        ...
        monitor.stop()
    """

    def __init__(self, config: Optional[Dict] = None):
        self.config = config or {}
        session_config = self.config.get('session', {})

        self.tracker = TrackManager(self.config)
        self.log = SessionLog(capacity=session_config.get('log_capacity', 50))
        self.suggestions = SuggestionEngine(
            capacity=session_config.get('suggestion_capacity', 10),
            per_frame=session_config.get('suggestions_per_frame', 4),
            enabled=session_config.get('suggestions_enabled', True)
        )

    def process_frame(
        self,
        detections: Sequence[Detection],
        timestamp: Optional[float] = None,
        when: Optional[datetime] = None
    ) -> FrameResult:
        """
        Track one frame and update the log and suggestions.

        Args:
            detections: Detector output for the frame
            timestamp: Frame time in seconds
            when: Wall-clock time used for log records (defaults to now)
        """
        if timestamp is None:
            timestamp = time.time()

        snapshots = self.tracker.update(detections, timestamp)
        active = confirmed(snapshots)

        records = self.log.record_snapshots(active, when)
        new_suggestions = self.suggestions.update(active)

        return FrameResult(
            frame_index=self.tracker.frame_count,
            timestamp=timestamp,
            snapshots=snapshots,
            log_records=records,
            suggestions=new_suggestions
        )

    def participants(self) -> List[TrackSnapshot]:
        """Current state of every live track, without advancing a frame."""
        return self.tracker.snapshots()

    def record_toxicity(self, transcript: str, labels: Sequence[str]) -> Optional[LogRecord]:
        return self.log.record_toxicity(transcript, labels)

    def stop(self):
        """End of session: drop all tracks, identities keep counting up."""
        self.tracker.reset(reset_ids=False)
        logger.info("Session stopped")
