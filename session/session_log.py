"""
Session log of per-person observations and audio events.

One record is produced per confirmed track per frame (tracks that merely
persisted through absence are not logged). Audio toxicity events supplied
by an external speech classifier are logged alongside, under the
participant name "Audio".

Records keep the flat field order used by exporters:
    Date, Time, Participant, Attention, Stress, Curiosity, BadSign,
    BodyLanguage, ToxicLabels
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, List, Optional, Sequence

from tracking.data_models import TrackSnapshot

logger = logging.getLogger(__name__)

LOG_HEADER = [
    "Date", "Time", "Participant", "Attention", "Stress", "Curiosity",
    "BadSign", "BodyLanguage", "ToxicLabels"
]

AUDIO_PARTICIPANT = "Audio"
LABEL_SEPARATOR = "; "


@dataclass(frozen=True)
class LogRecord:
    """
    Attributes:
        date: Local date (YYYY-MM-DD)
        time: Local time (HH:MM:SS)
        participant: "Person N" or "Audio"
        attention, stress, curiosity: Metrics rounded to 1 decimal
        bad_sign: "Yes" / "No"
        body_language: Body language label ("N/A" for audio events)
        toxic_labels: Toxicity labels of an audio event
    """
    date: str
    time: str
    participant: str
    attention: float
    stress: float
    curiosity: float
    bad_sign: str
    body_language: str
    toxic_labels: List[str] = field(default_factory=list)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: TrackSnapshot,
        when: Optional[datetime] = None
    ) -> 'LogRecord':
        when = when or datetime.now()
        return cls(
            date=when.strftime('%Y-%m-%d'),
            time=when.strftime('%H:%M:%S'),
            participant=snapshot.label,
            attention=round(snapshot.attention, 1),
            stress=round(snapshot.stress, 1),
            curiosity=round(snapshot.curiosity, 1),
            bad_sign='Yes' if snapshot.bad_sign else 'No',
            body_language=snapshot.body_language
        )

    def as_row(self) -> List[str]:
        return [
            self.date,
            self.time,
            self.participant,
            f"{self.attention:.1f}",
            f"{self.stress:.1f}",
            f"{self.curiosity:.1f}",
            self.bad_sign,
            self.body_language,
            LABEL_SEPARATOR.join(self.toxic_labels),
        ]

    @classmethod
    def from_row(cls, row: Sequence[str]) -> 'LogRecord':
        if len(row) != len(LOG_HEADER):
            raise ValueError(f"Expected {len(LOG_HEADER)} fields, got {len(row)}")
        date, time_, participant, attention, stress, curiosity, bad_sign, body, labels = row
        return cls(
            date=date,
            time=time_,
            participant=participant,
            attention=float(attention),
            stress=float(stress),
            curiosity=float(curiosity),
            bad_sign=bad_sign,
            body_language=body,
            toxic_labels=[l for l in labels.split(LABEL_SEPARATOR) if l]
        )


class SessionLog:
    """
    Rolling buffer of the most recent log records.

    Usage:
        log = SessionLog(capacity=50)
        log.record_snapshots(confirmed_snapshots)
        rows = [r.as_row() for r in log.records]
    """

    def __init__(self, capacity: int = 50):
        if capacity < 1:
            raise ValueError(f"Log capacity must be positive: {capacity}")
        self.capacity = capacity
        self._records: Deque[LogRecord] = deque(maxlen=capacity)

    @property
    def records(self) -> List[LogRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def record_snapshots(
        self,
        snapshots: Sequence[TrackSnapshot],
        when: Optional[datetime] = None
    ) -> List[LogRecord]:
        """Log confirmed snapshots; unconfirmed ones are skipped."""
        when = when or datetime.now()
        new_records = [
            LogRecord.from_snapshot(s, when)
            for s in snapshots
            if s.is_confirmed
        ]
        self._records.extend(new_records)
        return new_records

    def record_toxicity(
        self,
        transcript: str,
        labels: Sequence[str],
        when: Optional[datetime] = None
    ) -> Optional[LogRecord]:
        """
        Log an audio toxicity event classified upstream.

        Returns:
            The new record, or None when no label matched
        """
        if not labels:
            return None

        when = when or datetime.now()
        record = LogRecord(
            date=when.strftime('%Y-%m-%d'),
            time=when.strftime('%H:%M:%S'),
            participant=AUDIO_PARTICIPANT,
            attention=0.0,
            stress=0.0,
            curiosity=0.0,
            bad_sign='Yes',
            body_language='N/A',
            toxic_labels=list(labels)
        )
        self._records.append(record)
        logger.warning(f"Toxic speech detected ({', '.join(labels)}): {transcript!r}")
        return record

    def clear(self):
        self._records.clear()
