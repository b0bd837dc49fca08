"""
Core data models for multi-person tracking.
"""

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple

import numpy as np

from scoring.cognitive_metrics import (
    BiometricSignals,
    CognitiveEstimator,
    CognitiveMetrics,
    ExpressionConfidences,
)

DEFAULT_HISTORY_SIZE = 30


class InvalidDetectionError(ValueError):
    """Detection is structurally invalid and must not reach a track."""


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned face box in frame pixel coordinates (top-left origin)."""
    x: float
    y: float
    w: float
    h: float

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> 'BoundingBox':
        return cls(
            x=float(data['x']),
            y=float(data['y']),
            w=float(data['w'] if 'w' in data else data['width']),
            h=float(data['h'] if 'h' in data else data['height'])
        )

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.w / 2.0, self.y + self.h / 2.0)

    def distance_to(self, other: 'BoundingBox') -> float:
        """Euclidean distance between box centers."""
        (x1, y1), (x2, y2) = self.center, other.center
        return float(np.hypot(x2 - x1, y2 - y1))

    def blend(self, other: 'BoundingBox', weight: float) -> 'BoundingBox':
        """Exponential smoothing: weight * self + (1 - weight) * other."""
        return BoundingBox(
            x=self.x * weight + other.x * (1.0 - weight),
            y=self.y * weight + other.y * (1.0 - weight),
            w=self.w * weight + other.w * (1.0 - weight),
            h=self.h * weight + other.h * (1.0 - weight)
        )

    def validation_errors(self) -> List[str]:
        errors = []
        values = (self.x, self.y, self.w, self.h)
        if not all(math.isfinite(v) for v in values):
            errors.append(f"box has non-finite coordinates: {values}")
        elif self.w <= 0 or self.h <= 0:
            errors.append(f"box dimensions must be positive: w={self.w}, h={self.h}")
        return errors

    def as_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y, 'w': self.w, 'h': self.h}


@dataclass
class Detection:
    """
    One frame's detector output for one face, before identity assignment.

    At least one of expressions, biometrics or metrics must be present.

    Attributes:
        box: Face bounding box
        expressions: Expression confidences (expression mode)
        biometrics: Head pose / eye signals (biometric mode)
        metrics: Precomputed raw attention/stress/curiosity triple
    """
    box: BoundingBox
    expressions: Optional[ExpressionConfidences] = None
    biometrics: Optional[BiometricSignals] = None
    metrics: Optional[CognitiveMetrics] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'Detection':
        expressions = data.get('expressions')
        biometrics = data.get('biometrics')
        metrics = data.get('metrics')
        return cls(
            box=BoundingBox.from_dict(data['box']),
            expressions=ExpressionConfidences.from_dict(expressions) if expressions is not None else None,
            biometrics=BiometricSignals.from_dict(biometrics) if biometrics is not None else None,
            metrics=CognitiveMetrics(
                attention=float(metrics['attention']),
                stress=float(metrics['stress']),
                curiosity=float(metrics['curiosity'])
            ) if metrics is not None else None
        )

    @property
    def center(self) -> Tuple[float, float]:
        return self.box.center

    def validate(self):
        """
        Raises:
            InvalidDetectionError: If any field is outside its documented range
        """
        errors = self.box.validation_errors()

        if self.expressions is None and self.biometrics is None and self.metrics is None:
            errors.append("detection carries no expression, biometric or metric signals")
        if self.expressions is not None:
            errors.extend(self.expressions.validation_errors())
        if self.biometrics is not None:
            errors.extend(self.biometrics.validation_errors())
        if self.metrics is not None:
            errors.extend(self.metrics.validation_errors())

        if errors:
            raise InvalidDetectionError("; ".join(errors))


@dataclass(frozen=True)
class HistoryEntry:
    """Detection center and size at one point in time."""
    x: float
    y: float
    w: float
    h: float
    timestamp: float


@dataclass
class Baseline:
    """
    Slow-moving resting face width and top position.

    Used to detect posture change relative to the person's usual pose
    (leaning forward, slouching).
    """
    w: float
    y: float

    def update(self, box: BoundingBox, weight: float):
        self.w = self.w * weight + box.w * (1.0 - weight)
        self.y = self.y * weight + box.y * (1.0 - weight)


@dataclass
class Track:
    """
    Persistent record of one inferred person.

    Owned by TrackManager. The estimator lives and dies with the track.
    """
    track_id: int
    box: BoundingBox
    metrics: CognitiveMetrics
    baseline: Baseline
    estimator: CognitiveEstimator = field(repr=False)
    history: Deque[HistoryEntry] = field(
        default_factory=lambda: deque(maxlen=DEFAULT_HISTORY_SIZE)
    )
    missing_frames: int = 0

    @property
    def label(self) -> str:
        return f"Person {self.track_id}"

    def record_position(self, box: BoundingBox, timestamp: float):
        """Append detection center and size; oldest entry is evicted at capacity."""
        cx, cy = box.center
        self.history.append(HistoryEntry(x=cx, y=cy, w=box.w, h=box.h, timestamp=timestamp))


@dataclass(frozen=True)
class TrackSnapshot:
    """Read-only point-in-time view of a track emitted to consumers."""
    track_id: int
    attention: float
    stress: float
    curiosity: float
    bad_sign: bool
    body_language: str
    box: BoundingBox
    missing_frames: int = 0

    @property
    def label(self) -> str:
        return f"Person {self.track_id}"

    @property
    def is_confirmed(self) -> bool:
        """Matched a detection in the frame that produced this snapshot."""
        return self.missing_frames == 0

    def as_dict(self) -> Dict:
        return {
            'id': self.track_id,
            'participant': self.label,
            'attention': self.attention,
            'stress': self.stress,
            'curiosity': self.curiosity,
            'bad_sign': self.bad_sign,
            'body_language': self.body_language,
            'box': self.box.as_dict(),
            'missing_frames': self.missing_frames,
        }
