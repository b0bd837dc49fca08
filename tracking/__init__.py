"""
Multi-person face tracking.

This package maintains stable person identities across frames:
1. Detection validation (structurally invalid input is dropped)
2. Detection-to-track matching (greedy nearest center)
3. Per-track smoothing of box, metrics and resting baseline
4. Body language inference from short motion history

Engineering approach:
- Explicit per-session state (no module-level counters)
- Consumers only ever see immutable TrackSnapshot objects
"""

from .data_models import (
    Baseline,
    BoundingBox,
    Detection,
    HistoryEntry,
    InvalidDetectionError,
    Track,
    TrackSnapshot,
)
from .body_language import BodyLanguage, classify_body_language
from .matching import match_detections, match_greedy, match_optimal
from .track_manager import TrackManager, confirmed, is_bad_sign

__all__ = [
    'Baseline',
    'BoundingBox',
    'Detection',
    'HistoryEntry',
    'InvalidDetectionError',
    'Track',
    'TrackSnapshot',
    'BodyLanguage',
    'classify_body_language',
    'match_detections',
    'match_greedy',
    'match_optimal',
    'TrackManager',
    'confirmed',
    'is_bad_sign',
]
