"""
Body language inference from short-term face motion.

Rationale:
- Face size relative to a resting baseline indicates leaning in or back
- Vertical drop of the face with low attention indicates slouching
- Repeated direction reversals indicate nodding (vertical) or head shaking
  (horizontal)
- Large erratic movement with stress indicates fidgeting; stillness with
  high stress is read as a closed, defensive posture

Engineering approach:
- Stateless rule list evaluated every frame per track
- Rules are checked in precedence order; the first match wins
- Thresholds are fixed constants
"""

from enum import Enum
from typing import List, Sequence, Tuple

from scoring.cognitive_metrics import CognitiveMetrics
from .data_models import Baseline, BoundingBox, HistoryEntry

MIN_HISTORY = 3
MOTION_WINDOW = 5
MIN_REVERSAL_WINDOW = 4

FIDGET_MOVE = 15.0
FIDGET_STRESS = 60.0
LEAN_WIDTH_RATIO = 1.2
LEAN_ATTENTION = 50.0
SLOUCH_DROP_RATIO = 0.3
SLOUCH_ATTENTION = 40.0
NOD_REVERSALS = 2
NOD_ATTENTION = 60.0
SHAKE_REVERSALS = 2
SHAKE_STRESS = 50.0
ARMS_CROSSED_STRESS = 75.0
ARMS_CROSSED_MOVE = 2.0
ENGAGED_ATTENTION = 80.0


class BodyLanguage(str, Enum):
    """Body language labels reported per person."""
    FIDGETING = "Fidgeting"
    LEANING_FORWARD = "Leaning Forward"
    SLOUCHING = "Slouching"
    NODDING = "Nodding"
    HEAD_SHAKING = "Head Shaking"
    ARMS_CROSSED = "Arms Crossed"
    ENGAGED = "Engaged"
    LISTENING = "Listening"


def compute_average_movement(recent: Sequence[HistoryEntry]) -> float:
    """
    Summed absolute x and y step displacement over the window.

    Normalized by the number of entries in the window (not the number of
    steps), which keeps the fidgeting/stillness thresholds calibrated.
    """
    if not recent:
        return 0.0

    move_x = 0.0
    move_y = 0.0
    for prev, curr in zip(recent, recent[1:]):
        move_x += abs(curr.x - prev.x)
        move_y += abs(curr.y - prev.y)

    return (move_x + move_y) / len(recent)


def _is_reversal(d1: float, d2: float) -> bool:
    return (d1 > 0 and d2 < 0) or (d1 < 0 and d2 > 0)


def count_direction_reversals(recent: Sequence[HistoryEntry]) -> Tuple[int, int]:
    """
    Count local direction reversals across consecutive triples.

    Returns:
        (vertical_reversals, horizontal_reversals); both 0 when fewer than
        4 entries are available
    """
    vertical = 0
    horizontal = 0

    if len(recent) < MIN_REVERSAL_WINDOW:
        return vertical, horizontal

    for prev, curr, nxt in zip(recent, recent[1:], recent[2:]):
        if _is_reversal(curr.y - prev.y, nxt.y - curr.y):
            vertical += 1
        if _is_reversal(curr.x - prev.x, nxt.x - curr.x):
            horizontal += 1

    return vertical, horizontal


def classify_body_language(
    metrics: CognitiveMetrics,
    box: BoundingBox,
    history: Sequence[HistoryEntry],
    baseline: Baseline
) -> str:
    """
    Infer a body language label for one track.

    Args:
        metrics: Current smoothed metrics of the track
        box: Current smoothed bounding box
        history: Chronological history of detection centers and sizes
        baseline: Resting face width / top position

    Returns:
        One of the BodyLanguage values
    """
    if len(history) < MIN_HISTORY:
        return BodyLanguage.LISTENING.value

    recent: List[HistoryEntry] = list(history)[-MOTION_WINDOW:]
    avg_move = compute_average_movement(recent)

    if avg_move > FIDGET_MOVE and metrics.stress > FIDGET_STRESS:
        return BodyLanguage.FIDGETING.value

    if box.w > baseline.w * LEAN_WIDTH_RATIO and metrics.attention > LEAN_ATTENTION:
        return BodyLanguage.LEANING_FORWARD.value

    if box.y > baseline.y + baseline.w * SLOUCH_DROP_RATIO and metrics.attention < SLOUCH_ATTENTION:
        return BodyLanguage.SLOUCHING.value

    vertical_reversals, horizontal_reversals = count_direction_reversals(recent)

    if vertical_reversals >= NOD_REVERSALS and metrics.attention > NOD_ATTENTION:
        return BodyLanguage.NODDING.value

    if horizontal_reversals >= SHAKE_REVERSALS and metrics.stress > SHAKE_STRESS:
        return BodyLanguage.HEAD_SHAKING.value

    if metrics.stress > ARMS_CROSSED_STRESS and avg_move < ARMS_CROSSED_MOVE:
        return BodyLanguage.ARMS_CROSSED.value

    if metrics.attention > ENGAGED_ATTENTION:
        return BodyLanguage.ENGAGED.value

    return BodyLanguage.LISTENING.value
