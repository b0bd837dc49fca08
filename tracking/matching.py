"""
Detection-to-track association.

Greedy matching (default):
- Detections are processed in input order
- Each takes the nearest still-unclaimed track whose center lies within the
  match distance
- Not a global optimum: an earlier detection can claim a track that is
  nearer to a later one, leaving the later detection to start a new track

Optimal matching (opt-in):
- Minimum total center distance assignment (Hungarian algorithm), with
  pairs beyond the match distance rejected
- Changes behavior relative to greedy matching; only used when configured
"""

import logging
from typing import Dict, List, Sequence

import numpy as np
from scipy.optimize import linear_sum_assignment

from .data_models import Detection, Track

logger = logging.getLogger(__name__)

MATCHING_STRATEGIES = ('greedy', 'optimal')


def compute_distance_matrix(
    detections: Sequence[Detection],
    tracks: Sequence[Track]
) -> np.ndarray:
    """Center-to-center distances, shape (num_detections, num_tracks)."""
    distances = np.zeros((len(detections), len(tracks)), dtype=float)
    for i, detection in enumerate(detections):
        for j, track in enumerate(tracks):
            distances[i, j] = detection.box.distance_to(track.box)
    return distances


def match_greedy(
    detections: Sequence[Detection],
    tracks: Sequence[Track],
    max_distance: float
) -> Dict[int, int]:
    """
    First-detection-first-choice nearest neighbour matching.

    Args:
        detections: Detections in arrival order
        tracks: Live tracks in creation order
        max_distance: Pairs at or beyond this center distance never match

    Returns:
        Mapping detection index -> track index
    """
    assignments: Dict[int, int] = {}
    if not detections or not tracks:
        return assignments

    distances = compute_distance_matrix(detections, tracks)
    claimed = set()

    for i in range(len(detections)):
        best_track = -1
        best_distance = max_distance

        # Strict comparison keeps the earliest track on ties
        for j in range(len(tracks)):
            if j in claimed:
                continue
            if distances[i, j] < best_distance:
                best_distance = distances[i, j]
                best_track = j

        if best_track != -1:
            assignments[i] = best_track
            claimed.add(best_track)

    return assignments


def match_optimal(
    detections: Sequence[Detection],
    tracks: Sequence[Track],
    max_distance: float
) -> Dict[int, int]:
    """Minimum-cost assignment over center distances, gated by max_distance."""
    assignments: Dict[int, int] = {}
    if not detections or not tracks:
        return assignments

    distances = compute_distance_matrix(detections, tracks)

    # Gate before solving so out-of-range pairs cannot distort the optimum
    gated = np.where(distances < max_distance, distances, max_distance * 1e3)
    rows, cols = linear_sum_assignment(gated)

    for i, j in zip(rows, cols):
        if distances[i, j] < max_distance:
            assignments[int(i)] = int(j)

    return assignments


def match_detections(
    detections: Sequence[Detection],
    tracks: Sequence[Track],
    max_distance: float,
    strategy: str = 'greedy'
) -> Dict[int, int]:
    """Dispatch to the configured matching strategy."""
    if strategy == 'greedy':
        return match_greedy(detections, tracks, max_distance)
    if strategy == 'optimal':
        return match_optimal(detections, tracks, max_distance)
    raise ValueError(f"Unknown matching strategy: {strategy}")


def unmatched_indices(count: int, assignments: Dict[int, int]) -> List[int]:
    return [i for i in range(count) if i not in assignments]
