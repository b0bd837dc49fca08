"""
Multi-person track management.

Turns an unordered list of per-frame face detections into persistent,
smoothed per-person tracks and emits one snapshot per live person.

Per-frame pass:
1. Drop structurally invalid detections (no state is touched)
2. Age every track (missing counter + 1; reset below when matched)
3. Match detections to tracks (greedy nearest center by default)
4. Update matched tracks: history, slow baseline, fast box/metric smoothing
5. Create tracks for unmatched detections with fresh, never reused ids
6. Retire tracks missing for more than the tolerance
7. Snapshot survivors with bad-sign flag and body language label

Track lifecycle:
    NEW -> TRACKED -> (missing 1..K frames, still TRACKED) -> RETIRED

Engineering approach:
- All state (live tracks, id counter) belongs to one manager instance, so
  independent sessions can run side by side
- One pass at a time; overlapping calls are rejected
- Baseline smoothing (0.99) is much slower than box/metric smoothing (0.6):
  the baseline follows resting posture, the box follows the current state
"""

import logging
import threading
import time
from collections import deque
from typing import Dict, List, Optional, Sequence

from scoring.cognitive_metrics import CognitiveEstimator, mode_accepts
from .body_language import classify_body_language
from .data_models import (
    Baseline,
    Detection,
    InvalidDetectionError,
    Track,
    TrackSnapshot,
)
from .matching import MATCHING_STRATEGIES, match_detections, unmatched_indices

logger = logging.getLogger(__name__)

BAD_SIGN_STRESS = 75.0
BAD_SIGN_ATTENTION = 35.0


def is_bad_sign(attention: float, stress: float) -> bool:
    return stress > BAD_SIGN_STRESS and attention < BAD_SIGN_ATTENTION


class TrackManager:
    """
    Owns the live track set of one session.

    Usage:
        manager = TrackManager(config)
        snapshots = manager.update(detections, timestamp=time.time())
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize track manager.

        Args:
            config: Configuration dict; the 'tracking' section holds
                    max_missing_frames, match_distance, history_size,
                    baseline_weight, smoothing_weight and matching. The whole
                    dict is handed to each track's CognitiveEstimator.
        """
        self.config = config or {}
        tracking_config = self.config.get('tracking', {})

        self.max_missing_frames = int(tracking_config.get('max_missing_frames', 5))
        self.match_distance = float(tracking_config.get('match_distance', 150.0))
        self.history_size = int(tracking_config.get('history_size', 30))
        self.baseline_weight = float(tracking_config.get('baseline_weight', 0.99))
        self.smoothing_weight = float(tracking_config.get('smoothing_weight', 0.6))
        self.matching = tracking_config.get('matching', 'greedy')

        if self.matching not in MATCHING_STRATEGIES:
            raise ValueError(f"Unknown matching strategy: {self.matching}")
        if self.history_size < 1:
            raise ValueError(f"history_size must be positive: {self.history_size}")

        self.estimator_mode = self.config.get('estimator', {}).get('mode', 'auto')

        self._tracks: List[Track] = []
        self._next_id = 1
        self._frame_count = 0
        self._pass_lock = threading.Lock()

        logger.info(
            f"Track manager initialized: max_missing={self.max_missing_frames}, "
            f"match_distance={self.match_distance}px, history={self.history_size}, "
            f"matching={self.matching}"
        )

    @property
    def tracks(self) -> List[Track]:
        """Live tracks (the list is a copy; tracks themselves are internal)."""
        return list(self._tracks)

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def update(
        self,
        detections: Sequence[Detection],
        timestamp: Optional[float] = None
    ) -> List[TrackSnapshot]:
        """
        Run one full tracking pass for a frame.

        Args:
            detections: Zero or more detections for this frame, in detector order
            timestamp: Frame time in seconds (defaults to wall clock)

        Returns:
            One snapshot per surviving track, in track creation order

        Raises:
            RuntimeError: If called while another pass is still running
        """
        if not self._pass_lock.acquire(blocking=False):
            raise RuntimeError("TrackManager.update called while a previous pass is running")

        try:
            if timestamp is None:
                timestamp = time.time()
            self._frame_count += 1

            valid = self._filter_valid(detections)

            for track in self._tracks:
                track.missing_frames += 1

            assignments = match_detections(
                valid, self._tracks, self.match_distance, self.matching
            )

            for det_idx, track_idx in assignments.items():
                self._update_track(self._tracks[track_idx], valid[det_idx], timestamp)

            for det_idx in unmatched_indices(len(valid), assignments):
                self._create_track(valid[det_idx], timestamp)

            self._prune()

            snapshots = [self._snapshot(track) for track in self._tracks]

            logger.debug(
                f"Frame {self._frame_count}: {len(valid)} detections, "
                f"{len(assignments)} matched, {len(snapshots)} live tracks"
            )

            return snapshots
        finally:
            self._pass_lock.release()

    def snapshots(self) -> List[TrackSnapshot]:
        """Snapshots of the current track set without advancing a frame."""
        with self._pass_lock:
            return [self._snapshot(track) for track in self._tracks]

    def reset(self, reset_ids: bool = False):
        """
        Drop all tracks (end of session).

        Args:
            reset_ids: Also restart identity allocation at 1
        """
        with self._pass_lock:
            logger.info(f"Resetting track manager ({len(self._tracks)} live tracks)")
            self._tracks.clear()
            self._frame_count = 0
            if reset_ids:
                self._next_id = 1

    def _filter_valid(self, detections: Sequence[Detection]) -> List[Detection]:
        valid = []
        for detection in detections:
            try:
                detection.validate()
            except InvalidDetectionError as e:
                logger.warning(f"Dropping invalid detection: {e}")
                continue

            if not mode_accepts(self.estimator_mode, detection):
                logger.warning(
                    f"Dropping detection without signals for estimator mode '{self.estimator_mode}'"
                )
                continue

            valid.append(detection)
        return valid

    def _update_track(self, track: Track, detection: Detection, timestamp: float):
        track.missing_frames = 0

        track.record_position(detection.box, timestamp)
        track.baseline.update(detection.box, self.baseline_weight)

        track.box = track.box.blend(detection.box, self.smoothing_weight)
        estimated = track.estimator.estimate(detection)
        track.metrics = track.metrics.blend(estimated, self.smoothing_weight)

    def _create_track(self, detection: Detection, timestamp: float) -> Track:
        track_id = self._next_id
        self._next_id += 1

        estimator = CognitiveEstimator(self.config)
        track = Track(
            track_id=track_id,
            box=detection.box,
            metrics=estimator.estimate(detection),
            baseline=Baseline(w=detection.box.w, y=detection.box.y),
            estimator=estimator,
            history=deque(maxlen=self.history_size)
        )
        track.record_position(detection.box, timestamp)
        self._tracks.append(track)

        logger.info(f"New track: {track.label} at {detection.box.center}")
        return track

    def _prune(self):
        survivors = []
        for track in self._tracks:
            if track.missing_frames > self.max_missing_frames:
                logger.info(
                    f"Retiring {track.label} after {track.missing_frames} missing frames"
                )
                continue
            survivors.append(track)
        self._tracks = survivors

    def _snapshot(self, track: Track) -> TrackSnapshot:
        metrics = track.metrics
        return TrackSnapshot(
            track_id=track.track_id,
            attention=metrics.attention,
            stress=metrics.stress,
            curiosity=metrics.curiosity,
            bad_sign=is_bad_sign(metrics.attention, metrics.stress),
            body_language=classify_body_language(
                metrics, track.box, track.history, track.baseline
            ),
            box=track.box,
            missing_frames=track.missing_frames
        )


def confirmed(snapshots: Sequence[TrackSnapshot]) -> List[TrackSnapshot]:
    """Snapshots of tracks that matched a detection in their frame."""
    return [s for s in snapshots if s.is_confirmed]
