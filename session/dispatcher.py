"""
Ordered frame dispatch onto a single tracking worker.

Detector output may arrive from another thread at any cadence. Tracking
passes mutate shared track state, so they run on one worker thread, one at
a time, strictly in arrival order.

Overlap policies:
- 'queue': every submitted frame is processed, in order
- 'drop': only the newest pending frame is kept; stale pending frames are
  discarded (and counted) when a newer one arrives
"""

import logging
import queue
import threading
import time
from typing import Callable, List, Optional, Sequence

from tracking.data_models import Detection
from .monitor import FrameResult, MeetingMonitor

logger = logging.getLogger(__name__)

OVERLAP_POLICIES = ('queue', 'drop')

_STOP = object()


class FrameDispatcher:
    """
    Usage:
        dispatcher = FrameDispatcher(monitor, policy='drop', on_result=render)
        dispatcher.start()
        dispatcher.submit(detections)
        ...
        dispatcher.close()
    """

    def __init__(
        self,
        monitor: MeetingMonitor,
        policy: str = 'queue',
        on_result: Optional[Callable[[FrameResult], None]] = None
    ):
        if policy not in OVERLAP_POLICIES:
            raise ValueError(f"Unknown overlap policy: {policy}")

        self.monitor = monitor
        self.policy = policy
        self.on_result = on_result

        self.processed_frames = 0
        self.dropped_frames = 0
        self.errors: List[BaseException] = []

        self._queue: queue.Queue = queue.Queue(maxsize=1 if policy == 'drop' else 0)
        self._submit_lock = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(
            target=self._run, name='frame-dispatcher', daemon=True
        )

        logger.info(f"Frame dispatcher initialized: policy={policy}")

    def start(self):
        if self._closed:
            raise RuntimeError("Cannot start a closed dispatcher")
        self._thread.start()

    def submit(
        self,
        detections: Sequence[Detection],
        timestamp: Optional[float] = None
    ):
        """
        Enqueue one frame's detections.

        Args:
            detections: Detector output for the frame
            timestamp: Frame time (defaults to arrival time)

        Raises:
            RuntimeError: If the dispatcher has been closed
        """
        if timestamp is None:
            timestamp = time.time()
        frame = (list(detections), timestamp)

        with self._submit_lock:
            if self._closed:
                raise RuntimeError("Cannot submit frames to a closed dispatcher")

            if self.policy == 'drop':
                try:
                    self._queue.get_nowait()
                    self._queue.task_done()
                    self.dropped_frames += 1
                    logger.warning("Dropping stale frame (tracker still busy)")
                except queue.Empty:
                    pass
                self._queue.put_nowait(frame)
            else:
                self._queue.put(frame)

    def join(self):
        """Block until every accepted frame has been processed."""
        self._queue.join()

    def close(self, wait: bool = True):
        """
        Stop accepting frames and shut the worker down.

        Pending frames are processed first when the worker is running;
        a dispatcher closed before start() discards them.

        Raises:
            RuntimeError: If any frame failed during processing
        """
        with self._submit_lock:
            if self._closed:
                return
            self._closed = True

        if self._thread.is_alive():
            self._queue.put(_STOP)
            if wait:
                self._thread.join()
        else:
            # Never started: nothing drains the queue
            pending = self._queue.qsize()
            if pending:
                logger.warning(f"Dispatcher closed before start, discarding {pending} frame(s)")

        if self.errors:
            raise RuntimeError(
                f"{len(self.errors)} frame(s) failed during processing"
            ) from self.errors[0]

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return

                detections, timestamp = item
                result = self.monitor.process_frame(detections, timestamp)
                self.processed_frames += 1

                if self.on_result is not None:
                    self.on_result(result)
            except Exception as e:
                logger.exception(f"Frame processing failed: {e}")
                self.errors.append(e)
            finally:
                self._queue.task_done()
