"""
Scalar recursive smoothing for noisy per-frame metrics.

Webcam-derived signals jitter from frame to frame. Each metric of each
tracked person is passed through its own one-dimensional Kalman filter:
a constant-state model where only the noise terms are tuned.

Tuning:
- process_noise: how much the true signal is allowed to drift per step
- measurement_noise: how much a single raw reading is trusted
  (lower = faster reaction to sudden changes, higher = smoother but laggier)
"""

import logging
import math
from typing import Optional

logger = logging.getLogger(__name__)


class SignalFilter:
    """
    One-dimensional Kalman filter with a predict/update cycle.

    Usage:
        attention_filter = SignalFilter(process_noise=0.1, measurement_noise=10.0)
        smoothed = attention_filter.filter(raw_attention)
    """

    def __init__(self, process_noise: float, measurement_noise: float):
        if process_noise < 0 or measurement_noise <= 0:
            raise ValueError(
                f"Invalid filter noise: process={process_noise}, measurement={measurement_noise}"
            )
        self.process_noise = float(process_noise)
        self.measurement_noise = float(measurement_noise)

        self.estimate: Optional[float] = None
        self.covariance: Optional[float] = None

    @property
    def initialized(self) -> bool:
        return self.estimate is not None

    def filter(self, measurement: float) -> float:
        """
        Feed one measurement and return the updated estimate.

        Non-finite measurements leave the state untouched. They are only an
        error before the first valid measurement, since there is nothing to
        return yet.
        """
        measurement = float(measurement)

        if not math.isfinite(measurement):
            if not self.initialized:
                raise ValueError("Cannot initialize filter from a non-finite measurement")
            logger.debug(f"Ignoring non-finite measurement {measurement}")
            return self.estimate

        if not self.initialized:
            self.estimate = measurement
            self.covariance = self.measurement_noise
            return self.estimate

        # Predict: state is assumed constant, uncertainty grows
        predicted_estimate = self.estimate
        predicted_covariance = self.covariance + self.process_noise

        # Correct
        gain = predicted_covariance / (predicted_covariance + self.measurement_noise)
        self.estimate = predicted_estimate + gain * (measurement - predicted_estimate)
        self.covariance = predicted_covariance - gain * predicted_covariance

        return self.estimate

    def reset(self):
        """Return to the uninitialized state."""
        self.estimate = None
        self.covariance = None

    def __repr__(self) -> str:
        return (
            f"SignalFilter(process_noise={self.process_noise}, "
            f"measurement_noise={self.measurement_noise}, estimate={self.estimate})"
        )
