"""
Cognitive scoring module.

This package turns per-frame facial signals into bounded, temporally stable
scores:
1. Attention (0-100): orientation toward the screen and alertness
2. Stress (0-100): negative affect and physiological arousal
3. Curiosity (0-100): surprise and positive affect under engagement

All scores are:
- Bounded (clamped to 0-100 before and after filtering)
- Smoothed (one scalar Kalman filter per metric per person)
- Heuristic (not psychologically validated)
"""

from .signal_filter import SignalFilter
from .cognitive_metrics import (
    BiometricSignals,
    CognitiveEstimator,
    CognitiveMetrics,
    ExpressionConfidences,
    clamp_score,
    compute_biometric_metrics,
    compute_expression_metrics,
    mode_accepts,
)

__all__ = [
    'SignalFilter',
    'BiometricSignals',
    'CognitiveEstimator',
    'CognitiveMetrics',
    'ExpressionConfidences',
    'clamp_score',
    'compute_biometric_metrics',
    'compute_expression_metrics',
    'mode_accepts',
]
