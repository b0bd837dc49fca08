"""
Cognitive metric estimation from facial signals.

Maps one frame of detector output for one face to three bounded scores:
1. Attention (0-100): is the person oriented toward the screen and alert
2. Stress (0-100): negative-affect and physiological arousal markers
3. Curiosity (0-100): surprise/positive affect combined with engagement

Two input modes are supported, depending on what the upstream detector
provides:
- Expression mode (coarse): per-expression confidences only
- Biometric mode (precise): head pose, eye-aspect-ratio, blink rate and
  expression confidences

Engineering approach:
- Pure functions compute the raw, clamped scores
- CognitiveEstimator owns one SignalFilter per metric for one person
- Reported values are clamped to [0, 100] and rounded to 2 decimals
"""

import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from .signal_filter import SignalFilter

logger = logging.getLogger(__name__)

SCORE_MIN = 0.0
SCORE_MAX = 100.0

ESTIMATOR_MODES = ('auto', 'expression', 'biometric')

# (process_noise, measurement_noise) per metric
DEFAULT_FILTER_TUNING = {
    'attention': (0.1, 10.0),
    'stress': (0.1, 5.0),
    'curiosity': (0.01, 1.0),
}

EXPRESSION_NAMES = (
    'neutral', 'happy', 'sad', 'angry', 'fearful', 'disgusted', 'surprised'
)

# Eyes below this aspect ratio are treated as closed or looking down
EAR_CLOSED_THRESHOLD = 0.15

# Looking straight at a screen usually means a slight downward head tilt
NEUTRAL_PITCH_DEG = 5.0


def clamp_score(value: float) -> float:
    """Clamp to [0, 100]; NaN maps to 0."""
    value = float(value)
    if math.isnan(value):
        return SCORE_MIN
    return max(SCORE_MIN, min(SCORE_MAX, value))


@dataclass
class ExpressionConfidences:
    """
    Per-expression classifier confidences for one face.

    All values are expected in [0, 1]. Missing expressions default to 0.
    """
    neutral: float = 0.0
    happy: float = 0.0
    sad: float = 0.0
    angry: float = 0.0
    fearful: float = 0.0
    disgusted: float = 0.0
    surprised: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> 'ExpressionConfidences':
        return cls(**{
            name: float(data.get(name, 0.0))
            for name in EXPRESSION_NAMES
        })

    def validation_errors(self) -> List[str]:
        errors = []
        for name in EXPRESSION_NAMES:
            value = getattr(self, name)
            if not math.isfinite(value) or not 0.0 <= value <= 1.0:
                errors.append(f"expression '{name}' out of range [0, 1]: {value}")
        return errors


@dataclass
class BiometricSignals:
    """
    Geometric and physiological signals for one face.

    Attributes:
        yaw: Head rotation left/right (degrees)
        pitch: Head tilt up/down (degrees, negative = leaning in)
        roll: Head tilt side to side (degrees)
        ear: Eye aspect ratio (0.0 closed, ~0.3 open)
        blink_rate: Blinks per minute
        expressions: Expression confidences
    """
    yaw: float
    pitch: float
    roll: float = 0.0
    ear: float = 0.3
    blink_rate: float = 15.0
    expressions: ExpressionConfidences = field(default_factory=ExpressionConfidences)

    @classmethod
    def from_dict(cls, data: Dict) -> 'BiometricSignals':
        return cls(
            yaw=float(data['yaw']),
            pitch=float(data['pitch']),
            roll=float(data.get('roll', 0.0)),
            ear=float(data.get('ear', 0.3)),
            blink_rate=float(data.get('blink_rate', data.get('blinkRate', 15.0))),
            expressions=ExpressionConfidences.from_dict(
                data.get('expressions', data.get('expression_confidence', {}))
            )
        )

    def validation_errors(self) -> List[str]:
        errors = []
        for name in ('yaw', 'pitch', 'roll'):
            value = getattr(self, name)
            if not math.isfinite(value) or abs(value) > 180.0:
                errors.append(f"head {name} out of range [-180, 180]: {value}")
        if not math.isfinite(self.ear) or self.ear < 0.0:
            errors.append(f"eye aspect ratio must be non-negative: {self.ear}")
        if not math.isfinite(self.blink_rate) or self.blink_rate < 0.0:
            errors.append(f"blink rate must be non-negative: {self.blink_rate}")
        errors.extend(self.expressions.validation_errors())
        return errors


@dataclass
class CognitiveMetrics:
    """Attention, stress and curiosity scores, each in [0, 100]."""
    attention: float
    stress: float
    curiosity: float

    def clamped(self) -> 'CognitiveMetrics':
        return CognitiveMetrics(
            attention=clamp_score(self.attention),
            stress=clamp_score(self.stress),
            curiosity=clamp_score(self.curiosity)
        )

    def rounded(self, ndigits: int = 2) -> 'CognitiveMetrics':
        return CognitiveMetrics(
            attention=round(self.attention, ndigits),
            stress=round(self.stress, ndigits),
            curiosity=round(self.curiosity, ndigits)
        )

    def blend(self, other: 'CognitiveMetrics', weight: float) -> 'CognitiveMetrics':
        """Exponential smoothing: weight * self + (1 - weight) * other."""
        return CognitiveMetrics(
            attention=self.attention * weight + other.attention * (1.0 - weight),
            stress=self.stress * weight + other.stress * (1.0 - weight),
            curiosity=self.curiosity * weight + other.curiosity * (1.0 - weight)
        ).clamped()

    def validation_errors(self) -> List[str]:
        errors = []
        for name, value in asdict(self).items():
            if not math.isfinite(value) or not SCORE_MIN <= value <= SCORE_MAX:
                errors.append(f"metric '{name}' out of range [0, 100]: {value}")
        return errors

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


# ============================================================================
# Expression mode
# ============================================================================

def compute_expression_metrics(expressions: ExpressionConfidences) -> CognitiveMetrics:
    """
    Coarse metrics from expression confidences alone.

    Formula:
        attention = 100 * (0.8 neutral + 0.5 surprised + 0.2 happy)
                    - 100 * (0.3 sad + 0.3 fearful + 0.2 disgusted)
        stress    = 100 * (angry + fearful + disgusted + 0.5 sad)
        curiosity = 100 * (surprised + happy)
    """
    e = expressions

    attention = 100.0 * (0.8 * e.neutral + 0.5 * e.surprised + 0.2 * e.happy)
    attention -= 100.0 * (0.3 * e.sad + 0.3 * e.fearful + 0.2 * e.disgusted)

    stress = 100.0 * (e.angry + e.fearful + e.disgusted + 0.5 * e.sad)
    curiosity = 100.0 * (e.surprised + e.happy)

    return CognitiveMetrics(attention, stress, curiosity).clamped()


# ============================================================================
# Biometric mode
# ============================================================================

def compute_biometric_attention(signals: BiometricSignals) -> float:
    """
    Geometric attention: penalty grows super-linearly with head rotation.

    Yaw ~ 0 and pitch ~ 5 degrees (natural downward screen tilt) score 100.
    Nearly closed eyes cost a flat 40 points.
    """
    yaw_penalty = abs(signals.yaw) ** 1.5
    pitch_penalty = abs(signals.pitch - NEUTRAL_PITCH_DEG) ** 1.5

    attention = 100.0 - (yaw_penalty + pitch_penalty)
    if signals.ear < EAR_CLOSED_THRESHOLD:
        attention -= 40.0

    return clamp_score(attention)


def compute_biometric_stress(signals: BiometricSignals) -> float:
    """
    Physiological stress.

    Normal blink rate is 12-20/min. Above 25 suggests nervousness, below 5
    a fixed stare (cognitive load). Angry/fearful expressions add to the
    baseline of 30, happiness mitigates.
    """
    stress = 30.0

    if signals.blink_rate > 25:
        stress += 20.0
    elif signals.blink_rate < 5:
        stress += 10.0

    expr = signals.expressions
    stress += expr.angry * 40.0
    stress += expr.fearful * 50.0
    stress -= expr.happy * 20.0

    return clamp_score(stress)


def compute_biometric_curiosity(signals: BiometricSignals, attention: float) -> float:
    """
    Curiosity from engagement, leaning in (negative pitch) and positive surprise.

    Args:
        signals: Biometric signals for the frame
        attention: Attention score to condition on (the filtered value when
                   called from CognitiveEstimator)
    """
    curiosity = 50.0

    if attention > 70:
        curiosity += 10.0
    if -20.0 < signals.pitch < -5.0:
        curiosity += 15.0

    expr = signals.expressions
    curiosity += expr.surprised * 40.0
    curiosity += expr.happy * 10.0

    return clamp_score(curiosity)


def compute_biometric_metrics(signals: BiometricSignals) -> CognitiveMetrics:
    """Raw (unfiltered) biometric metrics."""
    attention = compute_biometric_attention(signals)
    return CognitiveMetrics(
        attention=attention,
        stress=compute_biometric_stress(signals),
        curiosity=compute_biometric_curiosity(signals, attention)
    )


# ============================================================================
# Per-person estimator
# ============================================================================

def mode_accepts(mode: str, detection) -> bool:
    """Whether an estimator in `mode` can score this detection."""
    biometrics = getattr(detection, 'biometrics', None)
    expressions = getattr(detection, 'expressions', None)
    raw_metrics = getattr(detection, 'metrics', None)

    if mode == 'biometric':
        return biometrics is not None
    if mode == 'expression':
        return expressions is not None or biometrics is not None
    return any(x is not None for x in (biometrics, expressions, raw_metrics))


class CognitiveEstimator:
    """
    Stateful estimator for one tracked person.

    Owns three independent SignalFilters (attention, stress, curiosity).
    One instance must exist per track and be discarded with it; filters are
    never shared between people or metrics.

    Usage:
        estimator = CognitiveEstimator(config)
        metrics = estimator.estimate(detection)
    """

    def __init__(self, config: Optional[Dict] = None):
        config = config or {}
        estimator_config = config.get('estimator', {})

        self.mode = estimator_config.get('mode', 'auto')
        if self.mode not in ESTIMATOR_MODES:
            raise ValueError(f"Unknown estimator mode: {self.mode}")

        filter_config = estimator_config.get('filters', {})
        self.filters: Dict[str, SignalFilter] = {}
        for metric, (process_noise, measurement_noise) in DEFAULT_FILTER_TUNING.items():
            tuning = filter_config.get(metric, {})
            self.filters[metric] = SignalFilter(
                process_noise=tuning.get('process_noise', process_noise),
                measurement_noise=tuning.get('measurement_noise', measurement_noise)
            )

    def _filtered(self, metric: str, raw_value: float) -> float:
        return clamp_score(self.filters[metric].filter(clamp_score(raw_value)))

    def update_from_expressions(self, expressions: ExpressionConfidences) -> CognitiveMetrics:
        raw = compute_expression_metrics(expressions)
        return CognitiveMetrics(
            attention=self._filtered('attention', raw.attention),
            stress=self._filtered('stress', raw.stress),
            curiosity=self._filtered('curiosity', raw.curiosity)
        ).rounded()

    def update_from_biometrics(self, signals: BiometricSignals) -> CognitiveMetrics:
        attention = self._filtered('attention', compute_biometric_attention(signals))
        stress = self._filtered('stress', compute_biometric_stress(signals))
        curiosity = self._filtered(
            'curiosity', compute_biometric_curiosity(signals, attention)
        )
        return CognitiveMetrics(attention, stress, curiosity).rounded()

    def update_from_metrics(self, raw: CognitiveMetrics) -> CognitiveMetrics:
        return CognitiveMetrics(
            attention=self._filtered('attention', raw.attention),
            stress=self._filtered('stress', raw.stress),
            curiosity=self._filtered('curiosity', raw.curiosity)
        ).rounded()

    def estimate(self, detection) -> CognitiveMetrics:
        """
        Filtered metrics for one detection of this person.

        Args:
            detection: Detection carrying biometrics, expressions and/or a
                       precomputed raw metrics triple

        Returns:
            CognitiveMetrics clamped to [0, 100], rounded to 2 decimals

        Raises:
            ValueError: If the detection carries no input usable in this mode
        """
        biometrics = getattr(detection, 'biometrics', None)
        expressions = getattr(detection, 'expressions', None)
        raw_metrics = getattr(detection, 'metrics', None)

        if self.mode == 'biometric':
            if biometrics is None:
                raise ValueError("Biometric estimator mode requires biometric signals")
            return self.update_from_biometrics(biometrics)

        if self.mode == 'expression':
            if expressions is None and biometrics is not None:
                expressions = biometrics.expressions
            if expressions is None:
                raise ValueError("Expression estimator mode requires expression confidences")
            return self.update_from_expressions(expressions)

        if biometrics is not None:
            return self.update_from_biometrics(biometrics)
        if expressions is not None:
            return self.update_from_expressions(expressions)
        if raw_metrics is not None:
            return self.update_from_metrics(raw_metrics)

        raise ValueError("Detection carries no expression, biometric or metric signals")

    def reset(self):
        for signal_filter in self.filters.values():
            signal_filter.reset()
