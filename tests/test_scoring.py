"""
Unit tests for the scoring module.

Tests cover:
- Signal filter recursion and stability
- Expression-based metrics
- Biometric metrics
- Per-person estimator (filtering, mode selection, isolation)
"""

import math
import random

import pytest # pyright: ignore[reportMissingImports]
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from scoring.signal_filter import SignalFilter
from scoring.cognitive_metrics import (
    BiometricSignals,
    CognitiveEstimator,
    CognitiveMetrics,
    ExpressionConfidences,
    clamp_score,
    compute_biometric_attention,
    compute_biometric_curiosity,
    compute_biometric_metrics,
    compute_biometric_stress,
    compute_expression_metrics,
)
from tracking.data_models import BoundingBox, Detection


def make_detection(expressions=None, biometrics=None, metrics=None) -> Detection:
    return Detection(
        box=BoundingBox(100, 100, 50, 50),
        expressions=expressions,
        biometrics=biometrics,
        metrics=metrics
    )


class TestSignalFilter:
    """Test scalar Kalman filter."""

    def test_first_measurement_initializes(self):
        """First call returns the measurement itself."""
        f = SignalFilter(process_noise=0.1, measurement_noise=10.0)
        assert f.filter(42.0) == 42.0
        assert f.covariance == 10.0

    def test_update_step(self):
        """Second call moves toward the measurement by the Kalman gain."""
        f = SignalFilter(process_noise=0.1, measurement_noise=10.0)
        f.filter(50.0)
        result = f.filter(100.0)

        gain = 10.1 / 20.1
        assert result == pytest.approx(50.0 + gain * 50.0)
        assert f.covariance == pytest.approx(10.1 - gain * 10.1)

    def test_bounded_inputs_stay_bounded(self):
        """Output is finite and inside the range of the inputs."""
        rng = random.Random(7)
        f = SignalFilter(process_noise=0.1, measurement_noise=5.0)

        for _ in range(500):
            value = f.filter(rng.uniform(0.0, 100.0))
            assert math.isfinite(value)
            assert 0.0 <= value <= 100.0

    def test_output_between_previous_and_measurement(self):
        """Each update lands between the previous estimate and the new reading."""
        f = SignalFilter(process_noise=0.1, measurement_noise=10.0)
        previous = f.filter(20.0)

        for measurement in [80.0, 10.0, 55.0, 55.0, 0.0]:
            current = f.filter(measurement)
            low, high = sorted((previous, measurement))
            assert low <= current <= high
            previous = current

    def test_lower_measurement_noise_tracks_faster(self):
        """A more trusted measurement reacts more to a step change."""
        fast = SignalFilter(process_noise=0.1, measurement_noise=1.0)
        slow = SignalFilter(process_noise=0.1, measurement_noise=10.0)

        for f in (fast, slow):
            f.filter(0.0)

        assert fast.filter(100.0) > slow.filter(100.0)

    def test_non_finite_before_init_raises(self):
        f = SignalFilter(0.1, 10.0)
        with pytest.raises(ValueError):
            f.filter(float('nan'))

    def test_non_finite_after_init_ignored(self):
        f = SignalFilter(0.1, 10.0)
        f.filter(30.0)
        assert f.filter(float('inf')) == 30.0
        assert f.filter(float('nan')) == 30.0

    def test_reset(self):
        f = SignalFilter(0.1, 10.0)
        f.filter(30.0)
        f.reset()
        assert not f.initialized
        assert f.filter(70.0) == 70.0

    def test_invalid_noise(self):
        with pytest.raises(ValueError):
            SignalFilter(process_noise=0.1, measurement_noise=0.0)


class TestClampScore:

    def test_clamp(self):
        assert clamp_score(-5.0) == 0.0
        assert clamp_score(150.0) == 100.0
        assert clamp_score(42.5) == 42.5
        assert clamp_score(float('nan')) == 0.0
        assert clamp_score(float('inf')) == 100.0


class TestExpressionMetrics:
    """Test coarse expression-based metrics."""

    def test_neutral_face(self):
        metrics = compute_expression_metrics(ExpressionConfidences(neutral=1.0))

        assert metrics.attention == pytest.approx(80.0)
        assert metrics.stress == 0.0
        assert metrics.curiosity == 0.0

    def test_sad_face(self):
        metrics = compute_expression_metrics(ExpressionConfidences(sad=1.0))

        assert metrics.attention == 0.0  # -30 clamped
        assert metrics.stress == pytest.approx(50.0)

    def test_all_expressions_saturated(self):
        """All confidences at 1 still yields bounded scores."""
        values = {name: 1.0 for name in (
            'neutral', 'happy', 'sad', 'angry', 'fearful', 'disgusted', 'surprised'
        )}
        metrics = compute_expression_metrics(ExpressionConfidences(**values))

        assert metrics.attention == pytest.approx(70.0)
        assert metrics.stress == 100.0
        assert metrics.curiosity == 100.0

    def test_random_inputs_bounded(self):
        rng = random.Random(3)
        for _ in range(200):
            expr = ExpressionConfidences(*[rng.random() for _ in range(7)])
            metrics = compute_expression_metrics(expr)
            for value in (metrics.attention, metrics.stress, metrics.curiosity):
                assert 0.0 <= value <= 100.0

    def test_from_dict_defaults_missing(self):
        expr = ExpressionConfidences.from_dict({'happy': 0.5})
        assert expr.happy == 0.5
        assert expr.neutral == 0.0


class TestBiometricMetrics:
    """Test geometric/physiological metrics."""

    def test_looking_at_screen(self):
        signals = BiometricSignals(yaw=0.0, pitch=5.0, ear=0.3, blink_rate=15.0)

        metrics = compute_biometric_metrics(signals)

        assert metrics.attention == pytest.approx(100.0)
        assert metrics.stress == pytest.approx(30.0)
        assert metrics.curiosity == pytest.approx(60.0)  # +10 for attention > 70

    def test_yaw_penalty(self):
        signals = BiometricSignals(yaw=10.0, pitch=5.0)
        assert compute_biometric_attention(signals) == pytest.approx(100.0 - 10.0 ** 1.5)

    def test_closed_eyes_penalty(self):
        signals = BiometricSignals(yaw=0.0, pitch=5.0, ear=0.1)
        assert compute_biometric_attention(signals) == pytest.approx(60.0)

    def test_extreme_pose_clamped(self):
        signals = BiometricSignals(yaw=180.0, pitch=-180.0, ear=0.0)
        assert compute_biometric_attention(signals) == 0.0

    def test_blink_rate_bands(self):
        assert compute_biometric_stress(BiometricSignals(0, 5, blink_rate=30)) == pytest.approx(50.0)
        assert compute_biometric_stress(BiometricSignals(0, 5, blink_rate=3)) == pytest.approx(40.0)
        assert compute_biometric_stress(BiometricSignals(0, 5, blink_rate=15)) == pytest.approx(30.0)

    def test_stress_expressions(self):
        angry = BiometricSignals(0, 5, expressions=ExpressionConfidences(angry=1.0, fearful=1.0))
        happy = BiometricSignals(0, 5, expressions=ExpressionConfidences(happy=1.0))

        assert compute_biometric_stress(angry) == 100.0
        assert compute_biometric_stress(happy) == pytest.approx(10.0)

    def test_leaning_in_curiosity(self):
        signals = BiometricSignals(yaw=0.0, pitch=-10.0)
        assert compute_biometric_curiosity(signals, attention=40.0) == pytest.approx(65.0)

    def test_extreme_inputs_bounded(self):
        expr = ExpressionConfidences(*([1.0] * 7))
        signals = BiometricSignals(
            yaw=0.0, pitch=-10.0, ear=0.3, blink_rate=40.0, expressions=expr
        )
        metrics = compute_biometric_metrics(signals)
        for value in (metrics.attention, metrics.stress, metrics.curiosity):
            assert 0.0 <= value <= 100.0

    def test_validation_errors(self):
        signals = BiometricSignals(yaw=0.0, pitch=5.0, ear=-0.1, blink_rate=-1.0)
        errors = signals.validation_errors()
        assert len(errors) == 2


class TestCognitiveEstimator:
    """Test per-person estimator."""

    def test_first_estimate_equals_raw(self):
        estimator = CognitiveEstimator()
        metrics = estimator.estimate(make_detection(expressions=ExpressionConfidences(neutral=1.0)))

        assert metrics.attention == pytest.approx(80.0)
        assert metrics.stress == 0.0

    def test_estimates_are_smoothed(self):
        estimator = CognitiveEstimator()
        estimator.estimate(make_detection(expressions=ExpressionConfidences(neutral=1.0)))
        metrics = estimator.estimate(make_detection(expressions=ExpressionConfidences(happy=1.0)))

        # Raw attention jumps 80 -> 20; filtered lands in between
        assert 20.0 < metrics.attention < 80.0
        assert metrics.attention == pytest.approx(80.0 - 60.0 * 10.1 / 20.1, abs=0.01)

    def test_rounded_to_two_decimals(self):
        estimator = CognitiveEstimator()
        estimator.estimate(make_detection(expressions=ExpressionConfidences(neutral=1.0)))
        metrics = estimator.estimate(make_detection(expressions=ExpressionConfidences(happy=0.37)))

        for value in (metrics.attention, metrics.stress, metrics.curiosity):
            assert round(value, 2) == value

    def test_biometric_curiosity_uses_filtered_attention(self):
        """Curiosity bonus follows the smoothed attention, not the raw reading."""
        estimator = CognitiveEstimator()
        estimator.estimate(make_detection(biometrics=BiometricSignals(yaw=0.0, pitch=5.0)))

        # Raw attention ~47.6 (< 70) but filtered attention stays above 70
        metrics = estimator.estimate(make_detection(biometrics=BiometricSignals(yaw=14.0, pitch=5.0)))

        assert metrics.attention > 70.0
        assert metrics.curiosity == pytest.approx(60.0)

    def test_auto_mode_prefers_biometrics(self):
        estimator = CognitiveEstimator()
        detection = make_detection(
            expressions=ExpressionConfidences(angry=1.0),
            biometrics=BiometricSignals(yaw=0.0, pitch=5.0)
        )
        assert estimator.estimate(detection).attention == pytest.approx(100.0)

    def test_precomputed_metrics_passthrough(self):
        estimator = CognitiveEstimator()
        metrics = estimator.estimate(make_detection(metrics=CognitiveMetrics(70.0, 20.0, 40.0)))
        assert metrics == CognitiveMetrics(70.0, 20.0, 40.0)

    def test_biometric_mode_requires_biometrics(self):
        estimator = CognitiveEstimator({'estimator': {'mode': 'biometric'}})
        with pytest.raises(ValueError):
            estimator.estimate(make_detection(expressions=ExpressionConfidences(neutral=1.0)))

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            CognitiveEstimator({'estimator': {'mode': 'telepathy'}})

    def test_filter_tuning_from_config(self):
        config = {'estimator': {'filters': {'stress': {'measurement_noise': 2.0}}}}
        estimator = CognitiveEstimator(config)

        assert estimator.filters['stress'].measurement_noise == 2.0
        assert estimator.filters['attention'].measurement_noise == 10.0

    def test_estimators_do_not_share_filters(self):
        """Smoothing history of one person never leaks into another."""
        first = CognitiveEstimator()
        second = CognitiveEstimator()

        first.estimate(make_detection(expressions=ExpressionConfidences(neutral=1.0)))
        metrics = second.estimate(make_detection(expressions=ExpressionConfidences(happy=1.0)))

        assert metrics.attention == pytest.approx(20.0)
        assert first.filters['attention'] is not second.filters['attention']


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
