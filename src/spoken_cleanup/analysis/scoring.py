"""Composite scoring heuristics for silence and speech candidates."""

from collections.abc import Sequence
from dataclasses import fields

import numpy as np

from .config import (
    LINEAR_TO_DB_FLOOR,
    SCORE_DURATION_TARGET,
    SILENCE_LEVEL_SPAN,
    SILENCE_STABILITY_SPAN,
    SILENCE_TRANSIENT_CREST,
    SILENCE_TRANSIENT_SPAN,
    SILENCE_WEIGHTS,
    SPEECH_LEVEL_LOW,
    SPEECH_LEVEL_SPAN,
    SPEECH_STABILITY_SPAN,
    SPEECH_VOICING_MIN,
    SPEECH_WEIGHTS,
)
from .interfaces import ScoringHeuristic
from .models import RegionKind, RegionMetrics, SpectralMetrics, WindowMeasurement

_SPECTRAL_FIELDS = tuple(f.name for f in fields(SpectralMetrics))


def power_mean_db(levels_db: Sequence[float]) -> float:
    """Average dB levels in the power domain."""
    levels = np.asarray(levels_db, dtype=np.float64)
    return float(10.0 * np.log10(np.mean(np.power(10.0, levels / 10.0))))


def summarize_windows(windows: Sequence[WindowMeasurement]) -> RegionMetrics:
    """
    Aggregate consecutive analysis windows into region metrics.

    Args:
        windows: Non-empty run of consecutive windows

    Returns:
        RegionMetrics for the run
    """
    if not windows:
        raise ValueError("Cannot summarize an empty window run")

    rms = np.array([w.rms_level for w in windows], dtype=np.float64)
    rms_level = power_mean_db(rms)
    peak_level = float(max(w.peak_level for w in windows))
    momentary = [w.momentary_lufs for w in windows if w.momentary_lufs != 0.0]

    spectral = SpectralMetrics(
        **{
            name: float(np.mean([getattr(w.spectral, name) for w in windows]))
            for name in _SPECTRAL_FIELDS
        }
    )

    return RegionMetrics(
        rms_level=rms_level,
        peak_level=peak_level,
        crest_factor=peak_level - rms_level,
        rms_deviation=float(np.std(rms)),
        momentary_lufs=power_mean_db(momentary) if momentary else 0.0,
        spectral=spectral,
    )


def _clamp01(value: float) -> float:
    return float(min(1.0, max(0.0, value)))


def _duration(windows: Sequence[WindowMeasurement]) -> float:
    return sum(w.window.duration for w in windows)


class SilenceHeuristic(ScoringHeuristic):
    """
    Ranks room-tone windows.

    Rewards quiet, steady windows free of transients. Duration credit
    saturates at SCORE_DURATION_TARGET so a short clean stretch can outscore
    the longer window it sits in.
    """

    kind = RegionKind.SILENCE

    def __init__(
        self,
        silence_threshold: float,
        weights: tuple[float, float, float, float] = SILENCE_WEIGHTS,
    ) -> None:
        self.silence_threshold = silence_threshold
        self.weights = weights

    def qualifies(self, measurement: WindowMeasurement) -> bool:
        # Digital zero is padding, not room tone
        return LINEAR_TO_DB_FLOOR < measurement.rms_level < self.silence_threshold

    def score(self, windows: Sequence[WindowMeasurement]) -> float:
        metrics = summarize_windows(windows)
        duration_credit = _clamp01(_duration(windows) / SCORE_DURATION_TARGET)
        quietness = _clamp01((self.silence_threshold - metrics.rms_level) / SILENCE_LEVEL_SPAN)
        stability = 1.0 / (1.0 + metrics.rms_deviation / SILENCE_STABILITY_SPAN)
        transient = _clamp01(
            (metrics.crest_factor - SILENCE_TRANSIENT_CREST) / SILENCE_TRANSIENT_SPAN
        )

        w_duration, w_quiet, w_stable, w_transient = self.weights
        return (
            w_duration * duration_credit
            + w_quiet * quietness
            + w_stable * stability
            - w_transient * transient
        )


class SpeechHeuristic(ScoringHeuristic):
    """Ranks voiced windows by voicing density, level and steadiness."""

    kind = RegionKind.SPEECH

    def __init__(
        self,
        silence_threshold: float,
        voicing_min: float = SPEECH_VOICING_MIN,
        weights: tuple[float, float, float, float] = SPEECH_WEIGHTS,
    ) -> None:
        self.silence_threshold = silence_threshold
        self.voicing_min = voicing_min
        self.weights = weights

    def qualifies(self, measurement: WindowMeasurement) -> bool:
        return (
            measurement.voicing >= self.voicing_min
            and measurement.rms_level >= self.silence_threshold
        )

    def score(self, windows: Sequence[WindowMeasurement]) -> float:
        metrics = summarize_windows(windows)
        duration_credit = _clamp01(_duration(windows) / SCORE_DURATION_TARGET)
        voicing = voicing_density(windows)
        level = _clamp01((metrics.rms_level - SPEECH_LEVEL_LOW) / SPEECH_LEVEL_SPAN)
        stability = 1.0 / (1.0 + metrics.rms_deviation / SPEECH_STABILITY_SPAN)

        w_duration, w_voicing, w_level, w_stable = self.weights
        return (
            w_duration * duration_credit
            + w_voicing * voicing
            + w_level * level
            + w_stable * stability
        )


def voicing_density(windows: Sequence[WindowMeasurement]) -> float:
    """Mean voiced fraction over a run of windows."""
    if not windows:
        return 0.0
    return float(np.mean([w.voicing for w in windows]))
