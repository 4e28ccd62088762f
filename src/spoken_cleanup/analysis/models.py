"""Data models for spoken-word analysis."""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum

from .exceptions import AnalysisCancelledError


class RegionKind(Enum):
    """Classes of region the scanner looks for."""

    SILENCE = "silence"  # Room tone between phrases
    SPEECH = "speech"  # Sustained voiced speech


@dataclass(frozen=True)
class Window:
    """A time window within a recording, in seconds."""

    start: float
    duration: float

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"Window start must be non-negative, got {self.start}")
        if self.duration <= 0:
            raise ValueError(f"Window duration must be positive, got {self.duration}")

    @property
    def end(self) -> float:
        return self.start + self.duration

    def contains(self, other: "Window") -> bool:
        """Return True when ``other`` lies entirely inside this window."""
        # Allow for float drift from summing window durations
        tolerance = 1e-9
        return other.start >= self.start - tolerance and other.end <= self.end + tolerance

    def overlaps(self, other: "Window") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class SpectralMetrics:
    """Frequency-domain shape descriptors of a windowed spectrum."""

    centroid: float = 0.0  # Hz
    spread: float = 0.0  # Hz
    rolloff: float = 0.0  # Hz
    flatness: float = 0.0  # 0-1
    kurtosis: float = 0.0
    skewness: float = 0.0
    crest: float = 0.0
    slope: float = 0.0
    decrease: float = 0.0
    entropy: float = 0.0  # 0-1, normalised
    flux: float = 0.0


@dataclass(frozen=True)
class WindowMeasurement:
    """Measurements for one fixed-size analysis window of the pre-scan."""

    index: int
    window: Window
    rms_level: float  # dBFS
    peak_level: float  # dBFS
    momentary_lufs: float = 0.0  # LUFS
    voicing: float = 0.0  # fraction of voiced VAD frames, 0-1
    spectral: SpectralMetrics = field(default_factory=SpectralMetrics)


@dataclass(frozen=True)
class RegionMetrics:
    """Amplitude and spectral metrics aggregated over a candidate window."""

    rms_level: float  # dBFS
    peak_level: float  # dBFS
    crest_factor: float  # dB
    rms_deviation: float  # dB - std dev of window RMS
    momentary_lufs: float = 0.0  # LUFS
    spectral: SpectralMetrics = field(default_factory=SpectralMetrics)


@dataclass(frozen=True)
class Refinement:
    """A golden sub-region found inside an elected candidate."""

    window: Window
    score: float
    metrics: RegionMetrics
    voicing_density: float = 0.0


@dataclass(frozen=True)
class RegionCandidate:
    """A silence or speech window found by the scanner.

    ``window`` is always the window as scanned. When a refinement is attached
    the effective window and metrics are the refined sub-region's, while the
    scanned bounds stay available as ``original_start``/``original_duration``.
    """

    kind: RegionKind
    window: Window
    score: float
    metrics: RegionMetrics
    voicing_density: float = 0.0
    first_index: int = 0  # index of the first analysis window in the run
    window_count: int = 1
    refinement: Refinement | None = None

    def __post_init__(self) -> None:
        if self.refinement is None:
            return
        refined = self.refinement.window
        if not self.window.contains(refined):
            raise ValueError(
                f"Refined window {refined} must lie inside the scanned window {self.window}"
            )
        if refined == self.window:
            raise ValueError("Refined window must be narrower than the scanned window")

    @property
    def was_refined(self) -> bool:
        return self.refinement is not None

    @property
    def effective_window(self) -> Window:
        return self.refinement.window if self.refinement else self.window

    @property
    def effective_metrics(self) -> RegionMetrics:
        return self.refinement.metrics if self.refinement else self.metrics

    @property
    def effective_score(self) -> float:
        return self.refinement.score if self.refinement else self.score

    @property
    def effective_voicing_density(self) -> float:
        return self.refinement.voicing_density if self.refinement else self.voicing_density

    @property
    def original_start(self) -> float | None:
        return self.window.start if self.refinement else None

    @property
    def original_duration(self) -> float | None:
        return self.window.duration if self.refinement else None

    def with_refinement(self, refinement: Refinement) -> "RegionCandidate":
        """Return a copy of this candidate carrying ``refinement``."""
        return replace(self, refinement=refinement)


@dataclass(frozen=True)
class NoiseProfile:
    """Materialised elected silence window."""

    window: Window
    measured_noise_floor: float  # dBFS - RMS of the room tone
    peak_level: float  # dBFS
    crest_factor: float  # dB
    entropy: float  # 0-1
    spectral_flatness: float  # 0-1
    spectral_centroid: float = 0.0  # Hz
    spectral_kurtosis: float = 0.0
    was_refined: bool = False
    original_start: float | None = None
    original_duration: float | None = None


@dataclass(frozen=True)
class SpeechProfile:
    """Materialised elected speech window."""

    window: Window
    rms_level: float  # dBFS
    peak_level: float  # dBFS
    crest_factor: float  # dB
    voicing_density: float  # 0-1
    spectral_centroid: float = 0.0  # Hz
    spectral_rolloff: float = 0.0  # Hz
    spectral_decrease: float = 0.0
    spectral_skewness: float = 0.0
    spectral_kurtosis: float = 0.0
    spectral_flux: float = 0.0
    was_refined: bool = False
    original_start: float | None = None
    original_duration: float | None = None


@dataclass(frozen=True)
class AudioMeasurements:
    """Full-file aggregate measurements plus optional region profiles.

    A value of exactly 0 for ``input_i``, ``crest_factor`` or
    ``noise_reduction_headroom`` means "not measured".
    """

    # Loudness
    input_i: float = 0.0  # LUFS
    input_tp: float = 0.0  # dBTP
    input_lra: float = 0.0  # LU
    # Amplitude
    rms_level: float = 0.0  # dBFS
    peak_level: float = 0.0  # dBFS
    dynamic_range: float = 0.0  # dB
    crest_factor: float = 0.0  # dB
    max_difference: float = 0.0  # 0-1
    # Spectral (full file)
    spectral_centroid: float = 0.0
    spectral_spread: float = 0.0
    spectral_rolloff: float = 0.0
    spectral_flatness: float = 0.0
    spectral_kurtosis: float = 0.0
    spectral_skewness: float = 0.0
    spectral_crest: float = 0.0
    spectral_slope: float = 0.0
    spectral_decrease: float = 0.0
    spectral_entropy: float = 0.0
    spectral_flux: float = 0.0
    # Noise and silence context
    noise_floor: float = 0.0  # dBFS - aggregate estimate
    prescan_noise_floor: float = 0.0  # dBFS
    silence_threshold: float = 0.0  # dBFS
    suggested_gate_threshold: float = 0.0  # linear amplitude
    noise_reduction_headroom: float = 0.0  # dB
    # Regions
    silence_candidates: tuple[RegionCandidate, ...] = ()
    speech_candidates: tuple[RegionCandidate, ...] = ()
    elected_silence: int | None = None
    elected_speech: int | None = None
    noise_profile: NoiseProfile | None = None
    speech_profile: SpeechProfile | None = None
    duration: float = 0.0  # seconds

    def __post_init__(self) -> None:
        for name, candidates, elected in (
            ("silence", self.silence_candidates, self.elected_silence),
            ("speech", self.speech_candidates, self.elected_speech),
        ):
            if elected is not None and not 0 <= elected < len(candidates):
                raise ValueError(
                    f"Elected {name} index {elected} out of range for {len(candidates)} candidates"
                )

    @property
    def elected_silence_candidate(self) -> RegionCandidate | None:
        if self.elected_silence is None:
            return None
        return self.silence_candidates[self.elected_silence]

    @property
    def elected_speech_candidate(self) -> RegionCandidate | None:
        if self.elected_speech is None:
            return None
        return self.speech_candidates[self.elected_speech]

    @property
    def effective_noise_floor(self) -> float:
        """Noise floor from the elected silence when measured, else the aggregate."""
        if self.noise_profile is not None and self.noise_profile.measured_noise_floor < 0:
            return self.noise_profile.measured_noise_floor
        return self.noise_floor


# (pass_index, pass_name, progress 0-1, instantaneous level dB, measurements so far)
ProgressCallback = Callable[[int, str, float, float, AudioMeasurements | None], None]


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and an analysis pass."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise AnalysisCancelledError once cancel() has been called."""
        if self._event.is_set():
            raise AnalysisCancelledError("Analysis cancelled")
