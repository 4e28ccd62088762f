"""
Reference statistics collector.

Computes the per-window pre-scan and the whole-file aggregates the analysis
core consumes: levels, loudness, true peak, spectral descriptors and
voicing.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, fields

import numpy as np
import pyloudnorm as pyln
import webrtcvad
from scipy.signal import resample_poly

from .config import (
    ANALYSIS_WINDOW_SECONDS,
    LINEAR_TO_DB_FLOOR,
    LOUDNESS_FLOOR,
    LRA_HIGH_PERCENTILE,
    LRA_LOW_PERCENTILE,
    LRA_RELATIVE_GATE,
    MIN_ANALYSIS_SECONDS,
    PRESCAN_FLOOR_PERCENTILE,
    PROGRESS_REPORT_INTERVAL,
    SHORT_TERM_HOP_SECONDS,
    SHORT_TERM_LOUDNESS_SECONDS,
    SILENCE_THRESHOLD_MARGIN,
    SILENCE_THRESHOLD_MAX,
    SPECTRAL_ROLLOFF_FRACTION,
    TRUE_PEAK_BLOCK_OVERLAP,
    TRUE_PEAK_BLOCK_SAMPLES,
    TRUE_PEAK_OVERSAMPLE,
    VAD_AGGRESSIVENESS,
    VAD_FRAME_DURATION,
    VAD_SAMPLE_RATE,
    VAD_SUPPORTED_FRAME_DURATIONS,
    VAD_SUPPORTED_SAMPLE_RATES,
)
from .audio_reader import DecodedAudio
from .dsp_utils import linear_to_db
from .exceptions import InsufficientAudioError
from .logging_utils import get_logger
from .models import (
    AudioMeasurements,
    CancellationToken,
    ProgressCallback,
    SpectralMetrics,
    Window,
    WindowMeasurement,
)

logger = get_logger(__name__)

MEASURE_PASS_NAME = "Measuring"

_SPECTRAL_FIELDS = tuple(f.name for f in fields(SpectralMetrics))


@dataclass(frozen=True)
class PreScan:
    """Whole-file aggregates and the windowed measurement stream."""

    measurements: AudioMeasurements
    windows: tuple[WindowMeasurement, ...]


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Polyphase resampling between integer sample rates."""
    if source_rate == target_rate:
        return samples
    divisor = math.gcd(source_rate, target_rate)
    return resample_poly(samples, target_rate // divisor, source_rate // divisor)


def rms_db(samples: np.ndarray) -> float:
    if len(samples) == 0:
        return LINEAR_TO_DB_FLOOR
    return linear_to_db(float(np.sqrt(np.mean(np.square(samples)))))


def peak_db(samples: np.ndarray) -> float:
    if len(samples) == 0:
        return LINEAR_TO_DB_FLOOR
    return linear_to_db(float(np.max(np.abs(samples))))


def true_peak_db(
    samples: np.ndarray,
    oversample: int = TRUE_PEAK_OVERSAMPLE,
    block_size: int = TRUE_PEAK_BLOCK_SAMPLES,
) -> float:
    """
    Inter-sample peak estimated by oversampling.

    The signal is oversampled one block at a time. Each block is padded
    with TRUE_PEAK_BLOCK_OVERLAP neighbouring samples on both sides so the
    interpolation filter sees the same context as a whole-file pass, and
    only the block's own span is kept.
    """
    if len(samples) == 0:
        return LINEAR_TO_DB_FLOOR

    peak = float(np.max(np.abs(samples)))
    total = len(samples)
    for start in range(0, total, block_size):
        end = min(start + block_size, total)
        lo = max(0, start - TRUE_PEAK_BLOCK_OVERLAP)
        hi = min(total, end + TRUE_PEAK_BLOCK_OVERLAP)
        upsampled = resample_poly(samples[lo:hi], oversample, 1)
        own = upsampled[(start - lo) * oversample : (end - lo) * oversample]
        peak = max(peak, float(np.max(np.abs(own))))
    return linear_to_db(peak)


def max_difference(samples: np.ndarray) -> float:
    """Largest sample-to-sample jump, normalised to 0-1."""
    if len(samples) < 2:
        return 0.0
    return float(np.max(np.abs(np.diff(samples))) / 2.0)


def magnitude_spectrum(samples: np.ndarray) -> np.ndarray:
    return np.abs(np.fft.rfft(samples * np.hanning(len(samples))))


def spectral_metrics(
    magnitudes: np.ndarray, sample_rate: int, previous: np.ndarray | None = None
) -> SpectralMetrics:
    """
    Shape descriptors of one magnitude spectrum.

    Args:
        magnitudes: rfft magnitudes of one window
        sample_rate: Sample rate of the analysed audio
        previous: Magnitudes of the preceding window, for flux

    Returns:
        SpectralMetrics, all zero for a silent window
    """
    total = float(np.sum(magnitudes))
    if total <= 0 or len(magnitudes) < 2:
        return SpectralMetrics()

    freqs = np.linspace(0.0, sample_rate / 2.0, len(magnitudes))
    weights = magnitudes / total

    centroid = float(np.sum(freqs * weights))
    deviation = freqs - centroid
    spread = float(np.sqrt(np.sum(np.square(deviation) * weights)))
    if spread > 0:
        skewness = float(np.sum(deviation**3 * weights) / spread**3)
        kurtosis = float(np.sum(deviation**4 * weights) / spread**4)
    else:
        skewness = kurtosis = 0.0

    power = np.square(magnitudes)
    cumulative = np.cumsum(power)
    rolloff_bin = int(np.searchsorted(cumulative, SPECTRAL_ROLLOFF_FRACTION * cumulative[-1]))
    rolloff = float(freqs[min(rolloff_bin, len(freqs) - 1)])

    mean_magnitude = float(np.mean(magnitudes))
    flatness = float(np.exp(np.mean(np.log(magnitudes + 1e-12))) / mean_magnitude)
    crest = float(np.max(magnitudes) / mean_magnitude)

    nonzero = weights[weights > 0]
    entropy = float(-np.sum(nonzero * np.log(nonzero)) / np.log(len(magnitudes)))

    freq_mean = float(np.mean(freqs))
    slope = float(
        np.sum((freqs - freq_mean) * (magnitudes - mean_magnitude))
        / np.sum(np.square(freqs - freq_mean))
        / total
    )

    bins = np.arange(1, len(magnitudes))
    upper = float(np.sum(magnitudes[1:]))
    decrease = (
        float(np.sum((magnitudes[1:] - magnitudes[0]) / bins) / upper) if upper > 0 else 0.0
    )

    flux = 0.0
    if previous is not None and len(previous) == len(magnitudes):
        prev_norm = float(np.linalg.norm(previous))
        cur_norm = float(np.linalg.norm(magnitudes))
        if prev_norm > 0 and cur_norm > 0:
            flux = float(
                np.linalg.norm(magnitudes / cur_norm - previous / prev_norm) / np.sqrt(2.0)
            )

    return SpectralMetrics(
        centroid=centroid,
        spread=spread,
        rolloff=rolloff,
        flatness=flatness,
        kurtosis=kurtosis,
        skewness=skewness,
        crest=crest,
        slope=slope,
        decrease=decrease,
        entropy=entropy,
        flux=flux,
    )


class VoiceActivityDetector:
    """Frame-level voicing decisions from WebRTC VAD."""

    def __init__(
        self,
        sample_rate: int = VAD_SAMPLE_RATE,
        frame_duration: int = VAD_FRAME_DURATION,
        aggressiveness: int = VAD_AGGRESSIVENESS,
    ) -> None:
        """
        Initialize voice activity detector.

        Args:
            sample_rate: Rate the audio is resampled to before detection
            frame_duration: Frame duration in milliseconds
            aggressiveness: WebRTC VAD mode, 0-3

        Raises:
            ValueError: If sample_rate or frame_duration is not supported by webrtcvad
        """
        if sample_rate not in VAD_SUPPORTED_SAMPLE_RATES:
            raise ValueError(
                f"Unsupported sample rate: {sample_rate}. "
                f"WebRTC VAD supports {VAD_SUPPORTED_SAMPLE_RATES} Hz"
            )
        if frame_duration not in VAD_SUPPORTED_FRAME_DURATIONS:
            raise ValueError(
                f"Unsupported frame duration: {frame_duration}. "
                f"WebRTC VAD supports {VAD_SUPPORTED_FRAME_DURATIONS} ms"
            )
        self.sample_rate = sample_rate
        self.frame_duration = frame_duration
        self.frame_size = int(sample_rate * frame_duration / 1000)
        self.vad = webrtcvad.Vad()
        self.vad.set_mode(aggressiveness)

    def frame_decisions(self, samples: np.ndarray, source_rate: int) -> np.ndarray:
        """
        Classify consecutive frames of a recording as voiced or not.

        Args:
            samples: Mono float samples in [-1, 1]
            source_rate: Sample rate of ``samples``

        Returns:
            Boolean array, one entry per complete frame at the VAD rate
        """
        audio = resample(samples, source_rate, self.sample_rate)
        pcm = (np.clip(audio, -1.0, 1.0) * 32767).astype(np.int16)
        frame_count = len(pcm) // self.frame_size
        decisions = np.zeros(frame_count, dtype=bool)
        for i in range(frame_count):
            frame = pcm[i * self.frame_size : (i + 1) * self.frame_size]
            decisions[i] = self.vad.is_speech(frame.tobytes(), self.sample_rate)
        logger.debug(
            f"VAD: {int(decisions.sum())} of {frame_count} frames voiced "
            f"({self.frame_duration}ms at {self.sample_rate}Hz)"
        )
        return decisions

    def frame_centres(self, frame_count: int) -> np.ndarray:
        """Centre time in seconds of each VAD frame, ascending."""
        return (np.arange(frame_count) + 0.5) * (self.frame_duration / 1000.0)

    def voicing(
        self, decisions: np.ndarray, window: Window, centres: np.ndarray | None = None
    ) -> float:
        """
        Fraction of frames centred inside ``window`` that are voiced.

        Pass ``centres`` from frame_centres when scoring many windows over
        the same decisions.
        """
        if centres is None:
            centres = self.frame_centres(len(decisions))
        first = int(np.searchsorted(centres, window.start, side="left"))
        last = int(np.searchsorted(centres, window.end, side="left"))
        if last <= first:
            return 0.0
        return float(np.mean(decisions[first:last]))


def loudness_range(meter: pyln.Meter, samples: np.ndarray, sample_rate: int) -> float:
    """
    Loudness range from gated short-term loudness, in LU.

    Args:
        meter: Loudness meter for ``sample_rate``
        samples: Mono float samples
        sample_rate: Sample rate in Hz

    Returns:
        Spread between the high and low percentiles of short-term loudness
    """
    block = int(SHORT_TERM_LOUDNESS_SECONDS * sample_rate)
    hop = int(SHORT_TERM_HOP_SECONDS * sample_rate)
    if len(samples) < block:
        return 0.0

    levels = []
    for start in range(0, len(samples) - block + 1, hop):
        level = meter.integrated_loudness(samples[start : start + block])
        if np.isfinite(level) and level > LOUDNESS_FLOOR:
            levels.append(level)
    if not levels:
        return 0.0

    levels_arr = np.asarray(levels)
    mean_energy = np.mean(np.power(10.0, levels_arr / 10.0))
    relative_gate = 10.0 * np.log10(mean_energy) + LRA_RELATIVE_GATE
    gated = levels_arr[levels_arr > relative_gate]
    if len(gated) == 0:
        return 0.0
    return float(
        np.percentile(gated, LRA_HIGH_PERCENTILE) - np.percentile(gated, LRA_LOW_PERCENTILE)
    )


def _finite_loudness(level: float) -> float:
    return float(level) if np.isfinite(level) else LOUDNESS_FLOOR


class StatisticsCollector:
    """Measures decoded audio into a PreScan."""

    def __init__(
        self,
        window_seconds: float = ANALYSIS_WINDOW_SECONDS,
        vad: VoiceActivityDetector | None = None,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("Analysis window must be positive")
        self.window_seconds = window_seconds
        self.vad = vad or VoiceActivityDetector()

    def measure(
        self,
        audio: DecodedAudio,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        pass_index: int = 1,
    ) -> PreScan:
        """
        Measure a recording.

        Args:
            audio: Decoded mono audio
            progress_callback: Optional progress receiver, must not block
            cancel_token: Optional token checked before every window
            pass_index: Pass number reported to the progress callback

        Returns:
            PreScan with aggregates and per-window measurements

        Raises:
            InsufficientAudioError: If the recording is shorter than MIN_ANALYSIS_SECONDS
            AnalysisCancelledError: If the token is cancelled mid-pass
        """
        samples = np.asarray(audio.samples, dtype=np.float64)
        rate = audio.sample_rate
        duration = len(samples) / rate if rate else 0.0
        if duration < MIN_ANALYSIS_SECONDS:
            raise InsufficientAudioError(
                f"Recording is {duration:.2f}s, at least {MIN_ANALYSIS_SECONDS}s is needed"
            )

        meter = pyln.Meter(rate)
        decisions = self.vad.frame_decisions(samples, rate)
        windows = self._measure_windows(
            samples, rate, meter, decisions, progress_callback, cancel_token, pass_index
        )

        measurements = self._aggregate(samples, rate, meter, windows, duration)
        if progress_callback is not None:
            progress_callback(pass_index, MEASURE_PASS_NAME, 1.0, measurements.rms_level, measurements)
        return PreScan(measurements=measurements, windows=windows)

    def _measure_windows(
        self,
        samples: np.ndarray,
        rate: int,
        meter: pyln.Meter,
        decisions: np.ndarray,
        progress_callback: ProgressCallback | None,
        cancel_token: CancellationToken | None,
        pass_index: int,
    ) -> tuple[WindowMeasurement, ...]:
        size = int(self.window_seconds * rate)
        # The meter rejects input shorter than its own block size
        block = math.ceil(meter.block_size * rate)
        count = len(samples) // size
        windows: list[WindowMeasurement] = []
        previous: np.ndarray | None = None
        centres = self.vad.frame_centres(len(decisions))

        for index in range(count):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            chunk = samples[index * size : (index + 1) * size]
            magnitudes = magnitude_spectrum(chunk)
            window = Window(start=index * size / rate, duration=size / rate)

            # Momentary loudness over a 400ms block centred on the window
            centre = index * size + size // 2
            start = min(max(0, centre - block // 2), len(samples) - block)
            momentary = _finite_loudness(meter.integrated_loudness(samples[start : start + block]))

            measurement = WindowMeasurement(
                index=index,
                window=window,
                rms_level=rms_db(chunk),
                peak_level=peak_db(chunk),
                momentary_lufs=momentary,
                voicing=self.vad.voicing(decisions, window, centres),
                spectral=spectral_metrics(magnitudes, rate, previous),
            )
            windows.append(measurement)
            previous = magnitudes

            done = index + 1
            if progress_callback is not None and (
                done % PROGRESS_REPORT_INTERVAL == 0 or done == count
            ):
                progress_callback(
                    pass_index, MEASURE_PASS_NAME, done / count, measurement.rms_level, None
                )

        return tuple(windows)

    def _aggregate(
        self,
        samples: np.ndarray,
        rate: int,
        meter: pyln.Meter,
        windows: Sequence[WindowMeasurement],
        duration: float,
    ) -> AudioMeasurements:
        levels = np.array([w.rms_level for w in windows])
        audible = levels[levels > LINEAR_TO_DB_FLOOR]

        noise_floor = float(audible.min()) if len(audible) else LINEAR_TO_DB_FLOOR
        prescan_floor = (
            float(np.percentile(audible, PRESCAN_FLOOR_PERCENTILE))
            if len(audible)
            else LINEAR_TO_DB_FLOOR
        )
        silence_threshold = min(prescan_floor + SILENCE_THRESHOLD_MARGIN, SILENCE_THRESHOLD_MAX)

        voiced = [w.spectral for w in windows if w.spectral.centroid > 0]
        spectral = {
            f"spectral_{name}": float(np.mean([getattr(s, name) for s in voiced])) if voiced else 0.0
            for name in _SPECTRAL_FIELDS
        }

        rms_level = rms_db(samples)
        peak_level = peak_db(samples)
        measurements = AudioMeasurements(
            input_i=_finite_loudness(meter.integrated_loudness(samples)),
            input_tp=true_peak_db(samples),
            input_lra=loudness_range(meter, samples, rate),
            rms_level=rms_level,
            peak_level=peak_level,
            dynamic_range=peak_level - noise_floor,
            crest_factor=peak_level - rms_level,
            max_difference=max_difference(samples),
            noise_floor=noise_floor,
            prescan_noise_floor=prescan_floor,
            silence_threshold=silence_threshold,
            duration=duration,
            **spectral,
        )
        logger.info(
            f"Measured {duration:.1f}s: I={measurements.input_i:.1f} LUFS "
            f"TP={measurements.input_tp:.1f} dBTP LRA={measurements.input_lra:.1f} LU "
            f"floor={noise_floor:.1f} dBFS"
        )
        return measurements
