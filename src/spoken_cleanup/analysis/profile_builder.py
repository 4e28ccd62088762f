"""Materialisation of elected candidates into noise and speech profiles."""

from dataclasses import replace

from .config import (
    GATE_FLOOR_CLEAN,
    GATE_FLOOR_MODERATE,
    GATE_OFFSET_CLEAN,
    GATE_OFFSET_MODERATE,
    GATE_OFFSET_NOISY,
)
from .dsp_utils import db_to_linear
from .logging_utils import get_logger
from .models import AudioMeasurements, NoiseProfile, RegionCandidate, SpeechProfile
from .region_elector import Election

logger = get_logger(__name__)


def build_noise_profile(candidate: RegionCandidate | None) -> NoiseProfile | None:
    """
    Build the noise profile from the elected silence candidate.

    Args:
        candidate: Elected silence candidate, or None

    Returns:
        NoiseProfile, or None to signal the whole-file fallback
    """
    if candidate is None:
        return None

    metrics = candidate.effective_metrics
    return NoiseProfile(
        window=candidate.effective_window,
        measured_noise_floor=metrics.rms_level,
        peak_level=metrics.peak_level,
        crest_factor=metrics.crest_factor,
        entropy=metrics.spectral.entropy,
        spectral_flatness=metrics.spectral.flatness,
        spectral_centroid=metrics.spectral.centroid,
        spectral_kurtosis=metrics.spectral.kurtosis,
        was_refined=candidate.was_refined,
        original_start=candidate.original_start,
        original_duration=candidate.original_duration,
    )


def build_speech_profile(candidate: RegionCandidate | None) -> SpeechProfile | None:
    """
    Build the speech profile from the elected speech candidate.

    Args:
        candidate: Elected speech candidate, or None

    Returns:
        SpeechProfile, or None to signal the whole-file fallback
    """
    if candidate is None:
        return None

    metrics = candidate.effective_metrics
    spectral = metrics.spectral
    return SpeechProfile(
        window=candidate.effective_window,
        rms_level=metrics.rms_level,
        peak_level=metrics.peak_level,
        crest_factor=metrics.crest_factor,
        voicing_density=candidate.effective_voicing_density,
        spectral_centroid=spectral.centroid,
        spectral_rolloff=spectral.rolloff,
        spectral_decrease=spectral.decrease,
        spectral_skewness=spectral.skewness,
        spectral_kurtosis=spectral.kurtosis,
        spectral_flux=spectral.flux,
        was_refined=candidate.was_refined,
        original_start=candidate.original_start,
        original_duration=candidate.original_duration,
    )


def suggested_gate_offset(noise_floor: float) -> float:
    """Margin above the noise floor for the baseline gate threshold (dB)."""
    if noise_floor < GATE_FLOOR_CLEAN:
        return GATE_OFFSET_CLEAN
    if noise_floor < GATE_FLOOR_MODERATE:
        return GATE_OFFSET_MODERATE
    return GATE_OFFSET_NOISY


def merge_profiles(
    measurements: AudioMeasurements, silence: Election, speech: Election
) -> AudioMeasurements:
    """
    Fold election results and derived profile values into the measurements.

    Args:
        measurements: Whole-file aggregate measurements
        silence: Election over the silence candidates
        speech: Election over the speech candidates

    Returns:
        New AudioMeasurements carrying candidates, elections and profiles
    """
    noise_profile = build_noise_profile(silence.elected)
    speech_profile = build_speech_profile(speech.elected)

    merged = replace(
        measurements,
        silence_candidates=silence.candidates,
        speech_candidates=speech.candidates,
        elected_silence=silence.index,
        elected_speech=speech.index,
        noise_profile=noise_profile,
        speech_profile=speech_profile,
    )

    floor = merged.effective_noise_floor
    headroom = 0.0
    if noise_profile is not None and speech_profile is not None:
        headroom = speech_profile.rms_level - noise_profile.measured_noise_floor

    gate_threshold = db_to_linear(floor + suggested_gate_offset(floor)) if floor < 0 else 0.0

    logger.debug(
        f"Profiles: noise={'yes' if noise_profile else 'no'} "
        f"speech={'yes' if speech_profile else 'no'} floor={floor:.1f} dBFS "
        f"headroom={headroom:.1f} dB"
    )
    return replace(
        merged,
        noise_reduction_headroom=headroom,
        suggested_gate_threshold=gate_threshold,
    )
