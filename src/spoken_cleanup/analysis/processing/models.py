"""Data models for the adaptive filter chain."""

from dataclasses import dataclass
from enum import Enum

from ..config import (
    COMP_ATTACK_DEFAULT,
    COMP_MAKEUP_DEFAULT,
    COMP_MIX_DEFAULT,
    COMP_RATIO_DEFAULT,
    COMP_RELEASE_DEFAULT,
    COMP_THRESHOLD_DEFAULT,
    GATE_ATTACK_MODERATE,
    GATE_RANGE_DEFAULT_DB,
    GATE_RATIO_MODERATE,
    GATE_RELEASE_BASE,
    GATE_RELEASE_HOLD,
    GATE_THRESHOLD_DEFAULT,
    HIGHPASS_DEFAULT,
    NR_BASE,
    NR_EXPANSION_DEFAULT,
    NR_THRESHOLD_DEFAULT,
    SPEECHNORM_EXPANSION_DEFAULT,
    SPEECHNORM_RMS_DEFAULT,
    TARGET_INTEGRATED_LOUDNESS,
    TRUE_PEAK_CEILING,
)


class GateDetection(Enum):
    """Level detection modes for the noise gate."""

    RMS = "rms"  # Smoother, tolerant of tonal or spiky noise
    PEAK = "peak"  # Tighter, for clean recordings


class FilterStage(Enum):
    """Named stages of the processing chain, in processing order."""

    HIGHPASS = "highpass"
    NOISE_REDUCTION = "noise_reduction"
    ANLMDN = "anlmdn"
    ARNNDN = "arnndn"
    GATE = "gate"
    COMPRESSOR = "compressor"
    DEESSER = "deesser"
    SPEECHNORM = "speechnorm"
    LOUDNORM = "loudnorm"


@dataclass(frozen=True)
class FilterChainConfig:
    """
    Fully determined parameters for every processing stage.

    Every field is a deterministic function of the measurements and the
    constants module; equal measurements yield equal configs.
    """

    highpass_freq: float = HIGHPASS_DEFAULT  # Hz
    # Gate
    gate_threshold: float = GATE_THRESHOLD_DEFAULT  # linear amplitude
    gate_ratio: float = GATE_RATIO_MODERATE
    gate_attack: float = GATE_ATTACK_MODERATE  # ms
    gate_release: float = GATE_RELEASE_BASE + GATE_RELEASE_HOLD  # ms
    gate_range: float = 10 ** (GATE_RANGE_DEFAULT_DB / 20)  # linear
    gate_detection: GateDetection = GateDetection.RMS
    # Compressor
    comp_threshold: float = COMP_THRESHOLD_DEFAULT  # dB
    comp_ratio: float = COMP_RATIO_DEFAULT
    comp_attack: float = COMP_ATTACK_DEFAULT  # ms
    comp_release: float = COMP_RELEASE_DEFAULT  # ms
    comp_makeup: float = COMP_MAKEUP_DEFAULT  # dB
    comp_mix: float = COMP_MIX_DEFAULT  # 0-1 wet
    # De-esser
    deess_intensity: float = 0.0  # 0 disables
    # Noise reduction
    noise_reduction: float = NR_BASE  # dB
    nr_threshold: float = NR_THRESHOLD_DEFAULT  # dB - expander threshold
    nr_expansion: float = NR_EXPANSION_DEFAULT  # dB - expander depth
    # Loudness
    target_i: float = TARGET_INTEGRATED_LOUDNESS  # LUFS
    target_tp: float = TRUE_PEAK_CEILING  # dBTP
    speechnorm_expansion: float = SPEECHNORM_EXPANSION_DEFAULT
    speechnorm_rms: float = SPEECHNORM_RMS_DEFAULT  # 0-1, 0 disables RMS targeting
    # Optional denoise stages
    arnndn_enabled: bool = False
    arnndn_mix: float = 0.0
    anlmdn_enabled: bool = False
    anlmdn_strength: float = 0.0
