"""
Rendering of a FilterChainConfig as an ffmpeg-style filter graph string.

Each stage builder returns its filter spec, or an empty string when the
stage is disabled by the config. Stages are joined in processing order.
"""

from collections.abc import Callable, Sequence

from ..dsp_utils import db_to_linear
from .models import FilterChainConfig, FilterStage

DEFAULT_STAGE_ORDER: tuple[FilterStage, ...] = (
    FilterStage.HIGHPASS,
    FilterStage.NOISE_REDUCTION,
    FilterStage.ANLMDN,
    FilterStage.ARNNDN,
    FilterStage.GATE,
    FilterStage.COMPRESSOR,
    FilterStage.DEESSER,
    FilterStage.SPEECHNORM,
    FilterStage.LOUDNORM,
)

ARNNDN_MODEL = "rnnoise.rnnn"

# Fixed expander and normaliser timings, validated for speech
COMPAND_ATTACK = 0.005  # seconds
COMPAND_DECAY = 0.100  # seconds
COMPAND_KNEE = 6.0  # dB
COMPAND_EXPANDED_LEVELS = (-90.0, -75.0)  # dB - pushed down by the expansion
COMPAND_UNITY_LEVELS = (-30.0, 0.0)  # dB - passed unchanged
GATE_KNEE = 2.0
COMP_KNEE = 2.5
SPEECHNORM_PEAK = 0.95
SPEECHNORM_RATE = 0.001
LOUDNORM_LRA = 11.0  # LU


def build_highpass(config: FilterChainConfig) -> str:
    return f"highpass=f={config.highpass_freq:.0f}:poles=2"


def build_noise_reduction(config: FilterChainConfig) -> str:
    """FFT denoise followed by a flat downward expander below the noise threshold."""
    expansion = config.nr_expansion
    threshold = round(config.nr_threshold)
    afftdn = f"afftdn=nr={config.noise_reduction:.1f}:nf={max(threshold, -80.0):.0f}"

    # compand needs strictly increasing input levels
    points = [(level, level - expansion) for level in COMPAND_EXPANDED_LEVELS if level < threshold]
    points.append((threshold, threshold))
    points += [(level, level) for level in COMPAND_UNITY_LEVELS if level > threshold]
    rendered = "|".join(f"{level:.0f}/{out:.0f}" for level, out in points)
    compand = (
        f"compand=attacks={COMPAND_ATTACK:.3f}:decays={COMPAND_DECAY:.3f}:"
        f"soft-knee={COMPAND_KNEE:.1f}:"
        f"points={rendered}"
    )
    return f"{afftdn},{compand}"


def build_anlmdn(config: FilterChainConfig) -> str:
    if not config.anlmdn_enabled:
        return ""
    return f"anlmdn=s={config.anlmdn_strength:.5f}"


def build_arnndn(config: FilterChainConfig, model: str = ARNNDN_MODEL) -> str:
    if not config.arnndn_enabled:
        return ""
    return f"arnndn=m={model}:mix={config.arnndn_mix:.2f}"


def build_gate(config: FilterChainConfig) -> str:
    return (
        f"agate=threshold={config.gate_threshold:.6f}:ratio={config.gate_ratio:.1f}:"
        f"attack={config.gate_attack:.2f}:release={config.gate_release:.0f}:"
        f"range={config.gate_range:.4f}:knee={GATE_KNEE:.1f}:"
        f"detection={config.gate_detection.value}"
    )


def build_compressor(config: FilterChainConfig) -> str:
    # acompressor takes linear threshold and makeup
    return (
        f"acompressor=threshold={db_to_linear(config.comp_threshold):.6f}:"
        f"ratio={config.comp_ratio:.1f}:attack={config.comp_attack:.0f}:"
        f"release={config.comp_release:.0f}:makeup={db_to_linear(config.comp_makeup):.2f}:"
        f"knee={COMP_KNEE:.1f}:detection=rms:mix={config.comp_mix:.2f}"
    )


def build_deesser(config: FilterChainConfig) -> str:
    if config.deess_intensity <= 0:
        return ""
    return f"deesser=i={config.deess_intensity:.2f}"


def build_speechnorm(config: FilterChainConfig) -> str:
    if config.speechnorm_expansion <= 1.0 and config.speechnorm_rms <= 0:
        return ""
    spec = (
        f"speechnorm=e={config.speechnorm_expansion:.2f}:c=1:t=0:p={SPEECHNORM_PEAK:.2f}:"
        f"r={SPEECHNORM_RATE:.3f}:f={SPEECHNORM_RATE:.3f}"
    )
    if config.speechnorm_rms > 0:
        spec += f":rms={config.speechnorm_rms:.4f}"
    return spec


def build_loudnorm(config: FilterChainConfig) -> str:
    return f"loudnorm=I={config.target_i:.1f}:TP={config.target_tp:.1f}:LRA={LOUDNORM_LRA:.0f}"


STAGE_BUILDERS: dict[FilterStage, Callable[[FilterChainConfig], str]] = {
    FilterStage.HIGHPASS: build_highpass,
    FilterStage.NOISE_REDUCTION: build_noise_reduction,
    FilterStage.ANLMDN: build_anlmdn,
    FilterStage.ARNNDN: build_arnndn,
    FilterStage.GATE: build_gate,
    FilterStage.COMPRESSOR: build_compressor,
    FilterStage.DEESSER: build_deesser,
    FilterStage.SPEECHNORM: build_speechnorm,
    FilterStage.LOUDNORM: build_loudnorm,
}


def build_filter_spec(
    config: FilterChainConfig, order: Sequence[FilterStage] = DEFAULT_STAGE_ORDER
) -> str:
    """
    Render the enabled stages of a config as one filter graph string.

    Args:
        config: Derived filter chain parameters
        order: Stage processing order

    Returns:
        Comma-joined filter specs, disabled stages omitted
    """
    specs = (STAGE_BUILDERS[stage](config) for stage in order)
    return ",".join(spec for spec in specs if spec)
