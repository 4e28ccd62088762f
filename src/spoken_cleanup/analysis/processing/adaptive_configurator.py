"""
Adaptive filter chain configuration.

Maps a merged AudioMeasurements onto a fully determined FilterChainConfig.
Each derivation rule reads its own subset of the measurements and returns
updates for its own fields; the rules are folded over the defaults in
order and the result is sanitised.
"""

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

from ..config import (
    ANLMDN_STRENGTH_FACTOR,
    ANLMDN_STRENGTH_MAX,
    ARNNDN_MIX,
    COMP_DR_DYNAMIC,
    COMP_DR_VERY_DYNAMIC,
    COMP_LRA_MODERATE,
    COMP_LRA_WIDE,
    COMP_MIX_ADJUST,
    COMP_MIX_CLEAN,
    COMP_MIX_FLOOR_CLEAN,
    COMP_MIX_FLOOR_MODERATE,
    COMP_MIX_MODERATE,
    COMP_MIX_NOISY,
    DEESS_CENTROID_BRIGHT,
    DEESS_CENTROID_NORMAL,
    DEESS_EXTENDED_FACTOR,
    DEESS_INTENSITY_BRIGHT,
    DEESS_INTENSITY_DARK,
    DEESS_LIMITED_FACTOR,
    DEESS_MAX_INTENSITY,
    DEESS_MIN_INTENSITY,
    DEESS_ROLLOFF_EXTENDED,
    DEESS_ROLLOFF_LIMITED,
    DEESS_ROLLOFF_NONE,
    DEFAULT_THRESHOLDS,
    DENOISE_EXPANSION_THRESHOLD,
    GATE_ATTACK_FAST,
    GATE_ATTACK_MODERATE,
    GATE_ATTACK_SLOW,
    GATE_CLEAN_CREST_MAX,
    GATE_CREST_PEAK_REFERENCE,
    GATE_ENTROPY_CLEAN,
    GATE_ENTROPY_MIXED,
    GATE_FLUX_ATTACK_FACTOR,
    GATE_FLUX_DYNAMIC,
    GATE_LRA_MODERATE,
    GATE_LRA_WIDE,
    GATE_MAX_DIFF_HIGH,
    GATE_MAX_DIFF_MODERATE,
    GATE_PEAK_MARGIN,
    GATE_RANGE_BROADBAND_DB,
    GATE_RANGE_DEFAULT_DB,
    GATE_RANGE_MIXED_DB,
    GATE_RANGE_TONAL_DB,
    GATE_RATIO_GENTLE,
    GATE_RATIO_MODERATE,
    GATE_RATIO_TIGHT,
    GATE_RELEASE_BASE,
    GATE_RELEASE_HOLD,
    GATE_RELEASE_LOW_LRA,
    GATE_RELEASE_TONAL,
    GATE_TARGET_REDUCTION,
    GATE_TARGET_THRESHOLD_DB,
    GATE_THRESHOLD_MAX_DB,
    GATE_THRESHOLD_MIN_DB,
    HIGHPASS_BOOST_LARGE,
    HIGHPASS_BOOST_SMALL,
    HIGHPASS_BRIGHT,
    HIGHPASS_CENTROID_VERY_BRIGHT,
    HIGHPASS_DARK,
    HIGHPASS_GAP_LARGE,
    HIGHPASS_GAP_SMALL,
    HIGHPASS_MAX,
    HIGHPASS_NORMAL,
    HIGHPASS_VERY_WARM_CAP,
    HIGHPASS_WARM_CAP,
    NR_BASE,
    NR_EXPANSION_MAX,
    NR_EXPANSION_MIN,
    NR_MAX,
    NR_MIN,
    NR_TARGET_FLOOR,
    NR_THRESHOLD_OFFSET,
    SPEECHNORM_EXPANSION_MAX,
    SPEECHNORM_LUFS_OFFSET,
    AnalysisThresholds,
)
from ..dsp_utils import clamp, db_to_linear, sanitize_float
from ..logging_utils import get_logger
from ..models import AudioMeasurements
from .models import FilterChainConfig, GateDetection

logger = get_logger(__name__)

Updates = dict[str, Any]


@dataclass(frozen=True)
class DerivationContext:
    """Inputs shared by every derivation rule."""

    measurements: AudioMeasurements
    thresholds: AnalysisThresholds
    lufs_gap: float
    noise_floor: float


@dataclass(frozen=True)
class DerivationRule:
    """A named rule producing updates for its own config fields."""

    name: str
    derive: Callable[[DerivationContext, FilterChainConfig], Updates]


def lufs_gap(target_i: float, input_i: float) -> float:
    """Gap between target and input loudness, 0 when input is unmeasured."""
    if input_i != 0.0:
        return target_i - input_i
    return 0.0


def _derive_highpass(ctx: DerivationContext, config: FilterChainConfig) -> Updates:
    m = ctx.measurements
    if m.spectral_centroid <= 0:
        return {}

    if m.spectral_centroid > HIGHPASS_CENTROID_VERY_BRIGHT:
        freq = HIGHPASS_BRIGHT
    elif m.spectral_centroid > ctx.thresholds.bright_centroid:
        freq = HIGHPASS_NORMAL
    else:
        freq = HIGHPASS_DARK

    if ctx.lufs_gap > HIGHPASS_GAP_LARGE:
        freq += HIGHPASS_BOOST_LARGE
    elif ctx.lufs_gap > HIGHPASS_GAP_SMALL:
        freq += HIGHPASS_BOOST_SMALL
    freq = min(freq, HIGHPASS_MAX)

    # Warm voices keep their low end
    decrease = (
        m.speech_profile.spectral_decrease
        if m.speech_profile is not None
        else m.spectral_decrease
    )
    if decrease < ctx.thresholds.decrease_very_warm:
        freq = min(freq, HIGHPASS_VERY_WARM_CAP)
    elif decrease < ctx.thresholds.decrease_warm:
        freq = min(freq, HIGHPASS_WARM_CAP)

    return {"highpass_freq": freq}


def _derive_noise_reduction(ctx: DerivationContext, config: FilterChainConfig) -> Updates:
    if ctx.measurements.input_i == 0.0:
        return {"noise_reduction": NR_BASE}
    return {"noise_reduction": clamp(NR_BASE + ctx.lufs_gap, NR_MIN, NR_MAX)}


def _deess_base(centroid: float, thresholds: AnalysisThresholds) -> float:
    if centroid > DEESS_CENTROID_BRIGHT:
        return DEESS_INTENSITY_BRIGHT
    if centroid > DEESS_CENTROID_NORMAL:
        return thresholds.deess_intensity_normal
    return DEESS_INTENSITY_DARK


def _derive_deesser(ctx: DerivationContext, config: FilterChainConfig) -> Updates:
    m = ctx.measurements
    if m.spectral_centroid <= 0:
        return {}

    base = _deess_base(m.spectral_centroid, ctx.thresholds)

    if m.spectral_rolloff <= 0:
        return {"deess_intensity": base}

    if m.spectral_rolloff < DEESS_ROLLOFF_NONE:
        intensity = 0.0
    elif m.spectral_rolloff < DEESS_ROLLOFF_LIMITED:
        intensity = base * DEESS_LIMITED_FACTOR
        if intensity < DEESS_MIN_INTENSITY:
            intensity = 0.0
    elif m.spectral_rolloff > DEESS_ROLLOFF_EXTENDED:
        intensity = min(base * DEESS_EXTENDED_FACTOR, DEESS_MAX_INTENSITY)
    else:
        intensity = base
    return {"deess_intensity": intensity}


def gate_ratio_for_lra(lra: float) -> float:
    """Gate ratio for a loudness range; wide ranges get a gentler ratio."""
    if lra > GATE_LRA_WIDE:
        return GATE_RATIO_GENTLE
    if lra > GATE_LRA_MODERATE:
        return GATE_RATIO_MODERATE
    return GATE_RATIO_TIGHT


def _derive_gate(ctx: DerivationContext, config: FilterChainConfig) -> Updates:
    m = ctx.measurements
    profile = m.noise_profile
    ratio = gate_ratio_for_lra(m.input_lra)
    updates: Updates = {"gate_ratio": ratio}

    # Threshold: the gate must pull the floor down by the target reduction
    if profile is not None and (
        profile.crest_factor > GATE_CREST_PEAK_REFERENCE and profile.peak_level != 0.0
    ):
        threshold_db = profile.peak_level + GATE_PEAK_MARGIN
    elif ctx.noise_floor < 0:
        gap = GATE_TARGET_REDUCTION / (1.0 - 1.0 / ratio)
        threshold_db = max(ctx.noise_floor + gap, GATE_TARGET_THRESHOLD_DB)
    else:
        threshold_db = None

    if threshold_db is not None:
        threshold_db = clamp(threshold_db, GATE_THRESHOLD_MIN_DB, GATE_THRESHOLD_MAX_DB)
        updates["gate_threshold"] = db_to_linear(threshold_db)

    tonal = False
    if profile is None:
        updates["gate_range"] = db_to_linear(GATE_RANGE_DEFAULT_DB)
    else:
        tonal = profile.entropy < ctx.thresholds.tonal_entropy
        if tonal:
            range_db = GATE_RANGE_TONAL_DB
        elif profile.entropy < GATE_ENTROPY_MIXED:
            range_db = GATE_RANGE_MIXED_DB
        else:
            range_db = GATE_RANGE_BROADBAND_DB
        updates["gate_range"] = db_to_linear(range_db)
        if profile.entropy > GATE_ENTROPY_CLEAN and profile.crest_factor < GATE_CLEAN_CREST_MAX:
            updates["gate_detection"] = GateDetection.PEAK

    if m.max_difference > GATE_MAX_DIFF_HIGH:
        attack = GATE_ATTACK_FAST
    elif m.max_difference > GATE_MAX_DIFF_MODERATE:
        attack = GATE_ATTACK_MODERATE
    else:
        attack = GATE_ATTACK_SLOW
    if m.spectral_flux > GATE_FLUX_DYNAMIC:
        attack *= GATE_FLUX_ATTACK_FACTOR
    updates["gate_attack"] = attack

    release = GATE_RELEASE_BASE + GATE_RELEASE_HOLD
    if tonal:
        release += GATE_RELEASE_TONAL
    if m.input_lra < GATE_LRA_MODERATE:
        release += GATE_RELEASE_LOW_LRA
    updates["gate_release"] = release

    return updates


def _derive_compressor_level(ctx: DerivationContext, config: FilterChainConfig) -> Updates:
    dynamic_range = ctx.measurements.dynamic_range
    if dynamic_range <= 0:
        return {}
    if dynamic_range > COMP_DR_VERY_DYNAMIC:
        return {"comp_ratio": 2.0, "comp_threshold": -16.0, "comp_makeup": 1.0}
    if dynamic_range > COMP_DR_DYNAMIC:
        return {"comp_ratio": 3.0, "comp_threshold": -18.0, "comp_makeup": 2.0}
    return {"comp_ratio": 4.0, "comp_threshold": -20.0, "comp_makeup": 3.0}


def _derive_compressor_timing(ctx: DerivationContext, config: FilterChainConfig) -> Updates:
    lra = ctx.measurements.input_lra
    if lra > COMP_LRA_WIDE:
        return {"comp_attack": 25.0, "comp_release": 150.0}
    if lra > COMP_LRA_MODERATE:
        return {"comp_attack": 20.0, "comp_release": 100.0}
    return {"comp_attack": 15.0, "comp_release": 80.0}


def _derive_compressor_mix(ctx: DerivationContext, config: FilterChainConfig) -> Updates:
    if ctx.noise_floor < COMP_MIX_FLOOR_CLEAN:
        mix = COMP_MIX_CLEAN
    elif ctx.noise_floor < COMP_MIX_FLOOR_MODERATE:
        mix = COMP_MIX_MODERATE
    else:
        mix = COMP_MIX_NOISY

    dynamic_range = ctx.measurements.dynamic_range
    if dynamic_range > COMP_DR_VERY_DYNAMIC:
        mix -= COMP_MIX_ADJUST
    elif dynamic_range <= COMP_DR_DYNAMIC:
        mix = min(1.0, mix + COMP_MIX_ADJUST)
    return {"comp_mix": mix}


def _derive_expander(ctx: DerivationContext, config: FilterChainConfig) -> Updates:
    profile = ctx.measurements.noise_profile
    if profile is None or profile.measured_noise_floor >= 0:
        return {}
    floor = profile.measured_noise_floor
    return {
        "nr_threshold": floor + NR_THRESHOLD_OFFSET,
        "nr_expansion": clamp(floor - NR_TARGET_FLOOR, NR_EXPANSION_MIN, NR_EXPANSION_MAX),
    }


def _derive_speechnorm(ctx: DerivationContext, config: FilterChainConfig) -> Updates:
    if ctx.measurements.input_i == 0.0:
        return {}
    expansion = clamp(math.pow(10, ctx.lufs_gap / 20.0), 1.0, SPEECHNORM_EXPANSION_MAX)
    rms = clamp(math.pow(10, (config.target_i + SPEECHNORM_LUFS_OFFSET) / 20.0), 0.0, 1.0)
    return {"speechnorm_expansion": expansion, "speechnorm_rms": rms}


def _derive_denoise(ctx: DerivationContext, config: FilterChainConfig) -> Updates:
    expansion = config.speechnorm_expansion
    if expansion >= DENOISE_EXPANSION_THRESHOLD:
        return {
            "arnndn_enabled": True,
            "arnndn_mix": ARNNDN_MIX,
            "anlmdn_enabled": True,
            "anlmdn_strength": clamp(
                ANLMDN_STRENGTH_FACTOR * expansion * expansion, 0.0, ANLMDN_STRENGTH_MAX
            ),
        }
    return {"arnndn_enabled": False, "anlmdn_enabled": False}


DERIVATION_RULES: tuple[DerivationRule, ...] = (
    DerivationRule("highpass", _derive_highpass),
    DerivationRule("noise_reduction", _derive_noise_reduction),
    DerivationRule("deesser", _derive_deesser),
    DerivationRule("gate", _derive_gate),
    DerivationRule("compressor_level", _derive_compressor_level),
    DerivationRule("compressor_timing", _derive_compressor_timing),
    DerivationRule("compressor_mix", _derive_compressor_mix),
    DerivationRule("expander", _derive_expander),
    DerivationRule("speechnorm", _derive_speechnorm),
    DerivationRule("denoise", _derive_denoise),
)


def sanitize_config(config: FilterChainConfig) -> FilterChainConfig:
    """
    Replace NaN or infinite values with the field defaults.

    Args:
        config: Config produced by the derivation rules

    Returns:
        Config with every float field finite and a positive gate threshold
    """
    defaults = FilterChainConfig()
    updates: Updates = {}
    for f in fields(FilterChainConfig):
        value = getattr(config, f.name)
        if isinstance(value, bool) or not isinstance(value, float | int):
            continue
        clean = sanitize_float(float(value), getattr(defaults, f.name))
        if clean != value:
            updates[f.name] = clean

    gate_threshold = updates.get("gate_threshold", config.gate_threshold)
    if gate_threshold <= 0:
        updates["gate_threshold"] = defaults.gate_threshold

    if updates:
        logger.warning(f"Sanitised non-finite config fields: {', '.join(sorted(updates))}")
        return replace(config, **updates)
    return config


class AdaptiveConfigurator:
    """Derives filter chain parameters from measurements with an ordered rule table."""

    def __init__(
        self,
        thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS,
        rules: tuple[DerivationRule, ...] = DERIVATION_RULES,
    ) -> None:
        self.thresholds = thresholds
        self.rules = rules

    def configure(self, measurements: AudioMeasurements) -> FilterChainConfig:
        """
        Derive a FilterChainConfig from merged measurements.

        Args:
            measurements: Whole-file measurements with profiles merged in

        Returns:
            Immutable config; equal measurements always give equal configs
        """
        ctx = DerivationContext(
            measurements=measurements,
            thresholds=self.thresholds,
            lufs_gap=lufs_gap(self.thresholds.target_i, measurements.input_i),
            noise_floor=measurements.effective_noise_floor,
        )
        config = FilterChainConfig(
            target_i=self.thresholds.target_i, target_tp=self.thresholds.true_peak_ceiling
        )

        for rule in self.rules:
            updates = rule.derive(ctx, config)
            if updates:
                logger.trace(f"Rule {rule.name}: {_format_updates(updates)}")
                config = replace(config, **updates)

        config = sanitize_config(config)
        logger.debug(
            f"Configured chain: highpass={config.highpass_freq:.0f} Hz "
            f"gate={config.gate_threshold:.4f} nr={config.noise_reduction:.1f} dB "
            f"deess={config.deess_intensity:.2f} speechnorm={config.speechnorm_expansion:.2f}x"
        )
        return config


def _format_updates(updates: Mapping[str, Any]) -> str:
    return " ".join(f"{name}={value}" for name, value in updates.items())


def configure(
    measurements: AudioMeasurements, thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS
) -> FilterChainConfig:
    """Derive a FilterChainConfig with the default rule table."""
    return AdaptiveConfigurator(thresholds).configure(measurements)
