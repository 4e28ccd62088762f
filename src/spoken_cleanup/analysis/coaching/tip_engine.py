"""
Recording tips derived from audio measurements.

Every rule inspects the merged measurements (and the derived filter config
where it needs it) and returns at most one tip. Tips that a more specific
tip already covers are suppressed, the rest are ranked by priority and
capped at MAX_RECORDING_TIPS.
"""

from collections.abc import Callable

from ..config import (
    CLIPPING_QUIET_INPUT_I,
    CLIPPING_TARGET_PEAK,
    DEFAULT_THRESHOLDS,
    HIGH_CREST_FACTOR,
    HUM_AUDIBLE_FLOOR,
    INPUT_I_QUIET,
    INPUT_I_TOO_QUIET,
    MAX_RECORDING_TIPS,
    MIN_GAIN_RECOMMENDATION,
    OVER_COMPRESSED_CREST,
    PROXIMITY_SKEWNESS,
    SIBILANCE_ROLLOFF,
    SPEECH_RMS_QUIET,
    SPEECH_RMS_TARGET,
    SPEECH_RMS_TOO_QUIET,
    TOO_FAR_SPEECH_RMS,
    WIDE_LOUDNESS_RANGE,
    AnalysisThresholds,
)
from ..logging_utils import get_logger
from ..models import AudioMeasurements
from ..processing.models import FilterChainConfig
from .models import RecordingTip, TipExclusion

logger = get_logger(__name__)

TipRule = Callable[
    [AudioMeasurements, FilterChainConfig | None, AnalysisThresholds], RecordingTip | None
]

HEADROOM_ADVICE = (
    "peaks are already near the ceiling - this usually means plosives or handling "
    "noise are using up your headroom. Try a pop filter or check for vibrations "
    "reaching your microphone."
)
PEAK_LEVELS_NOTE = " (accounting for your existing peak levels)"


def _gain_needed(
    m: AudioMeasurements,
    thresholds: AnalysisThresholds,
    speech_low: float,
    speech_high: float,
    input_low: float,
    input_high: float,
) -> tuple[float, bool] | None:
    """
    Gain that would lift quiet speech to target, clamped to the peak headroom.

    Speech RMS is judged when a speech profile exists, integrated loudness
    otherwise.

    Returns:
        (gain in dB, whether it was clamped), or None if the level is
        outside [low, high)
    """
    if m.speech_profile is not None:
        level = m.speech_profile.rms_level
        if level < speech_low or level >= speech_high:
            return None
        gain = SPEECH_RMS_TARGET - level
    else:
        if m.input_i < input_low or m.input_i >= input_high:
            return None
        gain = thresholds.target_i - m.input_i

    max_safe_gain = thresholds.true_peak_ceiling - m.input_tp
    clamped = gain > max_safe_gain
    return min(gain, max_safe_gain), clamped


def tip_level_too_hot(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    if m.input_tp <= thresholds.true_peak_ceiling:
        return None

    if m.input_tp > 0.0:
        if m.input_i < CLIPPING_QUIET_INPUT_I:
            return RecordingTip(
                priority=10,
                rule_id="level_clipping",
                message=(
                    "Your recording is clipping on peak moments but is otherwise very quiet. "
                    "This usually means plosives or transient noise - a pop filter and "
                    "consistent mic distance will help more than changing gain."
                ),
            )
        reduction = m.input_tp - CLIPPING_TARGET_PEAK
        return RecordingTip(
            priority=10,
            rule_id="level_clipping",
            message=(
                f"Your recording is clipping - turn your microphone gain down by about "
                f"{reduction:.0f} dB to prevent distortion."
            ),
        )

    reduction = m.input_tp - CLIPPING_TARGET_PEAK
    if reduction < -CLIPPING_TARGET_PEAK:
        message = (
            "Your recording is very close to clipping - try turning your microphone gain "
            "down slightly to give yourself some headroom."
        )
    else:
        message = (
            f"Your recording is very close to clipping - turn your microphone gain down by "
            f"about {reduction:.0f} dB to give yourself some headroom."
        )
    return RecordingTip(priority=9, rule_id="level_near_clipping", message=message)


def tip_level_too_quiet(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    result = _gain_needed(
        m, thresholds, float("-inf"), SPEECH_RMS_TOO_QUIET, float("-inf"), INPUT_I_TOO_QUIET
    )
    if result is None:
        return None
    gain, clamped = result

    if gain < MIN_GAIN_RECOMMENDATION:
        message = f"Your speech is quiet but {HEADROOM_ADVICE}"
    else:
        message = (
            f"Your microphone gain is too low - try increasing it by about {gain:.0f} dB"
            f"{PEAK_LEVELS_NOTE if clamped else ''}."
        )
    return RecordingTip(priority=10, rule_id="level_too_quiet", message=message)


def tip_level_quiet(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    result = _gain_needed(
        m, thresholds, SPEECH_RMS_TOO_QUIET, SPEECH_RMS_QUIET, INPUT_I_TOO_QUIET, INPUT_I_QUIET
    )
    if result is None:
        return None
    gain, clamped = result

    if gain < MIN_GAIN_RECOMMENDATION:
        message = f"Your recording is a bit quiet but {HEADROOM_ADVICE}"
    else:
        message = (
            f"Your recording is a bit quiet - increasing your microphone gain by about "
            f"{gain:.0f} dB would improve quality{PEAK_LEVELS_NOTE if clamped else ''}."
        )
    return RecordingTip(priority=8, rule_id="level_quiet", message=message)


def tip_background_noise(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    noise_floor = m.noise_floor
    if m.noise_profile is not None:
        noise_floor = m.noise_profile.measured_noise_floor

    if noise_floor > thresholds.noise_floor_noisy:
        return RecordingTip(
            priority=9,
            rule_id="background_noise_high",
            message=(
                f"Background noise is high ({noise_floor:.0f} dBFS) - try turning off fans, "
                f"air conditioning, or other appliances before recording."
            ),
        )
    if noise_floor > thresholds.noise_floor_elevated:
        return RecordingTip(
            priority=6,
            rule_id="background_noise_moderate",
            message=(
                f"Background noise is slightly elevated ({noise_floor:.0f} dBFS) - if "
                f"possible, turn off any fans or appliances nearby."
            ),
        )
    return None


def tip_mains_hum(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    profile = m.noise_profile
    if profile is None:
        return None
    if (
        profile.entropy >= thresholds.tonal_entropy
        or profile.spectral_flatness >= thresholds.tonal_flatness
        or profile.measured_noise_floor < HUM_AUDIBLE_FLOOR
    ):
        return None
    return RecordingTip(
        priority=7,
        rule_id="mains_hum",
        message=(
            "There's a constant low-frequency hum in your recording - check for nearby "
            "power supplies, monitors, or chargers and move them further from your microphone."
        ),
    )


def tip_too_far_from_mic(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    if m.speech_profile is None or m.noise_profile is None:
        return None
    if (
        m.noise_reduction_headroom >= thresholds.too_far_headroom
        or m.speech_profile.rms_level >= TOO_FAR_SPEECH_RMS
    ):
        return None
    return RecordingTip(
        priority=8,
        rule_id="too_far_from_mic",
        message=(
            "You sound quite far from your microphone. Try moving closer - about a hand's "
            "width (15-20cm) from the mic is ideal for most setups."
        ),
    )


def tip_proximity_effect(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    decrease = m.spectral_decrease
    skewness = m.spectral_skewness
    if m.speech_profile is not None:
        decrease = m.speech_profile.spectral_decrease
        skewness = m.speech_profile.spectral_skewness

    very_warm = decrease < thresholds.decrease_very_warm
    warm_with_skew = decrease < thresholds.decrease_warm and skewness > PROXIMITY_SKEWNESS
    if not very_warm and not warm_with_skew:
        return None
    return RecordingTip(
        priority=5,
        rule_id="proximity_effect",
        message=(
            "Your voice sounds quite boomy - you may be too close to the microphone. "
            "Try moving back slightly or angling the mic to one side."
        ),
    )


def tip_sibilance(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    if config is None or config.deess_intensity <= thresholds.deess_intensity_normal:
        return None

    centroid = m.spectral_centroid
    rolloff = m.spectral_rolloff
    if m.speech_profile is not None:
        if m.speech_profile.spectral_centroid > 0:
            centroid = m.speech_profile.spectral_centroid
        if m.speech_profile.spectral_rolloff > 0:
            rolloff = m.speech_profile.spectral_rolloff

    if centroid <= thresholds.bright_centroid or rolloff <= SIBILANCE_ROLLOFF:
        return None
    return RecordingTip(
        priority=4,
        rule_id="sibilance",
        message=(
            "Your recording has noticeable sibilance (harsh 's' and 'sh' sounds). Try "
            "angling your microphone slightly off-axis - point it at your chin rather "
            "than directly at your mouth."
        ),
    )


def tip_dynamic_range(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    if m.input_lra <= WIDE_LOUDNESS_RANGE:
        return None
    return RecordingTip(
        priority=5,
        rule_id="dynamic_range",
        message=(
            "Your speaking volume varies quite a lot. Try to maintain a consistent distance "
            "from your microphone and a steady speaking level."
        ),
    )


def _speech_crest(m: AudioMeasurements) -> float:
    if m.speech_profile is not None and m.speech_profile.crest_factor > 0:
        return m.speech_profile.crest_factor
    return m.crest_factor


def tip_over_compressed(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    crest = _speech_crest(m)
    # 0 means unmeasured
    if crest >= OVER_COMPRESSED_CREST or crest == 0:
        return None
    return RecordingTip(
        priority=6,
        rule_id="over_compressed",
        message=(
            "Your recording sounds heavily compressed, possibly by automatic gain control. "
            "If your microphone software has an 'AGC' or 'auto-level' setting, try turning "
            "it off and setting the gain manually."
        ),
    )


def tip_poor_snr(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    headroom = m.noise_reduction_headroom
    if headroom >= thresholds.poor_snr_headroom or headroom == 0:
        return None
    return RecordingTip(
        priority=7,
        rule_id="poor_snr",
        message=(
            "The gap between your voice and the background noise is very small. Move closer "
            "to your microphone and reduce background noise if possible."
        ),
    )


def tip_high_crest_factor(
    m: AudioMeasurements, config: FilterChainConfig | None, thresholds: AnalysisThresholds
) -> RecordingTip | None:
    crest = _speech_crest(m)
    if crest <= HIGH_CREST_FACTOR or crest == 0:
        return None
    return RecordingTip(
        priority=7,
        rule_id="high_crest_factor",
        message=(
            "Your recording has a large gap between peak levels and average speech volume. "
            "This is usually caused by plosives, handling noise, or varying distance from "
            "the microphone. Try using a pop filter and keeping a consistent distance from "
            "your mic."
        ),
    )


TIP_RULES: tuple[TipRule, ...] = (
    tip_level_too_hot,
    tip_level_too_quiet,
    tip_level_quiet,
    tip_background_noise,
    tip_mains_hum,
    tip_too_far_from_mic,
    tip_proximity_effect,
    tip_sibilance,
    tip_dynamic_range,
    tip_over_compressed,
    tip_poor_snr,
    tip_high_crest_factor,
)

TIP_EXCLUSIONS: tuple[TipExclusion, ...] = (
    # Distance is the root cause of quiet speech
    TipExclusion(
        rule_ids=frozenset({"level_too_quiet", "level_quiet"}),
        suppressed_by=frozenset({"too_far_from_mic"}),
    ),
    # Clipping explains quiet speech unless the transients are the problem
    TipExclusion(
        rule_ids=frozenset({"level_too_quiet", "level_quiet"}),
        suppressed_by=frozenset({"level_clipping", "level_near_clipping"}),
        unless=frozenset({"high_crest_factor"}),
    ),
    TipExclusion(
        rule_ids=frozenset({"poor_snr"}),
        suppressed_by=frozenset({"too_far_from_mic"}),
    ),
)


def apply_exclusions(
    tips: list[RecordingTip],
    fired: set[str],
    exclusions: tuple[TipExclusion, ...] = TIP_EXCLUSIONS,
) -> list[RecordingTip]:
    """Drop tips made redundant by a more specific tip that also fired."""
    return [
        tip
        for tip in tips
        if not any(exclusion.suppresses(tip.rule_id, fired) for exclusion in exclusions)
    ]


def generate_recording_tips(
    measurements: AudioMeasurements | None,
    config: FilterChainConfig | None = None,
    thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS,
    rules: tuple[TipRule, ...] = TIP_RULES,
) -> list[RecordingTip]:
    """
    Generate prioritised recording advice.

    Args:
        measurements: Merged measurements, or None
        config: Derived filter config; rules that need it are skipped when None
        thresholds: Shared thresholds, the same instance the configurator used
        rules: Ordered rule table

    Returns:
        At most MAX_RECORDING_TIPS tips, highest priority first
    """
    if measurements is None:
        return []

    tips: list[RecordingTip] = []
    fired: set[str] = set()
    for rule in rules:
        tip = rule(measurements, config, thresholds)
        if tip is not None:
            tips.append(tip)
            fired.add(tip.rule_id)

    tips = apply_exclusions(tips, fired)
    # sorted() is stable, so equal priorities keep rule order
    tips = sorted(tips, key=lambda tip: -tip.priority)[:MAX_RECORDING_TIPS]

    logger.debug(
        f"Recording tips: fired={sorted(fired)} kept={[tip.rule_id for tip in tips]}"
    )
    return tips


def wrap_text(text: str, max_width: int, indent: str = "") -> str:
    """
    Word-wrap text, prefixing continuation lines with indent.

    Words longer than max_width are kept whole on their own line.

    Args:
        text: Text to wrap
        max_width: Maximum line width, excluding the indent
        indent: Prefix for every line after the first

    Returns:
        Wrapped text, or "" for empty input
    """
    lines: list[str] = []
    current = ""
    for word in text.split():
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= max_width:
            current += " " + word
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return ("\n" + indent).join(lines)
