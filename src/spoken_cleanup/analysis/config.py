"""Configuration constants for spoken-word analysis and adaptive cleanup."""

from dataclasses import dataclass

# Shared threshold set version - bump when any value in AnalysisThresholds changes
THRESHOLDS_VERSION = "1.2"

# Loudness Targets
TARGET_INTEGRATED_LOUDNESS = -18.0  # LUFS - podcast/broadcast target
TRUE_PEAK_CEILING = -1.0  # dBTP - never push peaks above this
LOUDNESS_FLOOR = -70.0  # LUFS - absolute gate, used for digital silence
LINEAR_TO_DB_FLOOR = -120.0  # dB - practical floor for zero amplitude

# Shared Thresholds (referenced by both the configurator and the tip engine)
NOISE_FLOOR_NOISY = -45.0  # dBFS - noise floor above this is high
NOISE_FLOOR_ELEVATED = -55.0  # dBFS - noise floor above this is elevated
MIN_SNR_MARGIN = 20.0  # dB - speech should sit this far above the floor
TONAL_ENTROPY = 0.30  # spectral entropy below this means tonal noise
TONAL_FLATNESS = 0.3  # spectral flatness below this confirms tonal noise
BRIGHT_CENTROID = 4000.0  # Hz - centroid above this is a bright voice
DEESS_INTENSITY_NORMAL = 0.5  # 0-1 - de-esser intensity for a normal voice
DECREASE_WARM = -0.05  # spectral decrease below this is a warm voice
DECREASE_VERY_WARM = -0.10  # spectral decrease below this is very warm

# Window Scanning
ANALYSIS_WINDOW_SECONDS = 0.25  # seconds - fixed analysis window
SILENCE_MIN_WINDOWS = 4  # consecutive windows - 1s minimum silence run
SPEECH_MIN_WINDOWS = 8  # consecutive windows - 2s minimum speech run
SILENCE_THRESHOLD_MARGIN = 6.0  # dB - silence threshold above pre-scan floor
SILENCE_THRESHOLD_MAX = -35.0  # dBFS - silence threshold never exceeds this
SPEECH_VOICING_MIN = 0.5  # 0-1 - voiced fraction for a speech window
PROGRESS_REPORT_INTERVAL = 20  # windows between progress callbacks
PRESCAN_FLOOR_PERCENTILE = 10.0  # percent - quiet windows used for pre-scan

# Candidate Scoring
SCORE_DURATION_TARGET = 2.0  # seconds - duration credit saturates here
SILENCE_LEVEL_SPAN = 30.0  # dB - quietness range mapped onto 0-1
SILENCE_STABILITY_SPAN = 3.0  # dB - RMS std dev halving the stability credit
SILENCE_TRANSIENT_CREST = 12.0  # dB - crest above this is penalised
SILENCE_TRANSIENT_SPAN = 20.0  # dB - crest range mapped onto the penalty
SILENCE_WEIGHTS = (0.3, 0.3, 0.3, 0.1)  # duration, quietness, stability, transient
SPEECH_LEVEL_LOW = -60.0  # dBFS - speech level credit starts here
SPEECH_LEVEL_SPAN = 40.0  # dB - speech level range mapped onto 0-1
SPEECH_WEIGHTS = (0.2, 0.4, 0.2, 0.2)  # duration, voicing, level, stability
SPEECH_STABILITY_SPAN = 6.0  # dB - RMS std dev halving the stability credit

# Golden Sub-Region Refinement
GOLDEN_WINDOW_COUNT = 8  # analysis windows - 2s refined sub-region
GOLDEN_STEP = 1  # analysis windows between sub-window starts

# Profile Merge
GATE_OFFSET_CLEAN = 10.0  # dB - offset above a floor below -60 dBFS
GATE_OFFSET_MODERATE = 8.0  # dB - offset above a floor below -50 dBFS
GATE_OFFSET_NOISY = 6.0  # dB - offset above noisier floors
GATE_FLOOR_CLEAN = -60.0  # dBFS
GATE_FLOOR_MODERATE = -50.0  # dBFS

# Highpass
HIGHPASS_DEFAULT = 80.0  # Hz - used when centroid is unmeasured
HIGHPASS_BRIGHT = 100.0  # Hz - centroid above 6 kHz
HIGHPASS_NORMAL = 80.0  # Hz - centroid above BRIGHT_CENTROID
HIGHPASS_DARK = 60.0  # Hz - warm/dark voice
HIGHPASS_CENTROID_VERY_BRIGHT = 6000.0  # Hz
HIGHPASS_BOOST_LARGE = 40.0  # Hz - LUFS gap above 25 dB
HIGHPASS_BOOST_SMALL = 20.0  # Hz - LUFS gap above 15 dB
HIGHPASS_GAP_LARGE = 25.0  # dB
HIGHPASS_GAP_SMALL = 15.0  # dB
HIGHPASS_MAX = 120.0  # Hz - protects voice fundamentals
HIGHPASS_WARM_CAP = 80.0  # Hz
HIGHPASS_VERY_WARM_CAP = 60.0  # Hz

# Noise Reduction
NR_BASE = 12.0  # dB - reduction for recordings near target
NR_MIN = 6.0  # dB
NR_MAX = 40.0  # dB - afftdn instability beyond this
NR_THRESHOLD_DEFAULT = -55.0  # dB - expander threshold without a noise profile
NR_THRESHOLD_OFFSET = 5.0  # dB - expander threshold above measured floor
NR_EXPANSION_DEFAULT = 6.0  # dB
NR_TARGET_FLOOR = -70.0  # dBFS - floor the expander aims for
NR_EXPANSION_MIN = 6.0  # dB
NR_EXPANSION_MAX = 24.0  # dB

# De-esser
DEESS_CENTROID_BRIGHT = 7000.0  # Hz
DEESS_CENTROID_NORMAL = 6000.0  # Hz
DEESS_INTENSITY_BRIGHT = 0.6
DEESS_INTENSITY_DARK = 0.4
DEESS_ROLLOFF_NONE = 6000.0  # Hz - no sibilance expected below this
DEESS_ROLLOFF_LIMITED = 8000.0  # Hz
DEESS_ROLLOFF_EXTENDED = 12000.0  # Hz
DEESS_LIMITED_FACTOR = 0.7
DEESS_EXTENDED_FACTOR = 1.2
DEESS_MIN_INTENSITY = 0.3  # below this the de-esser is skipped
DEESS_MAX_INTENSITY = 0.8

# Gate
GATE_THRESHOLD_DEFAULT = 0.01  # linear - -40 dBFS
GATE_THRESHOLD_MIN_DB = -50.0  # dB - quiet speech floor
GATE_THRESHOLD_MAX_DB = -25.0  # dB - never gate above this
GATE_TARGET_THRESHOLD_DB = -40.0  # dB - target for clean recordings
GATE_TARGET_REDUCTION = 12.0  # dB - reduction the ratio must deliver
GATE_CREST_PEAK_REFERENCE = 20.0  # dB - silence crest that switches to peak reference
GATE_PEAK_MARGIN = 3.0  # dB - above silence peak
GATE_LRA_WIDE = 15.0  # LU
GATE_LRA_MODERATE = 10.0  # LU
GATE_RATIO_GENTLE = 1.5
GATE_RATIO_MODERATE = 2.0
GATE_RATIO_TIGHT = 2.5
GATE_ENTROPY_MIXED = 0.60
GATE_ENTROPY_CLEAN = 0.70  # above this with low crest uses peak detection
GATE_CLEAN_CREST_MAX = 15.0  # dB
GATE_RANGE_TONAL_DB = -16.0  # dB
GATE_RANGE_MIXED_DB = -21.0  # dB
GATE_RANGE_BROADBAND_DB = -27.0  # dB
GATE_RANGE_DEFAULT_DB = -24.0  # dB - no noise profile
GATE_MAX_DIFF_HIGH = 0.25  # 0-1 - sharp transients
GATE_MAX_DIFF_MODERATE = 0.10  # 0-1
GATE_ATTACK_FAST = 7.0  # ms
GATE_ATTACK_MODERATE = 12.0  # ms
GATE_ATTACK_SLOW = 17.0  # ms
GATE_FLUX_DYNAMIC = 0.05  # flux above this shortens attack
GATE_FLUX_ATTACK_FACTOR = 0.8
GATE_RELEASE_BASE = 250.0  # ms
GATE_RELEASE_HOLD = 50.0  # ms - compensates for the missing hold parameter
GATE_RELEASE_TONAL = 75.0  # ms - hides pumping on tonal noise
GATE_RELEASE_LOW_LRA = 100.0  # ms - extension for LRA below GATE_LRA_MODERATE

# Compressor
COMP_RATIO_DEFAULT = 2.5
COMP_THRESHOLD_DEFAULT = -20.0  # dB
COMP_MAKEUP_DEFAULT = 3.0  # dB
COMP_ATTACK_DEFAULT = 20.0  # ms
COMP_RELEASE_DEFAULT = 100.0  # ms
COMP_MIX_DEFAULT = 1.0
COMP_DR_VERY_DYNAMIC = 30.0  # dB
COMP_DR_DYNAMIC = 20.0  # dB
COMP_LRA_WIDE = 15.0  # LU
COMP_LRA_MODERATE = 10.0  # LU
COMP_MIX_FLOOR_CLEAN = -50.0  # dBFS
COMP_MIX_FLOOR_MODERATE = -40.0  # dBFS
COMP_MIX_CLEAN = 0.95
COMP_MIX_MODERATE = 0.85
COMP_MIX_NOISY = 0.75
COMP_MIX_ADJUST = 0.10

# Speech Normalization and Denoise
SPEECHNORM_EXPANSION_DEFAULT = 1.0
SPEECHNORM_EXPANSION_MAX = 10.0  # 20 dB
SPEECHNORM_RMS_DEFAULT = 0.0
SPEECHNORM_LUFS_OFFSET = 23.0  # LUFS ~= -23 + 20*log10(RMS)
DENOISE_EXPANSION_THRESHOLD = 8.0  # 18 dB of uplift enables denoise
ARNNDN_MIX = 0.8
ANLMDN_STRENGTH_FACTOR = 0.00001
ANLMDN_STRENGTH_MAX = 0.01

# Recording Tips
MAX_RECORDING_TIPS = 5
SPEECH_RMS_TOO_QUIET = -42.0  # dBFS
SPEECH_RMS_QUIET = -36.0  # dBFS
SPEECH_RMS_TARGET = -24.0  # dBFS
INPUT_I_TOO_QUIET = -30.0  # LUFS
INPUT_I_QUIET = -24.0  # LUFS
CLIPPING_QUIET_INPUT_I = -28.0  # LUFS - clipping below this is transient
CLIPPING_TARGET_PEAK = -3.0  # dBTP - reduction target
MIN_GAIN_RECOMMENDATION = 2.0  # dB - smaller gains point at headroom problems
HUM_AUDIBLE_FLOOR = -65.0  # dBFS
TOO_FAR_SPEECH_RMS = -30.0  # dBFS
PROXIMITY_SKEWNESS = 2.5
SIBILANCE_ROLLOFF = 10000.0  # Hz
WIDE_LOUDNESS_RANGE = 18.0  # LU
OVER_COMPRESSED_CREST = 6.0  # dB
HIGH_CREST_FACTOR = 20.0  # dB
TIP_WRAP_WIDTH = 76  # columns

# Audio Input
VAD_AGGRESSIVENESS = 2  # 0-3, higher = more aggressive filtering
VAD_FRAME_DURATION = 30  # milliseconds
VAD_SAMPLE_RATE = 16000  # Hz - voicing is measured at this rate
VAD_SUPPORTED_SAMPLE_RATES = [8000, 16000, 32000, 48000]  # Hz
VAD_SUPPORTED_FRAME_DURATIONS = [10, 20, 30]  # milliseconds
SPECTRAL_ROLLOFF_FRACTION = 0.85  # energy fraction for rolloff
TRUE_PEAK_OVERSAMPLE = 4  # x oversampling for true peak
TRUE_PEAK_BLOCK_SAMPLES = 48000  # samples oversampled per block
TRUE_PEAK_BLOCK_OVERLAP = 64  # samples of context each side, wider than the filter
SHORT_TERM_LOUDNESS_SECONDS = 3.0  # seconds - EBU short-term block
SHORT_TERM_HOP_SECONDS = 1.0  # seconds
LRA_RELATIVE_GATE = -20.0  # LU below the mean short-term loudness
LRA_LOW_PERCENTILE = 10.0
LRA_HIGH_PERCENTILE = 95.0
MIN_ANALYSIS_SECONDS = 0.5  # seconds - shorter files cannot be measured
BATCH_MAX_CONCURRENCY = 4  # files analysed at once


@dataclass(frozen=True)
class AnalysisThresholds:
    """Thresholds shared by the adaptive configurator and the tip engine.

    Both components read these from one instance so "what the processor does"
    and "what the tips say" cannot drift apart.
    """

    version: str = THRESHOLDS_VERSION
    target_i: float = TARGET_INTEGRATED_LOUDNESS
    true_peak_ceiling: float = TRUE_PEAK_CEILING
    noise_floor_noisy: float = NOISE_FLOOR_NOISY
    noise_floor_elevated: float = NOISE_FLOOR_ELEVATED
    min_snr_margin: float = MIN_SNR_MARGIN
    tonal_entropy: float = TONAL_ENTROPY
    tonal_flatness: float = TONAL_FLATNESS
    bright_centroid: float = BRIGHT_CENTROID
    deess_intensity_normal: float = DEESS_INTENSITY_NORMAL
    decrease_warm: float = DECREASE_WARM
    decrease_very_warm: float = DECREASE_VERY_WARM

    @property
    def too_far_headroom(self) -> float:
        """Headroom below which quiet speech means the mic is too far (dB)."""
        return self.min_snr_margin * 0.75

    @property
    def poor_snr_headroom(self) -> float:
        """Headroom below which the noise gap is critically small (dB)."""
        return self.min_snr_margin / 2


DEFAULT_THRESHOLDS = AnalysisThresholds()
