"""Spoken-word analysis: region election, adaptive filter configuration and recording tips."""

from .audio_reader import DecodedAudio, read_wav
from .coaching import RecordingTip, generate_recording_tips, wrap_text
from .config import DEFAULT_THRESHOLDS, THRESHOLDS_VERSION, AnalysisThresholds
from .exceptions import (
    AnalysisCancelledError,
    AnalysisError,
    AudioDecodeError,
    InsufficientAudioError,
    SpokenCleanupError,
    UnsupportedAudioFormatError,
)
from .interfaces import RefinementStrategy, ScoringHeuristic
from .models import (
    AudioMeasurements,
    CancellationToken,
    NoiseProfile,
    RegionCandidate,
    RegionKind,
    SpeechProfile,
    Window,
    WindowMeasurement,
)
from .pipeline import AnalysisPipeline, AnalysisResult, BatchAnalyzer, FileOutcome
from .processing import AdaptiveConfigurator, FilterChainConfig, build_filter_spec, configure
from .profile_builder import build_noise_profile, build_speech_profile, merge_profiles
from .region_elector import GoldenSubRegionRefiner, RegionElector
from .region_scanner import RegionScanner
from .scoring import SilenceHeuristic, SpeechHeuristic

__all__ = [
    "AudioMeasurements",
    "RegionCandidate",
    "RegionKind",
    "Window",
    "WindowMeasurement",
    "NoiseProfile",
    "SpeechProfile",
    "CancellationToken",
    "AnalysisThresholds",
    "DEFAULT_THRESHOLDS",
    "THRESHOLDS_VERSION",
    "ScoringHeuristic",
    "RefinementStrategy",
    "SilenceHeuristic",
    "SpeechHeuristic",
    "RegionScanner",
    "RegionElector",
    "GoldenSubRegionRefiner",
    "build_noise_profile",
    "build_speech_profile",
    "merge_profiles",
    "AdaptiveConfigurator",
    "FilterChainConfig",
    "configure",
    "build_filter_spec",
    "RecordingTip",
    "generate_recording_tips",
    "wrap_text",
    "DecodedAudio",
    "read_wav",
    "AnalysisPipeline",
    "AnalysisResult",
    "BatchAnalyzer",
    "FileOutcome",
    "SpokenCleanupError",
    "AudioDecodeError",
    "UnsupportedAudioFormatError",
    "AnalysisError",
    "InsufficientAudioError",
    "AnalysisCancelledError",
]
