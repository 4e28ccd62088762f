"""Per-file analysis pipeline and the concurrent batch driver."""

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .audio_reader import DecodedAudio, read_wav
from .coaching.models import RecordingTip
from .coaching.tip_engine import generate_recording_tips
from .config import BATCH_MAX_CONCURRENCY, DEFAULT_THRESHOLDS, AnalysisThresholds
from .exceptions import SpokenCleanupError
from .interfaces import RefinementStrategy
from .logging_utils import get_logger
from .models import AudioMeasurements, CancellationToken, ProgressCallback, WindowMeasurement
from .processing.adaptive_configurator import AdaptiveConfigurator
from .processing.filter_graph import build_filter_spec
from .processing.models import FilterChainConfig
from .profile_builder import merge_profiles
from .region_elector import GoldenSubRegionRefiner, RegionElector
from .region_scanner import RegionScanner
from .scoring import SilenceHeuristic, SpeechHeuristic
from .statistics import StatisticsCollector

logger = get_logger(__name__)

MEASURE_PASS = 1
SCAN_PASS = 2
ELECT_PASS = 3
ELECT_PASS_NAME = "Electing regions"


@dataclass(frozen=True)
class AnalysisResult:
    """Everything derived from one recording."""

    measurements: AudioMeasurements
    config: FilterChainConfig
    tips: tuple[RecordingTip, ...]
    filter_spec: str


@dataclass
class FileOutcome:
    """Result of analysing one file in a batch."""

    path: Path
    result: AnalysisResult | None = None
    error: str | None = None
    processing_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.result is not None


class AnalysisPipeline:
    """
    Runs the analysis passes for one recording.

    Passes are strictly sequential: measure, scan, elect and merge, then
    derive the filter config and recording tips from the merged
    measurements. The pipeline holds no per-file state and can be shared
    across threads.
    """

    def __init__(
        self,
        thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS,
        refinement_strategy: RefinementStrategy | None = None,
        collector: StatisticsCollector | None = None,
        include_tips: bool = True,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            thresholds: Shared thresholds for the configurator and the tip engine
            refinement_strategy: Golden sub-region search, defaults to GoldenSubRegionRefiner
            collector: Statistics collector; a fresh one per file when None, since
                the VAD it wraps is not thread-safe
            include_tips: Whether to generate recording tips
        """
        self.thresholds = thresholds
        self.elector = RegionElector(refinement_strategy or GoldenSubRegionRefiner())
        self.configurator = AdaptiveConfigurator(thresholds)
        self.collector = collector
        self.include_tips = include_tips

    def analyze_windows(
        self,
        measurements: AudioMeasurements,
        windows: Sequence[WindowMeasurement],
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AnalysisResult:
        """
        Run the decision passes over an existing pre-scan.

        Args:
            measurements: Whole-file aggregates, including the silence threshold
            windows: Per-window measurements covering the file
            progress_callback: Optional progress receiver, must not block
            cancel_token: Optional token checked between windows and passes

        Returns:
            AnalysisResult with merged measurements, config, tips and filter spec
        """
        silence_heuristic = SilenceHeuristic(measurements.silence_threshold)
        speech_heuristic = SpeechHeuristic(measurements.silence_threshold)
        scanner = RegionScanner(silence_heuristic, speech_heuristic)

        scan = scanner.scan(windows, progress_callback, cancel_token, pass_index=SCAN_PASS)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        silence = self.elector.elect(scan.silence, windows, silence_heuristic)
        speech = self.elector.elect(scan.speech, windows, speech_heuristic)
        merged = merge_profiles(measurements, silence, speech)
        if progress_callback is not None:
            progress_callback(ELECT_PASS, ELECT_PASS_NAME, 1.0, merged.effective_noise_floor, merged)

        config = self.configurator.configure(merged)
        tips = (
            tuple(generate_recording_tips(merged, config, self.thresholds))
            if self.include_tips
            else ()
        )
        return AnalysisResult(
            measurements=merged,
            config=config,
            tips=tips,
            filter_spec=build_filter_spec(config),
        )

    def analyze_audio(
        self,
        audio: DecodedAudio,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AnalysisResult:
        """Measure decoded audio and run the decision passes."""
        collector = self.collector or StatisticsCollector()
        prescan = collector.measure(
            audio, progress_callback, cancel_token, pass_index=MEASURE_PASS
        )
        return self.analyze_windows(
            prescan.measurements, prescan.windows, progress_callback, cancel_token
        )

    def analyze_file(
        self,
        path: str | Path,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AnalysisResult:
        """
        Analyse a WAV file.

        Args:
            path: WAV file path
            progress_callback: Optional progress receiver, must not block
            cancel_token: Optional cancellation token

        Returns:
            AnalysisResult for the file

        Raises:
            AudioDecodeError: If the file cannot be decoded
            InsufficientAudioError: If the recording is too short
            AnalysisCancelledError: If the token is cancelled
        """
        audio = read_wav(path)
        return self.analyze_audio(audio, progress_callback, cancel_token)


class BatchAnalyzer:
    """Analyses independent files concurrently, one worker thread per file."""

    def __init__(
        self,
        pipeline: AnalysisPipeline | None = None,
        max_concurrency: int = BATCH_MAX_CONCURRENCY,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.pipeline = pipeline or AnalysisPipeline()
        self.max_concurrency = max_concurrency
        self.stats: dict[str, int] = {"total": 0, "succeeded": 0, "failed": 0}

    async def analyze_files(
        self,
        paths: Sequence[str | Path],
        cancel_token: CancellationToken | None = None,
    ) -> list[FileOutcome]:
        """
        Analyse files concurrently.

        A failing file yields an outcome carrying the error; the rest of the
        batch continues.

        Args:
            paths: Files to analyse
            cancel_token: Optional token shared by every file

        Returns:
            One outcome per path, in input order
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            asyncio.create_task(
                self._analyze_one(Path(path), semaphore, cancel_token),
                name=f"analyze_{Path(path).name}",
            )
            for path in paths
        ]
        outcomes = list(await asyncio.gather(*tasks))

        succeeded = sum(1 for outcome in outcomes if outcome.success)
        self.stats["total"] += len(outcomes)
        self.stats["succeeded"] += succeeded
        self.stats["failed"] += len(outcomes) - succeeded
        logger.info(f"Batch complete: {succeeded} of {len(outcomes)} files analysed")
        return outcomes

    async def _analyze_one(
        self,
        path: Path,
        semaphore: asyncio.Semaphore,
        cancel_token: CancellationToken | None,
    ) -> FileOutcome:
        async with semaphore:
            start_time = time.perf_counter()
            try:
                result = await asyncio.to_thread(
                    self.pipeline.analyze_file, path, None, cancel_token
                )
            except SpokenCleanupError as e:
                elapsed = time.perf_counter() - start_time
                logger.error(f"Analysis of {path.name} failed after {elapsed:.2f}s: {e}")
                return FileOutcome(path=path, error=str(e), processing_time=elapsed)
            except Exception as e:
                elapsed = time.perf_counter() - start_time
                logger.error(f"Unexpected error analysing {path.name}: {e}")
                return FileOutcome(path=path, error=f"{type(e).__name__}: {e}", processing_time=elapsed)

            elapsed = time.perf_counter() - start_time
            logger.info(f"Analysed {path.name} in {elapsed:.2f}s")
            return FileOutcome(path=path, result=result, processing_time=elapsed)
