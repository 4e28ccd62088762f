"""Scanning of pre-measured analysis windows for silence and speech runs."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from .config import PROGRESS_REPORT_INTERVAL, SILENCE_MIN_WINDOWS, SPEECH_MIN_WINDOWS
from .interfaces import ScoringHeuristic
from .logging_utils import get_logger
from .models import (
    CancellationToken,
    ProgressCallback,
    RegionCandidate,
    RegionKind,
    Window,
    WindowMeasurement,
)
from .scoring import summarize_windows, voicing_density

logger = get_logger(__name__)

SCAN_PASS_NAME = "Scanning regions"


@dataclass
class ScanResult:
    """Candidates found by one scan, in scan order."""

    silence: list[RegionCandidate] = field(default_factory=list)
    speech: list[RegionCandidate] = field(default_factory=list)


@dataclass
class _RunTracker:
    heuristic: ScoringHeuristic
    min_windows: int
    start: int | None = None
    found: list[RegionCandidate] = field(default_factory=list)


def build_candidate(
    heuristic: ScoringHeuristic, windows: Sequence[WindowMeasurement], first: int, last: int
) -> RegionCandidate:
    """
    Build a candidate from the run ``windows[first:last]``.

    Args:
        heuristic: Scoring heuristic for the run's class
        windows: The full pre-scan
        first: Position of the first window in the run
        last: Position one past the last window in the run

    Returns:
        The scored candidate
    """
    run = windows[first:last]
    start = run[0].window.start
    duration = sum(w.window.duration for w in run)
    return RegionCandidate(
        kind=heuristic.kind,
        window=Window(start=start, duration=duration),
        score=heuristic.score(run),
        metrics=summarize_windows(run),
        voicing_density=voicing_density(run) if heuristic.kind is RegionKind.SPEECH else 0.0,
        first_index=first,
        window_count=last - first,
    )


class RegionScanner:
    """
    Walks a windowed measurement stream and emits candidate runs per class.

    A candidate is a run of at least ``min_windows`` consecutive windows that
    all satisfy the class heuristic's qualifying predicate. Runs never
    overlap within a class. Finding nothing is a normal outcome.
    """

    def __init__(
        self,
        silence_heuristic: ScoringHeuristic,
        speech_heuristic: ScoringHeuristic,
        silence_min_windows: int = SILENCE_MIN_WINDOWS,
        speech_min_windows: int = SPEECH_MIN_WINDOWS,
    ) -> None:
        if silence_min_windows < 1 or speech_min_windows < 1:
            raise ValueError("Minimum run length must be at least one window")
        self.silence_heuristic = silence_heuristic
        self.speech_heuristic = speech_heuristic
        self.silence_min_windows = silence_min_windows
        self.speech_min_windows = speech_min_windows

    def scan(
        self,
        windows: Sequence[WindowMeasurement],
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        pass_index: int = 1,
    ) -> ScanResult:
        """
        Scan the measurement stream for silence and speech candidates.

        Args:
            windows: Fixed-size analysis windows covering the whole file
            progress_callback: Optional progress receiver, must not block
            cancel_token: Optional token checked before every window
            pass_index: Pass number reported to the progress callback

        Returns:
            ScanResult with both candidate lists in scan order

        Raises:
            AnalysisCancelledError: If the token is cancelled mid-scan
        """
        trackers = (
            _RunTracker(self.silence_heuristic, self.silence_min_windows),
            _RunTracker(self.speech_heuristic, self.speech_min_windows),
        )
        total = len(windows)

        for position, measurement in enumerate(windows):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            for tracker in trackers:
                if tracker.heuristic.qualifies(measurement):
                    if tracker.start is None:
                        tracker.start = position
                elif tracker.start is not None:
                    self._close_run(tracker, windows, position)

            logger.trace(
                f"Window {measurement.index} at {measurement.window.start:.2f}s: "
                f"rms={measurement.rms_level:.1f} dBFS voicing={measurement.voicing:.2f}"
            )

            done = position + 1
            if progress_callback is not None and (
                done % PROGRESS_REPORT_INTERVAL == 0 or done == total
            ):
                progress_callback(
                    pass_index, SCAN_PASS_NAME, done / total, measurement.rms_level, None
                )

        for tracker in trackers:
            if tracker.start is not None:
                self._close_run(tracker, windows, total)

        silence, speech = (tracker.found for tracker in trackers)
        logger.debug(
            f"Scan of {total} windows found {len(silence)} silence and "
            f"{len(speech)} speech candidates"
        )
        return ScanResult(silence=silence, speech=speech)

    @staticmethod
    def _close_run(
        tracker: _RunTracker, windows: Sequence[WindowMeasurement], end: int
    ) -> None:
        start = tracker.start
        tracker.start = None
        if start is None or end - start < tracker.min_windows:
            return
        tracker.found.append(build_candidate(tracker.heuristic, windows, start, end))
