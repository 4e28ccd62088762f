"""Tests for RegionScanner and the scoring heuristics."""

from unittest.mock import Mock

import pytest

from spoken_cleanup.analysis.config import LINEAR_TO_DB_FLOOR
from spoken_cleanup.analysis.exceptions import AnalysisCancelledError
from spoken_cleanup.analysis.models import (
    CancellationToken,
    RegionKind,
    SpectralMetrics,
    Window,
    WindowMeasurement,
)
from spoken_cleanup.analysis.region_scanner import SCAN_PASS_NAME, RegionScanner
from spoken_cleanup.analysis.scoring import (
    SilenceHeuristic,
    SpeechHeuristic,
    power_mean_db,
    summarize_windows,
)

WINDOW = 0.25
THRESHOLD = -50.0


def make_windows(levels: list[tuple[float, float]]) -> list[WindowMeasurement]:
    """Build consecutive windows from (rms dBFS, voicing) pairs."""
    return [
        WindowMeasurement(
            index=i,
            window=Window(i * WINDOW, WINDOW),
            rms_level=rms,
            peak_level=rms + 6.0,
            voicing=voicing,
            spectral=SpectralMetrics(centroid=1000.0, entropy=0.5),
        )
        for i, (rms, voicing) in enumerate(levels)
    ]


QUIET = (-60.0, 0.0)
VOICED = (-20.0, 0.9)


@pytest.mark.unit
class TestRegionScanner:
    """Test cases for candidate scanning."""

    @pytest.fixture
    def scanner(self) -> RegionScanner:
        """Create a scanner with a -50 dBFS silence threshold."""
        return RegionScanner(SilenceHeuristic(THRESHOLD), SpeechHeuristic(THRESHOLD))

    @pytest.fixture
    def windows(self) -> list[WindowMeasurement]:
        """1s room tone, 2s speech, a 0.5s pause, then 2.5s speech."""
        return make_windows([QUIET] * 4 + [VOICED] * 8 + [QUIET] * 2 + [VOICED] * 10)

    def test_scan_finds_runs(
        self, scanner: RegionScanner, windows: list[WindowMeasurement]
    ) -> None:
        """Test qualifying runs of at least the minimum length become candidates."""
        result = scanner.scan(windows)

        assert [c.window for c in result.silence] == [Window(0.0, 1.0)]
        assert [c.window for c in result.speech] == [Window(1.0, 2.0), Window(3.5, 2.5)]
        assert all(c.kind is RegionKind.SPEECH for c in result.speech)
        assert result.speech[1].first_index == 14
        assert result.speech[1].window_count == 10

    def test_short_runs_ignored(self, scanner: RegionScanner) -> None:
        """Test runs shorter than the minimum are dropped."""
        result = scanner.scan(make_windows([QUIET] * 3 + [VOICED] * 7 + [QUIET] * 3))

        assert result.silence == []
        assert result.speech == []

    def test_candidates_do_not_overlap(
        self, scanner: RegionScanner, windows: list[WindowMeasurement]
    ) -> None:
        """Test candidates of one class never overlap."""
        speech = scanner.scan(windows).speech

        for earlier, later in zip(speech, speech[1:]):
            assert not earlier.window.overlaps(later.window)
            assert earlier.window.start < later.window.start

    def test_empty_stream(self, scanner: RegionScanner) -> None:
        """Test an empty stream is a normal, empty result."""
        result = scanner.scan([])

        assert result.silence == []
        assert result.speech == []

    def test_progress_reported(
        self, scanner: RegionScanner, windows: list[WindowMeasurement]
    ) -> None:
        """Test progress is reported periodically and at completion."""
        callback = Mock()

        scanner.scan(windows, progress_callback=callback, pass_index=2)

        assert callback.call_count == 2
        pass_index, pass_name, progress, level, measurements = callback.call_args.args
        assert pass_index == 2
        assert pass_name == SCAN_PASS_NAME
        assert progress == 1.0
        assert level == VOICED[0]
        assert measurements is None
        first_progress = callback.call_args_list[0].args[2]
        assert 0.0 < first_progress < 1.0

    def test_cancellation(
        self, scanner: RegionScanner, windows: list[WindowMeasurement]
    ) -> None:
        """Test a cancelled token stops the scan."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(AnalysisCancelledError):
            scanner.scan(windows, cancel_token=token)

    def test_digital_zero_is_not_room_tone(self, scanner: RegionScanner) -> None:
        """Test a zero-padded lead-in is skipped in favour of real room tone."""
        digital_zero = (LINEAR_TO_DB_FLOOR, 0.0)
        room_tone = (-55.0, 0.0)
        windows = make_windows(
            [digital_zero] * 6 + [VOICED] * 8 + [room_tone] * 8 + [VOICED] * 8
        )

        result = scanner.scan(windows)

        assert [c.window for c in result.silence] == [Window(3.5, 2.0)]
        assert result.silence[0].metrics.rms_level == pytest.approx(-55.0)

    def test_invalid_min_windows(self) -> None:
        """Test minimum run lengths must be positive."""
        with pytest.raises(ValueError, match="at least one window"):
            RegionScanner(SilenceHeuristic(THRESHOLD), SpeechHeuristic(THRESHOLD), silence_min_windows=0)


@pytest.mark.unit
class TestScoringHeuristics:
    """Test cases for the silence and speech heuristics."""

    def test_power_mean_db(self) -> None:
        """Test dB levels are averaged as power."""
        assert power_mean_db([-20.0, -20.0]) == pytest.approx(-20.0)
        assert power_mean_db([-10.0, -100.0]) == pytest.approx(-13.0103, abs=1e-3)

    def test_summarize_windows(self) -> None:
        """Test region metrics aggregate the window run."""
        metrics = summarize_windows(make_windows([(-60.0, 0.0), (-60.0, 0.0)]))

        assert metrics.rms_level == pytest.approx(-60.0)
        assert metrics.peak_level == -54.0
        assert metrics.crest_factor == pytest.approx(6.0)
        assert metrics.rms_deviation == 0.0
        assert metrics.spectral.centroid == 1000.0

    def test_summarize_empty_run(self) -> None:
        """Test an empty run is rejected."""
        with pytest.raises(ValueError):
            summarize_windows([])

    def test_silence_qualifies_below_threshold(self) -> None:
        """Test silence windows must sit below the silence threshold."""
        heuristic = SilenceHeuristic(THRESHOLD)
        quiet, loud = make_windows([QUIET, VOICED])

        assert heuristic.qualifies(quiet)
        assert not heuristic.qualifies(loud)
        assert not heuristic.qualifies(make_windows([(LINEAR_TO_DB_FLOOR, 0.0)])[0])

    def test_speech_requires_voicing(self) -> None:
        """Test speech windows must be voiced and above the threshold."""
        heuristic = SpeechHeuristic(THRESHOLD)
        voiced, unvoiced, quiet = make_windows([VOICED, (-20.0, 0.1), (-60.0, 0.9)])

        assert heuristic.qualifies(voiced)
        assert not heuristic.qualifies(unvoiced)
        assert not heuristic.qualifies(quiet)

    def test_quieter_steadier_silence_scores_higher(self) -> None:
        """Test the silence score rewards quiet, stable room tone."""
        heuristic = SilenceHeuristic(THRESHOLD)
        steady = make_windows([(-70.0, 0.0)] * 8)
        uneven = make_windows([(-70.0, 0.0), (-52.0, 0.0)] * 4)

        assert heuristic.score(steady) > heuristic.score(uneven)

    def test_longer_silence_scores_higher_until_saturation(self) -> None:
        """Test duration credit grows up to the saturation point."""
        heuristic = SilenceHeuristic(THRESHOLD)

        short = heuristic.score(make_windows([QUIET] * 4))
        full = heuristic.score(make_windows([QUIET] * 8))

        assert full > short

    def test_denser_voicing_scores_higher(self) -> None:
        """Test the speech score rewards voicing density."""
        heuristic = SpeechHeuristic(THRESHOLD)

        dense = heuristic.score(make_windows([(-20.0, 1.0)] * 8))
        sparse = heuristic.score(make_windows([(-20.0, 0.6)] * 8))

        assert dense > sparse
