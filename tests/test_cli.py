"""Tests for CLI interface functionality."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest

from spoken_cleanup.analysis.coaching.models import RecordingTip
from spoken_cleanup.analysis.exceptions import AudioDecodeError
from spoken_cleanup.analysis.models import AudioMeasurements, NoiseProfile, Window
from spoken_cleanup.analysis.pipeline import AnalysisPipeline, AnalysisResult, FileOutcome
from spoken_cleanup.analysis.processing.models import FilterChainConfig
from spoken_cleanup.main import SpokenCleanupCLI, cli_entry_with_args, format_config, main


def make_result(tips: tuple[RecordingTip, ...] = ()) -> AnalysisResult:
    measurements = AudioMeasurements(
        input_i=-20.0,
        input_tp=-3.0,
        input_lra=8.0,
        noise_floor=-60.0,
        noise_profile=NoiseProfile(
            window=Window(0.5, 2.0),
            measured_noise_floor=-66.0,
            peak_level=-55.0,
            crest_factor=11.0,
            entropy=0.7,
            spectral_flatness=0.5,
        ),
    )
    return AnalysisResult(
        measurements=measurements,
        config=FilterChainConfig(),
        tips=tips,
        filter_spec="highpass=f=80:poles=2",
    )


@pytest.fixture
def pipeline() -> Mock:
    """Pipeline mock that fails for bad.wav."""
    pipeline = Mock(spec=AnalysisPipeline)

    def analyze_file(path, progress_callback, cancel_token):
        if path.name == "bad.wav":
            raise AudioDecodeError("corrupt header")
        return make_result((RecordingTip(8, "level_quiet", "Your recording is a bit quiet."),))

    pipeline.analyze_file.side_effect = analyze_file
    return pipeline


@pytest.mark.unit
class TestSpokenCleanupCLI:
    """Test cases for the SpokenCleanupCLI class."""

    def test_cli_initialization_with_custom_pipeline(self, pipeline: Mock) -> None:
        """Test CLI initialization with a custom pipeline."""
        cli = SpokenCleanupCLI(pipeline=pipeline, jobs=2)

        assert cli._pipeline is pipeline
        assert cli._batch.max_concurrency == 2
        assert cli._show_tips is True

    @pytest.mark.asyncio
    async def test_run_success(self, pipeline: Mock) -> None:
        """Test a successful batch prints reports and a summary."""
        cli = SpokenCleanupCLI(pipeline=pipeline)

        with patch("builtins.print") as mock_print:
            failed = await cli.run(["a.wav", "b.wav"])

        assert failed == 0
        mock_print.assert_any_call("🎙️ Analysing 2 file(s)...")
        mock_print.assert_any_call("✅ Analysed 2 file(s).")
        mock_print.assert_any_call("   1. Your recording is a bit quiet.")

    @pytest.mark.asyncio
    async def test_run_with_failure(self, pipeline: Mock) -> None:
        """Test a failing file is reported and counted."""
        cli = SpokenCleanupCLI(pipeline=pipeline)

        with patch("builtins.print") as mock_print:
            failed = await cli.run(["a.wav", "bad.wav"])

        assert failed == 1
        mock_print.assert_any_call("   ❌ corrupt header")
        mock_print.assert_any_call("❌ 1 of 2 file(s) failed.")

    def test_print_outcome(self, pipeline: Mock) -> None:
        """Test a report shows levels, room tone and filter chain."""
        cli = SpokenCleanupCLI(pipeline=pipeline, show_filter_graph=True)
        outcome = FileOutcome(path=Path("take.wav"), result=make_result())

        with patch("builtins.print") as mock_print:
            cli.print_outcome(outcome)

        mock_print.assert_any_call("\n📄 take.wav")
        mock_print.assert_any_call("   Loudness: -20.0 LUFS, true peak -3.0 dBTP, LRA 8.0 LU")
        mock_print.assert_any_call("   Noise floor: -66.0 dBFS")
        mock_print.assert_any_call("   Room tone: 0.50s +2.00s")
        mock_print.assert_any_call("   Filter graph: highpass=f=80:poles=2")
        mock_print.assert_any_call("   💡 No recording tips - nice work!")

    def test_print_outcome_without_tips(self, pipeline: Mock) -> None:
        """Test tips are not printed when disabled."""
        cli = SpokenCleanupCLI(pipeline=pipeline, show_tips=False)
        outcome = FileOutcome(path=Path("take.wav"), result=make_result())

        with patch("builtins.print") as mock_print:
            cli.print_outcome(outcome)

        printed = [call.args[0] for call in mock_print.call_args_list]
        assert not any("recording tips" in line for line in printed)

    def test_long_tips_are_wrapped(self, pipeline: Mock) -> None:
        """Test tip text is wrapped and indented under its number."""
        tip = RecordingTip(5, "dynamic_range", "word " * 30)
        cli = SpokenCleanupCLI(pipeline=pipeline, wrap_width=20)

        with patch("builtins.print") as mock_print:
            cli.print_outcome(FileOutcome(path=Path("take.wav"), result=make_result((tip,))))

        tip_line = mock_print.call_args_list[-1].args[0]
        assert tip_line.startswith("   1. word")
        assert "\n     word" in tip_line

    def test_format_config(self) -> None:
        """Test the filter chain summary lines."""
        lines = format_config(FilterChainConfig())

        assert lines[0] == "Highpass: 80 Hz"
        assert "De-esser: off" in lines
        assert not any(line.startswith("Denoise") for line in lines)

        denoised = format_config(FilterChainConfig(arnndn_enabled=True, arnndn_mix=0.8))
        assert denoised[-1].startswith("Denoise: arnndn mix 0.80")


@pytest.mark.unit
class TestMainEntry:
    """Test cases for the entry points."""

    @pytest.mark.asyncio
    async def test_main_runs_cli(self) -> None:
        """Test main builds a CLI and returns its failure count."""
        with patch("spoken_cleanup.main.SpokenCleanupCLI") as mock_cli_class:
            mock_cli_class.return_value.run = AsyncMock(return_value=3)

            failed = await main(["a.wav"], jobs=2)

        assert failed == 3
        mock_cli_class.assert_called_once_with(
            show_tips=True, show_filter_graph=False, wrap_width=76, jobs=2
        )

    def test_entry_exit_code_on_success(self) -> None:
        """Test exit status 0 when every file succeeds."""
        with patch("spoken_cleanup.main.main", new=AsyncMock(return_value=0)) as mock_main:
            with pytest.raises(SystemExit) as exc_info:
                cli_entry_with_args(["a.wav", "--no-tips", "--jobs", "2"])

        assert exc_info.value.code == 0
        mock_main.assert_awaited_once_with(
            ["a.wav"], show_tips=False, show_filter_graph=False, wrap_width=76, jobs=2
        )

    def test_entry_exit_code_on_failure(self) -> None:
        """Test exit status 1 when any file fails."""
        with patch("spoken_cleanup.main.main", new=AsyncMock(return_value=1)):
            with pytest.raises(SystemExit) as exc_info:
                cli_entry_with_args(["a.wav"])

        assert exc_info.value.code == 1

    def test_entry_invalid_arguments(self) -> None:
        """Test invalid option values exit with status 1."""
        with patch("builtins.print") as mock_print:
            with pytest.raises(SystemExit) as exc_info:
                cli_entry_with_args(["a.wav", "--jobs", "0"])

        assert exc_info.value.code == 1
        mock_print.assert_any_call("❌ --jobs must be at least 1, got 0")

    def test_entry_keyboard_interrupt(self) -> None:
        """Test Ctrl+C exits cleanly with status 1."""
        with patch("spoken_cleanup.main.main", new=AsyncMock(side_effect=KeyboardInterrupt)):
            with patch("builtins.print") as mock_print:
                with pytest.raises(SystemExit) as exc_info:
                    cli_entry_with_args(["a.wav"])

        assert exc_info.value.code == 1
        mock_print.assert_any_call("\n👋 Interrupted.")
