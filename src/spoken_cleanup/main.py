"""Command-line interface for spoken-word analysis."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from .analysis.coaching.tip_engine import wrap_text
from .analysis.config import BATCH_MAX_CONCURRENCY, THRESHOLDS_VERSION, TIP_WRAP_WIDTH
from .analysis.logging_utils import configure_logging
from .analysis.pipeline import AnalysisPipeline, BatchAnalyzer, FileOutcome
from .analysis.processing.models import FilterChainConfig

TIP_INDENT = "     "


class SpokenCleanupCLI:
    """Command-line front end that analyses files and prints the results."""

    def __init__(
        self,
        pipeline: AnalysisPipeline | None = None,
        show_tips: bool = True,
        show_filter_graph: bool = False,
        wrap_width: int = TIP_WRAP_WIDTH,
        jobs: int = BATCH_MAX_CONCURRENCY,
    ) -> None:
        """
        Initialize the CLI.

        Args:
            pipeline: Optional AnalysisPipeline. If None, creates a new one.
            show_tips: Whether to print recording tips
            show_filter_graph: Whether to print the rendered filter graph
            wrap_width: Column width for wrapped tip text
            jobs: Number of files analysed concurrently
        """
        self._pipeline = pipeline or AnalysisPipeline(include_tips=show_tips)
        self._batch = BatchAnalyzer(self._pipeline, max_concurrency=jobs)
        self._show_tips = show_tips
        self._show_filter_graph = show_filter_graph
        self._wrap_width = wrap_width

    async def run(self, paths: Sequence[str]) -> int:
        """
        Analyse every path and print a report per file.

        Returns:
            Number of files that failed
        """
        print(f"🎙️ Analysing {len(paths)} file(s)...")
        outcomes = await self._batch.analyze_files(paths)
        for outcome in outcomes:
            self.print_outcome(outcome)

        failed = sum(1 for outcome in outcomes if not outcome.success)
        if failed:
            print(f"❌ {failed} of {len(outcomes)} file(s) failed.")
        else:
            print(f"✅ Analysed {len(outcomes)} file(s).")
        return failed

    def print_outcome(self, outcome: FileOutcome) -> None:
        """Print the report for one analysed file."""
        print(f"\n📄 {outcome.path}")
        if outcome.result is None:
            print(f"   ❌ {outcome.error}")
            return

        m = outcome.result.measurements
        print(
            f"   Loudness: {m.input_i:.1f} LUFS, true peak {m.input_tp:.1f} dBTP, "
            f"LRA {m.input_lra:.1f} LU"
        )
        print(f"   Noise floor: {m.effective_noise_floor:.1f} dBFS")
        if m.noise_profile is not None:
            window = m.noise_profile.window
            print(f"   Room tone: {window.start:.2f}s +{window.duration:.2f}s")
        if m.speech_profile is not None:
            window = m.speech_profile.window
            print(f"   Speech: {window.start:.2f}s +{window.duration:.2f}s")

        print("   Filter chain:")
        for line in format_config(outcome.result.config):
            print(f"     {line}")

        if self._show_filter_graph:
            print(f"   Filter graph: {outcome.result.filter_spec}")

        if self._show_tips:
            tips = outcome.result.tips
            if not tips:
                print("   💡 No recording tips - nice work!")
            for index, tip in enumerate(tips, start=1):
                text = wrap_text(tip.message, self._wrap_width, TIP_INDENT)
                print(f"   {index}. {text}")


def format_config(config: FilterChainConfig) -> list[str]:
    """Render the derived filter parameters as report lines."""
    lines = [
        f"Highpass: {config.highpass_freq:.0f} Hz",
        f"Noise reduction: {config.noise_reduction:.1f} dB "
        f"(expander {config.nr_threshold:.0f} dB / {config.nr_expansion:.0f} dB)",
        f"Gate: threshold {config.gate_threshold:.4f}, ratio {config.gate_ratio:.1f}, "
        f"attack {config.gate_attack:.1f} ms, release {config.gate_release:.0f} ms, "
        f"{config.gate_detection.value} detection",
        f"Compressor: {config.comp_ratio:.1f}:1 at {config.comp_threshold:.0f} dB, "
        f"makeup {config.comp_makeup:.0f} dB, mix {config.comp_mix:.2f}",
        f"De-esser: {config.deess_intensity:.2f}" if config.deess_intensity > 0 else "De-esser: off",
        f"Speechnorm: expansion {config.speechnorm_expansion:.2f}x",
        f"Loudness target: {config.target_i:.1f} LUFS",
    ]
    if config.arnndn_enabled or config.anlmdn_enabled:
        lines.append(
            f"Denoise: arnndn mix {config.arnndn_mix:.2f}, "
            f"anlmdn strength {config.anlmdn_strength:.5f}"
        )
    return lines


async def main(
    paths: Sequence[str],
    show_tips: bool = True,
    show_filter_graph: bool = False,
    wrap_width: int = TIP_WRAP_WIDTH,
    jobs: int = BATCH_MAX_CONCURRENCY,
) -> int:
    """Main entry point for the CLI application."""
    cli = SpokenCleanupCLI(
        show_tips=show_tips,
        show_filter_graph=show_filter_graph,
        wrap_width=wrap_width,
        jobs=jobs,
    )
    return await cli.run(paths)


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Spoken Cleanup CLI - Derive cleanup filters and recording tips from speech recordings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  spoken-cleanup episode.wav                      # Analyse one recording
  spoken-cleanup *.wav --jobs 8                   # Analyse a batch, 8 at a time
  spoken-cleanup episode.wav --filter-graph       # Also print the filter graph
  spoken-cleanup episode.wav --no-tips            # Skip recording tips
  spoken-cleanup episode.wav --wrap-width 60      # Narrower tip text
  spoken-cleanup episode.wav --verbose            # Enable verbose logging
  spoken-cleanup episode.wav --trace              # Per-window trace logging

Input must be integer PCM WAV. Thresholds version {THRESHOLDS_VERSION}.
Exits with status 1 when any file fails to analyse.
        """,
    )

    parser.add_argument(
        "paths",
        nargs="+",
        metavar="FILE",
        help="WAV recordings to analyse",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging and debug information",
    )

    parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable trace logging (most verbose, includes per-window detail)",
    )

    parser.add_argument(
        "--no-tips",
        action="store_true",
        help="Do not print recording tips",
    )

    parser.add_argument(
        "--filter-graph",
        action="store_true",
        help="Print the rendered ffmpeg filter graph for each file",
    )

    parser.add_argument(
        "--wrap-width",
        type=int,
        default=TIP_WRAP_WIDTH,
        metavar="COLUMNS",
        help=f"Wrap tip text at this width (default: {TIP_WRAP_WIDTH})",
    )

    parser.add_argument(
        "--jobs",
        type=int,
        default=BATCH_MAX_CONCURRENCY,
        metavar="N",
        help=f"Number of files analysed concurrently (default: {BATCH_MAX_CONCURRENCY})",
    )

    return parser


def handle_arguments(args: argparse.Namespace) -> tuple[bool, bool]:
    """
    Handle parsed command-line arguments.

    Args:
        args: Parsed arguments from argparse

    Returns:
        Tuple of (success, should_continue):
        - success: True if the arguments are valid
        - should_continue: True if analysis should run
    """
    configure_logging(verbose=args.verbose, trace=args.trace)

    if args.wrap_width < 1:
        print(f"❌ --wrap-width must be positive, got {args.wrap_width}")
        return False, False

    if args.jobs < 1:
        print(f"❌ --jobs must be at least 1, got {args.jobs}")
        return False, False

    return True, True


def cli_entry_with_args(argv: Sequence[str] | None = None) -> None:
    """CLI entry point with argument parsing."""
    parser = create_argument_parser()

    try:
        args = parser.parse_args(argv)

        success, should_continue = handle_arguments(args)

        if not success:
            sys.exit(1)

        if not should_continue:
            sys.exit(0)

        failed = asyncio.run(
            main(
                args.paths,
                show_tips=not args.no_tips,
                show_filter_graph=args.filter_graph,
                wrap_width=args.wrap_width,
                jobs=args.jobs,
            )
        )
        sys.exit(1 if failed else 0)

    except KeyboardInterrupt:
        print("\n👋 Interrupted.")
        sys.exit(1)
    except SystemExit:
        # Re-raise SystemExit (from argparse help, etc.)
        raise
    except Exception as e:
        logging.error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    cli_entry_with_args()
