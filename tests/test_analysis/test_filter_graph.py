"""Tests for filter graph rendering."""

import pytest

from spoken_cleanup.analysis.processing.filter_graph import (
    build_compressor,
    build_deesser,
    build_filter_spec,
    build_gate,
    build_highpass,
    build_noise_reduction,
    build_speechnorm,
)
from spoken_cleanup.analysis.processing.models import FilterChainConfig, FilterStage, GateDetection


@pytest.mark.unit
class TestStageBuilders:
    """Test cases for individual stage specs."""

    def test_highpass(self) -> None:
        """Test the highpass spec carries the cutoff."""
        assert build_highpass(FilterChainConfig(highpass_freq=100.0)) == "highpass=f=100:poles=2"

    def test_noise_reduction(self) -> None:
        """Test afftdn is followed by the downward expander."""
        spec = build_noise_reduction(
            FilterChainConfig(noise_reduction=20.0, nr_threshold=-60.0, nr_expansion=10.0)
        )

        afftdn, compand = spec.split(",")
        assert afftdn == "afftdn=nr=20.0:nf=-60"
        assert "points=-90/-100|-75/-85|-60/-60|-30/-30|0/0" in compand

    @pytest.mark.parametrize(
        ("threshold", "points"),
        [
            (-75.0, "points=-90/-96|-75/-75|-30/-30|0/0"),
            (-80.4, "points=-90/-96|-80/-80|-30/-30|0/0"),
            (-115.0, "points=-115/-115|-30/-30|0/0"),
            (-20.0, "points=-90/-96|-75/-81|-20/-20|0/0"),
        ],
    )
    def test_compand_points_strictly_increasing(self, threshold: float, points: str) -> None:
        """Test fixed points that would not rise past the threshold are left out."""
        spec = build_noise_reduction(FilterChainConfig(nr_threshold=threshold, nr_expansion=6.0))
        rendered = spec.split("points=")[1]
        levels = [float(point.split("/")[0]) for point in rendered.split("|")]

        assert spec.endswith(points)
        assert levels == sorted(set(levels))

    def test_noise_floor_clamped_for_afftdn(self) -> None:
        """Test afftdn never gets a floor below -80 dB."""
        spec = build_noise_reduction(FilterChainConfig(nr_threshold=-95.0))
        assert spec.startswith("afftdn=nr=12.0:nf=-80,")

    def test_gate(self) -> None:
        """Test the gate spec carries threshold, range and detection."""
        spec = build_gate(FilterChainConfig(gate_threshold=0.01, gate_detection=GateDetection.PEAK))

        assert spec.startswith("agate=threshold=0.010000:ratio=2.0:")
        assert spec.endswith("detection=peak")

    def test_compressor_linear_levels(self) -> None:
        """Test compressor threshold and makeup are rendered as linear gains."""
        spec = build_compressor(FilterChainConfig(comp_threshold=-20.0, comp_makeup=0.0))

        assert "threshold=0.100000" in spec
        assert "makeup=1.00" in spec

    def test_deesser_disabled_at_zero(self) -> None:
        """Test a zero intensity omits the de-esser."""
        assert build_deesser(FilterChainConfig()) == ""
        assert build_deesser(FilterChainConfig(deess_intensity=0.45)) == "deesser=i=0.45"

    def test_speechnorm(self) -> None:
        """Test speechnorm is omitted at unity expansion and carries RMS when set."""
        assert build_speechnorm(FilterChainConfig()) == ""
        spec = build_speechnorm(FilterChainConfig(speechnorm_expansion=3.0, speechnorm_rms=0.5))
        assert spec.startswith("speechnorm=e=3.00:")
        assert spec.endswith(":rms=0.5000")


@pytest.mark.unit
class TestBuildFilterSpec:
    """Test cases for the whole filter graph."""

    def test_default_chain(self) -> None:
        """Test the default chain skips the disabled stages."""
        stages = [spec.split("=")[0] for spec in build_filter_spec(FilterChainConfig()).split(",")]

        assert stages == ["highpass", "afftdn", "compand", "agate", "acompressor", "loudnorm"]

    def test_denoisers_enabled(self) -> None:
        """Test enabled denoisers follow the FFT noise reduction."""
        config = FilterChainConfig(
            arnndn_enabled=True, arnndn_mix=0.8, anlmdn_enabled=True, anlmdn_strength=0.001
        )

        spec = build_filter_spec(config)

        assert "anlmdn=s=0.00100,arnndn=m=rnnoise.rnnn:mix=0.80,agate=" in spec

    def test_custom_order(self) -> None:
        """Test a custom stage order is respected."""
        spec = build_filter_spec(
            FilterChainConfig(), order=(FilterStage.LOUDNORM, FilterStage.HIGHPASS)
        )

        assert spec == "loudnorm=I=-18.0:TP=-1.0:LRA=11,highpass=f=80:poles=2"
