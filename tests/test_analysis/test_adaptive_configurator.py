"""Tests for adaptive filter chain configuration."""

import math
from dataclasses import replace

import pytest

from spoken_cleanup.analysis.config import AnalysisThresholds
from spoken_cleanup.analysis.dsp_utils import db_to_linear
from spoken_cleanup.analysis.models import AudioMeasurements, NoiseProfile, SpeechProfile, Window
from spoken_cleanup.analysis.processing.adaptive_configurator import (
    AdaptiveConfigurator,
    DerivationRule,
    configure,
    gate_ratio_for_lra,
    lufs_gap,
    sanitize_config,
)
from spoken_cleanup.analysis.processing.models import FilterChainConfig, GateDetection


def make_noise_profile(**overrides) -> NoiseProfile:
    values = {
        "window": Window(0.5, 1.5),
        "measured_noise_floor": -65.0,
        "peak_level": -50.0,
        "crest_factor": 15.0,
        "entropy": 0.5,
        "spectral_flatness": 0.5,
    }
    values.update(overrides)
    return NoiseProfile(**values)


def gate_threshold_db(config: FilterChainConfig) -> float:
    return 20.0 * math.log10(config.gate_threshold)


@pytest.mark.unit
class TestAdaptiveConfiguratorDefaults:
    """Test cases for configuration from sparse measurements."""

    def test_unmeasured_input_gives_fallback_config(self) -> None:
        """Test an empty measurement set still yields a complete config."""
        config = configure(AudioMeasurements())

        assert config.highpass_freq == 80.0
        assert config.noise_reduction == 12.0
        assert config.gate_threshold == pytest.approx(0.01)
        assert config.gate_range == pytest.approx(db_to_linear(-24.0))
        assert config.deess_intensity == 0.0
        assert config.speechnorm_expansion == 1.0
        assert config.arnndn_enabled is False
        assert config.anlmdn_enabled is False
        assert config.target_i == -18.0
        assert config.target_tp == -1.0

    def test_configure_is_deterministic(self) -> None:
        """Test equal measurements yield equal configs."""
        m = AudioMeasurements(
            input_i=-27.0,
            input_tp=-3.0,
            input_lra=11.0,
            dynamic_range=28.0,
            max_difference=0.15,
            spectral_centroid=5200.0,
            spectral_rolloff=9000.0,
            spectral_flux=0.08,
            noise_floor=-58.0,
            noise_profile=make_noise_profile(),
        )
        configurator = AdaptiveConfigurator()

        assert configurator.configure(m) == configurator.configure(m)

    def test_targets_follow_thresholds(self) -> None:
        """Test the loudness target comes from the injected thresholds."""
        thresholds = AnalysisThresholds(target_i=-16.0)

        config = configure(AudioMeasurements(), thresholds)

        assert config.target_i == -16.0

    def test_custom_rule_table(self) -> None:
        """Test rules are folded in order over the defaults."""
        rules = (
            DerivationRule("first", lambda ctx, config: {"highpass_freq": 90.0}),
            DerivationRule("second", lambda ctx, config: {"highpass_freq": config.highpass_freq + 5}),
        )

        config = AdaptiveConfigurator(rules=rules).configure(AudioMeasurements())

        assert config.highpass_freq == 95.0


@pytest.mark.unit
class TestHighpassAndNoiseReduction:
    """Test cases for highpass and FFT noise reduction derivation."""

    def test_lufs_gap(self) -> None:
        """Test the loudness gap treats 0 as unmeasured."""
        assert lufs_gap(-18.0, -38.0) == 20.0
        assert lufs_gap(-18.0, 0.0) == 0.0

    @pytest.mark.parametrize(
        ("centroid", "input_i", "expected"),
        [
            (3000.0, -18.0, 60.0),
            (5000.0, -18.0, 80.0),
            (6500.0, -18.0, 100.0),
            (5000.0, -36.0, 100.0),
            (7000.0, -45.0, 120.0),
        ],
    )
    def test_highpass_frequency(self, centroid: float, input_i: float, expected: float) -> None:
        """Test highpass follows brightness and the loudness gap, capped at 120 Hz."""
        config = configure(AudioMeasurements(spectral_centroid=centroid, input_i=input_i))
        assert config.highpass_freq == expected

    def test_warm_voice_caps_highpass(self) -> None:
        """Test warm voices keep their low end."""
        warm = AudioMeasurements(spectral_centroid=7000.0, input_i=-45.0, spectral_decrease=-0.07)
        assert configure(warm).highpass_freq == 80.0

        speech = SpeechProfile(
            window=Window(2.0, 2.0),
            rms_level=-20.0,
            peak_level=-6.0,
            crest_factor=14.0,
            voicing_density=0.9,
            spectral_decrease=-0.12,
        )
        very_warm = replace(warm, spectral_decrease=0.0, speech_profile=speech)
        assert configure(very_warm).highpass_freq == 60.0

    @pytest.mark.parametrize(
        ("input_i", "expected"),
        [(0.0, 12.0), (-18.0, 12.0), (-38.0, 32.0), (-60.0, 40.0), (-10.0, 6.0)],
    )
    def test_noise_reduction_strength(self, input_i: float, expected: float) -> None:
        """Test noise reduction scales with the gain the chain will add."""
        assert configure(AudioMeasurements(input_i=input_i)).noise_reduction == expected


@pytest.mark.unit
class TestDeesser:
    """Test cases for de-esser intensity."""

    @pytest.mark.parametrize(
        ("centroid", "rolloff", "expected"),
        [
            (6500.0, 0.0, 0.5),
            (6500.0, 10000.0, 0.5),
            (7500.0, 13000.0, 0.72),
            (7500.0, 7000.0, 0.42),
            (5000.0, 7000.0, 0.0),
            (7500.0, 5000.0, 0.0),
            (0.0, 13000.0, 0.0),
        ],
    )
    def test_deess_intensity(self, centroid: float, rolloff: float, expected: float) -> None:
        """Test centroid sets the base and rolloff scales it."""
        m = AudioMeasurements(spectral_centroid=centroid, spectral_rolloff=rolloff)
        assert configure(m).deess_intensity == pytest.approx(expected)


@pytest.mark.unit
class TestGate:
    """Test cases for noise gate derivation."""

    @pytest.mark.parametrize(
        ("lra", "ratio"), [(20.0, 1.5), (12.0, 2.0), (8.0, 2.5), (15.0, 2.0), (10.0, 2.5)]
    )
    def test_gate_ratio_for_lra(self, lra: float, ratio: float) -> None:
        """Test wide loudness ranges get gentler ratios."""
        assert gate_ratio_for_lra(lra) == ratio

    @pytest.mark.parametrize(
        ("floor", "lra", "expected_db"),
        [(-75.0, 8.0, -40.0), (-55.0, 12.0, -31.0), (-42.0, 8.0, -25.0), (-90.0, 20.0, -40.0)],
    )
    def test_threshold_from_noise_floor(self, floor: float, lra: float, expected_db: float) -> None:
        """Test the threshold sits far enough above the floor for the ratio to bite."""
        config = configure(AudioMeasurements(noise_floor=floor, input_lra=lra))
        assert gate_threshold_db(config) == pytest.approx(expected_db)

    def test_threshold_from_spiky_silence_peak(self) -> None:
        """Test spiky room tone references its peak rather than its floor."""
        m = AudioMeasurements(
            noise_floor=-60.0,
            noise_profile=make_noise_profile(crest_factor=25.0, peak_level=-48.0),
        )
        assert gate_threshold_db(configure(m)) == pytest.approx(-45.0)

    def test_threshold_unchanged_without_floor(self) -> None:
        """Test an unmeasured floor keeps the default threshold."""
        assert configure(AudioMeasurements()).gate_threshold == pytest.approx(0.01)

    @pytest.mark.parametrize(
        ("entropy", "range_db"), [(0.2, -16.0), (0.5, -21.0), (0.8, -27.0)]
    )
    def test_range_follows_noise_character(self, entropy: float, range_db: float) -> None:
        """Test tonal noise gets a shallower range than broadband noise."""
        m = AudioMeasurements(noise_profile=make_noise_profile(entropy=entropy))
        assert configure(m).gate_range == pytest.approx(db_to_linear(range_db))

    def test_clean_room_tone_uses_peak_detection(self) -> None:
        """Test broadband low-crest room tone switches to peak detection."""
        clean = AudioMeasurements(noise_profile=make_noise_profile(entropy=0.8, crest_factor=10.0))
        spiky = AudioMeasurements(noise_profile=make_noise_profile(entropy=0.8, crest_factor=18.0))

        assert configure(clean).gate_detection is GateDetection.PEAK
        assert configure(spiky).gate_detection is GateDetection.RMS

    @pytest.mark.parametrize(
        ("max_difference", "flux", "attack"),
        [(0.3, 0.0, 7.0), (0.15, 0.0, 12.0), (0.05, 0.0, 17.0), (0.3, 0.1, 5.6)],
    )
    def test_attack(self, max_difference: float, flux: float, attack: float) -> None:
        """Test transient-heavy material opens the gate faster."""
        m = AudioMeasurements(max_difference=max_difference, spectral_flux=flux)
        assert configure(m).gate_attack == pytest.approx(attack)

    def test_release(self) -> None:
        """Test release lengthens for tonal noise and narrow loudness ranges."""
        assert configure(AudioMeasurements(input_lra=12.0)).gate_release == 300.0
        assert configure(AudioMeasurements(input_lra=8.0)).gate_release == 400.0
        tonal = AudioMeasurements(input_lra=8.0, noise_profile=make_noise_profile(entropy=0.2))
        assert configure(tonal).gate_release == 475.0


@pytest.mark.unit
class TestCompressorAndExpander:
    """Test cases for compressor, expander and speech normalisation."""

    def test_very_dynamic_material(self) -> None:
        """Test wide dynamics get a gentle ratio and a reduced mix."""
        config = configure(AudioMeasurements(dynamic_range=35.0, noise_floor=-60.0, input_lra=18.0))

        assert config.comp_ratio == 2.0
        assert config.comp_threshold == -16.0
        assert config.comp_makeup == 1.0
        assert config.comp_attack == 25.0
        assert config.comp_release == 150.0
        assert config.comp_mix == pytest.approx(0.85)

    def test_narrow_dynamics(self) -> None:
        """Test narrow dynamics get a firm ratio and a fuller mix."""
        config = configure(AudioMeasurements(dynamic_range=15.0, noise_floor=-45.0, input_lra=8.0))

        assert config.comp_ratio == 4.0
        assert config.comp_attack == 15.0
        assert config.comp_release == 80.0
        assert config.comp_mix == pytest.approx(0.95)

    def test_expander_from_noise_profile(self) -> None:
        """Test the expander threshold tracks the measured room tone."""
        config = configure(AudioMeasurements(noise_profile=make_noise_profile(measured_noise_floor=-60.0)))

        assert config.nr_threshold == -55.0
        assert config.nr_expansion == 10.0

    def test_expander_depth_clamped(self) -> None:
        """Test expansion stays within 6-24 dB."""
        quiet = configure(AudioMeasurements(noise_profile=make_noise_profile(measured_noise_floor=-80.0)))
        noisy = configure(AudioMeasurements(noise_profile=make_noise_profile(measured_noise_floor=-30.0)))

        assert quiet.nr_expansion == 6.0
        assert noisy.nr_expansion == 24.0

    def test_large_uplift_enables_denoisers(self) -> None:
        """Test heavy speechnorm expansion turns on both denoisers."""
        config = configure(AudioMeasurements(input_i=-38.0))

        assert config.speechnorm_expansion == pytest.approx(10.0)
        assert config.speechnorm_rms == pytest.approx(1.0)
        assert config.arnndn_enabled is True
        assert config.arnndn_mix == pytest.approx(0.8)
        assert config.anlmdn_enabled is True
        assert config.anlmdn_strength == pytest.approx(0.001)

    def test_moderate_uplift_keeps_denoisers_off(self) -> None:
        """Test moderate expansion leaves the denoisers disabled."""
        config = configure(AudioMeasurements(input_i=-28.0))

        assert config.speechnorm_expansion == pytest.approx(10 ** 0.5)
        assert config.arnndn_enabled is False
        assert config.anlmdn_enabled is False


@pytest.mark.unit
class TestSanitizeConfig:
    """Test cases for config sanitising."""

    def test_non_finite_values_replaced(self) -> None:
        """Test NaN and infinity fall back to field defaults."""
        config = FilterChainConfig(highpass_freq=float("nan"), comp_ratio=float("inf"))

        clean = sanitize_config(config)

        assert clean.highpass_freq == FilterChainConfig().highpass_freq
        assert clean.comp_ratio == FilterChainConfig().comp_ratio

    def test_non_positive_gate_threshold_replaced(self) -> None:
        """Test a non-positive gate threshold falls back to the default."""
        clean = sanitize_config(FilterChainConfig(gate_threshold=0.0))
        assert clean.gate_threshold == FilterChainConfig().gate_threshold

    def test_clean_config_returned_unchanged(self) -> None:
        """Test a finite config passes through untouched."""
        config = FilterChainConfig(highpass_freq=100.0)
        assert sanitize_config(config) is config
