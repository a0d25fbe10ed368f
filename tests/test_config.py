"""Tests for render settings and quality presets."""

import logging

import pytest

from mistrace.config import (
    DENOISE_MODES,
    QUALITY_PRESETS,
    DenoiseSettings,
    RenderSettings,
    get_quality_preset,
)


class TestRenderSettings:
    def test_defaults(self):
        settings = RenderSettings()

        assert settings.image_width == 100
        assert settings.image_height == 100
        assert settings.samples_per_pixel == 10
        assert settings.max_depth == 10
        assert settings.background == (0.0, 0.0, 0.0)
        assert settings.denoise_mode == "off"
        assert settings.denoise == DenoiseSettings()

    def test_height_from_aspect_ratio(self):
        assert RenderSettings(image_width=300, aspect_ratio=1.5).image_height == 200
        # Never below one row
        assert RenderSettings(image_width=2, aspect_ratio=10.0).image_height == 1

    @pytest.mark.parametrize(
        ("samples", "sqrt_spp"), [(1, 1), (3, 1), (4, 2), (10, 3), (100, 10), (500, 22)]
    )
    def test_sqrt_spp(self, samples, sqrt_spp):
        settings = RenderSettings(samples_per_pixel=samples)

        assert settings.sqrt_spp == sqrt_spp
        assert settings.pixel_samples_scale == pytest.approx(1.0 / sqrt_spp**2)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"image_width": 0},
            {"aspect_ratio": 0.0},
            {"samples_per_pixel": 0},
            {"max_depth": -1},
        ],
    )
    def test_validation(self, kwargs):
        with pytest.raises(ValueError):
            RenderSettings(**kwargs)

    def test_zero_depth_allowed(self):
        assert RenderSettings(max_depth=0).max_depth == 0


class TestDenoiseSettings:
    def test_defaults(self):
        settings = DenoiseSettings()

        assert settings.bilateral_sigma_spatial == 1.5
        assert settings.bilateral_sigma_intensity == 0.15
        assert settings.median_kernel_size == 5
        assert settings.fast_kernel_size == 3
        assert settings.fast_edge_threshold == 0.08

    def test_modes(self):
        assert DENOISE_MODES == ("off", "bilateral", "median", "fast")


class TestQualityPresets:
    @pytest.mark.parametrize(
        ("name", "width", "samples", "depth"),
        [
            ("draft", 400, 50, 8),
            ("low", 800, 150, 20),
            ("medium", 1200, 500, 50),
            ("high", 1920, 1000, 80),
            ("ultra", 2560, 4000, 200),
        ],
    )
    def test_preset_values(self, name, width, samples, depth):
        preset = get_quality_preset(name)

        assert preset is QUALITY_PRESETS[name]
        assert (preset.image_width, preset.samples_per_pixel, preset.max_depth) == (
            width,
            samples,
            depth,
        )

    def test_lookup_is_case_insensitive(self):
        assert get_quality_preset("HIGH").name == "high"

    def test_none_selects_medium(self):
        assert get_quality_preset(None).name == "medium"

    def test_unknown_falls_back_to_medium(self, caplog):
        with caplog.at_level(logging.WARNING, logger="mistrace.config"):
            preset = get_quality_preset("cinematic")

        assert preset.name == "medium"
        assert "cinematic" in caplog.text

    def test_to_settings(self):
        settings = get_quality_preset("draft").to_settings()

        assert settings.image_width == 400
        assert settings.samples_per_pixel == 50
        assert settings.max_depth == 8
        assert settings.sqrt_spp == 7

    def test_to_settings_overrides(self):
        settings = get_quality_preset("draft").to_settings(
            aspect_ratio=2.0,
            background=(0.7, 0.8, 1.0),
            denoise_mode="median",
            samples_per_pixel=4,
        )

        assert settings.image_height == 200
        assert settings.background == (0.7, 0.8, 1.0)
        assert settings.denoise_mode == "median"
        assert settings.samples_per_pixel == 4

    def test_to_settings_validates_overrides(self):
        with pytest.raises(ValueError):
            get_quality_preset("draft").to_settings(image_width=0)
