"""Render configuration: settings, denoise parameters and quality presets.

Everything here is plain Python and can be imported before ``ti.init``.

Example:
    >>> from mistrace.config import RenderSettings, get_quality_preset
    >>> preset = get_quality_preset("draft")
    >>> settings = preset.to_settings(aspect_ratio=1.0, denoise_mode="bilateral")
    >>> settings.image_height, settings.sqrt_spp
    (400, 7)
"""

import logging
import math
from dataclasses import dataclass, field, replace

logger = logging.getLogger(__name__)

DENOISE_MODES = ("off", "bilateral", "median", "fast")

DEFAULT_QUALITY = "medium"


@dataclass
class DenoiseSettings:
    """Parameters of the three denoise filters.

    Attributes:
        bilateral_sigma_spatial: Spatial Gaussian sigma in pixels.
        bilateral_sigma_intensity: Color-difference Gaussian sigma.
        median_kernel_size: Window side for the median filter.
        fast_kernel_size: Window side for the threshold filter.
        fast_edge_threshold: Maximum color distance of averaged neighbours.
    """

    bilateral_sigma_spatial: float = 1.5
    bilateral_sigma_intensity: float = 0.15
    median_kernel_size: int = 5
    fast_kernel_size: int = 3
    fast_edge_threshold: float = 0.08


@dataclass
class RenderSettings:
    """Settings for one render.

    Attributes:
        image_width: Output width in pixels.
        aspect_ratio: Width / height. The height is derived from it.
        samples_per_pixel: Requested samples per pixel. The renderer uses
            the largest square number not above it.
        max_depth: Recursion bound of the estimator.
        background: Radiance returned for rays that leave the scene.
        denoise_mode: One of DENOISE_MODES. Unknown values pass the image
            through unchanged.
        denoise: Filter parameters.

    Raises:
        ValueError: On construction, if a numeric setting is out of range.
    """

    image_width: int = 100
    aspect_ratio: float = 1.0
    samples_per_pixel: int = 10
    max_depth: int = 10
    background: tuple[float, float, float] = (0.0, 0.0, 0.0)
    denoise_mode: str = "off"
    denoise: DenoiseSettings = field(default_factory=DenoiseSettings)

    def __post_init__(self) -> None:
        if self.image_width < 1:
            raise ValueError(f"image_width must be >= 1, got {self.image_width}")
        if not self.aspect_ratio > 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel must be >= 1, got {self.samples_per_pixel}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")

    @property
    def image_height(self) -> int:
        """Output height in pixels, at least 1."""
        return max(1, int(self.image_width / self.aspect_ratio))

    @property
    def sqrt_spp(self) -> int:
        """Number of strata along each pixel axis."""
        return max(1, math.isqrt(self.samples_per_pixel))

    @property
    def pixel_samples_scale(self) -> float:
        """Weight of one sample in the pixel average."""
        return 1.0 / (self.sqrt_spp * self.sqrt_spp)


@dataclass(frozen=True)
class QualityPreset:
    """A named resolution / sample count / depth combination.

    Attributes:
        name: Preset name.
        image_width: Output width in pixels.
        samples_per_pixel: Requested samples per pixel.
        max_depth: Recursion bound.
    """

    name: str
    image_width: int
    samples_per_pixel: int
    max_depth: int

    def to_settings(self, **overrides) -> RenderSettings:
        """Create RenderSettings from this preset.

        Args:
            **overrides: Any other RenderSettings field (aspect_ratio,
                background, denoise_mode, ...).

        Returns:
            The settings.
        """
        settings = RenderSettings(
            image_width=self.image_width,
            samples_per_pixel=self.samples_per_pixel,
            max_depth=self.max_depth,
        )
        return replace(settings, **overrides)


QUALITY_PRESETS: dict[str, QualityPreset] = {
    "draft": QualityPreset("draft", 400, 50, 8),
    "low": QualityPreset("low", 800, 150, 20),
    "medium": QualityPreset("medium", 1200, 500, 50),
    "high": QualityPreset("high", 1920, 1000, 80),
    "ultra": QualityPreset("ultra", 2560, 4000, 200),
}


def get_quality_preset(name: str | None) -> QualityPreset:
    """Look up a quality preset by name.

    Args:
        name: Preset name (case-insensitive). None selects the default.

    Returns:
        The preset, or the "medium" preset if the name is unknown.
    """
    if name is None:
        return QUALITY_PRESETS[DEFAULT_QUALITY]
    preset = QUALITY_PRESETS.get(name.lower())
    if preset is None:
        logger.warning(
            "Unknown quality preset %r, using %r (choices: %s)",
            name,
            DEFAULT_QUALITY,
            ", ".join(QUALITY_PRESETS),
        )
        preset = QUALITY_PRESETS[DEFAULT_QUALITY]
    return preset
