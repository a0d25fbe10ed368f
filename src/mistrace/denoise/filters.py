"""Edge-aware denoise filters over a rendered pixel buffer.

Three filters are provided, each a pure function from a (height, width, 3)
float buffer to a new buffer of the same shape. The input is never modified.
Every filter is a single Taichi kernel whose parallel loop runs over output
pixels and only reads the input, so pixels are independent.

    bilateral_denoise: Gaussian in space times Gaussian in color difference,
        radius ceil(2.5 * sigma_spatial), borders clamped.
    median_denoise:    per-channel median of the (2r+1)^2 window,
        r = kernel_size // 2, borders clamped.
    fast_denoise:      mean of the in-image neighbours whose color lies within
        edge_threshold (Euclidean) of the center, r = kernel_size // 2.

``apply_denoise`` selects a filter by mode name.

Example:
    >>> import numpy as np
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.denoise.filters import apply_denoise
    >>> noisy = np.random.rand(32, 32, 3).astype(np.float32)
    >>> smooth = apply_denoise(noisy, "bilateral")
"""

import logging
import math

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from mistrace.config import DENOISE_MODES, DenoiseSettings

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def _load(image: ti.template(), y: ti.i32, x: ti.i32) -> vec3:
    return vec3(image[y, x, 0], image[y, x, 1], image[y, x, 2])


@ti.func
def _store(image: ti.template(), y: ti.i32, x: ti.i32, color: vec3):
    for c in ti.static(range(3)):
        image[y, x, c] = color[c]


# =============================================================================
# Kernels
# =============================================================================


@ti.kernel
def _bilateral_kernel(
    src: ti.types.ndarray(dtype=ti.f32, ndim=3),
    dst: ti.types.ndarray(dtype=ti.f32, ndim=3),
    radius: ti.i32,
    spatial_factor: ti.f32,
    intensity_factor: ti.f32,
):
    height = src.shape[0]
    width = src.shape[1]
    for y, x in ti.ndrange(height, width):
        center = _load(src, y, x)
        weighted_sum = vec3(0.0, 0.0, 0.0)
        weight_sum = 0.0

        for ky in range(-radius, radius + 1):
            for kx in range(-radius, radius + 1):
                ny = ti.min(ti.max(y + ky, 0), height - 1)
                nx = ti.min(ti.max(x + kx, 0), width - 1)
                neighbor = _load(src, ny, nx)

                spatial_dist = ti.cast(kx * kx + ky * ky, ti.f32)
                diff = center - neighbor
                intensity_dist = tm.dot(diff, diff)

                weight = ti.exp(-spatial_dist * spatial_factor) * ti.exp(
                    -intensity_dist * intensity_factor
                )
                weighted_sum += neighbor * weight
                weight_sum += weight

        # The center tap has weight 1, so weight_sum >= 1
        _store(dst, y, x, weighted_sum / weight_sum)


@ti.kernel
def _median_kernel(
    src: ti.types.ndarray(dtype=ti.f32, ndim=3),
    dst: ti.types.ndarray(dtype=ti.f32, ndim=3),
    radius: ti.i32,
):
    height = src.shape[0]
    width = src.shape[1]
    side = 2 * radius + 1
    count = side * side
    mid = count // 2

    for y, x, c in ti.ndrange(height, width, 3):
        # Rank selection: the window element whose sorted position range
        # [less, less + equal) contains mid is the median
        median = 0.0
        found = 0
        for a in range(count):
            if found == 0:
                ay = ti.min(ti.max(y + a // side - radius, 0), height - 1)
                ax = ti.min(ti.max(x + a % side - radius, 0), width - 1)
                candidate = src[ay, ax, c]

                less = 0
                equal = 0
                for b in range(count):
                    by = ti.min(ti.max(y + b // side - radius, 0), height - 1)
                    bx = ti.min(ti.max(x + b % side - radius, 0), width - 1)
                    value = src[by, bx, c]
                    if value < candidate:
                        less += 1
                    elif value == candidate:
                        equal += 1

                if less <= mid and mid < less + equal:
                    median = candidate
                    found = 1

        dst[y, x, c] = median


@ti.kernel
def _fast_kernel(
    src: ti.types.ndarray(dtype=ti.f32, ndim=3),
    dst: ti.types.ndarray(dtype=ti.f32, ndim=3),
    radius: ti.i32,
    edge_threshold: ti.f32,
):
    height = src.shape[0]
    width = src.shape[1]
    for y, x in ti.ndrange(height, width):
        center = _load(src, y, x)
        # The center tap is always taken, so a NaN or Inf center passes through
        color_sum = center
        count = 1

        for ky in range(-radius, radius + 1):
            for kx in range(-radius, radius + 1):
                ny = y + ky
                nx = x + kx
                if (ky != 0 or kx != 0) and nx >= 0 and nx < width and ny >= 0 and ny < height:
                    neighbor = _load(src, ny, nx)
                    if tm.length(center - neighbor) < edge_threshold:
                        color_sum += neighbor
                        count += 1

        _store(dst, y, x, color_sum / ti.cast(count, ti.f32))


# =============================================================================
# Public API
# =============================================================================


def _prepare(image: npt.ArrayLike) -> tuple[np.ndarray, np.ndarray]:
    """Validate a pixel buffer and allocate the output buffer.

    Raises:
        ValueError: If the buffer is not (height, width, 3).
    """
    src = np.ascontiguousarray(image, dtype=np.float32)
    if src.ndim != 3 or src.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (height, width, 3), got {src.shape}")
    return src, np.empty_like(src)


def bilateral_denoise(
    image: npt.ArrayLike,
    sigma_spatial: float = 1.5,
    sigma_intensity: float = 0.15,
) -> npt.NDArray[np.float32]:
    """Edge-preserving bilateral filter.

    Each output pixel is the normalized sum over a (2r+1)^2 window with
    r = ceil(2.5 * sigma_spatial) of

        exp(-(kx^2 + ky^2) / (2 sigma_spatial^2))
        * exp(-|center - neighbour|^2 / (2 sigma_intensity^2)) * neighbour

    with coordinates clamped at the image border.

    Args:
        image: Float buffer of shape (height, width, 3).
        sigma_spatial: Spatial sigma in pixels (larger = more smoothing).
        sigma_intensity: Color sigma (larger = blurs across edges).

    Returns:
        A new float32 buffer of the same shape.

    Raises:
        ValueError: If a sigma is not positive or the shape is wrong.
    """
    if not sigma_spatial > 0.0:
        raise ValueError(f"sigma_spatial must be positive, got {sigma_spatial}")
    if not sigma_intensity > 0.0:
        raise ValueError(f"sigma_intensity must be positive, got {sigma_intensity}")

    src, dst = _prepare(image)
    radius = int(math.ceil(sigma_spatial * 2.5))
    spatial_factor = 1.0 / (2.0 * sigma_spatial * sigma_spatial)
    intensity_factor = 1.0 / (2.0 * sigma_intensity * sigma_intensity)
    _bilateral_kernel(src, dst, radius, spatial_factor, intensity_factor)
    return dst


def median_denoise(image: npt.ArrayLike, kernel_size: int = 5) -> npt.NDArray[np.float32]:
    """Per-channel median filter.

    Args:
        image: Float buffer of shape (height, width, 3).
        kernel_size: Window side before rounding; the window radius is
            kernel_size // 2, so even sizes behave like the next odd size.

    Returns:
        A new float32 buffer of the same shape.

    Raises:
        ValueError: If kernel_size < 1 or the shape is wrong.
    """
    if kernel_size < 1:
        raise ValueError(f"kernel_size must be >= 1, got {kernel_size}")

    src, dst = _prepare(image)
    _median_kernel(src, dst, kernel_size // 2)
    return dst


def fast_denoise(
    image: npt.ArrayLike,
    kernel_size: int = 3,
    edge_threshold: float = 0.08,
) -> npt.NDArray[np.float32]:
    """Threshold box filter for quick previews.

    Averages the in-image neighbours of the (2r+1)^2 window, r = kernel_size
    // 2, whose Euclidean color distance to the center is strictly below
    edge_threshold. Neighbours outside the image are skipped, not clamped.
    The center itself is always included, so a NaN or Inf center passes
    through unchanged and never spreads to its neighbours.

    Args:
        image: Float buffer of shape (height, width, 3).
        kernel_size: Window side before rounding.
        edge_threshold: Maximum color distance of averaged neighbours.

    Returns:
        A new float32 buffer of the same shape.

    Raises:
        ValueError: If kernel_size < 1, edge_threshold is not positive, or
            the shape is wrong.
    """
    if kernel_size < 1:
        raise ValueError(f"kernel_size must be >= 1, got {kernel_size}")
    if not edge_threshold > 0.0:
        raise ValueError(f"edge_threshold must be positive, got {edge_threshold}")

    src, dst = _prepare(image)
    _fast_kernel(src, dst, kernel_size // 2, edge_threshold)
    return dst


def apply_denoise(
    image: npt.ArrayLike,
    mode: str | None,
    settings: DenoiseSettings | None = None,
) -> npt.NDArray[np.float32]:
    """Apply the denoise filter selected by ``mode``.

    Args:
        image: Float buffer of shape (height, width, 3).
        mode: "off", "bilateral", "median" or "fast". None means "off".
            Any other value logs a warning and passes the image through.
        settings: Filter parameters; defaults are used when omitted.

    Returns:
        A new float32 buffer. For "off" and unknown modes it holds the same
        values as the input.
    """
    if settings is None:
        settings = DenoiseSettings()

    selected = "off" if mode is None else mode.lower()

    if selected == "bilateral":
        logger.info(
            "Applying bilateral denoise (sigma_spatial=%s, sigma_intensity=%s)",
            settings.bilateral_sigma_spatial,
            settings.bilateral_sigma_intensity,
        )
        return bilateral_denoise(
            image, settings.bilateral_sigma_spatial, settings.bilateral_sigma_intensity
        )
    if selected == "median":
        logger.info("Applying median denoise (kernel_size=%d)", settings.median_kernel_size)
        return median_denoise(image, settings.median_kernel_size)
    if selected == "fast":
        logger.info(
            "Applying fast denoise (kernel_size=%d, edge_threshold=%s)",
            settings.fast_kernel_size,
            settings.fast_edge_threshold,
        )
        return fast_denoise(image, settings.fast_kernel_size, settings.fast_edge_threshold)

    if selected not in DENOISE_MODES:
        logger.warning(
            "Unknown denoise mode %r, leaving the image unchanged (choices: %s)",
            mode,
            ", ".join(DENOISE_MODES),
        )
    return np.array(image, dtype=np.float32, copy=True)
