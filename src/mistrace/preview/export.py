"""Image export for rendered pixel buffers.

Rendered buffers hold linear radiance. Export applies a square-root gamma,
clamps each channel to [0, 0.999] and maps it to 0..255 with int(256 * x),
so 1.0 and anything brighter encode as 255.

Supported formats:
    - PPM (plain-text P3), written to any text stream or to a .ppm file
    - PNG and every other format Pillow infers from the file extension

Example:
    >>> import sys
    >>> from mistrace.preview.export import save_image, write_ppm
    >>> save_image(image, "render.png")
    True
    >>> write_ppm(image, sys.stdout)
"""

import logging
from pathlib import Path
from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

# Largest encodable intensity before scaling by 256
MAX_INTENSITY = 0.999


def encode_pixels(buffer: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    """Convert a linear float buffer to gamma-encoded 8-bit values.

    Args:
        buffer: Linear radiance of shape (H, W, 3).

    Returns:
        uint8 array of shape (H, W, 3).

    Raises:
        ValueError: If the buffer is not (H, W, 3).
    """
    image = np.asarray(buffer, dtype=np.float64)
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (height, width, 3), got {image.shape}")

    # Negative and NaN values encode as 0
    image = np.nan_to_num(image, nan=0.0, posinf=1.0, neginf=0.0)
    encoded = np.sqrt(np.maximum(image, 0.0))
    encoded = np.clip(encoded, 0.0, MAX_INTENSITY)
    return (256.0 * encoded).astype(np.uint8)


def write_ppm(buffer: npt.ArrayLike, stream: TextIO) -> None:
    """Write a buffer as plain-text PPM (P3).

    The header is "P3", then "<width> <height>", then "255", followed by one
    "r g b" line per pixel in row-major order, top row first.

    Args:
        buffer: Linear radiance of shape (H, W, 3).
        stream: Text stream to write to.
    """
    pixels = encode_pixels(buffer)
    height, width, _ = pixels.shape
    stream.write(f"P3\n{width} {height}\n255\n")
    for row in pixels:
        stream.write("".join(f"{r} {g} {b}\n" for r, g, b in row))


def save_png(buffer: npt.ArrayLike, filepath: str | Path) -> bool:
    """Save a buffer as an 8-bit RGB PNG.

    Args:
        buffer: Linear radiance of shape (H, W, 3).
        filepath: Output file path.

    Returns:
        True if the file was written, False if writing failed. Failures are
        logged; the buffer is never modified.
    """
    pil_image = PILImage.fromarray(encode_pixels(buffer))
    try:
        pil_image.save(filepath, format="PNG")
    except OSError as e:
        logger.error("Failed to write PNG file %s: %s", filepath, e)
        return False
    logger.info("Saved %dx%d image to %s", pil_image.width, pil_image.height, filepath)
    return True


def save_image(buffer: npt.ArrayLike, filepath: str | Path) -> bool:
    """Save a buffer, choosing the format from the file extension.

    ".ppm" writes plain-text P3; ".png" and any other extension go through
    Pillow.

    Args:
        buffer: Linear radiance of shape (H, W, 3).
        filepath: Output file path.

    Returns:
        True if the file was written, False if writing failed.
    """
    path = Path(filepath)
    suffix = path.suffix.lower()

    if suffix == ".png":
        return save_png(buffer, path)

    try:
        if suffix == ".ppm":
            with open(path, "w", encoding="ascii") as f:
                write_ppm(buffer, f)
        else:
            PILImage.fromarray(encode_pixels(buffer)).save(path)
    except (OSError, ValueError) as e:
        # Pillow raises ValueError for extensions it cannot map to a format
        logger.error("Failed to write image file %s: %s", path, e)
        return False

    logger.info("Saved image to %s", path)
    return True


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
