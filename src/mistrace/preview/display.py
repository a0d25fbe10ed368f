"""Matplotlib-based preview display for rendered images.

Rendered buffers hold linear radiance; these helpers apply the same
square-root gamma the exporters use (gamma 2.0) so the preview matches the
written file.

Example:
    >>> from mistrace.preview.display import show_preview
    >>> show_preview(image, title="Cornell box, 100 spp")
"""

import numpy as np
import numpy.typing as npt

# Matches the square-root encoding of mistrace.preview.export
DEFAULT_GAMMA = 2.0


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = DEFAULT_GAMMA,
) -> npt.NDArray[np.float32]:
    """Apply gamma correction for display.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma value (default 2.0, the square root).

    Returns:
        Gamma corrected image.

    Raises:
        ValueError: If gamma is not positive.
    """
    if not gamma > 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    if gamma == 1.0:
        return image

    # Clamp to [0, 1] before gamma to avoid NaN from negative values
    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    gamma: float = DEFAULT_GAMMA,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Scale, gamma-correct and clamp a linear image to [0, 1].

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma correction value.
        exposure: Linear multiplier applied before gamma.

    Returns:
        Processed image ready for display, in [0, 1] range.
    """
    result = np.nan_to_num(np.asarray(image, dtype=np.float32), nan=0.0) * exposure
    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def show_preview(
    image: npt.NDArray[np.float32],
    *,
    gamma: float = DEFAULT_GAMMA,
    exposure: float = 1.0,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 8),
    block: bool = True,
) -> None:
    """Display a rendered image as a Matplotlib figure.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma correction value.
        exposure: Linear multiplier applied before gamma.
        title: Figure title (default shows the resolution).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    display_image = process_image_for_display(image, gamma=gamma, exposure=exposure)

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")

    if title is None:
        title = f"Render Preview - {image.shape[1]}x{image.shape[0]}"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    image_a: npt.NDArray[np.float32],
    image_b: npt.NDArray[np.float32],
    *,
    labels: tuple[str, str] = ("A", "B"),
    gamma: float = DEFAULT_GAMMA,
    diff_scale: float = 10.0,
    figsize: tuple[float, float] = (16, 6),
    block: bool = True,
) -> float:
    """Display side-by-side comparison of two images with difference view.

    Typical use is a raw render next to its denoised version.

    Args:
        image_a: First image array (H, W, 3) in linear space.
        image_b: Second image array (H, W, 3) in linear space.
        labels: Labels for the two images.
        gamma: Gamma correction value.
        diff_scale: Scale factor for difference amplification.
        figsize: Figure size in inches.
        block: Whether to block execution until figure is closed.

    Returns:
        RMSE between the two images in display space.
    """
    import matplotlib.pyplot as plt

    from mistrace.preview.export import compute_rmse

    display_a = process_image_for_display(image_a, gamma=gamma)
    display_b = process_image_for_display(image_b, gamma=gamma)
    rmse = compute_rmse(display_a, display_b)

    diff_amplified = np.clip(np.abs(display_a - display_b) * diff_scale, 0.0, 1.0)

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    axes[0].imshow(display_a)
    axes[0].set_title(labels[0])
    axes[0].axis("off")

    axes[1].imshow(display_b)
    axes[1].set_title(labels[1])
    axes[1].axis("off")

    axes[2].imshow(diff_amplified)
    axes[2].set_title(f"Difference ({diff_scale}x) - RMSE: {rmse:.6f}")
    axes[2].axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return rmse
