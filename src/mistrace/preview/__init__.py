"""Preview module for output and visualization.

Components:
    display: Matplotlib-based preview and side-by-side comparison
    export: Gamma-encoded 8-bit PNG and plain-text PPM export

Example:
    >>> from mistrace.preview import save_image, show_preview
    >>> show_preview(image)
    >>> save_image(image, "output.png")
"""

from mistrace.preview.display import (
    apply_gamma,
    process_image_for_display,
    show_comparison,
    show_preview,
)
from mistrace.preview.export import (
    compute_rmse,
    encode_pixels,
    save_image,
    save_png,
    write_ppm,
)

__all__ = [
    # Display functions
    "show_preview",
    "show_comparison",
    "apply_gamma",
    "process_image_for_display",
    # Export functions
    "encode_pixels",
    "write_ppm",
    "save_png",
    "save_image",
    "compute_rmse",
]
