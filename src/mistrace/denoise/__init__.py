"""Denoise module for post-render filtering.

Components:
    filters: Bilateral, median and threshold (fast) filters plus the mode
        dispatcher used by the renderer
"""

from .filters import apply_denoise, bilateral_denoise, fast_denoise, median_denoise

__all__ = [
    "apply_denoise",
    "bilateral_denoise",
    "median_denoise",
    "fast_denoise",
]
