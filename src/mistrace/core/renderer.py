"""Renderer: stratified per-pixel accumulation into a pixel buffer.

For every pixel the renderer sums one estimator sample per stratum of a
sqrt_spp x sqrt_spp grid, scales the sum by 1 / sqrt_spp^2 and writes the
result to the pixel buffer exactly once. Pixels are processed in parallel by
a Taichi kernel; rows are launched in bands so a progress callback can report
between launches. The buffer is returned only once every row is written.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, random_seed=42)
    >>> from mistrace.config import RenderSettings
    >>> from mistrace.core.renderer import Renderer
    >>> from mistrace.scene.cornell_box import create_cornell_box_scene
    >>>
    >>> scene, camera, background = create_cornell_box_scene()
    >>> settings = RenderSettings(image_width=64, samples_per_pixel=16, background=background)
    >>> image = Renderer(settings, camera).render()
    >>> image.shape
    (64, 64, 3)
"""

import logging
import time
from collections.abc import Callable

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from mistrace.camera.thin_lens import CameraRig, ThinLensCamera, get_ray, setup_camera
from mistrace.config import RenderSettings
from mistrace.core.integrator import ray_color, set_background
from mistrace.denoise.filters import apply_denoise

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# Type alias for progress callback
# Callback receives (rows_completed, total_rows)
ProgressCallback = Callable[[int, int], None]

# Rows per kernel launch; bounds the time between progress callbacks
DEFAULT_ROWS_PER_BATCH = 16


@ti.kernel
def _render_rows(
    image: ti.types.ndarray(dtype=ti.f32, ndim=3),
    row_start: ti.i32,
    row_count: ti.i32,
    width: ti.i32,
    sqrt_spp: ti.i32,
    max_depth: ti.i32,
    pixel_samples_scale: ti.f32,
):
    """Render rows [row_start, row_start + row_count) into ``image``.

    Args:
        image: The (height, width, 3) pixel buffer.
        row_start: First row to render (0 = top).
        row_count: Number of rows to render.
        width: Image width in pixels.
        sqrt_spp: Strata per pixel axis.
        max_depth: Estimator recursion bound.
        pixel_samples_scale: 1 / sqrt_spp^2.
    """
    for r, i in ti.ndrange(row_count, width):
        j = row_start + r
        pixel_color = vec3(0.0, 0.0, 0.0)

        for s_j in range(sqrt_spp):
            for s_i in range(sqrt_spp):
                sample = ray_color(get_ray(i, j, s_i, s_j), max_depth)

                # A NaN/Inf sample would poison the whole pixel
                for c in ti.static(range(3)):
                    if tm.isnan(sample[c]) or tm.isinf(sample[c]):
                        sample[c] = 0.0

                pixel_color += sample

        pixel_color *= pixel_samples_scale
        for c in ti.static(range(3)):
            image[j, i, c] = pixel_color[c]


class Renderer:
    """Renders the current scene through a thin-lens camera.

    The scene itself lives in the module-level scene fields (see
    mistrace.scene.manager); the renderer owns the settings, the camera and
    the pixel buffer of each render.

    Attributes:
        settings: The render settings.
        camera: The camera description.
    """

    def __init__(self, settings: RenderSettings, camera: ThinLensCamera) -> None:
        """Initialize the renderer.

        Args:
            settings: Resolution, sampling and background settings.
            camera: The camera to render through.
        """
        self.settings = settings
        self.camera = camera
        self._rig: CameraRig | None = None

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.settings.image_width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.settings.image_height

    @property
    def rig(self) -> CameraRig | None:
        """The CameraRig of the last render, or None before the first one."""
        return self._rig

    def render(
        self,
        callback: ProgressCallback | None = None,
        rows_per_batch: int = DEFAULT_ROWS_PER_BATCH,
    ) -> npt.NDArray[np.float32]:
        """Render the image.

        Args:
            callback: Optional callback called after each band of rows.
                Receives (rows_completed, total_rows).
            rows_per_batch: Number of rows per kernel launch.

        Returns:
            Linear radiance as a float32 array of shape (height, width, 3),
            row 0 at the top of the image.

        Raises:
            ValueError: If rows_per_batch is not positive or the camera is
                degenerate.
        """
        if rows_per_batch < 1:
            raise ValueError(f"rows_per_batch must be >= 1, got {rows_per_batch}")

        width = self.width
        height = self.height
        self._rig = setup_camera(
            self.camera, width, height, self.settings.samples_per_pixel
        )
        set_background(self.settings.background)

        image = np.zeros((height, width, 3), dtype=np.float32)

        logger.info(
            "Rendering %dx%d, %d samples per pixel (%d^2), max depth %d",
            width,
            height,
            self._rig.sqrt_spp * self._rig.sqrt_spp,
            self._rig.sqrt_spp,
            self.settings.max_depth,
        )
        start_time = time.perf_counter()

        for row_start in range(0, height, rows_per_batch):
            row_count = min(rows_per_batch, height - row_start)
            _render_rows(
                image,
                row_start,
                row_count,
                width,
                self._rig.sqrt_spp,
                self.settings.max_depth,
                self._rig.pixel_samples_scale,
            )
            rows_done = row_start + row_count
            logger.debug("Rendered rows %d/%d", rows_done, height)
            if callback is not None:
                callback(rows_done, height)

        ti.sync()
        logger.info("Render finished in %.2fs", time.perf_counter() - start_time)
        return image

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"samples_per_pixel={self.settings.samples_per_pixel}, "
            f"max_depth={self.settings.max_depth})"
        )


def render_image(
    settings: RenderSettings,
    camera: ThinLensCamera,
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.float32]:
    """Render the current scene and apply the configured denoise mode.

    Args:
        settings: Render settings, including ``denoise_mode``.
        camera: The camera to render through.
        callback: Optional progress callback, see Renderer.render().

    Returns:
        The (possibly denoised) float32 pixel buffer.
    """
    image = Renderer(settings, camera).render(callback=callback)
    return apply_denoise(image, settings.denoise_mode, settings.denoise)
