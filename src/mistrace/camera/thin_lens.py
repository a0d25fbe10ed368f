"""Thin-lens camera rig with stratified pixel sampling.

This module turns a look-at camera description into a CameraRig (the frozen
set of vectors needed to generate rays) and provides the kernel-side sampler
that produces one ray per (pixel, stratum) pair.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport sits on the focus plane, focus_dist in front of the camera.
Pixel (0, 0) is the top-left pixel; pixel_delta_v points down the image.
With a non-zero defocus angle, ray origins are spread over a lens disk so
only the focus plane is sharp.

Each pixel is divided into sqrt_spp x sqrt_spp strata and each sample is
jittered uniformly inside its stratum; every ray also gets a uniform random
time in [0, 1) for motion blur.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.camera.thin_lens import ThinLensCamera, setup_camera
    >>> camera = ThinLensCamera(
    ...     lookfrom=(13.0, 2.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vfov=20.0,
    ...     defocus_angle=0.6,
    ...     focus_dist=10.0,
    ... )
    >>> rig = setup_camera(camera, image_width=400, image_height=225, samples_per_pixel=100)
    >>> rig.sqrt_spp
    10
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from mistrace.core.ray import Ray, make_ray, random_in_unit_disk, vec3

logger = logging.getLogger(__name__)

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens (perspective with depth of field) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation.
        vfov: Vertical field of view in degrees.
        defocus_angle: Cone angle in degrees of rays through each pixel.
            0 gives a pinhole camera with everything in focus.
        focus_dist: Distance from lookfrom to the plane of perfect focus.
    """

    lookfrom: tuple[float, float, float] = (0.0, 0.0, 0.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0
    defocus_angle: float = 0.0
    focus_dist: float = 10.0


@dataclass(frozen=True)
class CameraRig:
    """Derived camera state, computed once per render.

    Attributes:
        image_width: Image width in pixels.
        image_height: Image height in pixels.
        center: Camera center (lookfrom).
        u: Camera right vector.
        v: Camera up vector.
        w: Camera backward vector.
        pixel00: World position of the center of pixel (0, 0).
        pixel_delta_u: Offset to the pixel to the right.
        pixel_delta_v: Offset to the pixel below.
        defocus_disk_u: Horizontal radius vector of the lens disk.
        defocus_disk_v: Vertical radius vector of the lens disk.
        defocus_angle: Cone angle in degrees (<= 0 disables the lens).
        sqrt_spp: Number of strata along each pixel axis.
        recip_sqrt_spp: 1 / sqrt_spp.
        pixel_samples_scale: 1 / sqrt_spp^2, the per-sample weight.
    """

    image_width: int
    image_height: int
    center: tuple[float, float, float]
    u: tuple[float, float, float]
    v: tuple[float, float, float]
    w: tuple[float, float, float]
    pixel00: tuple[float, float, float]
    pixel_delta_u: tuple[float, float, float]
    pixel_delta_v: tuple[float, float, float]
    defocus_disk_u: tuple[float, float, float]
    defocus_disk_v: tuple[float, float, float]
    defocus_angle: float
    sqrt_spp: int
    recip_sqrt_spp: float
    pixel_samples_scale: float


def _as_tuple(array: np.ndarray) -> tuple[float, float, float]:
    return (float(array[0]), float(array[1]), float(array[2]))


def build_camera_rig(
    camera: ThinLensCamera,
    image_width: int,
    image_height: int,
    samples_per_pixel: int,
) -> CameraRig:
    """Compute the CameraRig for a camera and an output resolution.

    Args:
        camera: The camera description.
        image_width: Image width in pixels.
        image_height: Image height in pixels.
        samples_per_pixel: Requested samples per pixel. Only the largest
            square number not above it is used (sqrt_spp^2 samples).

    Returns:
        The derived CameraRig.

    Raises:
        ValueError: If the resolution or sample count is not positive, or
            if the view basis is degenerate (lookfrom == lookat, or vup
            parallel to the view direction).
    """
    if image_width < 1 or image_height < 1:
        raise ValueError(f"Image size must be positive, got {image_width}x{image_height}")
    if samples_per_pixel < 1:
        raise ValueError(f"samples_per_pixel must be >= 1, got {samples_per_pixel}")

    sqrt_spp = max(1, math.isqrt(samples_per_pixel))
    recip_sqrt_spp = 1.0 / sqrt_spp
    pixel_samples_scale = 1.0 / (sqrt_spp * sqrt_spp)

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    # w points from lookat toward lookfrom (backward)
    w = lookfrom - lookat
    w_norm = np.linalg.norm(w)
    if w_norm < 1e-12:
        raise ValueError("Camera lookfrom and lookat must differ")
    w = w / w_norm

    u = np.cross(vup, w)
    u_norm = np.linalg.norm(u)
    if u_norm < 1e-12:
        raise ValueError("Camera vup must not be parallel to the view direction")
    u = u / u_norm

    v = np.cross(w, u)

    theta = math.radians(camera.vfov)
    viewport_height = 2.0 * math.tan(theta / 2.0) * camera.focus_dist
    viewport_width = viewport_height * (image_width / image_height)

    viewport_u = viewport_width * u
    viewport_v = viewport_height * -v

    pixel_delta_u = viewport_u / image_width
    pixel_delta_v = viewport_v / image_height

    viewport_upper_left = (
        lookfrom - camera.focus_dist * w - viewport_u / 2.0 - viewport_v / 2.0
    )
    pixel00 = viewport_upper_left + 0.5 * (pixel_delta_u + pixel_delta_v)

    defocus_radius = camera.focus_dist * math.tan(math.radians(camera.defocus_angle / 2.0))

    return CameraRig(
        image_width=image_width,
        image_height=image_height,
        center=_as_tuple(lookfrom),
        u=_as_tuple(u),
        v=_as_tuple(v),
        w=_as_tuple(w),
        pixel00=_as_tuple(pixel00),
        pixel_delta_u=_as_tuple(pixel_delta_u),
        pixel_delta_v=_as_tuple(pixel_delta_v),
        defocus_disk_u=_as_tuple(u * defocus_radius),
        defocus_disk_v=_as_tuple(v * defocus_radius),
        defocus_angle=float(camera.defocus_angle),
        sqrt_spp=sqrt_spp,
        recip_sqrt_spp=recip_sqrt_spp,
        pixel_samples_scale=pixel_samples_scale,
    )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_center = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel00 = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_disk_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_disk_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_angle = ti.field(dtype=ti.f32, shape=())
_recip_sqrt_spp = ti.field(dtype=ti.f32, shape=())


def upload_camera_rig(rig: CameraRig) -> None:
    """Write a CameraRig into the kernel-visible camera fields."""
    _camera_center[None] = rig.center
    _pixel00[None] = rig.pixel00
    _pixel_delta_u[None] = rig.pixel_delta_u
    _pixel_delta_v[None] = rig.pixel_delta_v
    _defocus_disk_u[None] = rig.defocus_disk_u
    _defocus_disk_v[None] = rig.defocus_disk_v
    _defocus_angle[None] = rig.defocus_angle
    _recip_sqrt_spp[None] = rig.recip_sqrt_spp


def setup_camera(
    camera: ThinLensCamera,
    image_width: int,
    image_height: int,
    samples_per_pixel: int = 1,
) -> CameraRig:
    """Build the CameraRig for a camera and make it current for kernels.

    Args:
        camera: The camera description.
        image_width: Image width in pixels.
        image_height: Image height in pixels.
        samples_per_pixel: Requested samples per pixel.

    Returns:
        The CameraRig now visible to get_ray().

    Raises:
        ValueError: If the camera or resolution is degenerate.
    """
    rig = build_camera_rig(camera, image_width, image_height, samples_per_pixel)
    upload_camera_rig(rig)
    logger.debug(
        "Camera rig %dx%d, %d strata per axis, center=%s pixel00=%s",
        rig.image_width,
        rig.image_height,
        rig.sqrt_spp,
        rig.center,
        rig.pixel00,
    )
    return rig


# =============================================================================
# Ray Generation (Taichi-compatible)
# =============================================================================


@ti.func
def sample_square_stratified(s_i: ti.i32, s_j: ti.i32) -> vec3:
    """Jittered offset inside stratum (s_i, s_j) of the unit pixel square.

    Args:
        s_i: Stratum column in [0, sqrt_spp).
        s_j: Stratum row in [0, sqrt_spp).

    Returns:
        A vector (x, y, 0) with x, y in [-0.5, 0.5), relative to the pixel
        center, lying inside the requested stratum.
    """
    recip = _recip_sqrt_spp[None]
    px = (ti.cast(s_i, ti.f32) + ti.random(ti.f32)) * recip - 0.5
    py = (ti.cast(s_j, ti.f32) + ti.random(ti.f32)) * recip - 0.5
    return vec3(px, py, 0.0)


@ti.func
def defocus_disk_sample() -> vec3:
    """Random point on the camera's lens disk."""
    p = random_in_unit_disk()
    return _camera_center[None] + p.x * _defocus_disk_u[None] + p.y * _defocus_disk_v[None]


@ti.func
def get_ray(i: ti.i32, j: ti.i32, s_i: ti.i32, s_j: ti.i32) -> Ray:
    """Generate the camera ray for pixel (i, j) and stratum (s_i, s_j).

    The ray starts on the lens disk (or at the camera center when the
    defocus angle is not positive), points at a jittered location inside the
    stratum on the focus plane, and carries a uniform random time.

    Args:
        i: Pixel column (0 = left).
        j: Pixel row (0 = top).
        s_i: Stratum column.
        s_j: Stratum row.

    Returns:
        The camera Ray. Its direction is not normalized.
    """
    offset = sample_square_stratified(s_i, s_j)
    pixel_sample = (
        _pixel00[None]
        + (ti.cast(i, ti.f32) + offset.x) * _pixel_delta_u[None]
        + (ti.cast(j, ti.f32) + offset.y) * _pixel_delta_v[None]
    )

    ray_origin = _camera_center[None]
    if _defocus_angle[None] > 0.0:
        ray_origin = defocus_disk_sample()

    return make_ray(ray_origin, pixel_sample - ray_origin, ti.random(ti.f32))


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float] | float]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with the kernel-visible camera vectors and scalars.
    """

    def _vec(field_value) -> tuple[float, float, float]:
        return (float(field_value[0]), float(field_value[1]), float(field_value[2]))

    return {
        "center": _vec(_camera_center[None]),
        "pixel00": _vec(_pixel00[None]),
        "pixel_delta_u": _vec(_pixel_delta_u[None]),
        "pixel_delta_v": _vec(_pixel_delta_v[None]),
        "defocus_disk_u": _vec(_defocus_disk_u[None]),
        "defocus_disk_v": _vec(_defocus_disk_v[None]),
        "defocus_angle": float(_defocus_angle[None]),
        "recip_sqrt_spp": float(_recip_sqrt_spp[None]),
    }
