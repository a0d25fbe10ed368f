"""Camera module for view and ray generation.

Components:
    thin_lens: Look-at thin-lens camera, CameraRig and stratified sampler

Camera responsibilities:
    - Derive the viewport on the focus plane from vfov and focus distance
    - Jitter samples inside a sqrt_spp x sqrt_spp stratum grid per pixel
    - Sample ray origins on the defocus disk for depth of field
    - Stamp every ray with a random time for motion blur

Pixel coordinates follow image convention: (0, 0) is the top-left pixel.
"""

from .thin_lens import (
    CameraRig,
    ThinLensCamera,
    build_camera_rig,
    defocus_disk_sample,
    get_camera_info,
    get_ray,
    sample_square_stratified,
    setup_camera,
    upload_camera_rig,
)

__all__ = [
    "ThinLensCamera",
    "CameraRig",
    "build_camera_rig",
    "upload_camera_rig",
    "setup_camera",
    "sample_square_stratified",
    "defocus_disk_sample",
    "get_ray",
    "get_camera_info",
]
