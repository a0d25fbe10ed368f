"""Tests for the thin-lens camera.

Tests cover:
- Camera rig derivation (basis, viewport, strata)
- Degenerate configurations
- Stratified jitter stays inside its stratum
- Rays start on the defocus disk and carry a time in [0, 1)
- Pinhole rays through the pixel centers
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestCameraRig:
    """Tests for build_camera_rig."""

    def test_basis_is_orthonormal(self):
        """Test u, v, w form a right-handed orthonormal basis."""
        from mistrace.camera.thin_lens import ThinLensCamera, build_camera_rig

        camera = ThinLensCamera(lookfrom=(13.0, 2.0, 3.0), lookat=(0.0, 0.0, 0.0), vfov=20.0)
        rig = build_camera_rig(camera, 160, 90, 16)
        u, v, w = (np.array(rig.u), np.array(rig.v), np.array(rig.w))

        for a in (u, v, w):
            assert np.linalg.norm(a) == pytest.approx(1.0)
        assert abs(np.dot(u, v)) < 1e-12
        assert abs(np.dot(u, w)) < 1e-12
        assert abs(np.dot(v, w)) < 1e-12
        np.testing.assert_allclose(np.cross(u, v), w, atol=1e-12)

    def test_viewport_geometry(self):
        """Test the pixel deltas span the viewport at the focus distance."""
        from mistrace.camera.thin_lens import ThinLensCamera, build_camera_rig

        camera = ThinLensCamera(vfov=90.0, focus_dist=2.0)
        rig = build_camera_rig(camera, 200, 100, 1)

        # Viewport height = 2 * tan(45) * focus_dist = 4
        assert np.linalg.norm(rig.pixel_delta_v) * 100 == pytest.approx(4.0)
        assert np.linalg.norm(rig.pixel_delta_u) * 200 == pytest.approx(8.0)
        # Row index grows downward
        assert rig.pixel_delta_v[1] < 0.0
        # pixel00 is half a pixel inside the upper left corner
        np.testing.assert_allclose(rig.pixel00, (-4.0 + 0.02, 2.0 - 0.02, -2.0), atol=1e-9)

    def test_strata_from_samples_per_pixel(self):
        """Test sqrt_spp is the integer square root of the sample count."""
        from mistrace.camera.thin_lens import ThinLensCamera, build_camera_rig

        rig = build_camera_rig(ThinLensCamera(), 4, 4, 10)
        assert rig.sqrt_spp == 3
        assert rig.recip_sqrt_spp == pytest.approx(1.0 / 3.0)
        assert rig.pixel_samples_scale == pytest.approx(1.0 / 9.0)

    def test_defocus_disk_radius(self):
        """Test the disk radius is focus_dist * tan(defocus_angle / 2)."""
        from mistrace.camera.thin_lens import ThinLensCamera, build_camera_rig

        camera = ThinLensCamera(defocus_angle=0.6, focus_dist=10.0)
        rig = build_camera_rig(camera, 10, 10, 1)
        expected = 10.0 * math.tan(math.radians(0.3))
        assert np.linalg.norm(rig.defocus_disk_u) == pytest.approx(expected)
        assert np.linalg.norm(rig.defocus_disk_v) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "camera_kwargs",
        [
            {"lookfrom": (1.0, 1.0, 1.0), "lookat": (1.0, 1.0, 1.0)},
            {"lookfrom": (0.0, 5.0, 0.0), "lookat": (0.0, 0.0, 0.0), "vup": (0.0, 1.0, 0.0)},
        ],
    )
    def test_degenerate_basis_raises(self, camera_kwargs):
        """Test a zero-length basis vector raises ValueError."""
        from mistrace.camera.thin_lens import ThinLensCamera, build_camera_rig

        with pytest.raises(ValueError):
            build_camera_rig(ThinLensCamera(**camera_kwargs), 10, 10, 1)

    def test_invalid_resolution_raises(self):
        """Test zero image size or sample count raises ValueError."""
        from mistrace.camera.thin_lens import ThinLensCamera, build_camera_rig

        with pytest.raises(ValueError):
            build_camera_rig(ThinLensCamera(), 0, 10, 1)
        with pytest.raises(ValueError):
            build_camera_rig(ThinLensCamera(), 10, 10, 0)


class TestRayGeneration:
    """Tests for the kernel-side sampling functions."""

    def test_stratified_offsets_stay_in_stratum(self):
        """Test jitter for stratum (s_i, s_j) lies inside that sub-cell."""
        from mistrace.camera.thin_lens import ThinLensCamera, sample_square_stratified, setup_camera

        sqrt_spp = 4
        setup_camera(ThinLensCamera(), 8, 8, sqrt_spp * sqrt_spp)
        n = 64
        offsets = ti.Vector.field(3, dtype=ti.f32, shape=(sqrt_spp, sqrt_spp, n))

        @ti.kernel
        def test_kernel():
            for s_i, s_j, k in offsets:
                offsets[s_i, s_j, k] = sample_square_stratified(s_i, s_j)

        test_kernel()
        values = offsets.to_numpy()
        for s_i in range(sqrt_spp):
            for s_j in range(sqrt_spp):
                px = values[s_i, s_j, :, 0]
                py = values[s_i, s_j, :, 1]
                assert (px >= s_i / sqrt_spp - 0.5 - 1e-6).all()
                assert (px < (s_i + 1) / sqrt_spp - 0.5 + 1e-6).all()
                assert (py >= s_j / sqrt_spp - 0.5 - 1e-6).all()
                assert (py < (s_j + 1) / sqrt_spp - 0.5 + 1e-6).all()

    def test_ray_origins_on_defocus_disk_and_time_range(self):
        """Test rays start within the lens disk and have time in [0, 1)."""
        from mistrace.camera.thin_lens import ThinLensCamera, get_ray, setup_camera

        camera = ThinLensCamera(
            lookfrom=(13.0, 2.0, 3.0),
            lookat=(0.0, 0.0, 0.0),
            vfov=20.0,
            defocus_angle=0.6,
            focus_dist=10.0,
        )
        rig = setup_camera(camera, 16, 9, 4)
        n = 4096
        origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
        times = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                ray = get_ray(k % 16, (k // 16) % 9, k % 2, (k // 2) % 2)
                origins[k] = ray.origin
                times[k] = ray.time

        test_kernel()
        radius = np.linalg.norm(rig.defocus_disk_u)
        offsets = origins.to_numpy() - np.array(rig.center)
        # Offsets lie in the lens plane spanned by u and v
        assert np.abs(offsets @ np.array(rig.w)).max() < 1e-4
        assert np.linalg.norm(offsets, axis=1).max() <= radius * (1.0 + 1e-3)
        assert np.linalg.norm(offsets, axis=1).max() > 0.0

        t = times.to_numpy()
        assert (t >= 0.0).all() and (t < 1.0).all()

    def test_pinhole_rays_start_at_center(self):
        """Test a zero defocus angle gives rays from the camera center."""
        from mistrace.camera.thin_lens import ThinLensCamera, get_camera_info, get_ray, setup_camera

        setup_camera(ThinLensCamera(lookfrom=(1.0, 2.0, 3.0), lookat=(1.0, 2.0, 0.0)), 4, 4, 1)
        origins = ti.Vector.field(3, dtype=ti.f32, shape=16)
        directions = ti.Vector.field(3, dtype=ti.f32, shape=16)

        @ti.kernel
        def test_kernel():
            for k in range(16):
                ray = get_ray(k % 4, k // 4, 0, 0)
                origins[k] = ray.origin
                directions[k] = ray.direction

        test_kernel()
        np.testing.assert_allclose(origins.to_numpy(), np.tile([1.0, 2.0, 3.0], (16, 1)), atol=1e-6)
        # All rays point forward (-z)
        assert (directions.to_numpy()[:, 2] < 0.0).all()
        assert get_camera_info()["defocus_angle"] == 0.0

    def test_pixel_rows_run_top_to_bottom(self):
        """Test row 0 rays point upward of row h-1 rays."""
        from mistrace.camera.thin_lens import ThinLensCamera, get_ray, setup_camera

        setup_camera(ThinLensCamera(), 4, 4, 1)
        dirs = ti.Vector.field(3, dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            for k in range(2):
                dirs[k] = get_ray(0, k * 3, 0, 0).direction

        test_kernel()
        d = dirs.to_numpy()
        assert d[0, 1] > 0.0 > d[1, 1]
        # Column 0 is on the left (-x for a camera looking down -z)
        assert d[0, 0] < 0.0
