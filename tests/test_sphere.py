"""Unit tests for sphere intersection and sphere light sampling.

Tests cover:
- Ray hitting sphere from outside (front face)
- Ray missing sphere
- Ray starting inside sphere (back face)
- Interval bounds and degenerate radius
- Surface (u, v) coordinates
- Solid-angle density and direction sampling toward a sphere
"""

import math

import numpy as np
import pytest
import taichi as ti

N_DIRECTIONS = 20000


def _run_hit(origin, direction, center=(0.0, 0.0, 0.0), radius=1.0, t_min=0.001, t_max=1000.0):
    """Run hit_sphere in a kernel and return the record as a dict."""
    from mistrace.geometry.sphere import Sphere, hit_sphere, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    point = ti.field(dtype=ti.math.vec3, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())
    uv = ti.field(dtype=ti.math.vec2, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, c: vec3, r: ti.f32, lo: ti.f32, hi: ti.f32):
        record = hit_sphere(o, d, Sphere(center=c, radius=r), lo, hi)
        hit[None] = record.hit
        t_val[None] = record.t
        point[None] = record.point
        normal[None] = record.normal
        uv[None] = ti.math.vec2(record.u, record.v)
        front_face[None] = record.front_face

    test_kernel(vec3(*origin), vec3(*direction), vec3(*center), radius, t_min, t_max)
    return {
        "hit": hit[None],
        "t": t_val[None],
        "point": point[None].to_numpy(),
        "normal": normal[None].to_numpy(),
        "uv": uv[None].to_numpy(),
        "front_face": front_face[None],
    }


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_hit_sphere_direct_hit(self):
        """Test ray hitting sphere head-on from outside."""
        rec = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(4.0, abs=1e-5)
        np.testing.assert_allclose(rec["point"], [0.0, 0.0, 1.0], atol=1e-5)
        np.testing.assert_allclose(rec["normal"], [0.0, 0.0, 1.0], atol=1e-5)
        assert rec["front_face"] == 1

    def test_hit_sphere_miss(self):
        """Test ray missing sphere entirely."""
        rec = _run_hit((5.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["hit"] == 0

    def test_hit_sphere_inside(self):
        """Test ray starting inside sphere hits the back face."""
        rec = _run_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(1.0, abs=1e-5)
        # Normal faces against the ray
        np.testing.assert_allclose(rec["normal"], [0.0, 0.0, -1.0], atol=1e-5)
        assert rec["front_face"] == 0

    def test_hit_sphere_behind_ray(self):
        """Test sphere behind the ray origin is not hit."""
        rec = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, 1.0))
        assert rec["hit"] == 0

    def test_hit_sphere_t_max_boundary(self):
        """Test hits beyond t_max are rejected."""
        rec = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), t_max=3.9)
        assert rec["hit"] == 0

    def test_zero_radius_never_hits(self):
        """Test a zero-radius sphere is never intersected."""
        rec = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), radius=0.0)
        assert rec["hit"] == 0

    def test_unnormalized_ray_direction(self):
        """Test t scales with the direction length."""
        rec = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, -2.0))
        assert rec["hit"] == 1
        assert rec["t"] == pytest.approx(2.0, abs=1e-5)

    def test_large_sphere_large_distance(self):
        """Test the ground sphere of the random spheres scene."""
        rec = _run_hit(
            (13.0, 2.0, 3.0), (0.0, -1.0, 0.0), center=(0.0, -1000.0, 0.0), radius=1000.0
        )
        assert rec["hit"] == 1
        expected_y = -1000.0 + math.sqrt(1000.0**2 - 13.0**2 - 3.0**2)
        assert rec["point"][1] == pytest.approx(expected_y, abs=0.05)
        assert rec["normal"][1] > 0.99

    def test_uv_at_poles_and_equator(self):
        """Test v runs from 0 at the bottom to 1 at the top."""
        top = _run_hit((0.0, 5.0, 0.0), (0.0, -1.0, 0.0))
        bottom = _run_hit((0.0, -5.0, 0.0), (0.0, 1.0, 0.0))
        side = _run_hit((5.0, 0.0, 0.0), (-1.0, 0.0, 0.0))
        assert top["uv"][1] == pytest.approx(1.0, abs=1e-3)
        assert bottom["uv"][1] == pytest.approx(0.0, abs=1e-3)
        # x = +1 is half way around from x = -1
        assert side["uv"][0] == pytest.approx(0.5, abs=1e-3)
        assert side["uv"][1] == pytest.approx(0.5, abs=1e-3)


class TestSphereLightSampling:
    """Tests for pdf_value_sphere and random_toward_sphere."""

    def test_pdf_value_toward_and_away(self):
        """Test positive density toward the sphere and zero away from it."""
        from mistrace.geometry.sphere import Sphere, pdf_value_sphere, vec3

        toward = ti.field(dtype=ti.f32, shape=())
        away = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            sphere = Sphere(center=vec3(0.0, 0.0, -4.0), radius=1.0)
            origin = vec3(0.0, 0.0, 0.0)
            toward[None] = pdf_value_sphere(sphere, origin, vec3(0.0, 0.0, -1.0))
            away[None] = pdf_value_sphere(sphere, origin, vec3(0.0, 0.0, 1.0))

        test_kernel()
        cos_theta_max = math.sqrt(1.0 - 1.0 / 16.0)
        expected = 1.0 / (2.0 * math.pi * (1.0 - cos_theta_max))
        assert toward[None] == pytest.approx(expected, rel=1e-3)
        assert away[None] == 0.0

    def test_pdf_integrates_to_one(self):
        """Test E_uniform[pdf] * 4 pi is close to 1."""
        from mistrace.core.ray import random_unit_vector
        from mistrace.geometry.sphere import Sphere, pdf_value_sphere, vec3

        values = ti.field(dtype=ti.f32, shape=N_DIRECTIONS)

        @ti.kernel
        def test_kernel():
            for i in range(N_DIRECTIONS):
                sphere = Sphere(center=vec3(0.0, 0.0, -4.0), radius=1.0)
                values[i] = pdf_value_sphere(sphere, vec3(0.0, 0.0, 0.0), random_unit_vector())

        test_kernel()
        integral = values.to_numpy().mean() * 4.0 * math.pi
        assert integral == pytest.approx(1.0, abs=0.15)

    def test_random_toward_sphere_hits_sphere(self):
        """Test every sampled direction hits the sphere."""
        from mistrace.geometry.sphere import Sphere, hit_sphere, random_toward_sphere, vec3

        hits = ti.field(dtype=ti.i32, shape=1000)

        @ti.kernel
        def test_kernel():
            for i in range(1000):
                sphere = Sphere(center=vec3(3.0, 1.0, -4.0), radius=1.0)
                origin = vec3(0.0, 0.0, 0.0)
                d = random_toward_sphere(sphere, origin)
                hits[i] = hit_sphere(origin, d, sphere, 0.001, 1e6).hit

        test_kernel()
        # Directions on the cone boundary may graze past the silhouette
        assert hits.to_numpy().mean() > 0.99
