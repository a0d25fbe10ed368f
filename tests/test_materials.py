"""Tests for the material scatter, emission and registry functions.

Tests cover:
- Lambertian: cosine pdf record, scattering density
- Metal: mirror reflection, absorption below the surface
- Dielectric: white attenuation, refraction at normal incidence,
  total internal reflection
- Diffuse light: front-face emission only
- Registry validation for each material kind
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestLambertian:
    """Tests for Lambertian scattering."""

    def test_scatter_returns_cosine_pdf_record(self):
        """Test the record carries the albedo and a cosine lobe around the normal."""
        from mistrace.core.pdf import PDF_COSINE
        from mistrace.materials.lambertian import scatter_lambertian, vec3

        did_scatter = ti.field(dtype=ti.i32, shape=())
        skip_pdf = ti.field(dtype=ti.i32, shape=())
        kind = ti.field(dtype=ti.i32, shape=())
        attenuation = ti.field(dtype=ti.math.vec3, shape=())
        axis = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            srec = scatter_lambertian(vec3(0.65, 0.05, 0.05), vec3(0.0, 1.0, 0.0))
            did_scatter[None] = srec.did_scatter
            skip_pdf[None] = srec.skip_pdf
            kind[None] = srec.pdf.kind
            attenuation[None] = srec.attenuation
            axis[None] = srec.pdf.axis

        test_kernel()
        assert did_scatter[None] == 1
        assert skip_pdf[None] == 0
        assert kind[None] == PDF_COSINE
        np.testing.assert_allclose(attenuation[None].to_numpy(), [0.65, 0.05, 0.05], atol=1e-6)
        np.testing.assert_allclose(axis[None].to_numpy(), [0.0, 1.0, 0.0], atol=1e-6)

    def test_scattering_pdf(self):
        """Test cos(theta)/pi above the surface and 0 below it."""
        from mistrace.materials.lambertian import scattering_pdf_lambertian, vec3

        values = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            n = vec3(0.0, 1.0, 0.0)
            values[0] = scattering_pdf_lambertian(n, vec3(1.0, 1.0, 0.0))
            values[1] = scattering_pdf_lambertian(n, vec3(0.0, -1.0, 0.0))

        test_kernel()
        assert values[0] == pytest.approx(math.sqrt(0.5) / math.pi, rel=1e-5)
        assert values[1] == 0.0


class TestMetal:
    """Tests for metal scattering."""

    def test_perfect_mirror(self):
        """Test zero fuzz reflects about the normal with the albedo."""
        from mistrace.core.ray import make_ray
        from mistrace.materials.metal import scatter_metal, vec3

        skip_pdf = ti.field(dtype=ti.i32, shape=())
        direction = ti.field(dtype=ti.math.vec3, shape=())
        time = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray_in = make_ray(vec3(-1.0, 1.0, 0.0), vec3(1.0, -1.0, 0.0), 0.3)
            srec = scatter_metal(
                vec3(0.7, 0.6, 0.5), 0.0, ray_in, vec3(0.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0)
            )
            skip_pdf[None] = srec.skip_pdf
            direction[None] = srec.skip_pdf_ray.direction
            time[None] = srec.skip_pdf_ray.time

        test_kernel()
        assert skip_pdf[None] == 1
        d = direction[None].to_numpy()
        expected = [math.sqrt(0.5), math.sqrt(0.5), 0.0]
        np.testing.assert_allclose(d / np.linalg.norm(d), expected, atol=1e-5)
        # Scattered rays keep the time of the incoming ray
        assert time[None] == pytest.approx(0.3)

    def test_fuzzed_reflection_below_surface_is_absorbed(self):
        """Test grazing rays with full fuzz are sometimes absorbed, never scattered downward."""
        from mistrace.core.ray import make_ray
        from mistrace.materials.metal import scatter_metal, vec3

        n = 2000
        did_scatter = ti.field(dtype=ti.i32, shape=n)
        cosines = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                normal = vec3(0.0, 1.0, 0.0)
                ray_in = make_ray(vec3(-10.0, 0.1, 0.0), vec3(1.0, -0.01, 0.0), 0.0)
                srec = scatter_metal(vec3(0.9, 0.9, 0.9), 1.0, ray_in, vec3(0.0, 0.0, 0.0), normal)
                did_scatter[i] = srec.did_scatter
                cosines[i] = srec.skip_pdf_ray.direction.dot(normal)

        test_kernel()
        scattered = did_scatter.to_numpy() == 1
        assert (~scattered).any()
        assert (cosines.to_numpy()[scattered] > 0.0).all()


class TestDielectric:
    """Tests for dielectric scattering."""

    def test_normal_incidence_mostly_refracts(self):
        """Test a ray along the normal passes through ~96% of the time."""
        from mistrace.core.ray import make_ray
        from mistrace.materials.dielectric import scatter_dielectric, vec3

        n = 4000
        through = ti.field(dtype=ti.i32, shape=n)
        attenuation = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            for i in range(n):
                ray_in = make_ray(vec3(0.0, 1.0, 0.0), vec3(0.0, -1.0, 0.0), 0.0)
                srec = scatter_dielectric(
                    1.5, ray_in, vec3(0.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0), 1
                )
                through[i] = 0
                if srec.skip_pdf_ray.direction.y < 0.0:
                    through[i] = 1
                if i == 0:
                    attenuation[None] = srec.attenuation

        test_kernel()
        np.testing.assert_allclose(attenuation[None].to_numpy(), [1.0, 1.0, 1.0])
        assert through.to_numpy().mean() == pytest.approx(0.96, abs=0.02)

    def test_total_internal_reflection(self):
        """Test a steep ray leaving glass always reflects."""
        from mistrace.core.ray import make_ray
        from mistrace.materials.dielectric import scatter_dielectric, vec3

        n = 500
        reflected = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                # 60 degrees from the normal, inside the glass (front_face = 0)
                ray_in = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.866, -0.5, 0.0), 0.0)
                srec = scatter_dielectric(
                    1.5, ray_in, vec3(0.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0), 0
                )
                reflected[i] = 0
                if srec.skip_pdf_ray.direction.y > 0.0:
                    reflected[i] = 1

        test_kernel()
        assert reflected.to_numpy().all()


class TestDiffuseLight:
    """Tests for diffuse light emission."""

    def test_emits_from_front_face_only(self):
        """Test front-face hits emit, back-face hits are black."""
        from mistrace.materials.diffuse_light import emitted_diffuse_light, vec3

        front = ti.field(dtype=ti.math.vec3, shape=())
        back = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            front[None] = emitted_diffuse_light(vec3(15.0, 15.0, 15.0), 1)
            back[None] = emitted_diffuse_light(vec3(15.0, 15.0, 15.0), 0)

        test_kernel()
        np.testing.assert_allclose(front[None].to_numpy(), [15.0, 15.0, 15.0])
        np.testing.assert_allclose(back[None].to_numpy(), [0.0, 0.0, 0.0])


class TestMaterialRegistries:
    """Tests for registry validation."""

    def test_lambertian_albedo_out_of_range(self):
        """Test albedo components outside [0, 1] raise ValueError."""
        from mistrace.materials.lambertian import add_lambertian_material

        with pytest.raises(ValueError):
            add_lambertian_material((1.2, 0.5, 0.5))
        with pytest.raises(ValueError):
            add_lambertian_material((0.5, -0.1, 0.5))

    def test_metal_fuzz_out_of_range(self):
        """Test fuzz outside [0, 1] raises ValueError."""
        from mistrace.materials.metal import add_metal_material

        with pytest.raises(ValueError):
            add_metal_material((0.5, 0.5, 0.5), fuzz=1.5)

    def test_dielectric_ior_below_one(self):
        """Test an index of refraction below 1 raises ValueError."""
        from mistrace.materials.dielectric import add_dielectric_material

        with pytest.raises(ValueError):
            add_dielectric_material(0.9)

    def test_diffuse_light_negative_emission(self):
        """Test negative emission raises ValueError."""
        from mistrace.materials.diffuse_light import add_diffuse_light_material

        with pytest.raises(ValueError):
            add_diffuse_light_material((15.0, -1.0, 15.0))

    def test_registries_assign_sequential_indices(self):
        """Test each registry numbers its own materials from 0."""
        from mistrace.materials.diffuse_light import (
            add_diffuse_light_material,
            get_diffuse_light_material_count,
        )
        from mistrace.materials.lambertian import (
            add_lambertian_material,
            get_lambertian_material_count,
        )

        assert add_lambertian_material((0.5, 0.5, 0.5)) == 0
        assert add_lambertian_material((0.1, 0.2, 0.3)) == 1
        assert add_diffuse_light_material((4.0, 4.0, 4.0)) == 0
        assert get_lambertian_material_count() == 2
        assert get_diffuse_light_material_count() == 1


class TestPublicApi:
    """Tests for the package re-exports."""

    @pytest.mark.parametrize("package", ["mistrace.materials", "mistrace.camera"])
    def test_exports_resolve(self, package):
        """Test every exported name exists."""
        import importlib

        module = importlib.import_module(package)
        for name in module.__all__:
            assert hasattr(module, name), name

    def test_materials_are_registries_not_structs(self):
        """Test materials are exposed as field registries and scatter functions only."""
        import mistrace.materials as materials

        exported = set(materials.__all__)
        assert "ScatterRecord" in exported
        assert not {name for name in exported if name.endswith("Material")}
