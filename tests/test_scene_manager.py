"""Tests for the scene manager and the closest-hit scene query.

Tests cover:
- Unified material IDs across material kinds
- Primitive registration and validation
- Boxes built from quads, with rotation and translation
- Moving spheres
- The light list
- Closest-hit selection and material IDs in intersect_scene
- Serialization round trip through plain dictionaries
"""

import numpy as np
import pytest
import taichi as ti


def _intersect(origin, direction, time=0.0):
    """Run intersect_scene once and return (hit, t, material_id, normal)."""
    from mistrace.core.ray import make_ray, vec3
    from mistrace.scene.intersection import intersect_scene

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    material_id = ti.field(dtype=ti.i32, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, tm_: ti.f32):
        # Keeps the scan loops inside intersect_scene serial
        for _ in range(1):
            rec = intersect_scene(make_ray(o, d, tm_), 0.001, 1e8)
            hit[None] = rec.hit
            t_val[None] = rec.t
            material_id[None] = rec.material_id
            normal[None] = rec.normal

    test_kernel(vec3(*origin), vec3(*direction), time)
    return hit[None], t_val[None], material_id[None], normal[None].to_numpy()


class TestMaterials:
    """Tests for material registration through the SceneManager."""

    def test_unified_material_ids(self):
        """Test IDs are shared across kinds and map back to kind-local indices."""
        from mistrace.scene.manager import MaterialType, SceneManager

        scene = SceneManager()
        red = scene.add_lambertian_material((0.65, 0.05, 0.05))
        metal = scene.add_metal_material((0.7, 0.6, 0.5), fuzz=0.1)
        glass = scene.add_dielectric_material(1.5)
        light = scene.add_diffuse_light_material((15.0, 15.0, 15.0))
        white = scene.add_lambertian_material((0.73, 0.73, 0.73))

        assert [red, metal, glass, light, white] == [0, 1, 2, 3, 4]
        assert scene.get_material_count() == 5
        assert scene.get_material_type_python(light) == MaterialType.DIFFUSE_LIGHT
        assert scene.get_material_info(white).type_index == 1
        assert scene.get_material_info(99) is None

    def test_material_validation_propagates(self):
        """Test registry validation errors reach the caller."""
        from mistrace.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError):
            scene.add_lambertian_material((2.0, 0.0, 0.0))
        with pytest.raises(ValueError):
            scene.add_dielectric_material(0.5)
        with pytest.raises(ValueError):
            scene.add_diffuse_light_material((-1.0, 0.0, 0.0))
        assert scene.get_material_count() == 0


class TestPrimitives:
    """Tests for sphere, quad and box registration."""

    def test_invalid_material_id_rejected(self):
        """Test primitives must reference a registered material."""
        from mistrace.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError):
            scene.add_sphere((0, 0, 0), 1.0, 0)
        mat = scene.add_lambertian_material((0.5, 0.5, 0.5))
        with pytest.raises(ValueError):
            scene.add_quad((0, 0, 0), (1, 0, 0), (0, 1, 0), mat + 1)

    def test_negative_radius_rejected(self):
        """Test negative sphere radii raise ValueError."""
        from mistrace.scene.manager import SceneManager

        scene = SceneManager()
        mat = scene.add_lambertian_material((0.5, 0.5, 0.5))
        with pytest.raises(ValueError):
            scene.add_sphere((0, 0, 0), -1.0, mat)

    def test_box_adds_six_outward_faces(self):
        """Test a box is six quads whose normals point away from its center."""
        from mistrace.scene.manager import box_quads

        faces = box_quads((0.0, 0.0, 0.0), (1.0, 2.0, 3.0))
        assert len(faces) == 6
        center = np.array([0.5, 1.0, 1.5])
        for corner, edge_u, edge_v in faces:
            normal = np.cross(edge_u, edge_v)
            face_center = np.array(corner) + 0.5 * np.array(edge_u) + 0.5 * np.array(edge_v)
            assert np.dot(normal, face_center - center) > 0.0

    def test_rotate_y(self):
        """Test rotation by 90 degrees maps +x to -z."""
        from mistrace.scene.manager import rotate_y

        np.testing.assert_allclose(rotate_y((1.0, 2.0, 0.0), 90.0), (0.0, 2.0, -1.0), atol=1e-12)

    def test_box_rotated_and_translated(self):
        """Test a transformed box is hit where the transform puts it."""
        from mistrace.scene.manager import SceneManager

        scene = SceneManager()
        white = scene.add_lambertian_material((0.73, 0.73, 0.73))
        indices = scene.add_box(
            (0.0, 0.0, 0.0),
            (2.0, 2.0, 2.0),
            white,
            rotate_y_degrees=90.0,
            translate=(10.0, 0.0, 0.0),
        )
        assert len(indices) == 6
        assert scene.get_quad_count() == 6

        # Rotating by 90 degrees maps x in [0, 2] to z in [-2, 0]
        hit, t, mat, normal = _intersect((11.0, 10.0, -1.0), (0.0, -1.0, 0.0))
        assert hit == 1
        assert t == pytest.approx(8.0, abs=1e-4)
        assert mat == white
        np.testing.assert_allclose(normal, [0.0, 1.0, 0.0], atol=1e-5)

        hit, _, _, _ = _intersect((11.0, 10.0, 1.0), (0.0, -1.0, 0.0))
        assert hit == 0

    def test_clear_resets_everything(self):
        """Test clear() empties primitives, materials and lights."""
        from mistrace.scene.manager import SceneManager

        scene = SceneManager()
        mat = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_sphere((0, 0, 0), 1.0, mat)
        scene.add_light_sphere((0, 0, 0), 1.0)
        scene.clear()
        assert scene.get_primitive_count() == 0
        assert scene.get_material_count() == 0
        assert scene.get_light_count() == 0


class TestIntersectScene:
    """Tests for intersect_scene through scenes built with the manager."""

    def test_empty_scene_misses(self):
        """Test every ray misses an empty scene."""
        hit, _, mat, _ = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit == 0
        assert mat == -1

    def test_closest_hit_wins(self):
        """Test the nearest of overlapping primitives is reported."""
        from mistrace.scene.manager import SceneManager

        scene = SceneManager()
        near = scene.add_lambertian_material((0.1, 0.1, 0.1))
        far = scene.add_metal_material((0.9, 0.9, 0.9))
        scene.add_quad((-5.0, -5.0, -10.0), (10.0, 0.0, 0.0), (0.0, 10.0, 0.0), far)
        scene.add_sphere((0.0, 0.0, -4.0), 1.0, near)

        hit, t, mat, _ = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit == 1
        assert t == pytest.approx(3.0, abs=1e-5)
        assert mat == near

    def test_moving_sphere_follows_ray_time(self):
        """Test a moving sphere is hit at its position for the ray time."""
        from mistrace.scene.manager import SceneManager

        scene = SceneManager()
        mat = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_moving_sphere((0.0, 0.0, -5.0), (4.0, 0.0, -5.0), 1.0, mat)

        assert _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), time=0.0)[0] == 1
        assert _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), time=0.9)[0] == 0
        assert _intersect((4.0, 0.0, 0.0), (0.0, 0.0, -1.0), time=0.99)[0] == 1


class TestLightList:
    """Tests for the light list kept by the manager."""

    def test_lights_are_separate_from_primitives(self):
        """Test light entries are not intersectable primitives."""
        from mistrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_light_quad((0.0, 5.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        scene.add_light_sphere((0.0, 0.0, -5.0), 1.0)
        assert scene.get_light_count() == 2
        assert scene.get_primitive_count() == 0
        assert _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))[0] == 0


class TestSerialization:
    """Tests for to_dict/from_dict."""

    def test_round_trip(self):
        """Test a scene survives export and re-import."""
        from mistrace.scene.manager import MaterialType, SceneManager

        scene = SceneManager()
        light = scene.add_diffuse_light_material((4.0, 4.0, 4.0))
        glass = scene.add_dielectric_material(1.5)
        scene.add_quad((0.0, 5.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 1.0), light)
        scene.add_moving_sphere((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 0.5, glass)
        scene.add_light_sphere((0.0, 0.0, 0.0), 0.5)
        data = scene.to_dict()

        restored = SceneManager()
        restored.from_dict(data)
        assert restored.get_material_count() == 2
        assert restored.get_material_type_python(1) == MaterialType.DIELECTRIC
        assert restored.get_sphere_count() == 1
        assert restored.get_quad_count() == 1
        assert restored.get_light_count() == 1
        assert restored.spheres[0].motion == (0.0, 1.0, 0.0)
        assert restored.to_dict() == data

    def test_unknown_material_type(self):
        """Test unknown material types raise ValueError."""
        from mistrace.scene.manager import SceneManager

        with pytest.raises(ValueError):
            SceneManager().from_dict({"materials": [{"type": "isotropic"}]})

    def test_unknown_light_kind(self):
        """Test unknown light kinds raise ValueError."""
        from mistrace.scene.manager import SceneManager

        with pytest.raises(ValueError):
            SceneManager().from_dict({"lights": [{"kind": "cylinder"}]})

    def test_missing_keys_give_empty_scene(self):
        """Test from_dict with no keys clears the current scene."""
        from mistrace.scene.manager import SceneManager

        scene = SceneManager()
        gray = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_sphere((0.0, 0.0, -1.0), 0.5, gray)
        scene.add_light_sphere((0.0, 0.0, -1.0), 0.5)

        scene.from_dict({})
        assert scene.get_material_count() == 0
        assert scene.get_primitive_count() == 0
        assert scene.get_light_count() == 0

    def test_to_config_plain_data(self):
        """Test the exported config holds lists and tagged entries."""
        from mistrace.scene.manager import SceneManager

        scene = SceneManager()
        metal = scene.add_metal_material((0.8, 0.7, 0.6), fuzz=0.25)
        scene.add_quad((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), metal)
        scene.add_light_quad((0.0, 2.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        config = scene.to_config()

        assert config.materials == [{"type": "metal", "albedo": (0.8, 0.7, 0.6), "fuzz": 0.25}]
        assert config.quads[0]["edge_v"] == [0.0, 1.0, 0.0]
        assert config.lights == [
            {
                "kind": "quad",
                "corner": [0.0, 2.0, 0.0],
                "edge_u": [1.0, 0.0, 0.0],
                "edge_v": [0.0, 0.0, 1.0],
            }
        ]
