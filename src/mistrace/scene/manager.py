"""Unified scene manager for coordinating primitives, materials and lights.

This module provides the high-level scene building API. It coordinates
primitive storage (spheres, quads) with material assignment and with the
separate light list used for importance sampling. It tracks which material
kind each material ID corresponds to, which is what the estimator dispatches
on.

The SceneManager maintains:
- A unified material_id space across all material kinds
- Mapping from material_id to (material_type, type_local_index)
- Composite helpers (boxes built from six quads, rotated and translated)
- The light list (quads and spheres sampled toward by the mixture)
- Scene serialization to and from plain dictionaries

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> red = scene.add_lambertian_material(albedo=(0.65, 0.05, 0.05))
    >>> light = scene.add_diffuse_light_material(emission=(15, 15, 15))
    >>> scene.add_quad((343, 554, 332), (-130, 0, 0), (0, 0, -105), light)
    >>> scene.add_light_quad((343, 554, 332), (-130, 0, 0), (0, 0, -105))
"""

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import numpy as np
import taichi as ti

from mistrace.materials.dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
)
from mistrace.materials.diffuse_light import (
    add_diffuse_light_material,
    clear_diffuse_light_materials,
)
from mistrace.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from mistrace.materials.metal import (
    add_metal_material,
    clear_metal_materials,
)
from mistrace.scene.intersection import (
    add_quad,
    add_sphere,
    clear_scene,
    get_quad_count,
    get_sphere_count,
)
from mistrace.scene.lights import (
    add_light_quad,
    add_light_sphere,
    clear_lights,
    get_light_count,
)

Vec3Tuple = tuple[float, float, float]


class MaterialType(IntEnum):
    """Enumeration of supported material kinds.

    Used for material dispatch in the estimator.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2
    DIFFUSE_LIGHT = 3


# Maximum number of materials across all kinds
MAX_MATERIALS = 1024

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the kind-local index for material_id i
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material kind for a given material ID.

    Args:
        material_id: The unified material ID.

    Returns:
        The material kind as an integer (see MaterialType), or -1 for
        invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the kind-local index for a given material ID.

    Args:
        material_id: The unified material ID.

    Returns:
        The index into the kind-specific registry, or -1 for invalid IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


def rotate_y(vector: Vec3Tuple, degrees: float) -> Vec3Tuple:
    """Rotate a vector about the +y axis.

    Args:
        vector: The (x, y, z) vector to rotate.
        degrees: Rotation angle in degrees.

    Returns:
        The rotated vector.
    """
    theta = math.radians(degrees)
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)
    x, y, z = vector
    return (cos_t * x + sin_t * z, y, -sin_t * x + cos_t * z)


def box_quads(p0: Vec3Tuple, p1: Vec3Tuple) -> list[tuple[Vec3Tuple, Vec3Tuple, Vec3Tuple]]:
    """Compute the six faces of the axis-aligned box spanned by two corners.

    Args:
        p0: One corner of the box.
        p1: The opposite corner.

    Returns:
        A list of (corner, edge_u, edge_v) tuples with outward normals.
    """
    lo = np.minimum(np.asarray(p0, dtype=np.float64), np.asarray(p1, dtype=np.float64))
    hi = np.maximum(np.asarray(p0, dtype=np.float64), np.asarray(p1, dtype=np.float64))

    dx = np.array([hi[0] - lo[0], 0.0, 0.0])
    dy = np.array([0.0, hi[1] - lo[1], 0.0])
    dz = np.array([0.0, 0.0, hi[2] - lo[2]])

    faces = [
        ((lo[0], lo[1], hi[2]), dx, dy),  # front
        ((hi[0], lo[1], hi[2]), -dz, dy),  # right
        ((hi[0], lo[1], lo[2]), -dx, dy),  # back
        ((lo[0], lo[1], lo[2]), dz, dy),  # left
        ((lo[0], hi[1], hi[2]), dx, -dz),  # top
        ((lo[0], lo[1], lo[2]), dx, dz),  # bottom
    ]
    return [
        (
            tuple(float(c) for c in corner),
            tuple(float(c) for c in edge_u),
            tuple(float(c) for c in edge_v),
        )
        for corner, edge_u, edge_v in faces
    ]


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The material kind.
        type_index: The index within the kind-specific registry.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The index in the sphere storage arrays.
        center: The center of the sphere at time 0.
        radius: The radius of the sphere.
        material_id: The material ID assigned to the sphere.
        motion: Displacement of the center over the shutter interval.
    """

    sphere_index: int
    center: Vec3Tuple
    radius: float
    material_id: int
    motion: Vec3Tuple = (0.0, 0.0, 0.0)


@dataclass
class QuadInfo:
    """Information about a quad in the scene.

    Attributes:
        quad_index: The index in the quad storage arrays.
        corner: The corner point (Q) of the quad.
        edge_u: The first edge vector.
        edge_v: The second edge vector.
        material_id: The material ID assigned to the quad.
    """

    quad_index: int
    corner: Vec3Tuple
    edge_u: Vec3Tuple
    edge_v: Vec3Tuple
    material_id: int


@dataclass
class LightInfo:
    """Information about an entry of the light list.

    Attributes:
        kind: "quad" or "sphere".
        params: The geometry of the light as provided during creation.
    """

    kind: str
    params: dict[str, Any]


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        materials: List of material configurations.
        spheres: List of sphere configurations.
        quads: List of quad configurations.
        lights: List of light list entries.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    quads: list[dict[str, Any]] = field(default_factory=list)
    lights: list[dict[str, Any]] = field(default_factory=list)


def _as_vec3(values: Any, default: Vec3Tuple) -> Vec3Tuple:
    """Convert a list-like of three numbers into a float tuple."""
    if values is None:
        return default
    return (float(values[0]), float(values[1]), float(values[2]))


class SceneManager:
    """Unified scene manager coordinating primitives, materials and lights.

    Creating a SceneManager clears every primitive, material and light field,
    so only one scene is live at a time.

    Attributes:
        materials: List of MaterialInfo for all registered materials.
        spheres: List of SphereInfo for all spheres in the scene.
        quads: List of QuadInfo for all quads in the scene.
        lights: List of LightInfo for the importance sampling light list.

    Example:
        >>> scene = SceneManager()
        >>> white = scene.add_lambertian_material(albedo=(0.73, 0.73, 0.73))
        >>> glass = scene.add_dielectric_material(ior=1.5)
        >>> scene.add_box((0, 0, 0), (165, 330, 165), white,
        ...               rotate_y_degrees=15, translate=(265, 0, 295))
        >>> scene.add_sphere((190, 90, 190), 90, glass)
        >>> scene.add_light_sphere((190, 90, 190), 90)
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.quads: list[QuadInfo] = []
        self.lights: list[LightInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        clear_scene()
        clear_lights()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_diffuse_light_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()
        self.quads.clear()
        self.lights.clear()

    def clear(self) -> None:
        """Clear the entire scene (primitives, materials and lights)."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        """Assign a unified material ID to a kind-local registry entry.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
        """
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: Vec3Tuple) -> int:
        """Add a Lambertian (diffuse) material to the scene.

        Args:
            albedo: The diffuse reflectance color as (R, G, B), each in [0, 1].

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component is outside [0, 1].
        """
        type_index = add_lambertian_material(albedo)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"albedo": albedo}
        )

    def add_metal_material(self, albedo: Vec3Tuple, fuzz: float = 0.0) -> int:
        """Add a metal (fuzzy mirror) material to the scene.

        Args:
            albedo: The reflective color as (R, G, B), each in [0, 1].
            fuzz: The surface fuzziness in [0, 1]. Default is 0 (perfect mirror).

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If albedo or fuzz is outside [0, 1].
        """
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": albedo, "fuzz": fuzz}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Add a dielectric (glass/water) material to the scene.

        Args:
            ior: Index of refraction. Default is 1.5 (typical glass).

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If IOR is less than 1.0.
        """
        type_index = add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": ior})

    def add_diffuse_light_material(self, emission: Vec3Tuple) -> int:
        """Add a diffuse area light material to the scene.

        Args:
            emission: The emitted radiance as (R, G, B), non-negative.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any emission component is negative.
        """
        type_index = add_diffuse_light_material(emission)
        return self._register_material(
            MaterialType.DIFFUSE_LIGHT, type_index, {"emission": emission}
        )

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Get the material kind for a given material ID (Python side).

        For kernel-side lookup, use the get_material_type() Taichi function.

        Args:
            material_id: The unified material ID.

        Returns:
            The MaterialType, or None for invalid material IDs.
        """
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id].material_type
        return None

    def _check_material_id(self, material_id: int) -> None:
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(
        self,
        center: Vec3Tuple,
        radius: float,
        material_id: int,
        motion: Vec3Tuple = (0.0, 0.0, 0.0),
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere at time 0.
            radius: The radius of the sphere (non-negative).
            material_id: The unified material ID to assign to the sphere.
            motion: Displacement of the center between time 0 and time 1.
                A non-zero motion makes the sphere motion blurred.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If material_id is invalid or radius is negative.
        """
        self._check_material_id(material_id)
        if radius < 0.0:
            raise ValueError(f"Sphere radius must be non-negative, got {radius}")

        sphere_index = add_sphere(center, radius, material_id, motion)
        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center,
                radius=radius,
                material_id=material_id,
                motion=motion,
            )
        )
        return sphere_index

    def add_moving_sphere(
        self,
        center0: Vec3Tuple,
        center1: Vec3Tuple,
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere whose center moves from center0 (t=0) to center1 (t=1)."""
        motion = (
            center1[0] - center0[0],
            center1[1] - center0[1],
            center1[2] - center0[2],
        )
        return self.add_sphere(center0, radius, material_id, motion)

    def add_quad(
        self,
        corner: Vec3Tuple,
        edge_u: Vec3Tuple,
        edge_v: Vec3Tuple,
        material_id: int,
    ) -> int:
        """Add a quad (parallelogram) to the scene.

        The quad has vertices corner, corner+edge_u, corner+edge_v and
        corner+edge_u+edge_v; its front face follows cross(edge_u, edge_v).

        Args:
            corner: The corner point (Q) of the quad.
            edge_u: The first edge vector.
            edge_v: The second edge vector.
            material_id: The unified material ID to assign to the quad.

        Returns:
            The index of the added quad.

        Raises:
            RuntimeError: If the maximum number of quads is exceeded.
            ValueError: If material_id is invalid.
        """
        self._check_material_id(material_id)

        quad_index = add_quad(corner, edge_u, edge_v, material_id)
        self.quads.append(
            QuadInfo(
                quad_index=quad_index,
                corner=corner,
                edge_u=edge_u,
                edge_v=edge_v,
                material_id=material_id,
            )
        )
        return quad_index

    def add_box(
        self,
        p0: Vec3Tuple,
        p1: Vec3Tuple,
        material_id: int,
        rotate_y_degrees: float = 0.0,
        translate: Vec3Tuple = (0.0, 0.0, 0.0),
    ) -> list[int]:
        """Add a box made of six quads.

        The box spans the axis-aligned corners p0 and p1, is then rotated
        about the +y axis through the origin and finally translated.

        Args:
            p0: One corner of the untransformed box.
            p1: The opposite corner.
            material_id: The unified material ID for all six faces.
            rotate_y_degrees: Rotation about +y in degrees.
            translate: Offset applied after the rotation.

        Returns:
            The quad indices of the six faces.
        """
        self._check_material_id(material_id)

        indices = []
        for corner, edge_u, edge_v in box_quads(p0, p1):
            rotated = rotate_y(corner, rotate_y_degrees)
            moved = (
                rotated[0] + translate[0],
                rotated[1] + translate[1],
                rotated[2] + translate[2],
            )
            indices.append(
                self.add_quad(
                    moved,
                    rotate_y(edge_u, rotate_y_degrees),
                    rotate_y(edge_v, rotate_y_degrees),
                    material_id,
                )
            )
        return indices

    # =========================================================================
    # Light List
    # =========================================================================

    def add_light_quad(self, corner: Vec3Tuple, edge_u: Vec3Tuple, edge_v: Vec3Tuple) -> int:
        """Register a quad in the importance sampling light list.

        The light list is independent of the renderable primitives: the quad
        is not added to the scene, only sampled toward.

        Returns:
            The index of the light quad.
        """
        index = add_light_quad(corner, edge_u, edge_v)
        self.lights.append(
            LightInfo(kind="quad", params={"corner": corner, "edge_u": edge_u, "edge_v": edge_v})
        )
        return index

    def add_light_sphere(self, center: Vec3Tuple, radius: float) -> int:
        """Register a sphere in the importance sampling light list.

        Returns:
            The index of the light sphere.
        """
        index = add_light_sphere(center, radius)
        self.lights.append(LightInfo(kind="sphere", params={"center": center, "radius": radius}))
        return index

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    def get_quad_count(self) -> int:
        """Get the number of quads in the scene."""
        return get_quad_count()

    def get_primitive_count(self) -> int:
        """Get the total number of primitives in the scene."""
        return self.get_sphere_count() + self.get_quad_count()

    def get_light_count(self) -> int:
        """Get the number of entries in the light list."""
        return get_light_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()

        for mat in self.materials:
            config.materials.append({"type": mat.material_type.name.lower(), **mat.params})

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                    "motion": list(sphere.motion),
                }
            )

        for quad in self.quads:
            config.quads.append(
                {
                    "corner": list(quad.corner),
                    "edge_u": list(quad.edge_u),
                    "edge_v": list(quad.edge_v),
                    "material_id": quad.material_id,
                }
            )

        for light in self.lights:
            entry: dict[str, Any] = {"kind": light.kind}
            for key, value in light.params.items():
                entry[key] = list(value) if isinstance(value, tuple) else value
            config.lights.append(entry)

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration.

        Args:
            config: The scene configuration to load.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        # Materials first: primitives reference them by ID
        for mat_config in config.materials:
            mat_type = mat_config.get("type", "").lower()
            if mat_type == "lambertian":
                self.add_lambertian_material(
                    _as_vec3(mat_config.get("albedo"), (0.5, 0.5, 0.5))
                )
            elif mat_type == "metal":
                self.add_metal_material(
                    _as_vec3(mat_config.get("albedo"), (0.8, 0.8, 0.8)),
                    mat_config.get("fuzz", 0.0),
                )
            elif mat_type == "dielectric":
                self.add_dielectric_material(mat_config.get("ior", 1.5))
            elif mat_type == "diffuse_light":
                self.add_diffuse_light_material(
                    _as_vec3(mat_config.get("emission"), (1.0, 1.0, 1.0))
                )
            else:
                raise ValueError(f"Unknown material type: {mat_type}")

        for sphere_config in config.spheres:
            self.add_sphere(
                _as_vec3(sphere_config.get("center"), (0.0, 0.0, 0.0)),
                sphere_config.get("radius", 1.0),
                sphere_config.get("material_id", 0),
                _as_vec3(sphere_config.get("motion"), (0.0, 0.0, 0.0)),
            )

        for quad_config in config.quads:
            self.add_quad(
                _as_vec3(quad_config.get("corner"), (0.0, 0.0, 0.0)),
                _as_vec3(quad_config.get("edge_u"), (1.0, 0.0, 0.0)),
                _as_vec3(quad_config.get("edge_v"), (0.0, 1.0, 0.0)),
                quad_config.get("material_id", 0),
            )

        for light_config in config.lights:
            kind = light_config.get("kind", "")
            if kind == "quad":
                self.add_light_quad(
                    _as_vec3(light_config.get("corner"), (0.0, 0.0, 0.0)),
                    _as_vec3(light_config.get("edge_u"), (1.0, 0.0, 0.0)),
                    _as_vec3(light_config.get("edge_v"), (0.0, 1.0, 0.0)),
                )
            elif kind == "sphere":
                self.add_light_sphere(
                    _as_vec3(light_config.get("center"), (0.0, 0.0, 0.0)),
                    light_config.get("radius", 1.0),
                )
            else:
                raise ValueError(f"Unknown light kind: {kind}")

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
            "quads": config.quads,
            "lights": config.lights,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary.

        Args:
            data: Dictionary with 'materials', 'spheres', 'quads' and
                'lights' keys. Missing keys are treated as empty.
        """
        self.from_config(
            SceneConfig(
                materials=data.get("materials", []),
                spheres=data.get("spheres", []),
                quads=data.get("quads", []),
                lights=data.get("lights", []),
            )
        )
