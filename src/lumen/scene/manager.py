"""Unified scene manager for coordinating shapes, materials and textures.

This module provides a high-level scene management API. It tracks which
material type (Lambertian, Metal, Dielectric, DiffuseLight) each material ID
corresponds to, enabling material dispatch in the path tracer, and owns the
bounding volume hierarchy built over the scene's shapes.

The SceneManager maintains:
- A unified material_id space across all material types
- Mapping from material_id to (material_type, type_local_index)
- The ordered list of shapes; a shape's position is its shape id
- The BVH, built once by build() after which the scene is read-only
- Scene serialization/configuration support

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> mat_id = scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
    >>> scene.add_sphere(center=(0, 0, -1), radius=0.5, material_id=mat_id)
    0
    >>> bvh = scene.build(time_start=0.0, time_end=1.0)
"""

import logging
from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Any

import numpy as np
import taichi as ti
import taichi.math as tm

from src.lumen.geometry.bvh import MAX_BVH_NODES, BVH, build_bvh, upload_bvh
from src.lumen.geometry.shapes import (
    Box,
    MovingSphere,
    Shape,
    ShapeKind,
    Sphere,
    XYRect,
    XZRect,
    YZRect,
)
from src.lumen.materials.dielectric import add_dielectric_material, clear_dielectric_materials
from src.lumen.materials.diffuse_light import (
    add_diffuse_light_material,
    clear_diffuse_light_materials,
)
from src.lumen.materials.lambertian import add_lambertian_material, clear_lambertian_materials
from src.lumen.materials.metal import add_metal_material, clear_metal_materials
from src.lumen.materials.texture import (
    DEFAULT_CHECKER_SCALE,
    add_checker_texture,
    add_constant_texture,
    add_noise_texture,
    clear_textures,
)
from src.lumen.scene.intersection import MAX_SHAPES, add_shape, clear_scene, get_shape_count

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

Color = tuple[float, float, float]


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the path tracer to determine which
    scattering function to call.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2
    DIFFUSE_LIGHT = 3


# Maximum number of materials across all types
MAX_MATERIALS = 4096

# Taichi fields for GPU-side material type lookup
# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
# (e.g., if material_id 5 is the 2nd metal material, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID.

    Returns:
        The material type as an integer (see MaterialType enum), or -1 for
        invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the index of a material within its type's registry, or -1."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material.
        type_index: The index within the type's registry.
        params: The parameters the material was created with.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        textures: List of texture configurations, in id order.
        materials: List of material configurations, in id order.
        shapes: List of shape configurations, in id order.
    """

    textures: list[dict[str, Any]] = field(default_factory=list)
    materials: list[dict[str, Any]] = field(default_factory=list)
    shapes: list[dict[str, Any]] = field(default_factory=list)


_SHAPE_CLASSES: dict[ShapeKind, type] = {
    ShapeKind.SPHERE: Sphere,
    ShapeKind.MOVING_SPHERE: MovingSphere,
    ShapeKind.XY_RECT: XYRect,
    ShapeKind.XZ_RECT: XZRect,
    ShapeKind.YZ_RECT: YZRect,
    ShapeKind.BOX: Box,
}


class SceneManager:
    """Unified scene manager coordinating shapes, materials and textures.

    Shapes, materials and textures are registered first; build() then builds
    the BVH and the scene becomes read-only until clear() is called.

    Attributes:
        textures: Parameters of every registered texture, indexed by id.
        materials: List of MaterialInfo for all registered materials.
        shapes: The scene's shapes in insertion order.
        bvh: The hierarchy built by build(), or None before that.
        perlin_seed: Seed of the shared Perlin tables, or None before the
            first noise texture.

    Example:
        >>> scene = SceneManager()
        >>> red = scene.add_lambertian_material(albedo=(0.8, 0.1, 0.1))
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> glass = scene.add_dielectric_material(ior=1.5)
        >>> scene.add_sphere((0, 0, -1), 0.5, red)
        >>> scene.add_sphere((1, 0, -1), 0.5, gold)
        >>> scene.add_sphere((-1, 0, -1), 0.5, glass)
        >>> scene.build()
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.textures: list[dict[str, Any]] = []
        self.materials: list[MaterialInfo] = []
        self.shapes: list[Shape] = []
        self.bvh: BVH | None = None
        self.perlin_seed: int | None = None
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        # Clear shape storage and the uploaded BVH
        clear_scene()
        # Clear texture and material registries
        clear_textures()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_diffuse_light_materials()
        _clear_material_tracking()
        # Clear local tracking
        self.textures.clear()
        self.materials.clear()
        self.shapes.clear()
        self.perlin_seed = None
        self.bvh = None

    def clear(self) -> None:
        """Clear the entire scene (shapes, materials, textures and BVH)."""
        self._clear_all()

    @property
    def is_built(self) -> bool:
        """Whether build() has been called since the last clear()."""
        return self.bvh is not None

    def _check_mutable(self) -> None:
        if self.is_built:
            raise RuntimeError("Scene is already built; call clear() before modifying it")

    # =========================================================================
    # Texture Management
    # =========================================================================

    def add_constant_texture(self, color: Color) -> int:
        """Add a constant-colour texture and return its id."""
        self._check_mutable()
        texture_id = add_constant_texture(color)
        self.textures.append({"type": "constant", "color": tuple(color)})
        return texture_id

    def add_checker_texture(
        self,
        even: int,
        odd: int,
        scale: float = DEFAULT_CHECKER_SCALE,
    ) -> int:
        """Add a checker texture alternating between two existing textures."""
        self._check_mutable()
        texture_id = add_checker_texture(even, odd, scale)
        self.textures.append({"type": "checker", "even": even, "odd": odd, "scale": scale})
        return texture_id

    def add_noise_texture(
        self,
        color: Color = (1.0, 1.0, 1.0),
        scale: float = 4.0,
        rng: np.random.Generator | None = None,
        perlin_seed: int | None = None,
    ) -> int:
        """Add a Perlin marble texture.

        All noise textures share one set of Perlin tables. The first noise
        texture after a clear() seeds them from perlin_seed, or from a seed
        drawn from rng when perlin_seed is None, and the seed is recorded so
        that to_config()/from_config() rebuild the same tables. Later noise
        textures reuse the recorded seed.
        """
        self._check_mutable()
        if self.perlin_seed is None:
            if perlin_seed is None:
                source = rng if rng is not None else np.random.default_rng()
                perlin_seed = int(source.integers(np.iinfo(np.int64).max))
            self.perlin_seed = perlin_seed
        texture_id = add_noise_texture(color, scale, np.random.default_rng(self.perlin_seed))
        self.textures.append(
            {"type": "noise", "color": tuple(color), "scale": scale, "perlin_seed": self.perlin_seed}
        )
        return texture_id

    def get_texture_count(self) -> int:
        """Get the number of registered textures."""
        return len(self.textures)

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        """Assign a unified material ID to a material in a type registry."""
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

    def _resolve_texture(self, color: Color | None, texture_id: int | None) -> int:
        if (color is None) == (texture_id is None):
            raise ValueError("Exactly one of a colour or a texture_id must be given")
        if texture_id is None:
            texture_id = self.add_constant_texture(color)
        return texture_id

    def add_lambertian_material(
        self,
        albedo: Color | None = None,
        texture_id: int | None = None,
    ) -> int:
        """Add a Lambertian (diffuse) material to the scene.

        Args:
            albedo: The diffuse reflectance colour, each component in [0, 1].
                A constant texture is created for it.
            texture_id: An existing texture to use instead of albedo.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If both or neither of albedo and texture_id are given,
                or any albedo component is outside [0, 1].
        """
        self._check_mutable()
        if albedo is not None:
            for i, component in enumerate(albedo):
                if component < 0.0 or component > 1.0:
                    raise ValueError(
                        f"Albedo component {i} = {component} is outside [0, 1]. "
                        "This would violate energy conservation."
                    )
        texture_id = self._resolve_texture(albedo, texture_id)
        type_index = add_lambertian_material(texture_id)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"texture_id": texture_id}
        )

    def add_metal_material(self, albedo: Color, fuzz: float = 0.0) -> int:
        """Add a metal (specular reflective) material to the scene.

        Args:
            albedo: The reflective colour, each component in [0, 1].
            fuzz: The reflection perturbation in [0, 1]. Default is 0 (perfect mirror).

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any albedo component or fuzz is outside [0, 1].
        """
        self._check_mutable()
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": tuple(albedo), "fuzz": fuzz}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Add a dielectric (glass/water) material to the scene.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If IOR is less than 1.0.
        """
        self._check_mutable()
        type_index = add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": ior})

    def add_diffuse_light_material(
        self,
        color: Color | None = None,
        texture_id: int | None = None,
    ) -> int:
        """Add an emitting material.

        Args:
            color: Emitted radiance; components may exceed 1.
            texture_id: An existing texture to emit instead of color.

        Returns:
            The unified material ID for this material.
        """
        self._check_mutable()
        texture_id = self._resolve_texture(color, texture_id)
        type_index = add_diffuse_light_material(texture_id)
        return self._register_material(
            MaterialType.DIFFUSE_LIGHT, type_index, {"texture_id": texture_id}
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
        """Get the material type for a given material ID (Python side).

        For GPU-side lookup, use the get_material_type() Taichi function.
        """
        info = self.get_material_info(material_id)
        return info.material_type if info is not None else None

    # =========================================================================
    # Shape Management
    # =========================================================================

    def add_shape(self, shape: Shape) -> int:
        """Add a shape to the scene.

        Args:
            shape: Any host shape description.

        Returns:
            The shape id (its index in the scene).

        Raises:
            RuntimeError: If the scene is built or the shape limit is exceeded.
            ValueError: If the shape's material_id is invalid.
        """
        self._check_mutable()
        if not 0 <= shape.material_id < num_materials[None]:
            raise ValueError(f"Invalid material_id: {shape.material_id}")

        shape_id = add_shape(shape)
        self.shapes.append(shape)
        return shape_id

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere. A negative radius makes the normals point inward."""
        return self.add_shape(Sphere(tuple(center), radius, material_id))

    def add_moving_sphere(
        self,
        center0: tuple[float, float, float],
        center1: tuple[float, float, float],
        time0: float,
        time1: float,
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere moving from center0 at time0 to center1 at time1."""
        return self.add_shape(
            MovingSphere(tuple(center0), tuple(center1), time0, time1, radius, material_id)
        )

    def add_box(
        self,
        p0: tuple[float, float, float],
        p1: tuple[float, float, float],
        material_id: int,
    ) -> int:
        """Add an axis-aligned box spanning p0 to p1."""
        return self.add_shape(Box(tuple(p0), tuple(p1), material_id))

    def get_shape_count(self) -> int:
        """Get the number of shapes in the scene."""
        return get_shape_count()

    # =========================================================================
    # Build
    # =========================================================================

    def build(
        self,
        time_start: float = 0.0,
        time_end: float = 1.0,
        rng: np.random.Generator | None = None,
    ) -> BVH:
        """Build and upload the BVH, freezing the scene.

        Args:
            time_start: Start of the shutter interval the BVH must cover.
            time_end: End of the shutter interval.
            rng: Source of the BVH split axes.

        Returns:
            The built BVH.

        Raises:
            RuntimeError: If the scene is already built.
            ValueError: If a shape cannot be bounded.
        """
        self._check_mutable()
        bvh = build_bvh(self.shapes, time_start, time_end, rng)
        bvh.validate()
        upload_bvh(bvh)
        self.bvh = bvh
        logger.info(
            "Built scene: %d shapes, %d materials, %d BVH nodes, depth %d",
            len(self.shapes),
            len(self.materials),
            len(bvh.nodes),
            bvh.depth(),
        )
        return bvh

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()
        config.textures = [dict(texture) for texture in self.textures]

        for mat in self.materials:
            config.materials.append({"type": mat.material_type.name.lower(), **mat.params})

        for shape in self.shapes:
            config.shapes.append({"type": shape.kind.name.lower(), **asdict(shape)})

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration. The loaded
        scene is not built.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for tex_config in config.textures:
            tex_type = tex_config.get("type", "").lower()
            if tex_type == "constant":
                self.add_constant_texture(tuple(tex_config["color"]))
            elif tex_type == "checker":
                self.add_checker_texture(
                    tex_config["even"],
                    tex_config["odd"],
                    tex_config.get("scale", DEFAULT_CHECKER_SCALE),
                )
            elif tex_type == "noise":
                self.add_noise_texture(
                    tuple(tex_config.get("color", (1.0, 1.0, 1.0))),
                    tex_config.get("scale", 4.0),
                    perlin_seed=tex_config.get("perlin_seed"),
                )
            else:
                raise ValueError(f"Unknown texture type: {tex_type}")

        for mat_config in config.materials:
            mat_type = mat_config.get("type", "").lower()
            if mat_type == "lambertian":
                self.add_lambertian_material(texture_id=mat_config["texture_id"])
            elif mat_type == "metal":
                self.add_metal_material(
                    tuple(mat_config.get("albedo", (0.8, 0.8, 0.8))),
                    mat_config.get("fuzz", 0.0),
                )
            elif mat_type == "dielectric":
                self.add_dielectric_material(mat_config.get("ior", 1.5))
            elif mat_type == "diffuse_light":
                self.add_diffuse_light_material(texture_id=mat_config["texture_id"])
            else:
                raise ValueError(f"Unknown material type: {mat_type}")

        for shape_config in config.shapes:
            params = dict(shape_config)
            shape_type = params.pop("type", "").upper()
            if shape_type not in ShapeKind.__members__:
                raise ValueError(f"Unknown shape type: {shape_type.lower()}")
            cls = _SHAPE_CLASSES[ShapeKind[shape_type]]
            values = {
                key: tuple(value) if isinstance(value, list) else value
                for key, value in params.items()
            }
            self.add_shape(cls(**values))

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary of plain lists and numbers."""
        config = self.to_config()

        def plain(entry: dict[str, Any]) -> dict[str, Any]:
            return {k: list(v) if isinstance(v, tuple) else v for k, v in entry.items()}

        return {
            "textures": [plain(t) for t in config.textures],
            "materials": [plain(m) for m in config.materials],
            "shapes": [plain(s) for s in config.shapes],
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary produced by to_dict()."""
        config = SceneConfig(
            textures=data.get("textures", []),
            materials=data.get("materials", []),
            shapes=data.get("shapes", []),
        )
        self.from_config(config)

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_shapes() -> int:
        """Get the maximum number of shapes supported."""
        return MAX_SHAPES

    @staticmethod
    def get_max_materials() -> int:
        """Get the maximum number of materials supported."""
        return MAX_MATERIALS

    @staticmethod
    def get_max_bvh_nodes() -> int:
        """Get the maximum number of BVH nodes supported."""
        return MAX_BVH_NODES
