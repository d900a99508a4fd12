"""Scene module for shape storage, scene management and world generation.

Components:
    intersection: Shape fields, per-shape hit dispatch and BVH traversal
    manager: Unified scene manager coordinating shapes, materials and textures
    worlds: Ready-made worlds and the camera views that go with them

Scene data is organized for efficient GPU access:
    - Structure-of-Arrays layout for shape parameters
    - One table of unified material ids over all material types
    - A flat BVH node arena uploaded once per build
"""

from .intersection import (
    MAX_SHAPES,
    add_shape,
    clear_scene,
    get_shape_count,
    hit_shape,
    intersect_scene,
    intersect_scene_linear,
    is_scene_ready,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    get_material_type,
    get_material_type_index,
)
from .worlds import (
    WORLD_VIEWS,
    WorldView,
    build_world,
    cornell_box,
    perlin_world,
    random_world,
    static_world,
)

__all__ = [
    # Intersection module
    "MAX_SHAPES",
    "add_shape",
    "clear_scene",
    "get_shape_count",
    "hit_shape",
    "intersect_scene",
    "intersect_scene_linear",
    "is_scene_ready",
    # Manager module
    "MAX_MATERIALS",
    "MaterialInfo",
    "MaterialType",
    "SceneConfig",
    "SceneManager",
    "get_material_type",
    "get_material_type_index",
    # Worlds module
    "WORLD_VIEWS",
    "WorldView",
    "build_world",
    "cornell_box",
    "perlin_world",
    "random_world",
    "static_world",
]
