"""Geometry module for shape primitives and spatial acceleration.

Components:
    aabb: Axis-aligned bounding boxes (host dataclass and device slab test)
    shapes: Host-side shape descriptions with bounding boxes
    sphere: Hit records, sphere and moving sphere intersection
    rect: Axis-aligned rectangle and box intersection
    bvh: Bounding volume hierarchy build and upload

Intersection routines are Taichi functions returning a HitRecord whose hit
field is 0 when the ray misses.
"""

from .aabb import AABB, AABB_PADDING, hit_aabb, surrounding_box
from .bvh import BVH, InternalNode, LeafNode, build_bvh, upload_bvh
from .rect import hit_box, hit_xy_rect, hit_xz_rect, hit_yz_rect
from .shapes import Box, MovingSphere, Shape, ShapeKind, Sphere, XYRect, XZRect, YZRect
from .sphere import HitRecord, hit_moving_sphere, hit_sphere

__all__ = [
    "AABB",
    "AABB_PADDING",
    "hit_aabb",
    "surrounding_box",
    "BVH",
    "LeafNode",
    "InternalNode",
    "build_bvh",
    "upload_bvh",
    "Shape",
    "ShapeKind",
    "Sphere",
    "MovingSphere",
    "XYRect",
    "XZRect",
    "YZRect",
    "Box",
    "HitRecord",
    "hit_sphere",
    "hit_moving_sphere",
    "hit_xy_rect",
    "hit_xz_rect",
    "hit_yz_rect",
    "hit_box",
]
