"""Scene-level shape storage and ray intersection.

Shapes are stored in a single Structure of Arrays table tagged by
``ShapeKind``. The meaning of the shared columns depends on the kind:

    kind            p0                p1                radius  time0/time1
    SPHERE          center            -                 radius  -
    MOVING_SPHERE   center0           center1           radius  time0, time1
    XY_RECT         (x0, y0, k)       (x1, y1, -)       -       -
    XZ_RECT         (x0, z0, k)       (x1, z1, -)       -       -
    YZ_RECT         (y0, z0, k)       (y1, z1, -)       -       -
    BOX             min corner        max corner        -       -

``intersect_scene`` answers nearest-hit queries by walking the uploaded BVH;
``intersect_scene_linear`` tests every shape and serves as the reference the
BVH must agree with.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.geometry.shapes import Sphere
    >>> from src.lumen.scene.intersection import add_shape, clear_scene
    >>> clear_scene()
    >>> add_shape(Sphere((0.0, 0.0, -1.0), 0.5, material_id=0))
    0
    >>> # Use intersect_scene within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.lumen.geometry.aabb import hit_aabb
from src.lumen.geometry.bvh import (
    BVH_STACK_SIZE,
    bvh_left,
    bvh_max,
    bvh_min,
    bvh_right,
    bvh_root,
    bvh_shape,
    clear_bvh,
)
from src.lumen.geometry.rect import hit_box, hit_xy_rect, hit_xz_rect, hit_yz_rect
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
from src.lumen.geometry.sphere import HitRecord, hit_moving_sphere, hit_sphere, make_miss_record

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Maximum number of shapes supported in the scene
MAX_SHAPES = 4096

shape_kinds = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_material_ids = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_p0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SHAPES)
shape_p1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SHAPES)
shape_radii = ti.field(dtype=ti.f32, shape=MAX_SHAPES)
shape_time0 = ti.field(dtype=ti.f32, shape=MAX_SHAPES)
shape_time1 = ti.field(dtype=ti.f32, shape=MAX_SHAPES)
num_shapes = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all shapes and the uploaded BVH.

    Only the counts are reset; field data is overwritten by later adds.
    """
    num_shapes[None] = 0
    clear_bvh()


def add_shape(shape: Shape) -> int:
    """Append a shape to the device table.

    Args:
        shape: Any host shape description.

    Returns:
        The index of the added shape, which is its shape id.

    Raises:
        RuntimeError: If the maximum number of shapes is exceeded.
        TypeError: If shape is not one of the known shape types.
    """
    idx = num_shapes[None]
    if idx >= MAX_SHAPES:
        raise RuntimeError(f"Maximum number of shapes ({MAX_SHAPES}) exceeded")

    p0 = (0.0, 0.0, 0.0)
    p1 = (0.0, 0.0, 0.0)
    radius = 0.0
    time0 = 0.0
    time1 = 0.0
    if isinstance(shape, Sphere):
        p0 = shape.center
        radius = shape.radius
    elif isinstance(shape, MovingSphere):
        p0, p1 = shape.center0, shape.center1
        radius = shape.radius
        time0, time1 = shape.time0, shape.time1
    elif isinstance(shape, XYRect):
        p0 = (shape.x0, shape.y0, shape.k)
        p1 = (shape.x1, shape.y1, 0.0)
    elif isinstance(shape, XZRect):
        p0 = (shape.x0, shape.z0, shape.k)
        p1 = (shape.x1, shape.z1, 0.0)
    elif isinstance(shape, YZRect):
        p0 = (shape.y0, shape.z0, shape.k)
        p1 = (shape.y1, shape.z1, 0.0)
    elif isinstance(shape, Box):
        p0, p1 = shape.p0, shape.p1
    else:
        raise TypeError(f"Unsupported shape type: {type(shape).__name__}")

    shape_kinds[idx] = int(shape.kind)
    shape_material_ids[idx] = shape.material_id
    shape_p0[idx] = p0
    shape_p1[idx] = p1
    shape_radii[idx] = radius
    shape_time0[idx] = time0
    shape_time1[idx] = time1
    num_shapes[None] = idx + 1
    return idx


def get_shape_count() -> int:
    """Get the number of shapes in the scene."""
    return int(num_shapes[None])


def is_scene_ready() -> bool:
    """Whether every stored shape is reachable through an uploaded BVH."""
    return num_shapes[None] == 0 or bvh_root[None] >= 0


@ti.func
def hit_shape(
    idx: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    ray_time: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with the shape stored at idx.

    Returns:
        The shape's HitRecord with material_id and shape_id filled in.
    """
    kind = shape_kinds[idx]
    p0 = shape_p0[idx]
    p1 = shape_p1[idx]
    rec = make_miss_record()

    if kind == int(ShapeKind.SPHERE):
        rec = hit_sphere(ray_origin, ray_direction, p0, shape_radii[idx], t_min, t_max)
    elif kind == int(ShapeKind.MOVING_SPHERE):
        rec = hit_moving_sphere(
            ray_origin,
            ray_direction,
            ray_time,
            p0,
            p1,
            shape_time0[idx],
            shape_time1[idx],
            shape_radii[idx],
            t_min,
            t_max,
        )
    elif kind == int(ShapeKind.XY_RECT):
        rec = hit_xy_rect(ray_origin, ray_direction, p0.x, p1.x, p0.y, p1.y, p0.z, t_min, t_max)
    elif kind == int(ShapeKind.XZ_RECT):
        rec = hit_xz_rect(ray_origin, ray_direction, p0.x, p1.x, p0.y, p1.y, p0.z, t_min, t_max)
    elif kind == int(ShapeKind.YZ_RECT):
        rec = hit_yz_rect(ray_origin, ray_direction, p0.x, p1.x, p0.y, p1.y, p0.z, t_min, t_max)
    elif kind == int(ShapeKind.BOX):
        rec = hit_box(ray_origin, ray_direction, p0, p1, t_min, t_max)

    if rec.hit == 1:
        rec.material_id = shape_material_ids[idx]
        rec.shape_id = idx
    return rec


@ti.func
def intersect_scene_linear(
    ray_origin: vec3,
    ray_direction: vec3,
    ray_time: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test the ray against every shape and keep the closest hit.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        ray_time: The ray's shutter time, used by moving shapes.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        The closest HitRecord, or a miss record.
    """
    closest_t = t_max
    result = make_miss_record()

    for i in range(num_shapes[None]):
        rec = hit_shape(i, ray_origin, ray_direction, ray_time, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = rec

    return result


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    ray_time: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Find the closest hit by walking the BVH with an explicit stack.

    Leaves test their shape; internal nodes are skipped when the ray misses
    their box, otherwise both children are pushed. The closest hit so far
    bounds the interval for every later box and shape test, so subtrees
    lying entirely behind it are skipped.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        ray_time: The ray's shutter time, used by moving shapes.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        The closest HitRecord, or a miss record (always for an empty scene).
    """
    closest_t = t_max
    result = make_miss_record()

    stack = ti.Vector([0 for _ in range(BVH_STACK_SIZE)], dt=ti.i32)
    stack_ptr = 0
    root = bvh_root[None]
    if root >= 0:
        stack[0] = root
        stack_ptr = 1

    while stack_ptr > 0:
        stack_ptr -= 1
        node = stack[stack_ptr]
        shape_idx = bvh_shape[node]

        if shape_idx >= 0:
            rec = hit_shape(shape_idx, ray_origin, ray_direction, ray_time, t_min, closest_t)
            if rec.hit == 1:
                closest_t = rec.t
                result = rec
        elif hit_aabb(bvh_min[node], bvh_max[node], ray_origin, ray_direction, t_min, closest_t):
            if stack_ptr + 2 <= BVH_STACK_SIZE:
                # Left child on top so it is visited first
                stack[stack_ptr] = bvh_right[node]
                stack[stack_ptr + 1] = bvh_left[node]
                stack_ptr += 2

    return result
