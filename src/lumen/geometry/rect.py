"""Axis-aligned rectangles and boxes.

A rectangle lies in a plane perpendicular to one axis (the normal axis) at
offset k, and spans [a0, a1] x [b0, b1] along the other two axes. Its outward
normal is the positive normal axis. Boxes are built from six such rectangles,
with the faces at the minimum corner turned around so every face points out
of the box.

The component indices are compile-time template arguments, so each rectangle
orientation gets its own specialized code.
"""

import taichi as ti
import taichi.math as tm

from src.lumen.geometry.sphere import HitRecord, face_normal, make_miss_record

vec3 = tm.vec3


@ti.func
def hit_axis_rect(
    ray_origin: vec3,
    ray_direction: vec3,
    a0: ti.f32,
    a1: ti.f32,
    b0: ti.f32,
    b1: ti.f32,
    k: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
    axis_a: ti.template(),
    axis_b: ti.template(),
    axis_n: ti.template(),
    outward_sign: ti.template(),
) -> HitRecord:
    """Intersect a ray with a rectangle perpendicular to axis_n.

    Args:
        ray_origin: The ray origin.
        ray_direction: The ray direction.
        a0: Rectangle start along axis_a.
        a1: Rectangle end along axis_a.
        b0: Rectangle start along axis_b.
        b1: Rectangle end along axis_b.
        k: Plane offset along axis_n.
        t_min: Lower bound of the accepted parameter interval.
        t_max: Upper bound of the accepted parameter interval.
        axis_a: First in-plane component index.
        axis_b: Second in-plane component index.
        axis_n: Normal component index.
        outward_sign: 1.0 for a +axis_n outward normal, -1.0 for -axis_n.

    Returns:
        A HitRecord with u, v the normalized in-plane coordinates.
    """
    result = make_miss_record()

    # A ray parallel to the plane gives +/-inf or NaN, both rejected below
    t = (k - ray_origin[axis_n]) / ray_direction[axis_n]
    if t > t_min and t < t_max:
        a = ray_origin[axis_a] + t * ray_direction[axis_a]
        b = ray_origin[axis_b] + t * ray_direction[axis_b]
        if a >= a0 and a <= a1 and b >= b0 and b <= b1:
            outward_normal = vec3(0.0, 0.0, 0.0)
            outward_normal[axis_n] = outward_sign
            front_face, normal = face_normal(ray_direction, outward_normal)

            u = 0.0
            v = 0.0
            if a1 > a0:
                u = (a - a0) / (a1 - a0)
            if b1 > b0:
                v = (b - b0) / (b1 - b0)

            result.hit = 1
            result.t = t
            result.point = ray_origin + t * ray_direction
            result.normal = normal
            result.front_face = front_face
            result.u = u
            result.v = v

    return result


@ti.func
def hit_xy_rect(
    ray_origin: vec3,
    ray_direction: vec3,
    x0: ti.f32,
    x1: ti.f32,
    y0: ti.f32,
    y1: ti.f32,
    k: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect the rectangle [x0, x1] x [y0, y1] in the plane z = k."""
    return hit_axis_rect(ray_origin, ray_direction, x0, x1, y0, y1, k, t_min, t_max, 0, 1, 2, 1.0)


@ti.func
def hit_xz_rect(
    ray_origin: vec3,
    ray_direction: vec3,
    x0: ti.f32,
    x1: ti.f32,
    z0: ti.f32,
    z1: ti.f32,
    k: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect the rectangle [x0, x1] x [z0, z1] in the plane y = k."""
    return hit_axis_rect(ray_origin, ray_direction, x0, x1, z0, z1, k, t_min, t_max, 0, 2, 1, 1.0)


@ti.func
def hit_yz_rect(
    ray_origin: vec3,
    ray_direction: vec3,
    y0: ti.f32,
    y1: ti.f32,
    z0: ti.f32,
    z1: ti.f32,
    k: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect the rectangle [y0, y1] x [z0, z1] in the plane x = k."""
    return hit_axis_rect(ray_origin, ray_direction, y0, y1, z0, z1, k, t_min, t_max, 1, 2, 0, 1.0)


@ti.func
def _keep_closer(best: HitRecord, candidate: HitRecord) -> HitRecord:
    result = best
    if candidate.hit == 1 and (best.hit == 0 or candidate.t < best.t):
        result = candidate
    return result


@ti.func
def hit_box(
    ray_origin: vec3,
    ray_direction: vec3,
    box_min: vec3,
    box_max: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with the six faces of an axis-aligned box.

    Each face found narrows t_max for the faces tested after it, so the
    nearest face wins.

    Args:
        ray_origin: The ray origin.
        ray_direction: The ray direction.
        box_min: The box minimum corner.
        box_max: The box maximum corner.
        t_min: Lower bound of the accepted parameter interval.
        t_max: Upper bound of the accepted parameter interval.

    Returns:
        The HitRecord of the nearest face hit.
    """
    best = make_miss_record()
    closest = t_max

    for face in ti.static(range(6)):
        # Faces in order z-min, z-max, y-min, y-max, x-min, x-max
        axis_n = ti.static(2 - face // 2)
        axis_a = ti.static(0 if axis_n != 0 else 1)
        axis_b = ti.static(2 if axis_n != 2 else 1)
        sign = ti.static(-1.0 if face % 2 == 0 else 1.0)
        k = box_max[axis_n]
        if ti.static(face % 2 == 0):
            k = box_min[axis_n]

        rec = hit_axis_rect(
            ray_origin,
            ray_direction,
            box_min[axis_a],
            box_max[axis_a],
            box_min[axis_b],
            box_max[axis_b],
            k,
            t_min,
            closest,
            axis_a,
            axis_b,
            axis_n,
            sign,
        )
        best = _keep_closer(best, rec)
        if best.hit == 1:
            closest = best.t

    return best
