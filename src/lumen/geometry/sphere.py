"""Hit records and ray-sphere intersection.

This module defines the HitRecord returned by every intersection routine and
the sphere and moving-sphere intersection functions.

The ray-sphere intersection solves

    |origin + t * direction - center|^2 = radius^2

in the half-b form a*t^2 + 2*h*t + c = 0 and picks the nearer root inside
(t_min, t_max), falling back to the farther one so rays that start inside the
sphere report their exit point.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.geometry.sphere import hit_sphere
    >>> # Inside a kernel:
    >>> # rec = hit_sphere(origin, direction, center, 0.5, 0.001, tm.inf)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class HitRecord:
    """Record of a ray-surface intersection.

    Attributes:
        hit: 1 if the ray hit something, 0 if not. Every other field is only
            meaningful when hit == 1.
        t: The ray parameter of the intersection.
        point: The world-space intersection point.
        normal: The unit surface normal, always facing against the ray.
        front_face: 1 if the ray arrived from the outside (the outward normal
            already opposed the ray), 0 if it arrived from the inside.
        u: Surface texture coordinate.
        v: Surface texture coordinate.
        material_id: The unified material id of the surface, -1 if unknown.
        shape_id: The scene index of the intersected shape, -1 if unknown.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    u: ti.f32
    v: ti.f32
    material_id: ti.i32
    shape_id: ti.i32


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord describing the absence of an intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        u=0.0,
        v=0.0,
        material_id=-1,
        shape_id=-1,
    )


@ti.func
def face_normal(ray_direction: vec3, outward_normal: vec3):
    """Orient a normal against the incoming ray.

    Args:
        ray_direction: The incoming ray direction.
        outward_normal: The geometric normal pointing out of the surface.

    Returns:
        A tuple (front_face, normal) where normal opposes ray_direction.
    """
    front_face = 1
    normal = outward_normal
    if tm.dot(ray_direction, outward_normal) >= 0.0:
        front_face = 0
        normal = -outward_normal
    return front_face, normal


@ti.func
def sphere_uv(outward_normal: vec3):
    """Spherical texture coordinates of a point on the unit sphere.

    u = (atan2(-z, x) + pi) / (2 pi) runs around the Y axis starting at -X,
    v = acos(-y) / pi runs from the south pole (v = 0) to the north pole.

    Args:
        outward_normal: The unit vector from the sphere center to the point.

    Returns:
        A tuple (u, v) in [0, 1] x [0, 1].
    """
    theta = tm.acos(tm.clamp(-outward_normal.y, -1.0, 1.0))
    phi = tm.atan2(-outward_normal.z, outward_normal.x) + tm.pi
    return phi / (2.0 * tm.pi), theta / tm.pi


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    center: vec3,
    radius: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        center: The sphere center.
        radius: The sphere radius. Negative radii flip the outward normal.
        t_min: Hits at or below t_min are ignored (avoids self-intersection).
        t_max: Hits at or beyond t_max are ignored.

    Returns:
        A HitRecord; check its hit field to see whether the ray hit.
    """
    result = make_miss_record()

    oc = ray_origin - center
    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(oc, ray_direction)  # half of the traditional 'b'
    c = tm.dot(oc, oc) - radius * radius
    discriminant = h * h - a * c

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)

        # Nearest root first, then the far root for rays starting inside
        t = (-h - sqrt_d) / a
        valid = t > t_min and t < t_max
        if not valid:
            t = (-h + sqrt_d) / a
            valid = t > t_min and t < t_max

        if valid:
            point = ray_origin + t * ray_direction
            outward_normal = (point - center) / radius
            front_face, normal = face_normal(ray_direction, outward_normal)
            u, v = sphere_uv(outward_normal)
            result.hit = 1
            result.t = t
            result.point = point
            result.normal = normal
            result.front_face = front_face
            result.u = u
            result.v = v

    return result


@ti.func
def moving_sphere_center(
    center0: vec3,
    center1: vec3,
    time0: ti.f32,
    time1: ti.f32,
    time: ti.f32,
) -> vec3:
    """Linearly interpolate a moving sphere's center at the given time.

    Returns center0 when the motion interval has zero length.
    """
    center = center0
    if time1 != time0:
        center = center0 + ((time - time0) / (time1 - time0)) * (center1 - center0)
    return center


@ti.func
def hit_moving_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    ray_time: ti.f32,
    center0: vec3,
    center1: vec3,
    time0: ti.f32,
    time1: ti.f32,
    radius: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a sphere whose center moves during the shutter interval.

    The sphere is intersected at the position it had at the ray's own time.
    """
    center = moving_sphere_center(center0, center1, time0, time1, ray_time)
    return hit_sphere(ray_origin, ray_direction, center, radius, t_min, t_max)
