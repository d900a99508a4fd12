"""Axis-aligned bounding boxes.

The host-side ``AABB`` dataclass is used while building the bounding volume
hierarchy; ``hit_aabb`` is its Taichi counterpart used during traversal.

Both slab tests take the reciprocal of each direction component and rely on
IEEE754 signed infinities when a component is exactly zero: the slab bounds
become +/-inf and the interval narrows (or empties) correctly without any
special case. When the origin lies exactly on a slab plane the product is
NaN; every comparison against NaN is false, so such an axis leaves the
interval untouched.

Example:
    >>> box = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
    >>> box.hit((0.5, 0.5, -1.0), (0.0, 0.0, 1.0), 0.0, 10.0)
    True
    >>> AABB.union(box, AABB((2.0, 0.0, 0.0), (3.0, 1.0, 1.0))).maximum
    (3.0, 1.0, 1.0)
"""

from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

Point3 = tuple[float, float, float]

# Thickness given to flat shapes (axis-aligned rectangles) along their normal
AABB_PADDING = 1e-4


@dataclass(frozen=True)
class AABB:
    """An axis-aligned bounding box given by its min and max corners.

    Attributes:
        minimum: The componentwise smallest corner (x, y, z).
        maximum: The componentwise largest corner (x, y, z).

    Raises:
        ValueError: If any component of minimum exceeds maximum.
    """

    minimum: Point3
    maximum: Point3

    def __post_init__(self) -> None:
        object.__setattr__(self, "minimum", tuple(float(c) for c in self.minimum))
        object.__setattr__(self, "maximum", tuple(float(c) for c in self.maximum))
        for axis in range(3):
            if self.minimum[axis] > self.maximum[axis]:
                raise ValueError(
                    f"AABB minimum {self.minimum} exceeds maximum {self.maximum} "
                    f"on axis {axis}"
                )

    @classmethod
    def from_points(cls, a: Point3, b: Point3) -> "AABB":
        """Build the box spanned by two arbitrary corner points."""
        return cls(
            tuple(min(a[i], b[i]) for i in range(3)),
            tuple(max(a[i], b[i]) for i in range(3)),
        )

    @staticmethod
    def union(a: "AABB", b: "AABB") -> "AABB":
        """Return the smallest box enclosing both a and b."""
        return AABB(
            tuple(min(a.minimum[i], b.minimum[i]) for i in range(3)),
            tuple(max(a.maximum[i], b.maximum[i]) for i in range(3)),
        )

    @property
    def centroid(self) -> Point3:
        """The box center."""
        return tuple(0.5 * (self.minimum[i] + self.maximum[i]) for i in range(3))

    def padded(self, epsilon: float = AABB_PADDING) -> "AABB":
        """Return a copy where every axis thinner than epsilon is widened.

        Zero-thickness boxes (flat rectangles) would otherwise make the slab
        test degenerate along their normal axis.
        """
        minimum = list(self.minimum)
        maximum = list(self.maximum)
        for axis in range(3):
            if maximum[axis] - minimum[axis] < epsilon:
                minimum[axis] -= epsilon
                maximum[axis] += epsilon
        return AABB(tuple(minimum), tuple(maximum))

    def contains(self, other: "AABB", tolerance: float = 0.0) -> bool:
        """Check whether other lies entirely within this box."""
        return all(
            self.minimum[i] <= other.minimum[i] + tolerance
            and other.maximum[i] <= self.maximum[i] + tolerance
            for i in range(3)
        )

    def hit(
        self,
        origin: Point3,
        direction: Point3,
        t_min: float,
        t_max: float,
    ) -> bool:
        """Slab test against a ray, narrowing [t_min, t_max] axis by axis.

        Args:
            origin: The ray origin.
            direction: The ray direction; zero components are allowed.
            t_min: Lower bound of the accepted parameter interval.
            t_max: Upper bound of the accepted parameter interval.

        Returns:
            True if the ray overlaps the box somewhere inside the interval.
        """
        with np.errstate(divide="ignore", invalid="ignore"):
            for axis in range(3):
                inv_d = np.float64(1.0) / np.float64(direction[axis])
                t0 = (self.minimum[axis] - origin[axis]) * inv_d
                t1 = (self.maximum[axis] - origin[axis]) * inv_d
                if inv_d < 0.0:
                    t0, t1 = t1, t0
                if t0 > t_min:
                    t_min = t0
                if t1 < t_max:
                    t_max = t1
                if t_max <= t_min:
                    return False
        return True


def surrounding_box(a: "AABB", b: "AABB") -> "AABB":
    """Alias for ``AABB.union``."""
    return AABB.union(a, b)


@ti.func
def hit_aabb(
    box_min: vec3,
    box_max: vec3,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """Slab test of a ray against a box inside a Taichi kernel.

    Taichi functions cannot return early, so the loop keeps running after the
    interval empties; the interval only ever shrinks, so the result is the
    same as an early exit.

    Args:
        box_min: The box minimum corner.
        box_max: The box maximum corner.
        ray_origin: The ray origin.
        ray_direction: The ray direction; zero components are allowed.
        t_min: Lower bound of the accepted parameter interval.
        t_max: Upper bound of the accepted parameter interval.

    Returns:
        1 if the ray overlaps the box inside the interval, 0 otherwise.
    """
    lo = t_min
    hi = t_max
    hit = 1
    for axis in ti.static(range(3)):
        inv_d = 1.0 / ray_direction[axis]
        t0 = (box_min[axis] - ray_origin[axis]) * inv_d
        t1 = (box_max[axis] - ray_origin[axis]) * inv_d
        if inv_d < 0.0:
            t0, t1 = t1, t0
        if t0 > lo:
            lo = t0
        if t1 < hi:
            hi = t1
        if hi <= lo:
            hit = 0
    return hit
