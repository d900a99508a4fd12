"""Host-side shape descriptions.

Shapes form a closed set of variants, each a frozen dataclass that knows its
``ShapeKind`` tag and how to bound itself over a time interval. The scene
manager copies them into Taichi fields; the BVH builder only needs their
bounding boxes.

Every shape refers to its material by the unified material id handed out by
``SceneManager``, so many shapes can share one material.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from src.lumen.geometry.aabb import AABB, AABB_PADDING, Point3


def _check_extent(name: str, low: float, high: float) -> None:
    if low > high:
        raise ValueError(f"{name} extent [{low}, {high}] is inverted")


class ShapeKind(IntEnum):
    """Tags for the shape variants, used for dispatch inside kernels."""

    SPHERE = 0
    MOVING_SPHERE = 1
    XY_RECT = 2
    XZ_RECT = 3
    YZ_RECT = 4
    BOX = 5


@dataclass(frozen=True)
class Sphere:
    """A static sphere.

    A negative radius is accepted: the geometry is the same but normals point
    inward, which turns a dielectric sphere into a hollow bubble.
    """

    center: Point3
    radius: float
    material_id: int

    kind = ShapeKind.SPHERE

    def bounding_box(self, time_start: float, time_end: float) -> AABB | None:
        r = abs(self.radius)
        return AABB(
            tuple(c - r for c in self.center),
            tuple(c + r for c in self.center),
        )


@dataclass(frozen=True)
class MovingSphere:
    """A sphere whose center moves linearly from center0 at time0 to center1 at time1."""

    center0: Point3
    center1: Point3
    time0: float
    time1: float
    radius: float
    material_id: int

    kind = ShapeKind.MOVING_SPHERE

    def center(self, time: float) -> Point3:
        """Return the center at the given time (constant when time0 == time1)."""
        if self.time1 == self.time0:
            return tuple(float(c) for c in self.center0)
        fraction = (time - self.time0) / (self.time1 - self.time0)
        return tuple(
            self.center0[i] + fraction * (self.center1[i] - self.center0[i]) for i in range(3)
        )

    def bounding_box(self, time_start: float, time_end: float) -> AABB | None:
        r = abs(self.radius)
        start = self.center(time_start)
        box_start = AABB(tuple(c - r for c in start), tuple(c + r for c in start))
        if time_start == time_end:
            return box_start
        end = self.center(time_end)
        box_end = AABB(tuple(c - r for c in end), tuple(c + r for c in end))
        return AABB.union(box_start, box_end)


@dataclass(frozen=True)
class XYRect:
    """Rectangle in the plane z = k spanning [x0, x1] x [y0, y1]."""

    x0: float
    x1: float
    y0: float
    y1: float
    k: float
    material_id: int

    kind = ShapeKind.XY_RECT

    def __post_init__(self) -> None:
        _check_extent("x", self.x0, self.x1)
        _check_extent("y", self.y0, self.y1)

    def bounding_box(self, time_start: float, time_end: float) -> AABB | None:
        box = AABB((self.x0, self.y0, self.k), (self.x1, self.y1, self.k))
        return box.padded(AABB_PADDING)


@dataclass(frozen=True)
class XZRect:
    """Rectangle in the plane y = k spanning [x0, x1] x [z0, z1]."""

    x0: float
    x1: float
    z0: float
    z1: float
    k: float
    material_id: int

    kind = ShapeKind.XZ_RECT

    def __post_init__(self) -> None:
        _check_extent("x", self.x0, self.x1)
        _check_extent("z", self.z0, self.z1)

    def bounding_box(self, time_start: float, time_end: float) -> AABB | None:
        box = AABB((self.x0, self.k, self.z0), (self.x1, self.k, self.z1))
        return box.padded(AABB_PADDING)


@dataclass(frozen=True)
class YZRect:
    """Rectangle in the plane x = k spanning [y0, y1] x [z0, z1]."""

    y0: float
    y1: float
    z0: float
    z1: float
    k: float
    material_id: int

    kind = ShapeKind.YZ_RECT

    def __post_init__(self) -> None:
        _check_extent("y", self.y0, self.y1)
        _check_extent("z", self.z0, self.z1)

    def bounding_box(self, time_start: float, time_end: float) -> AABB | None:
        box = AABB((self.k, self.y0, self.z0), (self.k, self.y1, self.z1))
        return box.padded(AABB_PADDING)


@dataclass(frozen=True)
class Box:
    """An axis-aligned box made of six rectangles, spanning p0 to p1."""

    p0: Point3
    p1: Point3
    material_id: int

    kind = ShapeKind.BOX

    def __post_init__(self) -> None:
        for axis, name in enumerate("xyz"):
            _check_extent(name, self.p0[axis], self.p1[axis])

    def faces(self) -> list[XYRect | XZRect | YZRect]:
        """Return the six faces: z-min, z-max, y-min, y-max, x-min, x-max."""
        (x0, y0, z0), (x1, y1, z1) = self.p0, self.p1
        m = self.material_id
        return [
            XYRect(x0, x1, y0, y1, z0, m),
            XYRect(x0, x1, y0, y1, z1, m),
            XZRect(x0, x1, z0, z1, y0, m),
            XZRect(x0, x1, z0, z1, y1, m),
            YZRect(y0, y1, z0, z1, x0, m),
            YZRect(y0, y1, z0, z1, x1, m),
        ]

    def bounding_box(self, time_start: float, time_end: float) -> AABB | None:
        faces = self.faces()
        box = faces[0].bounding_box(time_start, time_end)
        for face in faces[1:]:
            box = AABB.union(box, face.bounding_box(time_start, time_end))
        return box


Shape = Sphere | MovingSphere | XYRect | XZRect | YZRect | Box
