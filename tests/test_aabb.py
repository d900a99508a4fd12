"""Unit tests for axis-aligned bounding boxes.

Tests cover:
- Construction and corner validation
- Union, centroid, padding and containment
- Host slab test, including axis-parallel rays
- Device slab test agreeing with the host one
"""

import numpy as np
import pytest
import taichi as ti


class TestAABBConstruction:
    """Tests for building boxes."""

    def test_corners_are_stored_as_floats(self):
        from src.lumen.geometry.aabb import AABB

        box = AABB((0, 1, 2), (3, 4, 5))
        assert box.minimum == (0.0, 1.0, 2.0)
        assert box.maximum == (3.0, 4.0, 5.0)

    def test_inverted_box_rejected(self):
        from src.lumen.geometry.aabb import AABB

        with pytest.raises(ValueError, match="exceeds maximum"):
            AABB((1.0, 0.0, 0.0), (0.0, 1.0, 1.0))

    def test_from_points_orders_corners(self):
        from src.lumen.geometry.aabb import AABB

        box = AABB.from_points((3.0, -1.0, 2.0), (1.0, 4.0, -2.0))
        assert box.minimum == (1.0, -1.0, -2.0)
        assert box.maximum == (3.0, 4.0, 2.0)


class TestAABBOperations:
    """Tests for union, centroid, padding and containment."""

    def test_union_encloses_both(self):
        from src.lumen.geometry.aabb import AABB, surrounding_box

        a = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
        b = AABB((-1.0, 0.5, 2.0), (0.5, 3.0, 4.0))
        union = AABB.union(a, b)

        assert union.minimum == (-1.0, 0.0, 0.0)
        assert union.maximum == (1.0, 3.0, 4.0)
        assert union.contains(a)
        assert union.contains(b)
        assert surrounding_box(a, b) == union

    def test_union_is_commutative(self):
        from src.lumen.geometry.aabb import AABB

        a = AABB((0.0, 0.0, 0.0), (1.0, 2.0, 3.0))
        b = AABB((5.0, -5.0, 1.0), (6.0, -4.0, 2.0))
        assert AABB.union(a, b) == AABB.union(b, a)

    def test_union_is_associative(self):
        from src.lumen.geometry.aabb import AABB

        rng = np.random.default_rng(11)

        def random_box():
            return AABB.from_points(tuple(rng.uniform(-5, 5, 3)), tuple(rng.uniform(-5, 5, 3)))

        for _ in range(20):
            a, b, c = random_box(), random_box(), random_box()
            assert AABB.union(AABB.union(a, b), c) == AABB.union(a, AABB.union(b, c))

    def test_centroid(self):
        from src.lumen.geometry.aabb import AABB

        assert AABB((0.0, 2.0, -4.0), (2.0, 4.0, 4.0)).centroid == (1.0, 3.0, 0.0)

    def test_padded_widens_only_flat_axes(self):
        from src.lumen.geometry.aabb import AABB, AABB_PADDING

        flat = AABB((0.0, 0.0, 5.0), (1.0, 1.0, 5.0)).padded()
        assert flat.minimum == (0.0, 0.0, 5.0 - AABB_PADDING)
        assert flat.maximum == (1.0, 1.0, 5.0 + AABB_PADDING)

    def test_contains_rejects_overhang(self):
        from src.lumen.geometry.aabb import AABB

        outer = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
        assert not outer.contains(AABB((0.5, 0.5, 0.5), (1.5, 1.0, 1.0)))
        assert outer.contains(AABB((0.5, 0.5, 0.5), (1.0 + 1e-12, 1.0, 1.0)), tolerance=1e-9)


class TestAABBHit:
    """Tests for the host slab test."""

    def test_ray_through_box(self):
        from src.lumen.geometry.aabb import AABB

        box = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
        assert box.hit((0.5, 0.5, -1.0), (0.0, 0.0, 1.0), 0.0, 10.0)

    def test_ray_missing_box(self):
        from src.lumen.geometry.aabb import AABB

        box = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
        assert not box.hit((2.0, 0.5, -1.0), (0.0, 0.0, 1.0), 0.0, 10.0)

    def test_ray_pointing_away(self):
        from src.lumen.geometry.aabb import AABB

        box = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
        assert not box.hit((0.5, 0.5, -1.0), (0.0, 0.0, -1.0), 0.0, 10.0)

    def test_interval_ends_before_box(self):
        from src.lumen.geometry.aabb import AABB

        box = AABB((0.0, 0.0, 5.0), (1.0, 1.0, 6.0))
        assert not box.hit((0.5, 0.5, 0.0), (0.0, 0.0, 1.0), 0.0, 4.0)
        assert box.hit((0.5, 0.5, 0.0), (0.0, 0.0, 1.0), 0.0, 5.5)

    def test_diagonal_ray(self):
        from src.lumen.geometry.aabb import AABB

        box = AABB((1.0, 1.0, 1.0), (2.0, 2.0, 2.0))
        assert box.hit((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), 0.0, 100.0)
        assert not box.hit((0.0, 0.0, 0.0), (1.0, -1.0, 1.0), 0.0, 100.0)


class TestAABBDeviceHit:
    """Tests for hit_aabb inside a kernel."""

    def test_device_matches_host_on_random_rays(self):
        from src.lumen.geometry.aabb import AABB, hit_aabb

        rng = np.random.default_rng(11)
        n = 64
        origins = rng.uniform(-3.0, 3.0, size=(n, 3)).astype(np.float32)
        directions = rng.normal(size=(n, 3)).astype(np.float32)
        box = AABB((-1.0, -0.5, -1.5), (1.0, 0.5, 0.25))

        origin_field = ti.Vector.field(3, dtype=ti.f32, shape=n)
        direction_field = ti.Vector.field(3, dtype=ti.f32, shape=n)
        result = ti.field(dtype=ti.i32, shape=n)
        origin_field.from_numpy(origins)
        direction_field.from_numpy(directions)

        @ti.kernel
        def test_kernel():
            box_min = ti.math.vec3(-1.0, -0.5, -1.5)
            box_max = ti.math.vec3(1.0, 0.5, 0.25)
            for i in range(n):
                result[i] = hit_aabb(box_min, box_max, origin_field[i], direction_field[i], 0.0, 100.0)

        test_kernel()
        device = result.to_numpy()
        host = [box.hit(tuple(o), tuple(d), 0.0, 100.0) for o, d in zip(origins, directions)]

        assert list(device == 1) == host
