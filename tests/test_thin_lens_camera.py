"""Unit tests for the thin-lens camera module.

Tests cover:
- Viewport of the fixed default camera
- Orthonormal basis computation
- Pinhole ray generation at aperture 0
- Lens sampling and focus plane for a finite aperture
- Shutter time sampling
- Parameter validation and readiness
"""

import math

import numpy as np
import pytest
import taichi as ti


def _generate_rays(coords, seed=0):
    """Generate one ray per (s, t) pair; return (origins, directions, times)."""
    from src.lumen.camera.thin_lens import get_ray
    from src.lumen.core.rng import seed_streams

    n = len(coords)
    seed_streams(seed, n)
    st = ti.Vector.field(2, dtype=ti.f32, shape=n)
    origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
    directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
    times = ti.field(dtype=ti.f32, shape=n)
    st.from_numpy(np.asarray(coords, dtype=np.float32))

    @ti.kernel
    def test_kernel():
        for i in range(n):
            ray = get_ray(st[i][0], st[i][1], i)
            origins[i] = ray.origin
            directions[i] = ray.direction
            times[i] = ray.time

    test_kernel()
    return origins.to_numpy(), directions.to_numpy(), times.to_numpy()


class TestCameraSetup:
    """Tests for camera setup and basis computation."""

    def test_default_camera_viewport(self):
        """The fixed 2:1 camera spans (-2, -1, -1) to (2, 1, -1)."""
        from src.lumen.camera.thin_lens import default_camera, get_camera_info, setup_camera

        setup_camera(default_camera(2.0))
        info = get_camera_info()

        assert info["origin"] == pytest.approx((0.0, 0.0, 0.0), abs=1e-6)
        assert info["lower_left"] == pytest.approx((-2.0, -1.0, -1.0), abs=1e-5)
        assert info["horizontal"] == pytest.approx((4.0, 0.0, 0.0), abs=1e-5)
        assert info["vertical"] == pytest.approx((0.0, 2.0, 0.0), abs=1e-5)
        assert info["lens_radius"] == 0.0

    def test_orthonormal_basis(self):
        from src.lumen.camera.thin_lens import ThinLensCamera, get_camera_info, setup_camera

        setup_camera(
            ThinLensCamera(
                lookfrom=(13.0, 2.0, 3.0),
                lookat=(0.0, 0.0, 0.0),
                vup=(0.0, 1.0, 0.0),
                vfov=20.0,
                aspect_ratio=16.0 / 9.0,
            )
        )
        info = get_camera_info()
        u, v, w = (np.array(info[name]) for name in ("u", "v", "w"))

        assert abs(np.dot(u, v)) < 1e-6
        assert abs(np.dot(u, w)) < 1e-6
        assert abs(np.dot(v, w)) < 1e-6
        for vec in (u, v, w):
            assert abs(np.linalg.norm(vec) - 1.0) < 1e-6
        # w points back toward the camera
        expected_w = np.array([13.0, 2.0, 3.0]) / math.sqrt(13.0**2 + 2.0**2 + 3.0**2)
        assert np.allclose(w, expected_w, atol=1e-6)
        # v keeps a positive component along vup
        assert v[1] > 0.0

    def test_readiness(self):
        from src.lumen.camera.thin_lens import clear_camera, default_camera, is_camera_ready, setup_camera

        assert not is_camera_ready()
        setup_camera(default_camera())
        assert is_camera_ready()
        clear_camera()
        assert not is_camera_ready()


class TestRayGeneration:
    """Tests for get_ray."""

    def test_pinhole_rays_start_at_lookfrom(self):
        from src.lumen.camera.thin_lens import default_camera, setup_camera

        setup_camera(default_camera(2.0))
        origins, directions, _ = _generate_rays([(0.5, 0.5), (0.0, 0.0), (1.0, 1.0)])

        assert np.allclose(origins, 0.0)
        assert np.allclose(directions[0], [0.0, 0.0, -1.0], atol=1e-5)
        assert np.allclose(directions[1], [-2.0, -1.0, -1.0], atol=1e-5)
        assert np.allclose(directions[2], [2.0, 1.0, -1.0], atol=1e-5)

    def test_lens_rays_converge_on_focus_plane(self):
        from src.lumen.camera.thin_lens import ThinLensCamera, setup_camera

        setup_camera(
            ThinLensCamera(
                lookfrom=(0.0, 0.0, 0.0),
                lookat=(0.0, 0.0, -1.0),
                vup=(0.0, 1.0, 0.0),
                vfov=90.0,
                aspect_ratio=1.0,
                aperture=2.0,
                focus_dist=5.0,
            )
        )
        origins, directions, _ = _generate_rays([(0.5, 0.5)] * 128, seed=4)

        # Origins are spread over the lens disk in the z = 0 plane
        assert np.allclose(origins[:, 2], 0.0, atol=1e-6)
        assert (np.linalg.norm(origins[:, :2], axis=1) < 1.0 + 1e-6).all()
        assert origins[:, 0].std() > 0.1
        # Every ray passes through the same point on the focus plane
        assert np.allclose(origins + directions, [0.0, 0.0, -5.0], atol=1e-4)

    def test_times_within_shutter(self):
        from src.lumen.camera.thin_lens import ThinLensCamera, setup_camera

        setup_camera(
            ThinLensCamera(
                lookfrom=(0.0, 0.0, 0.0),
                lookat=(0.0, 0.0, -1.0),
                vup=(0.0, 1.0, 0.0),
                vfov=60.0,
                aspect_ratio=1.0,
                time0=0.25,
                time1=0.75,
            )
        )
        _, _, times = _generate_rays([(0.5, 0.5)] * 256, seed=5)

        assert times.min() >= 0.25
        assert times.max() <= 0.75
        assert times.std() > 0.05

    def test_instant_shutter(self):
        from src.lumen.camera.thin_lens import default_camera, setup_camera

        setup_camera(default_camera())
        _, _, times = _generate_rays([(0.5, 0.5)] * 16)
        assert np.allclose(times, 0.0)


class TestCameraValidation:
    """Tests for parameter validation."""

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"vfov": 0.0}, "vfov"),
            ({"vfov": 180.0}, "vfov"),
            ({"aspect_ratio": 0.0}, "aspect_ratio"),
            ({"aperture": -0.1}, "aperture"),
            ({"focus_dist": 0.0}, "focus_dist"),
            ({"time0": 1.0, "time1": 0.5}, "Shutter"),
            ({"lookat": (0.0, 0.0, 0.0)}, "must differ"),
            ({"vup": (0.0, 0.0, 1.0)}, "parallel"),
        ],
    )
    def test_invalid_parameters(self, overrides, message):
        from src.lumen.camera.thin_lens import ThinLensCamera, is_camera_ready, setup_camera

        params = {
            "lookfrom": (0.0, 0.0, 0.0),
            "lookat": (0.0, 0.0, -1.0),
            "vup": (0.0, 1.0, 0.0),
            "vfov": 90.0,
            "aspect_ratio": 2.0,
        }
        params.update(overrides)

        with pytest.raises(ValueError, match=message):
            setup_camera(ThinLensCamera(**params))
        assert not is_camera_ready()
