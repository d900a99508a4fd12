"""Unit tests for textures.

Tests cover:
- Constant colours
- Checker selection by the sign of the sine product
- Nested checkers and the nesting limit
- Marble noise bounds and reproducible Perlin tables
- Registry validation
"""

import numpy as np
import pytest
import taichi as ti


def _sample(tex_id, points, u=0.0, v=0.0):
    """Evaluate a texture at each of the given points."""
    from src.lumen.materials.texture import texture_value

    n = len(points)
    positions = ti.Vector.field(3, dtype=ti.f32, shape=n)
    colors = ti.Vector.field(3, dtype=ti.f32, shape=n)
    positions.from_numpy(np.asarray(points, dtype=np.float32))

    @ti.kernel
    def test_kernel(tid: ti.i32, tu: ti.f32, tv: ti.f32):
        for i in range(n):
            colors[i] = texture_value(tid, tu, tv, positions[i])

    test_kernel(tex_id, u, v)
    return colors.to_numpy()


class TestConstantTexture:
    """Tests for constant textures."""

    def test_value_ignores_position(self):
        from src.lumen.materials.texture import add_constant_texture

        tex = add_constant_texture((0.2, 0.4, 0.6))
        colors = _sample(tex, [(0.0, 0.0, 0.0), (5.0, -3.0, 2.0)], u=0.3, v=0.7)
        assert np.allclose(colors, [0.2, 0.4, 0.6])

    def test_negative_component_rejected(self):
        from src.lumen.materials.texture import add_constant_texture

        with pytest.raises(ValueError, match="negative"):
            add_constant_texture((0.5, -0.1, 0.5))

    def test_wrong_length_rejected(self):
        from src.lumen.materials.texture import add_constant_texture

        with pytest.raises(ValueError, match="3 components"):
            add_constant_texture((0.5, 0.5))


class TestCheckerTexture:
    """Tests for 3D checker textures."""

    def test_sign_selects_even_or_odd(self):
        from src.lumen.materials.texture import add_checker_texture, add_constant_texture

        even = add_constant_texture((1.0, 0.0, 0.0))
        odd = add_constant_texture((0.0, 0.0, 1.0))
        checker = add_checker_texture(even, odd, scale=10.0)

        # sin(1)^3 > 0, while flipping one coordinate makes the product negative
        colors = _sample(checker, [(0.1, 0.1, 0.1), (-0.1, 0.1, 0.1), (-0.1, -0.1, 0.1)])
        assert np.allclose(colors[0], [1.0, 0.0, 0.0])
        assert np.allclose(colors[1], [0.0, 0.0, 1.0])
        assert np.allclose(colors[2], [1.0, 0.0, 0.0])

    def test_nested_checker_resolves_to_leaf(self):
        from src.lumen.materials.texture import add_checker_texture, add_constant_texture

        red = add_constant_texture((1.0, 0.0, 0.0))
        green = add_constant_texture((0.0, 1.0, 0.0))
        blue = add_constant_texture((0.0, 0.0, 1.0))
        inner = add_checker_texture(red, green, scale=10.0)
        outer = add_checker_texture(inner, blue, scale=10.0)

        colors = _sample(outer, [(0.1, 0.1, 0.1), (-0.1, 0.1, 0.1)])
        # Even branch of both checkers lands on red, odd on the outer blue
        assert np.allclose(colors[0], [1.0, 0.0, 0.0])
        assert np.allclose(colors[1], [0.0, 0.0, 1.0])

    def test_nesting_limit(self):
        from src.lumen.materials.texture import MAX_TEXTURE_NESTING, add_checker_texture, add_constant_texture

        tex = add_constant_texture((0.5, 0.5, 0.5))
        for _ in range(MAX_TEXTURE_NESTING):
            tex = add_checker_texture(tex, tex)

        with pytest.raises(ValueError, match="nest deeper"):
            add_checker_texture(tex, tex)

    def test_forward_reference_rejected(self):
        from src.lumen.materials.texture import add_checker_texture, add_constant_texture

        tex = add_constant_texture((0.5, 0.5, 0.5))
        with pytest.raises(ValueError, match="odd texture id"):
            add_checker_texture(tex, tex + 1)


class TestNoiseTexture:
    """Tests for Perlin marble textures."""

    def test_values_within_color(self):
        from src.lumen.materials.texture import add_noise_texture

        tex = add_noise_texture((0.8, 0.6, 0.4), scale=4.0, rng=np.random.default_rng(0))
        points = np.random.default_rng(1).uniform(-5.0, 5.0, size=(256, 3))
        colors = _sample(tex, points)

        assert (colors >= -1e-6).all()
        assert (colors <= np.array([0.8, 0.6, 0.4]) + 1e-6).all()
        # The pattern actually varies
        assert colors[:, 0].std() > 0.05

    def test_seeded_tables_are_reproducible(self):
        from src.lumen.materials.texture import add_noise_texture, clear_textures

        points = np.random.default_rng(2).uniform(-3.0, 3.0, size=(64, 3))

        tex = add_noise_texture(rng=np.random.default_rng(11))
        first = _sample(tex, points)
        clear_textures()
        tex = add_noise_texture(rng=np.random.default_rng(11))
        second = _sample(tex, points)

        assert np.allclose(first, second)
