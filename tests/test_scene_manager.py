"""Unit tests for the SceneManager.

Tests cover:
- Texture and material registration (Lambertian, Metal, Dielectric, DiffuseLight)
- Material type tracking and lookup, host and GPU side
- Shape addition with materials
- Building the BVH and the read-only built scene
- Scene serialization (to_config, from_config, to_dict, from_dict)
- Scene clearing
"""

import numpy as np
import pytest
import taichi as ti


@pytest.fixture
def fresh_scene():
    """Create a fresh SceneManager for each test."""
    from src.lumen.scene.manager import SceneManager

    scene = SceneManager()
    yield scene
    scene.clear()


class TestMaterialRegistration:
    """Tests for material registration."""

    def test_unified_material_ids(self, fresh_scene):
        from src.lumen.scene.manager import MaterialType

        lam = fresh_scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
        metal = fresh_scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        glass = fresh_scene.add_dielectric_material(ior=1.5)
        light = fresh_scene.add_diffuse_light_material(color=(4.0, 4.0, 4.0))
        lam2 = fresh_scene.add_lambertian_material(albedo=(0.1, 0.1, 0.1))

        assert (lam, metal, glass, light, lam2) == (0, 1, 2, 3, 4)
        assert fresh_scene.get_material_count() == 5
        assert fresh_scene.get_material_type_python(light) == MaterialType.DIFFUSE_LIGHT
        assert fresh_scene.get_material_info(lam2).type_index == 1
        assert fresh_scene.get_material_info(99) is None
        assert fresh_scene.get_material_type_python(-1) is None

    def test_lambertian_with_texture(self, fresh_scene):
        checker = fresh_scene.add_checker_texture(
            fresh_scene.add_constant_texture((0.2, 0.3, 0.1)),
            fresh_scene.add_constant_texture((0.9, 0.9, 0.9)),
        )
        mat_id = fresh_scene.add_lambertian_material(texture_id=checker)

        assert fresh_scene.get_texture_count() == 3
        assert fresh_scene.get_material_info(mat_id).params == {"texture_id": checker}

    def test_albedo_creates_constant_texture(self, fresh_scene):
        fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        assert fresh_scene.textures == [{"type": "constant", "color": (0.5, 0.5, 0.5)}]

    @pytest.mark.parametrize(
        "kwargs",
        [{}, {"albedo": (0.5, 0.5, 0.5), "texture_id": 0}],
    )
    def test_lambertian_needs_exactly_one_source(self, fresh_scene, kwargs):
        fresh_scene.add_constant_texture((0.5, 0.5, 0.5))
        with pytest.raises(ValueError, match="Exactly one"):
            fresh_scene.add_lambertian_material(**kwargs)

    def test_material_validation(self, fresh_scene):
        with pytest.raises(ValueError, match="Albedo"):
            fresh_scene.add_lambertian_material(albedo=(1.5, 0.5, 0.5))
        with pytest.raises(ValueError, match="Fuzz"):
            fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5), fuzz=2.0)
        with pytest.raises(ValueError, match="Index of refraction"):
            fresh_scene.add_dielectric_material(ior=0.5)
        # Failed registrations do not consume material ids
        assert fresh_scene.get_material_count() == 0

    def test_get_material_type_gpu(self, fresh_scene):
        from src.lumen.scene.manager import MaterialType, get_material_type, get_material_type_index

        fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_dielectric_material()
        fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5))

        types = ti.field(dtype=ti.i32, shape=5)
        indices = ti.field(dtype=ti.i32, shape=5)

        @ti.kernel
        def test_kernel():
            for i in range(5):
                types[i] = get_material_type(i)
                indices[i] = get_material_type_index(i)

        test_kernel()
        assert types.to_numpy().tolist() == [
            int(MaterialType.LAMBERTIAN),
            int(MaterialType.DIELECTRIC),
            int(MaterialType.METAL),
            int(MaterialType.METAL),
            -1,
        ]
        assert indices.to_numpy().tolist() == [0, 0, 0, 1, -1]


class TestShapes:
    """Tests for adding shapes."""

    def test_add_shapes(self, fresh_scene):
        from src.lumen.geometry.shapes import XZRect

        mat_id = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        assert fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, mat_id) == 0
        assert fresh_scene.add_moving_sphere((0, 0, 0), (0, 1, 0), 0.0, 1.0, 0.2, mat_id) == 1
        assert fresh_scene.add_box((0, 0, 0), (1, 1, 1), mat_id) == 2
        assert fresh_scene.add_shape(XZRect(0.0, 1.0, 0.0, 1.0, 2.0, mat_id)) == 3
        assert fresh_scene.get_shape_count() == 4
        assert len(fresh_scene.shapes) == 4

    def test_invalid_material_rejected(self, fresh_scene):
        with pytest.raises(ValueError, match="Invalid material_id"):
            fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, 0)

        fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        with pytest.raises(ValueError, match="Invalid material_id"):
            fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, 1)

    def test_capacity_methods(self, fresh_scene):
        from src.lumen.geometry.bvh import MAX_BVH_NODES
        from src.lumen.scene.intersection import MAX_SHAPES
        from src.lumen.scene.manager import MAX_MATERIALS

        assert fresh_scene.get_max_shapes() == MAX_SHAPES
        assert fresh_scene.get_max_materials() == MAX_MATERIALS
        assert fresh_scene.get_max_bvh_nodes() == MAX_BVH_NODES


class TestBuild:
    """Tests for building the scene."""

    def test_build_uploads_bvh(self, fresh_scene):
        from src.lumen.scene.intersection import is_scene_ready

        mat_id = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        for x in range(5):
            fresh_scene.add_sphere((float(x), 0.0, -1.0), 0.4, mat_id)

        assert not fresh_scene.is_built
        assert not is_scene_ready()
        bvh = fresh_scene.build(rng=np.random.default_rng(0))

        assert fresh_scene.is_built
        assert fresh_scene.bvh is bvh
        assert len(bvh.nodes) == 9
        assert is_scene_ready()

    def test_built_scene_is_read_only(self, fresh_scene):
        mat_id = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, mat_id)
        fresh_scene.build()

        with pytest.raises(RuntimeError, match="already built"):
            fresh_scene.add_sphere((1.0, 0.0, -1.0), 0.5, mat_id)
        with pytest.raises(RuntimeError, match="already built"):
            fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5))
        with pytest.raises(RuntimeError, match="already built"):
            fresh_scene.build()

    def test_build_logs_summary(self, fresh_scene, caplog):
        mat_id = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, mat_id)
        with caplog.at_level("INFO", logger="src.lumen.scene.manager"):
            fresh_scene.build()

        assert "Built scene: 1 shapes" in caplog.text

    def test_clear_allows_rebuild(self, fresh_scene):
        from src.lumen.scene.intersection import get_shape_count

        mat_id = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, mat_id)
        fresh_scene.build()

        fresh_scene.clear()
        assert not fresh_scene.is_built
        assert fresh_scene.get_material_count() == 0
        assert fresh_scene.get_texture_count() == 0
        assert get_shape_count() == 0

        mat_id = fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, mat_id)
        fresh_scene.build()
        assert fresh_scene.is_built


class TestSerialization:
    """Tests for scene serialization."""

    def _populate(self, scene):
        dark = scene.add_constant_texture((0.2, 0.3, 0.1))
        light = scene.add_constant_texture((0.9, 0.9, 0.9))
        checker = scene.add_checker_texture(dark, light, scale=5.0)
        ground = scene.add_lambertian_material(texture_id=checker)
        gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.1)
        glass = scene.add_dielectric_material(ior=1.33)
        lamp = scene.add_diffuse_light_material(texture_id=light)
        scene.add_sphere((0.0, -100.0, 0.0), 100.0, ground)
        scene.add_moving_sphere((0.0, 1.0, 0.0), (0.0, 2.0, 0.0), 0.0, 1.0, 0.5, gold)
        scene.add_sphere((1.0, 1.0, 0.0), -0.5, glass)
        scene.add_box((-1.0, 0.0, -1.0), (0.0, 1.0, 0.0), lamp)

    def test_to_config(self, fresh_scene):
        self._populate(fresh_scene)
        config = fresh_scene.to_config()

        assert [t["type"] for t in config.textures] == ["constant", "constant", "checker"]
        assert config.textures[2] == {"type": "checker", "even": 0, "odd": 1, "scale": 5.0}
        assert [m["type"] for m in config.materials] == [
            "lambertian",
            "metal",
            "dielectric",
            "diffuse_light",
        ]
        assert config.materials[1] == {"type": "metal", "albedo": (0.8, 0.6, 0.2), "fuzz": 0.1}
        assert [s["type"] for s in config.shapes] == ["sphere", "moving_sphere", "sphere", "box"]
        assert config.shapes[2]["radius"] == -0.5

    def test_from_config_round_trip(self, fresh_scene):
        from src.lumen.scene.manager import SceneManager

        self._populate(fresh_scene)
        config = fresh_scene.to_config()

        other = SceneManager()
        other.from_config(config)

        assert other.get_texture_count() == 3
        assert other.get_material_count() == 4
        assert other.shapes == fresh_scene.shapes
        assert not other.is_built

    def test_to_dict_from_dict(self, fresh_scene):
        from src.lumen.scene.manager import SceneManager

        self._populate(fresh_scene)
        data = fresh_scene.to_dict()
        # Plain lists only, as a JSON or TOML writer expects
        assert data["shapes"][0]["center"] == [0.0, -100.0, 0.0]

        other = SceneManager()
        other.from_dict(data)
        assert other.shapes == fresh_scene.shapes
        assert other.to_dict() == data

    def test_noise_texture_round_trip_keeps_perlin_tables(self, fresh_scene):
        from src.lumen.materials.texture import perlin_perm_x, perlin_vectors
        from src.lumen.scene.manager import SceneManager

        fresh_scene.add_noise_texture((0.8, 0.6, 0.4), scale=4.0, rng=np.random.default_rng(5))
        fresh_scene.add_noise_texture(scale=2.0)
        vectors = perlin_vectors.to_numpy()
        perm = perlin_perm_x.to_numpy()
        data = fresh_scene.to_dict()

        seeds = {t["perlin_seed"] for t in data["textures"]}
        assert seeds == {fresh_scene.perlin_seed}

        # Overwrite the shared tables with different ones before loading
        other = SceneManager()
        other.add_noise_texture(rng=np.random.default_rng(99))
        assert not np.array_equal(perlin_vectors.to_numpy(), vectors)

        other.from_dict(data)
        assert np.array_equal(perlin_vectors.to_numpy(), vectors)
        assert np.array_equal(perlin_perm_x.to_numpy(), perm)
        assert other.to_dict() == data

    @pytest.mark.parametrize(
        "section, entry, message",
        [
            ("textures", {"type": "wood"}, "Unknown texture type"),
            ("materials", {"type": "plastic"}, "Unknown material type"),
            ("shapes", {"type": "torus"}, "Unknown shape type"),
        ],
    )
    def test_from_config_unknown_types(self, fresh_scene, section, entry, message):
        from src.lumen.scene.manager import SceneConfig

        config = SceneConfig()
        getattr(config, section).append(entry)
        with pytest.raises(ValueError, match=message):
            fresh_scene.from_config(config)
