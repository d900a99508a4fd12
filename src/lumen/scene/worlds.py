"""Ready-made worlds.

Each builder fills an empty SceneManager with shapes and materials; the
caller then builds the scene. WORLD_VIEWS holds the camera placement and
background each world is meant to be seen with.

Worlds:
    static: three spheres on a large ground sphere, with a hollow glass bubble
    random: the cover scene of many small random spheres around three big ones
    cornell: the Cornell box with two boxes and a ceiling light
    perlin: a marble sphere resting on a checkered ground sphere

Example:
    >>> import numpy as np
    >>> from src.lumen.scene.manager import SceneManager
    >>> from src.lumen.scene.worlds import build_world
    >>> scene = SceneManager()
    >>> build_world(scene, "random", np.random.default_rng(3))
    >>> bvh = scene.build()
"""

import logging
from dataclasses import dataclass

import numpy as np

from src.lumen.geometry.shapes import XYRect, XZRect, YZRect
from src.lumen.scene.manager import SceneManager

logger = logging.getLogger(__name__)

Point3 = tuple[float, float, float]

# Random world: small spheres on the grid [-GRID_HALF_EXTENT, GRID_HALF_EXTENT)^2
GRID_HALF_EXTENT = 11
SMALL_SPHERE_RADIUS = 0.2

CORNELL_SIZE = 555.0
CORNELL_LIGHT_RADIANCE = (15.0, 15.0, 15.0)


@dataclass(frozen=True)
class WorldView:
    """Camera placement and background suited to a world.

    Attributes:
        lookfrom: Camera position.
        lookat: Point the camera looks at.
        vfov: Vertical field of view in degrees.
        aperture: Lens diameter (0 for a pinhole).
        focus_dist: Distance to the plane in focus.
        background: "sky" or an RGB colour.
    """

    lookfrom: Point3
    lookat: Point3
    vfov: float
    aperture: float = 0.0
    focus_dist: float = 1.0
    background: str | tuple[float, float, float] = "sky"


WORLD_VIEWS: dict[str, WorldView] = {
    # Reproduces the fixed camera: lower-left (-2, -1, -1), 4 wide, 2 high
    "static": WorldView(lookfrom=(0.0, 0.0, 0.0), lookat=(0.0, 0.0, -1.0), vfov=90.0),
    "random": WorldView(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vfov=20.0,
        aperture=0.1,
        focus_dist=10.0,
    ),
    "cornell": WorldView(
        lookfrom=(278.0, 278.0, -800.0),
        lookat=(278.0, 278.0, 0.0),
        vfov=40.0,
        focus_dist=800.0,
        background=(0.0, 0.0, 0.0),
    ),
    "perlin": WorldView(lookfrom=(13.0, 2.0, 3.0), lookat=(0.0, 0.0, 0.0), vfov=20.0),
}


def static_world(scene: SceneManager) -> None:
    """Three spheres on a ground sphere: diffuse, metal and a hollow glass bubble.

    The bubble is a glass sphere with a slightly smaller, negative-radius
    glass sphere inside it, whose inward normals model the inner surface.
    """
    diffuse = scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
    ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
    metal = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.0)
    glass = scene.add_dielectric_material(ior=1.5)

    scene.add_sphere((0.0, 0.0, -1.0), 0.5, diffuse)
    scene.add_sphere((0.0, -100.5, -1.0), 100.0, ground)
    scene.add_sphere((1.0, 0.0, -1.0), 0.5, metal)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    scene.add_sphere((-1.0, 0.0, -1.0), -0.45, glass)


def random_world(
    scene: SceneManager,
    rng: np.random.Generator,
    moving: bool = False,
    time0: float = 0.0,
    time1: float = 1.0,
) -> None:
    """The cover scene: a grid of small random spheres around three large ones.

    Each grid cell gets one small sphere: 80% diffuse with a random albedo,
    15% fuzzy metal, 5% glass.

    Args:
        scene: The scene to fill.
        rng: Source of sphere placement and materials.
        moving: Make the diffuse spheres bounce upward over [time0, time1].
        time0: Start of the motion.
        time1: End of the motion.
    """
    ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, ground)

    glass = scene.add_dielectric_material(ior=1.5)
    scene.add_sphere((0.0, 1.0, 0.0), 1.0, glass)
    brown = scene.add_lambertian_material(albedo=(0.4, 0.2, 0.1))
    scene.add_sphere((-4.0, 1.0, 0.0), 1.0, brown)
    steel = scene.add_metal_material(albedo=(0.7, 0.6, 0.5), fuzz=0.0)
    scene.add_sphere((4.0, 1.0, 0.0), 1.0, steel)

    for a in range(-GRID_HALF_EXTENT, GRID_HALF_EXTENT):
        for b in range(-GRID_HALF_EXTENT, GRID_HALF_EXTENT):
            choose = rng.random()
            center = (
                a + 0.9 * rng.random(),
                SMALL_SPHERE_RADIUS,
                b + 0.9 * rng.random(),
            )
            if choose < 0.8:
                albedo = tuple(float(c) for c in rng.random(3) * rng.random(3))
                material = scene.add_lambertian_material(albedo=albedo)
                if moving:
                    center1 = (center[0], center[1] + 0.5 * rng.random(), center[2])
                    scene.add_moving_sphere(
                        center, center1, time0, time1, SMALL_SPHERE_RADIUS, material
                    )
                    continue
            elif choose < 0.95:
                albedo = tuple(float(c) for c in 0.5 * (1.0 + rng.random(3)))
                material = scene.add_metal_material(albedo=albedo, fuzz=0.5 * rng.random())
            else:
                material = glass
            scene.add_sphere(center, SMALL_SPHERE_RADIUS, material)


def cornell_box(scene: SceneManager, size: float = CORNELL_SIZE) -> None:
    """The Cornell box: coloured side walls, a ceiling light and two boxes.

    The box spans [0, size] on every axis with the open side facing -z.
    """
    s = size / CORNELL_SIZE
    red = scene.add_lambertian_material(albedo=(0.65, 0.05, 0.05))
    white = scene.add_lambertian_material(albedo=(0.73, 0.73, 0.73))
    green = scene.add_lambertian_material(albedo=(0.12, 0.45, 0.15))
    light = scene.add_diffuse_light_material(color=CORNELL_LIGHT_RADIANCE)

    scene.add_shape(YZRect(0.0, size, 0.0, size, size, green))
    scene.add_shape(YZRect(0.0, size, 0.0, size, 0.0, red))
    scene.add_shape(XZRect(213.0 * s, 343.0 * s, 227.0 * s, 332.0 * s, size - 1.0 * s, light))
    scene.add_shape(XZRect(0.0, size, 0.0, size, 0.0, white))
    scene.add_shape(XZRect(0.0, size, 0.0, size, size, white))
    scene.add_shape(XYRect(0.0, size, 0.0, size, size, white))

    scene.add_box((130.0 * s, 0.0, 65.0 * s), (295.0 * s, 165.0 * s, 230.0 * s), white)
    scene.add_box((265.0 * s, 0.0, 295.0 * s), (430.0 * s, 330.0 * s, 460.0 * s), white)


def perlin_world(scene: SceneManager, rng: np.random.Generator) -> None:
    """A marble sphere resting on a checkered ground sphere."""
    dark = scene.add_constant_texture((0.2, 0.3, 0.1))
    light = scene.add_constant_texture((0.9, 0.9, 0.9))
    checker = scene.add_checker_texture(dark, light)
    marble = scene.add_noise_texture(scale=4.0, rng=rng)

    ground = scene.add_lambertian_material(texture_id=checker)
    stone = scene.add_lambertian_material(texture_id=marble)
    scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, ground)
    scene.add_sphere((0.0, 2.0, 0.0), 2.0, stone)


def build_world(
    scene: SceneManager,
    name: str,
    rng: np.random.Generator | None = None,
    time0: float = 0.0,
    time1: float = 1.0,
) -> None:
    """Fill scene with the named world.

    Args:
        scene: An empty scene.
        name: One of "static", "random", "cornell" or "perlin".
        rng: Source of randomness for the random and perlin worlds.
        time0: Shutter open time; the random world moves its diffuse
            spheres when time0 != time1.
        time1: Shutter close time.

    Raises:
        ValueError: If name is not a known world.
    """
    if rng is None:
        rng = np.random.default_rng()

    if name == "static":
        static_world(scene)
    elif name == "random":
        random_world(scene, rng, moving=time0 != time1, time0=time0, time1=time1)
    elif name == "cornell":
        cornell_box(scene)
    elif name == "perlin":
        perlin_world(scene, rng)
    else:
        raise ValueError(f"Unknown world {name!r}; expected one of {sorted(WORLD_VIEWS)}")

    logger.info("Generated %s world with %d shapes", name, scene.get_shape_count())
