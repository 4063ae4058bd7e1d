"""Ready-made demo scenes.

This module provides factory functions for the two demo scenes:

- The random sphere field: a large ground sphere, a 22x22 grid of small
  spheres with randomly chosen materials, and three large feature spheres
  (glass, diffuse and metal) viewed from a low angle with depth of field.
- The three-sphere scene: a diffuse sphere between a glass sphere and a metal
  sphere, resting on a large ground sphere, viewed head-on from the origin.

Each factory returns the populated SceneManager together with the camera
configured for the view.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.scene.presets import create_random_spheres_scene
    >>> from spheretrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_spheres_scene(seed=7)
    >>> setup_camera(camera)
"""

import logging

import numpy as np

from spheretrace.camera.thin_lens import ThinLensCamera, default_camera
from spheretrace.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# =============================================================================
# Random Sphere Field Constants
# =============================================================================

GROUND_ALBEDO = (0.5, 0.5, 0.5)
GROUND_RADIUS = 1000.0

# Small spheres are placed on the grid a, b in [-GRID_EXTENT, GRID_EXTENT)
GRID_EXTENT = 11
SMALL_SPHERE_RADIUS = 0.2

# Small spheres closer than this to the metal feature sphere are skipped
CLEARANCE_POINT = (4.0, 0.2, 0.0)
CLEARANCE_DISTANCE = 0.9

# Material choice thresholds on a uniform draw
DIFFUSE_PROBABILITY = 0.8
METAL_PROBABILITY_CUTOFF = 0.95

GLASS_IOR = 1.5

# =============================================================================
# Three-Sphere Scene Constants
# =============================================================================

THREE_SPHERES_GROUND_ALBEDO = (0.8, 0.8, 0.0)
THREE_SPHERES_CENTER_ALBEDO = (0.1, 0.2, 0.5)
THREE_SPHERES_METAL_ALBEDO = (0.8, 0.6, 0.2)


def create_random_spheres_scene(
    seed: int = 0,
    aspect_ratio: float = 16.0 / 9.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random sphere field scene.

    The small spheres are drawn with a numpy Generator seeded with seed, so a
    given seed always produces the same scene. For each grid cell (a, b):

    - 80% chance of a diffuse sphere with albedo rand() * rand() per channel
    - 15% chance of a metal sphere with albedo in [0.5, 1) and fuzz in [0, 0.5)
    - 5% chance of a glass sphere (all glass spheres share one material)

    Args:
        seed: Seed of the scene generator.
        aspect_ratio: Aspect ratio of the returned camera.

    Returns:
        A tuple of (SceneManager, ThinLensCamera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    ground_mat = scene.add_lambertian_material(albedo=GROUND_ALBEDO)
    scene.add_sphere(center=(0.0, -GROUND_RADIUS, 0.0), radius=GROUND_RADIUS, material_id=ground_mat)

    glass_mat = scene.add_dielectric_material(ior=GLASS_IOR)
    clearance_point = np.array(CLEARANCE_POINT)

    for a in range(-GRID_EXTENT, GRID_EXTENT):
        for b in range(-GRID_EXTENT, GRID_EXTENT):
            choose_mat = rng.random()
            center = np.array(
                [a + 0.9 * rng.random(), SMALL_SPHERE_RADIUS, b + 0.9 * rng.random()]
            )

            if np.linalg.norm(center - clearance_point) <= CLEARANCE_DISTANCE:
                continue

            center_tuple = (float(center[0]), float(center[1]), float(center[2]))
            if choose_mat < DIFFUSE_PROBABILITY:
                albedo = rng.random(3) * rng.random(3)
                scene.add_lambertian_sphere(
                    center_tuple, SMALL_SPHERE_RADIUS, tuple(float(c) for c in albedo)
                )
            elif choose_mat < METAL_PROBABILITY_CUTOFF:
                albedo = rng.uniform(0.5, 1.0, size=3)
                fuzz = float(rng.uniform(0.0, 0.5))
                scene.add_metal_sphere(
                    center_tuple, SMALL_SPHERE_RADIUS, tuple(float(c) for c in albedo), fuzz
                )
            else:
                scene.add_sphere(center_tuple, SMALL_SPHERE_RADIUS, glass_mat)

    # Feature spheres
    scene.add_sphere(center=(0.0, 1.0, 0.0), radius=1.0, material_id=glass_mat)
    scene.add_lambertian_sphere(center=(-4.0, 1.0, 0.0), radius=1.0, albedo=(0.2, 0.2, 0.5))
    scene.add_metal_sphere(center=(4.0, 1.0, 0.0), radius=1.0, albedo=(0.7, 0.6, 0.5), fuzz=0.2)

    logger.debug(
        "Random sphere scene (seed %d): %d spheres, %d materials",
        seed,
        scene.get_sphere_count(),
        scene.get_material_count(),
    )
    return scene, default_camera(aspect_ratio)


def create_three_spheres_scene(
    fuzz: float = 0.0,
    aspect_ratio: float = 16.0 / 9.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the three-sphere scene.

    Three spheres of radius 0.5 sit at z = -1 on a ground sphere: glass on the
    left, diffuse in the center and metal on the right. The camera sits at
    the origin looking down -z with a 90 degree vertical FOV and no defocus.

    Args:
        fuzz: Fuzz of the metal sphere, in [0, 1].
        aspect_ratio: Aspect ratio of the returned camera.

    Returns:
        A tuple of (SceneManager, ThinLensCamera).

    Raises:
        ValueError: If fuzz is outside [0, 1].
    """
    scene = SceneManager()

    ground_mat = scene.add_lambertian_material(albedo=THREE_SPHERES_GROUND_ALBEDO)
    center_mat = scene.add_lambertian_material(albedo=THREE_SPHERES_CENTER_ALBEDO)
    left_mat = scene.add_dielectric_material(ior=GLASS_IOR)
    right_mat = scene.add_metal_material(albedo=THREE_SPHERES_METAL_ALBEDO, fuzz=fuzz)

    scene.add_sphere(center=(0.0, -100.5, -1.0), radius=100.0, material_id=ground_mat)
    scene.add_sphere(center=(0.0, 0.0, -1.0), radius=0.5, material_id=center_mat)
    scene.add_sphere(center=(-1.0, 0.0, -1.0), radius=0.5, material_id=left_mat)
    scene.add_sphere(center=(1.0, 0.0, -1.0), radius=0.5, material_id=right_mat)

    camera = ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_dist=1.0,
    )
    return scene, camera
