"""Taichi-based offline ray tracer for scenes of spheres.

This package renders scenes made of spheres with Lambertian, metal and
dielectric materials, using recursive light-ray simulation and stochastic
anti-aliasing. Rendering runs inside Taichi kernels (CPU backend by default).

Subpackages:
    core: Random streams, ray/vector utilities, the integrator and render loop
    geometry: Sphere primitive and ray-sphere intersection
    materials: Lambertian, metal and dielectric scattering
    scene: Scene storage, the scene manager and preset scenes
    camera: Thin-lens camera with depth of field
    preview: Image encoding (PPM, PNG) and Matplotlib preview

Taichi must be initialised (``ti.init``) before importing modules that
declare fields, so this package does not import its subpackages eagerly.
"""

__version__ = "0.1.0"
