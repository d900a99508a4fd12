"""Lumen: an offline Monte Carlo path tracer built on Taichi.

The heavy lifting runs inside Taichi kernels (one parallel worker per pixel),
while scenes, bounding boxes and the bounding volume hierarchy are assembled
on the host with plain Python and NumPy.

Subpackages:
    core: Rays, random streams, the radiance integrator and the renderer
    geometry: Bounding boxes, shape primitives and the BVH
    materials: Textures and the Lambertian/Metal/Dielectric/DiffuseLight models
    scene: Shape storage, scene management and world generation
    camera: Thin-lens camera with a shutter interval
    preview: PPM and PNG output for rendered framebuffers
"""

__version__ = "0.2.0"
