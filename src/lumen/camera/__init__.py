"""Camera module for view and ray generation.

Components:
    thin_lens: Thin-lens camera with depth of field and a shutter interval

Ray generation uses normalized image coordinates:
    s in [0, 1]: left to right across image
    t in [0, 1]: bottom to top across image
"""

from .thin_lens import (
    ThinLensCamera,
    clear_camera,
    default_camera,
    get_camera_info,
    get_camera_origin,
    get_ray,
    is_camera_ready,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "clear_camera",
    "default_camera",
    "get_camera_info",
    "get_camera_origin",
    "get_ray",
    "is_camera_ready",
    "setup_camera",
]
