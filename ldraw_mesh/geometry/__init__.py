"""Geometry primitives: transforms, mesh buffers, normal smoothing, statistics."""

from ldraw_mesh.geometry.accumulator import MeshBuffers
from ldraw_mesh.geometry.mesh_stats import (
    BoundingBox,
    MeshStatistics,
    calculate_bounding_box,
    calculate_mesh_statistics,
    calculate_surface_area,
)
from ldraw_mesh.geometry.normals import compute_face_normals, compute_smoothed_normals
from ldraw_mesh.geometry.transform import Transform, ldraw_to_output_rotation

__all__ = [
    "MeshBuffers",
    "BoundingBox",
    "MeshStatistics",
    "calculate_bounding_box",
    "calculate_mesh_statistics",
    "calculate_surface_area",
    "compute_face_normals",
    "compute_smoothed_normals",
    "Transform",
    "ldraw_to_output_rotation",
]
