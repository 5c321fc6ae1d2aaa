"""
Mesh statistics calculation module.

Provides:
- Axis-aligned bounding box of resolved positions
- Mesh statistics (vertices, triangles, surface area, degenerate faces)

Positions are in output units (metres unless a custom scale factor is used).
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ldraw_mesh.config import DEGENERATE_EPSILON

logger = logging.getLogger(__name__)


@dataclass
class BoundingBox:
    """Axis-Aligned Bounding Box (AABB) for a mesh.

    Attributes:
        min_point: Minimum corner (x_min, y_min, z_min)
        max_point: Maximum corner (x_max, y_max, z_max)
    """
    min_point: NDArray[np.float64]
    max_point: NDArray[np.float64]

    @classmethod
    def empty(cls) -> 'BoundingBox':
        """Zero box at the origin, used for meshes without vertices."""
        return cls(min_point=np.zeros(3), max_point=np.zeros(3))

    @property
    def dimensions(self) -> NDArray[np.float64]:
        """Get box dimensions (width, height, depth)."""
        return self.max_point - self.min_point

    @property
    def width(self) -> float:
        """X-axis dimension."""
        return float(self.dimensions[0])

    @property
    def height(self) -> float:
        """Y-axis dimension."""
        return float(self.dimensions[1])

    @property
    def depth(self) -> float:
        """Z-axis dimension."""
        return float(self.dimensions[2])

    @property
    def center(self) -> NDArray[np.float64]:
        """Get box center point."""
        return (self.min_point + self.max_point) / 2

    @property
    def diagonal(self) -> float:
        return float(np.linalg.norm(self.dimensions))

    @property
    def max_dimension(self) -> float:
        return float(np.max(self.dimensions))

    def contains_point(self, point: NDArray[np.float64], tol: float = 0.0) -> bool:
        """Check if point is inside the bounding box."""
        return bool(
            np.all(point >= self.min_point - tol) and
            np.all(point <= self.max_point + tol)
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'min': self.min_point.tolist(),
            'max': self.max_point.tolist(),
            'dimensions': self.dimensions.tolist(),
            'center': self.center.tolist(),
        }


@dataclass
class MeshStatistics:
    """Summary numbers for a resolved mesh.

    Attributes:
        n_vertices: Number of emitted vertices (never merged)
        n_faces: Number of triangles
        bbox: Axis-aligned bounding box
        surface_area: Total surface area
        n_degenerate: Triangles whose normal fell back to UP
        n_source_files: Files loaded while resolving (repeats counted)
        n_authors: Distinct author names
    """
    n_vertices: int
    n_faces: int
    bbox: BoundingBox
    surface_area: float
    n_degenerate: int = 0
    n_source_files: int = 0
    n_authors: int = 0
    face_areas: Optional[NDArray[np.float64]] = field(default=None, repr=False)

    @property
    def avg_face_area(self) -> float:
        """Average face area."""
        if self.n_faces == 0:
            return 0.0
        return self.surface_area / self.n_faces

    def summary(self) -> str:
        """Generate human-readable summary."""
        dims = self.bbox.dimensions
        center = self.bbox.center
        lines = [
            "Mesh Statistics",
            "=" * 40,
            f"Vertices:     {self.n_vertices:,}",
            f"Triangles:    {self.n_faces:,}",
            f"Degenerate:   {self.n_degenerate:,}",
            f"",
            f"Dimensions:   {dims[0]:.4f} x {dims[1]:.4f} x {dims[2]:.4f}",
            f"Center:       ({center[0]:.4f}, {center[1]:.4f}, {center[2]:.4f})",
            f"Surface Area: {self.surface_area:.6f}",
            f"",
            f"Files loaded: {self.n_source_files:,}",
            f"Authors:      {self.n_authors}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'n_vertices': self.n_vertices,
            'n_faces': self.n_faces,
            'n_degenerate': self.n_degenerate,
            'bbox': self.bbox.to_dict(),
            'surface_area': self.surface_area,
            'n_source_files': self.n_source_files,
            'n_authors': self.n_authors,
        }


def calculate_bounding_box(vertices: NDArray[np.float64]) -> BoundingBox:
    """Calculate axis-aligned bounding box for vertices.

    Args:
        vertices: Nx3 array of vertex coordinates

    Returns:
        BoundingBox instance (zero box when there are no vertices)
    """
    if len(vertices) == 0:
        return BoundingBox.empty()

    return BoundingBox(
        min_point=np.min(vertices, axis=0),
        max_point=np.max(vertices, axis=0)
    )


def calculate_face_areas(
    vertices: NDArray[np.float64],
    faces: NDArray[np.int32]
) -> NDArray[np.float64]:
    """Calculate area of each triangular face.

    Uses cross product: area = 0.5 * |v1 x v2|

    Args:
        vertices: Nx3 array of vertices
        faces: Mx3 array of face indices

    Returns:
        Array of M face areas
    """
    if len(faces) == 0:
        return np.array([], dtype=np.float64)

    v0 = vertices[faces[:, 0]]
    v1 = vertices[faces[:, 1]]
    v2 = vertices[faces[:, 2]]

    cross = np.cross(v1 - v0, v2 - v0)
    return 0.5 * np.linalg.norm(cross, axis=1)


def calculate_surface_area(
    vertices: NDArray[np.float64],
    faces: NDArray[np.int32]
) -> float:
    """Calculate total mesh surface area."""
    return float(np.sum(calculate_face_areas(vertices, faces)))


def count_degenerate_faces(
    vertices: NDArray[np.float64],
    faces: NDArray[np.int32],
    epsilon: float = DEGENERATE_EPSILON,
) -> int:
    """Count triangles whose squared cross product is not above `epsilon`.

    `vertices` must be in the same units the normals were computed in
    (unscaled LDU) for the count to match the UP fallbacks.
    """
    if len(faces) == 0:
        return 0
    v0 = vertices[faces[:, 0]]
    cross = np.cross(vertices[faces[:, 1]] - v0, vertices[faces[:, 2]] - v0)
    sq_mag = np.einsum('ij,ij->i', cross, cross)
    return int(np.count_nonzero(sq_mag <= epsilon))


def calculate_mesh_statistics(mesh, scale_factor: Optional[float] = None) -> MeshStatistics:
    """Calculate statistics for a ResolvedMesh.

    Args:
        mesh: ResolvedMesh instance
        scale_factor: factor the positions were scaled by (default: the
            mesh's own); the degenerate count is evaluated in unscaled units

    Returns:
        MeshStatistics instance

    Example:
        >>> stats = calculate_mesh_statistics(mesh)
        >>> print(f"Mesh has {stats.n_faces} triangles")
    """
    positions = mesh.positions
    triangles = mesh.triangles

    face_areas = calculate_face_areas(positions, triangles)
    if scale_factor is None:
        scale_factor = mesh.scale_factor
    unscaled = positions / scale_factor if scale_factor else positions

    stats = MeshStatistics(
        n_vertices=mesh.vertex_count,
        n_faces=mesh.triangle_count,
        bbox=mesh.bounds,
        surface_area=float(np.sum(face_areas)),
        n_degenerate=count_degenerate_faces(unscaled, triangles),
        n_source_files=len(mesh.source_files),
        n_authors=len(mesh.unique_authors()),
        face_areas=face_areas,
    )

    logger.debug(
        "Mesh statistics calculated",
        extra={
            'vertices': stats.n_vertices,
            'faces': stats.n_faces,
            'surface_area': stats.surface_area,
        }
    )

    return stats
