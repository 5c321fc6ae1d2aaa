"""
Append-only vertex/index buffers fed by the primitive resolver.

Vertices are never merged: two primitives that emit the same position get
separate vertices. Within a quad the diagonal (v0, v2) is shared between its
two triangles.
"""

from typing import List, Tuple

import numpy as np
from numpy.typing import NDArray


class MeshBuffers:
    """Recording surface for resolved geometry (single writer)."""

    def __init__(self):
        self._vertices: List[NDArray[np.float64]] = []
        self._triangles: List[Tuple[int, int, int]] = []

    @property
    def vertex_count(self) -> int:
        return len(self._vertices)

    @property
    def triangle_count(self) -> int:
        return len(self._triangles)

    def add_triangle(self, v0, v1, v2) -> None:
        """Append 3 vertices and 1 triangle."""
        base = len(self._vertices)
        self._vertices.extend(np.asarray(v, dtype=np.float64) for v in (v0, v1, v2))
        self._triangles.append((base, base + 1, base + 2))

    def add_quad(self, v0, v1, v2, v3) -> None:
        """Append 4 vertices and 2 triangles split along the v0-v2 diagonal."""
        base = len(self._vertices)
        self._vertices.extend(np.asarray(v, dtype=np.float64) for v in (v0, v1, v2, v3))
        self._triangles.append((base, base + 1, base + 2))
        self._triangles.append((base, base + 2, base + 3))

    def vertices_array(self) -> NDArray[np.float64]:
        """Vertices as an (N, 3) float64 array in emission order."""
        if not self._vertices:
            return np.zeros((0, 3), dtype=np.float64)
        return np.array(self._vertices, dtype=np.float64)

    def triangles_array(self) -> NDArray[np.int32]:
        """Triangles as an (M, 3) int32 index array in emission order."""
        if not self._triangles:
            return np.zeros((0, 3), dtype=np.int32)
        return np.array(self._triangles, dtype=np.int32)
