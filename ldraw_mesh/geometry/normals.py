"""
Per-vertex normal synthesis with an angle threshold.

Resolved meshes never share vertices between primitives, so adjacency is
recovered from positions: a triangle is a neighbour of vertex i when any of
its corners lies within `position_epsilon` of vertex i. Each vertex starts
from the normal of the first triangle that references it (its "own" face)
and blends in every neighbouring face normal within the smoothing angle of
that own normal. The result is not area-weighted.

Coincident positions are found with a KD-tree ball query over all vertices;
hits are narrowed to a strict `< position_epsilon` distance and mapped to
triangles through a vertex-to-triangle index. The output equals the
brute-force scan over all triangles.
"""

import logging
from typing import List

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import cKDTree as KDTree

from ldraw_mesh.config import (
    DEFAULT_SMOOTHING_ANGLE_DEG,
    DEGENERATE_EPSILON,
    POSITION_EPSILON,
    UP,
)

logger = logging.getLogger(__name__)


def compute_face_normals(
    vertices: NDArray[np.float64],
    triangles: NDArray[np.int32],
    degenerate_epsilon: float = DEGENERATE_EPSILON,
) -> NDArray[np.float64]:
    """Compute the unit normal of each triangle.

    Degenerate triangles (squared cross product not above `degenerate_epsilon`)
    get the UP normal.

    Args:
        vertices: (V, 3) positions
        triangles: (T, 3) vertex indices

    Returns:
        (T, 3) unit normals
    """
    if len(triangles) == 0:
        return np.zeros((0, 3), dtype=np.float64)

    v0 = vertices[triangles[:, 0]]
    v1 = vertices[triangles[:, 1]]
    v2 = vertices[triangles[:, 2]]
    cross = np.cross(v1 - v0, v2 - v0)
    sq_mag = np.einsum('ij,ij->i', cross, cross)

    normals = np.tile(UP, (len(triangles), 1))
    valid = (sq_mag > degenerate_epsilon) & np.isfinite(cross).all(axis=1)
    # Pre-scale by the largest component so huge coordinates do not overflow.
    scaled = cross[valid] / np.abs(cross[valid]).max(axis=1)[:, None]
    normals[valid] = scaled / np.linalg.norm(scaled, axis=1)[:, None]

    n_degenerate = int(np.count_nonzero(~valid))
    if n_degenerate:
        logger.debug("%d degenerate triangles use the fallback normal", n_degenerate)
    return normals


def _vertex_triangles(n_vertices: int, triangles: NDArray[np.int32]) -> List[List[int]]:
    """Triangles referencing each vertex, in triangle order."""
    index: List[List[int]] = [[] for _ in range(n_vertices)]
    for tri_id, tri in enumerate(triangles):
        for vi in set(int(v) for v in tri):
            index[vi].append(tri_id)
    return index


def _first_owner(n_vertices: int, triangles: NDArray[np.int32]) -> NDArray[np.int64]:
    """Index of the first triangle that references each vertex (-1 if none)."""
    owner = np.full(n_vertices, -1, dtype=np.int64)
    # Walk backwards so the earliest triangle wins.
    for tri_id in range(len(triangles) - 1, -1, -1):
        owner[triangles[tri_id]] = tri_id
    return owner


def compute_smoothed_normals(
    vertices: NDArray[np.float64],
    triangles: NDArray[np.int32],
    smoothing_angle_deg: float = DEFAULT_SMOOTHING_ANGLE_DEG,
    position_epsilon: float = POSITION_EPSILON,
    degenerate_epsilon: float = DEGENERATE_EPSILON,
) -> NDArray[np.float64]:
    """Compute one normal per vertex by threshold smoothing.

    Args:
        vertices: (V, 3) positions in unscaled LDraw units
        triangles: (T, 3) vertex indices
        smoothing_angle_deg: maximum angle between the vertex's own face
            normal and a neighbouring face normal for the two to blend
        position_epsilon: distance under which two positions coincide
        degenerate_epsilon: squared cross-product threshold for face normals

    Returns:
        (V, 3) unit normals in vertex-buffer order
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    triangles = np.asarray(triangles, dtype=np.int32).reshape(-1, 3)
    n_vertices = len(vertices)

    normals = np.tile(UP, (n_vertices, 1))
    if n_vertices == 0 or len(triangles) == 0:
        return normals

    face_normals = compute_face_normals(vertices, triangles, degenerate_epsilon)
    cos_threshold = np.cos(np.radians(smoothing_angle_deg))
    owner = _first_owner(n_vertices, triangles)
    vertex_tris = _vertex_triangles(n_vertices, triangles)

    # KDTree rejects non-finite data; such vertices keep the UP normal.
    finite_ids = np.flatnonzero(np.isfinite(vertices).all(axis=1))
    if len(finite_ids) == 0:
        return normals
    finite_vertices = vertices[finite_ids]
    tree = KDTree(finite_vertices)
    hits = tree.query_ball_point(finite_vertices, position_epsilon)

    for k, i in enumerate(finite_ids):
        own_tri = owner[i]
        if own_tri < 0:
            continue

        position = vertices[i]
        own_normal = face_normals[own_tri]

        candidates = finite_ids[np.asarray(hits[k], dtype=np.int64)]
        distances = np.linalg.norm(vertices[candidates] - position, axis=1)
        nearby = set()
        for vi in candidates[distances < position_epsilon]:
            nearby.update(vertex_tris[vi])
        nearby.discard(own_tri)

        total = own_normal.copy()
        for tri_id in sorted(nearby):
            other = face_normals[tri_id]
            if np.dot(own_normal, other) >= cos_threshold:
                total += other

        sq_mag = float(np.dot(total, total))
        if sq_mag > degenerate_epsilon:
            normals[i] = total / np.sqrt(sq_mag)

    return normals
