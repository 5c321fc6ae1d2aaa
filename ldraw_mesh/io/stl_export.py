"""
STL export of resolved meshes via numpy-stl.

STL stores one normal per facet, so per-vertex smoothed normals are not
carried over; facet normals are recomputed from the triangle winding.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np
from stl import Mode, mesh as stl_mesh

from ldraw_mesh.mesh import ResolvedMesh

logger = logging.getLogger(__name__)


def mesh_to_stl(mesh: ResolvedMesh) -> stl_mesh.Mesh:
    """Build a numpy-stl Mesh from a ResolvedMesh.

    Raises:
        ValueError: if the mesh has no triangles
    """
    if mesh.is_empty:
        raise ValueError("Cannot export an empty mesh to STL")

    data = np.zeros(mesh.triangle_count, dtype=stl_mesh.Mesh.dtype)
    data['vectors'] = mesh.positions[mesh.triangles]
    result = stl_mesh.Mesh(data, remove_empty_areas=False)
    result.update_normals()
    return result


def save_stl(
    mesh: ResolvedMesh,
    path: Union[str, Path],
    binary: bool = True,
) -> Path:
    """Write a ResolvedMesh to an STL file.

    Args:
        mesh: mesh to export
        path: output file
        binary: binary STL when True, ASCII otherwise

    Returns:
        Path of the written file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    stl_data = mesh_to_stl(mesh)
    stl_data.save(str(path), mode=Mode.BINARY if binary else Mode.ASCII)

    logger.info(
        "Saved STL: %s (%d triangles, %s)",
        path, mesh.triangle_count, "binary" if binary else "ascii",
    )
    return path
