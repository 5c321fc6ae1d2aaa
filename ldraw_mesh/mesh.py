"""
Mesh finalizer and the engine entry point.

resolve_mesh() validates the root file and library, runs the recursive
resolver under the Y-up root transform and hands the accumulated buffers to
finalize_mesh(), which scales positions to output units, computes bounds and
synthesizes smoothed normals.

Example:
    >>> mesh = resolve_mesh("parts/3001.dat", "/usr/share/ldraw")
    >>> mesh.positions.shape, mesh.normals.shape
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from ldraw_mesh.config import (
    DEFAULT_SMOOTHING_ANGLE_DEG,
    MAX_RECURSION_DEPTH,
    PART_EXTENSIONS,
    POSITION_EPSILON,
    SCALE_FACTOR,
)
from ldraw_mesh.geometry.accumulator import MeshBuffers
from ldraw_mesh.geometry.mesh_stats import BoundingBox, calculate_bounding_box
from ldraw_mesh.geometry.normals import compute_smoothed_normals
from ldraw_mesh.geometry.transform import Transform
from ldraw_mesh.io.library import LibraryPath, validate_root_file
from ldraw_mesh.io.resolver import PrimitiveResolver, StatementCache
from ldraw_mesh.logging_config import log_timing

logger = logging.getLogger(__name__)


@dataclass
class MeshOptions:
    """Tunables of a single resolution.

    Attributes:
        scale_factor: LDU -> output units (0.0004: 1 LDU = 0.4 mm, in metres)
        smoothing_angle_deg: normal smoothing threshold
        max_depth: deepest sub-file nesting that is still followed
        cache_statements: parse each library file once per resolution
        position_epsilon: coincidence distance for smoothing (unscaled LDU)
    """
    scale_factor: float = SCALE_FACTOR
    smoothing_angle_deg: float = DEFAULT_SMOOTHING_ANGLE_DEG
    max_depth: int = MAX_RECURSION_DEPTH
    cache_statements: bool = True
    position_epsilon: float = POSITION_EPSILON


def _read_only(array: NDArray) -> NDArray:
    array = np.ascontiguousarray(array)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class ResolvedMesh:
    """Final mesh of one part.

    Attributes:
        positions: (N, 3) float64 positions in output units
        normals: (N, 3) float64 unit normals, one per position
        triangles: (M, 3) int32 indices, every index < N
        bounds: axis-aligned bounds of `positions`
        authors: author names in encounter order (duplicates kept)
        source_files: every file loaded, in load order
        scale_factor: factor applied to the unscaled LDU positions
    """
    positions: NDArray[np.float64]
    normals: NDArray[np.float64]
    triangles: NDArray[np.int32]
    bounds: BoundingBox
    authors: Tuple[str, ...] = ()
    source_files: Tuple[str, ...] = field(default=(), repr=False)
    scale_factor: float = SCALE_FACTOR

    def __post_init__(self):
        for name in ("positions", "normals", "triangles"):
            object.__setattr__(self, name, _read_only(getattr(self, name)))

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    @property
    def is_empty(self) -> bool:
        return self.triangle_count == 0

    def unique_authors(self) -> List[str]:
        """Author names with duplicates removed, first occurrence kept."""
        return list(dict.fromkeys(self.authors))


def finalize_mesh(
    buffers: MeshBuffers,
    scale_factor: float = SCALE_FACTOR,
    smoothing_angle_deg: float = DEFAULT_SMOOTHING_ANGLE_DEG,
    authors: Iterable[str] = (),
    source_files: Iterable[str] = (),
    position_epsilon: float = POSITION_EPSILON,
) -> ResolvedMesh:
    """Turn accumulated buffers into a ResolvedMesh.

    Normals are computed from the unscaled positions so the epsilons keep
    their meaning in LDU; bounds are taken from the scaled positions.

    Args:
        buffers: accumulator filled by the resolver
        scale_factor: uniform factor applied to positions
        smoothing_angle_deg: normal smoothing threshold

    Returns:
        ResolvedMesh
    """
    vertices = buffers.vertices_array()
    triangles = buffers.triangles_array()

    normals = compute_smoothed_normals(
        vertices,
        triangles,
        smoothing_angle_deg=smoothing_angle_deg,
        position_epsilon=position_epsilon,
    )
    positions = vertices * scale_factor

    return ResolvedMesh(
        positions=positions,
        normals=normals,
        triangles=triangles,
        bounds=calculate_bounding_box(positions),
        authors=tuple(authors),
        source_files=tuple(source_files),
        scale_factor=scale_factor,
    )


def resolve_mesh(
    root_file: Union[str, Path],
    library_path: Union[str, Path],
    smoothing_angle_deg: float = DEFAULT_SMOOTHING_ANGLE_DEG,
    *,
    options: Optional[MeshOptions] = None,
    cache: Optional[StatementCache] = None,
) -> ResolvedMesh:
    """Resolve an LDraw part file into a smoothed triangle mesh.

    Args:
        root_file: `.dat` file to resolve
        library_path: LDraw library root (containing `parts/` and `p/`)
        smoothing_angle_deg: normal smoothing threshold; overrides the
            options' value when options are not given
        options: full set of tunables
        cache: statement cache to share across several resolutions

    Returns:
        ResolvedMesh (empty when the file yields no geometry)

    Raises:
        PartFileNotFoundError: root file missing or path empty
        UnsupportedFileTypeError: root file is not a `.dat`
        LibraryNotFoundError: library directory missing or path empty
    """
    if options is None:
        options = MeshOptions(smoothing_angle_deg=smoothing_angle_deg)

    path = validate_root_file(root_file, PART_EXTENSIONS)
    library = LibraryPath.from_path(library_path)

    if cache is None and options.cache_statements:
        cache = StatementCache()

    buffers = MeshBuffers()
    resolver = PrimitiveResolver(
        library, buffers, max_depth=options.max_depth, cache=cache
    )

    with log_timing(logger, "Resolving part", part=path.name) as info:
        resolver.load(path, Transform.y_flip(), invert=False)
        mesh = finalize_mesh(
            buffers,
            scale_factor=options.scale_factor,
            smoothing_angle_deg=options.smoothing_angle_deg,
            authors=resolver.authors,
            source_files=resolver.source_files,
            position_epsilon=options.position_epsilon,
        )
        info["vertices"] = mesh.vertex_count
        info["triangles"] = mesh.triangle_count

    if resolver.skipped_references:
        logger.info(
            "%s: %d sub-file reference(s) skipped",
            path.name, resolver.skipped_references,
        )
    if resolver.skipped_primitives:
        logger.info(
            "%s: %d primitive(s) with non-finite coordinates skipped",
            path.name, resolver.skipped_primitives,
        )
    if mesh.is_empty:
        logger.warning("%s produced no geometry", path.name)

    return mesh
