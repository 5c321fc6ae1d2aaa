"""
Placement parser for top-level LDraw model files (.ldr / .mpd).

A model file is a flat list of part placements. Only the top level is
walked: every type-1 line becomes a PartPlacement and the referenced part
is resolved separately, once per distinct part file, through
mesh.resolve_mesh().

Placement positions and rotations are expressed in the same output
convention as resolved meshes (Y-up, scaled by the mesh scale factor).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
from numpy.typing import NDArray

from ldraw_mesh.config import MODEL_EXTENSIONS, SCALE_FACTOR
from ldraw_mesh.geometry.transform import Y_FLIP, Transform, ldraw_to_output_rotation
from ldraw_mesh.io.dat_parser import MetaAuthor, SubFileRef, parse_line
from ldraw_mesh.io.library import LDrawLoadError, LibraryPath, validate_root_file
from ldraw_mesh.io.resolver import StatementCache
from ldraw_mesh.mesh import MeshOptions, ResolvedMesh, resolve_mesh

logger = logging.getLogger(__name__)

_DESCRIPTION_KEYWORDS = ("!MODEL", "NAME:")


@dataclass
class PartPlacement:
    """One part instance in a model.

    Attributes:
        part_file: reference as written in the model file
        file_path: library file the reference resolved to
        color: LDraw color code
        position: (3,) position in output units
        rotation: quaternion [x, y, z, w] in the output convention
        mirrored: placement transform has a negative determinant
        transform: raw LDraw-space placement transform
    """
    part_file: str
    file_path: Path
    color: str
    position: NDArray[np.float64]
    rotation: NDArray[np.float64]
    mirrored: bool
    transform: Transform

    def to_dict(self) -> dict:
        return {
            'part_file': self.part_file,
            'color': self.color,
            'position': self.position.tolist(),
            'rotation': self.rotation.tolist(),
            'mirrored': self.mirrored,
        }


class LdrModel:
    """Top-level LDraw model file and its part placements.

    Example:
        >>> model = LdrModel("house.ldr", "/usr/share/ldraw")
        >>> model.parse()
        >>> for placement in model.placements:
        ...     print(placement.part_file, placement.position)
    """

    def __init__(
        self,
        path: Union[str, Path],
        library_path: Union[str, Path],
        scale_factor: float = SCALE_FACTOR,
    ):
        self.path = validate_root_file(path, MODEL_EXTENSIONS)
        self.library = LibraryPath.from_path(library_path)
        self.scale_factor = scale_factor
        self.description = ""
        self.author = ""
        self.placements: List[PartPlacement] = []

    @property
    def name(self) -> str:
        return self.path.stem

    def parse(self) -> List[PartPlacement]:
        """Read the model file and collect its placements.

        Returns:
            Placements in file order
        """
        self.placements = []
        with open(self.path, 'r', encoding='utf-8', errors='replace') as f:
            for line in f:
                self._parse_line(line)

        logger.info(
            "Parsed model %s: %d placements, %d distinct parts",
            self.path.name, len(self.placements), len(self.distinct_parts()),
        )
        return self.placements

    def _parse_line(self, line: str) -> None:
        line = line.strip()
        if line.startswith("0"):
            self._parse_header(line)
            return

        statement = parse_line(line)
        if isinstance(statement, SubFileRef):
            placement = self._placement(statement)
            if placement is not None:
                self.placements.append(placement)

    def _parse_header(self, line: str) -> None:
        tokens = line.split()
        if len(tokens) < 3 or tokens[0] != "0":
            return

        if tokens[1].upper() in _DESCRIPTION_KEYWORDS:
            if not self.description:
                self.description = " ".join(tokens[2:])
            return

        statement = parse_line(line)
        if isinstance(statement, MetaAuthor) and not self.author:
            self.author = statement.name

    def _placement(self, ref: SubFileRef) -> Optional[PartPlacement]:
        file_path = self.library.find(ref.filename)
        if file_path is None:
            logger.warning(
                "Part file not found: %s referenced in %s", ref.filename, self.path.name
            )
            return None

        rotation, mirrored = ldraw_to_output_rotation(ref.transform.linear)
        return PartPlacement(
            part_file=ref.filename,
            file_path=file_path,
            color=ref.color,
            position=(Y_FLIP @ ref.transform.translation) * self.scale_factor,
            rotation=rotation,
            mirrored=mirrored,
            transform=ref.transform,
        )

    def distinct_parts(self) -> List[str]:
        """Referenced part files in first-seen order."""
        return list(dict.fromkeys(p.part_file for p in self.placements))

    def resolve_part_meshes(
        self, options: Optional[MeshOptions] = None,
    ) -> Dict[str, ResolvedMesh]:
        """Resolve every distinct part once.

        Parts whose resolution fails fatally are logged and left out.

        Args:
            options: MeshOptions for every resolution (defaults if None)

        Returns:
            Mapping part_file -> ResolvedMesh, in first-seen order
        """
        if options is None:
            options = MeshOptions(scale_factor=self.scale_factor)

        cache = StatementCache() if options.cache_statements else None
        paths = {p.part_file: p.file_path for p in self.placements}

        meshes = {}
        for part_file in self.distinct_parts():
            try:
                meshes[part_file] = resolve_mesh(
                    paths[part_file], self.library.root, options=options, cache=cache
                )
            except LDrawLoadError as e:
                logger.error("Cannot resolve %s: %s", part_file, e)
        return meshes
