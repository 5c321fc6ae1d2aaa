"""
Recursive primitive resolver.

Walks a part file statement by statement and flattens every reachable
triangle and quad into a MeshBuffers, in model space:

- sub-file references recurse with the composed transform (parent ∘ local)
- each file gets a fresh WindingState; the inversion it starts with comes
  from the parent (INVERTNEXT and mirrored local transforms flip it)
- missing sub-files, cyclic references and references nested deeper than
  `max_depth` are logged and skipped
- primitives whose transformed coordinates overflow are logged and skipped

Only the root file is validated by the caller (mesh.resolve_mesh); nothing
in here raises on bad content.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Set

import numpy as np

from ldraw_mesh.bfc import WindingState
from ldraw_mesh.config import MAX_RECURSION_DEPTH
from ldraw_mesh.geometry.accumulator import MeshBuffers
from ldraw_mesh.geometry.transform import Transform
from ldraw_mesh.io.dat_parser import (
    MalformedGeometry,
    MetaAuthor,
    MetaBfc,
    QuadPrim,
    Statement,
    SubFileRef,
    TrianglePrim,
    read_statements,
)
from ldraw_mesh.io.library import LibraryPath

logger = logging.getLogger(__name__)


class StatementCache:
    """Parsed statements keyed by resolved file path.

    Library primitives such as `stud.dat` are referenced many times per part;
    the cache parses each file once per cache lifetime.
    """

    def __init__(self):
        self._entries: Dict[Path, List[Statement]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, path: Path) -> List[Statement]:
        key = Path(path).resolve()
        statements = self._entries.get(key)
        if statements is None:
            self.misses += 1
            statements = read_statements(path)
            self._entries[key] = statements
        else:
            self.hits += 1
        return statements

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0


class PrimitiveResolver:
    """Flatten an LDraw file hierarchy into a geometry accumulator.

    Attributes:
        library: parts library used for sub-file lookup
        buffers: accumulator receiving triangles
        max_depth: deepest sub-file nesting that is still followed
        cache: optional StatementCache shared across resolutions
        authors: author names in encounter order (duplicates kept)
        source_files: every file loaded, in load order (repeats kept)
    """

    def __init__(
        self,
        library: LibraryPath,
        buffers: MeshBuffers,
        max_depth: int = MAX_RECURSION_DEPTH,
        cache: Optional[StatementCache] = None,
    ):
        self.library = library
        self.buffers = buffers
        self.max_depth = max_depth
        self.cache = cache
        self.authors: List[str] = []
        self.source_files: List[str] = []
        self._stack: Set[Path] = set()
        self.skipped_references = 0
        self.skipped_primitives = 0

    def _statements(self, path: Path) -> List[Statement]:
        if self.cache is not None:
            return self.cache.get(path)
        return read_statements(path)

    def load(
        self,
        path: Path,
        transform: Transform,
        invert: bool = False,
        depth: int = 0,
    ) -> None:
        """Resolve one file under `transform` and append its geometry.

        Args:
            path: existing file to read
            transform: accumulated model transform for this file
            invert: inversion inherited from the referencing line
            depth: nesting level (0 for the root file)
        """
        path = Path(path)
        key = path.resolve()
        self._stack.add(key)
        self.source_files.append(str(path))
        logger.debug("Loading %s (depth %d, invert=%s)", path.name, depth, invert)

        state = WindingState(invert=invert)
        try:
            for statement in self._statements(path):
                self._handle(statement, state, transform, depth, path)
        finally:
            self._stack.discard(key)

    def _handle(
        self,
        statement: Statement,
        state: WindingState,
        transform: Transform,
        depth: int,
        path: Path,
    ) -> None:
        if isinstance(statement, MetaBfc):
            state.apply(statement.directive)
        elif isinstance(statement, MetaAuthor):
            self.authors.append(statement.name)
        elif isinstance(statement, SubFileRef):
            invert_next = state.consume_invert_next()
            self._load_reference(
                statement, state, invert_next, transform, depth, path
            )
        elif isinstance(statement, TrianglePrim):
            invert_next = state.consume_invert_next()
            points = transform.apply(statement.vertices)
            if not self._finite(points, path):
                return
            v1, v2, v3 = points
            if state.emit_in_parse_order(invert_next):
                self.buffers.add_triangle(v1, v2, v3)
            else:
                self.buffers.add_triangle(v3, v2, v1)
        elif isinstance(statement, QuadPrim):
            invert_next = state.consume_invert_next()
            points = transform.apply(statement.vertices)
            if not self._finite(points, path):
                return
            v1, v2, v3, v4 = points
            if state.emit_in_parse_order(invert_next):
                self.buffers.add_quad(v1, v2, v3, v4)
            else:
                self.buffers.add_quad(v4, v3, v2, v1)
        elif isinstance(statement, MalformedGeometry):
            state.consume_invert_next()

    def _finite(self, points, path: Path) -> bool:
        if np.isfinite(points).all():
            return True
        logger.warning("Skipping primitive with non-finite coordinates in %s", path.name)
        self.skipped_primitives += 1
        return False

    def _load_reference(
        self,
        ref: SubFileRef,
        state: WindingState,
        invert_next: bool,
        transform: Transform,
        depth: int,
        parent: Path,
    ) -> None:
        path = self.library.find(ref.filename)
        if path is None:
            logger.warning(
                "Sub-file not found: %s referenced in %s", ref.filename, parent.name
            )
            self.skipped_references += 1
            return

        if path.resolve() in self._stack:
            logger.warning("Skipping cyclic reference to %s", ref.filename)
            self.skipped_references += 1
            return

        if depth + 1 > self.max_depth:
            logger.warning(
                "Skipping %s: max depth exceeded (%d)", ref.filename, self.max_depth
            )
            self.skipped_references += 1
            return

        self.load(
            path,
            transform @ ref.transform,
            state.child_invert(invert_next, ref.transform),
            depth + 1,
        )
