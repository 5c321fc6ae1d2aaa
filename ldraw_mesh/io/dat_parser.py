"""
LDraw line grammar.

Turns each line of a primitive file into a typed statement:

| Type | Meaning               | Statement                     |
|------|-----------------------|-------------------------------|
| 0    | comment / meta        | Comment, MetaAuthor, MetaBfc  |
| 1    | sub-file reference    | SubFileRef                    |
| 2    | line                  | none                          |
| 3    | triangle              | TrianglePrim                  |
| 4    | quadrilateral         | QuadPrim                      |
| 5    | optional line         | none                          |

Type 1/3/4 lines that do not match their grammar, or whose numbers do not
fit a finite float (e.g. `1e400`), become MalformedGeometry:
they carry no geometry but still count as a geometry statement for the
INVERTNEXT one-shot flag.

Reference: https://www.ldraw.org/article/218.html
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from ldraw_mesh.bfc import BfcDirective, parse_bfc
from ldraw_mesh.geometry.transform import Transform

logger = logging.getLogger(__name__)

_NUM = r"([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)"
_COLOR = r"(0x[0-9A-Fa-f]+|-?\d+)"
_WS = r"\s+"

_SUBFILE_RE = re.compile(r"^1" + _WS + _COLOR + (_WS + _NUM) * 12 + _WS + r"(.+)$")
_TRIANGLE_RE = re.compile(r"^3" + _WS + _COLOR + (_WS + _NUM) * 9 + r"$")
_QUAD_RE = re.compile(r"^4" + _WS + _COLOR + (_WS + _NUM) * 12 + r"$")
_AUTHOR_RE = re.compile(r"^0\s+(?:!?AUTHOR:?)\s+(.+)$", re.IGNORECASE)


@dataclass(frozen=True)
class Comment:
    text: str


@dataclass(frozen=True)
class MetaAuthor:
    name: str


@dataclass(frozen=True)
class MetaBfc:
    directive: BfcDirective


@dataclass(frozen=True, eq=False)
class SubFileRef:
    color: str
    transform: Transform
    filename: str


@dataclass(frozen=True, eq=False)
class TrianglePrim:
    color: str
    vertices: NDArray[np.float64]  # (3, 3)


@dataclass(frozen=True, eq=False)
class QuadPrim:
    color: str
    vertices: NDArray[np.float64]  # (4, 3)


@dataclass(frozen=True)
class MalformedGeometry:
    line_type: int
    text: str


Statement = Union[Comment, MetaAuthor, MetaBfc, SubFileRef, TrianglePrim, QuadPrim,
                  MalformedGeometry]


def _numbers(groups: Tuple[str, ...]) -> Optional[NDArray[np.float64]]:
    """Parse numeric fields; None if any of them is not finite."""
    values = np.array([float(v) for v in groups], dtype=np.float64)
    if not np.isfinite(values).all():
        return None
    return values


def _parse_meta(line: str) -> Statement:
    tokens = line.split()
    if len(tokens) >= 2:
        keyword = tokens[1].upper()
        if keyword == "BFC":
            directive = parse_bfc(line)
            if directive is not None:
                return MetaBfc(directive)
            logger.debug("Ignoring unrecognized BFC line: %s", line)
        elif keyword in ("AUTHOR", "!AUTHOR", "AUTHOR:"):
            match = _AUTHOR_RE.match(line)
            if match and match.group(1).strip():
                return MetaAuthor(match.group(1).strip())
    return Comment(line[1:].strip())


def parse_line(line: str) -> Optional[Statement]:
    """Parse one LDraw line.

    Args:
        line: raw line (surrounding whitespace and line endings are ignored)

    Returns:
        Statement, or None for blank lines, lines/optional lines and unknown types
    """
    line = line.strip()
    if not line:
        return None

    line_type = line.split(None, 1)[0]

    if line_type == "0":
        return _parse_meta(line)

    if line_type == "1":
        match = _SUBFILE_RE.match(line)
        if not match:
            logger.debug("Malformed sub-file line: %s", line)
            return MalformedGeometry(1, line)
        groups = match.groups()
        values = _numbers(groups[1:13])
        if values is None:
            logger.debug("Non-finite sub-file transform: %s", line)
            return MalformedGeometry(1, line)
        return SubFileRef(
            color=groups[0],
            transform=Transform.from_ldraw(*values),
            filename=groups[13].strip(),
        )

    if line_type == "3":
        match = _TRIANGLE_RE.match(line)
        if not match:
            logger.debug("Malformed triangle line: %s", line)
            return MalformedGeometry(3, line)
        values = _numbers(match.groups()[1:])
        if values is None:
            logger.debug("Non-finite triangle line: %s", line)
            return MalformedGeometry(3, line)
        return TrianglePrim(match.group(1), values.reshape(3, 3))

    if line_type == "4":
        match = _QUAD_RE.match(line)
        if not match:
            logger.debug("Malformed quad line: %s", line)
            return MalformedGeometry(4, line)
        values = _numbers(match.groups()[1:])
        if values is None:
            logger.debug("Non-finite quad line: %s", line)
            return MalformedGeometry(4, line)
        return QuadPrim(match.group(1), values.reshape(4, 3))

    # 2 (line), 5 (optional line) and anything else: no mesh contribution
    return None


def read_statements(path: Union[str, Path]) -> List[Statement]:
    """Read and parse every line of an LDraw file.

    The file is fully consumed and closed before returning.

    Args:
        path: file to read

    Returns:
        Statements in file order
    """
    statements: List[Statement] = []
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        for line in f:
            statement = parse_line(line)
            if statement is not None:
                statements.append(statement)
    return statements
