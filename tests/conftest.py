"""
Pytest configuration and fixtures for the LDraw mesh engine.

Provides:
- A temporary LDraw library (root, parts/, p/) with small primitive files
- Helpers to write .dat/.ldr files into it
- Common assertion helpers
"""

import logging
from pathlib import Path
from typing import Iterable

import numpy as np
import pytest

from ldraw_mesh.logging_config import PACKAGE_LOGGER

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

# Identity placement: `1 <color> 0 0 0 1 0 0 0 1 0 0 0 1 <file>`
IDENTITY_REF = "0 0 0 1 0 0 0 1 0 0 0 1"

# A flat triangle and quad in the LDraw XZ plane (y = 0)
TRIANGLE_LINE = "3 16 0 0 0 1 0 0 0 0 1"
QUAD_LINE = "4 16 0 0 0 1 0 0 1 0 1 0 0 1"


# ============================================================================
# Logging
# ============================================================================

@pytest.fixture(autouse=True)
def _propagate_package_logs():
    """Let caplog see package records even after setup_logging() disabled propagation."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    previous = (package_logger.propagate, package_logger.level, list(package_logger.handlers))
    package_logger.propagate = True
    yield
    package_logger.propagate, level, handlers = previous
    package_logger.setLevel(level)
    package_logger.handlers[:] = handlers


# ============================================================================
# LDraw Library Fixtures
# ============================================================================

@pytest.fixture
def ldraw_library(tmp_path: Path) -> Path:
    """Empty LDraw library with parts/, parts/s/ and p/ directories."""
    root = tmp_path / "ldraw"
    (root / "parts" / "s").mkdir(parents=True)
    (root / "p").mkdir()
    return root


@pytest.fixture
def write_part(ldraw_library: Path):
    """Write a file into the library and return its path.

    Usage:
        path = write_part("parts/box.dat", ["4 16 ..."])
    """
    def _write(relative: str, lines: Iterable[str]) -> Path:
        return write_ldraw_file(ldraw_library / relative, lines)
    return _write


@pytest.fixture
def quad_part(write_part) -> Path:
    """Part file containing a single quad in the XZ plane."""
    return write_part("parts/quad.dat", ["0 Quad test part", QUAD_LINE])


@pytest.fixture
def stud_library(write_part, ldraw_library: Path) -> Path:
    """Library with a primitive in p/, a subpart in parts/s/ and a part using both."""
    write_part("p/tri.dat", [
        "0 Triangle primitive",
        "0 Author: Primitive Author",
        "0 BFC CERTIFY CCW",
        TRIANGLE_LINE,
    ])
    write_part("parts/s/sub.dat", [
        "0 ~Subpart",
        "0 Author: Subpart Author",
        f"1 16 {IDENTITY_REF} tri.dat",
        "1 16 10 0 0 1 0 0 0 1 0 0 0 1 tri.dat",
    ])
    write_part("parts/brick.dat", [
        "0 Brick with a subpart",
        "0 Author: Part Author",
        "0 BFC CERTIFY CCW",
        f"1 16 {IDENTITY_REF} s\\sub.dat",
        QUAD_LINE,
    ])
    return ldraw_library


# ============================================================================
# Helper Functions
# ============================================================================

def write_ldraw_file(path: Path, lines: Iterable[str]) -> Path:
    """Write LDraw lines (CRLF line endings, as produced by LDraw editors)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        f.write("\r\n".join(lines) + "\r\n")
    return path


def ref_line(matrix: np.ndarray, filename: str, color: str = "16") -> str:
    """Format a type-1 line from a 4x4 transform matrix."""
    m = np.asarray(matrix)
    values = [m[0, 3], m[1, 3], m[2, 3],
              m[0, 0], m[0, 1], m[0, 2],
              m[1, 0], m[1, 1], m[1, 2],
              m[2, 0], m[2, 1], m[2, 2]]
    return f"1 {color} " + " ".join(repr(float(v)) for v in values) + f" {filename}"


# ============================================================================
# Assertion Helpers
# ============================================================================

def assert_valid_vertices(vertices: np.ndarray) -> None:
    """Assert that a vertex array is a finite (N, 3) float64 array."""
    assert isinstance(vertices, np.ndarray)
    assert vertices.ndim == 2
    assert vertices.shape[1] == 3
    assert vertices.dtype == np.float64
    assert not np.any(np.isnan(vertices))
    assert not np.any(np.isinf(vertices))


def assert_valid_triangles(triangles: np.ndarray, n_vertices: int) -> None:
    """Assert that every triangle index is in range."""
    assert isinstance(triangles, np.ndarray)
    assert triangles.ndim == 2
    assert triangles.shape[1] == 3
    assert triangles.dtype == np.int32
    assert np.all(triangles >= 0)
    assert np.all(triangles < n_vertices)


def assert_unit_normals(normals: np.ndarray) -> None:
    """Assert that every normal has unit length."""
    lengths = np.linalg.norm(normals, axis=1)
    np.testing.assert_allclose(lengths, 1.0, atol=1e-9)
