"""
ldraw_mesh: LDraw part resolution and smoothed mesh synthesis.

Typical use is a single call per part:

    from ldraw_mesh import resolve_mesh
    mesh = resolve_mesh("parts/3001.dat", "/usr/share/ldraw")

The CLI entry point is main.py.
"""

from ldraw_mesh.logging_config import (
    setup_logging,
    get_logger,
    configure_default_logging,
    log_timing,
    timed,
    LogContext,
)
from ldraw_mesh.io.library import (
    LDrawLoadError,
    LibraryNotFoundError,
    LibraryPath,
    PartFileNotFoundError,
    UnsupportedFileTypeError,
)
from ldraw_mesh.mesh import MeshOptions, ResolvedMesh, finalize_mesh, resolve_mesh
from ldraw_mesh.io.ldr_model import LdrModel, PartPlacement

__version__ = "0.1.0"

__all__ = [
    "setup_logging",
    "get_logger",
    "configure_default_logging",
    "log_timing",
    "timed",
    "LogContext",
    "LDrawLoadError",
    "LibraryNotFoundError",
    "LibraryPath",
    "PartFileNotFoundError",
    "UnsupportedFileTypeError",
    "MeshOptions",
    "ResolvedMesh",
    "finalize_mesh",
    "resolve_mesh",
    "LdrModel",
    "PartPlacement",
]
