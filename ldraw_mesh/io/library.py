"""
LDraw parts library lookup and the fatal load errors.

A reference is searched in order:
1. relative to the library root
2. <root>/parts/<name>
3. <root>/p/<name>

LDraw files reference sub-files with backslash separators (`s\\3001s01.dat`)
and in any letter case, while library files on disk are lower-case. Each
location is tried with the name as written, then lower-cased.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from ldraw_mesh.config import LDRAW_DIR_ENV, LIBRARY_SUBDIRS

logger = logging.getLogger(__name__)


class LDrawLoadError(Exception):
    """Fatal error that aborts a whole resolution."""


class PartFileNotFoundError(LDrawLoadError, FileNotFoundError):
    """The root file does not exist."""


class LibraryNotFoundError(LDrawLoadError, FileNotFoundError):
    """The library directory does not exist."""


class UnsupportedFileTypeError(LDrawLoadError, ValueError):
    """The root file has an extension the loader does not accept."""


def normalize_reference(name: str) -> str:
    """Convert an LDraw file reference to a native relative path."""
    return name.strip().replace("\\", os.sep).replace("/", os.sep)


@dataclass(frozen=True)
class LibraryPath:
    """Root directory of an LDraw parts library."""
    root: Path

    @classmethod
    def from_path(cls, path: Union[str, Path, None]) -> 'LibraryPath':
        """Validate and wrap a library directory.

        Raises:
            LibraryNotFoundError: if the path is empty or not a directory
        """
        if path is None or not str(path).strip():
            raise LibraryNotFoundError("Library path cannot be empty.")
        root = Path(path)
        if not root.is_dir():
            raise LibraryNotFoundError(f"LDraw library not found: {str(root)!r}")
        return cls(root)

    @classmethod
    def from_env(cls) -> 'LibraryPath':
        """Library from the LDRAWDIR environment variable."""
        return cls.from_path(os.environ.get(LDRAW_DIR_ENV))

    def _search_dirs(self) -> Iterable[Path]:
        yield self.root
        for sub in LIBRARY_SUBDIRS:
            yield self.root / sub

    def find(self, name: str) -> Optional[Path]:
        """Locate a referenced file in the library.

        Args:
            name: file name as written in a type-1 line

        Returns:
            Path of the first match, or None
        """
        relative = normalize_reference(name)
        if not relative:
            return None

        candidates = [relative]
        if relative.lower() != relative:
            candidates.append(relative.lower())

        for directory in self._search_dirs():
            for candidate in candidates:
                path = directory / candidate
                if path.is_file():
                    logger.debug("Resolved %s -> %s", name, path)
                    return path
        return None


def validate_root_file(path: Union[str, Path, None], extensions: Iterable[str]) -> Path:
    """Check the file a resolution starts from.

    Args:
        path: file to open
        extensions: accepted suffixes (compared case-insensitively)

    Returns:
        The path as a Path

    Raises:
        PartFileNotFoundError: empty path or missing file
        UnsupportedFileTypeError: extension not accepted
    """
    if path is None or not str(path).strip():
        raise PartFileNotFoundError("File path cannot be empty.")

    path = Path(path)
    allowed = tuple(ext.lower() for ext in extensions)
    if path.suffix.lower() not in allowed:
        raise UnsupportedFileTypeError(
            f"Unsupported file type {path.suffix!r} for {str(path)!r}; "
            f"expected one of {', '.join(allowed)}"
        )
    if not path.is_file():
        raise PartFileNotFoundError(f"File not found: {str(path)!r}")
    return path
