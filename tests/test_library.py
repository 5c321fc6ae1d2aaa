"""
Unit tests for ldraw_mesh.io.library module.

Tests:
- Library search order (root, parts/, p/)
- Reference normalization (backslashes, letter case)
- Library and root-file validation errors
"""

import os
from pathlib import Path

import pytest

from ldraw_mesh.io.library import (
    LDrawLoadError,
    LibraryNotFoundError,
    LibraryPath,
    PartFileNotFoundError,
    UnsupportedFileTypeError,
    normalize_reference,
    validate_root_file,
)
from tests.conftest import TRIANGLE_LINE


class TestNormalizeReference:
    """Tests for normalize_reference function."""

    def test_backslash(self):
        assert normalize_reference("s\\3001s01.dat") == os.path.join("s", "3001s01.dat")

    def test_forward_slash(self):
        assert normalize_reference("48/4-4disc.dat") == os.path.join("48", "4-4disc.dat")

    def test_strips_whitespace(self):
        assert normalize_reference("  stud.dat ") == "stud.dat"


class TestLibraryPath:
    """Tests for LibraryPath construction."""

    def test_from_existing_directory(self, ldraw_library):
        library = LibraryPath.from_path(ldraw_library)
        assert library.root == ldraw_library

    def test_from_string(self, ldraw_library):
        library = LibraryPath.from_path(str(ldraw_library))
        assert library.root == Path(ldraw_library)

    @pytest.mark.parametrize("path", [None, "", "   "])
    def test_empty_path(self, path):
        with pytest.raises(LibraryNotFoundError):
            LibraryPath.from_path(path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(LibraryNotFoundError):
            LibraryPath.from_path(tmp_path / "nope")

    def test_file_is_not_library(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("x")
        with pytest.raises(LibraryNotFoundError):
            LibraryPath.from_path(f)

    def test_from_env(self, ldraw_library, monkeypatch):
        monkeypatch.setenv("LDRAWDIR", str(ldraw_library))
        assert LibraryPath.from_env().root == ldraw_library

    def test_from_env_unset(self, monkeypatch):
        monkeypatch.delenv("LDRAWDIR", raising=False)
        with pytest.raises(LibraryNotFoundError):
            LibraryPath.from_env()

    def test_errors_are_load_errors(self):
        """All fatal errors share one base class and stay FileNotFoundError."""
        assert issubclass(LibraryNotFoundError, LDrawLoadError)
        assert issubclass(LibraryNotFoundError, FileNotFoundError)
        assert issubclass(PartFileNotFoundError, FileNotFoundError)
        assert issubclass(UnsupportedFileTypeError, ValueError)


class TestFind:
    """Tests for LibraryPath.find search order."""

    def test_root_relative(self, ldraw_library, write_part):
        expected = write_part("model.dat", [TRIANGLE_LINE])
        assert LibraryPath(ldraw_library).find("model.dat") == expected

    def test_parts_directory(self, ldraw_library, write_part):
        expected = write_part("parts/3001.dat", [TRIANGLE_LINE])
        assert LibraryPath(ldraw_library).find("3001.dat") == expected

    def test_primitives_directory(self, ldraw_library, write_part):
        expected = write_part("p/stud.dat", [TRIANGLE_LINE])
        assert LibraryPath(ldraw_library).find("stud.dat") == expected

    def test_subpart_with_backslash(self, ldraw_library, write_part):
        expected = write_part("parts/s/3001s01.dat", [TRIANGLE_LINE])
        assert LibraryPath(ldraw_library).find("s\\3001s01.dat") == expected

    def test_hires_primitive(self, ldraw_library, write_part):
        expected = write_part("p/48/4-4disc.dat", [TRIANGLE_LINE])
        assert LibraryPath(ldraw_library).find("48\\4-4disc.dat") == expected

    def test_root_wins_over_parts(self, ldraw_library, write_part):
        """The library root is searched before parts/."""
        root_file = write_part("dup.dat", [TRIANGLE_LINE])
        write_part("parts/dup.dat", [TRIANGLE_LINE])
        assert LibraryPath(ldraw_library).find("dup.dat") == root_file

    def test_parts_wins_over_primitives(self, ldraw_library, write_part):
        """parts/ is searched before p/."""
        parts_file = write_part("parts/dup.dat", [TRIANGLE_LINE])
        write_part("p/dup.dat", [TRIANGLE_LINE])
        assert LibraryPath(ldraw_library).find("dup.dat") == parts_file

    def test_upper_case_reference(self, ldraw_library, write_part):
        """References written in upper case find lower-case files."""
        write_part("p/stud.dat", [TRIANGLE_LINE])
        found = LibraryPath(ldraw_library).find("STUD.DAT")
        assert found is not None
        assert found.name.lower() == "stud.dat"

    def test_not_found(self, ldraw_library):
        assert LibraryPath(ldraw_library).find("missing.dat") is None

    def test_empty_reference(self, ldraw_library):
        assert LibraryPath(ldraw_library).find("  ") is None

    def test_directory_is_not_a_match(self, ldraw_library):
        """Directories named like a reference are skipped."""
        assert LibraryPath(ldraw_library).find("parts") is None


class TestValidateRootFile:
    """Tests for validate_root_file function."""

    def test_valid(self, quad_part):
        assert validate_root_file(quad_part, (".dat",)) == quad_part

    def test_extension_case_insensitive(self, write_part):
        path = write_part("parts/UPPER.DAT", [TRIANGLE_LINE])
        assert validate_root_file(str(path), (".dat",)) == path

    @pytest.mark.parametrize("path", [None, ""])
    def test_empty(self, path):
        with pytest.raises(PartFileNotFoundError):
            validate_root_file(path, (".dat",))

    def test_missing(self, ldraw_library):
        with pytest.raises(PartFileNotFoundError):
            validate_root_file(ldraw_library / "parts" / "missing.dat", (".dat",))

    def test_wrong_extension(self, tmp_path):
        path = tmp_path / "model.ldr"
        path.write_text(TRIANGLE_LINE)
        with pytest.raises(UnsupportedFileTypeError):
            validate_root_file(path, (".dat",))

    def test_multiple_extensions(self, tmp_path):
        path = tmp_path / "model.mpd"
        path.write_text(TRIANGLE_LINE)
        assert validate_root_file(path, (".ldr", ".mpd")) == path
