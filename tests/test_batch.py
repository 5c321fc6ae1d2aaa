"""
Unit tests for ldraw_mesh.batch module.

Tests:
- Result bookkeeping
- Part file discovery
- Single file conversion against a small library
- Batch conversion, sequential and parallel
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from stl import mesh as stl_mesh

from ldraw_mesh.batch import (
    BatchResult,
    ConversionResult,
    batch_convert,
    batch_convert_cli,
    convert_single_file,
    find_part_files,
)
from ldraw_mesh.mesh import resolve_mesh
from ldraw_mesh.project_config import ProjectConfig
from tests.conftest import IDENTITY_REF, TRIANGLE_LINE


@pytest.fixture
def parts_dir(stud_library, quad_part, write_part):
    """parts/ with two good parts (brick, quad) and one empty part (broken)."""
    write_part("parts/broken.dat", [f"1 16 {IDENTITY_REF} nothere.dat"])
    return stud_library / "parts"


class TestConversionResult:
    """Tests for ConversionResult dataclass."""

    def test_success_status(self):
        result = ConversionResult(input_path=Path("3001.dat"), success=True)
        assert result.status == "OK"

    def test_failed_status(self):
        result = ConversionResult(input_path=Path("3001.dat"), error="boom")
        assert result.status == "FAILED"


class TestBatchResult:
    """Tests for BatchResult dataclass."""

    def test_empty_result(self):
        result = BatchResult()
        assert result.total == 0
        assert result.success_rate == 0.0

    def test_counting(self):
        result = BatchResult(results=[
            ConversionResult(Path("a.dat"), success=True),
            ConversionResult(Path("b.dat"), success=True),
            ConversionResult(Path("c.dat"), success=False),
            ConversionResult(Path("d.dat"), success=False),
        ])
        assert result.total == 4
        assert result.successful == 2
        assert result.failed == 2
        assert result.success_rate == 50.0

    def test_summary_lists_failures(self):
        result = BatchResult(results=[
            ConversionResult(Path("ok.dat"), success=True),
            ConversionResult(Path("broken.dat"), error="empty mesh"),
        ])
        summary = result.summary()
        assert "Total files:     2" in summary
        assert "broken.dat: empty mesh" in summary

    def test_to_dict(self):
        result = BatchResult(results=[
            ConversionResult(Path("3001.dat"), Path("3001.stl"), True, triangle_count=12),
        ])
        data = result.to_dict()
        assert data["successful"] == 1
        assert data["results"][0]["triangles"] == 12
        assert data["results"][0]["output"] == "3001.stl"


class TestFindPartFiles:
    """Tests for find_part_files function."""

    def test_flat(self, parts_dir):
        names = [f.name for f in find_part_files(parts_dir)]
        assert names == ["brick.dat", "broken.dat", "quad.dat"]

    def test_recursive_includes_subparts(self, parts_dir):
        names = {f.name for f in find_part_files(parts_dir, recursive=True)}
        assert "sub.dat" in names

    def test_uppercase_extension(self, tmp_path):
        (tmp_path / "3001.DAT").write_text(TRIANGLE_LINE)
        (tmp_path / "notes.txt").write_text("")
        assert len(find_part_files(tmp_path)) == 1

    def test_custom_pattern(self, parts_dir):
        assert [f.name for f in find_part_files(parts_dir, "b*.dat")] == [
            "brick.dat", "broken.dat",
        ]

    def test_nonexistent_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            find_part_files(tmp_path / "nope")

    def test_file_instead_of_directory(self, quad_part):
        with pytest.raises(NotADirectoryError):
            find_part_files(quad_part)


class TestConvertSingleFile:
    """Tests for convert_single_file function."""

    def test_successful_conversion(self, parts_dir, stud_library, tmp_path):
        result = convert_single_file(parts_dir / "brick.dat", tmp_path, stud_library)

        assert result.success
        assert result.error is None
        assert result.triangle_count == 4
        assert result.output_path == tmp_path / "brick.stl"
        assert len(stl_mesh.Mesh.from_file(str(result.output_path)).vectors) == 4

    def test_empty_mesh_fails(self, parts_dir, stud_library, tmp_path):
        result = convert_single_file(parts_dir / "broken.dat", tmp_path, stud_library)

        assert not result.success
        assert "empty" in result.error
        assert not (tmp_path / "broken.stl").exists()

    def test_missing_library_fails(self, parts_dir, tmp_path):
        result = convert_single_file(parts_dir / "quad.dat", tmp_path, tmp_path / "nolib")
        assert not result.success
        assert result.output_path is None

    def test_output_prefix_suffix(self, parts_dir, stud_library, tmp_path):
        result = convert_single_file(
            parts_dir / "quad.dat", tmp_path, stud_library,
            output_prefix="mesh_", output_suffix="_v1",
        )
        assert result.output_path.name == "mesh_quad_v1.stl"

    def test_unexpected_error_is_reported(self, parts_dir, stud_library, tmp_path):
        with patch("ldraw_mesh.batch.resolve_mesh", side_effect=OverflowError("too big")):
            result = convert_single_file(parts_dir / "quad.dat", tmp_path, stud_library)

        assert not result.success
        assert result.error == "too big"
        assert result.output_path is None

    def test_config_applied(self, parts_dir, stud_library, tmp_path):
        config = ProjectConfig()
        config.mesh.max_depth = 1
        config.output.binary_stl = False

        result = convert_single_file(parts_dir / "brick.dat", tmp_path, stud_library, config)

        assert result.triangle_count == 2
        assert result.output_path.read_text().lstrip().startswith("solid")


class TestBatchConvert:
    """Tests for batch_convert function."""

    def test_sequential(self, parts_dir, stud_library, tmp_path):
        out = tmp_path / "meshes"
        result = batch_convert(parts_dir, out, stud_library, config=ProjectConfig())

        assert result.total == 3
        assert result.successful == 2
        assert (out / "brick.stl").exists()
        assert (out / "quad.stl").exists()

    def test_parallel(self, parts_dir, stud_library, tmp_path):
        result = batch_convert(
            parts_dir, tmp_path, stud_library,
            config=ProjectConfig(), parallel=True, max_workers=2,
        )
        assert result.total == 3
        assert result.successful == 2

    def test_library_from_config(self, parts_dir, stud_library, tmp_path):
        config = ProjectConfig()
        config.library.path = str(stud_library)
        result = batch_convert(parts_dir, tmp_path, config=config)
        assert result.successful == 2

    def test_empty_directory(self, tmp_path):
        with patch("ldraw_mesh.batch.convert_single_file") as mock_convert:
            result = batch_convert(tmp_path, config=ProjectConfig())
        assert result.total == 0
        mock_convert.assert_not_called()

    @pytest.mark.parametrize("parallel", [False, True])
    def test_one_crashing_part_does_not_stop_batch(
        self, parts_dir, stud_library, tmp_path, parallel
    ):
        real_resolve = resolve_mesh

        def resolve_or_crash(path, *args, **kwargs):
            if Path(path).name == "brick.dat":
                raise OverflowError("cannot convert float infinity to integer")
            return real_resolve(path, *args, **kwargs)

        with patch("ldraw_mesh.batch.resolve_mesh", side_effect=resolve_or_crash):
            result = batch_convert(
                parts_dir, tmp_path, stud_library, config=ProjectConfig(),
                parallel=parallel, max_workers=2,
            )

        assert result.total == 3
        assert result.successful == 1
        failed = {r.input_path.name: r.error for r in result.results if not r.success}
        assert "infinity" in failed["brick.dat"]
        assert (tmp_path / "quad.stl").exists()

    def test_creates_output_dir(self, parts_dir, stud_library, tmp_path):
        out = tmp_path / "a" / "b"
        batch_convert(parts_dir, out, stud_library, config=ProjectConfig(), pattern="quad.dat")
        assert (out / "quad.stl").exists()

    def test_progress_callback(self, parts_dir, stud_library, tmp_path):
        calls = []
        batch_convert(
            parts_dir, tmp_path, stud_library, config=ProjectConfig(),
            progress_callback=lambda i, n, r: calls.append((i, n, r.status)),
        )
        assert [c[0] for c in calls] == [1, 2, 3]
        assert all(c[1] == 3 for c in calls)

    def test_shared_cache_sequential(self, parts_dir, stud_library, tmp_path):
        """Sequential batches hand one statement cache to every conversion."""
        with patch("ldraw_mesh.batch.convert_single_file") as mock_convert:
            mock_convert.return_value = ConversionResult(Path("x.dat"), success=True)
            batch_convert(parts_dir, tmp_path, stud_library, config=ProjectConfig())

        caches = {id(c.kwargs["cache"]) for c in mock_convert.call_args_list}
        assert len(caches) == 1
        assert mock_convert.call_args_list[0].kwargs["cache"] is not None

    def test_no_cache_when_parallel(self, parts_dir, stud_library, tmp_path):
        with patch("ldraw_mesh.batch.convert_single_file") as mock_convert:
            mock_convert.return_value = ConversionResult(Path("x.dat"), success=True)
            batch_convert(
                parts_dir, tmp_path, stud_library, config=ProjectConfig(), parallel=True
            )

        assert all(c.kwargs["cache"] is None for c in mock_convert.call_args_list)


class TestBatchConvertCli:
    """Tests for batch_convert_cli function."""

    def test_exit_code_reflects_failures(self, parts_dir, stud_library, tmp_path, capsys):
        code = batch_convert_cli([str(parts_dir), "-o", str(tmp_path), "-l", str(stud_library)])
        assert code == 1
        assert "Batch Conversion Summary" in capsys.readouterr().out

    def test_all_successful(self, parts_dir, stud_library, tmp_path):
        code = batch_convert_cli([
            str(parts_dir), "-o", str(tmp_path), "-l", str(stud_library), "-p", "quad.dat",
        ])
        assert code == 0

    def test_missing_directory(self, tmp_path):
        assert batch_convert_cli([str(tmp_path / "nope"), "-o", str(tmp_path)]) == 1
