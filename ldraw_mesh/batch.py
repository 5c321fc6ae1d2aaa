"""
Batch conversion of LDraw part files to STL meshes.

Provides:
- Folder-based batch conversion (.dat -> .stl)
- Progress reporting
- Optional thread-pool parallelism

Usage:
    from ldraw_mesh.batch import batch_convert

    results = batch_convert(
        input_dir="./parts",
        output_dir="./meshes",
        library_path="/usr/share/ldraw",
        parallel=True,
    )
    print(results.summary())
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from ldraw_mesh.io.resolver import StatementCache
from ldraw_mesh.io.stl_export import save_stl
from ldraw_mesh.mesh import resolve_mesh
from ldraw_mesh.project_config import ProjectConfig, load_config

logger = logging.getLogger(__name__)

# Placeholder file name used to look up a config next to the input directory.
CONFIG_ANCHOR = "_anchor.dat"


@dataclass
class ConversionResult:
    """Result of a single file conversion."""
    input_path: Path
    output_path: Optional[Path] = None
    success: bool = False
    error: Optional[str] = None
    duration_seconds: float = 0.0
    triangle_count: int = 0

    @property
    def status(self) -> str:
        return "OK" if self.success else "FAILED"


@dataclass
class BatchResult:
    """Result of batch conversion."""
    results: List[ConversionResult] = field(default_factory=list)
    total_duration_seconds: float = 0.0

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total == 0:
            return 0.0
        return 100.0 * self.successful / self.total

    def summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "Batch Conversion Summary",
            "=" * 40,
            f"Total files:     {self.total}",
            f"Successful:      {self.successful}",
            f"Failed:          {self.failed}",
            f"Success rate:    {self.success_rate:.1f}%",
            f"Total time:      {self.total_duration_seconds:.1f}s",
            "",
        ]

        if self.failed > 0:
            lines.append("Failed files:")
            for r in self.results:
                if not r.success:
                    lines.append(f"  - {r.input_path.name}: {r.error}")

        return "\n".join(lines)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'total': self.total,
            'successful': self.successful,
            'failed': self.failed,
            'success_rate': self.success_rate,
            'total_duration_seconds': self.total_duration_seconds,
            'results': [
                {
                    'input': str(r.input_path),
                    'output': str(r.output_path) if r.output_path else None,
                    'success': r.success,
                    'error': r.error,
                    'duration': r.duration_seconds,
                    'triangles': r.triangle_count,
                }
                for r in self.results
            ],
        }


def find_part_files(
    input_dir: Union[str, Path],
    pattern: str = "*.dat",
    recursive: bool = False,
) -> List[Path]:
    """Find part files in a directory.

    Matching is case-insensitive on the extension (`*.dat` also finds `*.DAT`).

    Raises:
        FileNotFoundError: input directory missing
        NotADirectoryError: input path is a file
    """
    input_dir = Path(input_dir)

    if not input_dir.exists():
        raise FileNotFoundError(f"Input directory not found: {input_dir}")

    if not input_dir.is_dir():
        raise NotADirectoryError(f"Not a directory: {input_dir}")

    search = input_dir.rglob if recursive else input_dir.glob
    files = set(search(pattern))
    files.update(search(pattern.replace('.dat', '.DAT')))
    files = sorted(f for f in files if f.is_file())

    logger.info("Found %d part files in %s", len(files), input_dir)
    return files


def convert_single_file(
    input_path: Path,
    output_dir: Path,
    library_path: Union[str, Path],
    config: Optional[ProjectConfig] = None,
    output_prefix: str = "",
    output_suffix: str = "",
    cache: Optional[StatementCache] = None,
) -> ConversionResult:
    """Resolve one part file and write it as STL.

    Any failure, including an empty mesh, is reported in the result, not raised.
    """
    start_time = time.perf_counter()
    config = config or ProjectConfig()

    output_path = output_dir / f"{output_prefix}{input_path.stem}{output_suffix}.stl"
    result = ConversionResult(input_path=input_path)

    try:
        mesh = resolve_mesh(
            input_path, library_path, options=config.mesh_options(), cache=cache
        )
        save_stl(mesh, output_path, binary=config.output.binary_stl)
        result.success = True
        result.output_path = output_path
        result.triangle_count = mesh.triangle_count
    except Exception as e:
        result.success = False
        result.error = str(e)
        logger.error("Failed to convert %s: %s", input_path.name, e)

    result.duration_seconds = time.perf_counter() - start_time
    return result


def batch_convert(
    input_dir: Union[str, Path],
    output_dir: Optional[Union[str, Path]] = None,
    library_path: Optional[Union[str, Path]] = None,
    pattern: str = "*.dat",
    recursive: bool = False,
    config: Optional[ProjectConfig] = None,
    config_path: Optional[Union[str, Path]] = None,
    parallel: bool = False,
    max_workers: Optional[int] = None,
    output_prefix: str = "",
    output_suffix: str = "",
    progress_callback: Optional[Callable[[int, int, ConversionResult], None]] = None,
) -> BatchResult:
    """Batch convert part files to STL meshes.

    Args:
        input_dir: Directory containing part files
        output_dir: Output directory (default: same as input)
        library_path: LDraw library root (default: from config or $LDRAWDIR)
        pattern: Glob pattern for part files
        recursive: Search subdirectories
        config: Project configuration
        config_path: Path to .ldrawmesh.json config file
        parallel: Convert files on a thread pool
        max_workers: Maximum parallel workers (None = executor default)
        output_prefix: Prefix for output filenames
        output_suffix: Suffix for output filenames
        progress_callback: Called after each file: (current, total, result)

    Returns:
        BatchResult with conversion statistics
    """
    start_time = time.perf_counter()

    input_dir = Path(input_dir)
    output_dir = Path(output_dir) if output_dir else input_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    if config is None:
        config = load_config(input_path=input_dir / CONFIG_ANCHOR, explicit_config=config_path)

    library_path = library_path or config.library_path()
    part_files = find_part_files(input_dir, pattern, recursive)

    if not part_files:
        logger.warning("No part files found in %s", input_dir)
        return BatchResult(total_duration_seconds=time.perf_counter() - start_time)

    logger.info(
        "Starting batch conversion: %d files, parallel=%s",
        len(part_files), parallel
    )

    # StatementCache is a plain dict; only share it when converting sequentially.
    cache = None if parallel or not config.mesh.cache_statements else StatementCache()

    def convert(path: Path) -> ConversionResult:
        return convert_single_file(
            input_path=path,
            output_dir=output_dir,
            library_path=library_path,
            config=config,
            output_prefix=output_prefix,
            output_suffix=output_suffix,
            cache=cache,
        )

    results: List[ConversionResult] = []

    def record(i: int, result: ConversionResult) -> None:
        results.append(result)
        if progress_callback:
            progress_callback(i, len(part_files), result)
        logger.info(
            "[%d/%d] %s: %s (%.1fs)",
            i, len(part_files), result.input_path.name,
            result.status, result.duration_seconds
        )

    if parallel:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(convert, f) for f in part_files]
            for i, future in enumerate(as_completed(futures), 1):
                record(i, future.result())
    else:
        for i, part_file in enumerate(part_files, 1):
            record(i, convert(part_file))

    batch_result = BatchResult(
        results=results,
        total_duration_seconds=time.perf_counter() - start_time,
    )

    logger.info(
        "Batch conversion complete: %d/%d successful (%.1f%%) in %.1fs",
        batch_result.successful, batch_result.total,
        batch_result.success_rate, batch_result.total_duration_seconds
    )

    return batch_result


def batch_convert_cli(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for batch conversion."""
    import argparse

    from ldraw_mesh.logging_config import configure_default_logging

    parser = argparse.ArgumentParser(
        description="Batch convert LDraw part files to STL meshes"
    )
    parser.add_argument("input_dir", help="Directory containing .dat files")
    parser.add_argument(
        "-o", "--output",
        dest="output_dir",
        help="Output directory (default: same as input)"
    )
    parser.add_argument(
        "-l", "--library",
        dest="library_path",
        help="LDraw library root (default: config or $LDRAWDIR)"
    )
    parser.add_argument(
        "-p", "--pattern",
        default="*.dat",
        help="File pattern (default: *.dat)"
    )
    parser.add_argument(
        "-r", "--recursive",
        action="store_true",
        help="Search subdirectories"
    )
    parser.add_argument(
        "-c", "--config",
        dest="config_path",
        help="Path to .ldrawmesh.json config file"
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Use parallel processing"
    )
    parser.add_argument(
        "-j", "--jobs",
        type=int,
        dest="max_workers",
        help="Maximum parallel jobs"
    )
    parser.add_argument("--prefix", default="", help="Output filename prefix")
    parser.add_argument("--suffix", default="", help="Output filename suffix")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    configure_default_logging(verbose=args.verbose)

    try:
        result = batch_convert(
            input_dir=args.input_dir,
            output_dir=args.output_dir,
            library_path=args.library_path,
            pattern=args.pattern,
            recursive=args.recursive,
            config_path=args.config_path,
            parallel=args.parallel,
            max_workers=args.max_workers,
            output_prefix=args.prefix,
            output_suffix=args.suffix,
        )
    except (FileNotFoundError, NotADirectoryError) as e:
        logger.error("Batch conversion failed: %s", e)
        return 1

    print("\n" + result.summary())
    return 0 if result.failed == 0 else 1


if __name__ == "__main__":
    import sys
    sys.exit(batch_convert_cli())
