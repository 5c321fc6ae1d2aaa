"""
Точка входа: построение треугольной сетки из детали LDraw.

Использование:
    python main.py <part.dat> --library LDRAW_DIR [--output OUTPUT.stl]

Пример:
    python main.py parts/3001.dat --library /usr/share/ldraw
    python main.py parts/3001.dat -l /usr/share/ldraw --output 3001.stl
    python main.py house.ldr -l /usr/share/ldraw --output meshes/   # модель
    python main.py parts/3001.dat --config project.ldrawmesh.json   # с конфигом
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# Обеспечить поддержку Unicode на Windows-консоли
if sys.stdout.encoding and sys.stdout.encoding.lower() not in ('utf-8', 'utf8'):
    sys.stdout.reconfigure(encoding='utf-8', errors='replace')
if sys.stderr.encoding and sys.stderr.encoding.lower() not in ('utf-8', 'utf8'):
    sys.stderr.reconfigure(encoding='utf-8', errors='replace')

from ldraw_mesh.config import MODEL_EXTENSIONS
from ldraw_mesh.geometry.mesh_stats import calculate_mesh_statistics
from ldraw_mesh.io.ldr_model import LdrModel
from ldraw_mesh.io.library import LDrawLoadError
from ldraw_mesh.io.stl_export import save_stl
from ldraw_mesh.logging_config import LogContext, setup_logging
from ldraw_mesh.mesh import ResolvedMesh, resolve_mesh
from ldraw_mesh.project_config import ProjectConfig, load_config

logger = logging.getLogger("ldraw_mesh.main")


# ---------------------------------------------------------------------------
# Пайплайн
# ---------------------------------------------------------------------------

def _output_path(config: ProjectConfig, stem: str, output: Optional[str]) -> Optional[Path]:
    """Путь к выходному STL: явный --output или шаблон из конфигурации."""
    if output:
        return Path(output)
    if "stl" not in config.output.formats or not config.output.output_dir:
        return None
    name = f"{config.output.prefix}{stem}{config.output.suffix}.stl"
    return Path(config.output.output_dir) / name


def run_part(
    part_path: str,
    library_path: str,
    config: ProjectConfig,
    output: Optional[str] = None,
) -> ResolvedMesh:
    """Деталь .dat → сетка (+ STL).

    Raises:
        LDrawLoadError: файл детали или библиотека не найдены.
    """
    with LogContext(part=Path(part_path).name):
        mesh = resolve_mesh(part_path, library_path, options=config.mesh_options())

        stats = calculate_mesh_statistics(mesh)
        print(stats.summary())
        if mesh.unique_authors():
            print(f"Авторы:       {', '.join(mesh.unique_authors())}")

        target = _output_path(config, Path(part_path).stem, output)
        if target is not None:
            if mesh.is_empty:
                logger.warning("Сетка пуста, STL не записан")
            else:
                save_stl(mesh, target, binary=config.output.binary_stl)
    return mesh


def run_model(
    model_path: str,
    library_path: str,
    config: ProjectConfig,
    output: Optional[str] = None,
) -> LdrModel:
    """Модель .ldr/.mpd → список размещений + сетка каждой детали.

    При указании --output он трактуется как каталог для STL деталей.
    """
    model = LdrModel(model_path, library_path, scale_factor=config.mesh.scale_factor)
    model.parse()

    print(f"Модель:   {model.description or model.name}")
    if model.author:
        print(f"Автор:    {model.author}")
    print(f"Размещений: {len(model.placements)}, деталей: {len(model.distinct_parts())}")
    for placement in model.placements:
        print(json.dumps(placement.to_dict(), ensure_ascii=False))

    meshes = model.resolve_part_meshes(config.mesh_options())

    out_dir = Path(output) if output else (
        Path(config.output.output_dir) if config.output.output_dir else None
    )
    for part_file, mesh in meshes.items():
        logger.info(
            "%s: %d вершин, %d треугольников",
            part_file, mesh.vertex_count, mesh.triangle_count,
        )
        if out_dir is not None and not mesh.is_empty:
            stem = Path(part_file.replace("\\", "/")).stem
            name = f"{config.output.prefix}{stem}{config.output.suffix}.stl"
            save_stl(mesh, out_dir / name, binary=config.output.binary_stl)
    return model


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Построение сетки из детали или модели LDraw.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "input_file",
        help="Путь к детали (.dat) или модели (.ldr, .mpd).",
    )
    parser.add_argument(
        "--library", "-l",
        default=None,
        help="Корень библиотеки LDraw (по умолчанию: из конфига или $LDRAWDIR).",
    )
    parser.add_argument(
        "--smoothing-angle", "-a",
        type=float,
        default=None,
        dest="smoothing_angle",
        help="Порог сглаживания нормалей в градусах (по умолчанию: 30).",
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Выходной STL (для модели: каталог для STL деталей).",
    )
    parser.add_argument(
        "--ascii",
        action="store_true",
        help="Записывать STL в текстовом формате.",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Путь к конфигурационному файлу .ldrawmesh.json.",
    )
    parser.add_argument(
        "--json-log",
        default=None,
        dest="json_log",
        help="Дополнительно писать журнал в JSON-файл.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Подробный журнал (DEBUG).",
    )
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = _parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_file=args.json_log,
    )

    config = load_config(input_path=args.input_file, explicit_config=args.config)
    if args.smoothing_angle is not None:
        config.mesh.smoothing_angle_deg = args.smoothing_angle
    if args.ascii:
        config.output.binary_stl = False
    library_path = args.library or config.library_path()

    try:
        if Path(args.input_file).suffix.lower() in MODEL_EXTENSIONS:
            run_model(args.input_file, library_path, config, args.output)
        else:
            run_part(args.input_file, library_path, config, args.output)
    except LDrawLoadError as exc:
        logger.critical("Ошибка загрузки LDraw: %s", exc)
        sys.exit(1)
    except Exception as exc:
        logger.critical("Неожиданная ошибка: %s", exc, exc_info=True)
        sys.exit(2)


if __name__ == "__main__":
    main()
