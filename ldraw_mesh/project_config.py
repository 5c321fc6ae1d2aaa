"""
JSON-based project configuration for ldraw_mesh.

Configuration hierarchy (later overrides earlier):
1. Built-in defaults (config.py)
2. User config (~/.ldrawmesh.json)
3. Project config (./.ldrawmesh.json or next to the input file)
4. CLI arguments

Example .ldrawmesh.json:
{
    "library": {
        "path": "/usr/share/ldraw"
    },
    "mesh": {
        "smoothing_angle_deg": 45.0,
        "max_depth": 32
    },
    "output": {
        "formats": ["stl"],
        "output_dir": "meshes",
        "binary_stl": true
    }
}
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ldraw_mesh.config import (
    DEFAULT_SMOOTHING_ANGLE_DEG,
    LDRAW_DIR_ENV,
    MAX_RECURSION_DEPTH,
    POSITION_EPSILON,
    SCALE_FACTOR,
)
from ldraw_mesh.mesh import MeshOptions

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".ldrawmesh.json"


@dataclass
class LibraryConfig:
    """LDraw parts library location."""
    path: str = ""  # empty = use $LDRAWDIR


@dataclass
class MeshConfig:
    """Resolution and smoothing settings."""
    scale_factor: float = SCALE_FACTOR
    smoothing_angle_deg: float = DEFAULT_SMOOTHING_ANGLE_DEG
    max_depth: int = MAX_RECURSION_DEPTH
    cache_statements: bool = True
    position_epsilon: float = POSITION_EPSILON


@dataclass
class OutputConfig:
    """Output file configuration."""
    formats: List[str] = field(default_factory=lambda: ["stl"])
    prefix: str = ""
    suffix: str = ""
    output_dir: str = ""
    binary_stl: bool = True


_SECTIONS = {
    'library': LibraryConfig,
    'mesh': MeshConfig,
    'output': OutputConfig,
}


@dataclass
class ProjectConfig:
    """Complete project configuration."""
    library: LibraryConfig = field(default_factory=LibraryConfig)
    mesh: MeshConfig = field(default_factory=MeshConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_json())
        logger.info("Configuration saved to %s", path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Create configuration from dictionary.

        Unknown sections and keys (including `_comment`) are ignored.
        """
        config = cls()
        for section in _SECTIONS:
            values = data.get(section)
            if not isinstance(values, dict):
                continue
            target = getattr(config, section)
            for key, value in values.items():
                if hasattr(target, key):
                    setattr(target, key, value)
        return config

    @classmethod
    def from_json(cls, json_str: str) -> 'ProjectConfig':
        """Create configuration from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ProjectConfig':
        """Load configuration from JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        logger.info("Configuration loaded from %s", path)
        return cls.from_dict(data)

    def mesh_options(self) -> MeshOptions:
        """MeshOptions built from the `mesh` section."""
        return MeshOptions(**asdict(self.mesh))

    def library_path(self) -> Optional[str]:
        """Configured library root, falling back to $LDRAWDIR."""
        if self.library.path:
            return self.library.path
        return os.environ.get(LDRAW_DIR_ENV) or None


def find_config_file(
    input_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Find configuration file using search hierarchy.

    Search order:
    1. Explicit config path (if provided)
    2. .ldrawmesh.json in the input file's directory
    3. .ldrawmesh.json in current working directory
    4. ~/.ldrawmesh.json in user's home directory

    Returns:
        Path to config file if found, None otherwise
    """
    if explicit_config:
        explicit = Path(explicit_config)
        if explicit.exists():
            return explicit
        logger.warning("Explicit config not found: %s", explicit)

    candidates = []
    if input_path:
        candidates.append(Path(input_path).parent / CONFIG_FILENAME)
    candidates.append(Path.cwd() / CONFIG_FILENAME)
    candidates.append(Path.home() / CONFIG_FILENAME)

    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config(
    input_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> ProjectConfig:
    """Load configuration with fallback to defaults.

    An unreadable or invalid config file is logged and defaults are used.
    """
    config_path = find_config_file(input_path, explicit_config)

    if config_path:
        try:
            return ProjectConfig.load(config_path)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Failed to load config %s: %s", config_path, e)

    return ProjectConfig()


def merge_configs(base: ProjectConfig, override: ProjectConfig) -> ProjectConfig:
    """Merge two configurations, with override taking precedence.

    Only values of `override` that differ from the built-in defaults are applied.
    """
    merged = ProjectConfig.from_dict(base.to_dict())

    for section, section_cls in _SECTIONS.items():
        defaults = section_cls()
        source = getattr(override, section)
        target = getattr(merged, section)
        for f in fields(section_cls):
            value = getattr(source, f.name)
            if value != getattr(defaults, f.name):
                setattr(target, f.name, value)

    return merged


def create_sample_config(path: Union[str, Path] = CONFIG_FILENAME) -> None:
    """Create a sample configuration file with documentation."""
    sample = {
        "_comment": "LDraw part to mesh converter configuration",
        "_version": "1.0",
        "library": {
            "_comment": "LDraw library root; empty uses $LDRAWDIR",
            "path": "",
        },
        "mesh": {
            "_comment": "1 LDU = 0.4 mm; scale 0.0004 emits metres",
            "scale_factor": SCALE_FACTOR,
            "smoothing_angle_deg": DEFAULT_SMOOTHING_ANGLE_DEG,
            "max_depth": MAX_RECURSION_DEPTH,
            "cache_statements": True,
            "position_epsilon": POSITION_EPSILON,
        },
        "output": {
            "_comment": "Output file settings",
            "formats": ["stl"],
            "prefix": "",
            "suffix": "",
            "output_dir": "",
            "binary_stl": True,
        },
    }

    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(sample, f, indent=2, ensure_ascii=False)

    logger.info("Sample configuration created: %s", path)
