"""
Layout Engine Configuration

Loads workspace settings from a YAML file. The bundled
layout_defaults.yaml holds the defaults; users can point the CLI or a
Workspace at their own file to override any subset of the keys.
"""

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import ConfigError
from .layout.abstraction import Size

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "layout_defaults.yaml"


@dataclass
class LayoutConfig:
    """Tunable settings shared by every component of a workspace."""
    grid_size: float = 20.0
    snap_distance: float = 15.0  # magnetic snap radius while dragging
    min_gap: float = 0.0  # minimum clearance between panels
    history_depth: int = 50
    commit_throttle_ms: float = 32.0
    preview_debounce_ms: float = 16.0
    cell_size: Optional[float] = None  # spatial index bucket, defaults to grid_size
    search_rings: int = 25  # overlap search radius in grid steps
    stack_offset: float = 30.0  # cascade offset when the search fails
    container_width: float = 1200.0
    container_height: float = 800.0

    def __post_init__(self):
        if self.grid_size < 0:
            raise ConfigError(f"grid_size must not be negative, got {self.grid_size}")
        if self.snap_distance < 0:
            raise ConfigError(f"snap_distance must not be negative, got {self.snap_distance}")
        if self.min_gap < 0:
            raise ConfigError(f"min_gap must not be negative, got {self.min_gap}")
        if self.history_depth < 1:
            raise ConfigError(f"history_depth must be at least 1, got {self.history_depth}")
        if self.commit_throttle_ms < 0 or self.preview_debounce_ms < 0:
            raise ConfigError("Throttle and debounce intervals must not be negative")
        if self.cell_size is not None and self.cell_size <= 0:
            raise ConfigError(f"cell_size must be positive, got {self.cell_size}")
        if self.search_rings < 1:
            raise ConfigError(f"search_rings must be at least 1, got {self.search_rings}")
        if self.container_width <= 0 or self.container_height <= 0:
            raise ConfigError("Container dimensions must be positive")

    @property
    def index_cell_size(self) -> float:
        if self.cell_size is not None:
            return self.cell_size
        return self.grid_size if self.grid_size > 0 else 20.0

    @property
    def container_size(self) -> Size:
        return Size(self.container_width, self.container_height)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LayoutConfig":
        """Build from a mapping; unknown keys are an error."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {unknown}")
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(config_path: Optional[Union[str, Path]] = None) -> LayoutConfig:
    """
    Load configuration from YAML.

    Args:
        config_path: Optional path to a YAML file with a `layout` section.
                    If None, uses the bundled layout_defaults.yaml.

    Returns:
        LayoutConfig

    Raises:
        ConfigError: file missing, symlinked, unparsable or invalid
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    # Security: Check for symlinks to prevent reading unintended files
    if path.is_symlink():
        raise ConfigError(f"Configuration file cannot be a symlink: {path}")

    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e

    if not isinstance(raw, dict) or "layout" not in raw:
        raise ConfigError(f"Configuration file missing required section 'layout': {path}")

    section = raw["layout"] or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Section 'layout' must be a mapping: {path}")

    config = LayoutConfig.from_dict(section)
    logger.debug("Loaded configuration from %s", path)
    return config
