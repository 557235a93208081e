"""
Export configuration (YAML authoring; JSON fallback).

- ExportConfig is built once per run and shared read-only.
- Filter spec, gradient and colormap always resolve to a fallback.
"""

import enum
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

from .errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_FILTERS = "pc;melc;sr;melc;pc"
FILTER_DELIMITER = ";"
DEFAULT_GRADIENT = "ReiGreen"

CONFIG_KEYS = [
    "output_dir",
    "format",
    "filters",
    "gradient",
    "colormap",
    "metadata",
    "quiet",
]


class ImageFormat(enum.Enum):
    JPEG = "jpg"
    PNG = "png"

    @property
    def extension(self) -> str:
        return "." + self.value


class ColorMap(enum.Enum):
    AUTO = "auto"
    ADAPTIVE = "adaptive"
    FULL = "full"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class ExportConfig:
    output_dir: Path
    image_format: ImageFormat = ImageFormat.JPEG
    filters: str = DEFAULT_FILTERS
    gradient: str = DEFAULT_GRADIENT
    colormap: ColorMap = ColorMap.AUTO
    metadata: bool = False
    quiet: bool = False
    inputs: tuple = field(default_factory=tuple)


def parse_format(value: Optional[str]) -> Optional[ImageFormat]:
    """Map 'jpg'/'jpeg'/'png' to ImageFormat; None for anything else."""
    if value is None:
        return None
    v = str(value).strip().lower()
    if v == "jpeg":
        v = "jpg"
    for fmt in ImageFormat:
        if fmt.value == v:
            return fmt
    return None


def parse_colormap(value: Optional[str]) -> Optional[ColorMap]:
    if value is None:
        return None
    v = str(value).strip().lower()
    for cmap in ColorMap:
        if cmap.value == v:
            return cmap
    return None


def build_config(
    inputs: Iterable[str] = (),
    output_dir: str | Path | None = None,
    image_format: str | ImageFormat | None = None,
    filters: Optional[str] = None,
    gradient: Optional[str] = None,
    colormap: str | ColorMap | None = None,
    metadata: bool = False,
    quiet: bool = False,
    logger: Optional[logging.Logger] = None,
) -> ExportConfig:
    """Resolve raw option values into an ExportConfig, applying fallbacks.

    Every fallback is reported as a warning; none of them is fatal.
    """
    logger = logger or log

    if output_dir is None or str(output_dir) == "":
        output_dir = os.getcwd()
        logger.warning("No output path defined. Using directory: %s", output_dir)

    if isinstance(image_format, ImageFormat):
        fmt = image_format
    elif image_format is None:
        fmt = ImageFormat.JPEG
    else:
        fmt = parse_format(image_format)
        if fmt is None:
            logger.warning("Unknown file format '%s'; using jpg.", image_format)
            fmt = ImageFormat.JPEG

    if not gradient:
        gradient = DEFAULT_GRADIENT
        logger.warning("No gradient given. Using '%s'.", DEFAULT_GRADIENT)

    if isinstance(colormap, ColorMap):
        cmap = colormap
    elif colormap is None:
        cmap = ColorMap.AUTO
        logger.warning("No colormapping defined. Using 'auto'.")
    else:
        cmap = parse_colormap(colormap)
        if cmap is None:
            logger.warning("Unknown colormapping '%s'. Using 'adaptive'.", colormap)
            cmap = ColorMap.ADAPTIVE

    if filters is None:
        filters = DEFAULT_FILTERS
        logger.warning("No filters defined. Using defaults.")

    return ExportConfig(
        output_dir=Path(output_dir),
        image_format=fmt,
        filters=filters,
        gradient=gradient,
        colormap=cmap,
        metadata=bool(metadata),
        quiet=bool(quiet),
        inputs=tuple(str(p) for p in inputs),
    )


def load_config(path: str | Path) -> Dict[str, Any]:
    """Load option defaults from YAML (preferred) or JSON."""
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config not found: {p}")

    try:
        with p.open("r", encoding="utf-8") as f:
            if p.suffix.lower() in [".yaml", ".yml"]:
                cfg = yaml.safe_load(f) or {}
            else:
                cfg = json.load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot parse config {p}: {exc}") from exc

    if not isinstance(cfg, dict):
        raise ConfigError(f"Config {p} must be a mapping, got {type(cfg).__name__}")
    _check_keys(cfg, p)
    return {k: v for k, v in cfg.items() if k in CONFIG_KEYS}


def _check_keys(cfg: Dict[str, Any], path: Path) -> None:
    """Warn about keys that are not export options."""
    unknown = [key for key in cfg if key not in CONFIG_KEYS]
    if unknown:
        log.warning("Config %s has unknown keys (ignored): %s", path, ", ".join(map(str, unknown)))
