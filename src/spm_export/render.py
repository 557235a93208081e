"""
Rendering of data fields to RGB pixel buffers, and image encoding.

Colour range and pixel mapping come from the same Renderer so the range
reported for a channel is exactly the one used to draw it.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

import matplotlib
import numpy as np
from matplotlib.colors import Colormap, LinearSegmentedColormap
from PIL import Image

from .config import DEFAULT_GRADIENT, ColorMap, ImageFormat
from .data import DataField

log = logging.getLogger(__name__)

JPEG_QUALITY = 90
PNG_COMPRESSION = 9
AUTORANGE_CUT = 0.5  # percent of values cut off at each tail for AUTO

# Gwyddion gradient names people pass on the command line.
GWY_GRADIENTS = {
    "ReiGreen": ["#000000", "#0b3d0b", "#1f7a1f", "#5cbf3a", "#c8f08c", "#ffffff"],
    "Gray": ["#000000", "#ffffff"],
    "Gwyddion.net": ["#000000", "#6b2d00", "#d97a00", "#ffd27f", "#ffffff"],
    "Sky": ["#000000", "#0a1a5c", "#2a6fd4", "#a8d8ff", "#ffffff"],
    "Warm": ["#000000", "#8b0000", "#ff4500", "#ffd700", "#ffffff"],
    "Olive": ["#000000", "#3b3b00", "#8a8a1e", "#d6d67a", "#ffffff"],
}


def get_gradient(name: str) -> Optional[Colormap]:
    """Look up a gradient by Gwyddion name, then by matplotlib colormap name."""
    if name in GWY_GRADIENTS:
        return LinearSegmentedColormap.from_list(name, GWY_GRADIENTS[name])
    try:
        return matplotlib.colormaps[name]
    except KeyError:
        return None


def resolve_gradient(name: Optional[str], logger: Optional[logging.Logger] = None) -> Tuple[str, Colormap]:
    """Return (name, colormap), falling back to the default gradient."""
    logger = logger or log
    if name:
        cmap = get_gradient(name)
        if cmap is not None:
            return name, cmap
        logger.warning("Unknown gradient '%s'; using '%s'.", name, DEFAULT_GRADIENT)
    return DEFAULT_GRADIENT, get_gradient(DEFAULT_GRADIENT)


def _finite(z: np.ndarray) -> np.ndarray:
    return z[np.isfinite(z)]


class Renderer:
    """Maps a DataField to RGB through a gradient and a colour-mapping mode."""

    def color_range(self, field: DataField, mode: ColorMap) -> Tuple[float, float]:
        valid = _finite(field.data)
        if valid.size == 0:
            return 0.0, 0.0
        match mode:
            case ColorMap.AUTO:
                lo, hi = np.percentile(valid, [AUTORANGE_CUT, 100.0 - AUTORANGE_CUT])
                if hi <= lo:
                    lo, hi = valid.min(), valid.max()
                return float(lo), float(hi)
            case ColorMap.FULL | ColorMap.ADAPTIVE:
                return float(valid.min()), float(valid.max())

    def normalize(self, field: DataField, mode: ColorMap, color_range: Tuple[float, float]) -> np.ndarray:
        """Values in [0, 1] for every pixel, per colour-mapping mode."""
        z = field.data
        valid = _finite(z)
        if valid.size == 0:
            return np.zeros(z.shape)
        z = np.where(np.isfinite(z), z, valid.min())
        match mode:
            case ColorMap.AUTO:
                lo, hi = color_range
            case ColorMap.FULL:
                lo, hi = float(valid.min()), float(valid.max())
            case ColorMap.ADAPTIVE:
                ordered = np.sort(valid)
                return np.searchsorted(ordered, z, side="right") / float(ordered.size)
        if hi <= lo:
            return np.zeros(z.shape)
        return np.clip((z - lo) / (hi - lo), 0.0, 1.0)

    def render(
        self,
        field: DataField,
        gradient: Colormap,
        mode: ColorMap,
        color_range: Tuple[float, float],
    ) -> np.ndarray:
        """RGB uint8 buffer of shape (yres, xres, 3)."""
        values = self.normalize(field, mode, color_range)
        rgba = gradient(values)
        return np.round(rgba[..., :3] * 255.0).astype(np.uint8)


def encode_image(
    pixels: np.ndarray,
    path: str | Path,
    image_format: ImageFormat,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """Write an RGB buffer as JPEG (quality 90) or PNG (compression 9)."""
    logger = logger or log
    image = Image.fromarray(pixels)
    try:
        match image_format:
            case ImageFormat.PNG:
                image.save(str(path), format="PNG", compress_level=PNG_COMPRESSION)
            case ImageFormat.JPEG:
                image.save(str(path), format="JPEG", quality=JPEG_QUALITY)
    except (OSError, ValueError) as exc:
        logger.warning("Error: file '%s' not saved: %s", path, exc)
        return False
    return True
