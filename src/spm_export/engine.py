"""
Processing engine: named process modules run in place on a DataField.

Philosophy: the filter chain only knows module names and settings keys;
the numeric work lives here and can be replaced by another engine that
implements the same three methods.
"""

import logging
from typing import Any, Callable, Dict, MutableMapping

import numpy as np

from .data import DataField
from .errors import EngineError

log = logging.getLogger(__name__)

ProcessFunc = Callable[[DataField, MutableMapping[str, Any]], None]

POLYLEVEL_PREFIX = "/module/polylevel/"
SCAR_THRESHOLD = 0.666
SCAR_MIN_LENGTH = 16


class ProcessingEngine:
    """Interface of a processing engine."""

    def exists(self, name: str) -> bool:
        raise NotImplementedError

    def run(self, name: str, field: DataField, settings: MutableMapping[str, Any]) -> None:
        raise NotImplementedError

    def mean_filter(self, field: DataField, size: int) -> None:
        raise NotImplementedError


def _grid(field: DataField):
    """Normalised coordinates in [-1, 1] for every pixel."""
    y, x = np.mgrid[0:field.yres, 0:field.xres].astype(float)
    if field.xres > 1:
        x = 2.0 * x / (field.xres - 1) - 1.0
    if field.yres > 1:
        y = 2.0 * y / (field.yres - 1) - 1.0
    return x, y


def _fit_and_subtract(field: DataField, terms) -> None:
    x, y = _grid(field)
    z = field.data
    ok = np.isfinite(z)
    if not ok.any():
        raise EngineError("no finite data to fit")
    basis = np.stack([(x ** i) * (y ** j) for i, j in terms], axis=-1)
    try:
        coeffs, *_ = np.linalg.lstsq(basis[ok], z[ok], rcond=None)
    except np.linalg.LinAlgError as exc:
        raise EngineError("fit failed: %s" % exc) from exc
    field.data = z - basis @ coeffs


def plane_level(field: DataField, settings: MutableMapping[str, Any]) -> None:
    _fit_and_subtract(field, [(0, 0), (1, 0), (0, 1)])


def poly_level(field: DataField, settings: MutableMapping[str, Any]) -> None:
    col_degree = int(settings.get(POLYLEVEL_PREFIX + "col_degree", 3))
    row_degree = int(settings.get(POLYLEVEL_PREFIX + "row_degree", 3))
    max_degree = int(settings.get(POLYLEVEL_PREFIX + "max_degree", 12))
    independent = bool(settings.get(POLYLEVEL_PREFIX + "independent", True))
    if settings.get(POLYLEVEL_PREFIX + "same_degree", False):
        row_degree = col_degree
    col_degree = min(col_degree, max_degree)
    row_degree = min(row_degree, max_degree)

    if independent:
        terms = [(i, j) for i in range(col_degree + 1) for j in range(row_degree + 1)]
    else:
        terms = [(i, j) for i in range(max_degree + 1) for j in range(max_degree + 1) if i + j <= max_degree]
    _fit_and_subtract(field, terms)


def median_line_correct(field: DataField, settings: MutableMapping[str, Any]) -> None:
    z = field.data
    medians = np.nanmedian(z, axis=1)
    field.data = z - medians[:, np.newaxis] + np.nanmedian(medians)


def remove_scars(field: DataField, settings: MutableMapping[str, Any]) -> None:
    """Replace horizontal scars (short row segments sticking out of both neighbours)."""
    z = field.data
    if field.yres < 3:
        return
    sigma = float(np.nanstd(np.diff(z, axis=0)))
    if not sigma > 0:
        return
    up, mid, down = z[:-2], z[1:-1], z[2:]
    d_up = mid - up
    d_down = mid - down
    limit = SCAR_THRESHOLD * sigma
    scar = ((d_up > limit) & (d_down > limit)) | ((d_up < -limit) & (d_down < -limit))

    min_len = max(1, min(SCAR_MIN_LENGTH, field.xres // 4))
    mask = np.zeros_like(scar)
    for r in range(scar.shape[0]):
        row = scar[r]
        start = None
        for c in range(len(row) + 1):
            on = c < len(row) and row[c]
            if on and start is None:
                start = c
            elif not on and start is not None:
                if c - start >= min_len:
                    mask[r, start:c] = True
                start = None

    fixed = z.copy()
    fixed[1:-1][mask] = 0.5 * (up[mask] + down[mask])
    field.data = fixed


def fix_zero(field: DataField, settings: MutableMapping[str, Any]) -> None:
    field.data = field.data - np.nanmin(field.data)


def zero_mean(field: DataField, settings: MutableMapping[str, Any]) -> None:
    field.data = field.data - np.nanmean(field.data)


def invert_value(field: DataField, settings: MutableMapping[str, Any]) -> None:
    z = field.data
    field.data = np.nanmax(z) + np.nanmin(z) - z


def flip_horizontally(field: DataField, settings: MutableMapping[str, Any]) -> None:
    field.data = field.data[:, ::-1].copy()


def flip_vertically(field: DataField, settings: MutableMapping[str, Any]) -> None:
    field.data = field.data[::-1, :].copy()


PROCESS_MODULES: Dict[str, ProcessFunc] = {
    "level": plane_level,
    "line_correct_median": median_line_correct,
    "scars_remove": remove_scars,
    "polylevel": poly_level,
    "fix_zero": fix_zero,
    "zero_mean": zero_mean,
    "invert_value": invert_value,
    "flip_horizontally": flip_horizontally,
    "flip_vertically": flip_vertically,
}


def box_mean(z: np.ndarray, size: int) -> np.ndarray:
    """Mean over a size x size window, edges padded by replication."""
    lo = size // 2
    hi = size - 1 - lo
    padded = np.pad(z, ((lo, hi), (lo, hi)), mode="edge")
    c = np.cumsum(np.cumsum(padded, axis=0), axis=1)
    c = np.pad(c, ((1, 0), (1, 0)))
    total = c[size:, size:] - c[:-size, size:] - c[size:, :-size] + c[:-size, :-size]
    return total / float(size * size)


class NumpyEngine(ProcessingEngine):
    """Engine backed by the numpy process modules above."""

    def __init__(self, modules: Dict[str, ProcessFunc] | None = None):
        self.modules = dict(PROCESS_MODULES if modules is None else modules)

    def register(self, name: str, func: ProcessFunc) -> None:
        self.modules[name] = func

    def exists(self, name: str) -> bool:
        return name in self.modules

    def run(self, name: str, field: DataField, settings: MutableMapping[str, Any]) -> None:
        func = self.modules.get(name)
        if func is None:
            raise EngineError("process module '%s' is not available" % name)
        log.debug("Running process module %s on %dx%d field", name, field.xres, field.yres)
        func(field, settings)

    def mean_filter(self, field: DataField, size: int) -> None:
        if size <= 0:
            raise EngineError("mean filter size must be positive, got %d" % size)
        field.data = box_mean(field.data, size)
