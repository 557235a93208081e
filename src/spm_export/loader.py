"""
File loading: path -> DataContainer.

- `.gwy` files are read with gwyfile (channels under /N/data, titles under
  /N/data/title, metadata under /N/meta).
- `.npy`/`.npz` raw arrays are accepted as unitless pixel data.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict

import gwyfile
import numpy as np

from .data import DataContainer, DataField
from .errors import LoadError

log = logging.getLogger(__name__)

_CHANNEL_KEY = re.compile(r"^/(\d+)/data$")


def _unit_string(unit_obj: Any) -> str:
    """Best-effort retrieval of the unit string from a GwySIUnit."""
    if unit_obj is None:
        return ""
    if isinstance(unit_obj, str):
        return unit_obj
    return str(unit_obj.get("unitstr", "") or "")


def _convert_gwy_field(gfield: Any) -> DataField:
    return DataField(
        data=np.asarray(gfield.data, dtype=float),
        xreal=float(gfield.get("xreal", 1.0)),
        yreal=float(gfield.get("yreal", 1.0)),
        si_unit_xy=_unit_string(gfield.get("si_unit_xy")),
        si_unit_z=_unit_string(gfield.get("si_unit_z")),
    )


def _plain_meta(meta: Any) -> Dict[str, Any]:
    return {str(k): v for k, v in meta.items()}


def load_gwy(path: Path) -> DataContainer:
    try:
        obj = gwyfile.load(str(path))
    except Exception as exc:  # any reader failure on malformed input
        raise LoadError(str(exc) or type(exc).__name__) from exc

    container = DataContainer(source=path)
    for key, value in obj.items():
        m = _CHANNEL_KEY.match(key)
        if not m:
            continue
        cid = int(m.group(1))
        container.channels[cid] = _convert_gwy_field(value)
        title = obj.get("/%d/data/title" % cid)
        if title:
            container.titles[cid] = str(title)
        meta = obj.get("/%d/meta" % cid)
        if meta is not None:
            container.meta[cid] = _plain_meta(meta)
    return container


def load_numpy(path: Path) -> DataContainer:
    try:
        loaded = np.load(str(path), allow_pickle=False)
        if isinstance(loaded, np.ndarray):
            arrays = [(path.stem, loaded)]
        else:
            with loaded:
                arrays = [(name, loaded[name]) for name in loaded.files]
    except Exception as exc:  # EOFError, BadZipFile, ... on truncated files
        raise LoadError(str(exc) or type(exc).__name__) from exc

    container = DataContainer(source=path)
    for cid, (name, arr) in enumerate(arrays):
        if arr.ndim != 2:
            log.warning("Skipping array '%s' in %s: not 2-D (shape %s)", name, path, arr.shape)
            continue
        yres, xres = arr.shape
        container.channels[cid] = DataField(arr, xreal=float(xres), yreal=float(yres), si_unit_xy="")
        container.titles[cid] = name
    return container


LOADERS = {
    ".gwy": load_gwy,
    ".npy": load_numpy,
    ".npz": load_numpy,
}


def load_data_file(path: str | Path) -> DataContainer:
    """Load a data file; raise LoadError with a readable reason on failure."""
    p = Path(path)
    loader = LOADERS.get(p.suffix.lower())
    if loader is None:
        raise LoadError("unsupported file format '%s'" % (p.suffix or p.name))
    return loader(p)
