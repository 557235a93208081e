"""
Metadata text dump.

Each entry becomes one line `"<key>" <type> <value>`, framed by two
provenance lines and a trailing processing line.
"""

import logging
import numbers
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from . import __version__
from .data import DataContainer

log = logging.getLogger(__name__)

TOOL_NAME = "spm-export"
INT32_MIN, INT32_MAX = -(2 ** 31), 2 ** 31 - 1


def _quote(text: str) -> str:
    return '"%s"' % text.replace("\\", "\\\\").replace('"', '\\"')


def serialize_value(value: Any) -> str:
    """Type name and text of one metadata value."""
    if isinstance(value, bool):
        return "boolean %s" % ("True" if value else "False")
    if isinstance(value, numbers.Integral):
        typ = "int32" if INT32_MIN <= int(value) <= INT32_MAX else "int64"
        return "%s %d" % (typ, int(value))
    if isinstance(value, numbers.Real):
        return "double %s" % repr(float(value))
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return "string %s" % _quote(str(value))


def serialize_to_text(meta: Dict[str, Any]) -> List[str]:
    return ["%s %s" % (_quote(str(key)), serialize_value(value)) for key, value in meta.items()]


def find_meta(container: DataContainer, channel_id: int, logger: Optional[logging.Logger] = None) -> Optional[Dict[str, Any]]:
    """Channel metadata, else channel 0 metadata, else None."""
    logger = logger or log
    meta = container.get_meta(channel_id)
    if meta is not None:
        return meta
    logger.info("Could not find a channel specific meta container, fall back on channel 0.")
    return container.get_meta(0)


def write_metadata(
    path: str | Path,
    container: DataContainer,
    channel_id: int,
    trace: Iterable[str],
    logger: Optional[logging.Logger] = None,
) -> bool:
    """Dump the channel's metadata to `path`. Returns False if nothing was written."""
    logger = logger or log
    meta = find_meta(container, channel_id, logger)
    if meta is None:
        logger.warning("Could not find any meta container for %s, no metadata will be dumped.", container.source)
        return False

    lines = [
        '"Info:Metadata" string %s' % _quote("Dumped by %s v%s" % (TOOL_NAME, __version__)),
        '"Info:Sourcefile" string %s' % _quote(str(container.source)),
    ]
    lines.extend(serialize_to_text(meta))
    lines.append('"Info:Processing" string %s' % _quote(", ".join(trace)))

    try:
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            for line in lines:
                f.write(line + "\n")
    except OSError as exc:
        logger.warning("Error: metadata file '%s' not saved: %s", path, exc)
        return False
    return True
