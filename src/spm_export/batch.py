"""
Batch driver: inputs -> files -> channels.

A failure in one file or channel is logged and the batch moves on; only an
unreadable input directory stops the run (BatchError).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

from .config import ExportConfig
from .errors import BatchError, LoadError
from .exporter import ChannelExportContext, export_channel
from .session import Session

log = logging.getLogger(__name__)


@dataclass
class BatchStats:
    files: int = 0
    failed_files: int = 0
    channels: int = 0
    failed_channels: int = 0
    images: int = 0


def iter_input_files(paths: Iterable[str | Path], logger: Optional[logging.Logger] = None) -> Iterator[Path]:
    """Yield data files: directories expand to their immediate files."""
    logger = logger or log
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            try:
                entries = sorted(p.iterdir())
            except OSError as exc:
                raise BatchError("Cannot list directory %s: %s" % (p, exc)) from exc
            for entry in entries:
                if entry.is_file():
                    yield entry
        elif p.is_file():
            yield p
        else:
            logger.info("Skipping %s: not a file or directory.", p)


def export_file(
    config: ExportConfig,
    session: Session,
    path: Path,
    stats: BatchStats,
    logger: logging.Logger,
    cancel: Optional[Callable[[], bool]] = None,
) -> List[ChannelExportContext]:
    logger.info("===> Processing file %s", path)
    results: List[ChannelExportContext] = []
    try:
        with session.loaded(path):
            channel_ids = session.channel_ids()
            if not channel_ids:
                logger.warning("File '%s' contains no channels to export", path)
                return results
            for index in range(len(channel_ids)):
                if cancel is not None and cancel():
                    break
                stats.channels += 1
                try:
                    ctx = export_channel(config, session, index, logger)
                except Exception as exc:  # keep looping other channels
                    stats.failed_channels += 1
                    logger.error("Failed exporting channel %d of %s: %s", index, path, exc)
                    continue
                if ctx.saved:
                    stats.images += 1
                results.append(ctx)
    except LoadError as exc:
        stats.failed_files += 1
        logger.warning("Cannot load '%s': %s", path, exc)
    return results


def run_batch(
    config: ExportConfig,
    session: Optional[Session] = None,
    logger: Optional[logging.Logger] = None,
    cancel: Optional[Callable[[], bool]] = None,
) -> BatchStats:
    """Export every channel of every input file. Raises BatchError if fatal."""
    logger = logger or log
    session = session or Session()
    stats = BatchStats()
    for path in iter_input_files(config.inputs, logger):
        if cancel is not None and cancel():
            logger.info("Batch cancelled before %s", path)
            break
        stats.files += 1
        export_file(config, session, path, stats, logger, cancel)
    logger.info(
        "Done: %d file(s), %d channel(s), %d image(s) written, %d file(s) failed",
        stats.files, stats.channels, stats.images, stats.failed_files,
    )
    return stats
