"""
Per-channel export: filters -> colour range -> scale bar -> image -> metadata.
"""

import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .config import ColorMap, ExportConfig
from .filters import run_filter_chain
from .metadata import write_metadata
from .render import encode_image, resolve_gradient
from .scalebar import compute_scalebar
from .session import Session

log = logging.getLogger(__name__)


@dataclass
class ChannelExportContext:
    """State of one channel's export; never shared between channels."""

    index: int
    channel_id: int
    title: str = ""
    color_range: Tuple[float, float] = (0.0, 0.0)
    scalebar_text: str = ""
    scalebar_relwidth: float = 0.0
    trace: List[str] = field(default_factory=list)
    filters_ok: bool = True
    image_path: Optional[Path] = None
    metadata_path: Optional[Path] = None
    saved: bool = False
    metadata_written: bool = False


def sanitize_title(title: str) -> str:
    """Make a channel title safe for use in a file name."""
    return title.replace(" ", "_").replace(os.sep, "_").replace("/", "_")


def channel_base_path(output_dir: str | Path, input_file: str | Path, index: int, title: str) -> Path:
    """`{output_dir}/{input basename}-{index}-{title}`, without extension."""
    return Path(output_dir) / ("%s-%d-%s" % (Path(input_file).name, index, title))


def resolve_colormap(mode, logger: logging.Logger) -> ColorMap:
    if isinstance(mode, ColorMap):
        return mode
    logger.info("No color mapping defined. Using adaptive.")
    return ColorMap.ADAPTIVE


def export_channel(
    config: ExportConfig,
    session: Session,
    index: int,
    logger: Optional[logging.Logger] = None,
) -> ChannelExportContext:
    """Export channel number `index` of the session's loaded file."""
    logger = logger or log
    container = session.container
    channel_id = session.channel_ids()[index]
    ctx = ChannelExportContext(index=index, channel_id=channel_id)

    gradient_name, gradient = resolve_gradient(config.gradient, logger)
    ctx.trace.append("Color gradient: '%s'" % gradient_name)
    mode = resolve_colormap(config.colormap, logger)
    ctx.trace.append("Color Range: %s" % mode.label)

    dfield = session.field(channel_id)
    ctx.title = sanitize_title(session.title(channel_id))
    logger.info("Processing channel %d : %s", channel_id, ctx.title)

    chain = run_filter_chain(config.filters, session, channel_id, logger)
    ctx.trace.extend(chain.descriptions)
    ctx.filters_ok = chain.ok

    ctx.color_range = session.renderer.color_range(dfield, mode)

    if math.isfinite(dfield.xreal) and dfield.xreal > 0:
        bar = compute_scalebar(dfield.xreal, dfield.si_unit_xy)
        ctx.scalebar_text = bar.label
        ctx.scalebar_relwidth = bar.fraction
    else:
        logger.warning("Channel %d of %s has no physical width; no scale bar.", channel_id, container.source)

    pixels = session.renderer.render(dfield, gradient, mode, ctx.color_range)

    base = channel_base_path(config.output_dir, container.source, index, ctx.title)
    ctx.image_path = base.with_name(base.name + config.image_format.extension)
    ctx.metadata_path = base.with_name(base.name + ".txt")

    Path(config.output_dir).mkdir(parents=True, exist_ok=True)
    ctx.saved = encode_image(pixels, ctx.image_path, config.image_format, logger)
    if ctx.saved:
        logger.info(" => Saved to file '%s'", ctx.image_path)

    if config.metadata:
        ctx.metadata_written = write_metadata(ctx.metadata_path, container, channel_id, ctx.trace, logger)
    return ctx
