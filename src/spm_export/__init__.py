"""spm-export package.

Batch export of scanning-probe-microscopy channels:
- data file -> channels (loader, Session)
- channel -> filter chain -> colour range + scale bar -> image (exporter)
- optional metadata dump (metadata)
"""

__version__ = "0.1.0"

from .config import ColorMap, ExportConfig, ImageFormat, build_config, load_config
from .filters import FilterChainResult, parse_filter_spec, run_filter_chain
from .scalebar import ScaleBar, compute_scalebar
from .session import Session
from .exporter import ChannelExportContext, export_channel
from .metadata import write_metadata
from .batch import BatchStats, run_batch

__all__ = [
    "__version__",
    "ColorMap",
    "ExportConfig",
    "ImageFormat",
    "build_config",
    "load_config",
    "FilterChainResult",
    "parse_filter_spec",
    "run_filter_chain",
    "ScaleBar",
    "compute_scalebar",
    "Session",
    "ChannelExportContext",
    "export_channel",
    "write_metadata",
    "BatchStats",
    "run_batch",
]
