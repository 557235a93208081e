"""In-memory data model for loaded SPM files."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np


@dataclass
class DataField:
    """One 2-D channel: `data[row, col]` with physical extents and units."""

    data: np.ndarray
    xreal: float = 1.0
    yreal: float = 1.0
    si_unit_xy: str = "m"
    si_unit_z: str = ""

    def __post_init__(self):
        self.data = np.array(self.data, dtype=float)
        if self.data.ndim != 2:
            raise ValueError("DataField needs a 2-D array, got shape %s" % (self.data.shape,))

    @property
    def xres(self) -> int:
        return int(self.data.shape[1])

    @property
    def yres(self) -> int:
        return int(self.data.shape[0])

    def duplicate(self) -> "DataField":
        return DataField(self.data.copy(), self.xreal, self.yreal, self.si_unit_xy, self.si_unit_z)


@dataclass
class DataContainer:
    """A loaded file: channels keyed by id, their titles and metadata."""

    source: Path
    channels: Dict[int, DataField] = field(default_factory=dict)
    titles: Dict[int, str] = field(default_factory=dict)
    meta: Dict[int, Dict[str, Any]] = field(default_factory=dict)

    def channel_ids(self) -> List[int]:
        return sorted(self.channels)

    def title(self, channel_id: int) -> str:
        return self.titles.get(channel_id) or "Channel %d" % channel_id

    def get_meta(self, channel_id: int) -> Optional[Dict[str, Any]]:
        return self.meta.get(channel_id)
