"""
Per-run processing session.

Holds what used to be process-wide state: the processing engine, the
renderer, the module settings and the currently loaded file. Exactly one
file is loaded at a time; `loaded()` scopes it to a `with` block.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from .data import DataContainer, DataField
from .engine import NumpyEngine, ProcessingEngine
from .loader import load_data_file
from .render import Renderer

log = logging.getLogger(__name__)


class Session:
    def __init__(
        self,
        engine: Optional[ProcessingEngine] = None,
        renderer: Optional[Renderer] = None,
        loader: Optional[Callable[[Path], DataContainer]] = None,
    ):
        self.engine = engine or NumpyEngine()
        self.renderer = renderer or Renderer()
        self.loader = loader or load_data_file
        self.settings: Dict[str, Any] = {}
        self.container: Optional[DataContainer] = None

    @contextmanager
    def loaded(self, path: str | Path) -> Iterator[DataContainer]:
        """Load `path`, make it the current container, release it on exit.

        Raises LoadError (from the loader) if the file cannot be read.
        """
        container = self.loader(Path(path))
        self.register(container)
        try:
            yield container
        finally:
            self.release()

    def register(self, container: DataContainer) -> None:
        if self.container is not None:
            log.debug("Releasing %s before registering %s", self.container.source, container.source)
        self.container = container
        self.settings.clear()

    def release(self) -> None:
        self.container = None
        self.settings.clear()

    def _current(self) -> DataContainer:
        if self.container is None:
            raise RuntimeError("no data file loaded in session")
        return self.container

    def channel_ids(self) -> List[int]:
        return self._current().channel_ids()

    def field(self, channel_id: int) -> DataField:
        return self._current().channels[channel_id]

    def title(self, channel_id: int) -> str:
        return self._current().title(channel_id)
