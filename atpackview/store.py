"""
Application state for loaded AtPacks.

``AtPackStore`` keeps the loaded packs keyed by package name plus the
current pack/device selection. A load that fails records the error message
and leaves every other piece of state as it was.
"""

import logging
from typing import Callable, Dict, List, Optional, Union

from atpackview.model import AtPack, AtPackDevice
from atpackview.parser import AtPackParser
from atpackview.parser.archive import ArchiveSource
from atpackview.parser.errors import AtPackError

logger = logging.getLogger(__name__)

LoadResult = Union[AtPack, AtPackError]


class AtPackStore:
    """Collection of loaded packs with a current selection."""

    def __init__(self, parser: Optional[AtPackParser] = None):
        self.parser = parser or AtPackParser()
        self.atpacks: Dict[str, AtPack] = {}
        self.selected_atpack: Optional[AtPack] = None
        self.selected_device: Optional[AtPackDevice] = None
        self.loading = False
        self.error: Optional[str] = None

    @property
    def devices(self) -> List[AtPackDevice]:
        """Devices of the selected pack."""
        return list(self.selected_atpack.devices) if self.selected_atpack else []

    def load_from_url(self, url: str) -> LoadResult:
        return self._load(lambda: self.parser.load_from_url(url), url)

    def load_from_file(self, file: ArchiveSource, name: Optional[str] = None) -> LoadResult:
        return self._load(lambda: self.parser.load_from_file(file, name), name or str(file)[:80])

    def _load(self, load: Callable[[], AtPack], source: str) -> LoadResult:
        self.loading = True
        self.error = None
        try:
            atpack = load()
        except AtPackError as e:
            logger.error("Failed to load %s: %s", source, e)
            self.error = str(e)
            return e
        except Exception as e:
            logger.exception("Unexpected failure loading %s", source)
            error = AtPackError(f"Unexpected {type(e).__name__}: {e}", source)
            self.error = str(error)
            return error
        finally:
            self.loading = False

        # Re-inserting moves a reloaded pack to the end.
        self.atpacks.pop(atpack.name, None)
        self.atpacks[atpack.name] = atpack
        self.selected_atpack = atpack
        self.selected_device = None
        logger.info("Store holds %d packs, selected %s", len(self.atpacks), atpack.name)
        return atpack

    def select_atpack(self, name: str) -> AtPack:
        """Select a loaded pack by name; clears the device selection.

        Raises:
            KeyError: If no pack with that name is loaded
        """
        atpack = self.atpacks[name]
        self.selected_atpack = atpack
        self.selected_device = None
        return atpack

    def select_device(self, name: str) -> AtPackDevice:
        """Select a device of the selected pack.

        Raises:
            KeyError: If no pack is selected or it has no such device
        """
        device = self.selected_atpack.get_device(name) if self.selected_atpack else None
        if device is None:
            raise KeyError(name)
        self.selected_device = device
        return device

    def clear_error(self) -> None:
        self.error = None

    def reset(self) -> None:
        self.atpacks = {}
        self.selected_atpack = None
        self.selected_device = None
        self.loading = False
        self.error = None
