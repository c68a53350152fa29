"""
AtPack loading entry point.

Loads an archive (URL, file path, bytes or file object), reads the package
descriptor and builds every device it lists. Archive-level errors propagate
to the caller; a device that fails is recorded in ``AtPack.failures`` and
the remaining devices are still returned.
"""

import logging
from typing import List, Optional

from atpackview.config import LoaderConfig
from atpackview.config import config as default_config
from atpackview.model import AtPack, AtPackDevice, DeviceFailure, PackIndexEntry

from .archive import ArchiveContents, ArchiveSource, fetch_bytes, load_archive
from .device_parser import DeviceModelBuilder
from .document import XmlDocument
from .errors import ArchiveFormatError, DeviceParseError
from .pdsc_parser import extract_metadata, extract_version, list_device_fragments, parse_pack_index

logger = logging.getLogger(__name__)


class AtPackParser:
    """
    Parser for Microchip/Atmel device family packs.

    Each call returns a fresh ``AtPack``; nothing is cached between loads.
    """

    def __init__(self, config: Optional[LoaderConfig] = None):
        self.config = config or default_config

    def load_from_url(self, url: str) -> AtPack:
        """
        Download and parse a pack.

        URLs ending in ``.pdsc`` or ``.xml`` are parsed as bare descriptors.

        Raises:
            FetchError: If the download fails
            ArchiveFormatError: If the payload is not a readable pack
            XmlParseError: If the descriptor is malformed
            MetadataMissingError: If the descriptor does not name the package
        """
        logger.info("Loading AtPack from %s", url)
        return self.parse_archive(load_archive(url, self.config))

    def load_from_file(self, file: ArchiveSource, name: Optional[str] = None) -> AtPack:
        """
        Parse a pack from a path, raw bytes or a binary file object.

        Args:
            file: Archive source
            name: Display name used in messages (defaults to the file name)
        """
        contents = load_archive(file, self.config, name=name)
        logger.info("Loading AtPack from %s", contents.source or "<memory>")
        return self.parse_archive(contents)

    def parse_archive(self, contents: ArchiveContents) -> AtPack:
        """Build an ``AtPack`` from unpacked archive contents."""
        descriptor_path = contents.find_descriptor()
        if descriptor_path is None:
            raise ArchiveFormatError("Archive contains no package descriptor (.pdsc)", contents.source)

        doc = XmlDocument.parse(contents[descriptor_path], descriptor_path)
        metadata = extract_metadata(doc)
        version = extract_version(doc)

        devices: List[AtPackDevice] = []
        failures: List[DeviceFailure] = []
        builder = DeviceModelBuilder()
        for fragment in list_device_fragments(doc):
            try:
                device = builder.build_device(fragment, contents)
            except DeviceParseError as e:
                logger.warning("Skipping device %s: %s", e.device, e.reason)
                failures.append(DeviceFailure(device=e.device, reason=str(e)))
                continue
            self._add_device(devices, device)

        logger.info(
            "Loaded %s %s: %d devices, %d skipped",
            metadata.name,
            version,
            len(devices),
            len(failures),
        )
        return AtPack(metadata=metadata, devices=devices, version=version, failures=failures)

    @staticmethod
    def _add_device(devices: List[AtPackDevice], device: AtPackDevice) -> None:
        """Append, or replace in place a device with the same name."""
        for idx, existing in enumerate(devices):
            if existing.name == device.name:
                logger.warning("Duplicate device %s, keeping the later definition", device.name)
                devices[idx] = device
                return
        devices.append(device)

    def load_pack_index(self, url: str) -> List[PackIndexEntry]:
        """Download a vendor ``.pidx`` index and list its packs."""
        data = fetch_bytes(url, self.config)
        return parse_pack_index(XmlDocument.parse(data, url))
