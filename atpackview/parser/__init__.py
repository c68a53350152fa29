"""
Parsers for AtPack archives, package descriptors and ATDF device files.
"""

from .archive import ArchiveContents, load_archive
from .atpack_parser import AtPackParser
from .device_parser import DeviceModelBuilder
from .errors import (
    ArchiveFormatError,
    AtPackError,
    DeviceParseError,
    FetchError,
    MetadataMissingError,
    XmlParseError,
)

__all__ = [
    "AtPackParser",
    "DeviceModelBuilder",
    "ArchiveContents",
    "load_archive",
    "AtPackError",
    "FetchError",
    "ArchiveFormatError",
    "XmlParseError",
    "MetadataMissingError",
    "DeviceParseError",
]
