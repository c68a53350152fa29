"""
AtPack container loading.

An AtPack is a ZIP file holding one ``.pdsc`` package descriptor and one
``.atdf`` file per device. Loading reads every member into memory; any
failure aborts the whole load.
"""

import io
import logging
import os
import zipfile
import zlib
from pathlib import PurePosixPath
from typing import BinaryIO, Dict, Iterator, List, Mapping, Optional, Union

import requests

from atpackview.config import LoaderConfig, config as default_config

from .errors import ArchiveFormatError, FetchError

logger = logging.getLogger(__name__)

ArchiveSource = Union[str, bytes, bytearray, "os.PathLike[str]", BinaryIO]

DESCRIPTOR_SUFFIXES = (".pdsc", ".xml")


class ArchiveContents(Mapping[str, bytes]):
    """Read-only mapping of archive-relative path to member bytes."""

    def __init__(self, files: Dict[str, bytes], source: str = ""):
        self._files = dict(files)
        self.source = source

    def __getitem__(self, path: str) -> bytes:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __repr__(self) -> str:
        return f"ArchiveContents({self.source!r}, {len(self)} files)"

    @classmethod
    def from_descriptor(cls, name: str, data: bytes) -> "ArchiveContents":
        """Wrap a bare descriptor so it can be parsed like an archive."""
        filename = PurePosixPath(name.replace("\\", "/")).name or "package.pdsc"
        return cls({filename: bytes(data)}, source=name)

    def files_with_suffix(self, suffix: str) -> List[str]:
        suffix = suffix.lower()
        return [path for path in self._files if path.lower().endswith(suffix)]

    def find_descriptor(self) -> Optional[str]:
        """Path of the package descriptor (first ``.pdsc``, else a lone ``.xml``)."""
        descriptors = self.files_with_suffix(".pdsc")
        if descriptors:
            return descriptors[0]
        xml_files = self.files_with_suffix(".xml")
        if len(self._files) == 1 and xml_files:
            return xml_files[0]
        return None

    def find_device_file(self, name: str, ext: str = ".atdf") -> Optional[str]:
        """Locate a device file by basename, case-insensitively."""
        wanted = f"{name}{ext}".lower()
        for path in self.files_with_suffix(ext):
            if PurePosixPath(path).name.lower() == wanted:
                return path
        return None

    def resolve(self, reference: str) -> Optional[str]:
        """Resolve a descriptor-relative reference (``atdf/ATmega328P.atdf``)."""
        normalized = reference.replace("\\", "/").lstrip("./")
        if normalized in self._files:
            return normalized
        lowered = normalized.lower()
        for path in self._files:
            if path.lower() == lowered or path.lower().endswith("/" + lowered):
                return path
        return None


def fetch_bytes(url: str, config: Optional[LoaderConfig] = None) -> bytes:
    """
    Download a URL with a plain HTTP GET.

    Raises:
        FetchError: On connection failure, timeout or a non-2xx status
    """
    config = config or default_config
    logger.info("Fetching %s", url)
    try:
        response = requests.get(
            url, timeout=config.timeout, headers={"User-Agent": config.user_agent}
        )
    except requests.Timeout as e:
        raise FetchError(f"Timed out after {config.timeout}s", url) from e
    except requests.RequestException as e:
        raise FetchError(f"Request failed: {e}", url) from e

    if not 200 <= response.status_code < 300:
        raise FetchError(f"HTTP error {response.status_code}", url, response.status_code)

    logger.debug("Fetched %d bytes from %s", len(response.content), url)
    return response.content


def _read_source(source: ArchiveSource, config: LoaderConfig) -> "tuple[bytes, str]":
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), "<bytes>"
    if isinstance(source, str) and source.lower().startswith(("http://", "https://")):
        return fetch_bytes(source, config), source
    if isinstance(source, (str, os.PathLike)):
        path = os.fspath(source)
        try:
            with open(path, "rb") as f:
                return f.read(), path
        except OSError as e:
            raise ArchiveFormatError(f"Cannot read archive: {e.strerror}", path) from e
    if hasattr(source, "read"):
        data = source.read()
        if isinstance(data, str):
            raise ArchiveFormatError("Archive file objects must be opened in binary mode")
        return data, getattr(source, "name", "<file>")
    raise TypeError(f"Unsupported archive source: {type(source).__name__}")


def unpack_archive(data: bytes, source: str = "", config: Optional[LoaderConfig] = None) -> ArchiveContents:
    """
    Decompress ZIP bytes into an ``ArchiveContents``.

    Raises:
        ArchiveFormatError: If the bytes are not a ZIP archive, a member is
            corrupted, or the uncompressed size exceeds the configured limit
    """
    config = config or default_config
    if not zipfile.is_zipfile(io.BytesIO(data)):
        raise ArchiveFormatError("Not a ZIP archive", source)

    files: Dict[str, bytes] = {}
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            members = [info for info in archive.infolist() if not info.is_dir()]
            total = sum(info.file_size for info in members)
            if total > config.max_archive_bytes:
                raise ArchiveFormatError(
                    f"Archive expands to {total} bytes, limit is {config.max_archive_bytes}", source
                )
            for info in members:
                files[info.filename.replace("\\", "/")] = archive.read(info)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, NotImplementedError, EOFError) as e:
        raise ArchiveFormatError(f"Corrupted archive: {e}", source) from e

    logger.info("Unpacked %d files from %s", len(files), source or "<bytes>")
    return ArchiveContents(files, source)


def load_archive(
    source: ArchiveSource, config: Optional[LoaderConfig] = None, name: Optional[str] = None
) -> ArchiveContents:
    """
    Load an AtPack from a URL, a path, raw bytes or a binary file object.

    Bare descriptors (``.pdsc`` / ``.xml`` names) are wrapped with
    ``ArchiveContents.from_descriptor`` instead of being unzipped.

    Raises:
        FetchError: If a URL cannot be retrieved
        ArchiveFormatError: If the bytes are not a readable archive
    """
    config = config or default_config
    data, read_name = _read_source(source, config)
    name = name or read_name
    if name.lower().endswith(DESCRIPTOR_SUFFIXES) and not zipfile.is_zipfile(io.BytesIO(data)):
        return ArchiveContents.from_descriptor(name, data)
    return unpack_archive(data, name, config)
