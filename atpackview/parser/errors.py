"""Shared exceptions for AtPack loading and parsing."""

from typing import Optional


class AtPackError(Exception):
    """Base class for every error raised while loading an AtPack."""

    def __init__(
        self, message: str, file_path: Optional[str] = None, line: Optional[int] = None
    ):
        self.file_path = file_path
        self.line = line
        self.reason = message
        super().__init__(self._format_message(message))

    def _format_message(self, message: str) -> str:
        """Format error message with file and line information."""
        parts = []
        if self.file_path:
            parts.append(f"File: {self.file_path}")
        if self.line is not None:
            parts.append(f"Line: {self.line}")
        parts.append(message)
        return " | ".join(parts)


class FetchError(AtPackError):
    """A URL could not be retrieved (network failure or HTTP error status)."""

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message, file_path=url)


class ArchiveFormatError(AtPackError):
    """The byte stream is not a readable AtPack container."""


class XmlParseError(AtPackError):
    """An XML document inside the archive is not well-formed."""


class MetadataMissingError(AtPackError):
    """The package descriptor does not name the package."""


class DeviceParseError(AtPackError):
    """One device description is structurally unusable; the device is skipped."""

    def __init__(self, message: str, device: str, file_path: Optional[str] = None):
        self.device = device
        super().__init__(f"Device '{device}': {message}", file_path=file_path)
