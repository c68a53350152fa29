"""Shared utility helpers for atpackview."""

import re
from typing import Optional, Tuple

_NUMBER_RE = re.compile(r"^[+-]?\d+(\.\d+)?([eE][+-]?\d+)?")


def parse_hex(value: Optional[str]) -> Optional[int]:
    """Parse a hexadecimal attribute value (``0x1F``, ``1F``, ``0X1f``).

    ATDF files write almost every numeric attribute in hex, with or without the
    ``0x`` prefix. Returns ``None`` for missing or unparsable input.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text, 16)
    except ValueError:
        return None


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse a decimal attribute value, accepting ``0x`` prefixed hex as well."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text, 10)
    except ValueError:
        pass
    try:
        return int(text, 0)
    except ValueError:
        return None


def parse_float(value: Optional[str]) -> Optional[float]:
    """Parse the leading number of a string (``"1.8"``, ``"5.5 V"``).

    Examples:
        >>> parse_float("2.7V")
        2.7
        >>> parse_float("n/a") is None
        True
    """
    if value is None:
        return None
    match = _NUMBER_RE.match(str(value).strip())
    if not match:
        return None
    return float(match.group(0))


def mask_to_bit_range(mask: int) -> Tuple[int, int]:
    """Convert a bit mask into ``(bit_offset, bit_width)``.

    The offset is the position of the lowest set bit and the width spans up to
    the highest set bit, so a contiguous mask round-trips through
    :func:`bit_range_to_mask`.

    Raises:
        ValueError: If the mask is not a positive integer.
    """
    if mask <= 0:
        raise ValueError(f"Bit mask must be positive, got {mask:#x}")
    offset = (mask & -mask).bit_length() - 1
    width = mask.bit_length() - offset
    return offset, width


def bit_range_to_mask(bit_offset: int, bit_width: int) -> int:
    """Convert ``(bit_offset, bit_width)`` into a bit mask."""
    if bit_offset < 0 or bit_width < 1:
        raise ValueError(f"Invalid bit range: offset={bit_offset}, width={bit_width}")
    return ((1 << bit_width) - 1) << bit_offset


def is_contiguous_mask(mask: int) -> bool:
    """Check whether all set bits of ``mask`` are adjacent."""
    if mask <= 0:
        return False
    shifted = mask >> ((mask & -mask).bit_length() - 1)
    return (shifted & (shifted + 1)) == 0


def filter_none(data: dict) -> dict:
    """Remove keys with None values from a dictionary.

    Required for Pydantic v2 compatibility: passing None explicitly
    to fields with defaults causes validation errors. Filtering None
    values lets Pydantic use its own defaults.
    """
    return {k: v for k, v in data.items() if v is not None}
