"""
Memory layout definitions.

An ATDF device describes address spaces (``prog``, ``data``, ``eeprom``...)
that contain memory segments. Both end up in ``MemoryLayout.all_segments``;
the named shortcuts point at members of that list.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from .base import FlexibleModel, StrictModel


class SegmentType(str, Enum):
    """Memory segment classifications used by the named shortcuts."""

    FLASH = "flash"
    RAM = "ram"
    EEPROM = "eeprom"
    FUSES = "fuses"
    LOCKBITS = "lockbits"
    SIGNATURES = "signatures"


class MemorySegment(FlexibleModel):
    """Address space or memory segment."""

    name: str = Field(..., description="Segment name")
    start: int = Field(default=0, description="Start address", ge=0)
    size: int = Field(default=0, description="Size in bytes", ge=0)
    page_size: Optional[int] = Field(default=None, description="Page size in bytes")
    type: Optional[str] = Field(default=None, description="Segment type (flash, ram, ...)")
    section: Optional[str] = Field(default=None, description="Section name for grouping")
    is_address_space: bool = Field(default=False, description="True for address-space nodes")
    parent_address_space: Optional[str] = Field(
        default=None, description="Owning address space of a memory segment"
    )

    @property
    def end(self) -> int:
        """First address past the segment."""
        return self.start + self.size

    def contains_address(self, address: int) -> bool:
        return self.start <= address < self.end


class MemoryLayout(StrictModel):
    """
    Structured memory layout of a device.

    ``all_segments`` is the authoritative list; ``flash``, ``sram``,
    ``eeprom``, ``fuses`` and ``lockbits`` are shortcuts into it.
    """

    flash: Optional[MemorySegment] = None
    sram: Optional[MemorySegment] = None
    eeprom: Optional[MemorySegment] = None
    fuses: Optional[MemorySegment] = None
    lockbits: Optional[MemorySegment] = None
    all_segments: List[MemorySegment] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_shortcuts(self) -> "MemoryLayout":
        """Every shortcut must be one of ``all_segments``."""
        for label in ("flash", "sram", "eeprom", "fuses", "lockbits"):
            segment = getattr(self, label)
            if segment is not None and segment not in self.all_segments:
                raise ValueError(
                    f"Memory shortcut '{label}' ({segment.name}) is not listed in all_segments"
                )
        return self

    @property
    def address_spaces(self) -> List[MemorySegment]:
        return [s for s in self.all_segments if s.is_address_space]

    @property
    def memory_segments(self) -> List[MemorySegment]:
        return [s for s in self.all_segments if not s.is_address_space]

    def segments_in(self, address_space: str) -> List[MemorySegment]:
        """Segments belonging to one address space."""
        return [s for s in self.all_segments if s.parent_address_space == address_space]
