"""
Fuse and lockbit configuration definitions.

Fuse and lockbit bytes are modelled separately from peripheral registers
because they carry a default (``initval``) and the bit ranges inside one
byte must never overlap.
"""

from typing import List, Optional, Sequence, Tuple

from pydantic import Field, model_validator

from .base import FlexibleModel, find_by_name


def find_overlap(ranges: Sequence[Tuple[str, int, int]]) -> Optional[Tuple[str, str]]:
    """Return the first pair of names whose ``(offset, width)`` ranges overlap."""
    for i, (name_a, offset_a, width_a) in enumerate(ranges):
        for name_b, offset_b, width_b in ranges[i + 1 :]:
            if offset_a < offset_b + width_b and offset_b < offset_a + width_a:
                return name_a, name_b
    return None


class FuseBitValue(FlexibleModel):
    """Symbolic setting of a fuse bitfield."""

    value: int
    name: str
    description: str = ""


class FuseBitfield(FlexibleModel):
    """Bitfield inside a fuse byte."""

    name: str
    description: str = ""
    bit_offset: int = Field(..., ge=0)
    bit_width: int = Field(..., ge=1)
    values: Optional[List[FuseBitValue]] = None

    @property
    def mask(self) -> int:
        return ((1 << self.bit_width) - 1) << self.bit_offset


class FuseConfig(FlexibleModel):
    """One fuse byte (or word) with its bitfields."""

    name: str
    offset: int = Field(..., ge=0)
    size: int = Field(default=1, ge=1)
    mask: int = Field(default=0xFF, description="Implemented bits of the fuse")
    default_value: Optional[int] = Field(default=None, description="Factory value (initval)")
    bitfields: List[FuseBitfield] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_no_overlap(self) -> "FuseConfig":
        overlap = find_overlap([(b.name, b.bit_offset, b.bit_width) for b in self.bitfields])
        if overlap:
            raise ValueError(
                f"Fuse '{self.name}': bitfields '{overlap[0]}' and '{overlap[1]}' overlap"
            )
        return self

    def get_bitfield(self, name: str) -> Optional[FuseBitfield]:
        return find_by_name(self.bitfields, name)


class LockbitValue(FlexibleModel):
    """Symbolic setting of a lockbit field."""

    name: str
    caption: str = ""
    value: int


class LockbitField(FlexibleModel):
    """Bitfield inside a lockbit byte."""

    name: str
    description: str = ""
    bit_offset: int = Field(..., ge=0)
    bit_width: int = Field(..., ge=1)
    values: Optional[List[LockbitValue]] = None


class LockbitConfig(FlexibleModel):
    """One lockbit byte with its fields."""

    name: str
    offset: int = Field(..., ge=0)
    size: int = Field(default=1, ge=1)
    default_value: Optional[int] = Field(default=None, description="Factory value (initval)")
    bits: List[LockbitField] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_no_overlap(self) -> "LockbitConfig":
        overlap = find_overlap([(b.name, b.bit_offset, b.bit_width) for b in self.bits])
        if overlap:
            raise ValueError(
                f"Lockbit '{self.name}': fields '{overlap[0]}' and '{overlap[1]}' overlap"
            )
        return self
