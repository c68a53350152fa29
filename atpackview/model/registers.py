"""
Peripheral register definitions.

These are Pydantic models filled from the ``modules`` section of an ATDF
document. Registers carry absolute byte offsets; bitfields carry their
position relative to the owning register.

Naming convention:
- Bitfields reference value groups by name only (``values``). The parser
  guarantees the name is either resolvable inside the owning peripheral
  or ``None``.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from atpackview.utils import bit_range_to_mask, is_contiguous_mask, mask_to_bit_range

from .base import FlexibleModel, find_by_name


class DeviceValue(FlexibleModel):
    """One symbolic value of a value group."""

    name: str = Field(..., description="Symbolic name")
    caption: str = Field(default="", description="Human readable caption")
    value: int = Field(..., description="Numeric value")


class DeviceValueGroup(FlexibleModel):
    """Named enumeration referenced by bitfields."""

    name: str = Field(..., description="Value group name")
    caption: str = Field(default="", description="Value group caption")
    values: List[DeviceValue] = Field(default_factory=list, description="Enumerated values")

    def get_value(self, value: int) -> Optional[DeviceValue]:
        """Find the entry for a numeric value."""
        return next((v for v in self.values if v.value == value), None)


class DeviceRegisterBitfield(FlexibleModel):
    """
    Bitfield within a register.

    ``mask``, ``bit_offset`` and ``bit_width`` are kept consistent: whichever
    half the source provides, the other half is derived from it.
    """

    name: str = Field(..., description="Bitfield name")
    caption: str = Field(default="", description="Bitfield caption")
    mask: int = Field(..., description="Bit mask relative to the register", gt=0)
    bit_offset: int = Field(..., description="Position of the lowest bit", ge=0)
    bit_width: int = Field(..., description="Number of bits spanned", ge=1)
    values: Optional[str] = Field(default=None, description="Referenced value group")
    read_write: Optional[str] = Field(default=None, description="Access ('R', 'W', 'RW')")

    @model_validator(mode="before")
    @classmethod
    def derive_bit_range(cls, data: Any) -> Any:
        """Fill in the missing half of mask / bit range.

        A mask alone yields offset and width; an offset/width pair alone
        yields the mask. When both are given for a contiguous mask they
        must agree.
        """
        if not isinstance(data, dict):
            return data

        mask = data.get("mask")
        offset = data.get("bit_offset", data.get("bitOffset"))
        width = data.get("bit_width", data.get("bitWidth"))

        if mask is not None and mask > 0:
            derived_offset, derived_width = mask_to_bit_range(mask)
            if offset is None:
                offset = derived_offset
            if width is None:
                width = derived_width
            if is_contiguous_mask(mask) and (offset, width) != (derived_offset, derived_width):
                raise ValueError(
                    f"Bitfield '{data.get('name')}' mask {mask:#x} contradicts "
                    f"bit_offset={offset}, bit_width={width}"
                )
        elif offset is not None and width is not None:
            mask = bit_range_to_mask(offset, width)

        return {**data, "mask": mask, "bit_offset": offset, "bit_width": width}

    @property
    def is_contiguous(self) -> bool:
        """Check whether the mask covers exactly ``bit_offset..bit_offset+bit_width``."""
        return is_contiguous_mask(self.mask)

    @property
    def bit_range(self) -> str:
        """Get bit range as string (e.g. [7:0])."""
        msb = self.bit_offset + self.bit_width - 1
        if msb == self.bit_offset:
            return f"[{self.bit_offset}]"
        return f"[{msb}:{self.bit_offset}]"

    def extract(self, register_value: int) -> int:
        """Extract this field's value from a complete register value."""
        return (register_value & self.mask) >> self.bit_offset


class DeviceRegister(FlexibleModel):
    """Memory-mapped register of a peripheral."""

    name: str = Field(..., description="Register name")
    caption: str = Field(default="", description="Register caption")
    offset: int = Field(..., description="Absolute byte offset", ge=0)
    size: int = Field(..., description="Register width in bytes", ge=1)
    mask: Optional[int] = Field(default=None, description="Implemented bits")
    initval: Optional[int] = Field(default=None, description="Reset value")
    read_write: Optional[str] = Field(default=None, description="Access ('R', 'W', 'RW')")
    bitfields: List[DeviceRegisterBitfield] = Field(default_factory=list)

    @property
    def hex_address(self) -> str:
        """Get absolute address as hex string."""
        return f"0x{self.offset:04X}"

    def get_bitfield(self, name: str) -> Optional[DeviceRegisterBitfield]:
        return find_by_name(self.bitfields, name)


class DeviceRegisterGroup(FlexibleModel):
    """Named set of registers."""

    name: str = Field(..., description="Register group name")
    caption: str = Field(default="", description="Register group caption")
    registers: List[DeviceRegister] = Field(default_factory=list)

    def get_register(self, name: str) -> Optional[DeviceRegister]:
        return find_by_name(self.registers, name)


class DevicePeripheralModule(FlexibleModel):
    """
    Peripheral module with its register groups and value groups.

    Every bitfield ``values`` reference resolves to one of ``value_groups``.
    """

    name: str = Field(..., description="Module name")
    caption: str = Field(default="", description="Module caption")
    register_groups: List[DeviceRegisterGroup] = Field(default_factory=list)
    value_groups: List[DeviceValueGroup] = Field(default_factory=list)

    def get_value_group(self, name: Optional[str]) -> Optional[DeviceValueGroup]:
        """Look up a value group by name; ``None`` for an absent name."""
        if not name:
            return None
        return find_by_name(self.value_groups, name)

    def get_register(self, name: str) -> Optional[DeviceRegister]:
        """Find a register by name across all register groups."""
        for group in self.register_groups:
            register = group.get_register(name)
            if register is not None:
                return register
        return None

    @property
    def value_group_map(self) -> Dict[str, DeviceValueGroup]:
        return {group.name: group for group in self.value_groups}

    @property
    def total_registers(self) -> int:
        return sum(len(group.registers) for group in self.register_groups)
