"""
AtPack aggregate models.

``AtPackDevice`` is the aggregate root for one device; ``AtPack`` is what a
single archive load returns.
"""

from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import Field

from .base import FlexibleModel, StrictModel, find_by_name
from .clock import DeviceClockInfo
from .electrical import DeviceElectricalParameters
from .fuses import FuseConfig, LockbitConfig
from .memory import MemoryLayout
from .pinout import DevicePinout, DeviceVariant
from .registers import DevicePeripheralModule
from .timer import DeviceTimerInfo


class DeviceFamily(str, Enum):
    """Which device description format a pack ships (ATDF or .PIC)."""

    ATMEL = "ATMEL"
    PIC = "PIC"


# family -> (icon, title)
FAMILY_STYLES: Dict[DeviceFamily, Tuple[str, str]] = {
    DeviceFamily.ATMEL: ("\U0001f535", "ATMEL Microcontroller"),
    DeviceFamily.PIC: ("\U0001f534", "Microchip PIC Microcontroller"),
}


def family_style(family: Optional[DeviceFamily]) -> Tuple[str, str]:
    """Return ``(icon, title)`` for a device family."""
    if family is None:
        return "\u2753", "Unknown Family"
    return FAMILY_STYLES[family]


class DeviceSignature(FlexibleModel):
    """Signature byte; ``address`` is absent when only implied by position."""

    name: str
    address: Optional[int] = None
    value: int


class DeviceInterrupt(FlexibleModel):
    """Interrupt vector."""

    index: int
    name: str
    caption: str = ""


class Documentation(FlexibleModel):
    """Links to datasheets and application notes."""

    datasheet: Optional[str] = None
    product_page: Optional[str] = None
    application_notes: List[str] = Field(default_factory=list)


class ProgrammerPin(FlexibleModel):
    name: str
    position: int
    function: str = ""


class ProgrammerInterface(FlexibleModel):
    """Programming/debug interface and the pins it uses."""

    type: str = "ISP"
    protocols: List[str] = Field(default_factory=list)
    pins: List[ProgrammerPin] = Field(default_factory=list)


class ModuleRegister(FlexibleModel):
    name: str
    offset: int
    size: int = 1
    access: Literal["R", "W", "RW"] = "RW"
    reset_value: int = 0


class DeviceModule(FlexibleModel):
    """Peripheral instance as listed by the device (``peripherals/module/instance``)."""

    name: str
    type: str = ""
    instance: str = ""
    registers: List[ModuleRegister] = Field(default_factory=list)


class AtPackDevice(StrictModel):
    """
    One fully parsed device.

    Every bitfield ``values`` reference inside ``peripherals`` names a value
    group of the same peripheral or is ``None``.
    """

    name: str
    family: str = ""
    architecture: str = ""
    device_family: DeviceFamily = DeviceFamily.ATMEL
    signatures: List[DeviceSignature] = Field(default_factory=list)
    memory: MemoryLayout = Field(default_factory=MemoryLayout)
    fuses: List[FuseConfig] = Field(default_factory=list)
    lockbits: List[LockbitConfig] = Field(default_factory=list)
    variants: List[DeviceVariant] = Field(default_factory=list)
    documentation: Documentation = Field(default_factory=Documentation)
    programmer: ProgrammerInterface = Field(default_factory=ProgrammerInterface)
    modules: List[DeviceModule] = Field(default_factory=list)
    interrupts: List[DeviceInterrupt] = Field(default_factory=list)
    peripherals: List[DevicePeripheralModule] = Field(default_factory=list)
    pinouts: List[DevicePinout] = Field(default_factory=list)
    timers: List[DeviceTimerInfo] = Field(default_factory=list)
    clock_info: Optional[DeviceClockInfo] = None
    electrical_parameters: Optional[DeviceElectricalParameters] = None

    def get_peripheral(self, name: str) -> Optional[DevicePeripheralModule]:
        return find_by_name(self.peripherals, name)

    def get_pinout(self, name: str) -> Optional[DevicePinout]:
        return find_by_name(self.pinouts, name)

    def get_fuse(self, name: str) -> Optional[FuseConfig]:
        return find_by_name(self.fuses, name)


class AtPackMetadata(StrictModel):
    """Descriptive package information; every field is advisory."""

    name: str = ""
    description: str = ""
    vendor: str = ""
    url: str = ""


class DeviceFailure(StrictModel):
    """A device that was skipped while loading, and why."""

    device: str
    reason: str


class AtPack(StrictModel):
    """Result of one archive load."""

    metadata: AtPackMetadata
    devices: List[AtPackDevice] = Field(default_factory=list)
    version: str = ""
    failures: List[DeviceFailure] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def device_names(self) -> List[str]:
        return [device.name for device in self.devices]

    def get_device(self, name: str) -> Optional[AtPackDevice]:
        return find_by_name(self.devices, name)


class PackIndexEntry(FlexibleModel):
    """One descriptor listed by a vendor pack index."""

    name: str
    url: str
    version: str = ""
    description: str = ""
