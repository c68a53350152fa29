"""
Pinout and variant definitions.
"""

from typing import Dict, List, Optional

from pydantic import Field

from .base import FlexibleModel


class DevicePinFunction(FlexibleModel):
    """Signal routed to a pad by a peripheral instance."""

    group: str = Field(..., description="Signal group (e.g. 'OC0A', 'ADC')")
    function: str = Field(default="", description="Signal function")
    index: Optional[int] = Field(default=None, description="Signal index within the group")
    module: str = Field(default="", description="Owning peripheral module")
    module_caption: str = Field(default="", description="Instance caption")


class DevicePin(FlexibleModel):
    """Physical pin of a package."""

    position: int = Field(..., ge=1)
    pad: str
    functions: List[DevicePinFunction] = Field(default_factory=list)

    def has_signal(self, group: str) -> bool:
        """Check whether a signal group is routed to this pin."""
        return any(f.group == group for f in self.functions)


class DevicePinout(FlexibleModel):
    """Pin assignment of one package."""

    name: str
    caption: str = ""
    pins: List[DevicePin] = Field(default_factory=list)

    @property
    def pin_count(self) -> int:
        return len(self.pins)

    def pad_map(self) -> Dict[int, str]:
        """Map physical pin number to pad name."""
        return {pin.position: pin.pad for pin in self.pins}

    def find_pin_by_pad(self, pad: str) -> Optional[DevicePin]:
        return next((pin for pin in self.pins if pin.pad == pad), None)

    def find_pins_by_signal(self, group: str) -> List[DevicePin]:
        return [pin for pin in self.pins if pin.has_signal(group)]


class DeviceVariant(FlexibleModel):
    """Orderable SKU of a device (package, speed, temperature, voltage)."""

    name: str
    package: str = ""
    temperature_range: str = ""
    voltage_range: str = ""
    speed_grade: Optional[str] = None
    pinout: Optional[Dict[int, str]] = Field(
        default=None, description="Physical pin number -> pad name"
    )