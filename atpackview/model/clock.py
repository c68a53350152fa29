"""
Clock tree views derived from clock-selection fuses and clock modules.
"""

from enum import Enum
from typing import List, Optional, Union

from pydantic import Field

from .base import FlexibleModel


class ClockSourceType(str, Enum):
    """Kind of oscillator behind a clock source."""

    INTERNAL = "internal"
    EXTERNAL = "external"
    CRYSTAL = "crystal"


class ClockSource(FlexibleModel):
    """Selectable clock source."""

    name: str
    caption: str = ""
    value: int
    type: ClockSourceType = ClockSourceType.INTERNAL
    frequency: Optional[float] = Field(default=None, description="Nominal frequency in Hz")
    startup_time: Optional[str] = None


class ClockPrescaler(FlexibleModel):
    """One step of a prescaler ladder."""

    name: str
    caption: str = ""
    value: int
    divider: int = Field(..., ge=1)


class AdcReference(FlexibleModel):
    """ADC voltage reference selection."""

    name: str
    caption: str = ""
    value: Union[int, str]
    voltage: Optional[str] = None
    description: Optional[str] = None


class PllInfo(FlexibleModel):
    """Phase locked loop presence and settings."""

    available: bool = True
    input_prescalers: List[ClockPrescaler] = Field(default_factory=list)
    multiplier: Optional[int] = None


class DeviceClockInfo(FlexibleModel):
    """Derived clock description of a device."""

    sources: List[ClockSource] = Field(default_factory=list)
    system_prescalers: List[ClockPrescaler] = Field(default_factory=list)
    adc_prescalers: List[ClockPrescaler] = Field(default_factory=list)
    adc_references: List[AdcReference] = Field(default_factory=list)
    adc_channels: List[int] = Field(default_factory=list, description="ADC input indices")
    timer_prescalers: List[ClockPrescaler] = Field(default_factory=list)
    has_clock_output: bool = False
    has_clock_divide8: bool = False
    pll_info: Optional[PllInfo] = None
