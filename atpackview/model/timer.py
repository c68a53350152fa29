"""
Timer/counter views.

Timers are not described as single XML elements; they are reconstructed
from peripheral registers by ``atpackview.assembler.timer_assembler``.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import FlexibleModel


class TimerType(str, Enum):
    """Timer classification."""

    TIMER8 = "timer8"
    TIMER16 = "timer16"
    TIMER8_ASYNC = "timer8async"


class TimerMode(FlexibleModel):
    """Waveform generation mode."""

    name: str
    caption: str = ""
    value: int
    wgm_bits: Optional[str] = Field(default=None, description="e.g. 'WGM0 = 010'")


class TimerPrescaler(FlexibleModel):
    """Clock select setting."""

    name: str
    caption: str = ""
    value: int
    divider: Optional[int] = Field(default=None, description="Clock division factor")


class TimerOutput(FlexibleModel):
    """Compare output channel routed to a pad."""

    name: str = Field(..., description="Output signal (e.g. 'OC0A')")
    pin: Optional[str] = Field(default=None, description="Pad carrying the signal")
    modes: List[str] = Field(default_factory=list, description="Compare output modes")


class TimerRegisters(FlexibleModel):
    """Names of the registers that make up one timer."""

    control: List[str] = Field(default_factory=list)
    counter: Optional[str] = None
    compare: List[str] = Field(default_factory=list)
    capture: Optional[str] = None


class DeviceTimerInfo(FlexibleModel):
    """Derived description of one timer/counter instance."""

    name: str
    caption: str = ""
    type: TimerType = TimerType.TIMER8
    modes: List[TimerMode] = Field(default_factory=list)
    prescalers: List[TimerPrescaler] = Field(default_factory=list)
    outputs: List[TimerOutput] = Field(default_factory=list)
    registers: TimerRegisters = Field(default_factory=TimerRegisters)

    @property
    def resolution_bits(self) -> int:
        return 16 if self.type == TimerType.TIMER16 else 8
