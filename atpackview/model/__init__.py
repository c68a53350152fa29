"""
Pydantic device models for AtPack archives.

Every model is immutable; the parser builds them bottom-up and hands out
one ``AtPack`` per load.
"""

from .base import AtPackBaseModel, FlexibleModel, StrictModel
from .clock import AdcReference, ClockPrescaler, ClockSource, ClockSourceType, DeviceClockInfo, PllInfo
from .device import (
    AtPack,
    AtPackDevice,
    AtPackMetadata,
    DeviceFailure,
    DeviceFamily,
    DeviceInterrupt,
    DeviceModule,
    DeviceSignature,
    Documentation,
    ModuleRegister,
    PackIndexEntry,
    ProgrammerInterface,
    ProgrammerPin,
    family_style,
)
from .electrical import (
    ELECTRICAL_GROUP_TABLE,
    DeviceElectricalParameters,
    ElectricalParameter,
    group_style,
    infer_group,
)
from .fuses import FuseBitfield, FuseBitValue, FuseConfig, LockbitConfig, LockbitField, LockbitValue
from .memory import MemoryLayout, MemorySegment, SegmentType
from .pinout import DevicePin, DevicePinFunction, DevicePinout, DeviceVariant
from .registers import (
    DevicePeripheralModule,
    DeviceRegister,
    DeviceRegisterBitfield,
    DeviceRegisterGroup,
    DeviceValue,
    DeviceValueGroup,
)
from .timer import DeviceTimerInfo, TimerMode, TimerOutput, TimerPrescaler, TimerRegisters, TimerType

__all__ = [
    # Base
    "AtPackBaseModel",
    "StrictModel",
    "FlexibleModel",
    # Aggregates
    "AtPack",
    "AtPackDevice",
    "AtPackMetadata",
    "DeviceFailure",
    "PackIndexEntry",
    # Device details
    "DeviceFamily",
    "family_style",
    "DeviceSignature",
    "DeviceInterrupt",
    "Documentation",
    "ProgrammerInterface",
    "ProgrammerPin",
    "DeviceModule",
    "ModuleRegister",
    # Memory
    "MemoryLayout",
    "MemorySegment",
    "SegmentType",
    # Registers
    "DevicePeripheralModule",
    "DeviceRegisterGroup",
    "DeviceRegister",
    "DeviceRegisterBitfield",
    "DeviceValueGroup",
    "DeviceValue",
    # Fuses/Lockbits
    "FuseConfig",
    "FuseBitfield",
    "FuseBitValue",
    "LockbitConfig",
    "LockbitField",
    "LockbitValue",
    # Pinouts
    "DevicePinout",
    "DevicePin",
    "DevicePinFunction",
    "DeviceVariant",
    # Timers
    "DeviceTimerInfo",
    "TimerType",
    "TimerMode",
    "TimerPrescaler",
    "TimerOutput",
    "TimerRegisters",
    # Clock
    "DeviceClockInfo",
    "ClockSource",
    "ClockSourceType",
    "ClockPrescaler",
    "AdcReference",
    "PllInfo",
    # Electrical
    "DeviceElectricalParameters",
    "ElectricalParameter",
    "ELECTRICAL_GROUP_TABLE",
    "infer_group",
    "group_style",
]
