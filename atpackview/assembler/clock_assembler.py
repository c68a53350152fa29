"""
Clock, prescaler and ADC reference inference.

Clock sources come from the clock-select fuse bitfields (``SUT_CKSEL``,
``CKSEL``) of classic parts and from the ``CLKSEL`` bitfield of a ``CLKCTRL``
module on newer ones. Everything else is found by bitfield or value group
name; when nothing is found a conventional AVR ladder is used.
"""

import logging
import re
from typing import Iterable, Iterator, List, Optional, Tuple

from atpackview.model import (
    AdcReference,
    ClockPrescaler,
    ClockSource,
    ClockSourceType,
    DeviceClockInfo,
    DevicePeripheralModule,
    DevicePinFunction,
    DeviceRegisterBitfield,
    DeviceValueGroup,
    PllInfo,
)

from .patterns import extract_divider, extract_frequency, extract_startup_time, extract_voltage

logger = logging.getLogger(__name__)

# (keywords, type); matched against "name caption", first hit wins.
CLOCK_TYPE_TABLE: Tuple[Tuple[Tuple[str, ...], ClockSourceType], ...] = (
    (("crystal", "xosc"), ClockSourceType.CRYSTAL),
    (("ext",), ClockSourceType.EXTERNAL),
)

SOURCE_BITFIELDS = ("SUT_CKSEL", "CKSEL")
SOURCE_CAPTION = "clock source"
SYSTEM_PRESCALER_BITFIELDS = ("CLKPS",)
ADC_PRESCALER_BITFIELDS = ("ADPS",)
ADC_PRESCALER_CAPTION = "adc prescaler"
ADC_REFERENCE_BITFIELDS = ("REFS", "REFSEL")
ADC_REFERENCE_CAPTION = "reference selection"
TIMER_PRESCALER_GROUPS = ("CLK_SEL", "PRESCALER")
CLOCK_OUTPUT_BITFIELDS = ("CKOUT",)
CLOCK_DIVIDE8_BITFIELDS = ("CKDIV8",)

_MULTIPLIER_RE = re.compile(r"(?:\bx\s*|multipl\w*\s*(?:by\s*)?)(\d+)", re.IGNORECASE)

FALLBACK_SYSTEM_DIVIDERS = (1, 2, 4, 8, 16, 32, 64, 128, 256)
# Classic AVR CS[2:0] encodings
FALLBACK_TIMER_DIVIDERS = ((1, 1), (8, 2), (64, 3), (256, 4), (1024, 5))

FALLBACK_ADC_PRESCALERS = (
    ClockPrescaler(name="ADPS_32", caption="ADC clock divided by 32", value=5, divider=32),
    ClockPrescaler(name="ADPS_64", caption="ADC clock divided by 64", value=6, divider=64),
    ClockPrescaler(name="ADPS_128", caption="ADC clock divided by 128", value=7, divider=128),
)

FALLBACK_ADC_REFERENCES = (
    AdcReference(
        name="AREF", caption="External Reference", value="0",
        voltage="Variable", description="External AREF pin",
    ),
    AdcReference(
        name="AVCC", caption="AVCC Reference", value="1",
        voltage="VCC", description="Supply voltage reference",
    ),
)


def classify_source(name: str, caption: str) -> ClockSourceType:
    combined = f"{name} {caption}".lower()
    for keywords, source_type in CLOCK_TYPE_TABLE:
        if any(keyword in combined for keyword in keywords):
            return source_type
    return ClockSourceType.INTERNAL


def _bitfields(
    peripherals: Iterable[DevicePeripheralModule],
) -> Iterator[Tuple[DevicePeripheralModule, DeviceRegisterBitfield]]:
    for peripheral in peripherals:
        for group in peripheral.register_groups:
            for register in group.registers:
                for bitfield in register.bitfields:
                    yield peripheral, bitfield


def _find_group(
    peripherals: List[DevicePeripheralModule],
    names: Tuple[str, ...],
    caption: Optional[str] = None,
    module: Optional[str] = None,
) -> Optional[DeviceValueGroup]:
    """Value group of the first bitfield named in ``names`` (or whose caption contains ``caption``)."""
    for peripheral, bitfield in _bitfields(peripherals):
        if module is not None and peripheral.name != module:
            continue
        if bitfield.name not in names and not (
            caption and caption in bitfield.caption.lower()
        ):
            continue
        group = peripheral.get_value_group(bitfield.values)
        if group is not None:
            return group
    return None


def _has_bitfield(peripherals: List[DevicePeripheralModule], names: Tuple[str, ...]) -> bool:
    return any(bitfield.name in names for _, bitfield in _bitfields(peripherals))


def _sources(peripherals: List[DevicePeripheralModule]) -> List[ClockSource]:
    groups = [
        _find_group(peripherals, SOURCE_BITFIELDS, caption=SOURCE_CAPTION),
        _find_group(peripherals, ("CLKSEL",), module="CLKCTRL"),
    ]
    sources: List[ClockSource] = []
    seen = set()
    for group in groups:
        if group is None or group.name in seen:
            continue
        seen.add(group.name)
        for value in group.values:
            sources.append(
                ClockSource(
                    name=value.name,
                    caption=value.caption,
                    value=value.value,
                    type=classify_source(value.name, value.caption),
                    frequency=extract_frequency(value.caption),
                    startup_time=extract_startup_time(value.caption),
                )
            )
    return sources


def _prescalers(group: Optional[DeviceValueGroup]) -> List[ClockPrescaler]:
    """Values of ``group`` that name a divider, ordered by divider."""
    if group is None:
        return []
    prescalers = []
    for value in group.values:
        divider = extract_divider(value.caption, value.name)
        if divider:
            prescalers.append(
                ClockPrescaler(name=value.name, caption=value.caption, value=value.value, divider=divider)
            )
    return sorted(prescalers, key=lambda p: p.divider)


def _system_prescalers(peripherals: List[DevicePeripheralModule]) -> List[ClockPrescaler]:
    prescalers = _prescalers(_find_group(peripherals, SYSTEM_PRESCALER_BITFIELDS))
    if prescalers:
        return prescalers
    return [
        ClockPrescaler(
            name=f"CLKPR_DIV{divider}",
            caption=f"System clock divided by {divider}",
            value=divider.bit_length() - 1,
            divider=divider,
        )
        for divider in FALLBACK_SYSTEM_DIVIDERS
    ]


def _timer_prescalers(peripherals: List[DevicePeripheralModule]) -> List[ClockPrescaler]:
    seen = set()
    prescalers = []
    for peripheral in peripherals:
        for group in peripheral.value_groups:
            upper = group.name.upper()
            if "ADC" in upper or not any(key in upper for key in TIMER_PRESCALER_GROUPS):
                continue
            for prescaler in _prescalers(group):
                if prescaler.divider not in seen:
                    seen.add(prescaler.divider)
                    prescalers.append(prescaler)
    if not prescalers:
        prescalers = [
            ClockPrescaler(
                name=f"CS_DIV{divider}",
                caption=f"Clock divided by {divider}",
                value=value,
                divider=divider,
            )
            for divider, value in FALLBACK_TIMER_DIVIDERS
        ]
    return sorted(prescalers, key=lambda p: p.divider)


def _adc_prescalers(peripherals: List[DevicePeripheralModule]) -> List[ClockPrescaler]:
    group = _find_group(peripherals, ADC_PRESCALER_BITFIELDS, caption=ADC_PRESCALER_CAPTION)
    prescalers = _prescalers(group)
    if not prescalers:
        logger.debug("No ADC prescaler value group, using fallback")
        return list(FALLBACK_ADC_PRESCALERS)
    return prescalers


def _adc_references(peripherals: List[DevicePeripheralModule]) -> List[AdcReference]:
    group = _find_group(peripherals, ADC_REFERENCE_BITFIELDS, caption=ADC_REFERENCE_CAPTION)
    if group is None or not group.values:
        logger.debug("No ADC reference value group, using fallback")
        return list(FALLBACK_ADC_REFERENCES)
    return [
        AdcReference(
            name=value.name,
            caption=value.caption,
            value=value.value,
            voltage=extract_voltage(value.caption),
            description=value.caption or None,
        )
        for value in group.values
    ]


def _adc_channels(signals: Iterable[DevicePinFunction]) -> List[int]:
    channels = {
        signal.index
        for signal in signals
        if signal.module == "ADC" and signal.group == "ADC" and signal.index is not None
    }
    return sorted(channels)


def _pll_info(peripherals: List[DevicePeripheralModule]) -> Optional[PllInfo]:
    names = [p.name for p in peripherals]
    for peripheral in peripherals:
        for group in peripheral.register_groups:
            names.extend(r.name for r in group.registers)
    names.extend(bitfield.name for _, bitfield in _bitfields(peripherals))
    if not any("PLL" in name.upper() for name in names):
        return None

    input_prescalers: List[ClockPrescaler] = []
    multiplier = None
    for peripheral in peripherals:
        for group in peripheral.value_groups:
            if "PLL" not in group.name.upper():
                continue
            input_prescalers.extend(_prescalers(group))
            for value in group.values:
                match = _MULTIPLIER_RE.search(value.caption)
                if multiplier is None and match:
                    multiplier = int(match.group(1))
    return PllInfo(available=True, input_prescalers=input_prescalers, multiplier=multiplier)


def assemble_clock_info(
    peripherals: List[DevicePeripheralModule], signals: Iterable[DevicePinFunction]
) -> DeviceClockInfo:
    """Build the clock view from peripherals (fuses included) and routed pin signals."""
    info = DeviceClockInfo(
        sources=_sources(peripherals),
        system_prescalers=_system_prescalers(peripherals),
        adc_prescalers=_adc_prescalers(peripherals),
        adc_references=_adc_references(peripherals),
        adc_channels=_adc_channels(signals),
        timer_prescalers=_timer_prescalers(peripherals),
        has_clock_output=_has_bitfield(peripherals, CLOCK_OUTPUT_BITFIELDS),
        has_clock_divide8=_has_bitfield(peripherals, CLOCK_DIVIDE8_BITFIELDS),
        pll_info=_pll_info(peripherals),
    )
    logger.debug(
        "Clock view: %d sources, %d ADC references, %d ADC channels",
        len(info.sources),
        len(info.adc_references),
        len(info.adc_channels),
    )
    return info
