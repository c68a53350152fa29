"""
Timer/counter inference from peripheral registers.

Timers are not single XML elements. They are recognised by register names:

- classic AVR8 parts spread a timer over ``TCCR<n>x``, ``TCNT<n>``,
  ``OCR<n>x`` and ``ICR<n>``; registers sharing ``<n>`` form timer ``TC<n>``.
- AVR8X/XMEGA style ``TC*``/``TIMER*`` modules keep one timer per register
  group with ``CTRL*``, ``CNT``, ``CMP*``/``CC*`` and ``CAPT*`` registers.

Outputs are matched against the pinouts, so timers are assembled after the
pinouts are built.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from atpackview.model import (
    DevicePeripheralModule,
    DevicePinout,
    DeviceRegister,
    DeviceRegisterBitfield,
    DeviceTimerInfo,
    TimerMode,
    TimerOutput,
    TimerPrescaler,
    TimerRegisters,
    TimerType,
)

from .patterns import extract_divider

logger = logging.getLogger(__name__)

CONTROL = "control"
COUNTER = "counter"
COMPARE = "compare"
CAPTURE = "capture"

# (role, pattern); group(1) is the timer number.
CLASSIC_REGISTER_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    (CONTROL, re.compile(r"^TCCR(\d+)[A-C]?$")),
    (COUNTER, re.compile(r"^TCNT(\d+)[HL]?$")),
    (COMPARE, re.compile(r"^OCR(\d+)[A-C]?[HL]?$")),
    (CAPTURE, re.compile(r"^ICR(\d+)[HL]?$")),
)

INSTANCE_REGISTER_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    (CONTROL, re.compile(r"^CTRL")),
    (COUNTER, re.compile(r"^CNT[HL]?$")),
    (COMPARE, re.compile(r"^(?:CMP|CC)\w*$")),
    (CAPTURE, re.compile(r"^CAPT")),
)

TIMER_MODULE_PATTERN = re.compile(r"^(?:TC|TIMER)", re.IGNORECASE)
MODE_BITFIELD_PATTERN = re.compile(r"^WGM", re.IGNORECASE)
PRESCALER_BITFIELD_PATTERN = re.compile(r"^(?:CS\d*|CLKSEL)", re.IGNORECASE)
COMPARE_OUTPUT_PATTERN = re.compile(r"^OCR(\d+)([A-C])")

DEFAULT_MODES = (
    TimerMode(name="Normal", caption="Normal mode (count up to MAX)", value=0),
    TimerMode(name="CTC", caption="Clear Timer on Compare Match", value=1),
    TimerMode(name="PWM", caption="Pulse Width Modulation", value=2),
)

DEFAULT_PRESCALERS = (
    TimerPrescaler(name="No Clock", caption="Timer stopped", value=0, divider=None),
    TimerPrescaler(name="clk/1", caption="No prescaling", value=1, divider=1),
    TimerPrescaler(name="clk/8", caption="Clock divided by 8", value=2, divider=8),
    TimerPrescaler(name="clk/64", caption="Clock divided by 64", value=3, divider=64),
    TimerPrescaler(name="clk/256", caption="Clock divided by 256", value=4, divider=256),
    TimerPrescaler(name="clk/1024", caption="Clock divided by 1024", value=5, divider=1024),
)


@dataclass
class _Candidate:
    """Registers collected for one prospective timer."""

    name: str
    number: str = ""
    caption: str = ""
    peripherals: List[DevicePeripheralModule] = field(default_factory=list)
    roles: Dict[str, List[DeviceRegister]] = field(default_factory=dict)

    def add(self, role: str, register: DeviceRegister, peripheral: DevicePeripheralModule) -> None:
        self.roles.setdefault(role, []).append(register)
        if all(p is not peripheral for p in self.peripherals):
            self.peripherals.append(peripheral)
        if not self.caption:
            self.caption = peripheral.caption

    def registers(self, role: str) -> List[DeviceRegister]:
        return self.roles.get(role, [])

    @property
    def is_timer(self) -> bool:
        return bool(self.registers(CONTROL)) and bool(self.registers(COUNTER))


def _classify(name: str, table) -> Optional[Tuple[str, Optional[str]]]:
    for role, pattern in table:
        match = pattern.match(name)
        if match:
            return role, match.group(1) if pattern.groups else None
    return None


def _collect_classic(peripherals: Iterable[DevicePeripheralModule]) -> Dict[str, _Candidate]:
    candidates: Dict[str, _Candidate] = {}
    for peripheral in peripherals:
        for group in peripheral.register_groups:
            for register in group.registers:
                classified = _classify(register.name, CLASSIC_REGISTER_PATTERNS)
                if classified is None:
                    continue
                role, number = classified
                candidate = candidates.setdefault(number, _Candidate(name=f"TC{number}", number=number))
                candidate.add(role, register, peripheral)
    return candidates


def _collect_instances(
    peripherals: Iterable[DevicePeripheralModule], claimed: Iterable[str]
) -> List[_Candidate]:
    claimed = set(claimed)
    candidates = []
    for peripheral in peripherals:
        if peripheral.name in claimed or not TIMER_MODULE_PATTERN.match(peripheral.name):
            continue
        for group in peripheral.register_groups:
            candidate = _Candidate(name=group.name, caption=peripheral.caption)
            for register in group.registers:
                classified = _classify(register.name, INSTANCE_REGISTER_PATTERNS)
                if classified is not None:
                    candidate.add(classified[0], register, peripheral)
            candidates.append(candidate)
    return candidates


def _timer_type(candidate: _Candidate) -> TimerType:
    wide = [
        register
        for role in (COUNTER, COMPARE, CAPTURE)
        for register in candidate.registers(role)
    ]
    if any(register.size >= 2 for register in wide):
        return TimerType.TIMER16
    # Split 16-bit counters (TCNT1L/TCNT1H)
    counter_names = {register.name for register in candidate.registers(COUNTER)}
    if any(name.endswith("H") for name in counter_names) and any(
        name.endswith("L") for name in counter_names
    ):
        return TimerType.TIMER16
    if candidate.number:
        for peripheral in candidate.peripherals:
            if peripheral.get_register("ASSR") is not None:
                return TimerType.TIMER8_ASYNC
            for group in peripheral.register_groups:
                for register in group.registers:
                    if register.get_bitfield(f"AS{candidate.number}") is not None:
                        return TimerType.TIMER8_ASYNC
    return TimerType.TIMER8


def _control_bitfields(candidate: _Candidate) -> List[Tuple[DevicePeripheralModule, DeviceRegisterBitfield]]:
    result = []
    for register in candidate.registers(CONTROL):
        peripheral = next(
            (p for p in candidate.peripherals if p.get_register(register.name) is not None),
            None,
        )
        if peripheral is None:
            continue
        result.extend((peripheral, bitfield) for bitfield in register.bitfields)
    return result


def _modes(candidate: _Candidate) -> List[TimerMode]:
    modes: List[TimerMode] = []
    for peripheral, bitfield in _control_bitfields(candidate):
        if not (MODE_BITFIELD_PATTERN.match(bitfield.name) or "waveform" in bitfield.caption.lower()):
            continue
        group = peripheral.get_value_group(bitfield.values)
        if group is None:
            continue
        for value in group.values:
            if any(m.name == value.name for m in modes):
                continue
            modes.append(
                TimerMode(
                    name=value.name,
                    caption=value.caption or value.name,
                    value=value.value,
                    wgm_bits=f"{bitfield.name} = {value.value:0{bitfield.bit_width}b}",
                )
            )
    return modes or list(DEFAULT_MODES)


def _prescalers(candidate: _Candidate) -> List[TimerPrescaler]:
    prescalers: List[TimerPrescaler] = []
    for peripheral, bitfield in _control_bitfields(candidate):
        if not (
            PRESCALER_BITFIELD_PATTERN.match(bitfield.name)
            or "clock select" in bitfield.caption.lower()
        ):
            continue
        group = peripheral.get_value_group(bitfield.values)
        if group is None:
            continue
        for value in group.values:
            if any(p.name == value.name for p in prescalers):
                continue
            prescalers.append(
                TimerPrescaler(
                    name=value.name,
                    caption=value.caption or value.name,
                    value=value.value,
                    divider=extract_divider(value.name, value.caption),
                )
            )
    return prescalers or list(DEFAULT_PRESCALERS)


def _find_pad(pinouts: List[DevicePinout], signal: str) -> Optional[str]:
    for pinout in pinouts:
        pins = pinout.find_pins_by_signal(signal)
        if pins:
            return pins[0].pad
    return None


def _output_modes(candidate: _Candidate, signal: str) -> List[str]:
    """Captions of the ``COM<n><X>`` value group driving an output."""
    com_name = "COM" + signal[2:]
    for peripheral, bitfield in _control_bitfields(candidate):
        if bitfield.name != com_name:
            continue
        group = peripheral.get_value_group(bitfield.values)
        if group is not None:
            return [value.caption or value.name for value in group.values]
    return [f"Output Compare {signal}"]


def _outputs(candidate: _Candidate, pinouts: List[DevicePinout]) -> List[TimerOutput]:
    outputs: List[TimerOutput] = []
    for register in candidate.registers(COMPARE):
        match = COMPARE_OUTPUT_PATTERN.match(register.name)
        if not match:
            continue
        signal = f"OC{match.group(1)}{match.group(2)}"
        if any(o.name == signal for o in outputs):
            continue
        outputs.append(
            TimerOutput(
                name=signal,
                pin=_find_pad(pinouts, signal),
                modes=_output_modes(candidate, signal),
            )
        )
    return outputs


def _instance_outputs(candidate: _Candidate, pinouts: List[DevicePinout]) -> List[TimerOutput]:
    """Waveform outputs (``WO<n>``) routed by the timer's module."""
    modules = {p.name for p in candidate.peripherals}
    outputs: List[TimerOutput] = []
    if not pinouts:
        return outputs
    for pin in pinouts[0].pins:
        for function in pin.functions:
            if function.module not in modules or not function.group.startswith(("WO", "OC")):
                continue
            name = f"{function.group}{function.index if function.index is not None else ''}"
            if any(o.name == name for o in outputs):
                continue
            outputs.append(TimerOutput(name=name, pin=pin.pad, modes=[f"Output Compare {name}"]))
    return outputs


def _registers(candidate: _Candidate) -> TimerRegisters:
    counters = [r.name for r in candidate.registers(COUNTER)]
    captures = [r.name for r in candidate.registers(CAPTURE)]

    def primary(names: List[str]) -> Optional[str]:
        # TCNT1 over TCNT1L/TCNT1H
        if not names:
            return None
        return min(names, key=len)

    return TimerRegisters(
        control=[r.name for r in candidate.registers(CONTROL)],
        counter=primary(counters),
        compare=[r.name for r in candidate.registers(COMPARE)],
        capture=primary(captures),
    )


def _build(candidate: _Candidate, pinouts: List[DevicePinout], classic: bool) -> DeviceTimerInfo:
    return DeviceTimerInfo(
        name=candidate.name,
        caption=candidate.caption or candidate.name,
        type=_timer_type(candidate),
        modes=_modes(candidate),
        prescalers=_prescalers(candidate),
        outputs=_outputs(candidate, pinouts) if classic else _instance_outputs(candidate, pinouts),
        registers=_registers(candidate),
    )


def assemble_timers(
    peripherals: List[DevicePeripheralModule], pinouts: List[DevicePinout]
) -> List[DeviceTimerInfo]:
    """
    Infer the timers of a device.

    A candidate becomes a timer only with at least one control and one
    counter register.

    Args:
        peripherals: Peripheral modules of the device
        pinouts: Already built pinouts, used to place compare outputs

    Returns:
        Classic timers ordered by number, then instance-style timers in
        declaration order
    """
    classic = _collect_classic(peripherals)
    timers = [
        _build(candidate, pinouts, classic=True)
        for _, candidate in sorted(classic.items(), key=lambda item: int(item[0]))
        if candidate.is_timer
    ]
    claimed = {p.name for c in classic.values() if c.is_timer for p in c.peripherals}
    timers += [
        _build(candidate, pinouts, classic=False)
        for candidate in _collect_instances(peripherals, claimed)
        if candidate.is_timer
    ]
    logger.debug("Inferred %d timers", len(timers))
    return timers
