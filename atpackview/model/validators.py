"""
Validation utilities for loaded AtPacks.

Provides semantic checks beyond what Pydantic enforces per model:
cross-device uniqueness, value-group references and register placement.
"""

from dataclasses import dataclass
from typing import List, Set, Tuple

from .device import AtPack, AtPackDevice
from .fuses import find_overlap
from .registers import DevicePeripheralModule


@dataclass
class ValidationIssue:
    """Validation finding with context."""

    severity: str  # 'error', 'warning'
    message: str
    location: str  # e.g. 'device:ATmega328P:peripheral:TC0'
    suggestion: str = ""


class AtPackValidator:
    """
    Semantic AtPack validator.

    Parsed packs normally pass every check; the validator exists to
    diagnose packs assembled by hand or archives with unusual content.
    """

    def __init__(self, atpack: AtPack):
        self.atpack = atpack
        self.errors: List[ValidationIssue] = []
        self.warnings: List[ValidationIssue] = []

    def validate_all(self) -> bool:
        """
        Run all validation checks.

        Returns:
            True if no errors (warnings are allowed)
        """
        self.errors.clear()
        self.warnings.clear()

        self.validate_unique_devices()
        for device in self.atpack.devices:
            self.validate_value_references(device)
            self.validate_fuse_ranges(device)
            self.validate_memory(device)
            self.validate_register_overlaps(device)

        return len(self.errors) == 0

    def validate_unique_devices(self) -> None:
        seen: Set[str] = set()
        for name in self.atpack.device_names:
            if name in seen:
                self.errors.append(
                    ValidationIssue(
                        severity="error",
                        message=f"Duplicate device name: '{name}'",
                        location=f"device:{name}",
                    )
                )
            seen.add(name)

    def validate_value_references(self, device: AtPackDevice) -> None:
        """Every bitfield ``values`` reference must name a local value group."""
        for peripheral in device.peripherals:
            known = set(peripheral.value_group_map)
            for register, bitfield in self._bitfields(peripheral):
                if bitfield.values is not None and bitfield.values not in known:
                    self.errors.append(
                        ValidationIssue(
                            severity="error",
                            message=f"Bitfield '{bitfield.name}' references unknown value group "
                            f"'{bitfield.values}'",
                            location=f"device:{device.name}:peripheral:{peripheral.name}"
                            f":register:{register}",
                        )
                    )

    @staticmethod
    def _bitfields(peripheral: DevicePeripheralModule):
        for group in peripheral.register_groups:
            for register in group.registers:
                for bitfield in register.bitfields:
                    yield register.name, bitfield

    def validate_fuse_ranges(self, device: AtPackDevice) -> None:
        ranges: List[Tuple[str, List[Tuple[str, int, int]]]] = [
            (fuse.name, [(b.name, b.bit_offset, b.bit_width) for b in fuse.bitfields])
            for fuse in device.fuses
        ]
        ranges += [
            (lock.name, [(b.name, b.bit_offset, b.bit_width) for b in lock.bits])
            for lock in device.lockbits
        ]
        for owner, bits in ranges:
            overlap = find_overlap(bits)
            if overlap:
                self.errors.append(
                    ValidationIssue(
                        severity="error",
                        message=f"Overlapping bits '{overlap[0]}' and '{overlap[1]}'",
                        location=f"device:{device.name}:fuse:{owner}",
                    )
                )

    def validate_memory(self, device: AtPackDevice) -> None:
        if not device.memory.all_segments:
            self.warnings.append(
                ValidationIssue(
                    severity="warning",
                    message=f"Device '{device.name}' has no memory segments",
                    location=f"device:{device.name}:memory",
                    suggestion="The archive may lack the device's ATDF file",
                )
            )

    def validate_register_overlaps(self, device: AtPackDevice) -> None:
        """Registers inside one register group must not share bytes."""
        for peripheral in device.peripherals:
            for group in peripheral.register_groups:
                regs = sorted(group.registers, key=lambda r: r.offset)
                for reg1, reg2 in zip(regs, regs[1:]):
                    if reg1.offset + reg1.size > reg2.offset:
                        self.warnings.append(
                            ValidationIssue(
                                severity="warning",
                                message=f"Overlapping registers: '{reg1.name}' at {reg1.hex_address} "
                                f"and '{reg2.name}' at {reg2.hex_address}",
                                location=f"device:{device.name}:peripheral:{peripheral.name}"
                                f":group:{group.name}",
                            )
                        )

    @property
    def issues(self) -> List[ValidationIssue]:
        return self.errors + self.warnings

    def get_error_summary(self) -> str:
        """Get human-readable error summary."""
        lines = []

        if self.errors:
            lines.append(f"\n{len(self.errors)} Error(s):")
            for err in self.errors:
                lines.append(f"  [{err.severity.upper()}] {err.location}: {err.message}")
                if err.suggestion:
                    lines.append(f"           → {err.suggestion}")

        if self.warnings:
            lines.append(f"\n{len(self.warnings)} Warning(s):")
            for warn in self.warnings:
                lines.append(f"  [{warn.severity.upper()}] {warn.location}: {warn.message}")
                if warn.suggestion:
                    lines.append(f"           → {warn.suggestion}")

        if not self.errors and not self.warnings:
            lines.append("\n✓ All validation checks passed")

        return "\n".join(lines)
