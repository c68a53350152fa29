"""
Device model builder.

Combines the descriptor baseline of a device with its ATDF file, or with its
``.PIC`` file in PIC packs. Each sub-extraction (memory, fuses, peripherals,
...) runs under a guard: a failure there is logged and leaves that part
empty, while the device itself is still produced.
"""

import logging
import re
from typing import Callable, List, Optional, TypeVar

from pydantic import ValidationError

from atpackview.assembler import assemble_clock_info, assemble_electrical_parameters, assemble_timers
from atpackview.model import (
    AtPackDevice,
    DeviceFamily,
    DeviceInterrupt,
    DeviceSignature,
    DeviceValueGroup,
    MemoryLayout,
    ProgrammerInterface,
)

from .archive import ArchiveContents
from .document import XmlDocument, XmlNode
from .errors import DeviceParseError, XmlParseError
from .memory_parser import MemoryParserMixin
from .pdsc_parser import (
    DeviceFragment,
    extract_documentation,
    extract_interfaces,
    extract_memory,
    extract_variants,
)
from .pic_parser import PIC_PROTOCOL, PIC_SUFFIX, PicParserMixin
from .pinout_parser import PinoutParserMixin
from .register_parser import RegisterParserMixin
from .value_groups import ValueGroupIndex

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SIGNATURE_RE = re.compile(r"^SIGNATURE(\d+)$", re.IGNORECASE)


class DeviceModelBuilder(MemoryParserMixin, RegisterParserMixin, PinoutParserMixin, PicParserMixin):
    """
    Builds one ``AtPackDevice`` per descriptor device fragment.

    Handles:
    - Descriptor baseline (memory, variants, books, interfaces)
    - ATDF or ``.PIC`` lookup inside the archive
    - Value-group index shared by peripherals, fuses and lockbits
    - Derived timer, clock and electrical views
    """

    def __init__(self):
        self._value_groups = ValueGroupIndex()
        self._current_device = ""

    def _resolve_value_group(self, module: str, name: Optional[str]) -> Optional[DeviceValueGroup]:
        return self._value_groups.resolve(module, name)

    def _guard(self, label: str, func: Callable[[], T], default: T) -> T:
        """Run one sub-extraction; on failure log it and return ``default``."""
        try:
            return func()
        except Exception as e:
            logger.warning("%s: %s extraction failed, left empty: %s", self._current_device, label, e)
            return default

    def build_device(self, fragment: DeviceFragment, archive: ArchiveContents) -> AtPackDevice:
        """
        Build a device from its descriptor fragment and device file.

        Args:
            fragment: Descriptor entry of the device
            archive: Archive the descriptor came from

        Returns:
            AtPackDevice: The device; descriptor-only when no device file is found

        Raises:
            DeviceParseError: If the fragment has no name, its ATDF is
                malformed or lacks its device element, or any
                other failure stops the device from being assembled
        """
        if not fragment.name:
            raise DeviceParseError("descriptor entry has no Dname", device="?")
        try:
            return self._build(fragment, archive)
        except DeviceParseError:
            raise
        except Exception as e:
            logger.exception("%s: unexpected failure while building device", fragment.name)
            raise DeviceParseError(
                f"unexpected {type(e).__name__}: {e}", fragment.name, fragment.atdf_path or None
            ) from e

    def _build(self, fragment: DeviceFragment, archive: ArchiveContents) -> AtPackDevice:
        self._current_device = fragment.name
        self._value_groups = ValueGroupIndex()

        baseline_memory = self._guard("descriptor memory", lambda: extract_memory(fragment), MemoryLayout())
        baseline_variants = self._guard("descriptor variants", lambda: extract_variants(fragment), [])
        documentation = extract_documentation(fragment)
        interfaces = extract_interfaces(fragment)
        baseline = AtPackDevice(
            name=fragment.name,
            family=fragment.family,
            architecture=fragment.architecture,
            device_family=fragment.device_family,
            memory=baseline_memory,
            variants=baseline_variants,
            documentation=documentation,
            programmer=self._parse_programmer_baseline(
                interfaces or ([PIC_PROTOCOL] if fragment.device_family == DeviceFamily.PIC else [])
            ),
        )

        if fragment.device_family == DeviceFamily.PIC:
            return self._build_pic(fragment, archive, baseline)

        atdf_path = self._locate_atdf(fragment, archive)
        if atdf_path is None:
            logger.warning("%s: no ATDF file in archive, using descriptor data only", fragment.name)
            return baseline

        try:
            doc = XmlDocument.parse(archive[atdf_path], atdf_path)
        except XmlParseError as e:
            raise DeviceParseError(e.reason, fragment.name, atdf_path) from e
        device = doc.find("//devices/device")
        if device is None:
            raise DeviceParseError("ATDF has no devices/device element", fragment.name, atdf_path)

        self._value_groups = ValueGroupIndex.from_document(doc)
        logger.debug("%s: %d value groups indexed", fragment.name, len(self._value_groups))

        memory = self._guard("memory", lambda: self._parse_memory(device), MemoryLayout())
        if not memory.all_segments:
            memory = baseline_memory
        peripherals = self._guard("peripherals", lambda: self._parse_peripherals(doc, device), [])
        pinouts = self._guard("pinouts", lambda: self._parse_pinouts(doc, device), [])
        signals = self._guard(
            "signals",
            lambda: [f for functions in self._signal_map(device).values() for f in functions],
            [],
        )
        variants = self._guard("variants", lambda: self._parse_variants(doc, pinouts), []) or baseline_variants

        try:
            result = AtPackDevice(
                name=fragment.name,
                family=fragment.family or device.attr("family", ""),
                architecture=fragment.architecture or device.attr("architecture", ""),
                device_family=fragment.device_family,
                signatures=self._guard("signatures", lambda: self._parse_signatures(doc), []),
                memory=memory,
                fuses=self._guard("fuses", lambda: self._parse_fuses(doc), []),
                lockbits=self._guard("lockbits", lambda: self._parse_lockbits(doc), []),
                variants=variants,
                documentation=documentation,
                programmer=self._guard(
                    "programmer",
                    lambda: self._parse_programmer(device, pinouts, interfaces),
                    self._parse_programmer_baseline(interfaces),
                ),
                modules=self._guard("modules", lambda: self._parse_modules(doc, device), []),
                interrupts=self._guard("interrupts", lambda: self._parse_interrupts(device), []),
                peripherals=peripherals,
                pinouts=pinouts,
                timers=self._guard("timers", lambda: assemble_timers(peripherals, pinouts), []),
                clock_info=self._guard("clock", lambda: assemble_clock_info(peripherals, signals), None),
                electrical_parameters=self._guard(
                    "electrical", lambda: assemble_electrical_parameters(doc), None
                ),
            )
        except ValidationError as e:
            raise DeviceParseError(f"invalid device model: {e}", fragment.name, atdf_path) from e
        logger.info(
            "Parsed %s: %d peripherals, %d fuses, %d timers",
            result.name,
            len(result.peripherals),
            len(result.fuses),
            len(result.timers),
        )
        return result

    def _build_pic(
        self, fragment: DeviceFragment, archive: ArchiveContents, baseline: AtPackDevice
    ) -> AtPackDevice:
        """
        Build a PIC device from its ``.PIC`` file.

        Configuration words are reported as fuses. PIC devices have no
        lockbits and no ATDF peripheral, clock or electrical data.
        """
        pic_path = archive.find_device_file(fragment.name, PIC_SUFFIX)
        if pic_path is None:
            logger.warning("%s: no .PIC file in archive, using descriptor data only", fragment.name)
            return baseline

        try:
            doc = XmlDocument.parse(archive[pic_path], pic_path)
        except XmlParseError as e:
            raise DeviceParseError(e.reason, fragment.name, pic_path) from e
        if doc.root.tag != "PIC":
            raise DeviceParseError(
                f"expected a PIC root element, found <{doc.root.tag}>", fragment.name, pic_path
            )

        memory = self._guard("memory", lambda: self._parse_pic_memory(doc), MemoryLayout())
        pinouts = self._guard("pinouts", lambda: self._parse_pic_pinouts(doc, fragment.name), [])
        try:
            result = AtPackDevice(
                name=fragment.name,
                family=fragment.family,
                architecture=fragment.architecture or doc.root.attr("arch", ""),
                device_family=DeviceFamily.PIC,
                signatures=self._guard("signatures", lambda: self._parse_pic_signatures(doc), []),
                memory=memory if memory.all_segments else baseline.memory,
                fuses=self._guard("configuration words", lambda: self._parse_config_words(doc), []),
                variants=baseline.variants,
                documentation=baseline.documentation,
                programmer=self._guard(
                    "programmer",
                    lambda: self._parse_programmer(None, pinouts, baseline.programmer.protocols),
                    baseline.programmer,
                ),
                pinouts=pinouts,
            )
        except ValidationError as e:
            raise DeviceParseError(f"invalid device model: {e}", fragment.name, pic_path) from e
        logger.info(
            "Parsed %s: %d configuration words, %d pins",
            result.name,
            len(result.fuses),
            len(pinouts[0].pins) if pinouts else 0,
        )
        return result

    @staticmethod
    def _locate_atdf(fragment: DeviceFragment, archive: ArchiveContents) -> Optional[str]:
        if fragment.atdf_path:
            path = archive.resolve(fragment.atdf_path)
            if path is not None:
                return path
        return archive.find_device_file(fragment.name)

    def _parse_programmer_baseline(self, interfaces: List[str]) -> ProgrammerInterface:
        return self._parse_programmer(None, [], interfaces)

    @staticmethod
    def _parse_signatures(doc: XmlDocument) -> List[DeviceSignature]:
        """
        Properties of the ``SIGNATURES`` group.

        ``SIGNATUREn`` entries get address ``n`` and come first, ordered by
        address; other properties (``JTAGID``, ...) follow by name.
        """
        signatures = []
        for node in doc.find_all("//property-group[@name='SIGNATURES']/property"):
            name = node.attr("name")
            value = node.attr_hex("value")
            if not name or value is None:
                continue
            match = _SIGNATURE_RE.match(name)
            signatures.append(
                DeviceSignature(name=name, address=int(match.group(1)) if match else None, value=value)
            )
        return sorted(
            signatures,
            key=lambda s: (s.address is None, s.address if s.address is not None else 0, s.name),
        )

    @staticmethod
    def _parse_interrupts(device: XmlNode) -> List[DeviceInterrupt]:
        interrupts = []
        for node in device.find_all("interrupts/interrupt"):
            name = node.attr("name")
            index = node.attr_int("index")
            if not name or index is None:
                continue
            interrupts.append(DeviceInterrupt(index=index, name=name, caption=node.attr("caption", "")))
        # sorted() is stable, so duplicate indices keep declaration order
        return sorted(interrupts, key=lambda i: i.index)
