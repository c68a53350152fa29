"""
PIC device file parsing mixin for ``DeviceModelBuilder``.

A ``.PIC`` file is Microchip's EDC description of one PIC device. Once the
``edc:`` namespace is stripped its attributes are plain names
(``beginaddr``, ``cname``, ``nzwidth``...). Configuration words (``DCRDef``)
become ``FuseConfig`` entries and the ``PinList`` becomes a single pinout.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from atpackview.model import (
    DevicePin,
    DevicePinFunction,
    DevicePinout,
    DeviceRegisterBitfield,
    DeviceSignature,
    FuseBitfield,
    FuseBitValue,
    FuseConfig,
    MemoryLayout,
    MemorySegment,
    SegmentType,
)
from atpackview.utils import filter_none

from .document import XmlDocument, XmlNode
from .memory_parser import build_layout
from .protocols import DeviceHostContext
from .register_parser import drop_overlapping

logger = logging.getLogger(__name__)

PIC_SUFFIX = ".pic"
PIC_PROTOCOL = "ICSP"
DEFAULT_CONFIG_MASK = 0x3FFF

# (element, fallback name, segment type)
PIC_SECTORS: Tuple[Tuple[str, str, SegmentType], ...] = (
    ("CodeSector", "CODE", SegmentType.FLASH),
    ("EEDataSector", "EEPROM", SegmentType.EEPROM),
    ("ConfigFuseSector", "CONFIG", SegmentType.FUSES),
)

# (pattern, module) searched in the upper-cased function name; first hit wins.
PIC_FUNCTION_TABLE: Tuple[Tuple["re.Pattern[str]", str], ...] = (
    (re.compile(r"VDD|VSS|VPP"), "POWER"),
    (re.compile(r"MCLR|PGM|PGC|PGD|ICSP"), "PROGRAMMING"),
    (re.compile(r"OSC|CLKI|CLKO"), "OSCILLATOR"),
    (re.compile(r"^INT\d*$"), "INTERRUPT"),
    (re.compile(r"^AN\d+$"), "ADC"),
    (re.compile(r"^(SCK|SDI|SDO|SS)\d*$"), "SPI"),
    (re.compile(r"^(SCL|SDA)\d*$"), "I2C"),
    (re.compile(r"^(TX|RX|DT|CK)\d*$"), "UART"),
    (re.compile(r"^(T\d+CKI|T\d+G|CCP\d+|PWM\d+)"), "TIMER"),
    (re.compile(r"^C\d+(OUT|IN)|CVREF"), "COMPARATOR"),
    (re.compile(r"VREF"), "VOLTAGE_REF"),
)
DEFAULT_PIC_MODULE = "GPIO"

# "(FOSC & 0x3) == 0x2" -> 0x2
_WHEN_VALUE_RE = re.compile(r"==\s*0x([0-9a-fA-F]+)")


def classify_pic_function(name: str) -> str:
    """Peripheral module a PIC pin function belongs to."""
    upper = name.upper()
    for pattern, module in PIC_FUNCTION_TABLE:
        if pattern.search(upper):
            return module
    return DEFAULT_PIC_MODULE


def _sector_span(node: XmlNode) -> Optional[Tuple[int, int]]:
    """``(start, size)`` of a sector; ``endaddr`` is exclusive."""
    begin = node.attr_hex("beginaddr")
    end = node.attr_hex("endaddr")
    if begin is None or end is None or end <= begin:
        return None
    return begin, end - begin


class PicParserMixin(DeviceHostContext):
    """Mixin implementing memory, signature, configuration word and pin extraction for ``.PIC`` files."""

    def _parse_pic_memory(self, doc: XmlDocument) -> MemoryLayout:
        segments: List[MemorySegment] = []
        for element, fallback, segment_type in PIC_SECTORS:
            for node in doc.find_all(f"//{element}"):
                span = _sector_span(node)
                if span is None:
                    continue
                segments.append(
                    MemorySegment(
                        **filter_none(
                            {
                                "name": node.attr("sectionname") or node.attr("regionid") or fallback,
                                "start": span[0],
                                "size": span[1],
                                "type": segment_type.value,
                                "section": node.attr("sectiondesc"),
                            }
                        )
                    )
                )

        data_space = doc.find("//DataSpace")
        ram_end = data_space.attr_hex("endaddr") if data_space is not None else None
        if ram_end:
            segments.append(MemorySegment(name="SRAM", start=0, size=ram_end, type=SegmentType.RAM.value))

        logger.debug("%d .PIC memory segments", len(segments))
        return build_layout(segments)

    @staticmethod
    def _parse_pic_signatures(doc: XmlDocument) -> List[DeviceSignature]:
        node = doc.find("//DeviceIDSector")
        if node is None:
            return []
        address = node.attr_hex("beginaddr")
        value = node.attr_hex("value")
        if address is None or value is None:
            return []
        return [DeviceSignature(name="DEVID", address=address, value=value)]

    def _parse_config_words(self, doc: XmlDocument) -> List[FuseConfig]:
        configs = []
        for node in doc.find_all("//DCRDef"):
            config = self._parse_config_word(node)
            if config is not None:
                configs.append(config)
        logger.debug("%d configuration words", len(configs))
        return configs

    def _parse_config_word(self, node: XmlNode) -> Optional[FuseConfig]:
        """
        One ``DCRDef`` as a fuse.

        Field positions are not stored: each ``DCRFieldDef`` of the first
        ``DCRMode`` starts where the previous one ended, and ``AdjustPoint``
        elements skip unused bits.
        """
        name = node.attr("cname") or node.attr("name") or "CONFIG"
        width = node.attr_int("nzwidth")
        mask = node.attr_hex("impl") or ((1 << width) - 1 if width else DEFAULT_CONFIG_MASK)
        default = node.attr_hex("default")

        bitfields: List[DeviceRegisterBitfield] = []
        values: Dict[str, List[FuseBitValue]] = {}
        mode = node.find("DCRModeList/DCRMode")
        position = 0
        for child in mode.find_all("*") if mode is not None else []:
            if child.tag == "AdjustPoint":
                position += child.attr_int("offset") or 0
                continue
            if child.tag != "DCRFieldDef":
                continue
            field_name = child.attr("cname") or child.attr("name")
            field_width = child.attr_int("nzwidth")
            if not field_width:
                continue
            # Unnamed or unimplemented fields still occupy their bits
            if field_name and child.attr_hex("mask"):
                try:
                    bitfields.append(
                        DeviceRegisterBitfield(
                            name=field_name,
                            caption=child.attr("desc", ""),
                            bit_offset=position,
                            bit_width=field_width,
                        )
                    )
                    values[field_name] = self._field_values(child)
                except ValidationError as e:
                    logger.warning("Skipping field %s of %s: %s", field_name, name, e)
            position += field_width

        fields = [
            FuseBitfield(
                name=b.name,
                description=b.caption,
                bit_offset=b.bit_offset,
                bit_width=b.bit_width,
                values=values.get(b.name) or None,
            )
            for b in drop_overlapping(bitfields, name)
        ]
        try:
            return FuseConfig(
                name=name,
                offset=node.attr_hex("_addr") or 0,
                size=(width + 7) // 8 if width else 2,
                mask=mask,
                default_value=default if default is not None else mask,
                bitfields=fields,
            )
        except ValidationError as e:
            logger.warning("Skipping configuration word %s: %s", name, e)
            return None

    @staticmethod
    def _field_values(field: XmlNode) -> List[FuseBitValue]:
        values = []
        for semantic in field.find_all(".//DCRFieldSemantic"):
            match = _WHEN_VALUE_RE.search(semantic.attr("when", ""))
            if match is None:
                continue
            values.append(
                FuseBitValue(
                    value=int(match.group(1), 16),
                    name=semantic.attr("cname", ""),
                    description=semantic.attr("desc", ""),
                )
            )
        return values

    @staticmethod
    def _parse_pic_pinouts(doc: XmlDocument, device_name: str) -> List[DevicePinout]:
        """
        The ``PinList`` as one pinout.

        Pins are numbered by their order in the list. The first
        ``VirtualPin`` names the pad and the others are its functions.
        """
        pin_list = doc.find("//PinList")
        if pin_list is None:
            logger.debug("%s: no PinList in .PIC file", device_name)
            return []

        pins = []
        for position, node in enumerate(pin_list.find_all("Pin"), start=1):
            names = [v.attr("name") for v in node.find_all("VirtualPin")]
            if not names or not names[0]:
                continue
            functions = [
                DevicePinFunction(group=name, function=name, module=classify_pic_function(name))
                for name in names[1:]
                if name
            ]
            pins.append(DevicePin(position=position, pad=names[0], functions=functions))

        if not pins:
            return []
        return [DevicePinout(name=f"{device_name}_PINOUT", caption=f"{device_name} Package", pins=pins)]
