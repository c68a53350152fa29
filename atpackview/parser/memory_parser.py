"""Memory layout parsing mixin for ``DeviceModelBuilder``."""

import logging
from typing import List, Optional, Sequence, Tuple

from atpackview.model import MemoryLayout, MemorySegment, SegmentType
from atpackview.utils import filter_none

from .document import XmlNode
from .protocols import DeviceHostContext

logger = logging.getLogger(__name__)

# (name fragment, segment type), first match wins.
SEGMENT_TYPE_TABLE: Tuple[Tuple[str, SegmentType], ...] = (
    ("flash", SegmentType.FLASH),
    ("prog", SegmentType.FLASH),
    ("eeprom", SegmentType.EEPROM),
    ("fuse", SegmentType.FUSES),
    ("lock", SegmentType.LOCKBITS),
    ("sram", SegmentType.RAM),
    ("iram", SegmentType.RAM),
    ("ram", SegmentType.RAM),
    ("signature", SegmentType.SIGNATURES),
)

_TYPE_ALIASES = {
    "flash": SegmentType.FLASH,
    "ram": SegmentType.RAM,
    "sram": SegmentType.RAM,
    "iram": SegmentType.RAM,
    "eeprom": SegmentType.EEPROM,
    "fuses": SegmentType.FUSES,
    "fuse": SegmentType.FUSES,
    "lockbits": SegmentType.LOCKBITS,
    "lockbit": SegmentType.LOCKBITS,
    "signatures": SegmentType.SIGNATURES,
}

_SRAM_PREFERRED = ("IRAM", "INTERNAL_SRAM")


def classify_segment(name: str, declared_type: Optional[str] = None) -> Optional[SegmentType]:
    """Segment type from the declared ``type`` attribute, else from the name."""
    if declared_type:
        return _TYPE_ALIASES.get(declared_type.lower())
    lowered = name.lower()
    for fragment, segment_type in SEGMENT_TYPE_TABLE:
        if fragment in lowered:
            return segment_type
    return None


def build_layout(all_segments: Sequence[MemorySegment]) -> MemoryLayout:
    """Pick the named shortcuts out of ``all_segments``."""
    segments = [s for s in all_segments if not s.is_address_space]

    def pick(segment_type: SegmentType, preferred: Sequence[str] = ()) -> Optional[MemorySegment]:
        candidates = [s for s in segments if classify_segment(s.name, s.type) == segment_type]
        for name in preferred:
            match = next((s for s in candidates if s.name.upper() == name), None)
            if match is not None:
                return match
        return candidates[0] if candidates else None

    return MemoryLayout(
        flash=pick(SegmentType.FLASH, ("FLASH",)),
        sram=pick(SegmentType.RAM, _SRAM_PREFERRED),
        eeprom=pick(SegmentType.EEPROM, ("EEPROM",)),
        fuses=pick(SegmentType.FUSES, ("FUSES",)),
        lockbits=pick(SegmentType.LOCKBITS, ("LOCKBITS",)),
        all_segments=list(all_segments),
    )


class MemoryParserMixin(DeviceHostContext):
    """Mixin building ``MemoryLayout`` from ATDF address spaces."""

    def _parse_memory(self, device: XmlNode) -> MemoryLayout:
        all_segments: List[MemorySegment] = []
        for space in device.find_all("address-spaces/address-space"):
            all_segments.extend(self._parse_address_space(space))
        logger.debug("%d memory entries", len(all_segments))
        return build_layout(all_segments)

    def _parse_address_space(self, space: XmlNode) -> List[MemorySegment]:
        """
        Flatten one address space.

        No segments: the space itself is listed. One segment: only the
        segment. Several: the space followed by its segments.
        """
        space_name = space.attr("name") or space.attr("id") or "unknown"
        segments = [
            self._parse_segment(node, space_name) for node in space.find_all("memory-segment")
        ]
        segments = [s for s in segments if s is not None]

        space_type = classify_segment(space_name)
        space_entry = MemorySegment(
            name=space_name,
            start=space.attr_hex("start") or 0,
            size=space.attr_hex("size") or 0,
            type=space_type.value if space_type else None,
            section="",
            is_address_space=True,
        )
        if not segments:
            return [space_entry]
        if len(segments) == 1:
            return segments
        return [space_entry] + segments

    def _parse_segment(self, node: XmlNode, space_name: str) -> Optional[MemorySegment]:
        name = node.attr("name")
        if not name:
            logger.warning("Skipping unnamed memory segment in address space %s", space_name)
            return None
        segment_type = classify_segment(name, node.attr("type"))
        return MemorySegment(
            **filter_none(
                {
                    "name": name,
                    "start": node.attr_hex("start") or 0,
                    "size": node.attr_hex("size") or 0,
                    "page_size": node.attr_hex("pagesize"),
                    "type": segment_type.value if segment_type else node.attr("type"),
                    "section": "" if name.lower() == space_name.lower() else name,
                    "parent_address_space": space_name,
                }
            )
        )
