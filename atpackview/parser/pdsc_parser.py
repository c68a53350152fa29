"""
Package descriptor (``.pdsc``) and pack index (``.pidx``) extraction.

The descriptor names the package and lists the devices it covers. Its
per-device memory, variant, book and interface elements are kept as the
descriptor-level baseline: they are all a device has when the archive
carries no ATDF file for it.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from atpackview.model import (
    AtPackMetadata,
    DeviceFamily,
    Documentation,
    MemoryLayout,
    MemorySegment,
    PackIndexEntry,
)
from atpackview.utils import filter_none

from .document import XmlDocument, XmlNode
from .errors import MetadataMissingError
from .memory_parser import build_layout, classify_segment
from .pinout_parser import parse_variant

logger = logging.getLogger(__name__)

PIC_PREFIXES = ("pic", "dspic")


@dataclass(frozen=True)
class DeviceFragment:
    """One ``family//device`` entry of the descriptor."""

    name: str
    node: XmlNode
    family: str = ""
    architecture: str = ""
    atdf_path: Optional[str] = None
    device_family: DeviceFamily = DeviceFamily.ATMEL


def _package(doc: XmlDocument) -> Optional[XmlNode]:
    if doc.root.tag == "package":
        return doc.root
    return doc.find("//package")


def _package_field(package: XmlNode, name: str) -> str:
    """Child element text, else the attribute of the same name."""
    return package.child_text(name) or package.attr(name, "")


def extract_metadata(doc: XmlDocument) -> AtPackMetadata:
    """
    Read package name, vendor, description and url.

    Raises:
        MetadataMissingError: If the package name is given neither as an
            element nor as an attribute
    """
    package = _package(doc)
    name = _package_field(package, "name") if package is not None else ""
    if not name:
        raise MetadataMissingError("Package descriptor does not name the package", doc.path)
    return AtPackMetadata(
        name=name,
        description=_package_field(package, "description"),
        vendor=_package_field(package, "vendor"),
        url=_package_field(package, "url"),
    )


def extract_version(doc: XmlDocument) -> str:
    """Latest release version (first ``release``), else the package attribute."""
    release = doc.find("//releases/release")
    if release is not None and release.attr("version"):
        return release.attr("version")
    package = _package(doc)
    return package.attr("version", "") if package is not None else ""


def detect_device_family(doc: XmlDocument) -> DeviceFamily:
    """
    Tell PIC packs (``.PIC`` device files) from AVR packs (ATDF files).

    The package name, then the ``Dfamily`` names, then the device names are
    checked for a PIC marker. The vendor is not a hint: Microchip ships AVR
    packs too.
    """
    package = _package(doc)
    package_name = _package_field(package, "name").lower() if package is not None else ""
    if any(prefix in package_name for prefix in PIC_PREFIXES):
        return DeviceFamily.PIC
    for family in doc.find_all("//family"):
        if "pic" in family.attr("Dfamily", "").lower():
            return DeviceFamily.PIC
    for device in doc.find_all("//family//device"):
        if device.attr("Dname", "").lower().startswith(PIC_PREFIXES):
            return DeviceFamily.PIC
    return DeviceFamily.ATMEL


def _nearest_processor(node: XmlNode) -> Optional[XmlNode]:
    """``processor`` of the device, else of the closest enclosing subFamily/family."""
    current: Optional[XmlNode] = node
    while current is not None:
        processor = current.find("processor")
        if processor is not None:
            return processor
        current = current.parent
    return None


def list_device_fragments(doc: XmlDocument) -> List[DeviceFragment]:
    """All ``family//device`` entries in declaration order."""
    device_family = detect_device_family(doc)
    fragments = []
    for node in doc.find_all("//family//device"):
        name = node.attr("Dname", "")
        family = node.closest("family")
        processor = _nearest_processor(node)
        atdf = node.find(".//atdf")
        fragments.append(
            DeviceFragment(
                name=name,
                node=node,
                family=family.attr("Dfamily", "") if family is not None else "",
                architecture=processor.attr("Dcore", "") if processor is not None else "",
                atdf_path=atdf.attr("name") if atdf is not None else None,
                device_family=device_family,
            )
        )
    logger.debug("Descriptor lists %d devices", len(fragments))
    return fragments


def extract_memory(fragment: DeviceFragment) -> MemoryLayout:
    """Memory layout from descriptor ``memory`` elements."""
    segments = []
    for node in fragment.node.find_all(".//memory"):
        name = node.attr("name") or node.attr("id")
        size = node.attr_hex("size")
        if not name or not size:
            continue
        segment_type = classify_segment(name, node.attr("type"))
        segments.append(
            MemorySegment(
                **filter_none(
                    {
                        "name": name,
                        "start": node.attr_hex("start") or 0,
                        "size": size,
                        "page_size": node.attr_hex("pagesize"),
                        "type": segment_type.value if segment_type else node.attr("type"),
                        "section": name,
                    }
                )
            )
        )
    return build_layout(segments)


def extract_variants(fragment: DeviceFragment):
    variants = [parse_variant(node) for node in fragment.node.find_all(".//variant")]
    return [v for v in variants if v is not None]


def extract_documentation(fragment: DeviceFragment) -> Documentation:
    """Classify ``book`` elements by title."""
    datasheet = None
    product_page = None
    notes: List[str] = []
    books = fragment.node.find_all(".//book") or fragment.node.find_all("ancestor::family//book")
    for book in books:
        name = book.attr("name")
        title = book.attr("title", "").lower()
        if not name or not title:
            continue
        if "datasheet" in title or "data sheet" in title:
            datasheet = datasheet or name
        elif "device page" in title:
            product_page = product_page or name
        elif "application note" in title or "app note" in title:
            notes.append(name)
    return Documentation(datasheet=datasheet, product_page=product_page, application_notes=notes)


def extract_interfaces(fragment: DeviceFragment) -> List[str]:
    protocols: List[str] = []
    for node in fragment.node.find_all(".//interface"):
        protocol = node.attr("type") or node.attr("name")
        if protocol and protocol not in protocols:
            protocols.append(protocol)
    return protocols


def parse_pack_index(doc: XmlDocument) -> List[PackIndexEntry]:
    """Descriptor entries of a vendor ``.pidx`` index; incomplete ones are skipped."""
    entries = []
    for node in doc.find_all("//pdsc"):
        name = node.attr("name")
        url = node.attr("url")
        vendor = node.attr("vendor")
        if not (name and url and vendor):
            logger.debug("Skipping incomplete index entry %s", node.attrs)
            continue
        # Names already carry their _DFP suffix.
        base = url if url.endswith("/") else url + "/"
        entries.append(
            PackIndexEntry(
                name=f"{vendor}.{name}",
                url=f"{base}{vendor}.{name}.pdsc",
                version=node.attr("version", ""),
                description=f"{vendor} {name} Device Family Pack",
            )
        )
    logger.info("Pack index lists %d packs", len(entries))
    return entries
