"""
XML documents with tolerant lookups.

AtPack descriptors and ATDF files are not schema-strict across vendors and
families, so every lookup on ``XmlNode`` answers ``None`` (or the supplied
default) for a missing element, a missing attribute or an unparsable number
instead of raising.
"""

import logging
from typing import Dict, List, Optional

from lxml import etree

from atpackview.utils import parse_float, parse_hex, parse_int

from .errors import XmlParseError

logger = logging.getLogger(__name__)

_BOM = b"\xef\xbb\xbf"


def _make_parser(encoding: Optional[str] = None) -> etree.XMLParser:
    return etree.XMLParser(
        encoding=encoding,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
        remove_comments=True,
        remove_pis=True,
    )


def _local_name(name: str) -> str:
    """``{ns}tag`` and ``prefix:tag`` both become ``tag``."""
    if name.startswith("{"):
        name = name.split("}", 1)[1]
    return name.rsplit(":", 1)[-1]


def _strip_namespaces(root: etree._Element) -> None:
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        element.tag = _local_name(element.tag)
        for key in [k for k in element.attrib if k.startswith("{") or ":" in k]:
            value = element.attrib.pop(key)
            local = _local_name(key)
            # An unprefixed attribute of the same name wins
            if local not in element.attrib:
                element.attrib[local] = value
    etree.cleanup_namespaces(root)


def _parse_root(data: bytes) -> etree._Element:
    try:
        return etree.fromstring(data, parser=_make_parser())
    except etree.XMLSyntaxError as e:
        repaired = data.decode("utf-8", errors="replace").encode("utf-8")
        if repaired == data:
            raise
        logger.debug("Retrying with invalid bytes replaced: %s", e.msg)
        try:
            return etree.fromstring(repaired, parser=_make_parser(encoding="utf-8"))
        except etree.XMLSyntaxError:
            raise e from None


class XmlNode:
    """Read-only view of one XML element."""

    __slots__ = ("_element",)

    def __init__(self, element: etree._Element):
        self._element = element

    def __repr__(self) -> str:
        name = self.attr("name")
        return f"<XmlNode {self.tag}{' ' + name if name else ''}>"

    @property
    def tag(self) -> str:
        return self._element.tag

    @property
    def line(self) -> Optional[int]:
        return self._element.sourceline

    @property
    def attrs(self) -> Dict[str, str]:
        return dict(self._element.attrib)

    def find(self, path: str, **variables: str) -> Optional["XmlNode"]:
        """First element matching an XPath relative to this node."""
        matches = self.find_all(path, **variables)
        return matches[0] if matches else None

    def find_all(self, path: str, **variables: str) -> List["XmlNode"]:
        """
        All elements matching an XPath relative to this node, in document order.

        Keyword arguments bind XPath variables (``[@name=$name]``), so names
        containing quotes need no escaping.
        """
        result = self._element.xpath(path, **variables)
        if not isinstance(result, list):
            return []
        return [XmlNode(item) for item in result if isinstance(item, etree._Element)]

    def attr(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self._element.get(name)
        return value if value is not None else default

    def attr_int(self, name: str) -> Optional[int]:
        """Decimal attribute (``0x`` prefixed values are accepted too)."""
        return parse_int(self._element.get(name))

    def attr_hex(self, name: str) -> Optional[int]:
        """Hexadecimal attribute, with or without the ``0x`` prefix."""
        return parse_hex(self._element.get(name))

    def attr_float(self, name: str) -> Optional[float]:
        return parse_float(self._element.get(name))

    def text(self, default: str = "") -> str:
        """Stripped text content of this element."""
        value = self._element.text
        if value is None:
            return default
        value = value.strip()
        return value if value else default

    def child_text(self, tag: str, default: str = "") -> str:
        child = self.find(tag)
        return child.text(default) if child is not None else default

    @property
    def parent(self) -> Optional["XmlNode"]:
        parent = self._element.getparent()
        return XmlNode(parent) if parent is not None else None

    def closest(self, tag: str) -> Optional["XmlNode"]:
        """Nearest ancestor (or self) with the given tag."""
        element = self._element
        while element is not None:
            if element.tag == tag:
                return XmlNode(element)
            element = element.getparent()
        return None


class XmlDocument:
    """Parsed, namespace-free XML document."""

    def __init__(self, root: etree._Element, path: str = ""):
        self.root = XmlNode(root)
        self.path = path

    @classmethod
    def parse(cls, data: bytes, path: str = "") -> "XmlDocument":
        """
        Parse raw XML bytes.

        Bytes that are not valid in the declared encoding are replaced
        (U+FFFD) and the document is parsed again as UTF-8.

        Args:
            data: Document bytes (a UTF-8 BOM or leading whitespace is tolerated)
            path: Archive path, used in error messages

        Raises:
            XmlParseError: If the document is not well-formed
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        if data.startswith(_BOM):
            data = data[len(_BOM) :]
        data = data.lstrip()
        if not data:
            raise XmlParseError("Empty XML document", path)

        try:
            root = _parse_root(data)
        except etree.XMLSyntaxError as e:
            raise XmlParseError(f"XML syntax error: {e.msg}", path, e.lineno) from e
        except (etree.LxmlError, ValueError) as e:
            raise XmlParseError(f"Unreadable XML document: {e}", path) from e
        if root is None:
            raise XmlParseError("XML document has no root element", path)

        try:
            _strip_namespaces(root)
        except (etree.LxmlError, ValueError, TypeError) as e:
            raise XmlParseError(f"Cannot normalise XML document: {e}", path) from e
        logger.debug("Parsed %s (root <%s>)", path or "<memory>", root.tag)
        return cls(root, path)

    def find(self, path: str, **variables: str) -> Optional[XmlNode]:
        return self.root.find(path, **variables)

    def find_all(self, path: str, **variables: str) -> List[XmlNode]:
        return self.root.find_all(path, **variables)
