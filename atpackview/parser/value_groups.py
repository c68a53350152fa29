"""
Value-group lookup shared by peripherals, fuses and lockbits.

The index is built once per device before any bitfield is resolved, so a
reference costs a dictionary lookup instead of a document search. Module
groups win over device-global ones; an unknown name resolves to ``None``.
"""

import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from atpackview.model import DeviceValue, DeviceValueGroup

from .document import XmlDocument, XmlNode

logger = logging.getLogger(__name__)


def parse_value_group(node: XmlNode) -> Optional[DeviceValueGroup]:
    """Build a ``DeviceValueGroup``; values lacking a name or number are skipped."""
    name = node.attr("name")
    if not name:
        return None
    values: List[DeviceValue] = []
    for value_node in node.find_all("value"):
        value_name = value_node.attr("name")
        value = value_node.attr_hex("value")
        if not value_name or value is None:
            logger.debug("Skipping incomplete value in value group %s", name)
            continue
        values.append(
            DeviceValue(name=value_name, caption=value_node.attr("caption", ""), value=value)
        )
    try:
        return DeviceValueGroup(name=name, caption=node.attr("caption", ""), values=values)
    except ValidationError as e:
        logger.warning("Skipping value group %s: %s", name, e)
        return None


class ValueGroupIndex:
    """Per-module and global maps of value-group name to definition."""

    def __init__(self):
        self._by_module: Dict[str, Dict[str, DeviceValueGroup]] = {}
        self._global: Dict[str, DeviceValueGroup] = {}

    @classmethod
    def from_document(cls, doc: XmlDocument) -> "ValueGroupIndex":
        index = cls()
        for module in doc.find_all("//modules/module"):
            module_name = module.attr("name", "")
            for node in module.find_all("value-group"):
                group = parse_value_group(node)
                if group is not None:
                    index.add(module_name, group)
        logger.debug(
            "Indexed %d value groups across %d modules", len(index._global), len(index._by_module)
        )
        return index

    def add(self, module: str, group: DeviceValueGroup) -> None:
        # First definition wins, both per module and globally.
        self._by_module.setdefault(module, {}).setdefault(group.name, group)
        self._global.setdefault(group.name, group)

    def module_groups(self, module: str) -> List[DeviceValueGroup]:
        """Value groups declared by a module, in declaration order."""
        return list(self._by_module.get(module, {}).values())

    def resolve(self, module: str, name: Optional[str]) -> Optional[DeviceValueGroup]:
        """Look a name up in the module first, then device-wide."""
        if not name:
            return None
        local = self._by_module.get(module, {})
        if name in local:
            return local[name]
        return self._global.get(name)

    def is_local(self, module: str, name: str) -> bool:
        return name in self._by_module.get(module, {})

    def __len__(self) -> int:
        return len(self._global)
