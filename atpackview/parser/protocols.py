"""Typing protocols for parser mixins."""

from typing import Optional, Protocol

from atpackview.model import DeviceValueGroup

from .value_groups import ValueGroupIndex


class DeviceHostContext(Protocol):
    """State and methods required by parser mixins from ``DeviceModelBuilder``."""

    _value_groups: ValueGroupIndex

    def _resolve_value_group(self, module: str, name: Optional[str]) -> Optional[DeviceValueGroup]:
        """Resolve a bitfield ``values`` reference for a module."""
        ...
