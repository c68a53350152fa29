"""
Electrical characteristics.

``ELECTRICAL_GROUP_TABLE`` is the single keyword -> group table. The
assembler uses it to classify parameters and the CLI uses it to style the
groups, so both always agree.
"""

from typing import Iterable, List, NamedTuple, Optional, Tuple

from pydantic import Field

from .base import FlexibleModel


class ElectricalGroup(NamedTuple):
    group: str
    keywords: Tuple[str, ...]
    icon: str
    color: str


# Evaluated in order; the first group with a matching keyword wins.
ELECTRICAL_GROUP_TABLE: Tuple[ElectricalGroup, ...] = (
    ElectricalGroup("SUPPLY_VOLTAGE", ("VCC", "VDD", "SUPPLY", "AVCC"), "⚡", "#e3f2fd"),
    ElectricalGroup("TEMPERATURE", ("TEMP", "TA", "TJ"), "\U0001f321️", "#fff3e0"),
    ElectricalGroup("TIMING", ("FREQ", "FMAX", "CLK", "SPEED", "TIME"), "⏱️", "#f3e5f5"),
    ElectricalGroup("POWER", ("POWER", "ICC", "IDD", "CURRENT"), "\U0001f50b", "#e8f5e8"),
    ElectricalGroup("ABSOLUTE", ("ABSOLUTE", "ABS"), "⚠️", "#ffebee"),
    ElectricalGroup("ELECTRICAL", ("ELECTRICAL",), "⚡", "#e3f2fd"),
    ElectricalGroup("DC", ("DC",), "⚡", "#e3f2fd"),
    ElectricalGroup("AC", ("AC",), "⏱️", "#f3e5f5"),
)

DEFAULT_GROUP_STYLE = ("\U0001f4ca", "#f5f5f5")


def _tokens(name: str) -> List[str]:
    return [t for t in name.upper().replace("-", "_").replace(" ", "_").split("_") if t]


def infer_group(name: str) -> Optional[str]:
    """Classify a parameter name with ``ELECTRICAL_GROUP_TABLE``.

    Keywords are matched against the underscore separated tokens of the
    name, and as prefixes of those tokens (``VCC_MIN`` and ``VCCIO`` both
    match ``VCC``). Two letter keywords only match whole tokens.
    """
    tokens = _tokens(name)
    for entry in ELECTRICAL_GROUP_TABLE:
        for keyword in entry.keywords:
            for token in tokens:
                if token == keyword or (len(keyword) > 2 and token.startswith(keyword)):
                    return entry.group
    return None


def group_style(group: str) -> Tuple[str, str]:
    """Return ``(icon, color)`` for a group name."""
    for entry in ELECTRICAL_GROUP_TABLE:
        if entry.group == group.upper():
            return entry.icon, entry.color
    return DEFAULT_GROUP_STYLE


class ElectricalParameter(FlexibleModel):
    """One electrical characteristic."""

    name: str
    group: str
    caption: str = ""
    description: Optional[str] = None
    min_value: Optional[float] = None
    typical_value: Optional[float] = None
    max_value: Optional[float] = None
    unit: Optional[str] = None
    conditions: Optional[str] = None
    temperature_range: Optional[str] = None
    voltage_range: Optional[str] = None


class DeviceElectricalParameters(FlexibleModel):
    """Flat parameter list plus the distinct groups it uses."""

    parameters: List[ElectricalParameter] = Field(default_factory=list)
    groups: List[str] = Field(default_factory=list)

    def in_group(self, group: str) -> List[ElectricalParameter]:
        return [p for p in self.parameters if p.group == group]

    @classmethod
    def from_parameters(cls, parameters: Iterable[ElectricalParameter]) -> "DeviceElectricalParameters":
        """Sort by (group, name) and collect the groups."""
        ordered = sorted(parameters, key=lambda p: (p.group, p.name))
        return cls(parameters=ordered, groups=sorted({p.group for p in ordered}))
