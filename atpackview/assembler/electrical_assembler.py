"""Electrical characteristics from ATDF property groups and variants."""

import logging
from typing import TYPE_CHECKING, List, Optional

from atpackview.model import DeviceElectricalParameters, ElectricalParameter, infer_group
from atpackview.utils import filter_none, parse_float

if TYPE_CHECKING:
    from atpackview.parser.document import XmlDocument, XmlNode

logger = logging.getLogger(__name__)

# Property groups holding characteristics are recognised by name.
PROPERTY_GROUP_KEYWORDS = ("ELECTRICAL", "ABSOLUTE", "DC", "AC")


def _is_electrical_group(name: str) -> bool:
    upper = name.upper()
    return any(keyword in upper for keyword in PROPERTY_GROUP_KEYWORDS)


def _parse_property(node: "XmlNode", group_name: str) -> Optional[ElectricalParameter]:
    name = node.attr("name")
    if not name:
        return None
    minimum = node.attr_float("min")
    typical = node.attr_float("typ")
    maximum = node.attr_float("max")
    if minimum is None and typical is None and maximum is None:
        typical = parse_float(node.attr("value"))
    return ElectricalParameter(
        **filter_none(
            {
                "name": name,
                "group": node.attr("group") or infer_group(name) or group_name,
                "caption": node.attr("caption") or name,
                "description": node.attr("description"),
                "min_value": minimum,
                "typical_value": typical,
                "max_value": maximum,
                "unit": node.attr("unit"),
                "conditions": node.attr("conditions"),
                "temperature_range": node.attr("temp"),
                "voltage_range": node.attr("vcc"),
            }
        )
    )


def _variant_parameters(variant: "XmlNode") -> List[ElectricalParameter]:
    """VCC, TA and FMAX rows for one ``variants/variant``."""
    name = variant.attr("ordercode") or variant.attr("name", "")
    conditions = f"Variant: {name}"
    parameters = []

    vcc_min, vcc_max = variant.attr_float("vccmin"), variant.attr_float("vccmax")
    if vcc_min is not None or vcc_max is not None:
        parameters.append(
            ElectricalParameter(
                name="VCC",
                group="SUPPLY_VOLTAGE",
                caption="Supply Voltage",
                description="Operating supply voltage range",
                min_value=vcc_min,
                max_value=vcc_max,
                unit="V",
                conditions=conditions,
            )
        )

    temp_min, temp_max = variant.attr_float("tempmin"), variant.attr_float("tempmax")
    if temp_min is not None or temp_max is not None:
        parameters.append(
            ElectricalParameter(
                name="TA",
                group="TEMPERATURE",
                caption="Ambient Temperature",
                description="Operating temperature range",
                min_value=temp_min,
                max_value=temp_max,
                unit="°C",
                conditions=conditions,
            )
        )

    speed = variant.attr_float("speedmax")
    if speed is not None:
        parameters.append(
            ElectricalParameter(
                name="FMAX",
                group="TIMING",
                caption="Maximum Clock Frequency",
                description="Maximum operating frequency",
                max_value=speed / 1_000_000,
                unit="MHz",
                conditions=conditions,
            )
        )
    return parameters


def assemble_electrical_parameters(doc: "XmlDocument") -> Optional[DeviceElectricalParameters]:
    """
    Collect electrical parameters of an ATDF document.

    Returns:
        Parameters sorted by (group, name), or ``None`` when the document
        has none
    """
    parameters: List[ElectricalParameter] = []
    for group in doc.find_all("//property-groups/property-group"):
        group_name = group.attr("name", "")
        if not _is_electrical_group(group_name):
            continue
        for node in group.find_all("property"):
            parameter = _parse_property(node, group_name)
            if parameter is not None:
                parameters.append(parameter)

    for variant in doc.find_all("//variants/variant"):
        parameters.extend(_variant_parameters(variant))

    if not parameters:
        return None
    result = DeviceElectricalParameters.from_parameters(parameters)
    logger.debug("%d electrical parameters in groups %s", len(result.parameters), result.groups)
    return result
