"""Pinout, variant and programmer-interface parsing mixin for ``DeviceModelBuilder``."""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from atpackview.model import (
    DevicePin,
    DevicePinFunction,
    DevicePinout,
    DeviceVariant,
    ProgrammerInterface,
    ProgrammerPin,
)
from atpackview.utils import filter_none

from .document import XmlDocument, XmlNode
from .protocols import DeviceHostContext

logger = logging.getLogger(__name__)

# Signal groups each programming protocol drives, matched against pads and
# pin functions of the first pinout.
PROGRAMMER_SIGNALS: Dict[str, Tuple[str, ...]] = {
    "ISP": ("MOSI", "MISO", "SCK", "RESET"),
    "UPDI": ("UPDI",),
    "PDI": ("PDI_DATA", "PDI_CLK"),
    "JTAG": ("TCK", "TMS", "TDI", "TDO"),
    "DEBUGWIRE": ("RESET",),
    "TPI": ("TPIDATA", "TPICLK", "RESET"),
    "ICSP": ("MCLR", "ICSPCLK", "ICSPDAT", "PGC", "PGD"),
}

DEFAULT_PROTOCOL = "ISP"

_PIN_COUNT_RE = re.compile(r"(\d+)")


def format_range(low: Optional[str], high: Optional[str], unit: str) -> str:
    """``"-40°C to 85°C"``; missing bounds read ``?``."""
    return f"{low or '?'}{unit} to {high or '?'}{unit}"


def format_speed(speedmax: Optional[str]) -> Optional[str]:
    """Hz attribute to a speed grade such as ``"20MHz"``."""
    if not speedmax:
        return None
    try:
        return f"{float(speedmax) / 1_000_000:g}MHz"
    except ValueError:
        return None


def match_pinout(
    pinouts: Sequence[DevicePinout], reference: Optional[str], package: str
) -> Optional[DevicePinout]:
    """
    Pick the pinout of a variant.

    Tried in order: the variant's ``pinout`` attribute, a pinout named like
    the package, a pinout whose pin count equals the number in the package
    name.
    """
    by_name = {p.name: p for p in pinouts}
    if reference and reference in by_name:
        return by_name[reference]
    if package and package in by_name:
        return by_name[package]
    match = _PIN_COUNT_RE.search(package or "")
    if match:
        count = int(match.group(1))
        return next((p for p in pinouts if p.pin_count == count), None)
    return None


def parse_variant(node: XmlNode, pinouts: Sequence[DevicePinout] = ()) -> Optional[DeviceVariant]:
    """Build a ``DeviceVariant`` from an ATDF ``variant`` or descriptor ``at:variant``."""
    name = node.attr("ordercode") or node.attr("name")
    if not name:
        return None
    package = node.attr("package", "")
    pinout = match_pinout(pinouts, node.attr("pinout"), package)
    return DeviceVariant(
        **filter_none(
            {
                "name": name,
                "package": package,
                "temperature_range": format_range(node.attr("tempmin"), node.attr("tempmax"), "°C"),
                "voltage_range": format_range(node.attr("vccmin"), node.attr("vccmax"), "V"),
                "speed_grade": format_speed(node.attr("speedmax")),
                "pinout": pinout.pad_map() if pinout is not None else None,
            }
        )
    )


class PinoutParserMixin(DeviceHostContext):
    """Mixin implementing pinout, variant and programmer extraction."""

    @staticmethod
    def _signal_map(device: XmlNode) -> Dict[str, List[DevicePinFunction]]:
        """Pad name -> functions routed to it by peripheral instances."""
        signal_map: Dict[str, List[DevicePinFunction]] = {}
        for signal in device.find_all("peripherals/module/instance/signals/signal"):
            group = signal.attr("group")
            pad = signal.attr("pad")
            instance = signal.closest("instance")
            module = signal.closest("module")
            if not group or not pad or instance is None or module is None:
                continue
            signal_map.setdefault(pad, []).append(
                DevicePinFunction(
                    **filter_none(
                        {
                            "group": group,
                            "function": signal.attr("function", ""),
                            "index": signal.attr_int("index"),
                            "module": module.attr("name", ""),
                            "module_caption": instance.attr("caption", ""),
                        }
                    )
                )
            )
        return signal_map

    def _parse_pinouts(self, doc: XmlDocument, device: XmlNode) -> List[DevicePinout]:
        signal_map = self._signal_map(device)
        pinouts = []
        for node in doc.find_all("//pinouts/pinout"):
            name = node.attr("name")
            if not name:
                continue
            pins = []
            for pin in node.find_all("pin"):
                position = pin.attr_int("position")
                pad = pin.attr("pad")
                if not position or not pad:
                    continue
                try:
                    pins.append(
                        DevicePin(position=position, pad=pad, functions=signal_map.get(pad, []))
                    )
                except ValidationError as e:
                    logger.warning("Skipping pin %s of pinout %s: %s", pad, name, e)
            if not pins:
                logger.debug("Skipping empty pinout %s", name)
                continue
            pinouts.append(
                DevicePinout(
                    name=name,
                    caption=node.attr("caption") or name,
                    pins=sorted(pins, key=lambda p: p.position),
                )
            )
        logger.debug("%d pinouts", len(pinouts))
        return pinouts

    @staticmethod
    def _parse_variants(doc: XmlDocument, pinouts: List[DevicePinout]) -> List[DeviceVariant]:
        variants = []
        for node in doc.find_all("//variants/variant"):
            variant = parse_variant(node, pinouts)
            if variant is not None:
                variants.append(variant)
        return variants

    @staticmethod
    def _parse_programmer(
        device: Optional[XmlNode], pinouts: List[DevicePinout], fallback: Sequence[str] = ()
    ) -> ProgrammerInterface:
        protocols: List[str] = []
        nodes = device.find_all("interfaces/interface") if device is not None else []
        for node in nodes:
            protocol = node.attr("name") or node.attr("type")
            if protocol and protocol not in protocols:
                protocols.append(protocol)
        if not protocols:
            protocols = list(fallback) or [DEFAULT_PROTOCOL]

        pins: List[ProgrammerPin] = []
        if pinouts:
            pinout = pinouts[0]
            for protocol in protocols:
                for signal in PROGRAMMER_SIGNALS.get(protocol.upper(), ()):
                    if any(p.name == signal for p in pins):
                        continue
                    pin = pinout.find_pin_by_pad(signal) or next(
                        iter(pinout.find_pins_by_signal(signal)), None
                    )
                    if pin is not None:
                        pins.append(ProgrammerPin(name=signal, position=pin.position, function=protocol))

        return ProgrammerInterface(type=protocols[0], protocols=protocols, pins=pins)
