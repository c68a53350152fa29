"""Register parsing mixin for ``DeviceModelBuilder``.

Peripherals, fuses and lockbits all come from ``modules/module`` register
definitions and resolve bitfield ``values`` through the same
``ValueGroupIndex``.
"""

import logging
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from pydantic import ValidationError

from atpackview.model import (
    DeviceModule,
    DevicePeripheralModule,
    DeviceRegister,
    DeviceRegisterBitfield,
    DeviceRegisterGroup,
    DeviceValueGroup,
    FuseBitfield,
    FuseBitValue,
    FuseConfig,
    LockbitConfig,
    LockbitField,
    LockbitValue,
    ModuleRegister,
)
from atpackview.model.fuses import find_overlap
from atpackview.utils import filter_none

from .document import XmlDocument, XmlNode
from .protocols import DeviceHostContext

logger = logging.getLogger(__name__)

# (register group name to emit, base offset)
GroupPlacement = Tuple[str, int]


class ConfigKind(NamedTuple):
    """How fuse and lockbit registers map onto their models."""

    label: str
    matches: Callable[[str], bool]
    config_model: type
    field_model: type
    value_model: type
    fields_key: str
    value_caption: str
    has_mask: bool
    requires_fields: bool


FUSE_KIND = ConfigKind(
    label="fuse",
    matches=lambda module: module.upper() == "FUSE",
    config_model=FuseConfig,
    field_model=FuseBitfield,
    value_model=FuseBitValue,
    fields_key="bitfields",
    value_caption="description",
    has_mask=True,
    requires_fields=False,
)

LOCKBIT_KIND = ConfigKind(
    label="lockbit",
    matches=lambda module: "LOCK" in module.upper(),
    config_model=LockbitConfig,
    field_model=LockbitField,
    value_model=LockbitValue,
    fields_key="bits",
    value_caption="caption",
    has_mask=False,
    requires_fields=True,
)


def drop_overlapping(
    bitfields: Sequence[DeviceRegisterBitfield], owner: str
) -> List[DeviceRegisterBitfield]:
    """Keep bitfields in order, dropping any that overlaps an earlier one."""
    accepted: List[DeviceRegisterBitfield] = []
    for bitfield in bitfields:
        ranges = [(b.name, b.bit_offset, b.bit_width) for b in accepted]
        if find_overlap(ranges + [(bitfield.name, bitfield.bit_offset, bitfield.bit_width)]):
            logger.warning("Dropping bitfield %s of %s: overlaps an earlier bitfield", bitfield.name, owner)
            continue
        accepted.append(bitfield)
    return accepted


def normalize_access(value: Optional[str]) -> str:
    """Map ``ocd-rw``/``rw`` attributes onto ``R``, ``W`` or ``RW``."""
    text = (value or "").upper()
    readable = "R" in text
    writable = "W" in text
    if readable and not writable:
        return "R"
    if writable and not readable:
        return "W"
    return "RW"


class RegisterParserMixin(DeviceHostContext):
    """Mixin implementing peripheral, fuse, lockbit and module extraction."""

    # -- peripherals -------------------------------------------------------

    def _parse_peripherals(self, doc: XmlDocument, device: XmlNode) -> List[DevicePeripheralModule]:
        peripherals = []
        for module in doc.find_all("//modules/module"):
            peripheral = self._parse_peripheral(module, device)
            if peripheral is not None:
                peripherals.append(peripheral)
        logger.debug("%d peripherals", len(peripherals))
        return peripherals

    def _parse_peripheral(self, module: XmlNode, device: XmlNode) -> Optional[DevicePeripheralModule]:
        module_name = module.attr("name")
        group_nodes = module.find_all("register-group")
        if not module_name or not group_nodes:
            return None

        # Global groups referenced by this module are copied in so every
        # bitfield reference stays local to the peripheral.
        borrowed: Dict[str, DeviceValueGroup] = {}
        register_groups: List[DeviceRegisterGroup] = []
        for group_node in group_nodes:
            group_name = group_node.attr("name")
            if not group_name:
                continue
            for emitted_name, base in self._group_placements(device, module_name, group_name):
                registers = self._parse_registers(group_node, module_name, base, borrowed)
                register_groups.append(
                    DeviceRegisterGroup(
                        name=emitted_name,
                        caption=group_node.attr("caption", ""),
                        registers=registers,
                    )
                )

        value_groups = self._value_groups.module_groups(module_name) + list(borrowed.values())
        return DevicePeripheralModule(
            name=module_name,
            caption=module.attr("caption", ""),
            register_groups=register_groups,
            value_groups=value_groups,
        )

    @staticmethod
    def _group_placements(device: XmlNode, module_name: str, group_name: str) -> List[GroupPlacement]:
        """
        Where the device instantiates a module register group.

        Returns one placement per referencing instance, named after the
        instance's register group when several instances share it.
        """
        references = [
            ref
            for ref in device.find_all(
                "peripherals/module[@name=$module]/instance/register-group", module=module_name
            )
            if (ref.attr("name-in-module") or ref.attr("name")) == group_name
        ]
        if not references:
            return [(group_name, 0)]
        if len(references) == 1:
            return [(group_name, references[0].attr_hex("offset") or 0)]
        return [
            (ref.attr("name") or group_name, ref.attr_hex("offset") or 0) for ref in references
        ]

    def _parse_registers(
        self,
        group_node: XmlNode,
        module_name: str,
        base: int,
        borrowed: Dict[str, DeviceValueGroup],
    ) -> List[DeviceRegister]:
        registers = []
        for node in group_node.find_all("register"):
            name = node.attr("name")
            offset = node.attr_hex("offset")
            size = node.attr_int("size")
            if not name or offset is None or not size:
                logger.warning(
                    "Skipping register without name/offset/size in %s (line %s)",
                    module_name,
                    node.line,
                )
                continue
            bitfields = [
                bitfield
                for bitfield in (
                    self._parse_bitfield(bf, module_name, name, borrowed)
                    for bf in node.find_all("bitfield")
                )
                if bitfield is not None
            ]
            try:
                registers.append(
                    DeviceRegister(
                        **filter_none(
                            {
                                "name": name,
                                "caption": node.attr("caption"),
                                "offset": base + offset,
                                "size": size,
                                "mask": node.attr_hex("mask"),
                                "initval": node.attr_hex("initval"),
                                "read_write": node.attr("ocd-rw") or node.attr("rw"),
                                "bitfields": bitfields,
                            }
                        )
                    )
                )
            except ValidationError as e:
                logger.warning("Skipping register %s.%s: %s", module_name, name, e)
        return registers

    def _parse_bitfield(
        self,
        node: XmlNode,
        module_name: str,
        register_name: str,
        borrowed: Dict[str, DeviceValueGroup],
    ) -> Optional[DeviceRegisterBitfield]:
        name = node.attr("name")
        mask = node.attr_hex("mask")
        offset = node.attr_int("bitOffset")
        width = node.attr_int("bitWidth")
        if not name or (mask is None and (offset is None or width is None)):
            logger.warning("Skipping bitfield without name/mask in %s.%s", module_name, register_name)
            return None

        reference = node.attr("values")
        group = self._resolve_value_group(module_name, reference)
        if group is not None and not self._value_groups.is_local(module_name, group.name):
            borrowed.setdefault(group.name, group)
        if reference and group is None:
            logger.debug("Unresolved value group %s on %s.%s", reference, register_name, name)

        try:
            return DeviceRegisterBitfield(
                **filter_none(
                    {
                        "name": name,
                        "caption": node.attr("caption"),
                        "mask": mask,
                        "bit_offset": offset,
                        "bit_width": width,
                        "values": group.name if group is not None else None,
                        "read_write": node.attr("rw"),
                    }
                )
            )
        except ValidationError as e:
            logger.warning("Skipping bitfield %s.%s.%s: %s", module_name, register_name, name, e)
            return None

    # -- fuses / lockbits --------------------------------------------------

    def _bit_ranges(self, register: XmlNode, module_name: str) -> List[DeviceRegisterBitfield]:
        """
        Bitfields of a fuse or lockbit register.

        Each bitfield goes through the same validation as a peripheral
        bitfield; one that overlaps an earlier bitfield is dropped.
        """
        register_name = register.attr("name", "")
        bitfields = (
            self._parse_bitfield(node, module_name, register_name, {})
            for node in register.find_all("bitfield")
        )
        return drop_overlapping([b for b in bitfields if b is not None], register_name)

    def _parse_fuses(self, doc: XmlDocument) -> List[FuseConfig]:
        fuses = self._parse_config_registers(doc, FUSE_KIND)
        logger.debug("%d fuses", len(fuses))
        return fuses

    def _parse_lockbits(self, doc: XmlDocument) -> List[LockbitConfig]:
        lockbits = self._parse_config_registers(doc, LOCKBIT_KIND)
        logger.debug("%d lockbit registers", len(lockbits))
        return lockbits

    def _parse_config_registers(self, doc: XmlDocument, kind: ConfigKind) -> list:
        configs = []
        for module in doc.find_all("//modules/module"):
            module_name = module.attr("name", "")
            if not kind.matches(module_name):
                continue
            for register in module.find_all("register-group/register"):
                config = self._parse_config_register(register, module_name, kind)
                if config is not None:
                    configs.append(config)
        return configs

    def _parse_config_register(self, register: XmlNode, module_name: str, kind: ConfigKind):
        """One fuse or lockbit register, shaped by ``kind``."""
        name = register.attr("name")
        offset = register.attr_hex("offset")
        if not name or offset is None:
            return None
        size = register.attr_int("size") or 1

        fields = []
        for bitfield in self._bit_ranges(register, module_name):
            group = self._resolve_value_group(module_name, bitfield.values)
            values = (
                [
                    kind.value_model(name=v.name, value=v.value, **{kind.value_caption: v.caption})
                    for v in group.values
                ]
                if group is not None
                else None
            )
            fields.append(
                kind.field_model(
                    name=bitfield.name,
                    description=bitfield.caption,
                    bit_offset=bitfield.bit_offset,
                    bit_width=bitfield.bit_width,
                    values=values,
                )
            )
        if kind.requires_fields and not fields:
            return None

        data = {
            "name": name,
            "offset": offset,
            "size": size,
            "default_value": register.attr_hex("initval"),
            kind.fields_key: fields,
        }
        if kind.has_mask:
            data["mask"] = register.attr_hex("mask") or (1 << (8 * size)) - 1
        try:
            return kind.config_model(**filter_none(data))
        except ValidationError as e:
            logger.warning("Skipping %s %s: %s", kind.label, name, e)
            return None

    # -- module instances --------------------------------------------------

    def _parse_modules(self, doc: XmlDocument, device: XmlNode) -> List[DeviceModule]:
        modules = []
        for instance in device.find_all("peripherals/module/instance"):
            name = instance.attr("name")
            if not name:
                continue
            module_name = instance.parent.attr("name", "") if instance.parent is not None else ""
            modules.append(
                DeviceModule(
                    name=name,
                    type=instance.attr("caption") or module_name,
                    instance=name,
                    registers=self._instance_registers(doc, module_name, instance),
                )
            )
        return sorted(modules, key=lambda m: m.name)

    @staticmethod
    def _instance_registers(doc: XmlDocument, module_name: str, instance: XmlNode) -> List[ModuleRegister]:
        registers = []
        for ref in instance.find_all("register-group"):
            group_name = ref.attr("name-in-module") or ref.attr("name")
            base = ref.attr_hex("offset") or 0
            group = doc.find(
                "//modules/module[@name=$module]/register-group[@name=$group]",
                module=module_name,
                group=group_name or "",
            )
            if group is None:
                continue
            for node in group.find_all("register"):
                name = node.attr("name")
                offset = node.attr_hex("offset")
                if not name or offset is None:
                    continue
                registers.append(
                    ModuleRegister(
                        name=name,
                        offset=base + offset,
                        size=node.attr_int("size") or 1,
                        access=normalize_access(node.attr("ocd-rw") or node.attr("rw")),
                        reset_value=node.attr_hex("initval") or 0,
                    )
                )
        return registers
