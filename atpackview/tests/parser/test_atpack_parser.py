"""
End-to-end tests for AtPackParser.
"""

import pytest

from atpackview.model import AtPackDevice, TimerType
from atpackview.parser import (
    ArchiveFormatError,
    AtPackParser,
    MetadataMissingError,
    XmlParseError,
)
from atpackview.parser import archive
from atpackview.parser.device_parser import DeviceModelBuilder


def test_single_timer_device(make_pack, pdsc_factory):
    """A TCCR0A/TCNT0/OCR0A trio becomes one 8-bit timer TC0."""
    atdf = """<avr-tools-device-file>
  <devices>
    <device name="ATmega328P">
      <peripherals>
        <module name="TC0">
          <instance name="TC0"><register-group name="TC0" name-in-module="TC0" offset="0"/></instance>
        </module>
      </peripherals>
    </device>
  </devices>
  <modules>
    <module name="TC0" caption="Timer/Counter, 8-bit">
      <register-group name="TC0">
        <register name="TCCR0A" offset="0x44" size="1"/>
        <register name="TCNT0" offset="0x46" size="1"/>
        <register name="OCR0A" offset="0x47" size="1"/>
      </register-group>
    </module>
  </modules>
</avr-tools-device-file>"""
    data = make_pack(pdsc_factory(name="ATmega328-family"), {"atdf/ATmega328P.atdf": atdf})
    atpack = AtPackParser().load_from_file(data, name="a.atpack")

    assert atpack.name == "ATmega328-family"
    assert atpack.device_names == ["ATmega328P"]
    timers = atpack.devices[0].timers
    assert [t.name for t in timers] == ["TC0"]
    assert timers[0].type == TimerType.TIMER8
    assert timers[0].type.value == "timer8"


def test_pack_metadata(pack_bytes):
    atpack = AtPackParser().load_from_file(pack_bytes, name="pack.atpack")
    assert atpack.name == "ATmega_DFP"
    assert atpack.version == "2.0.401"
    assert atpack.metadata.vendor == "Atmel"
    assert atpack.metadata.description == "Microchip ATmega Series Device Support"


def test_reparse_is_identical(pack_bytes):
    parser = AtPackParser()
    first = parser.load_from_file(pack_bytes, name="pack.atpack")
    second = parser.load_from_file(pack_bytes, name="pack.atpack")
    assert first.model_dump() == second.model_dump()
    assert first is not second


def test_serialized_device_validates_back(pack_bytes):
    device = AtPackParser().load_from_file(pack_bytes, name="pack.atpack").devices[0]
    data = device.model_dump(mode="json", by_alias=True)
    assert "clockInfo" in data
    assert AtPackDevice.model_validate(data) == device


def test_broken_device_is_isolated(make_pack, pdsc_factory, atdf_text):
    data = make_pack(
        pdsc_factory(devices=("ATmega328P", "ATtinyBAD", "ATtinyEMPTY")),
        {
            "atdf/ATmega328P.atdf": atdf_text,
            "atdf/ATtinyBAD.atdf": "<avr-tools-device-file><devices>",
            "atdf/ATtinyEMPTY.atdf": "<avr-tools-device-file/>",
        },
    )
    atpack = AtPackParser().load_from_file(data, name="mixed.atpack")
    assert atpack.device_names == ["ATmega328P"]
    assert [f.device for f in atpack.failures] == ["ATtinyBAD", "ATtinyEMPTY"]
    assert "ATtinyBAD" in atpack.failures[0].reason
    assert "devices/device" in atpack.failures[1].reason


def test_duplicate_device_is_replaced_in_place(make_pack, pdsc_factory, atdf_text):
    data = make_pack(
        pdsc_factory(devices=("ATmega328P", "ATmega168", "ATmega328P")),
        {"atdf/ATmega328P.atdf": atdf_text},
    )
    atpack = AtPackParser().load_from_file(data, name="dup.atpack")
    assert atpack.device_names == ["ATmega328P", "ATmega168"]


def test_descriptor_without_name(make_pack):
    data = make_pack("<package/>")
    with pytest.raises(MetadataMissingError):
        AtPackParser().load_from_file(data, name="noname.atpack")


def test_missing_descriptor_file(zip_factory, atdf_text):
    data = zip_factory({"atdf/ATmega328P.atdf": atdf_text})
    with pytest.raises(ArchiveFormatError, match="descriptor"):
        AtPackParser().load_from_file(data, name="nodesc.atpack")


def test_malformed_descriptor(make_pack):
    with pytest.raises(XmlParseError):
        AtPackParser().load_from_file(make_pack("<package><name>x</package>"), name="bad.atpack")


def test_bare_descriptor(pdsc_text):
    atpack = AtPackParser().load_from_file(pdsc_text.encode(), name="Atmel.ATmega_DFP.pdsc")
    assert atpack.device_names == ["ATmega328P"]
    assert atpack.devices[0].peripherals == []


def test_load_from_url(monkeypatch, pack_bytes):
    class Response:
        status_code = 200
        content = pack_bytes

    monkeypatch.setattr(archive.requests, "get", lambda url, **kw: Response())
    atpack = AtPackParser().load_from_url("https://packs.example.com/Atmel.ATmega_DFP.2.0.401.atpack")
    assert atpack.device_names == ["ATmega328P"]


def test_load_pack_index(monkeypatch):
    body = b"""<index><pindex>
      <pdsc url="http://packs.download.atmel.com/" vendor="Atmel" name="ATmega_DFP" version="2.0.401"/>
    </pindex></index>"""

    class Response:
        status_code = 200
        content = body

    monkeypatch.setattr(archive.requests, "get", lambda url, **kw: Response())
    entries = AtPackParser().load_pack_index("http://packs.download.atmel.com/Atmel.pidx")
    assert [e.name for e in entries] == ["Atmel.ATmega_DFP"]


def test_unexpected_builder_failure_is_isolated(monkeypatch, make_pack, pdsc_factory, atdf_text):
    """A failure outside the guarded sections only costs its own device."""
    build = DeviceModelBuilder._build

    def failing_build(self, fragment, contents):
        if fragment.name == "ATmega328P":
            raise RuntimeError("register table exhausted")
        return build(self, fragment, contents)

    monkeypatch.setattr(DeviceModelBuilder, "_build", failing_build)
    data = make_pack(
        pdsc_factory(devices=("ATmega328P", "ATmega168")),
        {"atdf/ATmega328P.atdf": atdf_text, "atdf/ATmega168.atdf": atdf_text},
    )
    atpack = AtPackParser().load_from_file(data, name="mixed.atpack")
    assert atpack.device_names == ["ATmega168"]
    assert [f.device for f in atpack.failures] == ["ATmega328P"]
    assert "RuntimeError" in atpack.failures[0].reason
    assert atpack.get_device("ATmega168").peripherals


def test_stray_latin1_byte_does_not_fail_the_device(make_pack, pdsc_factory, atdf_text):
    atdf = atdf_text.encode("utf-8").replace(
        b'caption="Timer/Counter, 8-bit"', b'caption="Timer/Counter, 8-bit \xb5C"', 1
    )
    atpack = AtPackParser().load_from_file(
        make_pack(pdsc_factory(), {"atdf/ATmega328P.atdf": atdf}), name="latin1.atpack"
    )
    assert atpack.failures == []
    device = atpack.get_device("ATmega328P")
    tc0 = next(m for m in device.modules if m.name == "TC0")
    assert tc0.type == "Timer/Counter, 8-bit \ufffdC"
    assert len(device.peripherals) == 8


def test_namespaced_roots_load(pack_bytes, atdf_text, pdsc_text):
    assert "xsi:noNamespaceSchemaLocation" in atdf_text
    assert "xs:noNamespaceSchemaLocation" in pdsc_text
    atpack = AtPackParser().load_from_file(pack_bytes, name="pack.atpack")
    assert atpack.failures == []
    assert atpack.name == "ATmega_DFP"
    assert atpack.get_device("ATmega328P").fuses
