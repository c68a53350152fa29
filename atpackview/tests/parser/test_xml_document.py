"""
Tests for the tolerant XML document wrapper.
"""

import pytest

from atpackview.parser.document import XmlDocument
from atpackview.parser.errors import XmlParseError


def test_bom_and_leading_whitespace_are_tolerated():
    data = b"\xef\xbb\xbf  \n<root><child name='a'/></root>"
    doc = XmlDocument.parse(data, "bom.xml")
    assert doc.root.tag == "root"
    assert doc.find("child").attr("name") == "a"


def test_namespaces_are_stripped():
    doc = XmlDocument.parse(
        b"""<package xmlns:at="http://www.atmel.com/schemas/x">
              <at:extension><at:atdf at:name="atdf/X.atdf"/></at:extension>
            </package>"""
    )
    node = doc.find("//atdf")
    assert node is not None
    assert node.attr("name") == "atdf/X.atdf"


def test_missing_lookups_return_none_or_default():
    doc = XmlDocument.parse(b"<root><reg offset='zz' size='2'/></root>")
    reg = doc.find("reg")
    assert doc.find("nothing") is None
    assert doc.find_all("nothing") == []
    assert reg.attr("caption") is None
    assert reg.attr("caption", "") == ""
    assert reg.attr_hex("offset") is None
    assert reg.attr_int("size") == 2
    assert reg.attr_float("min") is None
    assert reg.child_text("caption", "none") == "none"


def test_parent_and_closest():
    doc = XmlDocument.parse(b"<a><b name='x'><c/></b></a>")
    c = doc.find("//c")
    assert c.parent.attr("name") == "x"
    assert c.closest("a").tag == "a"
    assert c.closest("z") is None
    assert doc.root.parent is None


def test_syntax_error_carries_path_and_line():
    with pytest.raises(XmlParseError) as exc_info:
        XmlDocument.parse(b"<root>\n<open>\n</root>", "atdf/BAD.atdf")
    error = exc_info.value
    assert error.file_path == "atdf/BAD.atdf"
    assert error.line is not None
    assert "File: atdf/BAD.atdf" in str(error)


def test_empty_document():
    with pytest.raises(XmlParseError, match="Empty"):
        XmlDocument.parse(b"   ")


def test_prefixed_attributes_keep_their_local_name():
    doc = XmlDocument.parse(
        b"""<avr-tools-device-file xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
              xsi:noNamespaceSchemaLocation="../../schema/avr_tools_device_file.xsd"
              schema-version="4.0">
              <edc:PIC xmlns:edc="http://crownking/edc" edc:name="prefixed" name="plain" edc:arch="16xxxx"/>
            </avr-tools-device-file>"""
    )
    assert doc.root.attr("noNamespaceSchemaLocation") == "../../schema/avr_tools_device_file.xsd"
    assert doc.root.attr("schema-version") == "4.0"
    pic = doc.find("PIC")
    # The unprefixed attribute wins over its prefixed twin
    assert pic.attr("name") == "plain"
    assert pic.attr("arch") == "16xxxx"


def test_invalid_utf8_bytes_are_replaced():
    doc = XmlDocument.parse(
        b'<?xml version="1.0" encoding="UTF-8"?>\n<root><param caption="Delay 10 \xb5s"/></root>'
    )
    assert doc.find("param").attr("caption") == "Delay 10 \ufffds"


def test_xpath_variables_match_quoted_names():
    doc = XmlDocument.parse(b"""<modules><module name="O'CLOCK"/><module name='SAY "HI"'/></modules>""")
    assert doc.find("module[@name=$name]", name="O'CLOCK") is not None
    assert doc.find("module[@name=$name]", name='SAY "HI"') is not None
    assert doc.find_all("module[@name=$name]", name="NONE") == []
