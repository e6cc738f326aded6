import xml.etree.ElementTree as ET

import pytest

from fwpackage.firmware_info import (
    DeviceInfo,
    FileInfo,
    FirmwareFormatError,
    FirmwareInfo,
    PlatformInfo,
)


def _sample() -> FirmwareInfo:
    return FirmwareInfo(
        name="Custom ROM",
        version="2.0",
        platform_info=PlatformInfo("Android", "4.0"),
        developers=["Alice", "Bob"],
        url="https://example.com/rom",
        donate_url="https://example.com/donate",
        device_infos=[DeviceInfo("Samsung", "GT-I9000", "Galaxy S")],
        pit_filename="/home/user/pits/device.pit",
        repartition=True,
        no_reboot=False,
        file_infos=[FileInfo(5, "/home/user/files/boot.img")],
    )


VALID = """<?xml version="1.0" encoding="UTF-8"?>
<firmware version="1">
  <name>ROM</name>
  <version>1</version>
  <platform><name>Android</name><version>2.3</version></platform>
  <developers><name>Dev</name></developers>
  <devices>
    <device><manufacturer>M</manufacturer><product>P</product><name>N</name></device>
  </devices>
  <pit>a.pit</pit>
  <repartition>0</repartition>
  <noreboot>1</noreboot>
  <files><file><id>3</id><filename>x.img</filename></file></files>
</firmware>
"""


def test_round_trip_preserves_content_except_paths():
    info = _sample()
    parsed = FirmwareInfo.from_xml(info.to_xml())
    assert parsed.name == info.name
    assert parsed.version == info.version
    assert parsed.platform_info == info.platform_info
    assert parsed.developers == info.developers
    assert parsed.url == info.url
    assert parsed.donate_url == info.donate_url
    assert parsed.device_infos == info.device_infos
    assert parsed.repartition is True
    assert parsed.no_reboot is False
    assert parsed.pit_filename == "device.pit"
    assert parsed.file_infos == [FileInfo(5, "boot.img")]


def test_to_xml_starts_with_declaration_and_version():
    text = FirmwareInfo().to_xml()
    assert text.startswith('<?xml version="1.0" encoding="UTF-8"?><firmware version="1">')


def test_to_xml_flags_written_as_digits():
    root = ET.fromstring(_sample().to_xml())
    assert root.findtext("repartition") == "1"
    assert root.findtext("noreboot") == "0"


def test_to_xml_omits_empty_urls():
    info = _sample()
    info.url = ""
    info.donate_url = ""
    root = ET.fromstring(info.to_xml())
    assert root.find("url") is None
    assert root.find("donateurl") is None


def test_to_xml_renames_clashing_files():
    info = _sample()
    info.file_infos = [FileInfo(1, "a/boot.img"), FileInfo(2, "b/boot.img")]
    root = ET.fromstring(info.to_xml())
    names = [e.text for e in root.iter("filename")]
    assert names[0] == "boot.img"
    assert names[0] != names[1]
    assert len(set(names)) == 2


def test_parse_valid_document():
    info = FirmwareInfo.from_xml(VALID)
    assert info.name == "ROM"
    assert info.platform_info == PlatformInfo("Android", "2.3")
    assert info.device_infos == [DeviceInfo("M", "P", "N")]
    assert info.no_reboot is True
    assert info.repartition is False
    assert info.file_infos == [FileInfo(3, "x.img")]


def test_parse_accepts_bytes():
    info = FirmwareInfo.from_xml(VALID.encode("utf-8"))
    assert info.pit_filename == "a.pit"


def test_unparsable_id_becomes_zero():
    text = VALID.replace("<id>3</id>", "<id>abc</id>")
    assert FirmwareInfo.from_xml(text).file_infos[0].partition_id == 0


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "Failed to find <firmware> element."),
        ("<other/>", "Expected <firmware> element but found <other>."),
        ("<firmware/>", "<firmware> is missing the version attribute."),
        ('<firmware version="x"/>', "<firmware> contains a malformed version."),
        ('<firmware version="1"/>', "Required elements are missing from <firmware>."),
    ],
)
def test_header_errors(text, message):
    with pytest.raises(FirmwareFormatError) as excinfo:
        FirmwareInfo.from_xml(text)
    assert str(excinfo.value) == message


def test_newer_version_rejected():
    with pytest.raises(FirmwareFormatError, match="newer version"):
        FirmwareInfo.from_xml(VALID.replace('version="1"', 'version="2"'))


def test_duplicate_element_rejected():
    text = VALID.replace("<name>ROM</name>", "<name>ROM</name><name>Again</name>")
    with pytest.raises(FirmwareFormatError, match=r"Found multiple <name> elements in <firmware>\."):
        FirmwareInfo.from_xml(text)


def test_unknown_child_rejected():
    text = VALID.replace("<pit>a.pit</pit>", "<pit>a.pit</pit><bogus/>")
    with pytest.raises(FirmwareFormatError, match=r"<bogus> is not a valid child of <firmware>\."):
        FirmwareInfo.from_xml(text)


def test_stray_text_rejected():
    text = VALID.replace("<pit>a.pit</pit>", "<pit>a.pit</pit>junk")
    with pytest.raises(FirmwareFormatError, match=r"Unexpected token found in <firmware>\."):
        FirmwareInfo.from_xml(text)


def test_data_after_document_rejected():
    with pytest.raises(FirmwareFormatError, match=r"Found data after </firmware>\."):
        FirmwareInfo.from_xml(VALID + "<extra/>")


def test_device_missing_element():
    element = ET.fromstring("<device><manufacturer>M</manufacturer><name>N</name></device>")
    with pytest.raises(FirmwareFormatError, match=r"Required elements are missing from <device>\."):
        DeviceInfo.from_element(element)


def test_platform_invalid_child():
    element = ET.fromstring("<platform><name>A</name><x/></platform>")
    with pytest.raises(FirmwareFormatError, match=r"<x> is not a valid child of <platform>\."):
        PlatformInfo.from_element(element)


def test_file_duplicate_id():
    element = ET.fromstring("<file><id>1</id><id>2</id><filename>f</filename></file>")
    with pytest.raises(FirmwareFormatError, match=r"Found multiple <id> elements in <file>\."):
        FileInfo.from_element(element)


def test_device_element_round_trip():
    device = DeviceInfo("Maker", "Code", "Phone")
    assert DeviceInfo.from_element(device.to_element()) == device


def test_file_element_uses_given_filename():
    element = FileInfo(7, "/some/dir/file.bin").to_element("renamed.bin")
    assert FileInfo.from_element(element) == FileInfo(7, "renamed.bin")


def test_clear_and_is_cleared():
    info = _sample()
    assert not info.is_cleared()
    info.clear()
    assert info.is_cleared()
    assert info.platform_info.is_cleared()


def test_platform_clear():
    platform = PlatformInfo("Android", "4.0")
    assert not platform.is_cleared()
    platform.clear()
    assert platform == PlatformInfo()


def test_repartition_flag_alone_prevents_cleared():
    info = FirmwareInfo(repartition=True)
    assert info.is_cleared() is False