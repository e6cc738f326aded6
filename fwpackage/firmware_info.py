"""Firmware package descriptions and their ``firmware.xml`` form."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import ClassVar

from .naming import base_name, clashless_filename

_XML_WHITESPACE = " \t\r\n"
_INTEGER = re.compile(r"\s*([+-]?[0-9]+)\s*")
_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1
_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


class FirmwareFormatError(ValueError):
    """Raised when a firmware description is malformed."""


def _to_int(text: str) -> int | None:
    match = _INTEGER.fullmatch(text)
    if match is None:
        return None
    value = int(match.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        return None
    return value


def _check_whitespace(text: str | None, context: str) -> None:
    if text and text.strip(_XML_WHITESPACE):
        raise FirmwareFormatError(f"Unexpected token found in <{context}>.")


def _children(element: ET.Element, context: str) -> Iterator[ET.Element]:
    """Yield child elements in order, rejecting non-whitespace text between them."""
    _check_whitespace(element.text, context)
    for child in element:
        yield child
        _check_whitespace(child.tail, context)


def _element_text(element: ET.Element) -> str:
    if len(element):
        raise FirmwareFormatError(f"<{element.tag}> must contain only character data.")
    return element.text or ""


def _claim(seen: set[str], tag: str, context: str) -> None:
    if tag in seen:
        raise FirmwareFormatError(f"Found multiple <{tag}> elements in <{context}>.")
    seen.add(tag)


def _invalid_child(tag: str, context: str) -> FirmwareFormatError:
    return FirmwareFormatError(f"<{tag}> is not a valid child of <{context}>.")


def _leaf(tag: str, text: str) -> ET.Element:
    element = ET.Element(tag)
    element.text = text
    return element


@dataclass
class DeviceInfo:
    """A device a firmware package supports."""

    manufacturer: str = ""
    product: str = ""
    name: str = ""

    @classmethod
    def from_element(cls, element: ET.Element) -> DeviceInfo:
        """Read a ``<device>`` element."""
        values: dict[str, str] = {}
        for child in _children(element, "device"):
            if child.tag not in ("manufacturer", "product", "name"):
                raise _invalid_child(child.tag, "device")
            if child.tag in values:
                raise FirmwareFormatError(
                    f"Found multiple <{child.tag}> elements in <device>."
                )
            values[child.tag] = _element_text(child)
        if len(values) != 3:
            raise FirmwareFormatError("Required elements are missing from <device>.")
        return cls(**values)

    def to_element(self) -> ET.Element:
        element = ET.Element("device")
        element.append(_leaf("manufacturer", self.manufacturer))
        element.append(_leaf("product", self.product))
        element.append(_leaf("name", self.name))
        return element


@dataclass
class PlatformInfo:
    """The platform (for example an OS release) a package carries."""

    name: str = ""
    version: str = ""

    def clear(self) -> None:
        self.name = ""
        self.version = ""

    def is_cleared(self) -> bool:
        return not self.name and not self.version

    @classmethod
    def from_element(cls, element: ET.Element) -> PlatformInfo:
        """Read a ``<platform>`` element."""
        values: dict[str, str] = {}
        for child in _children(element, "platform"):
            if child.tag not in ("name", "version"):
                raise _invalid_child(child.tag, "platform")
            if child.tag in values:
                raise FirmwareFormatError(
                    f"Found multiple <{child.tag}> elements in <platform>."
                )
            values[child.tag] = _element_text(child)
        if len(values) != 2:
            raise FirmwareFormatError("Required elements are missing from <platform>.")
        return cls(**values)

    def to_element(self) -> ET.Element:
        element = ET.Element("platform")
        element.append(_leaf("name", self.name))
        element.append(_leaf("version", self.version))
        return element


@dataclass
class FileInfo:
    """A file to flash and the partition it belongs to."""

    partition_id: int = 0
    filename: str = ""

    @classmethod
    def from_element(cls, element: ET.Element) -> FileInfo:
        """Read a ``<file>`` element; an unparsable id becomes 0."""
        seen: set[str] = set()
        partition_id = 0
        filename = ""
        for child in _children(element, "file"):
            if child.tag == "id":
                _claim(seen, "id", "file")
                value = _to_int(_element_text(child))
                partition_id = 0 if value is None else value & 0xFFFFFFFF
            elif child.tag == "filename":
                _claim(seen, "filename", "file")
                filename = _element_text(child)
            else:
                raise _invalid_child(child.tag, "file")
        if seen != {"id", "filename"}:
            raise FirmwareFormatError("Required elements are missing from <file>.")
        return cls(partition_id, filename)

    def to_element(self, filename: str) -> ET.Element:
        """Build a ``<file>`` element that names the entry ``filename``."""
        element = ET.Element("file")
        element.append(_leaf("id", str(self.partition_id)))
        element.append(_leaf("filename", filename))
        return element


_REQUIRED = frozenset(
    {
        "name",
        "version",
        "platform",
        "developers",
        "devices",
        "pit",
        "repartition",
        "noreboot",
        "files",
    }
)


@dataclass
class FirmwareInfo:
    """Everything ``firmware.xml`` says about a firmware package."""

    VERSION: ClassVar[int] = 1

    name: str = ""
    version: str = ""
    platform_info: PlatformInfo = field(default_factory=PlatformInfo)
    developers: list[str] = field(default_factory=list)
    url: str = ""
    donate_url: str = ""
    device_infos: list[DeviceInfo] = field(default_factory=list)
    pit_filename: str = ""
    repartition: bool = False
    no_reboot: bool = False
    file_infos: list[FileInfo] = field(default_factory=list)

    def clear(self) -> None:
        self.name = ""
        self.version = ""
        self.platform_info.clear()
        self.developers.clear()
        self.url = ""
        self.donate_url = ""
        self.device_infos.clear()
        self.pit_filename = ""
        self.repartition = False
        self.no_reboot = False
        self.file_infos.clear()

    def is_cleared(self) -> bool:
        return (
            not self.name
            and not self.version
            and self.platform_info.is_cleared()
            and not self.developers
            and not self.url
            and not self.donate_url
            and not self.device_infos
            and not self.pit_filename
            and not self.repartition
            and not self.no_reboot
            and not self.file_infos
        )

    @classmethod
    def from_xml(cls, text: str | bytes) -> FirmwareInfo:
        """Parse a ``firmware.xml`` document."""
        if not text.strip():
            raise FirmwareFormatError("Failed to find <firmware> element.")
        try:
            root = ET.fromstring(text)
        except ET.ParseError as error:
            if "junk after document element" in str(error):
                raise FirmwareFormatError("Found data after </firmware>.") from error
            raise FirmwareFormatError(f"Malformed XML: {error}") from error

        if root.tag != "firmware":
            raise FirmwareFormatError(
                f"Expected <firmware> element but found <{root.tag}>."
            )
        format_version_text = root.get("version", "")
        if not format_version_text:
            raise FirmwareFormatError("<firmware> is missing the version attribute.")
        format_version = _to_int(format_version_text)
        if format_version is None:
            raise FirmwareFormatError("<firmware> contains a malformed version.")
        if format_version > cls.VERSION:
            raise FirmwareFormatError(
                "Package is for a newer version of Heimdall Frontend.\n"
                "Please download the latest version of Heimdall Frontend."
            )

        info = cls()
        seen: set[str] = set()
        for child in _children(root, "firmware"):
            tag = child.tag
            if tag in ("name", "version", "url", "donateurl", "pit"):
                _claim(seen, tag, "firmware")
                value = _element_text(child)
                if tag == "name":
                    info.name = value
                elif tag == "version":
                    info.version = value
                elif tag == "url":
                    info.url = value
                elif tag == "donateurl":
                    info.donate_url = value
                else:
                    info.pit_filename = value
            elif tag in ("repartition", "noreboot"):
                _claim(seen, tag, "firmware")
                flag = bool(_to_int(_element_text(child)))
                if tag == "repartition":
                    info.repartition = flag
                else:
                    info.no_reboot = flag
            elif tag == "platform":
                _claim(seen, tag, "firmware")
                info.platform_info = PlatformInfo.from_element(child)
            elif tag == "developers":
                _claim(seen, tag, "firmware")
                for developer in _children(child, "developers"):
                    if developer.tag != "name":
                        raise _invalid_child(developer.tag, "developers")
                    info.developers.append(_element_text(developer))
            elif tag == "devices":
                _claim(seen, tag, "firmware")
                for device in _children(child, "devices"):
                    if device.tag != "device":
                        raise _invalid_child(device.tag, "devices")
                    info.device_infos.append(DeviceInfo.from_element(device))
            elif tag == "files":
                _claim(seen, tag, "firmware")
                for file_element in _children(child, "devices"):
                    if file_element.tag != "file":
                        raise _invalid_child(file_element.tag, "files")
                    info.file_infos.append(FileInfo.from_element(file_element))
            else:
                raise _invalid_child(tag, "firmware")

        if not _REQUIRED <= seen:
            raise FirmwareFormatError("Required elements are missing from <firmware>.")
        return info

    def to_xml(self) -> str:
        """Render the description as a ``firmware.xml`` document."""
        root = ET.Element("firmware", version=str(self.VERSION))
        root.append(_leaf("name", self.name))
        root.append(_leaf("version", self.version))
        root.append(self.platform_info.to_element())

        developers = ET.SubElement(root, "developers")
        for developer in self.developers:
            developers.append(_leaf("name", developer))

        if self.url:
            root.append(_leaf("url", self.url))
        if self.donate_url:
            root.append(_leaf("donateurl", self.donate_url))

        devices = ET.SubElement(root, "devices")
        for device in self.device_infos:
            devices.append(device.to_element())

        root.append(_leaf("pit", base_name(self.pit_filename)))
        root.append(_leaf("repartition", "1" if self.repartition else "0"))
        root.append(_leaf("noreboot", "1" if self.no_reboot else "0"))

        files = ET.SubElement(root, "files")
        paths = [file_info.filename for file_info in self.file_infos]
        for index, file_info in enumerate(self.file_infos):
            files.append(file_info.to_element(clashless_filename(paths, index)))

        body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
        return _XML_DECLARATION + body