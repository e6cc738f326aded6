"""Build and unpack gzip-compressed tar firmware packages."""

from __future__ import annotations

import gzip
import os
import shutil
import tempfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from .firmware_info import FirmwareInfo
from .naming import base_name, clashless_filename, clashless_name_for

MAX_FILE_SIZE = 8589934592
USTAR_MAGIC = "ustar"
FIRMWARE_XML = "firmware.xml"

BLOCK_LENGTH = 512
_BLOCK_COPY_COUNT = 8
_CHUNK_LENGTH = BLOCK_LENGTH * _BLOCK_COPY_COUNT
_TAR_HEADER_LENGTH = 257
_STREAM_BUFFER_LENGTH = 262144
_MAX_OCTAL_ID = 2097151

# Offsets and widths of the fields in a tar header block.
_NAME = (0, 100)
_MODE = (100, 8)
_USER_ID = (108, 8)
_GROUP_ID = (116, 8)
_SIZE = (124, 12)
_MODIFIED_TIME = (136, 12)
_CHECKSUM = (148, 8)
_TYPE_FLAG = 156
_REGULAR_FILE = ord("0")


class PackagingError(Exception):
    """Raised when a package cannot be built or extracted."""


@dataclass
class PackageData:
    """A firmware description together with the files extracted for it.

    ``files`` holds ``(entry name, path on disk)`` pairs in archive order.
    Extracted files are created in ``directory``, or in the system temporary
    directory when it is ``None``.
    """

    firmware_info: FirmwareInfo = field(default_factory=FirmwareInfo)
    files: list[tuple[str, Path]] = field(default_factory=list)
    directory: Path | None = None

    def __enter__(self) -> PackageData:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.clear()

    def clear(self) -> None:
        """Forget the description and delete every extracted file."""
        self.firmware_info.clear()
        for _, path in self.files:
            path.unlink(missing_ok=True)
        self.files.clear()

    def is_cleared(self) -> bool:
        return self.firmware_info.is_cleared() and not self.files

    def read_firmware_info(self, path: str | os.PathLike[str]) -> FirmwareInfo:
        """Load the firmware description from a ``firmware.xml`` file."""
        try:
            data = Path(path).read_bytes()
        except OSError as error:
            raise PackagingError(f"Failed to open file: \n{path}") from error
        self.firmware_info = FirmwareInfo.from_xml(data)
        return self.firmware_info

    def remove_all_files(self) -> None:
        """Drop the list of files without deleting them from disk."""
        self.files.clear()


def _put(header: bytearray, location: tuple[int, int], text: str) -> None:
    offset, width = location
    data = (text.encode("ascii") + b"\0")[:width]
    header[offset:offset + len(data)] = data


def _build_header(stat: os.stat_result, encoded_name: bytes) -> bytes:
    header = bytearray(BLOCK_LENGTH)
    header[: len(encoded_name)] = encoded_name

    _put(header, _MODE, f"{stat.st_mode & 0o777:07o}")

    user_id = getattr(stat, "st_uid", 0)
    _put(header, _USER_ID, f"{user_id if user_id < _MAX_OCTAL_ID else 0:07o}")
    group_id = getattr(stat, "st_gid", 0)
    _put(header, _GROUP_ID, f"{group_id if group_id < _MAX_OCTAL_ID else 0:07o}")

    _put(header, _SIZE, f"{stat.st_size:011o}")
    # The modification time is stored in decimal, as packages always have been.
    _put(header, _MODIFIED_TIME, str(int(stat.st_mtime) & 0xFFFFFFFF))

    header[_TYPE_FLAG] = _REGULAR_FILE

    offset, width = _CHECKSUM
    header[offset:offset + width] = b" " * width
    checksum = sum(header[:_TAR_HEADER_LENGTH])
    _put(header, _CHECKSUM, f"{checksum:07o}")
    return bytes(header)


def write_tar_entry(
    source_path: str | os.PathLike[str], stream: BinaryIO, entry_name: str
) -> None:
    """Append ``source_path`` to ``stream`` as a regular tar entry ``entry_name``."""
    try:
        source = open(source_path, "rb")
    except OSError as error:
        raise PackagingError(f"Failed to open file: \n{source_path}") from error

    with source:
        stat = os.fstat(source.fileno())
        if stat.st_size > MAX_FILE_SIZE:
            raise PackagingError(f"File is too large to be packaged:\n{source_path}")

        encoded_name = entry_name.encode("utf-8")
        if len(encoded_name) > _NAME[1]:
            raise PackagingError(
                f"File name is too long:\n{base_name(os.fspath(source_path))}"
            )

        try:
            stream.write(_build_header(stat, encoded_name))
            remaining = stat.st_size
            while remaining > 0:
                chunk = source.read(min(remaining, _CHUNK_LENGTH))
                if not chunk:
                    break
                stream.write(chunk)
                if len(chunk) % BLOCK_LENGTH:
                    stream.write(bytes(BLOCK_LENGTH - len(chunk) % BLOCK_LENGTH))
                remaining -= len(chunk)
        except OSError as error:
            raise PackagingError(
                "Failed to write data to the temporary TAR file."
            ) from error


def _write_firmware_xml(firmware_info: FirmwareInfo, stream: BinaryIO) -> None:
    descriptor, name = tempfile.mkstemp(suffix=f"-{FIRMWARE_XML}")
    try:
        with os.fdopen(descriptor, "wb") as xml_file:
            xml_file.write(firmware_info.to_xml().encode("utf-8"))
        write_tar_entry(name, stream, FIRMWARE_XML)
    finally:
        os.unlink(name)


def _discard(stream: BinaryIO, start: int | None) -> None:
    if start is None:
        return
    try:
        stream.seek(start)
        stream.truncate()
    except OSError:
        pass


def create_tar(firmware_info: FirmwareInfo, stream: BinaryIO) -> None:
    """Write the package's files, PIT and ``firmware.xml`` to ``stream`` as a tar."""
    paths = [file_info.filename for file_info in firmware_info.file_infos]
    start = stream.tell() if stream.seekable() else None

    try:
        for index, path in enumerate(paths):
            if path in paths[:index]:
                continue
            name = clashless_filename(paths, index)
            if name == FIRMWARE_XML:
                raise PackagingError(
                    'You cannot name your partition files "firmware.xml".\n'
                    "It is a reserved name."
                )
            write_tar_entry(path, stream, name)

        pit_name = clashless_name_for(paths, base_name(firmware_info.pit_filename))
        if pit_name == FIRMWARE_XML:
            raise PackagingError(
                'You cannot name your PIT file "firmware.xml".\nIt is a reserved name.'
            )
        write_tar_entry(firmware_info.pit_filename, stream, pit_name)

        _write_firmware_xml(firmware_info, stream)
    except PackagingError:
        _discard(stream, start)
        raise

    stream.write(bytes(BLOCK_LENGTH * 2))


def _parse_size(field_bytes: bytes) -> int:
    text = field_bytes.split(b"\0", 1)[0].decode("ascii", errors="replace").strip()
    if not text or any(c not in "01234567" for c in text):
        raise PackagingError("Tar header contained an invalid file size.")
    return int(text, 8)


def _copy_entry(stream: BinaryIO, output: BinaryIO, size: int) -> None:
    remaining = size
    while remaining > 0:
        to_read = min(remaining, _CHUNK_LENGTH)
        padded = -(-to_read // BLOCK_LENGTH) * BLOCK_LENGTH
        data = stream.read(padded)
        if len(data) < to_read or len(data) % BLOCK_LENGTH:
            raise PackagingError(
                "Unexpected read error whilst extracting package files."
            )
        output.write(data[:to_read])
        remaining -= to_read


def _extract_entry(
    stream: BinaryIO, destination: PackageData, name: str, size: int
) -> Path:
    try:
        descriptor, raw_path = tempfile.mkstemp(
            suffix=f"-{name}", dir=destination.directory
        )
    except OSError as error:
        raise PackagingError(f"Failed to open output file: \n{name}") from error

    path = Path(raw_path)
    try:
        with os.fdopen(descriptor, "wb") as output:
            _copy_entry(stream, output, size)
    except BaseException:
        path.unlink(missing_ok=True)
        raise
    return path


def extract_tar(stream: BinaryIO, destination: PackageData) -> None:
    """Extract every regular file in the tar ``stream`` into ``destination``."""
    previous_empty = False
    while True:
        block = stream.read(BLOCK_LENGTH)
        if not block:
            break
        if len(block) != BLOCK_LENGTH:
            raise PackagingError("Package's TAR archive is malformed.")

        empty = not any(block)
        if empty:
            if previous_empty:
                break
        else:
            offset, width = _SIZE
            size = _parse_size(block[offset:offset + width])
            if size > 0 and block[_TYPE_FLAG] == _REGULAR_FILE:
                name = (
                    block[: _NAME[1]].split(b"\0", 1)[0].decode("utf-8", errors="replace")
                )
                path = _extract_entry(stream, destination, name, size)
                destination.files.append((name, path))
            else:
                raise PackagingError("Packages shouldn't contain links or directories.")
        previous_empty = empty


def extract_package(
    package_path: str | os.PathLike[str], destination: PackageData
) -> PackageData:
    """Unpack a package into ``destination`` and read its ``firmware.xml``.

    Uncompressed tar archives are accepted as well as gzip-compressed ones.
    """
    try:
        raw = open(package_path, "rb")
    except OSError as error:
        raise PackagingError(f"Failed to open package:\n{package_path}") from error

    with raw, tempfile.TemporaryFile() as tar:
        magic = raw.read(2)
        raw.seek(0)
        source: BinaryIO = (
            gzip.GzipFile(fileobj=raw, mode="rb") if magic == b"\x1f\x8b" else raw
        )
        try:
            shutil.copyfileobj(source, tar, _STREAM_BUFFER_LENGTH)
        except (OSError, EOFError, zlib.error) as error:
            raise PackagingError("Error decompressing archive.") from error
        tar.seek(0)
        extract_tar(tar, destination)

    for entry_name, path in destination.files:
        if entry_name == FIRMWARE_XML:
            try:
                destination.read_firmware_info(path)
            except Exception:
                destination.clear()
                raise
            return destination

    raise PackagingError("firmware.xml is missing from the package.")


def build_package(
    package_path: str | os.PathLike[str], firmware_info: FirmwareInfo
) -> None:
    """Write a gzip-compressed tar package for ``firmware_info`` to ``package_path``."""
    try:
        output = open(package_path, "wb")
    except OSError as error:
        raise PackagingError(f"Failed to create package:\n{package_path}") from error

    try:
        with output, tempfile.TemporaryFile() as tar:
            create_tar(firmware_info, tar)
            tar.seek(0)
            try:
                with gzip.GzipFile(
                    filename="", mode="wb", fileobj=output, compresslevel=6, mtime=0
                ) as compressed:
                    shutil.copyfileobj(tar, compressed, _STREAM_BUFFER_LENGTH)
            except OSError as error:
                raise PackagingError("Error compressing package.") from error
    except BaseException:
        Path(package_path).unlink(missing_ok=True)
        raise