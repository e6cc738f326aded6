"""Response packets received from a device in download mode."""

from __future__ import annotations

import enum
import struct
from typing import ClassVar

_UINT32 = struct.Struct("<I")


class ResponseType(enum.IntEnum):
    """The type code carried in the first word of a response."""

    SEND_FILE_PART = 0x00
    SESSION_SETUP = 0x64
    PIT_FILE = 0x65
    FILE_TRANSFER = 0x66
    END_SESSION = 0x67


class PacketError(ValueError):
    """Raised when a response packet cannot be decoded."""


def unpack_uint32(data: bytes, offset: int) -> int:
    """Read a little-endian unsigned 32-bit integer at ``offset``."""
    if offset < 0 or offset + _UINT32.size > len(data):
        raise PacketError(
            f"Packet of {len(data)} bytes has no 32-bit value at offset {offset}."
        )
    return _UINT32.unpack_from(data, offset)[0]


class ResponsePacket:
    """An eight-byte response: a type word followed by one data word."""

    SIZE: ClassVar[int] = 8
    DATA_OFFSET: ClassVar[int] = 4
    EXPECTED_TYPE: ClassVar[ResponseType | None] = None

    def __init__(self, response_type: int | None = None) -> None:
        if response_type is None:
            response_type = self.EXPECTED_TYPE
        if response_type is None:
            raise TypeError("a response type is required")
        self.response_type: int = response_type
        self.received_size = 0

    def unpack(self, data: bytes) -> ResponsePacket:
        """Decode ``data``; a mismatched type is recorded and raises ``PacketError``."""
        received = unpack_uint32(data, 0)
        self.received_size = len(data)
        if received != self.response_type:
            expected = self.response_type
            try:
                self.response_type = ResponseType(received)
            except ValueError:
                self.response_type = received
            raise PacketError(
                f"Unexpected response type {received:#x} (expected {expected:#x})."
            )
        self._unpack_data(unpack_uint32(data, self.DATA_OFFSET))
        return self

    def _unpack_data(self, value: int) -> None:
        """Store the data word; the base packet ignores it."""


class SendFilePartResponse(ResponsePacket):
    """Acknowledges a file part; carries the part index."""

    EXPECTED_TYPE = ResponseType.SEND_FILE_PART

    def __init__(self) -> None:
        super().__init__()
        self.part_index = 0

    def _unpack_data(self, value: int) -> None:
        self.part_index = value


class SessionSetupResponse(ResponsePacket):
    """Answer to a session set-up request; carries its result."""

    EXPECTED_TYPE = ResponseType.SESSION_SETUP

    def __init__(self) -> None:
        super().__init__()
        self.result = 0

    def _unpack_data(self, value: int) -> None:
        self.result = value


class PitFileResponse(ResponsePacket):
    """Answer to a PIT transfer request; carries the PIT file size."""

    EXPECTED_TYPE = ResponseType.PIT_FILE

    def __init__(self) -> None:
        super().__init__()
        self.file_size = 0

    def _unpack_data(self, value: int) -> None:
        self.file_size = value


class DumpResponse(ResponsePacket):
    """Answer to a dump request; carries the size of the dump."""

    EXPECTED_TYPE = ResponseType.FILE_TRANSFER

    def __init__(self) -> None:
        super().__init__()
        self.dump_size = 0

    def _unpack_data(self, value: int) -> None:
        self.dump_size = value