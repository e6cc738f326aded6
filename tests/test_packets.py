import struct

import pytest

from fwpackage.packets import (
    DumpResponse,
    PacketError,
    PitFileResponse,
    ResponsePacket,
    ResponseType,
    SendFilePartResponse,
    SessionSetupResponse,
    unpack_uint32,
)


def _response(kind, value):
    return struct.pack("<II", kind, value)


def test_unpack_uint32_is_little_endian():
    assert unpack_uint32(b"\x01\x02\x03\x04", 0) == 0x04030201
    assert unpack_uint32(b"\x00\x65\x00\x00\x00", 1) == 0x65


def test_unpack_uint32_out_of_range():
    with pytest.raises(PacketError):
        unpack_uint32(b"\x00\x00\x00", 0)
    with pytest.raises(PacketError):
        unpack_uint32(bytes(8), 6)


def test_pit_file_response_wire_bytes():
    packet = PitFileResponse().unpack(b"\x65\x00\x00\x00\x00\x10\x00\x00")
    assert packet.response_type == 0x65
    assert packet.file_size == 4096


@pytest.mark.parametrize(
    "cls, kind, attribute",
    [
        (SendFilePartResponse, ResponseType.SEND_FILE_PART, "part_index"),
        (SessionSetupResponse, ResponseType.SESSION_SETUP, "result"),
        (PitFileResponse, ResponseType.PIT_FILE, "file_size"),
        (DumpResponse, ResponseType.FILE_TRANSFER, "dump_size"),
    ],
)
def test_each_response_reads_its_data_word(cls, kind, attribute):
    packet = cls()
    assert packet.response_type == kind
    packet.unpack(_response(kind, 123456))
    assert getattr(packet, attribute) == 123456
    assert packet.received_size == ResponsePacket.SIZE


def test_mismatched_type_is_recorded_and_raises():
    packet = SessionSetupResponse()
    with pytest.raises(PacketError):
        packet.unpack(_response(ResponseType.END_SESSION, 1))
    assert packet.response_type == ResponseType.END_SESSION
    assert packet.result == 0


def test_unknown_type_is_kept_as_integer():
    packet = DumpResponse()
    with pytest.raises(PacketError):
        packet.unpack(_response(0x1234, 0))
    assert packet.response_type == 0x1234


def test_short_packet_raises():
    with pytest.raises(PacketError):
        PitFileResponse().unpack(struct.pack("<I", ResponseType.PIT_FILE))


def test_generic_response_checks_only_type():
    packet = ResponsePacket(ResponseType.END_SESSION)
    assert packet.unpack(_response(ResponseType.END_SESSION, 9)) is packet
    assert packet.response_type == 0x67