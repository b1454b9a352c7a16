"""Tests for the binary protocol"""

from pytest import raises

from thriftgen.proto import (
    TBinaryProtocol,
    TBinaryProtocolFactory,
    TMemoryBuffer,
    TTransportException,
)
from thriftgen.proto.serialization import ProtocolError, ProtocolErrorKind
from thriftgen.proto.types import TMessageType, TType


def written(fn, **kwargs):
    trans = TMemoryBuffer()
    fn(TBinaryProtocol(trans, **kwargs))
    trans.flush()
    return trans.getvalue()


def reader(data, **kwargs):
    return TBinaryProtocol(TMemoryBuffer(data), **kwargs)


def describe_scalars():
    def writes_big_endian_integers(expect):
        expect(written(lambda p: p.write_i16(-2))) == bytes.fromhex("fffe")
        expect(written(lambda p: p.write_i32(1))) == bytes.fromhex("00000001")
        expect(written(lambda p: p.write_i64(-1))) == bytes.fromhex("ffffffffffffffff")

    def writes_bool_as_byte(expect):
        expect(written(lambda p: p.write_bool(True))) == b"\x01"
        expect(written(lambda p: p.write_bool(False))) == b"\x00"

    def reads_any_nonzero_byte_as_true(expect):
        expect(reader(b"\x07").read_bool()) == True

    def writes_double_as_ieee754(expect):
        expect(written(lambda p: p.write_double(1.0))) == bytes.fromhex("3ff0000000000000")

    def reads_binary_verbatim(expect):
        expect(reader(bytes.fromhex("00000002ff00")).read_binary()) == b"\xff\x00"

    def rejects_invalid_utf8_strings(expect):
        with raises(ProtocolError) as e:
            reader(bytes.fromhex("00000001ff")).read_string()
        expect(e.value.kind) == ProtocolErrorKind.INVALID_DATA

    def enforces_string_length_limit(expect):
        with raises(ProtocolError) as e:
            reader(bytes.fromhex("0000000a"), string_length_limit=4).read_string()
        expect(e.value.kind) == ProtocolErrorKind.SIZE_LIMIT

    def fails_reading_past_end(expect):
        with raises(TTransportException):
            reader(b"\x00\x01").read_i32()


def describe_messages():
    def writes_strict_header(expect):
        data = written(lambda p: p.write_message_begin("ping", TMessageType.CALL, 1))
        expect(data) == bytes.fromhex("80010001" "00000004" "70696e67" "00000001")

    def writes_old_style_header(expect):
        data = written(
            lambda p: p.write_message_begin("ping", TMessageType.ONEWAY, 2), strict_write=False
        )
        expect(data) == bytes.fromhex("00000004" "70696e67" "04" "00000002")

    def reads_both_header_styles(expect):
        strict = reader(bytes.fromhex("80010002" "00000004" "70696e67" "00000005"))
        msg = strict.read_message_begin()
        expect((msg.name, msg.mtype, msg.seqid)) == ("ping", TMessageType.REPLY, 5)

        old = reader(bytes.fromhex("00000004" "70696e67" "03" "00000006"))
        msg = old.read_message_begin()
        expect((msg.name, msg.mtype, msg.seqid)) == ("ping", TMessageType.EXCEPTION, 6)

    def rejects_bad_version(expect):
        with raises(ProtocolError) as e:
            reader(bytes.fromhex("80020001" "00000000" "00000001")).read_message_begin()
        expect(e.value.kind) == ProtocolErrorKind.BAD_VERSION

    def rejects_old_style_header_when_strict(expect):
        with raises(ProtocolError) as e:
            reader(bytes.fromhex("00000000" "01" "00000001"), strict_read=True).read_message_begin()
        expect(e.value.kind) == ProtocolErrorKind.BAD_VERSION

    def rejects_invalid_utf8_in_old_style_name(expect):
        with raises(ProtocolError) as e:
            reader(bytes.fromhex("00000001" "ff" "01" "00000001")).read_message_begin()
        expect(e.value.kind) == ProtocolErrorKind.INVALID_DATA

    def factory_applies_options(expect):
        proto = TBinaryProtocolFactory(strict_read=True, strict_write=False)(TMemoryBuffer())
        expect(proto.strict_read) == True
        expect(proto.strict_write) == False


def describe_containers():
    def writes_map_header(expect):
        data = written(lambda p: p.write_map_begin(TType.STRING, TType.I32, 2))
        expect(data) == bytes.fromhex("0b0800000002")

    def reads_list_header(expect):
        meta = reader(bytes.fromhex("0800000003")).read_list_begin()
        expect((meta.etype, meta.size)) == (TType.I32, 3)

    def rejects_negative_container_size(expect):
        with raises(ProtocolError) as e:
            reader(bytes.fromhex("08ffffffff")).read_set_begin()
        expect(e.value.kind) == ProtocolErrorKind.NEGATIVE_SIZE

    def enforces_container_length_limit(expect):
        with raises(ProtocolError) as e:
            reader(bytes.fromhex("0800000010"), container_length_limit=8).read_list_begin()
        expect(e.value.kind) == ProtocolErrorKind.SIZE_LIMIT


def describe_skip():
    def skips_nested_values(expect):
        data = bytes.fromhex(
            "0d0001"  # field 1: map
            "0b0f00000001"  # map<string, list>, one entry
            "00000001" "6b"  # key "k"
            "0200000002" "0100"  # list<bool> [true, false]
            "0a0002" "0000000000000001"  # field 2: i64
            "00"
            "ff"
        )
        trans = TMemoryBuffer(data)
        TBinaryProtocol(trans).skip(TType.STRUCT)
        expect(trans.remaining) == 1

    def rejects_unknown_wire_type(expect):
        with raises(ProtocolError) as e:
            reader(b"").skip(99)
        expect(e.value.kind) == ProtocolErrorKind.INVALID_DATA

    def limits_recursion_depth(expect):
        data = bytes.fromhex("0c0001" * 10 + "00" * 10)
        with raises(ProtocolError) as e:
            reader(data, recursion_limit=4).skip(TType.STRUCT)
        expect(e.value.kind) == ProtocolErrorKind.DEPTH_LIMIT


def describe_memory_buffer():
    def only_exposes_flushed_bytes(expect):
        trans = TMemoryBuffer()
        trans.write(b"abc")
        expect(trans.getvalue()) == b""
        trans.flush()
        expect(trans.getvalue()) == b"abc"
