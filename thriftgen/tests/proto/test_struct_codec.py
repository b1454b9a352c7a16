"""Tests for generated struct encoding and decoding"""

import os

from pytest import approx, raises

from thriftgen.generator import load
from thriftgen.generator.python import render
from thriftgen.proto import TBinaryProtocol, TMemoryBuffer, TTransportException
from thriftgen.proto.serialization import ProtocolError, ProtocolErrorKind

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


def gen_code(file_name):
    gbl = globals().copy()

    generated_code = render(load(file_name), runtime_import="thriftgen.proto")
    exec(generated_code, gbl)
    return gbl


def encode(value):
    trans = TMemoryBuffer()
    value.write(TBinaryProtocol(trans))
    trans.flush()
    return trans.getvalue()


def decode(cls, data):
    return cls.read(TBinaryProtocol(TMemoryBuffer(data)))


def describe_struct_encoding():
    def encodes_empty_struct_as_stop_byte(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Ping = gen["Ping"]

        expect(encode(Ping())) == b"\x00"
        expect(decode(Ping, b"\x00")) == Ping()

    def encodes_fields_in_declaration_order(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Point = gen["Point"]

        data = encode(Point(x=1, y=2))
        expect(data) == bytes.fromhex("08000100000001" "08000200000002" "00")

    def omits_unset_fields(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Point = gen["Point"]

        expect(encode(Point(x=1))) == bytes.fromhex("08000100000001" "00")
        expect(decode(Point, bytes.fromhex("08000100000001" "00"))) == Point(x=1)

    def round_trips_every_base_type(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Everything = gen["Everything"]
        Point = gen["Point"]
        Color = gen["Color"]

        value = Everything(
            flag=True,
            small=-5,
            medium=1234,
            number=-70000,
            big=2**40,
            ratio=-1.25,
            name="héllo",
            data=b"\x00\xff",
            color=Color.BLUE,
            created=1700000000,
            origin=Point(x=3, y=4),
            numbers=[1, 2, 3],
            tags={"a"},
            counts={"x": 1},
        )

        recovered = decode(Everything, encode(value))
        expect(recovered) == value
        expect(recovered.ratio) == approx(-1.25)
        expect(recovered.color) == Color.BLUE

    def writes_string_as_length_prefixed_utf8(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Everything = gen["Everything"]

        expect(encode(Everything(name="hé"))) == bytes.fromhex("0b0007" "00000003" "68c3a9" "00")

    def writes_enum_as_i32(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Everything = gen["Everything"]
        Color = gen["Color"]

        expect(encode(Everything(color=Color.BLUE))) == bytes.fromhex("080009" "00000005" "00")

    def writes_nested_containers(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Nested = gen["Nested"]

        value = Nested(groups=[{}, {"a": 1, "b": 2}])
        data = encode(value)
        expect(data) == bytes.fromhex(
            "0f0001"
            "0d00000002"
            "0b0800000000"
            "0b0800000002"
            "0000000161" "00000001"
            "0000000162" "00000002"
            "00"
        )
        expect(decode(Nested, data)) == value

    def round_trips_sets_and_maps_of_structs(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Cluster = gen["Cluster"]
        Point = gen["Point"]

        value = Cluster(
            points={Point(x=1, y=2), Point(x=3, y=4)},
            labels={Point(x=0, y=0): "origin"},
        )
        expect(decode(Cluster, encode(value))) == value


def describe_struct_decoding():
    def skips_unknown_fields(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Point = gen["Point"]

        data = bytes.fromhex(
            "0b0063" "00000002" "7a7a"  # field 99, string "zz"
            "08000100000001"
            "00"
        )
        expect(decode(Point, data)) == Point(x=1)

    def skips_unknown_nested_struct(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Point = gen["Point"]

        data = bytes.fromhex(
            "0c0007"  # field 7, struct
            "0f0001" "0800000001" "00000009"  # list<i32> [9]
            "00"
            "08000200000002"
            "00"
        )
        expect(decode(Point, data)) == Point(y=2)

    def skips_fields_with_unexpected_wire_type(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Point = gen["Point"]

        data = bytes.fromhex("0b0001" "00000001" "31" "08000200000002" "00")
        expect(decode(Point, data)) == Point(x=None, y=2)

    def keeps_unknown_enum_values(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Everything = gen["Everything"]

        recovered = decode(Everything, bytes.fromhex("080009" "0000002a" "00"))
        expect(recovered.color) == 42

    def decodes_known_enum_values(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Everything = gen["Everything"]
        Color = gen["Color"]

        recovered = decode(Everything, bytes.fromhex("080009" "00000002" "00"))
        expect(recovered.color) == Color.GREEN

    def fails_on_truncated_input(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Point = gen["Point"]

        with raises(TTransportException):
            decode(Point, bytes.fromhex("080001"))

    def fails_on_negative_string_length(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Everything = gen["Everything"]

        with raises(ProtocolError) as e:
            decode(Everything, bytes.fromhex("0b0007" "ffffffff"))
        expect(e.value.kind) == ProtocolErrorKind.NEGATIVE_SIZE


def describe_required_fields():
    def rejects_missing_required_field_on_read(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Person = gen["Person"]

        with raises(ProtocolError) as e:
            decode(Person, b"\x00")
        expect(e.value.kind) == ProtocolErrorKind.MISSING_REQUIRED_FIELD
        expect("Person" in str(e.value)) == True

    def rejects_unset_required_field_on_write(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Person = gen["Person"]

        with raises(ProtocolError) as e:
            encode(Person())
        expect(e.value.kind) == ProtocolErrorKind.MISSING_REQUIRED_FIELD

    def writes_required_and_defaulted_fields(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Person = gen["Person"]

        person = Person(name="ann")
        recovered = decode(Person, encode(person))
        expect(recovered) == person
        expect(recovered.age) == None


def describe_defaults():
    def applies_field_defaults(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Person = gen["Person"]
        Color = gen["Color"]

        person = Person(name="ann")
        expect(person.nickname) == "anon"
        expect(person.aliases) == []
        expect(person.color) == Color.BLUE

    def does_not_share_container_defaults(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Person = gen["Person"]

        first = Person(name="a")
        first.aliases.append("x")
        expect(Person(name="b").aliases) == []

    def does_not_share_constant_defaults(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Team = gen["Team"]

        first = Team()
        first.members.append("x")
        first.home.x = 5
        expect(Team().members) == ["a", "b"]
        expect(gen["NAMES"]) == ["a", "b"]
        expect(gen["ORIGIN"].x) == 0

    def renders_constants(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Point = gen["Point"]
        Color = gen["Color"]

        expect(gen["MAX_ITEMS"]) == 10
        expect(gen["NAMES"]) == ["a", "b"]
        expect(gen["FAVOURITE"]) == Color.GREEN
        expect(gen["ORIGIN"]) == Point(x=0, y=0)

    def assigns_implicit_enum_values(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Color = gen["Color"]

        expect(Color.RED) == 1
        expect(Color.GREEN) == 2
        expect(Color.BLUE) == 5

    def aliases_typedefs(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")

        expect(gen["Timestamp"]) == int


def describe_unions_and_exceptions():
    def rejects_union_with_two_members_set(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Shape = gen["Shape"]
        Point = gen["Point"]

        with raises(ProtocolError) as e:
            Shape(point=Point(), radius=1.0)
        expect(e.value.kind) == ProtocolErrorKind.INVALID_DATA

    def rejects_decoded_union_with_two_members_set(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Shape = gen["Shape"]

        data = bytes.fromhex("0c0001" "00" "040002" "3ff0000000000000" "00")
        with raises(ProtocolError):
            decode(Shape, data)

    def round_trips_union_member(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        Shape = gen["Shape"]

        shape = Shape(radius=2.5)
        expect(decode(Shape, encode(shape))) == shape

    def generates_raisable_exceptions(expect):
        gen = gen_code(FILE_DIR + "/structs.thrift")
        NotFound = gen["NotFound"]

        error = NotFound(message="gone")
        expect(isinstance(error, Exception)) == True
        expect(error.code) == 404
        with raises(NotFound):
            raise error
        expect(decode(NotFound, encode(error))) == error
