"""Tests for member extents and size calculation."""

import pytest

from layoutdump.errors import MemberLayoutError, UnsupportedTypeError
from layoutdump.graph import SizeCalculator, member_extents, parse


def describe_member_extents():
    def includes_padding_in_preceding_member(expect, event_graph):
        extents = member_extents(event_graph.struct_by_name("event"))
        expect([(e.name, e.start, e.end) for e in extents]) == [
            ("pid", 0, 8),
            ("delta_ns", 8, 16),
            ("filename", 16, 48),
            ("task", 48, 64),
            ("f", 64, 72),
            ("info1", 72, 108),
            ("info2", 108, 144),
            ("unsigned_int_data", 144, 184),
            ("short_int_data", 184, 192),
            ("embed_a", 192, 208),
        ]

    def last_member_extends_to_struct_size(expect, event_graph):
        extents = member_extents(event_graph.struct_by_name("access_info"))
        expect(extents[-1].start) == 4
        expect(extents[-1].length) == 32

    def covers_whole_struct(expect, event_graph):
        for t in event_graph:
            if t.kind == "STRUCT":
                extents = member_extents(t)
                expect(sum(e.length for e in extents)) == t.size

    def handles_empty_structs(expect):
        graph = parse("[1] STRUCT 'empty' size=0 vlen=0")
        expect(member_extents(graph.type_by_id(1))) == []

    def serializes_to_dict(expect, event_graph):
        extent = member_extents(event_graph.struct_by_name("foo"))[1]
        expect(extent.to_dict()) == {"name": "b", "start": 4, "end": 8, "type_id": 2}

    def rejects_decreasing_offsets(expect):
        graph = parse(
            """
            [1] INT 'int' size=4 bits_offset=0 nr_bits=32 encoding=SIGNED
            [2] STRUCT 'bad' size=8 vlen=2
                'a' type_id=1 bits_offset=32
                'b' type_id=1 bits_offset=0
            """
        )
        with pytest.raises(MemberLayoutError) as exinfo:
            member_extents(graph.type_by_id(2))
        expect(str(exinfo.value)).includes("'b' is placed before 'a'")

    def rejects_member_past_struct_size(expect):
        graph = parse(
            """
            [1] INT 'int' size=4 bits_offset=0 nr_bits=32 encoding=SIGNED
            [2] STRUCT 'bad' size=4 vlen=2
                'a' type_id=1 bits_offset=0
                'b' type_id=1 bits_offset=64
            """
        )
        with pytest.raises(MemberLayoutError) as exinfo:
            member_extents(graph.type_by_id(2))
        expect(str(exinfo.value)).includes("past the struct size")

    def rejects_bitfields(expect):
        graph = parse(
            """
            [1] INT 'unsigned int' size=4 bits_offset=0 nr_bits=32 encoding=(none)
            [2] STRUCT 'flags' size=4 vlen=2
                'ready' type_id=1 bits_offset=0 bitfield_size=1
                'mode' type_id=1 bits_offset=1 bitfield_size=3
            """
        )
        with pytest.raises(UnsupportedTypeError) as exinfo:
            member_extents(graph.type_by_id(2))
        expect(str(exinfo.value)).includes("Bitfield member 'ready'")


def describe_size_calculator():
    def sizes_integers_and_aggregates(expect, event_graph):
        calc = SizeCalculator(event_graph)
        expect(calc.size_of(event_graph.type_by_id(3))) == 8
        expect(calc.size_of(event_graph.type_by_id(11))) == 36
        expect(calc.size_of(event_graph.type_by_id(13))) == 4
        expect(calc.size_of(event_graph.type_by_id(14))) == 32

    def sizes_arrays_by_element(expect, event_graph):
        calc = SizeCalculator(event_graph)
        expect(calc.size_of(event_graph.type_by_id(20))) == 40
        expect(calc.size_of(event_graph.type_by_id(22))) == 8

    def resolves_aliases(expect, event_graph):
        calc = SizeCalculator(event_graph)
        expect(calc.size_of(event_graph.type_by_id(1))) == 4
        expect(calc.size_of(event_graph.type_by_id(26))) == 208

    def sizes_nested_arrays(expect):
        graph = parse(
            """
            [1] INT 'short' size=2 bits_offset=0 nr_bits=16 encoding=SIGNED
            [2] ARRAY '(anon)' type_id=1 index_type_id=1 nr_elems=3
            [3] ARRAY '(anon)' type_id=2 index_type_id=1 nr_elems=4
            """
        )
        expect(SizeCalculator(graph).size_of(graph.type_by_id(3))) == 24

    def rejects_opaque_types(expect, event_graph):
        with pytest.raises(UnsupportedTypeError) as exinfo:
            SizeCalculator(event_graph).size_of(event_graph.type_by_id(27))
        expect(exinfo.value.type_name) == "ptr (anon)"
