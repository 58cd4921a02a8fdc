"""Tests for CLI interface."""

import json
import os
import struct
import tempfile

from click.testing import CliRunner

from layoutdump.cli import cli

FILE_DIR = os.path.dirname(os.path.realpath(__file__))

EVENT_DUMP = f"{FILE_DIR}/event.btf"

TAIL = """\
[1] INT 'unsigned int' size=4 bits_offset=0 nr_bits=32 encoding=(none)
[2] ARRAY '(anon)' type_id=1 index_type_id=1 nr_elems=2
[3] STRUCT 'tail' size=10 vlen=2
	'head' type_id=1 bits_offset=0
	'data' type_id=2 bits_offset=32
"""


def _write(tmpdir, name, content):
    path = os.path.join(tmpdir, name)
    mode = "wb" if isinstance(content, bytes) else "w"
    with open(path, mode) as f:
        f.write(content)
    return path


def describe_decode_command():
    def decodes_to_json(expect, make_event):
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            data_file = _write(tmpdir, "event.bin", make_event(pid=200, delta_ns=100))
            result = runner.invoke(cli, ["decode", "-i", EVENT_DUMP, "-d", data_file])

        expect(result.exit_code) == 0
        decoded = json.loads(result.output)
        expect(decoded["pid"]) == 200
        expect(decoded["delta_ns"]) == 100
        expect(decoded["filename"]) == "foo.c"
        expect(decoded["info2"]["info"]) == {"process_name": "/bin/foo"}

    def reads_buffer_from_stdin(expect, make_event):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-i", EVENT_DUMP, "-d", "-"], input=make_event())
        expect(result.exit_code) == 0
        expect(json.loads(result.output)["task"]) == "foo"

    def decodes_to_tree(expect, make_event):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["decode", "-i", EVENT_DUMP, "-d", "-", "-f", "tree"], input=make_event()
        )
        expect(result.exit_code) == 0
        expect(result.output).includes("pid: 1234")
        expect(result.output).includes("eb1: 345")

    def decodes_with_explicit_link(expect, make_event):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["decode", "-i", EVENT_DUMP, "-d", "-", "--link", "info=type"],
            input=make_event(),
        )
        expect(result.exit_code) == 0
        expect(json.loads(result.output)["info1"]["info"]) == {"file_name": "/etc/foo.conf"}

    def rejects_malformed_link(expect, make_event):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["decode", "-i", EVENT_DUMP, "-d", "-", "--link", "info"],
            input=make_event(),
        )
        expect(result.exit_code) == 2
        expect(result.output).includes("UNION=ENUM")

    def drops_partial_elements_unless_strict(expect):
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            dump = _write(tmpdir, "tail.btf", TAIL)
            data_file = _write(tmpdir, "tail.bin", struct.pack("<II2x", 7, 42))

            result = runner.invoke(cli, ["decode", "-i", dump, "-d", data_file, "-t", "tail"])
            expect(result.exit_code) == 0
            expect(json.loads(result.output)) == {"head": 7, "data": [42]}

            result = runner.invoke(
                cli, ["decode", "-i", dump, "-d", data_file, "-t", "tail", "--strict"]
            )
            expect(result.exit_code) == 1
            expect(result.output).includes("Error: Array elements do not fit")

    def fails_with_unknown_struct(expect, make_event):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["decode", "-i", EVENT_DUMP, "-d", "-", "-t", "nope"], input=make_event()
        )
        expect(result.exit_code) == 1
        expect(result.output).includes("Error: No struct named 'nope'")

    def fails_with_short_buffer(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-i", EVENT_DUMP, "-d", "-"], input=b"\x00" * 10)
        expect(result.exit_code) == 1
        expect(result.output).includes("expected 208 bytes, got 10")

    def fails_with_missing_input(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-i", "/nonexistent/file.btf", "-d", "-"])
        expect(result.exit_code) != 0


def describe_info_command():
    def shows_member_table(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", EVENT_DUMP])
        expect(result.exit_code) == 0
        expect(result.output).includes("event")
        expect(result.output).includes("208 bytes")
        expect(result.output).includes("144-184")
        expect(result.output).includes("typedef tgid_t")

    def outputs_json(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-i", EVENT_DUMP, "-t", "foo", "--json"])
        expect(result.exit_code) == 0
        expect(json.loads(result.output)) == {
            "name": "foo",
            "size": 8,
            "members": [
                {"name": "a", "start": 0, "end": 4, "type_id": 10, "type": "int int"},
                {"name": "b", "start": 4, "end": 8, "type_id": 2, "type": "int unsigned int"},
            ],
        }


def describe_header_command():
    def writes_to_stdout(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["header", "-i", EVENT_DUMP])
        expect(result.exit_code) == 0
        expect(result.output).includes("struct event {")

    def writes_to_file(expect):
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmpdir:
            output_file = os.path.join(tmpdir, "event.h")
            result = runner.invoke(cli, ["header", "-i", EVENT_DUMP, "-o", output_file])
            expect(result.exit_code) == 0
            with open(output_file) as f:
                content = f.read()
        expect(content).includes("#ifndef LAYOUTDUMP_EVENT_H")
        expect(content).includes("typedef unsigned int tgid_t;")


def describe_main_group():
    def shows_help(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        expect(result.exit_code) == 0
        expect(result.output).includes("decode")
        expect(result.output).includes("info")
        expect(result.output).includes("header")
