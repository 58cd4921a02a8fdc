"""Unit tests configuration file."""

import os
import struct

import pytest

from layoutdump.graph import TypeGraph, parse

FILE_DIR = os.path.dirname(os.path.realpath(__file__))

EVENT_DUMP = f"{FILE_DIR}/event.btf"

ACCESS_PROCESS = 0
ACCESS_FILE = 1


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


def pack_event(
    pid=1234,
    delta_ns=899999888,
    filename=b"foo.c",
    task=b"foo",
    foo=(1, 2),
    info1=(ACCESS_FILE, b"/etc/foo.conf"),
    info2=(ACCESS_PROCESS, b"/bin/foo"),
    unsigned_int_data=(99999, 99998, 0, 0, 0, 0, 0, 0, 0, 0),
    short_int_data=(1, 2, 3, 4),
    embed_a=(1, 2, 345),
):
    """Lay out a `struct event` the way a 64-bit C compiler does."""
    buf = struct.pack("<I4xQ32s16s", pid, delta_ns, filename, task)
    buf += struct.pack("<iI", *foo)
    for kind, name in (info1, info2):
        buf += struct.pack("<i32s", kind, name)
    buf += struct.pack("<10I", *unsigned_int_data)
    buf += struct.pack("<4h", *short_int_data)
    buf += struct.pack("<3i4x", *embed_a)
    return buf


@pytest.fixture
def event_graph() -> TypeGraph:
    with open(EVENT_DUMP, encoding="utf-8") as f:
        return parse(f.read())


@pytest.fixture
def event_buffer() -> bytes:
    return pack_event()


@pytest.fixture
def make_event():
    return pack_event
