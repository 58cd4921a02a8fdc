"""Little-endian fixed-width integer codec."""

import struct

from ..errors import TruncatedBufferError, UnsupportedTypeError

# Map (signed, bits) to struct format characters
FORMAT_CHARS: dict[tuple[bool, int], str] = {
    (False, 8): "B",
    (True, 8): "b",
    (False, 16): "H",
    (True, 16): "h",
    (False, 32): "I",
    (True, 32): "i",
    (False, 64): "Q",
    (True, 64): "q",
}


def _format(signed: bool, bits: int) -> str:
    try:
        return "<" + FORMAT_CHARS[(signed, bits)]
    except KeyError:
        kind = "signed" if signed else "unsigned"
        raise UnsupportedTypeError(f"Unsupported integer: {kind} {bits}-bit") from None


def decode_int(data: bytes | memoryview, signed: bool, bits: int) -> int:
    """Decode a little-endian two's complement integer.

    Args:
        data: Exactly ``bits // 8`` bytes.
        signed: Whether the value is two's complement signed.
        bits: Width in bits (8, 16, 32 or 64).

    Returns:
        The decoded integer.

    Raises:
        UnsupportedTypeError: The width/signedness pair is not supported.
        TruncatedBufferError: ``data`` is not exactly ``bits // 8`` bytes.
    """
    fmt = _format(signed, bits)
    if len(data) != bits // 8:
        raise TruncatedBufferError(
            f"Malformed {bits}-bit integer", expected=bits // 8, actual=len(data)
        )
    return struct.unpack(fmt, data)[0]


def encode_int(value: int, signed: bool, bits: int) -> bytes:
    """Encode an integer in the layout ``decode_int`` reads."""
    return struct.pack(_format(signed, bits), value)
