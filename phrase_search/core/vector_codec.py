"""Binary codec between float vectors and flat float64 byte buffers.

Layout is little-endian IEEE-754 double precision, `8 * len(vector)` bytes,
with no header or padding. The dimension is implied by the index schema.
"""

from __future__ import annotations

import math
import struct
from typing import Sequence

from .errors import MalformedVectorError

ITEM_SIZE = 8
_BYTE_ORDER = "<"


def encode_vector(vector: Sequence[float]) -> bytes:
    """Encode a float sequence into a float64 byte buffer."""

    values = [float(value) for value in vector]
    for position, value in enumerate(values):
        if not math.isfinite(value):
            raise MalformedVectorError(
                f"Vector contains non-finite value {value!r} at position {position}"
            )
    return struct.pack(f"{_BYTE_ORDER}{len(values)}d", *values)


def decode_vector(data: bytes | bytearray | memoryview) -> tuple[float, ...]:
    """Decode a float64 byte buffer produced by `encode_vector`."""

    raw = bytes(data)
    if len(raw) % ITEM_SIZE != 0:
        raise MalformedVectorError(
            f"Vector buffer length {len(raw)} is not a multiple of {ITEM_SIZE}"
        )
    return struct.unpack(f"{_BYTE_ORDER}{len(raw) // ITEM_SIZE}d", raw)
