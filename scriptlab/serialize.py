"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Serialization helpers for the transaction wire format
"""

import struct
from typing import Tuple


def get_size_of_compact_size(n_size: int) -> int:
    """Get size of compact size encoding"""
    if n_size < 253:
        return 1
    elif n_size <= 0xFFFF:
        return 3
    elif n_size <= 0xFFFFFFFF:
        return 5
    else:
        return 9


def write_compact_size(stream: bytearray, n_size: int):
    """Write compact size to stream"""
    if n_size < 253:
        stream.extend(struct.pack("<B", n_size))
    elif n_size <= 0xFFFF:
        stream.extend(struct.pack("<BH", 253, n_size))
    elif n_size <= 0xFFFFFFFF:
        stream.extend(struct.pack("<BI", 254, n_size))
    else:
        stream.extend(struct.pack("<BQ", 255, n_size))


def read_compact_size(data: bytes, offset: int) -> Tuple[int, int]:
    """Read compact size from data, returns (value, new_offset)"""
    if offset >= len(data):
        raise ValueError("End of data")

    ch_size = data[offset]
    offset += 1

    if ch_size < 253:
        return ch_size, offset
    elif ch_size == 253:
        width, fmt = 2, "<H"
    elif ch_size == 254:
        width, fmt = 4, "<I"
    else:
        width, fmt = 8, "<Q"

    if offset + width > len(data):
        raise ValueError("End of data")
    n_size = struct.unpack(fmt, bytes(data[offset : offset + width]))[0]
    return n_size, offset + width


class DataStream:
    """Byte stream with a read cursor"""

    def __init__(self, data: bytes = b""):
        self.vch = bytearray(data)
        self.n_read_pos = 0

    def write(self, data: bytes):
        """Write data to stream"""
        self.vch.extend(data)

    def read(self, n_size: int) -> bytes:
        """Read data from stream"""
        if self.n_read_pos + n_size > len(self.vch):
            raise ValueError("End of data")
        result = bytes(self.vch[self.n_read_pos : self.n_read_pos + n_size])
        self.n_read_pos += n_size
        return result

    def write_compact_size(self, n_size: int):
        write_compact_size(self.vch, n_size)

    def read_compact_size(self) -> int:
        n_size, self.n_read_pos = read_compact_size(self.vch, self.n_read_pos)
        return n_size

    def write_var_bytes(self, data: bytes):
        """Write length-prefixed bytes"""
        self.write_compact_size(len(data))
        self.write(data)

    def read_var_bytes(self) -> bytes:
        return self.read(self.read_compact_size())

    def write_uint32(self, n: int):
        self.write(struct.pack("<I", n))

    def read_uint32(self) -> int:
        return struct.unpack("<I", self.read(4))[0]

    def write_int32(self, n: int):
        self.write(struct.pack("<i", n))

    def read_int32(self) -> int:
        return struct.unpack("<i", self.read(4))[0]

    def write_uint64(self, n: int):
        self.write(struct.pack("<Q", n))

    def read_uint64(self) -> int:
        return struct.unpack("<Q", self.read(8))[0]

    def size(self) -> int:
        """Get remaining size"""
        return len(self.vch) - self.n_read_pos

    def empty(self) -> bool:
        """Check if stream is fully read"""
        return self.n_read_pos >= len(self.vch)

    def get_bytes(self) -> bytes:
        """Get all bytes"""
        return bytes(self.vch)
