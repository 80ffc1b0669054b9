from __future__ import annotations

import io
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional

from .constants import (
    CHECKSUM_SIZE,
    COPY_BUFFER_SIZE,
    LENGTH_FIELD_SIZE,
    MAX_SYNTHETIC_PAYLOAD,
    TAG_SIZE,
)
from .diagnostics import Diagnostics, quiet_sink
from .errors import PayloadTooLarge, TruncatedStream
from .signature import Signature, read_signature


# Standard record: length u32 BE | type[4] | payload | crc u32 BE
_U32_BE = struct.Struct(">I")
# Synthetic record header: length u8 | type[4]
_NARROW_HDR_STRUCT = struct.Struct(">B4s")


@dataclass
class Record:
    length: int
    type_tag: bytes
    payload: bytes
    checksum: int
    truncated: bool = False

    @classmethod
    def empty(cls) -> "Record":
        return cls(length=0, type_tag=b"", payload=b"", checksum=0)

    @classmethod
    def build(cls, type_tag: bytes, payload: bytes, checksum: int) -> "Record":
        return cls(length=len(payload), type_tag=bytes(type_tag), payload=bytes(payload), checksum=checksum)

    @property
    def type_code(self) -> int:
        return int.from_bytes(self.type_tag, "big")

    @property
    def label(self) -> str:
        return type_label(self)

    def framed_size(self) -> int:
        return LENGTH_FIELD_SIZE + TAG_SIZE + self.length + CHECKSUM_SIZE


def type_label(record: Record) -> str:
    return record.type_tag.decode("utf-8", errors="replace")


def read_exact(f: BinaryIO, n: int) -> bytes:
    b = f.read(n)
    if len(b) != n:
        raise TruncatedStream(f"Unexpected EOF: wanted {n} bytes, got {len(b)}")
    return b


def read_up_to(f: BinaryIO, n: int, *, bufsize: int = COPY_BUFFER_SIZE) -> bytes:
    """Read at most ``n`` bytes, stopping early at end of stream.

    Reads in ``bufsize`` pieces so an untrusted length never sizes a buffer.
    """
    parts = []
    remaining = n
    while remaining > 0:
        buf = f.read(min(bufsize, remaining))
        if not buf:
            break
        parts.append(buf)
        remaining -= len(buf)
    return b"".join(parts)


def copy_exact(src: BinaryIO, dst: BinaryIO, n: int, *, bufsize: int = COPY_BUFFER_SIZE) -> int:
    """Copy exactly ``n`` bytes; a short read is fatal."""
    remaining = n
    while remaining > 0:
        buf = src.read(min(bufsize, remaining))
        if not buf:
            raise TruncatedStream(f"Unexpected EOF: {remaining} of {n} bytes left to copy")
        dst.write(buf)
        remaining -= len(buf)
    return n


def copy_remaining(src: BinaryIO, dst: BinaryIO, *, bufsize: int = COPY_BUFFER_SIZE) -> int:
    copied = 0
    while True:
        buf = src.read(bufsize)
        if not buf:
            break
        dst.write(buf)
        copied += len(buf)
    return copied


def read_record(f: BinaryIO, previous: Optional[Record] = None, diag: Optional[Diagnostics] = None) -> Record:
    """Read one standard record, tolerating a short stream.

    A short length read keeps ``previous.length``; short type, payload and
    checksum reads keep whatever bytes were available (checksum 0). Each is
    reported as a warning and marks the record ``truncated``.
    """
    diag = diag or quiet_sink()
    length = previous.length if previous is not None else 0
    truncated = False

    raw = f.read(LENGTH_FIELD_SIZE)
    if len(raw) == LENGTH_FIELD_SIZE:
        (length,) = _U32_BE.unpack(raw)
    else:
        diag.warning("Reached end of file prematurely while reading chunk size")
        truncated = True

    type_tag = f.read(TAG_SIZE)
    if len(type_tag) != TAG_SIZE:
        diag.warning("Reached end of file prematurely while reading chunk type")
        truncated = True

    payload = read_up_to(f, length)
    if len(payload) != length:
        diag.warning("Reached end of file prematurely while reading chunk bytes")
        truncated = True

    raw = f.read(CHECKSUM_SIZE)
    if len(raw) == CHECKSUM_SIZE:
        (crc,) = _U32_BE.unpack(raw)
    else:
        diag.warning("Reached end of file prematurely while reading CRC")
        crc = 0
        truncated = True

    return Record(length=length, type_tag=type_tag, payload=payload, checksum=crc, truncated=truncated)


def pack_synthetic_record(record: Record) -> bytes:
    if len(record.payload) > MAX_SYNTHETIC_PAYLOAD:
        raise PayloadTooLarge(
            f"Synthetic record payload is {len(record.payload)} bytes; at most {MAX_SYNTHETIC_PAYLOAD} fit the length byte"
        )
    if len(record.type_tag) != TAG_SIZE:
        raise ValueError("type_tag must be 4 bytes")
    return (
        _NARROW_HDR_STRUCT.pack(len(record.payload), record.type_tag)
        + record.payload
        + _U32_BE.pack(record.checksum & 0xFFFFFFFF)
    )


def write_synthetic_record(record: Record, f: BinaryIO) -> int:
    data = pack_synthetic_record(record)
    f.write(data)
    return len(data)


def read_synthetic_record(f: BinaryIO) -> Record:
    length, type_tag = _NARROW_HDR_STRUCT.unpack(read_exact(f, _NARROW_HDR_STRUCT.size))
    payload = read_exact(f, length)
    (crc,) = _U32_BE.unpack(read_exact(f, CHECKSUM_SIZE))
    return Record(length=length, type_tag=type_tag, payload=payload, checksum=crc)


def stream_size(f: BinaryIO) -> int:
    pos = f.tell()
    try:
        return f.seek(0, io.SEEK_END)
    finally:
        f.seek(pos)


class StreamCursor:
    """Read position over one container stream.

    ``record`` is the most recently read record and ``offset`` its start.
    Only ``read_record`` and ``seek`` move the cursor.
    """

    def __init__(self, fh: BinaryIO, signature: Signature, *, diag: Optional[Diagnostics] = None) -> None:
        self.fh = fh
        self.signature = signature
        self.diag = diag or quiet_sink()
        self.record = Record.empty()
        self.offset = fh.tell()

    @classmethod
    def open(cls, fh: BinaryIO, *, diag: Optional[Diagnostics] = None) -> "StreamCursor":
        signature = read_signature(fh)
        return cls(fh, signature, diag=diag)

    def tell(self) -> int:
        return self.fh.tell()

    def seek(self, offset: int) -> None:
        self.fh.seek(offset)

    def read_record(self) -> Record:
        self.offset = self.fh.tell()
        self.record = read_record(self.fh, previous=self.record, diag=self.diag)
        return self.record
