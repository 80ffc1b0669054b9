from __future__ import annotations

from typing import BinaryIO, Optional, Union

from .constants import (
    AUTO_BACKOFF,
    AUTO_OFFSET,
    CHECKSUM_SIZE,
    COPY_BUFFER_SIZE,
    DECODE_BACKOFF,
    DEFAULT_SCAN_LIMIT,
    MAX_SYNTHETIC_PAYLOAD,
    NARROW_LENGTH_SIZE,
    SYNTHETIC_OVERHEAD,
    TAG_SIZE,
    TERMINAL_LABEL,
    TERMINAL_RECORD,
)
from .crc import record_checksum
from .diagnostics import Diagnostics, quiet_sink
from .errors import InvalidOffset, SyntheticRecordNotFound, TerminalRecordNotFound
from .records import _U32_BE, Record, read_record, stream_size


Offset = Union[int, str]


def is_auto(requested: Offset) -> bool:
    return isinstance(requested, str) and requested.strip().lower() == AUTO_OFFSET


def parse_offset(value: Offset) -> Offset:
    """Normalize a user-given offset: ``"auto"`` or a non-negative integer."""
    if is_auto(value):
        return AUTO_OFFSET
    try:
        offset = int(value)
    except (TypeError, ValueError):
        raise InvalidOffset(f"offset must be an integer or {AUTO_OFFSET!r}, got {value!r}")
    if offset < 0:
        raise InvalidOffset(f"offset must not be negative, got {offset}")
    return offset


def _framing_intact(record: Record, start: int, size: int) -> bool:
    return (
        not record.truncated
        and len(record.type_tag) == TAG_SIZE
        and record.type_tag.isalpha()
        and start + record.framed_size() <= size
    )


def _resync_on_terminal(fh: BinaryIO, start: int, *, bufsize: int = COPY_BUFFER_SIZE) -> Optional[int]:
    """Offset of the last framed terminal record at or after ``start``.

    Only a whole terminal record (zero length, type, CRC) counts, and the
    last one wins, so terminal bytes inside a payload are not mistaken for it.
    """
    fh.seek(start)
    found = None
    pos = start
    carry = b""
    while True:
        buf = fh.read(bufsize)
        if not buf:
            break
        window = carry + buf
        idx = window.rfind(TERMINAL_RECORD)
        if idx >= 0:
            found = pos - len(carry) + idx
        carry = window[-(len(TERMINAL_RECORD) - 1) :]
        pos += len(buf)
    return found


def locate_terminal(fh: BinaryIO, *, scan_limit: int = DEFAULT_SCAN_LIMIT, diag: Optional[Diagnostics] = None) -> int:
    """Walk records from the current position and return the terminal record's offset.

    Stops after ``scan_limit`` records or at end of stream. A record that
    cannot be genuine (non-letter type, or longer than the rest of the
    stream) means the framing is lost, e.g. behind a spliced record; the walk
    then searches the rest of the stream for the last framed terminal record.

    Raises:
        TerminalRecordNotFound: when no terminal record was found.
    """
    diag = diag or quiet_sink()
    size = stream_size(fh)
    previous: Optional[Record] = None
    walked = 0
    while walked < scan_limit:
        start = fh.tell()
        if start >= size:
            break
        record = read_record(fh, previous=previous, diag=diag)
        walked += 1
        if record.label == TERMINAL_LABEL and record.length == 0:
            return start
        if not _framing_intact(record, start, size):
            diag.info(f"Record framing lost at offset {start}; searching for {TERMINAL_LABEL}")
            found = _resync_on_terminal(fh, start)
            if found is not None:
                return found
            break
        previous = record
    raise TerminalRecordNotFound(f"No {TERMINAL_LABEL} record found after walking {walked} records")


def resolve_offset(
    fh: BinaryIO,
    requested: Offset,
    *,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    diag: Optional[Diagnostics] = None,
) -> int:
    """Byte offset at which the synthetic record is spliced in.

    An explicit offset is returned unchanged. ``"auto"`` resolves to
    ``AUTO_BACKOFF`` bytes before the terminal record. The stream position
    is left where it was.
    """
    if not is_auto(requested):
        return int(requested)
    pos = fh.tell()
    try:
        terminal = locate_terminal(fh, scan_limit=scan_limit, diag=diag)
    finally:
        fh.seek(pos)
    return terminal - AUTO_BACKOFF


def find_synthetic_record(fh: BinaryIO, end: int, *, type_tag: Optional[bytes] = None) -> int:
    """Return the start of the synthetic record that ends at ``end``.

    Tries every payload length the length byte can express and accepts the
    first candidate whose length byte and checksum both match.
    """
    pos = fh.tell()
    try:
        for length in range(MAX_SYNTHETIC_PAYLOAD + 1):
            start = end - SYNTHETIC_OVERHEAD - length
            if start < DECODE_BACKOFF:
                break
            fh.seek(start)
            raw = fh.read(SYNTHETIC_OVERHEAD + length)
            if len(raw) != SYNTHETIC_OVERHEAD + length or raw[0] != length:
                continue
            tag = raw[NARROW_LENGTH_SIZE : NARROW_LENGTH_SIZE + TAG_SIZE]
            if type_tag is not None and tag != type_tag:
                continue
            payload = raw[NARROW_LENGTH_SIZE + TAG_SIZE : -CHECKSUM_SIZE]
            (crc,) = _U32_BE.unpack(raw[-CHECKSUM_SIZE:])
            if record_checksum(tag, payload) == crc:
                return start
    finally:
        fh.seek(pos)
    raise SyntheticRecordNotFound(f"No embedded record ends at offset {end}")


def resolve_embedded_offset(
    fh: BinaryIO,
    requested: Offset,
    *,
    type_tag: Optional[bytes] = None,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    diag: Optional[Diagnostics] = None,
) -> int:
    """Offset of an already spliced synthetic record.

    ``"auto"`` walks to the terminal record, backs off ``AUTO_BACKOFF`` to the
    end of the synthetic record and finds where that record starts. The
    stream position is left where it was.
    """
    if not is_auto(requested):
        return int(requested)
    pos = fh.tell()
    try:
        terminal = locate_terminal(fh, scan_limit=scan_limit, diag=diag)
        return find_synthetic_record(fh, terminal - AUTO_BACKOFF, type_tag=type_tag)
    finally:
        fh.seek(pos)
