from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from .constants import LENGTH_FIELD_SIZE, TAG_SIZE, TERMINAL_LABEL
from .diagnostics import Diagnostics, quiet_sink
from .records import StreamCursor, stream_size


HEX_WIDTH = 20


@dataclass
class RecordInfo:
    index: int
    offset: int
    size: int
    label: str
    checksum: int
    payload: bytes


def walk_records(cursor: StreamCursor, *, start: int = 1, end: int = 11, limit: int = 10) -> List[RecordInfo]:
    """Read records from the cursor's position, numbering them from ``start``.

    At most ``min(end - start, limit)`` records are read; the walk also stops
    after the terminal record and at end of stream. Short reads only warn.
    """
    size = stream_size(cursor.fh)
    infos: List[RecordInfo] = []
    for i, index in enumerate(range(start, end)):
        if cursor.tell() >= size:
            break
        record = cursor.read_record()
        infos.append(
            RecordInfo(
                index=index,
                offset=cursor.offset,
                size=record.length,
                label=record.label,
                checksum=record.checksum,
                payload=record.payload,
            )
        )
        if i + 1 >= limit or record.label == TERMINAL_LABEL:
            break
    return infos


def hexdump(data: bytes, offset: int = 0, width: int = HEX_WIDTH) -> List[str]:
    """Format ``data`` as ``address | hex bytes | ascii`` lines."""
    lines = []
    for i in range(0, len(data), width):
        row = data[i : i + width]
        hex_part = " ".join(f"{b:02X}" for b in row)
        text = "".join(chr(b) if 0x21 <= b <= 0x7E else "." for b in row)
        lines.append(f"{offset + i:08} | {hex_part.ljust(width * 3 - 1)} | {text}")
    return lines


def show_meta_stream(
    fh: BinaryIO,
    *,
    start: int = 1,
    end: int = 11,
    limit: int = 10,
    dump: bool = False,
    diag: Optional[Diagnostics] = None,
) -> List[RecordInfo]:
    diag = diag or quiet_sink()
    cursor = StreamCursor.open(fh, diag=diag)
    diag.info("It is a valid PNG file. Let's process it!")
    infos = walk_records(cursor, start=start, end=end, limit=limit)
    for info in infos:
        diag.info(f"---- Chunk #{info.index} ----")
        diag.info(f"Chunk offset: {info.offset}")
        diag.info(f"Chunk size: {info.size}")
        diag.info(f"Chunk type: {info.label}")
        diag.info(f"Chunk crc: {info.checksum:x}")
        if dump:
            for line in hexdump(info.payload, info.offset + LENGTH_FIELD_SIZE + TAG_SIZE):
                diag.info(line)
    return infos


def show_meta(path: Union[str, Path], **kwargs) -> List[RecordInfo]:
    with open(path, "rb") as fh:
        return show_meta_stream(fh, **kwargs)
