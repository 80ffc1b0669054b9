"""
CRC-32 (ISO-HDLC, the PNG/zlib polynomial) over record type and payload.
Delegates the table-driven core to zlib.
"""

import zlib

from .constants import CHECKSUM_SEED


def crc32(data: bytes, crc: int = 0) -> int:
    return zlib.crc32(data, crc) & 0xFFFFFFFF


def checksum(seed: int, type_tag: bytes, payload: bytes) -> int:
    """Checksum of a record: CRC-32 of ``type_tag + payload`` continued from ``seed``.

    PNG defines every record's CRC from the fixed initial value, so callers
    building a synthetic record pass ``CHECKSUM_SEED``.
    """
    return crc32(bytes(type_tag) + bytes(payload), seed)


def record_checksum(type_tag: bytes, payload: bytes) -> int:
    return checksum(CHECKSUM_SEED, type_tag, payload)
