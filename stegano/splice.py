"""
Splice engine: embed a synthetic record into a PNG chunk stream and excise it again.

Encoding copies the signature and the first ``offset - 8`` bytes after it,
writes the synthetic record and copies the rest of the input verbatim, so
the original bytes are all still present. Decoding copies up to the record,
opens it and copies everything after it, which restores the original stream.

Every check that can reject a run (algorithm, key, payload size, signature,
offset) happens in the ``plan_*`` step, before the output is created.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .cipher import Algorithm, Cipher
from .constants import (
    AUTO_OFFSET,
    DECODE_BACKOFF,
    DEFAULT_PAYLOAD_TAG,
    DEFAULT_SCAN_LIMIT,
    ENCODE_BACKOFF,
    LOOKBACK_SIZE,
)
from .crc import record_checksum
from .diagnostics import Diagnostics, quiet_sink
from .errors import InvalidOffset
from .locator import Offset, resolve_embedded_offset, resolve_offset
from .records import (
    Record,
    StreamCursor,
    copy_exact,
    copy_remaining,
    pack_synthetic_record,
    read_synthetic_record,
)
from .signature import Signature, write_signature


PathLike = Union[str, Path]


@dataclass
class EncodeResult:
    offset: int
    size: int
    checksum: int
    ciphertext: bytes


@dataclass
class DecodeResult:
    offset: int
    size: int
    checksum: int
    plaintext: bytes
    checksum_ok: bool

    @property
    def text(self) -> str:
        return self.plaintext.decode("utf-8", errors="replace")


@dataclass
class EmbedPlan:
    signature: Signature
    offset: int
    record: Record
    frame: bytes


@dataclass
class ExtractPlan:
    signature: Signature
    offset: int
    cipher: Cipher


def _as_bytes(payload: Union[str, bytes]) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)


def plan_embedding(
    src: BinaryIO,
    payload: Union[str, bytes],
    key: str,
    *,
    algorithm: Union[str, Algorithm] = Algorithm.XOR,
    offset: Offset = AUTO_OFFSET,
    type_tag: bytes = DEFAULT_PAYLOAD_TAG,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    diag: Optional[Diagnostics] = None,
) -> EmbedPlan:
    """Validate the inputs and build the synthetic record.

    Leaves ``src`` positioned right after the signature.
    """
    diag = diag or quiet_sink()
    cipher = Cipher(algorithm, key)
    ciphertext = cipher.encrypt(_as_bytes(payload))
    record = Record.build(type_tag, ciphertext, record_checksum(type_tag, ciphertext))
    frame = pack_synthetic_record(record)

    cursor = StreamCursor.open(src, diag=diag)
    diag.info("It is a valid PNG file. Let's process it!")
    at = resolve_offset(src, offset, scan_limit=scan_limit, diag=diag)
    # Extraction copies offset - DECODE_BACKOFF bytes, so embedding must not go lower
    if at < DECODE_BACKOFF:
        raise InvalidOffset(f"offset {at} cannot be extracted again (minimum {DECODE_BACKOFF})")
    return EmbedPlan(signature=cursor.signature, offset=at, record=record, frame=frame)


def write_embedding(src: BinaryIO, dst: BinaryIO, plan: EmbedPlan, *, diag: Optional[Diagnostics] = None) -> EncodeResult:
    diag = diag or quiet_sink()
    write_signature(plan.signature, dst)
    copy_exact(src, dst, plan.offset - ENCODE_BACKOFF)
    dst.write(plan.frame)
    copy_remaining(src, dst)
    diag.info(f"Chunk offset: {plan.offset}")
    diag.info(f"Chunk size: {plan.record.length}")
    diag.info(f"Chunk crc: {plan.record.checksum:x}")
    diag.info(f"Encoded bytes: {plan.record.payload.hex()}")
    return EncodeResult(
        offset=plan.offset,
        size=plan.record.length,
        checksum=plan.record.checksum,
        ciphertext=plan.record.payload,
    )


def encode_stream(
    src: BinaryIO,
    dst: BinaryIO,
    payload: Union[str, bytes],
    key: str,
    *,
    algorithm: Union[str, Algorithm] = Algorithm.XOR,
    offset: Offset = AUTO_OFFSET,
    type_tag: bytes = DEFAULT_PAYLOAD_TAG,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    diag: Optional[Diagnostics] = None,
) -> EncodeResult:
    plan = plan_embedding(
        src, payload, key, algorithm=algorithm, offset=offset, type_tag=type_tag, scan_limit=scan_limit, diag=diag
    )
    return write_embedding(src, dst, plan, diag=diag)


def plan_extraction(
    src: BinaryIO,
    key: str,
    *,
    algorithm: Union[str, Algorithm] = Algorithm.XOR,
    offset: Offset = AUTO_OFFSET,
    type_tag: Optional[bytes] = None,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    diag: Optional[Diagnostics] = None,
) -> ExtractPlan:
    diag = diag or quiet_sink()
    cipher = Cipher(algorithm, key)
    cursor = StreamCursor.open(src, diag=diag)
    diag.info("It is a valid PNG file. Let's process it!")
    at = resolve_embedded_offset(src, offset, type_tag=type_tag, scan_limit=scan_limit, diag=diag)
    if at < DECODE_BACKOFF:
        raise InvalidOffset(f"offset {at} is too small to hold an embedded record (minimum {DECODE_BACKOFF})")
    return ExtractPlan(signature=cursor.signature, offset=at, cipher=cipher)


def write_extraction(src: BinaryIO, dst: BinaryIO, plan: ExtractPlan, *, diag: Optional[Diagnostics] = None) -> DecodeResult:
    diag = diag or quiet_sink()
    write_signature(plan.signature, dst)
    copy_exact(src, dst, plan.offset - DECODE_BACKOFF)
    # lookback window: original bytes directly in front of the record
    copy_exact(src, dst, LOOKBACK_SIZE)
    record = read_synthetic_record(src)
    checksum_ok = record_checksum(record.type_tag, record.payload) == record.checksum
    if not checksum_ok:
        diag.warning(f"CRC mismatch for the embedded record at offset {plan.offset}")
    plaintext = plan.cipher.decrypt(record.payload)
    copy_remaining(src, dst)
    diag.info(f"Chunk offset: {plan.offset}")
    diag.info(f"Chunk size: {record.length}")
    diag.info(f"Chunk crc: {record.checksum:x}")
    return DecodeResult(
        offset=plan.offset,
        size=record.length,
        checksum=record.checksum,
        plaintext=plaintext,
        checksum_ok=checksum_ok,
    )


def decode_stream(
    src: BinaryIO,
    dst: BinaryIO,
    key: str,
    *,
    algorithm: Union[str, Algorithm] = Algorithm.XOR,
    offset: Offset = AUTO_OFFSET,
    type_tag: Optional[bytes] = None,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    diag: Optional[Diagnostics] = None,
) -> DecodeResult:
    plan = plan_extraction(
        src, key, algorithm=algorithm, offset=offset, type_tag=type_tag, scan_limit=scan_limit, diag=diag
    )
    return write_extraction(src, dst, plan, diag=diag)


def embed_file(
    input_path: PathLike,
    output_path: PathLike,
    payload: Union[str, bytes],
    key: str,
    *,
    algorithm: Union[str, Algorithm] = Algorithm.XOR,
    offset: Offset = AUTO_OFFSET,
    type_tag: bytes = DEFAULT_PAYLOAD_TAG,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    diag: Optional[Diagnostics] = None,
) -> EncodeResult:
    """Write a copy of ``input_path`` carrying the encrypted payload to ``output_path``."""
    with open(input_path, "rb") as src:
        plan = plan_embedding(
            src, payload, key, algorithm=algorithm, offset=offset, type_tag=type_tag, scan_limit=scan_limit, diag=diag
        )
        with open(output_path, "wb") as dst:
            return write_embedding(src, dst, plan, diag=diag)


def extract_file(
    input_path: PathLike,
    output_path: PathLike,
    key: str,
    *,
    algorithm: Union[str, Algorithm] = Algorithm.XOR,
    offset: Offset = AUTO_OFFSET,
    type_tag: Optional[bytes] = None,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    diag: Optional[Diagnostics] = None,
) -> DecodeResult:
    """Recover the payload from ``input_path`` and write the restored image to ``output_path``."""
    with open(input_path, "rb") as src:
        plan = plan_extraction(
            src, key, algorithm=algorithm, offset=offset, type_tag=type_tag, scan_limit=scan_limit, diag=diag
        )
        with open(output_path, "wb") as dst:
            return write_extraction(src, dst, plan, diag=diag)
