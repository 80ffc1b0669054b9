from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

from .constants import SIGNATURE_MAGIC, SIGNATURE_SIZE
from .errors import MalformedContainer


@dataclass(frozen=True)
class Signature:
    raw: bytes

    @property
    def magic(self) -> bytes:
        return self.raw[1:4]


def read_signature(f: BinaryIO) -> Signature:
    raw = f.read(SIGNATURE_SIZE)
    if len(raw) != SIGNATURE_SIZE:
        raise MalformedContainer("Signature too short")
    if raw[1:4] != SIGNATURE_MAGIC:
        raise MalformedContainer("Not a valid PNG format")
    return Signature(raw=raw)


def write_signature(signature: Signature, f: BinaryIO) -> None:
    f.write(signature.raw)
