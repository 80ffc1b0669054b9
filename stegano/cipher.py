from __future__ import annotations

import enum
from typing import Union

from Cryptodome.Cipher import AES

from .errors import CipherError, InvalidKey, UnsupportedAlgorithm


BLOCK_SIZE = 16
KEY_SIZE = 16


class Algorithm(enum.Enum):
    XOR = "xor"
    AES = "aes"

    @classmethod
    def parse(cls, name: Union[str, "Algorithm"]) -> "Algorithm":
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        alias = _ALIASES.get(key)
        if alias is None:
            raise UnsupportedAlgorithm(f"unsupported algorithm: {name!r} (choose from: {', '.join(names())})")
        return alias


_ALIASES = {
    "xor": Algorithm.XOR,
    "aes": Algorithm.AES,
    "aes128": Algorithm.AES,
    "aes-128": Algorithm.AES,
}


def names() -> list[str]:
    return [a.value for a in Algorithm]


def _pad_zeros(data: bytes, size: int) -> bytes:
    return data[:size].ljust(size, b"\x00")


def xor_bytes(data: bytes, key: bytes) -> bytes:
    if not key:
        raise InvalidKey("XOR key must not be empty")
    n = len(key)
    return bytes(b ^ key[i % n] for i, b in enumerate(data))


def _aes(key: str):
    return AES.new(_pad_zeros(key.encode("utf-8"), KEY_SIZE), AES.MODE_ECB)


def aes_encrypt(key: str, plaintext: bytes) -> bytes:
    # Zero padding up to whole blocks; an empty payload still fills one block
    blocks = max(1, -(-len(plaintext) // BLOCK_SIZE))
    return _aes(key).encrypt(_pad_zeros(plaintext, blocks * BLOCK_SIZE))


def aes_decrypt(key: str, ciphertext: bytes) -> bytes:
    if len(ciphertext) % BLOCK_SIZE:
        raise CipherError(f"AES ciphertext length {len(ciphertext)} is not a multiple of {BLOCK_SIZE}")
    return _aes(key).decrypt(ciphertext).rstrip(b"\x00")


class Cipher:
    """Encrypt/decrypt capability for one algorithm and key."""

    def __init__(self, algorithm: Union[str, Algorithm], key: str):
        self.algorithm = Algorithm.parse(algorithm)
        if self.algorithm is Algorithm.XOR and not key:
            raise InvalidKey("XOR key must not be empty")
        self.key = key

    def encrypt(self, plaintext: bytes) -> bytes:
        if self.algorithm is Algorithm.XOR:
            return xor_bytes(plaintext, self.key.encode("utf-8"))
        if self.algorithm is Algorithm.AES:
            return aes_encrypt(self.key, plaintext)
        raise UnsupportedAlgorithm(f"unsupported algorithm: {self.algorithm}")

    def decrypt(self, ciphertext: bytes) -> bytes:
        if self.algorithm is Algorithm.XOR:
            return xor_bytes(ciphertext, self.key.encode("utf-8"))
        if self.algorithm is Algorithm.AES:
            return aes_decrypt(self.key, ciphertext)
        raise UnsupportedAlgorithm(f"unsupported algorithm: {self.algorithm}")


def encrypt(algorithm: Union[str, Algorithm], key: str, plaintext: bytes) -> bytes:
    return Cipher(algorithm, key).encrypt(plaintext)


def decrypt(algorithm: Union[str, Algorithm], key: str, ciphertext: bytes) -> bytes:
    return Cipher(algorithm, key).decrypt(ciphertext)
