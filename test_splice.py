from __future__ import annotations

import io
import os
import struct
import tempfile
import unittest
import zlib
from pathlib import Path

from stegano.constants import AUTO_OFFSET, TERMINAL_RECORD
from stegano.crc import record_checksum
from stegano.diagnostics import Diagnostics
from stegano.errors import (
    InvalidKey,
    InvalidOffset,
    MalformedContainer,
    PayloadTooLarge,
    TruncatedStream,
    UnsupportedAlgorithm,
)
from stegano.splice import decode_stream, embed_file, encode_stream, extract_file


SIG = b"\x89PNG\r\n\x1a\n"


def _record(tag: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(tag + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + tag + payload + struct.pack(">I", crc)


def _build_png(idat: bytes = bytes(955)) -> bytes:
    ihdr = struct.pack(">IIBBBBB", 1, 1, 8, 6, 0, 0, 0)
    return SIG + _record(b"IHDR", ihdr) + _record(b"IDAT", idat) + _record(b"IEND", b"")


def _sink() -> Diagnostics:
    return Diagnostics(quiet=True, out=io.StringIO(), err=io.StringIO())


def _encode(png: bytes, payload, key: str, **kwargs):
    out = io.BytesIO()
    res = encode_stream(io.BytesIO(png), out, payload, key, diag=_sink(), **kwargs)
    return res, out.getvalue()


def _decode(data: bytes, key: str, **kwargs):
    out = io.BytesIO()
    res = decode_stream(io.BytesIO(data), out, key, diag=_sink(), **kwargs)
    return res, out.getvalue()


class EncodeTests(unittest.TestCase):
    def test_hello_xor_scenario(self):
        png = _build_png()
        res, out = _encode(png, "hello", "key", algorithm="xor", offset=AUTO_OFFSET)
        ct = bytes([3, 0, 21, 7, 10])
        self.assertEqual(989, res.offset)
        self.assertEqual(5, res.size)
        self.assertEqual(ct, res.ciphertext)
        self.assertEqual(record_checksum(b"stEg", ct), res.checksum)
        self.assertEqual(len(png) + 14, len(out))
        self.assertEqual(png[:989], out[:989])
        self.assertEqual(5, out[989])
        self.assertEqual(b"stEg", out[990:994])
        self.assertEqual(ct, out[994:999])
        self.assertEqual(struct.pack(">I", res.checksum), out[999:1003])
        self.assertEqual(png[989:], out[1003:])

    def test_custom_type_tag(self):
        res, out = _encode(_build_png(), "hi", "key", type_tag=b"ruSt")
        self.assertEqual(b"ruSt", out[res.offset + 1 : res.offset + 5])

    def test_unsupported_algorithm(self):
        with self.assertRaises(UnsupportedAlgorithm):
            _encode(_build_png(), "hello", "key", algorithm="blowfish")

    def test_empty_xor_key(self):
        with self.assertRaises(InvalidKey):
            _encode(_build_png(), "hello", "")

    def test_payload_too_large(self):
        with self.assertRaises(PayloadTooLarge):
            _encode(_build_png(), "x" * 256, "key")
        with self.assertRaises(PayloadTooLarge):
            _encode(_build_png(), "x" * 241, "key", algorithm="aes")

    def test_not_a_png(self):
        out = io.BytesIO()
        with self.assertRaises(MalformedContainer):
            encode_stream(io.BytesIO(b"GIF89a\x00\x00rest"), out, "hello", "key", diag=_sink())
        self.assertEqual(b"", out.getvalue())

    def test_offset_inside_signature(self):
        with self.assertRaises(InvalidOffset):
            _encode(_build_png(), "hello", "key", offset=4)

    def test_offset_below_extraction_minimum(self):
        # Offsets 8..15 would produce a file that cannot be decoded again
        for offset in range(8, 16):
            with self.subTest(offset=offset):
                with self.assertRaises(InvalidOffset):
                    _encode(_build_png(), "hello", "key", offset=offset)

    def test_smallest_offset_roundtrips(self):
        png = _build_png()
        _, encoded = _encode(png, "hello", "key", offset=16)
        res, restored = _decode(encoded, "key", offset=16)
        self.assertEqual(b"hello", res.plaintext)
        self.assertEqual(png, restored)

    def test_offset_past_end(self):
        png = _build_png()
        with self.assertRaises(TruncatedStream):
            _encode(png, "hello", "key", offset=len(png) + 1)


class RoundTripTests(unittest.TestCase):
    def test_auto_roundtrip_restores_original(self):
        png = _build_png()
        for algorithm, payload in (("xor", b"hello"), ("aes", b"hello"), ("AES", b"x" * 40), ("XOR", b"")):
            with self.subTest(algorithm=algorithm, payload=payload):
                _, encoded = _encode(png, payload, "key", algorithm=algorithm)
                res, restored = _decode(encoded, "key", algorithm=algorithm)
                self.assertEqual(payload, res.plaintext)
                self.assertTrue(res.checksum_ok)
                self.assertEqual(989, res.offset)
                self.assertEqual(png, restored)

    def test_explicit_offsets_preserve_bytes(self):
        png = _build_png(os.urandom(300))
        for offset in (16, 17, 33, 200, len(png) - 12, len(png)):
            with self.subTest(offset=offset):
                res, encoded = _encode(png, "secret", "pass", offset=offset)
                self.assertEqual(offset, res.offset)
                dres, restored = _decode(encoded, "pass", offset=offset)
                self.assertEqual(b"secret", dres.plaintext)
                self.assertEqual(png, restored)

    def test_wrong_key_is_not_an_error(self):
        png = _build_png()
        _, encoded = _encode(png, "hello", "key")
        res, restored = _decode(encoded, "kez")
        self.assertNotEqual(b"hello", res.plaintext)
        self.assertEqual(5, len(res.plaintext))
        self.assertTrue(res.checksum_ok)
        self.assertEqual(png, restored)

    def test_wrong_key_aes(self):
        _, encoded = _encode(_build_png(), "hello", "key", algorithm="aes")
        res, _ = _decode(encoded, "other", algorithm="aes")
        self.assertNotEqual(b"hello", res.plaintext)

    def test_checksum_mismatch_warns(self):
        png = _build_png()
        res, encoded = _encode(png, "hello", "key", offset=500)
        damaged = bytearray(encoded)
        damaged[500 + 1 + 4 + 5] ^= 0xFF
        diag = _sink()
        out = io.BytesIO()
        dres = decode_stream(io.BytesIO(bytes(damaged)), out, "key", offset=500, diag=diag)
        self.assertFalse(dres.checksum_ok)
        self.assertEqual(b"hello", dres.plaintext)
        self.assertEqual(1, len(diag.warnings()))
        self.assertEqual(png, out.getvalue())

    def test_terminal_bytes_inside_ciphertext(self):
        # XOR with "k" turns these plaintexts into ciphertexts holding IEND bytes
        png = _build_png()
        for hidden in (b"IEND", TERMINAL_RECORD):
            payload = b"a" * 10 + bytes(c ^ ord("k") for c in hidden)
            with self.subTest(hidden=hidden):
                res, encoded = _encode(png, payload, "k")
                self.assertIn(hidden, res.ciphertext)
                dres, restored = _decode(encoded, "k")
                self.assertEqual(989, dres.offset)
                self.assertEqual(payload, dres.plaintext)
                self.assertEqual(png, restored)

    def test_decode_offset_too_small(self):
        _, encoded = _encode(_build_png(), "hello", "key", offset=16)
        with self.assertRaises(InvalidOffset):
            _decode(encoded, "key", offset=15)


class FileTests(unittest.TestCase):
    def run_with_tmpdir(self, func):
        with tempfile.TemporaryDirectory() as tmp:
            func(Path(tmp))

    def test_embed_and_extract_files(self):
        def scenario(tmp: Path):
            png = _build_png(os.urandom(512))
            (tmp / "in.png").write_bytes(png)
            res = embed_file(tmp / "in.png", tmp / "stego.png", "top secret", "pw", algorithm="aes", diag=_sink())
            self.assertEqual(len(png) + 9 + 16, (tmp / "stego.png").stat().st_size)
            dres = extract_file(tmp / "stego.png", tmp / "clean.png", "pw", algorithm="aes", diag=_sink())
            self.assertEqual(res.offset, dres.offset)
            self.assertEqual("top secret", dres.text)
            self.assertEqual(png, (tmp / "clean.png").read_bytes())

        self.run_with_tmpdir(scenario)

    def test_rejected_run_creates_no_output(self):
        def scenario(tmp: Path):
            (tmp / "in.png").write_bytes(_build_png())
            (tmp / "bad.png").write_bytes(b"not an image at all")
            with self.assertRaises(UnsupportedAlgorithm):
                embed_file(tmp / "in.png", tmp / "out1.png", "x", "k", algorithm="rc4", diag=_sink())
            with self.assertRaises(MalformedContainer):
                embed_file(tmp / "bad.png", tmp / "out2.png", "x", "k", diag=_sink())
            with self.assertRaises(UnsupportedAlgorithm):
                extract_file(tmp / "in.png", tmp / "out3.png", "k", algorithm="rc4", diag=_sink())
            for name in ("out1.png", "out2.png", "out3.png"):
                self.assertFalse((tmp / name).exists())

        self.run_with_tmpdir(scenario)


if __name__ == "__main__":
    unittest.main()
