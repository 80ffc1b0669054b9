"""
stegano — hide encrypted payloads in PNG chunk streams.

Features:

- Splices a synthetic record (length u8 | type | ciphertext | CRC-32) into the
  chunk stream at an explicit offset or just before the IEND record.
- Extraction opens the record and excises it, restoring the original bytes.
- XOR and AES-128 (PyCryptodomex) payload ciphers.
- Lenient record walker for inspecting a stream (show-meta, hex dump).

Only record syntax is handled; image data is never decoded or validated.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "records",
    "locator",
    "splice",
    "cipher",
    "meta",
]

# Programmatic API: stegano.splice (embed_file/extract_file, encode_stream/decode_stream)
# and the CLI functions in stegano.cli (cmd_encrypt/cmd_decrypt/cmd_show_meta).
