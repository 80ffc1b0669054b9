from __future__ import annotations

import sys
import argparse
from typing import List, Optional

from stegano.cipher import Algorithm, names as algorithm_names
from stegano.constants import AUTO_OFFSET, DEFAULT_PAYLOAD_TAG, TAG_SIZE
from stegano.diagnostics import Diagnostics
from stegano.errors import SteganoError
from stegano.locator import Offset, parse_offset
from stegano.meta import show_meta
from stegano.splice import embed_file, extract_file


def _parse_tag(value: str) -> bytes:
    tag = value.encode("ascii", errors="strict")
    if len(tag) != TAG_SIZE:
        raise argparse.ArgumentTypeError(f"type must be exactly {TAG_SIZE} ASCII characters")
    return tag


def _parse_offset_arg(value: str) -> Offset:
    try:
        return parse_offset(value)
    except SteganoError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def cmd_encrypt(
    image: str,
    output: str,
    *,
    payload: str,
    key: str,
    algorithm: str = "xor",
    offset: Offset = AUTO_OFFSET,
    type_tag: bytes = DEFAULT_PAYLOAD_TAG,
    suppress: bool = False,
) -> bool:
    """Encrypt a payload and splice it into a copy of a PNG image.

    Args:
        image: Source PNG path (opened read-only).
        output: Destination path; created or truncated.
        payload: Secret text to embed.
        key: Encryption key.
        algorithm: "xor" or "aes".
        offset: Byte offset of the embedded record, or "auto" to place it just
            before the IEND record.
        type_tag: 4-byte type of the embedded record.
        suppress: Hide progress output; results and warnings are still shown.
    """
    diag = Diagnostics(quiet=suppress)
    res = embed_file(image, output, payload, key, algorithm=algorithm, offset=offset, type_tag=type_tag, diag=diag)
    diag.result(f"Image encoded and written successfully! (offset={res.offset} size={res.size} crc={res.checksum:x})")
    return True


def cmd_decrypt(
    image: str,
    output: str,
    *,
    key: str,
    algorithm: str = "xor",
    offset: Offset = AUTO_OFFSET,
    suppress: bool = False,
) -> bool:
    """Recover the embedded payload and write the image without it.

    Args:
        image: PNG path carrying an embedded record.
        output: Destination for the restored image.
        key: Decryption key.
        algorithm: "xor" or "aes".
        offset: Offset used when embedding, or "auto".
        suppress: Hide progress output.
    """
    diag = Diagnostics(quiet=suppress)
    res = extract_file(image, output, key, algorithm=algorithm, offset=offset, diag=diag)
    diag.result(f"Your decoded secret is: {res.text!r}")
    return True


def cmd_show_meta(
    image: str,
    *,
    start: int = 1,
    end: int = 11,
    nb_chunks: int = 10,
    dump: bool = False,
    suppress: bool = False,
) -> bool:
    """Print offset, size, type and CRC of the first records of an image."""
    diag = Diagnostics(quiet=suppress)
    infos = show_meta(image, start=start, end=end, limit=nb_chunks, dump=dump, diag=diag)
    diag.result(f"Done: {len(infos)} chunks read")
    return True


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("-i", "--input", required=True, help="Input PNG path")
    p.add_argument("-s", "--suppress", action="store_true", help="Suppress progress output")


def _add_codec(p: argparse.ArgumentParser) -> None:
    p.add_argument("-o", "--output", default="output.png", help="Output PNG path (default: output.png)")
    p.add_argument("-k", "--key", default="key", help="Encryption key (default: key)")
    p.add_argument(
        "-f",
        "--offset",
        type=_parse_offset_arg,
        default=AUTO_OFFSET,
        help="Byte offset of the embedded record, or 'auto' to locate it from the IEND record (default: auto)",
    )
    p.add_argument(
        "-a",
        "--algo",
        default=Algorithm.XOR.value,
        help=f"Cipher algorithm, case-insensitive: {', '.join(algorithm_names())} (default: xor)",
    )


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="stegano", description="Hide encrypted payloads in PNG chunk streams")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_enc = sub.add_parser("encrypt", help="Encrypt a payload and embed it in a copy of the image")
    _add_common(ap_enc)
    _add_codec(ap_enc)
    ap_enc.add_argument("-p", "--payload", default="hello", help="Secret text to embed (default: hello)")
    ap_enc.add_argument(
        "-t",
        "--type",
        type=_parse_tag,
        default=DEFAULT_PAYLOAD_TAG,
        help=f"Type of the embedded record (default: {DEFAULT_PAYLOAD_TAG.decode('ascii')})",
    )

    ap_dec = sub.add_parser("decrypt", help="Extract and decrypt the payload, writing the image without it")
    _add_common(ap_dec)
    _add_codec(ap_dec)

    ap_meta = sub.add_parser("show-meta", help="Print the records of an image")
    _add_common(ap_meta)
    ap_meta.add_argument("-n", "--nb-chunks", type=int, default=10, help="Maximum number of records to read (default 10)")
    ap_meta.add_argument("-c", "--start", type=int, default=1, help="Number of the first record (default 1)")
    ap_meta.add_argument("-u", "--end", type=int, default=11, help="Number after the last record (default 11)")
    ap_meta.add_argument("--hex", action="store_true", help="Hex dump each record's payload")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "encrypt":
            cmd_encrypt(
                args.input,
                args.output,
                payload=args.payload,
                key=args.key,
                algorithm=args.algo,
                offset=args.offset,
                type_tag=args.type,
                suppress=args.suppress,
            )
        elif args.cmd == "decrypt":
            cmd_decrypt(
                args.input,
                args.output,
                key=args.key,
                algorithm=args.algo,
                offset=args.offset,
                suppress=args.suppress,
            )
        elif args.cmd == "show-meta":
            cmd_show_meta(
                args.input,
                start=args.start,
                end=args.end,
                nb_chunks=args.nb_chunks,
                dump=args.hex,
                suppress=args.suppress,
            )
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (SteganoError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
