# Signature
SIGNATURE = b"\x89PNG\r\n\x1a\n"   # 8 bytes: "\x89PNG\r\n\x1a\n"
SIGNATURE_MAGIC = b"PNG"           # bytes [1:4] of the signature
SIGNATURE_SIZE = 8

# Terminal record
TERMINAL_LABEL = "IEND"
TERMINAL_TAG = TERMINAL_LABEL.encode("ascii")
# Framed terminal record: zero length, type, CRC-32 of the type (0xAE426082)
TERMINAL_RECORD = b"\x00\x00\x00\x00" + TERMINAL_TAG + b"\xaeB`\x82"


# Standard record framing: length u32 BE | type[4] | payload | crc u32 BE
LENGTH_FIELD_SIZE = 4
TAG_SIZE = 4
CHECKSUM_SIZE = 4
RECORD_OVERHEAD = LENGTH_FIELD_SIZE + TAG_SIZE + CHECKSUM_SIZE  # 12

# Synthetic record framing: length u8 | type[4] | payload | crc u32 BE
NARROW_LENGTH_SIZE = 1
SYNTHETIC_OVERHEAD = NARROW_LENGTH_SIZE + TAG_SIZE + CHECKSUM_SIZE  # 9
MAX_SYNTHETIC_PAYLOAD = 0xFF


# Backoffs (bytes)
#  - AUTO_BACKOFF: standard framing less the narrow length prefix, 12 - 1
#  - ENCODE_BACKOFF: the signature, already written before the prefix copy
#  - DECODE_BACKOFF: signature plus the lookback window preceding the record;
#    the window spans the 5 bytes skipped ahead of the record's length field
#    and the 3 high bytes of a standard length field ending in the narrow one
AUTO_BACKOFF = RECORD_OVERHEAD - NARROW_LENGTH_SIZE  # 11
ENCODE_BACKOFF = SIGNATURE_SIZE  # 8
LOOKBACK_SKIP = NARROW_LENGTH_SIZE + TAG_SIZE  # 5
LOOKBACK_SIZE = LOOKBACK_SKIP + (LENGTH_FIELD_SIZE - NARROW_LENGTH_SIZE)  # 8
DECODE_BACKOFF = SIGNATURE_SIZE + LOOKBACK_SIZE  # 16


# Offset sentinel meaning "locate from the terminal record"
AUTO_OFFSET = "auto"

# Synthetic record type: ancillary, private, safe-to-copy
DEFAULT_PAYLOAD_TAG = b"stEg"

# Checksum seed for the synthetic record (standard CRC-32 initial value)
CHECKSUM_SEED = 0

DEFAULT_SCAN_LIMIT = 100_000  # records walked before giving up on the terminal
COPY_BUFFER_SIZE = 1_048_576  # 1 MiB
