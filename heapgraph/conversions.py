"""Low-level conversions between addresses, byte blocks, hex strings and JSON values."""

from __future__ import annotations

import enum
import logging
import re
from pathlib import Path
from typing import Any, Iterable

logger = logging.getLogger(__name__)

BLOCK_BYTE_SIZE = 8
U64_MAX = (1 << 64) - 1

_HEX_RE = re.compile(r"\+?[0-9A-Fa-f]+")
_HEX_BLOCK_RE = re.compile(r"[0-9A-Fa-f]{%d}" % (BLOCK_BYTE_SIZE * 2))
_DECIMAL_RE = re.compile(r"\+?[0-9]+")


class Endianness(enum.Enum):
    """Byte order of a multi-byte value."""

    BIG = "big"
    LITTLE = "little"


class MissingJsonKeyError(LookupError):
    """Raised when a required key is absent from a JSON annotation."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Invalid json annotation: {key}")
        self.key = key


def addr_to_index(addr: int, min_addr: int, block_size: int) -> int:
    """Convert an address to a block index relative to ``min_addr``."""
    return (addr - min_addr) // block_size


def index_to_addr(index: int, min_addr: int, block_size: int) -> int:
    """Convert a block index to an address relative to ``min_addr``."""
    return index * block_size + min_addr


def block_bytes_to_addr(block_bytes: bytes, endianness: Endianness) -> int:
    """Read a block of exactly ``BLOCK_BYTE_SIZE`` bytes as an unsigned integer."""
    data = bytes(block_bytes)
    if len(data) != BLOCK_BYTE_SIZE:
        raise ValueError(
            f"a block must be {BLOCK_BYTE_SIZE} bytes long, got {len(data)}"
        )
    return int.from_bytes(data, endianness.value)


def _parse_hex_u64(text: str) -> int:
    if not _HEX_RE.fullmatch(text):
        raise ValueError(f"invalid hex string: {text!r}")
    value = int(text, 16)
    if value > U64_MAX:
        raise ValueError(f"hex string out of 64-bit range: {text!r}")
    return value


def hex_str_to_addr(hex_str: str, endianness: Endianness) -> int:
    """Parse a hex string as a 64-bit address.

    Little-endian strings are padded with zeros on the right to 16
    characters before the bytes are swapped.
    """
    if endianness is Endianness.BIG:
        return _parse_hex_u64(hex_str)
    padded = hex_str.ljust(16, "0")
    value = _parse_hex_u64(padded)
    return int.from_bytes(value.to_bytes(8, "big"), "little")


def hex_str_to_block_bytes(hex_str: str) -> bytes:
    """Convert a hex string of exactly two characters per block byte to bytes."""
    expected = BLOCK_BYTE_SIZE * 2
    if len(hex_str) != expected:
        raise ValueError(
            f"Hex string ({hex_str}) must be {expected} characters long"
        )
    if not _HEX_BLOCK_RE.fullmatch(hex_str):
        raise ValueError(f"invalid hex string: {hex_str!r}")
    return bytes.fromhex(hex_str)


def _json_unsigned(json_value: Any) -> int:
    if json_value < 0 or json_value > U64_MAX:
        raise ValueError(f"Invalid json value: {json_value}")
    return json_value


def json_value_to_addr(json_value: Any) -> int:
    """Convert a JSON value (big-endian hex string or integer) to an address."""
    if isinstance(json_value, str):
        return hex_str_to_addr(json_value, Endianness.BIG)
    if isinstance(json_value, int) and not isinstance(json_value, bool):
        return _json_unsigned(json_value)
    if isinstance(json_value, float):
        raise ValueError(f"Invalid json value: {json_value}")
    raise TypeError(f"Invalid json value: {json_value!r}")


def json_value_to_usize(json_value: Any) -> int:
    """Convert a JSON value (decimal string or integer) to a non-negative int."""
    if isinstance(json_value, str):
        if not _DECIMAL_RE.fullmatch(json_value):
            raise ValueError(f"invalid decimal string: {json_value!r}")
        return int(json_value)
    if isinstance(json_value, int) and not isinstance(json_value, bool):
        return _json_unsigned(json_value)
    if isinstance(json_value, float):
        raise ValueError(f"Invalid json value: {json_value}")
    raise TypeError(f"Invalid json value: {json_value!r}")


def json_value_for_key(json: Any, key: str) -> Any:
    """Return ``json[key]``, raising :class:`MissingJsonKeyError` if absent."""
    if isinstance(json, dict) and key in json:
        return json[key]
    raise MissingJsonKeyError(key)


def heap_dump_path_to_json_path(heap_dump_raw_file_path: Path | str) -> Path:
    """Return the JSON annotation path that belongs to a heap dump file."""
    json_path = Path(str(heap_dump_raw_file_path).replace("-heap.raw", ".json"))
    if not json_path.exists():
        logger.error("File doesn't exist: %s", json_path)
    return json_path


def truncate_path_to_last_n_dirs(path: Path | str, n: int) -> Path:
    """Keep only the last ``n`` directories of a path, dropping a file name."""
    path = Path(path)
    parts = list(path.parts)
    if path.anchor:
        parts = parts[1:]
    components = list(reversed(parts))

    if components and components[0] not in (".", "..") and path.is_file():
        components = components[1:]

    kept = [part for part in components[:n] if part not in (".", "..")]
    return Path(*reversed(kept))


def div_round_up(numerator: int, denominator: int) -> int:
    """Integer division rounded up."""
    return (numerator + denominator - 1) // denominator


def string_to_usize_vec(string: str) -> list[int]:
    """Parse comma separated non-negative integers, skipping invalid items."""
    return [int(item) for item in string.split(",") if _DECIMAL_RE.fullmatch(item)]


def bytes_to_hex_string(data: Iterable[int]) -> str:
    """Lower-case hex representation of a byte sequence."""
    return bytes(data).hex()


def generate_bit_combinations(n: int) -> list[str]:
    """All bit strings of width ``n``, in ascending numeric order."""
    return [format(i, f"0{n}b") for i in range(1 << n)]


def to_n_bits_binary(value: int, n: int) -> str:
    """Binary representation of ``value`` zero-padded to at least ``n`` digits."""
    return format(value, f"0{n}b")


def u64_to_bytes(value: int) -> bytes:
    """Big-endian 8-byte representation of a 64-bit value."""
    return (value & U64_MAX).to_bytes(8, "big")