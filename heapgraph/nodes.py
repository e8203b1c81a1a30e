"""Nodes and edges of the memory graph, and chunk header parsing."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar

from heapgraph.conversions import BLOCK_BYTE_SIZE, Endianness, block_bytes_to_addr

PTR_ENDIANNESS = Endianness.LITTLE
MALLOC_HEADER_ENDIANNESS = Endianness.LITTLE
DEFAULT_CHUNK_EDGE_WEIGHT = 1

_FLAG_P = 0x01
_FLAG_M = 0x02
_FLAG_A = 0x04
_FLAGS_MASK = 0x07


@dataclass(frozen=True)
class HeaderFlags:
    """Flags of a malloc chunk header.

    ``p``: previous chunk in use; ``m``: allocated with mmap;
    ``a``: the main arena uses the application's heap.
    """

    p: bool
    m: bool
    a: bool

    @classmethod
    def _from_value(cls, size_and_flags: int) -> HeaderFlags:
        return cls(
            p=bool(size_and_flags & _FLAG_P),
            m=bool(size_and_flags & _FLAG_M),
            a=bool(size_and_flags & _FLAG_A),
        )

    @classmethod
    def parse(cls, block: bytes) -> HeaderFlags:
        """Parse only the flags of a chunk header block."""
        return cls._from_value(block_bytes_to_addr(block, MALLOC_HEADER_ENDIANNESS))

    def is_preceding_chunk_free(self) -> bool:
        """The previous chunk is free when the P flag is clear."""
        return not self.p

    def __str__(self) -> str:
        return f"[a: {int(self.a)}, m: {int(self.m)}, p: {int(self.p)}]"


def parse_chunk_header(block: bytes) -> tuple[int, HeaderFlags]:
    """Return the chunk size (flag bits cleared) and the flags of a header block."""
    size_and_flags = block_bytes_to_addr(block, MALLOC_HEADER_ENDIANNESS)
    return size_and_flags & ~_FLAGS_MASK, HeaderFlags._from_value(size_and_flags)


@dataclass(repr=False)
class Node:
    """A block of the heap dump seen as a graph node."""

    addr: int

    _TAG: ClassVar[str] = "N"

    def str_addr_and_type(self) -> str:
        """Node type and hexadecimal address, e.g. ``VN(0x10)``."""
        return f"{self._TAG}({self.addr:#x})"

    def is_pointer(self) -> bool:
        return isinstance(self, PointerNode)

    def is_footer(self) -> bool:
        return isinstance(self, FooterNode)

    def is_value(self) -> bool:
        return isinstance(self, ValueNode)

    def is_chn(self) -> bool:
        return isinstance(self, ChunkHeaderNode)

    def points_to_addr(self) -> int | None:
        """Target address for a pointer node, otherwise ``None``."""
        return None

    def get_value(self) -> bytes | None:
        """Block content for a value node, otherwise ``None``."""
        return None

    def get_parent_chn_addr(self) -> int | None:
        """Address of the enclosing chunk header, ``None`` for a chunk header."""
        return None

    def __str__(self) -> str:
        return f'    "{self.str_addr_and_type()}"'


@dataclass(repr=False)
class ChunkHeaderNode(Node):
    byte_size: int
    flags: HeaderFlags
    is_free: bool
    nb_pointer_nodes: int
    nb_value_nodes: int
    start_data_bytes_entropy: float
    chunk_number_in_heap: int

    _TAG: ClassVar[str] = "CHN"

    def __repr__(self) -> str:
        return (
            f"CHN: {self.addr} [VNs: {self.nb_value_nodes}, "
            f"PNs: {self.nb_pointer_nodes}, flags: {self.flags!r}]"
        )


@dataclass(repr=False)
class FooterNode(Node):
    byte_size: int
    flags: HeaderFlags
    chn_addr: int

    _TAG: ClassVar[str] = "FN"

    def get_parent_chn_addr(self) -> int | None:
        return self.chn_addr

    def __repr__(self) -> str:
        return f"FN: {self.addr} [size: {self.byte_size}, flags: {self.flags!r}]"


@dataclass(repr=False)
class ValueNode(Node):
    value: bytes
    chn_addr: int

    _TAG: ClassVar[str] = "VN"

    def __post_init__(self) -> None:
        self.value = bytes(self.value)
        if len(self.value) != BLOCK_BYTE_SIZE:
            raise ValueError(
                f"a value block must be {BLOCK_BYTE_SIZE} bytes long, "
                f"got {len(self.value)}"
            )

    def get_value(self) -> bytes | None:
        return self.value

    def get_parent_chn_addr(self) -> int | None:
        return self.chn_addr

    def __repr__(self) -> str:
        return f'VN: {self.addr} [value: "{self.value.hex()}"]'


@dataclass(repr=False)
class PointerNode(Node):
    points_to: int
    chn_addr: int

    _TAG: ClassVar[str] = "PN"

    def points_to_addr(self) -> int | None:
        return self.points_to

    def get_parent_chn_addr(self) -> int | None:
        return self.chn_addr

    def __repr__(self) -> str:
        return f'PN: {self.addr} [label: "{self.points_to}"]'


class EdgeType(enum.Enum):
    """Kind of edge between two nodes."""

    CHUNK = "chunk"
    POINTER = "ptr"

    def __str__(self) -> str:
        return self.value


@dataclass
class Edge:
    """A directed edge; ``weight`` counts the pointers it stands for."""

    from_addr: int
    to_addr: int
    edge_type: EdgeType
    weight: int = DEFAULT_CHUNK_EDGE_WEIGHT

    def __str__(self) -> str:
        return (
            f'    {self.from_addr} -> {self.to_addr} '
            f'[label="{self.edge_type}" weight={self.weight}]'
        )


def convert_block_to_pointer_if_possible(
    data: bytes, min_addr: int, max_addr: int
) -> int | None:
    """Read a block as a pointer; return it only if it lies in the heap range."""
    block = bytes(data)
    if len(block) != BLOCK_BYTE_SIZE:
        raise ValueError(
            f"a block must be {BLOCK_BYTE_SIZE} bytes long, got {len(block)}"
        )
    candidate = int.from_bytes(block, PTR_ENDIANNESS.value)
    if min_addr <= candidate <= max_addr:
        return candidate
    return None


def create_node_from_bytes(
    block: bytes, addr: int, chn_addr: int, min_addr: int, max_addr: int
) -> Node:
    """Build a pointer node if the block points into the heap, else a value node."""
    target = convert_block_to_pointer_if_possible(block, min_addr, max_addr)
    if target is not None:
        return PointerNode(addr=addr, points_to=target, chn_addr=chn_addr)
    return ValueNode(addr=addr, value=bytes(block), chn_addr=chn_addr)