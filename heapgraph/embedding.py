"""Memory graph view used for embeddings: filters, neighbourhoods and chunk data."""

from __future__ import annotations

import enum
import functools
import sys
from pathlib import Path
from typing import Iterable, Iterator

from heapgraph.annotations import AnnotationSet
from heapgraph.cli_args import ChunkByteSizeFilter, EntropyFilter
from heapgraph.conversions import BLOCK_BYTE_SIZE, to_n_bits_binary, u64_to_bytes
from heapgraph.nodes import (
    ChunkHeaderNode,
    Edge,
    FooterNode,
    Node,
    PointerNode,
    ValueNode,
)

DEFAULT_CHUNK_BYTES_SIZE_TO_KEEP = frozenset({32})


class Direction(enum.Enum):
    """Direction of the edges followed from a node."""

    INCOMING = "ancestor"
    OUTGOING = "children"


class EmbeddingGraph:
    """Directed memory graph keyed by node address, with its annotations."""

    def __init__(
        self,
        no_value_node: bool = False,
        heap_dump_raw_file_path: Path | str | None = None,
    ) -> None:
        self.addr_to_node: dict[int, Node] = {}
        self.chn_addrs: list[int] = []
        self.value_node_addrs: list[int] = []
        self.node_addr_to_annotations: dict[int, AnnotationSet] = {}
        self.no_value_node = no_value_node
        self.heap_dump_raw_file_path = (
            None if heap_dump_raw_file_path is None else Path(heap_dump_raw_file_path)
        )
        self._outgoing: dict[int, dict[int, Edge]] = {}
        self._incoming: dict[int, dict[int, Edge]] = {}

    def __contains__(self, addr: object) -> bool:
        return addr in self.addr_to_node

    def __len__(self) -> int:
        return len(self.addr_to_node)

    def add_node(self, node: Node) -> None:
        """Register a node; chunk headers and value nodes are also indexed."""
        if node.addr in self.addr_to_node:
            raise ValueError(f"a node already exists at address {node.addr:#x}")
        self.addr_to_node[node.addr] = node
        self._outgoing.setdefault(node.addr, {})
        self._incoming.setdefault(node.addr, {})
        if isinstance(node, ChunkHeaderNode):
            self.chn_addrs.append(node.addr)
        elif isinstance(node, ValueNode):
            self.value_node_addrs.append(node.addr)

    def add_edge(self, edge: Edge) -> None:
        """Add a directed edge, replacing any edge between the same two nodes."""
        self._outgoing.setdefault(edge.from_addr, {})[edge.to_addr] = edge
        self._incoming.setdefault(edge.to_addr, {})[edge.from_addr] = edge
        self._outgoing.setdefault(edge.to_addr, {})
        self._incoming.setdefault(edge.from_addr, {})

    def _adjacent(self, addr: int, direction: Direction) -> dict[int, Edge]:
        table = self._outgoing if direction is Direction.OUTGOING else self._incoming
        return table.get(addr, {})

    def edges_directed(
        self, addr: int, direction: Direction
    ) -> Iterator[tuple[int, int, Edge]]:
        """Yield ``(addr, neighbor, edge)`` for each edge in ``direction``."""
        for neighbor, edge in self._adjacent(addr, direction).items():
            yield addr, neighbor, edge

    def neighbors_directed(self, addr: int, direction: Direction) -> Iterator[int]:
        """Yield the addresses of the neighbours of ``addr`` in ``direction``."""
        yield from self._adjacent(addr, direction)


class GraphEmbedding:
    """A memory graph together with the depth and filters used for embeddings."""

    def __init__(
        self,
        graph: EmbeddingGraph,
        depth: int,
        entropy_filter: EntropyFilter = EntropyFilter.NONE,
        chunk_byte_size_filter: ChunkByteSizeFilter = ChunkByteSizeFilter.NONE,
        chunk_bytes_size_to_keep: Iterable[int] = DEFAULT_CHUNK_BYTES_SIZE_TO_KEEP,
        min_nb_of_chunks_to_keep: int = 0,
    ) -> None:
        self.graph = graph
        self.depth = depth
        self.min_nb_of_chunks_to_keep = min_nb_of_chunks_to_keep
        self.chunk_bytes_size_to_keep_filter: frozenset[int] | None = (
            frozenset(chunk_bytes_size_to_keep)
            if chunk_byte_size_filter is ChunkByteSizeFilter.ACTIVATE
            else None
        )
        self.entropy_threshold = self._calculate_entropy_threshold(entropy_filter)

    def _chn(self, addr: int) -> ChunkHeaderNode:
        node = self.graph.addr_to_node[addr]
        if not isinstance(node, ChunkHeaderNode):
            raise ValueError(f"node at {addr:#x} is not a chunk header node")
        return node

    def _calculate_entropy_threshold(self, entropy_filter: EntropyFilter) -> float | None:
        if entropy_filter is EntropyFilter.NONE:
            return None

        entropies = [
            (addr, self._chn(addr).start_data_bytes_entropy)
            for addr in self.graph.chn_addrs
        ]

        if entropy_filter is EntropyFilter.ONLY_MAX_ENTROPY:
            return max((e for _, e in entropies), default=-sys.float_info.max)

        if not entropies:
            raise ValueError("cannot compute an entropy threshold without chunks")

        def descending(a: tuple[int, float], b: tuple[int, float]) -> int:
            if b[1] > a[1]:
                return 1
            if b[1] < a[1]:
                return -1
            return 0

        ordered = sorted(entropies, key=functools.cmp_to_key(descending))
        index = min(self.min_nb_of_chunks_to_keep, len(ordered) - 1)
        return ordered[index][1]

    def _parent_chn(self, addr: int) -> ChunkHeaderNode:
        node = self.graph.addr_to_node[addr]
        if isinstance(node, ChunkHeaderNode):
            return node
        parent_addr = node.get_parent_chn_addr()
        if parent_addr is None:
            raise ValueError(f"the chn addr should be set for node at {addr:#x}")
        parent = self.graph.addr_to_node[parent_addr]
        if not isinstance(parent, ChunkHeaderNode):
            raise ValueError("the parent of a node should be a chunk header node")
        return parent

    def _is_entropy_filtered(self, addr: int) -> bool:
        if self.entropy_threshold is None:
            return False
        return self._parent_chn(addr).start_data_bytes_entropy < self.entropy_threshold

    def _is_byte_size_filtered(self, addr: int) -> bool:
        if self.chunk_bytes_size_to_keep_filter is None:
            return False
        return self._parent_chn(addr).byte_size not in self.chunk_bytes_size_to_keep_filter

    def is_filtered_addr(self, addr: int) -> bool:
        """Whether the node's chunk is filtered out; annotated nodes never are."""
        if addr in self.graph.node_addr_to_annotations:
            return False
        return self._is_entropy_filtered(addr) or self._is_byte_size_filtered(addr)

    def is_filtering_active(self) -> bool:
        return (
            self.entropy_threshold is not None
            or self.chunk_bytes_size_to_keep_filter is not None
        )


def get_neighbors(
    graph_embedding: GraphEmbedding, addrs: Iterable[int], direction: Direction
) -> dict[str, int]:
    """Count chunk header and pointer nodes at each depth from ``addrs``.

    At the first depth the starting nodes are counted; deeper, each node is
    counted once per edge in ``direction``, with the edge weight.
    """
    result: dict[str, int] = {}
    graph = graph_embedding.graph
    next_addrs: set[int] = set(addrs)

    for depth in range(graph_embedding.depth):
        current_addrs, next_addrs = next_addrs, set()
        nb_chn = 0
        nb_ptr = 0

        for addr in current_addrs:
            node = graph.addr_to_node[addr]
            is_chn = isinstance(node, ChunkHeaderNode)
            is_ptr = isinstance(node, PointerNode)

            if depth == 0:
                nb_chn += is_chn
                nb_ptr += is_ptr

            for _, neighbor_addr, edge in graph.edges_directed(addr, direction):
                next_addrs.add(neighbor_addr)
                if depth != 0:
                    if is_chn:
                        nb_chn += edge.weight
                    elif is_ptr:
                        nb_ptr += edge.weight

        result[f"chns_{direction.value}_{depth + 1}"] = nb_chn
        result[f"ptrs_{direction.value}_{depth + 1}"] = nb_ptr

    return result


def generate_samples_for_neighbor_nodes_of_the_chunk(
    graph_embedding: GraphEmbedding, chn_addr: int, direction: Direction
) -> dict[str, int]:
    """Neighbourhood counts of a chunk.

    Without value nodes the walk starts from the chunk header itself,
    otherwise from the blocks of the chunk.
    """
    graph = graph_embedding.graph
    if graph.no_value_node:
        start = {chn_addr}
    else:
        start = set(graph.neighbors_directed(chn_addr, Direction.OUTGOING))
    return get_neighbors(graph_embedding, start, direction)


def _chunk_blocks(graph_embedding: GraphEmbedding, addr: int, block_size: int) -> Iterator[Node]:
    node = graph_embedding.graph.addr_to_node[addr]
    if not isinstance(node, ChunkHeaderNode):
        raise ValueError(f"node at {addr:#x} is not a chunk")
    current_addr = node.addr + block_size
    for _ in range(1, node.byte_size // 8):
        block = graph_embedding.graph.addr_to_node[current_addr]
        if not isinstance(block, (PointerNode, ValueNode, FooterNode)):
            raise ValueError(
                f"node at {current_addr:#x} is not a pointer nor a value node"
            )
        yield block
        current_addr += block_size


def extract_chunk_data_as_bytes(
    graph_embedding: GraphEmbedding, addr: int, block_size: int
) -> bytes:
    """User data of a chunk; pointers are written big-endian, footers skipped."""
    data = bytearray()
    for block in _chunk_blocks(graph_embedding, addr, block_size):
        if isinstance(block, PointerNode):
            data.extend(u64_to_bytes(block.points_to))
        elif isinstance(block, ValueNode):
            data.extend(block.value)
    return bytes(data)


def extract_chunk_data_as_bits(graph_embedding: GraphEmbedding, addr: int) -> str:
    """User data of a chunk as a string of ``'0'`` and ``'1'``."""
    parts: list[str] = []
    for block in _chunk_blocks(graph_embedding, addr, BLOCK_BYTE_SIZE):
        if isinstance(block, PointerNode):
            parts.append(to_n_bits_binary(block.points_to, BLOCK_BYTE_SIZE * 8))
        elif isinstance(block, ValueNode):
            parts.extend(to_n_bits_binary(byte, 8) for byte in block.value)
    return "".join(parts)


def get_node_label(graph_embedding: GraphEmbedding, addr: int) -> int:
    """Embedding class of the node's annotations, 0 when it has none."""
    annotation = graph_embedding.graph.node_addr_to_annotations.get(addr)
    return 0 if annotation is None else annotation.annotation_set_embedding()


def get_chunk_basics_informations(
    graph_embedding: GraphEmbedding, addr: int
) -> dict[str, int]:
    """Basic features of a chunk header node."""
    node = graph_embedding.graph.addr_to_node[addr]
    if not isinstance(node, ChunkHeaderNode):
        raise ValueError(f"node at {addr:#x} is not a chunk")
    return {
        "chn_addr": node.addr,
        "block_position_in_chunk": (node.addr - node.addr) // BLOCK_BYTE_SIZE,
        "chunk_byte_size": node.byte_size,
        "chunk_ptrs": node.nb_pointer_nodes,
        "chunk_vns": node.nb_value_nodes,
        "chunk_number_in_heap": node.chunk_number_in_heap,
    }