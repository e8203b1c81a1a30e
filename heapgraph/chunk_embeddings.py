"""Embeddings of chunks and value nodes of a memory graph."""

from __future__ import annotations

from typing import Iterable, Iterator

from heapgraph.conversions import BLOCK_BYTE_SIZE, bytes_to_hex_string
from heapgraph.embedding import (
    Direction,
    GraphEmbedding,
    extract_chunk_data_as_bits,
    extract_chunk_data_as_bytes,
    generate_samples_for_neighbor_nodes_of_the_chunk,
    get_chunk_basics_informations,
    get_neighbors,
    get_node_label,
)
from heapgraph.nodes import ValueNode
from heapgraph.statistics import bin_to_nb_starting, compute_statistics, shannon_entropy

Samples = list[dict[str, int]]
Labels = list[int]


def _kept_chunk_addrs(graph_embedding: GraphEmbedding) -> Iterator[int]:
    for chn_addr in graph_embedding.graph.chn_addrs:
        if not graph_embedding.is_filtered_addr(chn_addr):
            yield chn_addr


# ------------------------------------------------------------------ extraction


def generate_chunk_extract(
    graph_embedding: GraphEmbedding,
) -> tuple[list[dict[str, str]], Labels]:
    """User data of every kept chunk as a hex string, with the chunk labels."""
    samples: list[dict[str, str]] = []
    labels: Labels = []
    for chn_addr in _kept_chunk_addrs(graph_embedding):
        data = extract_chunk_data_as_bytes(graph_embedding, chn_addr, BLOCK_BYTE_SIZE)
        samples.append({"hexa_representation": bytes_to_hex_string(data)})
        labels.append(get_node_label(graph_embedding, chn_addr))
    return samples, labels


# ------------------------------------------------------------ semantic chunks


def generate_chunk_semantic_embedding(
    graph_embedding: GraphEmbedding,
) -> tuple[Samples, Labels]:
    """Semantic embedding of every kept chunk: basic chunk features and
    the ancestor and children counts at each depth."""
    samples: Samples = []
    labels: Labels = []
    for chn_addr in _kept_chunk_addrs(graph_embedding):
        samples.append(generate_semantic_samples_of_a_chunk(graph_embedding, chn_addr))
        labels.append(get_node_label(graph_embedding, chn_addr))
    return samples, labels


def generate_semantic_samples_of_a_chunk(
    graph_embedding: GraphEmbedding, chn_addr: int
) -> dict[str, int]:
    """Semantic features of a single chunk."""
    features = get_chunk_basics_informations(graph_embedding, chn_addr)
    features.update(
        generate_samples_for_neighbor_nodes_of_the_chunk(
            graph_embedding, chn_addr, Direction.INCOMING
        )
    )
    features.update(
        generate_samples_for_neighbor_nodes_of_the_chunk(
            graph_embedding, chn_addr, Direction.OUTGOING
        )
    )
    return features


# --------------------------------------------------------- start bytes chunks


def generate_chunk_start_bytes_embedding(
    graph_embedding: GraphEmbedding, nb_start_bytes: int
) -> tuple[Samples, Labels]:
    """Embedding of the first ``nb_start_bytes`` bytes of every kept chunk."""
    samples: Samples = []
    labels: Labels = []
    for chn_addr in _kept_chunk_addrs(graph_embedding):
        samples.append(
            generate_chunk_start_bytes_sample(graph_embedding, chn_addr, nb_start_bytes)
        )
        labels.append(get_node_label(graph_embedding, chn_addr))
    return samples, labels


def generate_chunk_start_bytes_sample(
    graph_embedding: GraphEmbedding, addr: int, nb_start_bytes: int
) -> dict[str, int]:
    """Basic chunk features plus ``byte_<i>`` for each start byte, zero-padded."""
    sample = get_chunk_basics_informations(graph_embedding, addr)
    data = extract_chunk_data_as_bytes(graph_embedding, addr, BLOCK_BYTE_SIZE)
    for index in range(nb_start_bytes):
        sample[f"byte_{index}"] = data[index] if index < len(data) else 0
    return sample


# ---------------------------------------------------------- statistic chunks


def generate_chunk_statistic_embedding(
    graph_embedding: GraphEmbedding, n_gram: Iterable[int], block_size: int
) -> tuple[list[tuple[dict[str, int], dict[str, float]]], Labels]:
    """Statistic embedding of every kept chunk: bit n-gram counts and byte statistics."""
    widths = sorted(n_gram)
    samples: list[tuple[dict[str, int], dict[str, float]]] = []
    labels: Labels = []
    for chn_addr in _kept_chunk_addrs(graph_embedding):
        samples.append(
            generate_chunk_statistic_samples(graph_embedding, chn_addr, widths, block_size)
        )
        labels.append(get_node_label(graph_embedding, chn_addr))
    return samples, labels


def generate_chunk_statistic_samples(
    graph_embedding: GraphEmbedding,
    chn_addr: int,
    n_gram: Iterable[int],
    block_size: int,
) -> tuple[dict[str, int], dict[str, float]]:
    """Integer features (basics and n-grams) and float statistics of a chunk."""
    int_features = get_chunk_basics_informations(graph_embedding, chn_addr)
    int_features.update(_n_gram_counts(graph_embedding, chn_addr, sorted(n_gram)))

    data = extract_chunk_data_as_bytes(graph_embedding, chn_addr, block_size)
    float_features = compute_statistics(data)
    float_features["shannon_entropy"] = shannon_entropy(data)
    return int_features, float_features


def _n_gram_counts(
    graph_embedding: GraphEmbedding, chn_addr: int, widths: list[int]
) -> dict[str, int]:
    counts = bin_to_nb_starting(widths)
    bits = extract_chunk_data_as_bits(graph_embedding, chn_addr)
    for start in range(len(bits)):
        for width in widths:
            if start + width > len(bits):
                break
            counts[bits[start : start + width]] += 1
    return counts


# ------------------------------------------------------------- value nodes


def generate_chunk_top_vn_semantic_embedding(
    graph_embedding: GraphEmbedding,
) -> tuple[Samples, Labels]:
    """Value-node embedding of the first user block of every kept chunk
    whose first user block is a value node."""
    samples: Samples = []
    labels: Labels = []
    addr_to_node = graph_embedding.graph.addr_to_node
    for chn_addr in _kept_chunk_addrs(graph_embedding):
        first_block_addr = chn_addr + BLOCK_BYTE_SIZE
        first_block = addr_to_node.get(first_block_addr)
        if first_block is None:
            raise ValueError(
                "The first user data block of the chunk is not in the graph, "
                f"at address {first_block_addr:#x}"
            )
        if not isinstance(first_block, ValueNode):
            continue
        samples.append(generate_value_sample(graph_embedding, first_block_addr))
        labels.append(get_node_label(graph_embedding, first_block_addr))
    return samples, labels


def generate_value_node_semantic_embedding(
    graph_embedding: GraphEmbedding,
) -> tuple[Samples, Labels]:
    """Semantic embedding of every kept value node."""
    samples: Samples = []
    labels: Labels = []
    for addr in graph_embedding.graph.value_node_addrs:
        if graph_embedding.is_filtered_addr(addr):
            continue
        samples.append(generate_value_sample(graph_embedding, addr))
        labels.append(get_node_label(graph_embedding, addr))
    return samples, labels


def generate_value_sample(graph_embedding: GraphEmbedding, addr: int) -> dict[str, int]:
    """Features of the parent chunk of a node plus its ancestor counts."""
    graph = graph_embedding.graph
    node = graph.addr_to_node[addr]
    parent_addr = node.get_parent_chn_addr()
    if parent_addr is None or parent_addr not in graph.addr_to_node:
        raise ValueError(
            f"The chn addr should be set, for node at address {addr:#x}, "
            f"for file {graph.heap_dump_raw_file_path}"
        )
    features = get_chunk_basics_informations(graph_embedding, parent_addr)
    features.update(get_neighbors(graph_embedding, {addr}, Direction.INCOMING))
    return features