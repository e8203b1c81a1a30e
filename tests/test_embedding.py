import pytest

from heapgraph.annotations import AnnotationSet, SshStructNodeAnnotation
from heapgraph.cli_args import ChunkByteSizeFilter, EntropyFilter
from heapgraph.conversions import u64_to_bytes
from heapgraph.embedding import (
    Direction,
    EmbeddingGraph,
    GraphEmbedding,
    extract_chunk_data_as_bits,
    extract_chunk_data_as_bytes,
    generate_samples_for_neighbor_nodes_of_the_chunk,
    get_chunk_basics_informations,
    get_neighbors,
    get_node_label,
)
from heapgraph.nodes import (
    ChunkHeaderNode,
    Edge,
    EdgeType,
    HeaderFlags,
    PointerNode,
    ValueNode,
)

A = 0x1000
B = 0x1020
VALUE_A1 = bytes([1, 2, 3, 4, 5, 6, 7, 8])
VALUE_A2 = bytes([9, 9, 9, 9, 0, 0, 0, 0])
VALUE_B = bytes([0xAA] * 8)
FLAGS = HeaderFlags(p=True, m=False, a=False)


def _chn(addr, byte_size, entropy, number, ptrs, vns):
    return ChunkHeaderNode(
        addr=addr,
        byte_size=byte_size,
        flags=FLAGS,
        is_free=False,
        nb_pointer_nodes=ptrs,
        nb_value_nodes=vns,
        start_data_bytes_entropy=entropy,
        chunk_number_in_heap=number,
    )


def build_graph(no_value_node=False):
    graph = EmbeddingGraph(no_value_node=no_value_node)
    graph.add_node(_chn(A, 32, 2.0, 0, 1, 2))
    graph.add_node(PointerNode(addr=A + 8, points_to=B, chn_addr=A))
    graph.add_node(ValueNode(addr=A + 16, value=VALUE_A1, chn_addr=A))
    graph.add_node(ValueNode(addr=A + 24, value=VALUE_A2, chn_addr=A))
    graph.add_node(_chn(B, 24, 1.0, 1, 1, 1))
    graph.add_node(ValueNode(addr=B + 8, value=VALUE_B, chn_addr=B))
    graph.add_node(PointerNode(addr=B + 16, points_to=A, chn_addr=B))
    for block in (A + 8, A + 16, A + 24):
        graph.add_edge(Edge(A, block, EdgeType.CHUNK))
    for block in (B + 8, B + 16):
        graph.add_edge(Edge(B, block, EdgeType.CHUNK))
    graph.add_edge(Edge(A + 8, B, EdgeType.POINTER))
    graph.add_edge(Edge(B + 16, A, EdgeType.POINTER))
    return graph


def test_graph_indexes_chunks_and_values():
    graph = build_graph()
    assert graph.chn_addrs == [A, B]
    assert graph.value_node_addrs == [A + 16, A + 24, B + 8]
    assert len(graph) == 7


def test_duplicate_node_rejected():
    graph = build_graph()
    with pytest.raises(ValueError):
        graph.add_node(ValueNode(addr=A + 16, value=VALUE_A1, chn_addr=A))


def test_edges_and_neighbors_directed():
    graph = build_graph()
    assert set(graph.neighbors_directed(A, Direction.OUTGOING)) == {A + 8, A + 16, A + 24}
    assert list(graph.neighbors_directed(A, Direction.INCOMING)) == [B + 16]
    edges = list(graph.edges_directed(B, Direction.INCOMING))
    assert [(start, neighbor) for start, neighbor, _ in edges] == [(B, A + 8)]
    assert edges[0][2].edge_type is EdgeType.POINTER
    assert list(graph.neighbors_directed(0xDEAD, Direction.OUTGOING)) == []


def test_add_edge_replaces_existing():
    graph = build_graph()
    graph.add_edge(Edge(A + 8, B, EdgeType.POINTER, weight=3))
    edges = list(graph.edges_directed(A + 8, Direction.OUTGOING))
    assert len(edges) == 1
    assert edges[0][2].weight == 3


def test_no_filter():
    embedding = GraphEmbedding(build_graph(), 1)
    assert embedding.is_filtering_active() is False
    assert all(not embedding.is_filtered_addr(addr) for addr in embedding.graph.addr_to_node)


def test_only_max_entropy_filter():
    embedding = GraphEmbedding(build_graph(), 1, EntropyFilter.ONLY_MAX_ENTROPY)
    assert embedding.is_filtering_active() is True
    assert embedding.entropy_threshold == 2.0
    assert embedding.is_filtered_addr(A) is False
    assert embedding.is_filtered_addr(A + 16) is False
    assert embedding.is_filtered_addr(B) is True
    assert embedding.is_filtered_addr(B + 8) is True


def test_annotated_node_is_never_filtered():
    graph = build_graph()
    graph.node_addr_to_annotations[B + 8] = AnnotationSet(SshStructNodeAnnotation(B + 8))
    embedding = GraphEmbedding(graph, 1, EntropyFilter.ONLY_MAX_ENTROPY)
    assert embedding.is_filtered_addr(B + 8) is False
    assert embedding.is_filtered_addr(B + 16) is True


@pytest.mark.parametrize(
    "min_chunks, threshold, b_filtered",
    [(0, 2.0, True), (1, 1.0, False), (5, 1.0, False)],
)
def test_min_of_chunk_threshold(min_chunks, threshold, b_filtered):
    embedding = GraphEmbedding(
        build_graph(),
        1,
        EntropyFilter.MIN_OF_CHUNK_TRESHOLD_ENTROPY,
        min_nb_of_chunks_to_keep=min_chunks,
    )
    assert embedding.entropy_threshold == threshold
    assert embedding.is_filtered_addr(B) is b_filtered


def test_min_of_chunk_threshold_without_chunks():
    with pytest.raises(ValueError):
        GraphEmbedding(EmbeddingGraph(), 1, EntropyFilter.MIN_OF_CHUNK_TRESHOLD_ENTROPY)


def test_byte_size_filter():
    embedding = GraphEmbedding(
        build_graph(), 1, chunk_byte_size_filter=ChunkByteSizeFilter.ACTIVATE
    )
    assert embedding.chunk_bytes_size_to_keep_filter == frozenset({32})
    assert embedding.is_filtered_addr(A + 8) is False
    assert embedding.is_filtered_addr(B + 16) is True


def test_byte_size_filter_custom_sizes():
    embedding = GraphEmbedding(
        build_graph(),
        1,
        chunk_byte_size_filter=ChunkByteSizeFilter.ACTIVATE,
        chunk_bytes_size_to_keep={24},
    )
    assert embedding.is_filtered_addr(A) is True
    assert embedding.is_filtered_addr(B) is False


def test_extract_chunk_data_as_bytes():
    embedding = GraphEmbedding(build_graph(), 1)
    data = extract_chunk_data_as_bytes(embedding, A, 8)
    assert data == bytes.fromhex("0000000000001020") + VALUE_A1 + VALUE_A2
    assert extract_chunk_data_as_bytes(embedding, B, 8) == VALUE_B + u64_to_bytes(A)


def test_extract_chunk_data_rejects_non_chunk():
    embedding = GraphEmbedding(build_graph(), 1)
    with pytest.raises(ValueError):
        extract_chunk_data_as_bytes(embedding, A + 16, 8)
    with pytest.raises(ValueError):
        extract_chunk_data_as_bits(embedding, A + 8)


def test_extract_chunk_data_as_bits_matches_bytes():
    embedding = GraphEmbedding(build_graph(), 1)
    for addr in (A, B):
        data = extract_chunk_data_as_bytes(embedding, addr, 8)
        bits = extract_chunk_data_as_bits(embedding, addr)
        assert len(bits) == 8 * len(data)
        assert set(bits) <= {"0", "1"}
        assert int(bits, 2) == int.from_bytes(data, "big")


def test_get_node_label():
    graph = build_graph()
    graph.node_addr_to_annotations[A + 16] = AnnotationSet(SshStructNodeAnnotation(A + 16))
    embedding = GraphEmbedding(graph, 1)
    assert get_node_label(embedding, A + 16) == 2
    assert get_node_label(embedding, A + 24) == 0


def test_get_chunk_basics_informations():
    embedding = GraphEmbedding(build_graph(), 1)
    info = get_chunk_basics_informations(embedding, B)
    assert info == {
        "chn_addr": B,
        "block_position_in_chunk": 0,
        "chunk_byte_size": 24,
        "chunk_ptrs": 1,
        "chunk_vns": 1,
        "chunk_number_in_heap": 1,
    }
    with pytest.raises(ValueError):
        get_chunk_basics_informations(embedding, B + 8)


def test_get_neighbors_first_depth_counts_start_nodes():
    embedding = GraphEmbedding(build_graph(), 1)
    result = get_neighbors(embedding, {A, A + 8, A + 16}, Direction.INCOMING)
    assert result == {"chns_ancestor_1": 1, "ptrs_ancestor_1": 1}


def test_get_neighbors_deeper_counts_edges():
    embedding = GraphEmbedding(build_graph(), 3)
    result = get_neighbors(embedding, {A + 16}, Direction.INCOMING)
    assert set(result) == {
        f"{kind}_ancestor_{depth}" for kind in ("chns", "ptrs") for depth in (1, 2, 3)
    }
    assert result["chns_ancestor_1"] == 0
    assert result["ptrs_ancestor_1"] == 0
    assert result["chns_ancestor_2"] == 1
    assert result["ptrs_ancestor_2"] == 0
    assert result["ptrs_ancestor_3"] == 1


def test_neighbor_samples_from_chunk_blocks():
    embedding = GraphEmbedding(build_graph(), 1)
    result = generate_samples_for_neighbor_nodes_of_the_chunk(
        embedding, A, Direction.OUTGOING
    )
    assert result == {"chns_children_1": 0, "ptrs_children_1": 1}


def test_neighbor_samples_without_value_nodes_start_at_chunk():
    embedding = GraphEmbedding(build_graph(no_value_node=True), 1)
    result = generate_samples_for_neighbor_nodes_of_the_chunk(
        embedding, A, Direction.INCOMING
    )
    assert result == {"chns_ancestor_1": 1, "ptrs_ancestor_1": 0}