import pytest

from heapgraph.nodes import (
    ChunkHeaderNode,
    Edge,
    EdgeType,
    FooterNode,
    HeaderFlags,
    PointerNode,
    ValueNode,
    convert_block_to_pointer_if_possible,
    create_node_from_bytes,
    parse_chunk_header,
)

VALUE = bytes([1, 2, 3, 4, 5, 6, 7, 8])


def _chn(addr=0x10):
    return ChunkHeaderNode(
        addr=addr,
        byte_size=32,
        flags=HeaderFlags(p=True, m=False, a=False),
        is_free=False,
        nb_pointer_nodes=1,
        nb_value_nodes=2,
        start_data_bytes_entropy=0.5,
        chunk_number_in_heap=0,
    )


def test_parse_chunk_header_size_and_flags():
    block = (0x30 | 0x1 | 0x4).to_bytes(8, "little")
    size, flags = parse_chunk_header(block)
    assert size == 0x30
    assert flags == HeaderFlags(p=True, m=False, a=True)


def test_header_flags_parse_matches_parse_chunk_header():
    block = (0x40 | 0x2).to_bytes(8, "little")
    assert HeaderFlags.parse(block) == parse_chunk_header(block)[1]
    assert HeaderFlags.parse(block).m is True


def test_parse_chunk_header_wrong_length():
    with pytest.raises(ValueError):
        parse_chunk_header(b"\x00" * 4)


def test_preceding_chunk_free():
    assert HeaderFlags(p=False, m=False, a=False).is_preceding_chunk_free()
    assert not HeaderFlags(p=True, m=False, a=False).is_preceding_chunk_free()


def test_header_flags_str():
    assert str(HeaderFlags(p=True, m=False, a=True)) == "[a: 1, m: 0, p: 1]"


def test_str_addr_and_type():
    assert ValueNode(0x10, VALUE, 0x8).str_addr_and_type() == "VN(0x10)"
    assert PointerNode(0x18, 0x20, 0x8).str_addr_and_type() == "PN(0x18)"
    assert _chn(0x8).str_addr_and_type() == "CHN(0x8)"
    flags = HeaderFlags(p=False, m=False, a=False)
    assert FooterNode(0x28, 32, flags, 0x8).str_addr_and_type() == "FN(0x28)"


def test_node_str_is_quoted_name():
    assert str(ValueNode(0x10, VALUE, 0x8)) == '    "VN(0x10)"'


def test_node_reprs():
    assert repr(ValueNode(16, VALUE, 8)) == 'VN: 16 [value: "0102030405060708"]'
    assert repr(PointerNode(24, 40, 8)) == 'PN: 24 [label: "40"]'
    assert repr(_chn(16)).startswith("CHN: 16 [VNs: 2, PNs: 1, flags: ")


def test_type_predicates():
    value_node = ValueNode(0x10, VALUE, 0x8)
    pointer_node = PointerNode(0x18, 0x20, 0x8)
    footer = FooterNode(0x28, 32, HeaderFlags(False, False, False), 0x8)
    assert value_node.is_value() and not value_node.is_pointer()
    assert pointer_node.is_pointer() and not pointer_node.is_chn()
    assert footer.is_footer() and not footer.is_value()
    assert _chn().is_chn() and not _chn().is_footer()


def test_accessors():
    value_node = ValueNode(0x10, VALUE, 0x8)
    pointer_node = PointerNode(0x18, 0x20, 0x8)
    assert value_node.get_value() == VALUE
    assert value_node.points_to_addr() is None
    assert pointer_node.points_to_addr() == 0x20
    assert pointer_node.get_value() is None


def test_parent_chn_addr():
    flags = HeaderFlags(False, False, False)
    assert ValueNode(0x10, VALUE, 0x8).get_parent_chn_addr() == 0x8
    assert PointerNode(0x18, 0x20, 0x8).get_parent_chn_addr() == 0x8
    assert FooterNode(0x28, 32, flags, 0x8).get_parent_chn_addr() == 0x8
    assert _chn().get_parent_chn_addr() is None


def test_value_node_requires_block_size():
    with pytest.raises(ValueError):
        ValueNode(0x10, b"\x00" * 3, 0x8)


def test_edge_str():
    edge = Edge(1, 2, EdgeType.POINTER, 3)
    assert str(edge) == '    1 -> 2 [label="ptr" weight=3]'


def test_edge_default_weight_and_chunk_label():
    edge = Edge(1, 2, EdgeType.CHUNK)
    assert edge.weight == 1
    assert str(EdgeType.CHUNK) == "chunk"


def test_convert_block_in_range():
    block = (0x1000).to_bytes(8, "little")
    assert convert_block_to_pointer_if_possible(block, 0x1000, 0x2000) == 0x1000


def test_convert_block_bounds_inclusive():
    block = (0x2000).to_bytes(8, "little")
    assert convert_block_to_pointer_if_possible(block, 0x1000, 0x2000) == 0x2000


def test_convert_block_out_of_range():
    block = (0x2001).to_bytes(8, "little")
    assert convert_block_to_pointer_if_possible(block, 0x1000, 0x2000) is None


def test_convert_block_wrong_length():
    with pytest.raises(ValueError):
        convert_block_to_pointer_if_possible(b"\x00" * 7, 0, 10)


def test_create_pointer_node():
    block = (0x1500).to_bytes(8, "little")
    node = create_node_from_bytes(block, 0x1008, 0x1000, 0x1000, 0x2000)
    assert node == PointerNode(addr=0x1008, points_to=0x1500, chn_addr=0x1000)


def test_create_value_node():
    node = create_node_from_bytes(VALUE, 0x1008, 0x1000, 0x1000, 0x2000)
    assert node == ValueNode(addr=0x1008, value=VALUE, chn_addr=0x1000)
    assert node.get_value() == VALUE