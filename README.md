# heapgraph

`heapgraph` models a process heap as a memory graph and derives feature
vectors from it, ready for training classifiers that locate cryptographic
keys and SSH session structures in memory.

The heap is seen as 8-byte blocks. Every malloc chunk is a *chunk header
node* (CHN). Its user-data blocks are *pointer nodes* (PN) when they hold an
address inside the heap range, and *value nodes* (VN) otherwise; *footer
nodes* (FN) may close a chunk. Edges link nodes and carry a weight.
Annotations mark the nodes that hold keys, the SSH struct or the session
state, and supply the labels.

The package has no third-party dependencies.

## Modules

- `heapgraph.conversions`: address and block helpers (`addr_to_index`,
  `index_to_addr`, `block_bytes_to_addr`, `hex_str_to_addr`,
  `hex_str_to_block_bytes`, `u64_to_bytes`, `to_n_bits_binary`,
  `generate_bit_combinations`, `div_round_up`, `string_to_usize_vec`,
  `bytes_to_hex_string`, `truncate_path_to_last_n_dirs`,
  `heap_dump_path_to_json_path`), the `Endianness` enum, and JSON value
  helpers (`json_value_to_addr`, `json_value_to_usize`, `json_value_for_key`,
  which raises `MissingJsonKeyError`).
- `heapgraph.statistics`: `compute_statistics` (mean, mean absolute
  deviation, standard deviation, skewness and kurtosis; the last two are NaN
  with fewer than four bytes), `shannon_entropy`, `bin_to_nb_starting` (a
  zeroed table of bit n-grams) and `compute_chunk_start_bytes_entropy`.
- `heapgraph.nodes`: the node types `ChunkHeaderNode`, `ValueNode`,
  `PointerNode` and `FooterNode`, `HeaderFlags`, `Edge` and `EdgeType`,
  malloc header parsing with `parse_chunk_header`, and
  `create_node_from_bytes`, which turns a block into a pointer node or a
  value node.
- `heapgraph.annotations`: `KeyAnnotation` (with `KeyDataJSON`),
  `SshStructNodeAnnotation`, `SessionStateNodeAnnotation`, and
  `AnnotationSet`, which combines the annotations of one address into a
  label class (key = 1, SSH struct = 2, session state = 4, summed) and into
  DOT attributes; `default_dot_attributes` gives those of unannotated nodes.
- `heapgraph.embedding`: `EmbeddingGraph`, a directed graph keyed by
  address; `GraphEmbedding`, which adds the walk depth and the entropy and
  chunk-size filters; `get_neighbors` and
  `generate_samples_for_neighbor_nodes_of_the_chunk` for ancestor and
  children counts; and helpers that pull out chunk data
  (`extract_chunk_data_as_bytes`, `extract_chunk_data_as_bits`), labels
  (`get_node_label`) and basic chunk features
  (`get_chunk_basics_informations`).
- `heapgraph.chunk_embeddings`: the embeddings, each returning samples and
  labels: `generate_value_node_semantic_embedding`,
  `generate_chunk_semantic_embedding`, `generate_chunk_statistic_embedding`,
  `generate_chunk_top_vn_semantic_embedding`,
  `generate_chunk_start_bytes_embedding` and `generate_chunk_extract`.
- `heapgraph.cli_args`: the option enums (`Pipeline`,
  `SelectAnnotationLocation`, `EntropyFilter`, `ChunkByteSizeFilter`), and
  `build_parser` / `parse_args`, which turn an argument list into an `Argv`.

## Examples

```python
from heapgraph.conversions import (
    bytes_to_hex_string,
    div_round_up,
    generate_bit_combinations,
    string_to_usize_vec,
)

div_round_up(11, 4)                 # 3
string_to_usize_vec("8,16,x,32")    # [8, 16, 32]; entries that are not numbers are dropped
generate_bit_combinations(2)        # ['00', '01', '10', '11']
bytes_to_hex_string(b"\x01\xab")    # '01ab'
```

Parsing a malloc chunk header (little endian, low three bits are flags):

```python
from heapgraph.nodes import parse_chunk_header

size, flags = parse_chunk_header(bytes([0x21, 0, 0, 0, 0, 0, 0, 0]))
# size == 32, flags.p is True
```

Building a small graph by hand and extracting its chunk data:

```python
from heapgraph.chunk_embeddings import generate_chunk_extract
from heapgraph.embedding import EmbeddingGraph, GraphEmbedding
from heapgraph.nodes import ChunkHeaderNode, HeaderFlags, ValueNode

graph = EmbeddingGraph()
graph.add_node(ChunkHeaderNode(
    addr=0x1000, byte_size=24, flags=HeaderFlags(p=True, m=False, a=False),
    is_free=False, nb_pointer_nodes=0, nb_value_nodes=2,
    start_data_bytes_entropy=0.0, chunk_number_in_heap=0,
))
graph.add_node(ValueNode(addr=0x1008, value=b"ABCDEFGH", chn_addr=0x1000))
graph.add_node(ValueNode(addr=0x1010, value=bytes(8), chn_addr=0x1000))

samples, labels = generate_chunk_extract(GraphEmbedding(graph, depth=1))
# samples == [{"hexa_representation": "41424344454647480000000000000000"}]
# labels == [0]
```

## What it does not do

- It does not read heap dump files or their JSON annotation files into an
  `EmbeddingGraph`; the graph, its edges and its
  `node_addr_to_annotations` are filled in by the caller.
- It has no command to run. `parse_args` parses the options, but nothing
  runs a pipeline from them.
- It does not read settings from the environment or a `.env` file; depth,
  n-gram sizes, start-byte counts and filter values are passed as arguments.
- It does not write embeddings to CSV files or graphs to DOT files; the
  embedding functions return Python lists and dictionaries.

## Running the tests

Install the package with its `test` extra, then run `pytest` from the
project root.