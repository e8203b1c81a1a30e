"""Command-line options for the graph generation and embedding program."""

from __future__ import annotations

import argparse
import enum
from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar


class _ChoiceEnum(str, enum.Enum):
    def __str__(self) -> str:
        return self.value


class SelectAnnotationLocation(_ChoiceEnum):
    """Where annotations are placed in the graph."""

    VALUE_NODE = "value-node"
    CHUNK_HEADER_NODE = "chunk-header-node"
    NONE = "none"


class EntropyFilter(_ChoiceEnum):
    """Filtering of chunks by the entropy of their first bytes."""

    NONE = "none"
    ONLY_MAX_ENTROPY = "only-max-entropy"
    MIN_OF_CHUNK_TRESHOLD_ENTROPY = "min-of-chunk-treshold-entropy"


class ChunkByteSizeFilter(_ChoiceEnum):
    """Filtering of chunks by the size of their user data."""

    NONE = "none"
    ACTIVATE = "activate"


class Pipeline(_ChoiceEnum):
    """The processing pipeline to run."""

    VALUE_NODE_EMBEDDING = "value-node-embedding"
    CHUNK_TOP_VN_SEMANTIC_EMBEDDING = "chunk-top-vn-semantic-embedding"
    GRAPH = "graph"
    GRAPH_WITH_EMBEDDING_COMMENTS = "graph-with-embedding-comments"
    CHUNK_SEMANTIC_EMBEDDING = "chunk-semantic-embedding"
    CHUNK_STATISTIC_EMBEDDING = "chunk-statistic-embedding"
    CHUNK_START_BYTES_EMBEDDING = "chunk-start-bytes-embedding"
    CHUNK_EXTRACTION = "chunk-extraction"


@dataclass(frozen=True)
class Argv:
    """Parsed program arguments."""

    files: list[str] | None = None
    directories: list[str] | None = None
    files_input: list[str] | None = None
    pipeline: Pipeline = Pipeline.VALUE_NODE_EMBEDDING
    graph_comment_embedding_type: Pipeline = Pipeline.CHUNK_SEMANTIC_EMBEDDING
    output: str | None = None
    annotation: SelectAnnotationLocation = SelectAnnotationLocation.VALUE_NODE
    entropy_filter: EntropyFilter = EntropyFilter.NONE
    chunk_byte_size_filter: ChunkByteSizeFilter = ChunkByteSizeFilter.NONE
    no_value_node: bool = False


_E = TypeVar("_E", bound=_ChoiceEnum)


def _enum_type(cls: type[_E]) -> Callable[[str], _E]:
    def convert(text: str) -> _E:
        try:
            return cls(text)
        except ValueError:
            choices = ", ".join(member.value for member in cls)
            raise argparse.ArgumentTypeError(
                f"invalid value {text!r} (possible values: {choices})"
            ) from None

    convert.__name__ = cls.__name__
    return convert


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Graph generation and embedding program. "
        "Repeat -f or -d to give several files or directories.",
    )
    inputs = parser.add_mutually_exclusive_group()
    inputs.add_argument(
        "-f", "--files", action="append", help="File path to heap dump file"
    )
    inputs.add_argument(
        "-d",
        "--directories",
        action="append",
        help="The directory containing the heap dump files",
    )
    parser.add_argument(
        "--files-input",
        action="append",
        help="The directory or file containing the heap dump files "
        "(requires --files or --directories)",
    )
    parser.add_argument(
        "-p",
        "--pipeline",
        type=_enum_type(Pipeline),
        default=Pipeline.VALUE_NODE_EMBEDDING,
        help="The pipeline to run: " + ", ".join(p.value for p in Pipeline),
    )
    parser.add_argument(
        "-c",
        "--graph-comment-embedding-type",
        type=_enum_type(Pipeline),
        default=Pipeline.CHUNK_SEMANTIC_EMBEDDING,
        metavar="EMBEDDING",
        help="Embedding used for node comments with the "
        "'graph-with-embedding-comments' pipeline",
    )
    parser.add_argument("-o", "--output", help="The directory to output the results")
    parser.add_argument(
        "-a",
        "--annotation",
        type=_enum_type(SelectAnnotationLocation),
        default=SelectAnnotationLocation.VALUE_NODE,
        help="How the graph is annotated: "
        + ", ".join(a.value for a in SelectAnnotationLocation),
    )
    parser.add_argument(
        "-e",
        "--entropy-filter",
        type=_enum_type(EntropyFilter),
        default=EntropyFilter.NONE,
        help="Filter chunks by the entropy of their first bytes: "
        + ", ".join(e.value for e in EntropyFilter),
    )
    parser.add_argument(
        "-s",
        "--chunk-byte-size-filter",
        type=_enum_type(ChunkByteSizeFilter),
        default=ChunkByteSizeFilter.NONE,
        help="Filter chunks by the size of their user data: "
        + ", ".join(s.value for s in ChunkByteSizeFilter),
    )
    parser.add_argument(
        "-v",
        "--no-value-node",
        action="store_true",
        help="Build the graph without value nodes and pointer nodes",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> Argv:
    """Parse command-line arguments into an :class:`Argv`."""
    parser = build_parser()
    namespace = parser.parse_args(argv)
    if namespace.files_input is not None and not (
        namespace.files or namespace.directories
    ):
        parser.error("--files-input requires --files or --directories")
    return Argv(**vars(namespace))