"""Memory graphs of heap dumps, and feature embeddings of their chunks and blocks."""

__version__ = "0.1.0"

__all__ = [
    "annotations",
    "chunk_embeddings",
    "cli_args",
    "conversions",
    "embedding",
    "nodes",
    "statistics",
]