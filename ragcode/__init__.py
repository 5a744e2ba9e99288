"""Language detection, parsing, chunking, embedding, dependency graphs and indexing of source code for retrieval."""

__version__ = "1.0.0"