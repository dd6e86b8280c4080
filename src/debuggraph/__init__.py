"""debuggraph - a knowledge graph of debugging sessions with similar-problem search."""

__version__ = "0.1.0"
