"""RagTrace: retrieval-augmented answers with a replayable execution trace."""

__version__ = "1.0.0"
