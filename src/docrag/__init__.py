"""docrag - retrieval-augmented answers over repository documentation."""

__version__ = "0.1.0"
