"""Sample a code search index and harvest deduplicated copies of one file type."""

__version__ = "0.1.0"
