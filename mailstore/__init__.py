"""Email ingestion service with per-section vector embeddings."""

__version__ = "0.1.0"
