"""docflow: message-driven PDF processing pipeline with a retrieval API."""

__version__ = "0.1.0"
