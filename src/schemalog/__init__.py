"""schemalog - ordered, checksummed SQL schema migrations."""

__version__ = "1.0.0"
