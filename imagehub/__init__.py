"""ImageHub: owner-scoped image storage and transformation service."""

__version__ = "1.0.0"
