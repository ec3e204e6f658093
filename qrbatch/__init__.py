"""QR batch generation and export service."""

__version__ = "0.1.0"
