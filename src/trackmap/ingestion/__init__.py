"""Ingestion layer.

This package contains the adapters that bring location data into a view:
the chunked progressive loader, the HTTP chunk fetcher and the record
normalization helpers.
"""

__all__: list[str] = []
