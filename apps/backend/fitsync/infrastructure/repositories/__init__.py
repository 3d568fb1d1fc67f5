"""
============================================================
TARJETA CRC
============================================================
Package: fitsync.infrastructure.repositories

Responsibilities:
- Expose the in-memory adapters (tests / local dev) from one import point.
- The Supabase adapters live in infrastructure.supabase.
============================================================
"""

from .in_memory import InMemoryAuthDirectory, InMemoryProfileRepository

__all__ = [
    "InMemoryAuthDirectory",
    "InMemoryProfileRepository",
]
