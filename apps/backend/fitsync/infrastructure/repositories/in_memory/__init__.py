"""
In-Memory Repository Implementations.

For testing and local development. NOT FOR PRODUCTION.
Data is lost on process restart.
"""

from .auth_directory import InMemoryAuthDirectory
from .profiles import InMemoryProfileRepository

__all__ = [
    "InMemoryAuthDirectory",
    "InMemoryProfileRepository",
]
