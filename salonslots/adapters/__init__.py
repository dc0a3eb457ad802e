"""
Adapters layer - Storage backends implementing the repository protocol.
"""

from .json_store import JsonFileRepository
from .memory_store import InMemoryRepository

__all__ = ["InMemoryRepository", "JsonFileRepository"]
