from __future__ import annotations

from ..core.config import Settings
from .base import Repository
from .memory import MemoryRepository
from .sql import SqlRepository

__all__ = ["Repository", "MemoryRepository", "SqlRepository", "build_repository"]


def build_repository(settings: Settings) -> Repository:
    backend = settings.storage_backend.strip().lower()
    if backend == "memory":
        return MemoryRepository()
    if backend == "sql":
        return SqlRepository(settings.database_url)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend!r}")
