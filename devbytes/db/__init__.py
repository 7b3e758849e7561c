"""Offline cache storage for DevBytes sync."""

from devbytes.db.models import Base, CachedVideo
from devbytes.db.session import create_engine, create_sessionmaker
from devbytes.db.store import VideoStore

__all__ = [
    "Base",
    "CachedVideo",
    "VideoStore",
    "create_engine",
    "create_sessionmaker",
]
