"""
State Storage Module
"""
from .backup import BackupSnapshot, build_bundle, parse_bundle
from .store import JsonFileStore, MemoryStore, RedisStore, StateStore, create_store

__all__ = [
    "BackupSnapshot",
    "build_bundle",
    "parse_bundle",
    "JsonFileStore",
    "MemoryStore",
    "RedisStore",
    "StateStore",
    "create_store",
]
