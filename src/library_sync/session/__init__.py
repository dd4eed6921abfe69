from library_sync.session.storage import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from library_sync.session.store import EXPIRES_KEY, TOKEN_KEY, SessionStore

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "SessionStore",
    "TOKEN_KEY",
    "EXPIRES_KEY",
]
