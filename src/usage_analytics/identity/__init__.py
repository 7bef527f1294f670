"""Identity collaborators."""

from .provider import IdentityProvider
from .store import InMemoryStore, JsonFileStore, KeyValueStore

__all__ = [
    "IdentityProvider",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
]
