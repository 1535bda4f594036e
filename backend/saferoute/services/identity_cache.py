# backend/saferoute/services/identity_cache.py
from __future__ import annotations

from typing import Dict, Optional

from saferoute.models.report import Identity


class IdentityCache:
    """
    Memo table user_id -> Identity for the lifetime of the owning console.
    No eviction and no TTL: a renamed user keeps the old name until restart.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Identity] = {}

    def get(self, key: str) -> Optional[Identity]:
        return self._entries.get(key)

    def put(self, key: str, identity: Identity) -> None:
        self._entries[key] = identity

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
