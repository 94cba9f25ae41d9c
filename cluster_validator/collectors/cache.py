"""
kubectl response cache

The identity lookup falls back to `kubectl get nodes`, which the node
collector runs again moments later; successful responses are kept for a
short TTL so repeated command lines within one run hit the cluster once.

Features:
- TTL expiry (30 s by default)
- LRU eviction
"""

import hashlib
import json
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence, Tuple


class ResponseCache:
    """TTL + LRU cache keyed by command line

    Example:
        cache = ResponseCache(ttl_seconds=30, max_size=100)
        key = cache.key_for(["kubectl", "get", "nodes", "-o", "json"])
        data = cache.get(key)
        if data is None:
            data = await run(...)
            cache.set(key, data)
    """

    def __init__(self, ttl_seconds: int = 30, max_size: int = 100):
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_size = max_size

        # key -> (data, stored_at)
        self._entries: "OrderedDict[str, Tuple[Any, datetime]]" = OrderedDict()

    @staticmethod
    def key_for(cmd: Sequence[str], **params) -> str:
        """Stable key for a command and its extra parameters"""
        payload = json.dumps({"cmd": list(cmd), "params": params}, sort_keys=True)
        return hashlib.sha256(payload.encode()).hexdigest()

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        data, stored_at = entry
        if datetime.now() - stored_at > self.ttl:
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return data

    def set(self, key: str, data: Any):
        self._entries.pop(key, None)
        self._entries[key] = (data, datetime.now())

        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)
