"""Time-based cache for client-side resource lists."""

import time

DEFAULT_TTL = 5 * 60  # seconds


class TTLCache:
    """Entries expire ``ttl`` seconds after they were stored.

    ``clock`` returns seconds and is injectable so expiry can be tested
    without sleeping.
    """

    def __init__(self, ttl=DEFAULT_TTL, max_entries=200, clock=time.monotonic):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries = {}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return not self.is_stale(key)

    def fetched_at(self, key):
        entry = self._entries.get(key)
        return entry[0] if entry else None

    def is_stale(self, key):
        fetched_at = self.fetched_at(key)
        if fetched_at is None:
            return True
        return self._clock() - fetched_at > self.ttl

    def get(self, key, default=None):
        if self.is_stale(key):
            return default
        return self._entries[key][1]

    def set(self, key, value):
        self._entries[key] = (self._clock(), value)
        if len(self._entries) > self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]

    def invalidate(self, prefix=None):
        """Drop every entry, or only keys starting with ``prefix``."""
        if prefix is None:
            self._entries.clear()
            return
        for key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[key]
