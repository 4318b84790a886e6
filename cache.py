import threading
import time
from typing import Callable, Hashable, TypeVar

T = TypeVar("T")


class ViewCache:
    """Read-through cache of computed views, partitioned per user.

    A write by one user only evicts that user's entries. A value computed
    while an invalidation happened is returned but not stored. Expired
    entries are swept at most once per TTL, together with the generation
    of every user left without entries.
    """

    def __init__(self, ttl_secs: float) -> None:
        self.ttl_secs = ttl_secs
        self._entries: dict[str, dict[Hashable, tuple[float, object]]] = {}
        self._generations: dict[str, int] = {}
        self._counter = 0
        # generation of users not in _generations; raised on every sweep that drops one
        self._floor = 0
        self._next_sweep = 0.0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(views) for views in self._entries.values())

    def _generation(self, user_id: str) -> int:
        return self._generations.get(user_id, self._floor)

    def get_or_compute(
        self, user_id: str, key: Hashable, compute: Callable[[], T]
    ) -> T:
        if self.ttl_secs <= 0:
            return compute()
        now = time.monotonic()
        with self._lock:
            hit = self._entries.get(user_id, {}).get(key)
            generation = self._generation(user_id)
        if hit is not None and hit[0] > now:
            return hit[1]  # type: ignore[return-value]
        value = compute()
        with self._lock:
            if self._generation(user_id) == generation:
                self._entries.setdefault(user_id, {})[key] = (
                    now + self.ttl_secs,
                    value,
                )
            finished = time.monotonic()
            if finished >= self._next_sweep:
                self._sweep(finished)
        return value

    def _sweep(self, now: float) -> None:
        for user_id in list(self._entries):
            live = {
                key: entry
                for key, entry in self._entries[user_id].items()
                if entry[0] > now
            }
            if live:
                self._entries[user_id] = live
            else:
                del self._entries[user_id]
        idle = [
            user_id for user_id in self._generations if user_id not in self._entries
        ]
        if idle:
            for user_id in idle:
                del self._generations[user_id]
            self._floor = self._counter
        self._next_sweep = now + self.ttl_secs

    def invalidate(self, user_id: str) -> None:
        with self._lock:
            self._entries.pop(user_id, None)
            self._counter += 1
            self._generations[user_id] = self._counter
