"""
Thread-safe memo of corner marks per source image.

When many regions are rectified from one page, possibly from several worker
threads, the corner search must run at most once per page. The first caller
for an identity publishes a Future that later callers wait on, so they share
its outcome (found, not found, or error); other identities proceed in
parallel.
"""

import threading
from collections import OrderedDict
from concurrent.futures import Future
from typing import Callable, Dict, Optional

from ..models import CornerSet


class CornerCache:
    """
    Memoizing map from image identity to CornerSet.

    Failed searches (None) are not stored, so a retry with other settings
    runs a fresh search. With ``max_entries`` set, the oldest entry is evicted
    once the limit is exceeded; by default the cache lives as long as one
    registration session and is unbounded.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1 or None")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CornerSet]" = OrderedDict()
        self._lock = threading.Lock()
        self._pending: Dict[str, Future] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identity: str) -> bool:
        with self._lock:
            return identity in self._entries

    def get(self, identity: str) -> Optional[CornerSet]:
        with self._lock:
            return self._entries.get(identity)

    def put(self, identity: str, corners: CornerSet) -> None:
        with self._lock:
            self._entries[identity] = corners
            self._entries.move_to_end(identity)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def invalidate(self, identity: str) -> None:
        with self._lock:
            self._entries.pop(identity, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_compute(
        self,
        identity: str,
        compute: Callable[[], Optional[CornerSet]]
    ) -> Optional[CornerSet]:
        """
        Return cached corners or compute them, once per identity.

        Concurrent callers with the same identity wait for the first
        computation and share its outcome, also when the search fails.
        A failed search is not kept once it has finished.

        Args:
            identity: Stable image identifier
            compute: Zero-argument corner search

        Returns:
            Cached or freshly computed CornerSet, or None if the search failed
        """
        with self._lock:
            if identity in self._entries:
                return self._entries[identity]
            pending = self._pending.get(identity)
            owner = pending is None
            if owner:
                pending = Future()
                self._pending[identity] = pending

        if not owner:
            return pending.result()

        try:
            corners = compute()
            if corners is not None:
                self.put(identity, corners)
            pending.set_result(corners)
            return corners
        except Exception as e:
            pending.set_exception(e)
            raise
        finally:
            if not pending.done():
                pending.cancel()
            with self._lock:
                if self._pending.get(identity) is pending:
                    del self._pending[identity]
