"""
Per-invocation memoization of resolutions.

Each requirement name owns a single-assignment Future. The first caller
creates it under the lock and runs the resolution; concurrent callers for the
same name wait on the same Future, so a name is resolved at most once.
"""

import threading
from concurrent.futures import Future
from typing import Callable, Dict, List, Optional

from pkgbridge.requirement_models import ResolvedPackage


class ResolutionCache:
    """
    Thread-safe cache of ResolvedPackage objects keyed by requirement name.

    Failed resolutions are evicted so that a corrected configuration can be
    resolved again within the same build context.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._futures: Dict[str, "Future[ResolvedPackage]"] = {}

    def get_or_resolve(
        self, name: str, resolve: Callable[[], ResolvedPackage]
    ) -> ResolvedPackage:
        """
        Returns the memoized resolution for name, running resolve() only if
        no resolution exists or is in flight. Exceptions raised by resolve()
        propagate to every waiting caller.
        """
        with self._lock:
            future = self._futures.get(name)
            owner = future is None
            if owner:
                future = Future()
                self._futures[name] = future

        if not owner:
            return future.result()

        try:
            resolved = resolve()
        except BaseException as e:
            with self._lock:
                if self._futures.get(name) is future:
                    del self._futures[name]
            future.set_exception(e)
            raise
        future.set_result(resolved)
        return resolved

    def get(self, name: str) -> Optional[ResolvedPackage]:
        """Returns the completed resolution for name, or None."""
        with self._lock:
            future = self._futures.get(name)
        if future is None or not future.done() or future.exception() is not None:
            return None
        return future.result()

    def completed(self) -> Dict[str, ResolvedPackage]:
        with self._lock:
            names = list(self._futures.keys())
        out = {}
        for name in names:
            resolved = self.get(name)
            if resolved is not None:
                out[name] = resolved
        return out

    def invalidate(self, name: str) -> bool:
        """Drops a completed resolution. In-flight resolutions are left alone."""
        with self._lock:
            future = self._futures.get(name)
            if future is None or not future.done():
                return False
            del self._futures[name]
            return True

    def clear(self) -> List[str]:
        with self._lock:
            names = [n for n, f in self._futures.items() if f.done()]
            for name in names:
                del self._futures[name]
        return names

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def __len__(self) -> int:
        return len(self.completed())
