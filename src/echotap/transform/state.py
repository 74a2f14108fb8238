"""
echotap Shared State

Process-wide mutable state for the richer template mode. A host creates one
SessionStore and one Counter at startup and hands the same instances to
every transformer; neither is ever reset.
"""

import threading
from typing import Any, Dict, Optional


class SessionStore:
    """
    Key/value store shared by all requests.

    Example (inside a template):
        [% do session.put('order', orderId) %]
        ...
        "order": "[( session.get('order') )]"
    """

    def __init__(self):
        self._values: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def put(self, key: str, value: Any) -> Any:
        """Store a value and return the one it replaced (None if new)."""
        with self._lock:
            previous = self._values.get(key)
            self._values[key] = value
        return previous

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def snapshot(self) -> Dict[str, Any]:
        """Copy of the current contents."""
        with self._lock:
            return dict(self._values)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


class Counter:
    """Monotonic counter shared by all requests; the first read returns 1."""

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def increment_and_get(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    # camelCase name used by existing WireMock stub templates
    incrementAndGet = increment_and_get

    def get(self) -> int:
        with self._lock:
            return self._value
