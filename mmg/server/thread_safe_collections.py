"""Thread-safe dict wrapper for registry maps shared across rooms.

Originally adapted from: https://github.com/HumanCompatibleAI/overcooked-demo/blob/master/server/utils.py
"""

from __future__ import annotations

from threading import Lock


class ThreadSafeDict(dict):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.lock = Lock()

    def clear(self, *args, **kwargs):
        with self.lock:
            retval = super().clear(*args, **kwargs)
        return retval

    def pop(self, *args, **kwargs):
        with self.lock:
            retval = super().pop(*args, **kwargs)
        return retval

    def setdefault(self, *args, **kwargs):
        with self.lock:
            retval = super().setdefault(*args, **kwargs)
        return retval

    def __setitem__(self, *args, **kwargs):
        with self.lock:
            retval = super().__setitem__(*args, **kwargs)
        return retval

    def __delitem__(self, item):
        with self.lock:
            if item in self:
                retval = super().__delitem__(item)
            else:
                retval = None
        return retval

    def snapshot(self) -> dict:
        """Shallow copy taken under the lock, safe to iterate."""
        with self.lock:
            return dict(self)
