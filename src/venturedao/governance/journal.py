"""
Per-transaction undo journal.

Components record the entries they are about to change; rolling back puts
back exactly those entries. A transaction therefore costs time in proportion
to what it touches, not to the size of the stores it touches them in.
"""

import logging

logger = logging.getLogger(__name__)
import copy
from typing import Any, Dict, List, Set, Tuple

_MISSING = object()


class ChangeJournal:
    """Undo log for one transaction at a time.

    Outside a transaction every ``record_*`` call is a no-op.
    """

    def __init__(self):
        self._active = False
        self._undo: List[Tuple[str, Any, Any, Any]] = []
        self.write_set: Set[Tuple[int, Any]] = set()

    @property
    def active(self) -> bool:
        return self._active

    def begin(self) -> None:
        if self._active:
            raise RuntimeError("Journal already has an open transaction")
        self._active = True
        self._undo = []
        self.write_set = set()

    def record(self, store: Dict[Any, Any], key: Any) -> None:
        """Remember ``store[key]`` (or its absence) before it changes."""
        if not self._mark(store, key):
            return
        original = store.get(key, _MISSING)
        if original is not _MISSING:
            original = copy.deepcopy(original)
        self._undo.append(("item", store, key, original))

    def record_attr(self, owner: Any, name: str) -> None:
        """Remember an attribute holding an immutable value."""
        if self._mark(owner, name):
            self._undo.append(("attr", owner, name, getattr(owner, name)))

    def record_append(self, items: List[Any]) -> None:
        """Remember a list's length before values are appended to it."""
        if self._mark(items, "len"):
            self._undo.append(("append", items, None, len(items)))

    def commit(self) -> None:
        self._active = False
        self._undo = []
        self.write_set = set()

    def rollback(self) -> int:
        """Undo every recorded change, newest first; returns the entry count."""
        undone = len(self._undo)
        for kind, target, key, original in reversed(self._undo):
            if kind == "item":
                if original is _MISSING:
                    target.pop(key, None)
                else:
                    target[key] = original
            elif kind == "attr":
                setattr(target, key, original)
            else:
                del target[original:]
        self.commit()
        logger.debug(f"Rolled back {undone} journal entries")
        return undone

    def _mark(self, target: Any, key: Any) -> bool:
        if not self._active:
            return False
        marker = (id(target), key)
        if marker in self.write_set:
            return False
        self.write_set.add(marker)
        return True
