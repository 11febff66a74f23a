"""Per-category lock switches.

Locks are a policy switch, not a concurrency primitive: a locked category makes
its calculator return an empty result for the tick while the rest of the
machinery keeps running.  Observers (UI bindings, usually) are notified when a
flag actually changes.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Mapping

LOGGER = logging.getLogger(__name__)


class LockCategory(str, Enum):
    """State categories that can be frozen independently."""

    MOLECULES = "molecules"
    ENZYMES = "enzymes"
    GENES = "genes"
    REACTIONS = "reactions"
    MUTATIONS = "mutations"
    EVOLUTION = "evolution"


LockObserver = Callable[[LockCategory, bool], None]


class CategoryLocks:
    """Boolean lock per :class:`LockCategory` with change notification."""

    def __init__(self, locked: Mapping[LockCategory | str, bool] | None = None) -> None:
        self._state: Dict[LockCategory, bool] = {category: False for category in LockCategory}
        self._observers: List[LockObserver] = []
        for key, value in (locked or {}).items():
            self._state[LockCategory(key)] = bool(value)

    def is_locked(self, category: LockCategory | str) -> bool:
        return self._state[LockCategory(category)]

    def set_locked(self, category: LockCategory | str, locked: bool) -> None:
        category = LockCategory(category)
        locked = bool(locked)
        if self._state[category] == locked:
            return
        self._state[category] = locked
        LOGGER.debug("Lock %s -> %s", category.value, locked)
        for observer in list(self._observers):
            observer(category, locked)

    def lock_all(self) -> None:
        for category in LockCategory:
            self.set_locked(category, True)

    def unlock_all(self) -> None:
        for category in LockCategory:
            self.set_locked(category, False)

    def isolate(self, category: LockCategory | str) -> None:
        """Lock every category except ``category``."""

        keep = LockCategory(category)
        for candidate in LockCategory:
            self.set_locked(candidate, candidate is not keep)

    def subscribe(self, observer: LockObserver) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: LockObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def as_dict(self) -> Dict[str, bool]:
        return {category.value: value for category, value in self._state.items()}

    @classmethod
    def from_dict(cls, values: Mapping[str, bool]) -> "CategoryLocks":
        return cls({LockCategory(key): bool(value) for key, value in values.items()})

    def update(self, values: Mapping[str, bool]) -> None:
        for key, value in values.items():
            self.set_locked(key, value)


__all__ = ["CategoryLocks", "LockCategory", "LockObserver"]
