from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock

from app.core.exceptions import ConflictError


class TimetableBusyError(ConflictError):
    def __init__(self, timetable_id: int) -> None:
        super().__init__(
            "timetable is being modified by another request, try again",
            details={"reason": "timetable_busy", "timetable_id": timetable_id},
        )


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = Lock()
        self.users = 0


class TimetableLockRegistry:
    """Per-timetable exclusive locks for mutations within this process.

    An entry lives only while some request holds or waits for it. The row lock
    taken by ``TimetableRepository`` covers other processes on databases that
    support ``SELECT ... FOR UPDATE``.
    """

    def __init__(self) -> None:
        self._locks: dict[int, _Entry] = {}
        self._guard = Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, timetable_id: int) -> _Entry:
        with self._guard:
            entry = self._locks.get(timetable_id)
            if entry is None:
                entry = _Entry()
                self._locks[timetable_id] = entry
            entry.users += 1
            return entry

    def _checkin(self, timetable_id: int, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0 and self._locks.get(timetable_id) is entry:
                del self._locks[timetable_id]

    @contextmanager
    def hold(self, timetable_id: int, *, timeout: float = 10.0) -> Iterator[None]:
        entry = self._checkout(timetable_id)
        try:
            if not entry.lock.acquire(timeout=timeout):
                raise TimetableBusyError(timetable_id)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(timetable_id, entry)

    def clear(self) -> None:
        with self._guard:
            self._locks.clear()


timetable_locks = TimetableLockRegistry()
