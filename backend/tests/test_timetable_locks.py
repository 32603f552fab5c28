import threading

import pytest

from app.services.timetable_locks import TimetableBusyError, TimetableLockRegistry


def test_released_locks_leave_no_entries_behind():
    registry = TimetableLockRegistry()

    for timetable_id in range(100):
        with registry.hold(timetable_id):
            assert len(registry) == 1

    assert len(registry) == 0


def test_entry_is_dropped_after_a_timed_out_waiter():
    registry = TimetableLockRegistry()
    held = threading.Event()
    release = threading.Event()

    def holder():
        with registry.hold(7):
            held.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert held.wait(5)
        with pytest.raises(TimetableBusyError):
            with registry.hold(7, timeout=0.01):
                pass
        assert len(registry) == 1
    finally:
        release.set()
        thread.join(5)

    assert len(registry) == 0


def test_waiter_gets_the_lock_once_the_holder_releases():
    registry = TimetableLockRegistry()
    held = threading.Event()
    release = threading.Event()
    order = []

    def holder():
        with registry.hold(3):
            held.set()
            release.wait(5)
            order.append("holder")

    def waiter():
        with registry.hold(3, timeout=5):
            order.append("waiter")

    first = threading.Thread(target=holder)
    first.start()
    assert held.wait(5)
    second = threading.Thread(target=waiter)
    second.start()
    release.set()
    first.join(5)
    second.join(5)

    assert order == ["holder", "waiter"]
    assert len(registry) == 0


def test_error_inside_the_block_still_releases():
    registry = TimetableLockRegistry()

    with pytest.raises(RuntimeError):
        with registry.hold(1):
            raise RuntimeError("boom")

    assert len(registry) == 0
    with registry.hold(1, timeout=0.01):
        pass
