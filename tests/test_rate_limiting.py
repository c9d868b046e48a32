import threading
import time

from sol_wallet_tracker.rate_limiting import RequestScheduler, ResponseCache, cache_key

from .fakes import FakeClock


def test_back_to_back_slots_are_spaced_by_interval():
    clock = FakeClock()
    scheduler = RequestScheduler(2.0, clock)

    starts = []
    for _ in range(3):
        scheduler.wait_for_slot()
        starts.append(clock.now)

    assert starts == [1000.0, 1002.0, 1004.0]


def test_slow_request_does_not_add_extra_wait():
    clock = FakeClock()
    scheduler = RequestScheduler(2.0, clock)

    scheduler.wait_for_slot()
    clock.advance(5.0)  # request took longer than the interval
    waited = scheduler.wait_for_slot()

    assert waited == 0.0
    assert scheduler.next_allowed == 1007.0


def test_defer_pushes_next_slot_forward():
    clock = FakeClock()
    scheduler = RequestScheduler(2.0, clock)

    scheduler.wait_for_slot()
    scheduler.defer(5.0)
    waited = scheduler.wait_for_slot()

    assert waited == 7.0
    assert clock.now == 1007.0


def test_defer_from_idle_counts_from_now():
    clock = FakeClock()
    scheduler = RequestScheduler(2.0, clock)
    clock.advance(100.0)

    scheduler.defer(3.0)

    assert scheduler.next_allowed == 1103.0


def wait_until(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not condition():
        assert time.monotonic() < deadline
        time.sleep(0.001)


def test_serialized_serves_callers_in_arrival_order():
    scheduler = RequestScheduler(2.0, FakeClock())
    order = []

    def request(name):
        with scheduler.serialized():
            order.append(name)

    threads = []
    with scheduler.serialized():
        for position, name in enumerate(["first", "second", "third", "fourth"], 2):
            thread = threading.Thread(target=request, args=(name,))
            thread.start()
            threads.append(thread)
            wait_until(lambda: scheduler.queued == position)

    for thread in threads:
        thread.join(timeout=5.0)

    assert order == ["first", "second", "third", "fourth"]
    assert scheduler.queued == 0


def test_cache_get_set():
    cache = ResponseCache()
    key = cache_key("info", "TokenA")

    assert key == "info:TokenA"
    assert cache.get(key) is None
    assert key not in cache

    cache.set(key, {"name": "A"})

    assert cache.get(key) == {"name": "A"}
    assert key in cache
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0
