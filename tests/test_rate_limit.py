import time

from conftest import FakeClock

from qr_portal.ratelimit import RateLimiter


def test_allows_up_to_max_then_rejects() -> None:
    limiter = RateLimiter(clock=FakeClock())

    results = [limiter.check("admin:users:1.2.3.4", 3, 60) for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]


def test_rejected_attempts_are_still_counted() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)

    for _ in range(5):
        limiter.check("k", 2, 60)

    assert limiter.check("k", 2, 60).allowed is False


def test_window_resets_after_expiry() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)

    first = limiter.check("k", 1, 60)
    assert limiter.check("k", 1, 60).allowed is False

    clock.advance(61)
    again = limiter.check("k", 1, 60)

    assert again.allowed is True
    assert again.reset_at > first.reset_at


def test_keys_are_independent() -> None:
    limiter = RateLimiter(clock=FakeClock())

    limiter.check("admin:users:10.0.0.1", 1, 60)

    assert limiter.check("admin:users:10.0.0.1", 1, 60).allowed is False
    assert limiter.check("admin:users:10.0.0.2", 1, 60).allowed is True
    assert limiter.check("admin:stats:10.0.0.1", 1, 60).allowed is True


def test_retry_after_is_whole_seconds_and_at_least_one() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)

    result = limiter.check("k", 1, 60)
    clock.advance(10.5)
    assert limiter.retry_after(result) == 50

    clock.advance(49.9)
    assert limiter.retry_after(result) == 1


def test_sweep_drops_expired_entries() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)

    limiter.check("old", 10, 10)
    clock.advance(5)
    limiter.check("new", 10, 60)
    clock.advance(6)

    assert limiter.sweep() == 1
    assert len(limiter) == 1


def test_sweep_caps_table_by_evicting_oldest_half() -> None:
    limiter = RateLimiter(max_entries=10, clock=FakeClock())

    for i in range(12):
        limiter.check(f"ip-{i}", 10, 60)

    removed = limiter.sweep()

    assert removed == 5
    assert len(limiter) == 7
    # Oldest keys went first.
    assert limiter.check("ip-0", 1, 60).allowed is True
    assert limiter.check("ip-11", 1, 60).allowed is False


def test_background_sweeper_starts_and_stops() -> None:
    limiter = RateLimiter(cleanup_interval=0.01)
    limiter.check("k", 1, 0.001)

    limiter.start()
    try:
        deadline = time.time() + 2
        while len(limiter) and time.time() < deadline:
            time.sleep(0.01)
    finally:
        limiter.stop()

    assert len(limiter) == 0
