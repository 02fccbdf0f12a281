import pytest

from tourneypos.auth.throttle import LOCK_TIME, MAX_ATTEMPTS, LoginThrottle
from tourneypos.errors import RateLimitedError

IP = "10.0.0.7"


def fail(throttle, n, client=IP):
    out = []
    for _ in range(n):
        throttle.begin_attempt(client)
        out.append(throttle.record_failure(client))
        throttle.end_attempt(client)
    return out


def admitted(throttle, client=IP):
    try:
        throttle.begin_attempt(client)
    except RateLimitedError:
        return False
    throttle.end_attempt(client)
    return True


def test_exactly_max_attempts_locks(clock):
    throttle = LoginThrottle(clock=clock)

    assert fail(throttle, MAX_ATTEMPTS - 1) == [False] * (MAX_ATTEMPTS - 1)
    assert admitted(throttle)
    assert throttle.attempts(IP) == MAX_ATTEMPTS - 1

    throttle.begin_attempt(IP)
    assert throttle.record_failure(IP) is True
    throttle.end_attempt(IP)
    assert throttle.is_locked(IP)
    assert not admitted(throttle)


def test_success_before_threshold_clears(clock):
    throttle = LoginThrottle(clock=clock)
    fail(throttle, MAX_ATTEMPTS - 1)

    throttle.record_success(IP)
    assert throttle.attempts(IP) == 0

    assert not any(fail(throttle, MAX_ATTEMPTS - 1))
    assert not throttle.is_locked(IP)


def test_lockout_ends_exactly_at_lock_time(clock):
    throttle = LoginThrottle(clock=clock)
    fail(throttle, MAX_ATTEMPTS)
    locked_at = clock.now

    clock.now = locked_at + LOCK_TIME - 0.001
    assert not admitted(throttle)

    clock.now = locked_at + LOCK_TIME
    assert admitted(throttle)
    assert throttle.attempts(IP) == 0


def test_failures_while_locked_do_not_extend_lockout(clock):
    throttle = LoginThrottle(clock=clock)
    fail(throttle, MAX_ATTEMPTS)
    locked_at = clock.now

    clock.advance(60)
    assert throttle.record_failure(IP) is False

    clock.now = locked_at + LOCK_TIME
    assert not throttle.is_locked(IP)


def test_window_expiry_starts_a_new_window(clock):
    throttle = LoginThrottle(window_seconds=600, clock=clock)
    fail(throttle, MAX_ATTEMPTS - 1)

    clock.advance(600)
    assert fail(throttle, 1) == [False]
    assert throttle.attempts(IP) == 1


def test_clients_are_independent(clock):
    throttle = LoginThrottle(clock=clock)
    fail(throttle, MAX_ATTEMPTS, client="a")

    assert admitted(throttle, "b")
    assert not admitted(throttle, "a")


def test_in_flight_attempts_count_against_the_limit(clock):
    throttle = LoginThrottle(clock=clock)
    fail(throttle, 2)

    # three checks still running: the budget is used up
    for _ in range(MAX_ATTEMPTS - 2):
        throttle.begin_attempt(IP)
    with pytest.raises(RateLimitedError):
        throttle.begin_attempt(IP)

    # one of them succeeds and frees the client
    throttle.record_success(IP)
    throttle.end_attempt(IP)
    assert admitted(throttle)


def test_ended_attempts_release_their_slot(clock):
    throttle = LoginThrottle(clock=clock)
    for _ in range(MAX_ATTEMPTS):
        throttle.begin_attempt(IP)
    for _ in range(MAX_ATTEMPTS):
        throttle.end_attempt(IP)

    # none of them was a failure, e.g. an unreadable body
    assert throttle.attempts(IP) == 0
    assert admitted(throttle)


def test_rate_limited_error_carries_no_attempt_info():
    err = RateLimitedError()
    assert err.to_dict() == {
        "error": "rate_limited",
        "message": "too many attempts, try again later",
    }
    assert err.status_code == 429
