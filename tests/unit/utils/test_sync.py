import pytest

from stackpilot.utils.backoff import ExponentialBackoff
from stackpilot.utils.sync import retry_with_backoff


class Flaky:
    def __init__(self, failures: int, error=ConnectionError):
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return "ok"


def test_returns_after_transient_failures():
    function = Flaky(failures=2)
    sleeps = []

    result = retry_with_backoff(
        function, ExponentialBackoff(randomization_factor=0), sleep=sleeps.append
    )

    assert result == "ok"
    assert function.calls == 3
    assert sleeps == [1.0, 2.0]


def test_raises_last_error_when_exhausted():
    function = Flaky(failures=5)
    sleeps = []

    with pytest.raises(ConnectionError, match="failure 3"):
        retry_with_backoff(
            function,
            ExponentialBackoff(randomization_factor=0, max_retries=2),
            sleep=sleeps.append,
        )

    assert sleeps == [1.0, 2.0]


def test_non_retryable_errors_are_raised_immediately():
    function = Flaky(failures=1, error=ValueError)
    sleeps = []

    with pytest.raises(ValueError):
        retry_with_backoff(
            function,
            ExponentialBackoff(),
            is_retryable=lambda e: isinstance(e, ConnectionError),
            sleep=sleeps.append,
        )

    assert function.calls == 1
    assert sleeps == []


def test_backoff_is_reset_for_every_call():
    backoff = ExponentialBackoff(randomization_factor=0, max_retries=1)
    sleeps = []

    for _ in range(2):
        assert retry_with_backoff(Flaky(failures=1), backoff, sleep=sleeps.append) == "ok"

    assert sleeps == [1.0, 1.0]
