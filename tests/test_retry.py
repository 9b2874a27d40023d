import httpx
import pytest

from status_chat.exceptions import (
    AttemptTimeoutError,
    HttpStatusError,
    MalformedPayloadError,
    NetworkError,
    OpaqueResponseError,
    RelayApplicationError,
)
from status_chat.models import ErrorKind, Outcome
from status_chat.retry import RetryPolicy, classify_error, error_kind_of


@pytest.mark.parametrize(
    "error, outcome",
    [
        (OpaqueResponseError(), Outcome.INCONCLUSIVE),
        (AttemptTimeoutError(), Outcome.TRANSIENT_FAILURE),
        (NetworkError(), Outcome.TRANSIENT_FAILURE),
        (HttpStatusError(http_status=503), Outcome.TRANSIENT_FAILURE),
        (HttpStatusError(http_status=429), Outcome.TRANSIENT_FAILURE),
        (HttpStatusError(http_status=404), Outcome.TERMINAL_FAILURE),
        (RelayApplicationError(http_status=500), Outcome.TERMINAL_FAILURE),
        (MalformedPayloadError(), Outcome.TERMINAL_FAILURE),
        (httpx.ConnectError("refused"), Outcome.TRANSIENT_FAILURE),
        (ValueError("unexpected"), Outcome.TERMINAL_FAILURE),
    ],
)
def test_classify_error(error, outcome):
    assert classify_error(error) is outcome


def test_error_kind_of():
    assert error_kind_of(RelayApplicationError()) is ErrorKind.RELAY_APPLICATION_ERROR
    assert error_kind_of(httpx.ReadTimeout("slow")) is ErrorKind.TIMEOUT
    assert error_kind_of(KeyError("x")) is ErrorKind.NETWORK_ERROR


def test_delay_is_linear_in_attempt_number():
    policy = RetryPolicy(backoff_step=1.0)
    assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]


def test_default_retryable_statuses():
    policy = RetryPolicy()
    assert {s for s in range(0, 600) if policy.is_retryable_status(s)} == {
        0, 408, 429, 500, 502, 503, 504,
    }


def test_attempts_for_mutating_operations():
    assert RetryPolicy(max_attempts=3).attempts_for("update-status") == 3
    policy = RetryPolicy(max_attempts=3, retry_mutating=False)
    assert policy.attempts_for("update-status") == 1
    assert policy.attempts_for("statuses") == 3


def test_invalid_policy_values():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(backoff_step=-1)
