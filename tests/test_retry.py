import unittest

from doodletales.common import (
    ExternalServiceError,
    MalformedResponseError,
    RetryPolicy,
    call_with_retry,
)
from doodletales.common.retry import extract_status_code, is_retryable


class StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class FakeResponse:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code


class ResponseError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.response = FakeResponse(status_code)


def no_jitter(low: float, high: float) -> float:
    return 0.0


class TestRetryClassification(unittest.TestCase):
    def test_status_code_is_read_from_common_attributes(self) -> None:
        self.assertEqual(extract_status_code(StatusError("limit", 429)), 429)
        self.assertEqual(extract_status_code(ResponseError(503)), 503)
        self.assertIsNone(extract_status_code(RuntimeError("boom")))

    def test_rate_limits_and_overload_are_retryable(self) -> None:
        self.assertTrue(is_retryable(StatusError("slow down", 429)))
        self.assertTrue(is_retryable(ResponseError(503)))
        self.assertTrue(is_retryable(RuntimeError("RESOURCE_EXHAUSTED: quota")))
        self.assertTrue(is_retryable(RuntimeError("The model is overloaded")))

    def test_other_failures_are_not_retryable(self) -> None:
        self.assertFalse(is_retryable(StatusError("bad request", 400)))
        self.assertFalse(is_retryable(RuntimeError("boom")))
        self.assertFalse(is_retryable(MalformedResponseError("no text")))

    def test_backoff_doubles_per_attempt(self) -> None:
        policy = RetryPolicy(initial_backoff_seconds=2.0)

        self.assertEqual(
            [policy.backoff_for(attempt) for attempt in range(4)],
            [2.0, 4.0, 8.0, 16.0],
        )
        self.assertEqual(policy.backoff_for(0, jitter=0.25), 2.25)


class TestCallWithRetry(unittest.TestCase):
    def test_three_rate_limits_then_success_returns_result(self) -> None:
        attempts = []
        sleeps = []

        def operation() -> str:
            attempts.append(1)
            if len(attempts) <= 3:
                raise StatusError("Too Many Requests", 429)
            return "image-bytes"

        result = call_with_retry(
            operation,
            label="generate_image",
            sleep=sleeps.append,
            jitter=no_jitter,
        )

        self.assertEqual(result, "image-bytes")
        self.assertEqual(len(attempts), 4)
        self.assertEqual(sleeps, [2.0, 4.0, 8.0])
        self.assertTrue(all(later > earlier for earlier, later in zip(sleeps, sleeps[1:])))

    def test_jitter_is_added_within_policy_bounds(self) -> None:
        sleeps = []
        bounds = []
        calls = iter([StatusError("busy", 503), "ok"])

        def operation() -> str:
            outcome = next(calls)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        def jitter(low: float, high: float) -> float:
            bounds.append((low, high))
            return 0.3

        call_with_retry(operation, label="op", sleep=sleeps.append, jitter=jitter)

        self.assertEqual(bounds, [(0.0, 0.5)])
        self.assertAlmostEqual(sleeps[0], 2.3)

    def test_gives_up_after_max_retries(self) -> None:
        sleeps = []
        attempts = []

        def operation() -> None:
            attempts.append(1)
            raise StatusError("Too Many Requests", 429)

        with self.assertRaises(ExternalServiceError) as ctx:
            call_with_retry(
                operation,
                label="generate_text",
                policy=RetryPolicy(max_retries=2),
                sleep=sleeps.append,
                jitter=no_jitter,
            )

        self.assertEqual(len(attempts), 3)
        self.assertEqual(len(sleeps), 2)
        self.assertEqual(ctx.exception.status, 429)
        self.assertTrue(ctx.exception.retryable)
        self.assertIsInstance(ctx.exception.__cause__, StatusError)

    def test_non_retryable_error_is_wrapped_immediately(self) -> None:
        sleeps = []

        def operation() -> None:
            raise ValueError("invalid api key")

        with self.assertRaises(ExternalServiceError) as ctx:
            call_with_retry(operation, label="generate_text", sleep=sleeps.append, jitter=no_jitter)

        self.assertEqual(sleeps, [])
        self.assertIn("generate_text failed", str(ctx.exception))
        self.assertFalse(ctx.exception.retryable)

    def test_malformed_response_is_not_retried_or_rewrapped(self) -> None:
        sleeps = []
        error = MalformedResponseError("no content")

        def operation() -> None:
            raise error

        with self.assertRaises(MalformedResponseError) as ctx:
            call_with_retry(operation, label="generate_text", sleep=sleeps.append, jitter=no_jitter)

        self.assertIs(ctx.exception, error)
        self.assertEqual(sleeps, [])


if __name__ == "__main__":
    unittest.main()
