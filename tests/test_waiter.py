"""
Unit tests for the convergence waiter.
All polling is driven by fake refresh functions and a fake clock.
"""

import threading
import time
import unittest
from unittest.mock import MagicMock

from src.resource_waiter import (
    ABSENT,
    BackoffPolicy,
    OutcomeKind,
    PollResult,
    RemoteAPIError,
    ResourceNotFoundError,
    UnexpectedStateError,
    WaitCancelledError,
    WaitContext,
    WaitSpec,
    WaitTimeoutError,
    labels,
    wait_for_payload,
    wait_for_state,
)
from tests.fakes import FakeClock, FakeContext, client_error, sequence_refresh


class TestWaitSpec(unittest.TestCase):
    """Validation of wait configuration."""

    def test_label_in_pending_and_target_is_rejected(self) -> None:
        """A label cannot mean both "still going" and "done"."""
        with self.assertRaises(ValueError) as context:
            WaitSpec(pending={"BUILDING", "READY"}, target={"READY"}, refresh=MagicMock(), timeout=10)
        self.assertIn("READY", str(context.exception))

    def test_non_positive_timeout_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            WaitSpec(pending={"BUILDING"}, target={"READY"}, refresh=MagicMock(), timeout=0)

    def test_counts_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            WaitSpec(pending=labels(), target=labels("READY"), refresh=MagicMock(), timeout=10, not_found_checks=0)
        with self.assertRaises(ValueError):
            WaitSpec(
                pending=labels(),
                target=labels("READY"),
                refresh=MagicMock(),
                timeout=10,
                continuous_target_occurrence=0,
            )

    def test_labels_are_frozen(self) -> None:
        spec = WaitSpec(pending=["BUILDING"], target=[], refresh=MagicMock(), timeout=10)
        self.assertEqual(spec.pending, frozenset({"BUILDING"}))
        self.assertEqual(spec.target, frozenset())


class TestWaitForState(unittest.TestCase):
    """Convergence behaviour of wait_for_state."""

    def setUp(self) -> None:
        self.ctx = FakeContext()

    def wait(self, spec: WaitSpec):
        return wait_for_state(spec, self.ctx, clock=self.ctx.clock)

    def test_immediate_target_succeeds_without_sleeping(self) -> None:
        """A target label on the first poll returns at once."""
        refresh = MagicMock(return_value=PollResult("READY", {"name": "bot"}))
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=60)

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.SUCCESS)
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.payload, {"name": "bot"})
        self.assertEqual(outcome.attempts, 1)
        self.assertEqual(self.ctx.sleeps, [])
        refresh.assert_called_once_with(self.ctx)

    def test_building_then_ready_sleeps_twice(self) -> None:
        """[BUILDING, BUILDING, READY] succeeds with the READY payload after two sleeps."""
        refresh = sequence_refresh(
            PollResult("BUILDING", {"poll": 1}),
            PollResult("BUILDING", {"poll": 2}),
            PollResult("READY", {"poll": 3}),
        )
        spec = WaitSpec(
            pending=labels("BUILDING"),
            target=labels("READY", "NOT_BUILT"),
            refresh=refresh,
            timeout=60,
        )

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.SUCCESS)
        self.assertEqual(outcome.payload, {"poll": 3})
        self.assertEqual(outcome.state, "READY")
        self.assertEqual(len(self.ctx.sleeps), 2)
        self.assertEqual(refresh.call_count, 3)

    def test_sleeps_follow_backoff(self) -> None:
        refresh = sequence_refresh(
            PollResult("BUILDING"),
            PollResult("BUILDING"),
            PollResult("BUILDING"),
            PollResult("READY"),
        )
        backoff = BackoffPolicy(initial_delay=1.0, max_delay=3.0, factor=2.0)
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=60, backoff=backoff)

        self.wait(spec)

        self.assertEqual(self.ctx.sleeps, [1.0, 2.0, 3.0])

    def test_absence_is_success_for_empty_target(self) -> None:
        """[CREATED, CREATED, absent] with an empty target means the delete finished."""
        refresh = sequence_refresh(
            PollResult("CREATED", {"name": "alias"}),
            PollResult("CREATED", {"name": "alias"}),
            PollResult(ABSENT),
        )
        spec = WaitSpec(pending=labels("CREATED"), target=labels(), refresh=refresh, timeout=60)

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.SUCCESS)
        self.assertIsNone(outcome.payload)
        self.assertIsNone(outcome.error)

    def test_always_pending_times_out_never_before_timeout(self) -> None:
        refresh = MagicMock(return_value=PollResult("BUILDING", {"status": "BUILDING"}))
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=30)
        start = self.ctx.clock.now

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.TIMEOUT)
        self.assertGreaterEqual(self.ctx.clock.now - start, 30)
        self.assertGreaterEqual(outcome.elapsed, 30)
        self.assertIsInstance(outcome.error, WaitTimeoutError)
        self.assertEqual(outcome.error.last_state, "BUILDING")
        self.assertEqual(outcome.payload, {"status": "BUILDING"})
        # No sleep overshoots the remaining time
        self.assertAlmostEqual(sum(self.ctx.sleeps), 30)

    def test_unexpected_state_stops_immediately(self) -> None:
        refresh = sequence_refresh(
            PollResult("BUILDING"),
            PollResult("FAILED", {"status": "FAILED"}),
            PollResult("READY"),
        )
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=60)

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.UNEXPECTED_STATE)
        self.assertEqual(refresh.call_count, 2)
        self.assertIsInstance(outcome.error, UnexpectedStateError)
        self.assertEqual(outcome.error.state, "FAILED")
        self.assertEqual(outcome.payload, {"status": "FAILED"})

    def test_unexpected_state_carries_failure_reason(self) -> None:
        refresh = sequence_refresh(PollResult("FAILED", {"status": "FAILED", "failureReason": "bad intent"}))
        spec = WaitSpec(
            pending=labels("BUILDING"),
            target=labels("READY"),
            refresh=refresh,
            timeout=60,
            failure_reason=lambda p: p.get("failureReason"),
        )

        outcome = self.wait(spec)

        self.assertEqual(outcome.error.last_error, "bad intent")
        self.assertIn("bad intent", str(outcome.error))

    def test_fatal_error_stops_immediately(self) -> None:
        cause = client_error("AccessDeniedException")
        refresh = sequence_refresh(PollResult(ABSENT, error=cause), PollResult("READY"))
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=60)

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.REMOTE_ERROR)
        self.assertEqual(refresh.call_count, 1)
        self.assertIsInstance(outcome.error, RemoteAPIError)
        self.assertIs(outcome.error.last_error, cause)
        self.assertIs(outcome.error.__cause__, cause)

    def test_transient_error_is_polled_through(self) -> None:
        refresh = sequence_refresh(
            PollResult(ABSENT, error=client_error("ThrottlingException")),
            PollResult("READY", {"ok": True}),
        )
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=60)

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.SUCCESS)
        self.assertEqual(outcome.payload, {"ok": True})
        self.assertEqual(len(self.ctx.sleeps), 1)

    def test_timeout_reports_last_transient_error(self) -> None:
        throttled = client_error("ThrottlingException")
        refresh = MagicMock(return_value=PollResult(ABSENT, error=throttled))
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=5)

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.TIMEOUT)
        self.assertIs(outcome.error.last_error, throttled)

    def test_post_success_hook_downgrades_failed_payload(self) -> None:
        """A target label whose payload says FAILED becomes an error carrying the reason."""
        refresh = sequence_refresh(PollResult("READY", {"status": "FAILED", "reason": "quota exceeded"}))
        spec = WaitSpec(
            pending=labels("BUILDING"),
            target=labels("READY"),
            refresh=refresh,
            timeout=60,
            failure_reason=lambda p: p["reason"] if p["status"] == "FAILED" else None,
        )

        outcome = self.wait(spec)

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.kind, OutcomeKind.UNEXPECTED_STATE)
        self.assertEqual(outcome.error.last_error, "quota exceeded")
        self.assertIn("quota exceeded", str(outcome.error))
        with self.assertRaises(UnexpectedStateError):
            outcome.unwrap()

    def test_post_success_hook_keeps_healthy_payload(self) -> None:
        refresh = sequence_refresh(PollResult("READY", {"status": "READY", "reason": None}))
        spec = WaitSpec(
            pending=labels("BUILDING"),
            target=labels("READY"),
            refresh=refresh,
            timeout=60,
            failure_reason=lambda p: p["reason"] if p["status"] == "FAILED" else None,
        )

        self.assertTrue(self.wait(spec).ok)

    def test_absence_with_target_exhausts_not_found_checks(self) -> None:
        refresh = MagicMock(return_value=PollResult(ABSENT))
        spec = WaitSpec(
            pending=labels("CREATING"),
            target=labels("AVAILABLE"),
            refresh=refresh,
            timeout=600,
            not_found_checks=3,
        )

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.NOT_FOUND)
        self.assertIsInstance(outcome.error, ResourceNotFoundError)
        self.assertEqual(refresh.call_count, 4)

    def test_absence_before_resource_appears_is_tolerated(self) -> None:
        refresh = sequence_refresh(PollResult(ABSENT), PollResult(ABSENT), PollResult("AVAILABLE", {"id": "x"}))
        spec = WaitSpec(pending=labels(), target=labels("AVAILABLE"), refresh=refresh, timeout=600)

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.SUCCESS)
        self.assertEqual(outcome.payload, {"id": "x"})

    def test_continuous_target_occurrence(self) -> None:
        refresh = sequence_refresh(
            PollResult("READY"),
            PollResult("UPDATING"),
            PollResult("READY"),
            PollResult("READY"),
        )
        spec = WaitSpec(
            pending=labels("UPDATING"),
            target=labels("READY"),
            refresh=refresh,
            timeout=600,
            continuous_target_occurrence=2,
        )

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.SUCCESS)
        self.assertEqual(refresh.call_count, 4)

    def test_initial_delay_before_first_poll(self) -> None:
        refresh = sequence_refresh(PollResult("READY"))
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=60, delay=5)

        self.wait(spec)

        self.assertEqual(self.ctx.sleeps, [5])

    def test_cancelled_context_never_polls(self) -> None:
        refresh = MagicMock()
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=60)
        self.ctx.cancel()

        outcome = self.wait(spec)

        self.assertEqual(outcome.kind, OutcomeKind.CANCELLED)
        self.assertIsInstance(outcome.error, WaitCancelledError)
        refresh.assert_not_called()

    def test_cancel_during_sleep_stops_polling(self) -> None:
        ctx = FakeContext(cancel_after_sleeps=1)
        refresh = MagicMock(return_value=PollResult("BUILDING"))
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=60)

        outcome = wait_for_state(spec, ctx, clock=ctx.clock)

        self.assertEqual(outcome.kind, OutcomeKind.CANCELLED)
        self.assertEqual(refresh.call_count, 1)

    def test_context_deadline_is_distinct_from_timeout(self) -> None:
        clock = FakeClock()
        ctx = FakeContext(clock=clock, deadline=clock.now + 5)
        refresh = MagicMock(return_value=PollResult("BUILDING"))
        spec = WaitSpec(pending=labels("BUILDING"), target=labels("READY"), refresh=refresh, timeout=60)

        outcome = wait_for_state(spec, ctx, clock=ctx.clock)

        self.assertEqual(outcome.kind, OutcomeKind.CANCELLED)
        self.assertIn("deadline", str(outcome.error))

    def test_wait_for_payload_raises_outcome_error(self) -> None:
        spec = WaitSpec(
            pending=labels("BUILDING"),
            target=labels("READY"),
            refresh=sequence_refresh(PollResult("DELETED")),
            timeout=60,
        )
        with self.assertRaises(UnexpectedStateError):
            wait_for_payload(spec, self.ctx)


class TestRealTimeCancellation(unittest.TestCase):
    """Cancellation against the real clock and a real sleeping thread."""

    def test_cancel_wakes_sleeping_wait_within_one_interval(self) -> None:
        ctx = WaitContext()
        refresh = MagicMock(return_value=PollResult("BUILDING"))
        spec = WaitSpec(
            pending=labels("BUILDING"),
            target=labels("READY"),
            refresh=refresh,
            timeout=120,
            backoff=BackoffPolicy(poll_interval=5.0),
        )
        timer = threading.Timer(0.05, ctx.cancel)
        timer.start()
        try:
            start = time.monotonic()
            outcome = wait_for_state(spec, ctx)
            elapsed = time.monotonic() - start
        finally:
            timer.cancel()

        self.assertEqual(outcome.kind, OutcomeKind.CANCELLED)
        self.assertLess(elapsed, 5.0)
        self.assertEqual(refresh.call_count, 1)

    def test_short_real_timeout(self) -> None:
        refresh = MagicMock(return_value=PollResult("BUILDING"))
        spec = WaitSpec(
            pending=labels("BUILDING"),
            target=labels("READY"),
            refresh=refresh,
            timeout=0.2,
            backoff=BackoffPolicy(initial_delay=0.01, max_delay=0.05),
        )
        start = time.monotonic()

        outcome = wait_for_state(spec)

        self.assertEqual(outcome.kind, OutcomeKind.TIMEOUT)
        self.assertGreaterEqual(time.monotonic() - start, 0.2)


if __name__ == "__main__":
    unittest.main()
