"""Bounded, sequential retry with exponential backoff."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

from server.services.generation.validate import SchemaViolationError

logger = logging.getLogger("prepwise.generation")

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]

OUTCOME_OK = "ok"
OUTCOME_ERROR = "error"
OUTCOME_INVALID = "invalid"
OUTCOME_TIMEOUT = "timeout"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempt budget and backoff schedule.

    No delay precedes attempt 1; attempt k >= 2 waits
    initial_delay_s * multiplier ** (k - 2).
    attempt_timeout_s bounds a single attempt; None means unbounded.
    """
    max_attempts: int = 3
    initial_delay_s: float = 1.0
    multiplier: float = 2.0
    attempt_timeout_s: Optional[float] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay_s < 0:
            raise ValueError("initial_delay_s must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if self.attempt_timeout_s is not None and self.attempt_timeout_s <= 0:
            raise ValueError("attempt_timeout_s must be > 0 or None")

    def delay_before(self, attempt: int) -> float:
        if attempt <= 1:
            return 0.0
        return self.initial_delay_s * self.multiplier ** (attempt - 2)

    def worst_case_wait_s(self) -> float:
        """Total backoff time across a full run, excluding attempt latency."""
        return sum(self.delay_before(k) for k in range(2, self.max_attempts + 1))

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        if settings is None:
            return cls()
        return cls(
            max_attempts=getattr(settings, "generation_max_attempts", 3),
            initial_delay_s=getattr(settings, "generation_initial_delay_s", 1.0),
            multiplier=getattr(settings, "generation_backoff_multiplier", 2.0),
            attempt_timeout_s=getattr(settings, "generation_attempt_timeout_s", None),
        )


@dataclass
class AttemptState:
    """Per-invocation counters. Discarded when the run ends."""
    attempt: int = 0
    delay_s: float = 0.0


@dataclass(frozen=True)
class AttemptRecord:
    attempt: int
    outcome: str  # ok | error | invalid | timeout
    reason: str = ""
    duration_s: float = 0.0
    delay_s: float = 0.0

    def to_dict(self) -> dict:
        return {
            "attempt": self.attempt,
            "outcome": self.outcome,
            "reason": self.reason,
            "duration_s": round(self.duration_s, 4),
            "delay_s": self.delay_s,
        }


@dataclass
class RetryOutcome(Generic[T]):
    """Either the first good value, or exhausted=True. Exhaustion is not an error."""
    value: Optional[T]
    exhausted: bool
    attempts: List[AttemptRecord] = field(default_factory=list)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    label: str = "generation",
) -> RetryOutcome[T]:
    """
    Run operation until it returns, at most policy.max_attempts times.

    Any Exception raised by operation consumes one attempt; a
    SchemaViolationError is recorded as invalid output rather than an error.
    Attempts never overlap. Cancellation propagates untouched.
    """
    state = AttemptState(delay_s=policy.initial_delay_s)
    records: List[AttemptRecord] = []

    while state.attempt < policy.max_attempts:
        waited = 0.0
        if state.attempt > 0:
            waited = state.delay_s
            await sleep(waited)
            state.delay_s *= policy.multiplier
        state.attempt += 1

        start = time.monotonic()
        try:
            if policy.attempt_timeout_s is None:
                value = await operation()
            else:
                value = await asyncio.wait_for(operation(), timeout=policy.attempt_timeout_s)
        except asyncio.TimeoutError as e:
            # builtin TimeoutError on 3.11+; only ours when wait_for was armed
            if policy.attempt_timeout_s is None:
                outcome, reason = OUTCOME_ERROR, str(e) or type(e).__name__
            else:
                outcome, reason = OUTCOME_TIMEOUT, f"no response within {policy.attempt_timeout_s}s"
        except SchemaViolationError as e:
            outcome, reason = OUTCOME_INVALID, str(e)
        except Exception as e:
            outcome, reason = OUTCOME_ERROR, str(e) or type(e).__name__
        else:
            records.append(AttemptRecord(
                attempt=state.attempt,
                outcome=OUTCOME_OK,
                duration_s=time.monotonic() - start,
                delay_s=waited,
            ))
            logger.debug("%s: attempt %d succeeded", label, state.attempt)
            return RetryOutcome(value=value, exhausted=False, attempts=records)

        records.append(AttemptRecord(
            attempt=state.attempt,
            outcome=outcome,
            reason=reason,
            duration_s=time.monotonic() - start,
            delay_s=waited,
        ))
        logger.warning("%s: attempt %d/%d failed (%s): %s", label, state.attempt, policy.max_attempts, outcome, reason)

    logger.warning("%s: %d attempts exhausted", label, policy.max_attempts)
    return RetryOutcome(value=None, exhausted=True, attempts=records)
