"""Concurrent verification of instance types.

The runner drives a caller-supplied executor over the instance types a plan
marked for verification. It does not launch anything itself: provisioning and
running the diagnostic workload are the executor's job.

Usage:
    from fleet_verify.verification.runner import VerificationOutcome, verify_instance_types

    class MyExecutor:
        async def verify(self, instance_type: str) -> VerificationOutcome:
            ...  # launch, run diagnostics, terminate
            return VerificationOutcome(confirmed=True, metric=elapsed)

    confirmed, to_verify = tracker.plan(requested)
    results = await verify_instance_types(to_verify, MyExecutor(), tracker)

    # Or with max_concurrency and timeout_seconds from fleet_verify.yaml
    results = await verify_with_config(to_verify, MyExecutor(), tracker)
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Protocol, runtime_checkable

from ..config import VerifyConfig, get_config
from ..events import VerificationEventType, emit_event
from .tracker import VerificationTracker, get_verification_tracker
from .types import NO_METRIC, VerificationStatus

logger = logging.getLogger(__name__)


@dataclass
class VerificationOutcome:
    """Result of one verification attempt reported by an executor."""

    confirmed: bool
    metric: int = NO_METRIC
    error: Optional[str] = None


@runtime_checkable
class VerificationExecutor(Protocol):
    """Protocol for the component that actually verifies an instance type.

    Implementations provision the instance type, run a diagnostic workload on
    it and tear it down again. Raising is allowed; the runner records any
    exception as an inconclusive attempt.
    """

    async def verify(self, instance_type: str) -> VerificationOutcome:
        ...


async def _call_executor(
    instance_type: str,
    executor: VerificationExecutor,
    timeout_seconds: Optional[float],
) -> VerificationOutcome:
    if timeout_seconds is not None:
        outcome = await asyncio.wait_for(
            executor.verify(instance_type), timeout=timeout_seconds
        )
    else:
        outcome = await executor.verify(instance_type)

    if not isinstance(outcome, VerificationOutcome):
        raise TypeError(
            f"executor returned {type(outcome).__name__}, expected VerificationOutcome"
        )
    return outcome


async def _run_one(
    instance_type: str,
    executor: VerificationExecutor,
    semaphore: asyncio.Semaphore,
    timeout_seconds: Optional[float],
) -> VerificationOutcome:
    async with semaphore:
        try:
            return await _call_executor(instance_type, executor, timeout_seconds)
        except asyncio.TimeoutError:
            error = f"timed out after {timeout_seconds}s"
        except Exception as e:
            error = f"{type(e).__name__}: {e}"

    logger.error(f"Verification of {instance_type} failed: {error}")
    emit_event(
        VerificationEventType.VERIFICATION_FAILED,
        {"instance_type": instance_type, "error": error},
    )
    return VerificationOutcome(confirmed=False, error=error)


async def verify_instance_types(
    to_verify: Iterable[str],
    executor: VerificationExecutor,
    tracker: VerificationTracker,
    max_concurrency: int = 4,
    timeout_seconds: Optional[float] = None,
) -> Dict[str, VerificationStatus]:
    """Verify instance types concurrently and record each outcome.

    Each outcome is written through the tracker as soon as its attempt
    finishes. All writes happen on the event loop, so they never interleave.

    Args:
        to_verify: Instance types to verify
        executor: Executor that performs the actual verification
        tracker: Tracker that records the resulting statuses
        max_concurrency: Maximum number of attempts in flight at once
        timeout_seconds: Per-attempt timeout; None waits indefinitely

    Returns:
        Dict mapping each instance type to its newly recorded status

    Raises:
        ValueError: If max_concurrency is less than 1
    """
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")

    # Deduplicate while keeping the caller's order
    instance_types = list(dict.fromkeys(to_verify))
    if not instance_types:
        return {}

    semaphore = asyncio.Semaphore(max_concurrency)
    results: Dict[str, VerificationStatus] = {}

    emit_event(
        VerificationEventType.VERIFICATION_STARTED,
        {"instance_types": instance_types, "max_concurrency": max_concurrency},
    )
    start = time.monotonic()

    async def verify_and_record(instance_type: str) -> None:
        outcome = await _run_one(instance_type, executor, semaphore, timeout_seconds)
        results[instance_type] = tracker.record_attempt(
            instance_type, confirmed=outcome.confirmed, metric=outcome.metric
        )

    await asyncio.gather(*(verify_and_record(t) for t in instance_types))

    confirmed = sorted(t for t, s in results.items() if s.confirmed)
    inconclusive = sorted(t for t, s in results.items() if s.is_inconclusive)
    emit_event(
        VerificationEventType.VERIFICATION_COMPLETE,
        {
            "verified": len(results),
            "confirmed": confirmed,
            "inconclusive": inconclusive,
            "latency_ms": int((time.monotonic() - start) * 1000),
        },
    )

    return {t: results[t] for t in instance_types}


async def verify_with_config(
    to_verify: Iterable[str],
    executor: VerificationExecutor,
    tracker: Optional[VerificationTracker] = None,
    config: Optional[VerifyConfig] = None,
) -> Dict[str, VerificationStatus]:
    """Verify instance types using the configured concurrency and timeout.

    Args:
        to_verify: Instance types to verify
        executor: Executor that performs the actual verification
        tracker: Tracker to record into (default: the global tracker)
        config: Configuration to use (default: the global configuration)

    Returns:
        Dict mapping each instance type to its newly recorded status
    """
    if config is None:
        config = get_config()
    if tracker is None:
        tracker = get_verification_tracker(config.store_path)

    return await verify_instance_types(
        to_verify,
        executor,
        tracker,
        max_concurrency=config.max_concurrency,
        timeout_seconds=config.timeout_seconds,
    )
