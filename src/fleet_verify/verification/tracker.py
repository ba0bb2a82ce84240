"""VerificationTracker for instance type verification status.

This module provides the tracker that owns the status snapshot:
- In-memory cache for fast lookups
- JSONL persistence for durability
- Planning via the pure reconciler
- Singleton factory pattern
- Observability events

Example:
    >>> from fleet_verify.verification.tracker import get_verification_tracker
    >>> tracker = get_verification_tracker()
    >>> confirmed, to_verify = tracker.plan(["c5.large", "m5.xlarge"])
    >>> tracker.record_attempt("m5.xlarge", confirmed=True, metric=412)
"""

import logging
from typing import Dict, Iterable, Optional

from ..errors import StoreError
from ..events import VerificationEventType, emit_event
from .reconcile import ReconcileResult, reconcile
from .store import append_status_record, read_status_records, write_status_snapshot
from .types import NO_METRIC, NOT_ATTEMPTED, VerificationStatus, record_attempt_result

logger = logging.getLogger(__name__)


class VerificationTracker:
    """Tracks instance type verification status with persistence.

    Attributes:
        _cache: In-memory cache mapping instance type to VerificationStatus
        _store_path: Path to JSONL persistence file (None for no persistence)
        _strict: Raise StoreError when a record cannot be persisted
        _load_failed: True if the store existed but could not be read
    """

    def __init__(self, store_path: Optional[str] = None, strict: bool = False):
        """Initialize tracker with optional persistence.

        Args:
            store_path: Path to JSONL file. If None, operates in memory only.
            strict: If True, persistence failures raise StoreError instead of
                    being logged.
        """
        self._store_path = store_path
        self._strict = strict
        self._load_failed = False
        self._cache: Dict[str, VerificationStatus] = {}

        if store_path:
            self._load_from_store()

    @property
    def store_path(self) -> Optional[str]:
        return self._store_path

    def _load_from_store(self) -> None:
        """Load existing records from JSONL store into cache."""
        if not self._store_path:
            return

        try:
            records = read_status_records(self._store_path)
            self._cache.update(records)
            if records:
                logger.debug(f"Loaded {len(records)} status records from store")
        except OSError as e:
            self._load_failed = True
            logger.warning(f"Failed to load status store: {e}")

    def _persist(self, instance_type: str, status: VerificationStatus) -> None:
        """Persist status to JSONL store.

        Raises:
            StoreError: If strict and the record cannot be written
        """
        if not self._store_path:
            return

        try:
            append_status_record(instance_type, status, self._store_path)
        except OSError as e:
            if self._strict:
                raise StoreError(
                    f"Failed to persist status for {instance_type} to {self._store_path}: {e}"
                ) from e
            logger.error(f"Failed to persist status for {instance_type}: {e}")

    def get_status(self, instance_type: str) -> Optional[VerificationStatus]:
        """Get current status for an instance type, or None if untracked."""
        return self._cache.get(instance_type)

    def snapshot(self) -> Dict[str, VerificationStatus]:
        """Return an independent copy of the current statuses.

        Statuses are frozen, so a shallow copy is enough to isolate the
        snapshot from later updates.
        """
        return dict(self._cache)

    def get_all_statuses(self) -> Dict[str, VerificationStatus]:
        return self.snapshot()

    def plan(
        self,
        requested: Iterable[str],
        retry_inconclusive: bool = False,
    ) -> ReconcileResult:
        """Decide which instance types are confirmed and which need verifying.

        Args:
            requested: Instance types the caller wants available
            retry_inconclusive: Re-verify types whose last attempt was not confirmed

        Returns:
            ReconcileResult with sorted confirmed and to_verify lists
        """
        requested = list(requested)
        result = reconcile(requested, self.snapshot(), retry_inconclusive)

        emit_event(
            VerificationEventType.PLAN_COMPUTED,
            {
                "requested": len(requested),
                "retry_inconclusive": retry_inconclusive,
                "confirmed": result.confirmed,
                "to_verify": result.to_verify,
            },
        )

        return result

    def record_attempt(
        self,
        instance_type: str,
        confirmed: bool,
        metric: int = NO_METRIC,
    ) -> VerificationStatus:
        """Record the outcome of a completed verification attempt.

        Args:
            instance_type: Instance type that was verified
            confirmed: True if the attempt proved the type usable
            metric: Measurement taken during the attempt

        Returns:
            The status now recorded for the instance type

        Raises:
            StoreError: If strict and the status cannot be persisted
        """
        previous = self._cache.get(instance_type, NOT_ATTEMPTED)
        updated = record_attempt_result(confirmed, metric)

        self._persist(instance_type, updated)
        self._cache[instance_type] = updated

        emit_event(
            VerificationEventType.ATTEMPT_RECORDED,
            {
                "instance_type": instance_type,
                "confirmed": updated.confirmed,
                "metric": updated.metric,
            },
        )

        if updated.confirmed:
            emit_event(
                VerificationEventType.INSTANCE_CONFIRMED,
                {"instance_type": instance_type, "metric": updated.metric},
            )
        else:
            emit_event(
                VerificationEventType.INSTANCE_INCONCLUSIVE,
                {
                    "instance_type": instance_type,
                    "previously_confirmed": previous.confirmed,
                },
            )

        if previous.confirmed != updated.confirmed:
            logger.info(
                f"Instance type {instance_type}: "
                f"confirmed {previous.confirmed} → {updated.confirmed}"
            )

        return updated

    def reset(self, instance_type: str) -> None:
        """Forget an instance type's history so it is verified again.

        The reset is persisted as a never-attempted record, which overrides
        earlier lines when the store is read back.
        """
        self._persist(instance_type, NOT_ATTEMPTED)
        self._cache[instance_type] = NOT_ATTEMPTED

        emit_event(
            VerificationEventType.INSTANCE_RESET,
            {"instance_type": instance_type},
        )

    def compact(self) -> None:
        """Rewrite the store with one record per tracked instance type.

        Refuses to run if the store could not be read on load, since the
        cache would not reflect what is on disk.

        Raises:
            StoreError: If the store was not loaded or cannot be written
        """
        if not self._store_path:
            return
        if self._load_failed:
            raise StoreError(
                f"Refusing to compact {self._store_path}: the store could not be read"
            )
        write_status_snapshot(self._cache, self._store_path)


# Singleton instance
_tracker: Optional[VerificationTracker] = None


def get_verification_tracker(store_path: Optional[str] = None) -> VerificationTracker:
    """Get the singleton VerificationTracker instance.

    The store_path is only used on first call. Without one, the configured
    store path is used (FLEET_VERIFY_STORE or fleet_verify.yaml).
    """
    global _tracker
    if _tracker is None:
        if store_path is None:
            from ..config import get_config

            store_path = get_config().store_path
        _tracker = VerificationTracker(store_path=store_path)
    return _tracker


def _reset_tracker() -> None:
    """Reset the singleton tracker (for testing only)."""
    global _tracker
    _tracker = None
