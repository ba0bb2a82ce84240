"""Instance type verification for fleet-verify.

Decides which instance types must be checked before they are scheduled for
work, and records the outcome of each check:

    requested types + status store --reconcile--> confirmed, to_verify
    to_verify --executor--> outcomes --tracker--> status store

Key concepts:
- Confirmed: the most recent attempt proved the type usable; never re-verified
- Never attempted: always verified, including types with no record at all
- Inconclusive: attempted but not confirmed; re-verified only on retry

Example:
    >>> from fleet_verify.verification import VerificationStatus, reconcile
    >>> store = {"a": VerificationStatus(True, True, 10), "b": VerificationStatus(True, False, -1)}
    >>> reconcile(["a", "b", "c"], store, retry_inconclusive=False)
    ReconcileResult(confirmed=['a'], to_verify=['c'])
"""

from .types import (
    NO_METRIC,
    NOT_ATTEMPTED,
    StatusStore,
    VerificationStatus,
    record_attempt_result,
)
from .reconcile import ReconcileResult, reconcile
from .store import append_status_record, read_status_records, write_status_snapshot
from .tracker import (
    VerificationTracker,
    get_verification_tracker,
    _reset_tracker,
)
from .runner import (
    VerificationExecutor,
    VerificationOutcome,
    verify_instance_types,
    verify_with_config,
)

__all__ = [
    # Core Types
    "NO_METRIC",
    "NOT_ATTEMPTED",
    "StatusStore",
    "VerificationStatus",
    "record_attempt_result",
    # Reconciliation
    "ReconcileResult",
    "reconcile",
    # Persistence
    "append_status_record",
    "read_status_records",
    "write_status_snapshot",
    # Tracker
    "VerificationTracker",
    "get_verification_tracker",
    "_reset_tracker",
    # Runner
    "VerificationExecutor",
    "VerificationOutcome",
    "verify_instance_types",
    "verify_with_config",
]
