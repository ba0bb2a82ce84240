"""fleet-verify - decide which instance types need a live functional check.

Usage:
    from fleet_verify import get_verification_tracker

    tracker = get_verification_tracker()
    confirmed, to_verify = tracker.plan(["c5.large", "m5.xlarge"], retry_inconclusive=True)

Command line:
    fleet-verify plan c5.large m5.xlarge --retry
"""

from fleet_verify.errors import ConfigError, FleetVerifyError, StoreError
from fleet_verify.verification import (
    NOT_ATTEMPTED,
    ReconcileResult,
    VerificationStatus,
    VerificationTracker,
    get_verification_tracker,
    reconcile,
    verify_instance_types,
)
from fleet_verify._version import __version__

__all__ = [
    # Core
    "reconcile",
    "ReconcileResult",
    "VerificationStatus",
    "NOT_ATTEMPTED",
    # Tracking and running
    "VerificationTracker",
    "get_verification_tracker",
    "verify_instance_types",
    # Errors
    "FleetVerifyError",
    "ConfigError",
    "StoreError",
    # Version
    "__version__",
]
