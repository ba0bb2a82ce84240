"""Core Types for instance type verification.

This module defines the status record attached to each instance type:
- VerificationStatus: Last-known outcome of a verification attempt
- NOT_ATTEMPTED: Default status for types with no record
- record_attempt_result: Builds the status written after an attempt

Example:
    >>> from fleet_verify.verification.types import VerificationStatus, NOT_ATTEMPTED
    >>> status = VerificationStatus(attempted=True, confirmed=True, metric=42)
    >>> NOT_ATTEMPTED.attempted
    False
"""

from dataclasses import dataclass
from typing import Mapping

# Metric value meaning "no successful measurement"
NO_METRIC = -1


@dataclass(frozen=True)
class VerificationStatus:
    """Last-known verification outcome for one instance type.

    Frozen so a snapshot handed to the reconciler cannot change underneath it.

    Attributes:
        attempted: True if a verification attempt has ever completed
        confirmed: True only if the most recent attempt proved the type usable
        metric: Auxiliary measurement from the last attempt (-1 if none)
    """

    attempted: bool = False
    confirmed: bool = False
    metric: int = NO_METRIC

    @property
    def is_consistent(self) -> bool:
        """Whether the record satisfies confirmed => attempted."""
        return self.attempted or not self.confirmed

    @property
    def is_inconclusive(self) -> bool:
        """Attempted at least once but not confirmed usable."""
        return self.attempted and not self.confirmed


# Explicit default for instance types absent from a store
NOT_ATTEMPTED = VerificationStatus(attempted=False, confirmed=False, metric=NO_METRIC)

# Mapping of instance type to its last-known status
StatusStore = Mapping[str, VerificationStatus]


def record_attempt_result(confirmed: bool, metric: int = NO_METRIC) -> VerificationStatus:
    """Build the status recorded after a verification attempt completes.

    The metric is only kept for confirmed attempts; an inconclusive attempt
    has no successful measurement.

    Args:
        confirmed: True if the attempt proved the instance type usable
        metric: Measurement taken during the attempt

    Returns:
        New VerificationStatus with attempted set
    """
    return VerificationStatus(
        attempted=True,
        confirmed=confirmed,
        metric=metric if confirmed else NO_METRIC,
    )
