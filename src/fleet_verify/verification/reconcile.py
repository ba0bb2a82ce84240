"""Verification reconciliation.

Decides, for a requested set of instance types and a snapshot of persisted
statuses, which types are already confirmed usable and which must be
(re-)verified now. The function is pure: it performs no I/O and never
mutates its inputs.

Example:
    >>> from fleet_verify.verification.reconcile import reconcile
    >>> confirmed, to_verify = reconcile(["a", "b"], {}, retry_inconclusive=False)
    >>> to_verify
    ['a', 'b']
"""

from typing import Iterable, List, NamedTuple

from .types import NOT_ATTEMPTED, StatusStore


class ReconcileResult(NamedTuple):
    """Disjoint, sorted outputs of a reconciliation."""

    confirmed: List[str]
    to_verify: List[str]


def reconcile(
    requested: Iterable[str],
    store: StatusStore,
    retry_inconclusive: bool,
) -> ReconcileResult:
    """Split instance types into confirmed and to-verify lists.

    Every type named in ``requested`` or present in ``store`` is considered,
    so stale entries left over from earlier runs still surface. Types with
    no record are treated as never attempted. ``confirmed`` is authoritative:
    a confirmed record is never re-verified, whatever ``attempted`` says.

    Args:
        requested: Instance types the caller wants available
        store: Snapshot mapping instance type to last-known status
        retry_inconclusive: Re-verify types whose last attempt was not confirmed

    Returns:
        ReconcileResult with both lists sorted ascending
    """
    confirmed: List[str] = []
    to_verify: List[str] = []

    for instance_type in sorted(set(requested).union(store)):
        status = store.get(instance_type, NOT_ATTEMPTED)
        if status.confirmed:
            confirmed.append(instance_type)
        elif not status.attempted:
            to_verify.append(instance_type)
        elif retry_inconclusive:
            to_verify.append(instance_type)

    return ReconcileResult(confirmed=confirmed, to_verify=to_verify)
