"""Verification events for observability.

Every planning decision and recorded attempt emits an event. Events are kept
in an in-memory list (useful for tests and audit trails) and logged on the
``fleet_verify.events`` logger.

Example:
    >>> from fleet_verify.events import VerificationEventType, emit_event, get_events
    >>> emit_event(VerificationEventType.ATTEMPT_RECORDED, {"instance_type": "c5.large"})
    >>> len(get_events())
    1
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

__all__ = [
    "VerificationEvent",
    "VerificationEventType",
    "emit_event",
    "get_events",
    "clear_events",
]


class VerificationEventType(Enum):
    """Types of events emitted while planning and running verification."""

    # Planning
    PLAN_COMPUTED = "plan_computed"

    # Attempt outcomes
    ATTEMPT_RECORDED = "attempt_recorded"
    INSTANCE_CONFIRMED = "instance_confirmed"
    INSTANCE_INCONCLUSIVE = "instance_inconclusive"
    INSTANCE_RESET = "instance_reset"

    # Runner
    VERIFICATION_STARTED = "verification_started"
    VERIFICATION_FAILED = "verification_failed"
    VERIFICATION_COMPLETE = "verification_complete"


@dataclass
class VerificationEvent:
    """An event emitted by the verification tracker or runner."""

    event_type: VerificationEventType
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# Global event store (in-memory, can be replaced with a proper sink)
_events: List[VerificationEvent] = []

logger = logging.getLogger("fleet_verify.events")


def emit_event(
    event_type: VerificationEventType,
    data: Dict[str, Any],
) -> VerificationEvent:
    """Emit a verification event.

    Args:
        event_type: Type of event
        data: Event-specific data

    Returns:
        The emitted VerificationEvent
    """
    event = VerificationEvent(event_type=event_type, data=data)
    _events.append(event)

    logger.info("Verification event: %s data=%s", event_type.value, data)

    return event


def get_events() -> List[VerificationEvent]:
    """Get all emitted events in emission order."""
    return list(_events)


def clear_events() -> None:
    """Clear all recorded events."""
    _events.clear()
