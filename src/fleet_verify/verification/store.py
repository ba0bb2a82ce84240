"""JSONL Persistence for VerificationStatus.

Each line records one instance type's status at the time it was written. On
read, the last line for an instance type wins, so the file doubles as an
append-only history that can be compacted with write_status_snapshot().

Example:
    >>> from fleet_verify.verification.store import append_status_record, read_status_records
    >>> append_status_record("c5.large", status, "~/.fleet-verify/status.jsonl")
    >>> store = read_status_records("~/.fleet-verify/status.jsonl")
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from ..errors import StoreError
from .types import StatusStore, VerificationStatus

logger = logging.getLogger(__name__)

# Schema version for forward compatibility
SCHEMA_VERSION = "1.0.0"


def _expand(path: str) -> Path:
    return Path(os.path.expanduser(path))


def _status_to_dict(instance_type: str, status: VerificationStatus) -> Dict[str, Any]:
    """Convert a status record to a JSON-serializable dict."""
    return {
        "schema_version": SCHEMA_VERSION,
        "instance_type": instance_type,
        "attempted": status.attempted,
        "confirmed": status.confirmed,
        "metric": status.metric,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _dict_to_status(data: Dict[str, Any]) -> VerificationStatus:
    """Convert a dict to a VerificationStatus.

    Raises:
        KeyError: If a required field is missing
        ValueError: If a field has the wrong type
    """
    attempted = data["attempted"]
    confirmed = data["confirmed"]
    metric = data.get("metric", -1)

    if not isinstance(attempted, bool) or not isinstance(confirmed, bool):
        raise ValueError("attempted and confirmed must be booleans")
    if isinstance(metric, bool) or not isinstance(metric, int):
        raise ValueError(f"metric must be an integer, got {metric!r}")

    return VerificationStatus(attempted=attempted, confirmed=confirmed, metric=metric)


def append_status_record(
    instance_type: str,
    status: VerificationStatus,
    path: str,
) -> None:
    """Append a status record to the JSONL file.

    Creates the file and parent directories if they don't exist.

    Args:
        instance_type: Instance type the status belongs to
        status: VerificationStatus to persist
        path: Path to JSONL file
    """
    expanded_path = _expand(path)
    expanded_path.parent.mkdir(parents=True, exist_ok=True)

    line = json.dumps(_status_to_dict(instance_type, status)) + "\n"

    with open(expanded_path, "a", encoding="utf-8") as f:
        f.write(line)

    logger.debug(f"Appended status record for {instance_type} to {path}")


def read_status_records(path: str) -> Dict[str, VerificationStatus]:
    """Read the latest status per instance type from a JSONL file.

    Malformed lines, including lines that are not valid UTF-8, are skipped
    with a warning. Records where confirmed is set without attempted are
    kept as written, since confirmed is authoritative.

    Args:
        path: Path to JSONL file

    Returns:
        Dict mapping instance type to its most recent status
    """
    expanded_path = _expand(path)

    if not expanded_path.exists():
        return {}

    latest: Dict[str, VerificationStatus] = {}

    with open(expanded_path, "rb") as f:
        for line_num, raw_line in enumerate(f, 1):
            if not raw_line.strip():
                continue

            try:
                data = json.loads(raw_line.decode("utf-8"))
                instance_type = data["instance_type"]
                if not isinstance(instance_type, str) or not instance_type:
                    raise ValueError("instance_type must be a non-empty string")
                status = _dict_to_status(data)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed record at line {line_num}: {e}")
                continue

            if not status.is_consistent:
                logger.warning(
                    f"Record for {instance_type} at line {line_num} is confirmed "
                    "but not attempted; treating it as confirmed"
                )

            latest[instance_type] = status

    return latest


def write_status_snapshot(store: StatusStore, path: str) -> None:
    """Rewrite the JSONL file with exactly one record per instance type.

    Records are written in sorted order to a temporary file in the same
    directory, which then replaces the original.

    Args:
        store: Mapping of instance type to status
        path: Path to JSONL file

    Raises:
        StoreError: If the file cannot be written
    """
    expanded_path = _expand(path)

    try:
        expanded_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=expanded_path.parent, prefix=".status-", suffix=".jsonl"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                for instance_type in sorted(store):
                    record = _status_to_dict(instance_type, store[instance_type])
                    f.write(json.dumps(record) + "\n")
            os.replace(tmp_name, expanded_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise StoreError(f"Failed to write status snapshot to {path}: {e}") from e

    logger.debug(f"Wrote {len(store)} status records to {path}")
