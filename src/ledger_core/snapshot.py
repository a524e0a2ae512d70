"""Loading ledger snapshots exported by the persistence layer."""

import logging
from pathlib import Path

from pydantic import ValidationError

from .exceptions import SnapshotError
from .models import LedgerSnapshot

logger = logging.getLogger(__name__)


def load_snapshot(path: Path) -> LedgerSnapshot:
    """
    Read and validate a JSON snapshot.

    The document holds ``accounts``, ``transactions`` and ``participants``
    arrays; any of them may be omitted.

    Args:
        path: Snapshot file

    Returns:
        Validated snapshot

    Raises:
        SnapshotError: If the file is missing or does not validate
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e

    try:
        snapshot = LedgerSnapshot.model_validate_json(raw)
    except ValidationError as e:
        raise SnapshotError(f"Invalid snapshot {path}:\n{e}") from e

    logger.debug(
        f"Loaded snapshot {path}: {len(snapshot.accounts)} accounts, "
        f"{len(snapshot.transactions)} transactions, "
        f"{len(snapshot.participants)} participants"
    )
    return snapshot


def save_snapshot(snapshot: LedgerSnapshot, path: Path) -> None:
    """Write a snapshot as JSON (used to fold generated instances back in)."""
    path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
