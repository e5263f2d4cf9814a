"""
Persisted sync state: last run time and the ids processed so far.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from assignment_sync.schemas.sync import SyncMode, SyncState


logger = logging.getLogger(__name__)


class StateStore:
    """JSON state file, written atomically via a temp file and os.replace."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> SyncState:
        if not self.path.exists():
            return SyncState()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return SyncState.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return SyncState()

    def commit(
        self,
        processed_ids: Iterable[str],
        mode: SyncMode,
        previous: Optional[SyncState] = None,
        now: Optional[datetime] = None,
    ) -> SyncState:
        """
        Record this run's processed ids.

        Full mode replaces the seen set; incremental mode only adds to it.
        """
        previous = previous if previous is not None else self.load()
        processed = set(processed_ids)

        if mode == SyncMode.FULL:
            seen = processed
        else:
            seen = previous.seen_ids | processed

        state = SyncState(last_run=now or datetime.now(timezone.utc), seen_ids=seen)
        self._write(state)
        logger.info(f"State saved to {self.path}: {len(seen)} seen id(s)")
        return state

    def _write(self, state: SyncState) -> None:
        payload = {
            "lastRun": state.last_run.isoformat() if state.last_run else None,
            "seenIds": sorted(state.seen_ids),
        }
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
