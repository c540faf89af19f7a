"""
Session Store

Durable storage for the id snapshots that drive a resumable reindex run.

Each run is identified by a session id; for every entity kind the full list
of ids is written once, as a JSON integer array, to
``{root}/{session_id}/{kind}.json``. The list is never modified afterwards,
which keeps the page count of a run stable across process restarts. It is
deleted when the last page has been processed.

Design choices
--------------
- File-backed, so runs survive restarts.
- Atomic writes (temp file + rename); a list is never overwritten in place.
- Session ids are validated to prevent path traversal.
- Thread-safe access using a re-entrant lock.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import List, Sequence

from pydantic import BaseModel, Field

from ..cms.models import EntityKind
from ..core.errors import SessionStateError

logger = logging.getLogger("sync.sessions")

SESSION_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


class InvalidSessionError(ValueError):
    """Raised when a session id is missing or malformed."""


class ReindexSession(BaseModel):
    """
    A persisted id snapshot for one entity kind of one reindex run.
    """

    session_id: str
    entity_kind: EntityKind
    ids: List[int] = Field(default_factory=list)
    created_at: datetime


class SessionStore:
    """
    File-backed store mapping (session id, entity kind) to an id list.
    """

    def __init__(self, root: Path | str) -> None:
        """
        Parameters
        ----------
        root : Path | str
            Directory under which one sub-directory per session is created.
        """
        self._root = Path(root)
        self._lock = RLock()

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def path_for(self, session_id: str, kind: EntityKind) -> Path:
        if not session_id or not SESSION_ID_PATTERN.match(session_id):
            raise InvalidSessionError(
                f"Invalid session id '{session_id}': must be 1-64 alphanumeric chars, hyphens, or underscores"
            )
        return self._root / session_id / kind.session_filename

    def exists(self, session_id: str, kind: EntityKind) -> bool:
        with self._lock:
            return self.path_for(session_id, kind).is_file()

    def write(self, session_id: str, kind: EntityKind, ids: Sequence[int]) -> ReindexSession:
        """
        Persist the id snapshot for a run.

        Raises
        ------
        SessionStateError
            If a snapshot already exists for this session and kind.
        """
        path = self.path_for(session_id, kind)

        with self._lock:
            if path.exists():
                raise SessionStateError(
                    f"Session '{session_id}' already has a {kind.value} id list"
                )

            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump([int(i) for i in ids], f)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

            logger.info(
                "Created %s session %s with %d ids", kind.value, session_id, len(ids)
            )
            return self.read(session_id, kind)

    def read(self, session_id: str, kind: EntityKind) -> ReindexSession:
        """
        Load the id snapshot for a run.

        Raises
        ------
        SessionStateError
            If the snapshot is missing or its contents are not an integer list.
        """
        path = self.path_for(session_id, kind)

        with self._lock:
            try:
                with path.open("r", encoding="utf-8") as f:
                    data = json.load(f)
                created_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            except FileNotFoundError as exc:
                raise SessionStateError(
                    f"Session '{session_id}' has no {kind.value} id list"
                ) from exc
            except (OSError, ValueError) as exc:
                raise SessionStateError(
                    f"Session '{session_id}' {kind.value} id list is unreadable"
                ) from exc

        if not isinstance(data, list) or not all(
            isinstance(i, int) and not isinstance(i, bool) for i in data
        ):
            raise SessionStateError(
                f"Session '{session_id}' {kind.value} id list is not an integer array"
            )

        return ReindexSession(
            session_id=session_id,
            entity_kind=kind,
            ids=data,
            created_at=created_at,
        )

    def delete(self, session_id: str, kind: EntityKind) -> bool:
        """
        Remove the id snapshot. Returns False if there was nothing to delete.
        """
        path = self.path_for(session_id, kind)

        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return False

            # Drop the session directory once its last list is gone
            try:
                path.parent.rmdir()
            except OSError:
                pass

            logger.info("Deleted %s session %s", kind.value, session_id)
            return True
