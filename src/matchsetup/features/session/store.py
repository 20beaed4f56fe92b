"""Snapshot stores for setup sessions.

Stores hold plain ``SetupSession.to_dict()`` payloads so a loaded session never
aliases the registry's live object.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any
from urllib.parse import quote

from ...veto.session import SetupSession

__all__ = ["InMemorySessionStore", "JsonFileSessionStore"]

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    def __init__(self) -> None:
        self._snapshots: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load(self, series_id: str) -> SetupSession | None:
        with self._lock:
            snapshot = self._snapshots.get(series_id)
        return SetupSession.from_dict(snapshot) if snapshot is not None else None

    def save(self, session: SetupSession) -> None:
        snapshot = session.to_dict()
        with self._lock:
            self._snapshots[session.series_id] = snapshot

    def delete(self, series_id: str) -> None:
        with self._lock:
            self._snapshots.pop(series_id, None)

    def __contains__(self, series_id: object) -> bool:
        with self._lock:
            return series_id in self._snapshots


class JsonFileSessionStore:
    """One ``<series_id>.json`` file per series under ``directory``."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, series_id: str) -> Path:
        # Percent-encoding keeps distinct ids on distinct files.
        safe = quote(series_id, safe="-_.")
        if not safe or safe.strip(".") == "":
            raise ValueError(f"series id {series_id!r} cannot be used as a file name")
        return self._directory / f"{safe}.json"

    def load(self, series_id: str) -> SetupSession | None:
        path = self._path(series_id)
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return None
        if not isinstance(data, dict):
            raise ValueError(f"Invalid session snapshot in {path}")
        return SetupSession.from_dict(data)

    def save(self, session: SetupSession) -> None:
        path = self._path(session.series_id)
        payload = json.dumps(session.to_dict(), indent=2, sort_keys=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved session snapshot to %s", path, extra={"series_id": session.series_id})

    def delete(self, series_id: str) -> None:
        self._path(series_id).unlink(missing_ok=True)
