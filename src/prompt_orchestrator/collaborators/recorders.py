"""Outcome recorders.

Recording is best-effort: the orchestrator logs and ignores recorder
failures, so implementations may raise freely.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import os

    from prompt_orchestrator.core.types import OutcomeRecord

log = logging.getLogger(__name__)


def record_to_dict(entry: OutcomeRecord) -> dict[str, Any]:
    return {
        "kind": entry.kind,
        "text": entry.text,
        "score": entry.score,
        "metadata": dict(entry.metadata),
    }


class NullRecorder:
    """Discards every record."""

    async def record(self, entry: OutcomeRecord) -> None:  # noqa: ARG002
        return None


class LoggingRecorder:
    """Writes a summary of every record to a logger."""

    def __init__(
        self, logger: logging.Logger | None = None, level: int = logging.INFO
    ) -> None:
        self._logger = logger or log
        self._level = level

    async def record(self, entry: OutcomeRecord) -> None:
        self._logger.log(
            self._level,
            "Recorded %s outcome (score=%s, %d chars)",
            entry.kind,
            entry.score,
            len(entry.text),
            extra={"record_kind": entry.kind, "record_score": entry.score},
        )


class JSONLinesRecorder:
    """Append-only JSON lines file, one object per record.

    Each line holds ``kind``, ``text``, ``score``, ``metadata`` and a
    ``recorded_at`` Unix timestamp.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def record(self, entry: OutcomeRecord) -> None:
        payload = record_to_dict(entry)
        payload["recorded_at"] = time.time()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(payload, default=str) + "\n")

    def read_all(self) -> list[dict[str, Any]]:
        """Return every well-formed record in the file, oldest first."""
        if not self._path.exists():
            return []
        records: list[dict[str, Any]] = []
        for line in self._path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                value = json.loads(line)
            except json.JSONDecodeError:
                log.warning("Skipping malformed line in %s", self._path)
                continue
            if isinstance(value, dict):
                records.append(value)
        return records
