from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import FrozenSet, Iterable, List, Set

from services.errors import PersistenceError

LOGGER = logging.getLogger(__name__)


class RepliedStore(ABC):
    """Set of message ids that already received an automated reply."""

    @abstractmethod
    def contains(self, message_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def add(self, message_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def ids(self) -> FrozenSet[str]:
        raise NotImplementedError


class InMemoryRepliedStore(RepliedStore):
    def __init__(self, initial: Iterable[str] = ()):
        self._ids: Set[str] = set(initial)

    def contains(self, message_id: str) -> bool:
        return message_id in self._ids

    def add(self, message_id: str) -> None:
        self._ids.add(message_id)

    def ids(self) -> FrozenSet[str]:
        return frozenset(self._ids)


class JsonRepliedStore(RepliedStore):
    """JSON array of replied message ids, rewritten atomically on every add.

    The file is re-read on each call so that changes made by an earlier run
    (or a manual edit) are always honoured. Only one process may write it.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def contains(self, message_id: str) -> bool:
        return message_id in self._read()

    def add(self, message_id: str) -> None:
        current = self._read()
        if message_id in current:
            LOGGER.debug("Message %s already recorded as replied", message_id)
            return
        current.append(message_id)
        self._write(current)
        LOGGER.debug("Recorded %s in %s", message_id, self._path)

    def ids(self) -> FrozenSet[str]:
        return frozenset(self._read())

    def _read(self) -> List[str]:
        if not self._path.exists():
            LOGGER.debug("No replied ids file at %s yet", self._path)
            return []
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Unable to read replied ids from {self._path}: {exc}") from exc
        if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
            raise PersistenceError(f"{self._path} must contain a JSON array of message id strings")
        return payload

    def _write(self, message_ids: List[str]) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(message_ids, handle, indent=2)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"Unable to write replied ids to {self._path}: {exc}") from exc
