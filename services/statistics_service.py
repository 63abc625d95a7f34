from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

from models.message import PollResult

LOGGER = logging.getLogger(__name__)

COUNTERS = {
    "messages_seen": "listed",
    "replies_sent": "replies_sent",
    "skipped_replies": "skipped_replies",
    "already_replied": "already_replied",
    "failed": "failed",
}


class StatisticsService:
    """Very small JSON-backed stats store."""

    def __init__(self, stats_file: Path):
        self._stats_file = stats_file

    def _read(self) -> Dict:
        if not self._stats_file.exists():
            return {}
        try:
            return json.loads(self._stats_file.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError:
            LOGGER.warning("Stats file was corrupt, resetting %s", self._stats_file)
            self._write({})
            return {}

    def _write(self, payload: Dict) -> None:
        self._stats_file.parent.mkdir(parents=True, exist_ok=True)
        self._stats_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def record_poll(self, result: PollResult) -> None:
        stats = self._read()
        stats["poll_runs"] = stats.get("poll_runs", 0) + 1
        for key, attribute in COUNTERS.items():
            stats[key] = stats.get(key, 0) + getattr(result, attribute)
        stats["last_poll_at"] = datetime.now(timezone.utc).isoformat(timespec="seconds")
        self._write(stats)

    def snapshot(self) -> Dict:
        return self._read()
