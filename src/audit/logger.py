"""Relay event log — append-only JSON Lines with size-based rotation."""

from __future__ import annotations

import fcntl
from pathlib import Path

from src.config import RelayConfig
from src.models import RelayEvent


class RelayEventLog:
    """Append-only record of relay outcomes, one JSON object per line."""

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count

    @classmethod
    def from_config(cls, config: RelayConfig) -> RelayEventLog | None:
        if not config.event_log_path:
            return None
        return cls(
            log_path=config.event_log_path,
            max_bytes=config.event_log_max_bytes,
            backup_count=config.event_log_backup_count,
        )

    def _backup(self, index: int) -> Path:
        return self.log_path.parent / f"{self.log_path.name}.{index}"

    def _maybe_rotate(self) -> None:
        if not self.log_path.exists():
            return
        if self.log_path.stat().st_size < self._max_bytes:
            return

        self._backup(self._backup_count).unlink(missing_ok=True)
        for i in range(self._backup_count - 1, 0, -1):
            if self._backup(i).exists():
                self._backup(i).rename(self._backup(i + 1))
        self.log_path.rename(self._backup(1))

    def record(self, event: RelayEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        line = event.model_dump_json(exclude_none=True)

        lock_file = self.log_path.parent / f".{self.log_path.name}.lock"
        with open(lock_file, "w") as lf:
            fcntl.flock(lf, fcntl.LOCK_EX)
            try:
                self._maybe_rotate()
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lf, fcntl.LOCK_UN)

    def read_events(self) -> list[RelayEvent]:
        """Events in the current (unrotated) file, oldest first."""
        if not self.log_path.exists():
            return []
        return [
            RelayEvent.model_validate_json(line)
            for line in self.log_path.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
