import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from keyenv.models import AuditEntry

logger = logging.getLogger(__name__)

READ_ACTIONS = ("get",)


class AuditLogger:
    """Appends one JSON line per API request to ``log_path``.

    Read requests are skipped unless ``log_reads`` is set. Secret values and
    tokens are never written, only the request path and its outcome.
    """

    def __init__(self, log_path: str, enabled: bool = True, log_reads: bool = False) -> None:
        self.log_path = log_path
        self.enabled = enabled
        self.log_reads = log_reads

        log_dir = os.path.dirname(log_path)
        if log_dir and enabled:
            Path(log_dir).mkdir(parents=True, exist_ok=True)

    def log(
        self,
        action: str,
        path: str,
        status: int = 0,
        success: bool = True,
        error: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        if not self.enabled:
            return

        if not self.log_reads and action in READ_ACTIONS:
            return

        entry = AuditEntry(
            action=action,
            path=path,
            status=status,
            success=success,
            error=error,
            metadata=metadata or {},
        )

        try:
            with open(self.log_path, "a") as f:
                f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.warning("Could not write audit entry to %s: %s", self.log_path, e)

    def _read_lines(self) -> list[str]:
        if not os.path.exists(self.log_path):
            return []
        with open(self.log_path, "r") as f:
            return f.readlines()

    def get_recent_entries(self, limit: int = 100) -> list[AuditEntry]:
        entries = []
        for line in reversed(self._read_lines()[-limit:]):
            try:
                entries.append(AuditEntry(**json.loads(line)))
            except ValueError:
                # Partially written line
                continue
        return entries

    def get_entries_for_path(self, path: str, limit: int = 100) -> list[AuditEntry]:
        entries = []
        for line in reversed(self._read_lines()):
            try:
                data = json.loads(line)
            except ValueError:
                continue
            if data.get("path") == path:
                entries.append(AuditEntry(**data))
                if len(entries) >= limit:
                    break
        return entries
