"""
Audit Logger — Structured JSON-lines audit trail.

Records every compliance run (counts created/unchanged per kind, rule
failures, duration), every rule-threshold change and every violation status
transition.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any

from timeguard.config import settings
from timeguard.models.config_models import ComplianceConfig
from timeguard.models.run_models import RunSummary
from timeguard.models.violation_models import Violation

logger = logging.getLogger("timeguard.audit")


class AuditLogger:
    """Writes structured audit entries to a JSON-lines file."""

    def __init__(self, log_path: str | None = None) -> None:
        self.log_path = Path(log_path or settings.audit_log_path)
        self._lock = threading.Lock()

    def log(self, event: str, payload: dict[str, Any]) -> None:
        """Append an audit entry to the log file."""
        record = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "event": event,
            **payload,
        }

        try:
            with self._lock, open(self.log_path, "a") as f:
                f.write(json.dumps(record, default=str) + "\n")
        except OSError as e:
            logger.error(f"Failed to write audit log: {e}")

    def log_run(self, summary: RunSummary) -> None:
        self.log("compliance_run", summary.model_dump(mode="json"))

    def log_config_update(self, changes: dict[str, Any], config: ComplianceConfig) -> None:
        self.log("config_update", {"changes": changes, "version": config.version})

    def log_status_change(self, violation: Violation) -> None:
        self.log(
            "violation_status",
            {
                "violation_id": violation.id,
                "kind": violation.kind.value,
                "user_id": violation.user_id,
                "status": violation.status.value,
            },
        )

    def read_recent(self, count: int = 50) -> list[dict]:
        """Read the most recent N audit entries."""
        if not self.log_path.exists():
            return []

        entries: list[dict] = []
        try:
            with open(self.log_path) as f:
                for line in f:
                    line = line.strip()
                    if line:
                        try:
                            entries.append(json.loads(line))
                        except json.JSONDecodeError:
                            continue
        except OSError:
            return []

        return entries[-count:]
