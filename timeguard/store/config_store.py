"""
Configuration Provider — Holds the versioned compliance-rule thresholds.

get_snapshot() hands out the current frozen ComplianceConfig; update() merges
a partial set of fields over it. Every supplied value is validated before
anything changes, so a rejected update leaves the stored record untouched.
When a rules path is configured the record is persisted as JSON and reloaded
on start.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel, to_snake

from timeguard.config import settings
from timeguard.core.dates import utcnow
from timeguard.errors import ValidationError
from timeguard.models.config_models import (
    INTEGER_FIELDS,
    RULE_RANGES,
    WEEKDAY_NAMES,
    ComplianceConfig,
    WorkingDays,
)

logger = logging.getLogger("timeguard.store.config")

_MUTABLE_FIELDS = frozenset(RULE_RANGES) | {"working_days"}


class ConfigProvider:
    """Process-wide owner of the ComplianceConfig record."""

    def __init__(self, rules_path: str | None = None, initial: ComplianceConfig | None = None) -> None:
        path = rules_path if rules_path is not None else settings.rules_path
        self.rules_path = Path(path) if path else None
        self._lock = threading.Lock()
        self._config = initial or self._load() or ComplianceConfig()

    def get_snapshot(self) -> ComplianceConfig:
        """Current effective config. Frozen, safe to share with a run."""
        return self._config

    def update(self, partial: Mapping[str, Any]) -> ComplianceConfig:
        """
        Validate and persist a merge of `partial` over the current record.

        Keys may be camelCase (wire form) or snake_case.

        Raises:
            ValidationError: unknown key, wrong type or value outside its range.
        """
        changes = _normalize_keys(partial)

        with self._lock:
            current = self._config
            merged = current.model_dump()
            for name, value in changes.items():
                if name == "working_days":
                    merged[name] = _validate_working_days(value, current.working_days)
                else:
                    merged[name] = _validate_threshold(name, value)

            merged["version"] = current.version + 1
            merged["updated_at"] = utcnow()
            updated = ComplianceConfig.model_validate(merged)

            self._persist(updated)
            self._config = updated

        logger.info(
            f"Compliance rules updated to v{updated.version}: "
            f"{', '.join(sorted(changes)) or 'no fields'}"
        )
        return updated

    def _load(self) -> ComplianceConfig | None:
        if self.rules_path is None or not self.rules_path.exists():
            return None
        raw = json.loads(self.rules_path.read_text(encoding="utf-8"))
        try:
            config = ComplianceConfig.model_validate(raw)
        except PydanticValidationError as e:
            raise ValidationError(f"Stored compliance rules at {self.rules_path} are invalid: {e}") from e
        for name in RULE_RANGES:
            _validate_threshold(name, getattr(config, name))
        logger.info(f"Loaded compliance rules v{config.version} from {self.rules_path}")
        return config

    def _persist(self, config: ComplianceConfig) -> None:
        if self.rules_path is None:
            return
        self.rules_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.rules_path.with_suffix(self.rules_path.suffix + ".tmp")
        tmp.write_text(json.dumps(config.to_wire(), indent=2), encoding="utf-8")
        tmp.replace(self.rules_path)


def _normalize_keys(partial: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(partial, Mapping):
        raise ValidationError("Config update must be an object of threshold fields")
    changes: dict[str, Any] = {}
    for key, value in partial.items():
        name = to_snake(key)
        if name not in _MUTABLE_FIELDS:
            raise ValidationError(f"Unknown compliance rule '{key}'", field=key)
        changes[name] = value
    return changes


def _validate_threshold(name: str, value: Any) -> float | int:
    low, high = RULE_RANGES[name]
    wire_name = to_camel(name)
    message = f"{wire_name} must be between {_fmt(low)} and {_fmt(high)}"

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{message} (got {value!r})", field=wire_name, allowed=(low, high))
    if not low <= value <= high:
        raise ValidationError(f"{message} (got {_fmt(value)})", field=wire_name, allowed=(low, high))
    if name in INTEGER_FIELDS and float(value) != int(value):
        raise ValidationError(f"{wire_name} must be a whole number", field=wire_name, allowed=(low, high))
    return int(value) if name in INTEGER_FIELDS else value


def _validate_working_days(value: Any, current: WorkingDays) -> dict[str, bool]:
    if not isinstance(value, Mapping):
        raise ValidationError("workingDays must map weekday names to booleans", field="workingDays")
    days = current.model_dump()
    for day, flag in value.items():
        if day not in WEEKDAY_NAMES or not isinstance(flag, bool):
            raise ValidationError(
                f"workingDays.{day} is not a weekday flag", field="workingDays"
            )
        days[day] = flag
    if not any(days.values()):
        raise ValidationError("workingDays must keep at least one working day", field="workingDays")
    return days


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)
