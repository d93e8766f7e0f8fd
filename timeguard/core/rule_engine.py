"""
Rule Engine — Orchestrates all compliance rule evaluators.

Runs every registered rule against one entity snapshot and one config
snapshot. Rules are pure functions — no store writes, no clock reads — so
running them on a thread pool or one after another yields the same result.
A rule that raises is isolated: its failure is recorded and the others still
contribute their candidates.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable

from timeguard.config import settings
from timeguard.core.rules import (
    bulk_logging,
    late_entry,
    missing_entry,
    overrun_task,
    partial_entry,
    round_numbers,
    stale_task,
)
from timeguard.errors import PartialEvaluationError
from timeguard.models.config_models import ComplianceConfig
from timeguard.models.run_models import RuleResult
from timeguard.models.violation_models import ViolationCandidate, ViolationKind
from timeguard.store.entity_store import EntitySnapshot

logger = logging.getLogger("timeguard.engine")

# Type for a rule check function
RuleCheckFn = Callable[[EntitySnapshot, ComplianceConfig, datetime], list[ViolationCandidate]]

# Registry of all compliance rules, one per violation kind
RULE_REGISTRY: dict[ViolationKind, RuleCheckFn] = {
    missing_entry.KIND: missing_entry.check,
    late_entry.KIND: late_entry.check,
    bulk_logging.KIND: bulk_logging.check,
    round_numbers.KIND: round_numbers.check,
    stale_task.KIND: stale_task.check,
    overrun_task.KIND: overrun_task.check,
    partial_entry.KIND: partial_entry.check,
}

_unregistered = set(ViolationKind) - set(RULE_REGISTRY)
if _unregistered:
    raise RuntimeError(f"No evaluator registered for: {sorted(k.value for k in _unregistered)}")

_KIND_ORDER = {kind: i for i, kind in enumerate(ViolationKind)}


class RuleEngine:
    """
    Compliance rule engine.

    Evaluates all registered rules against immutable snapshots.
    """

    def __init__(
        self,
        rules: dict[ViolationKind, RuleCheckFn] | None = None,
        parallel: bool | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.rules = rules or RULE_REGISTRY
        self.parallel = settings.parallel_rules if parallel is None else parallel
        self.max_workers = max_workers or settings.max_rule_workers

    def run(
        self,
        snapshot: EntitySnapshot,
        config: ComplianceConfig,
        as_of: datetime,
    ) -> RuleResult:
        """
        Run all rules against one snapshot.

        Args:
            snapshot: Read-only entity view shared by every rule.
            config: Threshold snapshot taken once for this run.
            as_of: Instant the rules treat as "now".

        Returns:
            RuleResult with every candidate found and per-rule failures.
        """
        start = time.monotonic()

        if self.parallel and len(self.rules) > 1:
            with ThreadPoolExecutor(
                max_workers=min(self.max_workers, len(self.rules)),
                thread_name_prefix="timeguard-rule",
            ) as pool:
                futures = {
                    kind: pool.submit(self._run_rule, kind, fn, snapshot, config, as_of)
                    for kind, fn in self.rules.items()
                }
                outcomes = {kind: future.result() for kind, future in futures.items()}
        else:
            outcomes = {
                kind: self._run_rule(kind, fn, snapshot, config, as_of)
                for kind, fn in self.rules.items()
            }

        candidates: list[ViolationCandidate] = []
        errors: dict[str, str] = {}
        counts: dict[str, int] = {}
        for kind, outcome in outcomes.items():
            if isinstance(outcome, PartialEvaluationError):
                errors[kind.value] = outcome.message
                continue
            counts[kind.value] = len(outcome)
            candidates.extend(outcome)

        candidates.sort(key=lambda c: (_KIND_ORDER[c.kind], c.dedup_key))
        elapsed = (time.monotonic() - start) * 1000

        return RuleResult(
            candidates=candidates,
            rules_executed=[kind.value for kind in self.rules],
            errors=errors,
            counts=counts,
            duration_ms=round(elapsed, 2),
        )

    def run_single_rule(
        self,
        kind: ViolationKind | str,
        snapshot: EntitySnapshot,
        config: ComplianceConfig,
        as_of: datetime,
    ) -> list[ViolationCandidate]:
        """Run one rule. Failures propagate."""
        try:
            kind = ViolationKind(kind)
        except ValueError:
            raise ValueError(f"Unknown rule: {kind}") from None
        if kind not in self.rules:
            raise ValueError(f"Unknown rule: {kind.value}")
        return self.rules[kind](snapshot, config, as_of)

    @staticmethod
    def _run_rule(
        kind: ViolationKind,
        check_fn: RuleCheckFn,
        snapshot: EntitySnapshot,
        config: ComplianceConfig,
        as_of: datetime,
    ) -> list[ViolationCandidate] | PartialEvaluationError:
        try:
            return check_fn(snapshot, config, as_of)
        except Exception as e:
            # Rule failures should not abort the run
            failure = PartialEvaluationError(kind.value, e)
            logger.exception(f"Rule '{kind.value}' failed; continuing with remaining rules")
            return failure
