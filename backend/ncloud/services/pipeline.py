"""Ordered multi-store pipeline with a per-step failure policy.

Every namespace mutation touches three stores in a fixed order: metadata,
then search index, then disk. The metadata store is authoritative; the other
two may fall behind but must never get ahead of it. This module makes that
order and the failure policy explicit instead of burying them inside each
operation:

    ============  ==========  ==============================================
    Store         Policy      On failure
    ============  ==========  ==============================================
    metadata      ABORT       exception propagates, nothing later runs
    search        LOG         logged + recorded in the report, continue
    disk          LOG         logged + recorded in the report, continue
    ============  ==========  ==============================================

Orphaned index entries left by LOG failures are reconciled out of band by
``NamespaceService.reindex``; disk failures are reported and logged.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..exceptions import StoreSyncError

logger = logging.getLogger(__name__)


class Store(str, Enum):
    METADATA = "metadata"
    SEARCH = "search"
    DISK = "disk"


class FailurePolicy(str, Enum):
    ABORT = "abort"
    LOG = "log"


FAILURE_POLICY: Dict[Store, FailurePolicy] = {
    Store.METADATA: FailurePolicy.ABORT,
    Store.SEARCH: FailurePolicy.LOG,
    Store.DISK: FailurePolicy.LOG,
}

_STORE_ORDER = [Store.METADATA, Store.SEARCH, Store.DISK]


@dataclass
class Step:
    name: str
    store: Store
    action: Callable[[], Any]


@dataclass
class PipelineReport:
    """What happened to each step of one operation."""
    operation: str
    completed: List[str] = field(default_factory=list)
    failures: List[StoreSyncError] = field(default_factory=list)
    results: Dict[str, Any] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        """True when a secondary store is now behind the metadata store."""
        return bool(self.failures)

    @property
    def failed_steps(self) -> List[str]:
        return [f.details["step"] for f in self.failures]


class MutationPipeline:
    """Collects steps for one operation and runs them in store order.

    Steps for the same store run in the order they were added. Adding a step
    for an earlier store after a later one is a programming error.
    """

    def __init__(self, operation: str, policy: Optional[Dict[Store, FailurePolicy]] = None):
        self.operation = operation
        self.policy = policy or FAILURE_POLICY
        self._steps: List[Step] = []

    def add(self, name: str, store: Store, action: Callable[[], Any]) -> "MutationPipeline":
        if self._steps and _STORE_ORDER.index(store) < _STORE_ORDER.index(self._steps[-1].store):
            raise ValueError(
                f"Step '{name}' for {store.value} cannot follow a {self._steps[-1].store.value} step"
            )
        self._steps.append(Step(name=name, store=store, action=action))
        return self

    def run(self) -> PipelineReport:
        report = PipelineReport(operation=self.operation)
        for step in self._steps:
            try:
                report.results[step.name] = step.action()
            except Exception as exc:
                if self.policy[step.store] is FailurePolicy.ABORT:
                    raise
                error = StoreSyncError(step.name, exc)
                report.failures.append(error)
                logger.exception(
                    "%s: %s step '%s' failed after metadata commit; store is now behind",
                    self.operation, step.store.value, step.name,
                    extra={"operation": self.operation, "step": step.name, "store": step.store.value},
                )
                continue
            report.completed.append(step.name)
        return report
