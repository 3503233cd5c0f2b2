"""Reconciliation data model — decisions, observed state and outcomes."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from bundlesync.directives.models import BundleDirective
from bundlesync.inventory.reporter import InventoryRecord


class Decision(Enum):
    """What the reconciler will do with one bundle directory."""

    CREATE = "create"  # No directory yet
    REFRESH = "refresh"  # Directory exists with the declared origin
    REORIGIN = "reorigin"  # Directory exists but points elsewhere
    LEAVE = "leave"  # Static, or updates disabled
    REMOVE = "remove"  # Directory no longer declared


class BundleState(Enum):
    """Terminal state of one bundle after a pass."""

    CREATED = "created"
    REFRESHED = "refreshed"
    REORIGINATED = "reoriginated"
    LEFT_ALONE = "left alone"
    REMOVED = "removed"
    ABORTED = "aborted"


COMPLETED_STATES = {
    Decision.CREATE: BundleState.CREATED,
    Decision.REFRESH: BundleState.REFRESHED,
    Decision.REORIGIN: BundleState.REORIGINATED,
    Decision.LEAVE: BundleState.LEFT_ALONE,
    Decision.REMOVE: BundleState.REMOVED,
}

MUTATING_DECISIONS = {Decision.CREATE, Decision.REORIGIN, Decision.REMOVE}


@dataclass(frozen=True)
class BundleDirectoryState:
    """An entry of the bundle root as observed on disk."""

    name: str
    origin_url: str | None = None


@dataclass(frozen=True)
class PlannedAction:
    name: str
    decision: Decision
    directive: BundleDirective | None = None
    observed: BundleDirectoryState | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "decision": self.decision.value,
            "source_url": self.directive.source_url if self.directive else None,
            "ref": self.directive.ref if self.directive else None,
            "current_origin": self.observed.origin_url if self.observed else None,
        }


@dataclass
class BundleOutcome:
    name: str
    decision: Decision
    state: BundleState
    detail: str = ""


@dataclass
class ReconcileReport:
    """Everything one reconciliation pass did, in processing order."""

    outcomes: list[BundleOutcome] = field(default_factory=list)
    inventory: list[InventoryRecord] = field(default_factory=list)

    @property
    def aborted(self) -> BundleOutcome | None:
        for outcome in self.outcomes:
            if outcome.state == BundleState.ABORTED:
                return outcome
        return None

    @property
    def mutated(self) -> bool:
        """True if any directory was created, replaced or trashed."""
        return any(
            o.decision in MUTATING_DECISIONS and o.state != BundleState.ABORTED
            for o in self.outcomes
        )

    def counts(self) -> Counter:
        return Counter(o.state for o in self.outcomes)

    def summary(self) -> str:
        counts = self.counts()
        parts = [f"{counts[state]} {state.value}" for state in BundleState if counts[state]]
        return ", ".join(parts) if parts else "nothing to do"
