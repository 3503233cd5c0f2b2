"""Reconciliation engine — decides and applies per-bundle actions."""

from bundlesync.engine.models import BundleOutcome, BundleState, Decision, ReconcileReport
from bundlesync.engine.reconciler import BundleReconciler, update_bundles

__all__ = [
    "BundleOutcome",
    "BundleReconciler",
    "BundleState",
    "Decision",
    "ReconcileReport",
    "update_bundles",
]
