"""Reconciliation runs over files and in-memory tables."""

from .models import ReconcileRequest, RunResult
from .runner import ReconcileRunner

__all__ = [
    "ReconcileRequest",
    "RunResult",
    "ReconcileRunner",
]
