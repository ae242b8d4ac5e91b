# tracker/__init__.py
"""
tracker package: tiered hiscores refresh scheduling, stat diffing and rollback.

Public entrypoints:
  - TrackerService (wires everything around one StateStore)
  - compute_diff, TieredRefreshScheduler, RollbackCoordinator, UpdateOrchestrator
"""

from .categories import Category, CategoryGroup
from .diff_engine import DiffResult, SilentDrop, compute_diff
from .orchestrator import UpdateOrchestrator, UpdateOutcome, UpdateStatus
from .rollback import RollbackCoordinator, RollbackPhase, StagedCorrection
from .scheduler import Tier, TieredRefreshScheduler
from .service import TrackerService
from .snapshot import Snapshot
from .state_store import StateStore

__all__ = [
    "Category",
    "CategoryGroup",
    "DiffResult",
    "RollbackCoordinator",
    "RollbackPhase",
    "SilentDrop",
    "Snapshot",
    "StagedCorrection",
    "StateStore",
    "Tier",
    "TieredRefreshScheduler",
    "TrackerService",
    "UpdateOrchestrator",
    "UpdateOutcome",
    "UpdateStatus",
    "compute_diff",
]
