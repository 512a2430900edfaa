"""Sync module for three-way task reconciliation."""

from .detector import detect_changes, detect_deletions
from .resolver import Conflict, ConflictResolver, detect_conflicts
from .merger import smart_merge
from .engine import SyncEngine, ReconcileResult
from .locks import acquire_locks
from .orchestrator import SyncOrchestrator, SyncResult, SyncOutcome, PassState, load_state, run_with_retry
from .archive import TaskArchiver, ArchiveResult

__all__ = [
    'detect_changes',
    'detect_deletions',
    'Conflict',
    'ConflictResolver',
    'detect_conflicts',
    'smart_merge',
    'SyncEngine',
    'ReconcileResult',
    'acquire_locks',
    'SyncOrchestrator',
    'SyncResult',
    'SyncOutcome',
    'PassState',
    'run_with_retry',
    'TaskArchiver',
    'ArchiveResult',
]
