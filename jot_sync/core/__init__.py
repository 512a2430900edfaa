"""
Core module for jot-sync - contains domain models, configuration, and exceptions.
"""

from .models import (
    ChangeType,
    TaskRecord,
    TaskChange,
    ChangeDetail,
    TodoState,
    SyncConfig
)

from .exceptions import (
    JotSyncError,
    ConfigurationError,
    SyncError,
    ResourceBusyError,
    SyncIOError,
    SyncCancelledError
)

__all__ = [
    # Models
    'ChangeType',
    'TaskRecord',
    'TaskChange',
    'ChangeDetail',
    'TodoState',
    'SyncConfig',
    # Exceptions
    'JotSyncError',
    'ConfigurationError',
    'SyncError',
    'ResourceBusyError',
    'SyncIOError',
    'SyncCancelledError'
]
