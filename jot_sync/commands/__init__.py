"""
Command implementations for jot-sync.
"""

from .sync import SyncCommand
from .archive import ArchiveCommand

__all__ = [
    'SyncCommand',
    'ArchiveCommand',
]
