"""Archive command - move completed tasks out of the to-do list."""

import logging

from ..core.config import validate_config
from ..core.exceptions import ConfigurationError, ResourceBusyError, SyncError
from ..core.models import SyncConfig
from ..sync.archive import TaskArchiver


class ArchiveCommand:
    """Command for archiving completed tasks."""

    def __init__(self, config: SyncConfig, verbose: bool = False):
        self.config = config
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def run(self, dry_run: bool = False) -> bool:
        try:
            validate_config(self.config)
        except ConfigurationError as exc:
            print(f"Configuration error: {exc}")
            return False

        archiver = TaskArchiver(self.config, logger=logging.getLogger("jot_sync.archive"))
        try:
            result = archiver.archive(dry_run=dry_run)
        except ResourceBusyError as exc:
            self.logger.debug("Lock timeout: %s", exc)
            print(f"⏳ {exc.user_message}")
            return False
        except SyncError as exc:
            self.logger.error("Archive failed: %s", exc)
            print(f"❌ Archive failed: {exc}")
            return False

        if not result.archived:
            print(f"No completed tasks to archive ({result.remaining} active)")
        elif dry_run:
            print(f"[dry run] Would archive {result.archived} task(s) to {result.archive_path}")
        else:
            print(f"📦 Archived {result.archived} task(s) to {result.archive_path}")
            print(f"   {result.remaining} active task(s) remain")
        return True
