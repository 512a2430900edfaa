"""Sync command - reconcile the state store, to-do list and today's daily note."""

import json
import logging
from typing import List

from ..core.config import validate_config
from ..core.exceptions import ConfigurationError, ResourceBusyError, SyncError
from ..core.models import ChangeDetail, SyncConfig
from ..sync.orchestrator import SyncOrchestrator, SyncResult, run_with_retry


class SyncCommand:
    """Command for running one sync pass."""

    def __init__(self, config: SyncConfig, verbose: bool = False):
        self.config = config
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def run(self, dry_run: bool = False, json_output: bool = False,
            quiet: bool = False, retry: bool = True) -> bool:
        """Run the sync command. Returns True when the pass succeeded."""
        try:
            validate_config(self.config)
        except ConfigurationError as exc:
            print(f"Configuration error: {exc}")
            return False

        orchestrator = SyncOrchestrator(self.config, logger=logging.getLogger("jot_sync.sync"))
        attempts = self.config.retry_attempts if retry else 1

        try:
            result = run_with_retry(
                lambda: orchestrator.run(dry_run=dry_run),
                attempts=attempts,
                base_delay=self.config.retry_base_delay,
                logger=self.logger,
            )
        except ResourceBusyError as exc:
            self.logger.debug("Lock timeout: %s", exc)
            print(f"⏳ {exc.user_message}")
            return False
        except SyncError as exc:
            self.logger.error("Sync failed: %s", exc)
            print(f"❌ Sync failed: {exc}")
            return False

        if json_output:
            print(json.dumps(result.to_dict(), indent=2))
        elif not quiet:
            self._show_result(result)

        return result.success

    def _show_result(self, result: SyncResult) -> None:
        if result.conflicts:
            print(f"\n⚠️  {len(result.conflicts)} conflict(s) need manual resolution:")
            for task_id, conflict in sorted(result.conflicts.items()):
                print(f"  • {task_id}: {conflict.reason}")
            print("\nNo files were changed. Edit one side so both agree, then sync again.")
            return

        if result.migrated:
            print(f"📦 Migrated {result.migrated} existing task(s) into state")

        self._show_details("📝 From daily note", result.details.get("daily_added", []),
                           result.details.get("daily_updated", []))
        self._show_details("📋 From to-do list", result.details.get("todo_added", []),
                           result.details.get("todo_updated", []))

        deleted = result.details.get("deleted", [])
        if deleted:
            print(f"\n🗑️  Deleted ({len(deleted)}):")
            for detail in deleted:
                print(f"  - {detail.from_text} ({detail.id})")

        if result.skipped_ids:
            print(f"\n⏭️  Skipped {len(result.skipped_ids)} merge(s); retrying next sync: "
                  f"{', '.join(result.skipped_ids)}")

        prefix = "[dry run] " if result.dry_run else ""
        if not result.has_changes:
            print(f"{prefix}✅ Everything is in sync")
            return

        print(f"\n{prefix}🔄 Sync Summary")
        print(f"  From daily note: {result.tasks_from_daily}")
        print(f"  From to-do list: {result.tasks_from_todo}")
        print(f"  Merged: {result.merged}")
        print(f"  Deleted: {result.deleted}")
        if self.verbose:
            written = [
                name for name, flag in (
                    ("state", result.state_updated),
                    ("todo", result.todo_updated),
                    ("daily note", result.journal_updated),
                ) if flag
            ]
            verb = "Would write" if result.dry_run else "Wrote"
            print(f"  {verb}: {', '.join(written) or 'nothing'}")

    def _show_details(self, title: str, added: List[ChangeDetail], updated: List[ChangeDetail]) -> None:
        if not added and not updated:
            return
        print(f"\n{title}:")
        for detail in added:
            print(f"  + {detail.text}")
        for detail in updated:
            suffix = f" ({detail.details})" if detail.details else ""
            print(f"  ~ {detail.text}{suffix}")
