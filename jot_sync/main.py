#!/usr/bin/env python3
"""
jot-sync - Keep a to-do list, today's daily note and the task state file in step.
"""

import argparse
import logging
import sys

from jot_sync.core.config import load_config, get_default_config_path
from jot_sync.commands import SyncCommand, ArchiveCommand


def main(argv=None):
    """Main entry point for jot-sync."""
    parser = argparse.ArgumentParser(
        description="Three-way task sync between a to-do list and daily notes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  jot-sync sync                   # Sync today's daily note with the to-do list
  jot-sync sync --dry-run         # Show what would change
  jot-sync sync --json            # Machine-readable result
  jot-sync archive                # Move completed tasks to Archive/
        """
    )

    default_config = get_default_config_path()

    parser.add_argument(
        '--config',
        help=f'Path to configuration file (default: {default_config})',
        default=None
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Sync command
    sync_parser = subparsers.add_parser('sync', help='Sync tasks')
    sync_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Compute changes without writing any file'
    )
    sync_parser.add_argument(
        '--json',
        action='store_true',
        help='Print the sync result as JSON'
    )
    sync_parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Print nothing on success'
    )
    sync_parser.add_argument(
        '--no-retry',
        action='store_true',
        help='Fail immediately if another sync holds the locks'
    )

    # Archive command
    archive_parser = subparsers.add_parser('archive', help='Archive completed tasks')
    archive_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be archived'
    )

    args = parser.parse_args(argv)

    # Configure logging if verbose mode is enabled
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    if not args.command:
        parser.print_help()
        return 1

    config = load_config(args.config)

    if args.verbose:
        actual_config_path = args.config if args.config else default_config
        print(f"Using config: {actual_config_path}")
        for name, path in config.get_default_paths().items():
            if name != "config":
                print(f"  {name}: {path}")

    try:
        if args.command == 'sync':
            cmd = SyncCommand(config, verbose=args.verbose)
            success = cmd.run(
                dry_run=args.dry_run,
                json_output=args.json,
                quiet=args.quiet,
                retry=not args.no_retry,
            )

        elif args.command == 'archive':
            cmd = ArchiveCommand(config, verbose=args.verbose)
            success = cmd.run(dry_run=args.dry_run)

        else:
            print(f"Unknown command '{args.command}'.")
            return 1

        return 0 if success else 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 130
    except Exception as e:
        print(f"Error: {e}")
        if not args.verbose:
            print("Re-run with --verbose for more detail.")
        else:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
