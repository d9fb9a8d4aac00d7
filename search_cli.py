"""
Command line access to persisted table search snapshots.

Usage:
    search-state --config config.toml show <persistence_id>
    search-state --config config.toml clear <persistence_id>
    search-state --config config.toml stats
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from config_manager import get_persistence_store, refresh_config
from core.exceptions import TableSearchError
from core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Inspect persisted table search state')
    parser.add_argument('--config', default='config.toml',
                        help='Path to the TOML configuration file')
    parser.add_argument('--log-level', default='WARNING',
                        help='Logging level (DEBUG, INFO, WARNING, ERROR)')
    parser.add_argument('--user', default=None,
                        help='User id, when snapshots are isolated per user')

    subparsers = parser.add_subparsers(dest='command', required=True)

    show_parser = subparsers.add_parser('show', help='Print the snapshot for a persistence id')
    show_parser.add_argument('persistence_id')

    clear_parser = subparsers.add_parser('clear', help='Delete the snapshot for a persistence id')
    clear_parser.add_argument('persistence_id')

    subparsers.add_parser('stats', help='Print backend statistics')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = refresh_config(args.config)
        store = get_persistence_store(config)
    except TableSearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if store is None:
        print("Persistence is disabled in the configuration", file=sys.stderr)
        return 1

    try:
        store.set_user_context(args.user)

        if args.command == 'show':
            snapshot = store.get(args.persistence_id)
            if snapshot is None:
                print(f"No snapshot stored for {args.persistence_id}", file=sys.stderr)
                return 1
            print(json.dumps(snapshot, indent=2, sort_keys=True))

        elif args.command == 'clear':
            if not store.delete(args.persistence_id):
                print(f"No snapshot stored for {args.persistence_id}", file=sys.stderr)
                return 1
            logger.info(f"Cleared snapshot {args.persistence_id}")
            print(f"Cleared {args.persistence_id}")

        elif args.command == 'stats':
            print(json.dumps(store.get_backend_stats(), indent=2, sort_keys=True))
    finally:
        store.close()

    return 0


if __name__ == '__main__':
    sys.exit(main())
