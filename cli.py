#!/usr/bin/env python3
"""Unified CLI for the escrow marketplace backoffice.

Usage:
    python cli.py workspace --help
"""
import sys
import argparse


def main():
    parser = argparse.ArgumentParser(
        description='Escrow Marketplace Backoffice',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modules:
  workspace     Project workspace: milestones, deliveries, timeline, admin

Examples:
  python cli.py workspace init-db
  python cli.py workspace timeline --project 3f2a9c
  python cli.py workspace close --project 3f2a9c --as 81b0de
  python cli.py workspace admin-projects --as 0a11ce --status active
"""
    )

    parser.add_argument(
        'module',
        choices=['workspace'],
        help='Module to run'
    )

    # Parse just the module, pass rest to submodule
    args, remaining = parser.parse_known_args()

    # Dispatch to module CLI
    if args.module == 'workspace':
        from modules.workspace.cli import main as ws_main
        sys.argv = ['workspace'] + remaining
        ws_main()


if __name__ == '__main__':
    main()
