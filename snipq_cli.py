"""SnipQ command-line tool.

    snipq expand ':ty?lang=vi&tone=casual'
    snipq preview ':date'
    snipq list
    snipq info

The vault is taken from --vault, $SNIPQ_VAULT, the ``vaultPath`` preference
or ``~/.snipq/vault``, in that order.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from snipq.config_manager import ConfigManager
from snipq.errors import SnipqError
from snipq.expansion_service import ExpansionService
from snipq.models import ExpansionContext
from snipq.snippet_store import SnippetStore


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="snipq", description="Expand SnipQ snippets from the command line.")
    parser.add_argument("--vault", help="Path to the vault directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    expand = sub.add_parser("expand", help="Expand a trigger")
    expand.add_argument("trigger")
    expand.add_argument("--app", help="Foreground application id (for exclusions)")
    expand.add_argument("--context", help="Captured text around the trigger (enables boundary checks)")

    preview = sub.add_parser("preview", help="Preview an expansion without side effects")
    preview.add_argument("trigger")

    sub.add_parser("list", help="List all snippets by group")
    sub.add_parser("info", help="Show vault information")
    return parser


def _configure_logging(config: ConfigManager, verbose: bool) -> None:
    level = "DEBUG" if verbose else config.get_log_level()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING),
                        format="%(asctime)s - %(levelname)s - %(message)s")


def _handle_expand(service: ExpansionService, args: argparse.Namespace) -> int:
    context = ExpansionContext(app_id=args.app, surrounding_text=args.context)
    rendered = service.expand(args.trigger, context)
    print(f"Input: {args.trigger}")
    print(f"Output: {rendered.output}")
    print(f"Cursor: {rendered.cursor_offset}")
    print(f"Snippet: {rendered.used_snippet}")
    if rendered.used_params:
        print("Parameters:")
        for key, value in rendered.used_params.items():
            print(f"  {key}: {value}")
    return 0


def _handle_list(store: SnippetStore) -> int:
    print("Available Snippets:")
    print("")
    for group in store.list_groups():
        state = "" if group.enabled else " [disabled]"
        print(f"{group.name} ({group.id}){state}")
        for snippet in store.list_snippets(group.id):
            print(f"  {snippet.trigger} - {snippet.name}")
            if snippet.description:
                print(f"     {snippet.description}")
        print("")
    return 0


def main(argv: Optional[List[str]] = None, config: Optional[ConfigManager] = None) -> int:
    args = _build_parser().parse_args(argv)
    config = config or ConfigManager()
    _configure_logging(config, args.verbose)

    store = SnippetStore(config.get_vault_path(args.vault))
    snapshot = store.load()
    for err in snapshot.errors:
        print(f"[WARNING] Skipped {err['file']}: {err['error']}", file=sys.stderr)

    if args.command == "list":
        return _handle_list(store)
    if args.command == "info":
        info = store.vault_info()
        print(f"Vault: {info['vaultPath']} ({'exists' if info['exists'] else 'missing'})")
        print(f"Groups: {info['groups']}")
        print(f"Snippets: {info['snippets']}")
        return 0

    service = ExpansionService(snapshot)
    try:
        if args.command == "expand":
            return _handle_expand(service, args)
        print(f"Preview: {service.preview(args.trigger)}")
        return 0
    except SnipqError as exc:
        print(f"Error ({exc.kind}) for '{args.trigger}': {exc.detail}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
