# =============================================================================
# babycare_core/cli.py
# Command-Line Entry Point
# =============================================================================
"""
babycare - inspect and operate the local baby-care data from a terminal.

Commands:
    status                          show mode, counts and sync state
    sync                            manual full sync (cloud mode)
    export PATH / import PATH       JSON backup
    offline --birth-date D          finish setup without a backend
    create --birth-date D           create a new cloud identifier
    join OWNER_ID                   join an existing cloud identifier
    upgrade                         move offline data to a new cloud identifier
    wipe --yes                      delete all data (remote first in cloud mode)
    serve                           run the backend HTTP endpoint
"""

from __future__ import annotations
import argparse
import json
import sys
from typing import List, Optional

from babycare_core.config.settings import Settings, load_settings
from babycare_core.errors import BabyCareError, ErrorContext, handle_error
from babycare_core.logging import setup_logging
from babycare_core.services.base_service import ServiceResult


def _print_result(result: ServiceResult, success_message: str) -> int:
    if result:
        print(success_message)
        return 0
    print(f"ERROR [{result.error_code}]: {result.error}", file=sys.stderr)
    return 1


def _config_line(config) -> str:
    owner = f", identifier {config.owner_id}" if config.owner_id else ""
    return f"Mode: {config.mode.value}{owner}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="babycare", description="Baby-care records: local store and cloud sync")
    parser.add_argument("--settings", help="Path to secrets.toml")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show mode, record counts and sync state")
    sub.add_parser("sync", help="Push local data, then pull remote data")

    export = sub.add_parser("export", help="Write a JSON backup")
    export.add_argument("path")

    import_ = sub.add_parser("import", help="Restore a JSON backup (ends in offline mode)")
    import_.add_argument("path")

    for name, help_text in (
        ("offline", "Finish setup in offline mode"),
        ("create", "Create a new cloud identifier"),
    ):
        command = sub.add_parser(name, help=help_text)
        command.add_argument("--birth-date", required=True, help="YYYY-MM-DD")
        command.add_argument("--name", help="Baby's name")

    join = sub.add_parser("join", help="Join an existing cloud identifier")
    join.add_argument("owner_id")

    sub.add_parser("upgrade", help="Move offline data to a new cloud identifier")

    wipe = sub.add_parser("wipe", help="Delete all data")
    wipe.add_argument("--yes", action="store_true", help="Confirm deletion")

    serve = sub.add_parser("serve", help="Run the backend HTTP endpoint")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)

    return parser


def run_command(args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "serve":
        from babycare_core.backend.routes import create_app

        create_app(settings=settings).run(host=args.host, port=args.port)
        return 0

    from babycare_core.services.baby_data_service import build_baby_data_service

    service = build_baby_data_service(settings)

    if args.command == "status":
        print(json.dumps(service.get_status(), indent=2))
        return 0

    if args.command == "sync":
        result = service.sync_now()
        counts = result.data.counts() if result and result.data else {}
        return _print_result(result, f"Sync complete: {counts}")

    if args.command == "export":
        result = service.export_to_file(args.path)
        return _print_result(result, f"Backup written to {args.path}")

    if args.command == "import":
        result = service.import_from_file(args.path)
        return _print_result(result, f"Backup restored: {(result.metadata or {}).get('counts')}")

    if args.command == "offline":
        result = service.start_offline(args.birth_date, args.name)
        return _print_result(result, _config_line(result.data) if result else "")

    if args.command == "create":
        result = service.create_cloud_owner(args.birth_date, args.name, start_sync=False)
        return _print_result(result, _config_line(result.data) if result else "")

    if args.command == "join":
        result = service.join_cloud_owner(args.owner_id, start_sync=False)
        return _print_result(result, _config_line(result.data) if result else "")

    if args.command == "upgrade":
        result = service.upgrade_to_cloud(start_sync=False)
        return _print_result(result, _config_line(result.data) if result else "")

    if args.command == "wipe":
        if not args.yes:
            print("Refusing to delete without --yes", file=sys.stderr)
            return 2
        return _print_result(service.delete_all_data(), "All data deleted")

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return 2


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.settings)
    except BabyCareError as e:
        handle_error(e, notify=lambda message: print(message, file=sys.stderr))
        return 2

    setup_logging(args.log_level or settings.log_level, log_to_file=settings.log_to_file)

    exit_code = 1
    with ErrorContext(f"babycare {args.command}", notify=lambda message: print(message, file=sys.stderr)):
        exit_code = run_command(args, settings)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
