from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import load_config
from .context import AppContext
from .errors import BoardError
from .logging_utils import configure_logging
from .server import create_app


def _resolve_data_dir(data_dir: Optional[str]) -> Optional[Path]:
    return Path(data_dir).expanduser().resolve() if data_dir else None


def _ctx(args: argparse.Namespace) -> AppContext:
    config = load_config(_resolve_data_dir(args.data_dir))
    return AppContext(config)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    config = load_config(_resolve_data_dir(args.data_dir))
    if args.log_level:
        config.log_level = args.log_level.upper()
    configure_logging(config.log_level)
    app = create_app(AppContext(config))
    logger.info("Serving planboard from {} on {}:{}", config.data_dir, args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=config.log_level.lower())
    return 0


def _user_create(args: argparse.Namespace) -> int:
    context = _ctx(args)
    role = "admin" if args.admin else "user"
    try:
        user = context.accounts.create_user(args.email, args.name, args.password, role)
    except BoardError as exc:
        sys.stderr.write(exc.message + '\n')
        return 1
    sys.stdout.write(json.dumps({'user': user.public_dict()}, indent=2) + '\n')
    return 0


def _user_list(args: argparse.Namespace) -> int:
    context = _ctx(args)
    sys.stdout.write(json.dumps({'users': context.accounts.list_users()}, indent=2) + '\n')
    return 0


def _backup(args: argparse.Namespace) -> int:
    context = _ctx(args)
    payload = context.accounts.backup()
    sys.stdout.write(json.dumps(payload, indent=2) + '\n')
    return 0


def _check(args: argparse.Namespace) -> int:
    context = _ctx(args)
    if args.fix:
        changed = context.engine.normalize_positions()
        sys.stdout.write(json.dumps({'renumbered': changed}) + '\n')
        return 0
    problems = context.engine.check_integrity()
    sys.stdout.write(json.dumps({'ok': not problems, 'problems': problems}, indent=2) + '\n')
    return 0 if not problems else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='planboard: projects, Kanban boards and a personal planner')
    parser.add_argument('--data-dir', default=None, help='Data directory (default: $PLANBOARD_DATA_DIR or ./.planboard)')
    # Subcommands also accept --data-dir; SUPPRESS keeps an earlier value.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--data-dir', default=argparse.SUPPRESS, help='Data directory')
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', parents=[common], help='Start the REST API server')
    serve.add_argument('--host', default='127.0.0.1')
    serve.add_argument('--port', default=8000, type=int)
    serve.add_argument('--log-level', default=None, help='Override PLANBOARD_LOG_LEVEL')
    serve.set_defaults(func=_serve)

    user = subparsers.add_parser('user', help='Manage user accounts')
    user_sub = user.add_subparsers(dest='user_cmd', required=True)
    ucreate = user_sub.add_parser('create', parents=[common], help='Create an account')
    ucreate.add_argument('--email', required=True)
    ucreate.add_argument('--name', required=True)
    ucreate.add_argument('--password', required=True)
    ucreate.add_argument('--admin', action='store_true', help='Grant the admin role')
    ucreate.set_defaults(func=_user_create)
    ulist = user_sub.add_parser('list', parents=[common], help='List accounts')
    ulist.set_defaults(func=_user_list)

    backup = subparsers.add_parser('backup', parents=[common], help='Write a timestamped copy of the store')
    backup.set_defaults(func=_backup)

    check = subparsers.add_parser('check', parents=[common], help='Verify that sibling positions are dense')
    check.add_argument('--fix', action='store_true', help='Renumber every container to 0..n-1')
    check.set_defaults(func=_check)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, 'func', None)
    if handler is None:
        parser.print_help()
        return 1
    return int(handler(args) or 0)


if __name__ == '__main__':
    raise SystemExit(main())
