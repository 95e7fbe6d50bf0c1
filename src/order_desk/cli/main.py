from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Sequence

from ..config import Settings, load_settings
from ..errors import OrderDeskError
from ..logging import get_logger
from ..orderdb import OrderDatabase, OrderService

LOG = get_logger("cli-main")


def _settings(ns: argparse.Namespace) -> Settings:
    return load_settings(os.getcwd(), db_path=ns.db)


def _handle_init(ns: argparse.Namespace) -> int:
    settings = _settings(ns)
    with OrderDatabase(settings.db_path) as db:
        db.wait_until_ready(attempts=settings.init_attempts, delay=settings.init_delay)
        print(db.db_path)
    return 0


def _handle_summary(ns: argparse.Namespace) -> int:
    settings = _settings(ns)
    with OrderDatabase(settings.db_path) as db:
        db.wait_until_ready(attempts=settings.init_attempts, delay=settings.init_delay)
        print(json.dumps(OrderService(db).summary(), ensure_ascii=False))
    return 0


def _handle_serve(ns: argparse.Namespace) -> int:
    import uvicorn

    settings = _settings(ns)
    allow_origins = ns.allow_origins
    if allow_origins and "*" in allow_origins:
        allow_origins = ["*"]

    if ns.reload:
        # The reloader imports the app factory itself; pass the store path through the environment.
        os.environ["ORDER_DESK_DB"] = settings.db_path
        if allow_origins:
            LOG.warning("--allow-origin is ignored with --reload; default origins apply")
        uvicorn.run(
            "order_desk.frontend.app:create_app",
            factory=True,
            host=ns.host,
            port=ns.port,
            reload=True,
            log_level=ns.log_level,
        )
        return 0

    from ..frontend import create_app

    app = create_app(settings=settings, allow_origins=allow_origins)
    uvicorn.run(
        app,
        host=ns.host,
        port=ns.port,
        log_level=ns.log_level,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="order-desk",
        description="Local order management database tools.",
    )
    parser.add_argument("--db", help="Path to the SQLite file (defaults to ORDER_DESK_DB or var/orderdb)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_cmd = subparsers.add_parser("init", help="Create/ensure the order DB schema exists")
    init_cmd.set_defaults(handler=_handle_init)

    summary_cmd = subparsers.add_parser("summary", help="Print row counts and revenue as JSON")
    summary_cmd.set_defaults(handler=_handle_summary)

    serve_cmd = subparsers.add_parser("serve", help="Run the JSON API used by the app UI")
    serve_cmd.add_argument("--host", default="127.0.0.1")
    serve_cmd.add_argument("--port", type=int, default=8001)
    serve_cmd.add_argument("--reload", action="store_true", help="Enable auto-reload (development only)")
    serve_cmd.add_argument("--log-level", default="info")
    serve_cmd.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    serve_cmd.set_defaults(handler=_handle_serve)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug(f"CLI invoked with arguments: {provided}")

    args = build_parser().parse_args(provided)
    try:
        code = args.handler(args)
    except OrderDeskError as exc:
        LOG.error(f"{args.command} failed: {exc.message}")
        return 1
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
