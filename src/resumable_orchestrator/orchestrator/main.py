"""CLI entrypoint for the orchestrator.

`orchestrator run` drives one invocation (fresh, or resumed with
`--continuation`) and prints the response body as JSON.
`orchestrator show-continuation` prints the snapshot stored under a token.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from resumable_orchestrator import __version__
from resumable_orchestrator.orchestrator.config import OrchestratorSettings
from resumable_orchestrator.orchestrator.continuation.store import StoreEndpoint
from resumable_orchestrator.orchestrator.errors import OrchestratorError
from resumable_orchestrator.orchestrator.factory import build_orchestrator, create_store_factory
from resumable_orchestrator.orchestrator.logging import configure_logging
from resumable_orchestrator.orchestrator.workflow.interpreter import Interpreter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orchestrator",
        description="Run suspendable workflows against deployed task-platform actions",
    )
    parser.add_argument(
        "--version", action="version", version=f"resumable-orchestrator {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Start a workflow run, or resume a suspended one")
    run.add_argument("--input", type=int, default=1, help="Initial value (default: 1)")
    run.add_argument(
        "--continuation",
        default=None,
        help="Continuation token returned by a suspended run",
    )
    run.add_argument(
        "--workflow-file",
        type=Path,
        default=None,
        help="JSON file holding a named workflow definition (default: built-in demo)",
    )
    run.add_argument("--host", default=None, help="Continuation store host")
    run.add_argument("--port", type=int, default=None, help="Continuation store port")

    show = subparsers.add_parser(
        "show-continuation", help="Print the snapshot stored under a continuation token"
    )
    show.add_argument("token", help="Continuation token")
    show.add_argument("--host", default=None, help="Continuation store host")
    show.add_argument("--port", type=int, default=None, help="Continuation store port")

    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _exit_code(error: OrchestratorError) -> int:
    return 3 if 400 <= error.status_code < 500 else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = OrchestratorSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "run":
            params: dict[str, Any] = {
                "input": args.input,
                "continuation": args.continuation,
                "host": args.host,
                "port": args.port,
                "method": settings.expected_method,
            }
            if args.workflow_file is not None:
                params["workflow"] = json.loads(args.workflow_file.read_text(encoding="utf-8"))

            orchestrator = build_orchestrator(settings, interpreter=Interpreter())
            try:
                result = orchestrator.invoke(params)
            finally:
                orchestrator.whisk.close()
            _print_json(result.to_body())
            return 0

        if args.command == "show-continuation":
            endpoint = StoreEndpoint(
                host=args.host or settings.store_host,
                port=args.port or settings.store_port,
            )
            store = create_store_factory(settings)(endpoint)
            try:
                snapshot = store.get(args.token)
            finally:
                store.close()
            if snapshot is None:
                print(f"Continuation not found or expired: {args.token}", file=sys.stderr)
                return 3
            _print_json(snapshot.to_json())
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except OrchestratorError as e:
        _print_json(e.to_rejection())
        return _exit_code(e)

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
