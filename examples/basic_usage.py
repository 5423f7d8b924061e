#!/usr/bin/env python3
"""Programmatic suspend/resume example.

This demonstrates using the orchestrator components directly:

* load settings from `.env`
* start the built-in demo workflow, which suspends after squaring
* resume it with the returned continuation token

The demo expects the `increment` and `square` actions from `examples/actions/`
to be deployed on the task platform.
"""

from __future__ import annotations

import argparse
import json
from typing import Sequence

from resumable_orchestrator.orchestrator.config import OrchestratorSettings
from resumable_orchestrator.orchestrator.errors import OrchestratorError
from resumable_orchestrator.orchestrator.factory import build_orchestrator
from resumable_orchestrator.orchestrator.logging import configure_logging
from resumable_orchestrator.orchestrator.workflow.interpreter import Interpreter


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the demo workflow and resume it.")
    parser.add_argument("--input", type=int, default=5, help="Initial value")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = OrchestratorSettings()
    configure_logging(settings.log_level)

    orchestrator = build_orchestrator(settings, interpreter=Interpreter())
    method = settings.expected_method
    try:
        first = orchestrator.invoke({"input": args.input, "method": method})
        print(f"Run {first.run_name} {first.status}: {json.dumps(first.values)}")
        if first.continuation is None:
            return 0

        second = orchestrator.invoke({"continuation": first.continuation, "method": method})
        print(f"Run {second.run_name} {second.status}: {json.dumps(second.values)}")
    except OrchestratorError as exc:
        print(json.dumps(exc.to_rejection()))
        return 1
    finally:
        orchestrator.whisk.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
