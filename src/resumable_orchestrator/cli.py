"""Console script shim; the CLI lives in `resumable_orchestrator.orchestrator.main`."""

from __future__ import annotations

from resumable_orchestrator.orchestrator.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
