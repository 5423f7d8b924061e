"""FastAPI server adapter for resumable-orchestrator.

This module exposes the invocation surface over HTTP.

Design intent:
- Keep orchestration logic in `resumable_orchestrator.orchestrator.*`
- Keep server-specific concerns (routing, CORS, status mapping) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from resumable_orchestrator.server.app import create_app
