"""Resumable Orchestrator.

Runs declarative multi-step workflows against remotely deployed task handlers.
A run may suspend by persisting a checkpoint and handing back a continuation
token; presenting the token later resumes the run at the next state.
"""

__version__ = "0.1.0"

from resumable_orchestrator.orchestrator.config import OrchestratorSettings

__all__ = ["__version__", "OrchestratorSettings"]
