"""Workflow definitions and the in-process interpreter that runs them.

Definitions are declarative state graphs; task handlers do the work of each
`Task` state; a completion signal carries the terminal outcome of one run
back to the orchestrator.
"""

__all__: list[str] = []
