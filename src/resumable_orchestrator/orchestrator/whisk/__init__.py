from resumable_orchestrator.orchestrator.whisk.client import (
    ActionDeclaration,
    WhiskClient,
    WhiskError,
)

__all__ = ["ActionDeclaration", "WhiskClient", "WhiskError"]
