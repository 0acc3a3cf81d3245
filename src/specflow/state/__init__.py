from specflow.state.models import (
    PHASE_ORDER,
    PhaseConfig,
    ProjectState,
    TaskConfig,
    new_project_state,
)
from specflow.state.store import StateStore

__all__ = [
    "PHASE_ORDER",
    "PhaseConfig",
    "ProjectState",
    "StateStore",
    "TaskConfig",
    "new_project_state",
]
