from specflow.workflow.dependencies import (
    PhaseGate,
    can_enter_phase,
    next_eligible_task,
    next_pipeline_phase,
    unmet_task_dependencies,
)

__all__ = [
    "PhaseGate",
    "can_enter_phase",
    "next_eligible_task",
    "next_pipeline_phase",
    "unmet_task_dependencies",
]
