from __future__ import annotations

from dataclasses import dataclass

from specflow.state.models import PHASE_ORDER, ProjectState


@dataclass(slots=True, frozen=True)
class PhaseGate:
    allowed: bool
    reason: str | None = None


def can_enter_phase(state: ProjectState, target_phase: str) -> PhaseGate:
    """Check whether ``target_phase`` may move to in_progress.

    Only the declared dependencies are inspected, in declaration order; the
    first one that is not completed is named in the reason.
    """
    phase = state.phases.get(target_phase)
    if phase is None:
        return PhaseGate(False, f"Unknown phase: {target_phase}")

    for dependency in phase.dependencies:
        dependency_phase = state.phases.get(dependency)
        status = dependency_phase.status if dependency_phase is not None else "unknown"
        if status != "completed":
            return PhaseGate(
                False,
                f"Cannot enter {target_phase}: dependency phase '{dependency}' "
                f"is not completed (current status: {status})",
            )
    return PhaseGate(True)


def unmet_task_dependencies(state: ProjectState, task_id: str) -> list[tuple[str, str | None]]:
    task = state.tasks[task_id]
    unmet: list[tuple[str, str | None]] = []
    for dependency_id in task.dependencies:
        dependency = state.tasks.get(dependency_id)
        if dependency is None:
            unmet.append((dependency_id, None))
        elif dependency.status != "completed":
            unmet.append((dependency_id, dependency.status))
    return unmet


def next_eligible_task(state: ProjectState) -> str | None:
    for task_id, task in state.tasks.items():
        if task.status != "pending":
            continue
        if not unmet_task_dependencies(state, task_id):
            return task_id
    return None


def next_pipeline_phase(current_phase: str) -> str | None:
    if current_phase not in PHASE_ORDER:
        return None
    index = PHASE_ORDER.index(current_phase)
    if index == len(PHASE_ORDER) - 1:
        return None
    return PHASE_ORDER[index + 1]
