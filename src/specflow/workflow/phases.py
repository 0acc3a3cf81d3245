from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import PurePosixPath

from specflow.documents.todo import TaskRow
from specflow.errors import ArtifactsInvalid, DependencyUnmet, InvalidTransition, UnknownPhase
from specflow.state.models import PhaseConfig, ProjectState, TaskConfig, utcnow_iso
from specflow.workflow.dependencies import can_enter_phase
from specflow.workflow.tasks import infer_agent_role

logger = logging.getLogger(__name__)

# Command used to start each phase; blueprint and tasks are "planned".
PHASE_START_COMMANDS = {
    "requirements": "specflow requirements start",
    "blueprint": "specflow blueprint plan",
    "design": "specflow design start",
    "tasks": "specflow tasks plan",
    "development": "specflow task start <Task-ID>",
}


def _get_phase(state: ProjectState, phase: str) -> PhaseConfig:
    config = state.phases.get(phase)
    if config is None:
        raise UnknownPhase(phase)
    return config


def start_phase(state: ProjectState, phase: str, now: str | None = None) -> bool:
    """Move ``phase`` to in_progress.

    Returns True when this was the first entry (timestamps and the active
    phase pointer were updated), False for a repeated start.
    """
    config = _get_phase(state, phase)
    gate = can_enter_phase(state, phase)
    if not gate.allowed:
        logger.warning("Phase %s blocked: %s", phase, gate.reason)
        raise DependencyUnmet(
            gate.reason or f"Cannot enter {phase}",
            hint=_blocking_hint(state, config.dependencies),
        )

    config.status = "in_progress"
    if config.started_at is not None:
        logger.info("Phase %s re-entered; keeping first start stamp", phase)
        return False

    config.started_at = now or utcnow_iso()
    state.current_phase = phase
    state.active_agent = config.agent
    logger.info("Phase %s started (agent %s)", phase, config.agent)
    return True


def _blocking_hint(state: ProjectState, dependencies: list[str]) -> str | None:
    for name in dependencies:
        dependency = state.phases.get(name)
        if dependency is None or dependency.status == "completed":
            continue
        if dependency.status == "in_progress":
            return f"specflow {name} finalize"
        return PHASE_START_COMMANDS.get(name)
    return None


def import_task_rows(
    state: ProjectState,
    rows: Iterable[TaskRow],
    tasks_dir: str = "docs/tasks",
) -> list[str]:
    """Create a TaskConfig for every row whose id is not tracked yet.

    Tracked tasks keep their recorded status and dependencies. Returns the
    ids that were added.
    """
    added: list[str] = []
    for row in rows:
        if row.task_id in state.tasks:
            continue
        state.tasks[row.task_id] = TaskConfig(
            status=row.status,
            dependencies=list(row.dependencies),
            file_path=str(PurePosixPath(tasks_dir) / f"{row.task_id}.md"),
            assignee=infer_agent_role(row.task_id),
        )
        added.append(row.task_id)
    return added


def finalize_phase(
    state: ProjectState,
    phase: str,
    errors: list[str],
    now: str | None = None,
    task_rows: Iterable[TaskRow] | None = None,
) -> list[str]:
    """Mark ``phase`` completed once its artifacts validated cleanly.

    ``errors`` is the aggregate output of the artifact validator. For the
    tasks phase, ``task_rows`` are imported first; the imported ids are
    returned.
    """
    config = _get_phase(state, phase)
    if config.status != "in_progress":
        raise InvalidTransition(
            f"Phase '{phase}' is not in progress (current status: {config.status}).",
            hint=PHASE_START_COMMANDS.get(phase),
        )
    if errors:
        logger.warning("Phase %s finalize rejected with %d error(s)", phase, len(errors))
        raise ArtifactsInvalid(phase, errors, hint=f"specflow {phase} review")

    imported: list[str] = []
    if phase == "tasks" and task_rows is not None:
        tasks_dir = config.artifacts.get("tasks_dir", "docs/tasks/").rstrip("/")
        imported = import_task_rows(state, task_rows, tasks_dir=tasks_dir)
        logger.info("Imported %d task(s) from task list", len(imported))

    config.status = "completed"
    if config.completed_at is None:
        config.completed_at = now or utcnow_iso()
    logger.info("Phase %s completed", phase)
    return imported
