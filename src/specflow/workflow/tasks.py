from __future__ import annotations

import logging
import re

from specflow.errors import DependencyUnmet, InvalidTransition, UnknownTask
from specflow.state.models import ProjectState, TaskConfig
from specflow.workflow.dependencies import unmet_task_dependencies

logger = logging.getLogger(__name__)

STARTABLE_STATUSES = frozenset({"pending", "needs_rework", "blocked"})
TASK_CATEGORY_PATTERN = re.compile(r"^Task-([A-Za-z]+)-\d+$")

CATEGORY_ROLES = {
    "FE": "Frontend Engineer",
    "BE": "Backend Engineer",
    "DB": "Backend Engineer",
    "DevOps": "DevOps",
}
DEFAULT_TASK_ROLE = "Frontend Engineer"
REVIEW_ROLE = "QA Reviewer"


def infer_agent_role(task_id: str) -> str:
    match = TASK_CATEGORY_PATTERN.match(task_id)
    if not match:
        return DEFAULT_TASK_ROLE
    return CATEGORY_ROLES.get(match.group(1), DEFAULT_TASK_ROLE)


def get_task(state: ProjectState, task_id: str) -> TaskConfig:
    task = state.tasks.get(task_id)
    if task is None:
        raise UnknownTask(task_id)
    return task


def start_task(state: ProjectState, task_id: str) -> TaskConfig:
    task = get_task(state, task_id)
    if task.status not in STARTABLE_STATUSES:
        if task.status == "completed":
            message = f"Task {task_id} is already completed."
        elif task.status == "in_progress":
            message = f"Task {task_id} is already in progress."
        else:
            message = f"Task {task_id} cannot be started from status '{task.status}'."
        raise InvalidTransition(message, hint="specflow tasks list")

    unmet = unmet_task_dependencies(state, task_id)
    if unmet:
        details = ", ".join(f"{dep_id} ({status or 'unknown'})" for dep_id, status in unmet)
        logger.warning("Task %s blocked by %s", task_id, details)
        raise DependencyUnmet(
            f"Task {task_id} has unfinished dependencies: {details}",
            unmet=unmet,
            hint=f"specflow task start {unmet[0][0]}",
        )

    task.status = "in_progress"
    logger.info("Task %s started", task_id)
    return task


def check_submittable(state: ProjectState, task_id: str) -> TaskConfig:
    task = get_task(state, task_id)
    if task.status != "in_progress":
        raise InvalidTransition(
            f"Task {task_id} is not in progress (current status: {task.status}).",
            hint=f"specflow task start {task_id}",
        )
    return task


def complete_task(state: ProjectState, task_id: str, *, strict: bool = False) -> TaskConfig:
    """Mark a task completed.

    Without ``strict`` any tracked task may be completed regardless of its
    current status; with it the task has to be in progress.
    """
    task = get_task(state, task_id)
    if strict and task.status != "in_progress":
        raise InvalidTransition(
            f"Task {task_id} is not in progress (current status: {task.status}).",
            hint=f"specflow task start {task_id}",
        )
    task.status = "completed"
    logger.info("Task %s completed", task_id)
    return task


def rework_task(state: ProjectState, task_id: str) -> TaskConfig:
    task = get_task(state, task_id)
    task.status = "needs_rework"
    logger.info("Task %s sent back for rework", task_id)
    return task


def decompose_task(state: ProjectState, task_id: str) -> TaskConfig:
    """Annotate a task as split into sub-tasks; children come from TODO.md edits."""
    task = get_task(state, task_id)
    task.status = "decomposed"
    logger.info("Task %s marked as decomposed", task_id)
    return task
