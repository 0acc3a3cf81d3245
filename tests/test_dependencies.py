import pytest

from specflow.state.models import PHASE_ORDER, ProjectState, TaskConfig, new_project_state
from specflow.workflow.dependencies import (
    can_enter_phase,
    next_eligible_task,
    next_pipeline_phase,
    unmet_task_dependencies,
)


def _state_with_tasks(**tasks: TaskConfig) -> ProjectState:
    state = new_project_state("Demo")
    for task_id, task in tasks.items():
        state.tasks[task_id.replace("_", "-")] = task
    return state


def test_requirements_phase_has_no_dependencies() -> None:
    gate = can_enter_phase(new_project_state("Demo"), "requirements")

    assert gate.allowed is True
    assert gate.reason is None


def test_blueprint_blocked_until_requirements_completed() -> None:
    state = new_project_state("Demo")

    gate = can_enter_phase(state, "blueprint")
    assert gate.allowed is False
    assert "requirements" in (gate.reason or "")
    assert "pending" in (gate.reason or "")

    state.phases["requirements"].status = "in_progress"
    assert "in_progress" in (can_enter_phase(state, "blueprint").reason or "")

    state.phases["requirements"].status = "completed"
    assert can_enter_phase(state, "blueprint").allowed is True


@pytest.mark.parametrize("index", range(1, len(PHASE_ORDER)))
def test_each_phase_gated_only_by_its_predecessor(index: int) -> None:
    state = new_project_state("Demo")
    target = PHASE_ORDER[index]
    assert can_enter_phase(state, target).allowed is False

    state.phases[PHASE_ORDER[index - 1]].status = "completed"
    assert can_enter_phase(state, target).allowed is True


def test_unknown_phase_and_unknown_dependency() -> None:
    state = new_project_state("Demo")

    gate = can_enter_phase(state, "deployment")
    assert gate.allowed is False
    assert "deployment" in (gate.reason or "")

    state.phases["design"].dependencies = ["marketing"]
    gate = can_enter_phase(state, "design")
    assert gate.allowed is False
    assert "marketing" in (gate.reason or "")
    assert "unknown" in (gate.reason or "")


def test_first_unmet_dependency_is_reported_in_declaration_order() -> None:
    state = new_project_state("Demo")
    state.phases["development"].dependencies = ["design", "requirements"]

    gate = can_enter_phase(state, "development")

    assert "'design'" in (gate.reason or "")
    assert "'requirements'" not in (gate.reason or "")


def test_next_pipeline_phase() -> None:
    assert next_pipeline_phase("requirements") == "blueprint"
    assert next_pipeline_phase("tasks") == "development"
    assert next_pipeline_phase("development") is None
    assert next_pipeline_phase("unknown") is None


def test_next_eligible_task_uses_insertion_order() -> None:
    state = _state_with_tasks(
        Task_FE_002=TaskConfig(dependencies=["Task-FE-001"]),
        Task_FE_001=TaskConfig(),
        Task_BE_001=TaskConfig(),
    )

    assert next_eligible_task(state) == "Task-FE-001"

    state.tasks["Task-FE-001"].status = "completed"
    assert next_eligible_task(state) == "Task-FE-002"


def test_next_eligible_task_skips_non_pending_and_missing_dependencies() -> None:
    state = _state_with_tasks(
        Task_FE_001=TaskConfig(status="in_progress"),
        Task_FE_002=TaskConfig(status="needs_rework"),
        Task_FE_003=TaskConfig(dependencies=["Task-FE-999"]),
    )

    assert next_eligible_task(state) is None


def test_next_eligible_task_none_when_all_completed() -> None:
    state = _state_with_tasks(
        Task_FE_001=TaskConfig(status="completed"),
        Task_FE_002=TaskConfig(status="completed", dependencies=["Task-FE-001"]),
    )

    assert next_eligible_task(state) is None


def test_unmet_task_dependencies_lists_every_unmet_entry() -> None:
    state = _state_with_tasks(
        Task_FE_001=TaskConfig(status="completed"),
        Task_FE_002=TaskConfig(status="in_progress"),
        Task_FE_003=TaskConfig(dependencies=["Task-FE-001", "Task-FE-002", "Task-DB-001"]),
    )

    assert unmet_task_dependencies(state, "Task-FE-003") == [
        ("Task-FE-002", "in_progress"),
        ("Task-DB-001", None),
    ]
