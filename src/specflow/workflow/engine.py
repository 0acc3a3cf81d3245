from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from specflow.agents.loader import AgentLoader
from specflow.agents.prompts import (
    build_phase_prompt,
    build_review_prompt,
    build_task_prompt,
    decomposition_context,
)
from specflow.config import (
    SpecflowConfig,
    StandardsPackage,
    config_path_for,
    load_config,
    save_config,
)
from specflow.documents.artifacts import ArtifactValidator, DesignReview
from specflow.documents.todo import parse_task_table, rewrite_status_glyph
from specflow.errors import AlreadyInitialized, SpecflowError
from specflow.scaffold import copy_agents, create_directory_structure, write_templates
from specflow.state.models import TASK_STATUSES, ProjectState, TaskConfig
from specflow.state.store import StateStore
from specflow.workflow import phases as phase_lifecycle
from specflow.workflow import tasks as task_lifecycle
from specflow.workflow.dependencies import can_enter_phase, next_eligible_task, next_pipeline_phase

logger = logging.getLogger(__name__)

INPUT_REQUIREMENTS_PATH = Path(".specflow") / "input_requirements.md"


@dataclass(slots=True)
class InitResult:
    project_name: str
    project_root: Path
    agents_source: str
    config_path: Path


@dataclass(slots=True)
class PhaseStartResult:
    phase: str
    agent: str
    first_entry: bool
    prompt: str
    prompt_path: Path
    input_copy: Path | None = None


@dataclass(slots=True)
class PhaseFinalizeResult:
    phase: str
    artifacts: dict[str, str]
    imported_tasks: list[str] = field(default_factory=list)
    task_count: int = 0
    next_phase: str | None = None
    development_completed: bool = False


@dataclass(slots=True)
class TaskPromptResult:
    task_id: str
    role: str
    prompt: str
    prompt_path: Path
    development_started: bool = False
    development_completed: bool = False


@dataclass(slots=True)
class TaskCompleteResult:
    task_id: str
    todo_updated: bool
    next_task: str | None
    development_started: bool = False
    development_completed: bool = False


class Workflow:
    """Per-invocation shell around the pure lifecycle functions.

    Every mutating method loads the state fresh, applies one transition and
    saves. A transition that raises leaves the file untouched.
    """

    def __init__(self, project_root: Path, config: SpecflowConfig | None = None) -> None:
        self.project_root = project_root.resolve()
        self.config_path = config_path_for(self.project_root)
        self.config = config or load_config(self.config_path)
        self.store = StateStore(self.project_root)
        self.validator = ArtifactValidator(self.project_root, self.config.validation)
        self.agents = AgentLoader(self.project_root)

    @property
    def prompt_path(self) -> Path:
        return self.project_root / self.config.workflow.prompt_file

    def is_initialized(self) -> bool:
        return self.store.exists()

    def load(self) -> ProjectState:
        return self.store.load()

    # ------------------------------------------------------------------
    # Project setup
    # ------------------------------------------------------------------

    def initialize(
        self,
        project_name: str | None = None,
        *,
        source_framework: Path | None = None,
        standards: StandardsPackage = "complete",
    ) -> InitResult:
        if self.store.exists():
            raise AlreadyInitialized(
                f"Project already initialized: {self.store.state_path}",
                hint="specflow status",
            )
        name = project_name or self.project_root.name
        create_directory_structure(self.project_root)
        agents_source = copy_agents(self.project_root, source_framework)

        self.config.project.name = name
        self.config.project.standards_package = standards
        self.config.project.source_framework_path = (
            str(source_framework) if source_framework else ""
        )
        save_config(self.config_path, self.config)

        self.store.initialize(name)
        write_templates(self.project_root)
        return InitResult(
            project_name=name,
            project_root=self.project_root,
            agents_source=agents_source,
            config_path=self.config_path,
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def start_phase(
        self,
        phase: str,
        *,
        input_file: Path | None = None,
        extra_context: str | None = None,
    ) -> PhaseStartResult:
        state = self.store.load()
        if input_file is not None and not input_file.is_file():
            raise SpecflowError(f"Requirement file not found: {input_file}")

        first_entry = phase_lifecycle.start_phase(state, phase)
        agent_name = state.phases[phase].agent
        agent = self.agents.load_agent(agent_name)

        input_copy: Path | None = None
        if input_file is not None:
            input_copy = self.project_root / INPUT_REQUIREMENTS_PATH
            context = f"The user-provided requirements file is at: {INPUT_REQUIREMENTS_PATH}"
            extra_context = f"{context}\n{extra_context}" if extra_context else context
        prompt = build_phase_prompt(agent, state, phase, extra_context)

        self.store.save()
        if input_file is not None and input_copy is not None:
            input_copy.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(input_file, input_copy)
        self._write_prompt(prompt)
        return PhaseStartResult(
            phase=phase,
            agent=agent_name,
            first_entry=first_entry,
            prompt=prompt,
            prompt_path=self.prompt_path,
            input_copy=input_copy,
        )

    def review_document(self, phase: str) -> list[str]:
        return self.validator.review_document(self.store.load(), phase)

    def review_design(self) -> DesignReview:
        return self.validator.review_design(self.store.load())

    def finalize_phase(self, phase: str) -> PhaseFinalizeResult:
        state = self.store.load()
        errors = self.validator.validate_phase(state, phase)

        task_rows = None
        if phase == "tasks" and not errors:
            todo = state.phases[phase].artifacts.get("todo", "docs/TODO.md")
            todo_path = self.project_root / todo
            if todo_path.is_file():
                task_rows = parse_task_table(todo_path.read_text(encoding="utf-8"))

        imported = phase_lifecycle.finalize_phase(state, phase, errors, task_rows=task_rows)
        development_completed = False
        if phase == "tasks":
            development_completed = self._finish_development(state)
        self.store.save()

        next_phase = None
        current = state.phases.get(state.current_phase)
        if current is not None and current.status == "completed":
            next_phase = next_pipeline_phase(state.current_phase)
        return PhaseFinalizeResult(
            phase=phase,
            artifacts=dict(state.phases[phase].artifacts),
            imported_tasks=imported,
            task_count=len(state.tasks),
            next_phase=next_phase,
            development_completed=development_completed,
        )

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def sync_tasks(self) -> list[str]:
        """Import rows added to TODO.md after the tasks phase was finalized."""
        state = self.store.load()
        todo = state.phases["tasks"].artifacts.get("todo", "docs/TODO.md")
        todo_path = self.project_root / todo
        if not todo_path.is_file():
            raise SpecflowError(f"Task list not found: {todo}", hint="specflow tasks plan")
        tasks_dir = state.phases["tasks"].artifacts.get("tasks_dir", "docs/tasks/").rstrip("/")
        added = phase_lifecycle.import_task_rows(
            state, parse_task_table(todo_path.read_text(encoding="utf-8")), tasks_dir=tasks_dir
        )
        if added:
            self.store.save()
        return added

    def tasks_by_status(self) -> dict[str, list[tuple[str, TaskConfig]]]:
        state = self.store.load()
        grouped: dict[str, list[tuple[str, TaskConfig]]] = {
            status: [] for status in sorted(TASK_STATUSES)
        }
        for task_id, task in state.tasks.items():
            grouped[task.status].append((task_id, task))
        return grouped

    def start_task(self, task_id: str) -> TaskPromptResult:
        state = self.store.load()
        task = task_lifecycle.start_task(state, task_id)
        role = task_lifecycle.infer_agent_role(task_id)
        agent = self.agents.load_agent(role)
        prompt = build_task_prompt(agent, task_id, self._read_task_body(task_id, task))

        development_started = self._enter_development(state)

        self.store.save()
        self._write_prompt(prompt)
        return TaskPromptResult(
            task_id=task_id,
            role=role,
            prompt=prompt,
            prompt_path=self.prompt_path,
            development_started=development_started,
        )

    def submit_task(self, task_id: str) -> TaskPromptResult:
        state = self.store.load()
        task = task_lifecycle.check_submittable(state, task_id)
        agent = self.agents.load_agent(task_lifecycle.REVIEW_ROLE)
        prompt = build_review_prompt(agent, task_id, self._read_task_body(task_id, task))
        self._write_prompt(prompt)
        return TaskPromptResult(
            task_id=task_id,
            role=task_lifecycle.REVIEW_ROLE,
            prompt=prompt,
            prompt_path=self.prompt_path,
        )

    def complete_task(self, task_id: str) -> TaskCompleteResult:
        state = self.store.load()
        task_lifecycle.complete_task(
            state, task_id, strict=self.config.workflow.strict_completion
        )

        development_started = self._enter_development(state)
        development_completed = self._finish_development(state)

        self.store.save()
        return TaskCompleteResult(
            task_id=task_id,
            todo_updated=self._update_todo_glyph(state, task_id, "completed"),
            next_task=next_eligible_task(state),
            development_started=development_started,
            development_completed=development_completed,
        )

    def rework_task(self, task_id: str) -> bool:
        state = self.store.load()
        task_lifecycle.rework_task(state, task_id)
        self.store.save()
        return self._update_todo_glyph(state, task_id, "needs_rework")

    def decompose_task(self, task_id: str, reason: str, *, mark: bool = False) -> TaskPromptResult:
        state = self.store.load()
        task = task_lifecycle.get_task(state, task_id)
        task_file = task.file_path or f"docs/tasks/{task_id}.md"
        agent_name = state.phases["tasks"].agent
        agent = self.agents.load_agent(agent_name)
        prompt = build_phase_prompt(
            agent, state, "tasks", decomposition_context(task_id, reason, task_file)
        )
        development_completed = False
        if mark:
            task_lifecycle.decompose_task(state, task_id)
            development_completed = self._finish_development(state)
            self.store.save()
            self._update_todo_glyph(state, task_id, "decomposed")
        self._write_prompt(prompt)
        return TaskPromptResult(
            task_id=task_id,
            role=agent_name,
            prompt=prompt,
            prompt_path=self.prompt_path,
            development_completed=development_completed,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        state = self.store.load()
        counts = {status: 0 for status in sorted(TASK_STATUSES)}
        for task in state.tasks.values():
            counts[task.status] += 1
        return {
            "project_name": state.project_name,
            "current_phase": state.current_phase,
            "active_agent": state.active_agent,
            "completed_phases": state.completed_phases(),
            "phases": {name: phase.to_dict() for name, phase in state.phases.items()},
            "task_counts": counts,
            "task_total": len(state.tasks),
            "next_task": next_eligible_task(state),
            "suggestion": suggest_next_command(state),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enter_development(self, state: ProjectState) -> bool:
        development = state.phases.get("development")
        if development is None or development.status != "pending":
            return False
        if not can_enter_phase(state, "development").allowed:
            return False
        return phase_lifecycle.start_phase(state, "development")

    def _finish_development(self, state: ProjectState) -> bool:
        """Finalize development once every task that was not decomposed is completed."""
        development = state.phases.get("development")
        if development is None or not _all_tasks_done(state):
            return False
        self._enter_development(state)
        if development.status != "in_progress":
            return False
        errors = self.validator.validate_phase(state, "development")
        if errors:
            return False
        phase_lifecycle.finalize_phase(state, "development", errors)
        return True

    def _write_prompt(self, prompt: str) -> None:
        self.prompt_path.parent.mkdir(parents=True, exist_ok=True)
        self.prompt_path.write_text(prompt, encoding="utf-8")
        logger.debug("Prompt written to %s", self.prompt_path)

    def _read_task_body(self, task_id: str, task: TaskConfig) -> str:
        task_file = Path(task.file_path or f"docs/tasks/{task_id}.md")
        if not task_file.is_absolute():
            task_file = self.project_root / task_file
        if task_file.is_file():
            return task_file.read_text(encoding="utf-8")
        logger.warning("Task file for %s not found at %s", task_id, task_file)
        return ""

    def _update_todo_glyph(self, state: ProjectState, task_id: str, status: str) -> bool:
        todo = state.phases["tasks"].artifacts.get("todo", "docs/TODO.md")
        todo_path = self.project_root / todo
        if not todo_path.is_file():
            return False
        content, changed = rewrite_status_glyph(
            todo_path.read_text(encoding="utf-8"), task_id, status
        )
        if changed:
            todo_path.write_text(content, encoding="utf-8")
        return changed > 0


def _all_tasks_done(state: ProjectState) -> bool:
    remaining = [task for task in state.tasks.values() if task.status != "decomposed"]
    return bool(remaining) and all(task.status == "completed" for task in remaining)


def suggest_next_command(state: ProjectState) -> str | None:
    current = state.phases.get(state.current_phase)
    if current is None:
        return None
    if current.status == "pending":
        return phase_lifecycle.PHASE_START_COMMANDS.get(state.current_phase)
    if current.status == "in_progress":
        if state.current_phase == "development":
            next_task = next_eligible_task(state)
            return f"specflow task start {next_task}" if next_task else "specflow tasks list"
        return f"specflow {state.current_phase} finalize"
    if current.status == "completed":
        next_phase = next_pipeline_phase(state.current_phase)
        if next_phase is None:
            return None
        if next_phase == "development":
            next_task = next_eligible_task(state)
            return f"specflow task start {next_task}" if next_task else "specflow tasks list"
        return phase_lifecycle.PHASE_START_COMMANDS.get(next_phase)
    return None
