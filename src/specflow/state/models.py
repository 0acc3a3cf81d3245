from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

PhaseStatus = Literal["pending", "in_progress", "completed", "blocked"]
TaskStatus = Literal[
    "pending", "in_progress", "completed", "blocked", "needs_rework", "decomposed"
]

PHASE_STATUSES = frozenset({"pending", "in_progress", "completed", "blocked"})
TASK_STATUSES = frozenset(
    {"pending", "in_progress", "completed", "blocked", "needs_rework", "decomposed"}
)

PHASE_ORDER = ("requirements", "blueprint", "design", "tasks", "development")
STATE_VERSION = "1.0.0"


def utcnow_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


@dataclass(slots=True)
class PhaseConfig:
    status: PhaseStatus = "pending"
    agent: str = ""
    dependencies: list[str] = field(default_factory=list)
    artifacts: dict[str, str] = field(default_factory=dict)
    started_at: str | None = None
    completed_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PhaseConfig:
        return cls(
            status=data.get("status", "pending"),
            agent=str(data.get("agent", "")),
            dependencies=list(data.get("dependencies", [])),
            artifacts=dict(data.get("artifacts", {})),
            started_at=data.get("startedAt"),
            completed_at=data.get("completedAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": self.status,
            "agent": self.agent,
            "dependencies": list(self.dependencies),
        }
        if self.started_at is not None:
            payload["startedAt"] = self.started_at
        if self.completed_at is not None:
            payload["completedAt"] = self.completed_at
        payload["artifacts"] = dict(self.artifacts)
        return payload


@dataclass(slots=True)
class TaskConfig:
    status: TaskStatus = "pending"
    dependencies: list[str] = field(default_factory=list)
    file_path: str | None = None
    assignee: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskConfig:
        return cls(
            status=data.get("status", "pending"),
            dependencies=list(data.get("dependencies", [])),
            file_path=data.get("filePath"),
            assignee=data.get("assignee"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": self.status,
            "dependencies": list(self.dependencies),
        }
        if self.file_path is not None:
            payload["filePath"] = self.file_path
        if self.assignee is not None:
            payload["assignee"] = self.assignee
        return payload


@dataclass(slots=True)
class ProjectState:
    project_name: str
    current_phase: str = "requirements"
    phases: dict[str, PhaseConfig] = field(default_factory=dict)
    tasks: dict[str, TaskConfig] = field(default_factory=dict)
    active_agent: str | None = None
    version: str = STATE_VERSION
    created_at: str = field(default_factory=utcnow_iso)
    updated_at: str = field(default_factory=utcnow_iso)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectState:
        return cls(
            project_name=str(data["projectName"]),
            current_phase=str(data["currentPhase"]),
            phases={
                name: PhaseConfig.from_dict(config)
                for name, config in data["phases"].items()
            },
            tasks={
                task_id: TaskConfig.from_dict(config)
                for task_id, config in data.get("tasks", {}).items()
            },
            active_agent=data.get("activeAgent"),
            version=str(data.get("version", STATE_VERSION)),
            created_at=str(data.get("createdAt") or utcnow_iso()),
            updated_at=str(data.get("updatedAt") or utcnow_iso()),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "version": self.version,
            "projectName": self.project_name,
            "currentPhase": self.current_phase,
            "phases": {name: phase.to_dict() for name, phase in self.phases.items()},
        }
        if self.active_agent is not None:
            payload["activeAgent"] = self.active_agent
        payload["tasks"] = {task_id: task.to_dict() for task_id, task in self.tasks.items()}
        payload["createdAt"] = self.created_at
        payload["updatedAt"] = self.updated_at
        return payload

    def completed_phases(self) -> list[str]:
        return [name for name, phase in self.phases.items() if phase.status == "completed"]


def initial_phases() -> dict[str, PhaseConfig]:
    """Fixed five-phase skeleton; each phase depends on its predecessor."""
    return {
        "requirements": PhaseConfig(
            agent="PM-Adam",
            dependencies=[],
            artifacts={"requirements_doc": "specs/PROJECT_REQUIREMENTS.md"},
        ),
        "blueprint": PhaseConfig(
            agent="SA-Leo",
            dependencies=["requirements"],
            artifacts={"blueprint_doc": "specs/PROJECT_BLUEPRINT.md"},
        ),
        "design": PhaseConfig(
            agent="UI-Mia",
            dependencies=["blueprint"],
            artifacts={
                "design_system": "docs/design_system.md",
                "wireframes": "docs/wireframes/",
            },
        ),
        "tasks": PhaseConfig(
            agent="PM-Adam",
            dependencies=["design"],
            artifacts={"todo": "docs/TODO.md", "tasks_dir": "docs/tasks/"},
        ),
        "development": PhaseConfig(
            agent="Multiple",
            dependencies=["tasks"],
            artifacts={},
        ),
    }


def new_project_state(project_name: str) -> ProjectState:
    now = utcnow_iso()
    return ProjectState(
        project_name=project_name,
        current_phase="requirements",
        phases=initial_phases(),
        tasks={},
        created_at=now,
        updated_at=now,
    )
