from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from specflow.errors import SpecflowError

StandardsPackage = Literal["basic", "complete", "enterprise"]
STANDARDS_PACKAGES: tuple[StandardsPackage, ...] = ("basic", "complete", "enterprise")

CONFIG_RELATIVE_PATH = Path(".specflow") / "config.toml"

DEFAULT_REQUIREMENTS_SECTIONS = [
    "Project Overview",
    "User Roles",
    "Information Architecture",
    "Epics and User Stories",
    "Non-Functional Requirements",
    "Data Model",
    "API Specification",
]

DEFAULT_BLUEPRINT_SECTIONS = [
    "Technology Stack",
    "Architecture Design",
    "Development Standards",
    "Deployment Strategy",
    "Task Execution Guidelines",
]


@dataclass(slots=True)
class ProjectConfig:
    name: str = "my-project"
    standards_package: StandardsPackage = "complete"
    source_framework_path: str = ""


@dataclass(slots=True)
class WorkflowConfig:
    strict_completion: bool = False
    prompt_file: str = ".specflow/current_prompt.md"


@dataclass(slots=True)
class ValidationConfig:
    requirements_sections: list[str] = field(
        default_factory=lambda: list(DEFAULT_REQUIREMENTS_SECTIONS)
    )
    blueprint_sections: list[str] = field(
        default_factory=lambda: list(DEFAULT_BLUEPRINT_SECTIONS)
    )


@dataclass(slots=True)
class SpecflowConfig:
    project: ProjectConfig = field(default_factory=ProjectConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    @classmethod
    def default(cls) -> SpecflowConfig:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> SpecflowConfig:
        config = cls(
            project=ProjectConfig(**data.get("project", {})),
            workflow=WorkflowConfig(**data.get("workflow", {})),
            validation=ValidationConfig(**data.get("validation", {})),
        )
        _check_types(config)
        return config

    def to_dict(self) -> dict:
        return {
            "project": {
                "name": self.project.name,
                "standards_package": self.project.standards_package,
                "source_framework_path": self.project.source_framework_path,
            },
            "workflow": {
                "strict_completion": self.workflow.strict_completion,
                "prompt_file": self.workflow.prompt_file,
            },
            "validation": {
                "requirements_sections": list(self.validation.requirements_sections),
                "blueprint_sections": list(self.validation.blueprint_sections),
            },
        }


def _check_types(config: SpecflowConfig) -> None:
    for key in ("requirements_sections", "blueprint_sections"):
        value = getattr(config.validation, key)
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise TypeError(f"validation.{key} must be a list of strings, got {value!r}")
    if not isinstance(config.workflow.strict_completion, bool):
        raise TypeError("workflow.strict_completion must be true or false")
    if not isinstance(config.workflow.prompt_file, str):
        raise TypeError("workflow.prompt_file must be a string")
    if config.project.standards_package not in STANDARDS_PACKAGES:
        raise TypeError(
            f"project.standards_package must be one of {', '.join(STANDARDS_PACKAGES)}"
        )


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(item) for item in value) + "]"
    return json.dumps(str(value), ensure_ascii=False)


def dumps_toml(config: SpecflowConfig) -> str:
    data = config.to_dict()
    lines: list[str] = []
    for section in ("project", "workflow", "validation"):
        lines.append(f"[{section}]")
        for key, value in data[section].items():
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("")
    return "\n".join(lines).strip() + "\n"


def config_path_for(project_root: Path) -> Path:
    return project_root / CONFIG_RELATIVE_PATH


def load_config(path: Path) -> SpecflowConfig:
    if not path.exists():
        return SpecflowConfig.default()
    try:
        return SpecflowConfig.from_dict(tomllib.loads(path.read_text(encoding="utf-8")))
    except (tomllib.TOMLDecodeError, TypeError) as exc:
        raise SpecflowError(f"Invalid config file {path}: {exc}") from exc


def save_config(path: Path, config: SpecflowConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_toml(config), encoding="utf-8")
