import json
from pathlib import Path

from click.testing import CliRunner

from specflow.cli import cli
from specflow.config import (
    DEFAULT_BLUEPRINT_SECTIONS,
    DEFAULT_REQUIREMENTS_SECTIONS,
    load_config,
)
from specflow.state.store import StateStore

TODO_MD = """# TODO

| Status | Priority | ID | Title | Depends on |
|--------|----------|----|-------|------------|
| ⚪ | P0 | Task-FE-001 | Login page | |
| ⚪ | P0 | Task-FE-002 | Dashboard | Task-FE-001 |
"""


def _write(root: Path, relative: str, text: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _document(sections: list[str]) -> str:
    return "\n\n".join(f"## {section}\n\nContent." for section in sections) + "\n"


def _invoke_ok(runner: CliRunner, args: list[str]) -> str:
    result = runner.invoke(cli, args)
    assert result.exit_code == 0, result.output
    return result.output


def _run_planning_phases(runner: CliRunner, project: Path) -> None:
    _write(project, "requirements.md", "Build a todo app.\n")
    _invoke_ok(runner, ["requirements", "start", "requirements.md"])
    _write(project, "specs/PROJECT_REQUIREMENTS.md", _document(DEFAULT_REQUIREMENTS_SECTIONS))
    _invoke_ok(runner, ["requirements", "finalize"])

    _invoke_ok(runner, ["blueprint", "plan"])
    _write(project, "specs/PROJECT_BLUEPRINT.md", _document(DEFAULT_BLUEPRINT_SECTIONS))
    _invoke_ok(runner, ["blueprint", "finalize"])

    _invoke_ok(runner, ["design", "start"])
    _write(project, "docs/design_system.md", "# Design System\n")
    _write(project, "docs/wireframes/login.md", "login\n")
    _invoke_ok(runner, ["design", "finalize"])

    _invoke_ok(runner, ["tasks", "plan"])
    _write(project, "docs/TODO.md", TODO_MD)
    _write(project, "docs/tasks/Task-FE-001.md", "# Task-FE-001\n\nBuild the login page.\n")
    _write(project, "docs/tasks/Task-FE-002.md", "# Task-FE-002\n\nBuild the dashboard.\n")
    output = _invoke_ok(runner, ["tasks", "finalize"])
    assert "Tasks imported: 2" in output


def _initialized_project(tmp_path: Path, monkeypatch) -> tuple[CliRunner, Path]:
    project = tmp_path / "demo"
    project.mkdir()
    monkeypatch.chdir(project)
    runner = CliRunner()
    output = _invoke_ok(runner, ["init", "Demo"])
    assert "Initialized specflow project Demo" in output
    return runner, project


def test_init_scaffolds_project_and_is_idempotent(tmp_path: Path, monkeypatch) -> None:
    runner, project = _initialized_project(tmp_path, monkeypatch)

    assert (project / ".specflow" / "state.json").is_file()
    assert (project / ".specflow" / "config.toml").is_file()
    assert (project / ".specflow" / "agents" / "project_manager.md").is_file()
    assert (project / "docs" / "tasks").is_dir()
    assert (project / ".gitignore").is_file()

    output = _invoke_ok(runner, ["init", "Other"])
    assert "already initialized" in output
    assert StateStore(project).load().project_name == "Demo"


def test_init_copies_agents_from_source_framework(tmp_path: Path, monkeypatch) -> None:
    framework = tmp_path / "framework"
    _write(framework, "agents/project_manager.md", '---\nname: "PM-Custom"\n---\nCustom.\n')
    project = tmp_path / "demo"
    project.mkdir()
    monkeypatch.chdir(project)
    runner = CliRunner()

    _invoke_ok(runner, ["init", "--source-framework", str(framework)])
    output = _invoke_ok(runner, ["agents"])

    assert "PM-Custom" in output
    assert StateStore(project).load().project_name == "demo"


def test_commands_require_initialized_project(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()

    result = runner.invoke(cli, ["status"])

    assert result.exit_code == 1
    assert "specflow init" in result.output


def test_blueprint_before_requirements_is_rejected(tmp_path: Path, monkeypatch) -> None:
    runner, project = _initialized_project(tmp_path, monkeypatch)
    before = (project / ".specflow" / "state.json").read_text(encoding="utf-8")

    result = runner.invoke(cli, ["blueprint", "plan"])

    assert result.exit_code == 1
    assert "requirements" in result.output
    assert "Try: specflow requirements start" in result.output
    assert (project / ".specflow" / "state.json").read_text(encoding="utf-8") == before


def test_requirements_start_imports_file_and_writes_prompt(tmp_path: Path, monkeypatch) -> None:
    runner, project = _initialized_project(tmp_path, monkeypatch)
    _write(project, "requirements.md", "Build a todo app.\n")

    output = _invoke_ok(runner, ["requirements", "start", "requirements.md"])

    assert "PM-Adam" in output
    assert "# Current Project Context" in output
    assert (project / ".specflow" / "input_requirements.md").read_text(
        encoding="utf-8"
    ) == "Build a todo app.\n"
    prompt = (project / ".specflow" / "current_prompt.md").read_text(encoding="utf-8")
    assert ".specflow/input_requirements.md" in prompt

    state = StateStore(project).load()
    assert state.phases["requirements"].status == "in_progress"
    assert state.active_agent == "PM-Adam"


def test_requirements_start_with_missing_file_fails(tmp_path: Path, monkeypatch) -> None:
    runner, project = _initialized_project(tmp_path, monkeypatch)

    result = runner.invoke(cli, ["requirements", "start", "nope.md"])

    assert result.exit_code == 1
    assert "Requirement file not found" in result.output
    assert StateStore(project).load().phases["requirements"].status == "pending"


def test_finalize_with_missing_sections_keeps_phase_open(tmp_path: Path, monkeypatch) -> None:
    runner, project = _initialized_project(tmp_path, monkeypatch)
    _invoke_ok(runner, ["requirements", "start"])
    _write(project, "specs/PROJECT_REQUIREMENTS.md", "## Project Overview\n")

    review = _invoke_ok(runner, ["requirements", "review"])
    assert "Missing required section: Data Model" in review

    result = runner.invoke(cli, ["requirements", "finalize"])
    assert result.exit_code == 1
    assert "Missing required section: User Roles" in result.output
    assert "Try: specflow requirements review" in result.output
    assert StateStore(project).load().phases["requirements"].status == "in_progress"


def test_full_workflow_through_development(tmp_path: Path, monkeypatch) -> None:
    runner, project = _initialized_project(tmp_path, monkeypatch)
    _run_planning_phases(runner, project)

    state = StateStore(project).load()
    assert list(state.tasks) == ["Task-FE-001", "Task-FE-002"]
    assert state.tasks["Task-FE-002"].dependencies == ["Task-FE-001"]
    assert state.tasks["Task-FE-001"].status == "pending"

    blocked = runner.invoke(cli, ["task", "start", "Task-FE-002"])
    assert blocked.exit_code == 1
    assert "Task-FE-001 (pending)" in blocked.output

    output = _invoke_ok(runner, ["task", "start", "Task-FE-001"])
    assert "Development phase started" in output
    assert "Build the login page." in output

    output = _invoke_ok(runner, ["task", "submit", "Task-FE-001"])
    assert "# Task Under Review: Task-FE-001" in output

    output = _invoke_ok(runner, ["task", "complete", "Task-FE-001"])
    assert "Task Task-FE-001 completed!" in output
    assert "Run: specflow task start Task-FE-002" in output
    todo = (project / "docs" / "TODO.md").read_text(encoding="utf-8")
    assert "| ✅ | P0 | Task-FE-001 |" in todo

    _invoke_ok(runner, ["task", "start", "Task-FE-002"])
    output = _invoke_ok(runner, ["task", "complete", "Task-FE-002"])
    assert "Development phase completed" in output

    payload = json.loads(_invoke_ok(runner, ["status", "--json"]))
    assert payload["current_phase"] == "development"
    assert payload["completed_phases"] == [
        "requirements",
        "blueprint",
        "design",
        "tasks",
        "development",
    ]
    assert payload["task_counts"]["completed"] == 2
    assert payload["suggestion"] is None

    text_status = _invoke_ok(runner, ["status"])
    assert "All phases completed!" in text_status


def test_rework_decompose_and_sync(tmp_path: Path, monkeypatch) -> None:
    runner, project = _initialized_project(tmp_path, monkeypatch)
    _run_planning_phases(runner, project)

    _invoke_ok(runner, ["task", "start", "Task-FE-001"])
    _invoke_ok(runner, ["task", "rework", "Task-FE-001"])
    assert StateStore(project).load().tasks["Task-FE-001"].status == "needs_rework"
    assert "| 🔴 | P0 | Task-FE-001 |" in (project / "docs" / "TODO.md").read_text(
        encoding="utf-8"
    )

    not_running = runner.invoke(cli, ["task", "submit", "Task-FE-001"])
    assert not_running.exit_code == 1

    output = _invoke_ok(runner, ["tasks", "decompose", "Task-FE-002", "too big", "--mark"])
    assert "too big" in output
    assert "specflow tasks sync" in output
    assert StateStore(project).load().tasks["Task-FE-002"].status == "decomposed"

    with (project / "docs" / "TODO.md").open("a", encoding="utf-8") as handle:
        handle.write("| ⚪ | P0 | Task-FE-003 | Dashboard shell | Task-FE-001 |\n")
    output = _invoke_ok(runner, ["tasks", "sync"])
    assert "Task-FE-003" in output
    assert StateStore(project).load().tasks["Task-FE-003"].dependencies == ["Task-FE-001"]

    assert "No new tasks" in _invoke_ok(runner, ["tasks", "sync"])

    listing = _invoke_ok(runner, ["tasks", "list"])
    assert "Needs rework (1)" in listing
    assert "Decomposed (1)" in listing


def test_unknown_task_reports_hint(tmp_path: Path, monkeypatch) -> None:
    runner, _ = _initialized_project(tmp_path, monkeypatch)

    result = runner.invoke(cli, ["task", "complete", "Task-FE-404"])

    assert result.exit_code == 1
    assert "Task not found: Task-FE-404" in result.output
    assert "Try: specflow tasks list" in result.output


def test_init_records_standards_package(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()

    _invoke_ok(runner, ["init", "Demo", "--standards", "enterprise"])

    config = load_config(tmp_path / ".specflow" / "config.toml")
    assert config.project.standards_package == "enterprise"

    rejected = runner.invoke(cli, ["init", "Other", "--standards", "premium"])
    assert rejected.exit_code != 0
