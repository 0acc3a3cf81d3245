from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from specflow import __version__
from specflow.config import STANDARDS_PACKAGES, StandardsPackage
from specflow.errors import AlreadyInitialized, ArtifactsInvalid, SpecflowError
from specflow.logging_setup import configure_logging
from specflow.state.models import PHASE_ORDER
from specflow.workflow.engine import PhaseStartResult, TaskPromptResult, Workflow
from specflow.workflow.phases import PHASE_START_COMMANDS

RULE = "─" * 60

PHASE_LABELS = {
    "requirements": "Requirements",
    "blueprint": "Technical Blueprint",
    "design": "UI/UX Design",
    "tasks": "Task Planning",
    "development": "Development",
}

PHASE_ICONS = {
    "pending": "⚪",
    "in_progress": "🔵",
    "completed": "✅",
    "blocked": "🚧",
}

TASK_GROUPS = [
    ("in_progress", "In progress", "🔵", "cyan"),
    ("pending", "Pending", "⚪", "white"),
    ("blocked", "Blocked", "🚧", "red"),
    ("needs_rework", "Needs rework", "🔴", "yellow"),
    ("decomposed", "Decomposed", "🔗", "blue"),
    ("completed", "Completed", "✅", "green"),
]

FINALIZE_TIPS = {
    "requirements": "Make sure specs/PROJECT_REQUIREMENTS.md exists and has all required sections.",
    "blueprint": "Make sure specs/PROJECT_BLUEPRINT.md exists and has every required section.",
    "design": "Make sure docs/design_system.md and files under docs/wireframes/ exist.",
    "tasks": "Make sure docs/TODO.md and the task files under docs/tasks/ exist.",
}


class CommandFailed(click.ClickException):
    """ClickException that appends the remedial command of a SpecflowError."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def format_message(self) -> str:
        if self.hint:
            return f"{self.message}\n  Try: {self.hint}"
        return self.message


@contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except ArtifactsInvalid as exc:
        tip = FINALIZE_TIPS.get(exc.phase)
        message = str(exc) if not tip else f"{exc}\n{tip}"
        raise CommandFailed(message, exc.hint) from exc
    except SpecflowError as exc:
        raise CommandFailed(str(exc), exc.hint) from exc


def _workflow() -> Workflow:
    return Workflow(Path.cwd().resolve())


def _echo_prompt(result: PhaseStartResult | TaskPromptResult, agent_label: str) -> None:
    click.secho(f"📝 {agent_label} is ready", fg="yellow")
    click.echo()
    click.secho("Give the following prompt to your AI assistant:", bold=True)
    click.echo(RULE)
    click.echo()
    click.echo(result.prompt)
    click.echo()
    click.echo(RULE)
    click.echo(f"Prompt saved to: {result.prompt_path}")
    click.echo()


def _start_phase(phase: str, title: str, input_file: Path | None = None) -> None:
    with _reported_errors():
        result = _workflow().start_phase(phase, input_file=input_file)

    click.secho(title, fg="blue")
    click.echo(f"   Agent: {result.agent}")
    if not result.first_entry:
        click.echo("   Phase already in progress; prompt regenerated.")
    if result.input_copy is not None:
        click.secho(f"✓ Requirement file imported to {result.input_copy}", fg="green")
    click.echo()
    _echo_prompt(result, result.agent)
    click.secho("Workflow:", bold=True)
    click.echo("  1. Paste the prompt above into your AI assistant")
    click.echo("  2. Iterate with the assistant until the phase documents are done")
    click.echo(f"  3. Then run: specflow {phase} finalize")


def _review_document(phase: str, document: str) -> None:
    with _reported_errors():
        errors = _workflow().review_document(phase)

    click.secho(f"🔍 Checking {document}...", fg="blue")
    if not errors:
        click.secho("✅ Document structure looks complete", fg="green")
        click.echo(f"If the content is confirmed, run: specflow {phase} finalize")
        return
    click.secho("⚠️  Problems found:", fg="yellow")
    for error in errors:
        click.secho(f"   • {error}", fg="yellow")


def _finalize_phase(phase: str) -> None:
    click.secho(f"🔍 Validating {phase} artifacts...", fg="blue")
    with _reported_errors():
        result = _workflow().finalize_phase(phase)

    click.secho(f"✅ {PHASE_LABELS[phase]} phase completed!", fg="green")
    if result.artifacts:
        click.echo()
        click.secho("Artifacts:", bold=True)
        for artifact in result.artifacts.values():
            click.echo(f"   ✓ {artifact}")
    if phase == "tasks":
        click.echo()
        click.secho(f"Tasks imported: {len(result.imported_tasks)}", bold=True)
        click.echo(f"Tasks tracked: {result.task_count}")
        if result.development_completed:
            click.secho("All tasks already completed; development phase completed", fg="green")
        click.echo()
        click.echo("List tasks: specflow tasks list")
        click.echo("Start a task: specflow task start <Task-ID>")
        return
    if result.next_phase:
        click.echo()
        click.secho("Next:", bold=True)
        click.echo(f"   Run: {PHASE_START_COMMANDS[result.next_phase]}")


@click.group()
@click.version_option(__version__, prog_name="specflow")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Spec-driven development workflow CLI."""
    configure_logging(verbose)


@cli.command("init")
@click.argument("project_name", required=False)
@click.option(
    "--source-framework",
    "source_framework",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Framework directory containing an agents/ folder.",
)
@click.option(
    "--standards",
    type=click.Choice(STANDARDS_PACKAGES),
    default="complete",
    show_default=True,
)
def init_command(
    project_name: str | None, source_framework: Path | None, standards: StandardsPackage
) -> None:
    with _reported_errors():
        workflow = _workflow()
    try:
        result = workflow.initialize(
            project_name, source_framework=source_framework, standards=standards
        )
    except AlreadyInitialized:
        click.secho("⚠️  Project is already initialized.", fg="yellow")
        click.echo(f"   State file: {workflow.store.state_path}")
        return
    except SpecflowError as exc:
        raise CommandFailed(str(exc), exc.hint) from exc

    click.secho(f"🚀 Initialized specflow project {result.project_name}", fg="green")
    click.echo(f"   Path: {result.project_root}")
    click.echo(f"   Config: {result.config_path}")
    click.echo(f"   Agents: {result.agents_source}")
    click.echo()
    click.secho("Next:", bold=True)
    click.echo("  1. Prepare your requirements file (for example requirements.md)")
    click.echo("  2. Run: specflow requirements start <requirements-file>")
    click.echo()
    click.echo("Project status: specflow status")


@cli.command("status")
@click.option("--json", "as_json", is_flag=True, default=False)
def status_command(as_json: bool) -> None:
    with _reported_errors():
        payload = _workflow().status()

    if as_json:
        click.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    click.secho("📊 specflow project status", fg="blue", bold=True)
    click.echo("═" * 60)
    click.echo(f"  Name: {payload['project_name']}")
    click.echo(f"  Current phase: {payload['current_phase']}")
    if payload["active_agent"]:
        click.echo(f"  Active agent: {payload['active_agent']}")
    click.echo()
    click.secho("Phases:", bold=True)
    for name in PHASE_ORDER:
        phase = payload["phases"].get(name)
        if phase is None:
            continue
        click.echo(f"  {PHASE_ICONS.get(phase['status'], '❓')} {PHASE_LABELS[name]}")
        click.echo(f"     Status: {phase['status']}")
        click.echo(f"     Agent: {phase['agent']}")
        if phase["dependencies"]:
            click.echo(f"     Depends on: {', '.join(phase['dependencies'])}")
        if phase.get("startedAt"):
            click.echo(f"     Started: {phase['startedAt']}")
        if phase.get("completedAt"):
            click.echo(f"     Completed: {phase['completedAt']}")
    if payload["task_total"]:
        counts = payload["task_counts"]
        click.echo()
        click.secho("Tasks:", bold=True)
        click.echo(f"  Total: {payload['task_total']}")
        for key, label, _, color in TASK_GROUPS:
            click.echo(f"  {label}: " + click.style(str(counts[key]), fg=color))
    click.echo()
    click.secho("Suggested next step:", bold=True)
    if payload["suggestion"]:
        click.echo(f"  Run: {payload['suggestion']}")
    else:
        click.secho("  ✅ All phases completed!", fg="green")


@cli.command("agents")
def agents_command() -> None:
    with _reported_errors():
        agents = _workflow().agents.list_agents()
    if not agents:
        click.echo("No agent definitions found in .specflow/agents.")
        return
    for agent in agents:
        role = f" ({agent.role})" if agent.role else ""
        click.echo(f"{agent.name}{role}: {agent.description}")


@cli.group("requirements")
def requirements_group() -> None:
    """Requirements analysis phase."""


@requirements_group.command("start")
@click.argument(
    "requirement_file",
    required=False,
    type=click.Path(dir_okay=False, path_type=Path),
)
def requirements_start(requirement_file: Path | None) -> None:
    input_file = requirement_file.resolve() if requirement_file else None
    _start_phase("requirements", "📋 Starting requirements analysis", input_file)


@requirements_group.command("review")
def requirements_review() -> None:
    _review_document("requirements", "requirements document")


@requirements_group.command("finalize")
def requirements_finalize() -> None:
    _finalize_phase("requirements")


@cli.group("blueprint")
def blueprint_group() -> None:
    """Technical blueprint phase."""


@blueprint_group.command("plan")
def blueprint_plan() -> None:
    _start_phase("blueprint", "🏗️  Starting technical blueprint planning")


@blueprint_group.command("review")
def blueprint_review() -> None:
    _review_document("blueprint", "blueprint document")


@blueprint_group.command("finalize")
def blueprint_finalize() -> None:
    _finalize_phase("blueprint")


@cli.group("design")
def design_group() -> None:
    """UI/UX design phase."""


@design_group.command("start")
def design_start() -> None:
    _start_phase("design", "🎨 Starting UI/UX design")


@design_group.command("review")
def design_review() -> None:
    with _reported_errors():
        review = _workflow().review_design()

    click.secho("🔍 Checking design documents...", fg="blue")
    for present in review.present:
        click.secho(f"   ✓ {present}", fg="green")
    for problem in review.problems:
        click.secho(f"   ⚠️  {problem}", fg="yellow")
    click.echo()
    if review.valid:
        click.secho("✅ Design documents look complete", fg="green")
        click.echo("If the content is confirmed, run: specflow design finalize")
    else:
        click.secho("⚠️  Add the missing design documents", fg="yellow")


@design_group.command("finalize")
def design_finalize() -> None:
    _finalize_phase("design")


@cli.group("tasks")
def tasks_group() -> None:
    """Task planning phase."""


@tasks_group.command("plan")
def tasks_plan() -> None:
    _start_phase("tasks", "📋 Starting task planning")


@tasks_group.command("finalize")
def tasks_finalize() -> None:
    _finalize_phase("tasks")


@tasks_group.command("sync")
def tasks_sync() -> None:
    with _reported_errors():
        added = _workflow().sync_tasks()
    if not added:
        click.echo("No new tasks found in the task list.")
        return
    click.secho(f"Imported {len(added)} new task(s):", fg="green")
    for task_id in added:
        click.echo(f"   • {task_id}")


@tasks_group.command("list")
def tasks_list() -> None:
    with _reported_errors():
        grouped = _workflow().tasks_by_status()

    if not any(grouped.values()):
        click.secho("No tasks yet.", fg="yellow")
        click.echo("Run specflow tasks plan to create tasks.")
        return

    click.secho("📋 Tasks", fg="blue", bold=True)
    click.echo("═" * 60)
    for key, label, icon, color in TASK_GROUPS:
        entries = grouped.get(key, [])
        if not entries:
            continue
        click.secho(f"{icon} {label} ({len(entries)})", fg=color, bold=True)
        for task_id, task in entries:
            click.echo(f"   • {task_id}")
            if task.dependencies:
                click.echo(f"     Depends on: {', '.join(task.dependencies)}")
        click.echo()
    click.echo("Details: docs/TODO.md")
    click.echo("Start a task: specflow task start <Task-ID>")


@tasks_group.command("decompose")
@click.argument("task_id")
@click.argument("reason")
@click.option("--mark", is_flag=True, default=False, help="Mark the task as decomposed.")
def tasks_decompose(task_id: str, reason: str, mark: bool) -> None:
    with _reported_errors():
        result = _workflow().decompose_task(task_id, reason, mark=mark)

    click.secho(f"🔨 Decomposing task {task_id}", fg="blue")
    click.echo(f"   Reason: {reason}")
    if mark:
        click.echo(f"   {task_id} marked as decomposed")
    if result.development_completed:
        click.secho("   Development phase completed", fg="green")
    click.echo()
    _echo_prompt(result, result.role)


@cli.group("task")
def task_group() -> None:
    """Task execution."""


@task_group.command("start")
@click.argument("task_id")
def task_start(task_id: str) -> None:
    with _reported_errors():
        result = _workflow().start_task(task_id)

    click.secho(f"🚀 Starting task {task_id}", fg="blue")
    click.echo(f"   Agent: {result.role}")
    if result.development_started:
        click.echo("   Development phase started")
    click.echo()
    _echo_prompt(result, result.role)
    click.secho("Workflow:", bold=True)
    click.echo("  1. Paste the prompt above into your AI assistant")
    click.echo("  2. Develop the task together with the assistant")
    click.echo(f"  3. Then run: specflow task submit {task_id}")


@task_group.command("submit")
@click.argument("task_id")
def task_submit(task_id: str) -> None:
    with _reported_errors():
        result = _workflow().submit_task(task_id)

    click.secho(f"📤 Submitting task {task_id} for review", fg="blue")
    click.echo()
    _echo_prompt(result, result.role)
    click.secho("Review outcome:", bold=True)
    click.echo(f"  Approved: specflow task complete {task_id}")
    click.echo(f"  Needs rework: specflow task rework {task_id}")


@task_group.command("complete")
@click.argument("task_id")
def task_complete(task_id: str) -> None:
    with _reported_errors():
        result = _workflow().complete_task(task_id)

    click.secho(f"✅ Task {task_id} completed!", fg="green")
    if result.todo_updated:
        click.echo("   ✓ Updated docs/TODO.md")
    if result.development_started:
        click.echo("   Development phase started")
    if result.development_completed:
        click.secho("   Development phase completed", fg="green")
    click.echo()
    if result.next_task:
        click.secho("Next task:", bold=True)
        click.echo(f"  Run: specflow task start {result.next_task}")
    else:
        click.secho("🎉 No more tasks are ready to start.", fg="green")


@task_group.command("rework")
@click.argument("task_id")
def task_rework(task_id: str) -> None:
    with _reported_errors():
        todo_updated = _workflow().rework_task(task_id)

    click.secho(f"🔴 Task {task_id} needs rework", fg="yellow")
    if todo_updated:
        click.echo("   ✓ Updated docs/TODO.md")
    click.echo()
    click.secho("Next:", bold=True)
    click.echo(f"  Fix the problems, then restart: specflow task start {task_id}")


if __name__ == "__main__":
    cli()
