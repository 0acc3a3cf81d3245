from pathlib import Path

import pytest

from specflow.config import ValidationConfig
from specflow.documents.artifacts import ArtifactValidator
from specflow.documents.todo import parse_task_row, parse_task_table, rewrite_status_glyph
from specflow.errors import UnknownPhase
from specflow.state.models import new_project_state

TODO_TABLE = """# Task List

| Status | Priority | ID | Title | Depends on |
|--------|----------|----|-------|------------|
| ⚪ | P0 | Task-FE-001 | Login page | |
| ⚪ | P0 | Task-FE-002 | Dashboard | Task-FE-001 |
| ✅ | P1 | `Task-BE-001` | Auth API | Task-DB-001, Task-DevOps-002 |
| 🔗 | P2 | Task-FE-003 | Settings | |
| 🔵 | P2 | Task-FE-001 | Duplicate row | |
"""


def _write(root: Path, relative: str, text: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_parse_task_table_reads_ids_statuses_and_dependencies() -> None:
    rows = parse_task_table(TODO_TABLE)

    assert [row.task_id for row in rows] == [
        "Task-FE-001",
        "Task-FE-002",
        "Task-BE-001",
        "Task-FE-003",
    ]
    assert rows[0].status == "pending"
    assert rows[0].dependencies == []
    assert rows[1].dependencies == ["Task-FE-001"]
    assert rows[2].status == "completed"
    assert rows[2].dependencies == ["Task-DB-001", "Task-DevOps-002"]
    assert rows[3].status == "decomposed"


@pytest.mark.parametrize(
    "line",
    [
        "| Status | Priority | ID | Title |",
        "|--------|----------|----|-------|",
        "Task-FE-001 is mentioned in prose",
        "| ⚪ | P0 | no id here | |",
        "| ❓ | P0 | Task-FE-001 | unknown glyph |",
    ],
)
def test_non_task_lines_are_ignored(line: str) -> None:
    assert parse_task_row(line) is None


def test_variation_selector_on_glyph_is_accepted() -> None:
    row = parse_task_row("| ⚪️ | P0 | Task-FE-010 | Footer |")

    assert row is not None
    assert row.status == "pending"


def test_rewrite_status_glyph_updates_matching_rows_only() -> None:
    text, changed = rewrite_status_glyph(TODO_TABLE, "Task-FE-002", "completed")

    assert changed == 1
    assert "| ✅ | P0 | Task-FE-002 | Dashboard | Task-FE-001 |" in text
    assert "| ⚪ | P0 | Task-FE-001 | Login page | |" in text


def test_rewrite_status_glyph_noop_when_already_matching() -> None:
    text, changed = rewrite_status_glyph(TODO_TABLE, "Task-BE-001", "completed")

    assert changed == 0
    assert text == TODO_TABLE


def test_validate_phase_reports_missing_artifacts(tmp_path: Path) -> None:
    validator = ArtifactValidator(tmp_path)
    state = new_project_state("Demo")

    errors = validator.validate_phase(state, "design")

    assert errors == [
        "Missing artifact: design_system (docs/design_system.md)",
        "Missing artifact: wireframes (docs/wireframes/)",
    ]


def test_validate_phase_checks_required_sections(tmp_path: Path) -> None:
    validation = ValidationConfig(requirements_sections=["Project Overview", "Data Model"])
    validator = ArtifactValidator(tmp_path, validation)
    state = new_project_state("Demo")
    _write(tmp_path, "specs/PROJECT_REQUIREMENTS.md", "# Requirements\n\n## Project Overview\n")

    assert validator.validate_phase(state, "requirements") == [
        "Missing required section: Data Model"
    ]

    _write(
        tmp_path,
        "specs/PROJECT_REQUIREMENTS.md",
        "## Project Overview\n\n## Data Model\n",
    )
    assert validator.validate_phase(state, "requirements") == []


def test_development_phase_has_nothing_to_validate(tmp_path: Path) -> None:
    validator = ArtifactValidator(tmp_path)

    assert validator.validate_phase(new_project_state("Demo"), "development") == []


def test_review_document_skips_existence_sweep(tmp_path: Path) -> None:
    validation = ValidationConfig(blueprint_sections=["Technology Stack"])
    validator = ArtifactValidator(tmp_path, validation)
    state = new_project_state("Demo")

    assert validator.review_document(state, "blueprint") == [
        "File not found: specs/PROJECT_BLUEPRINT.md"
    ]

    _write(tmp_path, "specs/PROJECT_BLUEPRINT.md", "## Technology Stack\n")
    assert validator.review_document(state, "blueprint") == []
    assert validator.review_document(state, "design") == []


def test_validator_rejects_unknown_phase(tmp_path: Path) -> None:
    validator = ArtifactValidator(tmp_path)

    with pytest.raises(UnknownPhase):
        validator.validate_phase(new_project_state("Demo"), "marketing")


def test_review_design(tmp_path: Path) -> None:
    validator = ArtifactValidator(tmp_path)
    state = new_project_state("Demo")

    review = validator.review_design(state)
    assert review.valid is False
    assert "Missing docs/design_system.md" in review.problems

    _write(tmp_path, "docs/design_system.md", "# Design System\n")
    (tmp_path / "docs" / "wireframes").mkdir()
    review = validator.review_design(state)
    assert review.problems == ["docs/wireframes/ directory is empty"]

    _write(tmp_path, "docs/wireframes/login.md", "login\n")
    review = validator.review_design(state)
    assert review.valid is True
    assert review.wireframe_count == 1
    assert review.present == ["docs/design_system.md", "docs/wireframes/"]
