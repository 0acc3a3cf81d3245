"""TODO.md task-table parsing.

Rows look like ``| ⚪ | P0 | `Task-FE-001` | Login page | Task-BE-002 |``: the
first cell is a status glyph, the first cell holding only a task id names the
task, and task ids found in any later cell are its dependencies.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from specflow.state.models import TaskStatus

GLYPH_STATUS: dict[str, TaskStatus] = {
    "⚪": "pending",
    "🔵": "in_progress",
    "✅": "completed",
    "🚧": "blocked",
    "🔗": "decomposed",
    "🔴": "needs_rework",
}
STATUS_GLYPH: dict[str, str] = {status: glyph for glyph, status in GLYPH_STATUS.items()}

TASK_ID_PATTERN = re.compile(r"Task-[A-Za-z]+-\d+")
_TASK_ID_CELL = re.compile(r"^`?(Task-[A-Za-z]+-\d+)`?$")


@dataclass(slots=True)
class TaskRow:
    task_id: str
    status: TaskStatus
    dependencies: list[str] = field(default_factory=list)


def _split_cells(line: str) -> list[str] | None:
    stripped = line.strip()
    if not stripped.startswith("|"):
        return None
    inner = stripped[1:]
    if inner.endswith("|"):
        inner = inner[:-1]
    return [cell.strip() for cell in inner.split("|")]


def parse_task_row(line: str) -> TaskRow | None:
    cells = _split_cells(line)
    if not cells or len(cells) < 2:
        return None
    status = GLYPH_STATUS.get(cells[0].replace("\ufe0f", ""))
    if status is None:
        return None

    for index, cell in enumerate(cells[1:], start=1):
        match = _TASK_ID_CELL.match(cell)
        if not match:
            continue
        task_id = match.group(1)
        dependencies: list[str] = []
        for later in cells[index + 1 :]:
            for dependency in TASK_ID_PATTERN.findall(later):
                if dependency != task_id and dependency not in dependencies:
                    dependencies.append(dependency)
        return TaskRow(task_id=task_id, status=status, dependencies=dependencies)
    return None


def parse_task_table(text: str) -> list[TaskRow]:
    rows: list[TaskRow] = []
    seen: set[str] = set()
    for line in text.splitlines():
        row = parse_task_row(line)
        if row is None or row.task_id in seen:
            continue
        seen.add(row.task_id)
        rows.append(row)
    return rows


def rewrite_status_glyph(text: str, task_id: str, status: str) -> tuple[str, int]:
    """Replace the status glyph on every row naming ``task_id``.

    Returns the new text and the number of rows changed.
    """
    glyph = STATUS_GLYPH[status]
    changed = 0
    lines = text.splitlines(keepends=True)
    for index, line in enumerate(lines):
        row = parse_task_row(line)
        if row is None or row.task_id != task_id:
            continue
        old_glyph = STATUS_GLYPH[row.status]
        if old_glyph == glyph:
            continue
        lines[index] = line.replace(old_glyph, glyph, 1)
        changed += 1
    return "".join(lines), changed
