from __future__ import annotations

import logging
import shutil
from pathlib import Path

from specflow.agents.loader import packaged_agent_files, read_packaged_agent

logger = logging.getLogger(__name__)

PROJECT_DIRECTORIES = [
    ".specflow",
    ".specflow/agents",
    ".specflow/templates",
    "specs",
    "docs",
    "docs/architecture",
    "docs/frontend",
    "docs/backend",
    "docs/database",
    "docs/security",
    "docs/wireframes",
    "docs/tasks",
]

GITIGNORE_TEMPLATE = """# specflow
.specflow/state.json
.specflow/state.lock
.specflow/current_prompt.md

# Python
__pycache__/
.venv/

# IDE
.vscode/
.idea/
*.swp

# OS
.DS_Store
Thumbs.db
"""

README_TEMPLATE = """# specflow project

This project follows a spec-driven workflow managed by specflow.

## Workflow

1. **Requirements** (PM-Adam): `specflow requirements start <requirements-file>`
2. **Blueprint** (SA-Leo): `specflow blueprint plan`
3. **UI/UX design** (UI-Mia): `specflow design start`
4. **Task planning** (PM-Adam): `specflow tasks plan`
5. **Development**: `specflow task start <Task-ID>`

Each phase ends with `specflow <phase> finalize`, which checks the phase artifacts.

## Status

```bash
specflow status
```

## Layout

- `.specflow/` configuration, agent definitions and state
- `specs/` requirements and blueprint
- `docs/` design documents, TODO.md and task files
"""


def create_directory_structure(project_root: Path) -> list[Path]:
    created: list[Path] = []
    for relative in PROJECT_DIRECTORIES:
        directory = project_root / relative
        if not directory.exists():
            created.append(directory)
        directory.mkdir(parents=True, exist_ok=True)
    return created


def copy_agents(project_root: Path, source_framework: Path | None = None) -> str:
    """Populate ``.specflow/agents``; returns where the definitions came from."""
    target = project_root / ".specflow" / "agents"
    target.mkdir(parents=True, exist_ok=True)

    if source_framework is not None:
        source_agents = source_framework / "agents"
        if source_agents.is_dir():
            shutil.copytree(source_agents, target, dirs_exist_ok=True)
            logger.info("Copied agent definitions from %s", source_agents)
            return str(source_agents)
        logger.warning("No agents directory in %s; using packaged defaults", source_framework)

    for file_name in packaged_agent_files():
        destination = target / file_name
        if not destination.exists():
            destination.write_text(read_packaged_agent(file_name), encoding="utf-8")
    return "packaged defaults"


def write_templates(project_root: Path) -> list[Path]:
    written: list[Path] = []
    gitignore = project_root / ".gitignore"
    if not gitignore.exists():
        gitignore.write_text(GITIGNORE_TEMPLATE, encoding="utf-8")
        written.append(gitignore)
    readme = project_root / "SPECFLOW_README.md"
    readme.write_text(README_TEMPLATE, encoding="utf-8")
    written.append(readme)
    return written
