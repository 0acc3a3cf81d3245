from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from specflow.errors import AgentNotFound, SpecflowError

logger = logging.getLogger(__name__)

FRONT_MATTER_PATTERN = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)

ROLE_FILES = {
    "PM-Adam": "project_manager",
    "Project Manager": "project_manager",
    "SA-Leo": "system_architect",
    "System Architect": "system_architect",
    "UI-Mia": "ui_ux_designer",
    "UI/UX Designer": "ui_ux_designer",
    "FE-Ava": "frontend_engineer",
    "Frontend Engineer": "frontend_engineer",
    "BE-Rex": "backend_engineer",
    "Backend Engineer": "backend_engineer",
    "DevOps": "devops_engineer",
    "QA-Sam": "qa_reviewer",
    "QA Reviewer": "qa_reviewer",
}


@dataclass(slots=True)
class AgentMetadata:
    name: str
    role: str
    description: str = ""
    tools: list[str] = field(default_factory=list)


@dataclass(slots=True)
class AgentPrompt:
    metadata: AgentMetadata
    system_prompt: str


def role_to_file_name(role: str) -> str:
    return ROLE_FILES.get(role) or re.sub(r"\s+", "_", role.strip().lower())


def split_front_matter(content: str) -> tuple[dict[str, Any], str]:
    match = FRONT_MATTER_PATTERN.match(content)
    if not match:
        return {}, content
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        raise SpecflowError(f"Invalid agent front matter: {exc}") from exc
    if not isinstance(data, dict):
        data = {}
    return data, content[match.end() :]


def _metadata(data: dict[str, Any], default_name: str, default_role: str) -> AgentMetadata:
    tools = data.get("tools") or []
    return AgentMetadata(
        name=str(data.get("name") or default_name),
        role=str(data.get("role") or default_role),
        description=str(data.get("description") or ""),
        tools=[str(tool) for tool in tools] if isinstance(tools, list) else [],
    )


def packaged_agent_files() -> list[str]:
    return sorted(
        entry.name
        for entry in resources.files("specflow.prompts").iterdir()
        if entry.name.endswith(".md")
    )


def read_packaged_agent(file_name: str) -> str:
    return resources.files("specflow.prompts").joinpath(file_name).read_text(encoding="utf-8")


class AgentLoader:
    """Loads agent definitions from ``.specflow/agents``.

    A role with no project file falls back to the definition packaged with
    specflow; only when neither exists is AgentNotFound raised.
    """

    def __init__(self, project_root: Path) -> None:
        self.agents_path = project_root.resolve() / ".specflow" / "agents"

    def _read_definition(self, role: str) -> str:
        file_name = f"{role_to_file_name(role)}.md"
        agent_file = self.agents_path / file_name
        if agent_file.is_file():
            return agent_file.read_text(encoding="utf-8")
        try:
            content = read_packaged_agent(file_name)
        except (FileNotFoundError, ModuleNotFoundError) as exc:
            raise AgentNotFound(role, str(agent_file)) from exc
        logger.debug("Using packaged agent definition for %s", role)
        return content

    def load_agent(self, role: str) -> AgentPrompt:
        data, body = split_front_matter(self._read_definition(role))
        return AgentPrompt(metadata=_metadata(data, role, role), system_prompt=body.strip())

    def list_agents(self) -> list[AgentMetadata]:
        if not self.agents_path.is_dir():
            return []
        agents: list[AgentMetadata] = []
        for agent_file in sorted(self.agents_path.glob("*.md")):
            data, _ = split_front_matter(agent_file.read_text(encoding="utf-8"))
            agents.append(_metadata(data, agent_file.stem, ""))
        return agents
