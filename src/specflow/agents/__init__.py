from specflow.agents.loader import AgentLoader, AgentMetadata, AgentPrompt, role_to_file_name
from specflow.agents.prompts import (
    build_phase_prompt,
    build_review_prompt,
    build_task_prompt,
    phase_instructions,
)

__all__ = [
    "AgentLoader",
    "AgentMetadata",
    "AgentPrompt",
    "build_phase_prompt",
    "build_review_prompt",
    "build_task_prompt",
    "phase_instructions",
    "role_to_file_name",
]
