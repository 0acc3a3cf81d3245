from __future__ import annotations

from specflow.agents.loader import AgentPrompt
from specflow.state.models import ProjectState

PHASE_INSTRUCTIONS = {
    "requirements": """
# Your Task
1. Analyze the requirement material provided by the user
2. Identify any URLs in the requirements and explore them
3. Ask the user clarifying questions
4. Produce specs/PROJECT_REQUIREMENTS.md following the requirements template structure
5. Iterate with the user until the requirements are confirmed

When done, tell the user to run: specflow requirements finalize
""",
    "blueprint": """
# Your Task
1. Select the technology stack based on specs/PROJECT_REQUIREMENTS.md
2. Confirm architecture, stack and development standards with the user
3. Produce specs/PROJECT_BLUEPRINT.md and the related standards documents
4. Make sure every technical decision is justified

When done, tell the user to run: specflow blueprint finalize
""",
    "design": """
# Your Task
1. Create a design system based on the requirements and the blueprint
2. Produce docs/design_system.md
3. Create wireframe files for the core pages under docs/wireframes/
4. Keep the design consistent with the brand and the selected stack

When done, tell the user to run: specflow design finalize
""",
    "tasks": """
# Your Task
1. Break the requirements down into executable technical tasks
2. Analyze the dependencies between tasks
3. Confirm the MVP scope with the user
4. Produce docs/TODO.md and one task file per task under docs/tasks/

When done, tell the user to run: specflow tasks finalize
""",
    "development": """
# Your Task
Develop according to the task file (docs/tasks/<Task-ID>.md):
1. Follow the standards in specs/PROJECT_BLUEPRINT.md strictly
2. Complete every item in the development checklist
3. Make sure the acceptance criteria pass
4. Submit the code for review

When done, run: specflow task submit <Task-ID>
""",
}


def phase_instructions(phase: str) -> str:
    return PHASE_INSTRUCTIONS.get(phase, "")


def build_phase_prompt(
    agent: AgentPrompt,
    state: ProjectState,
    phase: str,
    extra_context: str | None = None,
) -> str:
    completed = ", ".join(state.completed_phases()) or "none"
    prompt = (
        f"{agent.system_prompt}\n\n"
        "# Current Project Context\n"
        f"Project name: {state.project_name}\n"
        f"Current phase: {phase}\n"
        f"Completed phases: {completed}\n"
        f"Active agent: {agent.metadata.name} ({agent.metadata.role})\n\n"
    )
    prompt += phase_instructions(phase)
    if extra_context:
        prompt += f"\n# Additional Context\n{extra_context}\n"
    return prompt


def build_task_prompt(agent: AgentPrompt, task_id: str, task_body: str) -> str:
    return f"""{agent.system_prompt}

# Current Task: {task_id}

{task_body}

# Your Task
1. Work through the "Development Checklist" in the task file
2. Follow every standard in specs/PROJECT_BLUEPRINT.md
3. Make sure every item under "Acceptance Criteria" passes
4. When done, tell the user to run: specflow task submit {task_id}

# Notes
- Read the "Reference Standards" section of the task file carefully
- Check "Known Difficulties" in the task file when you get stuck
- All code must follow the project standards
"""


def build_review_prompt(agent: AgentPrompt, task_id: str, task_body: str) -> str:
    return f"""{agent.system_prompt}

# Task Under Review: {task_id}

{task_body}

# Your Task
1. Review every code change related to this task
2. Check compliance with the standards in specs/PROJECT_BLUEPRINT.md
3. Verify that every item under "Acceptance Criteria" passes
4. Write a review report

# If the review passes
The user should run: specflow task complete {task_id}

# If the review fails
The user should run: specflow task rework {task_id}
"""


def decomposition_context(task_id: str, reason: str, task_file: str) -> str:
    return (
        f"The user asked to decompose task {task_id}. Reason: {reason}\n"
        f"Read {task_file} and work with the user to split it into smaller tasks. "
        "Add the new rows to docs/TODO.md, then run: specflow tasks sync"
    )
