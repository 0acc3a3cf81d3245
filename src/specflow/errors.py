from __future__ import annotations


class SpecflowError(RuntimeError):
    """Base class for every failure a specflow command reports to the user."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class NotInitialized(SpecflowError):
    def __init__(self, state_path: str | None = None) -> None:
        message = "Project is not initialized."
        if state_path:
            message = f"Project is not initialized (no state file at {state_path})."
        super().__init__(message, hint="specflow init")


class AlreadyInitialized(SpecflowError):
    """Raised when initialize() is called on a project that already has state."""


class NoLoadedState(SpecflowError):
    """Raised when save() runs before load() or initialize()."""


class StateCorrupted(SpecflowError):
    """Raised when the state file cannot be decoded into a ProjectState."""


class StateLockTimeout(SpecflowError):
    """Raised when another invocation holds the state lock for too long."""


class UnknownPhase(SpecflowError):
    def __init__(self, phase: str) -> None:
        super().__init__(f"Unknown phase: {phase}", hint="specflow status")
        self.phase = phase


class UnknownTask(SpecflowError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}", hint="specflow tasks list")
        self.task_id = task_id


class DependencyUnmet(SpecflowError):
    def __init__(
        self,
        message: str,
        *,
        unmet: list[tuple[str, str | None]] | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.unmet = list(unmet or [])


class ArtifactsInvalid(SpecflowError):
    def __init__(self, phase: str, errors: list[str], *, hint: str | None = None) -> None:
        super().__init__(
            f"Artifact validation failed for phase '{phase}':\n"
            + "\n".join(f"  - {error}" for error in errors),
            hint=hint,
        )
        self.phase = phase
        self.errors = list(errors)


class InvalidTransition(SpecflowError):
    """Raised when the current status does not allow the requested transition."""


class AgentNotFound(SpecflowError):
    def __init__(self, role: str, agent_file: str) -> None:
        super().__init__(
            f"Agent definition for '{role}' not found: {agent_file}",
            hint="specflow init --source-framework <path>",
        )
        self.role = role
        self.agent_file = agent_file
