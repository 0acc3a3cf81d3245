from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from specflow.errors import (
    AlreadyInitialized,
    NoLoadedState,
    NotInitialized,
    StateCorrupted,
    StateLockTimeout,
)
from specflow.state.models import (
    PHASE_STATUSES,
    TASK_STATUSES,
    ProjectState,
    new_project_state,
    utcnow_iso,
)

logger = logging.getLogger(__name__)

STATE_DIR_NAME = ".specflow"
STATE_FILE_NAME = "state.json"
LOCK_FILE_NAME = "state.lock"


class StateStore:
    """Single-file JSON persistence for a project's ProjectState.

    Every save rewrites the whole file through a temp file and ``os.replace``
    while holding ``.specflow/state.lock``. The load/save pair of one
    invocation is not atomic against another process.
    """

    def __init__(self, project_root: Path) -> None:
        self.project_root = project_root.resolve()
        self.state_dir = self.project_root / STATE_DIR_NAME
        self.state_path = self.state_dir / STATE_FILE_NAME
        self.lock_file = self.state_dir / LOCK_FILE_NAME
        self._state: ProjectState | None = None

    @property
    def state(self) -> ProjectState:
        if self._state is None:
            raise NoLoadedState("No state loaded; call load() or initialize() first.")
        return self._state

    def exists(self) -> bool:
        return self.state_path.exists()

    def initialize(self, project_name: str) -> ProjectState:
        if self.exists():
            raise AlreadyInitialized(
                f"Project already initialized: {self.state_path}",
                hint="specflow status",
            )
        self._state = new_project_state(project_name)
        self._write(self._state)
        logger.info("Initialized state for project %s at %s", project_name, self.state_path)
        return self._state

    def load(self) -> ProjectState:
        if not self.exists():
            raise NotInitialized(str(self.state_path))
        try:
            raw = json.loads(self.state_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StateCorrupted(
                f"State file is not valid JSON: {self.state_path} ({exc})"
            ) from exc
        self._state = self._decode(raw)
        return self._state

    def save(self) -> None:
        state = self.state
        now = utcnow_iso()
        state.updated_at = max(now, state.updated_at)
        self._write(state)

    def get_completed_phases(self) -> list[str]:
        return self.state.completed_phases()

    def _decode(self, raw: Any) -> ProjectState:
        if not isinstance(raw, dict):
            raise StateCorrupted(f"State file must contain a JSON object: {self.state_path}")
        try:
            state = ProjectState.from_dict(raw)
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise StateCorrupted(
                f"State file is missing required fields: {self.state_path} ({exc})"
            ) from exc
        for name, phase in state.phases.items():
            if phase.status not in PHASE_STATUSES:
                raise StateCorrupted(f"Phase '{name}' has invalid status '{phase.status}'.")
        for task_id, task in state.tasks.items():
            if task.status not in TASK_STATUSES:
                raise StateCorrupted(f"Task '{task_id}' has invalid status '{task.status}'.")
        return state

    @contextmanager
    def _state_lock(self, timeout_seconds: float = 3.0):
        start = time.monotonic()
        while True:
            try:
                fd = os.open(self.lock_file, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                os.write(fd, str(os.getpid()).encode("utf-8"))
                os.close(fd)
                break
            except FileExistsError as exc:
                if time.monotonic() - start > timeout_seconds:
                    raise StateLockTimeout(
                        f"Timed out waiting for state lock: {self.lock_file}",
                        hint=f"remove {self.lock_file} if no other specflow command is running",
                    ) from exc
                time.sleep(0.02)

        try:
            yield
        finally:
            try:
                self.lock_file.unlink()
            except FileNotFoundError:
                pass

    def _write(self, state: ProjectState) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        serialized = json.dumps(state.to_dict(), ensure_ascii=False, indent=2) + "\n"
        with self._state_lock():
            fd, tmp_name = tempfile.mkstemp(
                prefix=".state-", suffix=".json.tmp", dir=self.state_dir
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(serialized)
                os.replace(tmp_name, self.state_path)
            except BaseException:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
                raise
        logger.debug("Wrote state to %s", self.state_path)
