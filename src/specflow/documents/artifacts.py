from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from specflow.config import ValidationConfig
from specflow.errors import UnknownPhase
from specflow.state.models import ProjectState

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DesignReview:
    present: list[str] = field(default_factory=list)
    problems: list[str] = field(default_factory=list)
    wireframe_count: int = 0

    @property
    def valid(self) -> bool:
        return not self.problems


class ArtifactValidator:
    """Existence and required-heading checks for phase artifacts.

    Heading checks are plain substring matches against the document text.
    """

    def __init__(self, project_root: Path, validation: ValidationConfig | None = None) -> None:
        self.project_root = project_root.resolve()
        self.validation = validation or ValidationConfig()
        self._structured = {
            "requirements": ("requirements_doc", self.validation.requirements_sections),
            "blueprint": ("blueprint_doc", self.validation.blueprint_sections),
        }

    def validate_document(self, relative_path: str, sections: list[str]) -> list[str]:
        full_path = self.project_root / relative_path
        if not full_path.is_file():
            return [f"File not found: {relative_path}"]
        content = full_path.read_text(encoding="utf-8")
        return [
            f"Missing required section: {section}"
            for section in sections
            if section not in content
        ]

    def review_document(self, state: ProjectState, phase: str) -> list[str]:
        """Heading check of a phase's main document, without the existence sweep."""
        config = state.phases.get(phase)
        if config is None:
            raise UnknownPhase(phase)
        entry = self._structured.get(phase)
        if entry is None:
            return []
        artifact_key, sections = entry
        document = config.artifacts.get(artifact_key)
        if not document:
            return []
        return self.validate_document(document, sections)

    def validate_phase(self, state: ProjectState, phase: str) -> list[str]:
        config = state.phases.get(phase)
        if config is None:
            raise UnknownPhase(phase)

        errors: list[str] = []
        for name, artifact_path in config.artifacts.items():
            if not (self.project_root / artifact_path).exists():
                errors.append(f"Missing artifact: {name} ({artifact_path})")

        if not errors and phase in self._structured:
            artifact_key, sections = self._structured[phase]
            document = config.artifacts.get(artifact_key)
            if document:
                errors.extend(self.validate_document(document, sections))

        logger.debug("Validated %s artifacts: %d error(s)", phase, len(errors))
        return errors

    def review_design(self, state: ProjectState) -> DesignReview:
        config = state.phases.get("design")
        if config is None:
            raise UnknownPhase("design")
        review = DesignReview()
        design_system = config.artifacts.get("design_system", "docs/design_system.md")
        wireframes = config.artifacts.get("wireframes", "docs/wireframes/")

        if (self.project_root / design_system).is_file():
            review.present.append(design_system)
        else:
            review.problems.append(f"Missing {design_system}")

        wireframes_dir = self.project_root / wireframes
        if not wireframes_dir.is_dir():
            review.problems.append(f"Missing {wireframes} directory")
        else:
            review.wireframe_count = sum(1 for _ in wireframes_dir.iterdir())
            if review.wireframe_count == 0:
                review.problems.append(f"{wireframes} directory is empty")
            else:
                review.present.append(wireframes)
        return review
