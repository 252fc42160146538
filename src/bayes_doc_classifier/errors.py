"""Exception hierarchy for the classification pipeline."""

from __future__ import annotations

from pathlib import Path


class ClassifierError(Exception):
    """Base class for every error raised while classifying a document."""


class ArtifactLoadError(ClassifierError):
    """A model artifact is missing, unreadable, or structurally invalid."""

    def __init__(self, location: str | Path, reason: str) -> None:
        self.location = Path(location)
        self.reason = reason
        super().__init__(f"Cannot load artifact '{location}': {reason}")


class TokenizationError(ClassifierError):
    """The input text could not be read or decoded."""


class UnknownLabelError(ClassifierError):
    """The winning label id has no entry in the label index."""

    def __init__(self, label_id: int) -> None:
        self.label_id = label_id
        super().__init__(
            f"Label id {label_id} is not present in the label index; "
            "the model and label index do not belong together"
        )


class ScoringError(ClassifierError):
    """Scoring produced an unusable score vector."""
