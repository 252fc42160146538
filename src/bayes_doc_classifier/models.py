"""Data models shared by the classification components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping

from .errors import ArtifactLoadError

#: Reserved document-frequency key holding the training corpus size.
DOCUMENT_COUNT_KEY = -1

#: Location reported for tables that were built in memory.
IN_MEMORY = "<in-memory>"

Dictionary = Mapping[str, int]
DocumentFrequency = Mapping[int, int]
LabelIndex = Mapping[int, str]
FeatureVector = Dict[int, float]
ScoreVector = Dict[int, float]


def freeze(table: Mapping) -> Mapping:
    """Return a read-only view over a copy of ``table``."""
    return MappingProxyType(dict(table))


class PipelineState(str, Enum):
    """Stages of a single classification run."""

    UNINITIALIZED = "uninitialized"
    ARTIFACTS_LOADED = "artifacts_loaded"
    TEXT_TOKENIZED = "text_tokenized"
    VECTOR_BUILT = "vector_built"
    SCORED = "scored"
    REPORTED = "reported"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class WeightModel:
    """Materialized Naive Bayes weights.

    ``weights`` maps term-id to a mapping of label-id to a log-probability
    style weight. Pairs that are absent contribute nothing to a score.
    ``label_prior`` optionally holds a log prior per label id.
    """

    num_labels: int
    weights: Mapping[int, Mapping[int, float]]
    label_prior: Mapping[int, float] = field(default_factory=dict)
    complementary: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "weights",
            MappingProxyType({t: freeze(row) for t, row in self.weights.items()}),
        )
        object.__setattr__(self, "label_prior", freeze(self.label_prior))

    @property
    def label_ids(self) -> range:
        return range(self.num_labels)

    @property
    def num_terms(self) -> int:
        return len(self.weights)

    def weight(self, term_id: int, label_id: int) -> float:
        row = self.weights.get(term_id)
        if row is None:
            return 0.0
        return row.get(label_id, 0.0)

    def prior(self, label_id: int) -> float:
        return self.label_prior.get(label_id, 0.0)

    def to_dict(self) -> dict:
        """Serialize to the JSON artifact layout (``kind`` = ``log``)."""
        data: dict = {
            "num_labels": self.num_labels,
            "kind": "log",
            "complementary": self.complementary,
            "weights": {
                str(t): {str(lbl): w for lbl, w in sorted(row.items())}
                for t, row in sorted(self.weights.items())
            },
        }
        if self.label_prior:
            data["label_prior"] = {
                str(lbl): p for lbl, p in sorted(self.label_prior.items())
            }
        return data


@dataclass(frozen=True)
class ModelArtifacts:
    """The four loaded tables, shared read-only between requests.

    The bundle checks that the tables belong together: the document-count
    entry is present and positive, no document frequency exceeds it, label
    ids are dense with distinct names, and the model scores at least every
    label the index names.

    Raises:
        ArtifactLoadError: If the tables are inconsistent.
    """

    dictionary: Dictionary
    document_frequency: DocumentFrequency
    label_index: LabelIndex
    model: WeightModel

    def __post_init__(self) -> None:
        for name in ("dictionary", "document_frequency", "label_index"):
            object.__setattr__(self, name, freeze(getattr(self, name)))
        self._check()

    def _check(self) -> None:
        def invalid(reason: str) -> ArtifactLoadError:
            return ArtifactLoadError(IN_MEMORY, reason)

        document_count = self.document_frequency.get(DOCUMENT_COUNT_KEY)
        if document_count is None:
            raise invalid(f"missing document-count entry (key {DOCUMENT_COUNT_KEY})")
        if document_count <= 0:
            raise invalid(f"document count must be positive, got {document_count}")
        for term_id, df in self.document_frequency.items():
            if not 0 <= df <= document_count:
                raise invalid(
                    f"document frequency of term {term_id} must be within "
                    f"0..{document_count}, got {df}"
                )

        if not self.label_index:
            raise invalid("label index is empty")
        if set(self.label_index) != set(range(len(self.label_index))):
            raise invalid(
                f"label ids must be 0..{len(self.label_index) - 1}, "
                f"got {sorted(self.label_index)}"
            )
        if len(set(self.label_index.values())) != len(self.label_index):
            raise invalid("label names must be distinct")
        if self.model.num_labels < len(self.label_index):
            raise invalid(
                f"model scores {self.model.num_labels} labels but the label "
                f"index names {len(self.label_index)}"
            )

    @property
    def document_count(self) -> int:
        return self.document_frequency[DOCUMENT_COUNT_KEY]

    @property
    def label_count(self) -> int:
        return len(self.label_index)


@dataclass
class ClassificationResult:
    """Outcome of classifying one document."""

    label: str
    label_id: int
    score: float
    scores: dict[int, float] = field(default_factory=dict)
    probabilities: dict[str, float] = field(default_factory=dict)
    label_names: dict[int, str] = field(default_factory=dict, repr=False)
    matched_terms: int = 0

    @property
    def confidence(self) -> float:
        return self.probabilities.get(self.label, 0.0)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "label_id": self.label_id,
            "score": self.score,
            "confidence": round(self.confidence, 4),
            "matched_terms": self.matched_terms,
            "scores": {str(k): v for k, v in self.scores.items()},
            "probabilities": {
                k: round(v, 4) for k, v in sorted(
                    self.probabilities.items(),
                    key=lambda x: x[1],
                    reverse=True,
                )
            },
        }
