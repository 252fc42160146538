"""Shared test fixtures for bayes-doc-classifier tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bayes_doc_classifier.artifacts import ArtifactStore
from bayes_doc_classifier.models import ModelArtifacts, WeightModel

# The spam/ham toy model: "buy" and "cheap" lean towards spam, "now" is neutral.
SPAM_DICTIONARY = {"buy": 0, "now": 1, "cheap": 2}
SPAM_DOCUMENT_FREQUENCY = {0: 5, 1: 50, -1: 100}
SPAM_LABELS = {0: "spam", 1: "ham"}
SPAM_WEIGHTS = {
    0: {0: -1.0, 1: -3.0},
    1: {0: -2.0, 1: -2.0},
    2: {0: -1.0, 1: -3.0},
}


@pytest.fixture
def store() -> ArtifactStore:
    return ArtifactStore()


@pytest.fixture
def spam_model() -> WeightModel:
    return WeightModel(num_labels=2, weights=SPAM_WEIGHTS)


@pytest.fixture
def spam_artifacts(spam_model: WeightModel) -> ModelArtifacts:
    """The spam/ham artifacts, built in memory."""
    return ModelArtifacts(
        dictionary=SPAM_DICTIONARY,
        document_frequency=SPAM_DOCUMENT_FREQUENCY,
        label_index=SPAM_LABELS,
        model=spam_model,
    )


@pytest.fixture
def spam_files(tmp_path: Path) -> dict[str, Path]:
    """The spam/ham artifacts written to disk, plus a spammy input text."""
    paths = {
        "model": tmp_path / "model.json",
        "label_index": tmp_path / "labelindex.tsv",
        "dictionary": tmp_path / "dictionary.tsv",
        "document_frequency": tmp_path / "df-count.json",
        "input": tmp_path / "email.txt",
    }
    paths["model"].write_text(json.dumps({
        "num_labels": 2,
        "kind": "log",
        "weights": {
            str(t): {str(lbl): w for lbl, w in row.items()}
            for t, row in SPAM_WEIGHTS.items()
        },
    }), encoding="utf-8")
    paths["label_index"].write_text("0\tspam\n1\tham\n", encoding="utf-8")
    paths["dictionary"].write_text(
        "# term\tid\nbuy\t0\nnow\t1\ncheap\t2\n", encoding="utf-8"
    )
    paths["document_frequency"].write_text(
        json.dumps({"0": 5, "1": 50, "-1": 100}), encoding="utf-8"
    )
    paths["input"].write_text("Buy cheap now now", encoding="utf-8")
    return paths


@pytest.fixture
def spam_paths(spam_files: dict[str, Path]) -> tuple[Path, ...]:
    """The five locations in the order ``run`` expects them."""
    return (
        spam_files["model"],
        spam_files["label_index"],
        spam_files["dictionary"],
        spam_files["document_frequency"],
        spam_files["input"],
    )
