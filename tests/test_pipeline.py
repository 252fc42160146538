"""End-to-end tests for ClassifierPipeline."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bayes_doc_classifier.config import ClassifierConfig
from bayes_doc_classifier.errors import (
    ArtifactLoadError,
    TokenizationError,
    UnknownLabelError,
)
from bayes_doc_classifier.models import ModelArtifacts, PipelineState, WeightModel
from bayes_doc_classifier.pipeline import ClassifierPipeline, read_input_text
from bayes_doc_classifier.tokenizer import WhitespaceTokenizer

HAPPY_PATH = [
    PipelineState.UNINITIALIZED,
    PipelineState.ARTIFACTS_LOADED,
    PipelineState.TEXT_TOKENIZED,
    PipelineState.VECTOR_BUILT,
    PipelineState.SCORED,
    PipelineState.REPORTED,
    PipelineState.DONE,
]


@pytest.fixture
def pipeline() -> ClassifierPipeline:
    return ClassifierPipeline()


# ---------------------------------------------------------------------------
# run()
# ---------------------------------------------------------------------------

class TestRun:
    """Classifying documents from files."""

    def test_spam_scenario(self, pipeline: ClassifierPipeline, spam_paths):
        result = pipeline.run(*spam_paths)
        assert result.label == "spam"
        assert result.label_id == 0
        assert result.score == result.scores[0]
        assert result.scores[0] > result.scores[1]

    def test_one_score_per_indexed_label(self, pipeline: ClassifierPipeline, spam_paths):
        result = pipeline.run(*spam_paths)
        assert list(result.scores) == [0, 1]
        assert set(result.label_names.values()) == set(result.probabilities) == {"spam", "ham"}

    def test_state_history(self, pipeline: ClassifierPipeline, spam_paths):
        pipeline.run(*spam_paths)
        assert pipeline.state is PipelineState.DONE
        assert pipeline.history == HAPPY_PATH
        assert pipeline.failure is None

    def test_matched_terms_excludes_term_without_df(self, pipeline, spam_paths):
        # "cheap" is in the dictionary but has no document frequency.
        result = pipeline.run(*spam_paths)
        assert result.matched_terms == 2

    def test_probabilities(self, pipeline: ClassifierPipeline, spam_paths):
        result = pipeline.run(*spam_paths)
        assert set(result.probabilities) == {"spam", "ham"}
        assert sum(result.probabilities.values()) == pytest.approx(1.0)
        assert result.confidence > 0.5

    def test_parallel_load_gives_same_result(self, spam_paths):
        sequential = ClassifierPipeline().run(*spam_paths)
        parallel = ClassifierPipeline(ClassifierConfig(parallel_load=True)).run(*spam_paths)
        assert parallel.to_dict() == sequential.to_dict()

    def test_repeated_runs_are_identical(self, pipeline, spam_paths):
        first = pipeline.run(*spam_paths)
        second = pipeline.run(*spam_paths)
        assert first == second
        assert pipeline.history == HAPPY_PATH

    def test_permuted_text_same_scores(self, pipeline, spam_files, spam_paths):
        first = pipeline.run(*spam_paths)
        spam_files["input"].write_text("now Buy now cheap", encoding="utf-8")
        second = pipeline.run(*spam_paths)
        assert first.scores == second.scores

    def test_out_of_vocabulary_text(self, pipeline, spam_files, spam_paths):
        spam_files["input"].write_text("Lorem ipsum dolor sit amet", encoding="utf-8")
        results = [pipeline.run(*spam_paths) for _ in range(3)]
        assert all(r.scores == {0: 0.0, 1: 0.0} for r in results)
        assert all(r.label == "spam" for r in results)
        assert results[0].matched_terms == 0

    def test_empty_document(self, pipeline, spam_files, spam_paths):
        spam_files["input"].write_text("", encoding="utf-8")
        result = pipeline.run(*spam_paths)
        # All scores tie at zero, so the lowest label id wins.
        assert result.label_id == 0
        assert result.label == "spam"
        assert result.score == 0.0
        assert pipeline.state is PipelineState.DONE

    def test_empty_document_with_priors(self, pipeline, spam_files, spam_paths):
        spam_files["model"].write_text(json.dumps({
            "num_labels": 2,
            "weights": {},
            "label_prior": {"0": -1.2, "1": -0.4},
        }), encoding="utf-8")
        spam_files["input"].write_text("", encoding="utf-8")
        result = pipeline.run(*spam_paths)
        assert result.label == "ham"
        assert result.score == -0.4

    def test_raw_model(self, pipeline, spam_files, spam_paths):
        spam_files["model"].write_text(json.dumps({
            "num_labels": 2,
            "kind": "raw",
            "alpha_i": 1.0,
            "weights": {
                "0": {"0": 40.0, "1": 2.0},
                "1": {"0": 40.0, "1": 8.0},
                "2": {"0": 30.0, "1": 1.0},
            },
        }), encoding="utf-8")
        assert pipeline.run(*spam_paths).label == "spam"

    def test_custom_tokenizer(self, spam_paths):
        pipeline = ClassifierPipeline(tokenizer=WhitespaceTokenizer())
        assert pipeline.run(*spam_paths).label == "spam"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:
    """Errors move the pipeline to FAILED and propagate."""

    def test_missing_artifact(self, pipeline, spam_paths, tmp_path: Path):
        model, labels, _, df, text = spam_paths
        with pytest.raises(ArtifactLoadError):
            pipeline.run(model, labels, tmp_path / "missing.tsv", df, text)
        assert pipeline.state is PipelineState.FAILED
        assert pipeline.history == [PipelineState.UNINITIALIZED, PipelineState.FAILED]
        assert isinstance(pipeline.failure, ArtifactLoadError)

    def test_missing_sentinel(self, pipeline, spam_files, spam_paths):
        spam_files["document_frequency"].write_text(json.dumps({"0": 5}), encoding="utf-8")
        with pytest.raises(ArtifactLoadError, match="document-count"):
            pipeline.run(*spam_paths)

    def test_missing_input_text(self, pipeline, spam_paths, tmp_path: Path):
        with pytest.raises(TokenizationError):
            pipeline.run(*spam_paths[:4], tmp_path / "missing.txt")
        assert pipeline.history[-2] is PipelineState.ARTIFACTS_LOADED
        assert pipeline.state is PipelineState.FAILED

    def test_undecodable_input_text(self, pipeline, spam_files, spam_paths):
        spam_files["input"].write_bytes(b"buy \xff\xfe cheap")
        with pytest.raises(TokenizationError, match="Cannot read"):
            pipeline.run(*spam_paths)
        assert isinstance(pipeline.failure, TokenizationError)

    def test_unknown_label(self, pipeline, spam_files, spam_paths):
        # The model knows three labels, the index only two; label 2 wins.
        spam_files["model"].write_text(json.dumps({
            "num_labels": 3,
            "weights": {"0": {"2": 5.0}},
        }), encoding="utf-8")
        with pytest.raises(UnknownLabelError) as excinfo:
            pipeline.run(*spam_paths)
        assert excinfo.value.label_id == 2
        assert pipeline.history[-2] is PipelineState.SCORED
        assert pipeline.state is PipelineState.FAILED

    def test_model_missing_labels_of_index(self, pipeline, spam_files, spam_paths):
        spam_files["model"].write_text(json.dumps({
            "num_labels": 1,
            "weights": {"0": {"0": -1.0}},
        }), encoding="utf-8")
        with pytest.raises(ArtifactLoadError, match="label index names 2"):
            pipeline.run(*spam_paths)
        assert pipeline.history == [PipelineState.UNINITIALIZED, PipelineState.FAILED]

    def test_unexpected_error_moves_to_failed(self, spam_artifacts: ModelArtifacts):
        class BrokenTokenizer(WhitespaceTokenizer):
            def split(self, text):
                raise RuntimeError("tokenizer exploded")

        pipeline = ClassifierPipeline(tokenizer=BrokenTokenizer())
        with pytest.raises(RuntimeError, match="exploded"):
            pipeline.classify("buy now", spam_artifacts)
        assert pipeline.state is PipelineState.FAILED
        assert isinstance(pipeline.failure, RuntimeError)

    def test_recovers_after_failure(self, pipeline, spam_paths, tmp_path: Path):
        with pytest.raises(TokenizationError):
            pipeline.run(*spam_paths[:4], tmp_path / "missing.txt")
        result = pipeline.run(*spam_paths)
        assert result.label == "spam"
        assert pipeline.history == HAPPY_PATH


# ---------------------------------------------------------------------------
# classify() with shared artifacts
# ---------------------------------------------------------------------------

class TestClassifyWithSharedArtifacts:
    """Reusing loaded artifacts across requests."""

    def test_spam(self, spam_artifacts: ModelArtifacts):
        result = ClassifierPipeline().classify("Buy cheap now now", spam_artifacts)
        assert result.label == "spam"

    def test_matches_run(self, spam_artifacts: ModelArtifacts, spam_paths):
        from_files = ClassifierPipeline().run(*spam_paths)
        in_memory = ClassifierPipeline().classify("Buy cheap now now", spam_artifacts)
        assert in_memory.scores == from_files.scores

    def test_history(self, spam_artifacts: ModelArtifacts):
        pipeline = ClassifierPipeline()
        pipeline.classify("now", spam_artifacts)
        assert pipeline.history == HAPPY_PATH

    def test_tie_resolves_to_lowest_label_id(self):
        artifacts = ModelArtifacts(
            dictionary={"win": 0},
            document_frequency={0: 1, -1: 10},
            label_index={0: "first", 1: "second", 2: "third"},
            model=WeightModel(num_labels=3, weights={0: {2: -1.0, 1: -1.0, 0: -4.0}}),
        )
        result = ClassifierPipeline().classify("win", artifacts)
        assert result.label == "second"
        assert result.scores[1] == result.scores[2]

    def test_artifacts_unchanged_by_classification(self, spam_artifacts: ModelArtifacts):
        before = dict(spam_artifacts.dictionary), dict(spam_artifacts.document_frequency)
        ClassifierPipeline().classify("buy buy cheap unknown", spam_artifacts)
        assert (dict(spam_artifacts.dictionary), dict(spam_artifacts.document_frequency)) == before


class TestReadInputText:
    """Tests for reading the input document."""

    def test_reads_utf8(self, tmp_path: Path):
        path = tmp_path / "doc.txt"
        path.write_text("naïve café\n", encoding="utf-8")
        assert read_input_text(path) == "naïve café\n"

    def test_directory(self, tmp_path: Path):
        with pytest.raises(TokenizationError):
            read_input_text(tmp_path)
