"""End-to-end classification of one document.

``ClassifierPipeline`` walks a strictly linear sequence of states::

    UNINITIALIZED -> ARTIFACTS_LOADED -> TEXT_TOKENIZED -> VECTOR_BUILT
        -> SCORED -> REPORTED -> DONE

Any error moves it to ``FAILED``, including unexpected ones; the error is
kept on ``failure`` and re-raised to the caller. A run either returns a
complete result or raises.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .artifacts import ArtifactStore
from .config import ClassifierConfig
from .errors import TokenizationError, UnknownLabelError
from .models import ClassificationResult, ModelArtifacts, PipelineState
from .scorer import BayesScorer, best_label, probabilities
from .tokenizer import Tokenizer
from .vectorizer import vectorize

logger = logging.getLogger(__name__)


def read_input_text(location: str | Path) -> str:
    """Read a whole UTF-8 document.

    Raises:
        TokenizationError: If the file is missing, unreadable, or not UTF-8.
    """
    path = Path(location)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TokenizationError(f"Cannot read input text '{path}': {exc}") from exc


class ClassifierPipeline:
    """Loads artifacts, tokenizes, vectorizes, scores and picks a label.

    A pipeline instance handles one request at a time. The loaded
    :class:`ModelArtifacts` are read-only and can be shared by any number
    of pipelines.

    Example::

        pipeline = ClassifierPipeline()
        result = pipeline.run(
            "model.json", "labelindex.tsv", "dictionary.tsv",
            "df-count.tsv", "email.txt",
        )
        print(result.label, result.score)

    Args:
        config: Tokenizer, weighting and loading settings.
        tokenizer: Overrides the tokenizer named in ``config``.
        store: Artifact store used by :meth:`run`.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        tokenizer: Optional[Tokenizer] = None,
        store: Optional[ArtifactStore] = None,
    ) -> None:
        self.config = config or ClassifierConfig()
        self.tokenizer = tokenizer or self.config.build_tokenizer()
        self.store = store or ArtifactStore()
        self.weighting = self.config.weighting()
        self.state = PipelineState.UNINITIALIZED
        self.history: list[PipelineState] = [self.state]
        self.failure: Optional[Exception] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        model_path: str | Path,
        label_index_path: str | Path,
        dictionary_path: str | Path,
        document_frequency_path: str | Path,
        input_text_path: str | Path,
    ) -> ClassificationResult:
        """Classify the document at ``input_text_path``.

        Raises:
            ArtifactLoadError: If any artifact cannot be loaded.
            TokenizationError: If the input text cannot be read.
            UnknownLabelError: If the winning label id has no name.
            ScoringError: If scoring yields a non-finite value.
        """
        self._reset()
        try:
            artifacts = self.store.load_all(
                model_path,
                label_index_path,
                dictionary_path,
                document_frequency_path,
                parallel=self.config.parallel_load,
            )
            self._advance(PipelineState.ARTIFACTS_LOADED)
            text = read_input_text(input_text_path)
        except Exception as exc:
            self._fail(exc)
            raise
        return self._classify(text, artifacts)

    def classify(self, text: str, artifacts: ModelArtifacts) -> ClassificationResult:
        """Classify ``text`` against artifacts that are already loaded."""
        self._reset()
        self._advance(PipelineState.ARTIFACTS_LOADED)
        return self._classify(text, artifacts)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _classify(self, text: str, artifacts: ModelArtifacts) -> ClassificationResult:
        try:
            return self._run_stages(text, artifacts)
        except Exception as exc:
            self._fail(exc)
            raise

    def _run_stages(self, text: str, artifacts: ModelArtifacts) -> ClassificationResult:
        logger.info("Number of labels: %d", artifacts.label_count)
        logger.info("Number of documents in training set: %d", artifacts.document_count)
        if artifacts.model.num_labels > artifacts.label_count:
            logger.warning(
                "Model has %d labels but the label index names only %d",
                artifacts.model.num_labels,
                artifacts.label_count,
            )

        tokens = self.tokenizer.tokenize(text)
        self._advance(PipelineState.TEXT_TOKENIZED)

        vector = vectorize(
            tokens,
            artifacts.dictionary,
            artifacts.document_frequency,
            artifacts.document_count,
            self.weighting,
        )
        if not vector:
            logger.info("No token matched the trained vocabulary")
        self._advance(PipelineState.VECTOR_BUILT)

        scores = BayesScorer(artifacts.model).classify(vector)
        self._advance(PipelineState.SCORED)

        label_id, score = best_label(scores)
        label = artifacts.label_index.get(label_id)
        if label is None:
            raise UnknownLabelError(label_id)

        names = {lid: artifacts.label_index.get(lid, str(lid)) for lid in scores}
        result = ClassificationResult(
            label=label,
            label_id=label_id,
            score=score,
            scores=scores,
            probabilities={names[lid]: p for lid, p in probabilities(scores).items()},
            label_names=names,
            matched_terms=len(vector),
        )
        self._advance(PipelineState.REPORTED)
        logger.info("Class label: %s (score %s)", label, score)

        self._advance(PipelineState.DONE)
        return result

    # ------------------------------------------------------------------
    # State bookkeeping
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self.state = PipelineState.UNINITIALIZED
        self.history = [self.state]
        self.failure = None

    def _advance(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _fail(self, exc: Exception) -> None:
        logger.debug("Pipeline failed in state %s: %s", self.state.value, exc)
        self.failure = exc
        self._advance(PipelineState.FAILED)
