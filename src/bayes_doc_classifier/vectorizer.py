"""TF-IDF vectorization against a pre-trained vocabulary.

The default weighting mirrors the Lucene similarity that produced the
training vectors:

    tf  = sqrt(count)
    idf = 1 + ln(N / (df + 1))

where ``N`` is the training document count. Both factors are non-negative
whenever ``df <= N``, and the weight grows as ``df`` shrinks. The idf is
clamped at 0 so inconsistent in-memory tables never yield negative weights.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from .models import Dictionary, DocumentFrequency, FeatureVector

logger = logging.getLogger(__name__)

TF_SCHEMES = ("sqrt", "raw", "log", "frequency")
IDF_SCHEMES = ("lucene", "smooth", "plain")


@dataclass(frozen=True)
class TfidfWeighting:
    """TF-IDF formula selection.

    Args:
        tf_scheme: ``sqrt`` (default), ``raw`` count, ``log`` for
            ``1 + ln(tf)``, or ``frequency`` for ``tf / document_length``.
        idf_scheme: ``lucene`` for ``1 + ln(N / (df + 1))`` (default),
            ``smooth`` for ``ln(1 + N / df)``, or ``plain`` for
            ``ln(N / df)`` clamped at zero.
        normalize: Scale the finished vector to unit L2 norm.
    """

    tf_scheme: str = "sqrt"
    idf_scheme: str = "lucene"
    normalize: bool = False

    def __post_init__(self) -> None:
        if self.tf_scheme not in TF_SCHEMES:
            raise ValueError(
                f"Unknown tf scheme '{self.tf_scheme}'. Known: {', '.join(TF_SCHEMES)}"
            )
        if self.idf_scheme not in IDF_SCHEMES:
            raise ValueError(
                f"Unknown idf scheme '{self.idf_scheme}'. Known: {', '.join(IDF_SCHEMES)}"
            )

    def tf(self, count: int, length: int) -> float:
        if count <= 0:
            return 0.0
        if self.tf_scheme == "sqrt":
            return math.sqrt(count)
        if self.tf_scheme == "log":
            return 1.0 + math.log(count)
        if self.tf_scheme == "frequency":
            return count / length if length > 0 else 0.0
        return float(count)

    def idf(self, df: int, document_count: int) -> float:
        if self.idf_scheme == "lucene":
            return max(0.0, 1.0 + math.log(document_count / (df + 1)))
        # A df of zero would divide by zero; treat it like a term seen once.
        df = max(df, 1)
        if self.idf_scheme == "smooth":
            return math.log(1.0 + document_count / df)
        return max(0.0, math.log(document_count / df))

    def tfidf(self, count: int, df: int, length: int, document_count: int) -> float:
        """Weight of a term seen ``count`` times in a document of ``length``
        retained tokens, given its document frequency ``df`` out of
        ``document_count`` training documents."""
        return self.tf(count, length) * self.idf(df, document_count)


DEFAULT_WEIGHTING = TfidfWeighting()


def vectorize(
    tokens: Iterable[str],
    dictionary: Dictionary,
    document_frequency: DocumentFrequency,
    document_count: int,
    weighting: TfidfWeighting | None = None,
) -> FeatureVector:
    """Build the sparse TF-IDF vector of a tokenized document.

    Tokens missing from ``dictionary`` are skipped, and so are dictionary
    terms without a document frequency. Neither input table is modified.

    Args:
        tokens: Normalized tokens of one document.
        dictionary: Term to term-id mapping from training.
        document_frequency: Term-id to training document frequency.
        document_count: Number of training documents (must be >= 1).
        weighting: Formula selection; defaults to sqrt tf with Lucene idf.

    Returns:
        Mapping of term-id to non-negative weight. Empty when no token
        matched the vocabulary.

    Raises:
        ValueError: If ``document_count`` is smaller than 1.
    """
    if document_count < 1:
        raise ValueError(f"document_count must be >= 1, got {document_count}")
    weighting = weighting or DEFAULT_WEIGHTING

    term_counts: Counter[int] = Counter()
    for token in tokens:
        term_id = dictionary.get(token)
        if term_id is not None:
            term_counts[term_id] += 1
    length = sum(term_counts.values())

    vector: FeatureVector = {}
    # Sorted so the vector's iteration order never depends on token order.
    for term_id in sorted(term_counts):
        df = document_frequency.get(term_id)
        if df is None:
            logger.debug("Term id %d has no document frequency; skipped", term_id)
            continue
        vector[term_id] = weighting.tfidf(
            term_counts[term_id], df, length, document_count
        )

    if weighting.normalize and vector:
        norm = math.sqrt(sum(w ** 2 for w in vector.values())) or 1.0
        vector = {t: w / norm for t, w in vector.items()}

    return vector


@dataclass
class Vectorizer:
    """Binds a vocabulary and document-frequency table to a weighting."""

    dictionary: Dictionary
    document_frequency: DocumentFrequency
    document_count: int
    weighting: TfidfWeighting = DEFAULT_WEIGHTING

    def transform(self, tokens: Iterable[str]) -> FeatureVector:
        return vectorize(
            tokens,
            self.dictionary,
            self.document_frequency,
            self.document_count,
            self.weighting,
        )
