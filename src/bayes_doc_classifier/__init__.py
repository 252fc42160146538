"""Bayes Document Classifier -- TF-IDF + Naive Bayes inference over trained artifacts."""

__version__ = "0.1.0"

from .artifacts import ArtifactStore
from .config import ClassifierConfig
from .errors import (
    ArtifactLoadError,
    ClassifierError,
    ScoringError,
    TokenizationError,
    UnknownLabelError,
)
from .models import (
    DOCUMENT_COUNT_KEY,
    ClassificationResult,
    ModelArtifacts,
    PipelineState,
    WeightModel,
)
from .pipeline import ClassifierPipeline, read_input_text
from .scorer import BayesScorer, best_label, materialize, probabilities
from .tokenizer import (
    RegexTokenizer,
    StandardTokenizer,
    TokenStream,
    Tokenizer,
    WhitespaceTokenizer,
    get_tokenizer,
)
from .vectorizer import TfidfWeighting, Vectorizer, vectorize

__all__ = [
    # Pipeline
    "ClassifierPipeline",
    "ClassificationResult",
    "PipelineState",
    "ClassifierConfig",
    "read_input_text",
    # Artifacts
    "ArtifactStore",
    "ModelArtifacts",
    "WeightModel",
    "DOCUMENT_COUNT_KEY",
    # Tokenization
    "Tokenizer",
    "TokenStream",
    "StandardTokenizer",
    "RegexTokenizer",
    "WhitespaceTokenizer",
    "get_tokenizer",
    # Vectorization
    "TfidfWeighting",
    "Vectorizer",
    "vectorize",
    # Scoring
    "BayesScorer",
    "best_label",
    "materialize",
    "probabilities",
    # Errors
    "ClassifierError",
    "ArtifactLoadError",
    "TokenizationError",
    "UnknownLabelError",
    "ScoringError",
]
