"""Runtime configuration.

Settings come from keyword arguments or from ``BAYES_*`` environment
variables (a ``.env`` file in the working directory is honoured)::

    BAYES_TOKENIZER=standard
    BAYES_TF_SCHEME=sqrt
    BAYES_IDF_SCHEME=lucene
    BAYES_NORMALIZE=false
    BAYES_PARALLEL_LOAD=false
    BAYES_LOG_LEVEL=WARNING
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .tokenizer import Tokenizer, available_tokenizers, get_tokenizer
from .vectorizer import IDF_SCHEMES, TF_SCHEMES, TfidfWeighting

ENV_PREFIX = "BAYES_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass
class ClassifierConfig:
    """Settings for tokenization, weighting, loading and logging.

    Args:
        tokenizer: Tokenizer strategy name.
        tf_scheme: Term-frequency variant (see :class:`TfidfWeighting`).
        idf_scheme: Inverse-document-frequency variant.
        normalize: L2-normalize feature vectors.
        parallel_load: Load the four artifacts concurrently.
        log_level: Logging level name used by the CLI.
    """

    tokenizer: str = "standard"
    tf_scheme: str = "sqrt"
    idf_scheme: str = "lucene"
    normalize: bool = False
    parallel_load: bool = False
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ``ValueError`` describing the first invalid setting."""
        if self.tokenizer not in available_tokenizers():
            raise ValueError(
                f"Unknown tokenizer '{self.tokenizer}'. "
                f"Available: {', '.join(available_tokenizers())}"
            )
        if self.tf_scheme not in TF_SCHEMES:
            raise ValueError(f"Unknown tf scheme '{self.tf_scheme}'")
        if self.idf_scheme not in IDF_SCHEMES:
            raise ValueError(f"Unknown idf scheme '{self.idf_scheme}'")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level '{self.log_level}'")

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    def weighting(self) -> TfidfWeighting:
        return TfidfWeighting(
            tf_scheme=self.tf_scheme,
            idf_scheme=self.idf_scheme,
            normalize=self.normalize,
        )

    def build_tokenizer(self) -> Tokenizer:
        return get_tokenizer(self.tokenizer)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
    ) -> "ClassifierConfig":
        """Build a configuration from ``BAYES_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            dotenv: Load a ``.env`` file first (only when reading
                ``os.environ``).
        """
        if environ is None:
            if dotenv:
                load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        def get(name: str, default: str) -> str:
            return environ.get(ENV_PREFIX + name, default)

        return cls(
            tokenizer=get("TOKENIZER", "standard"),
            tf_scheme=get("TF_SCHEME", "sqrt"),
            idf_scheme=get("IDF_SCHEME", "lucene"),
            normalize=_parse_bool(ENV_PREFIX + "NORMALIZE", get("NORMALIZE", "false")),
            parallel_load=_parse_bool(ENV_PREFIX + "PARALLEL_LOAD", get("PARALLEL_LOAD", "false")),
            log_level=get("LOG_LEVEL", "WARNING"),
        )
