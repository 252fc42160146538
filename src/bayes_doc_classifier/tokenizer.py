"""Pluggable word tokenizers.

Every strategy turns raw text into a lazy, restartable stream of lowercase
word tokens. Tokens that are empty after normalization (pure punctuation,
stray quotes) never appear in the stream.
"""

from __future__ import annotations

import re
import string
import unicodedata
from abc import ABC, abstractmethod
from typing import Iterator, Union

from .errors import TokenizationError

# Stop words removed by the classic Lucene StandardAnalyzer.
ENGLISH_STOP_WORDS: frozenset[str] = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "if",
    "in", "into", "is", "it", "no", "not", "of", "on", "or", "such", "that",
    "the", "their", "then", "there", "these", "they", "this", "to", "was",
    "will", "with",
})

# Letters or digits, allowing inner apostrophes ("don't", "o'neill").
_UNICODE_WORD_RE = re.compile(r"[^\W_]+(?:['’][^\W_]+)*")

_DEFAULT_WORD_RE = re.compile(r"\b[a-zA-Z][a-zA-Z'-]*[a-zA-Z]\b|\b[a-zA-Z]\b")

_PUNCTUATION = string.punctuation + "‘’“”–—"

MAX_TOKEN_LENGTH = 255


class TokenStream:
    """Restartable token sequence over a single text.

    Iterating twice re-runs the tokenizer, so both passes see the same tokens.
    """

    def __init__(self, tokenizer: "Tokenizer", text: str) -> None:
        self._tokenizer = tokenizer
        self._text = text

    def __iter__(self) -> Iterator[str]:
        for raw in self._tokenizer.split(self._text):
            token = self._tokenizer.normalize(raw)
            if token and self._tokenizer.accept(token):
                yield token

    def __repr__(self) -> str:
        return f"TokenStream({self._tokenizer.name!r}, {len(self._text)} chars)"


class Tokenizer(ABC):
    """Abstract base class for tokenization strategies.

    Subclasses implement ``split``; normalization and filtering hooks have
    sensible defaults.
    """

    name: str = ""

    @abstractmethod
    def split(self, text: str) -> Iterator[str]:
        """Yield raw word candidates from ``text``."""
        ...

    def normalize(self, token: str) -> str:
        return token.strip().lower()

    def accept(self, token: str) -> bool:
        return True

    def tokenize(self, text: Union[str, bytes]) -> TokenStream:
        """Return the token stream for ``text``.

        Args:
            text: Document text. Bytes are decoded as strict UTF-8.

        Raises:
            TokenizationError: If bytes are not valid UTF-8 or the input is
                neither ``str`` nor ``bytes``.
        """
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise TokenizationError(f"Input is not valid UTF-8: {exc}") from exc
        if not isinstance(text, str):
            raise TokenizationError(
                f"Cannot tokenize object of type {type(text).__name__}"
            )
        return TokenStream(self, text)


class StandardTokenizer(Tokenizer):
    """Unicode word tokenizer with English stop-word removal.

    Args:
        stop_words: Words to drop after lowercasing. Pass an empty set to
            keep everything.
        max_token_length: Longer tokens are discarded.
    """

    name = "standard"

    def __init__(
        self,
        stop_words: frozenset[str] | set[str] | None = None,
        max_token_length: int = MAX_TOKEN_LENGTH,
    ) -> None:
        self.stop_words = frozenset(ENGLISH_STOP_WORDS if stop_words is None else stop_words)
        self.max_token_length = max_token_length

    def split(self, text: str) -> Iterator[str]:
        text = unicodedata.normalize("NFKC", text)
        for match in _UNICODE_WORD_RE.finditer(text):
            yield match.group()

    def normalize(self, token: str) -> str:
        return token.lower().replace("’", "'")

    def accept(self, token: str) -> bool:
        return len(token) <= self.max_token_length and token not in self.stop_words


class RegexTokenizer(Tokenizer):
    """Tokenizer driven by a single word regex."""

    name = "regex"

    def __init__(self, pattern: str | re.Pattern[str] = _DEFAULT_WORD_RE) -> None:
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def split(self, text: str) -> Iterator[str]:
        for match in self.pattern.finditer(text):
            yield match.group()


class WhitespaceTokenizer(Tokenizer):
    """Split on whitespace and strip surrounding punctuation."""

    name = "whitespace"

    def split(self, text: str) -> Iterator[str]:
        return iter(text.split())

    def normalize(self, token: str) -> str:
        return token.strip(_PUNCTUATION).lower()


_TOKENIZERS: dict[str, type[Tokenizer]] = {
    StandardTokenizer.name: StandardTokenizer,
    RegexTokenizer.name: RegexTokenizer,
    WhitespaceTokenizer.name: WhitespaceTokenizer,
}


def available_tokenizers() -> list[str]:
    return sorted(_TOKENIZERS)


def get_tokenizer(name: str = "standard", **kwargs) -> Tokenizer:
    """Instantiate a tokenization strategy by name.

    Args:
        name: One of ``standard``, ``regex`` or ``whitespace``.
        **kwargs: Passed to the strategy constructor.

    Raises:
        ValueError: If no strategy has that name.
    """
    try:
        cls = _TOKENIZERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown tokenizer '{name}'. "
            f"Available: {', '.join(available_tokenizers())}"
        ) from None
    return cls(**kwargs)
