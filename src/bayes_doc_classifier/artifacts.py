"""Loading and saving of the four model artifact tables.

Tables are key/value files in one of two encodings, chosen by extension:

- ``.json``: a single JSON object. Integer keys are written as strings.
- ``.tsv`` / ``.txt``: one ``key<TAB>value`` pair per line. Blank lines and
  lines starting with ``#`` are ignored. Writers refuse keys and values
  that would not read back unchanged (tabs, line breaks, surrounding
  whitespace, or a key starting with ``#``).

The weight model is always JSON::

    {
      "num_labels": 2,
      "kind": "log",            # or "raw" for summed training weights
      "weights": {"0": {"0": -1.2, "1": -2.3}, ...},
      "label_prior": {"0": -0.69, "1": -0.69},   # optional
      "alpha_i": 1.0,           # raw models only
      "complementary": false
    }

Every loader materializes the whole table and returns read-only mappings.
"""

from __future__ import annotations

import json
import logging
import math
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Callable, Mapping

from .errors import ArtifactLoadError
from .models import (
    DOCUMENT_COUNT_KEY,
    Dictionary,
    DocumentFrequency,
    LabelIndex,
    ModelArtifacts,
    WeightModel,
    freeze,
)
from .scorer import materialize

logger = logging.getLogger(__name__)

JSON_SUFFIXES = (".json",)
TSV_SUFFIXES = (".tsv", ".txt")


# ---------------------------------------------------------------------------
# Value conversion helpers
# ---------------------------------------------------------------------------

def _as_int(value: Any, path: Path, what: str) -> int:
    if isinstance(value, bool):
        raise ArtifactLoadError(path, f"{what} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ArtifactLoadError(path, f"{what} must be an integer, got {value!r}")


def _as_float(value: Any, path: Path, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ArtifactLoadError(path, f"{what} must be a number, got {value!r}")
    try:
        number = float(value)
    except ValueError:
        raise ArtifactLoadError(path, f"{what} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ArtifactLoadError(path, f"{what} must be finite, got {value!r}")
    return number


def _as_mapping(value: Any, path: Path, what: str) -> Mapping:
    if not isinstance(value, dict):
        raise ArtifactLoadError(path, f"{what} must be a JSON object")
    return value


def _check_tsv_field(text: str, what: str, comment_sensitive: bool = False) -> None:
    """Reject text that would not read back unchanged from a TSV line."""
    if not text:
        raise ValueError(f"Cannot write an empty {what} to a TSV table")
    if "\t" in text or len(text.splitlines()) > 1 or text != text.strip():
        raise ValueError(
            f"TSV {what} {text!r} contains a tab, a line break or surrounding whitespace"
        )
    if comment_sensitive and text.startswith("#"):
        raise ValueError(f"TSV {what} {text!r} would be read back as a comment")


class ArtifactStore:
    """Reads and writes the dictionary, document-frequency, label-index and
    weight-model tables.

    The store holds no state of its own; every call reads or writes exactly
    one location.

    Example::

        store = ArtifactStore()
        artifacts = store.load_all(
            "model.json", "labelindex.tsv", "dictionary.tsv", "df-count.tsv"
        )
        print(artifacts.document_count)
    """

    encoding = "utf-8"

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_dictionary(self, location: str | Path) -> Dictionary:
        """Load the term -> term-id table.

        Raises:
            ArtifactLoadError: On unreadable files, malformed entries,
                negative ids, or two terms sharing an id.
        """
        path = Path(location)
        dictionary: dict[str, int] = {}
        seen_ids: set[int] = set()
        for term, raw_id in self._read_table(path):
            term = str(term)
            if not term:
                raise ArtifactLoadError(path, "dictionary contains an empty term")
            term_id = _as_int(raw_id, path, f"term id of '{term}'")
            if term_id < 0:
                raise ArtifactLoadError(path, f"term id of '{term}' is negative: {term_id}")
            if term_id in seen_ids:
                raise ArtifactLoadError(path, f"term id {term_id} is assigned twice")
            seen_ids.add(term_id)
            dictionary[term] = term_id

        logger.info("Loaded dictionary with %d terms from %s", len(dictionary), path)
        return freeze(dictionary)

    def load_document_frequency(self, location: str | Path) -> DocumentFrequency:
        """Load the term-id -> document frequency table.

        The table must contain the ``-1`` sentinel holding the number of
        training documents. That number must be positive and no term may
        appear in more documents than it.
        """
        path = Path(location)
        frequencies: dict[int, int] = {}
        for raw_id, raw_df in self._read_table(path):
            term_id = _as_int(raw_id, path, "document-frequency key")
            df = _as_int(raw_df, path, f"document frequency of term {term_id}")
            if df < 0:
                raise ArtifactLoadError(
                    path, f"document frequency of term {term_id} is negative: {df}"
                )
            frequencies[term_id] = df

        document_count = frequencies.get(DOCUMENT_COUNT_KEY)
        if document_count is None:
            raise ArtifactLoadError(
                path, f"missing document-count entry (key {DOCUMENT_COUNT_KEY})"
            )
        if document_count <= 0:
            raise ArtifactLoadError(
                path, f"document count must be positive, got {document_count}"
            )
        for term_id, df in frequencies.items():
            if df > document_count:
                raise ArtifactLoadError(
                    path,
                    f"document frequency of term {term_id} ({df}) exceeds "
                    f"the document count ({document_count})",
                )

        logger.info(
            "Loaded document frequencies for %d terms (%d training documents) from %s",
            len(frequencies) - 1,
            document_count,
            path,
        )
        return freeze(frequencies)

    def load_label_index(self, location: str | Path) -> LabelIndex:
        """Load the label-id -> label name table.

        Label ids must be dense, i.e. exactly ``0 .. n-1``, and names
        must be distinct.
        """
        path = Path(location)
        labels: dict[int, str] = {}
        for raw_id, name in self._read_table(path):
            label_id = _as_int(raw_id, path, "label id")
            if not isinstance(name, str) or not name.strip():
                raise ArtifactLoadError(path, f"label {label_id} has no name")
            if name in labels.values():
                raise ArtifactLoadError(path, f"label name '{name}' is used twice")
            labels[label_id] = name

        if not labels:
            raise ArtifactLoadError(path, "label index is empty")
        if set(labels) != set(range(len(labels))):
            raise ArtifactLoadError(
                path, f"label ids must be 0..{len(labels) - 1}, got {sorted(labels)}"
            )

        logger.info("Loaded %d labels from %s", len(labels), path)
        return freeze(dict(sorted(labels.items())))

    def load_weight_model(self, location: str | Path) -> WeightModel:
        """Load and materialize the (term-id, label-id) weight model."""
        path = Path(location)
        if path.suffix.lower() not in JSON_SUFFIXES:
            raise ArtifactLoadError(path, "weight model must be a .json file")
        data = _as_mapping(self._read_json(path), path, "weight model")

        num_labels = _as_int(data.get("num_labels"), path, "num_labels")
        if num_labels < 1:
            raise ArtifactLoadError(path, f"num_labels must be >= 1, got {num_labels}")
        kind = data.get("kind", "log")
        if kind not in ("log", "raw"):
            raise ArtifactLoadError(path, f"unknown model kind {kind!r}")
        complementary = data.get("complementary", False)
        if not isinstance(complementary, bool):
            raise ArtifactLoadError(path, "complementary must be true or false")

        def label_id_of(raw: Any) -> int:
            label_id = _as_int(raw, path, "label id")
            if not 0 <= label_id < num_labels:
                raise ArtifactLoadError(
                    path, f"label id {label_id} outside 0..{num_labels - 1}"
                )
            return label_id

        weights: dict[int, dict[int, float]] = {}
        for raw_term, raw_row in _as_mapping(data.get("weights"), path, "weights").items():
            term_id = _as_int(raw_term, path, "term id")
            row: dict[int, float] = {}
            for raw_label, raw_weight in _as_mapping(raw_row, path, f"weights of term {term_id}").items():
                label_id = label_id_of(raw_label)
                weight = _as_float(raw_weight, path, f"weight({term_id}, {label_id})")
                if kind == "raw" and weight < 0:
                    raise ArtifactLoadError(
                        path, f"raw weight({term_id}, {label_id}) is negative"
                    )
                row[label_id] = weight
            weights[term_id] = row

        label_prior: dict[int, float] = {}
        if data.get("label_prior") is not None:
            for raw_label, raw_prior in _as_mapping(data["label_prior"], path, "label_prior").items():
                label_id = label_id_of(raw_label)
                label_prior[label_id] = _as_float(raw_prior, path, f"prior of label {label_id}")

        if kind == "raw":
            alpha_i = _as_float(data.get("alpha_i", 1.0), path, "alpha_i")
            if alpha_i <= 0:
                raise ArtifactLoadError(path, f"alpha_i must be positive, got {alpha_i}")
            model = materialize(
                weights,
                num_labels,
                alpha_i=alpha_i,
                complementary=complementary,
                label_prior=label_prior,
            )
        else:
            model = WeightModel(
                num_labels=num_labels,
                weights=weights,
                label_prior=label_prior,
                complementary=complementary,
            )

        logger.info(
            "Loaded %s weight model with %d terms and %d labels from %s",
            kind,
            model.num_terms,
            model.num_labels,
            path,
        )
        return model

    def load_all(
        self,
        model_path: str | Path,
        label_index_path: str | Path,
        dictionary_path: str | Path,
        document_frequency_path: str | Path,
        parallel: bool = False,
    ) -> ModelArtifacts:
        """Load all four tables into one :class:`ModelArtifacts` bundle.

        Args:
            parallel: Read the tables on a four-worker thread pool. The
                result is identical either way.

        Raises:
            ArtifactLoadError: For the first table that fails to load.
        """
        jobs: dict[str, tuple[Callable[[Path], Any], Path]] = {
            "model": (self.load_weight_model, Path(model_path)),
            "label_index": (self.load_label_index, Path(label_index_path)),
            "dictionary": (self.load_dictionary, Path(dictionary_path)),
            "document_frequency": (self.load_document_frequency, Path(document_frequency_path)),
        }

        if parallel:
            with ThreadPoolExecutor(max_workers=len(jobs), thread_name_prefix="artifact") as pool:
                futures = {name: pool.submit(fn, path) for name, (fn, path) in jobs.items()}
                done, pending = wait(futures.values(), return_when=FIRST_EXCEPTION)
                for future in pending:
                    future.cancel()
                for name, future in futures.items():
                    if future in done and future.exception() is not None:
                        raise future.exception()
                tables = {name: future.result() for name, future in futures.items()}
        else:
            tables = {name: fn(path) for name, (fn, path) in jobs.items()}

        try:
            return ModelArtifacts(**tables)
        except ArtifactLoadError as exc:
            # Each table is valid on its own, so the model disagrees with the index.
            raise ArtifactLoadError(jobs["model"][1], exc.reason) from None

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save_dictionary(self, dictionary: Mapping[str, int], location: str | Path) -> None:
        self._write_table(
            Path(location), sorted(dictionary.items(), key=lambda item: item[1])
        )

    def save_document_frequency(
        self, document_frequency: Mapping[int, int], location: str | Path
    ) -> None:
        self._write_table(Path(location), sorted(document_frequency.items()))

    def save_label_index(self, label_index: Mapping[int, str], location: str | Path) -> None:
        self._write_table(Path(location), sorted(label_index.items()))

    def save_weight_model(self, model: WeightModel, location: str | Path) -> None:
        path = Path(location)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding=self.encoding) as f:
            json.dump(model.to_dict(), f, indent=2)

    # ------------------------------------------------------------------
    # Encoding helpers
    # ------------------------------------------------------------------

    def _read_text(self, path: Path) -> str:
        if not path.exists():
            raise ArtifactLoadError(path, "file not found")
        if not path.is_file():
            raise ArtifactLoadError(path, "not a regular file")
        try:
            return path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise ArtifactLoadError(path, f"unreadable: {exc}") from exc

    def _read_json(self, path: Path) -> Any:
        text = self._read_text(path)
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ArtifactLoadError(path, f"malformed JSON: {exc}") from exc

    def _read_table(self, path: Path) -> list[tuple[Any, Any]]:
        """Read a key/value table as a list of raw (key, value) pairs."""
        suffix = path.suffix.lower()
        if suffix in JSON_SUFFIXES:
            data = _as_mapping(self._read_json(path), path, "table")
            return list(data.items())
        if suffix not in TSV_SUFFIXES:
            raise ArtifactLoadError(
                path,
                f"unsupported extension '{path.suffix}'. "
                f"Supported: {', '.join(JSON_SUFFIXES + TSV_SUFFIXES)}",
            )

        pairs: list[tuple[Any, Any]] = []
        for lineno, line in enumerate(self._read_text(path).splitlines(), 1):
            if not line.strip() or line.startswith("#"):
                continue
            key, sep, value = line.partition("\t")
            if not sep:
                raise ArtifactLoadError(path, f"line {lineno}: expected key<TAB>value")
            pairs.append((key.strip(), value.strip()))
        return pairs

    def _write_table(self, path: Path, items: list[tuple[Any, Any]]) -> None:
        suffix = path.suffix.lower()
        path.parent.mkdir(parents=True, exist_ok=True)
        if suffix in JSON_SUFFIXES:
            with open(path, "w", encoding=self.encoding) as f:
                json.dump({str(k): v for k, v in items}, f, indent=2, ensure_ascii=False)
        elif suffix in TSV_SUFFIXES:
            for k, v in items:
                _check_tsv_field(str(k), "key", comment_sensitive=True)
                _check_tsv_field(str(v), "value")
            lines = [f"{k}\t{v}" for k, v in items]
            path.write_text("\n".join(lines) + "\n", encoding=self.encoding)
        else:
            raise ValueError(
                f"Unsupported table extension '{path.suffix}'. "
                f"Supported: {', '.join(JSON_SUFFIXES + TSV_SUFFIXES)}"
            )
