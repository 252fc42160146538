"""Command-line interface for the Naive Bayes document classifier.

Usage::

    bayes-doc-classifier model.json labelindex.tsv dictionary.tsv df-count.tsv email.txt
    bayes-doc-classifier --output json model.json labelindex.tsv dictionary.tsv df-count.tsv email.txt
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import ClassifierConfig
from .errors import ClassifierError
from .models import ClassificationResult
from .pipeline import ClassifierPipeline
from .tokenizer import available_tokenizers
from .vectorizer import IDF_SCHEMES, TF_SCHEMES

console = Console()
err_console = Console(stderr=True)

USAGE = (
    "Naive Bayes Document Classifier\n"
    "Classifies an input text document into a class given a model, label index, "
    "dictionary, document frequency and input file\n"
    "Arguments: [model] [label_index] [dictionary] [document-frequency] [input-text-file]"
)


def _configure_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


@click.command()
@click.argument("locations", nargs=-1, type=click.Path(path_type=Path))
@click.option("--output", "-o", type=click.Choice(["text", "rich", "json"]), default="text",
              help="Output format.")
@click.option("--tokenizer", type=click.Choice(available_tokenizers()), default=None,
              help="Tokenizer strategy (default from BAYES_TOKENIZER or 'standard').")
@click.option("--tf-scheme", type=click.Choice(TF_SCHEMES), default=None,
              help="Term-frequency formula.")
@click.option("--idf-scheme", type=click.Choice(IDF_SCHEMES), default=None,
              help="Inverse-document-frequency formula.")
@click.option("--parallel/--sequential", default=None,
              help="Load the four artifacts concurrently.")
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr.")
@click.version_option(package_name="bayes-doc-classifier")
def main(
    locations: tuple[Path, ...],
    output: str,
    tokenizer: str | None,
    tf_scheme: str | None,
    idf_scheme: str | None,
    parallel: bool | None,
    verbose: bool,
) -> None:
    """Classify a text document with a pre-trained Naive Bayes model.

    Expects five locations: MODEL LABEL_INDEX DICTIONARY DOCUMENT_FREQUENCY
    INPUT_TEXT.
    """
    if len(locations) < 5:
        click.echo(USAGE)
        return

    try:
        config = ClassifierConfig.from_env()
        if tokenizer:
            config.tokenizer = tokenizer
        if tf_scheme:
            config.tf_scheme = tf_scheme
        if idf_scheme:
            config.idf_scheme = idf_scheme
        if parallel is not None:
            config.parallel_load = parallel
        config.validate()
    except ValueError as e:
        err_console.print(f"[bold red]Configuration error:[/] {e}")
        sys.exit(1)

    _configure_logging(logging.INFO if verbose else config.log_level_value)

    model, label_index, dictionary, document_frequency, input_text = locations[:5]
    pipeline = ClassifierPipeline(config)
    try:
        result = pipeline.run(model, label_index, dictionary, document_frequency, input_text)
    except ClassifierError as e:
        err_console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif output == "rich":
        _render_result(result)
    else:
        click.echo(f"Label: {result.label}")
        click.echo(f"Score: {result.score}")


def _render_result(result: ClassificationResult) -> None:
    """Render a ClassificationResult with rich formatting."""
    console.print(Panel(
        f"[bold]{result.label}[/]\n"
        f"Score: {result.score:.6f} | "
        f"Confidence: {result.confidence:.1%} | "
        f"Matched terms: {result.matched_terms}",
        title="Predicted class",
        border_style="blue",
    ))

    table = Table(title="Label scores")
    table.add_column("Id", justify="right", width=4)
    table.add_column("Label", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Prob.", justify="right", width=8)

    for label_id, score in result.scores.items():
        name = result.label_names.get(label_id, str(label_id))
        style = "bold green" if label_id == result.label_id else ""
        table.add_row(
            str(label_id),
            name,
            f"{score:.6f}",
            f"{result.probabilities.get(name, 0.0):.1%}",
            style=style,
        )
    console.print(table)


if __name__ == "__main__":
    main()
