"""CLI interface for travel pricing extraction"""
import asyncio
import json
import sys
import traceback
from pathlib import Path

import click

from .config import LOG_DIR, LOG_LEVEL
from .errors import OrchestrationError, ValidationError
from .export import export_filename, format_currency, serialize_result
from .extractor import ExtractionOrchestrator, ReplayExtractor, RunOutcome
from .lifecycle import Batch
from .llm_client import LLMClient
from .logging_setup import configure_logging
from .schema import ExtractionResult, describe

SUPPORTED_SUFFIXES = {'.pdf', '.txt', '.md'}


def load_batch(folder: Path) -> Batch:
    """Create a batch from the supported files of a folder"""
    batch = Batch()
    for path in sorted(folder.iterdir()):
        if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES:
            batch.add_document(path.read_bytes(), path.name)
    return batch


def print_summary(result: ExtractionResult) -> None:
    for location in result.locations:
        click.echo(f"{location.name}")
        for resort in location.resorts:
            click.echo(f"  {resort.resort_name} [{resort.location_type}, {resort.currency}]")
            for room in resort.rooms:
                click.echo(f"    stay      {room.type}: {format_currency(room.price, resort.currency)}")
            for activity in resort.activities:
                price = '-' if activity.price == 0 else format_currency(activity.price, resort.currency)
                included = ' (included)' if activity.is_included else ''
                click.echo(f"    activity  {activity.name}{included}: {price}")


def describe_error(error: OrchestrationError) -> str:
    kind = error.error_kind.value if isinstance(error, ValidationError) else error.kind
    return f"{kind}: {error}"


def finish(outcome: RunOutcome, output_dir: Path = None) -> None:
    """Print the outcome and save the export; exits with status 1 on failure"""
    if not outcome.ok:
        click.echo(describe_error(outcome.error), err=True)
        sys.exit(1)

    print_summary(outcome.result)
    if output_dir:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / export_filename()
        output_path.write_bytes(serialize_result(outcome.result))
        click.echo(f"Database saved to: {output_path}")


@click.group()
@click.option('--log-level', default=LOG_LEVEL, show_default=True, help='Logging level')
@click.option('--log-dir', type=click.Path(file_okay=False, path_type=Path),
              default=LOG_DIR, show_default=True, help='Directory for the log file')
def main(log_level: str, log_dir: Path):
    """Extract a normalized travel pricing database from PDF price sheets."""
    configure_logging(log_level, Path(log_dir))


@main.command()
@click.argument('pdf_folder', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('--output-dir', '-o',
              type=click.Path(file_okay=False, path_type=Path),
              help='Directory to save the exported database')
@click.option('--verbose', '-v', is_flag=True,
              help='Verbose output')
def run(pdf_folder: Path, output_dir: Path, verbose: bool):
    """
    Run one extraction over every document in PDF_FOLDER.

    \b
    travel-extract run /path/to/briefs --output-dir results
    """
    try:
        extractor = LLMClient()
    except Exception as e:
        click.echo(f"Error initializing extractor: {e}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(1)

    batch = load_batch(pdf_folder)
    click.echo(f"Found {len(batch)} document(s)")

    outcome = asyncio.run(ExtractionOrchestrator(extractor).run(batch))
    if verbose and outcome.error is not None and getattr(outcome.error, 'cause', None) is not None:
        traceback.print_exception(outcome.error.cause)
    finish(outcome, output_dir)


@main.command()
@click.argument('candidate_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--output-dir', '-o',
              type=click.Path(file_okay=False, path_type=Path),
              help='Directory to save the exported database')
def normalize(candidate_file: Path, output_dir: Path):
    """Validate and normalize a saved candidate JSON file."""
    batch = Batch()
    content = candidate_file.read_bytes()
    batch.add_document(content, candidate_file.name, 'application/json')

    orchestrator = ExtractionOrchestrator(ReplayExtractor(content))
    finish(asyncio.run(orchestrator.run(batch)), output_dir)


@main.command()
def schema():
    """Print the schema contract as JSON."""
    click.echo(json.dumps(describe(), indent=2, ensure_ascii=False))


if __name__ == '__main__':
    main()
