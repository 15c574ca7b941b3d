"""Command-line interface for llmfeeder."""

import argparse
import asyncio
import sys
from contextlib import nullcontext
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .batch import BatchOrchestrator
from .bridge import InMemoryBridge
from .core.service import LLMFeeder
from .errors import AllDocumentsFailed
from .logging_config import setup_logging
from .models.config import DEFAULT_METADATA_FORMAT, ContentScope, ConversionSettings, PipelineConfig
from .models.events import ConversionEvent, EventType
from .naming import export_filename
from .snapshot import PageSnapshot, load_snapshot

SCOPE_CHOICES = [scope.value for scope in ContentScope]


def _add_settings_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("conversion settings")
    group.add_argument(
        "--scope",
        choices=SCOPE_CHOICES,
        default=None,
        help="Content scope (default: mainContent)",
    )
    group.add_argument(
        "--no-tables",
        action="store_true",
        help="Flatten tables to text instead of Markdown tables",
    )
    group.add_argument(
        "--no-images",
        action="store_true",
        help="Drop images",
    )
    group.add_argument(
        "--title",
        action="store_true",
        help="Prepend the page title as a heading",
    )
    group.add_argument(
        "--metadata",
        nargs="?",
        const=DEFAULT_METADATA_FORMAT,
        default=None,
        metavar="FORMAT",
        help="Append a metadata block (placeholders: {title} {url} {date} {author} {siteName} {excerpt})",
    )
    group.add_argument(
        "--no-iframe-links",
        action="store_true",
        help="Remove unreachable iframes instead of linking to them",
    )
    group.add_argument(
        "--config",
        type=Path,
        metavar="YAML",
        help="Load conversion settings from a YAML file (flags override it)",
    )
    group.add_argument(
        "--pipeline-config",
        type=Path,
        metavar="YAML",
        help="Load pipeline limits and timeouts from a YAML file",
    )

    output_group = parser.add_argument_group("output control")
    output_group.add_argument(
        "--debug",
        action="store_true",
        help="Print the debug transcript of the last conversion to stderr",
    )
    output_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    output_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress output",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="llmfeeder",
        description="Convert web pages to clean Markdown for LLM prompts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert the main content of a page to stdout
  llmfeeder convert https://example.com/article

  # Full page with title and a metadata footer, written to a file
  llmfeeder convert page.html --scope fullPage --title --metadata -o page.md

  # Convert several pages into one merged file
  llmfeeder batch a.html b.html https://example.com -o merged.md

  # ... or into a ZIP archive, one file per page
  llmfeeder batch a.html b.html --zip exports/
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    convert_parser = subparsers.add_parser("convert", help="Convert a single page")
    convert_parser.add_argument("source", help="HTML file path or http(s) URL")
    convert_parser.add_argument(
        "--url",
        help="Original URL of a saved HTML file (used for links and metadata)",
    )
    convert_parser.add_argument(
        "--selection-file",
        type=Path,
        metavar="HTML",
        help="HTML fragment to use as the selection (implies --scope selection)",
    )
    convert_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output file, or directory to save {title}.md in (default: stdout)",
    )
    _add_settings_arguments(convert_parser)

    batch_parser = subparsers.add_parser("batch", help="Convert several pages")
    batch_parser.add_argument("sources", nargs="+", help="HTML file paths or http(s) URLs")
    destination = batch_parser.add_mutually_exclusive_group()
    destination.add_argument(
        "--zip",
        type=Path,
        metavar="DIR",
        help="Write a ZIP archive with one Markdown file per page to DIR",
    )
    destination.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write the merged Markdown to this file (default: stdout)",
    )
    _add_settings_arguments(batch_parser)

    return parser


def build_settings(args: argparse.Namespace) -> ConversionSettings:
    """Build conversion settings from a YAML file and command-line flags."""
    base = ConversionSettings.from_yaml_file(args.config) if args.config else ConversionSettings()

    overrides: dict = {}
    if args.scope:
        overrides["content_scope"] = ContentScope(args.scope)
    elif getattr(args, "selection_file", None):
        overrides["content_scope"] = ContentScope.SELECTION
    if args.no_tables:
        overrides["preserve_tables"] = False
    if args.no_images:
        overrides["include_images"] = False
    if args.title:
        overrides["include_title"] = True
    if args.metadata is not None:
        overrides["include_metadata"] = True
        overrides["metadata_format"] = args.metadata.replace("\\n", "\n")
    if args.no_iframe_links:
        overrides["preserve_iframe_links"] = False
    if args.debug:
        overrides["debug_mode"] = True

    return base.model_copy(update=overrides)


def _setup(args: argparse.Namespace) -> tuple[ConversionSettings, PipelineConfig]:
    if args.verbose:
        setup_logging("DEBUG")
    elif args.quiet:
        setup_logging("ERROR")
    else:
        setup_logging("WARNING")

    config = PipelineConfig.from_yaml_file(args.pipeline_config) if args.pipeline_config else PipelineConfig()
    return build_settings(args), config


def run_convert(args: argparse.Namespace) -> int:
    """Convert a single page."""
    console = Console(stderr=True)

    try:
        settings, config = _setup(args)
        if Path(args.source).is_file():
            selection = args.selection_file.read_text(encoding="utf-8") if args.selection_file else None
            snapshot = PageSnapshot.from_file(Path(args.source), url=args.url, selection_html=selection)
        else:
            snapshot = load_snapshot(args.source)
            if args.selection_file:
                snapshot = snapshot.with_selection(args.selection_file.read_text(encoding="utf-8"))
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    feeder = LLMFeeder(InMemoryBridge(), config)

    with console.status(f"Converting {snapshot.url}", spinner="dots") if not args.quiet else nullcontext():
        result = asyncio.run(feeder.convert(snapshot, settings))

    if args.debug:
        console.print(feeder.debug_log.get_logs(), markup=False, highlight=False)

    if not result.success:
        console.print(f"[red]Error:[/red] {result.error_message}")
        if result.details:
            console.print(f"  {result.details}", markup=False)
        return 1

    for warning in result.warnings:
        if not args.quiet:
            console.print(f"[yellow]Warning:[/yellow] {warning.type.value} ({warning.count or warning.message})")

    markdown = result.markdown or ""
    if args.output is None:
        sys.stdout.write(markdown + "\n")
    else:
        path = args.output
        if path.is_dir():
            path = path / export_filename(result.title)
        path.write_text(markdown, encoding="utf-8")
        if not args.quiet:
            console.print(f"[green]Saved:[/green] {path}")

    if not args.quiet:
        console.print(f"{result.token_count:,} tokens")
    return 0


def run_batch(args: argparse.Namespace) -> int:
    """Convert several pages and merge or archive the results."""
    console = Console(stderr=True)

    try:
        settings, config = _setup(args)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    feeder = LLMFeeder(InMemoryBridge(), config)
    orchestrator = BatchOrchestrator(feeder)

    async def run():
        if args.quiet:
            return await orchestrator.process_many(args.sources, settings)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Starting...", total=None)

            def on_event(event: ConversionEvent) -> None:
                if event.type == EventType.DOCUMENT_STARTED:
                    progress.update(
                        task,
                        description=f"[cyan]Converting {event.current}/{event.total}: {event.url}",
                    )
                elif event.is_error:
                    console.print(f"[red]Failed:[/red] {event.url} - {event.error}")
                elif event.type == EventType.BATCH_COMPLETED:
                    progress.update(task, description=f"[green]{event.message}")

            return await orchestrator.process_many(args.sources, settings, emit=on_event)

    results = asyncio.run(run())

    try:
        if args.zip:
            bundle = orchestrator.archive(results)
            path = orchestrator.archiver.write(bundle, args.zip)
            if not args.quiet:
                console.print(f"[green]Saved:[/green] {path}")
        else:
            merged = orchestrator.merge(results)
            if args.output is None:
                sys.stdout.write(merged + "\n")
            else:
                path = args.output
                path.write_text(merged, encoding="utf-8")
                if not args.quiet:
                    console.print(f"[green]Saved:[/green] {path}")
    except AllDocumentsFailed as e:
        console.print(f"[red]Error:[/red] {e.user_message}")
        return 1

    if not args.quiet:
        console.print(f"Converted {orchestrator.summary(results).message}")
    return 0 if results.summary.fail_count == 0 else 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "convert":
        return run_convert(args)
    if args.command == "batch":
        return run_batch(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
