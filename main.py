"""
Mentionkit CLI Entry Point.

This module implements a developer command-line interface around the mention
rewriting pipeline. It is meant for trying out how dictated text will be
rewritten for a given editor or assistant without going through a dictation
session, and for inspecting what the workspace index sees.

Commands:

1.  **rewrite**: Rewrites file mentions in a piece of text for a target app
    (e.g. "open app coordinator dot swift" -> "open @Services/AppCoordinator.swift").
2.  **resolve**: Resolves a single mention and prints every candidate with its score.
3.  **tree**: Prints the workspace tree summary handed to language model prompts.
4.  **insights**: Prints workspace confidence, the active document and file tag candidates.

Usage:
    Run directly as a script or via the installed entry point.

    $ mentionkit rewrite "open app coordinator dot swift" --root . --app Cursor

Dependencies:
    - Typer: CLI argument parsing and app structure.
    - Rich: Terminal output, colors and tables.
    - Inquirer: Interactive terminal user prompts.
    - structlog: Diagnostics from the pipeline (enabled with --verbose).
"""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich import print as pr
from rich.markup import escape
from rich.table import Table
import inquirer  # type: ignore
from inquirer.themes import GreenPassion  # type: ignore

from adapters.filesystem import LocalFileSystemProvider
from constants import APP_CAPABILITIES, MAX_FILE_TAG_CANDIDATES
from core import workspace
from core.config import MentionFormatterConfig
from core.exceptions import WorkspaceIndexError
from core.file_index import WorkspaceFileIndex
from core.formatter import MentionFormatter
from core.models import Ambiguous, PathCandidate, Resolved, Unresolved
from core.resolver import PathMentionResolver
from core.rewrite import MentionRewriteService
from models import SupportedApp
from utils import configure_logging, console

app = typer.Typer(help="Resolve spoken file mentions into editor mention syntax.")

RootsOption = Annotated[
    list[str] | None,
    typer.Option(
        "--root",
        "-r",
        help="Workspace root (repeatable). Defaults to the current working directory.",
    ),
]
ActiveDocumentOption = Annotated[
    str | None,
    typer.Option(
        "--active-document",
        "-d",
        help="Path of the document open in the target app, used to break ties.",
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Log pipeline diagnostics to stderr."),
]


@app.command()
def rewrite(
    text: Annotated[str, typer.Argument(help="Transcribed text to rewrite.")],
    roots: RootsOption = None,
    active_document: ActiveDocumentOption = None,
    app_name: Annotated[
        str | None,
        typer.Option(
            "--app",
            "-a",
            help=f"Target app: {', '.join(list(SupportedApp))}",
        ),
    ] = None,
    canonical: Annotated[
        bool,
        typer.Option(
            "--canonical",
            help="Emit [[:path:]] placeholders and show how they render for the app.",
        ),
    ] = False,
    permissive: Annotated[
        bool,
        typer.Option(
            "--permissive",
            help="Lower the confidence threshold and rewrite ambiguous mentions.",
        ),
    ] = False,
    verbose: VerboseOption = False,
):
    """
    Rewrite file mentions in TEXT for the selected app.

    When `--app` is not provided, or does not name a known app, the user picks
    one interactively. The rewrite never fails: if the workspace cannot be
    indexed, the text is printed unchanged.
    """
    configure_logging(level="DEBUG" if verbose else "WARNING")

    try:
        selected = normalize_app(app_name)
    except ValueError:
        if app_name is not None:
            pr(f"\n[red bold]Not a known app: {app_name}")
        selected = make_app_selection()

    capabilities = APP_CAPABILITIES[selected]
    formatter_config = (
        MentionFormatterConfig.permissive() if permissive else MentionFormatterConfig()
    )
    service = MentionRewriteService(formatter=MentionFormatter(formatter_config))
    workspace_roots = roots or [str(Path.cwd())]

    try:
        if canonical:
            result = asyncio.run(
                service.rewrite_to_canonical_placeholders(
                    text, capabilities, workspace_roots, active_document
                )
            )
            rendered = service.render_canonical_placeholders(result.text, capabilities)
            pr(f"\n[bold]Canonical:[/bold] {escape(result.text)}")
            pr(f"[bold]Rendered for {selected}:[/bold] {escape(rendered.text)}")
        else:
            result = asyncio.run(
                service.rewrite(text, capabilities, workspace_roots, active_document)
            )
            pr(f"\n{escape(result.text)}")
    except Exception as e:  # noqa: BLE001
        # Shown through rich instead of a raw traceback
        print_unexpected_err(e)
        return

    pr(
        f"\n[green]{result.rewritten_count} rewritten[/green], "
        f"[yellow]{result.preserved_count} preserved[/yellow]"
    )


@app.command()
def resolve(
    mention: Annotated[str, typer.Argument(help="Mention to resolve, spoken or literal.")],
    roots: RootsOption = None,
    active_document: ActiveDocumentOption = None,
    verbose: VerboseOption = False,
):
    """
    Resolve a single MENTION against the workspace index and show the candidates.
    """
    configure_logging(level="DEBUG" if verbose else "WARNING")

    index = build_workspace_index(roots or [str(Path.cwd())])
    resolver = PathMentionResolver()
    result = resolver.resolve(
        mention, index, workspace.normalize_active_document_path(active_document)
    )

    match result:
        case Resolved(candidate):
            pr(f"\n[green bold]Resolved[/green bold] -> {candidate.file.relative_path}")
            print_candidates([candidate])
        case Ambiguous(candidates):
            pr(f"\n[yellow bold]Ambiguous[/yellow bold] ({len(candidates)} candidates)")
            print_candidates(list(candidates))
        case Unresolved(query):
            pr(f"\n[red bold]Unresolved:[/red bold] {escape(query)}")


@app.command()
def tree(
    roots: RootsOption = None,
    active_document: ActiveDocumentOption = None,
    verbose: VerboseOption = False,
):
    """
    Print the workspace tree summary used in language model prompts.
    """
    configure_logging(level="DEBUG" if verbose else "WARNING")

    service = MentionRewriteService()
    summary = asyncio.run(
        service.generate_workspace_tree_summary(
            roots or [str(Path.cwd())], active_document
        )
    )
    if summary is None:
        pr("[yellow]Nothing to summarize: no indexable files in the workspace.[/yellow]")
        raise typer.Exit(code=1)

    console.print(summary, markup=False, highlight=False)


@app.command()
def insights(
    roots: RootsOption = None,
    active_document: ActiveDocumentOption = None,
    limit: Annotated[
        int, typer.Option(help="Maximum number of file tag candidates.")
    ] = MAX_FILE_TAG_CANDIDATES,
    verbose: VerboseOption = False,
):
    """
    Print what is known about the workspace and the active document.
    """
    configure_logging(level="DEBUG" if verbose else "WARNING")

    service = MentionRewriteService()
    result = asyncio.run(
        service.derive_workspace_insights(
            roots or [str(Path.cwd())], active_document, limit
        )
    )

    pr(f"\n[bold]Roots:[/bold] {', '.join(result.normalized_workspace_roots) or '-'}")
    pr(f"[bold]Workspace confidence:[/bold] {result.workspace_confidence:.2f}")
    pr(f"[bold]Active document:[/bold] {result.active_document_relative_path or '-'}")
    pr(f"[bold]Active document confidence:[/bold] {result.active_document_confidence:.2f}")
    pr("[bold]File tag candidates:[/bold]")
    for candidate in result.file_tag_candidates:
        pr(f"  - {candidate}")


def build_workspace_index(raw_roots: list[str]) -> WorkspaceFileIndex:
    """
    Normalize `raw_roots` and build an index over them.

    Raises:
        typer.Exit: If no root is usable or the index cannot be built.
    """
    file_system = LocalFileSystemProvider()
    roots = workspace.normalize_workspace_roots(raw_roots, file_system)
    if not roots:
        pr(f"[red]Error:[/red] No usable workspace root in: [green]{raw_roots}[/green]")
        raise typer.Exit(code=1)

    index = WorkspaceFileIndex(file_system)
    try:
        asyncio.run(index.build_index(roots))
    except WorkspaceIndexError as e:
        print_index_err(e)

    return index


def normalize_app(app_name: str | None) -> SupportedApp:
    """
    Normalizes and validates an app name to a SupportedApp enum value.

    Matching is case-insensitive and accepts either the display name
    ("Visual Studio Code") or the member name ("vscode"). The unknown app
    placeholder is never a valid selection.

    Args:
        app_name (str | None): The app name to normalize.

    Returns:
        SupportedApp: The matching SupportedApp enum value.

    Raises:
        ValueError: If no app name is provided or it matches no known app.
    """
    if not app_name:
        raise ValueError("No app provided")

    normalized = app_name.strip().lower()
    for candidate in SupportedApp:
        if candidate == SupportedApp.UNKNOWN:
            continue
        if normalized in (str(candidate).lower(), candidate.name.lower()):
            return candidate
    raise ValueError(f"Unsupported app: {app_name}")


def make_app_selection() -> SupportedApp:
    """
    Interactively prompts the user to select the app that will receive the text.
    This is invoked when the user does not provide the `--app` argument via the CLI.

    Returns:
    SupportedApp: The enum member corresponding to the user's selection.
    """
    pr("\n[bold green]Select the app the text will be inserted into.[/bold green]")

    questions = [
        inquirer.List(
            "app",
            message="Hit [ENTER] to make your selection",
            choices=[a for a in SupportedApp if a != SupportedApp.UNKNOWN],
        ),
    ]

    answers = inquirer.prompt(questions, theme=GreenPassion())

    if not answers:
        raise typer.Exit()

    return SupportedApp(answers["app"])


def print_candidates(candidates: list[PathCandidate]) -> None:
    table = Table("Score", "Relative path", "Workspace root")
    for candidate in candidates:
        table.add_row(
            f"{candidate.score:.3f}",
            candidate.file.relative_path,
            candidate.file.workspace_root,
        )
    console.print(table)


def print_index_err(e: WorkspaceIndexError) -> None:
    """
    Displays a user-friendly error message for workspace indexing failures.

    Args:
        e (WorkspaceIndexError): The exception that was raised, containing error
            details and diagnostic information.

    Raises:
        typer.Exit: Always raises with exit code 1 to terminate the application.
    """
    pr("❌ [bold red]Indexing Error[/bold red]")
    pr(f"The workspace could not be indexed: {e.message}")

    pr(
        "\n[yellow]Quick Fix:[/yellow] Check that the root exists and is readable, "
        "or point --root at a smaller directory."
    )
    if e.original_exception:
        pr(f"\nTechnical details: {e.original_exception}")
    pr(f"Diagnostics: {e.diagnostic_info}")

    raise typer.Exit(code=1) from e


def print_unexpected_err(e: Exception) -> None:
    """
    Report an error that escaped the rewrite pipeline.

    The service itself degrades to unchanged text, so anything reaching this
    handler is a bug (or an event loop problem) worth a bug report.

    Raises:
        typer.Exit: Always, with exit code 1.
    """
    pr("❌ [bold red]Rewrite Failed[/bold red]")
    pr(f"[yellow]{type(e).__name__}:[/yellow] {escape(str(e))}")
    if e.__cause__:
        pr(f"[yellow]Caused by:[/yellow] {escape(str(e.__cause__))}")
    pr("\nPlease report this together with the command you ran.")

    raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
