"""Rich console utilities for graph-sbom.

This module provides a shared Rich Console instance and helper functions
for CLI output, with GitHub Actions annotations when running in CI.
"""

import os
from contextlib import contextmanager
from typing import Any, Generator, List, Optional, Tuple

from rich.console import Console
from rich.table import Table
from rich.theme import Theme
from spdx_tools.spdx.model import Document, RelationshipType, SpdxNoAssertion

# Detect CI environments
IS_GITHUB_ACTIONS = os.getenv("GITHUB_ACTIONS") == "true"

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "step": "bold blue",
        "highlight": "magenta",
    }
)

# Shared console instance
console = Console(
    theme=custom_theme,
    force_terminal=IS_GITHUB_ACTIONS or None,
    color_system="auto",
)


def print_step_header(step_num: int, title: str) -> None:
    """
    Print a styled step header.

    In GitHub Actions, uses ::group:: for collapsible sections.
    """
    step_title = f"STEP {step_num}: {title}"

    if IS_GITHUB_ACTIONS:
        print(f"::group::{step_title}")
        console.print(f"[bold blue]{step_title}[/bold blue]")
    else:
        console.print()
        console.rule(f"[bold blue]{step_title}[/bold blue]", style="blue")


def print_step_end(step_num: int, success: bool = True) -> None:
    if success:
        console.print(f"[success]✓ Step {step_num} completed successfully[/success]")
    else:
        console.print(f"[error]✗ Step {step_num} failed[/error]")

    if IS_GITHUB_ACTIONS:
        print("::endgroup::")


@contextmanager
def gha_group(title: str) -> Generator[None, None, None]:
    """Context manager for GitHub Actions collapsible groups."""
    if IS_GITHUB_ACTIONS:
        print(f"::group::{title}")
    try:
        yield
    finally:
        if IS_GITHUB_ACTIONS:
            print("::endgroup::")


def gha_warning(message: str, title: Optional[str] = None) -> None:
    """
    Emit a warning that appears in GitHub Actions job summary.

    Args:
        message: Warning message
        title: Optional title for the warning
    """
    if IS_GITHUB_ACTIONS:
        if title:
            print(f"::warning title={title}::{message}")
        else:
            print(f"::warning::{message}")
    else:
        if title:
            console.print(f"[warning]Warning ({title}):[/warning] {message}")
        else:
            console.print(f"[warning]Warning:[/warning] {message}")


def print_summary_table(
    title: str,
    data: List[Tuple[str, Any]],
    show_if_empty: bool = False,
) -> None:
    """
    Print a summary table.

    Args:
        title: Table title
        data: List of (label, value) tuples
        show_if_empty: Whether to show the table if all values are 0/empty
    """
    if not show_if_empty:
        data = [(label, value) for label, value in data if value]

    if not data:
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    for label, value in data:
        table.add_row(label, str(value))

    console.print(table)


def document_statistics(document: Document) -> List[Tuple[str, Any]]:
    """Collect (label, value) statistics of a compiled document."""
    packages = document.packages
    return [
        ("Packages", len(packages)),
        ("With purl", sum(1 for p in packages if p.external_references)),
        ("With declared license", sum(1 for p in packages if not isinstance(p.license_declared, SpdxNoAssertion))),
        (
            "With supplier",
            sum(1 for p in packages if p.supplier is not None and not isinstance(p.supplier, SpdxNoAssertion)),
        ),
        (
            "DEPENDS_ON relationships",
            sum(1 for r in document.relationships if r.relationship_type == RelationshipType.DEPENDS_ON),
        ),
        (
            "DESCRIBES relationships",
            sum(1 for r in document.relationships if r.relationship_type == RelationshipType.DESCRIBES),
        ),
        ("Extracted licenses", len(document.extracted_licensing_info)),
    ]


def print_document_summary(document: Document, validation_messages: Optional[List[str]] = None) -> None:
    """
    Print a compiled document summary as a Rich table.

    Args:
        document: The compiled document
        validation_messages: Messages reported by validation, if any
    """
    data = document_statistics(document)
    data.append(("Validation messages", len(validation_messages or [])))
    print_summary_table(f"SPDX Document: {document.creation_info.name}", data, show_if_empty=True)

    if validation_messages:
        with gha_group("Validation Details"):
            for message in validation_messages:
                console.print(f"  {message}")


def print_final_success(output_file: str) -> None:
    console.print()
    console.print(f"[success]✓ SPDX document written to {output_file}[/success]")


def print_final_failure(message: str) -> None:
    """Print final failure message."""
    console.print()
    if IS_GITHUB_ACTIONS:
        print(f"::error title=SBOM Generation Failed::{message}")
    else:
        console.rule("[bold red]FAILED[/bold red]", style="red")
        console.print(f"[bold red]{message}[/bold red]", justify="center")
    console.print()
