"""
Terminal UI utilities using Rich.

Provides:
- Candidate and snippet tables
- Documentation panels
- Status messages
"""

from typing import Dict, List, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from compl.completion.info import format_documentation
from compl.completion.protocol import CompletionItem, CompletionItemKind
from compl.completion.ranking import RankedCandidate

# Global console instance
console = Console()


def _truncate(text: Optional[str], limit: int = 60) -> str:
    if not text:
        return ""
    lines = text.splitlines()
    first_line = lines[0] if lines else ""
    if len(first_line) > limit:
        return first_line[: limit - 3] + "..."
    return first_line


def print_success(message: str) -> None:
    """Print success message"""
    console.print(f"[bold green]✓ {message}[/bold green]")


def print_warning(message: str) -> None:
    """Print warning message"""
    console.print(f"[bold yellow]! {message}[/bold yellow]")


def print_error(message: str) -> None:
    """Print error message"""
    console.print(f"[bold red]✗ {message}[/bold red]")


def show_candidates(candidates: List[RankedCandidate], query: str) -> None:
    """
    Display ranked candidates as a table.

    Args:
        candidates: Output of rank(), in order
        query: The query the candidates were ranked for
    """
    if not candidates:
        print_warning(f"No candidates for {query!r}")
        return

    table = Table(title=f"Candidates for {query!r}")

    table.add_column("#", style="dim")
    table.add_column("Label", style="cyan", no_wrap=True)
    table.add_column("Kind", style="yellow")
    table.add_column("Word", style="white")
    table.add_column("Provider", style="dim")
    table.add_column("Detail", style="dim")

    for i, candidate in enumerate(candidates, 1):
        word = candidate.display_word
        if candidate.overtype_replacement_length:
            word = f"(overtype {candidate.overtype_replacement_length})"
        label = f"[bold]{candidate.label}[/bold]" if candidate.is_exact_match else candidate.label
        table.add_row(
            str(i),
            label,
            candidate.kind_name,
            word,
            candidate.provider_id,
            _truncate(candidate.item.detail),
        )

    console.print(table)


def show_snippets(items: List[CompletionItem], filetype: Optional[str] = None) -> None:
    """Display loaded snippet items as a table."""
    if not items:
        print_warning(f"No snippets found for {filetype or 'any filetype'}")
        return

    table = Table(title=f"Snippets ({filetype or 'all filetypes'})")

    table.add_column("Prefix", style="cyan", no_wrap=True)
    table.add_column("Description", style="white")
    table.add_column("Body", style="dim")

    for item in items:
        table.add_row(item.label, item.detail or "", _truncate(item.insert_text, 40))

    console.print(table)


def show_documentation(item: CompletionItem) -> None:
    """Render the documentation of an item (detail and markdown body)."""
    text = format_documentation(item)
    if not text:
        console.print(f"[dim]No documentation for {item.label}[/dim]")
        return
    panel = Panel(
        Markdown(text),
        title=f"{item.label} [dim]{CompletionItemKind.name_of(item.kind)}[/dim]",
        border_style="cyan",
    )
    console.print(panel)


def show_servers(servers: Dict[str, bool], hints: Dict[str, str]) -> None:
    """Display configured language servers and whether they are installed."""
    table = Table(title="Language Servers")

    table.add_column("Filetype", style="cyan")
    table.add_column("Status")
    table.add_column("Install", style="dim")

    for filetype, available in sorted(servers.items()):
        status = "[green]✓ available[/green]" if available else "[red]✗ missing[/red]"
        table.add_row(filetype, status, "" if available else hints.get(filetype, ""))

    console.print(table)


def show_welcome(filetype: Optional[str], providers: List[str], log_file: str) -> None:
    """Show the REPL banner"""
    welcome_text = (
        f"[bold white]compl[/bold white] - completion playground\n"
        f"[dim]Filetype: {filetype or 'none'} | "
        f"Providers: {', '.join(providers) or 'none'}[/dim]"
    )
    console.print()
    console.print(Panel(welcome_text, border_style="cyan", padding=(0, 1)))
    console.print(
        "[dim]Type to complete, Tab/arrows to browse, Enter to accept, "
        "Ctrl-D to quit[/dim]"
    )
    console.print(f"[dim]Logging to {log_file}[/dim]")
    console.print()
