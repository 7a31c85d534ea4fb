"""Rich-powered console output for StoryForge."""

from __future__ import annotations

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table

from storyforge import __version__
from storyforge.context.models import ContextPayload, ElementKind, ProjectRecord, RankedElement

_KIND_LABELS = {
    ElementKind.CHARACTER: "Characters",
    ElementKind.SETTING: "Settings",
    ElementKind.PLOT_POINT: "Plot points",
    ElementKind.CHAPTER: "Chapters",
}


class Console:
    """Terminal output for StoryForge using Rich."""

    def __init__(self) -> None:
        self.console = RichConsole()

    def banner(self) -> None:
        """Show the StoryForge banner."""
        self.console.print(
            Panel(
                f"[bold magenta]StoryForge[/bold magenta] [dim]v{__version__}[/dim]\n"
                "[dim]Story context for AI-assisted writing[/dim]",
                border_style="magenta",
                padding=(1, 2),
            )
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {message}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    def show_projects(
        self,
        projects: list[ProjectRecord],
        counts: dict[str, dict[ElementKind, int]],
    ) -> None:
        """Display stored projects and their element counts."""
        table = Table(title="Stored Projects", border_style="magenta")
        table.add_column("Project", style="bold")
        table.add_column("Title")
        table.add_column("Genre", style="dim")
        for kind in ElementKind:
            table.add_column(_KIND_LABELS[kind], justify="right", style="cyan")

        for project in projects:
            per_kind = counts.get(project.id, {})
            table.add_row(
                project.id,
                project.title,
                project.genre,
                *(str(per_kind.get(kind, 0)) for kind in ElementKind),
            )

        self.console.print(table)

    def show_ranking(self, ranking: list[RankedElement]) -> None:
        """Display ranked candidates with their scores."""
        table = Table(title="Relevance Ranking", border_style="cyan")
        table.add_column("", width=1)
        table.add_column("Kind", style="dim")
        table.add_column("Element", style="bold")
        table.add_column("Score", justify="right", style="cyan")
        table.add_column("Reason", style="dim")

        for r in ranking:
            table.add_row(
                "[green]>[/green]" if r.included else "",
                r.kind.value,
                r.id,
                f"{r.score:.2f}",
                r.reason,
            )

        self.console.print(table)

    def show_payload_stats(self, payload: ContextPayload) -> None:
        """Display a short header describing an assembled payload."""
        limit = "none" if payload.max_elements is None else str(payload.max_elements)
        self.console.print()
        self.console.print("[bold]Story Context[/bold]")
        self.console.print(f"  Project: {payload.project_id}")
        if payload.task:
            self.console.print(f"  Task: {payload.task.value}")
        self.console.print(
            f"  Elements: {payload.elements_included} "
            f"(from {payload.elements_available} candidates, limit {limit})"
        )
        self.console.print(f"  Tokens: ~{payload.token_estimate:,}")
        self.console.print(f"  Time: {payload.assembly_time_ms:.1f}ms")
        for w in payload.warnings:
            self.warning(w.message)
        self.console.print()
