"""Rich terminal reporter — colour, icons, severity pills."""

from __future__ import annotations

from typing import Any, Dict

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from gitpolicy.config.schema import PolicyConfig
from gitpolicy.git.models import RepositorySnapshot
from gitpolicy.rules.models import SimulationResult, Verdict
from gitpolicy.workflow import ComplianceReport, WorkflowSuggestion

_SEVERITY_STYLE = {
    "error": "bold white on red",
    "warn": "bold black on yellow",
    "info": "bold black on bright_cyan",
}

_SEVERITY_ICON = {
    "error": "🔴",
    "warn": "🟡",
    "info": "🔵",
}


def _severity_pill(severity: str) -> Text:
    style = _SEVERITY_STYLE.get(severity, "")
    icon = _SEVERITY_ICON.get(severity, "")
    return Text(f" {icon} {severity.upper()} ", style=style)


def _console() -> Console:
    return Console(stderr=True)


def render_verdict(verdict: Verdict, snapshot: RepositorySnapshot) -> None:
    """Print a single verdict."""
    console = _console()
    console.print()
    console.print(
        _severity_pill(verdict.severity),
        Text(f" git {verdict.command} on '{snapshot.current_branch}'", style="bold"),
    )
    console.print(f"  {escape(verdict.reason)}")
    if verdict.suggestion:
        console.print(f"  [dim]→ {escape(verdict.suggestion)}[/dim]")
    if verdict.degraded:
        console.print("  [dim]Repository facts were unavailable; denied as a precaution.[/dim]")

    console.print()
    if not verdict.allowed:
        console.print(
            f"[bold red]❌ BLOCKED — {verdict.command} violates the branching policy.[/bold red]"
        )
    elif verdict.severity == "warn":
        console.print("[bold yellow]⚠️  Allowed with warnings.[/bold yellow]")
    else:
        console.print("[bold green]✅ Allowed.[/bold green]")


def render_simulation(
    result: SimulationResult, snapshot: RepositorySnapshot, *, total_steps: int
) -> None:
    """Print a table of simulated verdicts."""
    console = _console()
    console.print()
    table = Table(
        title=f"Simulation on '{snapshot.current_branch}'",
        show_lines=True,
        title_style="bold",
        border_style="dim",
    )
    table.add_column("#", justify="right", style="green")
    table.add_column("Command", style="cyan")
    table.add_column("Severity", justify="center", width=12)
    table.add_column("Allowed", justify="center")
    table.add_column("Reason", min_width=20)

    for i, verdict in enumerate(result.results, 1):
        table.add_row(
            str(i),
            verdict.command,
            _severity_pill(verdict.severity),
            "yes" if verdict.allowed else "[red]no[/red]",
            Text(verdict.reason),
        )
    console.print(table)

    skipped = total_steps - len(result.results)
    console.print()
    if result.first_violation is None:
        console.print("[bold green]✅ Every step is allowed.[/bold green]")
    else:
        console.print(f"[bold red]❌ First violation: {result.first_violation}[/bold red]")
        if skipped:
            console.print(f"[dim]{skipped} later step(s) not evaluated.[/dim]")


def render_status(status: Dict[str, Any]) -> None:
    console = _console()
    console.print()
    console.print(f"[dim]Branch:[/dim]        {status['branch']}")
    console.print(f"[dim]Class:[/dim]         {status['branch_class']}")
    console.print(f"[dim]Clean:[/dim]         {'yes' if status['is_clean'] else 'no'}")
    merge = status["head_is_merge_commit"]
    merge_text = "unknown" if merge is None else ("yes" if merge else "no")
    console.print(f"[dim]Merge commit:[/dim]  {merge_text}")
    for warning in status["warnings"]:
        console.print(f"[yellow]⚠[/yellow]  {warning}")


def render_policy(policy: PolicyConfig) -> None:
    console = _console()
    table = Table(title="Branching Policy", title_style="bold", border_style="dim")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in policy.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value)
        table.add_row(key, str(value))
    console.print(table)


def render_suggestion(suggestion: WorkflowSuggestion) -> None:
    console = _console()
    console.print()
    console.print(f"[bold]{suggestion.workflow}[/bold]")
    console.print(f"[dim]{suggestion.description}[/dim]")
    if suggestion.commands:
        console.print()
        for cmd in suggestion.commands:
            console.print(f"  [green]$[/green] {cmd}")
    if suggestion.safety_checks:
        console.print()
        for check in suggestion.safety_checks:
            console.print(f"  [yellow]•[/yellow] {check}")


def render_compliance(report: ComplianceReport) -> None:
    console = _console()
    console.print()
    for issue in report.issues:
        console.print(_severity_pill(issue.severity), Text(f" {issue.description}"))
        console.print(f"  [dim]{issue.current_state}[/dim]")
        console.print(f"  [dim]→ {issue.recommended_action}[/dim]")
    console.print()
    style = "bold green" if report.is_compliant else "bold red"
    console.print(f"[{style}]{report.summary}[/{style}]")
