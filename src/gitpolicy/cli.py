"""gitpolicy CLI — Typer application with check, simulate, config, install, and serve commands."""

from __future__ import annotations

import json
import os
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from rich.console import Console

from gitpolicy import __version__

app = typer.Typer(
    name="gitpolicy",
    help="Advise whether git commands follow your branching policy.",
    add_completion=False,
    no_args_is_help=True,
)
config_app = typer.Typer(help="Show or update the branching policy.", no_args_is_help=True)
app.add_typer(config_app, name="config")

console = Console(stderr=True)

_FORMATS = ("terminal", "json")

# Unrecognised flags such as -m and -f are kept as git arguments. --format and
# --repo are parsed wherever they appear; pass them to git after "--".
_PASSTHROUGH = {"ignore_unknown_options": True}


def _resolve_repo_root(repo: Optional[str] = None, *, required: bool = False) -> Path:
    """Find the repository to advise on.

    Precedence: --repo, GITPOLICY_REPO_PATH, the enclosing git repository.
    Outside a repository, falls back to the working directory unless
    *required*, in which case exits 2.
    """
    from gitpolicy.git.adapter import GitError, get_repo_root

    explicit = repo or os.environ.get("GITPOLICY_REPO_PATH")
    if explicit:
        return Path(explicit).resolve()
    try:
        return get_repo_root()
    except GitError as exc:
        if required:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            raise typer.Exit(code=2) from exc
        return Path.cwd()


def _advisor(repo: Optional[str]):
    from gitpolicy.advisor import PolicyAdvisor

    return PolicyAdvisor(_resolve_repo_root(repo))


def _check_format(fmt: str) -> None:
    if fmt not in _FORMATS:
        console.print(f"[bold red]Invalid format:[/bold red] {fmt}")
        raise typer.Exit(code=2)


# ── check ─────────────────────────────────────────────────────────────────────


@app.command(context_settings=_PASSTHROUGH)
def check(
    command: str = typer.Argument(..., help="git command to check: commit | push | merge"),
    args: Optional[List[str]] = typer.Argument(None, help="Arguments as they would be passed to git"),
    format: str = typer.Option("terminal", "--format", help="Output format: terminal | json"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository path"),
) -> None:
    """Check one git command against the policy. Exits 1 if it is denied."""
    from gitpolicy.output import json_report, terminal
    from gitpolicy.rules.engine import evaluate

    _check_format(format)
    advisor = _advisor(repo)
    snapshot = advisor.snapshot()
    verdict = evaluate(snapshot, command, args or [], advisor.policy)

    if format == "json":
        print(json_report.render(json_report.verdict_to_dict(verdict, snapshot)))
    else:
        terminal.render_verdict(verdict, snapshot)

    raise typer.Exit(code=0 if verdict.allowed else 1)


# ── simulate ──────────────────────────────────────────────────────────────────


def _load_steps_file(path: Path) -> List[Dict[str, Any]]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("sequence", data.get("steps"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of steps")
    steps: List[Dict[str, Any]] = []
    for entry in data:
        if isinstance(entry, str):
            entry = _parse_step(entry)
        if not isinstance(entry, dict) or "command" not in entry:
            raise ValueError(f"Invalid step in {path}: {entry!r}")
        args = entry.get("args") or []
        if isinstance(args, str):
            args = shlex.split(args)
        if not isinstance(args, list):
            raise ValueError(f"Step args must be a list or a string in {path}: {entry!r}")
        steps.append({"command": entry["command"], "args": args})
    return steps


def _parse_step(text: str) -> Dict[str, Any]:
    tokens = shlex.split(text)
    if tokens and tokens[0] == "git":
        tokens = tokens[1:]
    if not tokens:
        raise ValueError("empty step")
    return {"command": tokens[0], "args": tokens[1:]}


@app.command()
def simulate(
    steps: Optional[List[str]] = typer.Argument(
        None, help='Steps such as "commit -m \'feat: x\'" "push"'
    ),
    file: Optional[Path] = typer.Option(None, "--file", help="YAML/JSON file with a list of steps"),
    keep_going: bool = typer.Option(False, "--keep-going", help="Evaluate every step after a violation"),
    format: str = typer.Option("terminal", "--format", help="Output format: terminal | json"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository path"),
) -> None:
    """Replay a sequence of git commands against the policy without running them."""
    from gitpolicy.output import json_report, terminal
    from gitpolicy.rules.simulator import simulate as run_simulation

    _check_format(format)
    try:
        sequence = _load_steps_file(file) if file else []
        sequence.extend(_parse_step(s) for s in steps or [])
    except (OSError, ValueError, yaml.YAMLError) as exc:
        console.print(f"[bold red]Invalid steps:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    if not sequence:
        console.print("[bold red]No steps given.[/bold red]")
        raise typer.Exit(code=2)

    advisor = _advisor(repo)
    snapshot = advisor.snapshot()
    result = run_simulation(snapshot, advisor.policy, sequence, stop_on_violation=not keep_going)

    if format == "json":
        print(json_report.render(json_report.simulation_to_dict(result, snapshot)))
    else:
        terminal.render_simulation(result, snapshot, total_steps=len(sequence))

    raise typer.Exit(code=0 if result.first_violation is None else 1)


# ── status ────────────────────────────────────────────────────────────────────


@app.command()
def status(
    format: str = typer.Option("terminal", "--format", "-f", help="Output format: terminal | json"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository path"),
) -> None:
    """Show the current branch and how the policy classifies it."""
    from gitpolicy.output import terminal

    _check_format(format)
    data = _advisor(repo).status()
    if format == "json":
        print(json.dumps(data, indent=2))
    else:
        terminal.render_status(data)


# ── suggest / compliance ──────────────────────────────────────────────────────


@app.command()
def suggest(
    task: str = typer.Argument(..., help="start_feature | merge_feature | promote_to_main | hotfix"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository path"),
) -> None:
    """Suggest the git steps for a workflow task."""
    from gitpolicy.output import terminal

    terminal.render_suggestion(_advisor(repo).suggest(task))


@app.command()
def compliance(
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository path"),
) -> None:
    """Check that the configured integration and protected branches exist."""
    from gitpolicy.git.adapter import GitError
    from gitpolicy.output import terminal

    advisor = _advisor(repo)
    try:
        report = advisor.compliance()
    except GitError as exc:
        console.print(f"[bold red]Git error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    terminal.render_compliance(report)
    if not report.is_compliant:
        raise typer.Exit(code=1)


# ── config ────────────────────────────────────────────────────────────────────


@config_app.command("show")
def config_show(
    format: str = typer.Option("terminal", "--format", "-f", help="Output format: terminal | json"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository path"),
) -> None:
    """Print the policy in effect."""
    from gitpolicy.output import terminal

    _check_format(format)
    policy = _advisor(repo).get_config()
    if format == "json":
        print(json.dumps(policy.to_dict(), indent=2))
    else:
        terminal.render_policy(policy)


@config_app.command("set")
def config_set(
    protected: Optional[List[str]] = typer.Option(None, "--protected", help="Protected branch (repeatable)"),
    integration: Optional[str] = typer.Option(None, "--integration", help="Integration branch"),
    feature_prefix: Optional[str] = typer.Option(None, "--feature-prefix"),
    hotfix_prefix: Optional[str] = typer.Option(None, "--hotfix-prefix"),
    main_branch: Optional[str] = typer.Option(None, "--main-branch"),
    commit_types: Optional[List[str]] = typer.Option(None, "--commit-type", help="Allowed commit type (repeatable)"),
    allow_direct_push: Optional[bool] = typer.Option(None, "--allow-direct-push/--deny-direct-push"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository path"),
) -> None:
    """Update fields of .gitpolicy.yaml, keeping everything else in the file."""
    from gitpolicy.config.loader import ConfigError
    from gitpolicy.config.store import PolicyWriteError

    changes: Dict[str, Any] = {
        "protected_branches": protected or None,
        "integration_branch": integration,
        "feature_prefix": feature_prefix,
        "hotfix_prefix": hotfix_prefix,
        "main_branch": main_branch,
        "allowed_commit_types": commit_types or None,
        "allow_direct_push": allow_direct_push,
    }
    if all(v is None for v in changes.values()):
        console.print("[yellow]⚠[/yellow]  Nothing to update.")
        raise typer.Exit(code=2)

    advisor = _advisor(repo)
    try:
        advisor.update_config(**changes)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    except PolicyWriteError as exc:
        console.print(f"[bold red]Write error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    console.print(f"[green]✓[/green] Updated {advisor.store.path}")


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init() -> None:
    """Generate a starter .gitpolicy.yaml in the repo root."""
    from gitpolicy.config.defaults import CONFIG_FILENAME, DEFAULT_YAML

    repo_root = _resolve_repo_root(required=True)
    config_path = repo_root / CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_YAML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── install ───────────────────────────────────────────────────────────────────


@app.command()
def install(
    force: bool = typer.Option(False, "--force", help="Overwrite existing pre-push hook"),
    shared: bool = typer.Option(
        False, "--shared", help="Install into .githooks and point core.hooksPath at it"
    ),
) -> None:
    """Install gitpolicy as a git pre-push hook."""
    from gitpolicy.hooks.installer import install_hook

    repo_root = _resolve_repo_root(required=True)
    success, msg = install_hook(repo_root, force=force, shared=shared)
    if success:
        console.print(f"[green]✓[/green] {msg}")
    else:
        console.print(f"[red]✗[/red] {msg}")
        raise typer.Exit(code=1)


# ── uninstall ─────────────────────────────────────────────────────────────────


@app.command()
def uninstall() -> None:
    """Remove the gitpolicy pre-push hook."""
    from gitpolicy.hooks.installer import uninstall_hook

    repo_root = _resolve_repo_root(required=True)
    success, msg = uninstall_hook(repo_root)
    if success:
        console.print(f"[green]✓[/green] {msg}")
    else:
        console.print(f"[red]✗[/red] {msg}")
        raise typer.Exit(code=1)


# ── serve ─────────────────────────────────────────────────────────────────────


@app.command()
def serve(
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository path"),
    debug: bool = typer.Option(False, "--debug", help="Debug logging"),
) -> None:
    """Run the MCP server over stdio."""
    import asyncio
    import logging

    from gitpolicy.server import configure_logging, run_server

    configure_logging(logging.DEBUG if debug else logging.INFO)
    try:
        asyncio.run(run_server(repo))
    except KeyboardInterrupt:
        console.print("\nServer stopped by user")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"gitpolicy {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """gitpolicy — Advise whether git commands follow your branching policy."""
