from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from release_depgraph.core.analyze.analyze_release import (
    ReleaseAnalysis,
    default_release,
    find_release,
    sort_releases,
)
from release_depgraph.core.analyze.session import DependencyGraphSession
from release_depgraph.core.critical.critical_path import ordered_path
from release_depgraph.core.errors import (
    GraphError,
    IssueFetchError,
    ReleaseSelectionError,
    StateLoadError,
)
from release_depgraph.core.extract.extract_deps import extract_dependencies
from release_depgraph.core.extract.keyword_config import KeywordConfigError, load_and_merge
from release_depgraph.core.graph.build_graph import summarize_graph
from release_depgraph.core.io.issue_source import FileIssueSource, GhIssueSource, IssueSource
from release_depgraph.core.io.load_state import load_releases, load_state
from release_depgraph.core.model import Release
from release_depgraph.core.settings import RuntimeSettings

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()

CYCLE_WARNING = "Circular dependency detected: critical path cannot be calculated."
EXIT_CYCLE = 3


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
) -> None:
    """Release dependency graph CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@app.command("releases")
def releases_cmd(
    tiki_path: Optional[str] = typer.Option(None, "--tiki-path", help="Path to the .tiki directory"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """List releases, active first."""
    _check_format(format, "releases")
    settings = _settings(tiki_path=tiki_path)

    try:
        releases = sort_releases(load_releases(settings.tiki_path_or_none))
    except StateLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    selected = default_release(releases)

    if format == "json":
        payload = {
            "tool": "depgraph",
            "command": "releases",
            "default": selected.version if selected else None,
            "releases": [
                {
                    "version": r.version,
                    "status": r.status,
                    "name": r.name,
                    "issues": sorted(r.issue_numbers),
                }
                for r in releases
            ],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    if not releases:
        typer.echo("No releases. Create a release to visualize issue dependencies.")
        return

    table = Table(title="Releases")
    table.add_column("Version")
    table.add_column("Status")
    table.add_column("Issues", justify="right")
    table.add_column("Name")
    for r in releases:
        marker = " *" if selected is not None and r.version == selected.version else ""
        table.add_row(Text(r.version + marker), r.status, str(len(r.issues)), Text(r.name or ""))
    console.print(table)


@app.command("extract")
def extract_cmd(
    text: str = typer.Argument(..., help="Issue body text to scan"),
    scope: str = typer.Option(..., "--scope", help="Comma-separated issue numbers in scope"),
    keywords_file: Optional[str] = typer.Option(
        None, "--keywords-file", help="Optional YAML file with extra dependency phrases"
    ),
) -> None:
    """Print the in-scope dependency references found in TEXT."""
    try:
        scope_ids = {int(s) for s in scope.split(",") if s.strip()}
    except ValueError:
        _print_errors(
            [
                ReleaseSelectionError(
                    code="E_EXTRACT_BAD_SCOPE",
                    message=f"--scope must be comma-separated integers, got: {scope}",
                    path="scope",
                )
            ]
        )
        raise typer.Exit(code=2)

    keywords = _keywords(keywords_file or _settings().keywords_file or None)
    for dep in extract_dependencies(text, scope_ids, keywords):
        typer.echo(f"#{dep}")


@app.command("graph")
def graph_cmd(
    version: Optional[str] = typer.Argument(
        None, help="Release version (default: first active release)"
    ),
    tiki_path: Optional[str] = typer.Option(None, "--tiki-path", help="Path to the .tiki directory"),
    issues_file: Optional[str] = typer.Option(
        None, "--issues-file", help="Read issues from a YAML/JSON export instead of gh"
    ),
    workspace: Optional[str] = typer.Option(
        None, "--workspace", help="Repository checkout gh should run in"
    ),
    workers: Optional[int] = typer.Option(None, "--workers", help="Concurrent issue fetches"),
    critical_path: bool = typer.Option(
        True, "--critical-path/--no-critical-path", help="Compute the longest dependency chain"
    ),
    fail_on_cycle: bool = typer.Option(
        False, "--fail-on-cycle", help=f"Exit with code {EXIT_CYCLE} when a cycle is detected"
    ),
    keywords_file: Optional[str] = typer.Option(
        None, "--keywords-file", help="Optional YAML file with extra dependency phrases"
    ),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Build the dependency graph of a release and its critical path."""
    _check_format(format, "graph")
    settings = _settings(tiki_path=tiki_path, fetch_workers=workers, keywords_file=keywords_file)

    try:
        state = load_state(settings.tiki_path_or_none)
        releases = load_releases(settings.tiki_path_or_none)
    except StateLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    release = _select_release(releases, version)
    keywords = _keywords(settings.keywords_file or None)

    source: IssueSource
    if issues_file:
        try:
            source = FileIssueSource(issues_file)
        except IssueFetchError as e:
            _print_errors([e])
            raise typer.Exit(code=1)
    else:
        source = GhIssueSource(binary=settings.gh_binary, timeout_s=settings.gh_timeout_s)

    session = DependencyGraphSession(
        source,
        state,
        releases,
        workspace=workspace,
        workers=settings.fetch_workers,
        keywords=keywords,
        show_critical_path=critical_path,
    )
    analysis = asyncio.run(session.select(release.version))
    assert analysis is not None

    if format == "json":
        _emit_graph_json(release, analysis, fail_on_cycle)
    else:
        _print_graph_text(release, analysis)

    if analysis.has_cycle and fail_on_cycle:
        raise typer.Exit(code=EXIT_CYCLE)


def _emit_graph_json(release: Release, analysis: ReleaseAnalysis, fail_on_cycle: bool) -> None:
    body = analysis.to_dict()
    payload: dict[str, Any] = {
        "tool": "depgraph",
        "command": "graph",
        "ok": not (analysis.has_cycle and fail_on_cycle),
        "release": {"version": release.version, "status": release.status, "name": release.name},
        "summary": body["summary"],
        "nodes": body["nodes"],
        "edges": body["edges"],
        "critical_path": body["critical_path"],
        "warnings": [CYCLE_WARNING] if analysis.has_cycle else [],
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def _print_graph_text(release: Release, analysis: ReleaseAnalysis) -> None:
    typer.echo(f"Release {release.version} ({release.status})")

    if analysis.issue_count == 0:
        typer.echo("No issues: this release has no issues assigned.")
        return

    typer.echo(summarize_graph(analysis.graph))

    on_path = analysis.critical_path.node_ids if analysis.critical_path else frozenset()
    table = Table()
    table.add_column("Issue")
    table.add_column("Status")
    table.add_column("Title")
    if analysis.show_critical_path:
        table.add_column("Critical")
    for n in analysis.graph.nodes:
        row = [Text(f"#{n.id}"), n.status, Text(n.title)]
        if analysis.show_critical_path:
            row.append("yes" if n.id in on_path else "")
        table.add_row(*row)
    console.print(table)

    if not analysis.has_edges:
        typer.echo("No dependency relationships found between issues in this release.")
        return

    typer.echo("Dependencies:")
    for e in analysis.graph.edges:
        typer.echo(f"  #{e.source} -> #{e.target}")

    if analysis.has_cycle:
        typer.echo(CYCLE_WARNING, err=True)
    elif analysis.critical_path is not None and analysis.critical_path.edge_ids:
        chain = " -> ".join(f"#{nid}" for nid in ordered_path(analysis.critical_path))
        typer.echo(f"Critical path: {chain} ({analysis.critical_path.length} hops)")


def _select_release(releases: list[Release], version: Optional[str]) -> Release:
    if version is None:
        release = default_release(releases)
        if release is None:
            _print_errors(
                [
                    ReleaseSelectionError(
                        code="E_NO_RELEASES",
                        message="no releases found; create a release first",
                        path="version",
                    )
                ]
            )
            raise typer.Exit(code=2)
        return release

    release = find_release(releases, version)
    if release is None:
        known = ", ".join(r.version for r in sort_releases(releases)) or "none"
        _print_errors(
            [
                ReleaseSelectionError(
                    code="E_UNKNOWN_RELEASE",
                    message=f"unknown release: {version} (known: {known})",
                    path="version",
                )
            ]
        )
        raise typer.Exit(code=2)
    return release


def _keywords(keywords_file: Optional[str]) -> list[str]:
    try:
        return load_and_merge(keywords_file)
    except FileNotFoundError:
        _print_errors(
            [
                StateLoadError(
                    code="E_KEYWORDS_FILE_NOT_FOUND",
                    message=f"keywords file not found: {keywords_file}",
                    path="keywords_file",
                )
            ]
        )
        raise typer.Exit(code=1)
    except KeywordConfigError as e:
        _print_errors(
            [
                StateLoadError(
                    code="E_KEYWORDS_FILE_INVALID",
                    message=str(e),
                    file=keywords_file,
                    path="keywords_file",
                )
            ]
        )
        raise typer.Exit(code=2)


def _settings(**overrides: Any) -> RuntimeSettings:
    try:
        return RuntimeSettings.from_env().with_overrides(**overrides)
    except ValueError as e:
        _print_errors([GraphError(code="E_CONFIG", message=str(e), path="environment")])
        raise typer.Exit(code=2)


def _check_format(format: str, command: str) -> None:
    if format not in ("text", "json"):
        _print_errors(
            [
                GraphError(
                    code=f"E_{command.upper()}_UNKNOWN_FORMAT",
                    message=f"unknown format: {format} (choose one of: text, json)",
                    path="format",
                )
            ]
        )
        raise typer.Exit(code=2)


def _print_errors(errors: list[GraphError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="depgraph")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
