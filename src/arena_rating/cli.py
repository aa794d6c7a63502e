"""CLI for Arena Rating."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, TypeVar

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from arena_rating import __version__
from arena_rating.core.config import ArenaConfig, load_config
from arena_rating.core.errors import ArenaError, ConfigurationError
from arena_rating.core.types import VOTE_CHOICES
from arena_rating.services.leaderboard import (
    CandidateDetail,
    LeaderboardService,
    render_opponents,
    render_table,
)
from arena_rating.services.maintenance import MaintenanceService
from arena_rating.services.match import MatchupService
from arena_rating.services.session import resolve_session_id
from arena_rating.services.storage import ArenaStore
from arena_rating.services.vote import VoteResponse, VoteService

T = TypeVar("T")

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="arena-rating",
    help="Arena Rating - pairwise voting, Elo ratings and conservative leaderboards",
    add_completion=False,
)
console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config YAML file (defaults apply when omitted)"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"arena-rating v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")] = False,
) -> None:
    """Arena Rating CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load(config_path: Path | None) -> ArenaConfig:
    return ArenaConfig() if config_path is None else load_config(config_path)


def _execute(config_path: Path | None, fn: Callable[[ArenaConfig, ArenaStore], Awaitable[T]]) -> T:
    """Load config, open the store, run fn, and map failures to exit code 1."""
    try:
        config = _load(config_path)

        async def _run() -> T:
            store = ArenaStore(config)
            try:
                return await fn(config, store)
            finally:
                await store.close()

        return asyncio.run(_run())

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1) from e
    except ArenaError as e:
        console.print(f"[red]Rejected ({e.status_code}):[/red] {e.message}")
        raise typer.Exit(1) from e


@app.command("init-db")
def init_db(config_path: ConfigOption = None) -> None:
    """Create the rating store tables."""

    async def _init(_config: ArenaConfig, store: ArenaStore) -> str:
        return store.database_url

    url = _execute(config_path, _init)
    console.print(f"[green]Schema ready:[/green] {url}")


@app.command()
def onboard(
    config_path: ConfigOption = None,
    disable: Annotated[
        list[str] | None, typer.Option("--disable", help="Disable a candidate by key")
    ] = None,
    enable: Annotated[
        list[str] | None, typer.Option("--enable", help="Re-enable a candidate by key")
    ] = None,
) -> None:
    """Onboard the configured candidates and toggle enabled flags."""

    async def _onboard(config: ArenaConfig, store: ArenaStore) -> None:
        service = MaintenanceService(config, store)
        results = await service.onboard_candidates()
        for candidate, created in results:
            status = "[green]created[/green]" if created else "updated"
            console.print(f"  {candidate.key}: {status}")

        for key, enabled in [(k, False) for k in disable or []] + [(k, True) for k in enable or []]:
            candidate = await store.candidates.set_enabled(key, enabled)
            if candidate is None:
                console.print(f"  [yellow]{key}: unknown candidate[/yellow]")
            else:
                console.print(f"  {key}: {'enabled' if enabled else 'disabled'}")

    _execute(config_path, _onboard)


@app.command()
def matchup(
    config_path: ConfigOption = None,
    count: Annotated[int, typer.Option("--count", "-n", min=1, help="Matchups to create")] = 1,
    include_baseline: Annotated[
        bool, typer.Option("--include-baseline", help="Allow a baseline on one side")
    ] = False,
    seed: Annotated[int | None, typer.Option("--seed", help="Override sampling seed")] = None,
) -> None:
    """Sample and persist open matchups."""

    async def _create(config: ArenaConfig, store: ArenaStore) -> None:
        if seed is not None:
            config.sampling.seed = seed
        service = MatchupService(config, store)
        table = Table("Matchup", "Lane", "A", "B", "Reason")
        names = {c.id: c.display_name for c in await store.candidates.list_candidates()}
        for _ in range(count):
            created, pair = await service.create_matchup(include_baseline=include_baseline)
            table.add_row(created.id, pair.lane, names[pair.a.id], names[pair.b.id], pair.reason)
        console.print(table)

    _execute(config_path, _create)


@app.command()
def vote(
    matchup_id: Annotated[str, typer.Argument(help="Matchup id")],
    choice: Annotated[str, typer.Argument(help=f"One of {', '.join(VOTE_CHOICES)}")],
    config_path: ConfigOption = None,
    session: Annotated[
        str | None, typer.Option("--session", "-s", help="Session id (new one issued if omitted)")
    ] = None,
) -> None:
    """Submit a vote on a matchup."""
    session_id, issued = resolve_session_id(session)
    if issued:
        console.print(f"[dim]Issued session:[/dim] {session_id}")

    async def _vote(config: ArenaConfig, store: ArenaStore) -> VoteResponse:
        return await VoteService(config, store).handle(
            {"matchup_id": matchup_id, "choice": choice}, session_id
        )

    response = _execute(config_path, _vote)
    console.print_json(json.dumps(response.model_dump(exclude_none=True)))
    if not response.ok:
        raise typer.Exit(1)


@app.command()
def leaderboard(
    config_path: ConfigOption = None,
    export: Annotated[
        bool, typer.Option("--export/--no-export", help="Write Markdown, CSV and JSON files")
    ] = False,
    output_dir: Annotated[
        Path | None, typer.Option("--output-dir", "-o", help="Export directory override")
    ] = None,
) -> None:
    """Show the current leaderboard."""

    async def _show(config: ArenaConfig, store: ArenaStore) -> None:
        service = LeaderboardService(config, store)
        entries = await service.get_leaderboard()
        if not entries:
            console.print("[yellow]No ranked candidates yet.[/yellow]")
            return
        console.print(render_table(entries), markup=False, highlight=False)
        if export:
            for path in await service.export(output_dir):
                console.print(f"Saved: {path}")

    _execute(config_path, _show)


def _percent(value: float | None) -> str:
    return "-" if value is None else f"{value:.0%}"


@app.command()
def detail(
    key: Annotated[str, typer.Argument(help="Candidate key")],
    config_path: ConfigOption = None,
) -> None:
    """Show rating state, form and head-to-head results of one candidate."""

    async def _detail(config: ArenaConfig, store: ArenaStore) -> CandidateDetail | None:
        return await LeaderboardService(config, store).get_candidate_detail(key)

    result = _execute(config_path, _detail)
    if result is None:
        console.print(f"[yellow]No ranked candidate with key {key!r}.[/yellow]")
        raise typer.Exit(1)

    console.print(f"[bold]{result.display_name}[/bold] ({result.key})")
    console.print(
        f"  Score: {result.rank_score:.1f}  Rating: {result.rating:.1f}  "
        f"RD: {result.rating_deviation:.1f}  Confidence: {result.confidence}%  "
        f"Tier: {result.stability}"
    )
    console.print(
        f"  Shown: {result.shown_count}  Votes: {result.total_votes}  "
        f"Win rate: {_percent(result.win_rate)}  "
        f"Quality floor: {_percent(result.quality_floor_score)}"
    )
    delta = "" if result.recent_delta is None else f" ({result.recent_delta:+.2f})"
    recent = "-" if result.recent_form is None else f"{result.recent_form:.2f}"
    console.print(f"  Recent form: {recent}{delta}")
    if result.opponents:
        console.print(render_opponents(result), markup=False, highlight=False)


@app.command()
def snapshot(config_path: ConfigOption = None) -> None:
    """Capture the current ranks for the rank-change column."""

    async def _capture(config: ArenaConfig, store: ArenaStore) -> None:
        captured_at, count = await LeaderboardService(config, store).capture_snapshot()
        console.print(f"[green]Captured {count} ranks at {captured_at.isoformat()}[/green]")

    _execute(config_path, _capture)


@app.command()
def recompute(
    config_path: ConfigOption = None,
    apply: Annotated[bool, typer.Option("--apply", help="Write replayed ratings back")] = False,
    limit: Annotated[int, typer.Option("--limit", help="Rows of differences to show")] = 20,
) -> None:
    """Replay all votes from default ratings and report differences."""

    async def _recompute(config: ArenaConfig, store: ArenaStore) -> None:
        report = await MaintenanceService(config, store).recompute_from_history(apply=apply)
        console.print(f"Replayed {report.votes_replayed} votes ({report.votes_skipped} skipped)")
        table = Table("Candidate", "Score before", "Score after", "Delta", "RD before", "RD after")
        for diff in report.diffs[:limit]:
            table.add_row(
                diff.key,
                f"{diff.score_before:.1f}",
                f"{diff.score_after:.1f}",
                f"{diff.score_delta:+.1f}",
                f"{diff.deviation_before:.1f}",
                f"{diff.deviation_after:.1f}",
            )
        console.print(table)
        if report.applied:
            console.print("[green]Replayed ratings applied.[/green]")
        else:
            console.print("[dim]Dry run; pass --apply to write the replayed ratings.[/dim]")

    _execute(config_path, _recompute)


@app.command()
def reset(
    config_path: ConfigOption = None,
    keep_history: Annotated[
        bool, typer.Option("--keep-history", help="Keep votes and matchups")
    ] = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Reset every candidate to its onboarding rating."""
    if not yes:
        what = "ratings" if keep_history else "ratings, votes and matchups"
        typer.confirm(f"Reset all {what}?", abort=True)

    async def _reset(config: ArenaConfig, store: ArenaStore) -> dict[str, int]:
        return await MaintenanceService(config, store).reset_ratings(keep_history=keep_history)

    result = _execute(config_path, _reset)
    console.print(
        f"[green]Reset {result['candidates']} candidates[/green] "
        f"(deleted {result['votes']} votes, {result['matchups']} matchups)"
    )


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file without touching the store.

    Args:
        config_path: Path to YAML configuration file.
    """
    try:
        config = load_config(config_path)
        console.print("[green]Configuration is valid![/green]")
        console.print(f"  Candidates: {len(config.candidates)}")
        console.print(f"  Baselines: {sum(1 for c in config.candidates if c.is_baseline)}")
        console.print(f"  K-factor: {config.rating.k_factor}")
        console.print(f"  Lane weights: {config.sampling.lane_weights}")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except ValidationError as e:
        console.print(f"[red]Validation error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command()
def info() -> None:
    """Show tool information and example commands."""
    console.print("[bold]Arena Rating[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print("[bold]Example Commands:[/bold]")
    console.print("  # Create tables and onboard candidates")
    console.print("  arena-rating init-db -c arena.yaml")
    console.print("  arena-rating onboard -c arena.yaml\n")

    console.print("  # Sample matchups and vote")
    console.print("  arena-rating matchup -c arena.yaml --count 5")
    console.print("  arena-rating vote <matchup-id> A -c arena.yaml --session me\n")

    console.print("  # Leaderboard with exported files")
    console.print("  arena-rating leaderboard -c arena.yaml --export")
    console.print("  arena-rating detail alpha -c arena.yaml\n")

    console.print("  # Hourly snapshot (run from cron)")
    console.print("  arena-rating snapshot -c arena.yaml\n")

    console.print("  # Rebuild ratings from the vote history")
    console.print("  arena-rating recompute -c arena.yaml --apply")


if __name__ == "__main__":
    app()
