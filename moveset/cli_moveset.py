"""CLI subcommand for the moveset trivia game."""

import logging
import random
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from moveset import config
from moveset.catalog import load_catalog_csv, run_full_enumeration, verify_catalog
from moveset.enumerator import CombinationEnumerator
from moveset.errors import EnumerationCancelled, MovesetError
from moveset.game import MovesetGame
from moveset.game_engine import GameEngine
from moveset.learnability import LearnabilityResolver
from moveset.models import Creature, RoundFailure, validate_generation
from moveset.seeding import DEFAULT_DATASET, seed_reference_data
from moveset.storage import MovesetStore
from moveset.uniqueness import AggregateUniquenessChecker
from moveset.utils.logging import setup_logging

app = typer.Typer(help="Moveset trivia: guess the Pokémon from four moves")
console = Console()

logger = logging.getLogger(__name__)

DB_OPTION = typer.Option(None, "--db", help="DuckDB file (default: $MOVESET_DB or data/moveset.duckdb)")
LOG_OPTION = typer.Option(None, "--log-path", help="Directory for log files (default: $MOVESET_LOG_DIR)")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")


def _setup(log_path: Optional[str], verbose: bool) -> None:
    setup_logging(Path(log_path or config.log_dir()), verbose)


def _open_store(db: Optional[str]) -> MovesetStore:
    return MovesetStore(db or config.db_path())


def _fail(error: Exception) -> None:
    console.print(f"[red]Error: {error}[/red]")
    raise typer.Exit(1)


def _resolve_creature(store: MovesetStore, value: str) -> Creature:
    """Accept either a creature id or its name."""
    value = value.strip()
    if value.isdigit():
        return store.get_creature_by_id(int(value))
    return store.get_creature_by_name(value)


def _describe_miss(creature: Creature, missing_moves: List[str]) -> str:
    if missing_moves:
        return f"{creature.name} can't learn: {', '.join(missing_moves)}"
    return f"{creature.name} is not the one"


def _print_moves(moves) -> None:
    table = Table(title="Which Pokémon can learn all of these?")
    table.add_column("Move", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Power", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("PP", justify="right")
    for move in moves:
        table.add_row(
            move.name,
            move.type,
            "-" if move.power is None else str(move.power),
            "-" if move.accuracy is None else str(move.accuracy),
            "-" if move.pp is None else str(move.pp),
        )
    console.print(table)


# === Reference data ===


@app.command()
def seed(
    data: Path = typer.Option(DEFAULT_DATASET, "--data", help="YAML reference dataset"),
    force: bool = typer.Option(False, "--force", help="Reset and reseed an already seeded database"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Load the reference dataset (no-op if already seeded)."""
    _setup(log_path, verbose)
    try:
        with _open_store(db) as store:
            written = seed_reference_data(store, data, force=force)
    except (MovesetError, OSError) as e:
        _fail(e)

    if written:
        console.print(f"[green]Seeded reference data from {data}[/green]")
    else:
        console.print("[yellow]Already seeded. Use --force to reseed.[/yellow]")


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Delete all reference data, the puzzle catalog and the seeded flag."""
    _setup(log_path, verbose)
    if not yes and not typer.confirm("This deletes all reference data and catalogs. Continue?"):
        raise typer.Exit(1)
    with _open_store(db) as store:
        store.reset_reference_data()
    console.print("[green]Reference data reset[/green]")


# === Rounds ===


@app.command()
def start(
    gen: int = typer.Option(9, "--gen", "-g", help="Generation cutoff (1-9)"),
    use_catalog: bool = typer.Option(False, "--catalog", help="Serve from the precomputed catalog first"),
    seed: Optional[int] = typer.Option(None, help="Random seed for reproducible rounds"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Start a round and print its moves and round token."""
    _setup(log_path, verbose)
    try:
        with _open_store(db) as store:
            game = MovesetGame(store, use_catalog=use_catalog, rng=random.Random(seed))
            result = game.start_round(gen)
    except MovesetError as e:
        _fail(e)

    if isinstance(result, RoundFailure):
        console.print(f"[yellow]{result.message}[/yellow]")
        raise typer.Exit(1)

    _print_moves(result.moves)
    console.print(f"[dim]Generation cutoff: {result.generation} ({result.source})[/dim]")
    # Unwrapped so the token can be copied in one piece
    console.print(f"Round token: [bold]{result.round_token}[/bold]", soft_wrap=True)


@app.command()
def hint(
    token: str = typer.Argument(..., help="Round token from 'start'"),
    kind: str = typer.Option("generation", "--kind", "-k", help="'generation' or 'type'"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Get a hint for a round (costs one point)."""
    _setup(log_path, verbose)
    try:
        with _open_store(db) as store:
            text = MovesetGame(store).get_hint(token, kind)
    except MovesetError as e:
        _fail(e)
    console.print(f"[cyan]💡 {text}[/cyan]")


@app.command()
def answer(
    token: str = typer.Argument(..., help="Round token from 'start'"),
    guess: str = typer.Argument(..., help="Creature id or name"),
    attempt: int = typer.Option(1, "--attempt", "-a", help="Attempt number (1-3)"),
    hints: int = typer.Option(0, "--hints", help="Hints used so far"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Submit a guess for a round."""
    _setup(log_path, verbose)
    try:
        with _open_store(db) as store:
            creature = _resolve_creature(store, guess)
            result = MovesetGame(store).submit_answer(token, creature.id, attempt, hints)
    except MovesetError as e:
        _fail(e)

    if result.correct:
        console.print(f"[green]✓ Correct! {result.reveal_creature.name} (+{result.points} points)[/green]")
        return

    console.print(f"[red]✗ Wrong. {_describe_miss(creature, result.missing_moves)}[/red]")
    if result.reveal_creature is not None:
        console.print(f"[yellow]The answer was {result.reveal_creature.name}[/yellow]")
    else:
        console.print(f"[dim]Lives remaining: {result.lives_remaining}[/dim]")


@app.command()
def play(
    gen: int = typer.Option(9, "--gen", "-g", help="Generation cutoff (1-9)"),
    rounds: int = typer.Option(1, "--rounds", "-n", help="Number of rounds"),
    seed: Optional[int] = typer.Option(None, help="Random seed for reproducible rounds"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Play rounds interactively in the terminal.

    At the prompt, type a creature name or id, or 'hint generation' /
    'hint type'. Each hint costs one point.
    """
    _setup(log_path, verbose)
    total = 0
    seen: List[List[str]] = []

    try:
        with _open_store(db) as store:
            game = MovesetGame(store, use_catalog=True, rng=random.Random(seed))
            for round_number in range(1, rounds + 1):
                result = game.start_round(gen, seen_movesets=seen)
                if isinstance(result, RoundFailure):
                    console.print(f"[yellow]{result.message}[/yellow]")
                    break
                seen.append(result.move_names)

                console.print(f"\n[bold]Round {round_number}/{rounds}[/bold]")
                _print_moves(result.moves)

                attempt = 1
                hints_used = 0
                while attempt <= GameEngine.MAX_ATTEMPTS:
                    entry = typer.prompt(f"Guess ({GameEngine.MAX_ATTEMPTS - attempt + 1} left)").strip()
                    if entry.lower().startswith("hint"):
                        kind = entry[4:].strip() or "generation"
                        try:
                            console.print(f"[cyan]💡 {game.get_hint(result.round_token, kind)}[/cyan]")
                            hints_used += 1
                        except MovesetError as e:
                            console.print(f"[red]{e}[/red]")
                        continue

                    try:
                        creature = _resolve_creature(store, entry)
                    except MovesetError as e:
                        console.print(f"[red]{e}[/red]")
                        continue

                    outcome = game.submit_answer(result.round_token, creature.id, attempt, hints_used)
                    if outcome.correct:
                        total += outcome.points
                        console.print(f"[green]✓ {outcome.reveal_creature.name}! +{outcome.points}[/green]")
                        break
                    console.print(f"[red]✗ {_describe_miss(creature, outcome.missing_moves)}[/red]")
                    if outcome.reveal_creature is not None:
                        console.print(f"[yellow]The answer was {outcome.reveal_creature.name}[/yellow]")
                    attempt += 1
    except MovesetError as e:
        _fail(e)

    console.print(f"\n[bold]Final score: {total}/{GameEngine.max_possible_score(rounds)}[/bold]")


# === Moveset tools ===


@app.command()
def moves(
    creature: str = typer.Argument(..., help="Creature id or name"),
    gen: int = typer.Option(9, "--gen", "-g", help="Generation cutoff (1-9)"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """List a creature's effective learnable moves (pre-evolutions included)."""
    _setup(log_path, verbose)
    try:
        with _open_store(db) as store:
            target = _resolve_creature(store, creature)
            move_ids = LearnabilityResolver(store).effective_moves(target.id, gen)
            move_list = store.get_moves_by_ids(sorted(move_ids))
    except MovesetError as e:
        _fail(e)

    console.print(f"[bold]{target.name}[/bold] can learn {len(move_list)} moves up to gen {gen}:")
    for move in sorted(move_list, key=lambda m: m.name):
        console.print(f"  {move.name} [dim]({move.type})[/dim]")


@app.command()
def owners(
    move_names: List[str] = typer.Argument(..., help="Move names, e.g. thunderbolt quick-attack"),
    gen: int = typer.Option(9, "--gen", "-g", help="Generation cutoff (1-9)"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show every creature that can learn all of the given moves."""
    _setup(log_path, verbose)
    try:
        with _open_store(db) as store:
            found = MovesetGame(store).moveset_owners(move_names, gen)
    except MovesetError as e:
        _fail(e)

    if not found:
        console.print("[yellow]No creature can learn all of these moves[/yellow]")
        return
    table = Table(title=f"Owners up to gen {gen}")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Gen", justify="right")
    for c in found:
        table.add_row(str(c.id), c.name, str(c.generation))
    console.print(table)
    if len(found) == 1:
        console.print(f"[green]Unique to {found[0].name}[/green]")


@app.command()
def validate(
    creature: str = typer.Argument(..., help="Creature id or name"),
    move_names: List[str] = typer.Argument(..., help="Move names"),
    gen: int = typer.Option(9, "--gen", "-g", help="Generation cutoff (1-9)"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Check whether a moveset singles out one creature."""
    _setup(log_path, verbose)
    try:
        with _open_store(db) as store:
            target = _resolve_creature(store, creature)
            check = MovesetGame(store).validate_moveset(move_names, target.id, gen)
    except MovesetError as e:
        _fail(e)

    if check.is_unique:
        console.print(f"[green]Unique to {target.name}[/green]")
    else:
        console.print(f"[yellow]Shared with: {', '.join(check.shared_with)}[/yellow]")


# === Catalog ===


@app.command(name="enumerate")
def enumerate_catalog(
    gen: str = typer.Option(..., "--gen", "-g", help="Generation (1-9) or 'all'"),
    mode: str = typer.Option("fast", "--mode", "-m", help="'fast' (sampled) or 'complete' (every combination)"),
    workers: int = typer.Option(1, "--workers", "-w", help="Threads sweeping creatures in parallel"),
    samples: int = typer.Option(
        CombinationEnumerator.FAST_SAMPLES_PER_CREATURE, "--samples", help="Combinations per creature in fast mode"
    ),
    seed: Optional[int] = typer.Option(None, help="Random seed for fast-mode sampling"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="CSV directory (default: $MOVESET_CATALOG_DIR)"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Precompute the puzzle catalog for one generation or all of them.

    Complete mode checks every four-move combination and can take hours for
    late generations. Fast mode samples a bounded number per creature.
    """
    _setup(log_path, verbose)
    output_dir = output_dir or Path(config.catalog_dir())

    console.print(f"[bold blue]🧩 Moveset catalog ({mode})[/bold blue]")
    console.print(f"Generation: {gen}  Workers: {workers}  Output: {output_dir}")

    try:
        with _open_store(db) as store, Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Enumerating...", total=None)

            def on_progress(stats):
                progress.update(
                    task,
                    description=(
                        f"Gen {stats.generation}: {stats.combinations_checked:,} checked, "
                        f"{stats.unique_found:,} unique"
                    ),
                )

            enumerator = CombinationEnumerator(store, on_progress=on_progress, workers=workers, seed=seed)
            results = run_full_enumeration(
                store, gen, mode, output_dir=output_dir, enumerator=enumerator, samples_per_creature=samples
            )
    except (KeyboardInterrupt, EnumerationCancelled):
        console.print("[yellow]Enumeration cancelled; the interrupted generation was not written[/yellow]")
        raise typer.Exit(130)
    except MovesetError as e:
        _fail(e)

    table = Table(title="Enumeration Summary")
    table.add_column("Gen", justify="right", style="cyan")
    table.add_column("Creatures", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Checked", justify="right")
    table.add_column("Unique", justify="right", style="green")
    table.add_column("Minutes", justify="right")
    table.add_column("File", style="dim")
    for result in results:
        s = result.stats
        table.add_row(
            str(result.generation),
            str(s.creatures_total),
            str(s.creatures_skipped),
            f"{s.combinations_checked:,}",
            f"{s.unique_found:,}",
            f"{s.elapsed_seconds / 60:.1f}",
            result.output_path or "",
        )
    console.print(table)


@app.command()
def verify(
    gen: int = typer.Option(..., "--gen", "-g", help="Generation cutoff (1-9)"),
    csv_file: Optional[Path] = typer.Option(None, "--csv", help="Verify a CSV export instead of the stored catalog"),
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Re-check that every catalog puzzle is still unique."""
    _setup(log_path, verbose)
    try:
        gen = validate_generation(gen)
        with _open_store(db) as store:
            puzzles = load_catalog_csv(csv_file) if csv_file else store.get_catalog(gen)
            puzzles = [p for p in puzzles if p.generation == gen]
            checker = AggregateUniquenessChecker(store, LearnabilityResolver(store))
            failures = verify_catalog(puzzles, checker)
    except (MovesetError, OSError) as e:
        _fail(e)

    if not puzzles:
        console.print(f"[yellow]No puzzles for gen {gen}[/yellow]")
        return
    if failures:
        console.print(f"[red]{len(failures)}/{len(puzzles)} puzzles are not unique[/red]")
        for p in failures[:10]:
            console.print(f"[red]  {p.creature_name or p.creature_id}: {p.key}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]All {len(puzzles)} gen {gen} puzzles verified unique[/green]")


@app.command(name="catalog-stats")
def catalog_stats(
    db: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show how many puzzles are stored per generation."""
    _setup(log_path, verbose)
    with _open_store(db) as store:
        summary = store.catalog_summary()

    if not summary:
        console.print("[yellow]Catalog is empty. Run 'enumerate' first.[/yellow]")
        return
    table = Table(title="Puzzle Catalog")
    table.add_column("Gen", justify="right", style="cyan")
    table.add_column("Mode", style="magenta")
    table.add_column("Puzzles", justify="right", style="green")
    table.add_column("Creatures", justify="right")
    for generation, mode, puzzles, creatures in summary:
        table.add_row(str(generation), mode, f"{puzzles:,}", str(creatures))
    console.print(table)
