"""Command-line interface for Moveset Trivia.

This is the unified CLI entry point:
- `moveset game` - Seed data, play rounds, build and verify the puzzle catalog
"""

import typer
from rich.console import Console

from moveset.cli_moveset import app as game_app

# Main application
app = typer.Typer(
    help="Moveset Trivia - guess the Pokémon from four moves it can learn",
    no_args_is_help=True,
)
console = Console()

# Register subcommands
app.add_typer(game_app, name="game", help="Play rounds and manage the puzzle catalog")


@app.callback()
def main():
    """Moveset Trivia - identify a Pokémon from a unique four-move set.

    Examples:

        # Load the bundled sample dataset
        uv run moveset game seed

        # Play three rounds with a gen 2 cutoff
        uv run moveset game play --gen 2 --rounds 3

        # Precompute the catalog for every generation (sampled)
        uv run moveset game enumerate --gen all --mode fast

        # Check which creatures share a moveset
        uv run moveset game owners thunderbolt quick-attack growl thunder-wave --gen 1
    """
    pass


@app.command()
def version():
    """Show version information."""
    from moveset import __version__ as moveset_version

    console.print("[bold]Moveset Trivia[/bold]")
    console.print(f"  moveset: {moveset_version}")


if __name__ == "__main__":
    app()
