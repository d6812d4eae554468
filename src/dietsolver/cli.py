"""CLI interface using Typer."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from dietsolver.config import get_settings, reload_settings
from dietsolver.data.problem import ProblemData, default_problem, load_problem_from_yaml
from dietsolver.exceptions import PreconditionError, SolverError, UnknownFoodError
from dietsolver.export.writers import ConsoleWriter, format_number
from dietsolver.optimizer.backends import BACKENDS, session_factory
from dietsolver.optimizer.orchestrator import SolveOrchestrator

app = typer.Typer(
    help="Diet problem LP: solve, add a dairy limit, solve again",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def load_problem(data_path: Optional[Path]) -> ProblemData:
    """Load the problem file, or the built-in dataset when no path is given.

    Raises typer.Exit(1) with a friendly message if the file is unusable.
    """
    if data_path is None:
        return default_problem()

    try:
        return load_problem_from_yaml(data_path)
    except FileNotFoundError:
        console.print(f"[red]Problem file not found: {escape(str(data_path))}[/red]")
        raise typer.Exit(1)
    except (KeyError, PreconditionError) as e:
        console.print(f"[red]Invalid problem file: {escape(str(e))}[/red]")
        raise typer.Exit(1)


# ============================================================================
# Main Commands
# ============================================================================


@app.command()
def solve(
    backend: Optional[str] = typer.Option(
        None, "--backend", "-b", help=f"Solver backend: {', '.join(BACKENDS)}"
    ),
    data_path: Optional[Path] = typer.Option(
        None, "--data", "-d", help="YAML problem file (default: built-in dataset)"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to config.yaml"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log solver progress to stderr"
    ),
) -> None:
    """Solve the diet LP, add the dairy constraint and solve again."""
    configure_logging(verbose)
    settings = reload_settings(config_path) if config_path else get_settings()

    backend_name = backend or settings.solver.backend
    if backend_name not in BACKENDS:
        console.print(
            f"[red]Unknown backend '{escape(backend_name)}'. "
            f"Choose from: {', '.join(BACKENDS)}[/red]"
        )
        raise typer.Exit(1)
    solver_config = replace(settings.solver, backend=backend_name)

    problem = load_problem(data_path or settings.data.problem_path)

    orchestrator = SolveOrchestrator(
        ConsoleWriter(console),
        problem=problem,
        sessions=session_factory(backend_name, **solver_config.session_options()),
        model_name=solver_config.model_name,
    )

    try:
        orchestrator.run()
    except SolverError as e:
        console.print(f"[red]Error code: {e.code}. {escape(e.message)}[/red]")
        raise typer.Exit(1)
    except UnknownFoodError as e:
        console.print(f"[red]Cannot apply refinement: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command("show-data")
def show_data(
    data_path: Optional[Path] = typer.Option(
        None, "--data", "-d", help="YAML problem file (default: built-in dataset)"
    ),
) -> None:
    """Show nutrition categories and foods of the problem."""
    problem = load_problem(data_path or get_settings().data.problem_path)

    category_table = Table(title="Nutrition Categories")
    category_table.add_column("Category", style="cyan")
    category_table.add_column("Min", justify="right")
    category_table.add_column("Max", justify="right")
    for category in problem.categories:
        max_str = "-" if category.max_bound == math.inf else format_number(category.max_bound)
        category_table.add_row(category.name, format_number(category.min_bound), max_str)
    console.print(category_table)

    food_table = Table(title="Foods")
    food_table.add_column("Food", style="cyan")
    food_table.add_column("Cost", justify="right", style="green")
    for category in problem.categories:
        food_table.add_column(category.name.title(), justify="right")
    for food in problem.food_types:
        food_table.add_row(
            food.name,
            f"${food.unit_cost:.2f}",
            *(format_number(v) for v in food.nutrient_content),
        )
    console.print(food_table)


if __name__ == "__main__":
    app()
