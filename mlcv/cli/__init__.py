"""
Main CLI entry point for mlcv.
"""

import typer
from typing import Optional

from ..utils.logging import setup_logging

app = typer.Typer(
    name="mlcv",
    help="Multi-label cross-validation and regularization tuning",
    add_completion=False
)

from .run import run_evaluation

app.command("run")(run_evaluation)


@app.command()
def version():
    """Show version information."""
    from .. import __version__
    typer.echo(f"mlcv v{__version__}")


@app.command()
def info():
    """Show the evaluation modes and defaults."""
    from ..models.base_model import EPOCHS, LEARNING_RATE, DEFAULT_REGULARIZATION_WEIGHT
    from ..tuning.grid_tuner import REGULARIZATION_GRID
    
    typer.echo("mlcv - Multi-label cross-validation harness")
    typer.echo("=" * 40)
    typer.echo("Modes (--options):")
    typer.echo("  tune  - Regularization grid search over train+test")
    typer.echo("  cv    - Cross-validation with default hyperparameters")
    typer.echo("  test  - Train on train set, predict test set")
    typer.echo()
    typer.echo(f"Learning rate: {LEARNING_RATE}")
    typer.echo(f"Epochs: {EPOCHS}")
    typer.echo(f"Default regularization weight: {DEFAULT_REGULARIZATION_WEIGHT}")
    typer.echo(f"Regularization grid: {', '.join(f'{w:g}' for w in REGULARIZATION_GRID)}")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Log to file")
):
    """
    mlcv - cross-validated evaluation of multi-label classifiers.
    """
    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"
    
    setup_logging(log_level=log_level, log_file=log_file)


if __name__ == "__main__":
    app()
