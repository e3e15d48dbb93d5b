"""CLI commands for hybrid-router."""

import asyncio
import json

import typer

from hybrid_router import __version__
from hybrid_router.classifier import HybridClassifier
from hybrid_router.config import ModelConfig, ReasoningSettings
from hybrid_router.errors import HybridRouterError
from hybrid_router.log import configure_logging
from hybrid_router.reasoning import SequentialReasoner

app = typer.Typer(
    name="hybrid-router",
    help="Route free-text requests to the right tool.",
    no_args_is_help=True,
)


def version_callback(value: bool):
    if value:
        typer.echo(f"hybrid-router v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True,
    ),
    log_level: str = typer.Option(None, "--log-level", help="Overrides $LOG_LEVEL"),
):
    """hybrid-router - cascading request classifier."""
    configure_logging(log_level)


@app.command()
def classify(
    request: str = typer.Argument(..., help="Free-text request to route"),
    env_file: str = typer.Option(None, "--env-file", help="Path to a .env file"),
):
    """Classify a request and print the routing decision as JSON."""
    config = ModelConfig.from_env(env_file)
    classifier = HybridClassifier()
    match = asyncio.run(classifier.classify(request, config))
    output = match.to_dict()
    output["explanation"] = classifier.explain(match)
    typer.echo(json.dumps(output, indent=2))


@app.command()
def think(
    task: str = typer.Argument(..., help="Task for the reasoning engine"),
    max_rounds: int = typer.Option(10, "--max-rounds", min=1, help="Hard round cap"),
    timeout: float = typer.Option(None, "--timeout", help="Session deadline in seconds"),
    env_file: str = typer.Option(None, "--env-file", help="Path to a .env file"),
):
    """Run the sequential reasoning engine on a task and print its answer."""
    config = ModelConfig.from_env(env_file)
    reasoner = SequentialReasoner(settings=ReasoningSettings(max_rounds=max_rounds, timeout=timeout))
    try:
        answer = asyncio.run(reasoner.run(task, config))
    except HybridRouterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    typer.echo(answer)


if __name__ == "__main__":
    app()
