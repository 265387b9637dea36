"""CLI module for pdf-annotator-jobs."""

from __future__ import annotations

import typer

from pdf_annotator_jobs import __version__
from pdf_annotator_jobs.observability import LogLevel, configure_logging


app = typer.Typer(
    name="pdf-jobs",
    help="Asynchronous PDF export and OCR jobs.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:  # noqa: FBT001
    """Print version and exit."""
    if value:
        typer.echo(f"pdf-jobs version {__version__}")
        raise typer.Exit


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(  # noqa: FBT001
        False,  # noqa: FBT003
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(  # noqa: FBT001
        False,  # noqa: FBT003
        "--verbose",
        "-V",
        help="Enable verbose (debug) logging.",
    ),
    quiet: bool = typer.Option(  # noqa: FBT001
        False,  # noqa: FBT003
        "--quiet",
        "-q",
        help="Only show warnings and errors.",
    ),
) -> None:
    """pdf-annotator-jobs CLI."""
    del version  # Handled by callback

    if verbose and quiet:
        typer.echo("Error: --verbose and --quiet are mutually exclusive.", err=True)
        raise typer.Exit(1)

    if verbose:
        level = LogLevel.DEBUG
    elif quiet:
        level = LogLevel.WARNING
    else:
        level = LogLevel.INFO

    configure_logging(level=level)
    ctx.obj = {"log_level_from_flags": verbose or quiet}


@app.command()
def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", "-h", help="Host to bind to."),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind to."),
    config_file: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
) -> None:
    """Start the API server with the export and OCR workers."""
    import uvicorn

    from pdf_annotator_jobs.config import load_settings
    from pdf_annotator_jobs.web import create_app

    settings = load_settings(config_file)
    if not (ctx.obj or {}).get("log_level_from_flags"):
        configure_logging(level=settings.observability.logging.level.value)
    application = create_app(settings=settings)

    uvicorn.run(
        application,
        host=host or settings.web.host,
        port=port or settings.web.port,
    )


@app.command()
def config(
    config_file: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
) -> None:
    """Validate the configuration and print a summary."""
    from pdf_annotator_jobs.config import ConfigurationError, load_settings

    try:
        settings = load_settings(config_file)
    except ConfigurationError as exc:
        typer.echo(f"Invalid configuration: {exc.message}", err=True)
        raise typer.Exit(1) from exc

    ocr = settings.ocr
    typer.echo("Configuration is valid.")
    typer.echo(f"  storage root:    {settings.storage.root_dir}")
    typer.echo(f"  public base url: {settings.storage.public_base_url}")
    typer.echo(f"  export queue:    {settings.queues.export}")
    typer.echo(f"  ocr queue:       {settings.queues.ocr}")
    typer.echo(f"  max dequeues:    {settings.queues.max_dequeue_count}")
    typer.echo(f"  consumers:       {settings.queues.consumers_enabled}")
    typer.echo(f"  documents:       {len(settings.documents)}")
    typer.echo(
        f"  ocr:             {ocr.model_id} @ {ocr.endpoint}"
        if ocr.is_configured
        else "  ocr:             not configured",
    )


@app.command()
def token(
    email: str = typer.Argument(..., help="Account email (token subject)."),
    role: str = typer.Option("user", "--role", "-r", help="Account role."),
    config_file: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
) -> None:
    """Mint a bearer token for local development."""
    from pdf_annotator_jobs.config import load_settings
    from pdf_annotator_jobs.web.auth import create_access_token

    settings = load_settings(config_file)
    typer.echo(create_access_token(email, settings.auth, role=role))


__all__ = ["app"]
