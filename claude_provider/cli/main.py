"""Command-line entry point for the Claude provider."""

import asyncio
from pathlib import Path

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from claude_provider._version import __version__
from claude_provider.auth.exceptions import OAuthError
from claude_provider.auth.models import OAuthTokens
from claude_provider.auth.oauth import ClaudeOAuthClient, generate_pkce_params
from claude_provider.cli.helpers import echo_json, get_rich_toolkit
from claude_provider.config.settings import ConfigurationError, Settings
from claude_provider.core.logging import get_logger, setup_logging
from claude_provider.models import get_plugin_info, list_models
from claude_provider.rpc import run_server


app = typer.Typer(
    name="claude-provider",
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=False,
    pretty_exceptions_enable=False,
)

logger = get_logger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        toolkit = get_rich_toolkit()
        toolkit.print(f"claude-provider {__version__}", tag="version")
        raise typer.Exit()


def _settings(ctx: typer.Context) -> Settings:
    settings: Settings = ctx.obj["settings"]
    return settings


@app.callback(invoke_without_command=True)
def app_main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_rpc: bool = typer.Option(
        False,
        "--json-rpc",
        help="Serve line-delimited JSON-RPC on stdin/stdout.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a TOML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Claude provider: multi-scheme credentials for the Claude API."""
    try:
        settings = Settings.from_config(config_path=config)
    except ConfigurationError as e:
        get_rich_toolkit().print(f"Configuration error: {e}", tag="error")
        raise typer.Exit(1) from e

    setup_logging(
        json_logs=settings.logging.format == "json",
        log_level_name=settings.logging.level,
        log_file=settings.logging.file,
    )
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings

    if json_rpc:
        logger.info("json_rpc_mode_starting", version=__version__)
        asyncio.run(run_server(settings))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        echo_json(get_plugin_info())


@app.command()
def info() -> None:
    """Show provider information as JSON."""
    echo_json(get_plugin_info())


@app.command()
def models(
    as_json: bool = typer.Option(
        False, "--json", help="Print JSON instead of a table."
    ),
) -> None:
    """List the supported Claude models."""
    catalog = list_models()
    if as_json:
        echo_json(catalog)
        return

    table = Table(title="Claude models", box=box.ROUNDED)
    table.add_column("Model", style="cyan")
    table.add_column("Name")
    table.add_column("Family", style="magenta")
    table.add_column("Context", justify="right")
    for model in catalog:
        table.add_row(
            model.id,
            model.display_name,
            model.family or "-",
            f"{model.context_length:,}" if model.context_length else "-",
        )
    Console().print(table)


@app.command("oauth-url")
def oauth_url(
    ctx: typer.Context,
    setup: bool = typer.Option(
        False, "--setup", help="Request an inference-only setup token."
    ),
) -> None:
    """Generate PKCE parameters and the authorization URL."""
    params = generate_pkce_params(minimal_scope=setup, settings=_settings(ctx).oauth)
    echo_json(params)


@app.command()
def exchange(
    ctx: typer.Context,
    code: str = typer.Argument(..., help="Authorization code from the callback page"),
    verifier: str = typer.Option(..., "--verifier", help="PKCE code verifier"),
    state: str = typer.Option(..., "--state", help="State from the authorization URL"),
) -> None:
    """Exchange an authorization code for tokens."""
    settings = _settings(ctx)

    async def _exchange() -> OAuthTokens:
        async with ClaudeOAuthClient(
            settings=settings.oauth, http_settings=settings.http
        ) as client:
            return await client.exchange_code(code, verifier, state)

    try:
        tokens = asyncio.run(_exchange())
    except OAuthError as e:
        get_rich_toolkit().print(f"Token exchange failed: {e}", tag="error")
        raise typer.Exit(1) from e

    echo_json(tokens)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
