"""CLI entry point for shopify-app-proxy."""

import sys
from datetime import datetime

from rich.console import Console

from app import create_app
from core.config import CONFIG_FILE, Config, load_config
from core.exceptions import ConfigurationError
from ui.dashboard import Dashboard
from ui.log_utils import clear_logs, install_cli_log_handler, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        console.print(f"[dim]Edit {CONFIG_FILE} or fix the environment variables[/dim]")
        sys.exit(1)

    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == "--check":
            print_signature_status(config)
            return

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
            console.print_json(config.model_dump_json(exclude={"shopify": {"api_secret"}}))
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

        console.print(f"[red]Unknown option:[/red] {arg}")
        _print_help()
        sys.exit(2)

    if config.enforce_signature and not config.shopify.api_secret:
        console.print(
            "[yellow]Warning:[/yellow] production mode without SHOPIFY_API_SECRET, "
            "signatures will not be checked"
        )

    # Clear previous logs and start dashboard
    clear_logs()
    install_cli_log_handler()
    dashboard = Dashboard(config)

    import uvicorn

    app = create_app(config, dashboard)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="warning",
    )
    server = uvicorn.Server(uvicorn_config)

    dashboard.start()
    start_time = datetime.now()
    write_cli_log(
        "STARTUP",
        "Proxy started",
        port=config.proxy.port,
        target=config.target.base_url,
        path=config.external_path,
    )
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        dashboard.stop()


def print_signature_status(config: Config) -> None:
    """Report whether incoming requests will be signature-checked."""
    if not config.enforce_signature:
        console.print(
            f"[yellow]Verification skipped[/yellow] (environment: {config.proxy.environment})"
        )
    elif config.shopify.api_secret:
        console.print("[green]Verification enforced[/green] (secret configured)")
    else:
        console.print("[red]Verification enforced but no secret set[/red] - all requests pass")
        console.print("\n[dim]Set SHOPIFY_API_SECRET to the app's API secret key[/dim]")


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Shopify App Proxy[/bold cyan]

Forwards Shopify app proxy requests (e.g. /apps/a) to a backend application.

[bold]Usage:[/bold]
    shopify-app-proxy              Start with live dashboard
    shopify-app-proxy --check      Check signature verification status
    shopify-app-proxy --config     Show config location and effective values
    shopify-app-proxy --help       Show this help

[bold]Environment:[/bold]
    TARGET_DOMAIN, SHOPIFY_API_SECRET, PROXY_PREFIX, PROXY_SUBPATH,
    PORT, NODE_ENV (production enables verification), PROXY_MODE (rewrite|liquid)
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
