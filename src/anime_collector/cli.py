import asyncio
import os
from datetime import datetime
from typing import Any

import httpx
import structlog
import typer
from dotenv import load_dotenv

from .catalog.shikimori import CatalogClient
from .core.checkpoint import CheckpointStore
from .core.config import ServiceSettings, get_config, set_test_mode
from .enrich.kodik import EnrichmentClient
from .pipeline import PipelineDriver, RunResult
from .publish.destination import Publisher
from .transform.outbound import OutboundBuilder
from .utils.http import RateLimiter, get_client
from .utils.log import get_logger, setup_logging

# Load environment variables from .env file
load_dotenv()

DEFAULT_START_ID = 6001
DEFAULT_END_ID = 7000

# Global state for logging configuration
_log_state: dict[str, Any] = {
    "session_id": datetime.now().strftime("%Y%m%d_%H%M%S"),
    "log_file": None,
    "logger": None,
}

app = typer.Typer()


@app.callback()
def callback(
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress console log output (logs still written to file)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging"),
    test: bool = typer.Option(
        False, "--test", help="Use test environment (separate checkpoint file and log directory)"
    ),
) -> None:
    """Collect fan-dubbed anime from the catalog and push them to the destination store."""
    if test:
        set_test_mode()

    log_level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "INFO")

    _log_state["log_file"] = setup_logging(
        session_id=_log_state["session_id"],
        log_level=log_level,
        console_output=not quiet,
        log_dir=get_config().log_dir,
    )
    _log_state["logger"] = get_logger(__name__)
    _log_state["logger"].info(
        "application_started",
        session_id=_log_state["session_id"],
        log_file=str(_log_state["log_file"]),
        environment=get_config().mode,
        checkpoint_path=str(get_config().checkpoint_path),
    )


def _get_logger() -> structlog.BoundLogger | Any:
    """Get the application logger."""
    if _log_state["logger"] is None:
        _log_state["log_file"] = setup_logging(
            session_id=_log_state["session_id"], log_dir=get_config().log_dir
        )
        _log_state["logger"] = get_logger(__name__)
    return _log_state["logger"]


class _LogProxy:
    """Proxy class that forwards all attribute access to the lazily-initialized logger."""

    def __getattr__(self, name: str) -> Any:
        return getattr(_get_logger(), name)


log = _LogProxy()


def build_driver(settings: ServiceSettings, client: httpx.AsyncClient, store: CheckpointStore) -> PipelineDriver:
    """Wire the clients and stages of one run around a shared HTTP client."""
    catalog = CatalogClient(
        client,
        api_url=settings.catalog_api_url,
        timeout=settings.http_timeout,
        rate_limiter=RateLimiter(calls_per_second=settings.catalog_rate_limit),
    )
    enrichment = EnrichmentClient(
        client,
        token=settings.kodik_token,
        api_url=settings.kodik_api_url,
        timeout=settings.http_timeout,
    )
    publisher = Publisher(client, api_url=settings.destination_api_url, timeout=settings.http_timeout)
    return PipelineDriver(
        catalog=catalog,
        enrichment=enrichment,
        builder=OutboundBuilder(catalog, settings),
        publisher=publisher,
        store=store,
        fandub_token=settings.fandub_token,
    )


async def run_collect(settings: ServiceSettings, start_id: int, end_id: int, store: CheckpointStore) -> RunResult:
    client = get_client(user_agent=settings.user_agent, timeout=settings.http_timeout)
    try:
        driver = build_driver(settings, client, store)
        return await driver.run(start_id, end_id)
    finally:
        await client.aclose()


@app.command()
def collect(
    start: int = typer.Option(DEFAULT_START_ID, "--start", "-s", help="First catalog id (inclusive)"),
    end: int = typer.Option(DEFAULT_END_ID, "--end", "-e", help="Last catalog id (inclusive)"),
) -> None:
    """Scan a catalog id range, keep fan-dubbed titles, enrich and publish them."""
    if start > end:
        typer.echo(f"--start ({start}) must not exceed --end ({end})", err=True)
        raise typer.Exit(code=2)

    settings = ServiceSettings.from_env()
    store = CheckpointStore(get_config().checkpoint_path)
    log.info("collect_started", start_id=start, end_id=end)

    result = asyncio.run(run_collect(settings, start, end, store))

    log.info(
        "collect_finished",
        success=result.success,
        processed=result.processed,
        state=result.state.value,
    )
    typer.echo(f"\n{'=' * 60}")
    typer.echo(f"{'OK' if result.success else 'FAILED'}: {result.message}")
    typer.echo(f"  Collected: {result.collected}")
    typer.echo(f"  Processed: {result.processed}")
    if result.published or result.failed:
        typer.echo(f"  Published: {len(result.published)}")
        typer.echo(f"  Failed:    {len(result.failed)}")
    typer.echo("=" * 60)
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def checkpoint_status() -> None:
    """Show what an interrupted run left in the checkpoint file."""
    store = CheckpointStore(get_config().checkpoint_path)
    checkpoint = store.load()
    if not checkpoint.collected:
        typer.echo(f"No checkpoint data at {store.path}")
        return
    ids = [int(rec.id) for rec in checkpoint.collected]
    typer.echo(f"Checkpoint: {store.path}")
    typer.echo(f"  Records:  {len(ids)}")
    typer.echo(f"  Saved at: {checkpoint.saved_at.isoformat() if checkpoint.saved_at else 'unknown'}")
    typer.echo(f"  Id range: {min(ids)}-{max(ids)}")


@app.command()
def clear_checkpoint(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete the checkpoint file, discarding collected-but-unpublished records."""
    store = CheckpointStore(get_config().checkpoint_path)
    if not yes:
        typer.confirm(f"Delete {store.path}?", abort=True)
    store.clear()
    log.info("checkpoint_cleared_by_user", path=str(store.path))
    typer.echo(f"Removed {store.path}")


if __name__ == "__main__":
    app()
