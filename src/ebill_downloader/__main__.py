"""CLI entry point for ebill-downloader."""

import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path

import click

from .adapters.billers import load_biller_ids
from .adapters.storage import FilesystemAdapter
from .adapters.webservice import B2BServiceAdapter
from .config import Settings, load_settings
from .domain.errors import EbillError, StorageError
from .domain.extractor import SignedEnvelopeExtractor
from .domain.models import FileType, InvoiceReport
from .domain.services import DownloadService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)


def add_file_logging(logs_dir: Path) -> Path:
    """Append log output to logs/debug_YYYY-MM-DD.log as well."""
    log_path = logs_dir / f"debug_{date.today().isoformat()}.log"
    handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    logging.getLogger().addHandler(handler)
    return log_path


def create_extractor(settings: Settings) -> SignedEnvelopeExtractor:
    """Create the extractor, with the biller ID table if conversion is enabled."""
    biller_ids = None
    if settings.billers.convert and settings.billers.mapping_path:
        biller_ids = load_biller_ids(settings.billers.mapping_path)
    return SignedEnvelopeExtractor(biller_ids)


def create_webservice(settings: Settings) -> B2BServiceAdapter:
    service = settings.service
    service.require_credentials()
    return B2BServiceAdapter(
        url=service.url,
        account_id=service.account_id,
        username=service.username,
        password=service.password.get_secret_value(),
        verify_tls=service.verify_tls,
        ca_cert=service.ca_cert,
        timeout=service.timeout,
    )


def create_download_service(
    settings: Settings, webservice: B2BServiceAdapter
) -> DownloadService:
    """Wire up adapters."""
    download = settings.download
    return DownloadService(
        webservice=webservice,
        storage=FilesystemAdapter(settings.paths.downloads, settings.paths.lists),
        extractor=create_extractor(settings),
        delay=download.delay,
        delay_unit=download.delay_unit,
        archive=download.archive,
        archive_data=settings.service.archive_data,
        write_ws_response=download.write_ws_response,
        timestamp_file_names=download.timestamp_file_names,
        on_error=download.on_error,
    )


def format_report(report: InvoiceReport) -> str:
    return (
        f"{report.file_name}  {report.delivery_date.isoformat()}  {report.file_type.value}"
    )


def _settings(ctx: click.Context) -> Settings:
    settings = load_settings(ctx.obj["config_path"])
    log_path = add_file_logging(settings.paths.logs)
    logger.debug(f"Logging to {log_path}")
    return settings


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("-c", "--config", type=click.Path(exists=True), help="Config file path")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """ebill-downloader - fetch signed e-bill invoices."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None


@cli.command()
@click.option("--list-only", is_flag=True, help="Only fetch and show the invoice list")
@click.pass_context
def fetch(ctx: click.Context, list_only: bool) -> None:
    """Download all eligible invoices."""
    settings = _settings(ctx)
    enabled = settings.download.enabled and not list_only

    try:
        with create_webservice(settings) as webservice:
            service = create_download_service(settings, webservice)
            queue = service.fetch_queue()
            summary = service.run(queue, download_enabled=enabled)
    except EbillError as e:
        logger.error(f"Aborted: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if summary.list_only:
        click.echo(f"{summary.queued} invoices eligible, download disabled")
        return

    click.echo(f"{summary.downloaded} downloaded, {summary.failed} failed")
    for result in summary.results:
        if not result.success:
            click.echo(f"✗ {result.report.file_name}: {result.errors}", err=True)
    if summary.failed:
        sys.exit(1)


@cli.command("list")
@click.pass_context
def list_invoices(ctx: click.Context) -> None:
    """Show the invoices that would be downloaded."""
    settings = _settings(ctx)

    try:
        with create_webservice(settings) as webservice:
            queue = create_download_service(settings, webservice).fetch_queue()
    except EbillError as e:
        logger.error(f"Listing failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not queue:
        click.echo("No invoices to download")
        return
    for report in queue:
        click.echo(format_report(report))


@cli.command()
@click.argument("response", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--biller-id", required=True, help="BillerID of the invoice")
@click.option("--transaction-id", required=True, help="TransactionID of the invoice")
@click.pass_context
def extract(ctx: click.Context, response: Path, biller_id: str, transaction_id: str) -> None:
    """Unpack a saved GetInvoicePayer response."""
    settings = _settings(ctx)
    report = InvoiceReport(
        biller_id=biller_id,
        transaction_id=transaction_id,
        delivery_date=datetime.now(timezone.utc),
        file_type=FileType.RGXMLSIG,
    )
    storage = FilesystemAdapter(settings.paths.downloads, settings.paths.lists)

    try:
        extraction = create_extractor(settings).extract(
            response.read_text(encoding="utf-8"), report
        )
        invoice_dir = storage.create_invoice_dir(report)
    except EbillError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        for artifact in extraction.artifacts:
            storage.write_artifact(invoice_dir, artifact)
        output = storage.archive(invoice_dir) if settings.download.archive else invoice_dir
    except StorageError as e:
        storage.discard(invoice_dir)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"output: {output}")
    for gap in extraction.gaps:
        click.echo(f"missing: {gap}", err=True)


if __name__ == "__main__":
    cli()
