"""Domain services - orchestrate business logic."""

import logging
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from ..ports.storage import StoragePort
from ..ports.webservice import InvoiceServicePort
from .errors import MalformedResponse, StorageError, TransportError
from .extractor import SignedEnvelopeExtractor, decode_payload, raw_artifact
from .invoice_list import build_invoice_queue
from .models import AgeUnit, ErrorPolicy, InvoiceReport, InvoiceResult, RunSummary

logger = logging.getLogger(__name__)


class DownloadService:
    """Downloads eligible invoices one at a time and unpacks them to storage."""

    def __init__(
        self,
        webservice: InvoiceServicePort,
        storage: StoragePort,
        extractor: SignedEnvelopeExtractor,
        delay: int = 24,
        delay_unit: AgeUnit = AgeUnit.HOURS,
        archive: bool = False,
        archive_data: bool = False,
        write_ws_response: bool = False,
        timestamp_file_names: bool = False,
        on_error: ErrorPolicy = ErrorPolicy.ABORT,
    ) -> None:
        self.webservice = webservice
        self.storage = storage
        self.extractor = extractor
        self.delay = delay
        self.delay_unit = delay_unit
        self.archive = archive
        self.archive_data = archive_data
        self.write_ws_response = write_ws_response
        self.timestamp_file_names = timestamp_file_names
        self.on_error = on_error

    def fetch_queue(self, now: datetime | None = None) -> list[InvoiceReport]:
        """Fetch the invoice list and return the reports to download.

        Raises TransportError or MalformedResponse; both end the run.
        """
        now = now or datetime.now(timezone.utc)
        logger.info(f"Fetching invoice list (archive data: {self.archive_data})")

        response = self.webservice.fetch_invoice_list(self.archive_data)
        if self.write_ws_response:
            self._save(lambda: self.storage.save_list_response(response))

        suffix = now.strftime("%Y%m%d%H%M%S") if self.timestamp_file_names else None
        queue = build_invoice_queue(response, self.delay, self.delay_unit, now, suffix)

        logger.info(
            f"{len(queue)} invoices older than {self.delay} {self.delay_unit.value} queued"
        )
        for report in queue:
            logger.info(f"  {report.file_name} ({report.delivery_date.isoformat()})")
        return queue

    def run(self, queue: list[InvoiceReport], download_enabled: bool = True) -> RunSummary:
        """Process the queue strictly in order, one invoice at a time.

        A TransportError aborts the run. A MalformedResponse aborts the run
        unless the error policy is SKIP.
        """
        summary = RunSummary(queued=len(queue))

        if not download_enabled:
            logger.info("Invoice download disabled, list only")
            summary.list_only = True
            return summary

        pending = deque(queue)
        while pending:
            report = pending.popleft()
            try:
                result = self.download(report)
            except (TransportError, MalformedResponse):
                logger.error(
                    f"Run aborted at {report.file_name} after "
                    f"{len(summary.results)} of {summary.queued} invoices"
                )
                raise
            summary.results.append(result)

        logger.info(f"Run complete: {summary.downloaded} downloaded, {summary.failed} failed")
        return summary

    def download(self, report: InvoiceReport) -> InvoiceResult:
        """Download, unpack and store a single invoice."""
        result = InvoiceResult(report=report)
        logger.info(
            f"Downloading: {report.biller_id}, {report.transaction_id}, {report.file_type.value}"
        )

        try:
            invoice_dir = self.storage.create_invoice_dir(report)
        except StorageError as e:
            logger.error(f"Cannot create directory for {report.file_name}: {e}")
            result.errors.append(str(e))
            return result

        try:
            response = self.webservice.fetch_invoice(
                report.biller_id, report.transaction_id, report.file_type.value
            )
        except TransportError:
            self.storage.discard(invoice_dir)
            raise

        if self.write_ws_response:
            self._save(lambda: self.storage.save_invoice_response(report, response))

        try:
            result.output_path = self._unpack(response, report, invoice_dir, result)
        except MalformedResponse as e:
            result.errors.append(str(e))
            if result.files:
                self._save(lambda: self.storage.mark_incomplete(invoice_dir, str(e)))
            else:
                self.storage.discard(invoice_dir)
            if self.on_error is ErrorPolicy.ABORT:
                raise
            logger.error(f"Skipping {report.file_name}: {e}")
        except StorageError as e:
            logger.error(f"Failed to store {report.file_name}, rolling back: {e}")
            self.storage.discard(invoice_dir)
            result.files.clear()
            result.errors.append(str(e))

        return result

    def _unpack(
        self, response: str, report: InvoiceReport, invoice_dir: Path, result: InvoiceResult
    ) -> Path:
        signed = decode_payload(response)

        # Written before parsing so the signed original survives a bad bundle
        path = self.storage.write_artifact(invoice_dir, raw_artifact(report, signed))
        result.files.append(path.name)

        extraction = self.extractor.unpack(signed, report)
        result.gaps.extend(extraction.gaps)
        for artifact in extraction.artifacts:
            path = self.storage.write_artifact(invoice_dir, artifact)
            result.files.append(path.name)

        logger.info(f"Stored {len(result.files)} files: {report.file_name}")

        if self.archive:
            return self.storage.archive(invoice_dir)
        return invoice_dir

    def _save(self, write) -> None:
        """Raw responses and markers are diagnostics; failing to keep one is not fatal."""
        try:
            path = write()
            logger.debug(f"Saved: {path}")
        except StorageError as e:
            logger.warning(f"Could not save diagnostic file: {e}")
