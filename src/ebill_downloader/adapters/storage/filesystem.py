"""Storage adapter using local filesystem."""

import logging
import re
import shutil
from datetime import datetime
from pathlib import Path

from ...domain.errors import StorageError
from ...domain.models import Artifact, InvoiceReport
from ...ports.storage import StoragePort

logger = logging.getLogger(__name__)

INCOMPLETE_MARKER = ".incomplete"


def sanitize_filename(name: str, max_length: int = 180) -> str:
    """Remove/replace characters invalid in filenames."""
    # Remove null bytes and control characters
    name = re.sub(r"[\x00-\x1f\x7f]", "", name)
    # Replace path traversal attempts
    name = name.replace("..", "_")
    # Replace problematic characters
    name = re.sub(r'[<>:"/\\|?*]', "_", name)
    # Remove leading/trailing dots and spaces
    name = name.strip(". ")
    # Limit length, keeping the extension
    if len(name) > max_length:
        stem, dot, suffix = name.rpartition(".")
        if dot and len(suffix) < 10:
            name = stem[: max_length - len(suffix) - 1] + "." + suffix
        else:
            name = name[:max_length]
    return name or "Untitled"


class FilesystemAdapter(StoragePort):
    """Storage implementation using local filesystem."""

    def __init__(self, downloads_path: Path, lists_path: Path | None = None) -> None:
        self.downloads_path = downloads_path
        self.lists_path = lists_path or downloads_path

    def create_invoice_dir(self, report: InvoiceReport) -> Path:
        """Create downloads/<file_name>/, avoiding leftovers of earlier runs."""
        name = sanitize_filename(report.file_name)
        dest = self.downloads_path / name

        # Handle collision with a directory or archive from a previous run
        counter = 1
        while dest.exists() or dest.with_name(f"{dest.name}.zip").exists():
            dest = self.downloads_path / f"{name}_{counter}"
            counter += 1

        try:
            dest.mkdir(parents=True)
        except OSError as e:
            raise StorageError(f"Cannot create {dest}: {e}") from e

        logger.debug(f"Created: {dest}")
        return dest

    def write_artifact(self, invoice_dir: Path, artifact: Artifact) -> Path:
        dest = invoice_dir / sanitize_filename(artifact.filename)
        try:
            dest.write_bytes(artifact.content)
        except OSError as e:
            raise StorageError(f"Cannot write {dest}: {e}") from e

        logger.info(f"Wrote: {dest.name} ({len(artifact.content)} bytes)")
        return dest

    def archive(self, invoice_dir: Path) -> Path:
        """Zip the invoice directory to <dir>.zip and remove the directory."""
        try:
            archive = shutil.make_archive(
                str(invoice_dir), "zip", root_dir=invoice_dir
            )
            shutil.rmtree(invoice_dir)
        except OSError as e:
            self._remove_partial_archive(invoice_dir)
            raise StorageError(f"Cannot archive {invoice_dir}: {e}") from e

        logger.info(f"Archived: {Path(archive).name}")
        return Path(archive)

    def discard(self, invoice_dir: Path) -> None:
        if not invoice_dir.exists():
            return
        try:
            shutil.rmtree(invoice_dir)
            logger.warning(f"Removed incomplete output: {invoice_dir.name}")
        except OSError as e:
            logger.error(f"Failed to remove {invoice_dir}: {e}")

    def mark_incomplete(self, invoice_dir: Path, reason: str) -> Path:
        """Leave a note in an invoice directory that could not be fully unpacked."""
        return self._write_text(invoice_dir / INCOMPLETE_MARKER, f"{reason}\n")

    def save_list_response(self, xml: str) -> Path:
        timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
        dest = self.lists_path / f"ws_response_InvoiceListPayer_{timestamp}.xml"
        return self._write_text(dest, xml)

    def save_invoice_response(self, report: InvoiceReport, xml: str) -> Path:
        name = sanitize_filename(
            f"ws_response_InvoicePayer_{report.biller_id}_{report.transaction_id}"
            f"_{report.file_type.value}.xml"
        )
        return self._write_text(self.downloads_path / name, xml)

    def _remove_partial_archive(self, invoice_dir: Path) -> None:
        partial = invoice_dir.with_name(f"{invoice_dir.name}.zip")
        try:
            partial.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove {partial}: {e}")

    def _write_text(self, dest: Path, text: str) -> Path:
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(text, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot write {dest}: {e}") from e
        return dest
