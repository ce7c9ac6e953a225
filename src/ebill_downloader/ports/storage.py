"""Storage port - interface for invoice file storage."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import Artifact, InvoiceReport


class StoragePort(ABC):
    """Interface for invoice file storage."""

    @abstractmethod
    def create_invoice_dir(self, report: "InvoiceReport") -> Path:
        """Create the output directory for one invoice.

        Returns path to the new directory.
        """
        pass

    @abstractmethod
    def write_artifact(self, invoice_dir: Path, artifact: "Artifact") -> Path:
        """Write one decoded document into the invoice directory.

        Returns path to the written file.
        """
        pass

    @abstractmethod
    def archive(self, invoice_dir: Path) -> Path:
        """Compress the invoice directory and remove it.

        Returns path to the archive.
        """
        pass

    @abstractmethod
    def discard(self, invoice_dir: Path) -> None:
        """Remove a partially written invoice directory."""
        pass

    @abstractmethod
    def mark_incomplete(self, invoice_dir: Path, reason: str) -> Path:
        """Flag a kept invoice directory whose bundle could not be unpacked.

        Returns path to the marker file.
        """
        pass

    @abstractmethod
    def save_list_response(self, xml: str) -> Path:
        """Keep a raw invoice list response."""
        pass

    @abstractmethod
    def save_invoice_response(self, report: "InvoiceReport", xml: str) -> Path:
        """Keep a raw invoice response."""
        pass
