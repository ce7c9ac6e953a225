"""Webservice port - interface for the invoice webservice."""

from abc import ABC, abstractmethod


class InvoiceServicePort(ABC):
    """Interface for the e-bill B2B webservice."""

    @abstractmethod
    def fetch_invoice_list(self, archive_data: bool = False) -> str:
        """Request the list of invoices available to the account.

        Returns the raw response XML. Raises TransportError on failure.
        """
        pass

    @abstractmethod
    def fetch_invoice(self, biller_id: str, transaction_id: str, file_type: str) -> str:
        """Request one invoice file.

        Returns the raw response XML. Raises TransportError on failure.
        """
        pass
