"""Ports - interfaces for external dependencies."""

from .storage import StoragePort
from .webservice import InvoiceServicePort

__all__ = ["InvoiceServicePort", "StoragePort"]
