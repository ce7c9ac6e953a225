"""Domain layer - core business logic."""

from .models import (
    AgeUnit,
    Artifact,
    ArtifactKind,
    ErrorPolicy,
    FileType,
    InvoiceReport,
    InvoiceResult,
    RunSummary,
    SignatureObject,
    SignatureObjectKind,
)

__all__ = [
    "AgeUnit",
    "Artifact",
    "ArtifactKind",
    "ErrorPolicy",
    "FileType",
    "InvoiceReport",
    "InvoiceResult",
    "RunSummary",
    "SignatureObject",
    "SignatureObjectKind",
]
