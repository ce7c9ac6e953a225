"""Domain models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class FileType(str, Enum):
    """File types offered by the invoice list."""

    RGXMLSIG = "RGXMLSIG"  # Signed bundle with XML, PDF and appendix
    PDF = "PDF"
    EDIFACT = "EDIFACT"
    ZIP = "ZIP"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: str) -> "FileType":
        try:
            return cls(value.strip())
        except ValueError:
            return cls.OTHER


class AgeUnit(str, Enum):
    """Unit used to measure invoice age."""

    HOURS = "hours"
    DAYS = "days"

    @property
    def seconds(self) -> int:
        return 3600 if self is AgeUnit.HOURS else 86400


class SignatureObjectKind(str, Enum):
    """Discriminator of an Object inside the signed document."""

    PDF_INVOICE = "PDFInvoice"
    RG_XML = "RGXml"
    OTHER = "Other"

    @classmethod
    def from_id(cls, object_id: str | None) -> "SignatureObjectKind":
        if object_id == cls.PDF_INVOICE.value:
            return cls.PDF_INVOICE
        if object_id == cls.RG_XML.value:
            return cls.RG_XML
        return cls.OTHER


@dataclass(frozen=True)
class SignatureObject:
    """An Object of the signed document, classified by its Id attribute."""

    kind: SignatureObjectKind
    object_id: str | None = None

    @classmethod
    def from_id(cls, object_id: str | None) -> "SignatureObject":
        return cls(SignatureObjectKind.from_id(object_id), object_id)


class ArtifactKind(str, Enum):
    """Kinds of files produced for one invoice."""

    RAW_SIGNED = "raw_signed"
    INVOICE_XML = "invoice_xml"
    PDF = "pdf"
    APPENDIX = "appendix"


@dataclass
class InvoiceReport:
    """One invoice entry from the invoice list."""

    biller_id: str
    transaction_id: str
    delivery_date: datetime
    file_type: FileType
    file_name: str = ""

    def __post_init__(self) -> None:
        if not self.file_name:
            self.file_name = f"{self.biller_id}_{self.transaction_id}"


@dataclass
class Artifact:
    """A decoded document ready to be written to disk."""

    kind: ArtifactKind
    filename: str
    content: bytes


@dataclass
class InvoiceResult:
    """Result of downloading and unpacking one invoice."""

    report: InvoiceReport
    output_path: Path | None = None
    files: list[str] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0 and self.output_path is not None


@dataclass
class RunSummary:
    """Outcome of one download run."""

    queued: int = 0
    results: list[InvoiceResult] = field(default_factory=list)
    list_only: bool = False

    @property
    def downloaded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)


class ErrorPolicy(str, Enum):
    """What to do when one invoice cannot be unpacked."""

    ABORT = "abort"  # Stop the whole run
    SKIP = "skip"  # Record the failure and continue with the next invoice
