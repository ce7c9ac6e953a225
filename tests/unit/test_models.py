"""Unit tests for domain models."""

from datetime import datetime, timezone
from pathlib import Path

from ebill_downloader.domain.models import (
    AgeUnit,
    FileType,
    InvoiceReport,
    InvoiceResult,
    RunSummary,
    SignatureObject,
    SignatureObjectKind,
)

DELIVERED = datetime(2024, 3, 13, tzinfo=timezone.utc)


def _report() -> InvoiceReport:
    return InvoiceReport("12345", "TX1", DELIVERED, FileType.RGXMLSIG)


class TestInvoiceReport:
    """Tests for InvoiceReport."""

    def test_file_name_from_ids(self) -> None:
        assert _report().file_name == "12345_TX1"

    def test_explicit_file_name_kept(self) -> None:
        report = InvoiceReport("12345", "TX1", DELIVERED, FileType.RGXMLSIG, "12345_TX1_2")
        assert report.file_name == "12345_TX1_2"


class TestFileType:
    """Tests for FileType."""

    def test_parse_known(self) -> None:
        assert FileType.parse("RGXMLSIG") is FileType.RGXMLSIG
        assert FileType.parse(" PDF ") is FileType.PDF

    def test_parse_unknown(self) -> None:
        assert FileType.parse("RGXML") is FileType.OTHER

    def test_parse_is_case_sensitive(self) -> None:
        assert FileType.parse("rgxmlsig") is FileType.OTHER


class TestSignatureObjectKind:
    """Tests for SignatureObjectKind."""

    def test_known_ids(self) -> None:
        assert SignatureObjectKind.from_id("PDFInvoice") is SignatureObjectKind.PDF_INVOICE
        assert SignatureObjectKind.from_id("RGXml") is SignatureObjectKind.RG_XML

    def test_other_ids(self) -> None:
        assert SignatureObjectKind.from_id("SignatureProperties") is SignatureObjectKind.OTHER
        assert SignatureObjectKind.from_id("rgxml") is SignatureObjectKind.OTHER
        assert SignatureObjectKind.from_id(None) is SignatureObjectKind.OTHER


class TestSignatureObject:
    """Tests for SignatureObject."""

    def test_keeps_unrecognised_id(self) -> None:
        obj = SignatureObject.from_id("SignatureProperties")
        assert obj.kind is SignatureObjectKind.OTHER
        assert obj.object_id == "SignatureProperties"

    def test_known_id(self) -> None:
        obj = SignatureObject.from_id("RGXml")
        assert obj.kind is SignatureObjectKind.RG_XML
        assert obj.object_id == "RGXml"


class TestAgeUnit:
    """Tests for AgeUnit."""

    def test_seconds(self) -> None:
        assert AgeUnit.HOURS.seconds == 3600
        assert AgeUnit.DAYS.seconds == 86400


class TestInvoiceResult:
    """Tests for InvoiceResult."""

    def test_success_when_stored_without_errors(self) -> None:
        result = InvoiceResult(report=_report(), output_path=Path("/downloads/12345_TX1"))
        assert result.success is True

    def test_gaps_do_not_fail(self) -> None:
        result = InvoiceResult(
            report=_report(),
            output_path=Path("/downloads/12345_TX1"),
            gaps=["No appendix"],
        )
        assert result.success is True

    def test_failure_when_has_errors(self) -> None:
        result = InvoiceResult(
            report=_report(),
            output_path=Path("/downloads/12345_TX1"),
            errors=["disk full"],
        )
        assert result.success is False

    def test_failure_without_output(self) -> None:
        assert InvoiceResult(report=_report()).success is False


class TestRunSummary:
    """Tests for RunSummary."""

    def test_counts(self) -> None:
        ok = InvoiceResult(report=_report(), output_path=Path("/downloads/a"))
        failed = InvoiceResult(report=_report(), errors=["boom"])
        summary = RunSummary(queued=3, results=[ok, failed, ok])
        assert summary.downloaded == 2
        assert summary.failed == 1

    def test_defaults(self) -> None:
        summary = RunSummary()
        assert summary.queued == 0
        assert summary.results == []
        assert summary.list_only is False
