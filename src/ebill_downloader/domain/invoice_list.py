"""Build the download queue from a GetInvoiceListPayer response."""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from .envelope import child, children, parse_xml, require_path
from .errors import MalformedResponse
from .models import AgeUnit, FileType, InvoiceReport

logger = logging.getLogger(__name__)

RESULT_PATH = ("Body", "GetInvoiceListPayerResponse", "GetInvoiceListPayerResult")
REPORT_TAG = "InvoiceReport"
REQUIRED_FIELDS = ("BillerID", "TransactionID", "DeliveryDate", "FileType")


def parse_delivery_date(value: str) -> datetime:
    """Parse a DeliveryDate into an aware datetime.

    Timestamps without offset are interpreted as local time.
    """
    value = value.strip()
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise MalformedResponse(f"Invalid DeliveryDate: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def elapsed_units(delivery_date: datetime, now: datetime, unit: AgeUnit) -> int:
    """Whole units between delivery and now, rounded half away from zero."""
    if now.tzinfo is None:
        now = now.astimezone()
    seconds = Decimal(str((now - delivery_date).total_seconds()))
    return int((seconds / unit.seconds).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def is_eligible(report: InvoiceReport, threshold: int, unit: AgeUnit, now: datetime) -> bool:
    """Only old enough RGXMLSIG bundles are downloaded."""
    if report.file_type is not FileType.RGXMLSIG:
        return False
    return elapsed_units(report.delivery_date, now, unit) >= threshold


def parse_invoice_reports(list_response_xml: str | bytes) -> list[InvoiceReport]:
    """Extract all InvoiceReport records in response order."""
    root = parse_xml(list_response_xml, "invoice list response")
    result = require_path(root, RESULT_PATH, "invoice list response")

    reports = []
    for node in children(result, REPORT_TAG):
        values = {}
        for name in REQUIRED_FIELDS:
            field_node = child(node, name)
            if field_node is None or not (field_node.text or "").strip():
                raise MalformedResponse(f"{REPORT_TAG} without {name}")
            values[name] = field_node.text.strip()

        reports.append(
            InvoiceReport(
                biller_id=values["BillerID"],
                transaction_id=values["TransactionID"],
                delivery_date=parse_delivery_date(values["DeliveryDate"]),
                file_type=FileType.parse(values["FileType"]),
            )
        )
    return reports


def assign_file_names(reports: list[InvoiceReport], suffix: str | None = None) -> None:
    """Give every report a unique file name, in list order."""
    seen: dict[str, int] = {}
    for report in reports:
        base = f"{report.biller_id}_{report.transaction_id}"
        if suffix:
            base = f"{base}_{suffix}"
        count = seen.get(base, 0) + 1
        seen[base] = count
        report.file_name = base if count == 1 else f"{base}_{count}"


def build_invoice_queue(
    list_response_xml: str | bytes,
    threshold: int,
    unit: AgeUnit,
    now: datetime,
    name_suffix: str | None = None,
) -> list[InvoiceReport]:
    """Return the reports to download, in the order the service listed them."""
    reports = parse_invoice_reports(list_response_xml)
    queue = [r for r in reports if is_eligible(r, threshold, unit, now)]
    assign_file_names(queue, name_suffix)

    skipped = len(reports) - len(queue)
    logger.debug(f"Invoice list: {len(reports)} reports, {skipped} not eligible")
    return queue
