"""Shared test fixtures."""

import base64
from collections.abc import Callable
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from ebill_downloader.domain.models import FileType, InvoiceReport
from ebill_downloader.ports.storage import StoragePort
from ebill_downloader.ports.webservice import InvoiceServicePort

NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)
PDF_BYTES = b"%PDF-1.4 test invoice"
APPENDIX_BYTES = b"%PDF-1.4 terms and conditions"

LIST_TEMPLATE = """\
<s:Envelope xmlns:s="http://www.w3.org/2003/05/soap-envelope" \
xmlns:a="http://www.w3.org/2005/08/addressing">
  <s:Header>
    <a:Action s:mustUnderstand="1">http://ch.swisspost.ebill.b2bservice/B2BService/GetInvoiceListPayerResponse</a:Action>
  </s:Header>
  <s:Body>
    <GetInvoiceListPayerResponse xmlns="http://ch.swisspost.ebill.b2bservice">
      <GetInvoiceListPayerResult \
xmlns:b="http://schemas.datacontract.org/2004/07/B2BService.Model" \
xmlns:i="http://www.w3.org/2001/XMLSchema-instance">{reports}
      </GetInvoiceListPayerResult>
    </GetInvoiceListPayerResponse>
  </s:Body>
</s:Envelope>"""

REPORT_TEMPLATE = """
        <b:InvoiceReport>
          <b:BillerID>{biller_id}</b:BillerID>
          <b:TransactionID>{transaction_id}</b:TransactionID>
          <b:DeliveryDate>{delivery_date}</b:DeliveryDate>
          <b:FileType>{file_type}</b:FileType>
        </b:InvoiceReport>"""

INVOICE_TEMPLATE = """\
<s:Envelope xmlns:s="http://www.w3.org/2003/05/soap-envelope">
  <s:Body>
    <GetInvoicePayerResponse xmlns="http://ch.swisspost.ebill.b2bservice">
      <GetInvoicePayerResult \
xmlns:b="http://schemas.datacontract.org/2004/07/B2BService.Model" \
xmlns:i="http://www.w3.org/2001/XMLSchema-instance">
        <b:Data>{data}</b:Data>
        <b:Filename>{filename}</b:Filename>
      </GetInvoicePayerResult>
    </GetInvoicePayerResponse>
  </s:Body>
</s:Envelope>"""

FAULT_RESPONSE = """\
<s:Envelope xmlns:s="http://www.w3.org/2003/05/soap-envelope">
  <s:Body>
    <s:Fault>
      <s:Code><s:Value>s:Sender</s:Value></s:Code>
      <s:Reason><s:Text xml:lang="en-US">Authentication failed</s:Text></s:Reason>
    </s:Fault>
  </s:Body>
</s:Envelope>"""


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def rg_xml_object(biller_id: str = "12345", appendix: bool = False) -> str:
    appendix_xml = ""
    if appendix:
        appendix_xml = (
            "<Appendix>"
            f'<Document MimeType="application/pdf" FileName="terms.pdf">{_b64(APPENDIX_BYTES)}</Document>'
            "</Appendix>"
        )
    return (
        '<Object Id="RGXml">'
        '<Envelope type="string">'
        "<Header><From>IPECeBILLServer</From><To>IPECeBILLServer</To></Header>"
        "<Body>"
        f"<DeliveryInfo><BillerID>{biller_id}</BillerID><DeliveryID>40000001</DeliveryID></DeliveryInfo>"
        f"<Bill><Header><DocumentID>RE-{biller_id}</DocumentID></Header></Bill>"
        f"{appendix_xml}"
        "</Body>"
        "</Envelope>"
        "</Object>"
    )


def pdf_object(content: bytes = PDF_BYTES) -> str:
    return f'<Object Id="PDFInvoice">{_b64(content)}</Object>'


def signed_document(*objects: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<Signature xmlns="http://www.w3.org/2000/09/xmldsig#">'
        "<SignedInfo><CanonicalizationMethod "
        'Algorithm="http://www.w3.org/TR/2001/REC-xml-c14n-20010315"/></SignedInfo>'
        "<SignatureValue>c2lnbmF0dXJl</SignatureValue>"
        + "".join(objects)
        + "</Signature>"
    )


def invoice_response(signed: str | bytes, filename: str = "invoice.xml") -> str:
    if isinstance(signed, str):
        signed = signed.encode("utf-8")
    return INVOICE_TEMPLATE.format(data=_b64(signed), filename=filename)


def list_response(*reports: dict) -> str:
    return LIST_TEMPLATE.format(reports="".join(REPORT_TEMPLATE.format(**r) for r in reports))


def report_row(
    biller_id: str = "41010106799303734",
    transaction_id: str = "20240301000001",
    delivery_date: str = "2024-03-13T12:00:00Z",
    file_type: str = "RGXMLSIG",
) -> dict:
    return {
        "biller_id": biller_id,
        "transaction_id": transaction_id,
        "delivery_date": delivery_date,
        "file_type": file_type,
    }


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def pdf_bytes() -> bytes:
    return PDF_BYTES


@pytest.fixture
def appendix_bytes() -> bytes:
    return APPENDIX_BYTES


@pytest.fixture
def make_list_response() -> Callable[..., str]:
    return list_response


@pytest.fixture
def make_report_row() -> Callable[..., dict]:
    return report_row


@pytest.fixture
def make_signed_document() -> Callable[..., str]:
    return signed_document


@pytest.fixture
def make_invoice_response() -> Callable[..., str]:
    return invoice_response


@pytest.fixture
def make_rg_xml_object() -> Callable[..., str]:
    return rg_xml_object


@pytest.fixture
def make_pdf_object() -> Callable[..., str]:
    return pdf_object


@pytest.fixture
def fault_response() -> str:
    return FAULT_RESPONSE


@pytest.fixture
def sample_report() -> InvoiceReport:
    """Sample invoice report for testing."""
    return InvoiceReport(
        biller_id="12345",
        transaction_id="20240301000001",
        delivery_date=datetime(2024, 3, 13, 12, 0, 0, tzinfo=timezone.utc),
        file_type=FileType.RGXMLSIG,
    )


@pytest.fixture
def full_invoice_response(sample_report: InvoiceReport) -> str:
    """Invoice response with XML, PDF and appendix."""
    return invoice_response(
        signed_document(rg_xml_object(sample_report.biller_id, appendix=True), pdf_object())
    )


@pytest.fixture
def mock_webservice() -> MagicMock:
    """Mock webservice port."""
    return MagicMock(spec=InvoiceServicePort)


@pytest.fixture
def mock_storage() -> MagicMock:
    """Mock storage port."""
    return MagicMock(spec=StoragePort)
