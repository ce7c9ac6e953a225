"""Webservice adapter for the e-bill B2BService (SOAP 1.2 over HTTPS)."""

import base64
import logging
import secrets
import ssl
from datetime import datetime, timezone
from pathlib import Path

import httpx
import lxml.etree as etree

from ...domain.errors import TransportError, TransportTimeout
from ...ports.webservice import InvoiceServicePort

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://ebill-ki.postfinance.ch/B2BService/B2BService.svc"
DEFAULT_TIMEOUT = 30.0

SOAP_NS = "http://www.w3.org/2003/05/soap-envelope"
B2B_NS = "http://ch.swisspost.ebill.b2bservice"
WSA_NS = "http://www.w3.org/2005/08/addressing"
WSSE_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd"
WSU_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-utility-1.0.xsd"
ACTION_BASE = f"{B2B_NS}/B2BService/"


def generate_nonce() -> str:
    """Fresh random nonce for the UsernameToken."""
    return base64.b64encode(secrets.token_bytes(16)).decode("ascii")


def utc_timestamp(now: datetime | None = None) -> str:
    """UTC timestamp like 2022-07-06T06:35:44.157Z."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_request(
    operation: str,
    params: list[tuple[str, str]],
    username: str,
    password: str,
    nonce: str,
    created: str,
) -> bytes:
    """Build a SOAP 1.2 request with WS-Security and WS-Addressing headers."""
    envelope = etree.Element(
        f"{{{SOAP_NS}}}Envelope", nsmap={"soap": SOAP_NS, "ch": B2B_NS}
    )

    header = etree.SubElement(envelope, f"{{{SOAP_NS}}}Header", nsmap={"wsa": WSA_NS})
    security = etree.SubElement(
        header,
        f"{{{WSSE_NS}}}Security",
        {f"{{{SOAP_NS}}}mustUnderstand": "true"},
        nsmap={"wsse": WSSE_NS, "wsu": WSU_NS},
    )
    token = etree.SubElement(security, f"{{{WSSE_NS}}}UsernameToken")
    etree.SubElement(token, f"{{{WSSE_NS}}}Username").text = username
    etree.SubElement(token, f"{{{WSSE_NS}}}Password").text = password
    etree.SubElement(token, f"{{{WSSE_NS}}}Nonce").text = nonce
    etree.SubElement(token, f"{{{WSU_NS}}}Created").text = created
    etree.SubElement(header, f"{{{WSA_NS}}}Action").text = ACTION_BASE + operation

    body = etree.SubElement(envelope, f"{{{SOAP_NS}}}Body")
    request = etree.SubElement(body, f"{{{B2B_NS}}}{operation}")
    for name, value in params:
        etree.SubElement(request, f"{{{B2B_NS}}}{name}").text = value

    return etree.tostring(envelope, encoding="UTF-8", xml_declaration=False)


def _looks_like_soap_fault(text: str) -> bool:
    return text.lstrip().startswith("<") and "Fault" in text


class B2BServiceAdapter(InvoiceServicePort):
    """Invoice webservice implementation using httpx."""

    def __init__(
        self,
        url: str,
        account_id: str,
        username: str,
        password: str,
        verify_tls: bool = True,
        ca_cert: Path | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self.account_id = account_id
        self.username = username
        self.password = password

        if client is None:
            if not verify_tls:
                logger.warning("TLS certificate validation disabled")
                verify: bool | ssl.SSLContext = False
            elif ca_cert:
                verify = ssl.create_default_context(cafile=str(ca_cert))
            else:
                verify = True
            client = httpx.Client(verify=verify, timeout=timeout)
        self.client = client

    def fetch_invoice_list(self, archive_data: bool = False) -> str:
        return self._call(
            "GetInvoiceListPayer",
            [
                ("eBillAccountID", self.account_id),
                ("ArchiveData", "true" if archive_data else "false"),
            ],
        )

    def fetch_invoice(self, biller_id: str, transaction_id: str, file_type: str) -> str:
        return self._call(
            "GetInvoicePayer",
            [
                ("eBillAccountID", self.account_id),
                ("BillerID", biller_id),
                ("TransactionID", transaction_id),
                ("FileType", file_type),
            ],
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "B2BServiceAdapter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _call(self, operation: str, params: list[tuple[str, str]]) -> str:
        """POST one request with a fresh nonce and timestamp."""
        action = ACTION_BASE + operation
        content = build_request(
            operation,
            params,
            self.username,
            self.password,
            generate_nonce(),
            utc_timestamp(),
        )
        headers = {
            "Content-Type": f'application/soap+xml;charset=UTF-8;action="{action}"',
            "SOAPAction": action,
        }

        logger.debug(f"POST {self.url} ({operation})")
        try:
            response = self.client.post(self.url, content=content, headers=headers)
        except httpx.TimeoutException as e:
            raise TransportTimeout(f"{operation}: HTTPS connection timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{operation}: SOAP request failed: {e}") from e

        text = response.text
        if response.is_error:
            # Faults are answered with HTTP 500; let the parser report them
            if _looks_like_soap_fault(text):
                logger.warning(f"{operation}: HTTP {response.status_code} with SOAP fault")
                return text
            raise TransportError(f"{operation}: HTTP {response.status_code}")

        logger.debug(f"{operation}: {len(text)} characters received")
        return text
