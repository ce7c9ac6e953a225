"""Unpack the signed RGXMLSIG bundle of a GetInvoicePayer response.

The response carries the signed document base64-encoded in its ``Data``
element. The signed document is an XML ``Signature`` whose ``Object``
children hold the invoice parts, told apart by their ``Id`` attribute:

    RGXml       the structured invoice (``Envelope``), possibly with an
                ``Envelope/Body/Appendix/Document`` holding base64 content
    PDFInvoice  the base64 encoded PDF rendering

Other objects (signature properties and the like) are ignored.
"""

import base64
import binascii
import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import lxml.etree as etree

from .envelope import attribute, child, children, find_path, local_name, parse_xml, require_path
from .errors import MalformedResponse
from .models import (
    Artifact,
    ArtifactKind,
    InvoiceReport,
    SignatureObject,
    SignatureObjectKind,
)

logger = logging.getLogger(__name__)

DATA_PATH = ("Body", "GetInvoicePayerResponse", "GetInvoicePayerResult", "Data")


@dataclass
class Extraction:
    """Artifacts decoded from one bundle, plus the optional parts that were missing."""

    artifacts: list[Artifact] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)

    def gap(self, message: str) -> None:
        logger.warning(message)
        self.gaps.append(message)


def decode_base64(text: str) -> bytes:
    """Decode base64 text, tolerating line breaks and indentation."""
    return base64.b64decode("".join(text.split()), validate=True)


def decode_payload(response_xml: str | bytes) -> bytes:
    """Return the signed document carried in the response's Data element."""
    root = parse_xml(response_xml, "invoice response")
    data = require_path(root, DATA_PATH, "invoice response")

    text = (data.text or "").strip()
    if not text:
        raise MalformedResponse("Empty Data element in invoice response")
    try:
        return decode_base64(text)
    except (binascii.Error, ValueError) as e:
        raise MalformedResponse(f"Data element is not valid base64: {e}") from e


def raw_artifact(report: InvoiceReport, signed: bytes) -> Artifact:
    """The signed document, kept verbatim for signature verification."""
    return Artifact(
        kind=ArtifactKind.RAW_SIGNED,
        filename=f"RGXMLSIG_{report.file_name}.xml",
        content=signed,
    )


def replace_biller_id(xml: str, biller_id: str, mapped: str) -> str:
    """Swap the BillerID element content, leaving any other occurrence alone."""
    return xml.replace(
        f"<BillerID>{biller_id}</BillerID>",
        f"<BillerID>{mapped}</BillerID>",
        1,
    )


def serialize_fragment(element: etree._Element) -> str:
    """Serialize a subtree as it reads inside the signed document.

    The default namespace inherited from the enclosing Signature is dropped.
    Namespaces the subtree declares itself are kept.
    """
    parent = element.getparent()
    inherited = parent.nsmap.get(None) if parent is not None else None

    declared = set()
    for node in element.iter():
        if not isinstance(node.tag, str):
            continue
        outer = node.getparent().nsmap if node.getparent() is not None else {}
        declared.update(p for p, uri in node.nsmap.items() if p and outer.get(p) != uri)

    fragment = copy.deepcopy(element)
    if inherited:
        for node in fragment.iter():
            if isinstance(node.tag, str) and etree.QName(node).namespace == inherited:
                node.tag = etree.QName(node).localname
    etree.cleanup_namespaces(fragment, keep_ns_prefixes=sorted(declared))

    return etree.tostring(fragment, encoding="unicode", with_tail=False)


def _find_signature(root: etree._Element) -> etree._Element:
    if local_name(root) == "Signature":
        return root
    for element in root.iter():
        if local_name(element) == "Signature":
            return element
    raise MalformedResponse("No Signature element in signed document")


class SignedEnvelopeExtractor:
    """Turns GetInvoicePayer responses into invoice files."""

    def __init__(self, biller_ids: Mapping[str, str] | None = None) -> None:
        self.biller_ids = biller_ids or {}

    def extract(self, response_xml: str | bytes, report: InvoiceReport) -> Extraction:
        """Decode a full response, raw signed document included."""
        signed = decode_payload(response_xml)
        extraction = self.unpack(signed, report)
        extraction.artifacts.insert(0, raw_artifact(report, signed))
        return extraction

    def unpack(self, signed: bytes, report: InvoiceReport) -> Extraction:
        """Split the signed document into PDF, invoice XML and appendices."""
        try:
            text = signed.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedResponse(f"Signed document is not UTF-8: {e}") from e

        root = parse_xml(text, "signed document")
        objects = children(_find_signature(root), "Object")
        if not objects:
            raise MalformedResponse("Signature without Object elements")

        extraction = Extraction()
        seen: set[SignatureObjectKind] = set()

        for obj in objects:
            classified = SignatureObject.from_id(attribute(obj, "Id"))
            kind = classified.kind
            if kind is SignatureObjectKind.OTHER:
                logger.debug(f"Ignoring signature object: {classified.object_id}")
                continue
            if kind in seen:
                extraction.gap(f"Duplicate {kind.value} object ignored: {report.file_name}")
                continue
            seen.add(kind)

            if kind is SignatureObjectKind.PDF_INVOICE:
                self._extract_pdf(obj, report, extraction)
            elif kind is SignatureObjectKind.RG_XML:
                self._extract_invoice_xml(obj, report, extraction)

        for kind in (SignatureObjectKind.PDF_INVOICE, SignatureObjectKind.RG_XML):
            if kind not in seen:
                logger.info(f"No {kind.value} object in {report.file_name}")

        return extraction

    def _extract_pdf(
        self, obj: etree._Element, report: InvoiceReport, extraction: Extraction
    ) -> None:
        text = (obj.text or "").strip()
        if not text:
            extraction.gap(f"PDFInvoice object without content: {report.file_name}")
            return
        try:
            content = decode_base64(text)
        except (binascii.Error, ValueError) as e:
            extraction.gap(f"PDFInvoice content is not valid base64: {e}")
            return

        extraction.artifacts.append(
            Artifact(ArtifactKind.PDF, f"{report.file_name}.pdf", content)
        )

    def _extract_invoice_xml(
        self, obj: etree._Element, report: InvoiceReport, extraction: Extraction
    ) -> None:
        envelope = child(obj, "Envelope")
        if envelope is None:
            extraction.gap(f"RGXml object without Envelope: {report.file_name}")
            return

        xml = serialize_fragment(envelope)
        mapped = self.biller_ids.get(report.biller_id)
        if mapped is not None:
            logger.debug(f"Mapping BillerID {report.biller_id} -> {mapped}")
            xml = replace_biller_id(xml, report.biller_id, mapped)

        extraction.artifacts.append(
            Artifact(ArtifactKind.INVOICE_XML, f"{report.file_name}.xml", xml.encode("utf-8"))
        )

        appendix = find_path(envelope, "Body", "Appendix")
        if appendix is None:
            return  # Most invoices have none

        for document in children(appendix, "Document"):
            self._extract_appendix(document, report, extraction)

    def _extract_appendix(
        self, document: etree._Element, report: InvoiceReport, extraction: Extraction
    ) -> None:
        name = (attribute(document, "FileName") or "").strip()
        text = (document.text or "").strip()
        if not name or not text:
            extraction.gap(f"Incomplete appendix document: {report.file_name}")
            return
        try:
            content = decode_base64(text)
        except (binascii.Error, ValueError) as e:
            extraction.gap(f"Appendix {name} is not valid base64: {e}")
            return

        extraction.artifacts.append(
            Artifact(ArtifactKind.APPENDIX, f"Appendix_{name}", content)
        )
