"""XML envelope parsing and namespace-agnostic navigation."""

import logging

import lxml.etree as etree

from .errors import MalformedResponse

logger = logging.getLogger(__name__)

# Embedded PDFs and appendices easily exceed libxml2's default text node limit
_PARSER = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    huge_tree=True,
    remove_blank_text=False,
)


def parse_xml(data: str | bytes, context: str = "response") -> etree._Element:
    """Parse XML text or bytes into an element tree root."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not data.strip():
        raise MalformedResponse(f"Empty {context}")
    try:
        return etree.fromstring(data, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise MalformedResponse(f"Invalid XML in {context}: {e}") from e


def local_name(element: etree._Element) -> str:
    """Tag name without namespace."""
    if not isinstance(element.tag, str):
        return ""  # Comments and processing instructions
    return etree.QName(element).localname


def children(element: etree._Element, name: str) -> list[etree._Element]:
    """Direct children with the given local name."""
    return [child for child in element if local_name(child) == name]


def child(element: etree._Element, name: str) -> etree._Element | None:
    """First direct child with the given local name."""
    for candidate in element:
        if local_name(candidate) == name:
            return candidate
    return None


def find_path(element: etree._Element, *names: str) -> etree._Element | None:
    """Follow a path of local names from element, first match at each step."""
    current: etree._Element | None = element
    for name in names:
        if current is None:
            return None
        current = child(current, name)
    return current


def attribute(element: etree._Element, name: str) -> str | None:
    """Attribute value by local name, ignoring namespace and case."""
    wanted = name.lower()
    for key, value in element.attrib.items():
        if etree.QName(key).localname.lower() == wanted:
            return value
    return None


def soap_fault(root: etree._Element) -> str | None:
    """Return the fault reason if root is a SOAP envelope carrying a Fault."""
    body = child(root, "Body")
    if body is None:
        return None
    fault = child(body, "Fault")
    if fault is None:
        return None

    # SOAP 1.2: Reason/Text, SOAP 1.1: faultstring
    reason = find_path(fault, "Reason", "Text")
    if reason is None:
        reason = child(fault, "faultstring")
    text = (reason.text or "").strip() if reason is not None else ""
    return text or "unknown fault"


def require_path(root: etree._Element, names: tuple[str, ...], context: str) -> etree._Element:
    """Locate a required node path, raising MalformedResponse if absent."""
    node = find_path(root, *names)
    if node is None:
        fault = soap_fault(root)
        path = "/".join((local_name(root),) + names)
        logger.debug(f"Missing {path} in {context}")
        raise MalformedResponse(f"Expected {path} in {context}", fault=fault)
    return node
