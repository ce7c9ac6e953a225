"""Exception hierarchy for ebill-downloader."""


class EbillError(Exception):
    """Base exception for all ebill-downloader errors."""

    pass


class TransportError(EbillError):
    """Network, TLS or HTTP failure talking to the webservice."""

    pass


class TransportTimeout(TransportError):
    """The webservice did not answer within the configured timeout."""

    pass


class MalformedResponse(EbillError):
    """Response is not XML or lacks the expected node path."""

    def __init__(self, message: str, fault: str | None = None) -> None:
        if fault:
            message = f"{message} (SOAP fault: {fault})"
        super().__init__(message)
        self.fault = fault


class StorageError(EbillError):
    """Writing or archiving invoice files failed."""

    pass


class ConfigurationError(EbillError):
    """Missing or invalid configuration."""

    pass
