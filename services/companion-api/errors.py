"""Hard failures of the document-extraction pipeline."""


class ExtractionError(Exception):
    """Base class for failures that abort an extraction attempt."""


class DecodeError(ExtractionError):
    """The document could not be read or encoded (not retried)."""


class RemoteCallError(ExtractionError):
    """The round trip to the Gemini API failed (network, auth, server error)."""


class RemoteServiceUnavailable(RemoteCallError):
    """Transient remote failure (connection error, timeout, 429, 503)."""
