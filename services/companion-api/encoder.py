"""Turns user-selected files into inline base64 payloads.

The whole file is buffered in memory. No size or type checks are made;
the MIME type is taken verbatim from what the caller declares.
"""

import base64
import logging

from errors import DecodeError
from models import EncodedDocument

logger = logging.getLogger(__name__)


def encode_bytes(content: bytes, mime_type: str) -> EncodedDocument:
    """Base64-encode raw document bytes."""
    if not isinstance(content, (bytes, bytearray)):
        raise DecodeError(f"Expected bytes, got {type(content).__name__}")
    return EncodedDocument(
        data=base64.b64encode(content).decode("ascii"),
        mime_type=mime_type,
    )


async def encode_upload(upload) -> EncodedDocument:
    """Read an uploaded file completely and encode it.

    ``upload`` is a FastAPI ``UploadFile`` or anything with an async
    ``read()`` and a ``content_type``.
    """
    try:
        content = await upload.read()
    except Exception as e:
        logger.warning("Could not read uploaded document: %s", e)
        raise DecodeError(f"Could not read document: {e}") from e

    document = encode_bytes(content, upload.content_type or "")
    # Never log document content, only its size and type
    logger.info(
        "Encoded document: %d bytes, mime_type=%s",
        len(content),
        document.mime_type,
    )
    return document
