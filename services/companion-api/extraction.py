"""Extraction pipeline: encode the document, call Gemini, normalize the JSON.

The normalizer is the only stage that absorbs errors: a malformed or partial
model reply becomes a fully populated result with per-field fallbacks.
DecodeError and RemoteCallError abort the attempt; ``extract_or_placeholder``
turns them into a failed outcome for the HTTP layer.
"""

import json
import logging
import re
from datetime import date

from fastapi.concurrency import run_in_threadpool

from encoder import encode_upload
from errors import DecodeError, RemoteCallError
from gemini_client import GeminiClient
from models import EncodedDocument, ExtractionOutcome, ExtractionRequest, ExtractionResult
from prompts import TODAY, ExtractionVariant

logger = logging.getLogger(__name__)


def build_request(document: EncodedDocument, variant: ExtractionVariant) -> ExtractionRequest:
    return ExtractionRequest(
        document=document,
        instruction=variant.instruction,
        response_schema=variant.response_schema(),
    )


def run_extraction(
    document: EncodedDocument,
    variant: ExtractionVariant,
    client: GeminiClient,
    today: date | None = None,
) -> ExtractionResult:
    """Call Gemini for an encoded document and normalize its reply.

    Raises RemoteCallError if the round trip fails.
    """
    raw_text = client.generate(build_request(document, variant))
    logger.info("Gemini replied for variant=%s (%d chars)", variant.key, len(raw_text))
    return normalize(raw_text, variant, today)


async def extract_upload(
    upload,
    variant: ExtractionVariant,
    client: GeminiClient,
    today: date | None = None,
) -> ExtractionResult:
    """Encode an uploaded file, then run the extraction.

    Raises DecodeError before any remote call if the file cannot be read.
    """
    document = await encode_upload(upload)
    return await run_in_threadpool(run_extraction, document, variant, client, today)


async def extract_or_placeholder(
    upload,
    variant: ExtractionVariant,
    client: GeminiClient,
    today: date | None = None,
) -> ExtractionOutcome:
    """Outer boundary: never raises for pipeline failures.

    A failed attempt is reported with ``status="failed"`` and the
    "Erro ao ler" placeholder record, kept apart from per-field fallbacks.
    """
    outcome, _ = await extract_with_document(upload, variant, client, today)
    return outcome


async def extract_with_document(
    upload,
    variant: ExtractionVariant,
    client: GeminiClient,
    today: date | None = None,
) -> tuple[ExtractionOutcome, EncodedDocument | None]:
    """Like ``extract_or_placeholder``, also returning the encoded document.

    The document is None when the file could not be read.
    """
    document = None
    try:
        document = await encode_upload(upload)
        # Blocking httpx call, kept off the event loop
        result = await run_in_threadpool(run_extraction, document, variant, client, today)
    except DecodeError as e:
        logger.error("Document could not be read for variant=%s: %s", variant.key, e)
        return _failed(variant, e, "Could not read the document", today), None
    except RemoteCallError as e:
        logger.error("Gemini call failed for variant=%s: %s", variant.key, e)
        return _failed(variant, e, "Document extraction service failed", today), document

    outcome = ExtractionOutcome(
        variant=variant.key,
        status="ok",
        fields=result.model_dump(by_alias=True),
    )
    return outcome, document


def _failed(variant: ExtractionVariant, error: Exception, warning: str, today: date | None) -> ExtractionOutcome:
    return ExtractionOutcome(
        variant=variant.key,
        status="failed",
        fields=failure_placeholder(variant, today).model_dump(by_alias=True),
        error=str(error),
        warnings=[f"{warning}: {error}"],
    )


def failure_placeholder(variant: ExtractionVariant, today: date | None = None) -> ExtractionResult:
    """The record shown when the whole pipeline failed."""
    values = {f.name: _resolve(f.on_failure, today) for f in variant.fields}
    return variant.result_model.model_validate(values)


def normalize(raw_text: str, variant: ExtractionVariant, today: date | None = None) -> ExtractionResult:
    """Map Gemini's reply onto the variant's fields, filling fallbacks."""
    parsed = try_parse_json(raw_text) or {}

    values = {}
    for field in variant.fields:
        value = parsed.get(field.name)
        if isinstance(value, str) and value != "":
            values[field.name] = value
        else:
            values[field.name] = _resolve(field.fallback, today)

    return variant.result_model.model_validate(values)


def _resolve(rule: object, today: date | None) -> str:
    if rule is TODAY:
        return (today or date.today()).isoformat()
    return rule


def try_parse_json(raw: str) -> dict | None:
    """Try to extract a JSON object from the model output.

    Handles: direct JSON, markdown fences and preamble text.
    """
    if not raw or not isinstance(raw, str):
        return None

    cleaned = raw.strip()

    try:
        result = json.loads(cleaned)
        if isinstance(result, dict):
            return result
    except json.JSONDecodeError:
        pass

    match = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", cleaned, re.DOTALL)
    if match:
        try:
            result = json.loads(match.group(1).strip())
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    match = re.search(r"\{[^{}]*\}", cleaned, re.DOTALL)
    if match:
        try:
            result = json.loads(match.group(0))
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    # Length only: the reply may echo document content
    logger.warning("Could not parse JSON from Gemini response (%d chars)", len(cleaned))
    return None
