"""HTTP client for the Gemini ``generateContent`` endpoint.

One best-effort round trip per extraction by default. Transient failures
(connection errors, timeouts, 429, 503) can optionally be retried with
tenacity's exponential backoff by raising GEMINI_RETRY_ATTEMPTS.
"""

import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import settings
from errors import RemoteCallError, RemoteServiceUnavailable
from models import ExtractionRequest

logger = logging.getLogger(__name__)

_TRANSIENT_STATUS = {429, 503}


class GeminiClient:
    """Stateless Gemini client; each ``generate`` call is independent."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: int | None = None,
        connect_timeout: int | None = None,
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
        retry_backoff: float | None = None,
    ):
        self._api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self._model = model or settings.GEMINI_MODEL
        self._base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")
        self._retry_attempts = retry_attempts if retry_attempts is not None else settings.GEMINI_RETRY_ATTEMPTS
        self._retry_delay = retry_delay if retry_delay is not None else settings.GEMINI_RETRY_DELAY
        self._retry_backoff = retry_backoff if retry_backoff is not None else settings.GEMINI_RETRY_BACKOFF
        self._credential_checked = False

        read_timeout = timeout if timeout is not None else settings.GEMINI_TIMEOUT_SECONDS
        conn_timeout = connect_timeout if connect_timeout is not None else settings.GEMINI_CONNECT_TIMEOUT

        self._client = httpx.Client(
            base_url=self._base_url,
            headers={"x-goog-api-key": self._api_key},
            timeout=httpx.Timeout(
                connect=float(conn_timeout),
                read=float(read_timeout) if read_timeout else None,
                write=30.0,
                pool=30.0,
            ),
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def has_credential(self) -> bool:
        return bool(self._api_key)

    def close(self):
        self._client.close()

    def generate(self, request: ExtractionRequest) -> str:
        """Send the document and instruction to Gemini; return the raw JSON text.

        Raises RemoteCallError (or RemoteServiceUnavailable for transient
        failures). A reply without candidate text yields an empty string.
        """
        self._check_credential()
        payload = {
            "contents": [
                {
                    "parts": [
                        {
                            "inlineData": {
                                "mimeType": request.document.mime_type,
                                "data": request.document.data,
                            }
                        },
                        {"text": request.instruction},
                    ]
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": request.response_schema,
            },
        }
        return self._generate_with_retry(payload)

    def _check_credential(self) -> None:
        # Validated lazily, once; calls proceed either way
        if self._credential_checked:
            return
        self._credential_checked = True
        if not self._api_key:
            logger.warning("GEMINI_API_KEY is not set, Gemini calls will fail")

    def _generate_with_retry(self, payload: dict) -> str:
        """Retry wrapper, configured from the client's retry settings."""

        @retry(
            retry=retry_if_exception_type(RemoteServiceUnavailable),
            stop=stop_after_attempt(max(self._retry_attempts, 1)),
            wait=wait_exponential(
                multiplier=self._retry_delay,
                exp_base=self._retry_backoff,
                max=60,
            ),
            reraise=True,
            before_sleep=lambda state: logger.warning(
                "Gemini unavailable, retrying in %.1fs (attempt %d/%d)",
                state.next_action.sleep,  # type: ignore[union-attr]
                state.attempt_number,
                self._retry_attempts,
            ),
        )
        def _do_generate() -> str:
            return self._send_generate(payload)

        return _do_generate()

    def _send_generate(self, payload: dict) -> str:
        """Send a single generateContent request."""
        try:
            resp = self._client.post(f"/models/{self._model}:generateContent", json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.warning("Gemini connection failed: %s", e)
            raise RemoteServiceUnavailable(f"Cannot connect to Gemini: {e}") from e
        except httpx.TimeoutException as e:
            logger.warning("Gemini timeout: %s", e)
            raise RemoteServiceUnavailable(f"Gemini timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Gemini HTTP error: %s", e)
            raise RemoteCallError(f"Gemini HTTP error: {e}") from e

        if resp.status_code != 200:
            detail = _error_detail(resp)
            if resp.status_code in _TRANSIENT_STATUS:
                logger.warning("Gemini returned %d: %s", resp.status_code, detail)
                raise RemoteServiceUnavailable(detail)
            logger.error("Gemini error %d: %s", resp.status_code, detail)
            raise RemoteCallError(detail)

        try:
            data = resp.json()
        except ValueError as e:
            logger.error("Gemini returned a non-JSON body")
            raise RemoteCallError("Gemini returned a non-JSON body") from e

        text = _candidate_text(data)
        if not text:
            logger.warning("Gemini response carried no candidate text")
        return text

    def health(self) -> dict:
        """Probe the configured model. Returns a status dict, never raises."""
        try:
            resp = self._client.get(f"/models/{self._model}", timeout=10.0)
        except Exception as e:
            logger.warning("Gemini health check failed: %s", e)
            return {"status": "unreachable", "error": str(e)}
        if resp.status_code != 200:
            return {"status": "error", "error": _error_detail(resp)}
        return {"status": "ok", "model": self._model}


def _error_detail(resp: httpx.Response) -> str:
    """Pull the message out of a Google API error envelope."""
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
    return f"HTTP {resp.status_code}"


def _candidate_text(data) -> str:
    """Concatenate the text parts of the first candidate."""
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
