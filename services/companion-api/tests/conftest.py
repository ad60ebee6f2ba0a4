"""Shared test fixtures for the companion API tests."""

import json
import sys
from datetime import date
from pathlib import Path

import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeUpload:
    """Stands in for FastAPI's UploadFile: async read() plus content_type."""

    def __init__(self, content=b"", content_type="image/jpeg", error: Exception | None = None):
        self._content = content
        self.content_type = content_type
        self._error = error

    async def read(self):
        if self._error is not None:
            raise self._error
        return self._content


@pytest.fixture
def today() -> date:
    return date(2026, 10, 19)


@pytest.fixture
def sample_image_bytes() -> bytes:
    """A few bytes with a JPEG header; Gemini never sees them in tests."""
    return b"\xff\xd8\xff\xe0\x00\x10JFIF\x00fake-packaging-photo"


@pytest.fixture
def sample_upload(sample_image_bytes: bytes) -> FakeUpload:
    return FakeUpload(sample_image_bytes, "image/jpeg")


@pytest.fixture
def unreadable_upload() -> FakeUpload:
    return FakeUpload(error=OSError("stream closed"))


@pytest.fixture
def gemini_reply():
    """Build a generateContent reply envelope carrying the given text."""

    def _build(text: str) -> dict:
        return {
            "candidates": [
                {
                    "content": {"role": "model", "parts": [{"text": text}]},
                    "finishReason": "STOP",
                }
            ]
        }

    return _build


@pytest.fixture
def mock_medication_response() -> str:
    return json.dumps({"name": "Lisinopril", "dosage": "10mg"})


@pytest.fixture
def mock_full_exam_response() -> str:
    return json.dumps({
        "name": "Hemograma",
        "date": "2024-08-01",
        "time": "",
        "location": "Lab X",
        "preparation": "",
    })


@pytest.fixture
def mock_markdown_response() -> str:
    """Model reply wrapped in a markdown code fence."""
    return '```json\n{"name": "Metformin", "dosage": "500mg"}\n```'


@pytest.fixture
def make_upload():
    return FakeUpload
