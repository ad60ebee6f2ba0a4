"""Pydantic models for documents, extraction results and the companion domain."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class EncodedDocument(BaseModel):
    """Inline document payload: base64 bytes tagged with their MIME type."""

    model_config = ConfigDict(frozen=True)

    data: str
    mime_type: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class ExtractionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    document: EncodedDocument
    instruction: str
    response_schema: dict


class MedicationFields(BaseModel):
    name: str
    dosage: str


class ExamSummaryFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exam_name: str = Field(alias="examName")
    exam_date: str = Field(alias="examDate")


class FullExamFields(BaseModel):
    name: str
    date: str
    time: str
    location: str
    preparation: str


ExtractionResult = MedicationFields | ExamSummaryFields | FullExamFields


class ExtractionOutcome(BaseModel):
    """Outer result of one extraction attempt.

    ``status="failed"`` means the document could not be read or the remote
    call failed; ``fields`` then holds the failure placeholder. A successful
    outcome may still contain per-field fallbacks.
    """

    variant: str
    status: Literal["ok", "failed"]
    fields: dict[str, str]
    error: str | None = None
    warnings: list[str] = []


# --- Companion domain ---------------------------------------------------------


class MedicationStatus(str, Enum):
    TAKEN = "taken"
    DUE = "due"
    OVERDUE = "overdue"


class ExamStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELED = "canceled"


class ServiceType(str, Enum):
    RIDE = "carona"
    COMPANION = "acompanhante"
    RIDE_AND_COMPANION = "carona+acompanhante"


class Medication(BaseModel):
    id: int
    name: str
    dosage: str
    time: str
    status: MedicationStatus
    owner: str | None = None


class NewMedication(BaseModel):
    name: str = Field(min_length=1)
    dosage: str = Field(min_length=1)
    time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    owner: str | None = None


class Exam(BaseModel):
    id: int
    name: str
    date: str
    time: str
    location: str
    preparation: str | None = None
    status: ExamStatus


class NewExam(BaseModel):
    name: str = Field(min_length=1)
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: str = Field(min_length=1)
    location: str = Field(min_length=1)
    preparation: str | None = None


class MedicalRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    type: Literal["exam", "appointment"]
    title: str
    date: str
    details: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")


class ServiceRequest(BaseModel):
    id: int
    requester: str
    avatar: str
    type: ServiceType
    origin: str
    destination: str
    time: str
    value: float
    rating: float


class AdherenceDay(BaseModel):
    day: str
    taken: int
    missed: int


class NewPerson(BaseModel):
    name: str


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RegisterRequest(LoginRequest):
    name: str = Field(min_length=1)
