"""FastAPI companion API: medications, exams, history and document extraction.

Document extraction proxies to Gemini. Every other screen is served from
in-memory demo data behind a simple logged-in flag.
Uploaded documents are processed in memory only and never logged.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from config import settings
from extraction import extract_or_placeholder, extract_with_document
from gemini_client import GeminiClient
from models import (
    Exam,
    ExtractionOutcome,
    LoginRequest,
    MedicalRecord,
    Medication,
    NewExam,
    NewMedication,
    NewPerson,
    RegisterRequest,
    ServiceRequest,
)
from prompts import EXAM_SUMMARY, FULL_EXAM, MEDICATION, VARIANTS
from reminders import ReminderScheduler
from store import ADHERENCE_WEEK, SERVICE_REQUESTS, CompanionStore, DuplicatePersonError, NotFoundError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_gemini_client: GeminiClient | None = None
_store = CompanionStore()
_reminders = ReminderScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the Gemini client; a missing key only warns (calls fail remotely)."""
    global _gemini_client

    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY environment variable not set, Gemini calls will fail")
    _gemini_client = GeminiClient()
    logger.info("Gemini client ready (model=%s)", _gemini_client.model)

    yield

    _reminders.cancel_all()
    if _gemini_client is not None:
        _gemini_client.close()


app = FastAPI(title="Cuidar+ Companion API", version="1.0.0", lifespan=lifespan)


def get_gemini_client() -> GeminiClient:
    if _gemini_client is None:
        raise HTTPException(status_code=503, detail="Gemini client not initialized")
    return _gemini_client


def get_store() -> CompanionStore:
    return _store


def get_reminders() -> ReminderScheduler:
    return _reminders


def require_session(store: CompanionStore = Depends(get_store)) -> CompanionStore:
    if not store.logged_in:
        raise HTTPException(status_code=401, detail="Not logged in")
    return store


# --- session ------------------------------------------------------------------


@app.post("/api/v1/auth/login")
async def login(body: LoginRequest, store: CompanionStore = Depends(get_store)):
    store.login()
    logger.info("Session started")
    return {"logged_in": True}


@app.post("/api/v1/auth/register")
async def register(body: RegisterRequest, store: CompanionStore = Depends(get_store)):
    store.login()
    logger.info("Account registered, session started")
    return {"logged_in": True}


@app.post("/api/v1/auth/logout")
async def logout(store: CompanionStore = Depends(get_store)):
    store.logout()
    return {"logged_in": False}


@app.get("/api/v1/auth/session")
async def session(store: CompanionStore = Depends(get_store)):
    return {"logged_in": store.logged_in}


# --- dashboard & follow ---------------------------------------------------------


@app.get("/api/v1/dashboard")
async def dashboard(store: CompanionStore = Depends(require_session)):
    return {
        "medications": store.medications(),
        "adherence": ADHERENCE_WEEK,
    }


@app.get("/api/v1/follow/requests", response_model=list[ServiceRequest])
async def follow_requests(store: CompanionStore = Depends(require_session)):
    return SERVICE_REQUESTS


# --- medications ----------------------------------------------------------------


@app.get("/api/v1/medications", response_model=list[Medication])
async def list_medications(store: CompanionStore = Depends(require_session)):
    return store.medications()


@app.get("/api/v1/medications/family", response_model=dict[str, list[Medication]])
async def list_family_medications(store: CompanionStore = Depends(require_session)):
    return store.family_medications()


@app.post("/api/v1/medications", status_code=201)
async def add_medication(
    body: NewMedication,
    store: CompanionStore = Depends(require_session),
    reminders: ReminderScheduler = Depends(get_reminders),
):
    med = store.add_medication(body)
    reminder_at = reminders.schedule(med)
    return {"medication": med, "reminder_at": reminder_at.isoformat(timespec="minutes")}


@app.post("/api/v1/medications/{medication_id}/taken", response_model=Medication)
async def mark_medication_taken(medication_id: int, store: CompanionStore = Depends(require_session)):
    try:
        return store.mark_taken(medication_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@app.post("/api/v1/medications/extract", response_model=ExtractionOutcome)
async def extract_medication(
    file: UploadFile = File(...),
    store: CompanionStore = Depends(require_session),
    client: GeminiClient = Depends(get_gemini_client),
):
    """Read name and dosage from a photo of the medicine packaging."""
    return await extract_or_placeholder(file, MEDICATION, client)


@app.get("/api/v1/people", response_model=list[str])
async def list_people(store: CompanionStore = Depends(require_session)):
    return store.cared_people()


@app.post("/api/v1/people", status_code=201)
async def add_person(body: NewPerson, store: CompanionStore = Depends(require_session)):
    try:
        name = store.add_person(body.name)
    except DuplicatePersonError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"name": name}


# --- exams ------------------------------------------------------------------------


@app.get("/api/v1/exams", response_model=list[Exam])
async def list_exams(store: CompanionStore = Depends(require_session)):
    return store.exams()


@app.post("/api/v1/exams", response_model=Exam, status_code=201)
async def add_exam(body: NewExam, store: CompanionStore = Depends(require_session)):
    return store.add_exam(body)


@app.post("/api/v1/exams/extract", response_model=ExtractionOutcome)
async def extract_exam(
    file: UploadFile = File(...),
    store: CompanionStore = Depends(require_session),
    client: GeminiClient = Depends(get_gemini_client),
):
    """Read name, date, time, location and preparation from an exam request."""
    return await extract_or_placeholder(file, FULL_EXAM, client)


# --- history ----------------------------------------------------------------------


@app.get("/api/v1/history", response_model=list[MedicalRecord])
async def list_history(store: CompanionStore = Depends(require_session)):
    return store.records()


@app.post("/api/v1/history/upload")
async def upload_history(
    file: UploadFile = File(...),
    store: CompanionStore = Depends(require_session),
    client: GeminiClient = Depends(get_gemini_client),
):
    """Add an exam record titled and dated from the uploaded document."""
    outcome, document = await extract_with_document(file, EXAM_SUMMARY, client)
    if outcome.status == "failed":
        return {"outcome": outcome.model_dump(), "record": None}

    record = store.add_exam_record(
        title=outcome.fields["examName"],
        date=outcome.fields["examDate"],
        image_url=document.data_url,
    )
    return {"outcome": outcome.model_dump(), "record": record.model_dump(by_alias=True)}


# --- generic extraction -------------------------------------------------------------


@app.post("/api/v1/extract/{variant}", response_model=ExtractionOutcome)
async def extract(
    variant: str,
    file: UploadFile = File(...),
    store: CompanionStore = Depends(require_session),
    client: GeminiClient = Depends(get_gemini_client),
):
    """Extract one of the fixed field sets from a document image or PDF."""
    selected = VARIANTS.get(variant)
    if selected is None:
        return JSONResponse(
            status_code=404,
            content={"detail": f"Unknown extraction variant: {variant}"},
        )
    return await extract_or_placeholder(file, selected, client)


@app.get("/health")
async def health():
    """Return service status and Gemini reachability."""
    base = {
        "status": "healthy",
        "credential_configured": bool(settings.GEMINI_API_KEY),
    }

    if _gemini_client is not None:
        base["gemini"] = _gemini_client.health()

    return base


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
