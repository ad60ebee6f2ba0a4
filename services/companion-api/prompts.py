"""Extraction variants: instructions, response schemas and per-field fallbacks.

Each variant is one row of data. The client builds its request from
``instruction`` and ``response_schema()``; the normalizer resolves every
field through its ``fallback`` rule, and the outer failure boundary through
its ``on_failure`` rule.
"""

from dataclasses import dataclass

from models import ExamSummaryFields, FullExamFields, MedicationFields

NOT_IDENTIFIED = "Não identificado"
NOT_IDENTIFIED_F = "Não identificada"
ERROR_READING = "Erro ao ler"
EMPTY = ""
TODAY = object()  # resolved to the current local date, YYYY-MM-DD


@dataclass(frozen=True)
class FieldSpec:
    name: str
    fallback: object
    on_failure: object


@dataclass(frozen=True)
class ExtractionVariant:
    key: str
    instruction: str
    fields: tuple[FieldSpec, ...]
    result_model: type

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def response_schema(self) -> dict:
        """Gemini response schema: an object of required string properties."""
        return {
            "type": "OBJECT",
            "properties": {name: {"type": "STRING"} for name in self.field_names},
            "required": self.field_names,
        }


MEDICATION = ExtractionVariant(
    key="medication",
    instruction=(
        "From the image of the medicine packaging, extract the medication name "
        "and its dosage. Respond ONLY with a valid JSON object with 'name' and "
        "'dosage' as keys."
    ),
    fields=(
        FieldSpec("name", fallback=NOT_IDENTIFIED, on_failure=ERROR_READING),
        FieldSpec("dosage", fallback=NOT_IDENTIFIED_F, on_failure=ERROR_READING),
    ),
    result_model=MedicationFields,
)

EXAM_SUMMARY = ExtractionVariant(
    key="exam_summary",
    instruction=(
        "From the image of the medical exam document, extract the exam "
        "title/name and the date it was performed. Respond ONLY with a valid "
        "JSON object with 'examName' and 'examDate' as keys. The date should "
        "be in 'YYYY-MM-DD' format."
    ),
    fields=(
        FieldSpec("examName", fallback=NOT_IDENTIFIED, on_failure=ERROR_READING),
        FieldSpec("examDate", fallback=TODAY, on_failure=TODAY),
    ),
    result_model=ExamSummaryFields,
)

FULL_EXAM = ExtractionVariant(
    key="full_exam",
    instruction=(
        "From the image of the medical exam request/document, extract the exam "
        "title/name, the date and time it should be performed, the location "
        "(clinic/hospital name), and any preparation instructions. Respond "
        "ONLY with a valid JSON object with 'name', 'date', 'time', "
        "'location', and 'preparation' as keys. The date should be in "
        "'YYYY-MM-DD' format and time in 'HH:MM' format. If a value is not "
        "found, return an empty string for it."
    ),
    fields=(
        FieldSpec("name", fallback=NOT_IDENTIFIED, on_failure=ERROR_READING),
        FieldSpec("date", fallback=TODAY, on_failure=TODAY),
        FieldSpec("time", fallback=EMPTY, on_failure=EMPTY),
        FieldSpec("location", fallback=EMPTY, on_failure=EMPTY),
        FieldSpec("preparation", fallback=EMPTY, on_failure=EMPTY),
    ),
    result_model=FullExamFields,
)

VARIANTS: dict[str, ExtractionVariant] = {
    v.key: v for v in (MEDICATION, EXAM_SUMMARY, FULL_EXAM)
}
